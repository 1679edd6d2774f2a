from __future__ import annotations

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from slngen.core.ownership.records import ModuleCategory

CSHARP_PROJECT_TYPE_GUID = "{FAE04EC0-301F-11D3-BF4B-00C04F79EFBC}"


class ProjectKind(str, Enum):
    ASMDEF = "asmdef"
    LEGACY = "legacy"


class ProjectEntry(BaseModel):
    """One generated descriptor. Field names on disk are camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    csproj_path: str = Field(alias="csprojPath")
    template_path: str = Field(alias="templatePath")
    guid: str
    kind: ProjectKind
    category: ModuleCategory = ModuleCategory.RUNTIME


class GeneratorManifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    solution_path: str = Field(alias="solutionPath")
    solution_template_path: str = Field(alias="solutionTemplatePath")
    project_type_guid: str = Field(default=CSHARP_PROJECT_TYPE_GUID, alias="projectTypeGuid")
    projects: List[ProjectEntry] = Field(default_factory=list)

    def project_names(self) -> List[str]:
        return [p.name for p in self.projects]

    def by_name(self) -> Dict[str, ProjectEntry]:
        return {p.name: p for p in self.projects}
