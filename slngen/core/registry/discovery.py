from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping

from slngen.core.config import GeneratorConfig
from slngen.core.errors import MissingTemplateError
from slngen.core.ownership.records import ModuleRecord

from .manifest import category_from_name, project_guid
from .models import CSHARP_PROJECT_TYPE_GUID, GeneratorManifest, ProjectEntry, ProjectKind

_log = logging.getLogger("slngen.registry")

PROJECT_TEMPLATE_SUFFIX = ".csproj.template"
SOLUTION_TEMPLATE_SUFFIX = ".sln.template"


def list_project_templates(project_root: Path, config: GeneratorConfig) -> List[Path]:
    templates_dir = Path(project_root) / config.templates_dir
    if not templates_dir.is_dir():
        return []
    return sorted(p for p in templates_dir.glob(f"*{PROJECT_TEMPLATE_SUFFIX}") if p.is_file())


def discover_manifest(
    project_root: Path,
    config: GeneratorConfig,
    modules: Mapping[str, ModuleRecord],
) -> GeneratorManifest:
    """
    Build the project set from the template directory alone.

    One project per ``<Name>.csproj.template``; its descriptor is written to
    ``<Name>.csproj`` at the project root and its GUID is derived from the
    name. The solution comes from the first ``*.sln.template``.
    """
    root = Path(project_root)
    templates_dir = root / config.templates_dir

    projects: List[ProjectEntry] = []
    for template in list_project_templates(root, config):
        csproj = template.name[: -len(".template")]
        name = csproj[: -len(".csproj")]
        module = modules.get(name)
        projects.append(
            ProjectEntry(
                name=name,
                csproj_path=csproj,
                template_path=f"{config.templates_dir}/{template.name}",
                guid=project_guid(name),
                kind=ProjectKind.ASMDEF if module is not None else ProjectKind.LEGACY,
                category=module.category if module is not None else category_from_name(name),
            )
        )

    solutions = sorted(templates_dir.glob(f"*{SOLUTION_TEMPLATE_SUFFIX}")) if templates_dir.is_dir() else []
    if not solutions:
        raise MissingTemplateError(templates_dir / f"*{SOLUTION_TEMPLATE_SUFFIX}")
    if len(solutions) > 1:
        _log.warning("Several solution templates in %s; using %s", templates_dir, solutions[0].name)

    sln_template = solutions[0]
    _log.debug("Discovered %d project templates in %s", len(projects), templates_dir)
    return GeneratorManifest(
        solution_path=sln_template.name[: -len(".template")],
        solution_template_path=f"{config.templates_dir}/{sln_template.name}",
        project_type_guid=CSHARP_PROJECT_TYPE_GUID,
        projects=projects,
    )
