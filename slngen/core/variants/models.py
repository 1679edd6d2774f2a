from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class BuildPlatform(str, Enum):
    IOS = "ios"
    ANDROID = "android"

    @property
    def unity_name(self) -> str:
        # Spelling used by includePlatforms / excludePlatforms.
        return "iOS" if self is BuildPlatform.IOS else "Android"

    @property
    def define(self) -> str:
        return "UNITY_IOS" if self is BuildPlatform.IOS else "UNITY_ANDROID"


class BuildConfiguration(str, Enum):
    EDITOR = "editor"
    DEV = "dev"
    PROD = "prod"


@dataclass(frozen=True)
class VariantSpec:
    platform: BuildPlatform
    configuration: BuildConfiguration = BuildConfiguration.PROD

    @property
    def name(self) -> str:
        return f"{self.platform.value}-{self.configuration.value}"

    @property
    def suffix(self) -> str:
        return f".v.{self.name}"

    @property
    def keeps_debug_defines(self) -> bool:
        return self.configuration != BuildConfiguration.PROD

    @property
    def keeps_editor_defines(self) -> bool:
        return self.configuration == BuildConfiguration.EDITOR

    @property
    def includes_all_projects(self) -> bool:
        return self.configuration == BuildConfiguration.EDITOR


@dataclass
class VariantResult:
    suffix: str
    generated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    solution_path: Optional[str] = None
    props_path: Optional[str] = None
    solution_updated: bool = False
