from __future__ import annotations

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


class GeneratorError(Exception):
    """Base class for every condition that aborts a generation run."""


class DuplicateModuleNameError(GeneratorError):
    def __init__(self, name: str, first: str, second: str):
        self.name = name
        self.first = first
        self.second = second
        super().__init__(f"Duplicate module name '{name}' declared by {first} and {second}")


class MissingTemplateError(GeneratorError):
    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(f"Missing template file: {self.path}")


class TemplateRenderError(GeneratorError):
    def __init__(self, path: PathLike, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot render template {self.path}: {reason}")


class MissingManifestError(GeneratorError):
    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(f"Missing manifest: {self.path}")


class InvalidManifestError(GeneratorError):
    def __init__(self, path: PathLike, reason: str = ""):
        self.path = Path(path)
        detail = f" ({reason})" if reason else ""
        super().__init__(f"Invalid manifest JSON: {self.path}{detail}")


class MissingDeclarationError(GeneratorError):
    def __init__(self, project: str):
        self.project = project
        super().__init__(f"Project '{project}' is asmdef-based but no matching .asmdef was found")


class NoModulesFoundError(GeneratorError):
    def __init__(self, root: PathLike):
        self.root = Path(root)
        super().__init__(f"No module declarations or project templates found under {self.root}")


class SolutionNotFoundError(GeneratorError):
    def __init__(self, root: PathLike, reason: str = "No .sln file at project root"):
        self.root = Path(root)
        super().__init__(f"{reason}: {self.root}")


class InvalidProjectVersionError(GeneratorError):
    def __init__(self, path: PathLike):
        self.path = Path(path)
        super().__init__(f"Could not parse Unity editor version from: {self.path}")
