"""
Generator configuration.

Every tunable of a run lives on ``GeneratorConfig`` and is threaded through
the pipeline explicitly; nothing reads the working directory on its own.

Optional override file (YAML or JSON), flat mapping of field names:

    template_root: Library/UnitySolutionGenerator
    pattern_mode: flat
    max_workers: 8

Environment variable:
    SLNGEN_CONFIG: path to the override file (optional).
    Default search path: <project_root>/slngen.yaml
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

_log = logging.getLogger("slngen.config")

PatternMode = Literal["flat", "recursive"]

DEFAULT_CONFIG_FILE = "slngen.yaml"


class GeneratorConfig(BaseModel):
    scan_roots: List[str] = Field(default_factory=lambda: ["Assets", "Packages"])

    source_suffix: str = ".cs"
    declaration_suffix: str = ".asmdef"
    extension_suffix: str = ".asmref"

    # Legacy (predefined assembly) fallback
    legacy_root: str = "Assets"
    editor_directory: str = "Editor"
    first_pass_directories: List[str] = Field(
        default_factory=lambda: ["Plugins", "Standard Assets", "Pro Standard Assets"]
    )

    template_root: str = "Library/UnitySolutionGenerator"
    manifest_name: str = "projects.json"

    pattern_mode: PatternMode = "recursive"
    max_workers: Optional[int] = None
    unresolved_sample_size: int = 20

    @property
    def templates_dir(self) -> str:
        return f"{self.template_root}/templates"

    @property
    def manifest_path(self) -> str:
        return f"{self.template_root}/{self.manifest_name}"


def load_config(project_root: Path, path: Optional[Path] = None) -> GeneratorConfig:
    """
    Load the configuration for ``project_root``.

    Returns defaults if the file is absent, unreadable or malformed; the
    problem is logged and the run proceeds.
    """
    resolved = _resolve_path(project_root, path)
    if resolved is None or not resolved.exists():
        return GeneratorConfig()

    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read config file %s: %s", resolved, exc)
        return GeneratorConfig()

    data = _parse(raw_text, resolved)
    if data is None:
        return GeneratorConfig()

    if not isinstance(data, dict):
        _log.warning("Config file %s must be a mapping, got %s", resolved, type(data).__name__)
        return GeneratorConfig()

    known = {k: v for k, v in data.items() if k in GeneratorConfig.model_fields}
    for key in sorted(set(data) - set(known)):
        _log.warning("Ignoring unknown config key %r in %s", key, resolved)

    try:
        cfg = GeneratorConfig(**known)
    except ValidationError as exc:
        _log.warning("Invalid config file %s: %s", resolved, exc)
        return GeneratorConfig()

    _log.info("Loaded config from %s", resolved)
    return cfg


def apply_overrides(cfg: GeneratorConfig, **overrides: Any) -> GeneratorConfig:
    """Return a copy with every non-None override applied (CLI flags win)."""
    updates: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return cfg
    return cfg.model_copy(update=updates)


def _parse(raw_text: str, source: Path) -> Any:
    try:
        return json.loads(raw_text)
    except json.JSONDecodeError:
        pass

    import yaml

    try:
        return yaml.safe_load(raw_text) or {}
    except yaml.YAMLError as exc:
        _log.warning("Failed to parse config file %s as JSON or YAML: %s", source, exc)
        return None


def _resolve_path(project_root: Path, path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("SLNGEN_CONFIG", "").strip()
    if env_path:
        return Path(env_path)
    return Path(project_root) / DEFAULT_CONFIG_FILE
