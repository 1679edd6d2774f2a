from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from slngen.core.errors import DuplicateModuleNameError
from slngen.core.paths import parent_directory

_log = logging.getLogger("slngen.ownership")

_META_GUID_RE = re.compile(r"^guid:\s*([0-9a-fA-F]{32})\s*$", re.MULTILINE)

GUID_LENGTH = 32


class ModuleCategory(str, Enum):
    RUNTIME = "runtime"
    EDITOR = "editor"
    TEST = "test"


@dataclass(frozen=True)
class ModuleRecord:
    name: str
    directory: str
    declaration_path: str
    references: Tuple[str, ...] = ()
    category: ModuleCategory = ModuleCategory.RUNTIME
    include_platforms: Tuple[str, ...] = ()
    exclude_platforms: Tuple[str, ...] = ()
    define_constraints: Tuple[str, ...] = ()
    auto_referenced: bool = True
    guid: Optional[str] = None


@dataclass(frozen=True)
class ReferenceExtensionRecord:
    directory: str
    reference: str
    path: str


def infer_category(include_platforms: Sequence[str], define_constraints: Sequence[str]) -> ModuleCategory:
    if "UNITY_INCLUDE_TESTS" in define_constraints:
        return ModuleCategory.TEST
    if list(include_platforms) == ["Editor"]:
        return ModuleCategory.EDITOR
    if "UNITY_EDITOR" in define_constraints:
        return ModuleCategory.EDITOR
    return ModuleCategory.RUNTIME


def read_meta_guid(path: Path) -> Optional[str]:
    """Return the lowercase GUID from ``<path>.meta``, or None if it is absent."""
    meta = path.with_name(path.name + ".meta")
    try:
        text = meta.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    m = _META_GUID_RE.search(text)
    return m.group(1).lower() if m else None


def _read_json(path: Path) -> Dict[str, Any]:
    # Unity writes declaration files with a UTF-8 BOM now and then.
    data = json.loads(path.read_text(encoding="utf-8-sig"))
    if not isinstance(data, dict):
        raise ValueError("top-level value is not an object")
    return data


def _string_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key) or []
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value if isinstance(v, str))


def load_module_records(
    project_root: Path, paths: Sequence[str]
) -> Tuple[List[ModuleRecord], List[str]]:
    """Parse every declaration file; invalid or nameless files become warnings."""
    root = Path(project_root)
    records: List[ModuleRecord] = []
    warnings: List[str] = []

    for rel in paths:
        abs_path = root / rel
        try:
            data = _read_json(abs_path)
        except (OSError, ValueError) as exc:
            warnings.append(f"Skipping invalid module declaration {rel}: {exc}")
            continue

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            warnings.append(f"Skipping module declaration without a name: {rel}")
            continue

        include_platforms = _string_list(data, "includePlatforms")
        define_constraints = _string_list(data, "defineConstraints")
        auto_referenced = data.get("autoReferenced", True)

        records.append(
            ModuleRecord(
                name=name.strip(),
                directory=parent_directory(rel),
                declaration_path=rel,
                references=_string_list(data, "references"),
                category=infer_category(include_platforms, define_constraints),
                include_platforms=include_platforms,
                exclude_platforms=_string_list(data, "excludePlatforms"),
                define_constraints=define_constraints,
                auto_referenced=bool(auto_referenced) if isinstance(auto_referenced, bool) else True,
                guid=read_meta_guid(abs_path),
            )
        )

    _log.debug("Loaded %d module declarations (%d skipped)", len(records), len(warnings))
    return records, warnings


def load_extension_records(
    project_root: Path, paths: Sequence[str]
) -> Tuple[List[ReferenceExtensionRecord], List[str]]:
    root = Path(project_root)
    records: List[ReferenceExtensionRecord] = []
    warnings: List[str] = []

    for rel in paths:
        try:
            data = _read_json(root / rel)
        except (OSError, ValueError) as exc:
            warnings.append(f"Skipping invalid reference extension {rel}: {exc}")
            continue

        reference = data.get("reference")
        if not isinstance(reference, str) or not reference.strip():
            _log.debug("Reference extension without a reference: %s", rel)
            continue

        records.append(
            ReferenceExtensionRecord(directory=parent_directory(rel), reference=reference.strip(), path=rel)
        )

    return records, warnings


def index_modules(records: Sequence[ModuleRecord]) -> Dict[str, ModuleRecord]:
    """Map module name to record. A repeated name aborts the run."""
    modules: Dict[str, ModuleRecord] = {}
    for rec in records:
        existing = modules.get(rec.name)
        if existing is not None:
            raise DuplicateModuleNameError(rec.name, existing.declaration_path, rec.declaration_path)
        modules[rec.name] = rec
    return modules


def index_guids(modules: Dict[str, ModuleRecord]) -> Dict[str, str]:
    return {rec.guid: name for name, rec in modules.items() if rec.guid}
