"""
Project registry (``projects.json``).

The registry pins the project set of a solution: descriptor path, template
path, GUID, kind and category per project. It is written once by
``init_manifest`` from an IDE-generated solution and then read by every
``generate`` run.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from slngen.core.config import GeneratorConfig
from slngen.core.errors import InvalidManifestError, MissingManifestError, SolutionNotFoundError
from slngen.core.ownership.records import ModuleCategory, index_modules, load_module_records
from slngen.core.rendering.writer import write_if_changed
from slngen.core.scanning.scanner import scan_files

from .models import GeneratorManifest, ProjectEntry, ProjectKind

_log = logging.getLogger("slngen.registry")


def project_guid(name: str) -> str:
    """Deterministic ``{XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX}`` identifier for a project name."""
    h = hashlib.md5(name.encode("utf-8")).hexdigest().upper()
    return "{%s-%s-%s-%s-%s}" % (h[0:8], h[8:12], h[12:16], h[16:20], h[20:32])


def load_manifest(path: Path) -> GeneratorManifest:
    path = Path(path)
    if not path.exists():
        raise MissingManifestError(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidManifestError(path, str(exc)) from exc
    if not isinstance(data, dict):
        raise InvalidManifestError(path, "top-level value is not an object")
    try:
        return GeneratorManifest.model_validate(data)
    except ValidationError as exc:
        raise InvalidManifestError(path, f"{exc.error_count()} validation error(s)") from exc


def dump_manifest(manifest: GeneratorManifest) -> str:
    data = manifest.model_dump(mode="json", by_alias=True)
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def save_manifest(path: Path, manifest: GeneratorManifest) -> bool:
    return write_if_changed(path, dump_manifest(manifest))


@dataclass(frozen=True)
class SolutionProject:
    type_guid: str
    name: str
    csproj_path: str
    guid: str


def find_solution_file(project_root: Path) -> Path:
    """First ``*.sln`` directly under the project root, by name."""
    root = Path(project_root)
    candidates = sorted(
        p for p in root.glob("*.sln") if p.is_file() and not p.name.startswith(".") and ".v." not in p.name
    )
    if not candidates:
        raise SolutionNotFoundError(root)
    return candidates[0]


def _quoted_fields(line: str) -> List[str]:
    fields: List[str] = []
    in_quote = False
    current: List[str] = []
    for ch in line:
        if ch == '"':
            if in_quote:
                fields.append("".join(current))
                current = []
            in_quote = not in_quote
        elif in_quote:
            current.append(ch)
    return fields


def parse_solution_projects(content: str) -> List[SolutionProject]:
    """
    Root-level C# projects listed by a solution file.

    Matches ``Project("{TYPE}") = "Name", "Path.csproj", "{GUID}"``. Projects
    in sub-directories and non-csproj entries (solution folders) are skipped.
    """
    out: List[SolutionProject] = []
    for line in content.splitlines():
        if not line.startswith('Project("'):
            continue
        fields = _quoted_fields(line)
        if len(fields) < 4:
            continue
        type_guid, name, csproj_path, guid = fields[:4]
        if not csproj_path.endswith(".csproj") or "/" in csproj_path or "\\" in csproj_path:
            continue
        out.append(SolutionProject(type_guid=type_guid, name=name, csproj_path=csproj_path, guid=guid))
    return out


def category_from_name(name: str) -> ModuleCategory:
    lower = name.lower()
    if "editor" in lower:
        return ModuleCategory.EDITOR
    if ".tests." in lower or "testrunner" in lower:
        return ModuleCategory.TEST
    return ModuleCategory.RUNTIME


def template_path_for(config: GeneratorConfig, csproj_path: str) -> str:
    return f"{config.templates_dir}/{csproj_path}.template"


def init_manifest(project_root: Path, config: GeneratorConfig, solution: Optional[Path] = None) -> Path:
    """
    Build the registry from the IDE-generated solution at the project root.

    A project is ``asmdef`` when a declaration file with its name exists,
    ``legacy`` otherwise. Returns the registry path.
    """
    root = Path(project_root)
    sln = Path(solution) if solution is not None else find_solution_file(root)
    entries = parse_solution_projects(sln.read_text(encoding="utf-8-sig"))
    if not entries:
        raise SolutionNotFoundError(sln, "No C# projects found in solution")

    files = scan_files(root, config)
    records, warnings = load_module_records(Path(files.root), files.declaration_paths)
    for w in warnings:
        _log.warning(w)
    declared = index_modules(records)

    projects = [
        ProjectEntry(
            name=e.name,
            csproj_path=e.csproj_path,
            template_path=template_path_for(config, e.csproj_path),
            guid=e.guid,
            kind=ProjectKind.ASMDEF if e.name in declared else ProjectKind.LEGACY,
            category=declared[e.name].category if e.name in declared else category_from_name(e.name),
        )
        for e in entries
    ]

    sln_base = sln.name[: -len(".sln")]
    manifest = GeneratorManifest(
        solution_path=sln.name,
        solution_template_path=f"{config.templates_dir}/{sln_base}.sln.template",
        project_type_guid=entries[0].type_guid,
        projects=projects,
    )

    path = root / config.manifest_path
    if save_manifest(path, manifest):
        _log.info("Wrote project registry %s (%d projects)", path, len(projects))
    return path
