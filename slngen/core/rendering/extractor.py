"""
Template extraction.

Turns IDE-generated descriptors into templates: everything the generator
recomputes (compile items, project references, solution project entries and
their build configurations) collapses into a single placeholder, and the
machine-specific project root and editor version become placeholders too.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from slngen.core.config import GeneratorConfig
from slngen.core.errors import SolutionNotFoundError
from slngen.core.registry.manifest import (
    find_solution_file,
    load_manifest,
    parse_solution_projects,
    template_path_for,
)

from .templates import (
    PROJECT_CONFIGS,
    PROJECT_ENTRIES,
    PROJECT_REFERENCES,
    PROJECT_ROOT,
    SOURCE_FOLDERS,
    UNITY_VER,
    detect_newline,
    load_editor_version,
    placeholder,
)
from .writer import write_if_changed

_log = logging.getLogger("slngen.render")


def _split(content: str) -> Tuple[List[str], str, bool]:
    newline = detect_newline(content)
    return content.splitlines(), newline, content.endswith(("\n", "\r"))


def _join(lines: List[str], newline: str, trailing: bool) -> str:
    out = newline.join(lines)
    return out + newline if trailing else out


def templatize_csproj(content: str, project_root: str, editor_version: Optional[str]) -> str:
    lines, newline, trailing = _split(content)
    out: List[str] = []
    sources_emitted = False
    references_emitted = False
    in_reference = False
    in_comment = False

    for raw in lines:
        line = raw.replace(project_root, placeholder(PROJECT_ROOT))
        if editor_version:
            line = line.replace(editor_version, placeholder(UNITY_VER))

        if in_comment:
            if "-->" in line:
                in_comment = False
            continue
        if "<!--" in line:
            in_comment = "-->" not in line
            continue

        if '<None Include="' in line:
            continue

        if in_reference:
            if "</ProjectReference>" in line:
                in_reference = False
            continue
        if '<ProjectReference Include="' in line:
            if not references_emitted:
                out.append(placeholder(PROJECT_REFERENCES))
                references_emitted = True
            in_reference = not line.rstrip().endswith("/>")
            continue

        if '<Compile Include="' in line:
            if not sources_emitted:
                out.append(placeholder(SOURCE_FOLDERS))
                sources_emitted = True
            continue

        out.append(line)

    return _join(out, newline, trailing)


def templatize_sln(content: str, project_type_guid: str) -> str:
    lines, newline, trailing = _split(content)
    out: List[str] = []
    prefix = f'Project("{project_type_guid}") = '
    in_projects = False
    entries_emitted = False
    configs_emitted = False

    for line in lines:
        if line.startswith(prefix):
            if not entries_emitted:
                out.append(placeholder(PROJECT_ENTRIES))
                entries_emitted = True
            in_projects = True
            continue

        if in_projects:
            if line.strip() == "Global":
                in_projects = False
                out.append(line)
            continue

        stripped = line.strip()
        if ".Debug|Any CPU." in line and stripped.startswith("{") and (
            "ActiveCfg" in stripped or "Build.0" in stripped
        ):
            if not configs_emitted:
                out.append(placeholder(PROJECT_CONFIGS))
                configs_emitted = True
            continue

        out.append(line)

    return _join(out, newline, trailing)


def _read_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8")


def extract_templates(project_root: Path, config: GeneratorConfig) -> List[str]:
    """
    Regenerate every template from the descriptors currently on disk.

    Uses the project registry when it exists, else the root solution file.
    Returns the template paths that changed, relative to the project root.
    """
    root = Path(project_root).resolve()
    version = load_editor_version(root)
    root_text = str(root)

    manifest_path = root / config.manifest_path
    if manifest_path.exists():
        manifest = load_manifest(manifest_path)
        sln = root / manifest.solution_path
        if not sln.exists():
            raise SolutionNotFoundError(sln, "Missing solution file")
        targets = [(p.csproj_path, p.template_path) for p in manifest.projects]
        type_guid = manifest.project_type_guid
        sln_template = manifest.solution_template_path
    else:
        sln = find_solution_file(root)
        entries = parse_solution_projects(_read_text(sln))
        if not entries:
            raise SolutionNotFoundError(sln, "No C# projects found in solution")
        targets = [(e.csproj_path, template_path_for(config, e.csproj_path)) for e in entries]
        type_guid = entries[0].type_guid
        sln_template = f"{config.templates_dir}/{sln.name}.template"

    updated: List[str] = []
    for csproj_path, template_path in targets:
        src = root / csproj_path
        if not src.exists():
            _log.warning("Skipping %s: descriptor not found", csproj_path)
            continue
        template = templatize_csproj(_read_text(src), root_text, version)
        if write_if_changed(root / template_path, template):
            updated.append(template_path)

    if write_if_changed(root / sln_template, templatize_sln(_read_text(sln), type_guid)):
        updated.append(sln_template)

    _log.info("Extracted %d templates (%d changed)", len(targets) + 1, len(updated))
    return sorted(updated)
