from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from slngen.core.config import GeneratorConfig
from slngen.core.ownership.records import ModuleCategory, ModuleRecord
from slngen.core.paths import xml_escape
from slngen.core.registry.models import GeneratorManifest, ProjectEntry
from slngen.core.rendering.blocks import render_solution_configs, render_solution_entries
from slngen.core.rendering.templates import (
    PROJECT_CONFIGS,
    PROJECT_ENTRIES,
    TemplateRenderer,
    detect_newline,
)
from slngen.core.rendering.writer import atomic_write, write_if_changed

from .defines import rewrite_reference_suffix, strip_editor_defines, strip_references, swap_platform_defines
from .models import BuildPlatform, VariantResult, VariantSpec

_log = logging.getLogger("slngen.variants")

PROPS_FILE_NAME = "Variant.props"


def variant_csproj_path(csproj_path: str, suffix: str) -> str:
    base = csproj_path[: -len(".csproj")] if csproj_path.endswith(".csproj") else csproj_path
    return f"{base}{suffix}.csproj"


def variant_solution_path(solution_path: str, spec: VariantSpec) -> str:
    base = solution_path[: -len(".sln")] if solution_path.endswith(".sln") else solution_path
    return f"{base}{spec.suffix}.sln"


def _platform_allowed(module: Optional[ModuleRecord], platform: BuildPlatform) -> bool:
    if module is None:
        return True
    if module.include_platforms and platform.unity_name not in module.include_platforms:
        return False
    return platform.unity_name not in module.exclude_platforms


def _category(project: ProjectEntry, module: Optional[ModuleRecord]) -> ModuleCategory:
    return module.category if module is not None else project.category


def select_variant_projects(
    projects: Sequence[ProjectEntry],
    spec: VariantSpec,
    modules: Optional[Mapping[str, ModuleRecord]] = None,
) -> List[ProjectEntry]:
    """
    Projects that belong to the variant.

    The editor configuration keeps every project. Other configurations keep
    runtime projects whose module does not rule the target platform out. The
    category declared by a module wins over the one stored in the registry.
    """
    if spec.includes_all_projects:
        return list(projects)
    modules = modules or {}
    kept = []
    for p in projects:
        module = modules.get(p.name)
        if _category(p, module) == ModuleCategory.RUNTIME and _platform_allowed(module, spec.platform):
            kept.append(p)
    return kept


def is_fresh(source: Path, copy: Path) -> bool:
    """A copy is fresh when it exists and is not older than its source."""
    try:
        return os.stat(copy).st_mtime >= os.stat(source).st_mtime
    except FileNotFoundError:
        return False


def render_props(spec: VariantSpec, newline: str = "\n") -> str:
    tokens = [spec.platform.define]
    if spec.keeps_debug_defines:
        tokens += ["DEBUG", "TRACE"]
    if spec.keeps_editor_defines:
        tokens.append("UNITY_EDITOR")
    defines = ";".join(tokens)
    obj_dir = xml_escape(f"Temp/obj/{spec.name}/")
    bin_dir = xml_escape(f"Temp/bin/{spec.name}/")
    lines = [
        '<?xml version="1.0" encoding="utf-8"?>',
        '<Project ToolsVersion="4.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">',
        "  <PropertyGroup>",
        f"    <SlnGenVariant>{spec.name}</SlnGenVariant>",
        f"    <SlnGenVariantDefines>{defines}</SlnGenVariantDefines>",
        f"    <DefineConstants>$(DefineConstants);{spec.platform.define}</DefineConstants>",
        f"    <BaseIntermediateOutputPath>{obj_dir}</BaseIntermediateOutputPath>",
        f"    <IntermediateOutputPath>{obj_dir}$(Configuration)/</IntermediateOutputPath>",
        f"    <OutputPath>{bin_dir}</OutputPath>",
        "  </PropertyGroup>",
        "</Project>",
    ]
    return newline.join(lines) + newline


def insert_props_import(text: str, props_path: str) -> str:
    """
    Import the variant properties file so they override the descriptor's own.

    The import lands before the C# targets import, or before ``</Project>``
    when the descriptor has none.
    """
    newline = detect_newline(text)
    line = f'  <Import Project="{xml_escape(props_path)}" />'
    if line in text:
        return text

    lines = text.split(newline)
    anchor = next((i for i, l in enumerate(lines) if "Microsoft.CSharp.targets" in l and "<Import" in l), None)
    if anchor is None:
        anchor = next((i for i in range(len(lines) - 1, -1, -1) if lines[i].strip() == "</Project>"), None)
    if anchor is None:
        return text
    lines.insert(anchor, line)
    return newline.join(lines)


def rewrite_descriptor(text: str, spec: VariantSpec, stripped_names: Sequence[str], props_path: str) -> str:
    if not spec.keeps_editor_defines:
        text = strip_editor_defines(text, spec.keeps_debug_defines)
    text = swap_platform_defines(text, spec.platform)
    text = strip_references(text, stripped_names)
    text = rewrite_reference_suffix(text, spec.suffix)
    return insert_props_import(text, props_path)


def prepare_variant(
    project_root: Path,
    manifest: GeneratorManifest,
    spec: VariantSpec,
    config: GeneratorConfig,
    modules: Optional[Mapping[str, ModuleRecord]] = None,
    renderer: Optional[TemplateRenderer] = None,
    values: Optional[Mapping[str, str]] = None,
) -> VariantResult:
    """
    Derive the variant descriptor set from the generated base descriptors.

    A variant copy is rewritten only when it is missing or older than its
    base descriptor; the mtime comparison is the whole cache.
    """
    root = Path(project_root)
    result = VariantResult(suffix=spec.suffix)

    selected = select_variant_projects(manifest.projects, spec, modules)
    surviving = [p for p in selected if (root / p.csproj_path).exists()]
    for p in selected:
        if p not in surviving:
            _log.debug("Variant %s: no base descriptor for %s", spec.name, p.csproj_path)
    surviving_names = {p.name for p in surviving}
    stripped = [p.name for p in manifest.projects if p.name not in surviving_names]

    props_rel = f"{config.template_root}/variants/{spec.name}/{PROPS_FILE_NAME}"
    if write_if_changed(root / props_rel, render_props(spec)):
        _log.info("Wrote %s", props_rel)
    result.props_path = props_rel

    variant_projects: List[ProjectEntry] = []
    for p in surviving:
        src = root / p.csproj_path
        dst_rel = variant_csproj_path(p.csproj_path, spec.suffix)
        dst = root / dst_rel
        variant_projects.append(p.model_copy(update={"csproj_path": dst_rel}))

        if is_fresh(src, dst):
            result.skipped.append(dst_rel)
            continue

        text = src.read_bytes().decode("utf-8")
        atomic_write(dst, rewrite_descriptor(text, spec, stripped, props_rel).encode("utf-8"))
        result.generated.append(dst_rel)

    sln_rel = variant_solution_path(manifest.solution_path, spec)
    renderer = renderer or TemplateRenderer()
    sln_template = root / manifest.solution_template_path
    source = renderer.load(sln_template)
    newline = detect_newline(source)
    rendered = renderer.render_source(
        source,
        {
            **(values or {}),
            PROJECT_ENTRIES: render_solution_entries(variant_projects, manifest.project_type_guid, newline),
            PROJECT_CONFIGS: render_solution_configs(variant_projects, newline),
        },
        sln_template,
    )
    result.solution_updated = write_if_changed(root / sln_rel, rendered)
    result.solution_path = sln_rel

    result.generated.sort()
    result.skipped.sort()
    _log.info(
        "Variant %s: %d generated, %d skipped, %d projects stripped",
        spec.name,
        len(result.generated),
        len(result.skipped),
        len(stripped),
    )
    return result
