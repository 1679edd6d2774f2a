"""
Generation pipeline.

    scan -> ownership -> compile patterns -> render -> write -> (variant)

Every descriptor of a run is rendered in memory before the first write, so a
fatal condition never leaves a half-updated descriptor set behind.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from slngen.core.config import GeneratorConfig
from slngen.core.errors import MissingDeclarationError, NoModulesFoundError
from slngen.core.observability.metrics import RunMetrics
from slngen.core.ownership.records import ModuleCategory, ModuleRecord
from slngen.core.ownership.resolver import (
    LEGACY_DEPENDENCIES,
    OwnershipMap,
    SourceAssignment,
    assign_sources,
    build_ownership_map,
    resolve_reference,
)
from slngen.core.paths import resolve_real_path
from slngen.core.patterns.synthesizer import CompilePattern, synthesize
from slngen.core.registry.discovery import discover_manifest
from slngen.core.registry.manifest import load_manifest
from slngen.core.registry.models import GeneratorManifest, ProjectEntry, ProjectKind
from slngen.core.rendering.blocks import (
    render_compile_block,
    render_reference_block,
    render_solution_configs,
    render_solution_entries,
)
from slngen.core.rendering.templates import (
    PROJECT_CONFIGS,
    PROJECT_ENTRIES,
    PROJECT_REFERENCES,
    PROJECT_ROOT,
    SOURCE_FOLDERS,
    UNITY_VER,
    TemplateRenderer,
    detect_newline,
    load_editor_version,
)
from slngen.core.rendering.writer import write_if_changed
from slngen.core.scanning.snapshot import ScanSnapshot, scan_project
from slngen.core.variants.builder import prepare_variant
from slngen.core.variants.models import VariantResult, VariantSpec

_log = logging.getLogger("slngen.generator")


@dataclass(frozen=True)
class GenerateOptions:
    project_root: Path
    verbose: bool = False
    manifest_path: Optional[str] = None
    variant: Optional[VariantSpec] = None


@dataclass
class GenerationStats:
    source_count_by_project: Dict[str, int] = field(default_factory=dict)
    pattern_count_by_project: Dict[str, int] = field(default_factory=dict)
    unresolved_directory_count: int = 0
    unresolved_source_count: int = 0
    unowned_source_count: int = 0


@dataclass
class GenerateResult:
    updated_files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: GenerationStats = field(default_factory=GenerationStats)
    patterns: Dict[str, List[CompilePattern]] = field(default_factory=dict)
    variant: Optional[VariantResult] = None


@dataclass(frozen=True)
class GenerationPlan:
    root: Path
    snapshot: ScanSnapshot
    manifest: GeneratorManifest
    ownership: OwnershipMap
    assignment: SourceAssignment


class SolutionGenerator:
    def __init__(self, config: Optional[GeneratorConfig] = None, metrics: Optional[RunMetrics] = None):
        self.config = config or GeneratorConfig()
        self.metrics = metrics or RunMetrics()
        self.renderer = TemplateRenderer()

    # --- project set ---

    def load_project_set(
        self, root: Path, snapshot: ScanSnapshot, manifest_path: Optional[str] = None
    ) -> GeneratorManifest:
        """Registry when requested or present, else the template directory."""
        if manifest_path is not None:
            return load_manifest(root / manifest_path)
        default = root / self.config.manifest_path
        if default.exists():
            return load_manifest(default)
        return discover_manifest(root, self.config, snapshot.modules)

    def _check_declarations(self, manifest: GeneratorManifest, snapshot: ScanSnapshot) -> None:
        for p in manifest.projects:
            if p.kind == ProjectKind.ASMDEF and p.name not in snapshot.modules:
                raise MissingDeclarationError(p.name)

    # --- references ---

    def project_references(
        self,
        project: ProjectEntry,
        snapshot: ScanSnapshot,
        projects_by_name: Mapping[str, ProjectEntry],
    ) -> List[str]:
        if project.kind == ProjectKind.ASMDEF:
            module = snapshot.modules[project.name]
            resolved = [resolve_reference(t, snapshot.modules, snapshot.guid_index) for t in module.references]
            return [r for r in resolved if r is not None and r in projects_by_name]

        # Predefined projects see the auto-referenced modules and the predefined projects before them.
        editor_side = "Editor" in project.name
        refs = [n for n in LEGACY_DEPENDENCIES.get(project.name, ()) if n in projects_by_name]
        for name in sorted(snapshot.modules):
            module = snapshot.modules[name]
            if name not in projects_by_name or not module.auto_referenced:
                continue
            if module.category == ModuleCategory.TEST:
                continue
            if module.category == ModuleCategory.EDITOR and not editor_side:
                continue
            refs.append(name)
        return refs

    # --- pipeline ---

    def _scan(self, root: Path) -> ScanSnapshot:
        started = time.perf_counter()
        snapshot = scan_project(root, self.config)
        self.metrics.scan_seconds.set(time.perf_counter() - started)
        self.metrics.source_directories.set(len(snapshot.files.source_files))
        self.metrics.source_files.set(snapshot.files.source_file_count)
        self.metrics.modules.set(len(snapshot.modules))
        return snapshot

    def _warn_soft_conditions(self, plan: GenerationPlan, result: GenerateResult, verbose: bool) -> None:
        snapshot, assignment = plan.snapshot, plan.assignment
        known = set(plan.manifest.project_names())
        result.warnings.extend(snapshot.warnings)
        result.warnings.extend(plan.ownership.warnings)

        orphans = sorted(n for n in snapshot.modules if n not in known)
        if orphans:
            result.warnings.append(f"Modules without a descriptor template: {', '.join(orphans)}")

        stats = result.stats
        stats.unresolved_directory_count = len(assignment.unresolved)
        stats.unresolved_source_count = sum(len(snapshot.files.source_files[d]) for d in assignment.unresolved)
        stats.unowned_source_count = sum(
            len(snapshot.files.source_files[d])
            for name in orphans
            for d in assignment.directories_of(name)
        )
        self.metrics.unresolved_directories.set(stats.unresolved_directory_count)

        if assignment.unresolved:
            result.warnings.append(
                f"Unresolved source directories: {len(assignment.unresolved)} "
                f"({stats.unresolved_source_count} files)"
            )
            if verbose:
                sample = assignment.unresolved[: self.config.unresolved_sample_size]
                result.warnings.extend(f"Unresolved: {d}" for d in sample)

    def template_values(self, root: Path) -> Dict[str, str]:
        values: Dict[str, str] = {PROJECT_ROOT: str(root)}
        version = load_editor_version(root)
        if version is not None:
            values[UNITY_VER] = version
        return values

    def plan(self, project_root: Path, manifest_path: Optional[str] = None) -> GenerationPlan:
        """Everything up to, but not including, rendering. Reads the filesystem only."""
        root = Path(resolve_real_path(project_root))
        snapshot = self._scan(root)
        manifest = self.load_project_set(root, snapshot, manifest_path)
        if not manifest.projects and not snapshot.modules:
            raise NoModulesFoundError(root)
        self._check_declarations(manifest, snapshot)

        ownership = build_ownership_map(snapshot.modules, snapshot.extensions, snapshot.guid_index)
        assignment = assign_sources(snapshot, ownership, self.config, known=set(manifest.project_names()))
        return GenerationPlan(root, snapshot, manifest, ownership, assignment)

    def compile_patterns(self, plan: GenerationPlan) -> Dict[str, List[CompilePattern]]:
        return {
            p.name: synthesize(
                p.name,
                p.kind,
                plan.assignment.directories_of(p.name),
                plan.ownership,
                plan.snapshot.ignored_directories,
                self.config,
            )
            for p in plan.manifest.projects
        }

    def render(
        self,
        plan: GenerationPlan,
        patterns: Mapping[str, List[CompilePattern]],
        values: Mapping[str, str],
    ) -> List[Tuple[str, str]]:
        """(relative path, content) for every descriptor and the solution. Writes nothing."""
        manifest = plan.manifest
        projects_by_name = manifest.by_name()
        rendered: List[Tuple[str, str]] = []

        for project in manifest.projects:
            template_path = plan.root / project.template_path
            source = self.renderer.load(template_path)
            newline = detect_newline(source)
            references = self.project_references(project, plan.snapshot, projects_by_name)
            text = self.renderer.render_source(
                source,
                {
                    **values,
                    SOURCE_FOLDERS: render_compile_block(patterns[project.name], newline),
                    PROJECT_REFERENCES: render_reference_block(project.name, references, projects_by_name, newline),
                },
                template_path,
            )
            rendered.append((project.csproj_path, text))

        sln_template = plan.root / manifest.solution_template_path
        source = self.renderer.load(sln_template)
        newline = detect_newline(source)
        text = self.renderer.render_source(
            source,
            {
                **values,
                PROJECT_ENTRIES: render_solution_entries(manifest.projects, manifest.project_type_guid, newline),
                PROJECT_CONFIGS: render_solution_configs(manifest.projects, newline),
            },
            sln_template,
        )
        rendered.append((manifest.solution_path, text))
        return rendered

    def generate(self, options: GenerateOptions) -> GenerateResult:
        result = GenerateResult()
        plan = self.plan(options.project_root, options.manifest_path)
        self._warn_soft_conditions(plan, result, options.verbose)

        result.patterns = self.compile_patterns(plan)
        files = plan.snapshot.files
        for p in plan.manifest.projects:
            result.stats.pattern_count_by_project[p.name] = len(result.patterns[p.name])
            result.stats.source_count_by_project[p.name] = sum(
                len(files.source_files[d]) for d in plan.assignment.directories_of(p.name)
            )

        values = self.template_values(plan.root)
        rendered = self.render(plan, result.patterns, values)

        for rel_path, text in rendered:
            if write_if_changed(plan.root / rel_path, text):
                result.updated_files.append(rel_path)
        result.updated_files.sort()
        self.metrics.record_written("descriptor", len(result.updated_files))

        _log.info(
            "Generated %d projects under %s: %d files updated, %d warnings",
            len(plan.manifest.projects),
            plan.root,
            len(result.updated_files),
            len(result.warnings),
        )

        if options.variant is not None:
            result.variant = self.prepare_variant(
                plan.root, plan.manifest, options.variant, plan.snapshot.modules, values
            )
        return result

    def prepare_variant(
        self,
        root: Path,
        manifest: GeneratorManifest,
        spec: VariantSpec,
        modules: Optional[Mapping[str, ModuleRecord]] = None,
        values: Optional[Mapping[str, str]] = None,
    ) -> VariantResult:
        variant = prepare_variant(
            root,
            manifest,
            spec,
            self.config,
            modules=modules,
            renderer=self.renderer,
            values=values,
        )
        self.metrics.record_variant(len(variant.generated), len(variant.skipped))
        self.metrics.record_written("variant", len(variant.generated) + int(variant.solution_updated))
        return variant

    def run_variant(self, project_root: Path, spec: VariantSpec, manifest_path: Optional[str] = None) -> VariantResult:
        """Variant preparation on its own, over descriptors generated by an earlier run."""
        root = Path(resolve_real_path(project_root))
        snapshot = self._scan(root)
        manifest = self.load_project_set(root, snapshot, manifest_path)
        return self.prepare_variant(root, manifest, spec, snapshot.modules, self.template_values(root))
