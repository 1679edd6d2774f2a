from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from slngen.core.config import apply_overrides, load_config
from slngen.core.errors import GeneratorError
from slngen.core.generator import GenerateOptions, GenerateResult, SolutionGenerator
from slngen.core.observability.metrics import RunMetrics
from slngen.core.patterns.expand import expand_patterns, find_overlaps
from slngen.core.registry.manifest import init_manifest
from slngen.core.rendering.extractor import extract_templates
from slngen.core.variants.models import BuildConfiguration, BuildPlatform, VariantSpec

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_CHECK_FAILED = 3

COMMANDS = ("generate", "prepare-variant", "extract-templates", "init-manifest", "check")


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("project_root", nargs="?", default=".", help="Unity project root (default: current directory)")
    p.add_argument("--template-root", default=None, help="Generator data directory, relative to the project root")
    p.add_argument("--config-file", default=None, help="Override file (YAML or JSON); default <root>/slngen.yaml")
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress and list unresolved directories")
    p.add_argument("--log-level", default=None, help="Logging level (default: $SLNGEN_LOG_LEVEL or WARNING)")


def _add_variant(p: argparse.ArgumentParser, required: bool) -> None:
    p.add_argument("--platform", choices=[b.value for b in BuildPlatform], required=required, default=None)
    p.add_argument(
        "--config",
        dest="configuration",
        choices=[c.value for c in BuildConfiguration],
        default=None,
        help="Build configuration (default: prod, or dev with --debug)",
    )
    p.add_argument("--debug", action="store_true", help="Keep DEBUG/TRACE defines (same as --config dev)")


def _add_scan(p: argparse.ArgumentParser) -> None:
    p.add_argument("--pattern-mode", choices=["flat", "recursive"], default=None)
    p.add_argument("--workers", type=int, default=None, help="Scan worker threads")
    p.add_argument("--manifest", default=None, help="Project registry path; must exist when given")
    p.add_argument("--metrics-file", default=None, help="Write Prometheus textfile metrics here")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="slngen", description="Regenerate Unity .csproj/.sln files without the editor.")
    sub = ap.add_subparsers(dest="command")

    gen = sub.add_parser("generate", help="Regenerate descriptors (default command)")
    _add_common(gen)
    _add_scan(gen)
    _add_variant(gen, required=False)

    var = sub.add_parser("prepare-variant", help="Derive platform/configuration copies of generated descriptors")
    _add_common(var)
    _add_scan(var)
    _add_variant(var, required=True)

    ext = sub.add_parser("extract-templates", help="Turn the IDE-generated descriptors into templates")
    _add_common(ext)

    init = sub.add_parser("init-manifest", help="Write the project registry from the root .sln")
    _add_common(init)

    chk = sub.add_parser("check", help="Fail when two projects would compile the same file")
    _add_common(chk)
    _add_scan(chk)

    return ap


def _configure_logging(args: argparse.Namespace) -> None:
    level_name = args.log_level or os.getenv("SLNGEN_LOG_LEVEL", "").strip() or None
    if level_name is None:
        level_name = "INFO" if args.verbose else "WARNING"
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _variant_spec(args: argparse.Namespace) -> Optional[VariantSpec]:
    if not args.platform:
        return None
    configuration = args.configuration or ("dev" if args.debug else "prod")
    return VariantSpec(platform=BuildPlatform(args.platform), configuration=BuildConfiguration(configuration))


def _print_summary(result: GenerateResult) -> None:
    for path in result.updated_files:
        print(f"updated: {path}")
    for name in sorted(result.patterns):
        print(
            f"{name}: {result.stats.source_count_by_project.get(name, 0)} files, "
            f"{len(result.patterns[name])} patterns"
        )


def _cmd_generate(args: argparse.Namespace, generator: SolutionGenerator, root: Path) -> int:
    spec = _variant_spec(args)
    result = generator.generate(
        GenerateOptions(project_root=root, verbose=args.verbose, manifest_path=args.manifest, variant=spec)
    )
    for w in result.warnings:
        print(f"warning: {w}", file=sys.stderr)

    if result.variant is None:
        _print_summary(result)
        return EXIT_OK

    # stdout carries only the solution path so build scripts can capture it.
    v = result.variant
    print(f"variant {v.suffix}: {len(v.generated)} generated, {len(v.skipped)} skipped", file=sys.stderr)
    print(root / v.solution_path)
    return EXIT_OK


def _cmd_prepare_variant(args: argparse.Namespace, generator: SolutionGenerator, root: Path) -> int:
    v = generator.run_variant(root, _variant_spec(args), manifest_path=args.manifest)
    for path in v.generated:
        print(f"generated: {path}")
    for path in v.skipped:
        print(f"skipped: {path}")
    print(f"solution: {v.solution_path}")
    return EXIT_OK


def _cmd_check(generator: SolutionGenerator, root: Path, manifest_path: Optional[str]) -> int:
    plan = generator.plan(root, manifest_path)
    patterns = generator.compile_patterns(plan)
    compile_sets = {name: expand_patterns(plan.root, p) for name, p in patterns.items()}
    overlaps = find_overlaps(compile_sets)
    for a, b, shared in overlaps:
        print(f"overlap: {a} <-> {b}: {len(shared)} files (e.g. {shared[0]})", file=sys.stderr)
    if overlaps:
        return EXIT_CHECK_FAILED
    print(f"OK: {len(compile_sets)} compile sets are disjoint")
    return EXIT_OK


def _normalize_argv(argv: Sequence[str]) -> List[str]:
    argv = list(argv)
    if argv and (argv[0] in COMMANDS or argv[0] in ("-h", "--help")):
        return argv
    return ["generate", *argv]


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    _configure_logging(args)

    root = Path(args.project_root).resolve()
    if not root.is_dir():
        print(f"error: not a directory: {root}", file=sys.stderr)
        return EXIT_USAGE

    config = load_config(root, Path(args.config_file) if args.config_file else None)
    config = apply_overrides(
        config,
        template_root=args.template_root,
        pattern_mode=getattr(args, "pattern_mode", None),
        max_workers=getattr(args, "workers", None),
    )
    metrics = RunMetrics()
    generator = SolutionGenerator(config, metrics)

    try:
        if args.command == "generate":
            rc = _cmd_generate(args, generator, root)
        elif args.command == "prepare-variant":
            rc = _cmd_prepare_variant(args, generator, root)
        elif args.command == "extract-templates":
            for path in extract_templates(root, config):
                print(f"updated: {path}")
            rc = EXIT_OK
        elif args.command == "init-manifest":
            print(f"Wrote: {init_manifest(root, config)}")
            rc = EXIT_OK
        else:
            rc = _cmd_check(generator, root, args.manifest)

        metrics_file = getattr(args, "metrics_file", None)
        if metrics_file:
            metrics.write_textfile(Path(metrics_file))
    except GeneratorError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
