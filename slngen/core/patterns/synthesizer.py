from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from slngen.core.config import GeneratorConfig
from slngen.core.ownership.resolver import OwnershipMap
from slngen.core.paths import dedupe_preserving_order, is_descendant_or_same, path_depth
from slngen.core.registry.models import ProjectKind


@dataclass(frozen=True)
class CompilePattern:
    include: str
    exclude: Tuple[str, ...] = ()


def flat_glob(directory: str, suffix: str) -> str:
    return f"{directory}/*{suffix}" if directory else f"*{suffix}"


def recursive_glob(directory: str, suffix: str) -> str:
    return f"{directory}/**/*{suffix}" if directory else f"**/*{suffix}"


def flat_patterns(directories: Iterable[str], suffix: str) -> List[CompilePattern]:
    """One non-recursive pattern per distinct directory, sorted by include."""
    patterns = {flat_glob(d, suffix) for d in directories}
    return [CompilePattern(include=p) for p in sorted(patterns)]


def _covered_by(root: str, ancestor: str, foreign: Sequence[str]) -> bool:
    if not is_descendant_or_same(root, ancestor):
        return False
    # A foreign root between the two cuts the ancestor's recursive include.
    return not any(
        f != ancestor and is_descendant_or_same(f, ancestor) and is_descendant_or_same(root, f) for f in foreign
    )


def top_level_roots(roots: Iterable[str], foreign: Sequence[str] = ()) -> List[str]:
    """
    Drop every root already covered by the recursive include of another root.

    A root nested under another root of the same set is covered unless a
    ``foreign`` root sits between them; such a root keeps its own include.
    """
    ordered = sorted(set(roots), key=lambda r: (path_depth(r), r))
    kept: List[str] = []
    for root in ordered:
        if any(_covered_by(root, k, foreign) for k in kept):
            continue
        kept.append(root)
    return sorted(kept)


def recursive_patterns(
    module: str,
    ownership: OwnershipMap,
    ignored_directories: Sequence[str],
    suffix: str,
    directories: Sequence[str] = (),
) -> List[CompilePattern]:
    """
    One recursive include per top-level ownership root of ``module``.

    Each include excludes the roots of every other module and every ignored
    directory inside it. A module that owns no root falls back to flat
    patterns over ``directories``.
    """
    own_roots = ownership.roots_of(module)
    if not own_roots:
        return flat_patterns(directories, suffix)

    foreign = ownership.foreign_roots(module)
    patterns: List[CompilePattern] = []

    for root in top_level_roots(own_roots, foreign):
        excludes = [recursive_glob(d, suffix) for d in foreign if is_descendant_or_same(d, root)]
        excludes.extend(recursive_glob(d, suffix) for d in ignored_directories if is_descendant_or_same(d, root))
        patterns.append(
            CompilePattern(include=recursive_glob(root, suffix), exclude=tuple(dedupe_preserving_order(excludes)))
        )

    return sorted(patterns, key=lambda p: p.include)


def synthesize(
    name: str,
    kind: ProjectKind,
    directories: Sequence[str],
    ownership: OwnershipMap,
    ignored_directories: Sequence[str],
    config: GeneratorConfig,
) -> List[CompilePattern]:
    suffix = config.source_suffix
    if kind == ProjectKind.LEGACY or config.pattern_mode == "flat":
        return flat_patterns(directories, suffix)
    return recursive_patterns(name, ownership, ignored_directories, suffix, directories)
