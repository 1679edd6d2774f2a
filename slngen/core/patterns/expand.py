from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Set, Tuple

from .synthesizer import CompilePattern


def _glob(root: Path, pattern: str) -> Set[str]:
    return {p.relative_to(root).as_posix() for p in root.glob(pattern) if p.is_file()}


def expand_patterns(root: Path, patterns: Iterable[CompilePattern]) -> Set[str]:
    """Files under ``root`` selected by the patterns, as POSIX paths relative to ``root``."""
    root = Path(root)
    selected: Set[str] = set()
    for pattern in patterns:
        included = _glob(root, pattern.include)
        for exclude in pattern.exclude:
            included -= _glob(root, exclude)
        selected |= included
    return selected


def find_overlaps(compile_sets: Dict[str, Set[str]]) -> List[Tuple[str, str, List[str]]]:
    """Every pair of projects whose compile sets share a file, with the shared files."""
    names = sorted(compile_sets)
    overlaps: List[Tuple[str, str, List[str]]] = []
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            shared = compile_sets[a] & compile_sets[b]
            if shared:
                overlaps.append((a, b, sorted(shared)))
    return overlaps
