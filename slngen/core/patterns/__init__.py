from .expand import expand_patterns, find_overlaps
from .synthesizer import (
    CompilePattern,
    flat_glob,
    flat_patterns,
    recursive_glob,
    recursive_patterns,
    synthesize,
    top_level_roots,
)

__all__ = [
    "CompilePattern",
    "expand_patterns",
    "find_overlaps",
    "flat_glob",
    "flat_patterns",
    "recursive_glob",
    "recursive_patterns",
    "synthesize",
    "top_level_roots",
]
