from __future__ import annotations

import os
from typing import Iterable, List


# All scan paths are POSIX-style and relative to the real project root.
# The project root itself is "".


def parent_directory(path: str) -> str:
    idx = path.rfind("/")
    if idx < 0:
        return ""
    return path[:idx]


def path_depth(path: str) -> int:
    return 0 if not path else len(path.split("/"))


def join_relative(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def is_descendant_or_same(child: str, ancestor: str) -> bool:
    return not ancestor or child == ancestor or child.startswith(ancestor + "/")


def dedupe_preserving_order(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def xml_escape(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("'", "&apos;")
    )


def xml_unescape(value: str) -> str:
    return (
        value.replace("&quot;", '"')
        .replace("&apos;", "'")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&amp;", "&")
    )


def resolve_real_path(path: str | os.PathLike) -> str:
    """realpath() that falls back to the absolute path when resolution fails."""
    try:
        return os.path.realpath(path)
    except OSError:
        return os.path.abspath(path)
