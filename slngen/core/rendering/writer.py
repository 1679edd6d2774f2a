from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

_log = logging.getLogger("slngen.render")


def atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def write_if_changed(path: Union[str, Path], content: Union[str, bytes]) -> bool:
    """
    Write ``content`` to ``path`` unless the file already holds exactly these bytes.

    Returns True when the file was (re)written.
    """
    path = Path(path)
    data = content.encode("utf-8") if isinstance(content, str) else content

    try:
        if path.read_bytes() == data:
            _log.debug("Unchanged: %s", path)
            return False
    except FileNotFoundError:
        pass

    atomic_write(path, data)
    _log.debug("Wrote %s (%d bytes)", path, len(data))
    return True
