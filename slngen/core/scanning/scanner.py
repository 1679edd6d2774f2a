from __future__ import annotations

import logging
import os
import stat
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from slngen.core.config import GeneratorConfig
from slngen.core.paths import join_relative, resolve_real_path

from .models import FileScan, ScanBucket

_log = logging.getLogger("slngen.scan")


@dataclass(frozen=True)
class _Entry:
    name: str
    path: str
    is_dir: bool
    is_symlink: bool


def is_ignored_name(name: str) -> bool:
    # Hidden entries and Unity's "~" suffix convention are never imported.
    return name.startswith(".") or name.endswith("~")


def _list_directory(path: str) -> Optional[List[os.DirEntry]]:
    try:
        with os.scandir(path) as it:
            return list(it)
    except OSError as exc:
        _log.debug("Skipping unreadable directory %s: %s", path, exc)
        return None


def _classify(entry: os.DirEntry) -> Optional[_Entry]:
    """Return the entry as a directory or a regular file, or None for anything else."""
    try:
        symlink = entry.is_symlink()
        if symlink:
            st = os.stat(entry.path)
            if stat.S_ISDIR(st.st_mode):
                return _Entry(entry.name, entry.path, True, True)
            if stat.S_ISREG(st.st_mode):
                return _Entry(entry.name, entry.path, False, True)
            return None
        if entry.is_dir(follow_symlinks=False):
            return _Entry(entry.name, entry.path, True, False)
        if entry.is_file(follow_symlinks=False):
            return _Entry(entry.name, entry.path, False, False)
    except OSError:
        # Broken link or entry removed while listing.
        return None
    return None


class ProjectScanner:
    """
    Parallel filesystem scan of the configured sub-roots.

    The immediate children of every sub-root are listed serially; each child
    directory is then walked by its own worker into a private ScanBucket.
    Buckets are merged on the calling thread once every worker has finished.
    """

    def __init__(self, config: GeneratorConfig):
        self.config = config

    def scan(self, project_root: str | os.PathLike) -> FileScan:
        root = resolve_real_path(project_root)

        root_bucket = ScanBucket()
        targets: List[Tuple[str, str]] = []

        for sub_root in self.config.scan_roots:
            abs_dir = os.path.join(root, sub_root)
            entries = _list_directory(abs_dir)
            if entries is None:
                continue
            for child in self._visit_directory(sub_root, entries, root_bucket):
                targets.append(child)

        buckets = self._walk_all(targets)

        merged = root_bucket
        for bucket in buckets:
            merged.merge(bucket)

        scan = FileScan.from_bucket(root, merged)
        _log.debug(
            "scan root=%s subtrees=%d source_dirs=%d declarations=%d extensions=%d ignored=%d",
            root,
            len(targets),
            len(scan.source_files),
            len(scan.declaration_paths),
            len(scan.extension_paths),
            len(scan.ignored_directories),
        )
        return scan

    # --- internals ---

    def _walk_all(self, targets: List[Tuple[str, str]]) -> List[ScanBucket]:
        if not targets:
            return []
        workers = self.config.max_workers or min(32, (os.cpu_count() or 1) + 4)
        if workers <= 1 or len(targets) == 1:
            return [self._walk_subtree(abs_path, rel) for abs_path, rel in targets]

        with ThreadPoolExecutor(max_workers=min(workers, len(targets))) as executor:
            futures = [executor.submit(self._walk_subtree, abs_path, rel) for abs_path, rel in targets]
            # Submission order keeps the merge deterministic.
            return [f.result() for f in futures]

    def _walk_subtree(self, abs_path: str, rel_path: str) -> ScanBucket:
        bucket = ScanBucket()
        stack: List[Tuple[str, str]] = [(abs_path, rel_path)]
        visited: Set[Tuple[int, int]] = set()

        while stack:
            current_abs, current_rel = stack.pop()
            try:
                st = os.stat(current_abs)
            except OSError:
                continue
            key = (st.st_dev, st.st_ino)
            if key in visited:
                _log.debug("Skipping already visited directory %s (symlink cycle)", current_abs)
                continue
            visited.add(key)

            entries = _list_directory(current_abs)
            if entries is None:
                bucket.unreadable_directories.append(current_rel)
                continue

            stack.extend(self._visit_directory(current_rel, entries, bucket))

        return bucket

    def _visit_directory(
        self,
        rel_dir: str,
        entries: List[os.DirEntry],
        bucket: ScanBucket,
    ) -> List[Tuple[str, str]]:
        """Classify the direct children of one directory; return child directories."""
        cfg = self.config
        children: List[Tuple[str, str]] = []

        for raw in entries:
            entry = _classify(raw)
            if entry is None:
                continue
            rel = join_relative(rel_dir, entry.name)

            if is_ignored_name(entry.name):
                if entry.is_dir:
                    bucket.ignored_directories.append(rel)
                continue

            if entry.is_dir:
                children.append((entry.path, rel))
            elif entry.name.endswith(cfg.source_suffix):
                bucket.add_source(rel_dir, entry.name)
            elif entry.name.endswith(cfg.declaration_suffix):
                bucket.declaration_paths.append(rel)
            elif entry.name.endswith(cfg.extension_suffix):
                bucket.extension_paths.append(rel)

        return children


def scan_files(project_root: str | os.PathLike, config: GeneratorConfig) -> FileScan:
    return ProjectScanner(config).scan(project_root)
