from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class ScanBucket:
    """Private result buffer of one scan worker. Never shared while filling."""

    source_files: Dict[str, List[str]] = field(default_factory=dict)
    declaration_paths: List[str] = field(default_factory=list)
    extension_paths: List[str] = field(default_factory=list)
    ignored_directories: List[str] = field(default_factory=list)
    unreadable_directories: List[str] = field(default_factory=list)

    def add_source(self, directory: str, name: str) -> None:
        self.source_files.setdefault(directory, []).append(name)

    def merge(self, other: "ScanBucket") -> None:
        for directory, names in other.source_files.items():
            self.source_files.setdefault(directory, []).extend(names)
        self.declaration_paths.extend(other.declaration_paths)
        self.extension_paths.extend(other.extension_paths)
        self.ignored_directories.extend(other.ignored_directories)
        self.unreadable_directories.extend(other.unreadable_directories)


@dataclass(frozen=True)
class FileScan:
    root: str
    source_files: Dict[str, List[str]]
    declaration_paths: List[str]
    extension_paths: List[str]
    ignored_directories: List[str]
    unreadable_directories: List[str] = field(default_factory=list)

    @property
    def source_directories(self) -> List[str]:
        return sorted(self.source_files)

    @property
    def source_file_count(self) -> int:
        return sum(len(v) for v in self.source_files.values())

    @classmethod
    def from_bucket(cls, root: str, bucket: ScanBucket) -> "FileScan":
        return cls(
            root=root,
            source_files={d: sorted(bucket.source_files[d]) for d in sorted(bucket.source_files)},
            declaration_paths=sorted(bucket.declaration_paths),
            extension_paths=sorted(bucket.extension_paths),
            ignored_directories=sorted(set(bucket.ignored_directories)),
            unreadable_directories=sorted(set(bucket.unreadable_directories)),
        )
