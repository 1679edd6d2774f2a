from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from slngen.core.config import GeneratorConfig
from slngen.core.ownership.records import (
    ModuleRecord,
    ReferenceExtensionRecord,
    index_guids,
    index_modules,
    load_extension_records,
    load_module_records,
)

from .models import FileScan
from .scanner import scan_files

_log = logging.getLogger("slngen.scan")


@dataclass(frozen=True)
class ScanSnapshot:
    """Everything one run knows about the tree. Built once, read by every later stage."""

    files: FileScan
    modules: Dict[str, ModuleRecord]
    extensions: List[ReferenceExtensionRecord]
    guid_index: Dict[str, str]
    warnings: List[str] = field(default_factory=list)

    @property
    def source_directories(self) -> List[str]:
        return self.files.source_directories

    @property
    def ignored_directories(self) -> List[str]:
        return self.files.ignored_directories


def scan_project(project_root: str | os.PathLike, config: GeneratorConfig) -> ScanSnapshot:
    files = scan_files(project_root, config)
    root = Path(files.root)

    module_records, warnings = load_module_records(root, files.declaration_paths)
    extensions, ext_warnings = load_extension_records(root, files.extension_paths)
    warnings.extend(ext_warnings)

    modules = index_modules(module_records)

    _log.info(
        "Scanned %s: %d source files in %d directories, %d modules, %d extensions",
        files.root,
        files.source_file_count,
        len(files.source_files),
        len(modules),
        len(extensions),
    )
    return ScanSnapshot(
        files=files,
        modules=modules,
        extensions=extensions,
        guid_index=index_guids(modules),
        warnings=warnings,
    )
