from .records import (
    ModuleCategory,
    ModuleRecord,
    ReferenceExtensionRecord,
    index_guids,
    index_modules,
    infer_category,
    load_extension_records,
    load_module_records,
    read_meta_guid,
)
from .resolver import (
    LEGACY_DEPENDENCIES,
    DirectoryResolver,
    OwnershipMap,
    SourceAssignment,
    assign_directories,
    assign_sources,
    build_ownership_map,
    legacy_module_for,
    resolve_reference,
)

__all__ = [
    "ModuleCategory",
    "ModuleRecord",
    "ReferenceExtensionRecord",
    "index_guids",
    "index_modules",
    "infer_category",
    "load_extension_records",
    "load_module_records",
    "read_meta_guid",
    "LEGACY_DEPENDENCIES",
    "DirectoryResolver",
    "OwnershipMap",
    "SourceAssignment",
    "assign_directories",
    "assign_sources",
    "build_ownership_map",
    "legacy_module_for",
    "resolve_reference",
]
