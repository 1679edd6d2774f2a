from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Collection, Dict, Iterable, List, Mapping, Optional, Sequence

from slngen.core.config import GeneratorConfig
from slngen.core.paths import parent_directory

from .records import GUID_LENGTH, ModuleRecord, ReferenceExtensionRecord

if TYPE_CHECKING:
    from slngen.core.scanning.snapshot import ScanSnapshot

_log = logging.getLogger("slngen.ownership")

GUID_REFERENCE_PREFIX = "GUID:"

LEGACY_RUNTIME = "Assembly-CSharp"
LEGACY_RUNTIME_FIRSTPASS = "Assembly-CSharp-firstpass"
LEGACY_EDITOR = "Assembly-CSharp-Editor"
LEGACY_EDITOR_FIRSTPASS = "Assembly-CSharp-Editor-firstpass"

# Predefined projects each predefined project compiles against.
LEGACY_DEPENDENCIES = {
    LEGACY_RUNTIME_FIRSTPASS: (),
    LEGACY_RUNTIME: (LEGACY_RUNTIME_FIRSTPASS,),
    LEGACY_EDITOR_FIRSTPASS: (LEGACY_RUNTIME_FIRSTPASS,),
    LEGACY_EDITOR: (LEGACY_RUNTIME_FIRSTPASS, LEGACY_RUNTIME, LEGACY_EDITOR_FIRSTPASS),
}


def resolve_reference(
    token: str,
    modules: Mapping[str, object],
    guid_index: Mapping[str, str],
) -> Optional[str]:
    """
    Resolve a raw reference token to a module name.

    Accepted forms, tried in order: the exact module name, ``GUID:<guid>``,
    and a bare 32-character GUID. GUID lookups are case-insensitive.
    """
    if token in modules:
        return token
    if token.startswith(GUID_REFERENCE_PREFIX):
        return guid_index.get(token[len(GUID_REFERENCE_PREFIX):].lower())
    if len(token) == GUID_LENGTH:
        return guid_index.get(token.lower())
    return None

@dataclass(frozen=True)
class OwnershipMap:
    """directory -> module name for every ownership root. Read-only once built."""

    roots: Dict[str, str]
    warnings: List[str] = field(default_factory=list)

    def get(self, directory: str) -> Optional[str]:
        return self.roots.get(directory)

    def roots_of(self, module: str) -> List[str]:
        return sorted(d for d, owner in self.roots.items() if owner == module)

    def foreign_roots(self, module: str) -> List[str]:
        return sorted(d for d, owner in self.roots.items() if owner != module)

def build_ownership_map(
    modules: Mapping[str, ModuleRecord],
    extensions: Sequence[ReferenceExtensionRecord],
    guid_index: Mapping[str, str],
) -> OwnershipMap:
    roots: Dict[str, str] = {}
    warnings: List[str] = []

    for name in sorted(modules):
        directory = modules[name].directory
        current = roots.get(directory)
        if current is not None:
            warnings.append(
                f"{modules[name].declaration_path} shares '{directory}' with the declaration of "
                f"'{current}'; '{current}' keeps the directory and '{name}' owns no sources"
            )
            continue
        roots[directory] = name
    declared = set(roots)

    for ext in extensions:
        target = resolve_reference(ext.reference, modules, guid_index)
        if target is None:
            _log.debug("Dropping reference extension %s: cannot resolve %r", ext.path, ext.reference)
            continue
        if ext.directory in declared:
            warnings.append(
                f"{ext.path} shares its directory with the declaration of "
                f"'{roots[ext.directory]}'; the declaration wins"
            )
            continue
        current = roots.get(ext.directory)
        if current is not None and current != target:
            warnings.append(
                f"{ext.path} binds '{ext.directory}' to '{target}' but it is already bound to '{current}'"
            )
            continue
        roots[ext.directory] = target

    return OwnershipMap(roots=roots, warnings=warnings)

class DirectoryResolver:
    """
    Nearest-ancestor lookup over an OwnershipMap.

    Every directory visited by a walk is memoized with the walk's final answer,
    so siblings under a common ancestor resolve in O(1) after the first lookup.
    Not safe to share between threads.
    """

    def __init__(self, ownership: OwnershipMap):
        self.ownership = ownership
        self._cache: Dict[str, Optional[str]] = {}

    def owner_of(self, directory: str) -> Optional[str]:
        visited: List[str] = []
        current = directory
        result: Optional[str] = None

        while True:
            if current in self._cache:
                result = self._cache[current]
                break
            visited.append(current)
            hit = self.ownership.get(current)
            if hit is not None:
                result = hit
                break
            if not current:
                break
            current = parent_directory(current)

        for d in visited:
            self._cache[d] = result
        return result

    @property
    def cache_size(self) -> int:
        return len(self._cache)

def legacy_module_for(directory: str, config: GeneratorConfig) -> Optional[str]:
    """Predefined project for a directory with no owning module, or None outside the legacy root."""
    parts = directory.split("/") if directory else []
    if not parts or parts[0] != config.legacy_root:
        return None

    is_editor = config.editor_directory in parts
    is_first_pass = len(parts) > 1 and parts[1] in config.first_pass_directories

    if is_editor:
        return LEGACY_EDITOR_FIRSTPASS if is_first_pass else LEGACY_EDITOR
    return LEGACY_RUNTIME_FIRSTPASS if is_first_pass else LEGACY_RUNTIME

@dataclass
class SourceAssignment:
    directories_by_module: Dict[str, List[str]] = field(default_factory=dict)
    owner_by_directory: Dict[str, Optional[str]] = field(default_factory=dict)
    unresolved: List[str] = field(default_factory=list)

    def directories_of(self, module: str) -> List[str]:
        return self.directories_by_module.get(module, [])

    @property
    def modules(self) -> List[str]:
        return sorted(self.directories_by_module)

def assign_directories(
    directories: Iterable[str],
    ownership: OwnershipMap,
    config: GeneratorConfig,
    known: Optional[Collection[str]] = None,
) -> SourceAssignment:
    resolver = DirectoryResolver(ownership)
    out = SourceAssignment()

    for directory in sorted(directories):
        owner = resolver.owner_of(directory)
        if owner is None:
            legacy = legacy_module_for(directory, config)
            if legacy is not None and (known is None or legacy in known):
                owner = legacy

        out.owner_by_directory[directory] = owner
        if owner is None:
            out.unresolved.append(directory)
        else:
            out.directories_by_module.setdefault(owner, []).append(directory)

    _log.debug(
        "Assigned %d directories to %d modules (%d unresolved, cache=%d)",
        len(out.owner_by_directory),
        len(out.directories_by_module),
        len(out.unresolved),
        resolver.cache_size,
    )
    return out

def assign_sources(
    snapshot: "ScanSnapshot",
    ownership: OwnershipMap,
    config: GeneratorConfig,
    known: Optional[Collection[str]] = None,
) -> SourceAssignment:
    """
    Map every source-bearing directory of the snapshot to its owner.

    Owner is the nearest ownership root, else the legacy fallback (limited to
    ``known`` when given), else the directory is unresolved.
    """
    return assign_directories(snapshot.source_directories, ownership, config, known)
