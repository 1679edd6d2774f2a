from __future__ import annotations

import os

import pytest

from conftest import write_tree
from slngen.core.config import GeneratorConfig
from slngen.core.errors import DuplicateModuleNameError
from slngen.core.scanning import is_ignored_name, scan_files, scan_project


def test_ignored_names():
    assert is_ignored_name(".git")
    assert is_ignored_name("Samples~")
    assert not is_ignored_name("Editor")
    assert not is_ignored_name("a~b")


def test_scan_classifies_and_prunes(unity_project, config):
    scan = scan_files(unity_project, config)

    assert scan.root == str(unity_project)
    assert scan.source_directories == [
        "Assets/Game",
        "Assets/Game/Core",
        "Assets/Game/Core/Sub",
        "Assets/Game/Editor",
        "Assets/Game/Ext",
        "Assets/Plugins",
        "Assets/Scripts",
        "Assets/Scripts/Editor",
        "Packages/com.example.pkg/Runtime",
    ]
    assert scan.source_files["Assets/Game/Core"] == ["Core.cs"]
    assert scan.declaration_paths == [
        "Assets/Game/Core/Core.asmdef",
        "Assets/Game/Editor/GameEditor.asmdef",
        "Assets/Game/Game.asmdef",
        "Packages/com.example.pkg/Runtime/Pkg.asmdef",
    ]
    assert scan.extension_paths == ["Assets/Game/Ext/Ext.asmref"]
    assert scan.ignored_directories == ["Assets/Game/.hidden", "Assets/Game/Samples~"]


def test_ignored_files_and_non_source_files_are_skipped(make_tree, config):
    root = make_tree(
        {
            "Assets/A/.Hidden.cs": "",
            "Assets/A/Backup.cs~": "",
            "Assets/A/readme.txt": "",
            "Assets/A/Real.cs": "",
        }
    )
    scan = scan_files(root, config)
    assert scan.source_files == {"Assets/A": ["Real.cs"]}
    assert scan.source_file_count == 1


def test_directory_contains_source_only_through_direct_children(make_tree, config):
    root = make_tree({"Assets/Outer/Inner/Deep.cs": ""})
    scan = scan_files(root, config)
    assert scan.source_directories == ["Assets/Outer/Inner"]


def test_missing_sub_roots_are_skipped(make_tree, config):
    root = make_tree({"Assets/A.cs": ""})
    scan = scan_files(root, config)
    assert scan.source_files == {"Assets": ["A.cs"]}


def test_parallel_scan_matches_serial_scan(unity_project):
    serial = scan_files(unity_project, GeneratorConfig(max_workers=1))
    parallel = scan_files(unity_project, GeneratorConfig(max_workers=8))
    assert serial == parallel


def test_symlink_cycle_is_broken(make_tree, config):
    root = make_tree({"Assets/A/a.cs": ""})
    os.symlink(root / "Assets" / "A", root / "Assets" / "A" / "loop")

    scan = scan_files(root, config)
    assert scan.source_files == {"Assets/A": ["a.cs"]}


def test_broken_symlink_is_skipped(make_tree, config):
    root = make_tree({"Assets/A/a.cs": ""})
    os.symlink(root / "missing.cs", root / "Assets" / "A" / "dangling.cs")

    scan = scan_files(root, config)
    assert scan.source_files == {"Assets/A": ["a.cs"]}


def test_symlinked_file_counts_as_source(make_tree, config):
    root = make_tree({"Shared/Shared.cs": "", "Assets/A/a.cs": ""})
    os.symlink(root / "Shared" / "Shared.cs", root / "Assets" / "A" / "Shared.cs")

    scan = scan_files(root, config)
    assert scan.source_files == {"Assets/A": ["Shared.cs", "a.cs"]}


def test_scan_project_loads_modules(unity_project, config):
    snapshot = scan_project(unity_project, config)

    assert sorted(snapshot.modules) == ["Core", "Game", "Game.Editor", "Pkg"]
    assert snapshot.modules["Core"].directory == "Assets/Game/Core"
    assert snapshot.guid_index == {"0123456789abcdef0123456789abcdef": "Core"}
    assert [e.directory for e in snapshot.extensions] == ["Assets/Game/Ext"]
    assert snapshot.warnings == []


def test_scan_project_reports_invalid_declarations(make_tree, config):
    root = make_tree(
        {
            "Assets/A/A.asmdef": "{ not json",
            "Assets/B/B.asmdef": '{"references": []}',
            "Assets/C/C.asmdef": "\ufeff" + '{"name": "C"}',
        }
    )
    snapshot = scan_project(root, config)

    assert list(snapshot.modules) == ["C"]
    assert len(snapshot.warnings) == 2
    assert "Assets/A/A.asmdef" in snapshot.warnings[0]
    assert "without a name" in snapshot.warnings[1]


def test_duplicate_module_name_is_fatal(tmp_path, config):
    root = write_tree(
        tmp_path / "dup",
        {
            "Assets/A/A.asmdef": '{"name": "Same"}',
            "Assets/B/B.asmdef": '{"name": "Same"}',
        },
    )
    with pytest.raises(DuplicateModuleNameError) as exc:
        scan_project(root, config)
    assert exc.value.name == "Same"
    assert "Assets/A/A.asmdef" in str(exc.value)
    assert "Assets/B/B.asmdef" in str(exc.value)


@pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0, reason="root can read any directory")
def test_unreadable_directory_is_skipped_silently(make_tree, config):
    root = make_tree({"Assets/A/a.cs": "", "Assets/Locked/c.cs": "", "Assets/Locked/Inner/b.cs": ""})
    locked = root / "Assets" / "Locked"
    locked.chmod(0)
    try:
        scan = scan_files(root, config)
        snapshot = scan_project(root, config)
    finally:
        locked.chmod(0o755)

    assert scan.source_files == {"Assets/A": ["a.cs"]}
    assert scan.unreadable_directories == ["Assets/Locked"]
    assert snapshot.warnings == []
