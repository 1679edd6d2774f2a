import json
import os
from pathlib import Path
from typing import Dict, Optional

import pytest

from slngen.core.config import GeneratorConfig

TEMPLATES = "Library/UnitySolutionGenerator/templates"

CSPROJ_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<Project ToolsVersion="4.0" DefaultTargets="Build" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <DefineConstants>UNITY_EDITOR;UNITY_EDITOR_64;DEBUG;TRACE;UNITY_ANDROID;UNITY_IPHONE;UNITY_IOS;</DefineConstants>
    <ProjectRoot>{{PROJECT_ROOT}}</ProjectRoot>
  </PropertyGroup>
  <ItemGroup>
{{SOURCE_FOLDERS}}
  </ItemGroup>
  <ItemGroup>
{{PROJECT_REFERENCES}}
  </ItemGroup>
  <Import Project="$(MSBuildToolsPath)\\Microsoft.CSharp.targets" />
</Project>
"""

SLN_TEMPLATE = """Microsoft Visual Studio Solution File, Format Version 11.00
{{PROJECT_ENTRIES}}
Global
\tGlobalSection(SolutionConfigurationPlatforms) = preSolution
\t\tDebug|Any CPU = Debug|Any CPU
\tEndGlobalSection
\tGlobalSection(ProjectConfigurationPlatforms) = postSolution
{{PROJECT_CONFIGS}}
\tEndGlobalSection
EndGlobal
"""

CORE_GUID = "0123456789abcdef0123456789abcdef"

PROJECT_NAMES = [
    "Assembly-CSharp",
    "Assembly-CSharp-Editor",
    "Assembly-CSharp-firstpass",
    "Core",
    "Game",
    "Game.Editor",
    "Pkg",
]


def asmdef(name: str, **fields) -> str:
    data = {"name": name}
    data.update(fields)
    return json.dumps(data, indent=4)


def meta(guid: str) -> str:
    return f"fileFormatVersion: 2\nguid: {guid}\n"


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(content.encode("utf-8"))
    return root


def sample_files() -> Dict[str, str]:
    files = {
        "Assets/Scripts/Player.cs": "class Player {}",
        "Assets/Scripts/Editor/PlayerEditor.cs": "class PlayerEditor {}",
        "Assets/Plugins/Lib.cs": "class Lib {}",
        "Assets/Game/Game.asmdef": asmdef("Game", references=[f"GUID:{CORE_GUID.upper()}"]),
        "Assets/Game/Main.cs": "class Main {}",
        "Assets/Game/Core/Core.asmdef": asmdef("Core"),
        "Assets/Game/Core/Core.asmdef.meta": meta(CORE_GUID),
        "Assets/Game/Core/Core.cs": "class Core {}",
        "Assets/Game/Core/Sub/Util.cs": "class Util {}",
        "Assets/Game/Samples~/Sample.cs": "class Sample {}",
        "Assets/Game/.hidden/Hidden.cs": "class Hidden {}",
        "Assets/Game/Ext/Ext.asmref": json.dumps({"reference": "Core"}),
        "Assets/Game/Ext/Extra.cs": "class Extra {}",
        "Assets/Game/Editor/GameEditor.asmdef": asmdef(
            "Game.Editor", references=["Game"], includePlatforms=["Editor"]
        ),
        "Assets/Game/Editor/GameEditorTool.cs": "class GameEditorTool {}",
        "Packages/com.example.pkg/Runtime/Pkg.asmdef": asmdef("Pkg"),
        "Packages/com.example.pkg/Runtime/Pkg.cs": "class Pkg {}",
        "ProjectSettings/ProjectVersion.txt": "m_EditorVersion: 2021.3.5f1\n",
        f"{TEMPLATES}/Project.sln.template": SLN_TEMPLATE,
    }
    for name in PROJECT_NAMES:
        files[f"{TEMPLATES}/{name}.csproj.template"] = CSPROJ_TEMPLATE
    return files


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    monkeypatch.delenv("SLNGEN_CONFIG", raising=False)
    monkeypatch.delenv("SLNGEN_LOG_LEVEL", raising=False)


@pytest.fixture()
def config() -> GeneratorConfig:
    return GeneratorConfig()


@pytest.fixture()
def make_tree(tmp_path: Path):
    def _make(files: Dict[str, str], name: str = "project") -> Path:
        return write_tree(tmp_path / name, files)

    return _make


@pytest.fixture()
def unity_project(make_tree) -> Path:
    """
    Small Unity tree covering every ownership case:

    - Game owns Assets/Game, Core is nested inside it
    - Assets/Game/Ext belongs to Core through a reference extension
    - Game.Editor is an editor-only module nested inside Game
    - Samples~ and .hidden are never imported
    - Assets/Scripts and Assets/Plugins fall back to the predefined projects
    """
    return Path(os.path.realpath(make_tree(sample_files())))


@pytest.fixture()
def add_files():
    def _add(root: Path, files: Dict[str, str], mtime: Optional[float] = None) -> None:
        write_tree(root, files)
        if mtime is not None:
            for rel in files:
                os.utime(root / rel, (mtime, mtime))

    return _add
