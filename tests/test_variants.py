from __future__ import annotations

import os
import re

from conftest import CSPROJ_TEMPLATE, TEMPLATES, asmdef
from slngen.core.config import GeneratorConfig
from slngen.core.generator import GenerateOptions, SolutionGenerator
from slngen.core.ownership import ModuleCategory, ModuleRecord
from slngen.core.registry.discovery import discover_manifest
from slngen.core.registry.manifest import save_manifest
from slngen.core.registry.models import ProjectEntry, ProjectKind
from slngen.core.scanning import scan_project
from slngen.core.variants import (
    BuildConfiguration,
    BuildPlatform,
    VariantSpec,
    rewrite_reference_suffix,
    select_variant_projects,
    strip_editor_defines,
    strip_references,
    swap_platform_defines,
    variant_csproj_path,
    variant_solution_path,
)
from slngen.core.variants.builder import insert_props_import

IOS_PROD = VariantSpec(BuildPlatform.IOS, BuildConfiguration.PROD)

REFERENCES = """  <ItemGroup>
    <ProjectReference Include="Core.csproj">
      <Project>{C}</Project>
      <Name>Core</Name>
    </ProjectReference>
    <ProjectReference Include="Game.Editor.csproj">
      <Project>{E}</Project>
      <Name>Game.Editor</Name>
    </ProjectReference>
  </ItemGroup>
"""


def _defines(text: str) -> str:
    return re.search(r"<DefineConstants>(.*?)</DefineConstants>", text).group(1)


def test_variant_naming():
    spec = VariantSpec(BuildPlatform.ANDROID, BuildConfiguration.DEV)
    assert spec.name == "android-dev"
    assert spec.suffix == ".v.android-dev"
    assert variant_csproj_path("Game.csproj", spec.suffix) == "Game.v.android-dev.csproj"
    assert variant_solution_path("Project.sln", spec) == "Project.v.android-dev.sln"
    assert VariantSpec(BuildPlatform.IOS).configuration == BuildConfiguration.PROD


def test_strip_editor_defines():
    text = "<DefineConstants>UNITY_EDITOR;UNITY_EDITOR_64;UNITY_EDITOR_OSX;DEBUG;TRACE;MY_DEBUG;UNITY_5</DefineConstants>"
    assert _defines(strip_editor_defines(text, debug_build=False)) == "MY_DEBUG;UNITY_5"
    assert _defines(strip_editor_defines(text, debug_build=True)) == "DEBUG;TRACE;MY_DEBUG;UNITY_5"

    at_end = "<DefineConstants>UNITY_5;UNITY_EDITOR</DefineConstants>"
    assert _defines(strip_editor_defines(at_end, debug_build=False)) == "UNITY_5;"


def test_swap_platform_defines():
    text = "UNITY_ANDROID;UNITY_IPHONE;UNITY_IOS;"
    assert swap_platform_defines(text, BuildPlatform.IOS) == "UNITY_IOS;UNITY_IPHONE;UNITY_IOS;"
    assert swap_platform_defines(text, BuildPlatform.ANDROID) == "UNITY_ANDROID;UNITY_ANDROID;"

    at_end = "<DefineConstants>TRACE;UNITY_ANDROID</DefineConstants>"
    assert _defines(swap_platform_defines(at_end, BuildPlatform.IOS)) == "TRACE;UNITY_IOS"
    at_end = "<DefineConstants>TRACE;UNITY_IPHONE;UNITY_IOS</DefineConstants>"
    assert _defines(swap_platform_defines(at_end, BuildPlatform.ANDROID)) == "TRACE;UNITY_ANDROID"

    lookalikes = "<DefineConstants>MY_UNITY_ANDROID;UNITY_ANDROID_X;UNITY_IOS_SDK</DefineConstants>"
    assert swap_platform_defines(lookalikes, BuildPlatform.IOS) == lookalikes
    assert swap_platform_defines(lookalikes, BuildPlatform.ANDROID) == lookalikes


def test_strip_and_suffix_references():
    stripped = strip_references(REFERENCES, ["Game.Editor"])
    assert "Game.Editor" not in stripped
    assert stripped == "\n".join(REFERENCES.splitlines()[:5] + ["  </ItemGroup>", ""])

    rewritten = rewrite_reference_suffix(stripped, ".v.ios-prod")
    assert '<ProjectReference Include="Core.v.ios-prod.csproj">' in rewritten
    assert strip_references(REFERENCES, []) == REFERENCES


def test_props_import_is_inserted_once():
    text = '<Project>\n  <Import Project="$(MSBuildToolsPath)\\Microsoft.CSharp.targets" />\n</Project>\n'
    once = insert_props_import(text, "Lib/Variant.props")
    assert once.splitlines()[1] == '  <Import Project="Lib/Variant.props" />'
    assert insert_props_import(once, "Lib/Variant.props") == once

    bare = insert_props_import("<Project>\n</Project>\n", "Lib/Variant.props")
    assert bare == '<Project>\n  <Import Project="Lib/Variant.props" />\n</Project>\n'


def _project(name: str, category: ModuleCategory) -> ProjectEntry:
    return ProjectEntry(
        name=name,
        csproj_path=f"{name}.csproj",
        template_path=f"t/{name}.csproj.template",
        guid="{G}",
        kind=ProjectKind.ASMDEF,
        category=category,
    )


def test_select_variant_projects():
    projects = [
        _project("Core", ModuleCategory.RUNTIME),
        _project("AndroidOnly", ModuleCategory.RUNTIME),
        _project("NoIos", ModuleCategory.RUNTIME),
        _project("Tools", ModuleCategory.EDITOR),
        _project("Tests", ModuleCategory.TEST),
    ]
    modules = {
        "AndroidOnly": ModuleRecord("AndroidOnly", "a", "a/A.asmdef", include_platforms=("Android",)),
        "NoIos": ModuleRecord("NoIos", "b", "b/B.asmdef", exclude_platforms=("iOS",)),
    }

    ios = select_variant_projects(projects, IOS_PROD, modules)
    assert [p.name for p in ios] == ["Core"]

    android = select_variant_projects(projects, VariantSpec(BuildPlatform.ANDROID), modules)
    assert [p.name for p in android] == ["Core", "AndroidOnly", "NoIos"]

    editor = select_variant_projects(projects, VariantSpec(BuildPlatform.IOS, BuildConfiguration.EDITOR), modules)
    assert len(editor) == len(projects)


def test_declared_category_overrides_registry_category():
    projects = [_project("Game", ModuleCategory.RUNTIME), _project("Game.Tests", ModuleCategory.RUNTIME)]
    modules = {
        "Game.Tests": ModuleRecord(
            "Game.Tests",
            "t",
            "t/Game.Tests.asmdef",
            category=ModuleCategory.TEST,
            define_constraints=("UNITY_INCLUDE_TESTS",),
        ),
    }
    assert [p.name for p in select_variant_projects(projects, IOS_PROD, modules)] == ["Game"]


def test_registry_category_is_overridden_by_declaration(unity_project, add_files):
    add_files(
        unity_project,
        {
            "Assets/Game/Checks/Game.Checks.asmdef": asmdef(
                "Game.Checks", references=["Game"], defineConstraints=["UNITY_INCLUDE_TESTS"]
            ),
            "Assets/Game/Checks/GameChecks.cs": "",
            f"{TEMPLATES}/Game.Checks.csproj.template": CSPROJ_TEMPLATE,
        },
    )
    config = GeneratorConfig()
    manifest = discover_manifest(unity_project, config, scan_project(unity_project, config).modules)
    stale = [
        p.model_copy(update={"category": ModuleCategory.RUNTIME}) if p.name == "Game.Checks" else p
        for p in manifest.projects
    ]
    save_manifest(unity_project / config.manifest_path, manifest.model_copy(update={"projects": stale}))

    generator = SolutionGenerator(config)
    generator.generate(GenerateOptions(project_root=unity_project))
    variant = generator.run_variant(unity_project, IOS_PROD)
    assert "Game.v.ios-prod.csproj" in variant.generated
    assert "Game.Checks.v.ios-prod.csproj" not in variant.generated


def test_prepare_variant_end_to_end(unity_project):
    generator = SolutionGenerator()
    result = generator.generate(GenerateOptions(project_root=unity_project, variant=IOS_PROD))
    variant = result.variant

    assert variant.generated == [
        "Assembly-CSharp-firstpass.v.ios-prod.csproj",
        "Assembly-CSharp.v.ios-prod.csproj",
        "Core.v.ios-prod.csproj",
        "Game.v.ios-prod.csproj",
        "Pkg.v.ios-prod.csproj",
    ]
    assert variant.skipped == []
    assert variant.solution_path == "Project.v.ios-prod.sln"
    assert variant.props_path == "Library/UnitySolutionGenerator/variants/ios-prod/Variant.props"

    game = (unity_project / "Game.v.ios-prod.csproj").read_text(encoding="utf-8")
    assert _defines(game) == "UNITY_IOS;UNITY_IPHONE;UNITY_IOS;"
    assert '<ProjectReference Include="Core.v.ios-prod.csproj">' in game
    lines = game.splitlines()
    props = lines.index('  <Import Project="Library/UnitySolutionGenerator/variants/ios-prod/Variant.props" />')
    assert "Microsoft.CSharp.targets" in lines[props + 1]

    props_text = (unity_project / variant.props_path).read_text(encoding="utf-8")
    assert "<SlnGenVariantDefines>UNITY_IOS</SlnGenVariantDefines>" in props_text
    assert "<BaseIntermediateOutputPath>Temp/obj/ios-prod/</BaseIntermediateOutputPath>" in props_text

    sln = (unity_project / "Project.v.ios-prod.sln").read_text(encoding="utf-8")
    assert '"Game.v.ios-prod.csproj"' in sln
    assert "Game.Editor" not in sln
    assert "Assembly-CSharp-Editor" not in sln


def test_editor_variant_keeps_editor_projects_and_defines(unity_project):
    generator = SolutionGenerator()
    generator.generate(GenerateOptions(project_root=unity_project))
    spec = VariantSpec(BuildPlatform.ANDROID, BuildConfiguration.EDITOR)

    variant = generator.run_variant(unity_project, spec)
    assert "Game.Editor.v.android-editor.csproj" in variant.generated
    game = (unity_project / "Game.v.android-editor.csproj").read_text(encoding="utf-8")
    assert _defines(game) == "UNITY_EDITOR;UNITY_EDITOR_64;DEBUG;TRACE;UNITY_ANDROID;UNITY_ANDROID;"


def test_dev_variant_keeps_debug_defines(unity_project):
    generator = SolutionGenerator()
    generator.generate(GenerateOptions(project_root=unity_project))

    generator.run_variant(unity_project, VariantSpec(BuildPlatform.IOS, BuildConfiguration.DEV))
    core = (unity_project / "Core.v.ios-dev.csproj").read_text(encoding="utf-8")
    assert _defines(core) == "DEBUG;TRACE;UNITY_IOS;UNITY_IPHONE;UNITY_IOS;"


def test_variant_cache_skips_fresh_copies(unity_project):
    generator = SolutionGenerator()
    generator.generate(GenerateOptions(project_root=unity_project, variant=IOS_PROD))

    second = generator.run_variant(unity_project, IOS_PROD)
    assert second.generated == []
    assert len(second.skipped) == 5
    assert second.solution_updated is False

    copy = unity_project / "Game.v.ios-prod.csproj"
    newer = copy.stat().st_mtime + 100
    os.utime(unity_project / "Game.csproj", (newer, newer))

    third = generator.run_variant(unity_project, IOS_PROD)
    assert third.generated == ["Game.v.ios-prod.csproj"]
    assert "Game.v.ios-prod.csproj" not in third.skipped


def test_platform_restricted_module_is_stripped(unity_project, add_files):
    add_files(
        unity_project,
        {
            "Packages/com.example.pkg/Runtime/Pkg.asmdef": asmdef("Pkg", includePlatforms=["Android"]),
        },
    )
    generator = SolutionGenerator()
    result = generator.generate(GenerateOptions(project_root=unity_project, variant=IOS_PROD))

    assert "Pkg.v.ios-prod.csproj" not in result.variant.generated
    legacy = (unity_project / "Assembly-CSharp.v.ios-prod.csproj").read_text(encoding="utf-8")
    assert "Pkg" not in legacy
    assert '<ProjectReference Include="Game.v.ios-prod.csproj">' in legacy
