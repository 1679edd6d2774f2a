from __future__ import annotations

from typing import TYPE_CHECKING, List, Mapping, Sequence

from slngen.core.paths import dedupe_preserving_order, xml_escape

if TYPE_CHECKING:
    from slngen.core.patterns.synthesizer import CompilePattern
    from slngen.core.registry.models import ProjectEntry

INDENT = "    "


def render_compile_block(patterns: Sequence["CompilePattern"], newline: str = "\n") -> str:
    lines: List[str] = []
    for p in patterns:
        include = xml_escape(p.include)
        if p.exclude:
            exclude = xml_escape(";".join(p.exclude))
            lines.append(f'{INDENT}<Compile Include="{include}" Exclude="{exclude}" />')
        else:
            lines.append(f'{INDENT}<Compile Include="{include}" />')
    return newline.join(lines)


def render_reference_block(
    project: str,
    references: Sequence[str],
    projects_by_name: Mapping[str, "ProjectEntry"],
    newline: str = "\n",
) -> str:
    """One ProjectReference per existing target, in first-seen order. Self-references are dropped."""
    blocks: List[str] = []
    for name in dedupe_preserving_order(references):
        target = projects_by_name.get(name)
        if target is None or name == project:
            continue
        blocks.append(
            newline.join(
                [
                    f'{INDENT}<ProjectReference Include="{xml_escape(target.csproj_path)}">',
                    f"{INDENT}  <Project>{target.guid}</Project>",
                    f"{INDENT}  <Name>{xml_escape(target.name)}</Name>",
                    f"{INDENT}</ProjectReference>",
                ]
            )
        )
    return newline.join(blocks)


def render_solution_entries(projects: Sequence["ProjectEntry"], type_guid: str, newline: str = "\n") -> str:
    lines: List[str] = []
    for p in projects:
        lines.append(f'Project("{type_guid}") = "{p.name}", "{p.csproj_path}", "{p.guid}"')
        lines.append("EndProject")
    return newline.join(lines)


def render_solution_configs(projects: Sequence["ProjectEntry"], newline: str = "\n") -> str:
    lines: List[str] = []
    for p in projects:
        lines.append(f"\t\t{p.guid}.Debug|Any CPU.ActiveCfg = Debug|Any CPU")
        lines.append(f"\t\t{p.guid}.Debug|Any CPU.Build.0 = Debug|Any CPU")
    return newline.join(lines)
