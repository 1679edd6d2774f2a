from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path
from typing import Dict, List, Set

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from slngen.core.paths import xml_unescape  # noqa: E402
from slngen.core.patterns.expand import expand_patterns  # noqa: E402
from slngen.core.patterns.synthesizer import CompilePattern  # noqa: E402

_COMPILE_RE = re.compile(r'<Compile\s+Include="([^"]+)"(?:\s+Exclude="([^"]*)")?')


def compile_items(text: str) -> List[CompilePattern]:
    items: List[CompilePattern] = []
    for m in _COMPILE_RE.finditer(text):
        include = xml_unescape(m.group(1)).replace("\\", "/")
        excludes = tuple(
            e.strip().replace("\\", "/") for e in xml_unescape(m.group(2) or "").split(";") if e.strip()
        )
        items.append(CompilePattern(include=include, exclude=excludes))
    return items


def compile_set(project_root: Path, csproj: Path) -> Set[str]:
    items = compile_items(csproj.read_bytes().decode("utf-8"))
    literal = {i.include for i in items if "*" not in i.include}
    globbed = [i for i in items if "*" in i.include]
    return literal | expand_patterns(project_root, globbed)


def main() -> int:
    ap = argparse.ArgumentParser(
        description="Compare the compile sets of generated descriptors with per-file IDE descriptors."
    )
    ap.add_argument("project_root", help="Unity project root holding the generated .csproj files")
    ap.add_argument("reference_dir", help="Directory holding the IDE-generated .csproj files")
    ap.add_argument("--limit", type=int, default=20, help="Max paths listed per difference")
    args = ap.parse_args()

    project_root = Path(args.project_root).resolve()
    reference_dir = Path(args.reference_dir).resolve()

    references = sorted(reference_dir.glob("*.csproj"))
    if not references:
        print(f"ERROR: no .csproj files in {reference_dir}")
        return 2

    drift: Dict[str, int] = {}
    for ref in references:
        generated = project_root / ref.name
        if not generated.exists():
            print(f"MISSING: {ref.name} was not generated")
            drift[ref.name] = -1
            continue

        expected = compile_set(project_root, ref)
        actual = compile_set(project_root, generated)
        missing = sorted(expected - actual)
        extra = sorted(actual - expected)
        if not missing and not extra:
            print(f"OK: {ref.name} ({len(actual)} files)")
            continue

        drift[ref.name] = len(missing) + len(extra)
        print(f"DRIFT: {ref.name}")
        for p in missing[: args.limit]:
            print("  - missing:", p)
        for p in extra[: args.limit]:
            print("  + extra:", p)

    if any(v < 0 for v in drift.values()):
        return 2
    return 3 if drift else 0


if __name__ == "__main__":
    raise SystemExit(main())
