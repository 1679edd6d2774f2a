from __future__ import annotations

import re
from typing import Iterable

from .models import BuildPlatform

# A define token ends at ";" or at the closing tag of DefineConstants.
_EDITOR_DEFINES_RE = re.compile(r"(?<![\w])UNITY_EDITOR(?:_64|_OSX|_WIN|_LINUX)?(?:;|(?=<))")
_DEBUG_DEFINES_RE = re.compile(r"(?<![\w])(?:DEBUG|TRACE)(?:;|(?=<))")
_ANDROID_DEFINE_RE = re.compile(r"(?<![\w])UNITY_ANDROID(?=[;<])")
_IOS_DEFINE_RE = re.compile(r"(?<![\w])UNITY_IOS(?=[;<])")
_IPHONE_DEFINE_RE = re.compile(r"(?<![\w])UNITY_IPHONE(?:;|(?=<))")
_REFERENCE_PATH_RE = re.compile(r'(<ProjectReference Include=")([^"]+)(\.csproj">)')


def strip_editor_defines(text: str, debug_build: bool) -> str:
    text = _EDITOR_DEFINES_RE.sub("", text)
    if not debug_build:
        text = _DEBUG_DEFINES_RE.sub("", text)
    return text


def swap_platform_defines(text: str, platform: BuildPlatform) -> str:
    if platform is BuildPlatform.IOS:
        return _ANDROID_DEFINE_RE.sub("UNITY_IOS", text)
    # UNITY_IPHONE is the legacy alias of UNITY_IOS.
    text = _IPHONE_DEFINE_RE.sub("", text)
    return _IOS_DEFINE_RE.sub("UNITY_ANDROID", text)


def strip_references(text: str, names: Iterable[str]) -> str:
    """Remove every ProjectReference block that targets ``<name>.csproj`` for one of ``names``."""
    names = sorted(set(names))
    if not names:
        return text
    alternation = "|".join(re.escape(n) for n in names)
    pattern = re.compile(
        r'[ \t]*<ProjectReference Include="(?:%s)\.csproj">.*?</ProjectReference>[ \t]*(?:\r?\n)?' % alternation,
        re.DOTALL,
    )
    return pattern.sub("", text)


def rewrite_reference_suffix(text: str, suffix: str) -> str:
    return _REFERENCE_PATH_RE.sub(lambda m: f"{m.group(1)}{m.group(2)}{suffix}{m.group(3)}", text)
