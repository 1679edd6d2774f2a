from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from slngen.core.errors import InvalidProjectVersionError, MissingTemplateError, TemplateRenderError

_log = logging.getLogger("slngen.render")

# Placeholder vocabulary understood by descriptor templates.
SOURCE_FOLDERS = "SOURCE_FOLDERS"
PROJECT_REFERENCES = "PROJECT_REFERENCES"
PROJECT_ROOT = "PROJECT_ROOT"
UNITY_VER = "UNITY_VER"
PROJECT_ENTRIES = "PROJECT_ENTRIES"
PROJECT_CONFIGS = "PROJECT_CONFIGS"

PROJECT_VERSION_FILE = "ProjectSettings/ProjectVersion.txt"
_EDITOR_VERSION_KEY = "m_EditorVersion:"


def placeholder(name: str) -> str:
    return "{{" + name + "}}"


def detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def load_editor_version(project_root: Path) -> Optional[str]:
    """Editor version from ProjectVersion.txt; None when the file does not exist."""
    path = Path(project_root) / PROJECT_VERSION_FILE
    if not path.exists():
        return None
    for line in path.read_text(encoding="utf-8-sig").splitlines():
        if line.startswith(_EDITOR_VERSION_KEY):
            version = line[len(_EDITOR_VERSION_KEY):].strip()
            if version:
                return version
    raise InvalidProjectVersionError(path)


class TemplateRenderer:
    """
    Renders descriptor templates with Jinja2.

    Templates are read as bytes so CRLF line endings survive; the environment
    is picked per line-ending style and cached.
    """

    def __init__(self):
        self._envs: Dict[str, Environment] = {}

    def _env(self, newline: str) -> Environment:
        env = self._envs.get(newline)
        if env is None:
            env = Environment(
                autoescape=False,
                undefined=StrictUndefined,
                keep_trailing_newline=True,
                newline_sequence=newline,
            )
            self._envs[newline] = env
        return env

    def load(self, template_path: Path) -> str:
        path = Path(template_path)
        try:
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError as exc:
            raise MissingTemplateError(path) from exc
        except UnicodeDecodeError as exc:
            raise TemplateRenderError(path, str(exc)) from exc

    def render_source(self, source: str, values: Mapping[str, str], origin: Path) -> str:
        try:
            template = self._env(detect_newline(source)).from_string(source)
            return template.render(**values)
        except TemplateError as exc:
            raise TemplateRenderError(origin, exc.message or type(exc).__name__) from exc

    def render(self, template_path: Path, values: Mapping[str, str]) -> str:
        source = self.load(template_path)
        _log.debug("Rendering %s", template_path)
        return self.render_source(source, values, Path(template_path))
