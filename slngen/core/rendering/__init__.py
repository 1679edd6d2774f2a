from .blocks import (
    render_compile_block,
    render_reference_block,
    render_solution_configs,
    render_solution_entries,
)
from .templates import TemplateRenderer, detect_newline, load_editor_version, placeholder
from .writer import atomic_write, write_if_changed

__all__ = [
    "TemplateRenderer",
    "atomic_write",
    "detect_newline",
    "load_editor_version",
    "placeholder",
    "render_compile_block",
    "render_reference_block",
    "render_solution_configs",
    "render_solution_entries",
    "write_if_changed",
]
