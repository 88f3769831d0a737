# Markdown normalization, rendering and sanitization
from notekeeper.rendering.normalize import (
    clean_generated_text,
    clean_improved_text,
    force_proper_formatting,
    normalize_markdown,
    restructure_markdown,
)
from notekeeper.rendering.render import (
    convert_markdown_to_html,
    render_markdown,
    to_editor_format,
)
from notekeeper.rendering.sanitize import html_to_text, sanitize_html

__all__ = [
    "clean_generated_text",
    "clean_improved_text",
    "convert_markdown_to_html",
    "force_proper_formatting",
    "html_to_text",
    "normalize_markdown",
    "render_markdown",
    "restructure_markdown",
    "sanitize_html",
    "to_editor_format",
]
