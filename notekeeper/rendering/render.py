"""
Markdown Rendering.

Converts normalized Markdown to sanitized HTML for display.

Pipeline:
    normalize_markdown → Python-Markdown → sanitize_html

If Python-Markdown raises, convert_markdown_to_html (a small regex-based
converter covering headers, lists, paragraphs and emphasis) is used
instead. The output always goes through sanitize_html.

Usage:
    from notekeeper.rendering import render_markdown, to_editor_format

    html = render_markdown("# Title\\n\\n- one\\n- two")
    text = to_editor_format(improved, "markdown")
"""

import html as html_lib
import re

import markdown

from notekeeper.backend.core.logging import get_logger
from notekeeper.rendering.normalize import normalize_markdown
from notekeeper.rendering.sanitize import sanitize_html

logger = get_logger(__name__)

EMPTY_HTML = "<p>No content to display</p>"
EDITOR_FORMATS = ("markdown", "html")
MARKDOWN_EXTENSIONS = ["sane_lists", "fenced_code"]

_HEADER_RE = re.compile(r"^(#{1,6}) (.+)$")
_LIST_ITEM_RE = re.compile(r"^\s*(?:[-*•+]|\d+[.)])\s+(.+)$")
_INLINE_RULES = (
    (re.compile(r"\*\*\*_(.+?)_\*\*\*"), r"<strong><u>\1</u></strong>"),
    (re.compile(r"\*\*\*(.+?)\*\*\*"), r"<strong><em>\1</em></strong>"),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])"), r"<em>\1</em>"),
    (re.compile(r"(?<!\w)_(?!\s)(.+?)(?<!\s)_(?!\w)"), r"<em>\1</em>"),
    (re.compile(r"`([^`]+)`"), r"<code>\1</code>"),
)


def _render_inline(text: str) -> str:
    rendered = html_lib.escape(text, quote=False)
    for pattern, replacement in _INLINE_RULES:
        rendered = pattern.sub(replacement, rendered)
    return rendered


def convert_markdown_to_html(text: str) -> str:
    """
    Regex fallback converter for normalized Markdown.

    Each blank-line separated block becomes a header, a list, or a
    paragraph whose lines are joined with <br>. Text is HTML-escaped
    before inline emphasis is applied.
    """
    parts: list[str] = []
    for block in re.split(r"\n\s*\n", text.strip()):
        lines = [line for line in block.split("\n") if line.strip()]
        if not lines:
            continue

        header = _HEADER_RE.match(lines[0])
        if header and len(lines) == 1:
            level = len(header.group(1))
            parts.append(f"<h{level}>{_render_inline(header.group(2))}</h{level}>")
            continue

        items = [_LIST_ITEM_RE.match(line) for line in lines]
        if all(items):
            ordered = bool(re.match(r"^\s*\d", lines[0]))
            tag = "ol" if ordered else "ul"
            body = "".join(f"<li>{_render_inline(item.group(1))}</li>" for item in items)
            parts.append(f"<{tag}>{body}</{tag}>")
            continue

        parts.append("<p>" + "<br>".join(_render_inline(line.strip()) for line in lines) + "</p>")

    return "\n".join(parts)


def render_markdown(text: str | None) -> str:
    """
    Render Markdown to sanitized HTML.

    Args:
        text: Markdown source. None, empty or whitespace-only input
            renders the placeholder paragraph.

    Returns:
        Sanitized HTML fragment
    """
    if not isinstance(text, str) or not text.strip():
        return EMPTY_HTML

    normalized = normalize_markdown(text)
    try:
        raw_html = markdown.markdown(
            normalized,
            extensions=MARKDOWN_EXTENSIONS,
            output_format="html",
        )
    except Exception as e:
        logger.warning(
            "Markdown library failed, using regex converter",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        raw_html = convert_markdown_to_html(normalized)

    return sanitize_html(raw_html)


def to_editor_format(text: str, content_format: str = "markdown") -> str:
    """
    Convert improved text into the editor surface's content format.

    Args:
        text: Improved text returned by the assist service
        content_format: "markdown" for normalized Markdown, "html" for
            rendered, sanitized HTML

    Raises:
        ValueError: If content_format is not supported
    """
    if content_format == "markdown":
        return normalize_markdown(text)
    if content_format == "html":
        return render_markdown(text)
    raise ValueError(
        f"Unsupported content format: {content_format!r} (expected one of {EDITOR_FORMATS})"
    )
