"""
Markdown Normalization.

Best-effort cleanup of loosely structured text, mostly language model output,
into consistent Markdown block structure. This is an ordered sequence of
substitutions followed by a line classifier, not a Markdown parser.

Canonical form produced by normalize_markdown:
    - "\\n" line endings, no trailing whitespace
    - headers as "#<level> <text>"
    - one bullet per line, using a single marker, nested levels indented
      by four spaces, no blank lines between items of one list
    - exactly one blank line between blocks (header, list, paragraph)

Running normalize_markdown on its own output returns it unchanged.

Gateway-side helpers (clean_generated_text, force_proper_formatting) and the
client-side echo stripper (clean_improved_text) live here too, because they
apply the same kind of heuristics to the same kind of text.
"""

import re

BULLET_CHARS = "-*•+"

_NEWLINES_RE = re.compile(r"\r\n?")
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXCESS_BREAKS_RE = re.compile(r"\n{4,}")
_HEADER_RE = re.compile(r"^[ ]{0,3}(#{1,6})[ \t]*(\S.*?)[ \t]*$")
_BULLET_RE = re.compile(r"^([ \t]*)[-*•+][ \t]+(\S.*)$")
_ORDERED_RE = re.compile(r"^([ \t]*)(\d{1,9})[.)][ \t]+(\S.*)$")
_FENCE_RE = re.compile(r"^[ ]{0,3}(```|~~~)")
_INLINE_DOT_BULLET_RE = re.compile(r"(\S)[ \t]+•[ \t]+")
_INLINE_LIST_BULLET_RE = re.compile(r"[ \t]+[-*•][ \t]+(?=\S)")
_TOKEN_RE = re.compile(r"(?:(?<=\s)|^)(#{1,6}|[-*•](?=\s))")

_ECHO_MARKER_RE = re.compile(r"improved version[^:\n]*:", re.IGNORECASE)
ECHO_PHRASES = (
    "please improve",
    "following text",
    "make it clearer",
    "more concise",
    "note-taking",
)


def _indent_width(indent: str) -> int:
    return len(indent.expandtabs(4))


def _split_inline_bullets(line: str) -> list[str]:
    """Put bullets that were run together on one line onto their own lines."""
    line = _INLINE_DOT_BULLET_RE.sub(lambda m: f"{m.group(1)}\n• ", line)
    pieces: list[str] = []
    for piece in line.split("\n"):
        match = _BULLET_RE.match(piece)
        if match:
            # Only lines that already are list items get " - " split further
            indent, body = match.groups()
            parts = _INLINE_LIST_BULLET_RE.split(body)
            pieces.append(f"{indent}- {parts[0]}")
            pieces.extend(f"{indent}- {part}" for part in parts[1:])
        else:
            pieces.append(piece)
    return pieces


def _classify(line: str) -> tuple[str, str, int]:
    """Return (kind, text, indent) for a single line."""
    if not line.strip():
        return "blank", "", 0
    # Headers are recognized at any indent; the stripped line is what the
    # next pass sees
    match = _HEADER_RE.match(line.strip())
    if match:
        hashes, body = match.groups()
        return "header", f"{hashes} {body}", 0
    match = _BULLET_RE.match(line)
    if match:
        indent, body = match.groups()
        return "bullet", body.strip(), _indent_width(indent)
    match = _ORDERED_RE.match(line)
    if match:
        indent, number, body = match.groups()
        return "ordered", f"{int(number)}. {body.strip()}", _indent_width(indent)
    return "text", line.strip(), 0


def normalize_markdown(text: str, bullet_marker: str = "-") -> str:
    """
    Coerce text into canonical Markdown block structure.

    Args:
        text: Raw text, typically model output or editor content
        bullet_marker: Marker used for every unordered list item

    Returns:
        Normalized Markdown without a trailing newline. Empty input
        (or whitespace only) returns an empty string.
    """
    if bullet_marker not in BULLET_CHARS:
        raise ValueError(f"Unsupported bullet marker: {bullet_marker!r}")

    text = _NEWLINES_RE.sub("\n", text or "")
    text = _TRAILING_WS_RE.sub("", text)

    blocks: list[list[str]] = []
    current: list[str] = []
    current_kind = ""
    list_level = -1
    in_fence = False

    def close() -> None:
        nonlocal current, current_kind, list_level
        if current:
            blocks.append(current)
        current, current_kind, list_level = [], "", -1

    for raw in text.split("\n"):
        if in_fence:
            current.append(raw)
            if _FENCE_RE.match(raw.lstrip()):
                in_fence = False
                close()
            continue
        if _FENCE_RE.match(raw.lstrip()):
            close()
            current, current_kind, in_fence = [raw.strip()], "fence", True
            continue

        for line in _split_inline_bullets(raw):
            kind, body, indent = _classify(line)
            if kind == "blank":
                # A blank line ends paragraphs but not lists
                if current_kind != "list":
                    close()
                continue
            if kind == "header":
                close()
                blocks.append([body])
                continue
            if kind in ("bullet", "ordered"):
                if current_kind != "list":
                    close()
                    current_kind = "list"
                # Nesting never jumps more than one level below the previous item
                level = min((indent + 3) // 4, list_level + 1)
                list_level = level
                marker = f"{bullet_marker} " if kind == "bullet" else ""
                current.append(f"{'    ' * level}{marker}{body}")
                continue
            if current_kind != "text":
                close()
                current_kind = "text"
            current.append(body)

    close()
    return "\n\n".join("\n".join(block) for block in blocks)


def restructure_markdown(text: str) -> str:
    """
    Rebuild Markdown that was flattened onto a single line.

    Models sometimes return "# Title intro text - point one - point two"
    with all line breaks lost. Whitespace is collapsed, the text is cut at
    header and bullet markers that follow whitespace, and the pieces are
    reassembled as headers, lists and paragraphs.

    Hyphens inside words are kept; a spaced dash in prose (" - ") is read
    as a bullet, which is the main failure mode of this heuristic.
    """
    flat = " ".join((text or "").split())
    if not flat:
        return ""

    parts = _TOKEN_RE.split(flat)
    tokens: list[tuple[str, str]] = []
    if parts[0].strip():
        tokens.append(("text", parts[0].strip()))
    for marker, segment in zip(parts[1::2], parts[2::2]):
        body = segment.strip()
        if not body:
            continue
        if marker.startswith("#"):
            tokens.append(("header", f"{marker} {body}"))
        else:
            tokens.append(("bullet", f"- {body}"))

    blocks: list[str] = []
    for index, (kind, body) in enumerate(tokens):
        if kind == "bullet" and index > 0 and tokens[index - 1][0] == "bullet":
            blocks[-1] += "\n" + body
        else:
            blocks.append(body)
    return "\n\n".join(blocks)


def clean_generated_text(text: str) -> str:
    """Trim model output, cap runs of blank lines, drop trailing spaces."""
    cleaned = (text or "").strip()
    cleaned = _EXCESS_BREAKS_RE.sub("\n\n\n", cleaned)
    return _TRAILING_WS_RE.sub("", cleaned)


def force_proper_formatting(text: str) -> str:
    """
    Impose the title/bullet layout the gateway prompt asks the model for.

    Lines longer than three characters that are not bullets are treated as
    titles and surrounded by blank lines; "-" and "•" items become
    four-space indented "•" bullets. Short lines are kept as they are.
    """
    result: list[str] = []
    for raw in (text or "").split("\n"):
        line = raw.strip()
        if not line:
            result.append("")
        elif line.startswith(("•", "-")):
            bullet_text = re.sub(r"^[•\-]\s*", "", line)
            result.append(f"    • {bullet_text}")
        elif len(line) > 3:
            if result and result[-1] != "":
                result.append("")
            result.append(line)
            result.append("")
        else:
            result.append(line)

    formatted = "\n".join(result)
    return _EXCESS_BREAKS_RE.sub("\n\n\n", formatted).strip("\n")


def clean_improved_text(generated: str, prompt: str | None = None) -> str:
    """
    Strip prompt echo from an improved text returned by the gateway.

    Heuristics, applied in order:
        1. A verbatim copy of the prompt at the start is removed.
        2. Everything up to an "Improved version...:" marker is removed.
        3. Lines containing instruction phrases (ECHO_PHRASES) are dropped.
        4. Runs of blank lines collapse to one; the result is trimmed.

    Known failure mode: user text that itself contains an instruction
    phrase such as "note-taking" loses that line.
    """
    cleaned = (generated or "").replace("\r\n", "\n")

    if prompt and cleaned.startswith(prompt):
        cleaned = cleaned[len(prompt):]

    marker = _ECHO_MARKER_RE.search(cleaned)
    if marker is not None:
        cleaned = cleaned[marker.end():]

    kept: list[str] = []
    for line in cleaned.split("\n"):
        lower = line.strip().lower()
        if any(phrase in lower for phrase in ECHO_PHRASES):
            continue
        if not lower and (not kept or kept[-1] == ""):
            continue
        kept.append(line.rstrip() if lower else "")

    return "\n".join(kept).strip()
