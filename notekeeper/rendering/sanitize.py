"""
HTML Sanitization.

Allow-list sanitizer for HTML produced from model output before it is
shown in an editor surface. Built on BeautifulSoup with the stdlib parser.

Rules:
    - Tags in REMOVE_WITH_CONTENT are dropped together with everything inside.
    - Other tags outside ALLOWED_TAGS are unwrapped (their text is kept).
    - Attributes outside ALLOWED_ATTRIBUTES are dropped, including all
      event handlers and style.
    - href/src values with a script scheme are dropped; data: URLs are
      only kept on img src.
    - HTML comments are removed.
"""

import re

from bs4 import BeautifulSoup, Comment

ALLOWED_TAGS = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "br", "strong", "em", "u", "del",
    "ul", "ol", "li", "blockquote",
    "code", "pre", "a", "img",
})
ALLOWED_ATTRIBUTES = frozenset({"href", "title", "alt", "src"})
REMOVE_WITH_CONTENT = frozenset({
    "script", "style", "iframe", "object", "embed", "form", "input",
    "textarea", "select", "button", "noscript", "template",
})
URL_ATTRIBUTES = frozenset({"href", "src"})
BLOCKED_SCHEMES = ("javascript:", "vbscript:")

_URL_NOISE_RE = re.compile(r"[\x00-\x20]+")


def _is_safe_url(tag_name: str, attribute: str, value: str) -> bool:
    """Check a URL attribute against the scheme rules."""
    compact = _URL_NOISE_RE.sub("", value).lower()
    if compact.startswith(BLOCKED_SCHEMES):
        return False
    if compact.startswith("data:"):
        return tag_name == "img" and attribute == "src" and compact.startswith("data:image/")
    return True


def sanitize_html(html: str) -> str:
    """
    Reduce HTML to the allow-listed subset.

    Args:
        html: Untrusted HTML fragment

    Returns:
        Sanitized HTML fragment
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if tag.name in REMOVE_WITH_CONTENT:
            tag.decompose()
            continue
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue

        for attribute in list(tag.attrs):
            value = tag.attrs[attribute]
            if attribute not in ALLOWED_ATTRIBUTES:
                del tag.attrs[attribute]
            elif attribute in URL_ATTRIBUTES and not _is_safe_url(
                tag.name, attribute, value if isinstance(value, str) else " ".join(value)
            ):
                del tag.attrs[attribute]

    return str(soup)


def html_to_text(html: str) -> str:
    """Strip HTML to plain text, one block per line."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    return soup.get_text(separator="\n").strip()
