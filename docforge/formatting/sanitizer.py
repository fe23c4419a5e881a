"""
Rich-text sanitizer for DocForge.

Paragraphs, table cells and bullet items hold small markup fragments.
Only a short allow-list of inline tags survives sanitization; every other
tag is unwrapped to its text. The fragment is rebuilt node by node from
the parse tree, so the output is canonical and sanitizing it again
yields the same string.
"""

import html
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag


ALLOWED_TAGS = frozenset({"a", "b", "strong", "i", "em", "u", "br", "p", "span"})

# Tags whose text is never content
DROPPED_TAGS = frozenset({"script", "style", "template", "noscript"})

SAFE_HREF_PREFIXES = ("http:", "https:", "mailto:", "#")

SECTION_LINK_ATTR = "data-section-link"

DEFAULT_LINK_REL = "noopener noreferrer"


def escape_html(text: Optional[str]) -> str:
    """Escape text for use in element content or a quoted attribute."""
    return html.escape(text or "", quote=True)


def is_safe_href(href: str) -> bool:
    """Whether an href uses one of the permitted schemes."""
    return href.strip().lower().startswith(SAFE_HREF_PREFIXES)


def _attribute(value) -> Optional[str]:
    # html.parser gives multi-valued attributes (rel) as lists
    if value is None:
        return None
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _anchor_attributes(tag: Tag) -> str:
    """Rebuild the permitted attributes of an anchor in a fixed order."""
    href = _attribute(tag.get("href"))
    section_link = _attribute(tag.get(SECTION_LINK_ATTR))
    target = _attribute(tag.get("target"))
    rel = _attribute(tag.get("rel"))

    attrs: List[str] = []
    if href is not None:
        href = href.strip()
        attrs.append(f'href="{escape_html(href if is_safe_href(href) else "#")}"')
    elif section_link:
        attrs.append('href="#"')

    if section_link:
        attrs.append(f'{SECTION_LINK_ATTR}="{escape_html(section_link)}"')

    if target == "_blank":
        attrs.append('target="_blank"')
        attrs.append(f'rel="{escape_html(rel or DEFAULT_LINK_REL)}"')

    return "".join(f" {a}" for a in attrs)


def _render_node(node) -> str:
    if isinstance(node, PreformattedString):
        # Comments, CDATA, doctypes and processing instructions
        return ""
    if isinstance(node, NavigableString):
        return html.escape(str(node), quote=False)
    if not isinstance(node, Tag):
        return ""

    name = node.name.lower()
    if name in DROPPED_TAGS:
        return ""

    inner = "".join(_render_node(child) for child in node.children)
    if name not in ALLOWED_TAGS:
        return inner
    if name == "br":
        return "<br>"
    if name == "a":
        return f"<a{_anchor_attributes(node)}>{inner}</a>"
    return f"<{name}>{inner}</{name}>"


def sanitize_html(markup: Optional[str]) -> str:
    """
    Reduce a markup fragment to the allow-listed tag set.

    Args:
        markup: Untrusted rich-text fragment

    Returns:
        Sanitized fragment; tags outside the allow-list are replaced by
        their text, and anchors keep only safe attributes
    """
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    return "".join(_render_node(child) for child in soup.contents)


def strip_markup(markup: Optional[str]) -> str:
    """
    Plain text of a markup fragment; line breaks become newlines.

    Args:
        markup: A rich-text fragment

    Returns:
        The text content without any tags
    """
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for dropped in soup.find_all(list(DROPPED_TAGS)):
        dropped.decompose()
    return soup.get_text()
