"""
Block content formatter for DocForge.

Renders one block into a portable markup fragment. The fragment is used
both by the editor preview and by the static site exporter, so it does
not depend on any UI framework beyond Tailwind utility classes.
"""

from typing import List, Optional

from ..models import Block, BlockType, BulletStyle, ImageSize, NavItem, TableCell
from .sanitizer import SECTION_LINK_ATTR, escape_html, is_safe_href, sanitize_html


# Ordered widths, narrowest first
IMAGE_SIZE_CLASSES = {
    ImageSize.SMALL: "max-w-xs",
    ImageSize.MEDIUM: "max-w-md",
    ImageSize.LARGE: "max-w-2xl",
    ImageSize.FULL: "w-full",
}

HEADING_CLASSES = {
    BlockType.HEADING_1: "text-2xl sm:text-3xl md:text-4xl font-bold mb-3 md:mb-4",
    BlockType.HEADING_2: "text-xl sm:text-2xl md:text-3xl font-bold mb-2 md:mb-3",
    BlockType.HEADING_3: "text-lg sm:text-xl md:text-2xl font-bold mb-2",
}

CARD_SHADOW = "box-shadow: 0 4px 20px -2px rgba(37, 99, 235, 0.08);"

PDF_ICON = (
    '<svg class="h-5 w-5 sm:h-6 sm:w-6 text-blue-700 flex-shrink-0" fill="none" stroke="currentColor" '
    'viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" '
    'd="M7 21h10a2 2 0 002-2V9.414a1 1 0 00-.293-.707l-5.414-5.414A1 1 0 0012.586 3H7a2 2 0 00-2 2v14a2 '
    '2 0 002 2z"></path></svg>'
)

LINK_ICON = (
    '<svg class="h-5 w-5 sm:h-6 sm:w-6 text-blue-700 flex-shrink-0 mt-0.5 sm:mt-0" fill="none" '
    'stroke="currentColor" viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" '
    'stroke-width="2" d="M13.828 10.172a4 4 0 00-5.656 0l-4 4a4 4 0 105.656 5.656l1.102-1.101m-.758-4.899a4 '
    '4 0 005.656 0l4-4a4 4 0 00-5.656-5.656l-1.1 1.1"></path></svg>'
)

NAV_ICON = (
    '<svg class="h-4 w-4 flex-shrink-0" fill="none" stroke="currentColor" viewBox="0 0 24 24">'
    '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M9 5l7 7-7 7"></path></svg>'
)


def image_size_class(size: Optional[ImageSize]) -> str:
    """Width class of an image; unset sizes render full width."""
    return IMAGE_SIZE_CLASSES.get(size, IMAGE_SIZE_CLASSES[ImageSize.FULL])


def split_list_items(content: str) -> List[str]:
    """Split newline-joined bullet items, dropping blank lines."""
    return [item for item in (content or "").split("\n") if item.strip()]


def _cell_style(cell: TableCell) -> str:
    formatting = cell.formatting or {}
    styles = []
    if formatting.get("bold"):
        styles.append("font-weight: 600")
    if formatting.get("italic"):
        styles.append("font-style: italic")
    if formatting.get("underline"):
        styles.append("text-decoration: underline")
    if formatting.get("align") in ("left", "center", "right"):
        styles.append(f"text-align: {formatting['align']}")
    background = formatting.get("backgroundColor")
    if isinstance(background, str) and background.startswith("#") and background[1:].isalnum():
        styles.append(f"background-color: {background}")
    return f' style="{"; ".join(styles)};"' if styles else ""


def render_heading(block: Block) -> str:
    tag = block.type.value
    return f'<{tag} class="{HEADING_CLASSES[block.type]}">{escape_html(block.content)}</{tag}>'


def render_paragraph(block: Block) -> str:
    return (
        '<div class="text-sm sm:text-base md:text-lg leading-6 md:leading-7 mb-3 md:mb-4 '
        f'whitespace-pre-wrap break-words">{sanitize_html(block.content)}</div>'
    )


def render_image(block: Block, src: str) -> str:
    caption = escape_html(block.content)
    return (
        f'<div class="my-4 {image_size_class(block.image_size)}">'
        f'<img src="{escape_html(src)}" alt="{caption}" '
        f'class="w-full max-w-full h-auto rounded-lg border" style="{CARD_SHADOW}"/>'
        f'<p class="mt-2 text-xs sm:text-sm text-gray-500">{caption}</p></div>'
    )


def render_pdf(block: Block, src: str) -> str:
    name = escape_html(block.attachment_name or block.content)
    return (
        '<div class="my-4 rounded-lg border p-3 md:p-4 bg-gray-50">'
        '<div class="flex flex-col sm:flex-row items-start sm:items-center gap-3">'
        f'{PDF_ICON}'
        '<div class="flex-1 min-w-0">'
        f'<p class="font-medium text-sm sm:text-base break-words">{escape_html(block.content)}</p>'
        '<p class="text-xs sm:text-sm text-gray-500">PDF Document</p></div>'
        f'<a href="{escape_html(src)}" download="{name}" '
        'class="px-3 py-1.5 text-sm border rounded-md hover:bg-gray-100 w-full sm:w-auto text-center flex-shrink-0">'
        'Download</a></div></div>'
    )


def render_video(block: Block, src: str) -> str:
    return (
        '<div class="my-4">'
        f'<video controls class="w-full max-w-full h-auto rounded-lg border" src="{escape_html(src)}" '
        f'style="{CARD_SHADOW}">Your browser does not support the video tag.</video>'
        f'<p class="mt-2 text-xs sm:text-sm text-gray-500">{escape_html(block.content)}</p></div>'
    )


def render_link(block: Block) -> str:
    url = (block.content or "").strip()
    href = url if is_safe_href(url) else "#"
    return (
        '<div class="my-4 rounded-lg border p-3 md:p-4 bg-gray-50">'
        f'<div class="flex items-start sm:items-center gap-3">{LINK_ICON}'
        f'<a href="{escape_html(href)}" target="_blank" rel="noopener noreferrer" '
        'class="flex-1 text-blue-700 hover:underline break-all text-sm sm:text-base">'
        f'{escape_html(url)}</a></div></div>'
    )


def render_table(block: Block) -> str:
    rows = []
    for row in block.table_data or []:
        cells = "".join(
            f'<td class="border px-3 py-2 align-top"{_cell_style(cell)}>{sanitize_html(cell.content)}</td>'
            for cell in row
        )
        rows.append(f"<tr>{cells}</tr>")
    return (
        '<div class="my-4 overflow-x-auto">'
        '<table class="min-w-full border-collapse border text-sm sm:text-base">'
        f'<tbody>{"".join(rows)}</tbody></table></div>'
    )


def render_bullet_list(block: Block) -> str:
    style = block.bullet_style or BulletStyle.DISC
    tag = "ol" if style == BulletStyle.DECIMAL else "ul"
    items = "".join(f"<li>{sanitize_html(item)}</li>" for item in split_list_items(block.content))
    return (
        f'<{tag} class="my-3 pl-6 space-y-1 text-sm sm:text-base md:text-lg" '
        f'style="list-style-type: {style.value};">{items}</{tag}>'
    )


def _render_nav_item(item: NavItem) -> str:
    label = escape_html(item.label or "Untitled")
    if not item.target_section_id:
        return f'<li class="flex items-center gap-2 text-gray-500">{NAV_ICON}<span>{label}</span></li>'
    target = escape_html(item.target_section_id)
    return (
        '<li class="flex items-center gap-2">'
        f'{NAV_ICON}<a href="#section-{target}" {SECTION_LINK_ATTR}="{target}" '
        f'class="text-blue-700 hover:underline">{label}</a></li>'
    )


def render_navigation(block: Block) -> str:
    items = "".join(_render_nav_item(item) for item in block.nav_items or [])
    heading = ""
    if block.content:
        heading = f'<p class="font-semibold mb-2">{escape_html(block.content)}</p>'
    return (
        '<nav class="my-4 rounded-lg border p-3 md:p-4 bg-gray-50">'
        f'{heading}<ul class="space-y-1 text-sm sm:text-base">{items}</ul></nav>'
    )


def render_block(block: Block, media_src: Optional[str] = None) -> str:
    """
    Render one block as a sanitized markup fragment.

    Args:
        block: The block to render
        media_src: Source URL of a media block; defaults to its
            attachment_data (the live display reference)

    Returns:
        The markup fragment; an empty string for a media block without
        a source (missing asset)
    """
    if block.type in HEADING_CLASSES:
        return render_heading(block)

    if block.is_media:
        src = media_src if media_src is not None else block.attachment_data
        if not src:
            return ""
        if block.type == BlockType.IMAGE:
            return render_image(block, src)
        if block.type == BlockType.PDF:
            return render_pdf(block, src)
        return render_video(block, src)

    if block.type == BlockType.LINK:
        return render_link(block)
    if block.type == BlockType.TABLE:
        return render_table(block)
    if block.type == BlockType.BULLET_LIST:
        return render_bullet_list(block)
    if block.type == BlockType.NAVIGATION:
        return render_navigation(block)

    return render_paragraph(block)


def render_blocks(blocks: List[Block]) -> str:
    """Render a block list, one fragment per line."""
    return "\n".join(fragment for fragment in (render_block(b) for b in blocks) if fragment)
