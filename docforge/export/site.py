"""
Static site exporter for DocForge.

Turns a document into a standalone, navigable page. Export runs in four
phases: collect (pre-order flatten), resolve assets (one blob store fetch
per distinct attachment id), render (section panels, sidebar and search
index) and package (zip archive with an assets folder, or a single HTML
file with inlined data URLs).
"""

import io
import json
import logging
import mimetypes
import os
import re
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from ..config import config
from ..formatting import escape_html, render_block, split_list_items, strip_markup
from ..hydration import encode_data_url
from ..models import Block, BlockType, Document, Section
from ..storage import BlobStore
from ..tree import find_parent_ids, find_section, flatten_sections
from . import templates


# Extension fallbacks by MIME family, checked in order
MIME_EXTENSION_FALLBACKS = [
    ("image/", "png"),
    ("pdf", "pdf"),
    ("video/", "mp4"),
]

_EXTENSION_PATTERN = re.compile(r"^[A-Za-z0-9]{1,10}$")


def asset_extension(name: Optional[str], mime_type: Optional[str]) -> str:
    """
    Pick the file extension of an exported asset.

    Args:
        name: Original file name
        mime_type: MIME type of the asset

    Returns:
        The original file name's extension when it has one, otherwise a
        fallback derived from the MIME type (png, pdf, mp4 or bin)
    """
    extension = os.path.splitext(name or "")[1].lstrip(".")
    if extension and _EXTENSION_PATTERN.match(extension):
        return extension.lower()

    mime_type = (mime_type or "").lower()
    for marker, fallback in MIME_EXTENSION_FALLBACKS:
        if marker in mime_type:
            return fallback
    return "bin"


def asset_path(asset_id: str, name: Optional[str], mime_type: Optional[str]) -> str:
    """Export-relative path of an asset: assets/{id}.{ext}."""
    return f"assets/{asset_id}.{asset_extension(name, mime_type)}"


def export_file_stem(title: str) -> str:
    """File name stem derived from a document title."""
    stem = re.sub(r"[^a-z0-9]", "_", title or "", flags=re.IGNORECASE).lower()
    return stem or "document"


def section_icon(title: str) -> str:
    """Sidebar icon markup chosen from keywords of a section title."""
    lower_title = (title or "").lower()
    name = "file"
    for icon, keywords in templates.ICON_KEYWORDS:
        if any(keyword in lower_title for keyword in keywords):
            name = icon
            break
    return templates.ICON_SVG.substitute(name=name, paths=templates.SECTION_ICONS[name])


def embed_json(value) -> str:
    """Serialize a value for embedding inside a script element."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def format_updated(timestamp: str, fallback: datetime) -> str:
    """Render an ISO-8601 timestamp as e.g. 'March 5, 2025'."""
    moment = fallback
    if timestamp:
        try:
            moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        except ValueError:
            logging.debug(f"Unparseable lastModified '{timestamp}'; using export time")
    return f"{moment:%B} {moment.day}, {moment.year}"


# =============================================================================
# Search Index
# =============================================================================


def block_text(block: Block) -> str:
    """Searchable plain text of a block."""
    if block.type == BlockType.TABLE:
        cells = [strip_markup(cell.content) for row in block.table_data or [] for cell in row]
        return " ".join(c for c in cells if c)
    if block.type == BlockType.BULLET_LIST:
        return "\n".join(strip_markup(item) for item in split_list_items(block.content))
    if block.type == BlockType.NAVIGATION:
        labels = [item.label for item in block.nav_items or [] if item.label]
        return " ".join([block.content] + labels if block.content else labels)
    if block.type == BlockType.PARAGRAPH:
        return strip_markup(block.content)
    return block.content or ""


def build_search_index(flat_sections: List[Section]) -> List[dict]:
    """
    Build the embedded search index.

    Args:
        flat_sections: Sections in pre-order

    Returns:
        One entry per section with its title and the text of every block
    """
    return [
        {
            "id": section.id,
            "title": section.title,
            "content": [
                {"type": block.type.value, "content": block_text(block)}
                for block in section.content
            ]
        }
        for section in flat_sections
    ]


@dataclass
class SearchHit:
    section_id: str
    title: str
    match: str


def search_sections(index: List[dict], query: str, context_chars: Optional[int] = None) -> List[SearchHit]:
    """
    Case-insensitive substring search over a search index.

    This is the same algorithm the exported page runs client-side.

    Args:
        index: Output of build_search_index
        query: Search text
        context_chars: Characters of context kept on each side of a match

    Returns:
        Hits in index order; a title match yields the title, a block match
        yields the surrounding context with ellipses where truncated
    """
    context_chars = config.search_context_chars if context_chars is None else context_chars
    query = (query or "").lower().strip()
    if not query:
        return []

    hits = []
    for entry in index:
        if query in entry["title"].lower():
            hits.append(SearchHit(entry["id"], entry["title"], entry["title"]))
        for block in entry["content"]:
            text = block.get("content") or ""
            position = text.lower().find(query)
            if position == -1:
                continue
            start = max(0, position - context_chars)
            end = min(len(text), position + len(query) + context_chars)
            match = ("..." if start > 0 else "") + text[start:end] + ("..." if end < len(text) else "")
            hits.append(SearchHit(entry["id"], entry["title"], match))
    return hits


# =============================================================================
# Exporter
# =============================================================================


@dataclass
class ExportedAsset:
    """An asset resolved for export."""
    asset_id: str
    path: str
    name: str
    mime_type: str
    data: bytes


@dataclass
class SiteExportResult:
    """
    Outcome of a static site export.

    An export that had to omit missing assets still succeeds; the omitted
    ids are listed here.
    """
    html: str
    file_name: str
    single_file: bool
    section_order: List[str] = field(default_factory=list)
    assets: Dict[str, ExportedAsset] = field(default_factory=dict)
    omitted_asset_ids: List[str] = field(default_factory=list)
    archive: Optional[bytes] = None

    @property
    def payload(self) -> bytes:
        """Bytes of the output file."""
        if self.single_file:
            return self.html.encode("utf-8")
        return self.archive

    def write(self, directory) -> Path:
        """
        Write the output file into a directory.

        Returns:
            Path of the written file
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / self.file_name
        target.write_bytes(self.payload)
        return target


class StaticSiteExporter:
    """
    Exports documents as self-contained static sites.
    """

    def __init__(self, blob_store: BlobStore, stylesheet_cdn: Optional[str] = None,
                 search_context: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the exporter.

        Args:
            blob_store: Store holding the document's assets
            stylesheet_cdn: Script URL of the utility stylesheet (defaults to config value)
            search_context: Search context width in characters (defaults to config value)
            clock: Source of the current time, for the footer fallback
        """
        self.blob_store = blob_store
        self.stylesheet_cdn = stylesheet_cdn or config.stylesheet_cdn
        self.search_context = config.search_context_chars if search_context is None else search_context
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def export(self, document: Document, single_file: bool = False,
                     initial_section_id: Optional[str] = None) -> SiteExportResult:
        """
        Export a document.

        Args:
            document: The document (durable or hydrated form)
            single_file: Inline assets as data URLs into one HTML file
                instead of packaging a zip archive
            initial_section_id: Section shown on load (defaults to the first
                section in pre-order)

        Returns:
            SiteExportResult carrying the page, the packaged output and the
            ids of assets that could not be resolved
        """
        flat = self.collect(document.sections)
        assets, omitted = await self.resolve_assets(flat)

        if single_file:
            sources = {aid: encode_data_url(a.data, a.mime_type) for aid, a in assets.items()}
        else:
            sources = {aid: a.path for aid, a in assets.items()}

        html = self.render(document, flat, sources, initial_section_id)
        stem = export_file_stem(document.title)

        result = SiteExportResult(
            html=html,
            file_name=f"{stem}.html" if single_file else f"{stem}.zip",
            single_file=single_file,
            section_order=[s.id for s in flat],
            assets=assets,
            omitted_asset_ids=omitted
        )
        if not single_file:
            result.archive = self.package(html, assets)

        logging.info(
            f"Exported '{document.title}': {len(flat)} sections, {len(assets)} assets"
            + (f", {len(omitted)} omitted" if omitted else "")
        )
        return result

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def collect(self, sections: List[Section]) -> List[Section]:
        """Flatten the tree in pre-order; defines navigation order."""
        return flatten_sections(sections)

    async def resolve_assets(self, flat: List[Section]):
        """
        Fetch every distinct referenced asset once.

        Args:
            flat: Sections in pre-order

        Returns:
            Tuple of (assets by id, omitted asset ids)
        """
        ordered_ids: List[str] = []
        seen: Set[str] = set()
        for section in flat:
            for block in section.content:
                if block.attachment_id and block.attachment_id not in seen:
                    seen.add(block.attachment_id)
                    ordered_ids.append(block.attachment_id)

        assets: Dict[str, ExportedAsset] = {}
        omitted: List[str] = []
        for asset_id in ordered_ids:
            try:
                stored = await self.blob_store.get(asset_id)
            except Exception as e:
                logging.warning(f"Failed to load asset {asset_id} for export: {e}")
                stored = None
            else:
                if stored is None:
                    logging.warning(f"Asset {asset_id} not found during export; omitting it")

            if stored is None:
                omitted.append(asset_id)
                continue

            mime_type = stored.type or mimetypes.guess_type(stored.name)[0] or "application/octet-stream"
            assets[asset_id] = ExportedAsset(
                asset_id=asset_id,
                path=asset_path(asset_id, stored.name, mime_type),
                name=stored.name,
                mime_type=mime_type,
                data=stored.data
            )
        return assets, omitted

    def render(self, document: Document, flat: List[Section], sources: Dict[str, str],
               initial_section_id: Optional[str] = None) -> str:
        """
        Render the complete navigation page.

        Args:
            document: The exported document
            flat: Sections in pre-order
            sources: Export-relative path or data URL per resolved asset id
            initial_section_id: Section shown on load

        Returns:
            The HTML page
        """
        if initial_section_id is None or find_section(initial_section_id, document.sections) is None:
            initial_section_id = flat[0].id if flat else ""
        expanded = []
        if initial_section_id:
            expanded = find_parent_ids(initial_section_id, document.sections) or []

        updated = format_updated(document.last_modified, self.clock())
        panels = "".join(
            self.render_section(section, index, flat, sources, initial_section_id, updated)
            for index, section in enumerate(flat)
        )
        sidebar = self.render_sidebar(document.sections, 0, set(expanded), initial_section_id)

        return templates.PAGE.substitute(
            title=escape_html(document.title),
            stylesheet_cdn=escape_html(self.stylesheet_cdn),
            sidebar=sidebar,
            panels=panels,
            initial_section=embed_json(initial_section_id),
            search_index=embed_json(build_search_index(flat)),
            section_tree=embed_json(self.section_tree(document.sections)),
            expanded_sections=embed_json(expanded),
            search_context=int(self.search_context),
            script=templates.PAGE_SCRIPT
        )

    def package(self, html: str, assets: Dict[str, ExportedAsset]) -> bytes:
        """Zip the page and the asset folder."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("index.html", html)
            for asset in assets.values():
                archive.writestr(asset.path, asset.data)
        return buffer.getvalue()

    # -------------------------------------------------------------------------
    # Rendering helpers
    # -------------------------------------------------------------------------

    def render_section(self, section: Section, index: int, flat: List[Section],
                       sources: Dict[str, str], initial_section_id: str, updated: str) -> str:
        """Render one section panel with its prev/next links."""
        fragments = []
        for block in section.content:
            if block.is_media:
                fragment = render_block(block, media_src=sources.get(block.attachment_id or "", ""))
            else:
                fragment = render_block(block)
            if fragment:
                fragments.append(fragment)

        previous = flat[index - 1] if index > 0 else None
        following = flat[index + 1] if index < len(flat) - 1 else None
        chevron = templates.CHEVRON_PATH
        is_initial = section.id == initial_section_id

        return templates.SECTION_PANEL.substitute(
            section_id=escape_html(section.id),
            active_class=" active" if is_initial else "",
            display="block" if is_initial else "none",
            title=escape_html(section.title),
            content="\n".join(fragments),
            prev=templates.NAV_BUTTON_PREV.substitute(
                section_id=escape_html(previous.id), title=escape_html(previous.title), chevron=chevron
            ) if previous else templates.NAV_PLACEHOLDER,
            next=templates.NAV_BUTTON_NEXT.substitute(
                section_id=escape_html(following.id), title=escape_html(following.title), chevron=chevron
            ) if following else templates.NAV_PLACEHOLDER,
            updated=updated
        )

    def render_sidebar(self, sections: List[Section], depth: int, expanded: Set[str],
                       active_id: str) -> str:
        """
        Render the table of contents, mirroring the nested structure.

        Args:
            sections: Sibling sections at this level
            depth: Nesting depth (icons only at depth 0)
            expanded: Sections whose children start expanded
            active_id: Section highlighted on load

        Returns:
            Sidebar markup
        """
        entries = []
        for section in sections:
            section_id = escape_html(section.id)
            children = section.child_sections
            is_active = section.id == active_id
            is_expanded = section.id in expanded

            toggle = ""
            nested = ""
            if children:
                toggle = templates.SIDEBAR_TOGGLE.substitute(
                    section_id=section_id,
                    rotation=90 if is_expanded else 0,
                    chevron=templates.CHEVRON_PATH
                )
                nested = templates.SIDEBAR_CHILDREN.substitute(
                    section_id=section_id,
                    hidden_class="" if is_expanded else "hidden",
                    entries=self.render_sidebar(children, depth + 1, expanded, active_id)
                )

            entries.append(templates.SIDEBAR_ENTRY.substitute(
                indent=depth * 12 + 12,
                section_id=section_id,
                active_class=" active" if is_active else "",
                state_classes="bg-gray-100 font-semibold text-blue-800" if is_active else "text-gray-600",
                icon=section_icon(section.title) if depth == 0 else "",
                title=escape_html(section.title),
                toggle=toggle,
                children=nested
            ))
        return "".join(entries)

    def section_tree(self, sections: List[Section]) -> List[dict]:
        """Id-only copy of the tree for the page script."""
        tree = []
        for section in sections:
            node = {"id": section.id}
            if section.child_sections:
                node["children"] = self.section_tree(section.child_sections)
            tree.append(node)
        return tree
