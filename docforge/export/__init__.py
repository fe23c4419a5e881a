"""Static site export and single-document bundles."""

from .site import (
    ExportedAsset,
    SearchHit,
    SiteExportResult,
    StaticSiteExporter,
    asset_extension,
    asset_path,
    build_search_index,
    embed_json,
    export_file_stem,
    format_updated,
    search_sections,
    section_icon,
)
from .bundle import (
    bundle_file_name,
    export_document_bundle,
    import_document,
    sanitize_document,
    sanitize_file_name,
)

__all__ = [
    "ExportedAsset",
    "SearchHit",
    "SiteExportResult",
    "StaticSiteExporter",
    "asset_extension",
    "asset_path",
    "build_search_index",
    "embed_json",
    "export_file_stem",
    "format_updated",
    "search_sections",
    "section_icon",
    "bundle_file_name",
    "export_document_bundle",
    "import_document",
    "sanitize_document",
    "sanitize_file_name"
]
