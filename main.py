#!/usr/bin/env python3
"""
DocForge - Hierarchical Block Document Engine

Command-line entry point for operational tasks on a local DocForge
database: static site and bundle exports, document imports, backups,
restores and automatic snapshots.
"""

import asyncio
import logging
import sys
import argparse
from pathlib import Path

from docforge.backup import BackupEngine
from docforge.config import config
from docforge.exceptions import DocForgeError
from docforge.export import StaticSiteExporter, bundle_file_name, export_document_bundle, import_document
from docforge.storage import DatabaseManager, DuckDBBlobStore, DuckDBDocumentStore, DuckDBSnapshotStore


def setup_logging():
    """Configure logging for the application."""
    level = getattr(logging, config.get("logging.level", "INFO").upper())
    format_str = config.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = config.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def build_stores(db: DatabaseManager):
    """Create the document, blob and snapshot stores over one database."""
    return DuckDBDocumentStore(db), DuckDBBlobStore(db), DuckDBSnapshotStore(db)


async def run_export_site(db: DatabaseManager, args) -> Path:
    documents, blobs, _ = build_stores(db)
    document = await documents.get(args.document_id)
    if document is None:
        raise DocForgeError(f"Document not found: {args.document_id}")

    result = await StaticSiteExporter(blobs).export(document, single_file=args.single_file)
    target = result.write(args.output)
    if result.omitted_asset_ids:
        print(f"Exported with {len(result.omitted_asset_ids)} missing assets omitted")
    return target


async def run_export_document(db: DatabaseManager, args) -> Path:
    documents, blobs, _ = build_stores(db)
    document = await documents.get(args.document_id)
    if document is None:
        raise DocForgeError(f"Document not found: {args.document_id}")

    output = Path(args.output)
    output.mkdir(parents=True, exist_ok=True)
    target = output / bundle_file_name(document)
    target.write_bytes(await export_document_bundle(document, blobs))
    return target


async def run_import_document(db: DatabaseManager, args) -> str:
    documents, blobs, _ = build_stores(db)
    source = Path(args.file)
    document = await import_document(source.read_bytes(), source.name, blobs, owner_id=args.owner)
    await documents.save(document)
    return document.id


async def run_backup(db: DatabaseManager, args) -> Path:
    documents, blobs, snapshots = build_stores(db)
    engine = BackupEngine(documents, blobs, snapshots)
    target = Path(args.output) if args.output else Path(config.export_directory) / engine.default_backup_name()
    return await engine.write_backup_file(target, owner_id=args.owner)


async def run_restore(db: DatabaseManager, args):
    documents, blobs, snapshots = build_stores(db)
    engine = BackupEngine(documents, blobs, snapshots)
    if args.snapshot:
        result = await engine.restore_snapshot(args.source, args.owner)
        if result is None:
            raise DocForgeError(f"Snapshot not found: {args.source}")
        return result
    return await engine.restore(engine.read_backup_file(args.source), args.owner)


async def run_snapshot(db: DatabaseManager, args) -> str:
    documents, blobs, snapshots = build_stores(db)
    return await BackupEngine(documents, blobs, snapshots).create_snapshot()


async def run_list_snapshots(db: DatabaseManager, args):
    documents, blobs, snapshots = build_stores(db)
    return await BackupEngine(documents, blobs, snapshots).list_snapshots()


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="DocForge - Hierarchical Block Document Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py export-site 3f2a... --single-file       # Standalone HTML page
  python main.py export-document 3f2a...                 # Zip bundle with assets
  python main.py import-document doc.zip --owner alice   # Import a bundle
  python main.py backup --owner alice                    # Full backup to exports/
  python main.py restore backup.json --owner alice       # Restore a backup file
  python main.py list-snapshots                          # Show automatic snapshots
        """
    )

    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the DuckDB database (default: from config.yaml)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="DocForge 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_site = subparsers.add_parser("export-site", help="Export a document as a static site")
    export_site.add_argument("document_id", help="Document to export")
    export_site.add_argument("--single-file", action="store_true",
                             help="Write one HTML file with inlined assets instead of a zip archive")
    export_site.add_argument("--output", default=config.export_directory, help="Output directory")

    export_document = subparsers.add_parser("export-document", help="Export a document bundle")
    export_document.add_argument("document_id", help="Document to export")
    export_document.add_argument("--output", default=config.export_directory, help="Output directory")

    import_doc = subparsers.add_parser("import-document", help="Import a document bundle or JSON file")
    import_doc.add_argument("file", help="Bundle (.zip) or document (.json) to import")
    import_doc.add_argument("--owner", default=None, help="Owner to assign to the imported document")

    backup = subparsers.add_parser("backup", help="Write a full backup file")
    backup.add_argument("--owner", default=None, help="Only back up this owner's documents")
    backup.add_argument("--output", default=None, help="Backup file path")

    restore = subparsers.add_parser("restore", help="Restore a backup file or snapshot")
    restore.add_argument("source", help="Backup file path, or snapshot key with --snapshot")
    restore.add_argument("--owner", required=True, help="Owner whose documents are restored")
    restore.add_argument("--snapshot", action="store_true", help="Treat source as a snapshot key")

    subparsers.add_parser("snapshot", help="Take an automatic snapshot now")
    subparsers.add_parser("list-snapshots", help="List automatic snapshots")

    return parser.parse_args(argv)


COMMANDS = {
    "export-site": run_export_site,
    "export-document": run_export_document,
    "import-document": run_import_document,
    "backup": run_backup,
    "restore": run_restore,
    "snapshot": run_snapshot,
    "list-snapshots": run_list_snapshots,
}


def report(command: str, outcome) -> None:
    """Print the outcome of a command."""
    if command == "list-snapshots":
        if not outcome:
            print("No automatic snapshots found.")
        for snapshot in outcome:
            print(f"{snapshot.key}  {snapshot.timestamp:%Y-%m-%d %H:%M:%S}  {snapshot.document_count} documents")
    elif command == "restore":
        print(f"Restored {len(outcome.restored)} documents and {outcome.assets_restored} assets")
        if outcome.failed:
            print(f"Failed to restore: {', '.join(outcome.failed)}")
    elif command == "import-document":
        print(f"Imported document {outcome}")
    elif command == "snapshot":
        print(f"Snapshot created: {outcome}")
    else:
        print(f"Written: {outcome}")


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging()

    logging.info(f"DocForge command: {args.command}")

    try:
        with DatabaseManager(args.db or config.database_filename) as db:
            outcome = asyncio.run(COMMANDS[args.command](db, args))
        report(args.command, outcome)

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print("\nInterrupted.")

    except DocForgeError as e:
        logging.error(f"{args.command} failed: {e}")
        print(f"\n{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
