#!/usr/bin/env python3
"""
Lorekeeper - Rich-content documents for a worldbuilding story bible

Main entry point for the Lorekeeper tools. Renders serialized block documents,
lists the attachments they reference, and reclaims attachments that an edit
made unreferenced.
"""

import logging
import sys
import argparse
import asyncio
from pathlib import Path
from typing import List, Optional

from lorekeeper.attachments import AttachmentReclaimer, create_storage, extract_attachment_urls
from lorekeeper.config import ConfigManager, config
from lorekeeper.models import ReclaimReport
from lorekeeper.rendering import BlockRenderer


def setup_logging(settings: ConfigManager = config):
    """Configure logging for the application."""
    level = getattr(logging, settings.get("logging.level", "INFO").upper())
    format_str = settings.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = settings.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def read_content(path: str) -> str:
    """
    Read serialized document content from a file.

    A missing path reads as empty content, the state of a newly created entry.
    """
    file_path = Path(path)
    if not file_path.exists():
        logging.warning(f"Content file not found, treating as empty: {path}")
        return ""
    with open(file_path, 'r', encoding='utf-8') as f:
        return f.read()


def run_render(path: str, out: Optional[str] = None, class_name: str = "",
               settings: ConfigManager = config) -> str:
    """
    Render a serialized document to HTML.

    Args:
        path: File holding the serialized document
        out: Optional file to write the HTML to
        class_name: Extra classes for the wrapper element
        settings: Configuration to use

    Returns:
        The rendered HTML
    """
    renderer = BlockRenderer(empty_message=settings.empty_message)
    rendered = renderer.render_document(read_content(path), class_name).to_html()

    if out:
        out_path = Path(out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with open(out_path, 'w', encoding='utf-8') as f:
            f.write(rendered)
        logging.info(f"Rendered {path} to {out}")

    return rendered


def run_extract(path: str) -> List[str]:
    """Return the attachment URLs a serialized document references, sorted."""
    return sorted(extract_attachment_urls(read_content(path)))


def run_reclaim(old_path: str, new_path: str, dry_run: bool = False, token: Optional[str] = None,
                settings: ConfigManager = config) -> Optional[ReclaimReport]:
    """
    Reclaim attachments referenced by the old document but not the new one.

    Args:
        old_path: File holding the document before the edit
        new_path: File holding the saved document after the edit
        dry_run: Only report what would be deleted
        token: Caller credential for the endpoint backend
        settings: Configuration to use

    Returns:
        The reclamation report, or None for dry runs and disabled reclamation
    """
    old_content = read_content(old_path)
    new_content = read_content(new_path)
    storage = create_storage(settings, token=token)
    reclaimer = AttachmentReclaimer(storage, settings.max_concurrent_deletions)

    if dry_run or not settings.reclaim_enabled:
        plan = reclaimer.plan(old_content, new_content)
        print(f"Removed attachments: {len(plan.removed)}")
        for url in plan.targets:
            print(f"  would delete: {url}")
        for url in plan.skipped:
            print(f"  outside storage domain: {url}")
        if not settings.reclaim_enabled:
            logging.info("Attachment reclamation is disabled in configuration")
        return None

    async def _run() -> ReclaimReport:
        async with storage:
            return await reclaimer.reclaim(old_content, new_content)

    report = asyncio.run(_run())

    print(f"Removed attachments: {len(report.removed)}")
    print(f"Skipped (outside storage domain): {len(report.skipped)}")
    print(f"Deleted: {report.succeeded}")
    print(f"Failed: {report.failed}")
    for failure in report.failures:
        print(f"  {failure.url}: {failure.reason}")

    return report


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Lorekeeper - Rich-content documents for a worldbuilding story bible",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py render lore.json --out lore.html      # Render a document to HTML
  python main.py extract lore.json                     # List referenced images
  python main.py reclaim old.json new.json --dry-run   # Show which images an edit orphaned
  python main.py reclaim old.json new.json             # Delete them from storage
        """
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to the configuration file (default: config.yaml)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Lorekeeper 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Render a serialized document to HTML")
    render_parser.add_argument("path", help="File holding the serialized document")
    render_parser.add_argument("--out", type=str, help="Write the HTML to this file instead of stdout")
    render_parser.add_argument("--class-name", type=str, default="", help="Extra wrapper classes")

    extract_parser = subparsers.add_parser("extract", help="List attachment URLs a document references")
    extract_parser.add_argument("path", help="File holding the serialized document")

    reclaim_parser = subparsers.add_parser("reclaim", help="Delete attachments an edit made unreferenced")
    reclaim_parser.add_argument("old", help="File holding the document before the edit")
    reclaim_parser.add_argument("new", help="File holding the saved document after the edit")
    reclaim_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what would be deleted"
    )
    reclaim_parser.add_argument("--token", type=str, help="Bearer token for the endpoint backend")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    settings = config if args.config == "config.yaml" else ConfigManager(args.config)
    setup_logging(settings)

    try:
        if args.command == "render":
            rendered = run_render(args.path, args.out, args.class_name, settings)
            if not args.out:
                print(rendered)
        elif args.command == "extract":
            for url in run_extract(args.path):
                print(url)
        elif args.command == "reclaim":
            # Deletion failures are reported, never turned into a failing exit status
            run_reclaim(args.old, args.new, args.dry_run, args.token, settings)

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print("\nInterrupted.")
        return 130

    except Exception as e:
        logging.error(f"{args.command} failed: {e}")
        print(f"\n{args.command} failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
