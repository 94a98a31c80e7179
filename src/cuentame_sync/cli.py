"""
Command-line interface for cuentame-sync.

Usage:
    cuentame-sync ingest                  # Add new feed episodes to the index
    cuentame-sync reprocess               # Rebuild the index, keeping manual data
    cuentame-sync reset                   # Replace the index with an empty one
    cuentame-sync inspect                 # Summarize the stored index
    cuentame-sync inspect --sort episode --order asc --query viaje
    cuentame-sync update episode.json     # Upsert one episode record ('-' for stdin)
    cuentame-sync debug-feed --limit 3    # Show raw feed items
    cuentame-sync ingest --output-json    # JSON output for CI/automation
"""

import argparse
import json
import logging
import sys

from cuentame_sync.config import get_config
from cuentame_sync.triggers.rss_sync import OperationResult


def _finish(result: OperationResult, args) -> None:
    """Print an operation result and exit non-zero on failure."""
    if args.output_json:
        print(result.to_json())
        sys.exit(0 if result.success else 1)

    if not result.success:
        print(f"ERROR: {result.error}")
        sys.exit(1)

    print(result.message)
    for warning in result.warnings:
        title = f" ({warning['title']})" if warning.get("title") else ""
        print(f"  WARNING item {warning['position']}{title}: {warning['reason']}")


def cmd_ingest(args):
    """Add new episodes from the RSS feed."""
    from cuentame_sync.triggers.rss_sync import run_ingestion

    _finish(run_ingestion(config=get_config()), args)


def cmd_reprocess(args):
    """Rebuild the index from the RSS feed, preserving manual data."""
    from cuentame_sync.triggers.rss_sync import run_reprocess

    _finish(run_reprocess(config=get_config()), args)


def cmd_reset(args):
    """Clear the episodes index."""
    from cuentame_sync.triggers.rss_sync import reset_index

    if not args.yes and not args.output_json:
        answer = input("This replaces the episodes index with an empty one. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            sys.exit(1)

    _finish(reset_index(config=get_config()), args)


def cmd_inspect(args):
    """Summarize the stored index."""
    from cuentame_sync.triggers.rss_sync import inspect_index

    result = inspect_index(
        config=get_config(),
        sort_by=args.sort,
        order=args.order,
        query=args.query or "",
    )

    if args.output_json or not result.success:
        _finish(result, args)

    print(result.message)
    if result.data.get("lastUpdated"):
        print(f"Last updated: {result.data['lastUpdated']}")
    for ep in result.data.get("episodes", []):
        notes = " [shownotes]" if ep["hasShownotes"] else ""
        print(
            f"  {ep['episodeNumber']:>4}  {ep['publishDate'][:10]}  "
            f"{ep['status']:<15} {ep['title']}{notes}"
        )


def cmd_update(args):
    """Upsert one episode record from a JSON file."""
    from cuentame_sync.triggers.rss_sync import update_episode

    try:
        if args.file == "-":
            payload = json.load(sys.stdin)
        else:
            with open(args.file, "r", encoding="utf-8") as f:
                payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"ERROR: Could not read episode record: {e}")
        sys.exit(1)

    if not isinstance(payload, dict):
        print("ERROR: Episode record must be a JSON object")
        sys.exit(1)

    _finish(update_episode(payload, config=get_config()), args)


def cmd_debug_feed(args):
    """Show the raw shape of the first feed items."""
    from cuentame_sync.triggers.rss_sync import inspect_feed

    result = inspect_feed(config=get_config(), limit=args.limit)

    if not result.success:
        _finish(result, args)

    # Raw items are only meaningful as JSON
    print(result.to_json())


def _add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-json",
        action="store_true",
        default=False,
        help="Output result as JSON (for CI/automation)",
    )


def main():
    parser = argparse.ArgumentParser(
        prog="cuentame-sync",
        description="cuentame-sync -- keep the podcast episode index in sync with the RSS feed",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log per-item details",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ingest
    sub_ingest = subparsers.add_parser("ingest", help="Add new feed episodes to the index")
    _add_json_flag(sub_ingest)
    sub_ingest.set_defaults(func=cmd_ingest)

    # reprocess
    sub_reprocess = subparsers.add_parser(
        "reprocess",
        help="Rebuild the index from the feed, preserving manual data",
    )
    _add_json_flag(sub_reprocess)
    sub_reprocess.set_defaults(func=cmd_reprocess)

    # reset
    sub_reset = subparsers.add_parser("reset", help="Replace the index with an empty one")
    sub_reset.add_argument(
        "-y", "--yes",
        action="store_true",
        default=False,
        help="Do not ask for confirmation",
    )
    _add_json_flag(sub_reset)
    sub_reset.set_defaults(func=cmd_reset)

    # inspect
    sub_inspect = subparsers.add_parser("inspect", help="Summarize the stored index")
    sub_inspect.add_argument(
        "--sort",
        choices=["date", "episode"],
        default=None,
        help="Sort the listing (default: stored order)",
    )
    sub_inspect.add_argument(
        "--order",
        choices=["asc", "desc"],
        default="desc",
        help="Sort order (default: desc)",
    )
    sub_inspect.add_argument(
        "--query",
        default=None,
        help="Only list episodes whose title, number or description match",
    )
    _add_json_flag(sub_inspect)
    sub_inspect.set_defaults(func=cmd_inspect)

    # update
    sub_update = subparsers.add_parser("update", help="Upsert one episode record")
    sub_update.add_argument("file", help="Path to a JSON episode record, or '-' for stdin")
    _add_json_flag(sub_update)
    sub_update.set_defaults(func=cmd_update)

    # debug-feed
    sub_debug = subparsers.add_parser("debug-feed", help="Show raw feed items")
    sub_debug.add_argument(
        "--limit",
        type=int,
        default=3,
        help="Number of items to show (default: 3)",
    )
    sub_debug.set_defaults(func=cmd_debug_feed, output_json=True)

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args.func(args)


if __name__ == "__main__":
    main()
