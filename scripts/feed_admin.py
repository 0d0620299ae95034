#!/usr/bin/env python3
"""CLI tool to inspect and manage stored feed payloads."""

import sys
import asyncio
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from feed_monitor.pipeline.monitor import FeedMonitor


def print_header(title):
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def cmd_status(monitor, args):
    """Show current options and record count."""
    status = monitor.status()

    print_header("RSS FEED MONITOR")
    print(f"\nFeed URL:      {status['feed_url'] or '(not set)'}")
    print(f"Frequency:     {status['frequency']}")
    print(f"Delete every:  {status['delete_every']}")
    print(f"Records:       {status['records']}")


def cmd_list(monitor, args):
    """List stored payloads, newest first."""
    records = monitor.record_store.list_all()
    if not records:
        print("No saved feeds found.")
        return

    print_header(f"SAVED FEEDS ({len(records)})")
    for record in records[:args.limit]:
        print(f"  {record.id:>6}  {record.retrieved_at:%Y-%m-%d %H:%M:%S}  {record.size:>9} B  {record.feed_url}")


def cmd_export(monitor, args):
    """Write one stored payload to a file."""
    record = monitor.record_store.get(args.id)
    if record is None:
        print(f"No record with id {args.id}")
        return 1

    output = Path(args.output or f"rss_feed_{record.id}.xml")
    output.write_bytes(record.feed_data)
    print(f"Wrote {record.size} bytes to {output}")


def cmd_delete(monitor, args):
    """Delete one stored payload."""
    if monitor.record_store.delete(args.id):
        print(f"Deleted record {args.id}")
    else:
        print(f"No record with id {args.id}")
        return 1


def cmd_set(monitor, args):
    """Update options (fetches immediately if the URL changes).

    A running worker picks up the URL and retention at its next tick; a new
    frequency only takes effect there after a restart or a save from the web app.
    """
    current = monitor.config_store.get().to_dict()
    if args.url is not None:
        current["rss_feed_url"] = args.url
    if args.frequency is not None:
        current["rss_feed_frequency"] = args.frequency
    if args.delete_every is not None:
        current["delete_every"] = args.delete_every

    update = asyncio.run(monitor.update_settings(current))
    print(f"Saved: {update.config.to_dict()}")


def cmd_fetch(monitor, args):
    """Fetch and store the feed once, then prune."""
    result = asyncio.run(monitor.fetch_now())
    print(f"Result: {result.status.value}")
    if result.record_id:
        print(f"Stored record {result.record_id}, pruned {result.pruned}")
    if result.error:
        print(f"Error: {result.error}")
        return 1


def main():
    parser = argparse.ArgumentParser(description="Manage the RSS feed monitor")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show options and record count")

    list_parser = subparsers.add_parser("list", help="List stored payloads")
    list_parser.add_argument("--limit", type=int, default=50)

    export_parser = subparsers.add_parser("export", help="Write a payload to a file")
    export_parser.add_argument("id", type=int)
    export_parser.add_argument("-o", "--output")

    delete_parser = subparsers.add_parser("delete", help="Delete a payload")
    delete_parser.add_argument("id", type=int)

    set_parser = subparsers.add_parser("set", help="Update options")
    set_parser.add_argument("--url")
    set_parser.add_argument("--frequency", choices=["hourly", "daily", "weekly"])
    set_parser.add_argument("--delete-every", choices=["week", "month", "year"])

    subparsers.add_parser("fetch", help="Fetch the feed now")

    args = parser.parse_args()

    monitor = FeedMonitor()
    monitor.record_store.create_tables()
    monitor.config_store.initialize()

    commands = {
        "status": cmd_status,
        "list": cmd_list,
        "export": cmd_export,
        "delete": cmd_delete,
        "set": cmd_set,
        "fetch": cmd_fetch,
    }
    return commands[args.command](monitor, args) or 0


if __name__ == "__main__":
    sys.exit(main())
