#!/usr/bin/env python3
"""
Remove gallery and drawing images that no page (or page revision) references.

Runs as a dry run unless --force is given.
Use:  python scripts/cleanup_images.py [--no-revisions] [--force] [--type gallery]
"""
import os
import sys
import asyncio
import argparse
import logging

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apps.media.deps import get_cleanup_service
from apps.media.storage.models import SWEEPABLE_TYPES

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Delete images not used in any page content")
    parser.add_argument("--no-revisions", action="store_true",
                        help="Ignore page revisions when looking for references")
    parser.add_argument("--force", "-f", action="store_true",
                        help="Actually delete; without this only a list is printed")
    parser.add_argument("--type", dest="types", action="append", choices=SWEEPABLE_TYPES,
                        help="Image type to check (repeatable, default: all sweepable types)")
    return parser.parse_args(argv)


async def run(args) -> list:
    cleanup = get_cleanup_service()
    return await cleanup.sweep(
        check_revisions=not args.no_revisions,
        dry_run=not args.force,
        types=args.types or list(SWEEPABLE_TYPES),
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    paths = asyncio.run(run(args))

    verb = "Deleted" if args.force else "Would delete"
    for path in paths:
        print(path)
    print(f"{verb} {len(paths)} image(s)")
    if paths and not args.force:
        print("Run again with --force to delete them")
    return 0


if __name__ == "__main__":
    sys.exit(main())
