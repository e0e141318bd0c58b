"""
EPG Catalog command line interface

Commands:
    python -m epg_catalog build               # build and write the unified catalog
    python -m epg_catalog build -o out.json
    python -m epg_catalog filter              # write the allow-listed XMLTV subset
    python -m epg_catalog filter -o out.xml
"""

import argparse
import asyncio
import json
import sys

from epg_catalog.config import settings, setup_logging
from epg_catalog.services.catalog_fetch_service import fetch_and_process, filter_and_process


def cmd_build(args) -> int:
    """Run one catalog build."""
    if args.output:
        settings.catalog_output_path = args.output
    result = asyncio.run(fetch_and_process())
    print(json.dumps(result, indent=2))
    return 1 if "error" in result else 0


def cmd_filter(args) -> int:
    """Run one allow-list filter pass."""
    if args.output:
        settings.filtered_output_path = args.output
    result = asyncio.run(filter_and_process())
    print(json.dumps(result, indent=2))
    return 1 if "error" in result else 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="epg_catalog",
        description="Merge EPG sources into a unified channel catalog",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build the unified catalog")
    build.add_argument("-o", "--output", help="Catalog output path (default: CATALOG_OUTPUT_PATH)")
    build.set_defaults(func=cmd_build)

    filter_ = subparsers.add_parser("filter", help="Filter the XMLTV source by the allow-list")
    filter_.add_argument("-o", "--output", help="Filtered output path (default: FILTERED_OUTPUT_PATH)")
    filter_.set_defaults(func=cmd_filter)

    args = parser.parse_args(argv)
    setup_logging()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
