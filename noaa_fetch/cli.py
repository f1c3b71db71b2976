#!/usr/bin/env python3
# ABOUTME: noaa-fetch command line entry point
# ABOUTME: Fetches GHCND station data, searches/describes ERDDAP datasets and clears the cache

import argparse
import logging
import sys
from pathlib import Path

from noaa_fetch.core.cache import clear_cache
from noaa_fetch.external_apis.erddap_client import ERDDAPClient
from noaa_fetch.external_apis.ghcnd import GHCNDClient
from noaa_fetch.utils.logging_config import setup_main_logger


def run_ghcnd(args):
    client = GHCNDClient(path=args.cache_dir)
    tables = client.search(
        args.station,
        date_min=args.date_min,
        date_max=args.date_max,
        var=args.var or "all",
        overwrite=args.overwrite,
    )

    if args.output_dir is None:
        for element, df in tables.items():
            print(f"{element}: {len(df)} rows")
            print(df.head())
        return 0

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for element, df in tables.items():
        out_file = output_dir / f"{args.station}_{element}.csv"
        df.to_csv(out_file, index=False)
        logging.info(f"Wrote {len(df)} rows to {out_file}")
    return 0


def run_erddap_search(args):
    client = ERDDAPClient(base_url=args.url)
    result = client.search(args.query, page=args.page, page_size=args.page_size, which=args.which)
    print(result)
    return 0


def run_erddap_info(args):
    client = ERDDAPClient(base_url=args.url)
    print(client.info(args.datasetid))
    return 0


def run_clear_cache(args):
    removed = clear_cache(args.cache_dir, pattern=args.pattern)
    print(f"Removed {removed} cached files")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="noaa-fetch", description="Fetch NOAA climate and ocean data")
    parser.add_argument("--log_level", type=str, choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="INFO",
                        help="Logging level (default: INFO)")
    parser.add_argument("--log_file", type=str, default=None,
                        help="Also write a DEBUG level log to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ghcnd = subparsers.add_parser("ghcnd", help="Daily station data from GHCND")
    ghcnd.add_argument("station", help="GHCND station id (e.g. AGE00147704)")
    ghcnd.add_argument("--var", nargs="+", default=None, help="Element codes to keep (default: all)")
    ghcnd.add_argument("--date_min", type=str, default=None, help="Keep dates after this (YYYY-MM-DD)")
    ghcnd.add_argument("--date_max", type=str, default=None, help="Keep dates before this (YYYY-MM-DD)")
    ghcnd.add_argument("--overwrite", action="store_true", help="Download again even if cached")
    ghcnd.add_argument("--cache_dir", type=str, default=None, help="Directory for cached .dly files")
    ghcnd.add_argument("--output_dir", type=str, default=None,
                       help="Write one CSV per element here instead of printing")
    ghcnd.set_defaults(func=run_ghcnd)

    search = subparsers.add_parser("erddap-search", help="Search ERDDAP datasets")
    search.add_argument("query", help="Search terms")
    search.add_argument("--which", choices=["griddap", "tabledap"], default="griddap",
                        help="Kind of dataset to list (default: griddap)")
    search.add_argument("--page", type=int, default=None)
    search.add_argument("--page_size", type=int, default=None)
    search.add_argument("--url", type=str, default=None, help="ERDDAP server base URL")
    search.set_defaults(func=run_erddap_search)

    info = subparsers.add_parser("erddap-info", help="Describe an ERDDAP dataset")
    info.add_argument("datasetid", help="ERDDAP dataset id")
    info.add_argument("--url", type=str, default=None, help="ERDDAP server base URL")
    info.set_defaults(func=run_erddap_info)

    clear = subparsers.add_parser("clear-cache", help="Delete cached ERDDAP files")
    clear.add_argument("--cache_dir", type=str, default=None, help="Cache directory (default: configured)")
    clear.add_argument("--pattern", type=str, default="*", help="Glob of files to remove (default: *)")
    clear.set_defaults(func=run_clear_cache)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    # Convert log level string to logging constant
    log_level = getattr(logging, args.log_level)
    setup_main_logger(args.log_file, log_level)
    logging.debug(f"Running noaa-fetch {args.command}")

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
