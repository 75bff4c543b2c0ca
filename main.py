# main.py
"""
Main command-line interface for converting DBC files into SQLite.
Provides commands to convert files, inspect a file's header and list the
known tables of a client version.
"""

import argparse
import logging
import os
import sys

import structlog

from config import SUPPORTED_VERSIONS, get_settings_from_env, setup_logging
from database.build_database import run_conversion
from dbc.errors import DbcError
from dbc.header import parse_header
from processing.registry import TableRegistry

log = structlog.get_logger(__name__)


def build_parser(settings: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbc2sqlite",
        description="Convert World of Warcraft DBC files into a SQLite database.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    subparsers = parser.add_subparsers(
        dest="command", required=True, help="Available commands"
    )

    def add_version(sub: argparse.ArgumentParser):
        sub.add_argument(
            "--version",
            choices=SUPPORTED_VERSIONS,
            default=settings["version"],
            help="Client version of the DBC files (default: %(default)s).",
        )
        sub.add_argument(
            "--definitions",
            nargs="+",
            default=settings["definition_files"],
            metavar="FILE",
            help="Extra JSON table definition files.",
        )

    # --- 'convert' command ---
    parser_convert = subparsers.add_parser(
        "convert", help="Convert DBC files or directories into a SQLite database."
    )
    parser_convert.add_argument("paths", nargs="+", metavar="PATH")
    parser_convert.add_argument(
        "-o",
        "--output",
        default=settings["db_path"],
        help="Output database file (default: %(default)s).",
    )
    parser_convert.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Stop at the first table that fails to convert.",
    )
    parser_convert.add_argument(
        "--fresh",
        action="store_true",
        help="Delete the output database before converting.",
    )
    add_version(parser_convert)

    # --- 'info' command ---
    parser_info = subparsers.add_parser(
        "info", help="Print the header of a DBC file."
    )
    parser_info.add_argument("file", metavar="FILE")
    add_version(parser_info)

    # --- 'tables' command ---
    parser_tables = subparsers.add_parser(
        "tables", help="List the tables known for a client version."
    )
    add_version(parser_tables)

    return parser


def print_info(path: str, registry: TableRegistry):
    with open(path, "rb") as f:
        data = f.read()
    header = parse_header(data)
    name = os.path.basename(path)

    print(f"File:              {name}")
    print(f"Records:           {header.record_count}")
    print(f"Fields:            {header.field_count}")
    print(f"Record size:       {header.record_size}")
    print(f"String block size: {header.string_block_size}")
    print(f"File size:         {len(data)} (expected {header.file_size})")
    if name in registry:
        schema = registry.schema_for(name)
        matches = (
            schema.record_size == header.record_size
            and schema.field_count == header.field_count
        )
        print(f"Definition:        {schema.name} ({'matches' if matches else 'MISMATCH'})")
    else:
        print(f"Definition:        none for '{registry.version.value}'")


def main(argv=None) -> int:
    """Parses command-line arguments and executes the requested action."""
    setup_logging()
    settings = get_settings_from_env()
    args = build_parser(settings).parse_args(argv)
    if args.verbose:
        setup_logging(logging.DEBUG)

    try:
        if args.command == "convert":
            result = run_conversion(
                args.paths,
                db_path=args.output,
                version=args.version,
                definition_files=args.definitions,
                stop_on_error=args.stop_on_error,
                fresh=args.fresh,
            )
            for name, error in result.failed.items():
                print(f"FAILED {name}: {error}", file=sys.stderr)
            return 0 if result.success else 1

        registry = TableRegistry.load(args.version, args.definitions)
        if args.command == "info":
            print_info(args.file, registry)
        elif args.command == "tables":
            for name in registry.table_names():
                print(name)
        return 0

    except (DbcError, ValueError, OSError) as e:
        log.error("Command failed.", command=args.command, error=str(e))
        return 1
    except Exception:
        log.exception("A fatal error occurred in the conversion tool.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
