#!/usr/bin/env python3
"""Main entry point for the holdings CLI."""

import argparse
import sys


def build_parser():
    """Build the argument parser with all subcommands registered.

    Returns:
        argparse.ArgumentParser: The configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="holdings",
        description="Group, total and value portfolio holdings in any currency",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  holdings report holdings.json                       Holdings grouped by asset class
  holdings report holdings.json -g SECTOR             Group by sector
  holdings report holdings.json -v TRADE              Show values in trade currency
  holdings report holdings.json -d EUR -r rates.json  Convert figures to EUR
        """,
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        help="Available commands",
    )

    # Import subcommand modules and register them
    from .report import register_subcommand as register_report
    from .version import register_subcommand as register_version

    register_report(subparsers)
    register_version(subparsers)
    return parser


def main(argv=None):
    """Parse CLI arguments and dispatch to the appropriate subcommand.

    Args:
        argv: Argument list. Defaults to ``sys.argv[1:]``.

    Returns:
        int: Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # If no command specified, show help
    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
