"""Version subcommand for the holdings CLI."""

import platform

from .. import DISTRIBUTION_NAME, __version__


def register_subcommand(subparsers):
    """Register the version subcommand with the argument parser."""
    parser = subparsers.add_parser(
        "version",
        help="Display version information",
        description=f"Display the installed {DISTRIBUTION_NAME} version.",
    )
    parser.set_defaults(func=run)


def run(args):
    """Print the package and interpreter versions. Returns exit code 0."""
    print(f"{DISTRIBUTION_NAME} {__version__} (Python {platform.python_version()})")
    return 0
