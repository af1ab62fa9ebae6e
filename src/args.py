"""Argument parsing functionality for nugetfeed."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="nugetfeed",
        description="Query NuGet package sources (V2 OData and V3 JSON feeds, or local folders)",
        add_help=True,
    )

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help=f"YAML file listing package sources (default: {Constants.DEFAULT_CONFIG_FILE})",
                        action="store",
                        type=str,
                        default=Constants.DEFAULT_CONFIG_FILE)
    parser.add_argument("-s", "--source",
                        dest="SOURCE",
                        help="Only query the named package source (repeatable)",
                        action="append",
                        type=str,
                        default=[])
    parser.add_argument("--timeout",
                        dest="TIMEOUT",
                        help=f"Request timeout in seconds (default: {Constants.REQUEST_TIMEOUT})",
                        action="store",
                        type=float)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)

    commands = parser.add_subparsers(dest="COMMAND", required=True)

    commands.add_parser("sources", help="List configured package sources")

    search = commands.add_parser("search", help="Search package sources")
    search.add_argument("TERM", nargs="?", default="", help="Search term (empty lists everything)")
    search.add_argument("--take",
                        dest="TAKE",
                        type=int,
                        default=Constants.DEFAULT_PAGE_SIZE,
                        help="Number of results per source")
    search.add_argument("--skip",
                        dest="SKIP",
                        type=int,
                        default=0,
                        help="Number of results to skip")

    find = commands.add_parser("find", help="Find the versions of a package id")
    find.add_argument("ID", help="Package id")
    find.add_argument("VERSION_SPEC", nargs="?", default="", help="Exact version or range, e.g. [1.0,2.0)")
    find.add_argument("--best",
                      dest="BEST",
                      action="store_true",
                      help="Return only the single best match per source")

    updates = commands.add_parser("updates", help="Check installed packages for updates")
    updates.add_argument("INSTALLED", nargs="+", help="Installed packages as Id@version")

    for sub in (search, updates):
        sub.add_argument("--all-versions",
                         dest="INCLUDE_ALL_VERSIONS",
                         action="store_true",
                         help="Include versions older than the latest")
        sub.add_argument("--prerelease",
                         dest="INCLUDE_PRERELEASE",
                         action="store_true",
                         help="Include prerelease versions")

    return parser.parse_args(argv)
