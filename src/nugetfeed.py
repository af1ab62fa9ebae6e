"""nugetfeed: query NuGet package sources from the command line."""

import json
import logging
import os
import sys

import yaml

from args import parse_args
from constants import Constants, ExitCodes
from common.errors import ParseError
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from registry.nuget import Package, get_updates_from_sources
from source_config import load_sources
from versioning import PackageIdentifier, parse_identifier_token

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Configure logging from CLI arguments."""
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def select_sources(sources, names):
    """Enabled sources, optionally restricted to the given names."""
    selected = [s for s in sources if s.enabled]
    if names:
        selected = [s for s in selected if s.name in names]
    return selected


def parse_installed(tokens):
    """Turn ``Id@version`` tokens into installed Package records.

    Raises:
        ParseError: when a token lacks a version or the version is malformed.
    """
    installed = []
    for token in tokens:
        identifier = parse_identifier_token(token)
        if identifier is None:
            continue
        if not identifier.version or identifier.has_range:
            raise ParseError(f"installed package must be Id@version: {token!r}")
        installed.append(Package(id=identifier.id, version=identifier.version))
    return installed


def run_command(args, sources):
    """Execute the selected sub-command and return JSON-ready output."""
    if args.COMMAND == "sources":
        return [
            {
                "name": s.name,
                "path": s.saved_path,
                "protocolVersion": s.protocol_version,
                "local": s.is_local_path,
                "enabled": s.enabled,
            }
            for s in sources
        ]

    if args.COMMAND == "search":
        results = []
        for source in sources:
            results.extend(
                source.search(
                    args.TERM,
                    args.INCLUDE_ALL_VERSIONS,
                    args.INCLUDE_PRERELEASE,
                    args.TAKE,
                    args.SKIP,
                )
            )
        return [p.to_dict() for p in results]

    if args.COMMAND == "find":
        identifier = PackageIdentifier(args.ID, args.VERSION_SPEC)
        results = []
        for source in sources:
            if args.BEST:
                best = source.get_specific_package(identifier)
                if best is not None:
                    results.append(best)
            else:
                results.extend(source.find_packages_by_id(identifier))
        return [p.to_dict() for p in results]

    if args.COMMAND == "updates":
        installed = parse_installed(args.INSTALLED)
        updates = get_updates_from_sources(
            sources,
            installed,
            args.INCLUDE_PRERELEASE,
            args.INCLUDE_ALL_VERSIONS,
        )
        return [p.to_dict() for p in updates]

    raise ValueError(f"unknown command: {args.COMMAND}")


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug("CLI start", extra=extra_context(event="function_entry", component="cli", action="main"))

    if not os.path.isfile(args.CONFIG):
        logger.error("Package source configuration not found: %s", args.CONFIG)
        sys.exit(ExitCodes.FILE_ERROR.value)
    try:
        sources = load_sources(args.CONFIG, timeout=args.TIMEOUT)
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Unable to read %s: %s", args.CONFIG, exc)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if args.COMMAND == "sources":
        selected = sources
    else:
        selected = select_sources(sources, args.SOURCE)
        if not selected:
            logger.warning("No enabled package sources to query.")

    try:
        output = run_command(args, selected)
    except ParseError as exc:
        logger.error("%s", exc)
        sys.exit(ExitCodes.INPUT_ERROR.value)

    print(json.dumps(output, indent=2))
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
