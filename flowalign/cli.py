"""Command-line interface for flowalign.

Usage:
    flowalign -l https://nifi.example.com:8443 -u admin -p secret align -d -1 -c 3

Exit status is 0 on success and 1 on any configuration, authentication or
alignment failure (argparse usage errors keep their own status 2).
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .aligner import ProcessGroupAligner
from .client import NiFiClient
from .config import build_alignment_request, env_str, resolve_connection_settings
from .errors import FlowAlignError
from .session import open_session


logger = logging.getLogger("flowalign")

EXIT_OK = 0
EXIT_SOFTWARE = 1


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="flowalign", add_help=True)
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("-l", "--location", default=None, help="NiFi base url. (i.e. https://somehost.com:8443)")
    p.add_argument("-u", "--username", default=None, help="Username of the user.")
    p.add_argument("-p", "--password", default=None, help="Password of the user.")
    p.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds (default: 30)")
    p.add_argument("--insecure", action="store_true", help="Do not verify the server's TLS certificate")
    p.add_argument("--log-level", default=env_str("FLOWALIGN_LOG_LEVEL") or "info")
    sub = p.add_subparsers(dest="command")

    align = sub.add_parser("align", help="Align independent process groups on the canvas in a grid manner.")
    align.add_argument(
        "-d",
        "--depth",
        type=int,
        default=5,
        help="Depth upto which process groups needs to be aligned. NOTE: Provide -1 to align all process groups recursively.",
    )
    align.add_argument(
        "-r",
        "--rootpgid",
        default=None,
        help="Root process group id to start aligning from (default: the server's root process group).",
    )
    align.add_argument(
        "-c",
        "--columns",
        default="4",
        help="Maximum number of columns. NOTE: This should not be less than 1.",
    )
    align.add_argument("--dry-run", action="store_true", help="Log the planned moves without updating anything")

    return p


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name or "info").upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(level)


def _run_align(ns: argparse.Namespace) -> int:
    try:
        request = build_alignment_request(
            depth=ns.depth,
            root_id=ns.rootpgid,
            columns=ns.columns,
            dry_run=bool(getattr(ns, "dry_run", False)),
        )
        settings = resolve_connection_settings(
            location=ns.location,
            username=ns.username,
            password=ns.password,
            timeout_s=ns.timeout,
            insecure=bool(ns.insecure),
        )
    except FlowAlignError as e:
        logger.error(str(e))
        return EXIT_SOFTWARE

    client = NiFiClient(settings.location, timeout_s=settings.timeout_s, verify_tls=settings.verify_tls)
    try:
        with open_session(client, settings.username, settings.password) as session:
            ProcessGroupAligner(client, session).run(request)
    except FlowAlignError as e:
        logger.error(f"Unable to align process groups: {e}")
        return EXIT_SOFTWARE
    return EXIT_OK


def main(args: Optional[List[str]] = None) -> int:
    if args is None:
        args = sys.argv[1:]

    parser = _build_parser()
    # Stray arguments are tolerated, not fatal.
    ns, unmatched = parser.parse_known_args(args)
    _configure_logging(ns.log_level)
    if unmatched:
        logger.warning(f"Ignoring unmatched arguments: {' '.join(unmatched)}")

    if ns.command == "align":
        return _run_align(ns)

    parser.print_help(sys.stderr)
    parser.error("No Command provided to Execute!")


if __name__ == "__main__":
    raise SystemExit(main())
