# seo_pilot/cli.py

import argparse
import asyncio
import logging
from typing import List, Optional

from seo_pilot import __version__, history
from seo_pilot.commands.audit import ALL_CHECKS, run_audit
from seo_pilot.commands.discover import run_discover
from seo_pilot.commands.index import SERVICES, run_index
from seo_pilot.commands.inspect import run_inspect
from seo_pilot.commands.rank import run_rank
from seo_pilot.commands.setup import run_setup
from seo_pilot.config import DEFAULT_CONFIG_FILE
from seo_pilot.utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return n


# ---------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="seo-pilot", description="SEO automation for a single website")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--verbose", action="store_true", help="Log debug output to stderr")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to the config file")

    sub = p.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    s = sub.add_parser("index", parents=[common], help="Submit sitemap URLs to indexing APIs")
    s.add_argument("--service", choices=list(SERVICES) + ["all"], default="all", help="Service to submit to")
    s.add_argument("--dry-run", action="store_true", help="List URLs without submitting")

    s = sub.add_parser("inspect", parents=[common], help="Check Google indexing status")
    s.add_argument("--url", help="Inspect a single URL instead of the whole sitemap")

    s = sub.add_parser("rank", parents=[common], help="Track keyword positions in Search Console")
    s.add_argument("--days", type=_positive_int, default=28, help="Days of data to query")
    s.add_argument("--keyword", help="Filter by a single keyword")

    s = sub.add_parser("discover", parents=[common], help="Find forums and directories for link building")
    s.add_argument("--type", choices=["forums", "directories", "all"], default="forums", help="Discovery mode")
    s.add_argument("--keyword", help="Restrict forum discovery to one configured keyword")

    s = sub.add_parser("audit", parents=[common], help="Audit on-page SEO signals")
    s.add_argument("--url", help="Audit a single URL instead of the whole sitemap")
    s.add_argument("--checks", default="all", help=f"Comma-separated checks: {','.join(ALL_CHECKS)} (default: all)")
    s.add_argument("--base-url", help="Audit another deployment; sitemap becomes <base-url>/sitemap.xml")
    s.add_argument("--sitemap", help="Sitemap URL to audit instead of the configured one")

    sub.add_parser("setup", parents=[common], help="Interactive configuration wizard")
    return p


def dispatch(args: argparse.Namespace):
    """Coroutine for the selected network command."""
    if args.command == "index":
        return run_index(args.config, service=args.service, dry_run=args.dry_run)
    if args.command == "inspect":
        return run_inspect(args.config, url=args.url)
    if args.command == "rank":
        return run_rank(args.config, days=args.days, keyword=args.keyword)
    if args.command == "discover":
        return run_discover(args.config, type=args.type, keyword=args.keyword)
    if args.command == "audit":
        return run_audit(args.config, url=args.url, checks=args.checks, base_url=args.base_url, sitemap=args.sitemap)
    raise ValueError(f"Unknown command: {args.command}")


# ---------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(history.get_state_dir() / "logs", verbose=args.verbose)
    logger.debug("Running %s", args.command)

    try:
        # the setup wizard is interactive and synchronous
        if args.command == "setup":
            return run_setup(args.config)
        return asyncio.run(dispatch(args))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
