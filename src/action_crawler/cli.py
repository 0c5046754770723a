"""Command line interface for the action crawler."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .core.config import ConfigurationError, load_configuration
from .recon.crawler import Crawler


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a server and list every URL carrying an action parameter"
    )
    parser.add_argument("url", nargs="?", help="Root URL of the server (default: RANCHER_SERVER)")
    parser.add_argument("--token", help="Bearer token (default: RANCHER_TOKEN)")
    parser.add_argument(
        "--insecure",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Skip TLS certificate verification (default: CRAWLER_INSECURE)",
    )
    parser.add_argument("--concurrency", type=int, help="Maximum simultaneous requests (default: 100)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds (default: 60)")
    parser.add_argument("--report", help="Also save a JSON report to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every visited URL")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    try:
        config = load_configuration(
            args.url,
            args.token,
            insecure=args.insecure,
            max_concurrency=args.concurrency,
            request_timeout=args.timeout,
        )
    except ConfigurationError as exc:
        print(f"[!] {exc}", file=sys.stderr)
        return 1

    crawler = Crawler(config)
    try:
        report = crawler.run()
    except KeyboardInterrupt:
        print("[!] Crawl interrupted", file=sys.stderr)
        return 130

    print(report.to_text())

    if args.report:
        report_path = Path(args.report).resolve()
        report.save(report_path)
        print(f"[+] Report saved to {report_path}", file=sys.stderr)

    print(
        f"[*] {len(report.visited_urls)} URL(s) fetched, "
        f"{len(report.failures)} failed, {len(report.actions)} action(s)",
        file=sys.stderr,
    )
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
