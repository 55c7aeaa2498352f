"""CLI entrypoint for running one crawl session."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from webcrawl.crawler import (
    CrawlConfig,
    CrawlCoordinator,
    CrawlError,
    CrawlSummary,
    HttpPageFetcher,
    RetryingFetcher,
    load_config,
)
from webcrawl.crawler.constants import DEFAULT_RETRY_BACKOFF_SECONDS, DEFAULT_RETRIES


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl pages reachable from a seed URL with a fixed worker pool.",
    )

    parser.add_argument("seed", type=str, help="Seed URL to start crawling from.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config. Flags below override its values.",
    )

    parser.add_argument("--worker_count", type=int, default=None)
    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--fetch_timeout_seconds", type=float, default=None)
    parser.add_argument("--overall_timeout_seconds", type=float, default=None)
    parser.add_argument("--user_agent", type=str, default=None)

    parser.add_argument(
        "--retries",
        type=int,
        default=DEFAULT_RETRIES,
        help="Retry transient fetch failures this many times (default: no retries).",
    )
    parser.add_argument(
        "--retry_backoff_seconds",
        type=float,
        default=DEFAULT_RETRY_BACKOFF_SECONDS,
        help="Linear backoff step between retries.",
    )

    parser.add_argument(
        "--print_summary_json",
        action="store_true",
        help="Print the full crawl summary as JSON after the run.",
    )
    parser.add_argument(
        "--log_file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    config = load_config(args.config) if args.config is not None else CrawlConfig()

    overrides: dict[str, Any] = {}
    for key in (
        "worker_count",
        "max_depth",
        "fetch_timeout_seconds",
        "overall_timeout_seconds",
        "user_agent",
    ):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value

    if not overrides:
        return config
    return config.with_overrides(**overrides)


def setup_logging(verbose: bool, log_file: Path | None = None) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Connection-pool chatter drowns out per-URL crawl logs at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(summary: CrawlSummary, *, print_summary_json: bool) -> None:
    print("\n=== Crawl Complete ===")
    print(f"seed: {summary.seed_url}")
    print(f"termination: {summary.termination.value}")
    print(f"visited: {summary.visited_count}")
    print(f"fetched_ok: {summary.fetched_ok}")
    print(f"failed: {summary.failed_count}")
    print(f"registered: {summary.registered_count}")
    print(f"elapsed_seconds: {summary.elapsed_seconds:.2f}")

    if summary.failed_urls:
        print("\n--- Failed URLs ---")
        for failed in summary.failed_urls:
            print(f"{failed.reason.value}\t{failed.url}")

    if print_summary_json:
        print("\n--- Full Summary JSON ---")
        print(json.dumps(summary.to_json(), indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    with HttpPageFetcher(config) as http_fetcher:
        fetcher = http_fetcher
        if args.retries > 0:
            fetcher = RetryingFetcher(
                http_fetcher,
                retries=args.retries,
                backoff_seconds=args.retry_backoff_seconds,
            )

        try:
            summary = CrawlCoordinator(fetcher).crawl(args.seed, config)
        except CrawlError as exc:
            logging.error("%s", exc)
            return 2
        except KeyboardInterrupt:
            logging.error("Interrupted by user")
            return 130
        except Exception:
            logging.exception("Crawl failed")
            return 1

    print_summary(summary, print_summary_json=args.print_summary_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
