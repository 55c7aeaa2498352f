"""Default values shared by crawl config, fetcher, and CLI."""

from __future__ import annotations


DEFAULT_WORKER_COUNT = 5
DEFAULT_MAX_DEPTH = 2
DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
DEFAULT_OVERALL_TIMEOUT_SECONDS = 60.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.1
DEFAULT_SHUTDOWN_GRACE_SECONDS = 2.0

DEFAULT_USER_AGENT = "webcrawl/1.0"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

DEFAULT_RETRIES = 0
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5
RETRYABLE_STATUS_CODES = frozenset({408, 429})

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2

# camelCase names accepted in config files for the four core options.
CONFIG_KEY_ALIASES: dict[str, str] = {
    "workerCount": "worker_count",
    "maxDepth": "max_depth",
    "fetchTimeout": "fetch_timeout_seconds",
    "overallTimeout": "overall_timeout_seconds",
}

# Body read size for streamed responses.
READ_CHUNK_BYTES = 16 * 1024


__all__ = [
    "CONFIG_KEY_ALIASES",
    "DEFAULT_FETCH_TIMEOUT_SECONDS",
    "DEFAULT_HTTP_HEADERS",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_OVERALL_TIMEOUT_SECONDS",
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_BACKOFF_SECONDS",
    "DEFAULT_SHUTDOWN_GRACE_SECONDS",
    "DEFAULT_USER_AGENT",
    "DEFAULT_WORKER_COUNT",
    "JSON_INDENT",
    "READ_CHUNK_BYTES",
    "RETRYABLE_STATUS_CODES",
    "SUPPORTED_CONFIG_SUFFIXES",
]
