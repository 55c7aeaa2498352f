"""Canonical URL helpers used as the visited-registry dedup key."""

from __future__ import annotations

import posixpath
import re
from typing import Sequence
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


HTTP_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = frozenset(
    {
        "fbclid",
        "gclid",
        "igshid",
        "mc_cid",
        "mc_eid",
        "mkt_tok",
        "ref_src",
        "spm",
    }
)
_DEFAULT_PORTS = {"http": 80, "https": 443}


def is_http_url(url: str, schemes: Sequence[str] = HTTP_SCHEMES) -> bool:
    """Return True if URL is absolute with an http-like scheme."""

    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in schemes


def _canonical_netloc(scheme: str, parsed) -> str:
    host = (parsed.hostname or "").lower()
    if not host:
        return ""

    try:
        port = parsed.port
    except ValueError:
        port = None

    userinfo = ""
    if parsed.username:
        userinfo = parsed.username
        if parsed.password:
            userinfo += ":" + parsed.password
        userinfo += "@"

    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{userinfo}{host}"
    return f"{userinfo}{host}:{port}"


def _canonical_path(path: str) -> str:
    if not path:
        return "/"

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    if normalized != "/":
        normalized = normalized.rstrip("/")
    return normalized or "/"


def _is_tracking_param(key: str) -> bool:
    lowered = key.strip().lower()
    if lowered in TRACKING_QUERY_PARAMS:
        return True
    return any(lowered.startswith(prefix) for prefix in TRACKING_QUERY_PARAM_PREFIXES)


def _canonical_query(query: str) -> str:
    if not query:
        return ""
    pairs = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not _is_tracking_param(key)
    ]
    return urlencode(sorted(pairs), doseq=True)


def normalize_url(url: str | None) -> str | None:
    """Canonicalize an absolute http(s) URL.

    Lowercases scheme and host, drops default ports, fragments and tracking
    parameters, sorts the query, and collapses the path. Returns `None` for
    anything that is not an absolute http(s) URL.
    """

    if not url:
        return None
    raw = url.strip()
    if not raw:
        return None

    parsed = urlsplit(raw)
    scheme = parsed.scheme.lower()
    if scheme not in HTTP_SCHEMES or not parsed.netloc:
        return None

    netloc = _canonical_netloc(scheme, parsed)
    if not netloc:
        return None

    return urlunsplit(
        (scheme, netloc, _canonical_path(parsed.path), _canonical_query(parsed.query), "")
    )


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against `base_url` and canonicalize it."""

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None
    if candidate.lower().startswith(SKIP_HREF_PREFIXES):
        return None

    return normalize_url(urljoin(base_url, candidate))


__all__ = [
    "HTTP_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "TRACKING_QUERY_PARAMS",
    "TRACKING_QUERY_PARAM_PREFIXES",
    "is_http_url",
    "normalize_url",
    "resolve_url",
]
