"""Typed crawl configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import copy
import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    CONFIG_KEY_ALIASES,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_OVERALL_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    DEFAULT_USER_AGENT,
    DEFAULT_WORKER_COUNT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict, JSONValue


def _as_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Invalid float for '{key}': {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


@dataclass(frozen=True, slots=True)
class CrawlConfig:
    """Options for one crawl session. Immutable once constructed."""

    worker_count: int = DEFAULT_WORKER_COUNT
    max_depth: int = DEFAULT_MAX_DEPTH
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    overall_timeout_seconds: float = DEFAULT_OVERALL_TIMEOUT_SECONDS

    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    metadata: Mapping[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.worker_count <= 0:
            raise ValueError("worker_count must be > 0")
        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        if self.overall_timeout_seconds <= 0:
            raise ValueError("overall_timeout_seconds must be > 0")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if self.shutdown_grace_seconds < 0:
            raise ValueError("shutdown_grace_seconds must be >= 0")
        if not self.user_agent or not self.user_agent.strip():
            raise ValueError("user_agent must be a non-empty string")

        # Mapping fields are stored as read-only copies.
        object.__setattr__(self, "default_headers", MappingProxyType(dict(self.default_headers)))
        object.__setattr__(self, "metadata", MappingProxyType(copy.deepcopy(dict(self.metadata))))

    @property
    def stop_deadline_seconds(self) -> float:
        """How long a stopping worker may take to finish its in-flight fetch."""

        return self.fetch_timeout_seconds + self.shutdown_grace_seconds

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured user agent applied."""

        merged = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def with_overrides(self, **changes: Any) -> "CrawlConfig":
        """Return a validated copy with `changes` applied."""

        return dataclasses.replace(self, **changes)

    def to_dict(self) -> JSONDict:
        """Serialize config for logs and reproducibility."""

        return {
            "worker_count": self.worker_count,
            "max_depth": self.max_depth,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "overall_timeout_seconds": self.overall_timeout_seconds,
            "poll_interval_seconds": self.poll_interval_seconds,
            "shutdown_grace_seconds": self.shutdown_grace_seconds,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed mapping, rejecting unknown keys."""

        data = {CONFIG_KEY_ALIASES.get(str(key), str(key)): value for key, value in payload.items()}

        known = {item.name for item in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}")

        kwargs: dict[str, Any] = {}
        for key in ("worker_count", "max_depth"):
            if key in data:
                kwargs[key] = _as_int(data[key], key)
        for key in (
            "fetch_timeout_seconds",
            "overall_timeout_seconds",
            "poll_interval_seconds",
            "shutdown_grace_seconds",
        ):
            if key in data:
                kwargs[key] = _as_float(data[key], key)

        if "user_agent" in data:
            kwargs["user_agent"] = str(data["user_agent"])
        if "default_headers" in data:
            kwargs["default_headers"] = {
                str(k): str(v) for k, v in dict(data["default_headers"] or {}).items()
            }
        if "metadata" in data:
            kwargs["metadata"] = dict(data["metadata"] or {})

        return cls(**kwargs)


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )
    return suffix


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from a JSON/YAML path."""

    config_path = Path(path)
    suffix = _check_suffix(config_path)

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = _check_suffix(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "CrawlConfig",
    "load_config",
    "save_config",
]
