"""Concurrent single-process web crawler."""

__version__ = "1.0.0"
