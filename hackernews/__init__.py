"""Hacker News comment tree acquisition and reconstruction engine."""

from .client import HackerNewsClient, build_http_client  # noqa: F401
from .connectors.base import (  # noqa: F401
    HackerNewsError,
    ItemNotFoundError,
    MalformedUpstreamError,
    TransportError,
)
from .settings import HackerNewsSettings, get_settings, reset_settings_cache  # noqa: F401

__all__ = [
    "HackerNewsClient",
    "HackerNewsError",
    "HackerNewsSettings",
    "ItemNotFoundError",
    "MalformedUpstreamError",
    "TransportError",
    "build_http_client",
    "get_settings",
    "reset_settings_cache",
]
