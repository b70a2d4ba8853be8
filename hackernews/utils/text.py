"""Text helpers: HTML clean-up, relative times and domains."""

from __future__ import annotations

import re
import time
from typing import Optional
from urllib.parse import urlsplit

_CLOSING_P = re.compile(r"</p>", re.IGNORECASE)
_OPENING_P = re.compile(r"^<p>", re.IGNORECASE)
_FONT_TAG = re.compile(r"<(/?)font[^<>]*>", re.IGNORECASE)
_INTER_TAG_SPACE = re.compile(r">\s+<")
_TRAILING_MARKERS = re.compile(r"(?:\s|&nbsp;|[-–—|])+$")
_LEADING_WWW = re.compile(r"^www\.", re.IGNORECASE)

# (seconds, singular name), largest first
_UNITS = (
    (365 * 24 * 3600, "year"),
    (30 * 24 * 3600, "month"),
    (7 * 24 * 3600, "week"),
    (24 * 3600, "day"),
    (3600, "hour"),
    (60, "minute"),
)


def clean_text(html: Optional[str]) -> str:
    """Drop ``</p>`` closers and make sure the text opens with ``<p>``."""
    if not html:
        return ""
    html = _CLOSING_P.sub("", html)
    if not _OPENING_P.match(html):
        html = "<p>" + html
    return html


def clean_rich_text(html: Optional[str]) -> str:
    """``clean_text`` for scraped markup: also strips font styling and trailing markers."""
    if not html:
        return ""
    html = _INTER_TAG_SPACE.sub("><", html.strip())
    html = _FONT_TAG.sub("", html)
    html = _TRAILING_MARKERS.sub("", html)
    return clean_text(html)


def time_ago(timestamp: Optional[float], now: Optional[float] = None) -> str:
    if timestamp is None:
        return ""
    if now is None:
        now = time.time()
    delta = now - timestamp
    if delta < 60:
        return "just now"
    for seconds, name in _UNITS:
        if delta >= seconds:
            count = int(delta // seconds)
            return f"{count} {name}{'' if count == 1 else 's'} ago"
    return "just now"  # pragma: no cover - minute is the smallest unit


def extract_domain(url: str) -> Optional[str]:
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return _LEADING_WWW.sub("", host)
