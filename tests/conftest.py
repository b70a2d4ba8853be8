from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hackernews.connectors.base import TransportError  # noqa: E402
from hackernews.connectors.http import PageRequest  # noqa: E402


class FakeUpstream:
    """Queue worker serving canned records keyed by path below the API base.

    ``failures`` maps a key to how many leading calls should fail.
    """

    def __init__(self, records: Dict[str, Any], failures: Optional[Dict[str, int]] = None):
        self.records = records
        self.failures = dict(failures or {})
        self.calls: List[str] = []
        self.urls: List[str] = []
        self.pages: List[Optional[PageRequest]] = []

    @staticmethod
    def key(url: str) -> str:
        path = url.split("/v0/", 1)[-1] if "/v0/" in url else url.rsplit("/", 1)[-1]
        return path.split("?", 1)[0]

    async def __call__(self, url: str, page: Optional[PageRequest] = None) -> Any:
        key = self.key(url)
        self.calls.append(key)
        self.urls.append(url)
        self.pages.append(page)
        if self.failures.get(key, 0) > 0:
            self.failures[key] -= 1
            raise TransportError(f"simulated failure for {key}")
        if key not in self.records:
            raise TransportError(f"unexpected request {key}")
        return self.records[key]


@pytest.fixture
def fake_upstream():
    return FakeUpstream
