"""Single item, story listing and user retrieval from the item API."""

from __future__ import annotations

import asyncio
import html
import re
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

from hackernews.models.domain import Item, ItemId, User
from hackernews.services.queue import RateLimitedQueue
from hackernews.utils.logging import get_logger
from hackernews.utils.text import clean_text, extract_domain, time_ago

from .base import ItemNotFoundError, TransportError, fetch_with_retries

_SELF_LINK = re.compile(r"^item", re.IGNORECASE)
_ASK_TITLE = re.compile(r"^ask", re.IGNORECASE)

logger = get_logger(__name__)


class ItemFetcher:
    """Fetches raw records through the shared queue and normalizes them."""

    def __init__(
        self,
        queue: RateLimitedQueue,
        *,
        api_base: str = "https://hacker-news.firebaseio.com/v0",
        page_limit: int = 30,
        max_attempts: int = 3,
        clock: Callable[[], float] = time.time,
    ):
        self._queue = queue
        self._api_base = api_base.rstrip("/")
        self._page_limit = page_limit
        self._max_attempts = max_attempts
        self._clock = clock

    def item_url(self, item_id: ItemId) -> str:
        return f"{self._api_base}/item/{item_id}.json"

    async def fetch_record(self, item_id: ItemId, *, max_attempts: int) -> Dict[str, Any]:
        """Return the raw upstream record, or raise ``ItemNotFoundError``."""

        async def _once() -> Dict[str, Any]:
            record = await self._queue.push(self.item_url(item_id))
            if not isinstance(record, dict):
                # the item API answers unknown ids with ``null``
                raise TransportError(f"No record for item {item_id}")
            return record

        def _log_failure(attempt: int, exc: Exception) -> None:
            logger.warning(
                "item.fetch_failed",
                extra={"item_id": item_id, "attempt": attempt, "error": str(exc)},
            )

        try:
            return await fetch_with_retries(_once, max_attempts=max_attempts, on_failure=_log_failure)
        except TransportError as exc:
            raise ItemNotFoundError("Item does not exist") from exc

    async def fetch(
        self,
        item_id: ItemId,
        expand_comments: bool = False,
        *,
        max_attempts: Optional[int] = None,
    ) -> Item:
        attempts = max_attempts if max_attempts is not None else self._max_attempts
        record = await self.fetch_record(item_id, max_attempts=attempts)
        return self.to_item(record, expand_comments=expand_comments)

    def to_item(self, record: Dict[str, Any], *, expand_comments: bool = False) -> Item:
        upstream_type = record.get("type")
        title = record.get("title")
        fields: Dict[str, Any] = {
            "id": record.get("id"),
            "title": html.unescape(title) if title else None,
            "points": record.get("score"),
            "comments_count": record.get("descendants") or 0,
            "user": record.get("by"),
            "time": record.get("time"),
            "time_ago": time_ago(record.get("time"), self._clock()),
            "type": "link" if upstream_type == "story" else (upstream_type or "link"),
        }
        if record.get("text"):
            fields["content"] = clean_text(record["text"])

        url = record.get("url")
        if url:
            fields["url"] = url
            fields["domain"] = extract_domain(url)
        else:
            fields["url"] = f"item?id={record.get('id')}"

        # job postings carry neither author nor score
        if upstream_type == "job":
            fields["user"] = None
            fields["points"] = None

        if (
            upstream_type == "story"
            and _SELF_LINK.match(fields["url"])
            and title
            and _ASK_TITLE.match(title)
        ):
            fields["type"] = "ask"

        if expand_comments:
            fields["comments"] = list(record.get("kids") or [])
        return Item(**fields)

    def listing_url(self, category: str, page: int) -> str:
        params = urlencode({"orderBy": '"$key"', "limitToFirst": self._page_limit * page})
        return f"{self._api_base}/{category}.json?{params}"

    async def query_items(self, category: str, page: int = 1) -> List[Item]:
        """Return one page of a story listing, in listing order.

        The upstream is asked for the first ``page * page_limit`` ids and the
        earlier pages are discarded locally.
        """
        if page < 1:
            raise ValueError("page must be 1 or greater")
        start = (page - 1) * self._page_limit
        end = start + self._page_limit
        ids = await self._queue.push(self.listing_url(category, page))
        if not isinstance(ids, list):
            raise TransportError(f"Unexpected listing payload for {category}")

        results = await asyncio.gather(
            *(self.fetch(item_id) for item_id in ids[start:end]),
            return_exceptions=True,
        )
        stories: List[Item] = []
        for result in results:
            if isinstance(result, ItemNotFoundError):
                continue
            if isinstance(result, BaseException):
                raise result
            stories.append(result)
        logger.info(
            "items.listed",
            extra={"category": category, "page": page, "requested": len(ids[start:end]), "returned": len(stories)},
        )
        return stories

    async def fetch_user(self, user_id: str) -> User:
        url = f"{self._api_base}/user/{user_id}.json"
        record = await self._queue.push(url)
        if not isinstance(record, dict):
            raise ItemNotFoundError("User does not exist")
        created = int(record.get("created") or 0)
        about = record.get("about")
        return User(
            id=str(record.get("id") or user_id),
            created_time=created,
            created=time_ago(created, self._clock()),
            karma=int(record.get("karma") or 0),
            about=clean_text(about) if about else None,
        )
