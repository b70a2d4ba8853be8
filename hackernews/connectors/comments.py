"""Concurrent expansion of comment id forests into nested comments."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from hackernews.models.domain import Comment, ItemId
from hackernews.utils.logging import get_logger
from hackernews.utils.text import clean_text, time_ago

from .base import ItemNotFoundError
from .items import ItemFetcher

logger = get_logger(__name__)

# (sibling list to fill, position in it, depth)
_Slot = Tuple[List[Comment], int, int]


class CommentTreeFetcher:
    """Walks a comment-id forest, fetching every node once.

    Nodes are fetched concurrently through the shared queue. Results are
    written into pre-sized sibling lists, so the output keeps the id order of
    each parent regardless of completion order. A node that cannot be fetched
    stays as the empty ``Comment()`` placeholder and its subtree is skipped.
    """

    def __init__(
        self,
        items: ItemFetcher,
        *,
        max_attempts: int = 2,
        clock: Callable[[], float] = time.time,
    ):
        self._items = items
        self._max_attempts = max_attempts
        self._clock = clock

    async def expand(self, ids: Sequence[ItemId], depth: int = 0) -> List[Comment]:
        forest: List[Comment] = [Comment() for _ in ids]
        in_flight: Dict[asyncio.Future, _Slot] = {}

        def _schedule(siblings: List[Comment], kids: Sequence[ItemId], level: int) -> None:
            for position, kid in enumerate(kids):
                task = asyncio.ensure_future(self._fetch_node(kid, level))
                in_flight[task] = (siblings, position, level)

        _schedule(forest, ids, depth)
        try:
            while in_flight:
                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    siblings, position, level = in_flight.pop(task)
                    fetched = task.result()
                    if fetched is None:
                        continue
                    node, kids = fetched
                    siblings[position] = node
                    if kids:
                        _schedule(node.comments, kids, level + 1)
        finally:
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)
        return forest

    async def _fetch_node(self, comment_id: ItemId, level: int) -> Optional[Tuple[Comment, List[ItemId]]]:
        """Fetch and build one node; any failure leaves its slot a placeholder."""
        try:
            record = await self._items.fetch_record(comment_id, max_attempts=self._max_attempts)
            return self.to_comment(record, level), list(record.get("kids") or [])
        except ItemNotFoundError:
            logger.warning("comments.node_failed", extra={"comment_id": comment_id})
        except Exception:
            logger.exception("comments.node_failed", extra={"comment_id": comment_id})
        return None

    def to_comment(self, record: Dict[str, Any], level: int) -> Comment:
        if record.get("deleted"):
            content = "[deleted]"
        elif record.get("text"):
            content = clean_text(record["text"])
        else:
            content = ""
        kids = record.get("kids") or []
        fields: Dict[str, Any] = {
            "id": record.get("id"),
            "level": level,
            "user": record.get("by"),
            "time": record.get("time"),
            "time_ago": time_ago(record.get("time"), self._clock()),
            "content": content,
            "comments": [Comment() for _ in kids],
        }
        # flags are only present on records that carry them
        for flag in ("deleted", "dead"):
            if flag in record:
                fields[flag] = record[flag]
        return Comment(**fields)
