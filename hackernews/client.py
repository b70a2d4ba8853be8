"""Facade over the queue, fetchers, scrapers and reconstruction."""

from __future__ import annotations

import time
from typing import Callable, Iterable, List, Optional, Sequence

import httpx

from hackernews.connectors.comments import CommentTreeFetcher
from hackernews.connectors.http import HttpWorker, PageRequest
from hackernews.connectors.items import ItemFetcher
from hackernews.connectors.pages import parse_comments, parse_stories
from hackernews.models.domain import Comment, FlatComment, Item, ItemId, User
from hackernews.services.queue import RateLimitedQueue
from hackernews.services.reconstruct import reconstruct_flat_comments
from hackernews.settings import HackerNewsSettings
from hackernews.utils.logging import get_logger

logger = get_logger(__name__)


def build_http_client(settings: HackerNewsSettings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": settings.user_agent},
        timeout=float(settings.request_timeout_seconds),
        follow_redirects=True,
    )


class HackerNewsClient:
    """Entry point used by the HTTP routes.

    One instance owns one ``RateLimitedQueue``; every upstream request made
    on its behalf, including recursive comment fetches, goes through it.
    """

    def __init__(
        self,
        queue: RateLimitedQueue,
        *,
        api_base: str = "https://hacker-news.firebaseio.com/v0",
        site_base: str = "https://news.ycombinator.com",
        page_limit: int = 30,
        item_max_attempts: int = 3,
        comment_max_attempts: int = 2,
        clock: Callable[[], float] = time.time,
    ):
        self.queue = queue
        self.site_base = site_base.rstrip("/")
        self.items = ItemFetcher(
            queue,
            api_base=api_base,
            page_limit=page_limit,
            max_attempts=item_max_attempts,
            clock=clock,
        )
        self.comments = CommentTreeFetcher(self.items, max_attempts=comment_max_attempts, clock=clock)

    @classmethod
    def from_settings(cls, settings: HackerNewsSettings, http_client: httpx.AsyncClient) -> "HackerNewsClient":
        queue = RateLimitedQueue(
            HttpWorker(http_client),
            concurrency=settings.queue_concurrency,
            max_per_window=settings.queue_max_per_window,
            window_seconds=settings.queue_window_seconds,
        )
        return cls(
            queue,
            api_base=settings.api_base,
            site_base=settings.site_base,
            page_limit=settings.page_limit,
            item_max_attempts=settings.item_max_attempts,
            comment_max_attempts=settings.comment_max_attempts,
        )

    async def fetch_item(self, item_id: ItemId) -> Item:
        return await self.items.fetch(item_id)

    async def fetch_full_item_with_comments(self, item_id: ItemId) -> Item:
        item = await self.items.fetch(item_id, expand_comments=True)
        kids = [kid for kid in item.comments or [] if not isinstance(kid, Comment)]
        comments = await self.comments.expand(kids, 0)
        logger.info("item.expanded", extra={"item_id": item_id, "top_level": len(comments)})
        return item.model_copy(update={"comments": comments})

    async def expand_comments(self, ids: Sequence[ItemId], start_depth: int = 0) -> List[Comment]:
        return await self.comments.expand(ids, start_depth)

    def reconstruct_flat_comments(self, flat: Iterable[FlatComment]) -> List[Comment]:
        return reconstruct_flat_comments(flat)

    async def query_items(self, category: str, page: int = 1) -> List[Item]:
        return await self.items.query_items(category, page)

    async def fetch_user(self, user_id: str) -> User:
        return await self.items.fetch_user(user_id)

    async def fetch_page(self, path: str, ip: Optional[str] = None) -> str:
        return await self.queue.push(f"{self.site_base}/{path.lstrip('/')}", PageRequest(ip=ip))

    async def fetch_news_page(self, path: str, ip: Optional[str] = None) -> List[Item]:
        return parse_stories(await self.fetch_page(path, ip))

    async def fetch_new_comments(self, ip: Optional[str] = None) -> List[Comment]:
        flat = parse_comments(await self.fetch_page("newcomments", ip))
        return reconstruct_flat_comments(flat)
