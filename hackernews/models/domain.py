"""Domain DTOs returned by the engine."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

ItemId = Union[int, str]


class Comment(BaseModel):
    """A reply node. ``Comment()`` with nothing set is the failed-fetch placeholder."""

    id: Optional[ItemId] = None
    level: Optional[int] = Field(None, description="0 for direct replies to the item")
    user: Optional[str] = None
    time: Optional[int] = Field(None, description="Unix epoch seconds")
    time_ago: Optional[str] = None
    content: Optional[str] = None
    deleted: Optional[bool] = None
    dead: Optional[bool] = None
    comments: Optional[List["Comment"]] = None

    @property
    def is_placeholder(self) -> bool:
        return self.id is None and self.content is None


class FlatComment(BaseModel):
    """A scraped comment row; parents are inferred from ``level``."""

    id: Optional[ItemId] = None
    level: int = 0
    user: Optional[str] = None
    time_ago: Optional[str] = None
    content: str = ""


class Item(BaseModel):
    """A top-level post (story, ask, job, poll, ...)."""

    id: Optional[ItemId] = None
    title: Optional[str] = None
    url: Optional[str] = None
    content: Optional[str] = None
    domain: Optional[str] = None
    user: Optional[str] = None
    points: Optional[int] = None
    time: Optional[int] = None
    time_ago: Optional[str] = None
    comments_count: int = 0
    type: str = "link"
    comments: Optional[List[Union[Comment, int]]] = None


class User(BaseModel):
    id: str
    created_time: int
    created: str
    karma: int = 0
    about: Optional[str] = None


Comment.model_rebuild()
