"""Rebuild nested comment forests from flat, level-tagged scrape output."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from hackernews.connectors.base import MalformedUpstreamError
from hackernews.models.domain import Comment, FlatComment


def reconstruct_flat_comments(flat: Iterable[FlatComment]) -> List[Comment]:
    """Attach every record to the nearest preceding record of smaller level.

    ``flat`` must be in document (pre-order) order. Level 0 records are the
    returned roots; deeper records are reachable only through ``comments``.
    The ancestor stack holds the open chain of strictly increasing levels, so
    after popping every entry at or above the current level its top is the
    parent.
    """
    roots: List[Comment] = []
    ancestors: List[Comment] = []
    for position, record in enumerate(flat):
        if record.level < 0:
            raise MalformedUpstreamError(f"Negative comment level at position {position}")
        node = Comment(
            id=record.id,
            level=record.level,
            user=record.user,
            time_ago=record.time_ago,
            content=record.content,
            comments=[],
        )
        while ancestors and ancestors[-1].level >= record.level:
            ancestors.pop()
        if record.level == 0:
            roots.append(node)
        elif not ancestors:
            raise MalformedUpstreamError(
                f"Comment at position {position} (level {record.level}) has no parent"
            )
        else:
            ancestors[-1].comments.append(node)
        ancestors.append(node)
    return roots


def flatten_comments(forest: Iterable[Comment]) -> List[FlatComment]:
    """Pre-order traversal back into flat records (placeholders are skipped)."""
    flat: List[FlatComment] = []
    stack: List[Tuple[Comment, int]] = [(node, 0) for node in reversed(list(forest))]
    while stack:
        node, level = stack.pop()
        if node.is_placeholder:
            continue
        flat.append(
            FlatComment(
                id=node.id,
                level=node.level if node.level is not None else level,
                user=node.user,
                time_ago=node.time_ago,
                content=node.content or "",
            )
        )
        stack.extend((child, level + 1) for child in reversed(node.comments or []))
    return flat
