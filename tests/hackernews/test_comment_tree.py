from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import pytest

from hackernews.connectors.comments import CommentTreeFetcher
from hackernews.connectors.http import PageRequest
from hackernews.connectors.items import ItemFetcher
from hackernews.models.domain import Comment
from hackernews.services.queue import RateLimitedQueue

NOW = 1_700_000_000


def _comment(comment_id: int, kids: Optional[List[int]] = None, **extra: Any) -> dict:
    record = {"id": comment_id, "type": "comment", "by": f"user{comment_id}", "time": NOW - 120, "text": f"c{comment_id}"}
    if kids is not None:
        record["kids"] = kids
    record.update(extra)
    return record


def _tree(upstream, **kwargs) -> CommentTreeFetcher:
    items = ItemFetcher(RateLimitedQueue(upstream), clock=lambda: NOW)
    return CommentTreeFetcher(items, clock=lambda: NOW, **kwargs)


@pytest.mark.asyncio
async def test_children_keep_source_order_when_completion_order_differs(fake_upstream):
    upstream = fake_upstream({f"item/{i}.json": _comment(i) for i in (1, 2, 3)})
    b_done = asyncio.Event()
    completed: List[str] = []

    async def gated(url: str, page: Optional[PageRequest] = None):
        key = upstream.key(url)
        if key != "item/2.json":
            await b_done.wait()
        result = await upstream(url, page)
        completed.append(key)
        if key == "item/2.json":
            b_done.set()
        return result

    comments = await _tree(gated).expand([1, 2, 3])

    assert completed[0] == "item/2.json"
    assert [c.id for c in comments] == [1, 2, 3]


@pytest.mark.asyncio
async def test_nested_children_keep_order_and_depth(fake_upstream):
    upstream = fake_upstream(
        {
            "item/1.json": _comment(1, kids=[3, 2]),
            "item/2.json": _comment(2, kids=[4]),
            "item/3.json": _comment(3),
            "item/4.json": _comment(4, kids=[]),
            "item/5.json": _comment(5),
        }
    )

    forest = await _tree(upstream).expand([1, 5])

    assert [c.id for c in forest] == [1, 5]
    first = forest[0]
    assert [c.id for c in first.comments] == [3, 2]
    assert [c.id for c in first.comments[1].comments] == [4]
    assert first.level == 0
    assert first.comments[1].level == 1
    assert first.comments[1].comments[0].level == 2
    assert first.comments[1].comments[0].comments == []
    assert forest[1].comments == []
    assert sorted(upstream.calls) == sorted(f"item/{i}.json" for i in range(1, 6))


@pytest.mark.asyncio
async def test_start_depth_offsets_levels(fake_upstream):
    upstream = fake_upstream({"item/1.json": _comment(1, kids=[2]), "item/2.json": _comment(2)})

    forest = await _tree(upstream).expand([1], 3)

    assert forest[0].level == 3
    assert forest[0].comments[0].level == 4


@pytest.mark.asyncio
async def test_failing_descendant_becomes_placeholder_in_place(fake_upstream):
    upstream = fake_upstream(
        {
            "item/1.json": _comment(1, kids=[2, 3, 4]),
            "item/2.json": _comment(2),
            "item/3.json": _comment(3, kids=[9]),
            "item/4.json": _comment(4),
        },
        failures={"item/3.json": 10},
    )

    forest = await _tree(upstream).expand([1])

    children = forest[0].comments
    assert len(children) == 3
    assert children[0].id == 2
    assert children[1].is_placeholder
    assert children[1].model_dump(exclude_unset=True) == {}
    assert children[2].id == 4
    # the failed node's subtree is never requested
    assert "item/9.json" not in upstream.calls


@pytest.mark.asyncio
async def test_failing_root_does_not_affect_siblings(fake_upstream):
    upstream = fake_upstream({"item/1.json": _comment(1), "item/3.json": _comment(3)})

    forest = await _tree(upstream).expand([1, 2, 3])

    assert [c.id for c in forest] == [1, None, 3]
    assert forest[1] == Comment()


@pytest.mark.asyncio
async def test_comment_fetch_retries_once(fake_upstream):
    upstream = fake_upstream(
        {"item/1.json": _comment(1), "item/2.json": _comment(2)},
        failures={"item/1.json": 1, "item/2.json": 2},
    )

    forest = await _tree(upstream).expand([1, 2])

    assert forest[0].id == 1
    assert forest[1].is_placeholder
    assert upstream.calls.count("item/1.json") == 2
    assert upstream.calls.count("item/2.json") == 2


@pytest.mark.asyncio
async def test_deleted_and_text_content(fake_upstream):
    upstream = fake_upstream(
        {
            "item/1.json": {"id": 1, "type": "comment", "deleted": True, "time": NOW},
            "item/2.json": _comment(2, text="First</p><p>Second"),
            "item/3.json": {"id": 3, "type": "comment", "by": "quiet", "time": NOW, "dead": True},
        }
    )

    deleted, texty, empty = await _tree(upstream).expand([1, 2, 3])

    assert deleted.content == "[deleted]"
    assert deleted.deleted is True
    assert deleted.user is None
    assert texty.content == "<p>First<p>Second"
    assert texty.time_ago == "2 minutes ago"
    assert empty.content == ""
    assert empty.dead is True


@pytest.mark.asyncio
async def test_empty_id_list_returns_empty_forest(fake_upstream):
    assert await _tree(fake_upstream({})).expand([]) == []


@pytest.mark.asyncio
async def test_very_deep_thread_does_not_recurse(fake_upstream):
    depth = 1500
    records = {f"item/{i}.json": _comment(i, kids=[i + 1]) for i in range(1, depth)}
    records[f"item/{depth}.json"] = _comment(depth)

    forest = await _tree(fake_upstream(records)).expand([1])

    node = forest[0]
    levels = 1
    while node.comments:
        assert node.comments[0].level == node.level + 1
        node = node.comments[0]
        levels += 1
    assert levels == depth
    assert node.id == depth


@pytest.mark.asyncio
async def test_unexpected_worker_error_only_loses_that_node(fake_upstream):
    upstream = fake_upstream({f"item/{i}.json": _comment(i) for i in (1, 3)})

    async def worker(url: str, page: Optional[PageRequest] = None):
        if upstream.key(url) == "item/2.json":
            raise RuntimeError("decode blew up")
        return await upstream(url, page)

    forest = await _tree(worker).expand([1, 2, 3])

    assert [c.id for c in forest] == [1, None, 3]
    assert forest[1].is_placeholder


@pytest.mark.asyncio
async def test_unbuildable_record_only_loses_that_node(fake_upstream):
    upstream = fake_upstream(
        {
            "item/1.json": _comment(1, kids=[2, 3]),
            "item/2.json": _comment(2, by=["not", "a", "name"], kids=[4]),
            "item/3.json": _comment(3),
        }
    )

    forest = await _tree(upstream).expand([1])

    children = forest[0].comments
    assert children[0].is_placeholder
    assert children[1].id == 3
    assert "item/4.json" not in upstream.calls


@pytest.mark.asyncio
async def test_absent_flags_are_left_unset(fake_upstream):
    upstream = fake_upstream(
        {
            "item/1.json": _comment(1),
            "item/2.json": _comment(2, dead=True),
        }
    )

    plain, dead = await _tree(upstream).expand([1, 2])

    dumped = plain.model_dump(exclude_unset=True)
    assert "deleted" not in dumped
    assert "dead" not in dumped
    assert dead.model_dump(exclude_unset=True)["dead"] is True


@pytest.mark.asyncio
async def test_cancelled_expansion_finishes_its_node_tasks(fake_upstream):
    upstream = fake_upstream({"item/1.json": _comment(1, kids=[2, 3])})
    never = asyncio.Event()
    cancelled: List[str] = []

    async def worker(url: str, page: Optional[PageRequest] = None):
        key = upstream.key(url)
        if key == "item/1.json":
            return await upstream(url, page)
        try:
            await never.wait()
        except asyncio.CancelledError:
            cancelled.append(key)
            raise

    expansion = asyncio.ensure_future(_tree(worker).expand([1]))
    for _ in range(10):
        await asyncio.sleep(0)
    expansion.cancel()

    with pytest.raises(asyncio.CancelledError):
        await expansion
    assert sorted(cancelled) == ["item/2.json", "item/3.json"]
