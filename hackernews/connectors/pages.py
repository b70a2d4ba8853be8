"""Scrapers for rendered site pages that have no item API equivalent."""

from __future__ import annotations

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from hackernews.models.domain import FlatComment, Item
from hackernews.utils.text import clean_rich_text

from .base import MalformedUpstreamError

# pixels of indentation image per nesting level on the rendered site
INDENT_STEP_PX = 40

_DIGITS = re.compile(r"\d+")
_COMHEAD_DOMAIN = re.compile(r"\(\s?([^()]+?)\s?\)")
_SELF_LINK = re.compile(r"^item", re.IGNORECASE)


def _ensure_html(body: str) -> BeautifulSoup:
    if not body or not re.search(r"[<>]", body):
        raise MalformedUpstreamError("Not HTML content")
    return BeautifulSoup(body, "html.parser")


def _first_int(text: str) -> Optional[int]:
    match = _DIGITS.search(text or "")
    return int(match.group()) if match else None


def _inner_html(el: Tag) -> str:
    return "".join(str(child) for child in el.contents)


def parse_stories(body: str) -> List[Item]:
    """Extract the story list of a front-page style page, in page order."""
    soup = _ensure_html(body)
    posts: List[Item] = []
    for row in soup.select("tr.athing"):
        title_cell = row.select_one("span.titleline") or next(
            (td for td in row.select("td.title") if td.find("a")), None
        )
        link = title_cell.find("a") if title_cell else None
        subtext_row = row.find_next_sibling("tr")
        subtext = subtext_row.select_one("td.subtext") if subtext_row else None
        if link is None or subtext is None:
            continue

        item_id: Optional[str] = row.get("id")
        if not item_id:
            vote = row.select_one("a[id^=up]")
            item_id = str(_first_int(vote["id"])) if vote else None

        url = link.get("href")
        sitestr = row.select_one("span.sitestr")
        if sitestr is not None:
            domain: Optional[str] = sitestr.get_text(strip=True)
        else:
            comhead = row.select_one(".comhead")
            match = _COMHEAD_DOMAIN.search(comhead.get_text()) if comhead else None
            domain = match.group(1) if match else None

        score = subtext.select_one("span.score")
        user_link = subtext.select_one("a.hnuser") or subtext.select_one("a[href^=user]")
        user = user_link.get_text(strip=True) if user_link else None
        age = subtext.select_one("span.age a")
        post_links = subtext.select("a[href^=item]")
        age_link = age or (post_links[0] if post_links else None)
        time_text = age_link.get_text(strip=True) if age_link else ""
        comments_count = 0
        if len(post_links) > 1 and _DIGITS.search(post_links[-1].get_text()):
            comments_count = _first_int(post_links[-1].get_text()) or 0

        post_type = "link"
        if url and _SELF_LINK.match(url):
            post_type = "ask"
        if not user:
            # only job ads are posted without a user
            post_type = "job"
            job_id = _first_int(url) if url else None
            if job_id is not None:
                item_id = str(job_id)
            time_text = subtext.get_text(" ", strip=True)

        posts.append(
            Item(
                id=item_id,
                title=link.get_text(strip=True),
                url=url,
                domain=domain,
                points=_first_int(score.get_text()) if score else None,
                user=user,
                time_ago=time_text,
                comments_count=comments_count,
                type=post_type,
            )
        )
    return posts


def _comment_level(row: Tag) -> int:
    indent = row.select_one("td.ind")
    if indent is None:
        return 0
    try:
        if indent.get("indent") is not None:
            return int(indent["indent"])
        img = indent.find("img")
        if img is not None and img.get("width"):
            return int(img["width"]) // INDENT_STEP_PX
    except ValueError as exc:
        raise MalformedUpstreamError(f"Unreadable comment indentation in row {row.get('id')}") from exc
    return 0


def parse_comments(body: str) -> List[FlatComment]:
    """Extract comment rows in document order with their nesting level."""
    soup = _ensure_html(body)
    comments: List[FlatComment] = []
    for row in soup.select("tr.athing"):
        cell = row.select_one("td.default")
        if cell is None:
            continue
        user_link = cell.select_one("a.hnuser") or cell.select_one("a[href^=user]")
        age = cell.select_one("span.age a") or cell.select_one(".comhead a[href^=item]")
        text_el = cell.select_one(".commtext") or cell.select_one(".comment")
        if text_el is not None:
            for reply in text_el.select(".reply"):
                reply.decompose()
        comment_id = row.get("id") or (_first_int(age["href"]) if age else None)
        comments.append(
            FlatComment(
                id=comment_id,
                level=_comment_level(row),
                user=user_link.get_text(strip=True) if user_link else None,
                time_ago=age.get_text(strip=True) if age else None,
                content=clean_rich_text(_inner_html(text_el)) if text_el else "",
            )
        )
    return comments
