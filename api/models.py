from __future__ import annotations

from pydantic import BaseModel


class ServiceStatus(BaseModel):
    name: str
    desc: str
    version: str
    documentation_url: str


SERVICE_STATUS = ServiceStatus(
    name="hn-json-api",
    desc="Yet another unofficial Hacker News API",
    version="0.1.0",
    documentation_url="/docs",
)

# route path -> item API listing
STORY_LISTINGS = {
    "news": "topstories",
    "newest": "newstories",
    "best": "beststories",
    "ask": "askstories",
    "show": "showstories",
    "jobs": "jobstories",
}

# route path -> rendered page scraped for its story list
SCRAPED_STORY_PAGES = ("front", "shownew", "active", "noobstories")
