from __future__ import annotations

from typing import Annotated, Any, Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from hackernews.client import HackerNewsClient
from hackernews.connectors.base import HackerNewsError
from hackernews.models.domain import Comment, Item, User
from hackernews.utils.logging import get_logger

from .models import SCRAPED_STORY_PAGES, SERVICE_STATUS, STORY_LISTINGS, ServiceStatus

logger = get_logger(__name__)

router = APIRouter()


def get_hn_client(request: Request) -> HackerNewsClient:
    return request.app.state.hn_client


def get_response_cache(request: Request):
    return request.app.state.response_cache


ClientDep = Annotated[HackerNewsClient, Depends(get_hn_client)]
CacheDep = Annotated[Any, Depends(get_response_cache)]


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("CF-Connecting-IP")
    if forwarded:
        return forwarded
    return request.client.host if request.client else None


def _dump(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", exclude_unset=True)
    if isinstance(result, list):
        return [_dump(entry) for entry in result]
    return result


async def _respond(request: Request, cache, produce: Callable[[], Awaitable[Any]]) -> JSONResponse:
    key = str(request.url)
    cached = cache.get(key)
    if cached is not None:
        return JSONResponse(cached)
    try:
        result = await produce()
    except HackerNewsError as exc:
        logger.warning("route.failed", extra={"url": key, "error": str(exc)})
        raise
    payload = _dump(result)
    cache.set(key, payload)
    return JSONResponse(payload)


async def hacker_news_error_handler(request: Request, exc: HackerNewsError) -> JSONResponse:
    """Engine failures are never substituted; the message goes back as-is."""
    return JSONResponse({"status": 500, "error": str(exc)}, status_code=500)


@router.get("/", response_model=ServiceStatus, tags=["system"])
async def status_route() -> ServiceStatus:
    return SERVICE_STATUS


@router.get("/robots.txt", response_class=PlainTextResponse, tags=["system"])
async def robots_route() -> str:
    return "User-agent: *\nDisallow: /"


@router.get("/favicon.ico", status_code=204, response_class=Response, tags=["system"])
async def favicon_route() -> Response:
    return Response(status_code=204)


def _listing_route(category: str):
    async def route(
        request: Request,
        client: ClientDep,
        cache: CacheDep,
        page: int = Query(1, ge=1),
    ) -> JSONResponse:
        return await _respond(request, cache, lambda: client.query_items(category, page))

    return route


def _scraped_page_route(path: str):
    async def route(request: Request, client: ClientDep, cache: CacheDep) -> JSONResponse:
        return await _respond(request, cache, lambda: client.fetch_news_page(path, _client_ip(request)))

    return route


for _path, _category in STORY_LISTINGS.items():
    router.add_api_route(
        f"/{_path}",
        _listing_route(_category),
        methods=["GET"],
        response_model=List[Item],
        name=f"{_path}_route",
        tags=["stories"],
    )

for _path in SCRAPED_STORY_PAGES:
    router.add_api_route(
        f"/{_path}",
        _scraped_page_route(_path),
        methods=["GET"],
        response_model=List[Item],
        name=f"{_path}_route",
        tags=["stories"],
    )


@router.get("/news2", response_model=List[Item], tags=["stories"])
async def news_page_two_route(request: Request, client: ClientDep, cache: CacheDep) -> JSONResponse:
    return await _respond(request, cache, lambda: client.query_items(STORY_LISTINGS["news"], 2))


@router.get("/item/{item_id}", response_model=Item, tags=["items"])
async def item_route(item_id: str, request: Request, client: ClientDep, cache: CacheDep) -> JSONResponse:
    if not item_id.strip():
        raise HackerNewsError("Missing identifier")
    return await _respond(request, cache, lambda: client.fetch_full_item_with_comments(item_id.strip()))


@router.get("/comments", response_model=List[Comment], tags=["comments"])
async def comments_route(
    request: Request,
    client: ClientDep,
    cache: CacheDep,
    ids: str = Query(""),
) -> JSONResponse:
    id_list = [int(part) if part.isdigit() else part for part in (p.strip() for p in ids.split(",")) if part]
    if not id_list:
        raise HackerNewsError("Missing identifier")
    return await _respond(request, cache, lambda: client.expand_comments(id_list))


@router.get("/newcomments", response_model=List[Comment], tags=["comments"])
async def new_comments_route(request: Request, client: ClientDep, cache: CacheDep) -> JSONResponse:
    return await _respond(request, cache, lambda: client.fetch_new_comments(_client_ip(request)))


@router.get("/user/{user_id}", response_model=User, tags=["users"])
async def user_route(user_id: str, request: Request, client: ClientDep, cache: CacheDep) -> JSONResponse:
    if not user_id.strip():
        raise HackerNewsError("Missing identifier")
    return await _respond(request, cache, lambda: client.fetch_user(user_id.strip()))
