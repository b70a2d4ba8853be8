from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# load the project root .env explicitly
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hackernews.client import HackerNewsClient, build_http_client
from hackernews.connectors.base import HackerNewsError
from hackernews.settings import get_settings
from hackernews.utils.logging import configure_logging, get_logger

from .redis_cache import build_response_cache
from .routes import hacker_news_error_handler, router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    http_client = build_http_client(settings)
    app.state.hn_client = HackerNewsClient.from_settings(settings, http_client)
    app.state.response_cache = build_response_cache(settings)
    logger.info("app.started", extra={"api_base": settings.api_base, "cache": bool(settings.cache_url)})
    try:
        yield
    finally:
        await http_client.aclose()
        logger.info("app.stopped")


app = FastAPI(title="Hacker News JSON API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)

app.add_exception_handler(HackerNewsError, hacker_news_error_handler)
app.include_router(router)


@app.get("/healthz", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
