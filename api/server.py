"""FastAPI server exposing Douban subject details."""

import json
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from douban_scraper.config import DEFAULT_CACHE_TIME, get_cache_time, load_config
from douban_scraper.errors import FetchExhaustedError, InvalidIdError
from douban_scraper.fetcher import DoubanFetcher, validate_douban_id
from douban_scraper.logger import setup_logger

load_dotenv()

logger = logging.getLogger("douban_scraper")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logger(load_config().log_dir)
    yield


app = FastAPI(
    title="Douban Details API",
    version="0.1.0",
    description="Fetches a Douban movie/TV subject page and returns its details as JSON.",
    lifespan=lifespan,
)

# --- Rate limiting ---
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return Response(
        content=json.dumps({"error": "Rate limit exceeded. Please slow down."}),
        status_code=429,
        media_type="application/json",
    )


# --- CORS ---
default_origins = "http://localhost:3000,http://127.0.0.1:3000"
cors_origins = os.environ.get("CORS_ORIGINS", default_origins).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in cors_origins],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


FetcherFactory = Callable[[], DoubanFetcher]


def get_fetcher_factory() -> FetcherFactory:
    """Builds one fetcher (and HTTP client) per request, after the id is validated."""
    return lambda: DoubanFetcher(load_config().fetch)


def resolve_cache_time() -> int:
    try:
        return get_cache_time()
    except Exception as e:
        logger.warning(f"[api] Could not read cache config, using default: {e}")
        return DEFAULT_CACHE_TIME


def cache_headers(cache_time: int) -> dict:
    return {
        "Cache-Control": f"public, max-age={cache_time}, s-maxage={cache_time}",
        "CDN-Cache-Control": f"public, s-maxage={cache_time}",
        "Vercel-CDN-Cache-Control": f"public, s-maxage={cache_time}",
        "Netlify-Vary": "query",
    }


# --- Routes ---

@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "douban-details-api"}


@app.get("/api/douban/details")
@limiter.limit("60/minute")
async def douban_details(
    request: Request,
    id: Optional[str] = Query(None),
    make_fetcher: FetcherFactory = Depends(get_fetcher_factory),
):
    """Subject details for a numeric Douban id."""
    logger.info(f"[api] Request id={id!r}")

    try:
        douban_id = validate_douban_id(id or None)
    except InvalidIdError as e:
        logger.warning(f"[api] {e}")
        return JSONResponse(e.to_dict(), status_code=e.status_code)

    try:
        async with make_fetcher() as fetcher:
            result = await fetcher.fetch_details(douban_id)
    except FetchExhaustedError as e:
        logger.error(f"[api] {e}")
        return JSONResponse(e.to_dict(), status_code=e.status_code)

    logger.info(f"[api] Done id={douban_id}")
    return JSONResponse(result.to_dict(), headers=cache_headers(resolve_cache_time()))
