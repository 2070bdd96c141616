import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.rate_limit import SlidingWindowRateLimiter
from src.api.routes.chat import router as chat_router
from src.api.routes.search import router as search_router
from src.config import settings
from src.errors import EmbeddingUnavailable, EpisodeNotFound, LLMUnavailable, StoreUnavailable

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Podcast Library API",
    description="Retrieval-augmented chat and search over podcast transcripts",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
    ],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.rate_limiter = SlidingWindowRateLimiter(
    max_requests=settings.rate_limit_requests,
    window_seconds=settings.rate_limit_window_seconds,
)

app.include_router(chat_router)
app.include_router(search_router)


# Upstream failures return 503 as JSON so CORS headers stay intact.
@app.exception_handler(EmbeddingUnavailable)
@app.exception_handler(LLMUnavailable)
@app.exception_handler(StoreUnavailable)
async def upstream_unavailable(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Upstream failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(EpisodeNotFound)
async def episode_not_found(request: Request, exc: EpisodeNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
