from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

if __package__ is None or __package__ == "":
    project_root = Path(__file__).resolve().parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

from fastapi import FastAPI

from app.api.handlers import cache_router, router as api_router
from app.config import get_settings
from app.dependencies import close_http_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_http_client()


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Instagram Post Resolver API", version="1.0.0", lifespan=lifespan)
    app.include_router(api_router)
    if settings.enable_cache_debug:
        app.include_router(cache_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("UVICORN_HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", os.getenv("UVICORN_PORT", "5000"))),
        reload=os.getenv("UVICORN_RELOAD", "false").lower() == "true",
    )
