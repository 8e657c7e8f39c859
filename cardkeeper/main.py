import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cardkeeper.api import (
    binders_router,
    collection_router,
    decks_router,
    health_router,
)
from cardkeeper.config import settings
from cardkeeper.db.database import init_db
from cardkeeper.models.failure import KnownError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("cardkeeper"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render explainable failures as a FailureDetail body."""
    logger.info("Request failed (%s): %s", exc.kind.value, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_detail().model_dump(mode="json", exclude_none=True),
    )


app.include_router(binders_router)
app.include_router(collection_router)
app.include_router(decks_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
