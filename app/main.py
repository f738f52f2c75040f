import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.api import handshake, influencer
from app.core.config import settings
from app.core.db import engine, get_session
from app.core.exceptions import LinkError
from app.services.handshake import sweep_expired_handshakes
from app.utils.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    link_error_handler,
    validation_exception_handler,
)


async def _sweep_expired_handshakes_periodically(interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with get_session() as session:
                await sweep_expired_handshakes(session)
        except Exception:
            logger.exception("Expired handshake sweep failed")


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncGenerator[None, FastAPI]:
    sweeper: asyncio.Task[None] | None = None
    if settings.handshake_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            _sweep_expired_handshakes_periodically(settings.handshake_sweep_interval_seconds)
        )
        logger.info(
            f"Handshake sweeper running every {settings.handshake_sweep_interval_seconds}s"
        )

    yield

    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await engine.dispose()


app = FastAPI(title="Influencer Account Linking API", lifespan=app_lifespan)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(handshake.router, prefix="/api")
app.include_router(influencer.router, prefix="/api")

app.add_exception_handler(LinkError, link_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def healthz() -> str:
    return "OK"
