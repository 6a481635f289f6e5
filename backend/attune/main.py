from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .deps import _session_reaper, content_source, runtime_logs, sessions
from .routes import content, ingest, logs, ws_route
from .routes import sessions as session_routes
from .runtime_logs import RuntimeLogHandler

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("attune.backend")
runtime_log_handler = RuntimeLogHandler(runtime_logs)
root_logger = logging.getLogger()
if not any(isinstance(handler, RuntimeLogHandler) for handler in root_logger.handlers):
    root_logger.addHandler(runtime_log_handler)


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    logger.info(
        "attune backend starting content_source=%s window=%d threshold=%d cooldown_s=%.1f",
        content_source.mode,
        settings.smoothing_window,
        settings.low_focus_threshold,
        settings.suggestion_cooldown_s,
    )
    reaper = None
    if settings.session_idle_timeout_s > 0:
        reaper = asyncio.create_task(_session_reaper(settings.session_reap_interval_s))
    try:
        yield
    finally:
        if reaper is not None:
            reaper.cancel()
        closed = await sessions.reset()
        await content_source.aclose()
        logger.info("attune backend stopped; closed %d session(s)", closed)


app = FastAPI(title="Attune Backend", version=__version__, lifespan=_lifespan)

if settings.allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(session_routes.router)
app.include_router(ingest.router)
app.include_router(content.router)
app.include_router(ws_route.router)
app.include_router(logs.router)


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "sessions": await sessions.count(),
        "content_source": content_source.mode,
    }


def run() -> None:
    uvicorn.run("attune.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
