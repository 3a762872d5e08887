from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from notekeeper.api import activity, auth, categories, notes, shares, tags
from notekeeper.clock import Clock
from notekeeper.config import Settings
from notekeeper.context import AppContext, build_context
from notekeeper.errors import DocumentStoreError, NoteKeeperError

logger = logging.getLogger(__name__)


async def _purge_loop(ctx: AppContext, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(ctx.lifecycle.purge_expired)
        except Exception:
            # keep sweeping; reads filter expired notes anyway
            logger.exception("Purge sweep failed")


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx = build_context(settings, clock)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if settings.purge_interval_seconds > 0:
            task = asyncio.create_task(_purge_loop(ctx, settings.purge_interval_seconds))
            logger.info("Purge sweep every %ss", settings.purge_interval_seconds)
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    app = FastAPI(title="NoteKeeper API", lifespan=lifespan)
    app.state.context = ctx

    @app.exception_handler(NoteKeeperError)
    async def notekeeper_error_handler(request: Request, exc: NoteKeeperError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(DocumentStoreError)
    async def storage_error_handler(request: Request, exc: DocumentStoreError):
        logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(shares.router)
    app.include_router(categories.router)
    app.include_router(tags.router)
    app.include_router(activity.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()


def run() -> None:
    settings = Settings()
    uvicorn.run("notekeeper.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
