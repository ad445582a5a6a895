from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wordnest.api.v1.dependencies import get_notifier
from wordnest.api.v1.router import router as v1_router
from wordnest.core.config import get_settings
from wordnest.core.logging import configure_logging
from wordnest.infra.db.change_stream import attach_change_stream
from wordnest.infra.db.session import get_session_factory, init_db

settings = get_settings()
configure_logging(settings.log_level)
init_db()

notifier = get_notifier()
attach_change_stream(get_session_factory(), notifier.publish)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    notifier.start()
    try:
        yield
    finally:
        notifier.stop()


app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    return {"ok": "true"}
