from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from throne.api.deps import get_store
from throne.api.routes import router
from throne.config import get_settings
from throne.economy import economy
from throne.messages import drain_notices

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    economy.set_house_edge(settings.house_edge)
    store = app.dependency_overrides.get(get_store, get_store)()
    stats = store.stats()
    logger.info("King of the chat ready: %d chats, %d users", stats.chat_count, stats.user_count)
    yield
    await drain_notices()


app = FastAPI(title="king-of-the-chat", version="0.1.0", lifespan=lifespan)
app.include_router(router)


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "king-of-the-chat", "version": "0.1.0"}
