import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from goalday.alignment import store
from goalday.alignment.router import router as goals_router
from goalday.config import configure_logging, settings
from goalday.db import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    if settings.create_tables:
        async with engine.begin() as conn:
            await store.ensure_schema(conn)
        logger.info("Ensured table %s", store.TABLE)
    yield
    await engine.dispose()


app = FastAPI(title="Goal-Aligned Day", version="0.1.0", lifespan=lifespan)
app.include_router(goals_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "goals": {
            "list": "/goals",
            "today": "/goals/today",
            "streak": "/goals/streak",
            "weekly": "/goals/weekly",
            "history": "/goals/history",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
