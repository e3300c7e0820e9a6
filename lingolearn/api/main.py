"""
FastAPI application for the LingoLearn study API.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lingolearn.config import get_settings
from lingolearn.db.session import create_all
from lingolearn.store import InMemoryItemStore, InMemoryProgressStore

from .deps import build_registry
from .practice_routes import router as practice_router
from .routes import router
from .study_routes import router as study_router
from .word_routes import router as word_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load settings and prepare storage on startup; drop sessions on shutdown."""
    settings = get_settings()
    app.state.settings = settings
    app.state.sessions = build_registry(settings)
    if settings.storage == "memory":
        app.state.item_store = InMemoryItemStore()
        app.state.progress_store = InMemoryProgressStore()
    else:
        await create_all()
    logger.info("LingoLearn API started with %s storage", settings.storage)
    yield
    app.state.sessions.clear()


app = FastAPI(
    title="LingoLearn API",
    description="Vocabulary flashcards with SM-2 spaced repetition",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
app.include_router(router)
app.include_router(word_router)
app.include_router(study_router)
app.include_router(practice_router)
