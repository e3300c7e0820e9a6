"""
FastAPI dependencies: settings, storage backends and the session registry.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import AsyncGenerator

from fastapi import Request

from lingolearn.config import Settings, get_settings
from lingolearn.db.session import get_sessionmaker
from lingolearn.skills.session_service import SessionRegistry, StudySessionService
from lingolearn.skills.study_service import StudySelectionConfig, StudyService
from lingolearn.store import (
    InMemoryItemStore,
    InMemoryProgressStore,
    ItemStore,
    ProgressStore,
    SqlItemStore,
    SqlProgressStore,
)


@dataclass
class Stores:
    items: ItemStore
    progress: ProgressStore


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = get_settings()
        request.app.state.settings = settings
    return settings


def _memory_stores(request: Request) -> Stores:
    state = request.app.state
    if getattr(state, "item_store", None) is None:
        state.item_store = InMemoryItemStore()
    if getattr(state, "progress_store", None) is None:
        state.progress_store = InMemoryProgressStore()
    return Stores(items=state.item_store, progress=state.progress_store)


async def get_stores(request: Request) -> AsyncGenerator[Stores, None]:
    """Yield the configured stores; SQL stores get one AsyncSession per request."""
    settings = get_app_settings(request)
    if settings.storage == "memory":
        yield _memory_stores(request)
        return
    async with get_sessionmaker()() as db:
        yield Stores(items=SqlItemStore(db), progress=SqlProgressStore(db))


def build_registry(settings: Settings) -> SessionRegistry:
    return SessionRegistry(
        max_age=dt.timedelta(minutes=settings.study.session_max_age_minutes),
        max_sessions=settings.study.max_active_sessions,
    )


def get_registry(request: Request) -> SessionRegistry:
    registry = getattr(request.app.state, "sessions", None)
    if registry is None:
        registry = build_registry(get_app_settings(request))
        request.app.state.sessions = registry
    return registry


def get_now() -> dt.datetime:
    """Current UTC time; overridden in tests to pin the clock."""
    return dt.datetime.now(dt.timezone.utc)


def build_study_service(settings: Settings) -> StudyService:
    return StudyService(
        StudySelectionConfig(cards_per_session=settings.study.cards_per_session),
        sm2_config=settings.sm2,
        mastery_config=settings.mastery,
    )


def build_session_service(stores: Stores, settings: Settings) -> StudySessionService:
    return StudySessionService(
        items=stores.items,
        progress=stores.progress,
        study=build_study_service(settings),
    )
