"""
API routes: health.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from lingolearn.config import Settings
from lingolearn.skills.session_service import SessionRegistry

from .deps import get_app_settings, get_registry
from .models import HealthResponse

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Annotated[Settings, Depends(get_app_settings)],
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> HealthResponse:
    """Health check."""
    return HealthResponse(status="ok", storage=settings.storage, active_sessions=len(registry))
