"""
Pydantic models for the service-level API routes.
"""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    storage: str
    active_sessions: int
