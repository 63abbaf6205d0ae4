# Event extraction schemas.
# Created: 2026-10-06

from __future__ import annotations

from pydantic import BaseModel, Field


class EventModel(BaseModel):
    """A calendar event as exchanged over the API."""

    id: str | None = None
    title: str = "未命名事件"
    start_date: str = Field(default="", description="Local YYYY-MM-DDTHH:MM:SS")
    end_date: str = ""
    description: str = ""
    priority: str = "low"
    type: str = "personal"
    reminder_minutes: int = Field(default=15, ge=0)
    reminder_methods: list[str] = Field(default_factory=lambda: ["popup"])
    enable_reminder: bool = True
    enable_notification: bool = True
    enable_sound: bool = True
    created_at: str | None = None
    updated_at: str | None = None


class ExtractRequest(BaseModel):
    """Free text to extract events from."""

    text: str = Field(..., min_length=1, max_length=20000)


class ExtractBatchRequest(BaseModel):
    """Several texts, deduplicated together."""

    texts: list[str] = Field(..., min_length=1, max_length=200)


class ExtractResponse(BaseModel):
    success: bool
    events: list[EventModel]
    confidence: float
    source: str
    error: str | None = None
    message: str | None = None


class ExtractBatchResponse(BaseModel):
    success: bool
    events: list[EventModel]
    total: int
    unique: int
    duplicates: int
