from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


SortDirection = Literal["asc", "desc"]


class MoodAnalysisItem(BaseModel):
    """Mood judgment attached to an ingestion response."""

    mood: int = Field(..., ge=1, le=5)
    mood_description: str
    emotions: list[str] = Field(default_factory=list)


class CallReportItem(BaseModel):
    """Serialized phone call report row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    conversation_id: str | None = None
    mood: int = Field(..., ge=1, le=5)
    mood_description: str
    emotions: list[str] = Field(default_factory=list)
    created_at: datetime


class CallReportIngestResponse(BaseModel):
    success: bool = True
    message: str
    data: CallReportItem
    mood_analysis: MoodAnalysisItem


class PaginationMeta(BaseModel):
    """Derived paging fields; keys are camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total_count: int = Field(..., serialization_alias="totalCount")
    total_pages: int = Field(..., serialization_alias="totalPages")
    has_next_page: bool = Field(..., serialization_alias="hasNextPage")
    has_prev_page: bool = Field(..., serialization_alias="hasPrevPage")


class CallReportListResponse(BaseModel):
    success: bool = True
    message: str
    data: list[CallReportItem]
    pagination: PaginationMeta
