"""Request/response Pydantic models for the generation API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from valuemap.models.schemas import Source


class GenerateRequest(BaseModel):
    query: str = Field(..., examples=["wheat farming"])
    stream: bool = False


class GenerateResponse(BaseModel):
    data: dict[str, Any]
    source: Source
    error: str | None = None


class LibraryListing(BaseModel):
    keys: list[str]
    aliased_subjects: list[str] = Field(default_factory=list)
