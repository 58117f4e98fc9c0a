"""Pydantic request/response models for the did-btc resolver server."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ResolveRequest(BaseModel):
    """Request body for POST /resolve."""

    transactions: list[str] = Field(min_length=1)
    did_index: Optional[int] = Field(default=None, ge=0)
    id: Optional[str] = None


class HistoryEntry(BaseModel):
    """Outcome of one update transaction during resolution."""

    outcome: str
    reason: Optional[str] = None


class ResolveResponse(BaseModel):
    """Response body for POST /resolve."""

    did: dict[str, Any]
    history: list[HistoryEntry] = Field(default_factory=list)
    document: Optional[dict[str, Any]] = None


class IdentifierResponse(BaseModel):
    """Response body for GET /identifiers/{did}."""

    id: str
    block_height: int
    tx_index: int
    did_index: Optional[int] = None
    network: str
    document: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "did-btc"
    version: str = "0.1.0"
    resolved_count: int = 0


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str = ""


__all__ = [
    "ResolveRequest",
    "HistoryEntry",
    "ResolveResponse",
    "IdentifierResponse",
    "HealthResponse",
    "ErrorResponse",
]
