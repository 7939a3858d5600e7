"""Pydantic models for the API layer.

Defines the domain records (messages, vendors, requirements, vault sessions)
and the request/response schemas for all endpoints.
"""

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNTITLED_SESSION = "Untitled Sourcing Request"

_RATING_PREFIX = re.compile(r"^\s*(-?\d+(?:\.\d+)?)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRecord(BaseModel):
    """Single message in a conversation history. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class Vendor(BaseModel):
    """A supplier record parsed out of a model reply.

    `name` is the natural key. `id` is filled in by the accumulator when
    the model did not supply one.
    """
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str = Field(..., min_length=1)
    contact: str | None = None
    address: str | None = None
    website: str | None = None
    city: str | None = None
    country: str | None = None
    category: str | None = None
    rating: float | None = None
    notes: str | None = None
    verified: bool | None = None

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_rating(cls, value):
        """Accept 4.5, "4.5" and "4.5/5"; anything else becomes None."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            match = _RATING_PREFIX.match(value)
            return float(match.group(1)) if match else None
        return None

    @field_validator("contact", "address", "website", "city", "country", "category", "notes", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)


class Requirement(BaseModel):
    """Sourcing requirement captured from the initial form."""
    item_name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    quantity: str | None = None
    preferred_location: str = "Hyderabad"
    additional_specs: str | None = None


class VaultSession(BaseModel):
    """Snapshot of a sourcing task as stored in the vault.

    `id` and `timestamp` are assigned by the vault on save.
    """
    id: str | None = None
    timestamp: int = 0
    title: str = UNTITLED_SESSION
    requirement: Requirement | None = None
    messages: list[MessageRecord] = Field(default_factory=list)
    vendors: list[Vendor] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """Role/content pair sent by the frontend.

    Assistant turns may be empty (a reply that was only a vendor block).
    """
    role: Literal["user", "assistant"]
    content: str

    @model_validator(mode="after")
    def _user_content_required(self):
        if self.role == "user" and not self.content.strip():
            raise ValueError("user message content must not be empty")
        return self


class ChatRequest(BaseModel):
    """A follow-up turn from the frontend, carrying the UI-held history."""
    session_id: str = Field(..., min_length=1, description="Client session identifier")
    messages: list[ChatMessage] = Field(..., min_length=1)
    vendors: list[Vendor] = Field(default_factory=list)


class StartRequest(BaseModel):
    """The first turn of a sourcing conversation."""
    session_id: str = Field(..., min_length=1, description="Client session identifier")
    requirement: Requirement
    vendors: list[Vendor] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Outgoing response to the frontend."""
    text: str
    vendors: list[Vendor] = Field(default_factory=list)
    merged_vendors: list[Vendor] = Field(default_factory=list)
    fallback: bool = False
    echo: str | None = None
    latency_ms: int


class ExportRequest(BaseModel):
    vendors: list[Vendor] = Field(default_factory=list)


class ExtractResponse(BaseModel):
    filename: str
    text: str
    label: str
