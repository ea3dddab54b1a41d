"""Request/response bodies for the credential management API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class AddCredentialRequest(BaseModel):
    """A key to persist, optionally into a specific slot."""

    secret: str = Field(..., min_length=1, description="API key")
    slot: Optional[int] = Field(default=None, ge=0, description="Target slot; first free slot if omitted")


class CredentialInfo(BaseModel):
    """Masked description of one configured credential."""

    slot: int
    source: str
    provider: str
    key: str


class CredentialListing(BaseModel):
    credentials: list[CredentialInfo] = Field(default_factory=list)
    count: int = 0
    next_available_slot: Optional[int] = None
