"""REST endpoints for credential slot management.

Paths:
    GET    /api/credentials          masked listing (environment + slots)
    POST   /api/credentials          add a key to a slot
    DELETE /api/credentials/{slot}   clear a slot

Secrets are validated before they are stored and never echoed back.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from lulu_companion.credentials.pool import CredentialPool
from lulu_companion.credentials.store import CredentialSlotsFullError, CredentialStore
from lulu_companion.domain.credential import InvalidCredentialError, detect_provider, mask_secret
from lulu_companion.models.credential import (
    AddCredentialRequest,
    CredentialInfo,
    CredentialListing,
)

logger = logging.getLogger(__name__)


def create_credentials_router(pool: CredentialPool, store: CredentialStore) -> APIRouter:
    """Factory that wires the credential endpoints to a pool and its store."""

    router = APIRouter(prefix="/api/credentials", tags=["credentials"])

    @router.get("", response_model=CredentialListing)
    async def list_credentials() -> CredentialListing:
        infos = [CredentialInfo(**entry) for entry in pool.describe()]
        return CredentialListing(
            credentials=infos,
            count=len(infos),
            next_available_slot=store.next_available_slot(),
        )

    @router.post("", response_model=CredentialInfo, status_code=201)
    async def add_credential(body: AddCredentialRequest) -> CredentialInfo:
        try:
            slot = store.put(body.secret, slot=body.slot)
        except InvalidCredentialError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except CredentialSlotsFullError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        secret = body.secret.strip()
        provider = detect_provider(secret)
        return CredentialInfo(
            slot=slot,
            source="store",
            provider=provider.value if provider else "unknown",
            key=mask_secret(secret),
        )

    @router.delete("/{slot}", status_code=204)
    async def remove_credential(slot: int) -> None:
        if not store.remove(slot):
            raise HTTPException(status_code=404, detail=f"Slot {slot} is empty")

    return router
