"""Credential slots and provider inference.

A credential's provider is decided purely by its literal prefix.  Anything
that matches no recognised prefix, or is too short to be a real key, is
rejected here before it can reach the network.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from lulu_companion.domain.enums import CredentialSource, Provider

MIN_SECRET_LENGTH = 21

# Checked in order: the first matching prefix decides.  ``None`` rejects.
_PREFIXES: tuple[tuple[str, Provider | None], ...] = (
    ("sk-ant-api", Provider.ANTHROPIC),
    ("sk-3mate-", Provider.THREEMATE),
    ("sk-ant-", None),  # OAuth / setup tokens are not API keys
    ("sk-", Provider.OPENAI),
    ("AIza", Provider.GEMINI),
)


class InvalidCredentialError(ValueError):
    """Raised when a secret is not a usable API key."""


def detect_provider(secret: str) -> Provider | None:
    """Return the provider a secret belongs to, or None if unrecognised."""
    cleaned = secret.strip()
    if len(cleaned) < MIN_SECRET_LENGTH:
        return None
    for prefix, provider in _PREFIXES:
        if cleaned.startswith(prefix):
            return provider
    return None


def validate_secret(secret: str) -> Provider:
    """Return the provider for *secret* or raise InvalidCredentialError."""
    cleaned = secret.strip()
    if len(cleaned) < MIN_SECRET_LENGTH:
        raise InvalidCredentialError("Key appears too short")
    provider = detect_provider(cleaned)
    if provider is None:
        raise InvalidCredentialError(
            "Invalid key format. Supported: sk-ant-api (Anthropic), sk-3mate- (3mate), "
            "sk- (OpenAI), AIza (Gemini). OAuth/setup tokens are not accepted."
        )
    return provider


def mask_secret(secret: str) -> str:
    """Short, display-safe form of a secret."""
    return f"{secret[:12]}..." if len(secret) > 12 else "***"


class CredentialSlot(BaseModel):
    """One entry of the ordered credential pool."""

    slot: int = Field(..., ge=0)
    secret: str = Field(..., min_length=MIN_SECRET_LENGTH, repr=False)
    source: CredentialSource
    provider: Provider

    model_config = {"frozen": True}

    @classmethod
    def build(cls, slot: int, secret: str, source: CredentialSource) -> CredentialSlot:
        """Validate *secret* and wrap it in a slot.

        Raises:
            InvalidCredentialError: If the secret is not a recognised key.
        """
        cleaned = secret.strip()
        provider = validate_secret(cleaned)
        return cls(slot=slot, secret=cleaned, source=source, provider=provider)

    @property
    def masked(self) -> str:
        return mask_secret(self.secret)

    @property
    def label(self) -> str:
        if self.source == CredentialSource.ENVIRONMENT:
            return f"env[{self.slot}]"
        return f"slot {self.slot}"

    def describe(self) -> dict:
        return {
            "slot": self.slot,
            "source": self.source.value,
            "provider": self.provider.value,
            "key": self.masked,
        }
