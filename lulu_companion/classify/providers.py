"""Per-provider request shapes for the classification endpoint.

A ProviderProfile knows, for one provider, where to send the prompt, how
to authenticate, what the body looks like, and where the generated text
sits in the response.  Anthropic and 3mate share the Messages API shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from lulu_companion.classify.errors import ParseError
from lulu_companion.domain.enums import Provider

HeaderBuilder = Callable[[str], dict[str, str]]
BodyBuilder = Callable[[str], dict[str, Any]]
TextExtractor = Callable[[Any], str]


@dataclass(frozen=True)
class ProviderProfile:
    """How to talk to one text-generation provider."""

    provider: Provider
    url: str
    headers: HeaderBuilder
    body: BodyBuilder
    extract_text: TextExtractor


# ── Response envelopes ───────────────────────────────────────────────────────

def _messages_text(data: Any) -> str:
    """``{"content": [{"text": ...}]}``"""
    try:
        text = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ParseError("Failed to parse API response: no content[0].text") from exc
    if not isinstance(text, str):
        raise ParseError("Failed to parse API response: content[0].text is not a string")
    return text


def _chat_completions_text(data: Any) -> str:
    """``{"choices": [{"message": {"content": ...}}]}``"""
    try:
        text = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ParseError("Failed to parse API response: no choices[0].message.content") from exc
    if not isinstance(text, str):
        raise ParseError("Failed to parse API response: message content is not a string")
    return text


def _generate_content_text(data: Any) -> str:
    """``{"candidates": [{"content": {"parts": [{"text": ...}]}}]}``"""
    try:
        parts = data["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts)
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise ParseError("Failed to parse API response: no candidates[0].content.parts") from exc
    if not text:
        raise ParseError("Failed to parse API response: empty candidate text")
    return text


# ── Profiles ─────────────────────────────────────────────────────────────────

def build_profiles(
    *,
    anthropic_url: str,
    anthropic_version: str,
    anthropic_model: str,
    threemate_url: str,
    openai_url: str,
    openai_model: str,
    gemini_base_url: str,
    gemini_model: str,
    max_tokens: int,
) -> dict[Provider, ProviderProfile]:
    """Assemble the provider table from configuration values."""

    def messages_headers(secret: str) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": secret,
            "anthropic-version": anthropic_version,
        }

    def messages_body(prompt: str) -> dict[str, Any]:
        return {
            "model": anthropic_model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def openai_headers(secret: str) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "authorization": f"Bearer {secret}",
        }

    def openai_body(prompt: str) -> dict[str, Any]:
        return {
            "model": openai_model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def gemini_headers(secret: str) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-goog-api-key": secret,
        }

    def gemini_body(prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        }

    return {
        Provider.ANTHROPIC: ProviderProfile(
            Provider.ANTHROPIC, anthropic_url, messages_headers, messages_body, _messages_text
        ),
        Provider.THREEMATE: ProviderProfile(
            Provider.THREEMATE, threemate_url, messages_headers, messages_body, _messages_text
        ),
        Provider.OPENAI: ProviderProfile(
            Provider.OPENAI, openai_url, openai_headers, openai_body, _chat_completions_text
        ),
        Provider.GEMINI: ProviderProfile(
            Provider.GEMINI,
            f"{gemini_base_url.rstrip('/')}/{gemini_model}:generateContent",
            gemini_headers,
            gemini_body,
            _generate_content_text,
        ),
    }


def default_profiles() -> dict[Provider, ProviderProfile]:
    """Provider table with the stock endpoints and models."""
    return build_profiles(
        anthropic_url="https://api.anthropic.com/v1/messages",
        anthropic_version="2023-06-01",
        anthropic_model="claude-sonnet-4-20250514",
        threemate_url="https://api.3mate.io/v1/messages",
        openai_url="https://api.openai.com/v1/chat/completions",
        openai_model="gpt-4o-mini",
        gemini_base_url="https://generativelanguage.googleapis.com/v1beta/models",
        gemini_model="gemini-2.0-flash",
        max_tokens=1024,
    )
