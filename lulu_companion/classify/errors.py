"""Classification error taxonomy.

TransportError, HTTPError and ParseError each make the client move on to
the next credential slot.  Only NoCredentialError short-circuits: there is
nothing to try.
"""

from __future__ import annotations


class ClassificationError(Exception):
    """Base class for failures of a single classification attempt."""


class NoCredentialError(ClassificationError):
    """Raised when the credential pool is empty."""


class TransportError(ClassificationError):
    """The request never produced an HTTP response (DNS, TLS, timeout...)."""


class HTTPError(ClassificationError):
    """The endpoint answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


class ParseError(ClassificationError):
    """The response envelope did not contain the generated text."""
