"""Error taxonomy shared by the fetch, parse and reconciliation layers."""

from __future__ import annotations


class DigestError(Exception):
    """Base class for every pipeline failure."""


class FetchExhausted(DigestError):
    """Every route in the chain (and every retry) failed for a URL."""

    def __init__(self, url: str, attempts: int, last_error: Exception | None = None) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Fetch failed after {attempts} attempts: {url}{detail}")


class MalformedDocument(DigestError):
    """The response body could not be parsed at all."""


# Name kept for callers that only distinguish parse failures.
ParseError = MalformedDocument


class EntryDropped(DigestError):
    """A single entry lacked a mandatory field and was skipped."""

    def __init__(self, reason: str, entry_id: str | None = None) -> None:
        self.reason = reason
        self.entry_id = entry_id
        super().__init__(f"{reason} ({entry_id})" if entry_id else reason)


class Cancelled(DigestError):
    """The run was superseded by a newer invocation; callers ignore it."""


__all__ = [
    "Cancelled",
    "DigestError",
    "EntryDropped",
    "FetchExhausted",
    "MalformedDocument",
    "ParseError",
]
