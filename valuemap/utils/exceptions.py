"""Custom exception hierarchy for the value-chain generation service."""

from __future__ import annotations


class ValueMapError(Exception):
    """Base exception for all generation service errors."""


class InvalidQueryError(ValueMapError):
    """Query rejected at the boundary (empty, too long, or no usable characters)."""


class CollaboratorError(ValueMapError):
    """Base for generation collaborator failures."""


class CollaboratorUnavailableError(CollaboratorError):
    """No credentials, or the collaborator endpoint is unreachable or refuses us."""


class MalformedOutputError(CollaboratorError):
    """Collaborator answered, but the payload could not be parsed as JSON."""


class RateLimitExceededError(ValueMapError):
    """Caller exceeded the sliding-window quota before any collaborator call."""

    def __init__(self, caller_id: str, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded for {caller_id}; retry in {retry_after}s")
        self.caller_id = caller_id
        self.retry_after = retry_after


class LibraryAssetError(ValueMapError):
    """A library asset exists but could not be read or validated."""


class SynthesisError(ValueMapError):
    """The synthesis pipeline produced nothing usable."""
