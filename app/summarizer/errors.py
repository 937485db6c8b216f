"""Error taxonomy for the summarization pipeline."""

from __future__ import annotations

from typing import Any, Optional


class SummarizerError(Exception):
    """Base class for every error surfaced to API callers."""

    error_code = "summarizer_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InputError(SummarizerError):
    """Missing, empty or oversized input. Never reaches the provider."""

    error_code = "invalid_request"


class UpstreamError(SummarizerError):
    error_code = "upstream_failure"


class UpstreamQuotaError(UpstreamError):
    """The completion provider reports exhausted credits or quota."""

    error_code = "upstream_quota_exceeded"
    hint = "Completion provider credits or quota exhausted. Add credits or lower max_tokens."


class UpstreamTransientError(UpstreamError):
    """Timeout, network failure, unexpected status or unusable response body."""

    error_code = "upstream_failure"
