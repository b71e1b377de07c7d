# errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ErrorKind(str, Enum):
    REQUEST_INVALID = "request_invalid"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    ALL_PROVIDERS_EXHAUSTED = "all_providers_exhausted"
    MALFORMED_PROVIDER_OUTPUT = "malformed_provider_output"
    SCHEMA_VIOLATION = "schema_violation"
    CONFIGURATION = "configuration_error"
    PROVIDER_REJECTED = "provider_rejected"


# Caller-facing text per kind. Provider payloads never reach the response body.
_PUBLIC_DETAILS: Dict[ErrorKind, str] = {
    ErrorKind.PROVIDER_UNAVAILABLE: "The AI service is temporarily unavailable. Please try again later.",
    ErrorKind.MALFORMED_PROVIDER_OUTPUT: "The AI returned malformed JSON",
    ErrorKind.SCHEMA_VIOLATION: "The AI response does not match the expected format",
    ErrorKind.CONFIGURATION: "Service configuration error. Please contact support",
    ErrorKind.PROVIDER_REJECTED: "The AI service rejected the request",
}

_RATE_LIMITED_DETAIL = (
    "Both primary and backup services are currently overloaded. Please try again in a moment."
)
_UNAVAILABLE_DETAIL = (
    "Both primary and backup AI services are currently unavailable. Please try again later."
)


class GenerationError(Exception):
    """Single normalized failure of the generation pipeline.

    `detail` is for logs; `public_details` is what the caller sees. When the
    fallback provider also failed, the primary failure stays the reported
    cause and the secondary one is kept in `secondary_detail`.
    """

    def __init__(
        self,
        kind: ErrorKind,
        detail: str,
        *,
        provider: Optional[str] = None,
        fallback_attempted: bool = False,
        reason: Optional[str] = None,
        secondary_detail: Optional[str] = None,
        public_details: Union[str, List[str], None] = None,
    ) -> None:
        super().__init__(detail)
        self.kind = kind
        self.detail = detail
        self.provider = provider
        self.fallback_attempted = fallback_attempted
        self.reason = reason
        self.secondary_detail = secondary_detail
        self._public_details = public_details

    @property
    def status_code(self) -> int:
        if self.kind is ErrorKind.REQUEST_INVALID:
            return 400
        if self.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED:
            return 429 if self.reason == "rate_limit" else 503
        if self.kind is ErrorKind.PROVIDER_UNAVAILABLE:
            return 503
        return 500

    @property
    def public_details(self) -> Union[str, List[str]]:
        if self._public_details is not None:
            return self._public_details
        if self.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED:
            return _RATE_LIMITED_DETAIL if self.reason == "rate_limit" else _UNAVAILABLE_DETAIL
        return _PUBLIC_DETAILS.get(self.kind, "An unexpected error occurred")

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.kind.value, "details": self.public_details}

    def log_extra(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "provider": self.provider,
            "reason": self.reason,
            "fallback_attempted": self.fallback_attempted,
            "secondary_detail": self.secondary_detail,
        }

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, provider={self.provider!r}, detail={self.detail!r})"
