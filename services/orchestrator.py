# services/orchestrator.py
from __future__ import annotations

import logging
from typing import NamedTuple, Optional

from errors import ErrorKind, GenerationError
from services.providers import EmptyCompletionError, Provider, classify_exception

log = logging.getLogger("llm")


class Completion(NamedTuple):
    text: str
    provider: str
    fallback_used: bool


def _complete(provider: Provider, prompt: str) -> str:
    text = provider.complete(prompt)
    if not isinstance(text, str) or not text.strip():
        raise EmptyCompletionError(f"Empty response from {provider.name}")
    return text


class ProviderOrchestrator:
    """
    Primary provider first; one hop to the secondary on a retryable failure.

    At most two sequential calls per prompt. When both fail, the primary's
    failure is the reported cause and the secondary's is kept as auxiliary
    detail on the raised GenerationError.
    """

    def __init__(self, primary: Provider, secondary: Optional[Provider] = None) -> None:
        self.primary = primary
        self.secondary = secondary

    def generate(self, prompt: str) -> str:
        return self.complete_with_fallback(prompt).text

    def complete_with_fallback(self, prompt: str) -> Completion:
        try:
            return Completion(_complete(self.primary, prompt), self.primary.name, False)
        except Exception as primary_exc:
            verdict = classify_exception(primary_exc)
            log.warning("Primary provider failed", extra={
                "provider": self.primary.name,
                "verdict": verdict.verdict.value,
                "reason": verdict.reason,
                "error": str(primary_exc),
            })

            if not verdict.retryable:
                raise GenerationError(
                    ErrorKind.PROVIDER_REJECTED,
                    str(primary_exc),
                    provider=self.primary.name,
                    fallback_attempted=False,
                ) from primary_exc

            if self.secondary is None:
                raise GenerationError(
                    ErrorKind.ALL_PROVIDERS_EXHAUSTED,
                    str(primary_exc),
                    provider=self.primary.name,
                    fallback_attempted=False,
                    reason=verdict.reason,
                ) from primary_exc

            try:
                text = _complete(self.secondary, prompt)
            except Exception as secondary_exc:
                log.error("Fallback provider failed", extra={
                    "provider": self.secondary.name,
                    "error": str(secondary_exc),
                    "primary_error": str(primary_exc),
                })
                raise GenerationError(
                    ErrorKind.ALL_PROVIDERS_EXHAUSTED,
                    str(primary_exc),
                    provider=self.primary.name,
                    fallback_attempted=True,
                    reason=verdict.reason,
                    secondary_detail=f"{self.secondary.name}: {secondary_exc}",
                ) from primary_exc

            log.info("Fallback provider succeeded", extra={
                "provider": self.secondary.name,
                "swallowed": ErrorKind.PROVIDER_UNAVAILABLE.value,
                "primary_reason": verdict.reason,
            })
            return Completion(text, self.secondary.name, True)
