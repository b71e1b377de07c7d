# services/providers.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

import httpx
from openai import OpenAI

log = logging.getLogger("llm")


@runtime_checkable
class Provider(Protocol):
    """Anything that turns a prompt into completion text."""

    name: str

    def complete(self, prompt: str) -> str:
        ...


class EmptyCompletionError(RuntimeError):
    """The provider answered but returned no text."""


# ---------- failure classification ----------

class Verdict(str, Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ObservedFailure:
    status: Optional[int]
    message: str  # lower-cased


@dataclass(frozen=True)
class Classification:
    verdict: Verdict
    reason: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.verdict is Verdict.RETRYABLE


RETRYABLE_STATUS: Dict[int, str] = {
    401: "auth",
    408: "timeout",
    429: "rate_limit",
    500: "server_error",
    502: "gateway",
    503: "overload",
    504: "timeout",
}

# First match wins; more specific phrases precede the generic ones
RETRYABLE_TEXT: Tuple[Tuple[str, str], ...] = (
    ("rate limit", "rate_limit"),
    ("rate_limit", "rate_limit"),
    ("too many requests", "rate_limit"),
    ("overload", "overload"),
    ("service unavailable", "overload"),
    ("bad gateway", "gateway"),
    ("gateway timeout", "timeout"),
    ("internal server error", "server_error"),
    ("timeout", "timeout"),
    ("timed out", "timeout"),
    ("unauthorized", "auth"),
    ("invalid api key", "auth"),
    ("authentication", "auth"),
    ("connection error", "network"),
    ("empty response", "empty_response"),
)

_STATUS_IN_TEXT_RE = re.compile(r"\b(" + "|".join(str(s) for s in sorted(RETRYABLE_STATUS)) + r")\b")


def _status_of(exc: BaseException) -> Optional[int]:
    # Vendor SDKs disagree on where the HTTP status lives
    for attr in ("status_code", "status"):
        v = getattr(exc, attr, None)
        if isinstance(v, int) and not isinstance(v, bool):
            return v
    response = getattr(exc, "response", None)
    v = getattr(response, "status_code", None) if response is not None else None
    if isinstance(v, int) and not isinstance(v, bool):
        return v
    return None


def observe_failure(exc: BaseException) -> ObservedFailure:
    return ObservedFailure(status=_status_of(exc), message=f"{type(exc).__name__}: {exc}".lower())


def classify_failure(observed: ObservedFailure) -> Classification:
    if observed.status in RETRYABLE_STATUS:
        return Classification(Verdict.RETRYABLE, RETRYABLE_STATUS[observed.status])
    for needle, reason in RETRYABLE_TEXT:
        if needle in observed.message:
            return Classification(Verdict.RETRYABLE, reason)
    # A structured non-retryable status outranks numbers quoted in the message
    m = _STATUS_IN_TEXT_RE.search(observed.message) if observed.status is None else None
    if m:
        return Classification(Verdict.RETRYABLE, RETRYABLE_STATUS[int(m.group(1))])
    return Classification(Verdict.FATAL)


def classify_exception(exc: BaseException) -> Classification:
    return classify_failure(observe_failure(exc))


# ---------- OpenAI-compatible chat completion providers ----------

class ChatCompletionProvider:
    """
    A vendor reachable through an OpenAI-compatible /chat/completions API
    (Groq, OpenRouter). SDK retries are off: fallback is the orchestrator's job.
    """

    def __init__(
        self,
        name: str,
        *,
        api_key: str,
        model: str,
        system_prompt: str,
        base_url: Optional[str] = None,
        json_mode: bool = True,
        temperature: float = 0.1,
        timeout_s: float = 60.0,
        client: Optional[Any] = None,
    ) -> None:
        self.name = name
        self.model = model
        self.system_prompt = system_prompt
        self.json_mode = json_mode
        self.temperature = temperature
        self._client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(timeout_s, connect=10.0),
            max_retries=0,
        )

    def complete(self, prompt: str) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
        }
        if self.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        log.info("Calling provider", extra={"provider": self.name, "model": self.model, "json_mode": self.json_mode})
        chat = self._client.chat.completions.create(**kwargs)
        content = chat.choices[0].message.content if chat.choices else None
        if not content or not content.strip():
            raise EmptyCompletionError(f"Empty response from {self.name}")
        log.info("Provider call ok", extra={"provider": self.name, "model": self.model, "chars": len(content)})
        return content

    def __repr__(self) -> str:
        return f"ChatCompletionProvider(name={self.name!r}, model={self.model!r})"
