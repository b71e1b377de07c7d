# services/itinerary_service.py
from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from config import Settings
from errors import ErrorKind, GenerationError
from models import DayPlan, GeneratedTrip, Itinerary, TripRequest
from services import cost_normalizer
from services.currency_service import CurrencyTable, default_table
from services.orchestrator import ProviderOrchestrator
from services.prompt_builder import FALLBACK_SYSTEM_PROMPT, PRIMARY_SYSTEM_PROMPT, build_prompt
from services.providers import ChatCompletionProvider
from services.request_validator import validate_request
from services.response_validator import find_violation

log = logging.getLogger("pipeline")

_CLOCK_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap]\.?m\.?)?$", re.IGNORECASE)

def _strip_code_fences(s: str | None) -> str:
    if not s:
        return ""
    t = s.strip()
    if t.startswith("```"):
        parts = t.split("```")
        if len(parts) >= 3:
            inner = parts[1].strip()
            # Drop a language tag such as ```json
            if inner[:4].lower() == "json":
                inner = inner[4:].strip()
            return inner
    return t

def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} in provider output")

def parse_provider_json(raw: str) -> Any:
    """json.loads that refuses NaN/Infinity, after removing markdown fences."""
    return json.loads(_strip_code_fences(raw), parse_constant=_reject_constant)

def canonical_time(value: str) -> str:
    """'9:05', '9am', '2:30 PM' -> 'HH:MM'. Unrecognised text is returned unchanged."""
    m = _CLOCK_RE.match(value.strip())
    if not m:
        return value
    hour, minute, meridiem = int(m.group(1)), int(m.group(2) or 0), m.group(3)
    if meridiem is None and m.group(2) is None:
        return value
    if meridiem:
        if not 1 <= hour <= 12:
            return value
        is_pm = meridiem.lower().startswith("p")
        hour = (hour % 12) + (12 if is_pm else 0)
    if hour == 24 and minute == 0:
        hour, minute = 23, 59
    if hour > 23 or minute > 59:
        return value
    return f"{hour:02d}:{minute:02d}"

def _normalize_times(day: DayPlan) -> DayPlan:
    acts = [a.model_copy(update={"time": canonical_time(a.time)}) for a in day.activities]
    return day.model_copy(update={"activities": acts})

class ItineraryPipeline:
    """
    Request validation -> provider call (with fallback) -> shape validation ->
    cost annotation. Stateless across calls; one result or one GenerationError.
    """

    def __init__(
        self,
        orchestrator: Optional[ProviderOrchestrator],
        *,
        currency_table: CurrencyTable = default_table,
        prompt_builder: Callable[[TripRequest], str] = build_prompt,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.currency_table = currency_table
        self.prompt_builder = prompt_builder
        self._today = today or date.today

    def generate(self, body: Mapping[str, Any]) -> GeneratedTrip:
        report = validate_request(body, today=self._today())
        if not report.valid:
            raise GenerationError(
                ErrorKind.REQUEST_INVALID,
                "; ".join(report.errors),
                public_details=list(report.errors),
            )
        for w in report.warnings:
            log.info("Request warning: %s", w)
        if self.orchestrator is None:
            raise GenerationError(ErrorKind.CONFIGURATION, "GROQ_API_KEY not configured.")

        trip = TripRequest.from_payload(body, report)
        prompt = self.prompt_builder(trip)

        log.info("Generating itinerary", extra={
            "destination": trip.destination,
            "duration_days": trip.duration_days,
            "travelers_count": trip.travelers_count,
            "budget_currency": trip.budget_currency,
        })
        completion = self.orchestrator.complete_with_fallback(prompt)

        try:
            parsed = parse_provider_json(completion.text)
        except (ValueError, RecursionError) as e:
            log.error("Provider returned malformed JSON", extra={
                "provider": completion.provider,
                "error": str(e),
                "raw_head": completion.text[:200],
            })
            raise GenerationError(
                ErrorKind.MALFORMED_PROVIDER_OUTPUT, str(e), provider=completion.provider,
                fallback_attempted=completion.fallback_used,
            ) from e

        violation = find_violation(parsed)
        if violation is not None:
            log.error("Provider output failed shape validation", extra={
                "provider": completion.provider,
                "violation": violation,
            })
            raise GenerationError(
                ErrorKind.SCHEMA_VIOLATION, f"first violation at {violation}", provider=completion.provider,
                fallback_attempted=completion.fallback_used,
            )

        try:
            itinerary = Itinerary.model_validate(parsed)
        except ValidationError as e:
            # The predicate above should make this unreachable
            raise GenerationError(
                ErrorKind.SCHEMA_VIOLATION, str(e), provider=completion.provider,
                fallback_attempted=completion.fallback_used,
            ) from e

        days = cost_normalizer.annotate_daily_costs([_normalize_times(d) for d in itinerary.itinerary])
        summary = cost_normalizer.cost_summary(
            days,
            budget_amount=trip.budget_amount,
            budget_currency=trip.budget_currency,
            table=self.currency_table,
        )

        log.info("Itinerary generation completed", extra={
            "provider": completion.provider,
            "fallback_used": completion.fallback_used,
            "days": len(days),
            "activities_total": sum(len(d.activities) for d in days),
            "total_cost_usd": round(summary.total_cost_usd, 2),
        })
        return GeneratedTrip(
            itinerary=days,
            packing_list=itinerary.packing_list,
            cost_summary=summary,
            number_of_people=trip.travelers_count,
        )

def build_pipeline(settings: Settings, currency_table: CurrencyTable = default_table) -> ItineraryPipeline:
    """
    Wire providers from settings. Without a primary key the pipeline still
    validates requests but fails valid ones with a configuration error.
    """
    if not settings.GROQ_API_KEY:
        log.warning("GROQ_API_KEY not configured; generation disabled")
        return ItineraryPipeline(None, currency_table=currency_table)

    primary = ChatCompletionProvider(
        "groq",
        api_key=settings.GROQ_API_KEY,
        model=settings.GROQ_MODEL,
        base_url=settings.GROQ_BASE_URL,
        system_prompt=PRIMARY_SYSTEM_PROMPT,
        json_mode=True,
        temperature=settings.LLM_TEMPERATURE,
        timeout_s=settings.PROVIDER_TIMEOUT_S,
    )
    secondary = None
    if settings.has_fallback:
        # No response_format: many OpenRouter models reject it
        secondary = ChatCompletionProvider(
            "openrouter",
            api_key=settings.OPENROUTER_API_KEY,
            model=settings.OPENROUTER_MODEL,
            base_url=settings.OPENROUTER_BASE_URL,
            system_prompt=FALLBACK_SYSTEM_PROMPT,
            json_mode=False,
            temperature=settings.LLM_TEMPERATURE,
            timeout_s=settings.PROVIDER_TIMEOUT_S,
        )
    return ItineraryPipeline(ProviderOrchestrator(primary, secondary), currency_table=currency_table)
