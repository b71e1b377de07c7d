# services/request_validator.py
from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from typing import Any, List, Mapping, Optional

from models import Completeness, ValidationReport

log = logging.getLogger("validation")

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")
DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d")

MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 365
LONG_TRIP_DAYS = 30
LARGE_GROUP = 20
LOW_BUDGET = 50
MAX_INTERESTS = 10

ERR_DESTINATION = "Destination is required"
ERR_PEOPLE = "Number of people must be at least 1"
ERR_BUDGET = "Budget amount must be a valid positive number"
ERR_CURRENCY = "Invalid currency code format"
ERR_START_FORMAT = "Invalid start date format. Please use MM/DD/YYYY or YYYY-MM-DD"
ERR_END_FORMAT = "Invalid end date format. Please use MM/DD/YYYY or YYYY-MM-DD"
ERR_DATE_ORDER = "End date must be after start date"
ERR_PAST_START = "Start date cannot be in the past"
ERR_NO_DURATION = "Either specify travel dates or duration"
ERR_DURATION_TYPE = "Duration must be a whole number of days"
ERR_DURATION_RANGE = "Duration must be between 1 and 365 days"

WARN_LARGE_GROUP = "Large groups may require special arrangements"
WARN_LOW_BUDGET = "Very low budget may limit available options"
WARN_LONG_TRIP = "Long trips require more planning and may be more expensive"
WARN_MANY_INTERESTS = "Too many interests selected may make planning difficult"

def _is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())

def parse_date(value: Any) -> Optional[date]:
    """Parse MM/DD/YYYY or YYYY-MM-DD; anything else is None."""
    if not isinstance(value, str):
        return None
    s = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None

def parse_whole_number(value: Any) -> Optional[int]:
    """Integers, integer-valued floats and numeric strings; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        s = value.strip()
        try:
            return int(s)
        except ValueError:
            try:
                f = float(s)
            except ValueError:
                return None
            return int(f) if f.is_integer() else None
    return None

def parse_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    elif isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return f if math.isfinite(f) else None

def _interest_count(v: Any) -> int:
    if isinstance(v, (list, tuple)):
        return len(v)
    if isinstance(v, str):
        return len([s for s in v.split(",") if s.strip()])
    return 0

def validate_request(body: Mapping[str, Any], today: Optional[date] = None) -> ValidationReport:
    """
    Check an inbound trip request. Never raises: every finding is returned.

    When both dates and an explicit duration are given, the date-derived
    value wins and a mismatch is only a warning. The derived duration is put
    on the report so the caller can persist it onto the request.
    """
    today = today or date.today()
    errors: List[str] = []
    warnings: List[str] = []
    report = ValidationReport(valid=False)

    if not isinstance(body, Mapping):
        return ValidationReport(valid=False, errors=["Request body must be a JSON object"])

    destination = body.get("destination")
    if not isinstance(destination, str) or not destination.strip():
        errors.append(ERR_DESTINATION)

    people_raw = body.get("numberOfPeople")
    if not _is_blank(people_raw):
        people = parse_whole_number(people_raw)
        if people is None or people < 1:
            errors.append(ERR_PEOPLE)
        else:
            report.travelers_count = people
            if people > LARGE_GROUP:
                warnings.append(WARN_LARGE_GROUP)

    budget_raw = body.get("budgetAmount")
    if not _is_blank(budget_raw):
        budget = parse_amount(budget_raw)
        if budget is None or budget <= 0:
            errors.append(ERR_BUDGET)
        else:
            report.budget_amount = budget
            if budget < LOW_BUDGET:
                warnings.append(WARN_LOW_BUDGET)

    currency = body.get("budgetCurrency")
    if not _is_blank(currency):
        if not isinstance(currency, str) or not CURRENCY_CODE_RE.match(currency):
            errors.append(ERR_CURRENCY)

    explicit: Optional[int] = None
    duration_raw = body.get("duration")
    if not _is_blank(duration_raw):
        explicit = parse_whole_number(duration_raw)
        if explicit is None:
            errors.append(ERR_DURATION_TYPE)

    derived: Optional[int] = None
    from_raw, to_raw = body.get("from"), body.get("to")
    if not _is_blank(from_raw) and not _is_blank(to_raw):
        start, end = parse_date(from_raw), parse_date(to_raw)
        if start is None:
            errors.append(ERR_START_FORMAT)
        if end is None:
            errors.append(ERR_END_FORMAT)
        if start and end:
            report.start_date, report.end_date = start, end
            if start >= end:
                errors.append(ERR_DATE_ORDER)
            if start < today:
                errors.append(ERR_PAST_START)
            derived = (end - start).days
            if explicit is not None and explicit != derived:
                warnings.append(
                    f"Duration calculated from dates ({derived} days) differs from specified duration"
                )
    elif _is_blank(duration_raw):
        errors.append(ERR_NO_DURATION)
    else:
        # Only a start date (or nothing) alongside the explicit duration
        report.start_date = parse_date(from_raw)

    duration = derived if derived is not None else explicit
    if duration is not None:
        if duration < MIN_DURATION_DAYS or duration > MAX_DURATION_DAYS:
            # The ordering error already covers non-positive date ranges
            if ERR_DATE_ORDER not in errors:
                errors.append(ERR_DURATION_RANGE)
        elif duration > LONG_TRIP_DAYS:
            warnings.append(WARN_LONG_TRIP)

    if _interest_count(body.get("interests")) > MAX_INTERESTS:
        warnings.append(WARN_MANY_INTERESTS)

    report.valid = not errors
    report.errors = errors
    report.warnings = warnings
    report.duration = duration if not errors else None

    if errors:
        log.info("Request rejected", extra={"errors": errors, "warnings": warnings})
    elif warnings:
        log.info("Request accepted with warnings", extra={"warnings": warnings, "duration": duration})
    return report

_COMPLETENESS_OPTIONAL = ("numberOfPeople", "budgetAmount", "budgetCurrency", "interests", "mustSee", "customRequest")

def _filled(v: Any) -> bool:
    if isinstance(v, str):
        return bool(v.strip())
    if isinstance(v, (list, tuple)):
        return len(v) > 0
    return v is not None and v is not False

def assess_completeness(body: Mapping[str, Any]) -> Completeness:
    """Score how much of the form was filled in and suggest what to add."""
    total_fields = 1 + len(_COMPLETENESS_OPTIONAL) + 2
    filled = 0
    missing: List[str] = []
    suggestions: List[str] = []

    if isinstance(body.get("destination"), str) and body["destination"].strip():
        filled += 1
    else:
        missing.append("destination")

    filled += sum(1 for f in _COMPLETENESS_OPTIONAL if _filled(body.get(f)))

    if _filled(body.get("from")) and _filled(body.get("to")):
        filled += 2
    elif _filled(body.get("duration")):
        filled += 1
        suggestions.append("Consider specifying exact travel dates for better planning")
    else:
        missing.append("travel dates or duration")

    if not _filled(body.get("budgetAmount")):
        suggestions.append("Adding a budget helps create more realistic recommendations")
    if not _filled(body.get("interests")):
        suggestions.append("Select interests to get personalized activity recommendations")
    if body.get("numberOfPeople") in (None, "", "1", 1):
        suggestions.append("Specify number of travelers for accurate cost estimates")

    return Completeness(
        completeness=round(filled / total_fields * 100),
        missing_fields=missing,
        suggestions=suggestions,
    )
