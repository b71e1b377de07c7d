"""
Shape checks for the provider's itinerary JSON.

Everything here is a total predicate: no exceptions, no mutation. Callers get
either None (valid) or the path of the first violation, so the pipeline can
tell "invalid output" apart from a crash.
"""
from __future__ import annotations

import math
from typing import Any, Optional

# Ceiling on the summed costUSD of one itinerary; keeps every derived total finite
MAX_TRIP_COST_USD = 1e12


def _is_number(v: Any) -> bool:
    # JSON booleans arrive as bool, which is an int subclass
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    return math.isfinite(v)


def _check_optional_number(obj: dict, key: str, path: str, *, min_value: Optional[float] = None) -> Optional[str]:
    if key not in obj:
        return None
    v = obj[key]
    if not _is_number(v):
        return f"{path}.{key}"
    if min_value is not None and v < min_value:
        return f"{path}.{key}"
    return None


def activity_violation(activity: Any, path: str = "activity") -> Optional[str]:
    if not isinstance(activity, dict):
        return path
    for key in ("time", "title", "details"):
        if not isinstance(activity.get(key), str):
            return f"{path}.{key}"
    return (
        _check_optional_number(activity, "durationMinutes", path)
        or _check_optional_number(activity, "costUSD", path, min_value=0)
    )


def day_violation(day: Any, position: int, path: str = "day") -> Optional[str]:
    """`position` is the 1-based index the day must carry."""
    if not isinstance(day, dict):
        return path
    number = day.get("day")
    if not _is_number(number) or number != position:
        return f"{path}.day"
    if not isinstance(day.get("date"), str):
        return f"{path}.date"
    activities = day.get("activities")
    if not isinstance(activities, list):
        return f"{path}.activities"
    for i, act in enumerate(activities):
        bad = activity_violation(act, f"{path}.activities[{i}]")
        if bad:
            return bad
    return None


def cost_summary_violation(summary: Any, path: str = "costSummary") -> Optional[str]:
    if not isinstance(summary, dict):
        return path
    for key in ("totalCostUSD", "dailyAverageCostUSD"):
        if not _is_number(summary.get(key)):
            return f"{path}.{key}"
    if not isinstance(summary.get("costBreakdown"), dict):
        return f"{path}.costBreakdown"
    if "budgetComparisonUSD" in summary:
        cmp_path = f"{path}.budgetComparisonUSD"
        comparison = summary["budgetComparisonUSD"]
        if not isinstance(comparison, dict):
            return cmp_path
        if not _is_number(comparison.get("budgetAmountUSD")):
            return f"{cmp_path}.budgetAmountUSD"
        if not isinstance(comparison.get("isOverBudget"), bool):
            return f"{cmp_path}.isOverBudget"
    return None


def trip_cost_violation(days: list, path: str = "itinerary") -> Optional[str]:
    """Path of the activity whose cost pushes the trip total past MAX_TRIP_COST_USD.

    Expects days that already passed `day_violation`.
    """
    total = 0.0
    for i, day in enumerate(days):
        for j, act in enumerate(day["activities"]):
            total += act.get("costUSD", 0)
            if not math.isfinite(total) or total > MAX_TRIP_COST_USD:
                return f"{path}[{i}].activities[{j}].costUSD"
    return None


def find_violation(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return "$"
    days = data.get("itinerary")
    if not isinstance(days, list) or not days:
        return "itinerary"
    for i, day in enumerate(days):
        bad = day_violation(day, i + 1, f"itinerary[{i}]")
        if bad:
            return bad
    packing = data.get("packing_list")
    if not isinstance(packing, list):
        return "packing_list"
    for i, item in enumerate(packing):
        if not isinstance(item, str):
            return f"packing_list[{i}]"
    bad = trip_cost_violation(days)
    if bad:
        return bad
    if "costSummary" in data:
        return cost_summary_violation(data["costSummary"])
    return None


def is_valid_itinerary(data: Any) -> bool:
    return find_violation(data) is None
