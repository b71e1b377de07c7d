# services/cost_normalizer.py
from __future__ import annotations
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from models import (
    Activity,
    BudgetComparison,
    CostBreakdown,
    CostSummary,
    CurrencyEstimate,
    DayPlan,
)
from services.currency_service import CurrencyTable, default_table

log = logging.getLogger("pipeline")

# (category, title keywords, details keywords), checked in this order.
# Lodging and dining come first so generic words like "tour" cannot shadow them.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...], Tuple[str, ...]], ...] = (
    ("accommodation",
     ("hotel", "accommodation", "check-in"),
     ("hotel", "accommodation")),
    ("food",
     ("restaurant", "lunch", "dinner", "breakfast", "food", "cafe"),
     ("restaurant", "meal", "food")),
    ("transportation",
     ("transport", "taxi", "bus", "train", "flight", "metro"),
     ("transport", "travel")),
    ("activities",
     ("museum", "tour", "ticket", "attraction", "activity"),
     ("entrance", "admission")),
)
FALLBACK_CATEGORY = "other"

ESTIMATE_BUFFER = 1.1

def categorize(activity: Activity) -> str:
    title = activity.title.lower()
    details = activity.details.lower()
    for category, title_words, detail_words in CATEGORY_KEYWORDS:
        if any(w in title for w in title_words) or any(w in details for w in detail_words):
            return category
    return FALLBACK_CATEGORY

def activity_cost(activity: Activity) -> float:
    return activity.cost_usd or 0.0

def daily_cost(day: DayPlan) -> float:
    return math.fsum(activity_cost(a) for a in day.activities)

def total_cost(days: Sequence[DayPlan]) -> float:
    return math.fsum(activity_cost(a) for d in days for a in d.activities)

def breakdown(days: Sequence[DayPlan]) -> CostBreakdown:
    buckets: Dict[str, List[float]] = {name: [] for name in CostBreakdown.model_fields}
    for day in days:
        for act in day.activities:
            buckets[categorize(act)].append(activity_cost(act))
    return CostBreakdown(**{name: math.fsum(vals) for name, vals in buckets.items()})

def convert(amount_usd: float, target_currency: Optional[str], table: CurrencyTable = default_table) -> float:
    return table.from_usd(amount_usd, target_currency)

def to_usd(amount: float, currency: Optional[str], table: CurrencyTable = default_table) -> float:
    return table.to_usd(amount, currency)

def budget_comparison(
    total_usd: float,
    budget_amount: Optional[float],
    budget_currency: Optional[str],
    table: CurrencyTable = default_table,
) -> Optional[BudgetComparison]:
    """Compare the trip total to the user's budget, both in USD.

    Returns None only when no budget amount was given. A missing currency is
    read as USD; an unknown one falls back to rate 1.
    """
    if budget_amount is None:
        return None
    currency = (budget_currency or "USD").upper()
    budget_usd = table.to_usd(budget_amount, currency)
    diff = total_usd - budget_usd
    pct = (diff / budget_usd * 100.0) if budget_usd else 0.0
    return BudgetComparison(
        budget_amount_usd=budget_usd,
        original_budget_amount=budget_amount,
        original_currency=currency,
        is_over_budget=diff > 0,
        difference_usd=diff,
        difference_percentage=pct,
    )

def annotate_daily_costs(days: Sequence[DayPlan]) -> List[DayPlan]:
    return [d.model_copy(update={"daily_cost_usd": daily_cost(d)}) for d in days]

def cost_summary(
    days: Sequence[DayPlan],
    *,
    budget_amount: Optional[float] = None,
    budget_currency: Optional[str] = None,
    table: CurrencyTable = default_table,
) -> CostSummary:
    total = total_cost(days)
    # Zero-day itineraries are rejected by the response validator; keep the result defined anyway
    avg = total / len(days) if days else 0.0
    parts = breakdown(days)
    comparison = budget_comparison(total, budget_amount, budget_currency, table)

    log.info("Cost summary computed", extra={
        "days": len(days),
        "total_usd": round(total, 2),
        "breakdown": parts.model_dump(),
        "over_budget": comparison.is_over_budget if comparison else None,
    })
    return CostSummary(
        total_cost_usd=total,
        daily_average_cost_usd=avg,
        cost_breakdown=parts,
        budget_comparison_usd=comparison,
    )

def estimate_in_currency(
    amount_usd: float,
    target_currency: str,
    *,
    include_buffer: bool = True,
    table: CurrencyTable = default_table,
) -> CurrencyEstimate:
    """Rough display estimate; a 10% buffer covers pricing uncertainty."""
    amount = table.from_usd(amount_usd, target_currency)
    if include_buffer:
        amount *= ESTIMATE_BUFFER
    known = table.rate_for(target_currency) is not None
    snap = table.snapshot()
    return CurrencyEstimate(
        amount=amount,
        currency=target_currency.upper(),
        confidence="high" if known and table.is_fresh(snap) else "medium",
        last_updated_iso=snap.refreshed_at_iso if known else None,
    )
