from __future__ import annotations

import re
from datetime import date
from typing import Any, List, Literal, Mapping, Optional
from pydantic import (
    BaseModel,
    Field,
    ConfigDict,
    field_validator,
    conint,
    confloat,
)

CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

CostCategory = Literal["accommodation", "food", "activities", "transportation", "other"]

# -----------------------------
# Request
# -----------------------------

def _as_list(v: Any) -> List[str]:
    """Interests may arrive as a list or as one comma-separated string."""
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    if isinstance(v, (list, tuple, set)):
        return [str(s).strip() for s in v if str(s).strip()]
    return []

def _text(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None

class TripRequest(BaseModel):
    """Normalized trip request, built only after the request validator accepted the body."""
    model_config = ConfigDict(extra="forbid")

    destination: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: conint(ge=1, le=365)

    travelers_count: conint(ge=1) = 1
    budget_amount: Optional[confloat(gt=0)] = None
    budget_currency: Optional[str] = None

    interests: List[str] = Field(default_factory=list)
    must_see: Optional[str] = None
    custom_request: Optional[str] = None
    activity_styles: List[str] = Field(default_factory=list)

    @field_validator("destination")
    @classmethod
    def _strip_destination(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("destination must not be blank")
        return v

    @field_validator("budget_currency")
    @classmethod
    def _validate_currency(cls, v):
        if v is None:
            return v
        if not CURRENCY_RE.match(v):
            raise ValueError("budget_currency must be a 3-letter ISO code (e.g. USD, GBP, EUR)")
        return v

    @field_validator("interests", "activity_styles", mode="before")
    @classmethod
    def _coerce_list(cls, v):
        return _as_list(v)

    @classmethod
    def from_payload(cls, body: Mapping[str, Any], report: "ValidationReport") -> "TripRequest":
        """Build from a raw body that already passed validation.

        Numbers and dates come from the report, so the derived duration is
        persisted here even when the caller only supplied dates.
        """
        if not report.valid or report.duration is None:
            raise ValueError("cannot build a TripRequest from a failed validation report")
        return cls(
            destination=body["destination"],
            start_date=report.start_date,
            end_date=report.end_date,
            duration_days=report.duration,
            travelers_count=report.travelers_count or 1,
            budget_amount=report.budget_amount,
            budget_currency=_text(body.get("budgetCurrency")),
            interests=body.get("interests"),
            must_see=_text(body.get("mustSee")),
            custom_request=_text(body.get("customRequest")),
            activity_styles=body.get("activities"),
        )

class ValidationReport(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    duration: Optional[int] = None

    # Parsed values the pipeline reuses; not part of the public report
    start_date: Optional[date] = Field(default=None, exclude=True)
    end_date: Optional[date] = Field(default=None, exclude=True)
    travelers_count: Optional[int] = Field(default=None, exclude=True)
    budget_amount: Optional[float] = Field(default=None, exclude=True)

class Completeness(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completeness: conint(ge=0, le=100)
    missing_fields: List[str] = Field(default_factory=list, alias="missingFields")
    suggestions: List[str] = Field(default_factory=list)

# -----------------------------
# Itinerary (provider output after shape validation)
# -----------------------------

class Activity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time: str
    title: str
    details: str
    duration_minutes: Optional[float] = Field(default=None, alias="durationMinutes")
    cost_usd: Optional[confloat(ge=0)] = Field(default=None, alias="costUSD")

class DayPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    day: conint(ge=1)
    date: str
    activities: List[Activity] = Field(default_factory=list)
    # Derived by the cost normalizer; any upstream value is discarded
    daily_cost_usd: Optional[float] = Field(default=None, alias="dailyCostUSD")

    @field_validator("daily_cost_usd", mode="before")
    @classmethod
    def _discard_upstream_total(cls, v):
        return None

class Itinerary(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    itinerary: List[DayPlan] = Field(min_length=1)
    packing_list: List[str] = Field(default_factory=list)

# -----------------------------
# Cost summary
# -----------------------------

class CostBreakdown(BaseModel):
    accommodation: float = 0.0
    food: float = 0.0
    activities: float = 0.0
    transportation: float = 0.0
    other: float = 0.0

    def total(self) -> float:
        return self.accommodation + self.food + self.activities + self.transportation + self.other

class BudgetComparison(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    budget_amount_usd: float = Field(alias="budgetAmountUSD")
    original_budget_amount: float = Field(alias="originalBudgetAmount")
    original_currency: str = Field(alias="originalCurrency")
    is_over_budget: bool = Field(alias="isOverBudget")
    difference_usd: float = Field(alias="differenceUSD")
    difference_percentage: float = Field(alias="differencePercentage")

class CostSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_cost_usd: float = Field(alias="totalCostUSD")
    daily_average_cost_usd: float = Field(alias="dailyAverageCostUSD")
    cost_breakdown: CostBreakdown = Field(alias="costBreakdown")
    budget_comparison_usd: Optional[BudgetComparison] = Field(default=None, alias="budgetComparisonUSD")

class CurrencyEstimate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float
    currency: str
    confidence: Literal["high", "medium", "low"]
    last_updated_iso: Optional[str] = Field(default=None, alias="lastUpdated")

# -----------------------------
# Response
# -----------------------------

class GeneratedTrip(BaseModel):
    """Success payload handed verbatim to the rendering layer."""
    model_config = ConfigDict(populate_by_name=True)

    itinerary: List[DayPlan]
    packing_list: List[str]
    cost_summary: CostSummary = Field(alias="costSummary")
    number_of_people: conint(ge=1) = Field(alias="numberOfPeople")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
