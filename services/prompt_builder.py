# services/prompt_builder.py
from __future__ import annotations

from datetime import timedelta

from models import TripRequest

PRIMARY_SYSTEM_PROMPT = (
    "You are a travel planning expert. Return only valid JSON matching the exact schema provided. "
    "Do not include any explanatory text."
)

# The fallback model follows instructions less reliably, so say it twice
FALLBACK_SYSTEM_PROMPT = (
    PRIMARY_SYSTEM_PROMPT
    + " Your response must be valid JSON only: a single JSON object, no markdown fences, no prose before or after it."
)

RESPONSE_SHAPE = """{
  "itinerary": [
    {
      "day": 1,
      "date": "YYYY-MM-DD",
      "activities": [
        {
          "time": "HH:MM",
          "title": "...",
          "details": "...",
          "durationMinutes": 90,
          "costUSD": 25
        }
      ]
    }
  ],
  "packing_list": ["item1", "item2"]
}"""

def build_prompt(trip: TripRequest) -> str:
    """Render the provider prompt for a validated trip request. Pure templating."""
    if trip.budget_amount is not None:
        budget = f"a budget of {trip.budget_amount:g} {trip.budget_currency or 'USD'}"
    else:
        budget = "no fixed budget"
    people = "1 traveler" if trip.travelers_count == 1 else f"{trip.travelers_count} travelers"

    blocks = [
        "You are an expert travel planner.",
        "Return **only** valid JSON, no introductory text, no markdown fences, with the exact keys:",
        RESPONSE_SHAPE,
        "",
        f"Trip: {trip.duration_days} days in {trip.destination} for {people} with {budget}.",
    ]
    if trip.start_date:
        last_day = trip.start_date + timedelta(days=trip.duration_days - 1)
        blocks.append(f"Dates: {trip.start_date.isoformat()} to {last_day.isoformat()}.")
    blocks += [
        f"Interests: {', '.join(trip.interests) if trip.interests else 'none'}.",
        f"Preferred activities: {', '.join(trip.activity_styles) if trip.activity_styles else 'any'}.",
        f"Must-see: {trip.must_see or 'none'}.",
        f"Custom Request: {trip.custom_request or 'none'}.",
        "Constraints:",
        "- Number days from 1 with no gaps, one entry per day.",
        "- Use 24-hour HH:MM times.",
        "- costUSD is the estimated total for the whole party in US dollars; omit it when free.",
    ]
    return "\n".join(blocks)
