"""Shared fixtures: fake providers and sample provider payloads."""

import copy
from datetime import date

import pytest


class FakeProvider:
    """Provider double: returns canned text or raises a canned error, recording prompts."""

    def __init__(self, name, text=None, error=None):
        self.name = name
        self.text = text
        self.error = error
        self.calls = []

    def complete(self, prompt):
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


class StatusError(Exception):
    """Mimics SDK errors that carry an HTTP status attribute."""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


SAMPLE_ITINERARY = {
    "itinerary": [
        {
            "day": 1,
            "date": "2030-06-01",
            "activities": [
                {"time": "09:00", "title": "Hotel check-in", "details": "Drop bags at the front desk", "costUSD": 180},
                {"time": "13:00", "title": "Lunch at a bistro", "details": "Set menu", "durationMinutes": 60, "costUSD": 35.5},
                {"time": "15:00", "title": "Louvre museum tour", "details": "Guided visit", "durationMinutes": 120, "costUSD": 22},
            ],
        },
        {
            "day": 2,
            "date": "2030-06-02",
            "activities": [
                {"time": "8:30", "title": "Airport taxi transfer", "details": "Shared ride", "costUSD": 55},
                {"time": "11:00", "title": "Free time", "details": "Wander around the old town"},
            ],
        },
    ],
    "packing_list": ["Passport", "Comfortable shoes"],
}

SAMPLE_TOTAL_USD = 180 + 35.5 + 22 + 55

TODAY = date(2030, 1, 1)


@pytest.fixture
def sample_itinerary():
    return copy.deepcopy(SAMPLE_ITINERARY)


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def status_error():
    return StatusError


@pytest.fixture
def trip_body():
    return {
        "destination": "Paris",
        "from": "06/01/2030",
        "to": "06/03/2030",
        "numberOfPeople": "2",
        "budgetAmount": "800",
        "budgetCurrency": "USD",
        "interests": ["food", "art"],
    }
