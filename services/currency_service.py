# services/currency_service.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional
import time
import logging

from config import settings

log = logging.getLogger("currency")

# Units of each currency per 1 USD
DEFAULT_USD_RATES: Dict[str, float] = {
    "USD": 1, "EUR": 0.85, "GBP": 0.73, "JPY": 110, "CAD": 1.25, "AUD": 1.35,
    "CHF": 0.92, "CNY": 6.45, "INR": 74.5, "KRW": 1180, "SGD": 1.35, "HKD": 7.8,
    "THB": 33, "VND": 23000, "BRL": 5.2, "MXN": 20.5, "RUB": 75, "ZAR": 15.8,
    "NOK": 8.5, "SEK": 8.8, "DKK": 6.3, "PLN": 3.9, "CZK": 22.5, "HUF": 310,
    "RON": 4.2, "BGN": 1.66, "HRK": 6.4, "TRY": 8.5, "ILS": 3.2, "AED": 3.67,
    "SAR": 3.75, "QAR": 3.64, "KWD": 0.30, "BHD": 0.38, "OMR": 0.38, "EGP": 15.7,
    "MAD": 9.8, "NGN": 411, "GHS": 6.1, "KES": 110, "ZMW": 16.8, "MUR": 43.5,
    "LKR": 200, "PKR": 155, "BDT": 85, "NPR": 119, "MMK": 1680, "KHR": 4080,
    "LAK": 9500, "IDR": 14200, "MYR": 4.2, "PHP": 50.5, "TWD": 28.5, "NZD": 1.45,
    "FJD": 2.1, "PGK": 3.5, "WST": 2.6, "TOP": 2.3, "VUV": 112, "SBD": 8.2,
}

@dataclass(frozen=True)
class RateSnapshot:
    rates: Mapping[str, float]
    refreshed_at: float  # epoch seconds

    @property
    def refreshed_at_iso(self) -> str:
        return datetime.fromtimestamp(self.refreshed_at, tz=timezone.utc).isoformat()

class CurrencyTable:
    """
    USD exchange-rate table backed by a static source.

    Readers get an immutable snapshot; once it is older than `ttl_s` the next
    read rebuilds it and swaps the reference. Rebuilds are deterministic, so
    racing requests may both rebuild and still converge on equal data.
    """

    def __init__(
        self,
        ttl_s: int = 3600,
        source: Optional[Mapping[str, float]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_s = ttl_s
        self._source = dict(source if source is not None else DEFAULT_USD_RATES)
        self._clock = clock
        self._snapshot: Optional[RateSnapshot] = None

    def _build_snapshot(self) -> RateSnapshot:
        rates = {code.upper(): float(rate) for code, rate in self._source.items() if rate and rate > 0}
        return RateSnapshot(rates=MappingProxyType(rates), refreshed_at=self._clock())

    def is_fresh(self, snap: Optional[RateSnapshot] = None) -> bool:
        snap = snap if snap is not None else self._snapshot
        return snap is not None and (self._clock() - snap.refreshed_at) < self.ttl_s

    def snapshot(self) -> RateSnapshot:
        snap = self._snapshot
        if self.is_fresh(snap):
            return snap
        snap = self._build_snapshot()
        self._snapshot = snap
        log.info("Currency table refreshed", extra={"currencies": len(snap.rates), "ttl_s": self.ttl_s})
        return snap

    def rate_for(self, code: Optional[str]) -> Optional[float]:
        """Units of `code` per USD, or None when the code is unknown."""
        if not code:
            return None
        return self.snapshot().rates.get(code.upper())

    def effective_rate(self, code: Optional[str]) -> float:
        # Unknown codes degrade to USD-equivalent rather than failing
        rate = self.rate_for(code)
        if rate is None:
            if code and code.upper() != "USD":
                log.warning("Unknown currency %s; using rate 1", code)
            return 1.0
        return rate

    def from_usd(self, amount_usd: float, code: Optional[str]) -> float:
        return amount_usd * self.effective_rate(code)

    def to_usd(self, amount: float, code: Optional[str]) -> float:
        return amount / self.effective_rate(code)

# Process-wide table; the only state shared across requests
default_table = CurrencyTable(ttl_s=settings.CURRENCY_CACHE_TTL_S)
