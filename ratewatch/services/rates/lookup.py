"""Read helpers over an ExchangeSnapshot."""

from __future__ import annotations
from typing import Dict, Iterable, Optional

from .normalizer import ExchangeSnapshot

POPULAR_CURRENCIES = ("NGN", "GHS", "KES", "UGX", "INR", "PHP", "BDT")


def find_rate(
    snapshot: ExchangeSnapshot, from_currency: str, to_currency: str
) -> Optional[float]:
    """Best rate for the first record matching the pair, or None."""
    src, dst = from_currency.upper(), to_currency.upper()
    for record in snapshot.rates:
        if record.from_currency == src and record.to_currency == dst:
            return record.best_rate()
    return None


def popular_rates(
    snapshot: ExchangeSnapshot,
    base: str = "USD",
    currencies: Iterable[str] = POPULAR_CURRENCIES,
) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for currency in currencies:
        rate = find_rate(snapshot, base, currency)
        if rate is not None:
            out[f"{base.upper()}_{currency.upper()}"] = rate
    return out


def describe_popular_rates(rates: Dict[str, float]) -> str:
    return ", ".join(
        f"{pair.replace('_', '→', 1)}: {rate:.2f}" for pair, rate in rates.items()
    )


__all__ = ["find_rate", "popular_rates", "describe_popular_rates", "POPULAR_CURRENCIES"]
