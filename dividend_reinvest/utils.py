"""Utility functions for dividend reinvestment calculations.

Provides:
* aggregate – fold dividend entries into one running total per symbol.
* calculate_recommendations – whole-share buy list funded by each symbol's
  own dividends.
* format_currency / format_number – Indian (lakh/crore) digit grouping for
  display.
"""

import math
from typing import Dict, Iterable, Mapping

from .models import AggregatedDividend, DividendEntry, Recommendation, RecommendationSummary


def aggregate(entries: Iterable[DividendEntry]) -> Dict[str, AggregatedDividend]:
    """Sum entry amounts per symbol.

    The first company name seen for a symbol is kept; later entries only add
    to ``total_dividend``.
    """
    aggregated: Dict[str, AggregatedDividend] = {}
    for entry in entries:
        if entry.symbol not in aggregated:
            aggregated[entry.symbol] = AggregatedDividend(
                symbol=entry.symbol,
                company_name=entry.company_name,
            )
        aggregated[entry.symbol].total_dividend += entry.amount
    return aggregated


def calculate_recommendations(dividends: Mapping[str, AggregatedDividend],
                              prices: Mapping[str, float]) -> RecommendationSummary:
    """Return how many shares of each stock its dividends can buy back.

    Symbols without a positive finite price, or whose dividend does not
    cover one share (or is not finite), are left out of both the list and
    the totals. The list is sorted by dividend, largest first.
    """
    recommendations = []
    for symbol, dividend in dividends.items():
        price = prices.get(symbol)
        if not price or not math.isfinite(price) or price <= 0:
            continue

        shares = dividend.total_dividend / price
        if not math.isfinite(shares):
            continue
        quantity = math.floor(shares)
        if quantity < 1:
            continue

        total_cost = quantity * price
        recommendations.append(Recommendation(
            symbol=symbol,
            company_name=dividend.company_name,
            dividend=dividend.total_dividend,
            price=price,
            quantity=quantity,
            total_cost=total_cost,
            remaining=dividend.total_dividend - total_cost,
        ))

    recommendations.sort(key=lambda r: r.dividend, reverse=True)

    total_dividend = sum(r.dividend for r in recommendations)
    total_investment = sum(r.total_cost for r in recommendations)
    return RecommendationSummary(
        recommendations=tuple(recommendations),
        total_dividend=total_dividend,
        total_investment=total_investment,
        unused_balance=total_dividend - total_investment,
    )


def _group_indian(digits: str) -> str:
    """Group an unsigned digit string as 12,34,567."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: float) -> str:
    """Format ``amount`` as rupees with two decimals, e.g. ``₹1,25,000.50``."""
    sign = "-" if amount < 0 and round(abs(amount), 2) > 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")
    return f"{sign}₹{_group_indian(whole)}.{fraction}"


def format_number(num: float) -> str:
    """Format ``num`` with Indian grouping and at most three decimals."""
    sign = "-" if num < 0 else ""
    text = f"{abs(num):.3f}".rstrip("0").rstrip(".")
    whole, _, fraction = text.partition(".")
    if fraction:
        return f"{sign}{_group_indian(whole)}.{fraction}"
    if whole == "0":
        return "0"
    return f"{sign}{_group_indian(whole)}"
