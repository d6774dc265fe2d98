"""Price fetching for dividend_reinvest.

Uses direct calls to Yahoo Finance's chart API instead of yfinance to avoid
connectivity issues in restricted environments. Each symbol is tried on NSE
(``.NS``) first and BSE (``.BO``) second; results are cached in the local
SQLite database (see ``db``).
"""

import logging
from datetime import timedelta
from typing import Dict, Iterable, Optional, Tuple

import requests
from tqdm import tqdm

from . import db
from .models import PriceQuote

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?range=1d&interval=1d"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
}

# Venue name -> Yahoo suffix, in lookup order.
EXCHANGES = (("NSE", ".NS"), ("BSE", ".BO"))

DEFAULT_MAX_AGE_HOURS = 24
TIMEOUT = 15


def fetch_market_price(yahoo_symbol: str, session: requests.Session) -> Optional[float]:
    """Return the regular market price for ``yahoo_symbol`` or ``None``."""
    url = YAHOO_CHART_URL.format(symbol=yahoo_symbol)
    try:
        response = session.get(url, headers=HEADERS, timeout=TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.info("Price lookup failed for %s: %s", yahoo_symbol, e)
        return None

    result = (data.get("chart") or {}).get("result") or []
    if not result:
        return None
    price = (result[0].get("meta") or {}).get("regularMarketPrice")
    if price is None:
        return None
    price = float(price)
    return price if price > 0 else None


def fetch_quote(symbol: str, session: requests.Session) -> Optional[PriceQuote]:
    """Look ``symbol`` up on each exchange in turn; first positive price wins."""
    for exchange, suffix in EXCHANGES:
        price = fetch_market_price(f"{symbol}{suffix}", session)
        if price is not None:
            return PriceQuote(symbol=symbol, price=price, exchange=exchange)
    logger.debug("No price found for %s", symbol)
    return None


def fetch_prices(symbols: Iterable[str],
                 max_age_hours: float = DEFAULT_MAX_AGE_HOURS,
                 progress: bool = False,
                 session: Optional[requests.Session] = None) -> Dict[str, PriceQuote]:
    """Return quotes for every symbol that could be priced.

    Cached quotes younger than ``max_age_hours`` are reused; the rest are
    fetched one by one and stored. Symbols with no price are simply absent
    from the result.
    """
    max_age = timedelta(hours=max_age_hours)
    quotes: Dict[str, PriceQuote] = {}
    to_fetch = []
    for symbol in dict.fromkeys(symbols):
        cached = db.get_cached_quote(symbol, max_age) if max_age_hours > 0 else None
        if cached is not None:
            quotes[symbol] = cached
        else:
            to_fetch.append(symbol)

    logger.debug("%d quote(s) from cache, %d to fetch", len(quotes), len(to_fetch))
    if not to_fetch:
        return quotes

    session = session or requests.Session()
    for symbol in tqdm(to_fetch, desc="Fetching prices", disable=not progress):
        quote = fetch_quote(symbol, session)
        if quote is not None:
            db.store_quote(quote)
            quotes[symbol] = quote
    return quotes


def split_quotes(quotes: Dict[str, PriceQuote]) -> Tuple[Dict[str, float], Dict[str, str]]:
    """Return ``(prices, exchanges)`` keyed by symbol."""
    prices = {symbol: quote.price for symbol, quote in quotes.items()}
    exchanges = {symbol: quote.exchange for symbol, quote in quotes.items() if quote.exchange}
    return prices, exchanges
