"""Broker ticker normalization.

Broker reports spell tickers in their own way: stray punctuation, series
suffixes and vendor-specific names. ``normalize`` turns the raw cell text
into the symbol used both as the aggregation key and as the price lookup
input.
"""

import os
import re
from types import MappingProxyType
from typing import Dict, Mapping, Optional

# Broker spelling -> ticker recognised by Yahoo Finance.
DEFAULT_ALIASES: Dict[str, str] = {
    "MSTCLTD": "MSTC",
    "NAMINDIA": "NAM-INDIA",
    "ABORTWELD": "ADORWELD",
    "UNITDSPR": "UNITDSPR",
    "AREM": "ARE&M",
    "LGBBROSLTD": "LGBBROSLTD",
    "HSCL": "HSCL",
}

ALIASES_ENV = "DIVIDEND_SYMBOL_ALIASES"

_DISALLOWED = re.compile(r"[^A-Z0-9&-]")


def load_aliases(raw: Optional[str] = None) -> Mapping[str, str]:
    """Build the alias table, extended by ``DIVIDEND_SYMBOL_ALIASES``.

    Format: ``DIVIDEND_SYMBOL_ALIASES="FOO=BAR,BAZ=QUX"``. Malformed pairs
    are ignored.
    """
    aliases = dict(DEFAULT_ALIASES)
    if raw is None:
        raw = os.getenv(ALIASES_ENV, "")
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair or "=" not in pair:
            continue
        key, value = pair.split("=", 1)
        key = key.strip().upper()
        value = value.strip().upper()
        if key and value:
            aliases[key] = value
    return MappingProxyType(aliases)


SYMBOL_ALIASES = load_aliases()


def clean(raw: str) -> str:
    """Upper-case and drop everything but letters, digits, ``&`` and ``-``."""
    return _DISALLOWED.sub("", str(raw).strip().upper())


def strip_series_suffix(symbol: str) -> str:
    # Zerodha appends a "6" to some series; symbols that really end in 6 lose it too.
    if symbol.endswith("6"):
        return symbol[:-1]
    return symbol


def normalize(raw: str, aliases: Mapping[str, str] = SYMBOL_ALIASES) -> str:
    """Return the canonical ticker for ``raw``; empty string if nothing is left."""
    symbol = strip_series_suffix(clean(raw))
    return aliases.get(symbol, symbol)
