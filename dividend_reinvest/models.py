"""Value objects passed between the parsing, pricing and calculation stages."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class DividendEntry:
    """A single dividend payment row extracted from a broker report."""
    symbol: str
    company_name: str
    amount: float
    isin: Optional[str] = None
    date: Optional[str] = None


@dataclass
class AggregatedDividend:
    """Running dividend total for one normalized symbol.

    ``company_name`` is the first name seen for the symbol.
    """
    symbol: str
    company_name: str
    total_dividend: float = 0.0


@dataclass
class ParsedDividendData:
    entries: List[DividendEntry] = field(default_factory=list)
    aggregated: Dict[str, AggregatedDividend] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass(frozen=True)
class PriceQuote:
    symbol: str
    price: float
    exchange: Optional[str] = None


@dataclass(frozen=True)
class Recommendation:
    """Whole-share purchase funded by one symbol's dividends."""
    symbol: str
    company_name: str
    dividend: float
    price: float
    quantity: int
    total_cost: float
    remaining: float


@dataclass(frozen=True)
class RecommendationSummary:
    recommendations: Tuple[Recommendation, ...] = ()
    total_dividend: float = 0.0
    total_investment: float = 0.0
    unused_balance: float = 0.0


@dataclass(frozen=True)
class BrokerInfo:
    id: str
    name: str
    description: str
    supported_formats: Tuple[str, ...]
    country: str  # IN, US or GLOBAL


@dataclass(frozen=True)
class BasketOrder:
    symbol: str
    exchange: str
    quantity: int
    transaction_type: str = "BUY"
    order_type: str = "MARKET"
    product: str = "CNC"


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: bytes
    mime_type: str
