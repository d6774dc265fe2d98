"""Basket order export.

Turns a buy list into a file a broker can import. Zerodha Kite accepts at
most ``BASKET_LIMIT`` orders per basket, so larger lists are split into
several basket files bundled in a zip archive.
"""

import io
import json
import zipfile
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from .models import BasketOrder, BrokerInfo, ExportResult, Recommendation

BASKET_LIMIT = 20
DEFAULT_EXCHANGE = "NSE"

T = TypeVar("T")


def split_into_batches(items: Sequence[T], size: int = BASKET_LIMIT) -> List[List[T]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def batch_count(order_count: int, size: int = BASKET_LIMIT) -> int:
    return -(-order_count // size)


def build_orders(recommendations: Iterable[Recommendation],
                 exchanges: Mapping[str, str],
                 product: str = "CNC",
                 order_type: str = "MARKET") -> List[BasketOrder]:
    """Create a BUY order for each recommendation."""
    return [
        BasketOrder(
            symbol=r.symbol,
            exchange=exchanges.get(r.symbol) or DEFAULT_EXCHANGE,
            quantity=r.quantity,
            order_type=order_type,
            product=product,
        )
        for r in recommendations
    ]


def kite_basket_item(order: BasketOrder) -> dict:
    return {
        "instrument": {
            "tradingsymbol": order.symbol,
            "exchange": order.exchange or DEFAULT_EXCHANGE,
        },
        "weight": 0,
        "params": {
            "quantity": order.quantity,
            "transactionType": order.transaction_type,
            "product": order.product,
            "orderType": order.order_type,
            "variety": "regular",
        },
    }


def export_kite_basket(orders: Sequence[BasketOrder],
                       today: Optional[date] = None) -> ExportResult:
    """Render ``orders`` as Kite basket JSON.

    A single basket is returned as a JSON file; more than ``BASKET_LIMIT``
    orders produce a zip with one ``dividend-basket-part<N>.json`` per basket.
    """
    if not orders:
        raise ValueError("No orders to export")

    items = [kite_basket_item(order) for order in orders]
    chunks = split_into_batches(items)
    date_str = (today or date.today()).isoformat()

    if len(chunks) == 1:
        return ExportResult(
            filename=f"dividend-basket-{date_str}.json",
            content=json.dumps(chunks[0], indent=2).encode("utf-8"),
            mime_type="application/json",
        )

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for index, chunk in enumerate(chunks, start=1):
            archive.writestr(f"dividend-basket-part{index}.json", json.dumps(chunk, indent=2))
    return ExportResult(
        filename=f"dividend-baskets-{date_str}.zip",
        content=buffer.getvalue(),
        mime_type="application/zip",
    )


@dataclass(frozen=True)
class BasketExporter:
    info: BrokerInfo
    max_orders_per_basket: int
    export: Callable[[Sequence[BasketOrder]], ExportResult]


KITE = BasketExporter(
    info=BrokerInfo(
        id="kite",
        name="Zerodha Kite",
        description="Export to Zerodha Kite basket order format",
        supported_formats=("json",),
        country="IN",
    ),
    max_orders_per_basket=BASKET_LIMIT,
    export=export_kite_basket,
)

EXPORTERS: Dict[str, BasketExporter] = {exporter.info.id: exporter for exporter in (KITE,)}


def get_exporter(exporter_id: str) -> Optional[BasketExporter]:
    return EXPORTERS.get(exporter_id)


def exporters_for_country(country: str) -> List[BasketExporter]:
    return [exporter for exporter in EXPORTERS.values() if exporter.info.country == country]
