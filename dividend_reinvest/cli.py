"""Command‑line interface for dividend_reinvest.

Provides sub‑commands to inspect the dividends in a broker report, look up
current prices, and compute (and optionally export) a buy list that puts
each stock's dividends back into that same stock.
"""

import logging
import math
from pathlib import Path
from typing import Dict, Optional, Sequence

import click
from tabulate import tabulate

from . import db
from . import export
from . import fetch
from . import parser
from . import symbols
from . import utils
from .models import ParsedDividendData

__version__ = "1.0.0"

NO_DATA_MESSAGE = (
    "No dividend data found. Expected a dividend section (e.g. a Zerodha Tax P&L "
    "report) or a plain Symbol, Company, Amount table."
)

FORMAT_CHOICE = click.Choice(parser.TEXT_FORMATS + parser.SPREADSHEET_FORMATS, case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="dividend-reinvest")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose):
    """Dividend Reinvestment Calculator CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def load_report(file: str, fmt: Optional[str] = None) -> ParsedDividendData:
    try:
        return parser.parse_file(file, fmt)
    except parser.DividendParseError as e:
        raise click.ClickException(str(e))


def parse_price_overrides(values: Sequence[str]) -> Dict[str, float]:
    """Turn ``SYMBOL=PRICE`` options into a price map keyed by normalized symbol."""
    overrides = {}
    for value in values:
        symbol, sep, price = value.partition("=")
        symbol = symbols.normalize(symbol)
        if not sep or not symbol:
            raise click.BadParameter(f"expected SYMBOL=PRICE, got '{value}'", param_hint="--price")
        try:
            overrides[symbol] = float(price)
        except ValueError:
            raise click.BadParameter(f"invalid price in '{value}'", param_hint="--price")
        if not math.isfinite(overrides[symbol]):
            raise click.BadParameter(f"price must be a finite number in '{value}'", param_hint="--price")
    return overrides


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=FORMAT_CHOICE, help="Override the format implied by the file extension.")
def parse(file, fmt):
    """Show the per-stock dividend totals found in a broker report."""
    parsed = load_report(file, fmt)
    if parsed.is_empty:
        click.echo(NO_DATA_MESSAGE)
        return

    totals = sorted(parsed.aggregated.values(), key=lambda a: a.total_dividend, reverse=True)
    rows = [
        {"Symbol": a.symbol, "Company": a.company_name, "Dividend": utils.format_currency(a.total_dividend)}
        for a in totals
    ]
    click.echo(f"Found {len(parsed.entries)} dividend entries for {len(totals)} stocks:\n")
    click.echo(tabulate(rows, headers="keys", tablefmt="simple"))
    click.echo(f"\nTotal dividend: {utils.format_currency(sum(a.total_dividend for a in totals))}")


@main.command()
@click.argument("tickers", metavar="SYMBOL...", nargs=-1, required=True)
@click.option("--max-age", default=fetch.DEFAULT_MAX_AGE_HOURS, type=float, show_default=True,
              help="Maximum age of cached prices in hours (0 bypasses the cache).")
@click.option("--clear-cache", is_flag=True, help="Drop every cached price before fetching.")
def prices(tickers, max_age, clear_cache):
    """Look up current prices (NSE, then BSE) for SYMBOL..."""
    if clear_cache:
        removed = db.clear_cache()
        click.echo(f"Cleared {removed} cached prices.")

    wanted = [s for s in (symbols.normalize(t) for t in tickers) if s]
    quotes = fetch.fetch_prices(wanted, max_age_hours=max_age, progress=len(wanted) > 1)
    rows = []
    for symbol in dict.fromkeys(wanted):
        quote = quotes.get(symbol)
        rows.append((symbol, utils.format_currency(quote.price) if quote else "N/A",
                     quote.exchange if quote else "N/A"))
    click.echo(tabulate(rows, headers=["Symbol", "Price", "Exchange"], tablefmt="simple"))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=FORMAT_CHOICE, help="Override the format implied by the file extension.")
@click.option("--max-age", default=fetch.DEFAULT_MAX_AGE_HOURS, type=float, show_default=True,
              help="Maximum age of cached prices in hours (0 bypasses the cache).")
@click.option("--price", "price_overrides", multiple=True, metavar="SYMBOL=PRICE",
              help="Use this price instead of fetching one. Repeatable.")
@click.option("--export", "exporter_id", type=click.Choice(sorted(export.EXPORTERS)),
              help="Write a basket order file for this broker.")
@click.option("--output", default=".", show_default=True, type=click.Path(file_okay=False),
              help="Directory for the exported basket file.")
@click.option("--product", default="CNC", show_default=True, help="Product type for exported orders.")
def recommend(file, fmt, max_age, price_overrides, exporter_id, output, product):
    """Suggest whole-share purchases funded by each stock's own dividends."""
    parsed = load_report(file, fmt)
    if parsed.is_empty:
        click.echo(NO_DATA_MESSAGE)
        return

    overrides = parse_price_overrides(price_overrides)
    to_fetch = [s for s in parsed.aggregated if s not in overrides]
    quotes = fetch.fetch_prices(to_fetch, max_age_hours=max_age, progress=True) if to_fetch else {}
    price_map, exchanges = fetch.split_quotes(quotes)
    price_map.update(overrides)

    summary = utils.calculate_recommendations(parsed.aggregated, price_map)

    if not summary.recommendations:
        click.echo("No stock paid enough dividend to buy a whole share at current prices.")
    else:
        rows = [
            {
                "Symbol": r.symbol,
                "Company": r.company_name,
                "Dividend": utils.format_currency(r.dividend),
                "Price": utils.format_currency(r.price),
                "Qty": r.quantity,
                "Cost": utils.format_currency(r.total_cost),
                "Remaining": utils.format_currency(r.remaining),
                "Exchange": exchanges.get(r.symbol, "-"),
            }
            for r in summary.recommendations
        ]
        click.echo(f"Reinvestment plan for {len(rows)} stocks:\n")
        click.echo(tabulate(rows, headers="keys", tablefmt="grid"))
        click.echo(f"\nTotal dividend:   {utils.format_currency(summary.total_dividend)}")
        click.echo(f"Total investment: {utils.format_currency(summary.total_investment)}")
        click.echo(f"Unused balance:   {utils.format_currency(summary.unused_balance)}")

    recommended = {r.symbol for r in summary.recommendations}
    unpriced = [s for s in parsed.aggregated if s not in recommended and not price_map.get(s, 0) > 0]
    unaffordable = [s for s in parsed.aggregated if s not in recommended and s not in unpriced]
    if unpriced:
        click.echo(f"\nNo price found for: {', '.join(unpriced)}")
    if unaffordable:
        click.echo(f"Dividend below one share for: {', '.join(unaffordable)}")

    if exporter_id and summary.recommendations:
        exporter = export.get_exporter(exporter_id)
        orders = export.build_orders(summary.recommendations, exchanges, product=product)
        result = exporter.export(orders)
        out_dir = Path(output)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / result.filename
        path.write_bytes(result.content)
        baskets = export.batch_count(len(orders), exporter.max_orders_per_basket)
        click.echo(f"\nWrote {len(orders)} orders in {baskets} basket(s) to {path}")


if __name__ == "__main__":
    main()
