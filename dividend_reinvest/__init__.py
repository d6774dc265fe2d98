"""Top level package for dividend_reinvest.

The package reads a broker's dividend report (Zerodha Tax P&L CSV or Excel,
or a plain symbol/company/amount table), totals the dividends received per
stock, looks up current prices and works out how many whole shares of each
stock its own dividends can buy. The resulting buy list can be exported as
a Zerodha Kite basket.
"""

__all__ = ["models", "symbols", "parser", "utils", "fetch", "db", "export", "cli"]
