import unittest

from dividend_reinvest import parser, utils
from dividend_reinvest.models import AggregatedDividend, DividendEntry


def _aggregated(**totals):
    return {s: AggregatedDividend(symbol=s, company_name=f"{s} Ltd", total_dividend=t)
            for s, t in totals.items()}


class TestAggregate(unittest.TestCase):
    def test_sums_amounts_per_symbol(self):
        entries = [
            DividendEntry(symbol="AAA", company_name="Alpha", amount=500),
            DividendEntry(symbol="AAA", company_name="Alpha", amount=300),
        ]
        aggregated = utils.aggregate(entries)
        self.assertEqual(list(aggregated), ["AAA"])
        self.assertAlmostEqual(aggregated["AAA"].total_dividend, 800)

    def test_first_company_name_wins(self):
        entries = [
            DividendEntry(symbol="ITC", company_name="ITC Limited", amount=10),
            DividendEntry(symbol="ITC", company_name="ITC", amount=15),
            DividendEntry(symbol="TCS", company_name="Tata Consultancy", amount=7.5),
        ]
        aggregated = utils.aggregate(entries)
        self.assertEqual(aggregated["ITC"].company_name, "ITC Limited")
        self.assertAlmostEqual(aggregated["ITC"].total_dividend, 25)
        self.assertAlmostEqual(aggregated["TCS"].total_dividend, 7.5)

    def test_totals_do_not_depend_on_order(self):
        entries = [
            DividendEntry(symbol="A", company_name="A", amount=1.25),
            DividendEntry(symbol="B", company_name="B", amount=4),
            DividendEntry(symbol="A", company_name="A", amount=2.5),
            DividendEntry(symbol="B", company_name="B", amount=0.5),
        ]
        forward = utils.aggregate(entries)
        backward = utils.aggregate(reversed(entries))
        for symbol in ("A", "B"):
            self.assertAlmostEqual(forward[symbol].total_dividend, backward[symbol].total_dividend)
        self.assertAlmostEqual(forward["A"].total_dividend, 3.75)

    def test_empty(self):
        self.assertEqual(utils.aggregate([]), {})


class TestCalculateRecommendations(unittest.TestCase):
    def test_whole_shares_and_remainder(self):
        summary = utils.calculate_recommendations(_aggregated(AAA=800), {"AAA": 250})
        self.assertEqual(len(summary.recommendations), 1)
        rec = summary.recommendations[0]
        self.assertEqual(rec.symbol, "AAA")
        self.assertEqual(rec.company_name, "AAA Ltd")
        self.assertEqual(rec.quantity, 3)
        self.assertAlmostEqual(rec.total_cost, 750)
        self.assertAlmostEqual(rec.remaining, 50)
        self.assertAlmostEqual(summary.total_dividend, 800)
        self.assertAlmostEqual(summary.total_investment, 750)
        self.assertAlmostEqual(summary.unused_balance, 50)

    def test_dividend_below_one_share(self):
        summary = utils.calculate_recommendations(_aggregated(AAA=100), {"AAA": 150})
        self.assertEqual(summary.recommendations, ())
        self.assertEqual(summary.total_dividend, 0)
        self.assertEqual(summary.total_investment, 0)
        self.assertEqual(summary.unused_balance, 0)

    def test_unpriced_symbols_excluded_from_totals(self):
        summary = utils.calculate_recommendations(_aggregated(AAA=800, BBB=400), {"AAA": 250})
        self.assertEqual([r.symbol for r in summary.recommendations], ["AAA"])
        self.assertAlmostEqual(summary.total_dividend, 800)

    def test_non_positive_prices_skipped(self):
        summary = utils.calculate_recommendations(
            _aggregated(AAA=800, BBB=400, CCC=300),
            {"AAA": 0, "BBB": -10, "CCC": 100},
        )
        self.assertEqual([r.symbol for r in summary.recommendations], ["CCC"])

    def test_sorted_by_dividend_descending(self):
        summary = utils.calculate_recommendations(
            _aggregated(AAA=800, BBB=400, CCC=1000, DDD=400),
            {"AAA": 100, "BBB": 100, "CCC": 100, "DDD": 100},
        )
        self.assertEqual([r.symbol for r in summary.recommendations], ["CCC", "AAA", "BBB", "DDD"])
        dividends = [r.dividend for r in summary.recommendations]
        self.assertEqual(dividends, sorted(dividends, reverse=True))

    def test_invariants(self):
        cases = [(1000, 333), (999.99, 10), (1250.5, 1250.5), (5000, 1), (73.2, 12.4), (10, 3)]
        aggregated = {f"S{i}": AggregatedDividend(f"S{i}", f"S{i}", d) for i, (d, _) in enumerate(cases)}
        prices = {f"S{i}": p for i, (_, p) in enumerate(cases)}
        summary = utils.calculate_recommendations(aggregated, prices)
        self.assertEqual(len(summary.recommendations), len(cases))
        for rec in summary.recommendations:
            self.assertEqual(rec.quantity, int(rec.dividend // rec.price))
            self.assertLessEqual(rec.total_cost, rec.dividend)
            self.assertGreaterEqual(rec.remaining, 0)
            self.assertLess(rec.remaining, rec.price)
            self.assertAlmostEqual(rec.remaining, rec.dividend - rec.total_cost)
        self.assertAlmostEqual(summary.total_dividend, sum(r.dividend for r in summary.recommendations))
        self.assertAlmostEqual(summary.total_investment, sum(r.total_cost for r in summary.recommendations))
        self.assertAlmostEqual(summary.unused_balance, summary.total_dividend - summary.total_investment)
        self.assertGreaterEqual(summary.unused_balance, 0)

    def test_non_finite_prices_skipped(self):
        summary = utils.calculate_recommendations(
            _aggregated(AAA=800, BBB=400, CCC=300),
            {"AAA": float("nan"), "BBB": float("inf"), "CCC": 100},
        )
        self.assertEqual([r.symbol for r in summary.recommendations], ["CCC"])
        self.assertAlmostEqual(summary.total_dividend, 300)

    def test_infinite_dividend_skipped(self):
        summary = utils.calculate_recommendations(
            _aggregated(AAA=float("inf"), BBB=400),
            {"AAA": 250, "BBB": 100},
        )
        self.assertEqual([r.symbol for r in summary.recommendations], ["BBB"])
        self.assertAlmostEqual(summary.total_dividend, 400)
        self.assertAlmostEqual(summary.unused_balance, 0)

    def test_oversized_amount_cell_does_not_break_pipeline(self):
        grid = [["Dividend"], ["Symbol", "Amount"], ["AAA", "9" * 400], ["BBB", "500"]]
        aggregated = utils.aggregate(parser.scan_grid(grid))
        summary = utils.calculate_recommendations(aggregated, {"AAA": 250, "BBB": 250})
        self.assertEqual([r.symbol for r in summary.recommendations], ["BBB"])
        self.assertEqual(summary.recommendations[0].quantity, 2)

    def test_does_not_mutate_inputs(self):
        aggregated = _aggregated(AAA=800)
        utils.calculate_recommendations(aggregated, {"AAA": 250})
        self.assertAlmostEqual(aggregated["AAA"].total_dividend, 800)


class TestFormatting(unittest.TestCase):
    def test_format_currency(self):
        self.assertEqual(utils.format_currency(0), "₹0.00")
        self.assertEqual(utils.format_currency(999.5), "₹999.50")
        self.assertEqual(utils.format_currency(1250.5), "₹1,250.50")
        self.assertEqual(utils.format_currency(125000.5), "₹1,25,000.50")
        self.assertEqual(utils.format_currency(12345678.9), "₹1,23,45,678.90")
        self.assertEqual(utils.format_currency(-1500), "-₹1,500.00")

    def test_format_number(self):
        self.assertEqual(utils.format_number(0), "0")
        self.assertEqual(utils.format_number(42), "42")
        self.assertEqual(utils.format_number(1234567), "12,34,567")
        self.assertEqual(utils.format_number(1234.5678), "1,234.568")
        self.assertEqual(utils.format_number(-100000), "-1,00,000")


if __name__ == "__main__":
    unittest.main()
