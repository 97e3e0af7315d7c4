"""
Credit dashboard, sensitivity grids, scenarios, pipeline and formatting
"""

import math
import unittest

from dealforge.analysis.credit_metrics import _implied_rating, build_credit_dashboard
from dealforge.analysis.scenarios import SCENARIO_NAMES, make_scenario_assumptions, run_scenarios
from dealforge.analysis.sensitivity import (
    entry_vs_exit_multiple, leverage_vs_entry_multiple, rev_growth_vs_exit_multiple,
)
from dealforge.model.assumptions import Source, base_case, build_lbo_catalog
from dealforge.model.lbo_engine import run_model
from dealforge.model.projection import projection_summary_df
from dealforge.pipeline import build_lbo_model
from dealforge.resolution.resolver import resolve_lbo
from dealforge.utils.formatting import (
    IRR_BANDS, MOIC_BANDS, NO_VALUE_CSS, assumptions_df, band_color, fmt_irr, fmt_millions,
    fmt_moic, fmt_multiple, fmt_pct, format_projection_df,
)


class FakeNLU:
    def __init__(self, guess):
        self.guess = guess
        self.texts = []

    def parse(self, text):
        self.texts.append(text)
        return self.guess


class TestCreditDashboard(unittest.TestCase):

    def setUp(self):
        self.a = base_case()
        self.dash = build_credit_dashboard(run_model(self.a), self.a)

    def test_shapes(self):
        self.assertEqual(len(self.dash["credit_df"]), 5)
        self.assertEqual(len(self.dash["covenant_df"]), 5)
        waterfall = self.dash["waterfall_df"]
        self.assertEqual(list(waterfall.index), ["Entry"] + [f"Year {y}" for y in range(1, 6)])
        self.assertEqual(waterfall.loc["Entry", "Senior Debt"], 400.0)

    def test_deleveraging(self):
        lev = self.dash["credit_df"]["Gross Leverage (x)"]
        self.assertLess(lev.iloc[-1], lev.iloc[0])

    def test_rating_map(self):
        self.assertEqual(_implied_rating(1.5), "BBB+/Baa1")
        self.assertEqual(_implied_rating(5.0), "BB/Ba2")
        self.assertEqual(_implied_rating(float("nan")), "N/A")


class TestSensitivity(unittest.TestCase):

    def setUp(self):
        self.base = base_case()

    def test_entry_vs_exit(self):
        irr_df, moic_df = entry_vs_exit_multiple(self.base)
        self.assertEqual(irr_df.shape, (7, 5))
        self.assertEqual(moic_df.shape, (7, 5))
        self.assertEqual(irr_df.index.name, "Entry Multiple")
        base_irr = run_model(self.base)["returns"]["sponsor"]["irr"]
        self.assertAlmostEqual(irr_df.loc["8.0x", "Exit 8.0x"], base_irr)
        # Cheaper entry and richer exit both help
        self.assertGreater(irr_df.loc["7.0x", "Exit 8.0x"], irr_df.loc["10.0x", "Exit 8.0x"])
        self.assertGreater(moic_df.loc["8.0x", "Exit 10.0x"], moic_df.loc["8.0x", "Exit 6.0x"])

    def test_growth_vs_exit(self):
        df = rev_growth_vs_exit_multiple(self.base)
        self.assertEqual(df.shape, (6, 5))
        self.assertGreater(df.loc["+10%", "Exit 8.0x"], df.loc["+0%", "Exit 8.0x"])

    def test_leverage_vs_entry(self):
        df = leverage_vs_entry_multiple(self.base)
        self.assertEqual(df.shape, (5, 4))
        self.assertTrue(all(math.isfinite(v) for v in df.to_numpy().ravel()))


class TestScenarios(unittest.TestCase):

    def test_scenarios(self):
        out = run_scenarios(base_case())
        self.assertEqual(list(out["comparison_df"].index), SCENARIO_NAMES)
        irr = {name: out["results"][name]["returns"]["sponsor"]["irr"] for name in SCENARIO_NAMES}
        self.assertLess(irr["Bear"], irr["Base"])
        self.assertLess(irr["Base"], irr["Bull"])

    def test_capital_structure_unchanged(self):
        scenarios = make_scenario_assumptions(base_case())
        debts = {a.total_debt for a in scenarios.values()}
        self.assertEqual(debts, {500.0})
        self.assertEqual(scenarios["Bear"].exit_multiple, 6.5)


class TestPipeline(unittest.TestCase):

    def test_without_nlu(self):
        result = build_lbo_model("EV = $900M, EBITDA $120M, exit 8x after 5 years")
        self.assertIsNone(result["external_guess"])
        self.assertEqual(result["assumptions"].purchase_price, 900.0)
        self.assertEqual(len(result["projection"]), 6)

    def test_nlu_guess_fills_gaps(self):
        nlu = FakeNLU({"exit_year": 7, "purchase_price": 1.0})
        result = build_lbo_model("EV = $900M", nlu_client=nlu)
        a = result["assumptions"]
        self.assertEqual(nlu.texts, ["EV = $900M"])
        self.assertEqual(a.exit_year, 7)
        self.assertEqual(a.source("exit_year"), Source.EXTERNAL)
        self.assertEqual(a.purchase_price, 900.0)
        self.assertEqual(len(result["projection"]), 8)
        self.assertEqual(result["exit"]["exit_year"], 7)

    def test_failed_nlu(self):
        result = build_lbo_model("EV = $900M", nlu_client=FakeNLU(None))
        self.assertIsNone(result["external_guess"])
        self.assertEqual(result["assumptions"].exit_year, 5)

    def test_empty_text_skips_nlu(self):
        nlu = FakeNLU({"exit_year": 7})
        result = build_lbo_model("", nlu_client=nlu)
        self.assertEqual(nlu.texts, [])
        self.assertEqual(result["assumptions"].exit_year, 5)


class TestFormatting(unittest.TestCase):

    def test_scalars(self):
        self.assertEqual(fmt_millions(1234.5), "$1,234.5M")
        self.assertEqual(fmt_millions(None), "—")
        self.assertEqual(fmt_pct(0.125), "12.5%")
        self.assertEqual(fmt_multiple(8.0, 1), "8.0x")
        self.assertEqual(fmt_irr(0.2), "20.0%")
        self.assertEqual(fmt_irr(float("nan")), "N/A")
        self.assertEqual(fmt_moic(2.5), "2.50x")

    def test_assumptions_table(self):
        a = resolve_lbo("EV = $900M, EBITDA $120M")
        table = assumptions_df(a, build_lbo_catalog()).set_index("Field")
        self.assertEqual(table.loc["purchase_price", "Value"], "$900.0M")
        self.assertEqual(table.loc["purchase_price", "Source"], "extracted")
        self.assertEqual(table.loc["entry_multiple", "Value"], "7.5x")
        self.assertEqual(table.loc["tax_rate", "Source"], "default")
        self.assertEqual(table.loc["revenue_growth_rates", "Value"], "flat rate")

    def test_bands(self):
        self.assertEqual(band_color(-1.0, IRR_BANDS), IRR_BANDS[0][1])
        self.assertEqual(band_color(0.22, IRR_BANDS), IRR_BANDS[3][1])
        self.assertEqual(band_color(5.0, MOIC_BANDS), MOIC_BANDS[-1][1])
        self.assertEqual(band_color(float("nan"), MOIC_BANDS), NO_VALUE_CSS)

    def test_projection_table(self):
        wide = format_projection_df(projection_summary_df(run_model(base_case())["projection"]))
        self.assertEqual(wide.loc["EBITDA Margin", "Year 0"], "20.0%")
        self.assertEqual(wide.loc["Revenue", "Year 0"], "$500.0M")


if __name__ == "__main__":
    unittest.main()
