"""
Assumption resolution: guaranteed completeness, derivation, merge priority
"""

import math
import unittest

from dealforge.model.assumptions import (
    DealforgeError, LBOAssumptions, Source, ValueKind, build_lbo_catalog,
)
from dealforge.model.sources_uses import build_sources_uses
from dealforge.resolution.derivations import derive
from dealforge.resolution.merge import merge_external
from dealforge.resolution.resolver import resolve_lbo


EXAMPLE_1 = "EV = $900M, 4.0× senior at 7%, 1.0× sub at 12%, EBITDA $120M, exit 8× after 5 years"
EXAMPLE_2 = "EBITDA of $100M, 8× entry"
ZERO_HOLD = "EV = $900M, EBITDA $120M, exit after 0 years"
OVERSIZED_EBITDA = "EBITDA of $" + "9" * 400 + "M"

TEXTS = [
    "",
    "lorem ipsum dolor sit amet",
    "$$$ %%% xxx 8.2x 1.2bn",
    EXAMPLE_1,
    EXAMPLE_2,
    ZERO_HOLD,
    OVERSIZED_EBITDA,
    "EBITDA of $0M with revenue of $0M",
    "Acquire \"Northwind Foods\" for $1.5 billion at 9.0x EBITDA. 6% revenue growth, "
    "25% tax, 3.5x senior at 6.5% with 1% annual amortization, $150M mezzanine at 11% "
    "plus 2% PIK, $25M management rollover, 5-year hold, exit multiple of 9x.",
]


def _assert_complete(test: unittest.TestCase, record: LBOAssumptions):
    catalog = build_lbo_catalog()
    for spec in catalog:
        value = getattr(record, spec.name)
        test.assertIsNotNone(value, spec.name)
        if spec.kind in (ValueKind.MONEY, ValueKind.RATIO, ValueKind.PERCENT, ValueKind.COUNT):
            test.assertTrue(math.isfinite(value), f"{spec.name} = {value!r}")


class TestGuaranteedRecord(unittest.TestCase):

    def test_any_text_yields_complete_record(self):
        for text in TEXTS:
            with self.subTest(text=text):
                _assert_complete(self, resolve_lbo(text))

    def test_none_is_empty_text(self):
        record = resolve_lbo(None)
        self.assertEqual(record.purchase_price, 800.0)
        self.assertEqual(record.source("purchase_price"), Source.DEFAULT)

    def test_non_string_text_rejected(self):
        with self.assertRaises(DealforgeError):
            resolve_lbo(42)

    def test_empty_text_is_catalog_defaults(self):
        record = resolve_lbo("")
        self.assertEqual(record.ltm_ebitda, 100.0)
        self.assertEqual(record.senior_debt_amount, 400.0)
        self.assertEqual(record.exit_year, 5)
        self.assertEqual(record.company_name, "Target Company")

    def test_sources_equal_uses(self):
        for text in TEXTS:
            with self.subTest(text=text):
                record = resolve_lbo(text)
                su = build_sources_uses(record)
                self.assertAlmostEqual(su["total_sources"], su["total_uses"], places=9)
                self.assertAlmostEqual(su["sources"]["sponsor_equity"], record.sponsor_equity, places=9)


class TestExamples(unittest.TestCase):

    def test_explicit_price_beats_multiple(self):
        record = resolve_lbo(EXAMPLE_1)
        self.assertEqual(record.senior_debt_amount, 480.0)
        self.assertEqual(record.sub_debt_amount, 120.0)
        self.assertEqual(record.purchase_price, 900.0)
        self.assertEqual(record.exit_multiple, 8.0)
        self.assertEqual(record.exit_year, 5)
        self.assertAlmostEqual(record.senior_debt_rate, 0.07)
        self.assertAlmostEqual(record.sub_debt_rate, 0.12)
        self.assertAlmostEqual(record.entry_multiple, 7.5)
        self.assertAlmostEqual(record.base_year_revenue, 600.0)

    def test_example_1_provenance(self):
        record = resolve_lbo(EXAMPLE_1)
        self.assertEqual(record.source("purchase_price"), Source.EXTRACTED)
        self.assertEqual(record.source("senior_debt_amount"), Source.DERIVED)
        self.assertEqual(record.source("entry_multiple"), Source.DERIVED)
        self.assertEqual(record.source("sponsor_equity"), Source.DERIVED)
        self.assertEqual(record.source("tax_rate"), Source.DEFAULT)

    def test_price_from_ebitda_and_multiple(self):
        record = resolve_lbo(EXAMPLE_2)
        self.assertEqual(record.purchase_price, 800.0)
        self.assertEqual(record.source("purchase_price"), Source.DERIVED)
        self.assertEqual(resolve_lbo("EBITDA of $120M, 8× entry").purchase_price, 960.0)

    def test_given_value_equal_to_default_is_still_given(self):
        record = resolve_lbo(EXAMPLE_2)
        self.assertEqual(record.ltm_ebitda, 100.0)
        self.assertTrue(record.is_given("ltm_ebitda"))

    def test_sponsor_equity_never_read_from_text(self):
        record = resolve_lbo("EV = $900M with sponsor equity of $5M")
        self.assertNotEqual(record.sponsor_equity, 5.0)
        self.assertEqual(record.source("sponsor_equity"), Source.DERIVED)

    def test_count_below_minimum_ignored(self):
        record = resolve_lbo(ZERO_HOLD)
        self.assertEqual(record.exit_year, 5)
        self.assertEqual(record.source("exit_year"), Source.DEFAULT)
        self.assertEqual(record.purchase_price, 900.0)

    def test_oversized_number_ignored(self):
        record = resolve_lbo(OVERSIZED_EBITDA)
        self.assertEqual(record.ltm_ebitda, 100.0)
        self.assertEqual(record.source("ltm_ebitda"), Source.DEFAULT)


class TestDerivations(unittest.TestCase):

    def test_idempotent(self):
        catalog = build_lbo_catalog()
        for text in TEXTS:
            with self.subTest(text=text):
                record = resolve_lbo(text, catalog=catalog)
                values = record.as_values()
                sources = dict(record.sources)
                self.assertEqual(derive(values, sources, catalog), [])
                self.assertEqual(values, record.as_values())

    def test_revenue_from_default_margin(self):
        record = resolve_lbo("EBITDA of $50M")
        self.assertAlmostEqual(record.base_year_revenue, 250.0)

    def test_revenue_from_stated_margin(self):
        record = resolve_lbo("EBITDA of $50M at a 25% EBITDA margin")
        self.assertAlmostEqual(record.base_ebitda_margin, 0.25)
        self.assertAlmostEqual(record.base_year_revenue, 200.0)

    def test_margin_from_revenue_and_ebitda(self):
        record = resolve_lbo("revenue of $400M and EBITDA of $100M")
        self.assertAlmostEqual(record.base_ebitda_margin, 0.25)
        self.assertAlmostEqual(record.target_ebitda_margin, 0.27)

    def test_tranche_multiple_back_derived(self):
        record = resolve_lbo("EBITDA of $100M, $350M senior debt")
        self.assertEqual(record.senior_debt_amount, 350.0)
        self.assertAlmostEqual(record.senior_debt_multiple, 3.5)

    def test_exit_defaults_to_entry(self):
        self.assertEqual(resolve_lbo("buying at 9.5x EBITDA").exit_multiple, 9.5)


class TestMerge(unittest.TestCase):

    def setUp(self):
        self.catalog = build_lbo_catalog()
        self.values = self.catalog.defaults()
        self.sources = {name: Source.DEFAULT for name in self.catalog.names}

    def test_extraction_outranks_guess(self):
        record = resolve_lbo("EV = $900M", external_guess={"purchasePrice": 1000, "exitYear": 7})
        self.assertEqual(record.purchase_price, 900.0)
        self.assertEqual(record.exit_year, 7)
        self.assertEqual(record.source("exit_year"), Source.EXTERNAL)

    def test_guess_triggers_rederivation(self):
        record = resolve_lbo("EV = $900M", external_guess={"ltmEBITDA": 150})
        self.assertEqual(record.ltm_ebitda, 150.0)
        self.assertAlmostEqual(record.base_year_revenue, 750.0)
        self.assertAlmostEqual(record.senior_debt_amount, 600.0)
        self.assertAlmostEqual(record.entry_multiple, 6.0)
        self.assertAlmostEqual(record.exit_multiple, 6.0)

    def test_malformed_values_rejected(self):
        guess = {
            "exitYear": True,
            "taxRate": float("nan"),
            "marginExpansionYears": -1,
            "sponsorEquity": 5,
            "exit_year": 2.5,
            "companyName": "   ",
            "revenue_growth_rates": [],
            "notAField": 3,
        }
        accepted = merge_external(self.values, self.sources, self.catalog, guess)
        self.assertEqual(accepted, [])
        self.assertEqual(self.values, self.catalog.defaults())

    def test_non_mapping_guess_ignored(self):
        for guess in (None, "garbage", 12, ["ltmEBITDA", 5]):
            with self.subTest(guess=guess):
                self.assertEqual(merge_external(self.values, self.sources, self.catalog, guess), [])

    def test_coercion(self):
        guess = {"taxRate": "0.3", "senior_debt_rate": "7%", "exitYear": 6.0,
                 "revenueGrowthRates": [10, 0.08, "6"], "company_name": " Acme "}
        accepted = merge_external(self.values, self.sources, self.catalog, guess)
        self.assertEqual(set(accepted), {"tax_rate", "senior_debt_rate", "exit_year",
                                         "revenue_growth_rates", "company_name"})
        self.assertAlmostEqual(self.values["tax_rate"], 0.3)
        self.assertAlmostEqual(self.values["senior_debt_rate"], 0.07)
        self.assertEqual(self.values["exit_year"], 6)
        self.assertIsInstance(self.values["exit_year"], int)
        self.assertEqual(len(self.values["revenue_growth_rates"]), 3)
        self.assertAlmostEqual(self.values["revenue_growth_rates"][0], 0.10)
        self.assertEqual(self.values["company_name"], "Acme")

    def test_non_default_field_not_overwritten(self):
        self.sources["tax_rate"] = Source.DERIVED
        self.assertEqual(merge_external(self.values, self.sources, self.catalog, {"taxRate": 0.3}), [])


if __name__ == "__main__":
    unittest.main()
