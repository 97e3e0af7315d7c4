"""
Pattern extractor tests: rule priority, unit scaling, multiple guard
"""

import unittest

from dealforge.resolution.extractor import (
    NOT_FOUND, extract_all, extract_field, parse_number, rule, to_number,
)
from dealforge.resolution.patterns import (
    LBO_RULES, LTM_EBITDA, PURCHASE_PRICE, REVENUE, TAX_RATE,
)


class TestRuleMechanics(unittest.TestCase):

    def test_first_rule_wins(self):
        rules = [rule(r"a(?P<num>\d)", to_number), rule(r"b(?P<num>\d)", to_number)]
        self.assertEqual(extract_field("b2 a1", rules), 1.0)

    def test_unparseable_capture_skips_rule(self):
        rules = [rule(r"x(?P<num>[\d.]+)", to_number), rule(r"y(?P<num>\d+)", to_number)]
        self.assertEqual(extract_field("x1.2.3 y7", rules), 7.0)
        self.assertIs(extract_field("x1.2.3", rules), NOT_FOUND)

    def test_parse_number_strips_thousands(self):
        self.assertEqual(parse_number("1,250.5"), 1250.5)
        with self.assertRaises(ValueError):
            parse_number("12abc")

    def test_oversized_number_rejected(self):
        with self.assertRaises(ValueError):
            parse_number("9" * 400)
        self.assertIs(extract_field("EBITDA of $" + "9" * 400 + "M", LTM_EBITDA), NOT_FOUND)

    def test_empty_text(self):
        self.assertEqual(extract_all("", LBO_RULES), {})
        self.assertIs(extract_field("", LTM_EBITDA), NOT_FOUND)
        self.assertIs(extract_field("nothing useful here", LTM_EBITDA), NOT_FOUND)


class TestMoney(unittest.TestCase):

    def test_millions_unchanged(self):
        self.assertEqual(extract_field("EBITDA of $120M", LTM_EBITDA), 120.0)
        self.assertEqual(extract_field("revenue of $1,250.5 million", REVENUE), 1250.5)

    def test_billions_scaled(self):
        self.assertAlmostEqual(extract_field("EV = $1.2bn", PURCHASE_PRICE), 1200.0)
        self.assertAlmostEqual(extract_field("enterprise value of 2.5 billion", PURCHASE_PRICE), 2500.0)
        self.assertAlmostEqual(extract_field("purchase price: $3B", PURCHASE_PRICE), 3000.0)

    def test_multiple_is_never_money(self):
        found = extract_all("Acquire at 8.2x EBITDA", LBO_RULES)
        self.assertNotIn("purchase_price", found)
        self.assertAlmostEqual(found["entry_multiple"], 8.2)

    def test_explicit_amount_before_multiple(self):
        found = extract_all("EV = $900M, 8.0x EBITDA", LBO_RULES)
        self.assertEqual(found["purchase_price"], 900.0)
        self.assertEqual(found["entry_multiple"], 8.0)

    def test_amount_before_label(self):
        self.assertEqual(extract_field("a $120M EBITDA business", LTM_EBITDA), 120.0)


class TestPercent(unittest.TestCase):

    def test_percent_sign(self):
        self.assertAlmostEqual(extract_field("tax rate of 25%", TAX_RATE), 0.25)

    def test_bare_decimal_kept(self):
        self.assertAlmostEqual(extract_field("tax rate = 0.21", TAX_RATE), 0.21)

    def test_bare_whole_number_divided(self):
        self.assertAlmostEqual(extract_field("tax rate of 30", TAX_RATE), 0.30)


class TestLBOFields(unittest.TestCase):

    def test_tranches(self):
        found = extract_all("4.0× senior at 7%, 1.0× sub at 12%", LBO_RULES)
        self.assertEqual(found["senior_debt_multiple"], 4.0)
        self.assertEqual(found["sub_debt_multiple"], 1.0)
        self.assertAlmostEqual(found["senior_debt_rate"], 0.07)
        self.assertAlmostEqual(found["sub_debt_rate"], 0.12)
        self.assertNotIn("senior_debt_amount", found)
        self.assertNotIn("entry_multiple", found)

    def test_tranche_amounts(self):
        found = extract_all("$400M senior debt at 6.5% and $150M of subordinated notes at 11%", LBO_RULES)
        self.assertEqual(found["senior_debt_amount"], 400.0)
        self.assertEqual(found["sub_debt_amount"], 150.0)
        self.assertAlmostEqual(found["senior_debt_rate"], 0.065)
        self.assertAlmostEqual(found["sub_debt_rate"], 0.11)

    def test_exit(self):
        found = extract_all("exit 8× after 5 years", LBO_RULES)
        self.assertEqual(found["exit_multiple"], 8.0)
        self.assertEqual(found["exit_year"], 5)
        self.assertIsInstance(found["exit_year"], int)

    def test_hold_period(self):
        self.assertEqual(extract_all("a 7-year hold", LBO_RULES)["exit_year"], 7)
        self.assertEqual(extract_all("hold for 4 years", LBO_RULES)["exit_year"], 4)

    def test_growth_schedule(self):
        found = extract_all("revenue growing 8%, 7%, 6% and 5%", LBO_RULES)
        schedule = found["revenue_growth_rates"]
        self.assertEqual(len(schedule), 4)
        for got, want in zip(schedule, (0.08, 0.07, 0.06, 0.05)):
            self.assertAlmostEqual(got, want)
        self.assertAlmostEqual(found["revenue_growth_rate"], 0.08)

    def test_company_name(self):
        found = extract_all("Sponsor to acquire Apex Industrial for EV = $900M", LBO_RULES)
        self.assertEqual(found["company_name"], "Apex Industrial")
        self.assertEqual(found["purchase_price"], 900.0)

    def test_no_rollover(self):
        self.assertEqual(extract_all("no management rollover", LBO_RULES)["management_rollover"], 0.0)

    def test_fees(self):
        found = extract_all("transaction fees of $15M, financing fees of 2%", LBO_RULES)
        self.assertEqual(found["transaction_costs"], 15.0)
        self.assertAlmostEqual(found["financing_fee_percent"], 0.02)
        self.assertNotIn("transaction_cost_percent", found)
        self.assertNotIn("financing_fees", found)

    def test_sweep_and_pik(self):
        found = extract_all("sub at 12% cash plus 2% PIK; 50% cash sweep", LBO_RULES)
        self.assertAlmostEqual(found["sub_debt_rate"], 0.12)
        self.assertAlmostEqual(found["sub_debt_pik"], 0.02)
        self.assertAlmostEqual(found["cash_sweep_percent"], 0.50)

    def test_amortization_is_not_a_coupon(self):
        found = extract_all("6.0x senior with 5% annual amortization, 0% cash sweep", LBO_RULES)
        self.assertNotIn("senior_debt_rate", found)
        self.assertAlmostEqual(found["senior_amortization_percent"], 0.05)
        self.assertEqual(found["cash_sweep_percent"], 0.0)
        self.assertEqual(found["senior_debt_multiple"], 6.0)


if __name__ == "__main__":
    unittest.main()
