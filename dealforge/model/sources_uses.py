"""
sources_uses.py
---------------
Sources & Uses at close.

  Uses    = purchase price + transaction costs + financing fees
  Sources = senior debt + subordinated debt + sponsor equity + management rollover

Sponsor equity is the balancing plug, solved once at time zero, so the two
totals are equal by construction.  Transaction costs and financing fees take
an explicit $ figure when one was given, else their percentage driver.

All values in $M.
"""

from dataclasses import replace

import pandas as pd

from dealforge.model.assumptions import LBOAssumptions


def transaction_costs(a: LBOAssumptions) -> float:
    if a.is_given("transaction_costs"):
        return a.transaction_costs
    return a.purchase_price * a.transaction_cost_percent


def financing_fees(a: LBOAssumptions) -> float:
    if a.is_given("financing_fees"):
        return a.financing_fees
    return a.total_debt * a.financing_fee_percent


def total_uses(a: LBOAssumptions) -> float:
    return a.purchase_price + transaction_costs(a) + financing_fees(a)


def solve_sponsor_equity(a: LBOAssumptions) -> float:
    """Equity check written by the sponsor at close ($M)."""
    return total_uses(a) - a.total_debt - a.management_rollover


def with_sponsor_plug(a: LBOAssumptions) -> LBOAssumptions:
    return replace(a, sponsor_equity=solve_sponsor_equity(a))


def build_sources_uses(a: LBOAssumptions) -> dict:
    """Itemised sources and uses with totals."""
    sponsor_equity = solve_sponsor_equity(a)
    sources = {
        "senior_debt":         a.senior_debt_amount,
        "sub_debt":            a.sub_debt_amount,
        "sponsor_equity":      sponsor_equity,
        "management_rollover": a.management_rollover,
    }
    uses = {
        "purchase_price":    a.purchase_price,
        "transaction_costs": transaction_costs(a),
        "financing_fees":    financing_fees(a),
    }
    return {
        "sources":       sources,
        "uses":          uses,
        "total_sources": sum(sources.values()),
        "total_uses":    sum(uses.values()),
    }


def sources_uses_df(a: LBOAssumptions) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Build Sources & Uses tables for display."""
    su = build_sources_uses(a)

    source_labels = {
        "senior_debt":         f"Senior Debt ({a.senior_debt_multiple:.1f}x, {a.senior_debt_rate:.2%})",
        "sub_debt":            f"Subordinated Debt ({a.sub_debt_multiple:.1f}x, {a.sub_debt_rate:.2%})",
        "sponsor_equity":      "Sponsor Equity",
        "management_rollover": "Management Rollover",
    }
    use_labels = {
        "purchase_price":    f"Purchase Price ({a.entry_multiple:.1f}x EBITDA)",
        "transaction_costs": "Transaction Costs",
        "financing_fees":    "Financing Fees",
    }

    def _table(items: dict, labels: dict, total: float, total_label: str) -> pd.DataFrame:
        rows = [
            {"Item": labels[key], "Amount ($M)": round(amount, 1),
             "% of Total": f"{amount / total:.1%}" if total else "—"}
            for key, amount in items.items()
        ]
        rows.append({"Item": total_label, "Amount ($M)": round(total, 1), "% of Total": "100.0%"})
        return pd.DataFrame(rows)

    sources_df = _table(su["sources"], source_labels, su["total_sources"], "Total Sources")
    uses_df    = _table(su["uses"], use_labels, su["total_uses"], "Total Uses")
    return sources_df, uses_df
