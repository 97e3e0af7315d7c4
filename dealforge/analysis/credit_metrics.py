"""
credit_metrics.py
-----------------
Lender's view of a resolved deal, year by year:

  - Gross leverage (ending debt / EBITDA) and an implied rating proxy
  - Interest coverage (EBITDA / cash interest)
  - Fixed-charge coverage (EBITDA / (cash interest + required amortization))
  - DSCR (CFADS / cash interest)
  - Cumulative paydown vs. debt raised at close

Plus the tranche balance waterfall (Entry, Year 1..N) and covenant headroom
against a stepped maintenance covenant package.
"""

import numpy as np
import pandas as pd

from dealforge.model.assumptions import LBOAssumptions


# Upper leverage bound → implied rating (simplified agency proxy)
LEVERAGE_RATING_MAP = [
    (2.0,  "BBB+/Baa1"),
    (3.0,  "BBB/Baa2"),
    (3.5,  "BBB-/Baa3"),
    (4.5,  "BB+/Ba1"),
    (5.5,  "BB/Ba2"),
    (6.5,  "BB-/Ba3"),
    (7.5,  "B+/B1"),
    (9.0,  "B/B2"),
    (99.0, "B-/B3 or below"),
]


def _implied_rating(leverage: float) -> str:
    if np.isnan(leverage):
        return "N/A"
    return next((rating for bound, rating in LEVERAGE_RATING_MAP if leverage <= bound), "CCC")


def _safe_div(num: pd.Series, den: pd.Series) -> pd.Series:
    """Element-wise ratio; NaN where the denominator is not positive."""
    return num / den.where(den > 0)


def max_leverage_covenant(year: int) -> float:
    """Opens at 6.5x and steps down 0.5x a year to a 3.0x floor."""
    return max(3.0, 6.5 - 0.5 * (year - 1))


def min_coverage_covenant(year: int) -> float:
    """Opens at 2.0x and steps up 0.25x every second year to a 3.0x cap."""
    return min(3.0, 2.0 + 0.25 * ((year - 1) // 2))


def build_credit_dashboard(model_result: dict, assumptions: LBOAssumptions) -> dict:
    """
    Parameters
    ----------
    model_result : return value of lbo_engine.run_model()
    assumptions  : the record that run was built from

    Returns
    -------
    {
      "credit_df"   : one row per projection year,
      "waterfall_df": tranche balances, index Entry, Year 1..N,
      "covenant_df" : leverage / coverage tests with headroom,
    }
    """
    proj  = model_result["projection"].loc[1:]
    debt  = model_result["debt_schedule"]["summary_df"]
    raised = assumptions.total_debt

    leverage  = _safe_div(debt["ending_debt"], proj["ebitda"])
    coverage  = _safe_div(proj["ebitda"], debt["total_interest"])
    paydown   = raised - debt["ending_debt"]

    credit_df = pd.DataFrame({
        "Year":                      proj.index,
        "Revenue ($M)":              proj["revenue"].round(1),
        "EBITDA ($M)":               proj["ebitda"].round(1),
        "EBITDA Margin":             proj["ebitda_margin"],
        "Total Debt ($M)":           debt["ending_debt"].round(1),
        "Gross Leverage (x)":        leverage.round(2),
        "Cash Interest ($M)":        debt["total_interest"].round(1),
        "Interest Coverage (x)":     coverage.round(2),
        "Fixed Charge Coverage (x)": _safe_div(proj["ebitda"], debt["total_interest"] + debt["required_amort"]).round(2),
        "DSCR (x)":                  _safe_div(debt["cfads"], debt["total_interest"]).round(2),
        "CFADS ($M)":                debt["cfads"].round(1),
        "Unlevered FCF ($M)":        proj["ufcf"].round(1),
        "FCF / EBITDA":              _safe_div(proj["ufcf"], proj["ebitda"]).fillna(0.0),
        "Cumulative Paydown ($M)":   paydown.round(1),
        "Cumulative Paydown (%)":    paydown / raised if raised > 0 else 0.0,
        "Implied Rating":            leverage.round(2).map(_implied_rating),
    }).reset_index(drop=True)

    # ---- Tranche waterfall ----
    balances = {name: tdf["ending"].round(1) for name, tdf in model_result["debt_schedule"]["tranche_dfs"].items()}
    waterfall_df = pd.DataFrame(balances)
    waterfall_df.index = [f"Year {yr}" for yr in waterfall_df.index]
    entry = pd.DataFrame({t.name: [t.principal] for t in assumptions.debt_tranches()}, index=["Entry"])
    waterfall_df = pd.concat([entry, waterfall_df])
    waterfall_df.index.name = "Year"

    # ---- Covenant headroom ----
    years   = credit_df["Year"]
    act_lev = credit_df["Gross Leverage (x)"]
    act_cov = credit_df["Interest Coverage (x)"]
    max_lev = years.map(max_leverage_covenant)
    min_cov = years.map(min_coverage_covenant)
    covenant_df = pd.DataFrame({
        "Year":                     years,
        "Gross Leverage":           act_lev,
        "Max Leverage Covenant":    max_lev,
        "Leverage Headroom (x)":    (max_lev - act_lev).round(2),
        "In Compliance (Leverage)": np.where(act_lev <= max_lev, "YES", "NO"),
        "Interest Coverage":        act_cov,
        "Min Coverage Covenant":    min_cov,
        "Coverage Headroom (x)":    (act_cov - min_cov).round(2),
        # No cash interest cannot breach a coverage test
        "In Compliance (Coverage)": np.where(act_cov.isna() | (act_cov >= min_cov), "YES", "NO"),
    })

    return {
        "credit_df":    credit_df,
        "waterfall_df": waterfall_df,
        "covenant_df":  covenant_df,
    }
