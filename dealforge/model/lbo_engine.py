"""
lbo_engine.py
-------------
Master orchestrator: runs the full LBO model for a guaranteed
LBOAssumptions record and returns all outputs in a single result dict.

There is no circularity to iterate: operating tax is charged on EBIT and
interest enters once through CFADS, so the projection feeds the debt
schedule in a single forward pass.

Computes:
  - Projection (revenue → unlevered FCF), years 0..N
  - Debt Schedule (PIK, interest, tax shield, cash sweep)
  - Sources & Uses (sponsor equity as plug)
  - Exit Analysis: exit EV, remaining debt, exit costs, exit equity
  - Returns per holder (sponsor, management): ownership, proceeds, MOIC, IRR
  - Credit Metrics time series

All monetary values in $M.
"""

import numpy as np
import pandas as pd

from dealforge.model.assumptions import LBOAssumptions
from dealforge.model.projection import build_projection
from dealforge.model.debt_schedule import build_debt_schedule, get_ending_debt_by_year
from dealforge.model.sources_uses import build_sources_uses
from dealforge.utils.formatting import fmt_irr, fmt_moic


# ---------------------------------------------------------------------------
# IRR / MOIC helpers
# ---------------------------------------------------------------------------

def _moic(invested: float, proceeds: float) -> float:
    if invested <= 0:
        return 0.0
    return proceeds / invested


def _irr(invested: float, moic: float, years: int) -> float:
    """IRR of a single terminal cash flow: MOIC^(1/years) − 1."""
    if invested <= 0 or years <= 0:
        return 0.0
    if moic <= 0:
        # Equity wiped out
        return -1.0
    return moic ** (1.0 / years) - 1.0


def _holder(equity: float, ownership: float, exit_equity: float, years: int) -> dict:
    proceeds = exit_equity * ownership
    moic = _moic(equity, proceeds)
    return {
        "equity":        equity,
        "ownership":     ownership,
        "exit_proceeds": proceeds,
        "moic":          moic,
        "irr":           _irr(equity, moic, years),
    }


# ---------------------------------------------------------------------------
# Main model run
# ---------------------------------------------------------------------------

def run_model(assumptions: LBOAssumptions) -> dict:
    """
    Run the full LBO model.

    Returns
    -------
    dict with keys:
      projection, debt_schedule, sources_uses, exit, returns,
      key_metrics, credit_df, summary
    """
    a = assumptions
    n = a.projection_years

    # ---- PROJECTION & DEBT ----
    projection = build_projection(a)
    debt_sched = build_debt_schedule(a, projection)
    sources_uses = build_sources_uses(a)

    # ---- EXIT ANALYSIS ----
    exit_yr       = a.exit_year
    exit_ebitda   = float(projection.loc[exit_yr, "ebitda"])
    exit_ev       = exit_ebitda * a.exit_multiple
    ending_debt   = get_ending_debt_by_year(debt_sched["schedule"], a.total_debt)
    remaining     = ending_debt[exit_yr]
    exit_costs    = exit_ev * a.exit_cost_percent
    exit_equity   = exit_ev - remaining - exit_costs

    exit_analysis = {
        "exit_year":        exit_yr,
        "exit_ebitda":      exit_ebitda,
        "exit_multiple":    a.exit_multiple,
        "exit_ev":          exit_ev,
        "remaining_debt":   remaining,
        "exit_costs":       exit_costs,
        "exit_equity":      exit_equity,
    }

    # ---- RETURNS ----
    sponsor_equity = sources_uses["sources"]["sponsor_equity"]
    rollover       = a.management_rollover
    total_equity   = sponsor_equity + rollover
    sponsor_share  = sponsor_equity / total_equity if total_equity > 0 else 1.0

    returns = {
        "sponsor":    _holder(sponsor_equity, sponsor_share, exit_equity, exit_yr),
        "management": _holder(rollover, 1.0 - sponsor_share, exit_equity, exit_yr),
    }

    # ---- KEY METRICS ----
    entry_ebitda = float(projection.loc[0, "ebitda"])
    debt_paydown = a.total_debt - remaining
    key_metrics = {
        "entry_multiple":       a.entry_multiple,
        "exit_multiple":        a.exit_multiple,
        "entry_leverage":       a.total_debt / entry_ebitda if entry_ebitda > 0 else np.nan,
        "exit_leverage":        remaining / exit_ebitda if exit_ebitda > 0 else np.nan,
        "debt_paydown":         debt_paydown,
        "debt_paydown_percent": debt_paydown / a.total_debt if a.total_debt > 0 else 0.0,
    }

    # ---- CREDIT METRICS TIME SERIES ----
    credit = []
    for yr in range(1, n + 1):
        sched_yr = debt_sched["schedule"][yr]
        ebitda   = float(projection.loc[yr, "ebitda"])
        rev      = float(projection.loc[yr, "revenue"])
        end_debt = sched_yr["ending_debt"]
        int_exp  = sched_yr["total_interest"]

        credit.append({
            "Year":                  yr,
            "Revenue ($M)":          round(rev, 1),
            "EBITDA ($M)":           round(ebitda, 1),
            "EBITDA Margin":         ebitda / rev if rev else 0,
            "Total Debt ($M)":       round(end_debt, 1),
            "Gross Leverage (x)":    round(end_debt / ebitda, 2) if ebitda > 0 else np.nan,
            "Interest Coverage (x)": round(ebitda / int_exp, 2) if int_exp > 0 else np.nan,
            "CFADS ($M)":            round(sched_yr["cfads"], 1),
        })
    credit_df = pd.DataFrame(credit)

    # ---- SUMMARY TABLE ----
    sponsor = returns["sponsor"]
    summary = {
        "Entry EV ($M)":          round(a.purchase_price, 1),
        "Entry EV/EBITDA":        f"{a.entry_multiple:.1f}x",
        "Entry Gross Leverage":   f"{key_metrics['entry_leverage']:.1f}x" if not np.isnan(key_metrics["entry_leverage"]) else "N/A",
        "Sponsor Equity ($M)":    round(sponsor_equity, 1),
        "Exit EV ($M)":           round(exit_ev, 1),
        "Exit EV/EBITDA":         f"{a.exit_multiple:.1f}x",
        "Exit EBITDA ($M)":       round(exit_ebitda, 1),
        "Remaining Debt ($M)":    round(remaining, 1),
        "Exit Equity ($M)":       round(exit_equity, 1),
        "Sponsor IRR":            fmt_irr(sponsor["irr"]),
        "Sponsor MOIC":           fmt_moic(sponsor["moic"]),
        "Hold Period":            f"{exit_yr} years",
    }

    return {
        "projection":    projection,
        "debt_schedule": debt_sched,
        "sources_uses":  sources_uses,
        "exit":          exit_analysis,
        "returns":       returns,
        "key_metrics":   key_metrics,
        "credit_df":     credit_df,
        "summary":       summary,
    }
