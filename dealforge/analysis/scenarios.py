"""
scenarios.py
------------
Defines Bull / Base / Bear scenarios around a resolved deal and runs the LBO
model for each.  Only operating and exit assumptions move; the entry price and
capital structure (and so sources & uses) are the same in every scenario.
"""

from dataclasses import replace

import pandas as pd

from dealforge.model.assumptions import LBOAssumptions, base_case
from dealforge.model.lbo_engine import run_model
from dealforge.utils.formatting import fmt_irr, fmt_moic


SCENARIO_NAMES = ["Bear", "Base", "Bull"]


def _shift(a: LBOAssumptions, growth: float, margin: float, exit_multiple: float) -> LBOAssumptions:
    return replace(
        a,
        revenue_growth_rate  = a.revenue_growth_rate + growth,
        revenue_growth_rates = tuple(g + growth for g in a.revenue_growth_rates),
        base_ebitda_margin   = a.base_ebitda_margin + margin,
        target_ebitda_margin = a.target_ebitda_margin + margin,
        exit_multiple        = exit_multiple,
    )


def make_scenario_assumptions(base: LBOAssumptions | None = None) -> dict[str, LBOAssumptions]:
    base = base or base_case()
    return {
        "Bear": _shift(base, -0.025, -0.012, max(4.0, base.exit_multiple - 1.5)),
        "Base": base,
        "Bull": _shift(base, 0.020, 0.010, base.exit_multiple + 1.5),
    }


def run_scenarios(base_assumptions: LBOAssumptions | None = None) -> dict:
    """
    Run all three scenarios.

    Returns
    -------
    {
      "results"      : {scenario_name: model_result_dict},
      "assumptions"  : {scenario_name: LBOAssumptions},
      "comparison_df": pd.DataFrame  (key metrics across scenarios),
    }
    """
    scenarios = make_scenario_assumptions(base_assumptions)
    results   = {name: run_model(a) for name, a in scenarios.items()}

    rows = []
    for name in SCENARIO_NAMES:
        a   = scenarios[name]
        res = results[name]
        ex  = res["exit"]
        sponsor = res["returns"]["sponsor"]
        n   = a.exit_year

        rows.append({
            "Scenario":           name,
            "Revenue CAGR":       f"{_cagr(a.base_year_revenue, float(res['projection'].loc[n, 'revenue']), n):.1%}",
            "Exit EBITDA Margin": f"{float(res['projection'].loc[n, 'ebitda_margin']):.1%}",
            "Exit EV/EBITDA":     f"{a.exit_multiple:.1f}x",
            "Exit EBITDA ($M)":   f"${ex['exit_ebitda']:,.0f}",
            "Exit EV ($M)":       f"${ex['exit_ev']:,.0f}",
            "Remaining Debt ($M)": f"${ex['remaining_debt']:,.0f}",
            "Exit Equity ($M)":   f"${ex['exit_equity']:,.0f}",
            "Sponsor IRR":        fmt_irr(sponsor["irr"]),
            "Sponsor MOIC":       fmt_moic(sponsor["moic"]),
        })

    comparison_df = pd.DataFrame(rows).set_index("Scenario")

    return {
        "results":       results,
        "assumptions":   scenarios,
        "comparison_df": comparison_df,
    }


def _cagr(entry_rev: float, exit_rev: float, years: int) -> float:
    if entry_rev <= 0 or exit_rev <= 0 or years <= 0:
        return 0.0
    return (exit_rev / entry_rev) ** (1 / years) - 1
