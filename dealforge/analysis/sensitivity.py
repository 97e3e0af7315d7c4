"""
sensitivity.py
--------------
Two-way sensitivity grids for sponsor returns.

  entry_vs_exit_multiple      : entry EV/EBITDA × exit EV/EBITDA → IRR and MOIC
  rev_growth_vs_exit_multiple : flat revenue growth × exit EV/EBITDA → IRR
  leverage_vs_entry_multiple  : entry leverage × entry EV/EBITDA → IRR

Every grid point is a fresh record from `with_overrides`.  Moving the entry
multiple re-prices the deal at EBITDA × multiple, and sponsor equity is
re-solved at every point, so each point still balances sources and uses.
"""

from typing import Callable

import pandas as pd

from dealforge.model.assumptions import LBOAssumptions, base_case, with_overrides
from dealforge.model.lbo_engine import run_model


def _sponsor_returns(base: LBOAssumptions, overrides: dict) -> dict:
    if "entry_multiple" in overrides:
        overrides = {**overrides, "purchase_price": base.ltm_ebitda * overrides["entry_multiple"]}
    a = with_overrides(base, **overrides)
    return run_model(a)["returns"]["sponsor"]


def _grid(base: LBOAssumptions,
          rows: list, row_label: Callable, row_overrides: Callable,
          cols: list, col_label: Callable, col_overrides: Callable,
          metrics: tuple = ("irr",)) -> dict[str, pd.DataFrame]:
    """One DataFrame per metric; rows × cols of sponsor returns."""
    data = {m: {} for m in metrics}
    for c in cols:
        cells = {m: {} for m in metrics}
        for r in rows:
            sponsor = _sponsor_returns(base, {**row_overrides(r), **col_overrides(c)})
            for m in metrics:
                cells[m][row_label(r)] = sponsor[m]
        for m in metrics:
            data[m][col_label(c)] = cells[m]
    return {m: pd.DataFrame(data[m]) for m in metrics}


def _exit_label(m: float) -> str:
    return f"Exit {m:.1f}x"


def entry_vs_exit_multiple(
    base: LBOAssumptions | None = None,
    entry_multiples: list[float] = [7.0, 7.5, 8.0, 8.5, 9.0, 9.5, 10.0],
    exit_multiples:  list[float] = [6.0, 7.0, 8.0, 9.0, 10.0],
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """(irr_df, moic_df); rows = entry multiple, columns = exit multiple."""
    tables = _grid(
        base or base_case(),
        entry_multiples, lambda m: f"{m:.1f}x", lambda m: {"entry_multiple": m},
        exit_multiples, _exit_label, lambda m: {"exit_multiple": m},
        metrics=("irr", "moic"),
    )
    for df in tables.values():
        df.index.name = "Entry Multiple"
    return tables["irr"], tables["moic"]


def rev_growth_vs_exit_multiple(
    base: LBOAssumptions | None = None,
    growth_rates:   list[float] = [0.00, 0.02, 0.04, 0.06, 0.08, 0.10],
    exit_multiples: list[float] = [6.0, 7.0, 8.0, 9.0, 10.0],
) -> pd.DataFrame:
    """IRR; rows = flat revenue growth (any per-year schedule is cleared)."""
    df = _grid(
        base or base_case(),
        growth_rates, lambda g: f"{g:+.0%}",
        lambda g: {"revenue_growth_rate": g, "revenue_growth_rates": ()},
        exit_multiples, _exit_label, lambda m: {"exit_multiple": m},
    )["irr"]
    df.index.name = "Revenue Growth"
    return df


def leverage_vs_entry_multiple(
    base: LBOAssumptions | None = None,
    leverage_levels: list[float] = [3.0, 4.0, 5.0, 6.0, 7.0],
    entry_multiples: list[float] = [7.0, 8.0, 9.0, 10.0],
) -> pd.DataFrame:
    """
    IRR; rows = total debt / EBITDA at close, columns = entry multiple.
    Both tranches scale together, keeping the base senior / sub split.
    """
    base   = base or base_case()
    ebitda = base.ltm_ebitda
    senior_share = base.senior_debt_amount / base.total_debt if base.total_debt > 0 else 1.0

    def debt_at(lev: float) -> dict:
        senior = lev * ebitda * senior_share
        sub    = lev * ebitda - senior
        return {
            "senior_debt_amount":   senior,
            "senior_debt_multiple": lev * senior_share,
            "sub_debt_amount":      sub,
            "sub_debt_multiple":    lev * (1.0 - senior_share),
        }

    df = _grid(
        base,
        leverage_levels, lambda lev: f"{lev:.1f}x", debt_at,
        entry_multiples, lambda m: f"Entry {m:.1f}x", lambda m: {"entry_multiple": m},
    )["irr"]
    df.index.name = "Leverage"
    return df
