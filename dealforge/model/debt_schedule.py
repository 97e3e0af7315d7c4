"""
debt_schedule.py
----------------
Builds the debt schedule for all tranches, year by year.

Key mechanics (per year t = 1..N):
  - PIK accretes onto the beginning balance before interest / paydown
  - Cash interest = rate × (beginning balance + PIK accretion)
  - Interest tax shield = total cash interest × tax rate
  - CFADS = unlevered FCF − after-tax interest   (the only place the shield enters)
  - Required amortization (fixed % of original principal) is paid first
  - Cash sweep: max(0, CFADS − required amort) × sweep %, applied in seniority
    order (Senior → Subordinated); cash left after a tranche is retired flows
    to the next tranche
  - Ending balances are clamped at zero and carried into the next year

Returns a dict keyed by year (1..N) with full schedule detail,
plus a summary DataFrame and one DataFrame per tranche.
"""

import pandas as pd

from dealforge.model.assumptions import LBOAssumptions


def build_debt_schedule(a: LBOAssumptions, projection: pd.DataFrame) -> dict:
    """
    Parameters
    ----------
    a          : LBOAssumptions
    projection : output of projection.build_projection (uses the "ufcf" column)

    Returns
    -------
    {
      "schedule"    : dict[year] → dict with per-tranche detail + totals
      "summary_df"  : pd.DataFrame  (year-by-year totals)
      "tranche_dfs" : dict[name] → pd.DataFrame  (per-tranche detail)
    }
    """
    n = a.projection_years
    tranches = a.debt_tranches()

    balances = {t.name: t.principal for t in tranches}
    schedule = {}
    tranche_records = {t.name: [] for t in tranches}

    for yr in range(1, n + 1):
        ufcf = float(projection.loc[yr, "ufcf"])

        # Step 1: PIK accretion, cash interest and required amortization
        beginning = dict(balances)
        pik = {t.name: beginning[t.name] * t.pik_rate for t in tranches}
        accreted = {t.name: beginning[t.name] + pik[t.name] for t in tranches}
        interest = {t.name: accreted[t.name] * t.rate for t in tranches}
        req_amort = {t.name: min(t.annual_amort, accreted[t.name]) for t in tranches}

        # Step 2: Tax shield and cash available for debt service
        total_interest = sum(interest.values())
        tax_shield = total_interest * a.tax_rate
        after_tax_interest = total_interest - tax_shield
        cfads = ufcf - after_tax_interest

        # Step 3: Cash sweep, highest priority first
        total_req_amort = sum(req_amort.values())
        sweep_cash = max(0.0, cfads - total_req_amort) * a.cash_sweep_percent
        remaining_for_sweep = sweep_cash
        sweep_payments = {}
        for t in tranches:
            # Can't sweep more than outstanding balance
            max_sweep = max(0.0, accreted[t.name] - req_amort[t.name])
            sweep = min(remaining_for_sweep, max_sweep)
            sweep_payments[t.name] = sweep
            remaining_for_sweep -= sweep

        # Step 4: Update balances
        ending = {}
        for t in tranches:
            paid = req_amort[t.name] + sweep_payments[t.name]
            ending[t.name] = max(0.0, accreted[t.name] - paid)

        schedule[yr] = {
            "year":                yr,
            "beginning_debt":      sum(beginning.values()),
            "pik_accretion":       sum(pik.values()),
            "total_interest":      total_interest,
            "tax_shield":          tax_shield,
            "after_tax_interest":  after_tax_interest,
            "ufcf":                ufcf,
            "cfads":               cfads,
            "required_amort":      total_req_amort,
            "sweep_cash":          sweep_cash,
            "cash_sweep":          sum(sweep_payments.values()),
            "total_debt_repaid":   total_req_amort + sum(sweep_payments.values()),
            "unapplied_sweep":     remaining_for_sweep,
            "ending_debt":         sum(ending.values()),
            "beginning_by_tranche": beginning,
            "pik_by_tranche":       pik,
            "interest_by_tranche":  interest,
            "req_amort_by_tranche": req_amort,
            "sweep_by_tranche":     sweep_payments,
            "balances_by_tranche":  ending,
        }

        for t in tranches:
            tranche_records[t.name].append({
                "year":           yr,
                "beginning":      beginning[t.name],
                "pik_accretion":  pik[t.name],
                "interest":       interest[t.name],
                "required_amort": req_amort[t.name],
                "cash_sweep":     sweep_payments[t.name],
                "paydown":        req_amort[t.name] + sweep_payments[t.name],
                "ending":         ending[t.name],
            })

        balances = ending

    summary_columns = [
        "year", "beginning_debt", "pik_accretion", "total_interest", "tax_shield",
        "after_tax_interest", "ufcf", "cfads", "required_amort", "sweep_cash",
        "cash_sweep", "total_debt_repaid", "unapplied_sweep", "ending_debt",
    ]
    summary_df = pd.DataFrame(
        [{k: d[k] for k in summary_columns} for d in schedule.values()]
    ).set_index("year")

    tranche_dfs = {
        name: pd.DataFrame(records).set_index("year")
        for name, records in tranche_records.items()
    }

    return {
        "schedule":    schedule,
        "summary_df":  summary_df,
        "tranche_dfs": tranche_dfs,
    }


def get_interest_by_year(schedule: dict) -> list[float]:
    """Total cash interest for years 1..N."""
    return [schedule[yr]["total_interest"] for yr in sorted(schedule.keys())]


def get_ending_debt_by_year(schedule: dict, opening_debt: float) -> list[float]:
    """Total debt indexed by year 0..N (index 0 = debt raised at close)."""
    return [opening_debt] + [schedule[yr]["ending_debt"] for yr in sorted(schedule.keys())]


def debt_schedule_display_df(debt_sched: dict) -> pd.DataFrame:
    """Rounded, labelled version of the summary for display."""
    labels = {
        "beginning_debt":     "Beg. Total Debt ($M)",
        "pik_accretion":      "PIK Accretion ($M)",
        "total_interest":     "Cash Interest ($M)",
        "tax_shield":         "Interest Tax Shield ($M)",
        "cfads":              "CFADS ($M)",
        "required_amort":     "Req. Amortization ($M)",
        "cash_sweep":         "Cash Sweep ($M)",
        "ending_debt":        "End. Total Debt ($M)",
    }
    df = debt_sched["summary_df"][list(labels)].rename(columns=labels).round(1)
    for name, tdf in debt_sched["tranche_dfs"].items():
        df[f"{name} ($M)"] = tdf["ending"].round(1)
    return df
