"""
projection.py
-------------
Projects the operating model and unlevered free cash flow.

Revenue drivers → EBITDA → EBIT → NOPAT → Unlevered FCF

Notes:
  - Year 0 is the closing date; years 1..N are projection years, with
    N = max(5, exit year) so the projection always covers the exit.
  - EBITDA margin glides linearly from the base margin to the target margin
    over `margin_expansion_years`, then holds at the target.
  - Operating tax is charged on EBIT, not EBT.  Interest and its tax shield
    enter once, in the debt schedule (CFADS), never here.
  - All values in $M.
"""

import pandas as pd

from dealforge.model.assumptions import LBOAssumptions


PROJECTION_COLUMNS = [
    "revenue", "growth", "ebitda_margin", "ebitda", "da", "ebit",
    "operating_tax", "nopat", "capex", "nwc", "nwc_change", "ufcf",
]


def margin_for_year(a: LBOAssumptions, year: int) -> float:
    if year == 0:
        return a.base_ebitda_margin
    if a.margin_expansion_years <= 0:
        return a.target_ebitda_margin
    progress = min(year / a.margin_expansion_years, 1.0)
    return a.base_ebitda_margin + (a.target_ebitda_margin - a.base_ebitda_margin) * progress


def build_projection(a: LBOAssumptions) -> pd.DataFrame:
    """
    Returns a long DataFrame with one row per year (index 0..N).
    Columns = PROJECTION_COLUMNS.
    """
    n = a.projection_years
    growth = a.growth_schedule(n)

    rows = []
    revenue = a.base_year_revenue
    prev_nwc = None
    for yr in range(0, n + 1):
        g = 0.0 if yr == 0 else growth[yr - 1]
        revenue = revenue * (1 + g)
        margin = margin_for_year(a, yr)

        ebitda = revenue * margin
        da     = revenue * a.da_percent
        ebit   = ebitda - da
        tax    = ebit * a.tax_rate
        nopat  = ebit * (1 - a.tax_rate)
        capex  = revenue * a.capex_percent
        nwc    = revenue * a.nwc_percent

        if yr == 0:
            # Closing balance sheet only; no cash flow at t=0
            nwc_change = 0.0
            ufcf = 0.0
        else:
            nwc_change = nwc - prev_nwc
            ufcf = nopat + da - capex - nwc_change
        prev_nwc = nwc

        rows.append({
            "revenue":       revenue,
            "growth":        g,
            "ebitda_margin": margin,
            "ebitda":        ebitda,
            "da":            da,
            "ebit":          ebit,
            "operating_tax": tax,
            "nopat":         nopat,
            "capex":         capex,
            "nwc":           nwc,
            "nwc_change":    nwc_change,
            "ufcf":          ufcf,
        })

    df = pd.DataFrame(rows, columns=PROJECTION_COLUMNS)
    df.index.name = "year"
    return df


def projection_summary_df(projection: pd.DataFrame) -> pd.DataFrame:
    """
    Returns a presentation-ready wide table (line items × "Year N" columns).
    """
    labels = {
        "revenue":       "Revenue",
        "ebitda":        "EBITDA",
        "ebitda_margin": "EBITDA Margin",
        "da":            "D&A",
        "ebit":          "EBIT",
        "operating_tax": "Operating Tax",
        "nopat":         "NOPAT",
        "capex":         "CapEx",
        "nwc_change":    "Δ NWC",
        "ufcf":          "Unlevered FCF",
    }
    wide = projection[list(labels)].T
    wide.index = [labels[c] for c in wide.index]
    wide.columns = [f"Year {yr}" for yr in projection.index]
    return wide
