"""
formatting.py
-------------
Display helpers: scalar formatters, the resolved-assumptions table, the
projection table and colour bands for sensitivity grids.
"""

import numpy as np
import pandas as pd

from dealforge.model.assumptions import FieldCatalog, LBOAssumptions, ValueKind


MISSING = "—"


def _missing(val) -> bool:
    return val is None or (isinstance(val, (float, np.floating)) and np.isnan(val))


def fmt_millions(val, decimals: int = 1) -> str:
    return MISSING if _missing(val) else f"${val:,.{decimals}f}M"


def fmt_pct(val, decimals: int = 1) -> str:
    return MISSING if _missing(val) else f"{val:.{decimals}%}"


def fmt_multiple(val, decimals: int = 2) -> str:
    return MISSING if _missing(val) else f"{val:.{decimals}f}x"


def fmt_irr(val) -> str:
    return "N/A" if _missing(val) else f"{val:.1%}"


def fmt_moic(val) -> str:
    return "N/A" if _missing(val) else f"{val:.2f}x"


def fmt_field(kind: ValueKind, val) -> str:
    """Render a catalog value in its own unit."""
    if kind is ValueKind.MONEY:
        return fmt_millions(val)
    if kind is ValueKind.RATIO:
        return fmt_multiple(val, 1)
    if kind is ValueKind.PERCENT:
        return fmt_pct(val, 2)
    if kind is ValueKind.SCHEDULE:
        return ", ".join(fmt_pct(g) for g in val) if val else "flat rate"
    return str(val)


def assumptions_df(a: LBOAssumptions, catalog: FieldCatalog) -> pd.DataFrame:
    """One row per catalog field: formatted value, provenance, description."""
    return pd.DataFrame([
        {
            "Field":       spec.name,
            "Value":       fmt_field(spec.kind, getattr(a, spec.name)),
            "Source":      a.source(spec.name).value,
            "Description": spec.description,
        }
        for spec in catalog
    ])


PCT_ROWS = {"EBITDA Margin"}


def format_projection_df(df: pd.DataFrame) -> pd.DataFrame:
    """Wide projection table as strings: $M rows, % for margin rows."""
    out = df.astype(object)
    for label, row in df.iterrows():
        fmt = fmt_pct if label in PCT_ROWS else fmt_millions
        out.loc[label] = [fmt(v) for v in row]
    return out


# (upper bound, css) pairs, lowest band first
IRR_BANDS = [
    (0.0,    "background-color: #7b241c; color: white"),
    (0.15,   "background-color: #e74c3c; color: white"),
    (0.20,   "background-color: #f1c40f; color: black"),
    (0.25,   "background-color: #2ecc71; color: black"),
    (np.inf, "background-color: #16a085; color: white"),
]
MOIC_BANDS = [
    (1.0,    "background-color: #7b241c; color: white"),
    (2.0,    "background-color: #e74c3c; color: white"),
    (2.5,    "background-color: #f1c40f; color: black"),
    (3.0,    "background-color: #2ecc71; color: black"),
    (np.inf, "background-color: #16a085; color: white"),
]
NO_VALUE_CSS = "background-color: #444; color: #aaa"


def band_color(val, bands: list) -> str:
    if not isinstance(val, (int, float)) or _missing(val):
        return NO_VALUE_CSS
    for upper, css in bands:
        if val < upper:
            return css
    return bands[-1][1]


def style_sensitivity_table(df: pd.DataFrame, is_irr: bool = True):
    """Format a numeric IRR or MOIC grid and colour each cell by band; returns a Styler."""
    bands = IRR_BANDS if is_irr else MOIC_BANDS
    fmt = fmt_irr if is_irr else fmt_moic
    return df.style.format(fmt).map(lambda v: band_color(v, bands))
