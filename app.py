"""
app.py  —  Deal Text → LBO Model
================================
Streamlit page: paste a deal description, get a fully resolved LBO.

Tabs
----
  0  Assumptions  (resolved record + where each value came from)
  1  Deal  (Sources & Uses)
  2  Projection  (revenue → unlevered FCF)
  3  Debt  (waterfall summary + tranche detail)
  4  Returns  (exit, sponsor / management, key metrics)
  5  Credit  (leverage, coverage, covenants)
  6  Scenarios  (Bull / Base / Bear)
  7  Sensitivity  (entry × exit; growth × exit; leverage × entry)
"""

import logging

import pandas as pd
import streamlit as st

from dealforge.analysis.credit_metrics import build_credit_dashboard
from dealforge.analysis.scenarios import run_scenarios
from dealforge.analysis.sensitivity import (entry_vs_exit_multiple,
                                            rev_growth_vs_exit_multiple,
                                            leverage_vs_entry_multiple)
from dealforge.config import NLUSettings
from dealforge.model.assumptions import build_lbo_catalog
from dealforge.model.debt_schedule import debt_schedule_display_df
from dealforge.model.projection import projection_summary_df
from dealforge.model.sources_uses import sources_uses_df
from dealforge.pipeline import build_lbo_model
from dealforge.resolution.nlu_client import NLUClient
from dealforge.utils.formatting import (fmt_millions, fmt_pct, fmt_multiple,
                                        fmt_irr, fmt_moic, assumptions_df,
                                        format_projection_df,
                                        style_sensitivity_table)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

EXAMPLE_DEAL = (
    "Sponsor to acquire Apex Industrial for EV = $900M. EBITDA $120M, revenue $600M. "
    "Financing: 4.0x senior at 7% with 1% annual amortization, 1.0x sub at 12%. "
    "75% cash sweep, 25% tax rate. Exit 8x after 5 years."
)

# ---------------------------------------------------------------------------
# Page Config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="LBO Model — Deal Text",
    page_icon="💼",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ---------------------------------------------------------------------------
# Sidebar: Deal Description
# ---------------------------------------------------------------------------
settings = NLUSettings.from_env()

st.sidebar.title("⚙️ Deal Description")
deal_text = st.sidebar.text_area("Describe the deal", EXAMPLE_DEAL, height=260)
use_nlu   = st.sidebar.toggle("Supplement with Claude", value=False,
                              disabled=not settings.enabled,
                              help="Needs ANTHROPIC_API_KEY. Regex extraction always wins.")


# ---------------------------------------------------------------------------
# Run model
# ---------------------------------------------------------------------------
@st.cache_data(show_spinner=False)
def _run_model_cached(text: str, nlu: bool) -> dict:
    client = NLUClient.from_settings(settings) if nlu else None
    return build_lbo_model(text, nlu_client=client)

@st.cache_data(show_spinner=False)
def _run_scenarios_cached(text: str, nlu: bool) -> dict:
    return run_scenarios(_run_model_cached(text, nlu)["assumptions"])

@st.cache_data(show_spinner=False)
def _run_sensitivity(text: str, nlu: bool):
    base = _run_model_cached(text, nlu)["assumptions"]
    irr_df, moic_df = entry_vs_exit_multiple(base)
    rev_irr_df      = rev_growth_vs_exit_multiple(base)
    lev_irr_df      = leverage_vs_entry_multiple(base)
    return irr_df, moic_df, rev_irr_df, lev_irr_df


with st.spinner("Resolving assumptions & running model…"):
    result = _run_model_cached(deal_text, use_nlu)

assumptions = result["assumptions"]
debt_sched  = result["debt_schedule"]
exit_info   = result["exit"]
sponsor     = result["returns"]["sponsor"]
management  = result["returns"]["management"]
key_metrics = result["key_metrics"]

credit_extra = build_credit_dashboard(result, assumptions)

# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------
st.title(f"💼 Leveraged Buyout Model — {assumptions.company_name}")
st.caption(f"Close: {assumptions.transaction_date}  |  Hold: {assumptions.exit_year} years")

c1, c2, c3, c4, c5, c6 = st.columns(6)
c1.metric("Entry EV",        fmt_millions(assumptions.purchase_price, 0))
c2.metric("Entry EV/EBITDA", fmt_multiple(assumptions.entry_multiple, 1))
c3.metric("Entry Leverage",  fmt_multiple(key_metrics["entry_leverage"], 1))
c4.metric("Exit EV",         fmt_millions(exit_info["exit_ev"], 0))
c5.metric("Sponsor IRR",     fmt_irr(sponsor["irr"]))
c6.metric("Sponsor MOIC",    fmt_moic(sponsor["moic"]))

st.markdown("---")

tabs = st.tabs([
    "🧾 Assumptions",
    "💰 Deal",
    "📊 Projection",
    "🏦 Debt",
    "📈 Returns",
    "📉 Credit",
    "🎯 Scenarios",
    "🔢 Sensitivity",
])


# ============================================================
# TAB 0: Resolved Assumptions
# ============================================================
with tabs[0]:
    st.dataframe(assumptions_df(assumptions, build_lbo_catalog()),
                 use_container_width=True, hide_index=True)
    if result["external_guess"] is not None:
        with st.expander("Raw NLU guess"):
            st.json(result["external_guess"])


# ============================================================
# TAB 1: Sources & Uses
# ============================================================
with tabs[1]:
    sources_df, uses_df = sources_uses_df(assumptions)
    col_s, col_u = st.columns(2)
    with col_s:
        st.markdown("**Sources**")
        st.dataframe(sources_df, use_container_width=True, hide_index=True)
    with col_u:
        st.markdown("**Uses**")
        st.dataframe(uses_df, use_container_width=True, hide_index=True)


# ============================================================
# TAB 2: Projection
# ============================================================
with tabs[2]:
    st.dataframe(format_projection_df(projection_summary_df(result["projection"])),
                 use_container_width=True)


# ============================================================
# TAB 3: Debt Schedule
# ============================================================
with tabs[3]:
    st.markdown("**Summary by Year**")
    st.dataframe(debt_schedule_display_df(debt_sched), use_container_width=True)

    st.markdown("**Tranche-Level Detail**")
    tranche_tabs = st.tabs(list(debt_sched["tranche_dfs"].keys()))
    for i, (name, df) in enumerate(debt_sched["tranche_dfs"].items()):
        with tranche_tabs[i]:
            t = next(t for t in assumptions.debt_tranches() if t.name == name)
            col_a, col_b, col_c = st.columns(3)
            col_a.metric("Original Principal", fmt_millions(t.principal))
            col_b.metric("Cash Rate",          fmt_pct(t.rate, 2))
            col_c.metric("PIK Rate",           fmt_pct(t.pik_rate, 2))
            st.dataframe(df.round(1), use_container_width=True)


# ============================================================
# TAB 4: Returns
# ============================================================
with tabs[4]:
    col_l, col_r = st.columns(2)
    with col_l:
        st.markdown("**Exit**")
        st.dataframe(pd.Series(result["summary"], name="Value").astype(str).to_frame(),
                     use_container_width=True)
    with col_r:
        st.markdown("**Returns by Holder**")
        holders = pd.DataFrame({
            "Sponsor":    sponsor,
            "Management": management,
        }).T
        holders["moic"] = holders["moic"].apply(fmt_moic)
        holders["irr"]  = holders["irr"].apply(fmt_irr)
        holders["ownership"] = holders["ownership"].apply(fmt_pct)
        st.dataframe(holders, use_container_width=True)

        c1, c2 = st.columns(2)
        c1.metric("Debt Paydown",  fmt_millions(key_metrics["debt_paydown"]))
        c2.metric("Exit Leverage", fmt_multiple(key_metrics["exit_leverage"], 1))


# ============================================================
# TAB 5: Credit Metrics
# ============================================================
with tabs[5]:
    st.dataframe(credit_extra["credit_df"], use_container_width=True, hide_index=True)
    st.markdown("**Covenant Headroom**")
    st.dataframe(credit_extra["covenant_df"], use_container_width=True, hide_index=True)
    st.markdown("**Debt Waterfall**")
    st.bar_chart(credit_extra["waterfall_df"])


# ============================================================
# TAB 6: Scenarios
# ============================================================
with tabs[6]:
    scen = _run_scenarios_cached(deal_text, use_nlu)
    st.dataframe(scen["comparison_df"], use_container_width=True)


# ============================================================
# TAB 7: Sensitivity Tables
# ============================================================
with tabs[7]:
    with st.spinner("Building sensitivity tables…"):
        irr_table, moic_table, rev_irr_table, lev_table = _run_sensitivity(deal_text, use_nlu)

    st.markdown("### Entry EV/EBITDA vs. Exit EV/EBITDA → IRR")
    st.dataframe(style_sensitivity_table(irr_table, is_irr=True), use_container_width=True)

    st.markdown("### Entry EV/EBITDA vs. Exit EV/EBITDA → MOIC")
    st.dataframe(style_sensitivity_table(moic_table, is_irr=False), use_container_width=True)

    st.markdown("### Revenue Growth vs. Exit EV/EBITDA → IRR")
    st.dataframe(style_sensitivity_table(rev_irr_table, is_irr=True), use_container_width=True)

    st.markdown("### Entry Leverage vs. Entry EV/EBITDA → IRR")
    st.dataframe(style_sensitivity_table(lev_table, is_irr=True), use_container_width=True)
