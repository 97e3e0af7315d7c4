"""
derivations.py
--------------
Fills fields whose value follows from other resolved fields.

A rule only writes a field that was not stated (Source.DEFAULT or
Source.DERIVED), and every rule is a pure function of its inputs, so a
second pass over an already-derived draft changes nothing.  Sponsor equity
is always re-solved so that sources equal uses.
"""

import logging

from dealforge.model.assumptions import FieldCatalog, Source
from dealforge.model.sources_uses import solve_sponsor_equity

logger = logging.getLogger(__name__)


TRANCHES = (
    ("senior_debt_amount", "senior_debt_multiple"),
    ("sub_debt_amount", "sub_debt_multiple"),
)


def derive(values: dict, sources: dict, catalog: FieldCatalog) -> list[str]:
    """
    Apply the derivation rules to a working draft, in place.

    Parameters
    ----------
    values  : field -> value, every catalog field present
    sources : field -> Source
    catalog : the catalog the draft was seeded from

    Returns the names whose value actually changed.
    """
    changed = []

    def given(name: str) -> bool:
        return sources.get(name, Source.DEFAULT) in (Source.EXTRACTED, Source.EXTERNAL)

    def settle(name: str, value) -> None:
        if given(name):
            return
        if value != values[name]:
            values[name] = value
            changed.append(name)
            logger.debug("derived %s = %r", name, value)
        sources[name] = Source.DERIVED

    ebitda = values["ltm_ebitda"]

    # 1. Base margin implied by stated revenue and EBITDA
    if given("ltm_ebitda") and given("base_year_revenue") and values["base_year_revenue"] > 0:
        settle("base_ebitda_margin", ebitda / values["base_year_revenue"])

    # 2. Target margin keeps the catalog's expansion spread over a resolved base
    if sources.get("base_ebitda_margin", Source.DEFAULT) is not Source.DEFAULT:
        spread = catalog.default("target_ebitda_margin") - catalog.default("base_ebitda_margin")
        settle("target_ebitda_margin", values["base_ebitda_margin"] + spread)

    # 3. Revenue from EBITDA at the base margin
    if given("ltm_ebitda") and not given("base_year_revenue") and values["base_ebitda_margin"] > 0:
        settle("base_year_revenue", ebitda / values["base_ebitda_margin"])

    # 4. Purchase price = EBITDA x entry multiple, unless stated as an amount
    if not given("purchase_price") and (given("ltm_ebitda") or given("entry_multiple")):
        settle("purchase_price", ebitda * values["entry_multiple"])

    # 5. Implied entry multiple from a stated price
    if given("purchase_price") and not given("entry_multiple") and ebitda > 0:
        settle("entry_multiple", values["purchase_price"] / ebitda)

    # 6. Tranche amount <-> multiple of EBITDA
    for amount, multiple in TRANCHES:
        if not given(amount) and (given(multiple) or given("ltm_ebitda")):
            settle(amount, ebitda * values[multiple])
        elif given(amount) and not given(multiple) and ebitda > 0:
            settle(multiple, values[amount] / ebitda)

    # 7. Flat-multiple exit, once the entry multiple is resolved from the deal
    entry_resolved = sources.get("entry_multiple", Source.DEFAULT) is not Source.DEFAULT
    if entry_resolved and not given("exit_multiple"):
        settle("exit_multiple", values["entry_multiple"])

    # 8. Sponsor equity is the sources & uses plug, always
    plug = solve_sponsor_equity(catalog.build_record(values, sources))
    if plug != values["sponsor_equity"]:
        values["sponsor_equity"] = plug
        changed.append("sponsor_equity")
        logger.debug("derived sponsor_equity = %r", plug)
    sources["sponsor_equity"] = Source.DERIVED

    return changed
