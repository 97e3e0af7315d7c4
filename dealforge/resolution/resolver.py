"""
resolver.py
-----------
Deterministic assumption resolution: raw text -> guaranteed LBOAssumptions.

    defaults -> extract -> derive -> merge external guess -> derive -> freeze

Every step either sets a value or leaves the prior one, and the draft starts
from the catalog defaults, so the record is complete whatever the text says
and whether or not the external guess arrived.
"""

import logging
import math
from typing import Mapping

from dealforge.model.assumptions import (
    DealforgeError, FieldCatalog, LBOAssumptions, Source, ValueKind, build_lbo_catalog,
)
from dealforge.resolution.derivations import derive
from dealforge.resolution.extractor import extract_all
from dealforge.resolution.merge import merge_external
from dealforge.resolution.patterns import LBO_RULES

logger = logging.getLogger(__name__)


NUMERIC_KINDS = (ValueKind.MONEY, ValueKind.RATIO, ValueKind.PERCENT, ValueKind.COUNT)


def _check_complete(values: dict, catalog: FieldCatalog) -> None:
    for spec in catalog:
        value = values[spec.name]
        if spec.kind in NUMERIC_KINDS and not math.isfinite(value):
            raise DealforgeError(f"{spec.name} resolved to {value!r}")


def resolve_lbo(text: str | None, external_guess: Mapping | None = None,
                catalog: FieldCatalog | None = None) -> LBOAssumptions:
    """
    Parameters
    ----------
    text           : free-form deal description (None is treated as empty)
    external_guess : optional field -> value mapping from the NLU call
    catalog        : LBO catalog; built for today when omitted

    Returns a frozen LBOAssumptions with every field populated and a
    `sources` map recording where each value came from.
    """
    if text is None:
        text = ""
    if not isinstance(text, str):
        raise DealforgeError(f"deal text must be a string, got {type(text).__name__}")
    catalog = catalog or build_lbo_catalog()

    values = catalog.defaults()
    sources = {name: Source.DEFAULT for name in catalog.names}

    found = extract_all(text, LBO_RULES)
    for name, value in found.items():
        spec = catalog.spec(name)
        if spec.derived_only:
            continue
        if spec.minimum is not None and value < spec.minimum:
            logger.debug("ignoring %s = %r below minimum %s", name, value, spec.minimum)
            continue
        values[name] = value
        sources[name] = Source.EXTRACTED

    derive(values, sources, catalog)
    accepted = merge_external(values, sources, catalog, external_guess)
    if accepted:
        derive(values, sources, catalog)

    _check_complete(values, catalog)
    record = catalog.build_record(values, sources)

    logger.info(
        "resolved %s: EV $%.1fM (%.1fx), debt $%.1fM, sponsor equity $%.1fM "
        "[%d extracted, %d external]",
        record.company_name, record.purchase_price, record.entry_multiple,
        record.total_debt, record.sponsor_equity, len(found), len(accepted),
    )
    return record
