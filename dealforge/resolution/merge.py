"""
merge.py
--------
Folds an external, best-effort structured guess into the working draft.

Priority: extraction and derivation > external guess > catalog default.
A guessed value is accepted only when the field is still at its catalog
default (Source.DEFAULT), is not derived-only, and the value coerces cleanly
to the field's kind.  Everything else in the guess is ignored; a malformed
guess can never raise here.
"""

import logging
import math
from numbers import Real
from typing import Any, Mapping

from dealforge.model.assumptions import FieldCatalog, FieldSpec, Source, ValueKind

logger = logging.getLogger(__name__)


class _Reject(Exception):
    pass


def _number(raw: Any) -> float:
    if isinstance(raw, bool):
        raise _Reject("bool")
    if isinstance(raw, str):
        cleaned = raw.strip().replace(",", "").replace("$", "").rstrip("%xX× ")
        try:
            raw = float(cleaned)
        except ValueError:
            raise _Reject(f"not numeric: {raw!r}") from None
    if not isinstance(raw, Real):
        raise _Reject(f"not numeric: {type(raw).__name__}")
    value = float(raw)
    if not math.isfinite(value):
        raise _Reject("not finite")
    return value


def _percent(raw: Any) -> float:
    value = _number(raw)
    return value / 100.0 if value > 1 else value


def coerce(spec: FieldSpec, raw: Any):
    """Value in the field's kind, or raise _Reject."""
    if raw is None:
        raise _Reject("null")
    kind = spec.kind
    if kind in (ValueKind.MONEY, ValueKind.RATIO):
        return _number(raw)
    if kind is ValueKind.PERCENT:
        return _percent(raw)
    if kind is ValueKind.COUNT:
        value = _number(raw)
        if value != int(value):
            raise _Reject("not a whole number")
        if spec.minimum is not None and value < spec.minimum:
            raise _Reject(f"below minimum {spec.minimum}")
        return int(value)
    if kind is ValueKind.SCHEDULE:
        if not isinstance(raw, (list, tuple)) or not raw:
            raise _Reject("schedule must be a non-empty list")
        return tuple(_percent(v) for v in raw)
    if kind is ValueKind.TEXT:
        if not isinstance(raw, str) or not raw.strip():
            raise _Reject("blank text")
        return raw.strip()
    raise _Reject(f"unsupported kind {kind}")


def merge_external(values: dict, sources: dict, catalog: FieldCatalog,
                   guess: Mapping | None) -> list[str]:
    """
    Accept guessed fields into the draft, in place.

    Returns the names of the accepted fields.
    """
    if not isinstance(guess, Mapping):
        if guess is not None:
            logger.warning("ignoring external guess of type %s", type(guess).__name__)
        return []

    accepted = []
    for key, raw in guess.items():
        name = catalog.lookup(key)
        if name is None or name in accepted:
            continue
        spec = catalog.spec(name)
        if spec.derived_only or sources.get(name, Source.DEFAULT) is not Source.DEFAULT:
            continue
        try:
            value = coerce(spec, raw)
        except _Reject as e:
            logger.debug("rejected external %s=%r: %s", key, raw, e)
            continue
        values[name] = value
        sources[name] = Source.EXTERNAL
        accepted.append(name)
        logger.debug("accepted external %s = %r", name, value)
    return accepted
