"""
extractor.py
------------
Ordered, first-match-wins pattern extraction with unit-aware normalization.

A field's rules are tried in listed order; the first rule that both matches
and normalizes wins.  A rule whose capture cannot be parsed is skipped, so a
field is either fully extracted or reported as NOT_FOUND, never garbled.

Normalizers receive the `re.Match` and return a value in the catalog's base
unit ($M for money, decimals for percentages), or raise ValueError.
"""

import logging
import math
import re
from datetime import date
from typing import Callable, Mapping, NamedTuple, Pattern, Sequence

logger = logging.getLogger(__name__)


class _NotFound:
    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __bool__(self) -> bool:
        return False


NOT_FOUND = _NotFound()

BILLION_UNITS = {"b", "bn", "billion"}


class Rule(NamedTuple):
    pattern: Pattern
    normalize: Callable[[re.Match], object]
    # Skip a match when this regex occurs earlier in the same clause
    unless_after: Pattern | None = None


def rule(pattern: str, normalize, unless_after: str | None = None,
         flags: int = re.IGNORECASE) -> Rule:
    return Rule(
        re.compile(pattern, flags),
        normalize,
        re.compile(unless_after, re.IGNORECASE) if unless_after else None,
    )


# ---------------------------------------------------------------------------
# Normalizers
# ---------------------------------------------------------------------------

def parse_number(raw: str) -> float:
    """'1,250.5' -> 1250.5; anything non-numeric or too large raises ValueError."""
    cleaned = raw.replace(",", "").strip()
    if not re.fullmatch(r"\d+(?:\.\d+)?", cleaned):
        raise ValueError(f"not a number: {raw!r}")
    value = float(cleaned)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {raw[:20]!r}...")
    return value


def to_number(m: re.Match) -> float:
    return parse_number(m.group("num"))


def to_money(m: re.Match) -> float:
    value = parse_number(m.group("num"))
    unit = (m.groupdict().get("unit") or "").lower()
    if unit in BILLION_UNITS:
        value *= 1000.0
    return value


def to_percent(m: re.Match) -> float:
    """Bare number: values above 1 are read as whole percents."""
    value = parse_number(m.group("num"))
    return value / 100.0 if value > 1 else value


def percent_points(m: re.Match) -> float:
    """Number written with a percent sign or word: always divided by 100."""
    return parse_number(m.group("num")) / 100.0


def to_count(m: re.Match) -> int:
    value = parse_number(m.group("num"))
    if value != int(value):
        raise ValueError(f"not a whole count: {value}")
    return int(value)


def to_text(m: re.Match) -> str:
    value = m.group("text").strip().rstrip(".,;:")
    if not value:
        raise ValueError("empty text")
    return value


def to_iso_date(m: re.Match) -> str:
    return date.fromisoformat(m.group("text")).isoformat()


def to_schedule(m: re.Match) -> tuple:
    numbers = re.findall(r"\d+(?:\.\d+)?", m.group("sched"))
    if not numbers:
        raise ValueError("empty schedule")
    return tuple(parse_number(n) / 100.0 for n in numbers)


def constant(value):
    def _normalize(m: re.Match):
        return value
    return _normalize


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _clause_before(text: str, pos: int, width: int = 60) -> str:
    window = text[max(0, pos - width):pos]
    return re.split(r"[,;]|\.\s", window)[-1]


def extract_field(text: str, rules: Sequence[Rule]):
    """First successfully normalized value across `rules`, else NOT_FOUND."""
    if not text:
        return NOT_FOUND
    for r in rules:
        for m in r.pattern.finditer(text):
            if r.unless_after is not None and r.unless_after.search(_clause_before(text, m.start())):
                continue
            try:
                return r.normalize(m)
            except (ValueError, TypeError):
                continue
    return NOT_FOUND


def extract_all(text: str, rule_table: Mapping[str, Sequence[Rule]]) -> dict:
    """{field: value} for every field whose rules found something."""
    found = {}
    if not text:
        return found
    for name, rules in rule_table.items():
        value = extract_field(text, rules)
        if value is NOT_FOUND:
            continue
        found[name] = value
        logger.debug("extracted %s = %r", name, value)
    return found
