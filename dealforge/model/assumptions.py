"""
assumptions.py
--------------
Typed LBO assumption record and the field catalog generated from it.

The record (`LBOAssumptions`) is the single contract between assumption
resolution and the projection engine.  Every field carries catalog metadata
(value kind, description, external aliases), so the catalog and the record
can never drift apart: one dataclass field == one catalog entry.

All monetary values in $M. Rates as decimals (e.g., 0.08 = 8%).
Multiples as plain ratios (e.g., 8.0 = 8.0x EBITDA).
"""

from dataclasses import dataclass, field, fields, replace, MISSING
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping


class DealforgeError(Exception):
    """Caller misuse: unknown field names, wrong input types."""


class ValueKind(str, Enum):
    MONEY = "money"          # $M
    RATIO = "ratio"          # x EBITDA
    PERCENT = "percent"      # decimal
    COUNT = "count"          # whole years
    TEXT = "text"
    SCHEDULE = "schedule"    # per-year percents; () = use the flat rate


class Source(str, Enum):
    """Where a resolved value came from."""
    DEFAULT = "default"
    EXTRACTED = "extracted"
    DERIVED = "derived"
    EXTERNAL = "external"


GIVEN_SOURCES = frozenset({Source.EXTRACTED, Source.EXTERNAL})


def _catalog_field(default: Any = MISSING, *, kind: ValueKind, description: str,
                   aliases: tuple = (), minimum: float | None = None,
                   derived_only: bool = False,
                   default_factory: Callable[[], Any] | None = None):
    metadata = {
        "kind": kind,
        "description": description,
        "aliases": tuple(aliases),
        "minimum": minimum,
        "derived_only": derived_only,
    }
    if default_factory is not None:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _today() -> str:
    return date.today().isoformat()


def _rebuild_record(record_type, state: dict):
    return record_type(**state)


@dataclass(frozen=True)
class DebtTranche:
    """One layer of the capital structure, in seniority order."""
    name: str
    principal: float          # $M drawn at close
    rate: float               # cash coupon on the (accreted) beginning balance
    pik_rate: float = 0.0     # payment-in-kind accretion on the beginning balance
    amort_pct: float = 0.0    # required annual amortization as % of original principal

    @property
    def annual_amort(self) -> float:
        """Required cash amortization per year ($M)."""
        return self.principal * self.amort_pct


@dataclass(frozen=True)
class LBOAssumptions:
    """
    Guaranteed LBO record.

    Structured in four logical blocks:
      1. Target company operating profile
      2. Entry / transaction
      3. Financing structure
      4. Exit
    """
    # -----------------------------------------------------------------------
    # 1. TARGET COMPANY
    # -----------------------------------------------------------------------
    company_name: str = _catalog_field(
        "Target Company", kind=ValueKind.TEXT,
        description="Name of the company being acquired")
    transaction_date: str = _catalog_field(
        kind=ValueKind.TEXT, default_factory=_today,
        description="Closing date, ISO format")
    base_year_revenue: float = _catalog_field(
        500.0, kind=ValueKind.MONEY, aliases=("revenue", "ltmRevenue"),
        description="LTM revenue at close ($M)")
    ltm_ebitda: float = _catalog_field(
        100.0, kind=ValueKind.MONEY, aliases=("ebitda",),
        description="LTM EBITDA used for entry pricing and leverage ($M)")
    revenue_growth_rate: float = _catalog_field(
        0.05, kind=ValueKind.PERCENT,
        description="Flat annual revenue growth, used where no schedule is given")
    revenue_growth_rates: tuple = _catalog_field(
        (), kind=ValueKind.SCHEDULE,
        description="Per-year revenue growth schedule, year 1 first")
    base_ebitda_margin: float = _catalog_field(
        0.20, kind=ValueKind.PERCENT,
        description="EBITDA margin at close")
    target_ebitda_margin: float = _catalog_field(
        0.22, kind=ValueKind.PERCENT,
        description="EBITDA margin reached after the expansion period")
    margin_expansion_years: int = _catalog_field(
        3, kind=ValueKind.COUNT, minimum=0,
        description="Years to glide from base to target margin (0 = immediate)")
    da_percent: float = _catalog_field(
        0.03, kind=ValueKind.PERCENT,
        description="Depreciation & amortization as % of revenue")
    capex_percent: float = _catalog_field(
        0.03, kind=ValueKind.PERCENT,
        description="Capital expenditure as % of revenue")
    nwc_percent: float = _catalog_field(
        0.10, kind=ValueKind.PERCENT,
        description="Net working capital balance as % of revenue")
    tax_rate: float = _catalog_field(
        0.25, kind=ValueKind.PERCENT,
        description="Cash tax rate on EBIT")

    # -----------------------------------------------------------------------
    # 2. ENTRY / TRANSACTION
    # -----------------------------------------------------------------------
    purchase_price: float = _catalog_field(
        800.0, kind=ValueKind.MONEY, aliases=("enterpriseValue", "ev"),
        description="Entry enterprise value ($M)")
    entry_multiple: float = _catalog_field(
        8.0, kind=ValueKind.RATIO,
        description="Entry EV / LTM EBITDA")
    transaction_cost_percent: float = _catalog_field(
        0.02, kind=ValueKind.PERCENT,
        description="Transaction costs as % of purchase price")
    transaction_costs: float = _catalog_field(
        0.0, kind=ValueKind.MONEY, aliases=("transactionCostsExplicit",),
        description="Explicit transaction costs ($M); overrides the percentage when given")
    financing_fee_percent: float = _catalog_field(
        0.01, kind=ValueKind.PERCENT,
        description="Financing fees as % of total debt raised")
    financing_fees: float = _catalog_field(
        0.0, kind=ValueKind.MONEY, aliases=("financingFeesExplicit",),
        description="Explicit financing fees ($M); overrides the percentage when given")
    management_rollover: float = _catalog_field(
        0.0, kind=ValueKind.MONEY,
        description="Equity rolled by management at close ($M)")

    # -----------------------------------------------------------------------
    # 3. FINANCING
    # -----------------------------------------------------------------------
    senior_debt_multiple: float = _catalog_field(
        4.0, kind=ValueKind.RATIO,
        description="Senior debt / LTM EBITDA")
    senior_debt_amount: float = _catalog_field(
        400.0, kind=ValueKind.MONEY,
        description="Senior debt raised at close ($M)")
    senior_debt_rate: float = _catalog_field(
        0.065, kind=ValueKind.PERCENT,
        description="Senior cash interest rate")
    senior_amortization_percent: float = _catalog_field(
        0.0, kind=ValueKind.PERCENT, aliases=("seniorDebtAmortization",),
        description="Mandatory annual senior amortization, % of original principal")
    sub_debt_multiple: float = _catalog_field(
        1.0, kind=ValueKind.RATIO,
        description="Subordinated debt / LTM EBITDA")
    sub_debt_amount: float = _catalog_field(
        100.0, kind=ValueKind.MONEY,
        description="Subordinated debt raised at close ($M)")
    sub_debt_rate: float = _catalog_field(
        0.12, kind=ValueKind.PERCENT,
        description="Subordinated cash interest rate")
    sub_debt_pik: float = _catalog_field(
        0.0, kind=ValueKind.PERCENT, aliases=("subDebtPIK",),
        description="Subordinated payment-in-kind accretion rate")
    cash_sweep_percent: float = _catalog_field(
        0.75, kind=ValueKind.PERCENT, aliases=("cashFlowSweepPercent",),
        description="Share of positive CFADS swept to debt paydown")
    sponsor_equity: float = _catalog_field(
        321.0, kind=ValueKind.MONEY, derived_only=True,
        description="Sponsor equity check, solved so sources equal uses ($M)")

    # -----------------------------------------------------------------------
    # 4. EXIT
    # -----------------------------------------------------------------------
    exit_year: int = _catalog_field(
        5, kind=ValueKind.COUNT, minimum=1, aliases=("holdYears", "holdPeriod"),
        description="Year of exit (hold period)")
    exit_multiple: float = _catalog_field(
        8.0, kind=ValueKind.RATIO,
        description="Exit EV / EBITDA")
    exit_cost_percent: float = _catalog_field(
        0.02, kind=ValueKind.PERCENT, aliases=("exitCosts",),
        description="Exit transaction costs as % of exit EV")

    # Provenance per catalog field; not itself a catalog field.
    sources: Mapping[str, Source] = field(
        default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))

    def __reduce__(self):
        state = {f.name: getattr(self, f.name) for f in fields(self)}
        state["sources"] = dict(self.sources)
        return (_rebuild_record, (type(self), state))

    # -----------------------------------------------------------------------
    # PROVENANCE
    # -----------------------------------------------------------------------
    def source(self, name: str) -> Source:
        return self.sources.get(name, Source.DEFAULT)

    def is_given(self, name: str) -> bool:
        """True when the value was stated in text or by the external guess."""
        return self.source(name) in GIVEN_SOURCES

    def as_values(self) -> dict:
        return {f.name: getattr(self, f.name) for f in catalog_fields(type(self))}

    # -----------------------------------------------------------------------
    # COMPUTED PROPERTIES
    # -----------------------------------------------------------------------
    @property
    def projection_years(self) -> int:
        """Projection always covers at least five years and the exit year."""
        return max(5, self.exit_year)

    @property
    def total_debt(self) -> float:
        return self.senior_debt_amount + self.sub_debt_amount

    def growth_schedule(self, n: int | None = None) -> list[float]:
        """Growth for years 1..n; a short schedule is padded with the flat rate."""
        n = self.projection_years if n is None else n
        schedule = list(self.revenue_growth_rates[:n])
        return schedule + [self.revenue_growth_rate] * (n - len(schedule))

    def debt_tranches(self) -> list[DebtTranche]:
        """Tranches in sweep priority order (senior first)."""
        return [
            DebtTranche(
                name="Senior Debt",
                principal=self.senior_debt_amount,
                rate=self.senior_debt_rate,
                amort_pct=self.senior_amortization_percent,
            ),
            DebtTranche(
                name="Subordinated Debt",
                principal=self.sub_debt_amount,
                rate=self.sub_debt_rate,
                pik_rate=self.sub_debt_pik,
            ),
        ]


# ---------------------------------------------------------------------------
# Field catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    name: str
    default: Any
    kind: ValueKind
    description: str
    aliases: tuple = ()
    minimum: float | None = None
    derived_only: bool = False


def _normalize_key(key: str) -> str:
    return key.replace("_", "").replace("-", "").replace(" ", "").lower()


def catalog_fields(record_type) -> list:
    return [f for f in fields(record_type) if "kind" in f.metadata]


class FieldCatalog:
    """Immutable, ordered field table for one deal type."""

    def __init__(self, deal_type: str, record_type, specs: list[FieldSpec]):
        self.deal_type = deal_type
        self.record_type = record_type
        self._specs = MappingProxyType({s.name: s for s in specs})
        keys = {}
        for s in specs:
            for key in (s.name, *s.aliases):
                keys.setdefault(_normalize_key(key), s.name)
        self._keys = MappingProxyType(keys)

    def __iter__(self):
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name) -> bool:
        return name in self._specs

    @property
    def names(self) -> tuple:
        return tuple(self._specs)

    def spec(self, name: str) -> FieldSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise DealforgeError(f"{self.deal_type} catalog has no field {name!r}") from None

    def default(self, name: str) -> Any:
        return self.spec(name).default

    def defaults(self) -> dict:
        return {name: s.default for name, s in self._specs.items()}

    def lookup(self, key: str) -> str | None:
        """Map a field name or alias (snake or camel case) to its field name."""
        if not isinstance(key, str):
            return None
        return self._keys.get(_normalize_key(key))

    def build_record(self, values: Mapping[str, Any], sources: Mapping[str, Source]):
        return self.record_type(**{n: values[n] for n in self.names}, sources=sources)


def build_catalog(deal_type: str, record_type, **default_overrides) -> FieldCatalog:
    specs = []
    for f in catalog_fields(record_type):
        if f.name in default_overrides:
            default = default_overrides[f.name]
        elif f.default is not MISSING:
            default = f.default
        else:
            default = f.default_factory()
        specs.append(FieldSpec(
            name=f.name,
            default=default,
            kind=f.metadata["kind"],
            description=f.metadata["description"],
            aliases=f.metadata["aliases"],
            minimum=f.metadata["minimum"],
            derived_only=f.metadata["derived_only"],
        ))
    return FieldCatalog(deal_type, record_type, specs)


def build_lbo_catalog(as_of: date | None = None) -> FieldCatalog:
    as_of = as_of or date.today()
    return build_catalog("LBO", LBOAssumptions, transaction_date=as_of.isoformat())


# ---------------------------------------------------------------------------
# Convenience: build scenario variants
# ---------------------------------------------------------------------------

def base_case() -> LBOAssumptions:
    from dealforge.model.sources_uses import with_sponsor_plug
    return with_sponsor_plug(LBOAssumptions())


def with_overrides(a: LBOAssumptions, **changes) -> LBOAssumptions:
    """
    Copy of `a` with fields changed; changed fields are marked as given and
    sponsor equity is re-solved so sources still equal uses.
    """
    from dealforge.model.sources_uses import with_sponsor_plug
    sources = dict(a.sources)
    for name in changes:
        sources[name] = Source.EXTERNAL
    return with_sponsor_plug(replace(a, sources=sources, **changes))
