"""Data models for the gold loan calculator.

This module defines dataclasses representing the entities the engine works
with: loan schemes and their kind-specific configuration, the per-call
calculation request, the rate sub-periods chosen for a loan and the final
payoff breakdown. Scheme models are frozen so a resolved scheme can be shared
between concurrent calculations without copying.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple, Union


class CalculationKind:
    """Supported calculation strategies."""

    FLAT = "flat"
    TIERED = "tiered"
    DAY_BASIS_TIERED = "day_basis_tiered"
    DAY_BASIS_COMPOUND = "day_basis_compound"

    ALL = (FLAT, TIERED, DAY_BASIS_TIERED, DAY_BASIS_COMPOUND)


class RatePeriod:
    MONTHLY = "monthly"
    YEARLY = "yearly"

    ALL = (MONTHLY, YEARLY)


class SchemeStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"

    ALL = (ACTIVE, INACTIVE)


@dataclass(frozen=True)
class Threshold:
    """A day-basis proration step.

    Attributes
    ----------
    days: int
        Upper bound (inclusive) of elapsed days for this step.
    fraction: Decimal
        Share of one month's interest charged when the bound is met. For
        example ``Threshold(7, Decimal("0.5"))`` charges half a month for a
        loan closed within a week.
    """

    days: int
    fraction: Decimal


@dataclass(frozen=True)
class FlatConfig:
    """Flat schemes have no extra configuration."""


@dataclass(frozen=True)
class TieredConfig:
    validity_months: Optional[int] = None
    surcharge_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class DayBasisTieredConfig:
    thresholds: Tuple[Threshold, ...] = ()
    surcharge_rate: Optional[Decimal] = None
    validity_months: Optional[int] = None


@dataclass(frozen=True)
class DayBasisCompoundConfig:
    min_days: int = 10
    surcharge_rate: Optional[Decimal] = None
    validity_months: Optional[int] = None


SchemeKindConfig = Union[FlatConfig, TieredConfig, DayBasisTieredConfig, DayBasisCompoundConfig]


@dataclass(frozen=True)
class SchemeConfig:
    """A named, validated interest calculation strategy.

    ``config`` always matches ``calculation_kind``; build instances with
    :func:`gold_loan.schemes.parse_scheme` rather than by hand when the
    input comes from storage or a request.
    """

    id: Optional[int]
    slug: str
    name: str
    base_rate: Decimal  # percent, per month or per year depending on rate_period
    rate_period: str
    calculation_kind: str
    config: SchemeKindConfig
    status: str = SchemeStatus.ACTIVE
    description: Optional[str] = None
    default_validity_months: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == SchemeStatus.ACTIVE


@dataclass(frozen=True)
class CalculationRequest:
    """Inputs for one payoff calculation."""

    principal: Decimal
    start_date: date
    end_date: date
    override_rate: Optional[Decimal] = None
    override_validity_months: Optional[int] = None
    interest_already_taken: bool = False
    manual_reduction: Decimal = Decimal("0")


@dataclass(frozen=True)
class SubPeriod:
    """A simple-interest segment: ``months`` charged at ``rate`` percent."""

    rate: Decimal
    months: Decimal


@dataclass
class CalculationResult:
    """The payoff breakdown returned by the engine.

    Money fields are rounded to the currency quantum; ``total_payable`` is
    never below ``principal``.

    ``elapsed_months`` counts whole calendar months only. The month count
    actually charged, and used to pick the base or surcharge tier, is
    ``chargeable_months``: tiered schemes charge a started month in full, so
    6 months and 3 days reports ``elapsed_months=6`` and
    ``chargeable_months=7``.
    """

    principal: Decimal
    elapsed_months: int
    chargeable_months: Decimal
    base_rate: Decimal
    effective_rate: Decimal
    total_interest: Decimal
    interest_reduction: Decimal
    manual_reduction_applied: Decimal
    total_payable: Decimal
    sub_periods: Tuple[SubPeriod, ...] = ()
    duration_label: str = ""
    rate_label: str = ""
    elapsed_days: int = 0


@dataclass
class AccruedInterest:
    """Interest accrued on an open loan up to ``end_date``."""

    start_date: date
    end_date: date
    balance: Decimal
    interest: Decimal
    duration_label: str
    rate_label: str
