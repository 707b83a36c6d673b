"""Rate selection for each calculation kind.

Given a scheme and the elapsed duration, :func:`select` returns the ordered
simple-interest segments to charge: the base rate up to the end of the
validity period, then the surcharge rate for whatever lies beyond it. Day
basis schemes may charge a fraction of a month for short loans.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Tuple

from .config import (
    DAYS_PER_MONTH,
    DEFAULT_COMPOUND_VALIDITY_MONTHS,
    DEFAULT_MONTHLY_SURCHARGE_STEP,
    DEFAULT_YEARLY_SURCHARGE_STEP,
)
from .data_models import CalculationKind, SchemeConfig, SubPeriod, Threshold
from .exceptions import InvalidThresholds, UnknownCalculationKind


def resolve_validity(scheme: SchemeConfig, override: Optional[int] = None) -> Optional[int]:
    """Return the validity period in months, or ``None`` for no surcharge tier.

    Precedence: explicit override, the scheme config's ``validity_months``,
    the scheme-level default. Compound schemes fall back to one year.
    """
    if override is not None:
        return override
    configured = getattr(scheme.config, "validity_months", None)
    if configured is not None:
        return configured
    if scheme.default_validity_months is not None:
        return scheme.default_validity_months
    if scheme.calculation_kind == CalculationKind.DAY_BASIS_COMPOUND:
        return DEFAULT_COMPOUND_VALIDITY_MONTHS
    return None


def surcharge_rate(scheme: SchemeConfig, base_rate: Decimal) -> Decimal:
    configured = getattr(scheme.config, "surcharge_rate", None)
    if configured is not None:
        return configured
    if scheme.calculation_kind == CalculationKind.DAY_BASIS_COMPOUND:
        return base_rate + DEFAULT_YEARLY_SURCHARGE_STEP
    return base_rate + DEFAULT_MONTHLY_SURCHARGE_STEP


def _check_thresholds(thresholds: Tuple[Threshold, ...]) -> None:
    previous = None
    for index, threshold in enumerate(thresholds):
        if threshold.days < 0 or threshold.fraction < 0:
            raise InvalidThresholds("threshold days and fraction must not be negative", {"index": index})
        if previous is not None and threshold.days <= previous.days:
            raise InvalidThresholds(
                "thresholds must be sorted by ascending days without duplicates", {"index": index}
            )
        previous = threshold


def _split(base: Decimal, surcharge: Decimal, months: Decimal, validity: Optional[int]) -> Tuple[SubPeriod, ...]:
    """Charge ``months`` at ``base`` up to ``validity``, the rest at ``surcharge``."""
    if validity is None or months <= validity:
        return (SubPeriod(rate=base, months=months),)
    periods = []
    if validity > 0:
        periods.append(SubPeriod(rate=base, months=Decimal(validity)))
    periods.append(SubPeriod(rate=surcharge, months=months - validity))
    return tuple(periods)


def _started_months(elapsed_months: int, elapsed_days: int) -> Decimal:
    # A started month is charged as a full month.
    return Decimal(elapsed_months + (1 if elapsed_days > 0 else 0))


def select(
    scheme: SchemeConfig,
    elapsed_months: int,
    elapsed_days: int,
    validity_months: Optional[int] = None,
    override_rate: Optional[Decimal] = None,
) -> Tuple[SubPeriod, ...]:
    """Return the ``(rate, months)`` segments to charge for the elapsed time.

    Parameters
    ----------
    scheme: SchemeConfig
        The resolved scheme.
    elapsed_months, elapsed_days: int
        Whole calendar months and the remaining days, as returned by
        :func:`gold_loan.duration.resolve`.
    validity_months: Optional[int]
        Per-call validity override.
    override_rate: Optional[Decimal]
        Per-call replacement for the scheme's base rate.

    Returns
    -------
    Tuple[SubPeriod, ...]
        Segments in charging order. Empty when no time has elapsed.
    """
    kind = scheme.calculation_kind
    if kind not in CalculationKind.ALL:
        raise UnknownCalculationKind(kind)
    if kind == CalculationKind.DAY_BASIS_TIERED:
        _check_thresholds(scheme.config.thresholds)

    if elapsed_months == 0 and elapsed_days == 0:
        return ()

    base = override_rate if override_rate is not None else scheme.base_rate
    validity = resolve_validity(scheme, validity_months)

    if kind == CalculationKind.FLAT:
        months = elapsed_months if elapsed_months > 0 else 1
        return (SubPeriod(rate=base, months=Decimal(months)),)

    surcharge = surcharge_rate(scheme, base)

    if kind == CalculationKind.TIERED:
        return _split(base, surcharge, _started_months(elapsed_months, elapsed_days), validity)

    if kind == CalculationKind.DAY_BASIS_TIERED:
        if elapsed_months == 0:
            # Thresholds are ascending, so the first match is the smallest.
            for threshold in scheme.config.thresholds:
                if elapsed_days <= threshold.days:
                    return (SubPeriod(rate=base, months=threshold.fraction),)
        return _split(base, surcharge, _started_months(elapsed_months, elapsed_days), validity)

    # Day basis compound: pro-rated on a 30 day month, never below min_days.
    months = Decimal(elapsed_months) + Decimal(elapsed_days) / DAYS_PER_MONTH
    minimum = Decimal(scheme.config.min_days) / DAYS_PER_MONTH
    return _split(base, surcharge, max(months, minimum), validity)
