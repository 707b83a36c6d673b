"""Core calculation engine for the gold loan calculator.

This module turns a scheme, a principal and a date range into a payoff
breakdown. The steps are:

1. resolve the elapsed whole months and leftover days
   (:mod:`gold_loan.duration`);
2. select the rate segments for the scheme (:mod:`gold_loan.rates`);
3. accumulate simple interest over the segments (:func:`accumulate`);
4. apply reductions, the principal floor and rounding (:func:`compose`).

Everything here is a pure function of its arguments: no clock reads, no I/O
and no shared state, so calculations can run concurrently. Interest is kept
at full precision until the final composition step.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Iterable, Optional, Tuple

from .config import CURRENCY_QUANTUM, DAYS_PER_MONTH, MONTHS_PER_YEAR
from .data_models import (
    AccruedInterest,
    CalculationKind,
    CalculationRequest,
    CalculationResult,
    RatePeriod,
    SchemeConfig,
    SubPeriod,
)
from .duration import elapsed_days, resolve
from .exceptions import InvalidAmount, InvalidReduction, InvalidSchemeConfig
from .rates import resolve_validity, select, surcharge_rate

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def round_money(value: Decimal, quantum: Decimal = CURRENCY_QUANTUM) -> Decimal:
    """Round half away from zero to the currency quantum."""
    try:
        return value.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidAmount(f"Amount is too large to calculate: {value}", {"amount": str(value)}) from exc


def accumulate(principal: Decimal, sub_periods: Iterable[SubPeriod], rate_period: str) -> Decimal:
    """Return the total simple interest over ``sub_periods``.

    Each segment charges ``principal * rate% * months`` for monthly rates and
    ``principal * rate% * months / 12`` for yearly rates. Segments do not
    compound on each other and nothing is rounded here.
    """
    if rate_period not in RatePeriod.ALL:
        raise InvalidSchemeConfig(f"Unsupported rate period: {rate_period}", {"rate_period": rate_period})
    total = Decimal("0")
    for period in sub_periods:
        interest = principal * (period.rate / HUNDRED) * period.months
        if rate_period == RatePeriod.YEARLY:
            interest = interest / MONTHS_PER_YEAR
        total += interest
    return total


def compose(
    principal: Decimal,
    total_interest: Decimal,
    interest_already_taken: bool,
    manual_reduction: Decimal,
    *,
    base_rate: Decimal,
    effective_rate: Optional[Decimal] = None,
    elapsed_months: int = 0,
    elapsed_day_count: int = 0,
    sub_periods: Tuple[SubPeriod, ...] = (),
    duration_label: str = "",
    rate_label: str = "",
    quantum: Decimal = CURRENCY_QUANTUM,
) -> CalculationResult:
    """Combine principal and interest into the payable amount.

    When interest was already taken up front, one period of interest at the
    base rate (``principal * base_rate%``) is deducted. The manual reduction
    is deducted next, and the result is never allowed below the principal.
    Money values are rounded only here, once; a payable that rounds below a
    fractional principal is rounded up instead.
    """
    if manual_reduction < 0:
        raise InvalidReduction(manual_reduction)

    total_amount = principal + total_interest
    interest_reduction = Decimal("0")
    if interest_already_taken:
        interest_reduction = principal * (base_rate / HUNDRED)
        total_amount -= interest_reduction

    total_amount -= manual_reduction

    if total_amount < principal:
        total_amount = principal

    # Rounding must not take the payable below a fractional principal.
    total_payable = round_money(total_amount, quantum)
    if total_payable < principal:
        total_payable = principal.quantize(quantum, rounding=ROUND_CEILING)

    return CalculationResult(
        principal=principal,
        elapsed_months=elapsed_months,
        chargeable_months=sum((p.months for p in sub_periods), Decimal("0")),
        base_rate=base_rate,
        effective_rate=base_rate if effective_rate is None else effective_rate,
        total_interest=round_money(total_interest, quantum),
        interest_reduction=round_money(interest_reduction, quantum),
        manual_reduction_applied=round_money(manual_reduction, quantum),
        total_payable=total_payable,
        sub_periods=sub_periods,
        duration_label=duration_label,
        rate_label=rate_label,
        elapsed_days=elapsed_day_count,
    )


def _format_months(months: Decimal) -> str:
    if months == months.to_integral_value():
        return str(int(months))
    return f"{months:.2f}"


def describe_duration(scheme: SchemeConfig, sub_periods: Tuple[SubPeriod, ...], actual_days: int) -> str:
    months = sum((p.months for p in sub_periods), Decimal("0"))
    if scheme.calculation_kind == CalculationKind.DAY_BASIS_COMPOUND:
        charged = int(round_money(months * DAYS_PER_MONTH))
        if charged != actual_days:
            return f"{charged} Days (Actual: {actual_days})"
        return f"{charged} Days"
    return f"{_format_months(months)} Months"


def describe_rate(scheme: SchemeConfig, base_rate: Decimal, validity: Optional[int], surcharged: bool) -> str:
    if scheme.rate_period == RatePeriod.YEARLY:
        label = f"{base_rate:.2f}% PA"
        if surcharged:
            label += f" till {validity}m, then {surcharge_rate(scheme, base_rate):.2f}%"
        return label
    if surcharged:
        return f"{base_rate:.2f}% for {validity}m, then {surcharge_rate(scheme, base_rate):.2f}%"
    return f"{base_rate:.2f}% per month"


def _validate_request(request: CalculationRequest) -> None:
    if request.principal <= 0:
        raise InvalidAmount("Amount must be greater than zero.", {"amount": str(request.principal)})
    if request.manual_reduction < 0:
        raise InvalidReduction(request.manual_reduction)
    if request.override_rate is not None and request.override_rate < 0:
        raise InvalidAmount("Interest rate must not be negative.", {"interest_rate": str(request.override_rate)})
    if request.override_validity_months is not None and request.override_validity_months < 0:
        raise InvalidAmount(
            "Validity months must not be negative.",
            {"validity_months": request.override_validity_months},
        )


def calculate(
    scheme: SchemeConfig,
    request: CalculationRequest,
    quantum: Decimal = CURRENCY_QUANTUM,
) -> CalculationResult:
    """Compute the payoff breakdown for ``request`` under ``scheme``.

    Parameters
    ----------
    scheme: SchemeConfig
        A resolved scheme snapshot. It is only read.
    request: CalculationRequest
        Principal, date range and per-call overrides.
    quantum: Decimal
        Currency precision for the rounded money fields.

    Returns
    -------
    CalculationResult
        The complete breakdown. Invalid input raises a
        :class:`gold_loan.exceptions.GoldLoanError` and produces no result.
    """
    _validate_request(request)

    months, days = resolve(request.start_date, request.end_date)
    actual_days = elapsed_days(request.start_date, request.end_date)
    sub_periods = select(
        scheme,
        months,
        days,
        validity_months=request.override_validity_months,
        override_rate=request.override_rate,
    )
    total_interest = accumulate(request.principal, sub_periods, scheme.rate_period)

    base_rate = request.override_rate if request.override_rate is not None else scheme.base_rate
    effective_rate = sub_periods[-1].rate if sub_periods else base_rate
    validity = resolve_validity(scheme, request.override_validity_months)
    surcharged = len(sub_periods) > 0 and sub_periods[-1].rate != base_rate

    result = compose(
        request.principal,
        total_interest,
        request.interest_already_taken,
        request.manual_reduction,
        base_rate=base_rate,
        effective_rate=effective_rate,
        elapsed_months=months,
        elapsed_day_count=actual_days,
        sub_periods=sub_periods,
        duration_label=describe_duration(scheme, sub_periods, actual_days),
        rate_label=describe_rate(scheme, base_rate, validity, surcharged),
        quantum=quantum,
    )
    logger.debug(
        "Calculated %s: principal=%s, months=%s, days=%s, interest=%s, payable=%s",
        scheme.slug,
        request.principal,
        months,
        days,
        result.total_interest,
        result.total_payable,
    )
    return result


def accrued_interest(
    scheme: SchemeConfig,
    balance: Decimal,
    loan_date: date,
    as_of: date,
    last_payment_date: Optional[date] = None,
    override_rate: Optional[Decimal] = None,
    validity_months: Optional[int] = None,
    quantum: Decimal = CURRENCY_QUANTUM,
) -> AccruedInterest:
    """Interest accrued on an open loan up to ``as_of``.

    Interest runs from the last payment date when there is one, otherwise
    from the loan date. An ``as_of`` before that start accrues nothing.
    """
    start = loan_date
    if last_payment_date is not None and last_payment_date > start:
        start = last_payment_date

    if as_of < start:
        base_rate = override_rate if override_rate is not None else scheme.base_rate
        return AccruedInterest(
            start_date=start,
            end_date=as_of,
            balance=balance,
            interest=Decimal("0"),
            duration_label="0 Days",
            rate_label=describe_rate(scheme, base_rate, None, False),
        )

    result = calculate(
        scheme,
        CalculationRequest(
            principal=balance,
            start_date=start,
            end_date=as_of,
            override_rate=override_rate,
            override_validity_months=validity_months,
        ),
        quantum=quantum,
    )
    return AccruedInterest(
        start_date=start,
        end_date=as_of,
        balance=balance,
        interest=result.total_interest,
        duration_label=result.duration_label,
        rate_label=result.rate_label,
    )
