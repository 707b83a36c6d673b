"""Output helpers for the gold loan calculator.

This module renders payoff breakdowns, scheme listings and scheme
comparisons in a plain tabular text format for the terminal.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from .data_models import CalculationResult, SchemeConfig


def print_result(scheme: SchemeConfig, result: CalculationResult) -> None:
    """Print a payoff breakdown in a human-readable format."""
    print(f"Payoff ({scheme.name})")
    print("-" * 72)
    print(f"Principal          : {result.principal:.2f}")
    print(f"Duration           : {result.duration_label}")
    print(f"Interest rate      : {result.rate_label}")
    for period in result.sub_periods:
        print(f"  {period.rate:.2f}% x {period.months:.2f} months")
    print(f"Total interest     : {result.total_interest:.2f}")
    if result.interest_reduction:
        print(f"Interest reduction : {result.interest_reduction:.2f}")
    if result.manual_reduction_applied:
        print(f"Other reduction    : {result.manual_reduction_applied:.2f}")
    print(f"Total payable      : {result.total_payable:.2f}")
    print("-" * 72)


def print_schemes(schemes: Iterable[SchemeConfig]) -> None:
    """Print the configured schemes as a simple table."""
    headers = ["Slug", "Name", "Rate", "Period", "Type", "Status"]
    print("\t".join(headers))
    for scheme in schemes:
        row = [
            scheme.slug,
            scheme.name,
            f"{scheme.base_rate:.2f}",
            scheme.rate_period,
            scheme.calculation_kind,
            scheme.status,
        ]
        print("\t".join(row))


def print_comparison(rows: List[Dict[str, object]]) -> None:
    """Print one loan evaluated under several schemes side by side.

    The difference column is relative to the cheapest scheme.
    """
    print("Comparison")
    print("=" * 72)
    print(f"{'Scheme':20s} {'Duration':>16s} {'Interest':>15s} {'Payable':>15s} {'Difference':>12s}")
    if not rows:
        print("=" * 72)
        return
    cheapest = min(row["total_payable"] for row in rows)
    for row in rows:
        diff = row["total_payable"] - cheapest
        print(
            f"{row['slug']:20s} {row['duration']:>16s} {row['total_interest']:15.2f} "
            f"{row['total_payable']:15.2f} {diff:12.2f}"
        )
    print("=" * 72)
