"""Command‑line interface for the gold loan calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can list the available schemes, compute the payoff of a
pledge under one scheme or compare the same pledge across every active
scheme. Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import click

from .data_models import CalculationRequest, CalculationResult, SchemeConfig
from .engine import calculate
from .exceptions import GoldLoanError, InvalidRequest, InvalidSchemeConfig, UnknownScheme
from .formatter import print_comparison, print_result, print_schemes
from .schemes import default_schemes, find_scheme, parse_scheme, scheme_to_dict
from .utils import decimal_from_str, optional_decimal, optional_int, parse_date

logger = logging.getLogger(__name__)

INTEREST_TAKEN = "taken"
INTEREST_NOT_TAKEN = "notTaken"


def parse_interest_status(value: Any) -> bool:
    """Map the ``interest_status`` field (``taken``/``notTaken``) to a flag."""
    if value is None or value is False or value == "" or value == INTEREST_NOT_TAKEN:
        return False
    if value is True or value == INTEREST_TAKEN:
        return True
    raise InvalidRequest(
        f"interest_status must be '{INTEREST_TAKEN}' or '{INTEREST_NOT_TAKEN}'",
        {"interest_status": str(value)},
    )


def build_request_from_options(
    amount: Any,
    start_date: Any,
    end_date: Any,
    interest_rate: Any = None,
    validity_months: Any = None,
    reduction_amount: Any = None,
    interest_status: Any = None,
) -> CalculationRequest:
    """Convert raw option values (CLI or HTTP) into a ``CalculationRequest``."""
    try:
        start = parse_date(start_date)
        end = parse_date(end_date)
    except ValueError as exc:
        raise InvalidRequest(str(exc), {"start_date": str(start_date), "end_date": str(end_date)}) from exc
    reduction = optional_decimal(reduction_amount, "reduction_amount")
    return CalculationRequest(
        principal=decimal_from_str(amount, "amount"),
        start_date=start,
        end_date=end,
        override_rate=optional_decimal(interest_rate, "interest_rate"),
        override_validity_months=optional_int(validity_months, "validity_months"),
        interest_already_taken=parse_interest_status(interest_status),
        manual_reduction=reduction if reduction is not None else decimal_from_str("0"),
    )


def load_schemes(path: Optional[str]) -> List[SchemeConfig]:
    """Load schemes from a JSON file, or return the built-in schemes.

    The file holds a list of scheme objects (or ``{"schemes": [...]}``) in
    the same shape the web API returns.
    """
    if not path:
        return default_schemes()
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("schemes", [])
    if not isinstance(data, list):
        raise InvalidSchemeConfig("schemes must be a list of objects")
    for index, item in enumerate(data):
        if not isinstance(item, Mapping):
            raise InvalidSchemeConfig("each scheme must be an object", {"index": index})
    loaded = [parse_scheme(item) for item in data]
    logger.info("Loaded %d schemes from %s", len(loaded), path)
    return loaded


def result_to_dict(scheme: SchemeConfig, result: CalculationResult) -> Dict[str, Any]:
    return {
        "scheme": scheme.slug,
        "principal": float(result.principal),
        "elapsed_months": result.elapsed_months,
        "elapsed_days": result.elapsed_days,
        "chargeable_months": float(result.chargeable_months),
        "duration": result.duration_label,
        "base_rate": float(result.base_rate),
        "effective_rate": float(result.effective_rate),
        "rate": result.rate_label,
        "sub_periods": [
            {"rate": float(p.rate), "months": float(p.months)} for p in result.sub_periods
        ],
        "total_interest": float(result.total_interest),
        "interest_reduction": float(result.interest_reduction),
        "manual_reduction": float(result.manual_reduction_applied),
        "total_payable": float(result.total_payable),
    }


def export_to_json(path: Path, data: Any) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, rows: List[Dict[str, Any]]) -> None:
    """Export comparison rows to a CSV file."""
    header = ["Scheme", "Duration", "Rate", "Total_Interest", "Interest_Reduction", "Manual_Reduction", "Total_Payable"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in rows:
            writer.writerow(
                [
                    row["scheme"],
                    row["duration"],
                    row["rate"],
                    row["total_interest"],
                    row["interest_reduction"],
                    row["manual_reduction"],
                    row["total_payable"],
                ]
            )


def _request_or_fail(**options: Any) -> CalculationRequest:
    try:
        return build_request_from_options(**options)
    except GoldLoanError as exc:
        raise click.BadParameter(exc.message)


def loan_options(func):
    """Attach the options shared by ``calculate`` and ``compare``."""
    options = [
        click.option("--amount", "-a", "amount", required=True, help="Principal amount"),
        click.option("--start-date", "-s", "start_date", required=True, help="Loan date (YYYY-MM-DD)"),
        click.option("--end-date", "-e", "end_date", required=True, help="Closing date (YYYY-MM-DD)"),
        click.option("--rate", "-r", "interest_rate", help="Override the scheme's base rate (percent)"),
        click.option("--validity", "validity_months", help="Override the validity period in months"),
        click.option("--reduction", "reduction_amount", help="Additional manual reduction"),
        click.option("--interest-taken", "interest_taken", is_flag=True, help="One period of interest was collected up front"),
        click.option("--output", "output", type=str, help="Output file path"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--schemes-file",
    "schemes_file",
    envvar="GOLD_LOAN_SCHEMES_FILE",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file with scheme definitions (defaults to the built-in schemes)",
)
@click.option(
    "--log-level",
    "log_level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx: click.Context, schemes_file: Optional[str], log_level: str) -> None:
    """A command‑line gold loan interest and payoff calculator."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    try:
        ctx.obj = load_schemes(schemes_file)
    except (GoldLoanError, ValueError) as exc:
        raise click.ClickException(f"Invalid schemes file: {exc}")


@cli.command()
@click.option("--active-only", "active_only", is_flag=True, help="Only list active schemes")
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_obj
def schemes(schemes_list: List[SchemeConfig], active_only: bool, output: Optional[str]) -> None:
    """List the available loan schemes."""
    selected = [s for s in schemes_list if s.is_active or not active_only]
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Scheme export must use .json extension")
        export_to_json(path, {"schemes": [scheme_to_dict(s) for s in selected]})
        click.echo(f"Schemes exported to {path}")
    else:
        print_schemes(selected)


@cli.command(name="calculate")
@click.option("--scheme", "scheme_key", required=True, help="Scheme slug or id")
@loan_options
@click.pass_obj
def calculate_command(
    schemes_list: List[SchemeConfig],
    scheme_key: str,
    amount: str,
    start_date: str,
    end_date: str,
    interest_rate: Optional[str],
    validity_months: Optional[str],
    reduction_amount: Optional[str],
    interest_taken: bool,
    output: Optional[str],
) -> None:
    """Compute and print the payoff of a pledge under one scheme."""
    scheme = find_scheme(schemes_list, scheme_key)
    if scheme is None or not scheme.is_active:
        raise click.BadParameter(UnknownScheme(slug=scheme_key).message)
    request = _request_or_fail(
        amount=amount,
        start_date=start_date,
        end_date=end_date,
        interest_rate=interest_rate,
        validity_months=validity_months,
        reduction_amount=reduction_amount,
        interest_status=INTEREST_TAKEN if interest_taken else None,
    )
    try:
        result = calculate(scheme, request)
    except GoldLoanError as exc:
        raise click.ClickException(exc.message)

    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Payoff export must use .json extension")
        export_to_json(path, {"result": result_to_dict(scheme, result)})
        click.echo(f"Payoff exported to {path}")
    else:
        print_result(scheme, result)


@cli.command()
@loan_options
@click.pass_obj
def compare(
    schemes_list: List[SchemeConfig],
    amount: str,
    start_date: str,
    end_date: str,
    interest_rate: Optional[str],
    validity_months: Optional[str],
    reduction_amount: Optional[str],
    interest_taken: bool,
    output: Optional[str],
) -> None:
    """Compare the payoff of one pledge across every active scheme.

    Example:

        gold-loan compare -a 50000 -s 2025-01-10 -e 2025-08-02
    """
    request = _request_or_fail(
        amount=amount,
        start_date=start_date,
        end_date=end_date,
        interest_rate=interest_rate,
        validity_months=validity_months,
        reduction_amount=reduction_amount,
        interest_status=INTEREST_TAKEN if interest_taken else None,
    )
    rows = []
    for scheme in schemes_list:
        if not scheme.is_active:
            continue
        try:
            result = calculate(scheme, request)
        except GoldLoanError as exc:
            raise click.ClickException(f"{scheme.slug}: {exc.message}")
        rows.append(result_to_dict(scheme, result))

    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"comparison": rows})
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, rows)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Comparison exported to {path}")
    else:
        print_comparison(
            [
                {
                    "slug": row["scheme"],
                    "duration": row["duration"],
                    "total_interest": row["total_interest"],
                    "total_payable": row["total_payable"],
                }
                for row in rows
            ]
        )


if __name__ == "__main__":
    cli()
