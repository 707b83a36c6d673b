import logging
import os
from datetime import date
from typing import Any, Dict, Mapping, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from gold_loan.data_models import CalculationResult, SchemeConfig
from gold_loan.engine import accrued_interest, calculate
from gold_loan.exceptions import GoldLoanError, InvalidRequest, InvalidSchemeConfig, UnknownScheme
from gold_loan.main import build_request_from_options
from gold_loan.schemes import scheme_to_dict
from gold_loan.utils import decimal_from_str, optional_decimal, optional_int, parse_date
from gold_loan_web.scheme_store import SchemeStore, create_store_from_env

logger = logging.getLogger(__name__)

api = Blueprint("gold_loan_api", __name__)


def _store() -> SchemeStore:
    return current_app.extensions["scheme_store"]


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _parse_date_field(payload: Mapping[str, Any], name: str) -> date:
    try:
        return parse_date(payload.get(name))
    except ValueError as exc:
        raise InvalidRequest(f"{name} must be a date in YYYY-MM-DD format", {name: payload.get(name)}) from exc


def _resolve_scheme(payload: Mapping[str, Any]) -> SchemeConfig:
    """Fetch one consistent snapshot of the requested scheme."""
    slug = payload.get("scheme_slug") or None
    scheme_id = optional_int(payload.get("scheme_id"), "scheme_id")
    if slug is None and scheme_id is None:
        raise InvalidRequest("scheme_slug or scheme_id is required")
    return _store().resolve(slug=slug, scheme_id=scheme_id)


def _result_payload(result: CalculationResult) -> Dict[str, Any]:
    return {
        "totalMonths": float(result.chargeable_months),
        "elapsedMonths": result.elapsed_months,
        "elapsedDays": result.elapsed_days,
        "durationLabel": result.duration_label,
        "finalInterestRate": float(result.effective_rate),
        "interestRateLabel": result.rate_label,
        "totalInterest": float(result.total_interest),
        "interestReduction": float(result.interest_reduction),
        "additionalReduction": float(result.manual_reduction_applied),
        "totalAmount": float(result.total_payable),
    }


def _run_calculation(payload: Mapping[str, Any], end_field: str) -> CalculationResult:
    scheme = _resolve_scheme(payload)
    calc_request = build_request_from_options(
        amount=payload.get("amount"),
        start_date=_parse_date_field(payload, "start_date"),
        end_date=_parse_date_field(payload, end_field),
        interest_rate=payload.get("interest_rate"),
        validity_months=payload.get("validity_months"),
        reduction_amount=payload.get("reduction_amount"),
        interest_status=payload.get("interest_status"),
    )
    return calculate(scheme, calc_request)


@api.get("/health")
def health():
    return {"status": "Up and running!"}


@api.get("/api/loan-schemes")
def list_schemes():
    active_only = request.args.get("status") == "active"
    return jsonify([scheme_to_dict(s) for s in _store().list_schemes(active_only=active_only)])


@api.get("/api/loan-schemes/<key>")
def get_scheme(key: str):
    scheme = _store().get(key)
    if scheme is None:
        raise UnknownScheme(slug=None if key.isdigit() else key, scheme_id=int(key) if key.isdigit() else None)
    return jsonify(scheme_to_dict(scheme))


@api.post("/api/loan-schemes")
def create_scheme():
    payload = _payload()
    slug = str(payload.get("slug") or "").strip()
    if slug and _store().get(slug) is not None:
        raise InvalidSchemeConfig(f"Slug '{slug}' is already in use", {"slug": slug})
    scheme = _store().save_scheme(payload)
    return jsonify(scheme_to_dict(scheme)), 201


@api.put("/api/loan-schemes/<int:scheme_id>")
def update_scheme(scheme_id: int):
    scheme = _store().save_scheme(_payload(), scheme_id=scheme_id)
    return jsonify(scheme_to_dict(scheme))


@api.delete("/api/loan-schemes/<int:scheme_id>")
def delete_scheme(scheme_id: int):
    _store().delete_scheme(scheme_id)
    return "", 204


@api.post("/api/loan-calculator/calculate")
def estimate():
    result = _run_calculation(_payload(), "end_date")
    return jsonify(_result_payload(result))


@api.post("/api/loan-calculator/closing")
def closing_quote():
    """Payoff figures for closing a loan or repledge on ``closed_date``."""
    payload = _payload()
    end_field = "closed_date" if payload.get("closed_date") else "end_date"
    result = _run_calculation(payload, end_field)
    body = _result_payload(result)
    body.update(
        {
            "closedDate": _parse_date_field(payload, end_field).isoformat(),
            "principalAmount": float(result.principal),
            "interestPaid": float(result.total_payable - result.principal),
            "totalPaidAmount": float(result.total_payable),
        }
    )
    return jsonify(body)


@api.post("/api/loan-calculator/accrued")
def accrued():
    """Interest accrued on an open loan, as of today unless ``as_of`` is given."""
    payload = _payload()
    scheme = _resolve_scheme(payload)
    last_payment = payload.get("last_payment_date")
    accrual = accrued_interest(
        scheme,
        balance=decimal_from_str(payload.get("amount"), "amount"),
        loan_date=_parse_date_field(payload, "loan_date"),
        as_of=_parse_date_field(payload, "as_of") if payload.get("as_of") else date.today(),
        last_payment_date=_parse_date_field(payload, "last_payment_date") if last_payment else None,
        override_rate=optional_decimal(payload.get("interest_rate"), "interest_rate"),
        validity_months=optional_int(payload.get("validity_months"), "validity_months"),
    )
    return jsonify(
        {
            "interest": float(accrual.interest),
            "duration": accrual.duration_label,
            "startDate": accrual.start_date.isoformat(),
            "endDate": accrual.end_date.isoformat(),
            "balance": float(accrual.balance),
            "rate": accrual.rate_label,
        }
    )


def handle_gold_loan_error(exc: GoldLoanError):
    logger.warning("Rejected %s %s: %s", request.method, request.path, exc)
    return jsonify(exc.to_dict()), exc.status_code


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config["GOLD_LOAN_DATABASE_URL"] = os.environ.get("GOLD_LOAN_DATABASE_URL")
    app.config["GOLD_LOAN_SEED_SCHEMES"] = os.environ.get("GOLD_LOAN_SEED_SCHEMES", "1") == "1"
    if config:
        app.config.update(config)

    store = create_store_from_env(app.config["GOLD_LOAN_DATABASE_URL"])
    if app.config["GOLD_LOAN_SEED_SCHEMES"] and not store.list_schemes():
        store.seed_defaults()
    app.extensions["scheme_store"] = store

    app.register_blueprint(api)
    app.register_error_handler(GoldLoanError, handle_gold_loan_error)
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting gold loan calculator API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
