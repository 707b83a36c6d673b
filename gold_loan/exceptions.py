"""Error taxonomy for the gold loan calculator.

Every failure the engine can report is a ``GoldLoanError``. Errors carry a
human-readable message plus a ``details`` dictionary so the web layer and the
CLI can return structured payloads without parsing message strings.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GoldLoanError(Exception):
    """Base class for all calculation and scheme errors."""

    code = "GOLD_LOAN_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "error": self.code, "details": self.details}


class InvalidRange(GoldLoanError):
    """Raised when the end date falls before the start date."""

    code = "INVALID_RANGE"

    def __init__(self, start, end) -> None:
        super().__init__(
            "End date cannot be before start date.",
            {"start_date": str(start), "end_date": str(end)},
        )


class InvalidAmount(GoldLoanError):
    """Raised for a non-positive principal or any other bad numeric input."""

    code = "INVALID_AMOUNT"


class InvalidReduction(InvalidAmount):
    """Raised when a manual reduction is negative."""

    code = "INVALID_REDUCTION"

    def __init__(self, reduction) -> None:
        super().__init__("Reduction amount cannot be negative.", {"reduction": str(reduction)})


class UnknownScheme(GoldLoanError):
    """Raised when a slug or id does not resolve to an active scheme."""

    code = "UNKNOWN_SCHEME"
    status_code = 404

    def __init__(self, slug: Optional[str] = None, scheme_id: Optional[int] = None) -> None:
        details: Dict[str, Any] = {}
        if slug:
            details["slug"] = slug
        if scheme_id is not None:
            details["scheme_id"] = scheme_id

        message = "Loan scheme not found"
        if slug:
            message = f"Loan scheme '{slug}' not found or inactive"
        elif scheme_id is not None:
            message = f"Loan scheme with ID {scheme_id} not found or inactive"
        super().__init__(message, details)


class SchemeConfigError(GoldLoanError):
    """Raised when a scheme's configuration cannot be used."""

    code = "INVALID_SCHEME_CONFIG"


class InvalidSchemeConfig(SchemeConfigError):
    """Structurally invalid ``scheme_config`` payload or scheme fields."""


class UnknownCalculationKind(SchemeConfigError):
    code = "UNKNOWN_CALCULATION_KIND"

    def __init__(self, kind) -> None:
        super().__init__(f"Unknown calculation kind: {kind}", {"calculation_kind": str(kind)})


class InvalidThresholds(SchemeConfigError):
    code = "INVALID_THRESHOLDS"


class InvalidRequest(GoldLoanError):
    """Raised for malformed request fields such as unparsable dates."""

    code = "INVALID_REQUEST"
