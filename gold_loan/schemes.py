"""Loan scheme parsing, validation and serialisation.

Schemes are stored and posted as loosely typed mappings whose
``scheme_config`` payload means something different for each calculation
type. This module turns such mappings into validated, immutable
:class:`SchemeConfig` objects once, at load time, and writes them back out in
the same shape. Decimal values are written as strings so a JSON round trip
does not lose precision.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .data_models import (
    CalculationKind,
    DayBasisCompoundConfig,
    DayBasisTieredConfig,
    FlatConfig,
    RatePeriod,
    SchemeConfig,
    SchemeKindConfig,
    SchemeStatus,
    TieredConfig,
    Threshold,
)
from .config import DEFAULT_MIN_DAYS
from .exceptions import InvalidAmount, InvalidSchemeConfig, InvalidThresholds, UnknownCalculationKind
from .utils import decimal_from_str, optional_decimal, optional_int


def _first(mapping: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in mapping and mapping[key] is not None:
            return mapping[key]
    return default


def _non_negative_decimal(value: Any, field: str) -> Optional[Decimal]:
    try:
        number = optional_decimal(value, field)
    except InvalidAmount as exc:
        raise InvalidSchemeConfig(exc.message, exc.details) from exc
    if number is not None and number < 0:
        raise InvalidSchemeConfig(f"{field} must not be negative", {field: str(value)})
    return number


def _non_negative_int(value: Any, field: str) -> Optional[int]:
    try:
        number = optional_int(value, field)
    except InvalidAmount as exc:
        raise InvalidSchemeConfig(exc.message, exc.details) from exc
    if number is not None and number < 0:
        raise InvalidSchemeConfig(f"{field} must not be negative", {field: str(value)})
    return number


def parse_thresholds(raw: Any) -> tuple:
    """Validate a list of ``{"days": ..., "fraction": ...}`` steps.

    Steps must be ordered by strictly increasing ``days`` and carry
    non-negative values.
    """
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        raise InvalidThresholds("thresholds must be a list", {"thresholds": repr(raw)})

    thresholds: List[Threshold] = []
    for index, item in enumerate(raw):
        if isinstance(item, Threshold):
            days, fraction = item.days, item.fraction
        elif isinstance(item, Mapping) and "days" in item and "fraction" in item:
            try:
                days = optional_int(item["days"], "days")
                fraction = decimal_from_str(item["fraction"], "fraction")
            except InvalidAmount as exc:
                raise InvalidThresholds(exc.message, {"index": index}) from exc
        else:
            raise InvalidThresholds(
                "each threshold needs 'days' and 'fraction'", {"index": index}
            )
        if days is None or days < 0 or fraction < 0:
            raise InvalidThresholds(
                "threshold days and fraction must not be negative", {"index": index}
            )
        if thresholds and days <= thresholds[-1].days:
            raise InvalidThresholds(
                "thresholds must be sorted by ascending days without duplicates",
                {"index": index, "days": days, "previous_days": thresholds[-1].days},
            )
        thresholds.append(Threshold(days=days, fraction=fraction))
    return tuple(thresholds)


def parse_kind_config(kind: str, raw: Any) -> SchemeKindConfig:
    """Build the typed configuration for ``kind`` from a raw payload.

    ``raw`` may be a mapping, a JSON string (as stored in the database) or
    ``None``.
    """
    if raw is None or raw == "":
        raw = {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise InvalidSchemeConfig("scheme_config is not valid JSON") from exc
    if not isinstance(raw, Mapping):
        raise InvalidSchemeConfig("scheme_config must be an object", {"scheme_config": repr(raw)})

    if kind == CalculationKind.FLAT:
        return FlatConfig()
    if kind == CalculationKind.TIERED:
        return TieredConfig(
            validity_months=_non_negative_int(raw.get("validity_months"), "validity_months"),
            surcharge_rate=_non_negative_decimal(raw.get("surcharge_rate"), "surcharge_rate"),
        )
    if kind == CalculationKind.DAY_BASIS_TIERED:
        return DayBasisTieredConfig(
            thresholds=parse_thresholds(raw.get("thresholds")),
            surcharge_rate=_non_negative_decimal(raw.get("surcharge_rate"), "surcharge_rate"),
            validity_months=_non_negative_int(raw.get("validity_months"), "validity_months"),
        )
    if kind == CalculationKind.DAY_BASIS_COMPOUND:
        min_days = _non_negative_int(raw.get("min_days"), "min_days")
        return DayBasisCompoundConfig(
            min_days=DEFAULT_MIN_DAYS if min_days is None else min_days,
            surcharge_rate=_non_negative_decimal(raw.get("surcharge_rate"), "surcharge_rate"),
            validity_months=_non_negative_int(raw.get("validity_months"), "validity_months"),
        )
    raise UnknownCalculationKind(kind)


def parse_scheme(data: Mapping[str, Any]) -> SchemeConfig:
    """Validate a scheme mapping and return an immutable :class:`SchemeConfig`.

    Accepts the storage field names (``interest_rate``, ``interest_period``,
    ``calculation_type``, ``scheme_config``) as well as the model names
    (``base_rate``, ``rate_period``, ``calculation_kind``, ``config``).
    """
    kind = _first(data, "calculation_type", "calculation_kind")
    if kind not in CalculationKind.ALL:
        raise UnknownCalculationKind(kind)

    slug = str(_first(data, "slug", default="")).strip()
    if not slug:
        raise InvalidSchemeConfig("slug is required")
    name = str(_first(data, "name", default=slug)).strip() or slug

    base_rate = _non_negative_decimal(_first(data, "interest_rate", "base_rate"), "interest_rate")
    if base_rate is None:
        raise InvalidSchemeConfig("interest_rate is required", {"slug": slug})

    default_period = RatePeriod.YEARLY if kind == CalculationKind.DAY_BASIS_COMPOUND else RatePeriod.MONTHLY
    rate_period = _first(data, "interest_period", "rate_period", default=default_period)
    if rate_period not in RatePeriod.ALL:
        raise InvalidSchemeConfig(f"Unsupported interest period: {rate_period}", {"slug": slug})

    status = _first(data, "status", default=SchemeStatus.ACTIVE)
    if status not in SchemeStatus.ALL:
        raise InvalidSchemeConfig(f"Unsupported status: {status}", {"slug": slug})

    scheme_id = _first(data, "id")
    return SchemeConfig(
        id=int(scheme_id) if scheme_id is not None else None,
        slug=slug,
        name=name,
        base_rate=base_rate,
        rate_period=rate_period,
        calculation_kind=kind,
        config=parse_kind_config(kind, _first(data, "scheme_config", "config")),
        status=status,
        description=_first(data, "description"),
        default_validity_months=_non_negative_int(
            _first(data, "default_validity_months"), "default_validity_months"
        ),
    )


def config_to_dict(config: SchemeKindConfig) -> Dict[str, Any]:
    """Serialise a kind configuration back to its ``scheme_config`` shape."""
    payload: Dict[str, Any] = {}
    if isinstance(config, DayBasisTieredConfig):
        payload["thresholds"] = [
            {"days": t.days, "fraction": str(t.fraction)} for t in config.thresholds
        ]
    if isinstance(config, DayBasisCompoundConfig):
        payload["min_days"] = config.min_days
    validity = getattr(config, "validity_months", None)
    if validity is not None:
        payload["validity_months"] = validity
    surcharge = getattr(config, "surcharge_rate", None)
    if surcharge is not None:
        payload["surcharge_rate"] = str(surcharge)
    return payload


def scheme_to_dict(scheme: SchemeConfig) -> Dict[str, Any]:
    """Serialise a scheme using the storage field names."""
    return {
        "id": scheme.id,
        "slug": scheme.slug,
        "name": scheme.name,
        "description": scheme.description,
        "interest_rate": str(scheme.base_rate),
        "interest_period": scheme.rate_period,
        "calculation_type": scheme.calculation_kind,
        "scheme_config": config_to_dict(scheme.config),
        "status": scheme.status,
        "default_validity_months": scheme.default_validity_months,
    }


DEFAULT_SCHEMES: List[Dict[str, Any]] = [
    {
        "name": "Scheme 1 (Maximum Interest)",
        "slug": "scheme-1",
        "interest_rate": "2.00",
        "interest_period": RatePeriod.MONTHLY,
        "calculation_type": CalculationKind.TIERED,
        "scheme_config": {"validity_months": 12, "surcharge_rate": "2.50"},
        "status": SchemeStatus.ACTIVE,
    },
    {
        "name": "Scheme 2 (Minimum Interest)",
        "slug": "scheme-2",
        "interest_rate": "2.00",
        "interest_period": RatePeriod.MONTHLY,
        "calculation_type": CalculationKind.DAY_BASIS_TIERED,
        "scheme_config": {
            "thresholds": [
                {"days": 7, "fraction": "0.5"},
                {"days": 15, "fraction": "0.75"},
            ],
            "surcharge_rate": "2.50",
        },
        "status": SchemeStatus.ACTIVE,
    },
    {
        "name": "Scheme 3 (Medium Interest)",
        "slug": "scheme-3",
        "interest_rate": "2.00",
        "interest_period": RatePeriod.MONTHLY,
        "calculation_type": CalculationKind.DAY_BASIS_TIERED,
        "scheme_config": {
            "thresholds": [{"days": 10, "fraction": "0.5"}],
            "surcharge_rate": "2.50",
        },
        "status": SchemeStatus.ACTIVE,
    },
    {
        "name": "Scheme 4 (Day Basis)",
        "slug": "scheme-4",
        "interest_rate": "24.00",
        "interest_period": RatePeriod.YEARLY,
        "calculation_type": CalculationKind.DAY_BASIS_COMPOUND,
        "scheme_config": {"min_days": 10, "surcharge_rate": "30.00"},
        "status": SchemeStatus.ACTIVE,
    },
]


def default_schemes() -> List[SchemeConfig]:
    """Return the built-in schemes, used when no scheme database is configured."""
    return [parse_scheme(dict(data, id=index)) for index, data in enumerate(DEFAULT_SCHEMES, start=1)]


def find_scheme(schemes: List[SchemeConfig], key: Any) -> Optional[SchemeConfig]:
    """Look up a scheme by slug or numeric id in an in-memory list."""
    for scheme in schemes:
        if scheme.slug == str(key) or (scheme.id is not None and str(scheme.id) == str(key)):
            return scheme
    return None
