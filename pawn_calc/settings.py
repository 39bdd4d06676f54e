"""Resolve rates and the handling fee policy from key/value settings.

Branch settings are stored as plain strings keyed by name. These helpers turn
such a mapping into the ``RateSet`` and ``FeePolicy`` the engine expects.
Missing or malformed entries never fail: they resolve to the documented
defaults (fixed fee of 0.50, minimum 0, rates 0.5 / 1.5 / 2.0).
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from .data_models import (
    DEFAULT_FEE_MINIMUM,
    DEFAULT_FEE_VALUE,
    DEFAULT_OVERDUE_RATE,
    DEFAULT_RENEWED_RATE,
    DEFAULT_STANDARD_RATE,
    FeePolicy,
    FeeType,
    RateSet,
)
from .utils import decimal_from_str

logger = logging.getLogger(__name__)

HANDLING_CHARGE_TYPE = "handling_charge_type"
HANDLING_CHARGE_VALUE = "handling_charge_value"
HANDLING_CHARGE_MIN = "handling_charge_min"
LEGACY_HANDLING_FEE = "handling_fee"

INTEREST_RATE_STANDARD = "interest_rate_standard"
INTEREST_RATE_RENEWED = "interest_rate_renewed"
INTEREST_RATE_EXTENDED = "interest_rate_extended"  # older name for the renewed rate
INTEREST_RATE_OVERDUE = "interest_rate_overdue"


def _decimal_setting(settings: Mapping[str, Any], key: str, default: Decimal) -> Decimal:
    raw = settings.get(key)
    if raw is None or str(raw).strip() == "":
        logger.debug("Setting %s not set; using default %s", key, default)
        return default
    try:
        return decimal_from_str(str(raw))
    except ValueError:
        logger.warning("Setting %s has non-numeric value %r; using default %s", key, raw, default)
        return default


def _first_present(settings: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = settings.get(key)
        if value is not None and str(value).strip() != "":
            return key
    return None


def fee_policy_from_settings(settings: Optional[Mapping[str, Any]]) -> FeePolicy:
    """Build a ``FeePolicy`` from settings.

    ``handling_charge_value`` wins over the legacy ``handling_fee`` key; when
    neither is set the fee is 0.50.
    """
    settings = settings or {}
    raw_type = str(settings.get(HANDLING_CHARGE_TYPE) or FeeType.FIXED.value).strip().lower()
    try:
        fee_type = FeeType(raw_type)
    except ValueError:
        logger.warning("Unknown %s %r; using fixed", HANDLING_CHARGE_TYPE, raw_type)
        fee_type = FeeType.FIXED

    value_key = _first_present(settings, HANDLING_CHARGE_VALUE, LEGACY_HANDLING_FEE)
    value = (
        _decimal_setting(settings, value_key, DEFAULT_FEE_VALUE)
        if value_key
        else DEFAULT_FEE_VALUE
    )
    minimum = _decimal_setting(settings, HANDLING_CHARGE_MIN, DEFAULT_FEE_MINIMUM)
    return FeePolicy(fee_type=fee_type, value=value, minimum=minimum)


def rates_from_settings(settings: Optional[Mapping[str, Any]]) -> RateSet:
    """Build a ``RateSet`` from settings, defaulting each rate separately."""
    settings = settings or {}
    renewed_key = _first_present(settings, INTEREST_RATE_RENEWED, INTEREST_RATE_EXTENDED)
    return RateSet(
        standard_rate=_decimal_setting(settings, INTEREST_RATE_STANDARD, DEFAULT_STANDARD_RATE),
        renewed_rate=(
            _decimal_setting(settings, renewed_key, DEFAULT_RENEWED_RATE)
            if renewed_key
            else DEFAULT_RENEWED_RATE
        ),
        overdue_rate=_decimal_setting(settings, INTEREST_RATE_OVERDUE, DEFAULT_OVERDUE_RATE),
    )
