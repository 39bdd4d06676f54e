"""Data models for the pawn settlement engine.

This module defines the value objects passed into and returned from the
engine: the rate table (``RateSet``), the handling fee policy (``FeePolicy``),
the scenario and status enumerations, and the result structures rendered on
receipts (``MonthlyLine``, ``OverdueDetail``, ``RedemptionResult`` and the
renewal/partial redemption results). All of them are frozen dataclasses so a
result cannot be altered once the engine has produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Tuple, Union

from .utils import format_money, to_decimal

DEFAULT_STANDARD_RATE = Decimal("0.5")
DEFAULT_RENEWED_RATE = Decimal("1.5")
DEFAULT_OVERDUE_RATE = Decimal("2.0")

DEFAULT_FEE_VALUE = Decimal("0.50")
DEFAULT_FEE_MINIMUM = Decimal("0")

# A pledge's nominal term; months beyond it are billed differently.
TERM_MONTHS = 6


class Scenario(str, Enum):
    """Which rate applies to which month of a pledge."""

    STANDARD = "standard"
    RENEWED = "renewed"
    OVERDUE = "overdue"


class PledgeStatus(str, Enum):
    ACTIVE = "active"
    RENEWED = "renewed"
    OVERDUE = "overdue"


class FeeType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class RateSet:
    """Per-month interest rates, in percent (``Decimal("0.5")`` is 0.5 %).

    Attributes
    ----------
    standard_rate: Decimal
        Rate for months within the nominal term.
    renewed_rate: Decimal
        Rate for months after the term of a renewed pledge, and for every
        month of a renewal period.
    overdue_rate: Decimal
        Rate applied to every month, retroactively, once a pledge is overdue.
    """

    standard_rate: Decimal = DEFAULT_STANDARD_RATE
    renewed_rate: Decimal = DEFAULT_RENEWED_RATE
    overdue_rate: Decimal = DEFAULT_OVERDUE_RATE

    def __post_init__(self) -> None:
        object.__setattr__(self, "standard_rate", to_decimal(self.standard_rate))
        object.__setattr__(self, "renewed_rate", to_decimal(self.renewed_rate))
        object.__setattr__(self, "overdue_rate", to_decimal(self.overdue_rate))

    @classmethod
    def default(cls) -> "RateSet":
        """Return the shipped regulatory defaults (0.5 / 1.5 / 2.0)."""
        return cls()

    def to_dict(self) -> Dict[str, str]:
        return {
            "standard_rate": str(self.standard_rate),
            "renewed_rate": str(self.renewed_rate),
            "overdue_rate": str(self.overdue_rate),
        }


@dataclass(frozen=True)
class FeePolicy:
    """How the handling fee is charged on every settlement.

    ``fee_type`` is either ``fixed`` (``value`` is the fee) or ``percentage``
    (``value`` percent of the principal, but never less than ``minimum``).
    """

    fee_type: FeeType = FeeType.FIXED
    value: Decimal = DEFAULT_FEE_VALUE
    minimum: Decimal = DEFAULT_FEE_MINIMUM

    def __post_init__(self) -> None:
        # Unknown types are kept as given; the engine charges them as fixed.
        if not isinstance(self.fee_type, FeeType):
            try:
                object.__setattr__(self, "fee_type", FeeType(str(self.fee_type).lower()))
            except ValueError:
                pass
        object.__setattr__(self, "value", to_decimal(self.value))
        object.__setattr__(self, "minimum", to_decimal(self.minimum))

    @classmethod
    def default(cls) -> "FeePolicy":
        return cls()

    def to_dict(self) -> Dict[str, str]:
        fee_type = self.fee_type.value if isinstance(self.fee_type, FeeType) else str(self.fee_type)
        return {
            "fee_type": fee_type,
            "value": str(self.value),
            "minimum": str(self.minimum),
        }


@dataclass(frozen=True)
class MonthlyLine:
    """One month of a receipt's interest breakdown.

    ``interest_amount`` is already rounded to cents and
    ``cumulative_interest`` is the running sum of those rounded amounts, so
    the last line matches what the customer sees printed.
    """

    month_index: int
    rate_percent: Decimal
    rate_label: str
    interest_amount: Decimal
    cumulative_interest: Decimal
    cumulative_payable: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month_index,
            "rate": str(self.rate_percent),
            "rate_label": self.rate_label,
            "interest": format_money(self.interest_amount),
            "cumulative": format_money(self.cumulative_interest),
            "total_payable": format_money(self.cumulative_payable),
        }


@dataclass(frozen=True)
class OverdueDetail:
    """Breakdown of an overdue pledge's interest.

    Attributes
    ----------
    months_elapsed: int
        Whole months since the pledge was taken, all billed at the overdue rate.
    days_overdue: int
        Days beyond those months, billed with the daily penalty.
    rate_applied: Decimal
        The overdue rate used for every month.
    monthly_interest: Decimal
        Interest for one month at the overdue rate.
    total_monthly_interest: Decimal
        ``monthly_interest`` times ``months_elapsed``.
    daily_penalty: Decimal
        Penalty for ``days_overdue`` at a 30-day-month daily rate.
    total_interest: Decimal
        ``total_monthly_interest + daily_penalty``.
    recalculation_difference: Decimal
        Extra charged on the first six months only because they were re-rated
        from the standard to the overdue rate. Shown for disclosure; it is
        already part of ``total_interest``.
    """

    months_elapsed: int
    days_overdue: int
    rate_applied: Decimal
    monthly_interest: Decimal
    total_monthly_interest: Decimal
    daily_penalty: Decimal
    total_interest: Decimal
    recalculation_difference: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "months_elapsed": self.months_elapsed,
            "days_overdue": self.days_overdue,
            "rate_applied": str(self.rate_applied),
            "monthly_interest": format_money(self.monthly_interest),
            "total_monthly_interest": format_money(self.total_monthly_interest),
            "daily_penalty": format_money(self.daily_penalty),
            "total_interest": format_money(self.total_interest),
            "recalculation_difference": format_money(self.recalculation_difference),
        }


Breakdown = Union[Tuple[MonthlyLine, ...], OverdueDetail]


@dataclass(frozen=True)
class RedemptionResult:
    """Everything the receipt needs to settle a full redemption."""

    principal: Decimal
    months_elapsed: int
    days_overdue: int
    status: str
    scenario: Scenario
    rates_applied: RateSet
    monthly_breakdown: Breakdown
    total_interest: Decimal
    handling_fee: Decimal
    total_payable: Decimal
    # Receipt split of total_interest: months versus late days.
    regular_interest: Decimal
    overdue_interest: Decimal

    @property
    def is_overdue(self) -> bool:
        return self.scenario is Scenario.OVERDUE

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.monthly_breakdown, OverdueDetail):
            breakdown: Any = self.monthly_breakdown.to_dict()
        else:
            breakdown = [line.to_dict() for line in self.monthly_breakdown]
        return {
            "principal": format_money(self.principal),
            "months_elapsed": self.months_elapsed,
            "days_overdue": self.days_overdue,
            "status": self.status,
            "scenario": self.scenario.value,
            "rates_applied": self.rates_applied.to_dict(),
            "monthly_breakdown": breakdown,
            "regular_interest": format_money(self.regular_interest),
            "overdue_interest": format_money(self.overdue_interest),
            "total_interest": format_money(self.total_interest),
            "handling_fee": format_money(self.handling_fee),
            "total_payable": format_money(self.total_payable),
        }


@dataclass(frozen=True)
class RenewalLine:
    month_index: int
    rate_percent: Decimal
    rate_label: str
    interest_amount: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month_index,
            "rate": str(self.rate_percent),
            "rate_label": self.rate_label,
            "interest": format_money(self.interest_amount),
        }


@dataclass(frozen=True)
class RenewalInterest:
    """Interest due for extending a pledge by a number of months."""

    breakdown: Tuple[RenewalLine, ...]
    total_interest: Decimal
    monthly_interest: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "breakdown": [line.to_dict() for line in self.breakdown],
            "total_interest": format_money(self.total_interest),
            "monthly_interest": format_money(self.monthly_interest),
        }


@dataclass(frozen=True)
class RenewalQuote:
    """Amount due at the counter to renew a pledge (principal stays lent)."""

    principal: Decimal
    current_month: int
    renewal_months: int
    interest: RenewalInterest
    handling_fee: Decimal
    total_payable: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "principal": format_money(self.principal),
            "current_month": self.current_month,
            "renewal_months": self.renewal_months,
            "interest": self.interest.to_dict(),
            "handling_fee": format_money(self.handling_fee),
            "total_payable": format_money(self.total_payable),
        }


@dataclass(frozen=True)
class PartialRedemption:
    """Redemption of a subset of the pledged items.

    Interest and fee are charged on ``pro_rata_principal``, the loan share
    that corresponds to the net value of the selected items.
    """

    selected_net_value: Decimal
    total_net_value: Decimal
    pro_rata_ratio: Decimal
    pro_rata_principal: Decimal
    redemption: RedemptionResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_partial": True,
            "selected_net_value": format_money(self.selected_net_value),
            "total_net_value": format_money(self.total_net_value),
            "pro_rata_ratio": str(self.pro_rata_ratio),
            "pro_rata_principal": format_money(self.pro_rata_principal),
            "redemption": self.redemption.to_dict(),
        }
