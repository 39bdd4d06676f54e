"""Core calculation engine for pawn settlements.

This module implements the interest and redemption rules for pledges: the
month-by-month breakdown printed on receipts, the total interest for a
period, the retroactive re-rating of overdue pledges, the handling fee and
the redemption, renewal and partial redemption quotes built from them.

Every function is a pure calculation over ``Decimal`` values. Nothing here
reads configuration, touches a database or looks at the clock; rates and the
fee policy are passed in by the caller (``None`` means the shipped defaults).

Inputs are not validated. Negative or zero principals and month counts are
computed as asked and yield mathematically consistent, if meaningless,
results; checking that a request makes business sense is the caller's job.

Two rounding paths exist for "total interest" and both are kept on purpose:
``compute_monthly_breakdown`` rounds each month before accumulating (what the
receipt lines add up to), while ``compute_total_interest`` accumulates in full
precision and rounds once. They can differ by a cent or two.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterator, Optional, Tuple, Union

from .data_models import (
    DEFAULT_STANDARD_RATE,
    FeePolicy,
    FeeType,
    MonthlyLine,
    OverdueDetail,
    PartialRedemption,
    PledgeStatus,
    RateSet,
    RedemptionResult,
    RenewalInterest,
    RenewalLine,
    RenewalQuote,
    Scenario,
    TERM_MONTHS,
)
from .rates import coerce_scenario, rate_for_month
from .utils import Number, round_money, round_ratio, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)
DAYS_PER_MONTH = Decimal(30)  # penalty convention, not calendar days
ZERO = Decimal("0.00")


class MonthlyBreakdown:
    """Lazy, restartable sequence of ``MonthlyLine`` for months 1..``months``.

    Each call to ``iter()`` recomputes the lines from the stored inputs, so
    iterating twice gives identical results.
    """

    def __init__(
        self,
        principal: Number,
        months: int,
        scenario: Union[Scenario, str],
        rates: Optional[RateSet] = None,
    ) -> None:
        self.principal = to_decimal(principal)
        self.months = int(months)
        self.scenario = coerce_scenario(scenario)
        self.rates = rates or RateSet.default()

    def __iter__(self) -> Iterator[MonthlyLine]:
        cumulative = Decimal("0")
        for month in range(1, self.months + 1):
            rate, label = rate_for_month(month, self.scenario, self.rates)
            interest = round_money(self.principal * rate / HUNDRED)
            cumulative += interest
            yield MonthlyLine(
                month_index=month,
                rate_percent=rate,
                rate_label=label,
                interest_amount=interest,
                cumulative_interest=cumulative,
                cumulative_payable=self.principal + cumulative,
            )

    def __len__(self) -> int:
        return max(self.months, 0)

    def __repr__(self) -> str:
        return (
            f"MonthlyBreakdown(principal={self.principal}, months={self.months}, "
            f"scenario={self.scenario.value})"
        )


def compute_monthly_breakdown(
    principal: Number,
    months: int,
    scenario: Union[Scenario, str],
    rates: Optional[RateSet] = None,
) -> MonthlyBreakdown:
    """Return the receipt breakdown, rounding each month before accumulating."""
    return MonthlyBreakdown(principal, months, scenario, rates)


def compute_total_interest(
    principal: Number,
    months: int,
    scenario: Union[Scenario, str],
    rates: Optional[RateSet] = None,
) -> Decimal:
    """Return total interest for ``months``, summed unrounded and rounded once.

    This may differ by a cent or two from the last ``cumulative_interest`` of
    ``compute_monthly_breakdown`` for the same inputs.
    """
    principal = to_decimal(principal)
    scenario = coerce_scenario(scenario)
    rates = rates or RateSet.default()
    total = Decimal("0")
    for month in range(1, int(months) + 1):
        rate, _ = rate_for_month(month, scenario, rates)
        total += principal * rate / HUNDRED
    return round_money(total)


def compute_overdue_penalty(principal: Number, days_overdue: int, overdue_rate: Number) -> Decimal:
    """Return the late-day penalty using a 30-day month.

    daily rate = (overdue_rate / 100) / 30, penalty = principal * daily rate * days.
    """
    daily_rate = (to_decimal(overdue_rate) / HUNDRED) / DAYS_PER_MONTH
    return round_money(to_decimal(principal) * daily_rate * int(days_overdue))


def compute_overdue_interest(
    principal: Number,
    months_elapsed: int,
    days_overdue: int,
    overdue_rate: Number,
    standard_rate: Number = DEFAULT_STANDARD_RATE,
) -> OverdueDetail:
    """Return the interest detail of an overdue pledge.

    Every elapsed month, including the months inside the original term, is
    billed at ``overdue_rate``, and the days beyond those months add the daily
    penalty. ``recalculation_difference`` reports how much of the total comes
    from re-rating the first six months from ``standard_rate`` to the overdue
    rate; it is disclosure only and is not added to the total again.
    """
    principal = to_decimal(principal)
    overdue_rate = to_decimal(overdue_rate)
    standard_rate = to_decimal(standard_rate)
    months_elapsed = int(months_elapsed)

    monthly_interest = principal * overdue_rate / HUNDRED
    total_monthly_interest = monthly_interest * months_elapsed
    daily_penalty = compute_overdue_penalty(principal, days_overdue, overdue_rate)
    total_interest = round_money(total_monthly_interest + daily_penalty)

    re_rated_months = min(months_elapsed, TERM_MONTHS)
    standard_cost = principal * standard_rate / HUNDRED * re_rated_months
    recalculation_difference = round_money(monthly_interest * re_rated_months - standard_cost)

    return OverdueDetail(
        months_elapsed=months_elapsed,
        days_overdue=int(days_overdue),
        rate_applied=overdue_rate,
        monthly_interest=round_money(monthly_interest),
        total_monthly_interest=round_money(total_monthly_interest),
        daily_penalty=daily_penalty,
        total_interest=total_interest,
        recalculation_difference=recalculation_difference,
    )


def compute_handling_fee(principal: Number, fee_policy: Optional[FeePolicy] = None) -> Decimal:
    """Return the handling fee for a settlement of ``principal``.

    ``fixed`` charges the configured value regardless of principal.
    ``percentage`` charges ``value`` percent of the principal, raised to
    ``minimum`` when it falls below it. Any other type is charged as fixed.
    """
    policy = fee_policy or FeePolicy.default()
    if policy.fee_type is FeeType.PERCENTAGE:
        fee = to_decimal(principal) * policy.value / HUNDRED
        if fee < policy.minimum:
            fee = policy.minimum
    else:
        if policy.fee_type is not FeeType.FIXED:
            logger.warning("Unknown handling fee type %r; charging it as fixed", policy.fee_type)
        fee = policy.value
    return round_money(fee)


def _status_value(status: Union[PledgeStatus, str]) -> str:
    if isinstance(status, PledgeStatus):
        return status.value
    return str(status).lower()


def select_scenario(
    status: Union[PledgeStatus, str], months_elapsed: int, days_overdue: int
) -> Scenario:
    """Classify a pledge for billing. The first matching rule wins.

    1. overdue status, any overdue days or more than six months -> overdue
    2. renewed status -> renewed
    3. anything else -> standard
    """
    status_value = _status_value(status)
    if (
        status_value == PledgeStatus.OVERDUE.value
        or days_overdue > 0
        or months_elapsed > TERM_MONTHS
    ):
        return Scenario.OVERDUE
    if status_value == PledgeStatus.RENEWED.value:
        return Scenario.RENEWED
    return Scenario.STANDARD


def compute_redemption(
    principal: Number,
    months_elapsed: int,
    days_overdue: int = 0,
    status: Union[PledgeStatus, str] = PledgeStatus.ACTIVE,
    rates: Optional[RateSet] = None,
    fee_policy: Optional[FeePolicy] = None,
) -> RedemptionResult:
    """Compute the full amount due to redeem a pledge today.

    Parameters
    ----------
    principal: Number
        Loan amount. Expected to be non-negative; not checked.
    months_elapsed: int
        Whole months since the pledge date. Expected to be non-negative.
    days_overdue: int
        Days past the due date; any positive value makes the pledge overdue.
    status: PledgeStatus or str
        ``active``, ``renewed`` or ``overdue``.
    rates: RateSet, optional
        Rates for this calculation; defaults to ``RateSet.default()``.
    fee_policy: FeePolicy, optional
        Handling fee policy; defaults to ``FeePolicy.default()``.

    Returns
    -------
    RedemptionResult
        For an overdue pledge the breakdown is an ``OverdueDetail`` and the
        total interest comes from it. Otherwise the breakdown is a tuple of
        ``MonthlyLine`` and the total interest is computed independently with
        ``compute_total_interest``.
    """
    principal = to_decimal(principal)
    months_elapsed = int(months_elapsed)
    days_overdue = int(days_overdue)
    rates = rates or RateSet.default()

    scenario = select_scenario(status, months_elapsed, days_overdue)
    logger.debug(
        "Redemption for principal=%s months=%s days_overdue=%s status=%s -> %s",
        principal, months_elapsed, days_overdue, _status_value(status), scenario.value,
    )

    breakdown: Union[Tuple[MonthlyLine, ...], OverdueDetail]
    if scenario is Scenario.OVERDUE:
        detail = compute_overdue_interest(
            principal, months_elapsed, days_overdue, rates.overdue_rate, rates.standard_rate
        )
        breakdown = detail
        total_interest = detail.total_interest
        regular_interest = detail.total_monthly_interest
        overdue_interest = detail.daily_penalty
    else:
        breakdown = tuple(compute_monthly_breakdown(principal, months_elapsed, scenario, rates))
        total_interest = compute_total_interest(principal, months_elapsed, scenario, rates)
        regular_interest = total_interest
        overdue_interest = ZERO

    handling_fee = compute_handling_fee(principal, fee_policy)
    total_payable = round_money(principal + total_interest + handling_fee)

    return RedemptionResult(
        principal=round_money(principal),
        months_elapsed=months_elapsed,
        days_overdue=days_overdue,
        status=_status_value(status),
        scenario=scenario,
        rates_applied=rates,
        monthly_breakdown=breakdown,
        total_interest=total_interest,
        handling_fee=handling_fee,
        total_payable=total_payable,
        regular_interest=regular_interest,
        overdue_interest=overdue_interest,
    )


def compute_renewal_interest(
    principal: Number, current_month: int, renewal_months: int, renewed_rate: Number
) -> RenewalInterest:
    """Return interest for renewing a pledge by ``renewal_months`` months.

    Renewal months are numbered from ``current_month + 1`` and are always
    billed at ``renewed_rate``, even when they fall inside the first six
    months. This differs from the ``renewed`` scenario of
    ``compute_monthly_breakdown``, which keeps months 1-6 at the standard rate.
    """
    principal = to_decimal(principal)
    renewed_rate = to_decimal(renewed_rate)
    monthly_interest = round_money(principal * renewed_rate / HUNDRED)

    lines = []
    total = Decimal("0")
    for i in range(int(renewal_months)):
        interest = round_money(principal * renewed_rate / HUNDRED)
        total += interest
        lines.append(
            RenewalLine(
                month_index=int(current_month) + i + 1,
                rate_percent=renewed_rate,
                rate_label=Scenario.RENEWED.value,
                interest_amount=interest,
            )
        )
    return RenewalInterest(
        breakdown=tuple(lines),
        total_interest=round_money(total),
        monthly_interest=monthly_interest,
    )


def compute_renewal_quote(
    principal: Number,
    current_month: int,
    renewal_months: int,
    rates: Optional[RateSet] = None,
    fee_policy: Optional[FeePolicy] = None,
) -> RenewalQuote:
    """Return what the customer pays at the counter to renew a pledge.

    A renewal settles the renewal interest and the handling fee; the
    principal stays on loan and is not part of ``total_payable``.
    """
    rates = rates or RateSet.default()
    interest = compute_renewal_interest(principal, current_month, renewal_months, rates.renewed_rate)
    handling_fee = compute_handling_fee(principal, fee_policy)
    return RenewalQuote(
        principal=round_money(principal),
        current_month=int(current_month),
        renewal_months=int(renewal_months),
        interest=interest,
        handling_fee=handling_fee,
        total_payable=round_money(interest.total_interest + handling_fee),
    )


def compute_partial_redemption(
    principal: Number,
    selected_net_value: Number,
    total_net_value: Number,
    months_elapsed: int,
    days_overdue: int = 0,
    status: Union[PledgeStatus, str] = PledgeStatus.ACTIVE,
    rates: Optional[RateSet] = None,
    fee_policy: Optional[FeePolicy] = None,
) -> PartialRedemption:
    """Redeem only some of the pledged items.

    The loan is split in proportion to the net value of the selected items
    and the usual redemption rules run on that share. When the pledge has no
    recorded net value the whole principal is used.
    """
    principal = to_decimal(principal)
    selected = to_decimal(selected_net_value)
    total = to_decimal(total_net_value)
    ratio = selected / total if total > 0 else Decimal(1)
    pro_rata_principal = principal * ratio

    redemption = compute_redemption(
        pro_rata_principal, months_elapsed, days_overdue, status, rates, fee_policy
    )
    return PartialRedemption(
        selected_net_value=round_money(selected),
        total_net_value=round_money(total),
        pro_rata_ratio=round_ratio(ratio),
        pro_rata_principal=round_money(pro_rata_principal),
        redemption=redemption,
    )
