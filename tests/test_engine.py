"""Tests for the interest and redemption calculations."""

import json
import logging
from decimal import Decimal

import pytest

from pawn_calc.data_models import (
    FeePolicy,
    FeeType,
    OverdueDetail,
    PledgeStatus,
    RateSet,
    Scenario,
)
from pawn_calc.engine import (
    compute_handling_fee,
    compute_monthly_breakdown,
    compute_overdue_interest,
    compute_overdue_penalty,
    compute_partial_redemption,
    compute_redemption,
    compute_renewal_interest,
    compute_renewal_quote,
    compute_total_interest,
    select_scenario,
)
from pawn_calc.utils import round_money

RATES = RateSet(Decimal("0.5"), Decimal("1.5"), Decimal("2.0"))
D = Decimal


# compute_monthly_breakdown


def test_standard_breakdown_three_months():
    lines = list(compute_monthly_breakdown(D("1000"), 3, Scenario.STANDARD, RATES))
    assert [line.month_index for line in lines] == [1, 2, 3]
    assert all(line.interest_amount == D("5.00") for line in lines)
    assert all(line.rate_label == "standard" for line in lines)
    assert lines[-1].cumulative_interest == D("15.00")
    assert lines[-1].cumulative_payable == D("1015.00")
    assert compute_total_interest(D("1000"), 3, Scenario.STANDARD, RATES) == D("15.00")


def test_renewed_breakdown_switches_rate_after_month_six():
    lines = list(compute_monthly_breakdown(D("1000"), 8, Scenario.RENEWED, RATES))
    assert [line.rate_label for line in lines] == ["standard"] * 6 + ["renewed"] * 2
    assert lines[6].interest_amount == D("15.00")
    assert lines[-1].cumulative_interest == D("60.00")


def test_breakdown_cumulative_fields_are_consistent():
    principal = D("1234.56")
    lines = list(compute_monthly_breakdown(principal, 12, Scenario.RENEWED, RATES))
    previous = D("0")
    for line in lines:
        assert line.cumulative_interest >= previous
        assert line.cumulative_payable == principal + line.cumulative_interest
        previous = line.cumulative_interest


def test_cumulative_payable_keeps_fractional_cent_principal():
    principal = D("100.005")
    lines = list(compute_monthly_breakdown(principal, 2, Scenario.STANDARD, RATES))
    assert lines[0].interest_amount == D("0.50")
    assert lines[0].cumulative_payable == D("100.505")
    assert lines[1].cumulative_payable == principal + lines[1].cumulative_interest
    assert lines[1].to_dict()["total_payable"] == "101.01"


def test_breakdown_is_restartable():
    breakdown = compute_monthly_breakdown(D("750"), 9, Scenario.OVERDUE, RATES)
    assert len(breakdown) == 9
    assert list(breakdown) == list(breakdown)


def test_breakdown_with_no_months_is_empty():
    assert list(compute_monthly_breakdown(D("1000"), 0, Scenario.STANDARD, RATES)) == []
    assert len(compute_monthly_breakdown(D("1000"), -3, Scenario.STANDARD, RATES)) == 0


# compute_total_interest


@pytest.mark.parametrize(
    "principal, months",
    [(D("0"), 0), (D("1000"), 1), (D("333.33"), 7), (D("2500.75"), 12), (D("19.99"), 36)],
)
def test_standard_total_is_single_product(principal, months):
    expected = round_money(principal * D("0.5") / 100 * months)
    assert compute_total_interest(principal, months, Scenario.STANDARD, RATES) == expected


def test_breakdown_and_total_keep_their_own_rounding():
    # 1.01 * 0.5% = 0.00505 a month: each line rounds up to 0.01, the total
    # of 0.01515 rounds once to 0.02.
    lines = list(compute_monthly_breakdown(D("1.01"), 3, Scenario.STANDARD, RATES))
    assert [line.interest_amount for line in lines] == [D("0.01")] * 3
    assert lines[-1].cumulative_interest == D("0.03")
    assert compute_total_interest(D("1.01"), 3, Scenario.STANDARD, RATES) == D("0.02")


def test_redemption_total_is_not_summed_from_breakdown():
    result = compute_redemption(D("1.01"), 3, 0, PledgeStatus.ACTIVE, RATES)
    assert result.monthly_breakdown[-1].cumulative_interest == D("0.03")
    assert result.total_interest == D("0.02")


# overdue


def test_overdue_penalty_uses_thirty_day_month():
    assert compute_overdue_penalty(D("1000"), 10, D("2.0")) == D("6.67")
    assert compute_overdue_penalty(D("1000"), 30, D("2.0")) == D("20.00")
    assert compute_overdue_penalty(D("1000"), 0, D("2.0")) == D("0.00")


def test_overdue_interest_recalculates_whole_history():
    detail = compute_overdue_interest(D("1000"), 8, 10, D("2.0"), D("0.5"))
    assert detail.months_elapsed == 8
    assert detail.days_overdue == 10
    assert detail.rate_applied == D("2.0")
    assert detail.monthly_interest == D("20.00")
    assert detail.total_monthly_interest == D("160.00")
    assert detail.daily_penalty == D("6.67")
    assert detail.total_interest == D("166.67")
    assert detail.recalculation_difference == D("90.00")


def test_recalculation_difference_only_covers_first_six_months():
    assert compute_overdue_interest(D("1000"), 3, 0, D("2.0"), D("0.5")).recalculation_difference == D("45.00")
    assert compute_overdue_interest(D("1000"), 12, 0, D("2.0"), D("0.5")).recalculation_difference == D("90.00")


@pytest.mark.parametrize("months", range(0, 11))
def test_recalculation_difference_never_negative(months):
    detail = compute_overdue_interest(D("845.20"), months, 4, D("2.0"), D("0.5"))
    assert detail.recalculation_difference >= 0


# handling fee


def test_percentage_fee_respects_minimum():
    policy = FeePolicy(FeeType.PERCENTAGE, D("1"), D("5"))
    assert compute_handling_fee(D("300"), policy) == D("5.00")
    assert compute_handling_fee(D("1000"), policy) == D("10.00")


def test_fixed_fee_ignores_principal():
    policy = FeePolicy(FeeType.FIXED, D("0.50"), D("0"))
    assert compute_handling_fee(D("300"), policy) == D("0.50")
    assert compute_handling_fee(D("100000"), policy) == D("0.50")


def test_missing_fee_policy_uses_default():
    assert compute_handling_fee(D("5000")) == D("0.50")


def test_unknown_fee_type_is_charged_as_fixed(caplog):
    policy = FeePolicy("flat", D("2"), D("0"))
    with caplog.at_level(logging.WARNING, logger="pawn_calc.engine"):
        assert compute_handling_fee(D("1000"), policy) == D("2.00")
    assert "flat" in caplog.text


def test_fee_policy_accepts_type_strings():
    assert FeePolicy("percentage", 1, 5).fee_type is FeeType.PERCENTAGE


# scenario selection


def test_months_beyond_term_beat_renewed_status():
    assert select_scenario("renewed", 7, 0) is Scenario.OVERDUE


@pytest.mark.parametrize(
    "status, months, days, expected",
    [
        (PledgeStatus.ACTIVE, 3, 1, Scenario.OVERDUE),
        (PledgeStatus.OVERDUE, 2, 0, Scenario.OVERDUE),
        (PledgeStatus.RENEWED, 6, 0, Scenario.RENEWED),
        (PledgeStatus.ACTIVE, 6, 0, Scenario.STANDARD),
        ("ACTIVE", 0, 0, Scenario.STANDARD),
    ],
)
def test_scenario_priority(status, months, days, expected):
    assert select_scenario(status, months, days) is expected


# compute_redemption


def test_standard_redemption():
    result = compute_redemption(D("1000"), 3, 0, PledgeStatus.ACTIVE, RATES)
    assert result.scenario is Scenario.STANDARD
    assert len(result.monthly_breakdown) == 3
    assert result.total_interest == D("15.00")
    assert result.regular_interest == D("15.00")
    assert result.overdue_interest == D("0.00")
    assert result.handling_fee == D("0.50")
    assert result.total_payable == D("1015.50")
    assert result.rates_applied == RATES


def test_renewed_status_seven_months_is_overdue():
    result = compute_redemption(D("1000"), 7, 0, "renewed", RATES)
    assert result.scenario is Scenario.OVERDUE
    assert isinstance(result.monthly_breakdown, OverdueDetail)
    assert result.total_interest == D("140.00")


def test_overdue_redemption():
    result = compute_redemption(D("1000"), 8, 10, PledgeStatus.ACTIVE, RATES)
    assert result.is_overdue
    assert result.total_interest == D("166.67")
    assert result.regular_interest == D("160.00")
    assert result.overdue_interest == D("6.67")
    assert result.monthly_breakdown.recalculation_difference == D("90.00")
    assert result.total_payable == D("1167.17")


def test_renewed_redemption_within_term():
    result = compute_redemption(D("2000"), 4, 0, PledgeStatus.RENEWED, RATES)
    assert result.scenario is Scenario.RENEWED
    assert result.total_interest == D("40.00")
    assert result.status == "renewed"


def test_redemption_percentage_fee():
    policy = FeePolicy(FeeType.PERCENTAGE, D("1"), D("5"))
    result = compute_redemption(D("300"), 2, 0, PledgeStatus.ACTIVE, RATES, policy)
    assert result.handling_fee == D("5.00")
    assert result.total_payable == D("308.00")


@pytest.mark.parametrize("principal", [D("0"), D("50"), D("1000"), D("98765.43")])
@pytest.mark.parametrize("months, days", [(0, 0), (3, 0), (6, 0), (7, 0), (2, 15), (12, 29)])
def test_redemption_never_below_principal(principal, months, days):
    result = compute_redemption(principal, months, days, PledgeStatus.ACTIVE, RATES)
    assert result.total_interest >= 0
    assert result.total_payable >= principal


def test_negative_inputs_are_computed_not_rejected():
    result = compute_redemption(D("-1000"), 3, 0, PledgeStatus.ACTIVE, RATES)
    assert result.total_interest == D("-15.00")
    assert result.total_payable == D("-1014.50")

    result = compute_redemption(D("1000"), -2, -5, PledgeStatus.ACTIVE, RATES)
    assert result.scenario is Scenario.STANDARD
    assert result.monthly_breakdown == ()
    assert result.total_interest == D("0.00")
    assert result.total_payable == D("1000.50")


def test_redemption_is_idempotent():
    first = compute_redemption(D("1500"), 9, 3, "active", RATES)
    second = compute_redemption(D("1500"), 9, 3, "active", RATES)
    assert first == second
    assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())


def test_redemption_defaults_when_no_policy_given():
    result = compute_redemption(1000, 3)
    assert result.rates_applied == RateSet.default()
    assert result.total_payable == D("1015.50")


def test_redemption_to_dict_uses_two_decimal_strings():
    data = compute_redemption(D("1000"), 8, 10, "active", RATES).to_dict()
    assert data["scenario"] == "overdue"
    assert data["total_payable"] == "1167.17"
    assert data["monthly_breakdown"]["daily_penalty"] == "6.67"
    assert data["rates_applied"] == {"standard_rate": "0.5", "renewed_rate": "1.5", "overdue_rate": "2.0"}

    data = compute_redemption(D("1000"), 2, 0, "active", RATES).to_dict()
    assert data["monthly_breakdown"][1] == {
        "month": 2,
        "rate": "0.5",
        "rate_label": "standard",
        "interest": "5.00",
        "cumulative": "10.00",
        "total_payable": "1010.00",
    }


# renewal


def test_renewal_always_uses_renewed_rate():
    renewal = compute_renewal_interest(D("1000"), 2, 3, D("1.5"))
    assert [line.month_index for line in renewal.breakdown] == [3, 4, 5]
    assert all(line.rate_label == "renewed" for line in renewal.breakdown)
    assert all(line.rate_percent == D("1.5") for line in renewal.breakdown)
    assert renewal.monthly_interest == D("15.00")
    assert renewal.total_interest == D("45.00")


def test_renewal_total_sums_rounded_lines():
    # 1.01 * 1.5% = 0.01515 a month, 0.02 on each line.
    renewal = compute_renewal_interest(D("1.01"), 0, 3, D("1.5"))
    assert renewal.total_interest == D("0.06")


def test_renewal_quote_excludes_principal():
    quote = compute_renewal_quote(D("1000"), 2, 3, RATES)
    assert quote.handling_fee == D("0.50")
    assert quote.total_payable == D("45.50")
    assert quote.to_dict()["interest"]["total_interest"] == "45.00"


def test_renewal_quote_with_percentage_fee():
    policy = FeePolicy(FeeType.PERCENTAGE, D("1"), D("5"))
    quote = compute_renewal_quote(D("1000"), 6, 1, RATES, policy)
    assert quote.interest.breakdown[0].month_index == 7
    assert quote.total_payable == D("25.00")


# partial redemption


def test_partial_redemption_charges_pro_rata_share():
    partial = compute_partial_redemption(D("1000"), D("300"), D("1000"), 3, 0, "active", RATES)
    assert partial.pro_rata_ratio == D("0.3000")
    assert partial.pro_rata_principal == D("300.00")
    assert partial.redemption.total_interest == D("4.50")
    assert partial.redemption.total_payable == D("305.00")
    assert partial.to_dict()["is_partial"] is True


def test_partial_redemption_ratio_is_reported_to_four_places():
    partial = compute_partial_redemption(D("900"), D("1"), D("3"), 1, 0, "active", RATES)
    assert partial.pro_rata_ratio == D("0.3333")
    assert partial.pro_rata_principal == D("300.00")


def test_partial_redemption_without_net_value_uses_full_principal():
    partial = compute_partial_redemption(D("1000"), D("0"), D("0"), 3, 0, "active", RATES)
    assert partial.pro_rata_ratio == D("1.0000")
    assert partial.redemption.principal == D("1000.00")
