"""Command-line interface for the pawn settlement engine.

This module uses ``click`` to implement a multi-command interface for quoting
settlements at the counter or checking a receipt: the monthly interest
breakdown, a full or partial redemption and a renewal. Rates and the handling
fee come from the command-line options, from a settings database snapshot
(``--settings-db``) or from the shipped defaults, in that order of
precedence. Results are printed or exported to JSON.

The engine itself trusts its inputs; the option types here are where
negative amounts, negative month counts and out-of-range renewal periods are
rejected.
"""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import click

from .data_models import FeePolicy, FeeType, PledgeStatus, RateSet, Scenario
from .engine import (
    compute_monthly_breakdown,
    compute_partial_redemption,
    compute_redemption,
    compute_renewal_quote,
    compute_total_interest,
)
from .formatter import print_breakdown, print_partial_redemption, print_redemption, print_renewal
from .settings_store import SETTINGS_URL_ENV, create_store_from_env
from .utils import decimal_from_str, format_money

MAX_RENEWAL_MONTHS = 6


def parse_amount(value: str) -> Decimal:
    """Parse a non-negative amount with an optional ``k``/``m`` suffix.

    Accepts plain numbers ("1500", "1,500.50") and shorthand such as "2k"
    meaning 2000.
    """
    text = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    try:
        amount = decimal_from_str(text) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")
    if amount < 0:
        raise click.BadParameter(f"Amount must not be negative: {value}")
    return amount


def parse_rate(value: Optional[str]) -> Optional[Decimal]:
    """Parse a per-month percentage such as "0.5" or "0.5%"."""
    if value is None:
        return None
    text = value.strip()
    if text.endswith("%"):
        text = text[:-1]
    try:
        rate = decimal_from_str(text)
    except ValueError:
        raise click.BadParameter(f"Invalid rate: {value}")
    if rate < 0:
        raise click.BadParameter(f"Rate must not be negative: {value}")
    return rate


def build_policy(
    settings_db: Optional[str],
    standard_rate: Optional[str],
    renewed_rate: Optional[str],
    overdue_rate: Optional[str],
    fee_type: Optional[str],
    fee_value: Optional[str],
    fee_min: Optional[str],
) -> Tuple[RateSet, FeePolicy]:
    """Resolve the rates and fee policy for one command.

    Explicit options override the settings snapshot, which overrides the
    defaults.
    """
    if settings_db:
        snapshot = create_store_from_env(settings_db).snapshot()
        rates, fee_policy = snapshot.rates, snapshot.fee_policy
    else:
        rates, fee_policy = RateSet.default(), FeePolicy.default()

    rate_overrides: Dict[str, Any] = {}
    for field_name, raw in (
        ("standard_rate", standard_rate),
        ("renewed_rate", renewed_rate),
        ("overdue_rate", overdue_rate),
    ):
        parsed = parse_rate(raw)
        if parsed is not None:
            rate_overrides[field_name] = parsed
    if rate_overrides:
        rates = replace(rates, **rate_overrides)

    fee_overrides: Dict[str, Any] = {}
    if fee_type:
        fee_overrides["fee_type"] = FeeType(fee_type)
    if fee_value is not None:
        fee_overrides["value"] = parse_amount(fee_value)
    if fee_min is not None:
        fee_overrides["minimum"] = parse_amount(fee_min)
    if fee_overrides:
        fee_policy = replace(fee_policy, **fee_overrides)
    return rates, fee_policy


def policy_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the rate, fee and settings database options to a command."""

    @click.option("--settings-db", "settings_db", envvar=SETTINGS_URL_ENV, help="SQLAlchemy URL of the settings database")
    @click.option("--standard-rate", "standard_rate", help="Standard rate, percent per month")
    @click.option("--renewed-rate", "renewed_rate", help="Renewed rate, percent per month")
    @click.option("--overdue-rate", "overdue_rate", help="Overdue rate, percent per month")
    @click.option("--fee-type", "fee_type", type=click.Choice([t.value for t in FeeType]), help="Handling fee type")
    @click.option("--fee-value", "fee_value", help="Handling fee amount, or percent of principal")
    @click.option("--fee-min", "fee_min", help="Minimum handling fee for percentage fees")
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        rates, fee_policy = build_policy(
            kwargs.pop("settings_db"),
            kwargs.pop("standard_rate"),
            kwargs.pop("renewed_rate"),
            kwargs.pop("overdue_rate"),
            kwargs.pop("fee_type"),
            kwargs.pop("fee_value"),
            kwargs.pop("fee_min"),
        )
        return func(*args, rates=rates, fee_policy=fee_policy, **kwargs)

    return wrapper


def export_to_json(path: Path, payload: Dict[str, Any]) -> None:
    """Export a result's ``to_dict()`` payload to a JSON file."""
    if path.suffix.lower() != ".json":
        raise click.BadParameter("Export must use .json extension")
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """Interest and redemption calculator for pawn pledges."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--months", "-m", "months", required=True, type=click.IntRange(min=0), help="Months to show")
@click.option(
    "--scenario",
    "scenario",
    type=click.Choice([s.value for s in Scenario]),
    default=Scenario.STANDARD.value,
    help="Rate scenario",
)
@policy_options
def breakdown(
    principal: str,
    months: int,
    scenario: str,
    rates: RateSet,
    fee_policy: FeePolicy,
) -> None:
    """Print the month-by-month interest breakdown."""
    amount = parse_amount(principal)
    lines = compute_monthly_breakdown(amount, months, Scenario(scenario), rates)
    print_breakdown(lines)
    click.echo(f"Total interest: {format_money(compute_total_interest(amount, months, Scenario(scenario), rates))}")


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--months", "-m", "months", required=True, type=click.IntRange(min=0), help="Months elapsed")
@click.option("--days-overdue", "-d", "days_overdue", type=click.IntRange(min=0), default=0, help="Days past due date")
@click.option(
    "--status",
    "status",
    type=click.Choice([s.value for s in PledgeStatus]),
    default=PledgeStatus.ACTIVE.value,
    help="Pledge status",
)
@click.option("--selected-value", "selected_value", help="Net value of the items being redeemed")
@click.option("--total-value", "total_value", help="Net value of all pledged items")
@click.option("--output", "output", type=str, help="Output file path (.json)")
@policy_options
def redeem(
    principal: str,
    months: int,
    days_overdue: int,
    status: str,
    selected_value: Optional[str],
    total_value: Optional[str],
    output: Optional[str],
    rates: RateSet,
    fee_policy: FeePolicy,
) -> None:
    """Compute the amount due to redeem a pledge, fully or partially."""
    amount = parse_amount(principal)
    if (selected_value is None) != (total_value is None):
        raise click.BadParameter("--selected-value and --total-value must be given together")

    if selected_value is not None:
        partial = compute_partial_redemption(
            amount,
            parse_amount(selected_value),
            parse_amount(total_value),
            months,
            days_overdue,
            PledgeStatus(status),
            rates,
            fee_policy,
        )
        payload = partial.to_dict()
        show: Callable[[], None] = functools.partial(print_partial_redemption, partial)
    else:
        result = compute_redemption(amount, months, days_overdue, PledgeStatus(status), rates, fee_policy)
        payload = result.to_dict()
        payload["is_partial"] = False
        show = functools.partial(print_redemption, result)

    if output:
        path = Path(output)
        export_to_json(path, payload)
        click.echo(f"Redemption exported to {path}")
    else:
        show()


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--current-month", "-c", "current_month", required=True, type=click.IntRange(min=0), help="Months already elapsed")
@click.option(
    "--renewal-months",
    "-n",
    "renewal_months",
    required=True,
    type=click.IntRange(1, MAX_RENEWAL_MONTHS),
    help="Months to renew for",
)
@click.option("--output", "output", type=str, help="Output file path (.json)")
@policy_options
def renew(
    principal: str,
    current_month: int,
    renewal_months: int,
    output: Optional[str],
    rates: RateSet,
    fee_policy: FeePolicy,
) -> None:
    """Compute the interest and fee due to renew a pledge."""
    quote = compute_renewal_quote(parse_amount(principal), current_month, renewal_months, rates, fee_policy)
    if output:
        path = Path(output)
        export_to_json(path, quote.to_dict())
        click.echo(f"Renewal exported to {path}")
    else:
        print_renewal(quote)


if __name__ == "__main__":
    cli()
