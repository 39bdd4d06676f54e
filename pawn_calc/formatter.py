"""Output helpers for the pawn settlement engine.

Plain-text renderings of breakdowns and settlement results for the terminal.
Amounts are printed with two decimals and no currency symbol; currency and
locale formatting belong to whoever prints the real receipt.
"""

from __future__ import annotations

from typing import Iterable

import click

from .data_models import (
    MonthlyLine,
    OverdueDetail,
    PartialRedemption,
    RedemptionResult,
    RenewalQuote,
)
from .utils import format_money


def print_breakdown(lines: Iterable[MonthlyLine]) -> None:
    """Print monthly lines as a tab-separated table."""
    headers = ["Month", "Rate%", "Label", "Interest", "Cumulative", "Payable"]
    click.echo("\t".join(headers))
    for line in lines:
        row = [
            str(line.month_index),
            str(line.rate_percent),
            line.rate_label,
            format_money(line.interest_amount),
            format_money(line.cumulative_interest),
            format_money(line.cumulative_payable),
        ]
        click.echo("\t".join(row))


def print_overdue_detail(detail: OverdueDetail) -> None:
    click.echo("Overdue recalculation")
    click.echo("-" * 72)
    click.echo(f"Months at overdue rate : {detail.months_elapsed} @ {detail.rate_applied}%")
    click.echo(f"Monthly interest       : {format_money(detail.monthly_interest)}")
    click.echo(f"Total monthly interest : {format_money(detail.total_monthly_interest)}")
    click.echo(f"Late days              : {detail.days_overdue}")
    click.echo(f"Daily penalty          : {format_money(detail.daily_penalty)}")
    click.echo(f"Re-rating difference   : {format_money(detail.recalculation_difference)}")


def print_redemption(result: RedemptionResult) -> None:
    """Print a redemption result in a human-readable format."""
    click.echo("Redemption")
    click.echo("-" * 72)
    click.echo(f"Principal          : {format_money(result.principal)}")
    click.echo(f"Months elapsed     : {result.months_elapsed}")
    if result.days_overdue:
        click.echo(f"Days overdue       : {result.days_overdue}")
    click.echo(f"Status             : {result.status}")
    click.echo(f"Scenario           : {result.scenario.value}")
    click.echo("-" * 72)
    if isinstance(result.monthly_breakdown, OverdueDetail):
        print_overdue_detail(result.monthly_breakdown)
    else:
        print_breakdown(result.monthly_breakdown)
    click.echo("-" * 72)
    click.echo(f"Interest ({result.months_elapsed} months): {format_money(result.regular_interest)}")
    if result.overdue_interest:
        click.echo(f"Late interest      : {format_money(result.overdue_interest)}")
    click.echo(f"Total interest     : {format_money(result.total_interest)}")
    click.echo(f"Handling fee       : {format_money(result.handling_fee)}")
    click.echo(f"Total payable      : {format_money(result.total_payable)}")
    click.echo("-" * 72)


def print_partial_redemption(partial: PartialRedemption) -> None:
    click.echo("Partial redemption")
    click.echo("-" * 72)
    click.echo(f"Selected net value : {format_money(partial.selected_net_value)}")
    click.echo(f"Total net value    : {format_money(partial.total_net_value)}")
    click.echo(f"Pro-rata ratio     : {partial.pro_rata_ratio}")
    click.echo(f"Pro-rata principal : {format_money(partial.pro_rata_principal)}")
    print_redemption(partial.redemption)


def print_renewal(quote: RenewalQuote) -> None:
    """Print a renewal quote: interest lines, fee and amount due."""
    click.echo("Renewal")
    click.echo("-" * 72)
    click.echo(f"Principal          : {format_money(quote.principal)}")
    click.echo(f"Current month      : {quote.current_month}")
    click.echo(f"Renewal months     : {quote.renewal_months}")
    click.echo("\t".join(["Month", "Rate%", "Label", "Interest"]))
    for line in quote.interest.breakdown:
        click.echo(
            "\t".join(
                [
                    str(line.month_index),
                    str(line.rate_percent),
                    line.rate_label,
                    format_money(line.interest_amount),
                ]
            )
        )
    click.echo("-" * 72)
    click.echo(f"Renewal interest   : {format_money(quote.interest.total_interest)}")
    click.echo(f"Handling fee       : {format_money(quote.handling_fee)}")
    click.echo(f"Total payable      : {format_money(quote.total_payable)}")
    click.echo("-" * 72)
