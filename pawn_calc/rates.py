"""Month-by-month rate selection.

Given a month number, a scenario and a ``RateSet``, decide which per-month
rate applies and how it is labelled on the receipt. The central rule is that
an overdue pledge is re-rated from month one: every month, including those
inside the original term, is billed at the overdue rate.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Tuple, Union

from .data_models import RateSet, Scenario, TERM_MONTHS

logger = logging.getLogger(__name__)


def coerce_scenario(scenario: Union[Scenario, str]) -> Scenario:
    """Return ``scenario`` as a ``Scenario`` member.

    Unrecognised values fall back to ``Scenario.STANDARD`` with a warning so
    receipt generation keeps working; the warning points at a configuration
    problem that should be fixed by whoever supplied the value.
    """
    if isinstance(scenario, Scenario):
        return scenario
    try:
        return Scenario(str(scenario).lower())
    except ValueError:
        logger.warning("Unrecognised scenario %r; falling back to standard rates", scenario)
        return Scenario.STANDARD


def rate_for_month(
    month_index: int, scenario: Union[Scenario, str], rates: RateSet
) -> Tuple[Decimal, str]:
    """Return ``(rate_percent, rate_label)`` for a 1-based ``month_index``.

    ========  ===========================  ==========================
    scenario  months 1-6                   months 7+
    ========  ===========================  ==========================
    standard  standard rate (standard)     standard rate (standard)
    renewed   standard rate (standard)     renewed rate (renewed)
    overdue   overdue rate (overdue)       overdue rate (overdue)
    ========  ===========================  ==========================
    """
    scenario = coerce_scenario(scenario)
    if scenario is Scenario.OVERDUE:
        return rates.overdue_rate, Scenario.OVERDUE.value
    if scenario is Scenario.RENEWED:
        if month_index > TERM_MONTHS:
            return rates.renewed_rate, Scenario.RENEWED.value
        return rates.standard_rate, Scenario.STANDARD.value
    return rates.standard_rate, Scenario.STANDARD.value
