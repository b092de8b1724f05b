# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Carrying the ending balance of one period into the next.

The rollover is the cached ending balance of the chronologically previous
period. It is shown as a synthetic envelope that never reaches storage.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from budget_envelopes.period import period_sort_key, previous_label
from budget_envelopes.types import BudgetPeriod, EntityId, Envelope, RolloverResult

ROLLOVER_ID_PREFIX = "rollover-"
DEFAULT_ROLLOVER_NAME_FORMAT = "Rollover {month:02d}/{year}"


def rollover_envelope_id(period_id: str) -> str:
    return f"{ROLLOVER_ID_PREFIX}{period_id}"


def is_rollover_id(entity_id: EntityId) -> bool:
    return isinstance(entity_id, str) and entity_id.startswith(ROLLOVER_ID_PREFIX)


def period_chain(periods: Iterable[BudgetPeriod]) -> list[BudgetPeriod]:
    """Periods sorted oldest first by label."""
    return sorted(periods, key=period_sort_key)


def link_previous_periods(periods: Iterable[BudgetPeriod]) -> list[BudgetPeriod]:
    """
    Return copies of ``periods`` in chronological order, each pointing at its
    predecessor through ``previous_period_id``.
    """
    linked: list[BudgetPeriod] = []
    previous: BudgetPeriod | None = None
    for period in period_chain(periods):
        previous_id = previous.id if previous is not None else None
        linked.append(period.model_copy(update={"previous_period_id": previous_id}))
        previous = period
    return linked


def resolve_rollover(
    target: BudgetPeriod,
    all_periods: Sequence[BudgetPeriod],
    pay_day_of_month: object = 1,
) -> RolloverResult:
    """
    Find the period just before ``target`` and return its cached ending balance.

    Labels order periods chronologically under any pay day, so
    ``pay_day_of_month`` does not change which period is picked. It is
    accepted so callers can pass their configuration through unchanged.
    """
    target_key = period_sort_key(target)
    earlier = [p for p in all_periods if period_sort_key(p) < target_key]
    if not earlier:
        return RolloverResult(rollover_amount=0.0, previous_period_id=None)

    previous = max(earlier, key=period_sort_key)
    amount = previous.cached_ending_balance if previous.cached_ending_balance is not None else 0.0
    return RolloverResult(rollover_amount=amount, previous_period_id=previous.id)


def build_rollover_envelope(
    period: BudgetPeriod,
    rollover: RolloverResult,
    name_format: str = DEFAULT_ROLLOVER_NAME_FORMAT,
) -> Envelope | None:
    """
    Materialize a non-zero rollover as a synthetic envelope for ``period``.

    A surplus becomes an income envelope. A deficit becomes an expense
    envelope of the absolute amount, so planned amounts stay non-negative.
    """
    amount = rollover.rollover_amount
    if amount == 0:
        return None

    source = previous_label(period.month, period.year)
    return Envelope(
        id=rollover_envelope_id(period.id),
        period_id=period.id,
        name=name_format.format(month=source.month, year=source.year),
        planned_amount=abs(amount),
        kind="income" if amount > 0 else "expense",
        recurrence="one_off",
        is_rollover=True,
        checked_at=None,
    )


def with_rollover(
    envelopes: Sequence[Envelope],
    rollover_envelope: Envelope | None,
) -> tuple[Envelope, ...]:
    """Prepend the rollover envelope, replacing any earlier one."""
    real = tuple(e for e in envelopes if not e.is_rollover)
    if rollover_envelope is None:
        return real
    return (rollover_envelope, *real)
