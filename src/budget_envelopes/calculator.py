# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Envelope-aware budget arithmetic.

An expense or saving envelope always counts for at least its planned amount.
When the transactions allocated to it go over the plan, the overage counts
too. Free transactions and income never get capped.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from budget_envelopes.types import (
    OUTFLOW_KINDS,
    BudgetMetrics,
    BudgetTotals,
    EntityId,
    Envelope,
    EnvelopeConsumption,
    RealizedMetrics,
    Transaction,
)


def allocated_total(envelope_id: EntityId, transactions: Iterable[Transaction]) -> float:
    """Sum of the transactions allocated to one envelope, whatever their kind."""
    return math.fsum(t.amount for t in transactions if t.envelope_id == envelope_id)


def effective_amount(envelope: Envelope, transactions: Iterable[Transaction]) -> float:
    """
    Contribution of an envelope to the period totals.

    Income envelopes contribute their planned amount. Expense and saving
    envelopes contribute the greater of the plan and the outflow allocated to
    them.
    """
    if envelope.kind not in OUTFLOW_KINDS:
        return envelope.planned_amount
    consumed = math.fsum(
        t.amount
        for t in transactions
        if t.envelope_id == envelope.id and t.kind in OUTFLOW_KINDS
    )
    return max(envelope.planned_amount, consumed)


def total_income(envelopes: Sequence[Envelope], transactions: Sequence[Transaction]) -> float:
    planned = math.fsum(e.planned_amount for e in envelopes if e.kind == "income")
    actual = math.fsum(t.amount for t in transactions if t.kind == "income")
    return planned + actual


def total_expenses(envelopes: Sequence[Envelope], transactions: Sequence[Transaction]) -> float:
    outflow_envelopes = {e.id: e for e in envelopes if e.kind in OUTFLOW_KINDS}

    # Allocated outflow grouped per envelope; allocations to an unknown or
    # income envelope are not capped by any plan.
    allocated: dict[EntityId, list[float]] = {}
    uncapped: list[float] = []
    for transaction in transactions:
        if transaction.kind not in OUTFLOW_KINDS:
            continue
        if transaction.envelope_id is None or transaction.envelope_id not in outflow_envelopes:
            uncapped.append(transaction.amount)
        else:
            allocated.setdefault(transaction.envelope_id, []).append(transaction.amount)

    envelope_parts = [
        max(envelope.planned_amount, math.fsum(allocated.get(envelope_id, ())))
        for envelope_id, envelope in outflow_envelopes.items()
    ]
    return math.fsum(envelope_parts) + math.fsum(uncapped)


def compute_totals(
    envelopes: Sequence[Envelope],
    transactions: Sequence[Transaction],
) -> BudgetTotals:
    """
    Compute income, expenses and ending balance for one period.

    The synthetic rollover envelope, when present in ``envelopes``, counts
    like any other envelope of its kind.
    """
    income = total_income(envelopes, transactions)
    expenses = total_expenses(envelopes, transactions)
    return BudgetTotals(income=income, expenses=expenses, ending_balance=income - expenses)


def compute_metrics(
    envelopes: Sequence[Envelope],
    transactions: Sequence[Transaction],
    rollover: float = 0.0,
) -> BudgetMetrics:
    """
    Totals with the rollover kept apart from income.

    Rollover envelopes in ``envelopes`` are ignored; pass the amount as
    ``rollover`` instead.
    """
    real_envelopes = [e for e in envelopes if not e.is_rollover]
    income = total_income(real_envelopes, transactions)
    expenses = total_expenses(real_envelopes, transactions)
    available = income + rollover
    ending_balance = available - expenses
    return BudgetMetrics(
        total_income=income,
        total_expenses=expenses,
        rollover=rollover,
        available=available,
        ending_balance=ending_balance,
        remaining=ending_balance,
    )


def compute_realized_metrics(
    envelopes: Sequence[Envelope],
    transactions: Sequence[Transaction],
) -> RealizedMetrics:
    """Income, expenses and balance counting checked items only, uncapped."""
    checked_envelopes = [e for e in envelopes if e.is_checked]
    checked_transactions = [t for t in transactions if t.is_checked]

    realized_income = math.fsum(
        [e.planned_amount for e in checked_envelopes if e.kind == "income"]
        + [t.amount for t in checked_transactions if t.kind == "income"]
    )
    realized_expenses = math.fsum(
        [e.planned_amount for e in checked_envelopes if e.kind in OUTFLOW_KINDS]
        + [t.amount for t in checked_transactions if t.kind in OUTFLOW_KINDS]
    )
    return RealizedMetrics(
        realized_income=realized_income,
        realized_expenses=realized_expenses,
        realized_balance=realized_income - realized_expenses,
        checked_items_count=len(checked_envelopes) + len(checked_transactions),
        total_items_count=len(envelopes) + len(transactions),
    )


def envelope_consumption(
    envelope: Envelope,
    transactions: Sequence[Transaction],
) -> EnvelopeConsumption:
    """Consumption of one envelope by its allocated transactions."""
    allocated = [t for t in transactions if t.envelope_id == envelope.id]
    consumed = math.fsum(t.amount for t in allocated)
    if envelope.planned_amount == 0:
        percentage = 100.0 if consumed > 0 else 0.0
    else:
        percentage = consumed / envelope.planned_amount * 100.0
    return EnvelopeConsumption(
        envelope_id=envelope.id,
        consumed=consumed,
        remaining=envelope.planned_amount - consumed,
        transaction_count=len(allocated),
        percentage=percentage,
        is_over_budget=consumed > envelope.planned_amount,
    )


def consumption_by_envelope(
    envelopes: Sequence[Envelope],
    transactions: Sequence[Transaction],
) -> dict[EntityId, EnvelopeConsumption]:
    return {e.id: envelope_consumption(e, transactions) for e in envelopes}
