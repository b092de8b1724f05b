# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for totals, effective amounts, metrics and envelope consumption."""

from __future__ import annotations

import pytest

from budget_envelopes.calculator import (
    allocated_total,
    compute_metrics,
    compute_realized_metrics,
    compute_totals,
    consumption_by_envelope,
    effective_amount,
    envelope_consumption,
)
from budget_envelopes.types import BudgetSnapshot

from conftest import CHECKED_AT, make_envelope, make_transaction


# ---------------------------------------------------------------------------
# TestEffectiveAmount
# ---------------------------------------------------------------------------


class TestEffectiveAmount:
    def test_underspent_envelope_counts_its_plan(self) -> None:
        envelope = make_envelope("food", planned_amount=500.0)
        transactions = [
            make_transaction("a", 200.0, envelope_id="food"),
            make_transaction("b", 150.0, envelope_id="food"),
        ]
        assert effective_amount(envelope, transactions) == 500.0

    def test_overspent_envelope_counts_its_consumption(self) -> None:
        envelope = make_envelope("food", planned_amount=500.0)
        transactions = [
            make_transaction("a", 400.0, envelope_id="food"),
            make_transaction("b", 250.0, envelope_id="food"),
        ]
        assert effective_amount(envelope, transactions) == 650.0

    def test_saving_envelope_is_capped_like_expense(self) -> None:
        envelope = make_envelope("holiday", kind="saving", planned_amount=300.0)
        transactions = [make_transaction("a", 320.0, kind="saving", envelope_id="holiday")]
        assert effective_amount(envelope, transactions) == 320.0

    def test_income_envelope_counts_its_plan(self) -> None:
        envelope = make_envelope("salary", kind="income", planned_amount=5000.0)
        transactions = [make_transaction("bonus", 800.0, kind="income", envelope_id="salary")]
        assert effective_amount(envelope, transactions) == 5000.0

    def test_allocated_total_ignores_other_envelopes(self) -> None:
        transactions = [
            make_transaction("a", 10.0, envelope_id="food"),
            make_transaction("b", 20.0, envelope_id="rent"),
            make_transaction("c", 5.0),
        ]
        assert allocated_total("food", transactions) == 10.0


# ---------------------------------------------------------------------------
# TestComputeTotals
# ---------------------------------------------------------------------------


class TestComputeTotals:
    def test_empty_period_is_all_zero(self) -> None:
        totals = compute_totals([], [])
        assert totals.income == 0.0
        assert totals.expenses == 0.0
        assert totals.ending_balance == 0.0

    def test_allocated_spend_under_plan(self) -> None:
        envelopes = [
            make_envelope("salary", kind="income", planned_amount=5000.0),
            make_envelope("food", planned_amount=500.0),
        ]
        transactions = [make_transaction("a", 100.0, envelope_id="food")]

        totals = compute_totals(envelopes, transactions)

        assert totals.income == 5000.0
        assert totals.expenses == 500.0
        assert totals.ending_balance == 4500.0

    def test_allocated_spend_over_plan(self) -> None:
        envelopes = [
            make_envelope("salary", kind="income", planned_amount=5000.0),
            make_envelope("food", planned_amount=100.0),
        ]
        transactions = [make_transaction("a", 150.0, envelope_id="food")]

        totals = compute_totals(envelopes, transactions)

        assert totals.expenses == 150.0
        assert totals.ending_balance == 4850.0

    def test_free_transactions_are_never_capped(self) -> None:
        envelopes = [
            make_envelope("salary", kind="income", planned_amount=5000.0),
            make_envelope("food", planned_amount=500.0),
        ]
        transactions = [
            make_transaction("a", 100.0, envelope_id="food"),
            make_transaction("b", 75.0),
        ]

        totals = compute_totals(envelopes, transactions)

        assert totals.expenses == 575.0
        assert totals.ending_balance == 4425.0

    def test_income_transactions_always_add(self) -> None:
        envelopes = [make_envelope("salary", kind="income", planned_amount=5000.0)]
        transactions = [
            make_transaction("bonus", 300.0, kind="income", envelope_id="salary"),
            make_transaction("gift", 50.0, kind="income"),
        ]
        assert compute_totals(envelopes, transactions).income == 5350.0

    def test_outflow_allocated_to_income_envelope_is_uncapped(self) -> None:
        envelopes = [make_envelope("salary", kind="income", planned_amount=5000.0)]
        transactions = [make_transaction("fee", 12.0, envelope_id="salary")]
        assert compute_totals(envelopes, transactions).expenses == 12.0

    def test_summation_order_does_not_matter(self) -> None:
        envelopes = [
            make_envelope("salary", kind="income", planned_amount=0.1),
            make_envelope("food", planned_amount=0.2),
            make_envelope("rent", planned_amount=0.3),
        ]
        transactions = [make_transaction("a", 0.7), make_transaction("b", 0.1)]

        forward = compute_totals(envelopes, transactions)
        backward = compute_totals(envelopes[::-1], transactions[::-1])

        assert forward == backward

    def test_rollover_envelope_counts_like_income(self) -> None:
        envelopes = [
            make_envelope(
                "rollover-2025-03",
                kind="income",
                planned_amount=150.0,
                recurrence="one_off",
                is_rollover=True,
            ),
            make_envelope("food", planned_amount=100.0),
        ]
        assert compute_totals(envelopes, []).ending_balance == 50.0


# ---------------------------------------------------------------------------
# TestMetrics
# ---------------------------------------------------------------------------


class TestMetrics:
    def test_metrics_keep_rollover_apart_from_income(self) -> None:
        envelopes = [
            make_envelope("rollover-2025-03", kind="income", planned_amount=150.0, is_rollover=True),
            make_envelope("salary", kind="income", planned_amount=2000.0),
            make_envelope("rent", planned_amount=1200.0),
        ]

        metrics = compute_metrics(envelopes, [], rollover=150.0)

        assert metrics.total_income == 2000.0
        assert metrics.rollover == 150.0
        assert metrics.available == 2150.0
        assert metrics.total_expenses == 1200.0
        assert metrics.ending_balance == 950.0
        assert metrics.remaining == metrics.ending_balance

    def test_realized_metrics_count_checked_items_only(self, snapshot: BudgetSnapshot) -> None:
        envelopes = [
            e.model_copy(update={"checked_at": CHECKED_AT}) if e.id == "salary" else e
            for e in snapshot.envelopes
        ]
        transactions = [
            t.model_copy(update={"checked_at": CHECKED_AT}) if t.id == "bakery" else t
            for t in snapshot.transactions
        ]

        realized = compute_realized_metrics(envelopes, transactions)

        assert realized.realized_income == 5000.0
        assert realized.realized_expenses == 20.0
        assert realized.realized_balance == 4980.0
        assert realized.checked_items_count == 2
        assert realized.total_items_count == 6
        assert realized.completion_percentage == pytest.approx(100.0 / 3)

    def test_completion_is_zero_for_empty_period(self) -> None:
        assert compute_realized_metrics([], []).completion_percentage == 0.0


# ---------------------------------------------------------------------------
# TestConsumption
# ---------------------------------------------------------------------------


class TestConsumption:
    def test_consumption_within_plan(self) -> None:
        envelope = make_envelope("food", planned_amount=400.0)
        transactions = [
            make_transaction("a", 100.0, envelope_id="food"),
            make_transaction("b", 50.0),
        ]

        consumption = envelope_consumption(envelope, transactions)

        assert consumption.consumed == 100.0
        assert consumption.remaining == 300.0
        assert consumption.transaction_count == 1
        assert consumption.percentage == 25.0
        assert not consumption.is_over_budget

    def test_consumption_over_plan(self) -> None:
        envelope = make_envelope("food", planned_amount=100.0)
        transactions = [make_transaction("a", 130.0, envelope_id="food")]

        consumption = envelope_consumption(envelope, transactions)

        assert consumption.remaining == -30.0
        assert consumption.is_over_budget

    def test_zero_plan_with_spend_is_fully_consumed(self) -> None:
        envelope = make_envelope("misc", planned_amount=0.0)
        transactions = [make_transaction("a", 5.0, envelope_id="misc")]
        assert envelope_consumption(envelope, transactions).percentage == 100.0

    def test_consumption_by_envelope_covers_every_envelope(self, snapshot: BudgetSnapshot) -> None:
        result = consumption_by_envelope(snapshot.envelopes, snapshot.transactions)
        assert set(result) == {"salary", "groceries", "rent"}
        assert result["groceries"].consumed == 100.0
        assert result["rent"].transaction_count == 0
