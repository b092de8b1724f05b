# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for rollover chaining and the synthetic rollover envelope."""

from __future__ import annotations

from budget_envelopes.rollover import (
    build_rollover_envelope,
    is_rollover_id,
    link_previous_periods,
    resolve_rollover,
    rollover_envelope_id,
    with_rollover,
)
from budget_envelopes.types import BudgetPeriod, PendingId, RolloverResult

from conftest import make_envelope


def _period(period_id: str, month: int, year: int, ending: float | None = None) -> BudgetPeriod:
    return BudgetPeriod(id=period_id, month=month, year=year, cached_ending_balance=ending)


# ---------------------------------------------------------------------------
# TestResolveRollover
# ---------------------------------------------------------------------------


class TestResolveRollover:
    def test_first_period_has_no_rollover(self) -> None:
        target = _period("b", 2, 2025)
        result = resolve_rollover(target, [target])
        assert result == RolloverResult(rollover_amount=0.0, previous_period_id=None)

    def test_previous_period_ending_balance_carries_over(self) -> None:
        previous = _period("a", 1, 2025, ending=150.0)
        target = _period("b", 2, 2025)

        result = resolve_rollover(target, [target, previous], pay_day_of_month=25)

        assert result.rollover_amount == 150.0
        assert result.previous_period_id == "a"

    def test_nearest_earlier_label_wins_over_older_ones(self) -> None:
        periods = [
            _period("oct", 10, 2024, ending=10.0),
            _period("dec", 12, 2024, ending=30.0),
            _period("nov", 11, 2024, ending=20.0),
            _period("feb", 2, 2025, ending=40.0),
        ]
        target = _period("jan", 1, 2025)

        result = resolve_rollover(target, periods + [target])

        assert result.previous_period_id == "dec"
        assert result.rollover_amount == 30.0

    def test_gap_in_the_chain_uses_latest_earlier_period(self) -> None:
        target = _period("jun", 6, 2025)
        result = resolve_rollover(target, [_period("mar", 3, 2025, ending=-80.0), target])
        assert result.previous_period_id == "mar"
        assert result.rollover_amount == -80.0

    def test_missing_cached_balance_counts_as_zero(self) -> None:
        target = _period("b", 2, 2025)
        result = resolve_rollover(target, [_period("a", 1, 2025), target])
        assert result.rollover_amount == 0.0
        assert result.previous_period_id == "a"

    def test_link_previous_periods_chains_in_label_order(self) -> None:
        linked = link_previous_periods(
            [_period("c", 3, 2025), _period("a", 12, 2024), _period("b", 1, 2025)]
        )
        assert [p.id for p in linked] == ["a", "b", "c"]
        assert [p.previous_period_id for p in linked] == [None, "a", "b"]


# ---------------------------------------------------------------------------
# TestRolloverEnvelope
# ---------------------------------------------------------------------------


class TestRolloverEnvelope:
    def test_surplus_becomes_income_envelope(self) -> None:
        period = _period("2025-03", 3, 2025)
        envelope = build_rollover_envelope(period, RolloverResult(rollover_amount=150.0))

        assert envelope is not None
        assert envelope.id == "rollover-2025-03"
        assert envelope.kind == "income"
        assert envelope.planned_amount == 150.0
        assert envelope.recurrence == "one_off"
        assert envelope.is_rollover
        assert not envelope.is_checked
        assert envelope.name == "Rollover 02/2025"

    def test_deficit_becomes_expense_envelope(self) -> None:
        period = _period("2025-01", 1, 2025)
        envelope = build_rollover_envelope(period, RolloverResult(rollover_amount=-42.5))

        assert envelope is not None
        assert envelope.kind == "expense"
        assert envelope.planned_amount == 42.5
        assert envelope.name == "Rollover 12/2024"

    def test_zero_rollover_builds_nothing(self) -> None:
        period = _period("2025-03", 3, 2025)
        assert build_rollover_envelope(period, RolloverResult()) is None

    def test_custom_name_format(self) -> None:
        period = _period("2025-03", 3, 2025)
        envelope = build_rollover_envelope(
            period, RolloverResult(rollover_amount=1.0), name_format="Carried from {year}-{month}"
        )
        assert envelope is not None
        assert envelope.name == "Carried from 2025-2"

    def test_with_rollover_prepends_and_replaces(self) -> None:
        period = _period("2025-03", 3, 2025)
        old = build_rollover_envelope(period, RolloverResult(rollover_amount=10.0))
        new = build_rollover_envelope(period, RolloverResult(rollover_amount=20.0))
        rent = make_envelope("rent")

        envelopes = with_rollover((rent, old), new)

        assert envelopes == (new, rent)
        assert with_rollover(envelopes, None) == (rent,)

    def test_rollover_ids_are_recognized(self) -> None:
        assert is_rollover_id(rollover_envelope_id("2025-03"))
        assert not is_rollover_id("rent")
        assert not is_rollover_id(PendingId())
