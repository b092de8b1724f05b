# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Shared fixtures for budget-envelopes tests."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Any

import pytest

from budget_envelopes.session import BudgetSession
from budget_envelopes.storage.memory import MemoryStorage
from budget_envelopes.types import BudgetPeriod, BudgetSnapshot, Envelope, Transaction

PERIOD_ID = "2025-03"
CHECKED_AT = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_envelope(
    envelope_id: str,
    kind: str = "expense",
    planned_amount: float = 100.0,
    **overrides: Any,
) -> Envelope:
    fields: dict[str, Any] = {
        "id": envelope_id,
        "period_id": PERIOD_ID,
        "name": envelope_id.capitalize(),
        "planned_amount": planned_amount,
        "kind": kind,
    }
    fields.update(overrides)
    return Envelope(**fields)


def make_transaction(
    transaction_id: str,
    amount: float,
    kind: str = "expense",
    envelope_id: str | None = None,
    **overrides: Any,
) -> Transaction:
    fields: dict[str, Any] = {
        "id": transaction_id,
        "period_id": PERIOD_ID,
        "envelope_id": envelope_id,
        "name": transaction_id.capitalize(),
        "amount": amount,
        "kind": kind,
        "occurred_at": date(2025, 3, 5),
    }
    fields.update(overrides)
    return Transaction(**fields)


class RecordingStorage(MemoryStorage):
    """
    MemoryStorage that records every write and can be told to fail.

    ``fail_on`` names a method; its next call raises RuntimeError.
    ``gate`` when set holds every write until the event is set.
    ``read_gate`` and ``fail_reads`` do the same for loading, through
    ``list_periods``. Reads are not recorded.
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, Any]] = []
        self.fail_on: str | None = None
        self.gate: asyncio.Event | None = None
        self.read_gate: asyncio.Event | None = None
        self.fail_reads = False

    async def _record(self, method: str, target: Any) -> None:
        self.calls.append((method, target))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_on == method:
            self.fail_on = None
            raise RuntimeError(f"{method} failed")

    async def list_periods(self):
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.fail_reads:
            raise RuntimeError("list_periods failed")
        return await super().list_periods()

    async def set_envelope_checked(self, envelope_id, checked_at):
        await self._record("set_envelope_checked", envelope_id)
        return await super().set_envelope_checked(envelope_id, checked_at)

    async def set_transaction_checked(self, transaction_id, checked_at):
        await self._record("set_transaction_checked", transaction_id)
        return await super().set_transaction_checked(transaction_id, checked_at)

    async def create_envelope(self, period_id, draft):
        await self._record("create_envelope", draft.name)
        return await super().create_envelope(period_id, draft)

    async def create_transaction(self, period_id, draft):
        await self._record("create_transaction", draft.name)
        return await super().create_transaction(period_id, draft)

    async def update_envelope(self, envelope_id, changes):
        await self._record("update_envelope", envelope_id)
        return await super().update_envelope(envelope_id, changes)

    async def delete_envelope(self, envelope_id):
        await self._record("delete_envelope", envelope_id)
        return await super().delete_envelope(envelope_id)

    async def delete_transaction(self, transaction_id):
        await self._record("delete_transaction", transaction_id)
        return await super().delete_transaction(transaction_id)

    async def save_ending_balance(self, period_id, ending_balance):
        await self._record("save_ending_balance", period_id)
        return await super().save_ending_balance(period_id, ending_balance)


@pytest.fixture
def period() -> BudgetPeriod:
    return BudgetPeriod(id=PERIOD_ID, month=3, year=2025)


@pytest.fixture
def snapshot(period: BudgetPeriod) -> BudgetSnapshot:
    """Salary, groceries with two purchases, rent with none, and a free coffee."""
    return BudgetSnapshot(
        period=period,
        envelopes=(
            make_envelope("salary", kind="income", planned_amount=5000.0),
            make_envelope("groceries", planned_amount=400.0, recurrence="variable"),
            make_envelope("rent", planned_amount=1200.0),
        ),
        transactions=(
            make_transaction("bakery", 20.0, envelope_id="groceries"),
            make_transaction("market", 80.0, envelope_id="groceries"),
            make_transaction("coffee", 4.5),
        ),
    )


@pytest.fixture
def storage(snapshot: BudgetSnapshot) -> RecordingStorage:
    """A RecordingStorage seeded with February (ending 150.0) and the snapshot."""
    backend = RecordingStorage()
    backend.add_period(
        BudgetPeriod(id="2025-02", month=2, year=2025, cached_ending_balance=150.0)
    )
    backend.add_period(snapshot.period)
    for envelope in snapshot.envelopes:
        backend.add_envelope(envelope)
    for transaction in snapshot.transactions:
        backend.add_transaction(transaction)
    return backend


@pytest.fixture
def session(storage: RecordingStorage) -> BudgetSession:
    """A loaded BudgetSession over the seeded storage."""
    budget_session = BudgetSession(storage, period_id=PERIOD_ID)
    asyncio.run(budget_session.load())
    return budget_session
