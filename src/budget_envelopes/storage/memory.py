# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from budget_envelopes.errors import InvariantViolationError, NotFoundError
from budget_envelopes.storage.interface import BudgetStorage
from budget_envelopes.types import (
    UPDATABLE_ENVELOPE_FIELDS,
    BudgetPeriod,
    Envelope,
    EnvelopeDraft,
    Transaction,
    TransactionDraft,
)


class MemoryStorage(BudgetStorage):
    """
    In-process memory store, suitable for single-user processes and testing.

    All state is lost when the process exits. Records are frozen models, so
    they are shared with callers without copying.
    """

    def __init__(self) -> None:
        self._periods: dict[str, BudgetPeriod] = {}
        self._envelopes: dict[str, Envelope] = {}
        self._transactions: dict[str, Transaction] = {}

    # ─── Seeding ──────────────────────────────────────────────────────────────

    def add_period(self, period: BudgetPeriod) -> BudgetPeriod:
        self._periods[period.id] = period
        return period

    def add_envelope(self, envelope: Envelope) -> Envelope:
        if envelope.is_rollover:
            raise InvariantViolationError("Rollover envelopes cannot be stored.")
        self._envelopes[str(envelope.id)] = envelope
        return envelope

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions[str(transaction.id)] = transaction
        return transaction

    # ─── Periods ──────────────────────────────────────────────────────────────

    async def get_period(self, period_id: str) -> BudgetPeriod:
        period = self._periods.get(period_id)
        if period is None:
            raise NotFoundError("period", period_id)
        return period

    async def list_periods(self) -> list[BudgetPeriod]:
        return list(self._periods.values())

    async def save_ending_balance(self, period_id: str, ending_balance: float) -> BudgetPeriod:
        period = await self.get_period(period_id)
        updated = period.model_copy(update={"cached_ending_balance": ending_balance})
        self._periods[period_id] = updated
        return updated

    # ─── Envelopes ────────────────────────────────────────────────────────────

    async def list_envelopes(self, period_id: str) -> list[Envelope]:
        return [e for e in self._envelopes.values() if e.period_id == period_id]

    async def create_envelope(self, period_id: str, draft: EnvelopeDraft) -> Envelope:
        await self.get_period(period_id)
        envelope = Envelope(id=str(uuid4()), period_id=period_id, **draft.model_dump())
        self._envelopes[envelope.id] = envelope
        return envelope

    async def update_envelope(self, envelope_id: str, changes: dict[str, Any]) -> Envelope:
        envelope = self._require_envelope(envelope_id)
        unknown = set(changes) - UPDATABLE_ENVELOPE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update envelope fields: {sorted(unknown)}")
        updated = Envelope.model_validate({**envelope.model_dump(), **changes})
        self._envelopes[envelope_id] = updated
        return updated

    async def delete_envelope(self, envelope_id: str) -> None:
        self._require_envelope(envelope_id)
        del self._envelopes[envelope_id]
        for transaction_id, transaction in list(self._transactions.items()):
            if transaction.envelope_id == envelope_id:
                self._transactions[transaction_id] = transaction.model_copy(
                    update={"envelope_id": None}
                )

    async def set_envelope_checked(
        self,
        envelope_id: str,
        checked_at: datetime | None,
    ) -> Envelope:
        envelope = self._require_envelope(envelope_id)
        updated = envelope.model_copy(update={"checked_at": checked_at})
        self._envelopes[envelope_id] = updated
        return updated

    # ─── Transactions ─────────────────────────────────────────────────────────

    async def list_transactions(self, period_id: str) -> list[Transaction]:
        return [t for t in self._transactions.values() if t.period_id == period_id]

    async def create_transaction(self, period_id: str, draft: TransactionDraft) -> Transaction:
        await self.get_period(period_id)
        if draft.envelope_id is not None:
            envelope = self._require_envelope(draft.envelope_id)
            if envelope.period_id != period_id:
                raise InvariantViolationError(
                    f"Envelope '{envelope.id}' is not part of period '{period_id}'."
                )
        transaction = Transaction(
            id=str(uuid4()),
            period_id=period_id,
            checked_at=None,
            **draft.model_dump(),
        )
        self._transactions[transaction.id] = transaction
        return transaction

    async def delete_transaction(self, transaction_id: str) -> None:
        if self._transactions.pop(transaction_id, None) is None:
            raise NotFoundError("transaction", transaction_id)

    async def set_transaction_checked(
        self,
        transaction_id: str,
        checked_at: datetime | None,
    ) -> Transaction:
        transaction = self._transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        updated = transaction.model_copy(update={"checked_at": checked_at})
        self._transactions[transaction_id] = updated
        return updated

    # ─── Private helpers ──────────────────────────────────────────────────────

    def _require_envelope(self, envelope_id: str) -> Envelope:
        envelope = self._envelopes.get(envelope_id)
        if envelope is None:
            raise NotFoundError("envelope", envelope_id)
        return envelope
