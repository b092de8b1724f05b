# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Abstract base class that every persistence backend must implement.

Every method is a suspension point: a BudgetSession awaits them one at a time
through its FIFO queue, after it has already applied the optimistic change
locally.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from budget_envelopes.types import (
    BudgetPeriod,
    Envelope,
    EnvelopeDraft,
    Transaction,
    TransactionDraft,
)


class BudgetStorage(ABC):
    """
    Persistence contract for periods, envelopes and transactions.

    Implementors may back this with a REST API, SQL, or any other store.
    Lookups of unknown ids raise NotFoundError. Synthetic rollover envelopes
    are never handed to a backend.
    """

    # ─── Periods ──────────────────────────────────────────────────────────────

    @abstractmethod
    async def get_period(self, period_id: str) -> BudgetPeriod:
        ...

    @abstractmethod
    async def list_periods(self) -> list[BudgetPeriod]:
        """Return every period of the current user, in any order."""
        ...

    @abstractmethod
    async def save_ending_balance(self, period_id: str, ending_balance: float) -> BudgetPeriod:
        ...

    # ─── Envelopes ────────────────────────────────────────────────────────────

    @abstractmethod
    async def list_envelopes(self, period_id: str) -> list[Envelope]:
        ...

    @abstractmethod
    async def create_envelope(self, period_id: str, draft: EnvelopeDraft) -> Envelope:
        """Persist a new envelope and return it with its durable id."""
        ...

    @abstractmethod
    async def update_envelope(self, envelope_id: str, changes: dict[str, Any]) -> Envelope:
        ...

    @abstractmethod
    async def delete_envelope(self, envelope_id: str) -> None:
        """Delete an envelope. Its allocated transactions become free."""
        ...

    @abstractmethod
    async def set_envelope_checked(
        self,
        envelope_id: str,
        checked_at: datetime | None,
    ) -> Envelope:
        ...

    # ─── Transactions ─────────────────────────────────────────────────────────

    @abstractmethod
    async def list_transactions(self, period_id: str) -> list[Transaction]:
        ...

    @abstractmethod
    async def create_transaction(self, period_id: str, draft: TransactionDraft) -> Transaction:
        """Persist a new, unchecked transaction and return it with its durable id."""
        ...

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> None:
        ...

    @abstractmethod
    async def set_transaction_checked(
        self,
        transaction_id: str,
        checked_at: datetime | None,
    ) -> Transaction:
        ...
