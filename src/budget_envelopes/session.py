# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable

from budget_envelopes.calculator import compute_metrics, compute_realized_metrics, compute_totals
from budget_envelopes.cascade import (
    check_all_allocated,
    toggle_envelope,
    toggle_transaction,
    validate_snapshot,
)
from budget_envelopes.config import SessionConfig
from budget_envelopes.display import filter_items, order_for_display
from budget_envelopes.errors import InvariantViolationError, NotFoundError, SyncFailureError
from budget_envelopes.rollover import (
    build_rollover_envelope,
    resolve_rollover,
    with_rollover,
)
from budget_envelopes.state import SnapshotStore
from budget_envelopes.storage.interface import BudgetStorage
from budget_envelopes.types import (
    UPDATABLE_ENVELOPE_FIELDS,
    BudgetMetrics,
    BudgetPeriod,
    BudgetSnapshot,
    BudgetTotals,
    DisplayItem,
    EntityId,
    Envelope,
    EnvelopeDraft,
    PendingId,
    RealizedMetrics,
    RolloverResult,
    Transaction,
    TransactionDraft,
    is_pending,
)

logger = logging.getLogger("budget_envelopes.session")

StorageCall = Callable[[], Awaitable[Any]]
Reconciler = Callable[[BudgetSnapshot, list[Any]], BudgetSnapshot]

USER_MESSAGES: dict[str, str] = {
    "toggle_envelope": "Could not update the envelope's checked state.",
    "toggle_transaction": "Could not update the transaction's checked state.",
    "check_all_allocated": "Could not check the envelope's transactions.",
    "create_envelope": "Could not add the envelope.",
    "update_envelope": "Could not update the envelope.",
    "delete_envelope": "Could not delete the envelope.",
    "create_transaction": "Could not add the transaction.",
    "delete_transaction": "Could not delete the transaction.",
    "refresh_ending_balance": "Could not save the ending balance.",
}


class BudgetSession:
    """
    Optimistic, serialized editing session for one budget period.

    Design contract
    ---------------
    - Every mutation is computed from the current snapshot and applied to
      local state immediately, before any storage call is made.
    - Storage calls go through one FIFO queue per session. A request is only
      dispatched once every call of the previous request has settled.
      Within a request the target record's call goes first, then dependent
      calls in cascade order.
    - If a storage call fails, local state is discarded and reloaded, the
      user-visible error is recorded, and ``SyncFailureError`` is raised.
      Requests waiting in the queue behind a failure, or issued while any
      load is in flight, are dropped, because their optimistic state was
      discarded with the reload.
    - The synthetic rollover envelope is never sent to storage. Toggling it
      flips a local display flag only.

    Usage
    -----
    ::

        session = BudgetSession(storage, period_id="2025-03")
        await session.load()
        await session.toggle_envelope("groceries")
        print(session.totals.ending_balance)
    """

    def __init__(
        self,
        storage: BudgetStorage,
        period_id: str,
        config: SessionConfig | None = None,
        store: SnapshotStore | None = None,
    ) -> None:
        self._storage = storage
        self._period_id = period_id
        self._config = config if config is not None else SessionConfig()
        self._store = store if store is not None else SnapshotStore()
        self._queue = asyncio.Lock()
        self._generation = 0
        self._rollover = RolloverResult()

    # ─── Loading ──────────────────────────────────────────────────────────────

    async def load(self) -> BudgetSnapshot:
        """
        Pull the period from storage and replace all local state.

        The load waits its turn in the storage queue. Requests issued while it
        runs were applied to the snapshot it replaces, so they are dropped.

        Raises InvariantViolationError when stored records break the
        allocation rules.
        """
        async with self._queue:
            return await self._reload()

    async def _reload(self) -> BudgetSnapshot:
        """Load body. The caller must hold the queue."""
        period = await self._storage.get_period(self._period_id)
        envelopes = await self._storage.list_envelopes(self._period_id)
        transactions = await self._storage.list_transactions(self._period_id)
        periods = await self._storage.list_periods()

        snapshot = BudgetSnapshot(
            period=period,
            envelopes=tuple(envelopes),
            transactions=tuple(transactions),
        )
        validate_snapshot(snapshot)

        rollover = resolve_rollover(period, periods, self._config.period.pay_day_of_month)
        rollover_envelope = build_rollover_envelope(
            period, rollover, self._config.rollover_name_format
        )
        snapshot = snapshot.model_copy(
            update={"envelopes": with_rollover(snapshot.envelopes, rollover_envelope)}
        )

        self._rollover = rollover
        logger.debug(
            "Loaded period %s",
            self._period_id,
            extra={
                "period_id": self._period_id,
                "envelopes": len(envelopes),
                "transactions": len(transactions),
                "rollover": rollover.rollover_amount,
            },
        )
        loaded = self._store.update(lambda _: snapshot)
        self._generation += 1
        return loaded

    # ─── Read-only views ──────────────────────────────────────────────────────

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def snapshot(self) -> BudgetSnapshot:
        return self._require_snapshot()

    @property
    def rollover(self) -> RolloverResult:
        return self._rollover

    @property
    def error_message(self) -> str | None:
        return self._store.error_message

    @property
    def totals(self) -> BudgetTotals:
        snapshot = self._require_snapshot()
        return compute_totals(snapshot.envelopes, snapshot.transactions)

    @property
    def metrics(self) -> BudgetMetrics:
        snapshot = self._require_snapshot()
        return compute_metrics(
            snapshot.envelopes, snapshot.transactions, self._rollover.rollover_amount
        )

    @property
    def realized(self) -> RealizedMetrics:
        snapshot = self._require_snapshot()
        return compute_realized_metrics(snapshot.envelopes, snapshot.transactions)

    @property
    def display_items(self) -> list[DisplayItem]:
        snapshot = self._require_snapshot()
        return order_for_display(snapshot.envelopes, snapshot.transactions)

    def filtered(
        self,
        only_unchecked: bool | None = None,
        search: str = "",
    ) -> tuple[list[Envelope], list[Transaction]]:
        if only_unchecked is None:
            only_unchecked = self._config.display.show_only_unchecked
        snapshot = self._require_snapshot()
        return filter_items(snapshot.envelopes, snapshot.transactions, only_unchecked, search)

    # ─── Check-state cascade ──────────────────────────────────────────────────

    async def toggle_envelope(self, envelope_id: EntityId) -> bool:
        """
        Check or uncheck an envelope together with its allocated transactions.

        Returns False when the envelope is unknown or the request was dropped
        after an earlier failure.
        """
        snapshot = self._require_snapshot()
        envelope = snapshot.find_envelope(envelope_id)
        if envelope is not None and envelope.is_rollover:
            return self._toggle_rollover(envelope_id)

        self._reject_pending(envelope_id, "toggle_envelope")
        self._reject_pending_allocations(snapshot, envelope_id)

        result = toggle_envelope(envelope_id, snapshot)
        if result is None:
            logger.debug("Ignoring toggle of unknown envelope %s", envelope_id)
            return False

        self._store.update(
            lambda current: self._require(current).model_copy(
                update={
                    "envelopes": result.updated_envelopes,
                    "transactions": result.updated_transactions,
                }
            )
        )

        toggled = next(e for e in result.updated_envelopes if e.id == envelope_id)
        calls: list[StorageCall] = [
            partial(self._storage.set_envelope_checked, envelope_id, toggled.checked_at)
        ]
        calls.extend(
            partial(self._storage.set_transaction_checked, t.id, t.checked_at)
            for t in result.transactions_to_sync
        )
        return await self._sync("toggle_envelope", calls) is not None

    async def toggle_transaction(self, transaction_id: EntityId) -> bool:
        """
        Check or uncheck one transaction and re-derive its envelope.

        Returns False when the transaction is unknown or the request was
        dropped after an earlier failure.
        """
        self._reject_pending(transaction_id, "toggle_transaction")
        snapshot = self._require_snapshot()

        result = toggle_transaction(transaction_id, snapshot)
        if result is None:
            logger.debug("Ignoring toggle of unknown transaction %s", transaction_id)
            return False

        self._store.update(
            lambda current: self._require(current).model_copy(
                update={
                    "envelopes": result.updated_envelopes,
                    "transactions": result.updated_transactions,
                }
            )
        )

        toggled = next(t for t in result.updated_transactions if t.id == transaction_id)
        calls: list[StorageCall] = [
            partial(self._storage.set_transaction_checked, transaction_id, toggled.checked_at)
        ]
        if result.should_toggle_envelope and result.envelope_id is not None:
            parent = next(e for e in result.updated_envelopes if e.id == result.envelope_id)
            calls.append(
                partial(self._storage.set_envelope_checked, parent.id, parent.checked_at)
            )
        return await self._sync("toggle_transaction", calls) is not None

    async def check_all_allocated(self, envelope_id: EntityId) -> bool:
        """
        Check every allocated transaction of an envelope and the envelope.

        Returns False when there is nothing left to check.
        """
        snapshot = self._require_snapshot()
        self._reject_rollover(envelope_id, "check")
        self._reject_pending(envelope_id, "check_all_allocated")
        self._reject_pending_allocations(snapshot, envelope_id)

        before = snapshot.find_envelope(envelope_id)
        result = check_all_allocated(envelope_id, snapshot)
        if result is None or before is None:
            return False
        if before.is_checked and not result.transactions_to_sync:
            return False

        self._store.update(
            lambda current: self._require(current).model_copy(
                update={
                    "envelopes": result.updated_envelopes,
                    "transactions": result.updated_transactions,
                }
            )
        )

        calls: list[StorageCall] = []
        if not before.is_checked:
            checked = next(e for e in result.updated_envelopes if e.id == envelope_id)
            calls.append(
                partial(self._storage.set_envelope_checked, envelope_id, checked.checked_at)
            )
        calls.extend(
            partial(self._storage.set_transaction_checked, t.id, t.checked_at)
            for t in result.transactions_to_sync
        )
        return await self._sync("check_all_allocated", calls) is not None

    # ─── Record mutations ─────────────────────────────────────────────────────

    async def create_envelope(self, draft: EnvelopeDraft) -> Envelope | None:
        """
        Add an envelope optimistically under a pending id, then swap in the
        stored record once storage acknowledges it.
        """
        self._require_snapshot()
        placeholder = Envelope(id=PendingId(), period_id=self._period_id, **draft.model_dump())
        self._store.update(
            lambda current: self._require(current).model_copy(
                update={"envelopes": (*self._require(current).envelopes, placeholder)}
            )
        )

        def reconcile(snapshot: BudgetSnapshot, results: list[Any]) -> BudgetSnapshot:
            stored: Envelope = results[0]
            return snapshot.model_copy(
                update={
                    "envelopes": tuple(
                        stored if e.id == placeholder.id else e for e in snapshot.envelopes
                    )
                }
            )

        results = await self._sync(
            "create_envelope",
            [partial(self._storage.create_envelope, self._period_id, draft)],
            reconcile,
        )
        return results[0] if results else None

    async def update_envelope(self, envelope_id: EntityId, **changes: Any) -> bool:
        snapshot = self._require_snapshot()
        self._reject_rollover(envelope_id, "update")
        self._reject_pending(envelope_id, "update_envelope")
        envelope = snapshot.find_envelope(envelope_id)
        if envelope is None:
            raise NotFoundError("envelope", envelope_id)
        unknown = set(changes) - UPDATABLE_ENVELOPE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update envelope fields: {sorted(unknown)}")

        updated = Envelope.model_validate({**envelope.model_dump(), **changes})
        self._store.update(
            lambda current: self._require(current).model_copy(
                update={
                    "envelopes": tuple(
                        updated if e.id == envelope_id else e
                        for e in self._require(current).envelopes
                    )
                }
            )
        )
        return (
            await self._sync(
                "update_envelope",
                [partial(self._storage.update_envelope, envelope_id, changes)],
            )
            is not None
        )

    async def delete_envelope(self, envelope_id: EntityId) -> bool:
        """Delete an envelope. Its allocated transactions become free."""
        snapshot = self._require_snapshot()
        self._reject_rollover(envelope_id, "delete")
        self._reject_pending(envelope_id, "delete_envelope")
        if snapshot.find_envelope(envelope_id) is None:
            raise NotFoundError("envelope", envelope_id)

        def remove(current: BudgetSnapshot | None) -> BudgetSnapshot:
            current = self._require(current)
            return current.model_copy(
                update={
                    "envelopes": tuple(e for e in current.envelopes if e.id != envelope_id),
                    "transactions": tuple(
                        t.model_copy(update={"envelope_id": None})
                        if t.envelope_id == envelope_id
                        else t
                        for t in current.transactions
                    ),
                }
            )

        self._store.update(remove)
        return (
            await self._sync(
                "delete_envelope", [partial(self._storage.delete_envelope, envelope_id)]
            )
            is not None
        )

    async def create_transaction(self, draft: TransactionDraft) -> Transaction | None:
        """
        Add a transaction optimistically under a pending id.

        The transaction cannot take part in a cascade until storage returns
        its durable id, which replaces the placeholder in a single update.
        """
        snapshot = self._require_snapshot()
        if draft.envelope_id is not None:
            self._reject_rollover(draft.envelope_id, "allocate to")
            if snapshot.find_envelope(draft.envelope_id) is None:
                raise InvariantViolationError(
                    f"Envelope '{draft.envelope_id}' is not part of period '{self._period_id}'."
                )

        placeholder = Transaction(
            id=PendingId(),
            period_id=self._period_id,
            checked_at=None,
            **draft.model_dump(),
        )
        self._store.update(
            lambda current: self._require(current).model_copy(
                update={"transactions": (*self._require(current).transactions, placeholder)}
            )
        )

        def reconcile(snapshot: BudgetSnapshot, results: list[Any]) -> BudgetSnapshot:
            stored: Transaction = results[0]
            return snapshot.model_copy(
                update={
                    "transactions": tuple(
                        stored if t.id == placeholder.id else t for t in snapshot.transactions
                    )
                }
            )

        results = await self._sync(
            "create_transaction",
            [partial(self._storage.create_transaction, self._period_id, draft)],
            reconcile,
        )
        return results[0] if results else None

    async def delete_transaction(self, transaction_id: EntityId) -> bool:
        snapshot = self._require_snapshot()
        self._reject_pending(transaction_id, "delete_transaction")
        if snapshot.find_transaction(transaction_id) is None:
            raise NotFoundError("transaction", transaction_id)

        self._store.update(
            lambda current: self._require(current).model_copy(
                update={
                    "transactions": tuple(
                        t for t in self._require(current).transactions if t.id != transaction_id
                    )
                }
            )
        )
        return (
            await self._sync(
                "delete_transaction",
                [partial(self._storage.delete_transaction, transaction_id)],
            )
            is not None
        )

    async def refresh_ending_balance(self) -> float:
        """
        Compute the ending balance, rollover included, and persist it as the
        period's cached ending balance for the next period to pick up.
        """
        snapshot = self._require_snapshot()
        ending_balance = compute_totals(snapshot.envelopes, snapshot.transactions).ending_balance

        def reconcile(current: BudgetSnapshot, results: list[Any]) -> BudgetSnapshot:
            period: BudgetPeriod = results[0]
            return current.model_copy(update={"period": period})

        await self._sync(
            "refresh_ending_balance",
            [partial(self._storage.save_ending_balance, self._period_id, ending_balance)],
            reconcile,
        )
        return ending_balance

    # ─── Queue ────────────────────────────────────────────────────────────────

    async def _sync(
        self,
        operation: str,
        calls: Sequence[StorageCall],
        reconcile: Reconciler | None = None,
    ) -> list[Any] | None:
        """
        Run ``calls`` in order once every earlier request has settled.

        Returns the call results, or None when the request was dropped
        because local state was reloaded while it waited.
        """
        generation = self._generation
        async with self._queue:
            if generation != self._generation:
                logger.warning(
                    "Dropping queued %s request issued before a reload",
                    operation,
                    extra={"operation": operation, "period_id": self._period_id},
                )
                return None

            logger.debug(
                "Dispatching %s with %d storage call(s)",
                operation,
                len(calls),
                extra={"operation": operation, "period_id": self._period_id},
            )
            results: list[Any] = []
            try:
                for call in calls:
                    results.append(await call())
            except Exception as exc:
                await self._rollback(operation, exc)

            if reconcile is not None:
                self._store.update(lambda current: reconcile(self._require(current), results))
            self._store.clear_error()
            return results

    async def _rollback(self, operation: str, cause: Exception) -> None:
        """
        Discard local state, reload it from storage and raise SyncFailureError.

        When the reload fails too, the snapshot is cleared and every view
        raises until :meth:`load` succeeds.
        """
        message = USER_MESSAGES.get(operation, "Could not save your changes.")
        logger.error(
            "Storage call for %s failed; reloading period %s",
            operation,
            self._period_id,
            exc_info=cause,
            extra={"operation": operation, "period_id": self._period_id},
        )
        self._generation += 1
        try:
            await self._reload()
        except Exception:
            logger.exception("Reload of period %s failed; clearing local state", self._period_id)
            self._store.clear()
        else:
            logger.warning(
                "Local state for period %s rolled back", self._period_id,
                extra={"operation": operation, "period_id": self._period_id},
            )
        self._store.set_error(message)
        raise SyncFailureError(operation, message) from cause

    # ─── Private helpers ──────────────────────────────────────────────────────

    def _toggle_rollover(self, envelope_id: EntityId) -> bool:
        """Flip the rollover envelope locally. Nothing is sent to storage."""
        snapshot = self._require_snapshot()
        rollover = snapshot.find_envelope(envelope_id)
        if rollover is None:
            return False

        checked_at = None if rollover.is_checked else datetime.now(tz=timezone.utc)
        self._store.update(
            lambda current: self._require(current).model_copy(
                update={
                    "envelopes": tuple(
                        e.model_copy(update={"checked_at": checked_at}) if e.id == envelope_id else e
                        for e in self._require(current).envelopes
                    )
                }
            )
        )
        return True

    def _require_snapshot(self) -> BudgetSnapshot:
        return self._require(self._store.snapshot)

    @staticmethod
    def _require(snapshot: BudgetSnapshot | None) -> BudgetSnapshot:
        if snapshot is None:
            raise RuntimeError("Budget session is not loaded. Call load() first.")
        return snapshot

    @staticmethod
    def _reject_pending(entity_id: EntityId, operation: str) -> None:
        if is_pending(entity_id):
            raise InvariantViolationError(
                f"Cannot {operation} on '{entity_id}': it has not been persisted yet."
            )

    def _reject_rollover(self, envelope_id: EntityId, action: str) -> None:
        envelope = self._require_snapshot().find_envelope(envelope_id)
        if envelope is not None and envelope.is_rollover:
            raise InvariantViolationError(
                f"Cannot {action} the rollover envelope '{envelope_id}'."
            )

    @staticmethod
    def _reject_pending_allocations(snapshot: BudgetSnapshot, envelope_id: EntityId) -> None:
        pending = [t.id for t in snapshot.allocated_to(envelope_id) if is_pending(t.id)]
        if pending:
            raise InvariantViolationError(
                f"Envelope '{envelope_id}' has {len(pending)} transaction(s) "
                "that have not been persisted yet."
            )
