# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Check-state cascade between envelopes and their allocated transactions.

Every function here is a pure reducer: it reads a whole BudgetSnapshot and
returns new collections. Records are frozen, so unchanged records are shared
with the input and changed ones are fresh copies.

Rules
-----
- Checking an envelope checks all of its allocated transactions; unchecking
  it unchecks them all.
- Unchecking an allocated transaction unchecks its parent envelope.
- Checking the last unchecked transaction of an envelope checks the
  envelope. Partial completion never does.
- The synthetic rollover envelope takes no part in a cascade.
"""

from __future__ import annotations

from datetime import datetime, timezone

from budget_envelopes.errors import InvariantViolationError
from budget_envelopes.types import (
    BudgetSnapshot,
    EntityId,
    EnvelopeToggleResult,
    TransactionToggleResult,
)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def toggle_envelope(
    envelope_id: EntityId,
    snapshot: BudgetSnapshot,
    now: datetime | None = None,
) -> EnvelopeToggleResult | None:
    """
    Flip an envelope's checked state and cascade it to its transactions.

    Returns None when the envelope does not exist or is the rollover envelope.
    ``transactions_to_sync`` lists exactly the transactions whose state
    changed, in snapshot order.
    """
    envelope = snapshot.find_envelope(envelope_id)
    if envelope is None or envelope.is_rollover:
        return None

    if now is None:
        now = _utcnow()
    is_checking = envelope.checked_at is None
    checked_at = now if is_checking else None

    updated_envelopes = tuple(
        e.model_copy(update={"checked_at": checked_at}) if e.id == envelope_id else e
        for e in snapshot.envelopes
    )

    updated_transactions = []
    transactions_to_sync = []
    for transaction in snapshot.transactions:
        if transaction.envelope_id == envelope_id and transaction.is_checked != is_checking:
            transaction = transaction.model_copy(update={"checked_at": checked_at})
            transactions_to_sync.append(transaction)
        updated_transactions.append(transaction)

    return EnvelopeToggleResult(
        is_checking=is_checking,
        envelope_id=envelope_id,
        updated_envelopes=updated_envelopes,
        updated_transactions=tuple(updated_transactions),
        transactions_to_sync=tuple(transactions_to_sync),
    )


def toggle_transaction(
    transaction_id: EntityId,
    snapshot: BudgetSnapshot,
    now: datetime | None = None,
) -> TransactionToggleResult | None:
    """
    Flip a transaction's checked state and re-derive its parent envelope.

    Returns None when the transaction does not exist.
    """
    target = snapshot.find_transaction(transaction_id)
    if target is None:
        return None

    if now is None:
        now = _utcnow()
    is_checking = target.checked_at is None
    checked_at = now if is_checking else None

    updated_transactions = tuple(
        t.model_copy(update={"checked_at": checked_at}) if t.id == transaction_id else t
        for t in snapshot.transactions
    )

    updated_envelopes = snapshot.envelopes
    should_toggle_envelope = False

    parent = snapshot.find_envelope(target.envelope_id) if target.envelope_id is not None else None
    if parent is not None and not parent.is_rollover:
        next_parent_checked_at = parent.checked_at
        if not is_checking and parent.is_checked:
            next_parent_checked_at = None
            should_toggle_envelope = True
        elif is_checking and not parent.is_checked:
            siblings = [t for t in updated_transactions if t.envelope_id == parent.id]
            if all(t.is_checked for t in siblings):
                next_parent_checked_at = now
                should_toggle_envelope = True

        if should_toggle_envelope:
            updated_envelopes = tuple(
                e.model_copy(update={"checked_at": next_parent_checked_at}) if e.id == parent.id else e
                for e in snapshot.envelopes
            )

    return TransactionToggleResult(
        is_checking=is_checking,
        transaction_id=transaction_id,
        updated_transactions=updated_transactions,
        updated_envelopes=updated_envelopes,
        should_toggle_envelope=should_toggle_envelope,
        envelope_id=target.envelope_id,
    )


def check_all_allocated(
    envelope_id: EntityId,
    snapshot: BudgetSnapshot,
    now: datetime | None = None,
) -> EnvelopeToggleResult | None:
    """
    Check every allocated transaction of an envelope, and the envelope itself.

    Unlike :func:`toggle_envelope` this never unchecks anything; an already
    checked envelope keeps its original timestamp.
    """
    envelope = snapshot.find_envelope(envelope_id)
    if envelope is None or envelope.is_rollover:
        return None

    if now is None:
        now = _utcnow()

    updated_envelopes = tuple(
        e.model_copy(update={"checked_at": e.checked_at or now}) if e.id == envelope_id else e
        for e in snapshot.envelopes
    )

    updated_transactions = []
    transactions_to_sync = []
    for transaction in snapshot.transactions:
        if transaction.envelope_id == envelope_id and not transaction.is_checked:
            transaction = transaction.model_copy(update={"checked_at": now})
            transactions_to_sync.append(transaction)
        updated_transactions.append(transaction)

    return EnvelopeToggleResult(
        is_checking=True,
        envelope_id=envelope_id,
        updated_envelopes=updated_envelopes,
        updated_transactions=tuple(updated_transactions),
        transactions_to_sync=tuple(transactions_to_sync),
    )


def validate_snapshot(snapshot: BudgetSnapshot) -> None:
    """
    Reject snapshots that break the allocation rules.

    Raises InvariantViolationError when a record belongs to another period,
    a rollover envelope appears among stored envelopes, or a transaction is
    allocated to an envelope missing from the period.
    """
    period_id = snapshot.period.id
    envelope_periods: dict[EntityId, str] = {}

    for envelope in snapshot.envelopes:
        if envelope.is_rollover:
            raise InvariantViolationError(
                f"Rollover envelope '{envelope.id}' must not be stored."
            )
        if envelope.period_id != period_id:
            raise InvariantViolationError(
                f"Envelope '{envelope.id}' belongs to period '{envelope.period_id}', "
                f"not '{period_id}'."
            )
        envelope_periods[envelope.id] = envelope.period_id

    for transaction in snapshot.transactions:
        if transaction.period_id != period_id:
            raise InvariantViolationError(
                f"Transaction '{transaction.id}' belongs to period "
                f"'{transaction.period_id}', not '{period_id}'."
            )
        if transaction.envelope_id is None:
            continue
        if transaction.envelope_id not in envelope_periods:
            raise InvariantViolationError(
                f"Transaction '{transaction.id}' is allocated to envelope "
                f"'{transaction.envelope_id}', which is not part of period '{period_id}'."
            )
