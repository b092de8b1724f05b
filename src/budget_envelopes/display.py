# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
Ordering and filtering of envelopes and transactions for the budget table.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Sequence

from budget_envelopes.calculator import effective_amount
from budget_envelopes.types import OUTFLOW_KINDS, DisplayItem, Envelope, Kind, Transaction

RECURRENCE_ORDER: dict[str, int] = {"fixed": 0, "variable": 0, "one_off": 1}
KIND_ORDER: dict[str, int] = {"income": 0, "saving": 1, "expense": 2}


def signed_amount(kind: Kind, amount: float) -> float:
    """Income adds to the balance, expense and saving subtract from it."""
    return amount if kind == "income" else -amount


def _envelope_sort_key(envelope: Envelope) -> tuple[int, int]:
    return (RECURRENCE_ORDER[envelope.recurrence], KIND_ORDER[envelope.kind])


def _transaction_sort_key(transaction: Transaction) -> tuple:
    return (transaction.occurred_at, KIND_ORDER[transaction.kind], transaction.name)


def order_for_display(
    envelopes: Sequence[Envelope],
    transactions: Sequence[Transaction],
) -> list[DisplayItem]:
    """
    Sort envelopes and transactions into one display sequence with a running
    balance.

    Envelopes come first: fixed and variable recurrence before one-off, and
    within each tier income, then saving, then expense. Ties keep input
    order. Transactions follow, by date, kind and name.

    Envelopes move the balance by their effective amount and free
    transactions by their amount. Expense and saving transactions allocated
    to an outflow envelope are already counted through it, so they repeat the
    running balance unchanged. The last balance therefore equals the period's
    ending balance.
    """
    items: list[DisplayItem] = []
    balance = 0.0

    for envelope in sorted(envelopes, key=_envelope_sort_key):
        amount = signed_amount(envelope.kind, effective_amount(envelope, transactions))
        balance += amount
        items.append(
            DisplayItem(
                item_type="envelope",
                item=envelope,
                signed_amount=amount,
                cumulative_balance=balance,
            )
        )

    outflow_envelope_ids = {e.id for e in envelopes if e.kind in OUTFLOW_KINDS}
    for transaction in sorted(transactions, key=_transaction_sort_key):
        amount = signed_amount(transaction.kind, transaction.amount)
        counted_in_envelope = (
            transaction.kind in OUTFLOW_KINDS
            and transaction.envelope_id in outflow_envelope_ids
        )
        if not counted_in_envelope:
            balance += amount
        items.append(
            DisplayItem(
                item_type="transaction",
                item=transaction,
                signed_amount=amount,
                cumulative_balance=balance,
            )
        )

    return items


# ─── Filtering ────────────────────────────────────────────────────────────────


def normalize_text(text: str) -> str:
    """Lower-case and strip accents so searches ignore diacritics."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.strip().lower()


def _matches(name: str, amount: float, search: str) -> bool:
    return search in normalize_text(name) or search in f"{amount:g}"


def filter_items(
    envelopes: Sequence[Envelope],
    transactions: Sequence[Transaction],
    only_unchecked: bool = True,
    search: str = "",
) -> tuple[list[Envelope], list[Transaction]]:
    """
    Return the envelopes and transactions visible under the given filters.

    An envelope matches the search on its name, its amount, or any of its
    allocated transactions. Allocated transactions are visible exactly when
    their envelope is. Free transactions are filtered on their own.
    """
    needle = normalize_text(search)

    visible_envelopes = [e for e in envelopes if not (only_unchecked and e.is_checked)]
    if needle:
        envelopes_with_match = {
            t.envelope_id
            for t in transactions
            if t.envelope_id is not None and _matches(t.name, t.amount, needle)
        }
        visible_envelopes = [
            e
            for e in visible_envelopes
            if _matches(e.name, e.planned_amount, needle) or e.id in envelopes_with_match
        ]

    visible_ids = {e.id for e in visible_envelopes}
    visible_transactions = []
    for transaction in transactions:
        if transaction.envelope_id is not None:
            if transaction.envelope_id in visible_ids:
                visible_transactions.append(transaction)
            continue
        if only_unchecked and transaction.is_checked:
            continue
        if needle and not _matches(transaction.name, transaction.amount, needle):
            continue
        visible_transactions.append(transaction)

    return visible_envelopes, visible_transactions
