# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from typing import Callable, Optional

from budget_envelopes.types import BudgetSnapshot

SnapshotReducer = Callable[[Optional[BudgetSnapshot]], BudgetSnapshot]
Subscriber = Callable[[BudgetSnapshot], None]


class SnapshotStore:
    """
    Owner of the in-memory snapshot of the open period.

    Readers get the current immutable snapshot. Writers go through
    :meth:`update`, which swaps in the whole snapshot returned by a reducer.
    No field is ever changed in place.
    """

    def __init__(self, snapshot: BudgetSnapshot | None = None) -> None:
        self._snapshot = snapshot
        self._error_message: str | None = None
        self._subscribers: list[Subscriber] = []

    @property
    def snapshot(self) -> BudgetSnapshot | None:
        return self._snapshot

    @property
    def error_message(self) -> str | None:
        """Last user-visible error, cleared by the next successful sync."""
        return self._error_message

    def update(self, reducer: SnapshotReducer) -> BudgetSnapshot:
        """Replace the snapshot with ``reducer(current)`` and notify subscribers."""
        snapshot = reducer(self._snapshot)
        self._snapshot = snapshot
        for subscriber in list(self._subscribers):
            subscriber(snapshot)
        return snapshot

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback run after every update. Returns an unsubscribe function."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def clear(self) -> None:
        """Drop the snapshot without notifying subscribers."""
        self._snapshot = None

    def set_error(self, message: str) -> None:
        self._error_message = message

    def clear_error(self) -> None:
        self._error_message = None
