# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
budget-envelopes: envelope budgeting with consistent check state.

Quick start::

    import asyncio
    from datetime import date

    from budget_envelopes import (
        BudgetPeriod, BudgetSession, Envelope, MemoryStorage, TransactionDraft,
    )

    storage = MemoryStorage()
    storage.add_period(BudgetPeriod(id="2025-03", month=3, year=2025))
    storage.add_envelope(Envelope(id="groceries", period_id="2025-03", name="Groceries",
                                  planned_amount=400.0, kind="expense", recurrence="variable"))

    async def main() -> None:
        session = BudgetSession(storage, period_id="2025-03")
        await session.load()

        await session.create_transaction(
            TransactionDraft(name="Bakery", amount=12.5, kind="expense",
                             occurred_at=date(2025, 3, 2), envelope_id="groceries")
        )
        await session.toggle_envelope("groceries")
        print(session.totals.ending_balance)

    asyncio.run(main())
"""

from budget_envelopes.calculator import (
    allocated_total,
    compute_metrics,
    compute_realized_metrics,
    compute_totals,
    consumption_by_envelope,
    effective_amount,
    envelope_consumption,
    total_expenses,
    total_income,
)
from budget_envelopes.cascade import (
    check_all_allocated,
    toggle_envelope,
    toggle_transaction,
    validate_snapshot,
)
from budget_envelopes.config import DisplayConfig, PeriodConfig, SessionConfig
from budget_envelopes.display import filter_items, normalize_text, order_for_display, signed_amount
from budget_envelopes.errors import (
    BudgetEnvelopesError,
    ConfigurationError,
    InvariantViolationError,
    NotFoundError,
    SyncFailureError,
)
from budget_envelopes.period import (
    format_period,
    is_in_current_period,
    is_past_period,
    normalize_pay_day,
    period_window,
    resolve_period,
)
from budget_envelopes.rollover import (
    build_rollover_envelope,
    is_rollover_id,
    link_previous_periods,
    resolve_rollover,
    with_rollover,
)
from budget_envelopes.session import BudgetSession
from budget_envelopes.state import SnapshotStore
from budget_envelopes.storage import BudgetStorage, MemoryStorage
from budget_envelopes.types import (
    BudgetMetrics,
    BudgetPeriod,
    BudgetSnapshot,
    BudgetTotals,
    DisplayItem,
    EntityId,
    Envelope,
    EnvelopeConsumption,
    EnvelopeDraft,
    EnvelopeToggleResult,
    Kind,
    PendingId,
    PeriodLabel,
    PeriodWindow,
    RealizedMetrics,
    Recurrence,
    RolloverResult,
    Transaction,
    TransactionDraft,
    TransactionToggleResult,
    is_pending,
)

__all__ = [
    # Core class
    "BudgetSession",
    "SnapshotStore",
    # Types
    "Kind",
    "Recurrence",
    "EntityId",
    "PendingId",
    "is_pending",
    "PeriodLabel",
    "PeriodWindow",
    "BudgetPeriod",
    "Envelope",
    "EnvelopeDraft",
    "Transaction",
    "TransactionDraft",
    "BudgetSnapshot",
    "BudgetTotals",
    "BudgetMetrics",
    "RealizedMetrics",
    "EnvelopeConsumption",
    "RolloverResult",
    "EnvelopeToggleResult",
    "TransactionToggleResult",
    "DisplayItem",
    # Config
    "SessionConfig",
    "PeriodConfig",
    "DisplayConfig",
    # Errors
    "BudgetEnvelopesError",
    "NotFoundError",
    "InvariantViolationError",
    "SyncFailureError",
    "ConfigurationError",
    # Storage
    "BudgetStorage",
    "MemoryStorage",
    # Periods
    "normalize_pay_day",
    "resolve_period",
    "period_window",
    "is_in_current_period",
    "is_past_period",
    "format_period",
    # Calculation
    "allocated_total",
    "effective_amount",
    "total_income",
    "total_expenses",
    "compute_totals",
    "compute_metrics",
    "compute_realized_metrics",
    "envelope_consumption",
    "consumption_by_envelope",
    # Rollover
    "resolve_rollover",
    "build_rollover_envelope",
    "with_rollover",
    "is_rollover_id",
    "link_previous_periods",
    # Cascade
    "toggle_envelope",
    "toggle_transaction",
    "check_all_allocated",
    "validate_snapshot",
    # Display
    "order_for_display",
    "filter_items",
    "normalize_text",
    "signed_amount",
]
