# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

"""
basic_budget.py

Demonstrates one month of envelope budgeting:
  1. Seed a memory store with February's ending balance and March's envelopes.
  2. Load March, which picks up February's balance as a rollover.
  3. Record purchases and check them off.
  4. Print the budget table and persist March's ending balance.

Run with:  python examples/basic_budget.py
(with budget-envelopes installed)
"""

import asyncio
import logging
from datetime import date

from budget_envelopes import (
    BudgetPeriod,
    BudgetSession,
    Envelope,
    MemoryStorage,
    PeriodConfig,
    SessionConfig,
    TransactionDraft,
    format_period,
)

logging.basicConfig(level=logging.INFO)

# ─── Setup ────────────────────────────────────────────────────────────────────

storage = MemoryStorage()
storage.add_period(BudgetPeriod(id="2025-02", month=2, year=2025, cached_ending_balance=212.40))
storage.add_period(BudgetPeriod(id="2025-03", month=3, year=2025))

for envelope_id, name, planned_amount, kind, recurrence in [
    ("salary", "Salary", 3200.00, "income", "fixed"),
    ("rent", "Rent", 1150.00, "expense", "fixed"),
    ("groceries", "Groceries", 420.00, "expense", "variable"),
    ("savings", "Savings", 300.00, "saving", "fixed"),
    ("concert", "Concert tickets", 90.00, "expense", "one_off"),
]:
    storage.add_envelope(
        Envelope(
            id=envelope_id,
            period_id="2025-03",
            name=name,
            planned_amount=planned_amount,
            kind=kind,
            recurrence=recurrence,
        )
    )

config = SessionConfig(period=PeriodConfig(pay_day_of_month=25))


async def main() -> None:
    session = BudgetSession(storage, period_id="2025-03", config=config)
    await session.load()

    print(f"Period 03/2025 runs {format_period(3, 2025, config.period.pay_day_of_month)}")
    print(f"Rollover from 02/2025: {session.rollover.rollover_amount:.2f}")

    # ─── Record purchases ─────────────────────────────────────────────────────

    purchases = [
        ("Market", 64.20, "groceries", date(2025, 2, 27)),
        ("Bakery", 12.80, "groceries", date(2025, 3, 3)),
        ("Cinema", 18.00, None, date(2025, 3, 8)),
    ]
    for name, amount, envelope_id, occurred_at in purchases:
        await session.create_transaction(
            TransactionDraft(
                name=name,
                amount=amount,
                kind="expense",
                occurred_at=occurred_at,
                envelope_id=envelope_id,
            )
        )

    # ─── Check things off ─────────────────────────────────────────────────────

    await session.toggle_envelope("rent")
    await session.check_all_allocated("groceries")

    # ─── Budget table ─────────────────────────────────────────────────────────

    print("\n── Budget table ──────────────────────────────────────")
    for item in session.display_items:
        mark = "x" if item.item.is_checked else " "
        print(
            f"  [{mark}] {item.item.name:<18} {item.signed_amount:>9.2f}"
            f"  balance={item.cumulative_balance:>9.2f}"
        )
    print("──────────────────────────────────────────────────────")

    metrics = session.metrics
    realized = session.realized
    print(f"  Income      : {metrics.total_income:.2f}")
    print(f"  Rollover    : {metrics.rollover:.2f}")
    print(f"  Expenses    : {metrics.total_expenses:.2f}")
    print(f"  Remaining   : {metrics.remaining:.2f}")
    print(f"  Completion  : {realized.completion_percentage:.1f}%")

    ending_balance = await session.refresh_ending_balance()
    print(f"\nSaved ending balance {ending_balance:.2f} for the next period.")


if __name__ == "__main__":
    asyncio.run(main())
