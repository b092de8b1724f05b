# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

# ─── Kinds ────────────────────────────────────────────────────────────────────

Kind = Literal["income", "expense", "saving"]
Recurrence = Literal["fixed", "variable", "one_off"]

OUTFLOW_KINDS: frozenset[str] = frozenset({"expense", "saving"})

# Fields an envelope may change after creation.
UPDATABLE_ENVELOPE_FIELDS: frozenset[str] = frozenset({"name", "planned_amount", "kind", "recurrence"})

# ─── Identifiers ──────────────────────────────────────────────────────────────


class PendingId(BaseModel, frozen=True):
    """
    Placeholder identifier for a record the store has not acknowledged yet.

    Never equal to a durable (string) id. Replaced by the durable id in the
    same state update that receives the storage response.
    """

    key: UUID = Field(default_factory=uuid4)

    def __str__(self) -> str:
        return f"pending-{self.key}"


EntityId = Union[str, PendingId]


def is_pending(entity_id: object) -> bool:
    """Return True when ``entity_id`` is a placeholder, not a durable id."""
    return isinstance(entity_id, PendingId)


# ─── Period ───────────────────────────────────────────────────────────────────


class PeriodLabel(BaseModel, frozen=True):
    """The (month, year) pair naming a budget period."""

    month: int = Field(..., ge=1, le=12)
    year: int


class PeriodWindow(BaseModel, frozen=True):
    """Inclusive calendar window covered by one period label."""

    start_date: date
    end_date: date

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class BudgetPeriod(BaseModel, frozen=True):
    """One accounting cycle as read from storage."""

    id: str
    month: int = Field(..., ge=1, le=12)
    year: int
    previous_period_id: Optional[str] = None
    cached_ending_balance: Optional[float] = None

    @property
    def label(self) -> PeriodLabel:
        return PeriodLabel(month=self.month, year=self.year)


# ─── Envelope / transaction ───────────────────────────────────────────────────


class Envelope(BaseModel, frozen=True):
    """A planned budget line for one period."""

    id: EntityId
    period_id: str
    name: str
    planned_amount: float = Field(..., ge=0)
    kind: Kind
    recurrence: Recurrence = "fixed"
    is_rollover: bool = False
    checked_at: Optional[datetime] = None

    @property
    def is_checked(self) -> bool:
        return self.checked_at is not None


class Transaction(BaseModel, frozen=True):
    """An actual movement of money, allocated to an envelope or free."""

    id: EntityId
    period_id: str
    envelope_id: Optional[str] = None
    name: str = ""
    amount: float = Field(..., ge=0)
    kind: Kind
    occurred_at: date
    checked_at: Optional[datetime] = None

    @property
    def is_checked(self) -> bool:
        return self.checked_at is not None

    @property
    def is_free(self) -> bool:
        return self.envelope_id is None


class EnvelopeDraft(BaseModel):
    """Input model for creating an envelope. The store assigns the id."""

    name: str = Field(..., min_length=1)
    planned_amount: float = Field(..., ge=0)
    kind: Kind
    recurrence: Recurrence = "fixed"


class TransactionDraft(BaseModel):
    """Input model for creating a transaction. New transactions start unchecked."""

    name: str = ""
    amount: float = Field(..., ge=0)
    kind: Kind
    occurred_at: date
    envelope_id: Optional[str] = None

    @field_validator("envelope_id", mode="before")
    @classmethod
    def envelope_must_be_durable(cls, value: object) -> object:
        if is_pending(value):
            raise ValueError("envelope_id must reference a persisted envelope")
        return value


# ─── Snapshot ─────────────────────────────────────────────────────────────────


class BudgetSnapshot(BaseModel, frozen=True):
    """Immutable view of one period: its envelopes and transactions."""

    period: BudgetPeriod
    envelopes: tuple[Envelope, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    def find_envelope(self, envelope_id: EntityId) -> Envelope | None:
        return next((e for e in self.envelopes if e.id == envelope_id), None)

    def find_transaction(self, transaction_id: EntityId) -> Transaction | None:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def allocated_to(self, envelope_id: EntityId) -> list[Transaction]:
        return [t for t in self.transactions if t.envelope_id == envelope_id]


# ─── Calculation results ──────────────────────────────────────────────────────


class BudgetTotals(BaseModel, frozen=True):
    """Envelope-aware totals for one period."""

    income: float = 0.0
    expenses: float = 0.0
    ending_balance: float = 0.0


class BudgetMetrics(BaseModel, frozen=True):
    """Totals together with the rollover carried into the period."""

    total_income: float
    total_expenses: float
    rollover: float
    available: float
    ending_balance: float
    remaining: float


class RealizedMetrics(BaseModel, frozen=True):
    """Totals over checked items only."""

    realized_income: float
    realized_expenses: float
    realized_balance: float
    checked_items_count: int
    total_items_count: int

    @property
    def completion_percentage(self) -> float:
        if self.total_items_count == 0:
            return 0.0
        return self.checked_items_count / self.total_items_count * 100.0


class EnvelopeConsumption(BaseModel, frozen=True):
    """How much of one envelope its allocated transactions have used."""

    envelope_id: EntityId
    consumed: float
    remaining: float
    transaction_count: int
    percentage: float
    is_over_budget: bool


class RolloverResult(BaseModel, frozen=True):
    """Opening rollover for a period and where it came from."""

    rollover_amount: float = 0.0
    previous_period_id: Optional[str] = None


# ─── Cascade results ──────────────────────────────────────────────────────────


class EnvelopeToggleResult(BaseModel, frozen=True):
    """Next check state after toggling an envelope."""

    is_checking: bool
    envelope_id: EntityId
    updated_envelopes: tuple[Envelope, ...]
    updated_transactions: tuple[Transaction, ...]
    transactions_to_sync: tuple[Transaction, ...]


class TransactionToggleResult(BaseModel, frozen=True):
    """Next check state after toggling a transaction."""

    is_checking: bool
    transaction_id: EntityId
    updated_transactions: tuple[Transaction, ...]
    updated_envelopes: tuple[Envelope, ...]
    should_toggle_envelope: bool
    envelope_id: Optional[str] = None


# ─── Display ──────────────────────────────────────────────────────────────────

ItemType = Literal["envelope", "transaction"]


class DisplayItem(BaseModel, frozen=True):
    """One row of the ordered budget table."""

    item_type: ItemType
    item: Union[Envelope, Transaction]
    signed_amount: float
    cumulative_balance: float

    @property
    def is_allocated(self) -> bool:
        return isinstance(self.item, Transaction) and self.item.envelope_id is not None
