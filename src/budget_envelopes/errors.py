# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations


class BudgetEnvelopesError(Exception):
    """Base class for all budget-envelopes errors."""

    def __init__(self, message: str, code: str = "BUDGET_ENVELOPES_ERROR") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotFoundError(BudgetEnvelopesError):
    """
    Raised when a referenced period, envelope or transaction does not exist.

    Attributes:
        entity_type: Kind of record that was looked up.
        entity_id: The identifier that was not found.
    """

    def __init__(self, entity_type: str, entity_id: object) -> None:
        super().__init__(
            f"{entity_type.capitalize()} '{entity_id}' does not exist.",
            code="NOT_FOUND",
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvariantViolationError(BudgetEnvelopesError):
    """
    Raised when a request would break a consistency rule of the budget.

    Examples: a transaction allocated to an envelope of another period, a
    mutation aimed at the synthetic rollover envelope, or a cascade fired
    against a record that still carries a pending identifier.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVARIANT_VIOLATION")


class SyncFailureError(BudgetEnvelopesError):
    """
    Raised when a queued storage call fails after the optimistic update.

    Local state has already been discarded and reloaded when this is raised.

    Attributes:
        operation: Name of the session operation whose storage call failed.
        user_message: Message suitable for display to the user.
    """

    def __init__(self, operation: str, user_message: str) -> None:
        super().__init__(
            f"Storage call for '{operation}' failed: {user_message}",
            code="SYNC_FAILURE",
        )
        self.operation = operation
        self.user_message = user_message


class ConfigurationError(BudgetEnvelopesError):
    """Raised when the package is misconfigured."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")
