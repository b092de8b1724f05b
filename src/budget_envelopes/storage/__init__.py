# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation

from budget_envelopes.storage.interface import BudgetStorage
from budget_envelopes.storage.memory import MemoryStorage

__all__ = ["BudgetStorage", "MemoryStorage"]
