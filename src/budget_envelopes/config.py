# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from budget_envelopes.errors import ConfigurationError
from budget_envelopes.period import normalize_pay_day
from budget_envelopes.rollover import DEFAULT_ROLLOVER_NAME_FORMAT


class PeriodConfig(BaseModel, frozen=True):
    """
    Configuration for period resolution.

    Attributes:
        pay_day_of_month: Day of the month on which a new period starts.
            Invalid input is normalized rather than rejected: non-numeric
            values fall back to 1, out-of-range numbers are clamped to 1–31.
    """

    pay_day_of_month: int = 1

    @field_validator("pay_day_of_month", mode="before")
    @classmethod
    def normalize(cls, value: object) -> int:
        return normalize_pay_day(value)


class DisplayConfig(BaseModel, frozen=True):
    """
    Configuration for the budget table.

    Attributes:
        show_only_unchecked: Hide checked envelopes and free transactions.
    """

    show_only_unchecked: bool = True


class SessionConfig(BaseModel, frozen=True):
    """
    Top-level configuration for a BudgetSession.

    All fields are optional. Defaults are provided for all of them.

    Example::

        config = SessionConfig(
            period=PeriodConfig(pay_day_of_month=25),
            display=DisplayConfig(show_only_unchecked=False),
        )
        session = BudgetSession(storage, period_id="2025-03", config=config)
    """

    period: PeriodConfig = Field(default_factory=PeriodConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    rollover_name_format: str = DEFAULT_ROLLOVER_NAME_FORMAT

    @field_validator("rollover_name_format")
    @classmethod
    def format_must_render(cls, value: str) -> str:
        try:
            value.format(month=1, year=2000)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"rollover_name_format {value!r} cannot be rendered with "
                "'month' and 'year' fields."
            ) from exc
        return value
