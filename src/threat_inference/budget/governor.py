"""
Daily compute budget governor.

Converts token counts into compute units (Workers AI "neurons") from the
per-tier price table, accumulates today's usage and answers quota
questions: how much is used, what is the status, how many more articles
fit in today's budget.

The ledger is process-local and volatile: it starts from zero on every
process start and is never persisted. Enforcement ("stop dispatching when
CRITICAL") is left to callers, who read summary()/remaining_capacity()
before invoking the router.

Usage:
    governor = BudgetGovernor(catalog.price_table(), daily_limit=10_000)
    units = governor.record("qwen-30b", input_tokens=500, output_tokens=300)
    if governor.summary().status is BudgetStatus.CRITICAL:
        ...
"""

import math
import sys
import threading
from datetime import date, datetime, timezone
from typing import Callable, Mapping, Optional

import structlog
from pydantic import BaseModel, Field

from threat_inference.budget.ledger import UsageLedger
from threat_inference.models.enums import BudgetStatus
from threat_inference.models.tiers import ModelTier
from threat_inference.monitoring.metrics import budget_percent_used, budget_units_used

logger = structlog.get_logger(__name__)

WARNING_PERCENT = 80
CRITICAL_PERCENT = 95

# remaining_capacity() answer when an article costs nothing
UNLIMITED_CAPACITY = sys.maxsize


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


class BudgetSummary(BaseModel):
    """Today's budget position, rounded to whole units."""

    used: int = Field(..., description="Units charged today")
    remaining: int = Field(..., description="Units left today (negative once the limit is passed)")
    daily_limit: int = Field(..., description="Configured daily limit")
    percent_used: int = Field(..., description="Share of the limit used, percent")
    status: BudgetStatus


class ModelUsage(BaseModel):
    """One row of today's per-model breakdown."""

    model: str
    calls: int
    units: int
    units_per_call: int


class BudgetGovernor:
    """
    Thread-safe daily usage accounting.

    All reads and writes go through one lock, so a single instance can be
    shared by concurrently running analyses. Totals are exact once every
    concurrent record() call has returned.

    Attributes:
        price_table: Tier key -> ModelTier with per-million-token prices
        daily_limit: Compute units available per UTC day
    """

    def __init__(
        self,
        price_table: Mapping[str, ModelTier],
        daily_limit: float = 10_000,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize governor.

        Args:
            price_table: Known tiers keyed by tier key
            daily_limit: Compute units available per UTC day
            clock: Returns the current time; must be timezone-aware (UTC)
        """
        self.price_table = dict(price_table)
        self.daily_limit = daily_limit
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._ledger: Optional[UsageLedger] = None

    def _today(self) -> date:
        return self._clock().astimezone(timezone.utc).date()

    def _current_ledger(self) -> UsageLedger:
        """Today's ledger, created on first use of a new day. Caller holds the lock."""
        today = self._today()
        if self._ledger is None or self._ledger.day != today:
            if self._ledger is not None:
                logger.info(
                    "Budget day rolled over",
                    previous_day=self._ledger.day.isoformat(),
                    previous_units=round(self._ledger.total_units, 2),
                    day=today.isoformat(),
                )
            self._ledger = UsageLedger(day=today)
        return self._ledger

    def cost(self, model: str, input_tokens: int, output_tokens: int = 0) -> float:
        """Units a call would be charged, without recording it (0 for unknown models)."""
        tier = self.price_table.get(model)
        if tier is None:
            return 0.0
        units = input_tokens / 1_000_000 * tier.cost_in_per_million
        if tier.cost_out_per_million is not None:
            units += output_tokens / 1_000_000 * tier.cost_out_per_million
        return units

    def record(self, model: str, input_tokens: int, output_tokens: int = 0) -> float:
        """
        Charge one inference call to today's ledger.

        Unknown models are charged 0 and leave the ledger untouched, so new
        model identifiers can roll out before their price is configured.
        Token counts are not validated: negative counts produce negative
        charges.

        Returns:
            Units charged for this call
        """
        if model not in self.price_table:
            logger.debug("No price configured for model, charging 0", model=model)
            return 0.0

        units = self.cost(model, input_tokens, output_tokens)
        with self._lock:
            ledger = self._current_ledger()
            ledger.add(model, units)
            total = ledger.total_units
            # Gauges follow the ledger, so they are updated under the same lock
            budget_units_used.set(total)
            if self.daily_limit:
                budget_percent_used.set(total / self.daily_limit * 100)

        logger.debug(
            "Recorded inference usage",
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            units=round(units, 4),
            daily_total=round(total, 4),
        )
        return units

    def daily_total(self) -> float:
        """Units charged today (0 when nothing has been charged)."""
        with self._lock:
            return self._current_ledger().total_units

    def summary(self) -> BudgetSummary:
        """
        Today's usage with a status indicator.

        Status is taken from the rounded percentage: OK below 80,
        WARNING from 80, CRITICAL from 95 (including above 100).
        """
        total = self.daily_total()
        percent = round_half_up(total / self.daily_limit * 100) if self.daily_limit else 100

        if percent >= CRITICAL_PERCENT:
            status = BudgetStatus.CRITICAL
        elif percent >= WARNING_PERCENT:
            status = BudgetStatus.WARNING
        else:
            status = BudgetStatus.OK

        return BudgetSummary(
            used=round_half_up(total),
            remaining=round_half_up(self.daily_limit - total),
            daily_limit=round_half_up(self.daily_limit),
            percent_used=percent,
            status=status,
        )

    def breakdown(self) -> list[ModelUsage]:
        """Per-model usage for today, one row per model charged today."""
        with self._lock:
            buckets = list(self._current_ledger().models.items())

        return [
            ModelUsage(
                model=model,
                calls=bucket.calls,
                units=round_half_up(bucket.units),
                units_per_call=round_half_up(bucket.units / bucket.calls),
            )
            for model, bucket in buckets
        ]

    def remaining_capacity(self, units_per_article: float) -> int:
        """
        Estimate how many more articles fit in today's budget.

        Args:
            units_per_article: Average units one article costs

        Returns:
            floor(remaining / units_per_article), never below 0.
            UNLIMITED_CAPACITY when units_per_article is 0.
        """
        if units_per_article == 0:
            return UNLIMITED_CAPACITY
        remaining = self.daily_limit - self.daily_total()
        return max(0, math.floor(remaining / units_per_article))
