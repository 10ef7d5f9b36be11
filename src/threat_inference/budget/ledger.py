"""
Per-day usage ledger.

One ledger covers one UTC calendar day. The governor swaps in a fresh ledger
when the day changes; a ledger for a past day is never written again.
"""

from dataclasses import dataclass, field
from datetime import date


@dataclass
class ModelBucket:
    """Calls and units charged to one model tier."""

    calls: int = 0
    units: float = 0.0


@dataclass
class UsageLedger:
    """Accumulated compute units for a single UTC day."""

    day: date
    total_units: float = 0.0
    models: dict[str, ModelBucket] = field(default_factory=dict)

    def add(self, model: str, units: float) -> None:
        bucket = self.models.setdefault(model, ModelBucket())
        bucket.calls += 1
        bucket.units += units
        self.total_units += units
