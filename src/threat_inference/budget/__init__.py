"""
Daily compute budget accounting.

Main Components:
    - BudgetGovernor: prices calls, tracks today's usage, reports quota status
    - BudgetSummary / ModelUsage: read models returned by the governor
    - UsageLedger: one UTC day of accumulated usage
"""

from threat_inference.budget.governor import (
    UNLIMITED_CAPACITY,
    BudgetGovernor,
    BudgetSummary,
    ModelUsage,
)
from threat_inference.budget.ledger import ModelBucket, UsageLedger

__all__ = [
    "BudgetGovernor",
    "BudgetSummary",
    "ModelUsage",
    "ModelBucket",
    "UsageLedger",
    "UNLIMITED_CAPACITY",
]
