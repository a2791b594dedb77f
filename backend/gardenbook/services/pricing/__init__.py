"""
Pricing module.

TariffConfig: typed, versioned provider pricing rules
Quote engine: tasks -> priced line items (Decimal, rounded up per task)
Estimator: tasks -> booking duration in hours
Repository: tariff persistence
"""

from .tariff import (
    CONDITION_MULTIPLIERS,
    Condition,
    TariffConfig,
    Unit,
    WasteRemoval,
    WasteRemovalOption,
    empty_palm_tariff,
    migrate_tariff,
)
from .engine import (
    LineItem,
    Quote,
    Task,
    TaskQuote,
    deposit_for,
    pick_range,
    quote_job,
    quote_task,
    reconcile_line_items,
    tiered_amount,
)
from .estimator import estimate_hours, task_hours
from .repository import get_tariff, get_tariffs, save_tariff

__all__ = [
    "CONDITION_MULTIPLIERS",
    "Condition",
    "TariffConfig",
    "Unit",
    "WasteRemoval",
    "WasteRemovalOption",
    "empty_palm_tariff",
    "migrate_tariff",
    "LineItem",
    "Quote",
    "Task",
    "TaskQuote",
    "deposit_for",
    "pick_range",
    "quote_job",
    "quote_task",
    "reconcile_line_items",
    "tiered_amount",
    "estimate_hours",
    "task_hours",
    "get_tariff",
    "get_tariffs",
    "save_tariff",
]
