"""
Hours estimate for a job.

The booking duration comes from a productivity table: how much of each
service one gardener gets through per hour (area services) or how long
one item takes (count services). The sum over tasks, scaled by the
condition multiplier, is rounded up to whole hours.
"""

import logging
from decimal import ROUND_CEILING, Decimal
from typing import Iterable

from .engine import Task, to_money, validate_task
from .tariff import CONDITION_MULTIPLIERS

logger = logging.getLogger(__name__)

# m2 per hour
AREA_RATES: dict[str, Decimal] = {
    "lawn": Decimal("150"),
    "hedge": Decimal("8.4"),
    "weeding": Decimal("20"),
}

# hours per item
COUNT_RATES: dict[str, Decimal] = {
    "tree": Decimal("1.0"),
    "plant": Decimal("0.15"),
    "fumigation": Decimal("0.05"),
    "palm": Decimal("0.75"),
}


def task_hours(task: Task) -> Decimal:
    """Unrounded hours for one task; unknown service types count as 0."""
    validate_task(task)
    quantity = to_money(task.quantity)
    multiplier = CONDITION_MULTIPLIERS[task.condition]

    if task.service_type in AREA_RATES:
        return quantity / AREA_RATES[task.service_type] * multiplier
    if task.service_type in COUNT_RATES:
        return quantity * COUNT_RATES[task.service_type] * multiplier

    logger.warning(f"No productivity rate for service_type={task.service_type}, counting 0h")
    return Decimal("0")


def estimate_hours(tasks: Iterable[Task]) -> int:
    """
    Booking duration in whole hours.

    0 for an empty job, otherwise at least 1.
    """
    tasks = list(tasks)
    if not tasks:
        return 0
    total = sum((task_hours(task) for task in tasks), Decimal("0"))
    hours = int(total.to_integral_value(rounding=ROUND_CEILING))
    return max(hours, 1)
