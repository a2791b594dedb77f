"""
Quote engine: quantified tasks -> priced line items.

Per task (flat form):
    price = ceil(unit_price × condition_multiplier × waste_factor × quantity)

Per task (table form):
    base  = range_prices[species][height_range]  (fallback: species_prices[species])
    price = ceil(base × (1 + surcharge%/100) × waste_factor × quantity)

Area tables (lawns) are tiered by the area itself: the lowest tier is a
fixed price, the tiers above it are per m2, and the amount is floored at
what the lower tiers can charge (see tiered_amount). Count tables never
derive the height from the count; a missing height_range is unconfigured.

waste_factor = (1 + waste%/100) only when the task asks for waste removal
and the tariff charges it as an extra percentage.

Every task is rounded up to a whole currency unit. Money is Decimal end
to end, so identical (tasks, tariffs) always give identical quotes.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Mapping, Optional, Sequence, Union

from ...errors import InvalidRequest, UnconfiguredTariff
from .tariff import CONDITION_MULTIPLIERS, Condition, TariffConfig, Unit

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")

_RANGE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:-\s*(\d+(?:\.\d+)?)|\+)\s*$")


@dataclass(frozen=True)
class Task:
    """One quantified unit of work, produced by the estimator or the client."""
    service_type: str
    quantity: Decimal
    unit: Unit = Unit.COUNT
    condition: Condition = Condition.NORMAL
    waste_removal: bool = False
    extra_attributes: Mapping[str, str] = field(default_factory=dict)

    @property
    def species(self) -> Optional[str]:
        return self.extra_attributes.get("species")

    @property
    def range_key(self) -> Optional[str]:
        return self.extra_attributes.get("height_range") or self.extra_attributes.get("area_range")


@dataclass(frozen=True)
class TaskQuote:
    task: Task
    unit_price: Decimal  # resolved base price before multipliers
    price: Decimal
    unconfigured: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    service_type: str
    description: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    price: Decimal


@dataclass(frozen=True)
class Quote:
    total: Decimal
    line_items: list[LineItem]
    unconfigured: list[str]

    @property
    def is_final(self) -> bool:
        return not self.unconfigured


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Decimal from any numeric input without binary-float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def validate_task(task: Task) -> None:
    if to_money(task.quantity) < 0:
        raise InvalidRequest(
            f"quantity must be >= 0 for {task.service_type}, got {task.quantity}"
        )


# ── Per task ─────────────────────────────────────────────────────────────


def quote_task(task: Task, tariff: Optional[TariffConfig]) -> TaskQuote:
    """
    Price one task.

    An attribute combination without a positive price yields price 0 and
    is reported in TaskQuote.unconfigured instead of being billed at 0.
    """
    validate_task(task)
    quantity = to_money(task.quantity)

    if tariff is None:
        return TaskQuote(task, ZERO, ZERO, f"{task.service_type}: no tariff")

    if tariff.kind == "table":
        base, amount, label = _resolve_table_price(task, tariff, quantity)
        factor = tariff.surcharge_factor(task.condition)
    else:
        base, label = tariff.unit_price, f"{task.service_type}: unit_price"
        amount = base * quantity
        factor = CONDITION_MULTIPLIERS[task.condition]

    if base <= 0:
        return TaskQuote(task, ZERO, ZERO, label)

    if task.waste_removal:
        factor = factor * tariff.waste_factor()

    raw = amount * factor
    price = raw.to_integral_value(rounding=ROUND_CEILING)
    return TaskQuote(task, base, price)


def _resolve_table_price(
    task: Task,
    tariff: TariffConfig,
    quantity: Decimal,
) -> tuple[Decimal, Decimal, str]:
    """(base price, amount before factors, label) for a table tariff."""
    species = task.species
    if not species:
        return ZERO, ZERO, f"{task.service_type}: species missing"

    if tariff.selected_species and species not in tariff.selected_species:
        return ZERO, ZERO, f"{task.service_type}: {species}"

    ranges = tariff.range_prices.get(species, {})
    fallback = tariff.species_prices.get(species, ZERO)

    if tariff.unit == Unit.AREA and ranges:
        # Area tables are tiered by the area itself
        range_key, base, amount = tiered_amount(ranges, quantity)
        label = f"{task.service_type}: {species}/{range_key}" if range_key else f"{task.service_type}: {species}"
        if base > 0:
            return base, amount, label
        if fallback > 0:
            return fallback, fallback * quantity, label
        return ZERO, ZERO, label

    range_key = task.range_key
    if not range_key:
        if tariff.declared_ranges(species):
            # Height is an attribute of the item, never derived from the count
            return ZERO, ZERO, f"{task.service_type}: {species}/height_range missing"
        label = f"{task.service_type}: {species}"
        return (fallback, fallback * quantity, label) if fallback > 0 else (ZERO, ZERO, label)

    label = f"{task.service_type}: {species}/{range_key}"
    base = ranges.get(range_key, ZERO)
    if base <= 0:
        base = fallback
    if base > 0:
        return base, base * quantity, label
    return ZERO, ZERO, label


def _parse_range(key: str) -> Optional[tuple[Decimal, Optional[Decimal]]]:
    match = _RANGE_RE.match(key)
    if not match:
        return None
    low = Decimal(match.group(1))
    high = Decimal(match.group(2)) if match.group(2) else None
    return low, high


def pick_range(range_keys: list[str], quantity: Decimal) -> Optional[str]:
    """
    Range key ("0-50", "50-200", "200+") containing quantity.

    Lower bound inclusive, upper bound exclusive. Non-numeric keys are
    ignored.
    """
    for key in range_keys:
        bounds = _parse_range(key)
        if bounds is None:
            continue
        low, high = bounds
        if quantity >= low and (high is None or quantity < high):
            return key
    return None


def tiered_amount(
    ranges: Mapping[str, Decimal],
    quantity: Decimal,
) -> tuple[Optional[str], Decimal, Decimal]:
    """
    Amount for `quantity` units on a tiered area table.

    The lowest tier is a fixed price for any area inside it; the tiers
    above it are priced per unit. A tier never charges less than the most
    a lower tier can charge, so the amount never drops as the area grows.

    Returns:
        (range_key, tier price, amount). range_key is None and both
        amounts are 0 when no tier contains quantity.
    """
    tiers = []
    for key in ranges:
        bounds = _parse_range(key)
        if bounds is not None:
            tiers.append((key, *bounds))
    tiers.sort(key=lambda tier: tier[1])

    floor = ZERO
    for idx, (key, low, high) in enumerate(tiers):
        price = ranges.get(key, ZERO)
        is_flat = idx == 0
        if quantity >= low and (high is None or quantity < high):
            if quantity == 0:
                return key, price, ZERO
            amount = price if is_flat else price * quantity
            return key, price, max(amount, floor)
        if high is not None and price > 0:
            floor = max(floor, price if is_flat else price * high)
    return None, ZERO, ZERO


# ── Per job ──────────────────────────────────────────────────────────────


def quote_job(
    tasks: Sequence[Task],
    tariffs: Union[TariffConfig, Mapping[str, TariffConfig]],
    target_total: Optional[Decimal] = None,
    finalize: bool = False,
) -> Quote:
    """
    Price a whole job.

    Args:
        tasks: Tasks in display order (line items keep this order)
        tariffs: One tariff for every task, or a service_type -> tariff map
        target_total: Predetermined total the itemization must reconcile to
        finalize: Raise UnconfiguredTariff instead of returning flags

    Returns:
        Quote with total, line items and unconfigured combinations.
    """
    quotes = []
    for task in tasks:
        tariff = tariffs if isinstance(tariffs, TariffConfig) else tariffs.get(task.service_type)
        quotes.append(quote_task(task, tariff))

    unconfigured = list(dict.fromkeys(q.unconfigured for q in quotes if q.unconfigured))
    if finalize and unconfigured:
        logger.info(f"Quote blocked, unconfigured combinations: {unconfigured}")
        raise UnconfiguredTariff(unconfigured)

    line_items = [
        LineItem(
            service_type=q.task.service_type,
            description=_describe(q.task),
            quantity=to_money(q.task.quantity),
            unit=q.task.unit.value,
            unit_price=q.unit_price,
            price=q.price.quantize(CENT),
        )
        for q in quotes
    ]

    if target_total is not None:
        line_items = reconcile_line_items(line_items, to_money(target_total))
        total = to_money(target_total).quantize(CENT)
    else:
        total = sum((item.price for item in line_items), ZERO).quantize(CENT)

    return Quote(total=total, line_items=line_items, unconfigured=unconfigured)


def reconcile_line_items(items: list[LineItem], target_total: Decimal) -> list[LineItem]:
    """
    Spread (target_total - sum of items) across items.

    Weights are each item's reference unit price (1 when it has none).
    Every share is rounded to the cent; the last item takes the rounding
    remainder so the items sum to target_total exactly.
    """
    target = target_total.quantize(CENT, rounding=ROUND_HALF_UP)
    current = sum((item.price for item in items), ZERO)
    remainder = target - current

    if remainder < 0:
        raise InvalidRequest(
            f"target total {target} is below the itemized sum {current}"
        )
    if remainder == 0 or not items:
        return list(items)

    weights = [item.unit_price if item.unit_price > 0 else Decimal("1") for item in items]
    weight_sum = sum(weights, ZERO)

    result = []
    assigned = ZERO
    for idx, (item, weight) in enumerate(zip(items, weights)):
        if idx == len(items) - 1:
            share = remainder - assigned
        else:
            share = (remainder * weight / weight_sum).quantize(CENT, rounding=ROUND_HALF_UP)
            assigned += share
        result.append(LineItem(
            service_type=item.service_type,
            description=item.description,
            quantity=item.quantity,
            unit=item.unit,
            unit_price=item.unit_price,
            price=(item.price + share).quantize(CENT),
        ))
    return result


def deposit_for(total: Decimal, percent: int) -> tuple[Decimal, Decimal]:
    """Upfront deposit and remaining balance for a total, both to the cent."""
    total = to_money(total)
    deposit = (total * Decimal(percent) / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    return deposit, (total - deposit).quantize(CENT)


def _describe(task: Task) -> str:
    parts = [task.service_type]
    if task.species:
        parts.append(task.species)
    if task.range_key:
        parts.append(task.range_key)
    if task.condition != Condition.NORMAL:
        parts.append(task.condition.value)
    if task.waste_removal:
        parts.append("waste removal")
    return " / ".join(parts)
