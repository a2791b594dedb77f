"""
Provider tariff configuration.

Two forms share one schema:

- flat:  unit_price per area/count unit; conditions use fixed multipliers
         (normal 1.0, neglected 1.3, very_neglected 1.6).
- table: species -> range -> base price (palms: height ranges, lawns: area
         ranges), plus percentage surcharges per condition and an optional
         waste-removal percentage.

Stored configs carry schema_version. Version 1 is the untyped blob older
clients wrote (Spanish condition keys, no selected_species, lawn prices
nested under species_prices); migrate_tariff() upgrades it explicitly.
"""

import json
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from ...errors import InvalidRequest

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2


class Condition(str, Enum):
    NORMAL = "normal"
    NEGLECTED = "neglected"
    VERY_NEGLECTED = "very_neglected"


class Unit(str, Enum):
    AREA = "area"
    COUNT = "count"


class WasteRemovalOption(str, Enum):
    INCLUDED = "included"
    EXTRA_PERCENTAGE = "extra_percentage"
    NOT_INCLUDED = "not_included"


# Flat-form multipliers
CONDITION_MULTIPLIERS: dict[Condition, Decimal] = {
    Condition.NORMAL: Decimal("1.0"),
    Condition.NEGLECTED: Decimal("1.3"),
    Condition.VERY_NEGLECTED: Decimal("1.6"),
}

# Declared height ranges (metres) per palm group
LARGE_PALM_HEIGHTS = ["0-5", "5-12", "12-20", "20+"]
SMALL_PALM_HEIGHTS = ["0-2", "2+"]

PALM_SPECIES_HEIGHTS: dict[str, list[str]] = {
    "Phoenix (datilera o canaria)": LARGE_PALM_HEIGHTS,
    "Washingtonia": LARGE_PALM_HEIGHTS,
    "Roystonea regia (cubana)": LARGE_PALM_HEIGHTS,
    "Syagrus romanzoffiana (cocotera)": LARGE_PALM_HEIGHTS,
    "Livistona": SMALL_PALM_HEIGHTS,
    "Kentia (palmito)": SMALL_PALM_HEIGHTS,
    "Phoenix roebelenii(pigmea)": SMALL_PALM_HEIGHTS,
    "cycas revoluta (falsa palmera)": ["0-2"],
}

# Declared area ranges (m2) for lawn species
LAWN_AREA_RANGES = ["0-50", "50-200", "200+"]


class WasteRemoval(BaseModel):
    option: WasteRemovalOption = WasteRemovalOption.NOT_INCLUDED
    percentage: Decimal = Decimal("0")


def _default_surcharges() -> dict[Condition, Decimal]:
    return {
        Condition.NORMAL: Decimal("0"),
        Condition.NEGLECTED: Decimal("20"),
        Condition.VERY_NEGLECTED: Decimal("50"),
    }


class TariffConfig(BaseModel):
    """Typed, versioned pricing rules of one provider for one service type."""

    schema_version: int = CURRENT_SCHEMA_VERSION
    kind: Literal["flat", "table"] = "flat"
    unit: Unit = Unit.COUNT

    # flat
    unit_price: Decimal = Decimal("0")

    # table
    species_prices: dict[str, Decimal] = Field(default_factory=dict)
    range_prices: dict[str, dict[str, Decimal]] = Field(default_factory=dict)
    selected_species: list[str] = Field(default_factory=list)

    # both
    condition_surcharges: dict[Condition, Decimal] = Field(default_factory=_default_surcharges)
    waste_removal: WasteRemoval = Field(default_factory=WasteRemoval)

    @field_validator("schema_version")
    @classmethod
    def check_version(cls, v: int) -> int:
        if v != CURRENT_SCHEMA_VERSION:
            raise ValueError(
                f"schema_version must be {CURRENT_SCHEMA_VERSION}; "
                "run migrate_tariff() on older configs"
            )
        return v

    @field_validator("unit_price")
    @classmethod
    def check_unit_price(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("unit_price must be >= 0")
        return v

    def surcharge_factor(self, condition: Condition) -> Decimal:
        """(1 + surcharge_percent / 100) for the condition; missing key -> 1."""
        percent = self.condition_surcharges.get(condition, Decimal("0"))
        return 1 + percent / 100

    def waste_factor(self) -> Decimal:
        """Factor applied when the client asks for waste removal."""
        if self.waste_removal.option != WasteRemovalOption.EXTRA_PERCENTAGE:
            return Decimal("1")
        return 1 + self.waste_removal.percentage / 100

    def declared_ranges(self, species: str) -> list[str]:
        ranges = self.range_prices.get(species)
        if ranges:
            return list(ranges)
        return list(PALM_SPECIES_HEIGHTS.get(species, []))

    def missing_combinations(self) -> list[str]:
        """
        Active attribute combinations that still lack a positive price.

        A config is complete when this is empty. Flat configs need a unit
        price; table configs need every declared range of every selected
        species, both condition surcharges and, when charged as extra, the
        waste-removal percentage.
        """
        missing: list[str] = []

        if self.kind == "flat":
            if self.unit_price <= 0:
                missing.append("unit_price")
            return missing

        for species in self.selected_species:
            ranges = self.declared_ranges(species)
            if not ranges:
                if self.species_prices.get(species, Decimal("0")) <= 0:
                    missing.append(species)
                continue
            prices = self.range_prices.get(species, {})
            for range_key in ranges:
                if prices.get(range_key, Decimal("0")) <= 0:
                    missing.append(f"{species}/{range_key}")

        if self.selected_species:
            for condition in (Condition.NEGLECTED, Condition.VERY_NEGLECTED):
                if self.condition_surcharges.get(condition, Decimal("0")) <= 0:
                    missing.append(f"surcharge/{condition.value}")
            if (
                self.waste_removal.option == WasteRemovalOption.EXTRA_PERCENTAGE
                and self.waste_removal.percentage <= 0
            ):
                missing.append("waste_removal/percentage")

        return missing

    @property
    def is_complete(self) -> bool:
        return not self.missing_combinations()


def empty_palm_tariff() -> TariffConfig:
    """Table skeleton with every palm species/height declared at 0."""
    return TariffConfig(
        kind="table",
        unit=Unit.COUNT,
        species_prices={species: Decimal("0") for species in PALM_SPECIES_HEIGHTS},
        range_prices={
            species: {h: Decimal("0") for h in heights}
            for species, heights in PALM_SPECIES_HEIGHTS.items()
        },
    )


# ── Migration ────────────────────────────────────────────────────────────


_LEGACY_CONDITION_KEYS = {
    "normal": Condition.NORMAL,
    "descuidado": Condition.NEGLECTED,
    "descuidada": Condition.NEGLECTED,
    "neglected": Condition.NEGLECTED,
    "muy_descuidado": Condition.VERY_NEGLECTED,
    "muy_descuidada": Condition.VERY_NEGLECTED,
    "muy descuidado": Condition.VERY_NEGLECTED,
    "very_neglected": Condition.VERY_NEGLECTED,
}


def migrate_tariff(raw: dict[str, Any] | str | None) -> TariffConfig:
    """
    Parse a stored tariff blob of any known version into TariffConfig.

    Raises:
        InvalidRequest: unknown version or a blob that does not validate.
    """
    if raw is None or raw == "":
        return TariffConfig()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise InvalidRequest("tariff config is not valid JSON")
    if not isinstance(raw, dict):
        raise InvalidRequest("tariff config must be a JSON object")

    version = raw.get("schema_version", 1)
    if version == 1:
        raw = _upgrade_v1(raw)
    elif version != CURRENT_SCHEMA_VERSION:
        raise InvalidRequest(f"unsupported tariff schema_version {version}")

    try:
        return TariffConfig.model_validate(raw)
    except ValueError as e:
        raise InvalidRequest(f"invalid tariff config: {e}")


def _upgrade_v1(raw: dict[str, Any]) -> dict[str, Any]:
    """v1 -> v2."""
    species_prices: dict[str, Any] = {}
    range_prices: dict[str, dict[str, Any]] = {}

    for species, value in (raw.get("species_prices") or {}).items():
        if isinstance(value, dict):
            # Lawn blobs nested area-range prices under species_prices
            range_prices[species] = dict(value)
        else:
            species_prices[species] = value or 0

    for species, ranges in (raw.get("height_prices") or {}).items():
        if isinstance(ranges, dict):
            range_prices.setdefault(species, {}).update(ranges)

    surcharges = {Condition.NORMAL.value: 0}
    for key, percent in (raw.get("condition_surcharges") or {}).items():
        condition = _LEGACY_CONDITION_KEYS.get(key)
        if condition is None:
            logger.warning(f"Dropping unknown legacy surcharge key '{key}'")
            continue
        surcharges[condition.value] = percent or 0

    waste_raw = raw.get("waste_removal") or {}
    option = waste_raw.get("option")
    percentage = waste_raw.get("percentage") or 0
    if option == "included":
        waste = {"option": "included", "percentage": 0}
    elif option == "extra_fixed":
        logger.warning("Legacy fixed waste-removal price is no longer supported; dropping it")
        waste = {"option": "not_included", "percentage": 0}
    elif option == "not_included" and not percentage:
        waste = {"option": "not_included", "percentage": 0}
    elif percentage:
        # Lawn/standard blobs stored only a percentage
        waste = {"option": "extra_percentage", "percentage": percentage}
    else:
        waste = {"option": "not_included", "percentage": 0}

    selected = raw.get("selected_species")
    if selected is None:
        # Older blobs had no selection; any species with a price was active
        selected = [s for s, p in species_prices.items() if p and float(p) > 0]
        selected += [
            s for s, ranges in range_prices.items()
            if s not in selected and any(p and float(p) > 0 for p in ranges.values())
        ]

    is_table = bool(species_prices or range_prices)
    unit_price = raw.get("unit_price", raw.get("price_per_unit", raw.get("price", 0))) or 0

    upgraded: dict[str, Any] = {
        "schema_version": CURRENT_SCHEMA_VERSION,
        "kind": "table" if is_table else "flat",
        "unit_price": unit_price,
        "species_prices": species_prices,
        "range_prices": range_prices,
        "selected_species": list(selected),
        "condition_surcharges": surcharges,
        "waste_removal": waste,
    }
    if raw.get("unit") in (Unit.AREA.value, Unit.COUNT.value):
        upgraded["unit"] = raw["unit"]
    return upgraded
