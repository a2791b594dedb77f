# backend/gardenbook/schemas/quotes.py

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from ..services.pricing import Condition, Task, Unit


class TaskIn(BaseModel):
    service_type: str
    quantity: Decimal
    unit: Unit = Unit.COUNT
    condition: Condition = Condition.NORMAL
    waste_removal: bool = False
    extra_attributes: dict[str, str] = Field(default_factory=dict)

    def to_task(self) -> Task:
        return Task(
            service_type=self.service_type,
            quantity=self.quantity,
            unit=self.unit,
            condition=self.condition,
            waste_removal=self.waste_removal,
            extra_attributes=dict(self.extra_attributes),
        )


class QuoteRequest(BaseModel):
    provider_id: str
    tasks: list[TaskIn] = Field(min_length=1)
    target_total: Optional[Decimal] = None
    finalize: bool = False


class LineItemRead(BaseModel):
    service_type: str
    description: Optional[str] = None
    quantity: Decimal
    unit: str
    unit_price: Decimal
    price: Decimal

    model_config = {"from_attributes": True}


class QuoteResponse(BaseModel):
    provider_id: str
    total: Decimal
    line_items: list[LineItemRead]
    unconfigured: list[str]
    is_final: bool
    estimated_hours: int
    deposit: Decimal
    balance: Decimal
