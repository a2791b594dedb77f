# backend/gardenbook/schemas/tariffs.py

from pydantic import BaseModel

from ..services.pricing import TariffConfig


class TariffRead(BaseModel):
    provider_id: str
    service_type: str
    config: TariffConfig
    missing: list[str]
    is_complete: bool
