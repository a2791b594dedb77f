# backend/gardenbook/schemas/providers.py
"""
Pydantic schemas for provider scheduling settings.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class ProviderSettingsRead(BaseModel):
    provider_id: str
    min_gap_hours: int
    weeks_to_maintain: int
    min_gap_override: Optional[int] = None
    weeks_override: Optional[int] = None

    model_config = {"from_attributes": True}


class ProviderSettingsUpdate(BaseModel):
    """Omitted or null fields fall back to the service defaults."""
    min_gap_hours: Optional[int] = Field(default=None, ge=0)
    weeks_to_maintain: Optional[int] = Field(default=None, ge=1)


class WeeklyWindowSchema(BaseModel):
    """Hours [start_hour, end_hour) on each weekday in days (0 = Monday)."""
    days: list[int]
    start_hour: int
    end_hour: int

    model_config = {"from_attributes": True}


class WeeklyScheduleRead(BaseModel):
    provider_id: str
    windows: list[WeeklyWindowSchema]
    weeks_to_maintain: int
    seeded: list[date] = Field(default_factory=list)


class WeeklyScheduleUpdate(BaseModel):
    """
    Replace the weekly template.

    generate_from: seed the template from this date on, for the provider's
    weeks_to_maintain, right after saving (days with rows are skipped).
    """
    windows: list[WeeklyWindowSchema]
    generate_from: Optional[date] = None


class GenerateRequest(BaseModel):
    date_from: date
    weeks: Optional[int] = Field(default=None, ge=1)


class GenerateResponse(BaseModel):
    provider_id: str
    seeded: list[date]
