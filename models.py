"""
Data models for Airfare Watch.

Uses Pydantic for validation and serialization. The pipeline itself works on
pandas DataFrames; these models describe single rows and the summaries
handed to the report.
"""

import math
from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# OBSERVATIONS
# =============================================================================

class Observation(BaseModel):
    """
    One manually recorded fare quote for a tracked departure.

    lowest_price is None when no fare was found that day.
    """
    model_config = ConfigDict(frozen=True)

    flight_date: str
    days_before: int = Field(..., ge=0)
    lowest_price: Optional[float] = Field(default=None, ge=0)
    day_of_week: str = ""
    origin: str = ""
    destination: str = ""
    cheapest_is_budget_carrier: bool = False
    date_recorded: date

    @field_validator('lowest_price', mode='before')
    @classmethod
    def nan_to_none(cls, v: Any) -> Any:
        """Treat NaN (how pandas stores a missing price) as None."""
        if isinstance(v, float) and math.isnan(v):
            return None
        return v

    @field_validator('origin', 'destination')
    @classmethod
    def validate_airport_code(cls, v: str) -> str:
        """Ensure airport codes are uppercase."""
        return v.upper().strip()

    @property
    def route(self) -> str:
        """Get route string (e.g., 'DEN-LGA')."""
        return f"{self.origin}-{self.destination}"

    @property
    def has_price(self) -> bool:
        return self.lowest_price is not None


# =============================================================================
# REPORT MODELS
# =============================================================================

class FlightDateSummary(BaseModel):
    """Price history summary for one tracked flight date."""
    flight_date: str
    label: str
    route: str = ""
    observation_count: int = 0
    missing_count: int = 0
    first_recorded: Optional[date] = None
    last_recorded: Optional[date] = None
    latest_price: Optional[float] = None
    lowest_price: Optional[float] = None
    lowest_price_recorded: Optional[date] = None
    lowest_price_days_before: Optional[int] = None
    highest_price: Optional[float] = None
    price_changes: int = 0
    inflection_count: int = 0

    @property
    def price_range(self) -> Optional[float]:
        if self.lowest_price is None or self.highest_price is None:
            return None
        return self.highest_price - self.lowest_price


class ReportSnapshot(BaseModel):
    """Everything the prose part of a report needs for one as-of cutoff."""
    title: str
    as_of: Optional[date] = None
    summaries: List[FlightDateSummary] = Field(default_factory=list)
    narrative: List[str] = Field(default_factory=list)
    observation_count: int = 0
    excluded_count: int = 0
