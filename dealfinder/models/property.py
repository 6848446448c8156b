"""Pydantic models representing board property records."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

RoomCount = Union[float, str]

UNKNOWN_REALTOR = "Unknown"


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str = ""
    city: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None


class PricePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime
    price: float


class Property(BaseModel):
    """Canonical, already-normalized property record.

    Raw board rows go through :func:`dealfinder.db.mappers.map_property_row`
    first, so bedrooms/bathrooms are scalars and coordinates are floats here.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    price: Optional[float] = None
    initial_price: Optional[float] = None
    bedrooms: Optional[RoomCount] = None
    bathrooms: Optional[RoomCount] = None
    property_type: str = ""
    listing_status: str = ""
    ward: str = ""
    city: str = ""
    address: Address = Field(default_factory=Address)
    days_on_market: Optional[float] = None
    price_history: List[PricePoint] = Field(default_factory=list)
    drop_frequency_count: Optional[float] = None
    drop_percent: Optional[float] = None
    keyword_used: str = ""
    first_listed_at: Optional[datetime] = None
    removed_at: Optional[datetime] = None
    relisted_at: Optional[datetime] = None
    realtor: str = UNKNOWN_REALTOR

    @property
    def lat(self) -> Optional[float]:
        return self.address.lat

    @property
    def lng(self) -> Optional[float]:
        return self.address.lng


class PropertyListResponse(BaseModel):
    items: List[Property]
    total: int
