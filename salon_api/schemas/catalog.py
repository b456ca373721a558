from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class ServiceItem(BaseModel):
    """A bookable service with its style variants."""

    id: int = 0
    service: str
    name: str
    descriptions: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    rating: float = 0.0


class ServiceItemRequest(BaseModel):
    """Create/replace payload. ``images`` are base64 strings; omit to keep."""

    service: str
    name: str
    descriptions: List[str]
    images: Optional[List[str]] = None
    rating: float = 0.0


class ServiceItemListResponse(BaseModel):
    data: List[ServiceItem]
    total: int
    offset: int
    limit: int
    has_more: bool


class MenuItem(BaseModel):
    id: int = 0
    category: str
    name: str
    currency: str = ""
    price_cents: int
    duration_minutes: int


class MenuItemCreateRequest(BaseModel):
    category: str
    name: str
    currency: Optional[str] = None
    price_cents: int
    duration_minutes: int


class MenuItemUpdateRequest(BaseModel):
    category: Optional[str] = None
    name: Optional[str] = None
    currency: Optional[str] = None
    price_cents: Optional[int] = None
    duration_minutes: Optional[int] = None


class MenuItemListResponse(BaseModel):
    data: List[MenuItem]
    total: int
    offset: int
    limit: int
    has_more: bool
