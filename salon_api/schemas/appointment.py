from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, model_validator

from salon_api.services.normalization import collapse_aliases


class Appointment(BaseModel):
    id: int = 0
    customer_name: str
    customer_email: str
    customer_phone: str
    staff_name: str = ""
    date: str
    time: str
    service_id: int
    service_description: str
    currency: str = ""
    price_cents: int = 0
    notes: str = ""
    status: str = "pending"


class _AliasedRequest(BaseModel):
    @model_validator(mode="before")
    @classmethod
    def _fold_aliases(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return collapse_aliases(data)
        return data


class AppointmentCreateRequest(_AliasedRequest):
    """Public booking payload.

    ``date`` and ``time`` may arrive under any spelling listed in
    ``FIELD_ALIASES`` and in any accepted layout; they stay raw here and are
    normalized by the appointment service.
    """

    customer_name: str
    customer_email: EmailStr
    customer_phone: str
    staff_name: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    service_id: int
    service_description: str
    selected_option_ids: Optional[List[int]] = None
    currency: Optional[str] = None
    price_cents: int
    notes: Optional[str] = None
    status: Optional[str] = None


class AppointmentUpdateRequest(_AliasedRequest):
    """Partial update; a field that is absent or null keeps its stored value."""

    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    staff_name: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    service_id: Optional[int] = None
    service_description: Optional[str] = None
    selected_option_ids: Optional[List[int]] = None
    currency: Optional[str] = None
    price_cents: Optional[int] = None
    notes: Optional[str] = None
    status: Optional[str] = None

    def provided_fields(self) -> dict[str, Any]:
        """Return the fields the caller actually supplied with a value."""

        return {
            name: value
            for name, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class AppointmentListResponse(BaseModel):
    data: List[Appointment]
    total: int
    offset: int
    limit: int
    has_more: bool
