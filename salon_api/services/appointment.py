from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from salon_api.schemas.appointment import (
    Appointment,
    AppointmentCreateRequest,
    AppointmentListResponse,
    AppointmentUpdateRequest,
)
from salon_api.schemas.catalog import ServiceItem
from salon_api.services.exceptions import NotFoundError, ValidationError
from salon_api.services.normalization import normalize_date, normalize_time
from salon_api.services.notifications import NotificationDispatcher
from salon_api.services.store import (
    STATUS_CONFIRMED,
    STATUS_PENDING,
    AppointmentRepository,
    CatalogRepository,
    clamp_page,
)

logger = logging.getLogger(__name__)

_CONTACT_FIELDS = ("customer_name", "customer_email", "customer_phone")


def _require_text(field: str, value: Any) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} is required")
    return text


class AppointmentService:
    """Booking lifecycle: normalize, validate, commit, then notify."""

    def __init__(
        self,
        appointments: AppointmentRepository,
        catalog: CatalogRepository,
        dispatcher: NotificationDispatcher,
    ) -> None:
        self._appointments = appointments
        self._catalog = catalog
        self._dispatcher = dispatcher

    def _resolve_service(self, service_id: int) -> ServiceItem:
        if service_id <= 0:
            raise ValidationError("service_id is required and must be positive")
        try:
            return self._catalog.get_service(service_id)
        except NotFoundError as exc:
            raise ValidationError("invalid service_id: service not found", cause=exc) from exc

    @staticmethod
    def _check_description(service: ServiceItem, description: str) -> None:
        if not description:
            raise ValidationError("service_description is required")
        if description not in service.descriptions:
            raise ValidationError("invalid service_description for the selected service")

    @staticmethod
    def _check_price(price_cents: int) -> None:
        if price_cents < 0:
            raise ValidationError("price_cents must be >= 0")

    def _service_name(self, service_id: int) -> str:
        try:
            return self._catalog.get_service(service_id).name
        except NotFoundError:
            return ""

    def _notify(
        self,
        send: Callable[[Appointment, str], None],
        appointment: Appointment,
        service_name: str,
    ) -> None:
        self._dispatcher.dispatch(send, appointment.model_copy(), service_name)

    async def create(self, request: AppointmentCreateRequest) -> Appointment:
        logger.info("Booking appointment for %s", request.customer_name)
        contact = {field: _require_text(field, getattr(request, field)) for field in _CONTACT_FIELDS}
        appointment = Appointment(
            **contact,
            staff_name=(request.staff_name or "").strip(),
            date=normalize_date(request.date),
            time=normalize_time(request.time),
            service_id=request.service_id,
            service_description=request.service_description.strip(),
            currency=(request.currency or "").strip(),
            price_cents=request.price_cents,
            notes=request.notes or "",
            status=(request.status or "").strip(),
        )

        service = self._resolve_service(appointment.service_id)
        self._check_description(service, appointment.service_description)
        self._check_price(appointment.price_cents)
        if not appointment.status:
            appointment.status = STATUS_PENDING

        created = self._appointments.create_within_capacity(appointment)
        logger.info("Created appointment %s for %s", created.id, created.date)
        self._notify(self._dispatcher.notifier.notify_admin_new_appointment, created, service.name)
        return created

    async def get(self, appointment_id: int) -> Appointment:
        return self._appointments.get(appointment_id)

    async def list(self, offset: int = 0, limit: int = 10) -> AppointmentListResponse:
        offset, limit = clamp_page(offset, limit)
        page, total = self._appointments.list_paginated(offset, limit)
        return AppointmentListResponse(
            data=page,
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + limit < total,
        )

    async def update(
        self, appointment_id: int, request: AppointmentUpdateRequest
    ) -> Appointment:
        current = self._appointments.get(appointment_id)
        provided = request.provided_fields()
        # Option ids are informational; the caller-supplied price is authoritative.
        provided.pop("selected_option_ids", None)
        logger.info("Updating appointment %s fields %s", appointment_id, sorted(provided))

        changes: Dict[str, Any] = {}
        for field in _CONTACT_FIELDS:
            if field in provided:
                changes[field] = _require_text(field, provided[field])
        for field in ("staff_name", "currency", "service_description"):
            if field in provided:
                changes[field] = str(provided[field]).strip()
        if "date" in provided:
            changes["date"] = normalize_date(provided["date"])
        if "time" in provided:
            changes["time"] = normalize_time(provided["time"])
        if "service_id" in provided:
            changes["service_id"] = provided["service_id"]
        if "notes" in provided:
            changes["notes"] = provided["notes"]
        if "status" in provided:
            changes["status"] = str(provided["status"]).strip() or STATUS_PENDING
        if "price_cents" in provided:
            self._check_price(provided["price_cents"])
            changes["price_cents"] = provided["price_cents"]

        merged = current.model_copy(update=changes)
        if "service_id" in changes or "service_description" in changes:
            service = self._resolve_service(merged.service_id)
            self._check_description(service, merged.service_description)

        updated = self._appointments.update(appointment_id, merged)
        service_name = self._service_name(updated.service_id)
        notifier = self._dispatcher.notifier
        if updated.status == STATUS_CONFIRMED:
            self._notify(notifier.notify_customer_confirmed, updated, service_name)
        else:
            self._notify(notifier.notify_customer_updated, updated, service_name)
        return updated

    async def cancel(self, appointment_id: int) -> Appointment:
        logger.info("Cancelling appointment %s", appointment_id)
        cancelled = self._appointments.cancel(appointment_id)
        self._notify(
            self._dispatcher.notifier.notify_customer_cancelled,
            cancelled,
            self._service_name(cancelled.service_id),
        )
        return cancelled

    async def delete(self, appointment_id: int) -> None:
        logger.info("Deleting appointment %s", appointment_id)
        self._appointments.delete(appointment_id)
