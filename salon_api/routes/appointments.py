from fastapi import APIRouter, Depends, Query, Response

from salon_api.dependencies.services import get_appointment_service
from salon_api.routes.errors import to_http_exception
from salon_api.schemas.appointment import (
    Appointment,
    AppointmentCreateRequest,
    AppointmentListResponse,
    AppointmentUpdateRequest,
)
from salon_api.security import require_admin
from salon_api.services import AppointmentService
from salon_api.services.exceptions import ServiceError

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("", response_model=Appointment, status_code=201)
async def create_appointment(
    req: AppointmentCreateRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.create(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@admin_router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    offset: int = Query(0),
    limit: int = Query(10),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.list(offset, limit)


@admin_router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.get(appointment_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@admin_router.put("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: int,
    req: AppointmentUpdateRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.update(appointment_id, req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@admin_router.put("/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.cancel(appointment_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@admin_router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        await service.delete(appointment_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)
