# salon_api/health.py
from fastapi import APIRouter, Depends

from salon_api.dependencies.services import get_salon_store
from salon_api.services.store import SalonStore

router = APIRouter()


@router.get("/health")
def health(store: SalonStore = Depends(get_salon_store)):
    _, appointments = store.appointments.list_paginated(0, 1)
    _, services = store.catalog.list_services(limit=1)
    return {"ok": True, "appointments": appointments, "services": services}
