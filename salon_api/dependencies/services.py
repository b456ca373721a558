from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from salon_api.config import Settings, get_settings
from salon_api.services import AppointmentService, CatalogService
from salon_api.services.images import LocalImageStorage
from salon_api.services.notifications import NotificationDispatcher, build_notifier
from salon_api.services.store import SalonStore, get_store


@lru_cache(maxsize=1)
def get_dispatcher_cached() -> NotificationDispatcher:
    settings = get_settings()
    return NotificationDispatcher(
        build_notifier(settings),
        max_workers=settings.notification_workers,
    )


def get_dispatcher() -> NotificationDispatcher:
    return get_dispatcher_cached()


def get_salon_store() -> SalonStore:
    return get_store()


def get_image_storage(settings: Settings = Depends(get_settings)) -> LocalImageStorage:
    return LocalImageStorage(settings.uploads_dir)


def get_appointment_service(
    store: SalonStore = Depends(get_salon_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> AppointmentService:
    return AppointmentService(store.appointments, store.catalog, dispatcher)


def get_catalog_service(
    store: SalonStore = Depends(get_salon_store),
    images: LocalImageStorage = Depends(get_image_storage),
    settings: Settings = Depends(get_settings),
) -> CatalogService:
    return CatalogService(
        store.catalog,
        images,
        max_images_per_service=settings.max_images_per_service,
    )
