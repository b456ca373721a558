from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from salon_api.config import get_settings
from salon_api.schemas.appointment import Appointment
from salon_api.schemas.catalog import MenuItem, ServiceItem
from salon_api.services.exceptions import ConflictError, NotFoundError
from salon_api.services.locks import ReadWriteLock

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_DAILY_CAPACITY = 15

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"

NO_SLOTS_MESSAGE = (
    "No slots available for the requested date. "
    "Maximum appointments reached for the day."
)


def clamp_page(
    offset: int,
    limit: int,
    *,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> Tuple[int, int]:
    """Return the effective ``(offset, limit)`` used by every list operation."""

    if offset < 0:
        offset = 0
    if limit <= 0:
        limit = default_limit
    if limit > max_limit:
        limit = max_limit
    return offset, limit


class _BaseRepository:
    def __init__(self) -> None:
        self._lock = ReadWriteLock()

    @staticmethod
    def _new_counter() -> "itertools.count[int]":
        return itertools.count(1)


class AppointmentRepository(_BaseRepository):
    """Authoritative appointment storage.

    Records handed out are copies; the only way to change stored state is
    through the write methods below.
    """

    def __init__(self, *, capacity: int = DEFAULT_DAILY_CAPACITY) -> None:
        super().__init__()
        self.capacity = capacity
        self._appointments: Dict[int, Appointment] = {}
        self._counter = self._new_counter()

    def _insert(self, appointment: Appointment) -> Appointment:
        record = appointment.model_copy(update={"id": next(self._counter)})
        self._appointments[record.id] = record
        return record.model_copy()

    def _count(self, date: str, status: str) -> int:
        return sum(
            1
            for record in self._appointments.values()
            if record.date == date and record.status == status
        )

    def create(self, appointment: Appointment) -> Appointment:
        with self._lock.write_locked():
            return self._insert(appointment)

    def create_within_capacity(
        self, appointment: Appointment, capacity: Optional[int] = None
    ) -> Appointment:
        """Insert only if the date still has room, as one critical section."""

        limit = self.capacity if capacity is None else capacity
        with self._lock.write_locked():
            if self._count(appointment.date, STATUS_CONFIRMED) >= limit:
                raise ConflictError(NO_SLOTS_MESSAGE)
            return self._insert(appointment)

    def get(self, appointment_id: int) -> Appointment:
        with self._lock.read_locked():
            record = self._appointments.get(appointment_id)
            if record is None:
                raise NotFoundError()
            return record.model_copy()

    def update(self, appointment_id: int, replacement: Appointment) -> Appointment:
        with self._lock.write_locked():
            if appointment_id not in self._appointments:
                raise NotFoundError()
            record = replacement.model_copy(update={"id": appointment_id})
            self._appointments[appointment_id] = record
            return record.model_copy()

    def cancel(self, appointment_id: int) -> Appointment:
        with self._lock.write_locked():
            record = self._appointments.get(appointment_id)
            if record is None:
                raise NotFoundError()
            record = record.model_copy(update={"status": STATUS_CANCELLED})
            self._appointments[appointment_id] = record
            return record.model_copy()

    def delete(self, appointment_id: int) -> None:
        with self._lock.write_locked():
            if self._appointments.pop(appointment_id, None) is None:
                raise NotFoundError()

    def count_by_date_and_status(self, date: str, status: str) -> int:
        with self._lock.read_locked():
            return self._count(date, status)

    def is_slot_available(self, date: str) -> bool:
        return self.count_by_date_and_status(date, STATUS_CONFIRMED) < self.capacity

    def list_paginated(self, offset: int, limit: int) -> Tuple[List[Appointment], int]:
        offset, limit = clamp_page(offset, limit)
        with self._lock.read_locked():
            ordered = sorted(self._appointments.values(), key=lambda record: record.id)
            page = [record.model_copy() for record in ordered[offset:offset + limit]]
            return page, len(ordered)


def _matches_query(item: ServiceItem, query: str) -> bool:
    needle = query.lower()
    if needle in item.name.lower():
        return True
    return any(needle in description.lower() for description in item.descriptions)


class CatalogRepository(_BaseRepository):
    """Services and menu items behind one lock."""

    def __init__(self) -> None:
        super().__init__()
        self._services: Dict[int, ServiceItem] = {}
        self._service_counter = self._new_counter()
        self._menu_items: Dict[int, MenuItem] = {}
        self._menu_counter = self._new_counter()

    # --- services -------------------------------------------------------

    def create_service(self, item: ServiceItem) -> ServiceItem:
        with self._lock.write_locked():
            record = item.model_copy(update={"id": next(self._service_counter)}, deep=True)
            self._services[record.id] = record
            return record.model_copy(deep=True)

    def get_service(self, service_id: int) -> ServiceItem:
        with self._lock.read_locked():
            record = self._services.get(service_id)
            if record is None:
                raise NotFoundError()
            return record.model_copy(deep=True)

    def update_service(self, service_id: int, replacement: ServiceItem) -> ServiceItem:
        with self._lock.write_locked():
            if service_id not in self._services:
                raise NotFoundError()
            record = replacement.model_copy(update={"id": service_id}, deep=True)
            self._services[service_id] = record
            return record.model_copy(deep=True)

    def delete_service(self, service_id: int) -> ServiceItem:
        """Remove a service and return it so its images can be released."""

        with self._lock.write_locked():
            record = self._services.pop(service_id, None)
            if record is None:
                raise NotFoundError()
            return record

    def referenced_images(self) -> Set[str]:
        with self._lock.read_locked():
            return {path for item in self._services.values() for path in item.images}

    def list_services(
        self,
        category: str = "",
        min_rating: float = 0.0,
        query: str = "",
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[ServiceItem], int]:
        offset, limit = clamp_page(offset, limit)
        with self._lock.read_locked():
            filtered = [
                item
                for item in sorted(self._services.values(), key=lambda item: item.id)
                if (not category or item.service == category)
                and (min_rating <= 0 or item.rating >= min_rating)
                and (not query or _matches_query(item, query))
            ]
            page = [item.model_copy(deep=True) for item in filtered[offset:offset + limit]]
            return page, len(filtered)

    # --- menu items -----------------------------------------------------

    def create_menu_item(self, item: MenuItem) -> MenuItem:
        with self._lock.write_locked():
            record = item.model_copy(update={"id": next(self._menu_counter)})
            self._menu_items[record.id] = record
            return record.model_copy()

    def get_menu_item(self, item_id: int) -> MenuItem:
        with self._lock.read_locked():
            record = self._menu_items.get(item_id)
            if record is None:
                raise NotFoundError()
            return record.model_copy()

    def update_menu_item(self, item_id: int, replacement: MenuItem) -> MenuItem:
        with self._lock.write_locked():
            if item_id not in self._menu_items:
                raise NotFoundError()
            record = replacement.model_copy(update={"id": item_id})
            self._menu_items[item_id] = record
            return record.model_copy()

    def delete_menu_item(self, item_id: int) -> None:
        with self._lock.write_locked():
            if self._menu_items.pop(item_id, None) is None:
                raise NotFoundError()

    def list_menu_items(
        self,
        category: str = "",
        query: str = "",
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[MenuItem], int]:
        offset, limit = clamp_page(offset, limit)
        needle = query.lower()
        with self._lock.read_locked():
            filtered = [
                item
                for item in sorted(self._menu_items.values(), key=lambda item: item.id)
                if (not category or item.category == category)
                and (not needle or needle in item.name.lower())
            ]
            page = [item.model_copy() for item in filtered[offset:offset + limit]]
            return page, len(filtered)


def default_service_items() -> Iterable[ServiceItem]:
    return [
        ServiceItem(
            service="Hair Styling & Braiding",
            name="Knotless Braids",
            descriptions=["Small", "Medium", "Large"],
        ),
        ServiceItem(
            service="Hair Styling & Braiding",
            name="Wig Install",
            descriptions=["Closure", "Frontal"],
        ),
        ServiceItem(service="Makeup", name="Soft Glam", descriptions=["Day", "Evening"]),
        ServiceItem(
            service="Makeup",
            name="Bridal Makeup",
            descriptions=["Bride", "Bridesmaid"],
        ),
        ServiceItem(
            service="Nails",
            name="Gel Manicure",
            descriptions=["Short", "Medium", "Long"],
        ),
        ServiceItem(
            service="Nails",
            name="Acrylic Full Set",
            descriptions=["Short", "Medium", "Long"],
        ),
    ]


def seed_catalog(catalog: CatalogRepository) -> None:
    for item in default_service_items():
        catalog.create_service(item)


@dataclass
class SalonStore:
    appointments: AppointmentRepository
    catalog: CatalogRepository


_store: Optional[SalonStore] = None


def build_store(*, capacity: int = DEFAULT_DAILY_CAPACITY, seed: bool = True) -> SalonStore:
    catalog = CatalogRepository()
    if seed:
        seed_catalog(catalog)
    return SalonStore(
        appointments=AppointmentRepository(capacity=capacity),
        catalog=catalog,
    )


def get_store() -> SalonStore:
    global _store
    if _store is None:
        settings = get_settings()
        _store = build_store(
            capacity=settings.daily_capacity,
            seed=settings.seed_catalog,
        )
    return _store


def reset_store() -> None:
    global _store
    _store = None
