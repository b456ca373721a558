import os
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from salon_api.schemas.appointment import Appointment
from salon_api.schemas.catalog import MenuItem, ServiceItem
from salon_api.services.exceptions import ConflictError, NotFoundError
from salon_api.services.store import (
    NO_SLOTS_MESSAGE,
    AppointmentRepository,
    CatalogRepository,
    build_store,
    clamp_page,
    get_store,
    reset_store,
)


@pytest.fixture(autouse=True)
def _reset_store() -> None:
    reset_store()
    yield
    reset_store()


def _appointment(date: str = "2025-03-15", status: str = "pending") -> Appointment:
    return Appointment(
        customer_name="Ada",
        customer_email="ada@example.com",
        customer_phone="555-0100",
        date=date,
        time="10:00",
        service_id=1,
        service_description="Small",
        price_cents=4500,
        status=status,
    )


@pytest.mark.parametrize(
    "offset, limit, expected",
    [
        (0, 10, (0, 10)),
        (-5, 10, (0, 10)),
        (0, 0, (0, 10)),
        (0, -1, (0, 10)),
        (3, 500, (3, 100)),
        (7, 100, (7, 100)),
    ],
)
def test_clamp_page(offset: int, limit: int, expected) -> None:
    assert clamp_page(offset, limit) == expected


def test_ids_are_sequential_and_never_reused() -> None:
    repo = AppointmentRepository()
    first = repo.create(_appointment())
    second = repo.create(_appointment())
    repo.delete(second.id)
    third = repo.create(_appointment())

    assert (first.id, second.id, third.id) == (1, 2, 3)


def test_returned_records_are_copies() -> None:
    repo = AppointmentRepository()
    created = repo.create(_appointment())
    created.customer_name = "Mallory"

    fetched = repo.get(created.id)
    fetched.status = "confirmed"

    assert repo.get(created.id).customer_name == "Ada"
    assert repo.get(created.id).status == "pending"


def test_update_replaces_record_but_keeps_id() -> None:
    repo = AppointmentRepository()
    created = repo.create(_appointment())

    updated = repo.update(created.id, _appointment(status="confirmed").model_copy(update={"id": 99}))

    assert updated.id == created.id
    assert repo.get(created.id).status == "confirmed"


def test_update_missing_record_raises_not_found() -> None:
    with pytest.raises(NotFoundError):
        AppointmentRepository().update(7, _appointment())


def test_cancel_is_idempotent() -> None:
    repo = AppointmentRepository()
    created = repo.create(_appointment(status="confirmed"))

    assert repo.cancel(created.id).status == "cancelled"
    assert repo.cancel(created.id).status == "cancelled"


def test_cancel_missing_record_raises_not_found() -> None:
    with pytest.raises(NotFoundError):
        AppointmentRepository().cancel(1)


def test_delete_twice_raises_not_found() -> None:
    repo = AppointmentRepository()
    created = repo.create(_appointment())
    repo.delete(created.id)

    with pytest.raises(NotFoundError):
        repo.delete(created.id)
    with pytest.raises(NotFoundError):
        repo.get(created.id)


def test_list_paginated_orders_by_id_and_reports_total() -> None:
    repo = AppointmentRepository()
    for _ in range(5):
        repo.create(_appointment())

    page, total = repo.list_paginated(1, 2)
    assert [record.id for record in page] == [2, 3]
    assert total == 5

    page, total = repo.list_paginated(50, 10)
    assert page == []
    assert total == 5


def test_count_by_date_and_status() -> None:
    repo = AppointmentRepository()
    repo.create(_appointment(status="confirmed"))
    repo.create(_appointment(status="confirmed"))
    repo.create(_appointment(status="pending"))
    repo.create(_appointment(date="2025-03-16", status="confirmed"))

    assert repo.count_by_date_and_status("2025-03-15", "confirmed") == 2
    assert repo.count_by_date_and_status("2025-03-15", "pending") == 1
    assert repo.count_by_date_and_status("2025-03-17", "confirmed") == 0


def test_slot_availability_counts_only_confirmed() -> None:
    repo = AppointmentRepository(capacity=2)
    repo.create(_appointment(status="confirmed"))
    repo.create(_appointment(status="pending"))
    repo.create(_appointment(status="cancelled"))
    assert repo.is_slot_available("2025-03-15") is True

    repo.create(_appointment(status="confirmed"))
    assert repo.is_slot_available("2025-03-15") is False
    assert repo.is_slot_available("2025-03-16") is True


def test_create_within_capacity_rejects_full_day() -> None:
    repo = AppointmentRepository(capacity=1)
    repo.create_within_capacity(_appointment(status="confirmed"))

    with pytest.raises(ConflictError) as excinfo:
        repo.create_within_capacity(_appointment())

    assert excinfo.value.message == NO_SLOTS_MESSAGE
    assert repo.list_paginated(0, 10)[1] == 1


def test_create_within_capacity_never_overbooks_under_concurrency() -> None:
    repo = AppointmentRepository(capacity=5)

    def book(_: int) -> bool:
        try:
            repo.create_within_capacity(_appointment(status="confirmed"))
        except ConflictError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(book, range(40)))

    assert sum(results) == 5
    assert repo.count_by_date_and_status("2025-03-15", "confirmed") == 5


def test_seeded_catalog_has_six_services() -> None:
    store = build_store()
    items, total = store.catalog.list_services(limit=100)

    assert total == 6
    assert [item.id for item in items] == [1, 2, 3, 4, 5, 6]
    assert items[0].name == "Knotless Braids"
    assert items[0].descriptions == ["Small", "Medium", "Large"]


def test_unseeded_store_is_empty() -> None:
    store = build_store(seed=False)
    assert store.catalog.list_services()[1] == 0


def test_get_store_is_shared_until_reset() -> None:
    store = get_store()
    assert get_store() is store

    reset_store()
    assert get_store() is not store


def test_list_services_filters() -> None:
    catalog = build_store().catalog

    nails, total = catalog.list_services(category="Nails")
    assert total == 2
    assert {item.name for item in nails} == {"Gel Manicure", "Acrylic Full Set"}

    matches, _ = catalog.list_services(query="bride")
    assert [item.name for item in matches] == ["Bridal Makeup"]

    catalog.update_service(3, catalog.get_service(3).model_copy(update={"rating": 4.5}))
    rated, total = catalog.list_services(min_rating=4)
    assert total == 1
    assert rated[0].id == 3


def test_catalog_service_copies_are_deep() -> None:
    catalog = CatalogRepository()
    created = catalog.create_service(ServiceItem(service="Nails", name="Polish", descriptions=["Short"]))
    created.descriptions.append("Long")

    assert catalog.get_service(created.id).descriptions == ["Short"]


def test_delete_service_returns_removed_item() -> None:
    catalog = CatalogRepository()
    created = catalog.create_service(
        ServiceItem(service="Nails", name="Polish", descriptions=["Short"], images=["uploads/a.png"])
    )

    removed = catalog.delete_service(created.id)

    assert removed.images == ["uploads/a.png"]
    assert catalog.referenced_images() == set()
    with pytest.raises(NotFoundError):
        catalog.delete_service(created.id)


def test_menu_items_crud_and_filters() -> None:
    catalog = CatalogRepository()
    trim = catalog.create_menu_item(
        MenuItem(category="Hair", name="Trim", price_cents=2000, duration_minutes=30)
    )
    catalog.create_menu_item(
        MenuItem(category="Nails", name="Gel Polish", price_cents=3500, duration_minutes=45)
    )

    hair, total = catalog.list_menu_items(category="Hair")
    assert total == 1
    assert hair[0].id == trim.id

    polish, _ = catalog.list_menu_items(query="POLISH")
    assert [item.name for item in polish] == ["Gel Polish"]

    catalog.update_menu_item(trim.id, trim.model_copy(update={"price_cents": 2500}))
    assert catalog.get_menu_item(trim.id).price_cents == 2500

    catalog.delete_menu_item(trim.id)
    with pytest.raises(NotFoundError):
        catalog.get_menu_item(trim.id)
