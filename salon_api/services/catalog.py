from __future__ import annotations

import logging
import math
from typing import Iterable, List

from salon_api.schemas.catalog import (
    MenuItem,
    MenuItemCreateRequest,
    MenuItemListResponse,
    MenuItemUpdateRequest,
    ServiceItem,
    ServiceItemListResponse,
    ServiceItemRequest,
)
from salon_api.services.exceptions import NotFoundError, ValidationError
from salon_api.services.images import ImageStorage, release_images, store_images
from salon_api.services.store import CatalogRepository, clamp_page

logger = logging.getLogger(__name__)

MAX_DURATION_MINUTES = 24 * 60


def _clean_descriptions(descriptions: List[str]) -> List[str]:
    cleaned = [description.strip() for description in descriptions]
    if not cleaned or any(not description for description in cleaned):
        raise ValidationError("descriptions must be a non-empty list of non-blank values")
    return cleaned


def _check_duration(duration_minutes: int) -> None:
    if duration_minutes <= 0 or duration_minutes > MAX_DURATION_MINUTES:
        raise ValidationError("duration_minutes must be between 1 and 1440")


class CatalogService:
    """Public catalog reads and admin maintenance of services and menu items."""

    def __init__(
        self,
        catalog: CatalogRepository,
        images: ImageStorage,
        *,
        max_images_per_service: int = 8,
    ) -> None:
        self._catalog = catalog
        self._images = images
        self._max_images = max_images_per_service

    # --- services -------------------------------------------------------

    def _validated_fields(self, request: ServiceItemRequest) -> dict:
        service = request.service.strip()
        if not service:
            raise ValidationError("service is required")
        name = request.name.strip()
        if not name:
            raise ValidationError("name is required")
        if not math.isfinite(request.rating) or not 0 <= request.rating <= 5:
            raise ValidationError("rating must be between 0 and 5")
        if request.images is not None and len(request.images) > self._max_images:
            raise ValidationError(f"too many images (max {self._max_images})")
        return {
            "service": service,
            "name": name,
            "descriptions": _clean_descriptions(request.descriptions),
            "rating": request.rating,
        }

    def _release(self, paths: Iterable[str]) -> None:
        # Files are content-addressed, so another service may share one.
        in_use = self._catalog.referenced_images()
        release_images(self._images, [path for path in paths if path not in in_use])

    async def list_services(
        self,
        *,
        category: str = "",
        min_rating: float = 0.0,
        query: str = "",
        offset: int = 0,
        limit: int = 10,
    ) -> ServiceItemListResponse:
        offset, limit = clamp_page(offset, limit)
        items, total = self._catalog.list_services(
            category.strip(), min_rating, query.strip(), offset, limit
        )
        return ServiceItemListResponse(
            data=items,
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + limit < total,
        )

    async def get_service(self, service_id: int) -> ServiceItem:
        return self._catalog.get_service(service_id)

    async def create_service(self, request: ServiceItemRequest) -> ServiceItem:
        fields = self._validated_fields(request)
        images = store_images(self._images, request.images or [])
        created = self._catalog.create_service(ServiceItem(**fields, images=images))
        logger.info("Created service %s (%s)", created.id, created.name)
        return created

    async def update_service(self, service_id: int, request: ServiceItemRequest) -> ServiceItem:
        current = self._catalog.get_service(service_id)
        fields = self._validated_fields(request)

        if request.images is None:
            images = list(current.images)
        else:
            images = store_images(self._images, request.images)

        try:
            updated = self._catalog.update_service(service_id, ServiceItem(**fields, images=images))
        except NotFoundError:
            if request.images is not None:
                self._release(set(images) - set(current.images))
            raise
        if request.images is not None:
            self._release(set(current.images) - set(images))
        logger.info("Updated service %s", service_id)
        return updated

    async def delete_service(self, service_id: int) -> None:
        removed = self._catalog.delete_service(service_id)
        self._release(removed.images)
        logger.info("Deleted service %s and %d image(s)", service_id, len(removed.images))

    # --- menu items -----------------------------------------------------

    async def list_menu_items(
        self,
        *,
        category: str = "",
        query: str = "",
        offset: int = 0,
        limit: int = 10,
    ) -> MenuItemListResponse:
        offset, limit = clamp_page(offset, limit)
        items, total = self._catalog.list_menu_items(
            category.strip(), query.strip(), offset, limit
        )
        return MenuItemListResponse(
            data=items,
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + limit < total,
        )

    async def get_menu_item(self, item_id: int) -> MenuItem:
        return self._catalog.get_menu_item(item_id)

    async def create_menu_item(self, request: MenuItemCreateRequest) -> MenuItem:
        category = request.category.strip()
        if not category:
            raise ValidationError("category is required")
        name = request.name.strip()
        if not name:
            raise ValidationError("name is required")
        if request.price_cents < 0:
            raise ValidationError("price_cents must be >= 0")
        _check_duration(request.duration_minutes)

        created = self._catalog.create_menu_item(
            MenuItem(
                category=category,
                name=name,
                currency=(request.currency or "").strip(),
                price_cents=request.price_cents,
                duration_minutes=request.duration_minutes,
            )
        )
        logger.info("Created menu item %s (%s)", created.id, created.name)
        return created

    async def update_menu_item(self, item_id: int, request: MenuItemUpdateRequest) -> MenuItem:
        current = self._catalog.get_menu_item(item_id)
        changes = {}
        if request.category is not None:
            changes["category"] = request.category.strip()
            if not changes["category"]:
                raise ValidationError("category must be non-empty")
        if request.name is not None:
            changes["name"] = request.name.strip()
            if not changes["name"]:
                raise ValidationError("name is required")
        if request.currency is not None:
            changes["currency"] = request.currency.strip()
        if request.price_cents is not None:
            if request.price_cents < 0:
                raise ValidationError("price_cents must be >= 0")
            changes["price_cents"] = request.price_cents
        if request.duration_minutes is not None:
            _check_duration(request.duration_minutes)
            changes["duration_minutes"] = request.duration_minutes

        return self._catalog.update_menu_item(item_id, current.model_copy(update=changes))

    async def delete_menu_item(self, item_id: int) -> None:
        self._catalog.delete_menu_item(item_id)
