from fastapi import APIRouter, Depends, Query, Response

from salon_api.dependencies.services import get_catalog_service
from salon_api.routes.errors import to_http_exception
from salon_api.schemas.catalog import (
    MenuItem,
    MenuItemCreateRequest,
    MenuItemListResponse,
    MenuItemUpdateRequest,
    ServiceItem,
    ServiceItemListResponse,
    ServiceItemRequest,
)
from salon_api.security import require_admin
from salon_api.services import CatalogService
from salon_api.services.exceptions import ServiceError

services_router = APIRouter()
services_admin_router = APIRouter(dependencies=[Depends(require_admin)])
menu_router = APIRouter()
menu_admin_router = APIRouter(dependencies=[Depends(require_admin)])


# --- services ---------------------------------------------------------------


@services_router.get("", response_model=ServiceItemListResponse)
async def list_services(
    category: str = Query(""),
    min_rating: float = Query(0.0),
    q: str = Query(""),
    offset: int = Query(0),
    limit: int = Query(10),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.list_services(
        category=category,
        min_rating=min_rating,
        query=q,
        offset=offset,
        limit=limit,
    )


@services_router.get("/{service_id}", response_model=ServiceItem)
async def get_service(
    service_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        return await catalog.get_service(service_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@services_admin_router.post("", response_model=ServiceItem, status_code=201)
async def create_service(
    req: ServiceItemRequest,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        return await catalog.create_service(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@services_admin_router.put("/{service_id}", response_model=ServiceItem)
async def update_service(
    service_id: int,
    req: ServiceItemRequest,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        return await catalog.update_service(service_id, req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@services_admin_router.delete("/{service_id}", status_code=204)
async def delete_service(
    service_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        await catalog.delete_service(service_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)


# --- menu items -------------------------------------------------------------


@menu_router.get("", response_model=MenuItemListResponse)
async def list_menu_items(
    category: str = Query(""),
    q: str = Query(""),
    offset: int = Query(0),
    limit: int = Query(10),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.list_menu_items(
        category=category,
        query=q,
        offset=offset,
        limit=limit,
    )


@menu_router.get("/{item_id}", response_model=MenuItem)
async def get_menu_item(
    item_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        return await catalog.get_menu_item(item_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@menu_admin_router.post("", response_model=MenuItem, status_code=201)
async def create_menu_item(
    req: MenuItemCreateRequest,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        return await catalog.create_menu_item(req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@menu_admin_router.put("/{item_id}", response_model=MenuItem)
async def update_menu_item(
    item_id: int,
    req: MenuItemUpdateRequest,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        return await catalog.update_menu_item(item_id, req)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


@menu_admin_router.delete("/{item_id}", status_code=204)
async def delete_menu_item(
    item_id: int,
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        await catalog.delete_menu_item(item_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)
