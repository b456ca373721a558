from fastapi import HTTPException

from salon_api.services.exceptions import ServiceError


def to_http_exception(exc: ServiceError) -> HTTPException:
    """Map a service-layer failure to the HTTP status it stands for."""

    return HTTPException(status_code=exc.status_code, detail=exc.message)
