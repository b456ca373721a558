from contextlib import asynccontextmanager
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from salon_api.config import get_settings
from salon_api.dependencies.services import get_dispatcher_cached

from salon_api.health import router as health_router
from salon_api.routes.appointments import admin_router as appointments_admin_router
from salon_api.routes.appointments import router as appointments_router
from salon_api.routes.catalog import (
    menu_admin_router,
    menu_router,
    services_admin_router,
    services_router,
)
from salon_api.services.store import get_store


def configure_logging() -> None:
    """Send salon_api logs to stderr at INFO unless the host already configured logging."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Importing the app is enough to get useful logs under uvicorn.
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare uploads, store and dispatcher; drain notifications on exit."""
    settings = get_settings()

    settings_snapshot = settings.model_dump(
        exclude={"admin_token", "smtp_password"},
    )
    logger.info("Starting %s with settings: %s", settings.app_name, settings_snapshot)

    Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)

    store = get_store()
    _, service_count = store.catalog.list_services(limit=1)
    logger.info("Catalog ready with %d service(s)", service_count)

    dispatcher = get_dispatcher_cached()
    logger.info("Application startup complete.")

    try:
        yield
    finally:
        logger.info("Waiting for pending notifications.")
        dispatcher.shutdown(wait=True)
        get_dispatcher_cached.cache_clear()
        logger.info("Application shutdown complete.")


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Authorization"],
    expose_headers=["Content-Length"],
    max_age=12 * 3600,
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies and query strings are client errors like any other.
    return JSONResponse(status_code=400, content={"detail": _describe_validation_error(exc)})


app.include_router(appointments_router, prefix="/appointments")
app.include_router(services_router, prefix="/services")
app.include_router(menu_router, prefix="/menu-items")
app.include_router(appointments_admin_router, prefix="/admin/appointments")
app.include_router(services_admin_router, prefix="/admin/services")
app.include_router(menu_admin_router, prefix="/admin/menu-items")
app.include_router(health_router)

app.mount(
    "/uploads",
    StaticFiles(directory=settings.uploads_dir, check_dir=False),
    name="uploads",
)
