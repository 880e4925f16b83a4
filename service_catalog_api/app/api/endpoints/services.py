"""
Service endpoints.

CRUD routes for catalog services.  Creating a service also records its
first version; the two inserts are separate statements, so a failure of
the second one is reported as a partial success (the service exists,
its version does not) rather than rolled back.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from ...core.context import AppContext, QueryContext
from ...core.db import MAX_SQLITE_INT
from ...core.errors import CatalogError, NotFoundError, StorageError, ValidationError
from ...core.responses import write_json
from ...schemas.envelope import Envelope
from ...schemas.service import ServiceCreate, ServiceCreated, ServiceUpdate
from ...storage.base import CatalogStore
from ..deps import get_app_context, get_query_context, get_store, run_query

router = APIRouter()


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """Parse a pagination parameter, falling back to ``default`` when invalid.

    Values outside ``1..MAX_SQLITE_INT`` count as invalid.
    """
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if 1 <= value <= MAX_SQLITE_INT else default


def parse_id(raw: str, message: str) -> int:
    """Parse an integer path id or raise ``ValidationError(message)``."""
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(message)
    if abs(value) > MAX_SQLITE_INT:
        raise ValidationError(message)
    return value


def require_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Service name is required")
    return name


@router.get("", response_model=Envelope)
async def list_services(
    filter: str = Query("", description="Case-insensitive substring of name or description"),
    sort: str = Query("", description="`createdAt` for creation time, anything else for name"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Return a filtered, sorted page of services.

    Invalid or non-positive ``page``/``limit`` values fall back to the
    first page and the default page size instead of failing.
    """
    page_number = parse_positive_int(page, 1)
    page_size = parse_positive_int(limit, ctx.settings.default_page_size)
    try:
        services = await run_query(query_ctx, store.list_services, filter, sort, page_number, page_size)
    except StorageError:
        ctx.logger.exception("Error listing services")
        raise StorageError("Internal Server Error")
    return write_json(200, services)


@router.get("/{service_id}", response_model=Envelope)
async def get_service(
    service_id: str,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Return one service with its versions ordered oldest first."""
    sid = parse_id(service_id, "Invalid service ID")
    try:
        service = await run_query(query_ctx, store.get_service, sid)
    except NotFoundError:
        ctx.logger.warning("Service not found: %s", sid)
        raise
    except StorageError:
        ctx.logger.exception("Failed to get service %s", sid)
        raise StorageError("Internal server error")
    return write_json(200, service)


@router.post("", response_model=Envelope)
async def create_service(
    payload: ServiceCreate,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Create a service and its first version.

    Returns ``{"id": <new id>}``.  If the version cannot be stored the
    response is a 500 whose error says so and whose data still carries
    the id of the service that was created.
    """
    name = require_name(payload.name)

    try:
        service_id = await run_query(query_ctx, store.create_service, name, payload.description)
    except StorageError:
        ctx.logger.exception("Failed to create service %r", name)
        raise StorageError("Failed to create service")

    try:
        await run_query(
            query_ctx,
            store.create_version,
            service_id,
            payload.version,
            payload.changelog,
            datetime.now(timezone.utc),
        )
    except CatalogError:
        ctx.logger.exception("Failed to create initial version for service %s", service_id)
        raise StorageError(
            "Service created but failed to add version",
            data=ServiceCreated(id=service_id),
        )

    ctx.logger.info("Service %s created with version %s", service_id, payload.version)
    return write_json(200, ServiceCreated(id=service_id))


@router.put("/{service_id}", response_model=Envelope)
async def update_service(
    service_id: str,
    payload: ServiceUpdate,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Replace a service's name and description."""
    sid = parse_id(service_id, "Invalid service ID")
    name = require_name(payload.name)
    try:
        await run_query(query_ctx, store.update_service, sid, name, payload.description)
    except NotFoundError:
        ctx.logger.warning("Service not found for update: %s", sid)
        raise
    except StorageError:
        ctx.logger.exception("Failed to update service %s", sid)
        raise StorageError("Failed to update service")
    return write_json(200, None)


@router.delete("/{service_id}", response_model=Envelope)
async def delete_service(
    service_id: str,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Delete a service and its versions.  Unknown ids are not an error."""
    sid = parse_id(service_id, "Invalid service ID")
    try:
        await run_query(query_ctx, store.delete_service, sid)
    except StorageError:
        ctx.logger.exception("Failed to delete service %s", sid)
        raise StorageError("Could not delete service")
    return write_json(200, "service deleted successfully")
