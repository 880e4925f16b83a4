"""
Version endpoints.

Versions are created and listed under their service
(``/services/{id}/versions``) and fetched or deleted on their own
(``/versions/{id}``).  This router defines the full paths itself and is
included without a prefix.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status

from ...core.context import AppContext, QueryContext
from ...core.errors import NotFoundError, StorageError
from ...core.responses import write_json
from ...schemas.envelope import Envelope
from ...schemas.version import VersionCreate, VersionRead
from ...storage.base import CatalogStore
from ..deps import get_app_context, get_query_context, get_store, run_query
from .services import parse_id

router = APIRouter()


@router.post("/services/{service_id}/versions", response_model=Envelope)
async def create_version(
    service_id: str,
    payload: VersionCreate,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Add a version to a service and return the stored record."""
    sid = parse_id(service_id, "Invalid service ID")
    created_at = datetime.now(timezone.utc)
    try:
        version_id = await run_query(
            query_ctx, store.create_version, sid, payload.version, payload.changelog, created_at
        )
    except NotFoundError:
        ctx.logger.warning("Cannot add version to unknown service %s", sid)
        raise
    except StorageError:
        ctx.logger.exception("DB error creating version for service %s", sid)
        raise StorageError("Failed to create version")

    ctx.logger.info("Version %s created for service %s", version_id, sid)
    version = VersionRead(
        id=version_id,
        service_id=sid,
        version=payload.version,
        changelog=payload.changelog or None,
        created_at=created_at,
    )
    return write_json(200, version)


@router.get("/services/{service_id}/versions", response_model=Envelope)
async def list_versions(
    service_id: str,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Return a service's versions, newest first."""
    sid = parse_id(service_id, "Invalid service ID")
    try:
        versions = await run_query(query_ctx, store.list_versions, sid)
    except StorageError:
        ctx.logger.exception("Error while fetching versions for service %s", sid)
        raise StorageError("Failed to fetch versions")
    ctx.logger.info("Fetched %d versions for service %s", len(versions), sid)
    return write_json(200, versions)


@router.get("/versions/{version_id}", response_model=Envelope)
async def get_version(
    version_id: str,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    vid = parse_id(version_id, "Invalid version ID")
    try:
        version = await run_query(query_ctx, store.get_version, vid)
    except NotFoundError:
        ctx.logger.warning("Version not found: %s", vid)
        raise
    except StorageError:
        ctx.logger.exception("Error while fetching version %s", vid)
        raise StorageError("Failed to fetch version")
    return write_json(200, version)


@router.delete("/versions/{version_id}", response_model=Envelope)
async def delete_version(
    version_id: str,
    ctx: AppContext = Depends(get_app_context),
    store: CatalogStore = Depends(get_store),
    query_ctx: QueryContext = Depends(get_query_context),
) -> Response:
    """Delete a version.  204 when a row was removed, 404 otherwise."""
    vid = parse_id(version_id, "Invalid version ID")
    try:
        deleted = await run_query(query_ctx, store.delete_version, vid)
    except StorageError:
        ctx.logger.exception("Error while deleting version %s", vid)
        raise StorageError("Failed to delete version")
    if not deleted:
        ctx.logger.warning("Version not found for deletion: %s", vid)
        raise NotFoundError("Version not found")
    ctx.logger.info("Version %s deleted", vid)
    return write_json(status.HTTP_204_NO_CONTENT)
