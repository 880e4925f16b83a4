"""
Top-level router for the catalog API.

Aggregates the resource routers.  The API key check is attached when
``main.create_app`` includes this router, so every route defined here
is guarded.
"""

from fastapi import APIRouter

from .endpoints import services, versions

router = APIRouter()

router.include_router(services.router, prefix="/services", tags=["services"])
# The versions router defines full paths (``/services/{id}/versions`` and
# ``/versions/{id}``), so it is included without a prefix.
router.include_router(versions.router, tags=["versions"])
