"""
Top-level package for the Service Catalog API.

This file makes ``service_catalog_api`` a package so that modules
within ``app`` can be imported using fully qualified names like
``service_catalog_api.app.main``.  All functionality lives in
submodules under ``app``.
"""

__all__ = []
