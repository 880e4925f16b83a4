"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
service can be started without any configuration at all.  Tests and
embedding applications construct their own ``Settings`` instance and
pass it to ``create_app`` instead of touching the environment.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Service Catalog API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # Path to the SQLite database file.  Relative paths are resolved
    # against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "services.db")

    # Name of the header carrying the shared API key.
    api_key_header: str = os.getenv("API_KEY_HEADER", "X-API-Key")

    # Page size used when the ``limit`` query parameter is missing or invalid.
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))

    # Upper bound in seconds for a single storage call.  ``0`` disables it.
    query_timeout: float = float(os.getenv("QUERY_TIMEOUT", "0"))

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8080"))
