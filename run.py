"""Entry point for the Service Catalog API.

Starts the FastAPI application under Uvicorn.  Host, port and every
other option are read from environment variables (see
``service_catalog_api/app/core/config.py``).

Usage:
    python run.py
"""
import asyncio

from uvicorn import Config, Server

from service_catalog_api.app.core.config import Settings
from service_catalog_api.app.main import create_app


async def main() -> None:
    """Build the application and serve it until interrupted."""
    settings = Settings()
    app = create_app(settings)
    config = Config(app=app, host=settings.host, port=settings.port, reload=False, log_level=settings.log_level.lower())
    server = Server(config)
    await server.serve()
    if not server.started:
        # Schema or API key bootstrap failed; abort with a non-zero status.
        raise SystemExit(3)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
