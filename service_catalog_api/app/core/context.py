"""
Per-application and per-request context objects.

``AppContext`` bundles the objects created once at startup (settings,
storage backend, logger).  It is attached to ``app.state`` by
``create_app`` and handed to endpoints through dependencies, so no
module keeps its own global copy.

``QueryContext`` is the per-request cancellation signal passed into
every storage call.  The SQLite store polls it while a statement runs
and aborts the statement once the request has been cancelled or its
deadline has passed.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from fastapi import Request

from .config import Settings

if TYPE_CHECKING:
    from ..storage.base import CatalogStore


class QueryContext:
    """Cancellation flag plus optional deadline for storage calls."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._cancelled = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout else None

    @classmethod
    def background(cls) -> "QueryContext":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def done(self) -> bool:
        """True once the work tied to this context should stop."""
        return self.cancelled or self.expired


@dataclass
class AppContext:
    settings: Settings
    store: "CatalogStore"
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("service_catalog_api"))


def get_app_context(request: Request) -> AppContext:
    """Dependency returning the context built by ``create_app``."""
    return request.app.state.ctx
