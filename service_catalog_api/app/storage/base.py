"""
Storage interface for the catalog.

Handlers only talk to ``CatalogStore``; the SQLite implementation in
``storage.sqlite`` is the one backend wired up today.  Another engine
can be added by implementing this class without touching the handlers.

Conventions shared by all implementations:

* every data operation takes a ``QueryContext`` first and stops early
  once it is done;
* a missing row is reported with ``NotFoundError``;
* any other persistence failure is reported with ``StorageError``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List

from ..core.context import QueryContext
from ..schemas.service import ServiceDetail, ServiceSummary
from ..schemas.version import VersionRead


class CatalogStore(ABC):
    """Capability set for services, versions and API keys."""

    # Services

    @abstractmethod
    def list_services(
        self,
        ctx: QueryContext,
        filter: str = "",
        sort: str = "",
        page: int = 1,
        limit: int = 20,
    ) -> List[ServiceSummary]:
        """Return one page of services with their version labels."""

    @abstractmethod
    def get_service(self, ctx: QueryContext, service_id: int) -> ServiceDetail:
        """Return a service with its full version records."""

    @abstractmethod
    def create_service(self, ctx: QueryContext, name: str, description: str) -> int:
        """Insert a service and return its id."""

    @abstractmethod
    def update_service(self, ctx: QueryContext, service_id: int, name: str, description: str) -> None:
        """Replace name and description; ``NotFoundError`` if nothing matched."""

    @abstractmethod
    def delete_service(self, ctx: QueryContext, service_id: int) -> None:
        """Delete a service.  Deleting an unknown id is not an error."""

    # Versions

    @abstractmethod
    def create_version(
        self,
        ctx: QueryContext,
        service_id: int,
        version: str,
        changelog: str,
        created_at: datetime,
    ) -> int:
        """Insert a version and return its id."""

    @abstractmethod
    def list_versions(self, ctx: QueryContext, service_id: int) -> List[VersionRead]:
        """Return a service's versions, newest first."""

    @abstractmethod
    def get_version(self, ctx: QueryContext, version_id: int) -> VersionRead:
        """Return one version."""

    @abstractmethod
    def delete_version(self, ctx: QueryContext, version_id: int) -> bool:
        """Delete a version; ``True`` if a row was removed."""

    # API keys

    @abstractmethod
    def is_valid_api_key(self, key: str) -> bool:
        """Exact-match lookup.  Lookup failures count as invalid."""

    @abstractmethod
    def count_api_keys(self) -> int:
        ...

    @abstractmethod
    def add_api_key(self, key: str) -> None:
        ...
