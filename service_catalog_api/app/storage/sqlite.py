"""
SQLite implementation of ``CatalogStore``.

Queries are assembled by hand from the filter, sort and pagination
parameters and always use parameterized statements for values.  Each
call opens its own short-lived connection; no transaction spans more
than one call.

While a statement runs, a progress handler polls the request's
``QueryContext`` and interrupts the statement once the request has been
cancelled or has run past its deadline.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from ..core.context import QueryContext
from ..core.db import MAX_SQLITE_INT, get_connection
from ..core.errors import NotFoundError, StorageError
from ..schemas.service import ServiceDetail, ServiceSummary
from ..schemas.version import VersionRead
from .base import CatalogStore

# Number of SQLite VM instructions between two cancellation checks.
PROGRESS_STEPS = 1000

# Separator used to aggregate version labels; labels may contain commas.
LABEL_SEPARATOR = "\x1f"

LIST_SERVICES_SQL = """
    SELECT s.id, s.name, s.description, s.created_at,
           GROUP_CONCAT(v.version, char(31)) AS versions
    FROM services s
    LEFT JOIN (
        SELECT service_id, version FROM versions ORDER BY created_at ASC, id ASC
    ) v ON s.id = v.service_id"""

GET_SERVICE_SQL = """
    SELECT s.id AS service_id, s.name, s.description, s.created_at AS service_created_at,
           v.id AS version_id, v.version, v.changelog, v.created_at AS version_created_at
    FROM services s
    LEFT JOIN versions v ON s.id = v.service_id
    WHERE s.id = ?
    ORDER BY v.created_at ASC, v.id ASC
"""

VERSION_COLUMNS = "id, service_id, version, changelog, created_at"


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_timestamp(value) -> Optional[datetime]:
    """Turn a stored timestamp string into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: datetime) -> str:
    """Store timestamps as naive UTC text, the same layout CURRENT_TIMESTAMP uses."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%d %H:%M:%S.%f")


class SQLiteCatalogStore(CatalogStore):
    """Catalog storage backed by a single SQLite database file."""

    def __init__(self, db_path: str, logger: Optional[logging.Logger] = None) -> None:
        self.db_path = db_path
        self.logger = logger or logging.getLogger(__name__)

    @contextmanager
    def _connect(self, ctx: QueryContext) -> Iterator[sqlite3.Connection]:
        """Open a connection bound to ``ctx`` and translate driver errors."""
        if ctx.done():
            raise StorageError("Query cancelled before it started")
        try:
            conn = get_connection(self.db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open database: {exc}") from exc
        conn.set_progress_handler(lambda: 1 if ctx.done() else 0, PROGRESS_STEPS)
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            if ctx.done():
                self.logger.warning("Query interrupted: %s", exc)
                raise StorageError("Query cancelled") from exc
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def list_services(
        self,
        ctx: QueryContext,
        filter: str = "",
        sort: str = "",
        page: int = 1,
        limit: int = 20,
    ) -> List[ServiceSummary]:
        """Return one page of services with their aggregated version labels.

        - ``filter`` matches case-insensitively against name or description.
        - ``sort`` is ``createdAt`` (any case) for creation time, any other
          non-empty value for name; empty keeps insertion order.
        - ``page`` and ``limit`` translate to ``OFFSET (page-1)*limit``; an
          offset beyond SQLite's integer range is past the last row.
        """
        offset = (page - 1) * limit
        if offset > MAX_SQLITE_INT:
            return []
        limit = min(limit, MAX_SQLITE_INT)
        query = LIST_SERVICES_SQL
        params: list = []
        where_clauses: list[str] = []
        if filter:
            where_clauses.append(
                "(casefold(s.name) LIKE casefold(?) ESCAPE '\\' "
                "OR casefold(s.description) LIKE casefold(?) ESCAPE '\\')"
            )
            pattern = f"%{_escape_like(filter)}%"
            params.extend([pattern, pattern])
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " GROUP BY s.id"
        if sort:
            sort_by = "s.created_at" if sort.lower() == "createdat" else "s.name"
            query += f" ORDER BY {sort_by}, s.id"
        else:
            query += " ORDER BY s.id"
        query += " LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        self.logger.debug("Executing query %s with args %s", query, params)

        with self._connect(ctx) as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        services: List[ServiceSummary] = []
        for row in rows:
            labels = row["versions"].split(LABEL_SEPARATOR) if row["versions"] is not None else []
            services.append(
                ServiceSummary(
                    id=row["id"],
                    name=row["name"],
                    description=row["description"] or "",
                    created_at=_parse_timestamp(row["created_at"]),
                    versions=labels,
                )
            )
        return services

    def get_service(self, ctx: QueryContext, service_id: int) -> ServiceDetail:
        """Fetch a service and its versions with a single LEFT JOIN.

        Each joined row repeats the service columns; the first row builds
        the service and every row with a version id adds one version.
        """
        with self._connect(ctx) as conn:
            rows = conn.execute(GET_SERVICE_SQL, (service_id,)).fetchall()
        if not rows:
            raise NotFoundError("Service not found")
        first = rows[0]
        versions: List[VersionRead] = []
        for row in rows:
            if row["version_id"] is None:
                continue
            versions.append(
                VersionRead(
                    id=row["version_id"],
                    service_id=first["service_id"],
                    version=row["version"],
                    changelog=row["changelog"] or None,
                    created_at=_parse_timestamp(row["version_created_at"]),
                )
            )
        return ServiceDetail(
            id=first["service_id"],
            name=first["name"],
            description=first["description"] or "",
            created_at=_parse_timestamp(first["service_created_at"]),
            versions=versions,
        )

    def create_service(self, ctx: QueryContext, name: str, description: str) -> int:
        with self._connect(ctx) as conn:
            cursor = conn.execute(
                "INSERT INTO services (name, description, created_at) VALUES (?, ?, CURRENT_TIMESTAMP)",
                (name, description or ""),
            )
            service_id = cursor.lastrowid
        self.logger.info("Created service %s", service_id)
        return service_id

    def update_service(self, ctx: QueryContext, service_id: int, name: str, description: str) -> None:
        with self._connect(ctx) as conn:
            cursor = conn.execute(
                "UPDATE services SET name = ?, description = ? WHERE id = ?",
                (name, description or "", service_id),
            )
            affected = cursor.rowcount
        if affected == 0:
            raise NotFoundError("Service not found")
        self.logger.info("Updated service %s", service_id)

    def delete_service(self, ctx: QueryContext, service_id: int) -> None:
        # Versions go with the service through ON DELETE CASCADE.
        with self._connect(ctx) as conn:
            cursor = conn.execute("DELETE FROM services WHERE id = ?", (service_id,))
            affected = cursor.rowcount
        if affected:
            self.logger.info("Deleted service %s", service_id)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def create_version(
        self,
        ctx: QueryContext,
        service_id: int,
        version: str,
        changelog: str,
        created_at: datetime,
    ) -> int:
        """Insert a version using the caller's timestamp.

        Foreign keys are enforced, so an unknown ``service_id`` raises
        ``NotFoundError`` instead of leaving an orphaned row.
        """
        with self._connect(ctx) as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO versions (service_id, version, changelog, created_at) VALUES (?, ?, ?, ?)",
                    (service_id, version, changelog or None, _format_timestamp(created_at)),
                )
            except sqlite3.IntegrityError as exc:
                if "FOREIGN KEY" in str(exc).upper():
                    raise NotFoundError("Service not found") from exc
                raise
            version_id = cursor.lastrowid
        self.logger.info("Created version %s for service %s", version_id, service_id)
        return version_id

    def list_versions(self, ctx: QueryContext, service_id: int) -> List[VersionRead]:
        with self._connect(ctx) as conn:
            rows = conn.execute(
                f"SELECT {VERSION_COLUMNS} FROM versions WHERE service_id = ? "
                "ORDER BY created_at DESC, id DESC",
                (service_id,),
            ).fetchall()
        return [self._row_to_version(row) for row in rows]

    def get_version(self, ctx: QueryContext, version_id: int) -> VersionRead:
        with self._connect(ctx) as conn:
            row = conn.execute(
                f"SELECT {VERSION_COLUMNS} FROM versions WHERE id = ?",
                (version_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError("Version not found")
        return self._row_to_version(row)

    def delete_version(self, ctx: QueryContext, version_id: int) -> bool:
        with self._connect(ctx) as conn:
            cursor = conn.execute("DELETE FROM versions WHERE id = ?", (version_id,))
            affected = cursor.rowcount
        if affected:
            self.logger.info("Deleted version %s", version_id)
        return affected > 0

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def is_valid_api_key(self, key: str) -> bool:
        try:
            with self._connect(QueryContext.background()) as conn:
                row = conn.execute(
                    "SELECT EXISTS(SELECT 1 FROM api_keys WHERE key = ?) AS found",
                    (key,),
                ).fetchone()
        except StorageError as exc:
            self.logger.error("API key lookup failed: %s", exc)
            return False
        return bool(row["found"])

    def count_api_keys(self) -> int:
        with self._connect(QueryContext.background()) as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM api_keys").fetchone()
        return row["total"]

    def add_api_key(self, key: str) -> None:
        with self._connect(QueryContext.background()) as conn:
            conn.execute("INSERT INTO api_keys (key) VALUES (?)", (key,))

    @staticmethod
    def _row_to_version(row: sqlite3.Row) -> VersionRead:
        """Convert a ``versions`` row to a ``VersionRead`` instance."""
        return VersionRead(
            id=row["id"],
            service_id=row["service_id"],
            version=row["version"],
            changelog=row["changelog"] or None,
            created_at=_parse_timestamp(row["created_at"]),
        )
