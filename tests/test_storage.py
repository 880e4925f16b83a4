"""Tests for the SQLite catalog store.

Covers query construction (filter, sort, pagination), the version
aggregation and LEFT JOIN mapping, not-found signals, cascade deletes,
API key lookups and query cancellation.
"""

import pytest

from conftest import set_service_created_at, ts
from service_catalog_api.app.core.context import QueryContext
from service_catalog_api.app.core.db import get_connection
from service_catalog_api.app.core.errors import NotFoundError, StorageError
from service_catalog_api.app.storage.sqlite import SQLiteCatalogStore


def _seed(store, qctx, *entries):
    """Create services from ``(name, description, [labels])`` tuples."""
    ids = []
    for offset, (name, description, labels) in enumerate(entries):
        service_id = store.create_service(qctx, name, description)
        for index, label in enumerate(labels):
            store.create_version(qctx, service_id, label, "", ts(2024, 1 + offset, 1 + index))
        ids.append(service_id)
    return ids


class TestListServices:
    def test_empty_catalog_returns_empty_list(self, store, qctx):
        assert store.list_services(qctx) == []

    def test_versions_are_aggregated_per_service(self, store, qctx):
        auth_id, billing_id, bare_id = _seed(
            store,
            qctx,
            ("Auth", "AuthZ svc", ["1.0.0", "1.1.0", "2.0.0"]),
            ("Billing", "Invoices", ["0.1.0"]),
            ("Bare", "No releases yet", []),
        )

        services = {s.id: s for s in store.list_services(qctx)}

        assert sorted(services[auth_id].versions) == ["1.0.0", "1.1.0", "2.0.0"]
        assert services[billing_id].versions == ["0.1.0"]
        assert services[bare_id].versions == []

    def test_labels_with_commas_survive_aggregation(self, store, qctx):
        (service_id,) = _seed(store, qctx, ("Odd", "", ["1,0", "2,0"]))

        (service,) = store.list_services(qctx)

        assert service.id == service_id
        assert sorted(service.versions) == ["1,0", "2,0"]

    def test_filter_matches_name_or_description_case_insensitively(self, store, qctx):
        _seed(
            store,
            qctx,
            ("Auth", "Login flows", []),
            ("Billing", "Handles AUTHORIZATION of payments", []),
            ("Search", "Full text", []),
        )

        names = [s.name for s in store.list_services(qctx, filter="auth")]

        assert names == ["Auth", "Billing"]

    def test_filter_folds_non_ascii_case(self, store, qctx):
        _seed(store, qctx, ("éclair", "Pâtisserie index", []), ("Eclipse", "", []), ("Straße", "", []))

        assert [s.name for s in store.list_services(qctx, filter="ÉCLAIR")] == ["éclair"]
        assert [s.name for s in store.list_services(qctx, filter="PÂTISSERIE")] == ["éclair"]
        assert [s.name for s in store.list_services(qctx, filter="STRASSE")] == ["Straße"]

    def test_filter_without_match_returns_empty_list(self, store, qctx):
        _seed(store, qctx, ("Auth", "Login flows", []))

        assert store.list_services(qctx, filter="does-not-exist") == []

    def test_filter_treats_wildcards_literally(self, store, qctx):
        _seed(store, qctx, ("Sampler", "keeps 50% of traces", []), ("Other", "keeps 500 traces", []))

        names = [s.name for s in store.list_services(qctx, filter="50%")]

        assert names == ["Sampler"]

    def test_sort_by_name(self, store, qctx):
        _seed(store, qctx, ("Charlie", "", []), ("alpha", "", []), ("Bravo", "", []))

        names = [s.name for s in store.list_services(qctx, sort="name")]

        assert names == sorted(names)

    def test_any_unknown_sort_key_sorts_by_name(self, store, qctx):
        _seed(store, qctx, ("b", "", []), ("a", "", []))

        names = [s.name for s in store.list_services(qctx, sort="whatever")]

        assert names == ["a", "b"]

    @pytest.mark.parametrize("sort", ["createdAt", "CREATEDAT", "createdat"])
    def test_sort_by_creation_time(self, store, qctx, db_path, sort):
        first, second, third = _seed(store, qctx, ("a", "", []), ("b", "", []), ("c", "", []))
        set_service_created_at(db_path, first, "2024-03-01 00:00:00")
        set_service_created_at(db_path, second, "2024-01-01 00:00:00")
        set_service_created_at(db_path, third, "2024-02-01 00:00:00")

        ids = [s.id for s in store.list_services(qctx, sort=sort)]

        assert ids == [second, third, first]

    def test_pagination_uses_page_and_limit_offset(self, store, qctx):
        ids = _seed(store, qctx, *[(f"svc-{i}", "", []) for i in range(5)])

        page_one = store.list_services(qctx, page=1, limit=2)
        page_three = store.list_services(qctx, page=3, limit=2)
        page_four = store.list_services(qctx, page=4, limit=2)

        assert [s.id for s in page_one] == ids[:2]
        assert [s.id for s in page_three] == ids[4:]
        assert page_four == []

    def test_offset_beyond_integer_range_returns_empty_list(self, store, qctx):
        _seed(store, qctx, ("a", "", []))

        assert store.list_services(qctx, page=10**12, limit=10**8) == []

    def test_oversized_limit_is_clamped(self, store, qctx):
        ids = _seed(store, qctx, ("a", "", []), ("b", "", []))

        assert [s.id for s in store.list_services(qctx, limit=10**30)] == ids

    def test_pagination_counts_services_not_version_rows(self, store, qctx):
        _seed(store, qctx, ("a", "", ["1", "2", "3"]), ("b", "", ["1"]))

        services = store.list_services(qctx, page=1, limit=2)

        assert len(services) == 2


class TestServices:
    def test_create_assigns_id_and_timestamp(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "AuthZ svc")

        service = store.get_service(qctx, service_id)

        assert service.id == service_id
        assert service.name == "Auth"
        assert service.description == "AuthZ svc"
        assert service.created_at is not None

    def test_get_service_without_versions_is_not_dropped(self, store, qctx):
        service_id = store.create_service(qctx, "Bare", "")

        service = store.get_service(qctx, service_id)

        assert service.versions == []

    def test_get_service_returns_versions_oldest_first(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")
        store.create_version(qctx, service_id, "2.0.0", "breaking", ts(2024, 6))
        store.create_version(qctx, service_id, "1.0.0", "", ts(2024, 1))

        service = store.get_service(qctx, service_id)

        assert [v.version for v in service.versions] == ["1.0.0", "2.0.0"]
        assert service.versions[0].changelog is None
        assert service.versions[1].changelog == "breaking"
        assert all(v.service_id == service_id for v in service.versions)

    def test_get_missing_service_raises_not_found(self, store, qctx):
        with pytest.raises(NotFoundError) as excinfo:
            store.get_service(qctx, 999999)
        assert excinfo.value.message == "Service not found"

    def test_update_replaces_name_and_description(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "old")

        store.update_service(qctx, service_id, "Identity", "new")

        service = store.get_service(qctx, service_id)
        assert (service.name, service.description) == ("Identity", "new")

    def test_update_missing_service_raises_not_found(self, store, qctx):
        with pytest.raises(NotFoundError):
            store.update_service(qctx, 424242, "x", "y")

    def test_delete_is_idempotent(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")

        store.delete_service(qctx, service_id)
        store.delete_service(qctx, service_id)
        store.delete_service(qctx, 999999)

        with pytest.raises(NotFoundError):
            store.get_service(qctx, service_id)

    def test_delete_removes_versions(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")
        version_id = store.create_version(qctx, service_id, "1.0.0", "", ts(2024))

        store.delete_service(qctx, service_id)

        assert store.list_versions(qctx, service_id) == []
        with pytest.raises(NotFoundError):
            store.get_version(qctx, version_id)


class TestVersions:
    def test_create_and_get_version(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")

        version_id = store.create_version(qctx, service_id, "1.0.0", "first", ts(2024, 5, 17, 8))
        version = store.get_version(qctx, version_id)

        assert version.id == version_id
        assert version.service_id == service_id
        assert version.version == "1.0.0"
        assert version.changelog == "first"
        assert version.created_at == ts(2024, 5, 17, 8)

    def test_create_version_for_unknown_service_raises_not_found(self, store, qctx):
        with pytest.raises(NotFoundError):
            store.create_version(qctx, 999999, "1.0.0", "", ts(2024))

    def test_list_versions_newest_first(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")
        store.create_version(qctx, service_id, "1.0.0", "", ts(2023))
        store.create_version(qctx, service_id, "3.0.0", "", ts(2025))
        store.create_version(qctx, service_id, "2.0.0", "", ts(2024))

        labels = [v.version for v in store.list_versions(qctx, service_id)]

        assert labels == ["3.0.0", "2.0.0", "1.0.0"]

    def test_list_versions_of_service_without_versions(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")

        assert store.list_versions(qctx, service_id) == []

    def test_get_missing_version_raises_not_found(self, store, qctx):
        with pytest.raises(NotFoundError) as excinfo:
            store.get_version(qctx, 31337)
        assert excinfo.value.message == "Version not found"

    def test_delete_version_reports_whether_a_row_was_removed(self, store, qctx):
        service_id = store.create_service(qctx, "Auth", "")
        version_id = store.create_version(qctx, service_id, "1.0.0", "", ts(2024))

        assert store.delete_version(qctx, version_id) is True
        assert store.delete_version(qctx, version_id) is False


class TestApiKeys:
    def test_registered_key_is_valid(self, store):
        store.add_api_key("s3cret")

        assert store.is_valid_api_key("s3cret") is True
        assert store.is_valid_api_key("S3CRET") is False
        assert store.is_valid_api_key("") is False

    def test_count_api_keys(self, store):
        assert store.count_api_keys() == 0
        store.add_api_key("one")
        store.add_api_key("two")
        assert store.count_api_keys() == 2

    def test_lookup_failure_fails_closed(self, tmp_path):
        broken = SQLiteCatalogStore(str(tmp_path / "missing-dir" / "catalog.db"))

        assert broken.is_valid_api_key("anything") is False


class _FlippingContext(QueryContext):
    """Not done when the call starts, done as soon as the query polls it."""

    def __init__(self):
        super().__init__()
        self.polls = 0

    def done(self):
        self.polls += 1
        return self.polls > 1


class TestCancellation:
    def test_cancelled_context_stops_before_query(self, store):
        ctx = QueryContext()
        ctx.cancel()

        with pytest.raises(StorageError):
            store.list_services(ctx)

    def test_expired_deadline_stops_query(self, store):
        ctx = QueryContext(timeout=0.000001)
        ctx.deadline -= 1

        with pytest.raises(StorageError):
            store.create_service(ctx, "Auth", "")

    def test_running_query_is_interrupted(self, store, qctx, db_path):
        conn = get_connection(db_path)
        try:
            conn.executemany(
                "INSERT INTO services (name, description) VALUES (?, ?)",
                [(f"svc-{i}", "bulk") for i in range(500)],
            )
            conn.commit()
        finally:
            conn.close()
        ctx = _FlippingContext()

        with pytest.raises(StorageError) as excinfo:
            store.list_services(ctx, sort="name", limit=1000)

        assert excinfo.value.message == "Query cancelled"
        assert ctx.polls > 1
