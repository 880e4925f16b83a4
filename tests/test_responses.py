"""Unit tests for the response envelope."""

import json
from datetime import datetime, timezone

from service_catalog_api.app.core.responses import write_json
from service_catalog_api.app.schemas.envelope import Envelope
from service_catalog_api.app.schemas.version import VersionRead


def _body(response):
    return json.loads(response.body)


def test_success_envelope():
    response = write_json(200, {"id": 7})

    assert response.status_code == 200
    assert response.media_type == "application/json"
    assert _body(response) == {"code": 200, "data": {"id": 7}, "error": "", "success": True}


def test_error_envelope_has_null_data():
    response = write_json(404, None, "Service not found")

    assert _body(response) == {"code": 404, "data": None, "error": "Service not found", "success": False}


def test_error_envelope_can_carry_data():
    body = _body(write_json(500, {"id": 3}, "Service created but failed to add version"))

    assert body["data"] == {"id": 3}
    assert body["success"] is False


def test_models_are_encoded_with_camel_case_aliases():
    version = VersionRead(
        id=1,
        service_id=2,
        version="1.0.0",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    data = _body(write_json(200, [version]))["data"]

    assert data == [{"id": 1, "serviceId": 2, "version": "1.0.0", "createdAt": "2024-01-01T00:00:00+00:00"}]


def test_no_content_has_empty_body():
    response = write_json(204)

    assert response.status_code == 204
    assert response.body == b""


def test_envelope_success_follows_error():
    assert Envelope.build(200).success is True
    assert Envelope.build(200, error="boom").success is False
