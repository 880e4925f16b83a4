"""
Helpers for writing envelope responses.

``write_json`` is the only place that turns a status code, a payload and
an error string into an HTTP response.  Handlers, the auth gate and the
exception handlers all go through it so every body has the same shape.
"""

from typing import Any

from fastapi import Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..schemas.envelope import Envelope


def write_json(status_code: int, data: Any = None, error: str = "") -> Response:
    """Wrap ``data``/``error`` in the envelope and return a JSON response.

    Payload models are encoded with their camelCase aliases and without
    ``None`` fields.  A ``204 No Content`` response is returned without a
    body since HTTP does not allow one.
    """
    if status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status_code, media_type="application/json")
    payload = jsonable_encoder(data, by_alias=True, exclude_none=True)
    envelope = Envelope.build(status_code, payload, error)
    return JSONResponse(status_code=status_code, content=envelope.model_dump())
