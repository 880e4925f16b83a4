"""
API key authentication.

Every catalog route is guarded by ``require_api_key``, a router-level
dependency that reads the key from the configured header (``X-API-Key``
by default) and looks it up in the ``api_keys`` table.

* header missing or blank: 401 ``API key is missing``
* key unknown, or the lookup itself failed: 403 ``Invalid API key``

Keys are never managed over HTTP.  On first boot ``ensure_api_key``
generates one random key and logs it, which is the only way for an
operator to learn it.
"""

import secrets
from typing import Optional

from fastapi import Depends, Request
from starlette.concurrency import run_in_threadpool

from .context import AppContext, get_app_context
from .errors import AuthError, ForbiddenError

# 16 bytes of entropy, hex encoded to 32 characters.
API_KEY_BYTES = 16


def generate_api_key() -> str:
    """Return a new random API key."""
    return secrets.token_hex(API_KEY_BYTES)


def ensure_api_key(ctx: AppContext) -> Optional[str]:
    """Create and persist an API key if the key table is empty.

    Returns the generated key, or ``None`` if keys already existed.
    Storage errors propagate: without a usable key table the service
    cannot authenticate anyone and must not start.
    """
    if ctx.store.count_api_keys() > 0:
        return None
    api_key = generate_api_key()
    ctx.store.add_api_key(api_key)
    ctx.logger.warning("Default API key generated: %s", api_key)
    return api_key


async def require_api_key(request: Request, ctx: AppContext = Depends(get_app_context)) -> str:
    """Dependency that rejects requests without a registered API key.

    Returns the validated key on success.
    """
    header = ctx.settings.api_key_header
    api_key = (request.headers.get(header) or "").strip()
    if not api_key:
        ctx.logger.warning("Missing %s header for %s %s", header, request.method, request.url.path)
        raise AuthError("API key is missing")

    valid = await run_in_threadpool(ctx.store.is_valid_api_key, api_key)
    if not valid:
        ctx.logger.warning("Invalid API key presented for %s %s", request.method, request.url.path)
        raise ForbiddenError("Invalid API key")
    return api_key
