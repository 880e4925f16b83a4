"""FastAPI dependencies shared by the catalog endpoints."""

import asyncio
from typing import AsyncIterator, Callable, TypeVar

from fastapi import Depends
from starlette.concurrency import run_in_threadpool

from ..core.context import AppContext, QueryContext, get_app_context
from ..storage.base import CatalogStore

T = TypeVar("T")


def get_store(ctx: AppContext = Depends(get_app_context)) -> CatalogStore:
    return ctx.store


async def get_query_context(ctx: AppContext = Depends(get_app_context)) -> AsyncIterator[QueryContext]:
    """Yield a ``QueryContext`` for one request and cancel it afterwards.

    Once the request is finished (or torn down early) the context is
    cancelled, so any storage call still running on its behalf stops.
    """
    query_ctx = QueryContext(timeout=ctx.settings.query_timeout or None)
    try:
        yield query_ctx
    finally:
        query_ctx.cancel()


async def run_query(query_ctx: QueryContext, func: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking storage call in the threadpool.

    If the awaiting handler is cancelled, the query context is cancelled
    too and the statement running in the worker thread is interrupted.
    """
    try:
        return await run_in_threadpool(func, query_ctx, *args, **kwargs)
    except asyncio.CancelledError:
        query_ctx.cancel()
        raise
