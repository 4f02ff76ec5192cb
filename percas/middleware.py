"""HTTP middlewares: request logging, cluster proxying and rate limiting."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web

from percas.responses import (
    delete_success,
    get_not_found,
    get_success,
    put_success,
    too_many_requests,
)

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@dataclass(frozen=True)
class RouteDest:
    """Where a key lives: this node (``addr`` is None) or a remote address."""

    addr: Optional[str] = None

    @classmethod
    def local(cls) -> RouteDest:
        return cls(None)

    @classmethod
    def remote(cls, addr: Any) -> RouteDest:
        return cls(str(addr))

    @property
    def is_local(self) -> bool:
        return self.addr is None


class TooManyRequestsError(Exception):
    """Raised by a client when the remote node rejects a request as overloaded."""


class LoggerMiddleware:
    """Logs each request and its outcome."""

    __middleware_version__ = 1

    async def __call__(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        method, url = request.method, request.rel_url
        logger.debug("%s %s called", method, url)
        try:
            resp = await handler(request)
        except web.HTTPException as err:
            if err.status != HTTPStatus.NOT_FOUND:
                logger.error("%s %s %s: %s", method, url, err.status, err.reason)
            raise
        except Exception as err:
            logger.error(
                "%s %s %s: %s", method, url, HTTPStatus.INTERNAL_SERVER_ERROR.value, err
            )
            raise
        logger.debug("%s %s returns %s", method, url, resp.status)
        return resp


class ClusterProxyMiddleware:
    """Forwards requests for keys owned by another node to that node.

    When the remote call fails for any reason other than overload, the
    request is served locally instead.
    """

    __middleware_version__ = 1

    def __init__(self, proxy: Any = None, factory: Any = None) -> None:
        self.proxy = proxy
        self.factory = factory

    async def __call__(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        key = request.match_info.get("key")
        if key is None:
            raise web.HTTPBadRequest(text="missing key in request path")

        if self.proxy is None:
            return await handler(request)

        dest = self.proxy.route(key)
        if dest.is_local:
            return await handler(request)

        try:
            client = self.factory.make_client(f"http://{dest.addr}")
        except Exception as err:
            raise web.HTTPInternalServerError(text=str(err)) from err

        method = request.method
        if method == "GET":
            try:
                value = await client.get(key)
            except TooManyRequestsError:
                return too_many_requests()
            except Exception as err:
                logger.error("failed to get from remote: %s", err)
                return await handler(request)
            return get_not_found() if value is None else get_success(value)

        if method == "PUT":
            body = await request.read()
            try:
                await client.put(key, body)
            except TooManyRequestsError:
                return too_many_requests()
            except Exception as err:
                logger.error("failed to put to remote: %s", err)
                return await handler(request)
            return put_success()

        if method == "DELETE":
            try:
                await client.delete(key)
            except TooManyRequestsError:
                return too_many_requests()
            except Exception as err:
                logger.error("failed to delete at remote: %s", err)
                return await handler(request)
            return delete_success()

        return await handler(request)


class RateLimitMiddleware:
    """Bounds running requests and rejects new ones once the wait queue is full."""

    __middleware_version__ = 1

    def __init__(
        self, run_limit: Optional[int] = None, wait_limit: Optional[int] = None
    ) -> None:
        if run_limit is None:
            run_limit = (os.cpu_count() or 1) * 100
        if wait_limit is None:
            wait_limit = run_limit * 5
        if run_limit < 1 or wait_limit < 1:
            raise ValueError("rate limits must be positive")
        self.run_limit = run_limit
        self.wait_limit = wait_limit
        self._waiting = 0
        self._run_permit = asyncio.Semaphore(run_limit)

    async def __call__(self, request: web.Request, handler: Handler) -> web.StreamResponse:
        if self._waiting >= self.wait_limit:
            return too_many_requests()
        self._waiting += 1
        try:
            async with self._run_permit:
                return await handler(request)
        finally:
            self._waiting -= 1