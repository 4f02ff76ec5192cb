"""Canonical HTTP responses for cache operations."""

from __future__ import annotations

from http import HTTPStatus
from typing import Union

from aiohttp import web

_TEXT = "text/plain"
_OCTET_STREAM = "application/octet-stream"


def _status_response(status: HTTPStatus) -> web.Response:
    return web.Response(
        status=status.value,
        body=f"{status.value} {status.phrase}".encode(),
        content_type=_TEXT,
    )


def too_many_requests() -> web.Response:
    return _status_response(HTTPStatus.TOO_MANY_REQUESTS)


def get_success(body: Union[bytes, bytearray, memoryview]) -> web.Response:
    return web.Response(
        status=HTTPStatus.OK.value, body=bytes(body), content_type=_OCTET_STREAM
    )


def get_not_found() -> web.Response:
    return _status_response(HTTPStatus.NOT_FOUND)


def put_success() -> web.Response:
    return _status_response(HTTPStatus.CREATED)


def put_bad_request() -> web.Response:
    return _status_response(HTTPStatus.BAD_REQUEST)


def delete_success() -> web.Response:
    return web.Response(status=HTTPStatus.NO_CONTENT.value)