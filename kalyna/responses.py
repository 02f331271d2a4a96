from __future__ import annotations

import email.utils
import typing

from starlette.datastructures import URL, MutableHeaders
from starlette.responses import (
    FileResponse,
    HTMLResponse,
    JSONResponse,
    PlainTextResponse,
    RedirectResponse,
    Response,
    StreamingResponse,
)
from starlette.types import Receive, Scope, Send

from kalyna import json
from kalyna.exceptions import ResponseWriteError
from kalyna.headers import HttpHeaders

__all__ = [
    "Response",
    "HTMLResponse",
    "FileResponse",
    "JSONResponse",
    "PlainTextResponse",
    "RedirectResponse",
    "StreamingResponse",
    "NO_CACHE_HEADERS",
    "apply_cache_header",
    "apply_no_cache_headers",
    "redirect",
    "send_response",
    "set_cache_header",
    "set_no_cache_headers",
    "write",
    "write_json",
]

# Cache-Control alone is not honored the same way by all browsers and proxies,
# HTTP/1.0 caches read Pragma and Expires.
NO_CACHE_HEADERS: dict[str, str] = {
    HttpHeaders.CACHE_CONTROL: "no-cache, no-store, max-age=0",
    HttpHeaders.PRAGMA: "no-cache, no-store",
    HttpHeaders.EXPIRES: email.utils.formatdate(0, usegmt=True),
}


def apply_no_cache_headers(headers: MutableHeaders) -> None:
    for name, value in NO_CACHE_HEADERS.items():
        headers[name] = value


def apply_cache_header(headers: MutableHeaders, max_age: int) -> None:
    headers[HttpHeaders.CACHE_CONTROL] = f"max-age={max(max_age, 0)}"


def set_no_cache_headers(response: Response) -> None:
    """Forbid caching of the response by browsers and proxies."""
    apply_no_cache_headers(response.headers)


def set_cache_header(response: Response, max_age: int) -> None:
    """Allow caching the response for max_age seconds. Zero or negative value means "do not cache"."""
    apply_cache_header(response.headers, max_age)


def redirect(
    url: str | URL,
    status_code: int = 302,
    *,
    query_params: typing.Mapping[str, typing.Any] | None = None,
    headers: typing.Mapping[str, str] | None = None,
) -> RedirectResponse:
    """
    Create a redirect response.

    Return it from the view as is, nothing else should be written to the response.
    """
    url = URL(str(url))
    if query_params:
        url = url.include_query_params(**query_params)
    return RedirectResponse(url=url, status_code=status_code, headers=headers)


def _split_content_type(content_type: str) -> tuple[str, list[str], str | None]:
    media_type, *params = (param.strip() for param in content_type.split(";"))
    charset = None
    other_params = []
    for param in params:
        if param.lower().startswith("charset="):
            charset = param.split("=", 1)[1].strip().strip('"')
        elif param:
            other_params.append(param)
    return media_type, other_params, charset


def write(
    content: typing.Any,
    content_type: str | None = None,
    charset: str | None = None,
    *,
    status_code: int = 200,
    headers: typing.Mapping[str, str] | None = None,
) -> Response:
    """
    Create a text response with str(content) as the body.

    Content type and charset are fixed before the body is encoded. An explicit
    charset replaces the one given in content type, otherwise the declared one
    is used for the body. text/plain is used when only the charset is known.
    """
    if content_type:
        media_type, params, declared_charset = _split_content_type(content_type)
        charset = charset or declared_charset
    else:
        media_type, params = "text/plain", []

    if charset:
        content_type = "; ".join([media_type, *params, f"charset={charset}"])

    body = "" if content is None else str(content)
    return Response(
        body.encode(charset or Response.charset),
        status_code=status_code,
        headers=headers,
        media_type=content_type,
    )


def write_json(
    content: typing.Any,
    charset: str = "utf-8",
    *,
    status_code: int = 200,
    headers: typing.Mapping[str, str] | None = None,
) -> Response:
    return write(
        json.dumps(content, ensure_ascii=False),
        content_type="application/json",
        charset=charset,
        status_code=status_code,
        headers=headers,
    )


async def send_response(response: Response, scope: Scope, receive: Receive, send: Send) -> None:
    """Send the response, transport errors are raised as ResponseWriteError."""
    try:
        await response(scope, receive, send)
    except OSError as exc:
        raise ResponseWriteError(f"Failed to send {response.__class__.__name__}: {exc}.") from exc
