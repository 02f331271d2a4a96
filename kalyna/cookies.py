"""
Cookie helpers for Starlette requests and responses.

Outbound cookies are described by `Cookie` and rendered into `Set-Cookie`
headers with `http.cookies.Morsel`, the same way Starlette renders them.

A note on deletion: browsers delete a cookie only when path and domain of the
deleting `Set-Cookie` header match those the cookie was created with. If a
cookie was set with `path="/member"`, delete it with `path="/member"` too,
otherwise the deletion is silently ignored by the browser.
"""

from __future__ import annotations

import dataclasses
import datetime
import email.utils
import http.cookies
import logging
import typing

from starlette.requests import HTTPConnection
from starlette.responses import Response

from kalyna.exceptions import (
    InvalidCookieAttribute,
    InvalidCookieName,
    InvalidCookieValue,
    MissingCookie,
    MissingCookieName,
)

__all__ = [
    "Cookie",
    "MAX_COOKIE_VALUE_LENGTH",
    "SESSION_MAX_AGE",
    "add_cookie",
    "cookies_to_dict",
    "delete_cookie",
    "find_cookie",
    "get_cookie_value",
    "get_request_cookies",
    "parse_cookie_header",
    "to_morsel",
    "validate",
]

logger = logging.getLogger(__name__)

# browsers may drop cookies which are larger than that
MAX_COOKIE_VALUE_LENGTH = 4000

SESSION_MAX_AGE = -1

SameSite = typing.Literal["lax", "strict", "none"]

_SAMESITE_VALUES = ("lax", "strict", "none")

CookieSource = HTTPConnection | typing.Iterable["Cookie"]


@dataclasses.dataclass
class Cookie:
    name: str
    value: str = ""
    max_age: int = SESSION_MAX_AGE
    path: str | None = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = False
    samesite: SameSite | None = "lax"
    expires: datetime.datetime | str | int | None = None
    comment: str | None = None
    version: int | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise MissingCookieName("Cookie name cannot be empty.")

    @property
    def is_deletion(self) -> bool:
        return self.max_age == 0


def validate(cookie: Cookie | None) -> None:
    """
    Check that the cookie can be emitted.

    Raises a subclass of `kalyna.exceptions.CookieError` on contract violation.
    Too long values are only reported to the log.
    """
    if cookie is None:
        raise MissingCookie("Cookie cannot be None.")

    if not cookie.name:
        raise MissingCookieName("Cookie name cannot be empty.")

    try:
        http.cookies.Morsel().set(cookie.name, "", "")
    except http.cookies.CookieError as exc:
        raise InvalidCookieName(f"Illegal cookie name: {cookie.name!r}.") from exc

    if cookie.samesite is not None and cookie.samesite.lower() not in _SAMESITE_VALUES:
        raise InvalidCookieAttribute(f"samesite must be one of {', '.join(_SAMESITE_VALUES)}, got {cookie.samesite!r}.")

    _, coded_value = http.cookies.SimpleCookie().value_encode(cookie.value)
    try:
        coded_value.encode("latin-1")
    except UnicodeEncodeError as exc:
        raise InvalidCookieValue(
            f"Value of cookie {cookie.name} contains characters which cannot be sent in a header, "
            "encode it first (for example, with urllib.parse.quote)."
        ) from exc

    if len(cookie.value) > MAX_COOKIE_VALUE_LENGTH:
        logger.warning(
            "Value of cookie %s is %d characters long, browsers may ignore cookies longer than %d characters.",
            cookie.name,
            len(cookie.value),
            MAX_COOKIE_VALUE_LENGTH,
        )


def to_morsel(cookie: Cookie) -> http.cookies.Morsel:
    """
    Convert cookie description into a Morsel.

    Path, domain and comment are set only when they are not empty.
    A cookie with max_age == 0 is rendered as a deletion: empty value and Max-Age=0.
    """
    value = "" if cookie.is_deletion else cookie.value
    real_value, coded_value = http.cookies.SimpleCookie().value_encode(value)
    morsel: http.cookies.Morsel = http.cookies.Morsel()
    # empty value renders as "name=", without quotes
    morsel.set(cookie.name, real_value, coded_value if value else "")

    if cookie.max_age >= 0:
        morsel["max-age"] = cookie.max_age
    if cookie.expires is not None and not cookie.is_deletion:
        if isinstance(cookie.expires, datetime.datetime):
            morsel["expires"] = email.utils.format_datetime(cookie.expires, usegmt=True)
        else:
            morsel["expires"] = cookie.expires
    if cookie.path:
        morsel["path"] = cookie.path
    if cookie.domain:
        morsel["domain"] = cookie.domain
    if cookie.comment:
        morsel["comment"] = cookie.comment
    if cookie.version:
        morsel["version"] = cookie.version
    if cookie.secure:
        morsel["secure"] = True
    if cookie.httponly:
        morsel["httponly"] = True
    if cookie.samesite:
        morsel["samesite"] = cookie.samesite
    return morsel


def _append_cookie(response: Response, morsel: http.cookies.Morsel) -> None:
    response.raw_headers.append((b"set-cookie", morsel.OutputString().encode("latin-1")))


def add_cookie(response: Response, cookie: Cookie | None) -> None:
    """
    Validate the cookie and add Set-Cookie header to the response.

    A cookie with max_age == 0 is handled by `delete_cookie`.
    """
    validate(cookie)
    assert cookie is not None

    if cookie.is_deletion:
        delete_cookie(response, cookie)
        return

    _append_cookie(response, to_morsel(cookie))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Cookie %s added to the response, max age: %s.", cookie.name, cookie.max_age)


def delete_cookie(
    response: Response,
    cookie: Cookie | str,
    path: str | None = "/",
    domain: str | None = None,
) -> None:
    """
    Tell the browser to delete the cookie.

    When a Cookie instance is given, its path, domain and flags are used and `path`/`domain` arguments are ignored.
    Path and domain must be the same as used when the cookie was added.
    """
    if isinstance(cookie, str):
        cookie = Cookie(name=cookie, path=path, domain=domain)

    cookie = dataclasses.replace(cookie, value="", max_age=0, expires=None)
    validate(cookie)
    _append_cookie(response, to_morsel(cookie))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Cookie %s deleted, path: %s, domain: %s.", cookie.name, cookie.path, cookie.domain)


def parse_cookie_header(header: str) -> list[Cookie]:
    """
    Parse value of Cookie request header.

    Order and duplicates are preserved, chunks without a name are skipped.
    """
    cookies: list[Cookie] = []
    for chunk in header.split(";"):
        if "=" in chunk:
            name, value = chunk.split("=", 1)
        else:
            name, value = "", chunk
        name, value = name.strip(), value.strip()
        if not name:
            continue
        cookies.append(Cookie(name=name, value=http.cookies._unquote(value)))
    return cookies


def get_request_cookies(connection: HTTPConnection) -> list[Cookie]:
    cookies: list[Cookie] = []
    for header in connection.headers.getlist("cookie"):
        cookies.extend(parse_cookie_header(header))
    return cookies


def _iter_cookies(source: CookieSource) -> typing.Iterable[Cookie]:
    if isinstance(source, HTTPConnection):
        return get_request_cookies(source)
    return source


def find_cookie(source: CookieSource, name: str) -> Cookie | None:
    """
    Find the first cookie with exactly this name.

    Source is either a request or a list of cookies. Returns None if nothing found.
    """
    cookies = list(_iter_cookies(source))
    if not cookies:
        logger.debug("Cannot find cookie %s, request has no cookies.", name)
        return None

    for cookie in cookies:
        if cookie.name == name:
            return cookie

    logger.debug("Cannot find cookie %s.", name)
    return None


def get_cookie_value(source: CookieSource, name: str) -> str | None:
    cookie = find_cookie(source, name)
    if cookie is None:
        return None
    return cookie.value


def cookies_to_dict(source: CookieSource) -> dict[str, str]:
    """Map cookie names to values. When a name repeats, the last value wins."""
    return {cookie.name: cookie.value for cookie in _iter_cookies(source)}
