from kalyna.applications import Kalyna
from kalyna.cookies import Cookie, add_cookie, cookies_to_dict, delete_cookie, find_cookie, get_cookie_value
from kalyna.requests import HTTPConnection, Request
from kalyna.responses import (
    JSONResponse,
    RedirectResponse,
    Response,
    redirect,
    set_cache_header,
    set_no_cache_headers,
    write,
    write_json,
)

__all__ = [
    "Kalyna",
    "Cookie",
    "add_cookie",
    "delete_cookie",
    "find_cookie",
    "get_cookie_value",
    "cookies_to_dict",
    "Request",
    "HTTPConnection",
    "Response",
    "JSONResponse",
    "RedirectResponse",
    "redirect",
    "set_cache_header",
    "set_no_cache_headers",
    "write",
    "write_json",
]

__version__ = "0.1.0"
