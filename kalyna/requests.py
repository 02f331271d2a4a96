from starlette.requests import HTTPConnection, Request

from kalyna.headers import HttpHeaders

__all__ = [
    "HTTPConnection",
    "Request",
    "get_query_parameter",
    "is_ajax",
]


def get_query_parameter(connection: HTTPConnection, name: str) -> str | None:
    """Get query parameter value with surrounding whitespace removed. Returns None if parameter is missing."""
    value = connection.query_params.get(name)
    if value is None:
        return None
    return value.strip()


def is_ajax(connection: HTTPConnection) -> bool:
    """Test if the request was made by XMLHttpRequest."""
    return connection.headers.get(HttpHeaders.X_REQUESTED_WITH, "") == HttpHeaders.X_REQUESTED_WITH_AJAX
