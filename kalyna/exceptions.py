class KalynaError(Exception):
    """Base class for all Kalyna errors."""


class CookieError(KalynaError, ValueError):
    """The cookie passed by the caller cannot be emitted."""


class MissingCookie(CookieError):
    """A cookie was expected but None was given."""


class MissingCookieName(CookieError):
    """Cookie name is empty."""


class InvalidCookieName(CookieError):
    """Cookie name contains characters not allowed in a cookie token."""


class InvalidCookieValue(CookieError):
    """Cookie value cannot be sent in a header, HTTP headers are latin-1."""


class InvalidCookieAttribute(CookieError):
    """One of cookie attributes has unsupported value (for example, SameSite)."""


class ResponseWriteError(KalynaError):
    """
    The transport failed while the response was being sent.

    The original OSError is available as __cause__.
    """
