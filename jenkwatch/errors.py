from typing import Optional


class JenkwatchError(Exception):
    """Base class for every error raised by a log session."""


class InvalidLocator(JenkwatchError):
    """
    Raised when the job URL cannot be parsed.

    :param locator: The job URL as given by the caller.
    :type locator: str
    :param reason: Why the URL was rejected.
    :type reason: str
    """

    def __init__(self, locator: str, reason: str = ""):
        self.locator = locator
        self.reason = reason
        message = f"invalid job url '{locator}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AuthOrAccessError(JenkwatchError):
    """
    Raised when the connectivity check gets a non-2xx response.

    :param status: The literal status line, e.g. ``"401 Unauthorized"``.
    :type status: str
    """

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"bad response for head: {status}")


class NetworkError(JenkwatchError):
    """
    Raised for transport failures during the check, a fetch, a body read or
    the release of a drained chunk.

    :param operation: What the session was doing, e.g. ``"fetch"``.
    :type operation: str
    :param url: The URL the request was for, if known.
    :type url: str
    """

    def __init__(self, operation: str, url: Optional[str] = None, detail: str = ""):
        self.operation = operation
        self.url = url
        self.detail = detail
        message = f"{operation} failed"
        if url:
            message += f" for {url}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
