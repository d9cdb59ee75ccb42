from jenkwatch.errors import (
    AuthOrAccessError,
    InvalidLocator,
    JenkwatchError,
    NetworkError,
)
from jenkwatch.log_session import JobLogSession

__all__ = [
    "AuthOrAccessError",
    "InvalidLocator",
    "JenkwatchError",
    "JobLogSession",
    "NetworkError",
]
