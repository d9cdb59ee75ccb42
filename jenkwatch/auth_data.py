from typing import Dict

from urllib3.util import make_headers


class AuthData:
    """
    Credentials for HTTP Basic authentication against the job server.

    :param username: The user name.
    :param key: The API token or password for ``username``.
    """

    def __init__(self, username: str, key: str):
        if not (username and key):
            raise ValueError("need username and key for Basic auth")
        self.username = username
        self.key = key

    def headers(self) -> Dict[str, str]:
        """Return the ``Authorization`` header for a request."""
        return make_headers(basic_auth=f"{self.username}:{self.key}")

    def __repr__(self) -> str:
        return f"AuthData(username={self.username!r}, key='***')"
