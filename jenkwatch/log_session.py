"""
Incremental reader for the console output of a remote CI job.

The job server exposes the console log through a progressive text endpoint:
each GET with ``start=<offset>`` returns the text from that offset, the new
total size in ``X-Text-Size`` and ``X-More-Data: true`` while the job is
still producing output. ``JobLogSession`` turns that into one ordered byte
stream.
"""

from __future__ import annotations

import io
import logging
import posixpath
import time
from typing import Optional, Union

import urllib3
from urllib3.exceptions import HTTPError, InsecureRequestWarning, LocationParseError
from urllib3.util import Retry, Timeout, parse_url

from jenkwatch.auth_data import AuthData
from jenkwatch.errors import AuthOrAccessError, InvalidLocator, NetworkError

logger = logging.getLogger(__name__)

PROGRESSIVE_TEXT_PATH = "/logText/progressiveText"
TEXT_SIZE_HEADER = "X-Text-Size"
MORE_DATA_HEADER = "X-More-Data"

# Redirects are followed, failed requests are never repeated.
FETCH_RETRIES = Retry(total=None, connect=0, read=0, status=0, other=0, redirect=5)


def progressive_text_url(job_url: str) -> str:
    """
    Build the progressive text URL for a job.

    A URL copied from the browser usually points at the ``console`` page of
    the job, in which case that last segment is dropped first.

    :param job_url: URL of the job, or of its console page.
    :return: The URL of the job's progressive text endpoint.
    """
    try:
        url = parse_url(job_url)
    except LocationParseError as e:
        raise InvalidLocator(job_url, str(e)) from e

    if url.scheme not in ("http", "https"):
        raise InvalidLocator(job_url, "scheme must be http or https")
    if not url.host:
        raise InvalidLocator(job_url, "missing host")

    path = (url.path or "/").rstrip("/")
    head, tail = posixpath.split(path)
    if tail == "console":
        path = head.rstrip("/")

    return url._replace(
        path=path + PROGRESSIVE_TEXT_PATH, query=None, fragment=None
    ).url


class JobLogSession(io.RawIOBase):
    """
    Exposes the streaming console output of a job as a raw binary stream.

    ``readinto`` follows the raw I/O conventions: a positive count is the
    number of bytes read, ``None`` means a chunk has been drained and the
    server promised more data (call again), and ``0`` means the job is done.

    :param username: User for HTTP Basic authentication.
    :param key: API token or password for ``username``.
    :param job_url: URL of the job, or of its console page.
    :param insecure: Do not verify TLS certificates when set.
    :param timeout: Optional timeout, in seconds or as a ``urllib3.Timeout``,
        applied to every request. ``None`` blocks for as long as the server
        holds the request.
    :param poll_interval: Seconds to wait before fetching the next chunk after
        the server reported more data. ``0`` fetches immediately.
    :param http: A ``urllib3.PoolManager`` to use instead of building one.
    """

    def __init__(
        self,
        username: str,
        key: str,
        job_url: str,
        insecure: bool = False,
        timeout: Union[float, Timeout, None] = None,
        poll_interval: float = 0.0,
        http: Optional[urllib3.PoolManager] = None,
    ):
        self.response: Optional[urllib3.BaseHTTPResponse] = None
        self._owns_http = False
        super().__init__()

        self.base_url = progressive_text_url(job_url)
        self._auth = AuthData(username, key)
        self.insecure = insecure
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.position = "0"
        self.finished = False
        self._more_pending = False

        if http is None:
            self._owns_http = True
            if insecure:
                urllib3.disable_warnings(InsecureRequestWarning)
            http = urllib3.PoolManager(
                cert_reqs="CERT_NONE" if insecure else "CERT_REQUIRED"
            )
        self._http = http

    def readable(self) -> bool:
        return True

    def check(self) -> None:
        """
        Performs a HEAD request to make sure the URL and credentials are
        correct.

        :raises AuthOrAccessError: if the server answers with a non-2xx status.
        :raises NetworkError: on any transport failure.
        """
        try:
            response = self._http.request(
                "HEAD",
                self.base_url,
                headers=self._auth.headers(),
                preload_content=False,
                retries=False,
                timeout=self.timeout,
            )
            response.drain_conn()
            response.release_conn()
        except HTTPError as e:
            raise NetworkError("check", self.base_url, str(e)) from e

        if not 200 <= response.status < 300:
            raise AuthOrAccessError(f"{response.status} {response.reason}".strip())

    def fetch_chunk(self) -> None:
        """
        Requests the chunk of console output starting at the current position
        and keeps the response open for reading.

        :raises NetworkError: if the request fails; the session is left
            without an active chunk.
        """
        logger.debug("Fetching %s from offset %s", self.base_url, self.position)
        try:
            self.response = self._http.request(
                "GET",
                self.base_url,
                fields={"start": self.position},
                headers=self._auth.headers(),
                preload_content=False,
                retries=FETCH_RETRIES,
                timeout=self.timeout,
            )
        except HTTPError as e:
            raise NetworkError("fetch", self.base_url, str(e)) from e

    def readinto(self, buffer) -> Optional[int]:
        if self.closed:
            raise ValueError("I/O operation on closed log session")
        if self.finished:
            return 0

        if self.response is None:
            if self._more_pending and self.poll_interval > 0:
                time.sleep(self.poll_interval)
            self.fetch_chunk()
            self._more_pending = False

        try:
            data = self.response.read1(len(buffer))
        except HTTPError as e:
            raise NetworkError("read", self.base_url, str(e)) from e
        if data:
            n = len(data)
            buffer[:n] = data
            return n

        return self._finish_chunk()

    def _finish_chunk(self) -> Optional[int]:
        # The cursor only moves once the whole chunk has been handed out.
        response = self.response
        try:
            response.release_conn()
        except HTTPError as e:
            raise NetworkError("release", self.base_url, str(e)) from e

        text_size = response.headers.get(TEXT_SIZE_HEADER)
        if text_size is not None:
            self.position = text_size
        self.response = None

        if response.headers.get(MORE_DATA_HEADER) == "true":
            logger.debug("More data pending, next offset %s", self.position)
            self._more_pending = True
            return None

        logger.debug("Log complete at offset %s", self.position)
        self.finished = True
        return 0

    def readall(self) -> bytes:
        """Read until the job has finished producing output."""
        chunks = []
        while True:
            data = self.read(io.DEFAULT_BUFFER_SIZE)
            if data is None:
                continue
            if not data:
                break
            chunks.append(data)
        return b"".join(chunks)

    def close(self) -> None:
        if self.response is not None:
            self.response.release_conn()
            self.response = None
        if self._owns_http:
            self._http.clear()
        super().close()
