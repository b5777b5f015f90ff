from __future__ import annotations

import enum
import http.client
import logging
import socket
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Set

import requests
from requests import Response
from urllib3.exceptions import NameResolutionError


logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    DNS_FAILURE = "dns_failure"
    PROTOCOL = "protocol"
    HTTP_STATUS = "http_status"
    INVALID_BODY = "invalid_body"
    OTHER = "other"


@dataclass
class RequestConfig:
    timeout: float = 10.0
    verify_ssl: bool = True


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one GET; transport problems are reported here, never raised."""

    url: str
    ok: bool
    status_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    data: Any = None
    message: str = ""

    @property
    def responded(self) -> bool:
        """True when the remote end produced an HTTP response of any status."""
        return self.status_code is not None


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    pending = [exc]
    seen: Set[int] = set()
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for candidate in (getattr(current, "reason", None), current.__cause__, current.__context__, *current.args):
            if isinstance(candidate, BaseException):
                pending.append(candidate)


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map a ``requests`` failure onto an :class:`ErrorKind` by exception type."""
    if isinstance(exc, requests.Timeout):
        return ErrorKind.TIMEOUT
    chain = list(_exception_chain(exc))
    for item in chain:
        if isinstance(item, (socket.gaierror, NameResolutionError)):
            return ErrorKind.DNS_FAILURE
        if isinstance(item, ConnectionRefusedError):
            return ErrorKind.CONNECTION_REFUSED
        if isinstance(item, socket.timeout):
            return ErrorKind.TIMEOUT
    for item in chain:
        if isinstance(item, (http.client.RemoteDisconnected, http.client.BadStatusLine, requests.exceptions.ChunkedEncodingError)):
            return ErrorKind.PROTOCOL
    return ErrorKind.OTHER


class HttpClient:
    """GET helper that turns every outcome into a :class:`FetchResult`."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or requests.Session()
        self._log = logging.getLogger(self.__class__.__name__)

    def fetch(self, url: str, *, expect_json: bool = True) -> FetchResult:
        try:
            response = self.session.get(
                url,
                timeout=self.request_config.timeout,
                verify=self.request_config.verify_ssl,
            )
        except requests.RequestException as exc:
            kind = classify_exception(exc)
            self._log.debug("GET %s failed (%s): %s", url, kind.value, exc)
            return FetchResult(url=url, ok=False, error_kind=kind, message=str(exc) or kind.value)
        return self._handle_response(url, response, expect_json)

    def _handle_response(self, url: str, response: Response, expect_json: bool) -> FetchResult:
        status = response.status_code
        if not 200 <= status < 300:
            return FetchResult(
                url=url,
                ok=False,
                status_code=status,
                error_kind=ErrorKind.HTTP_STATUS,
                message=f"HTTP {status}",
            )
        if not expect_json:
            return FetchResult(url=url, ok=True, status_code=status, data=response.text)
        try:
            data = response.json()
        except ValueError as exc:
            self._log.debug("Invalid JSON from %s", url, exc_info=exc)
            return FetchResult(
                url=url,
                ok=False,
                status_code=status,
                error_kind=ErrorKind.INVALID_BODY,
                message="invalid json",
            )
        return FetchResult(url=url, ok=True, status_code=status, data=data)


__all__ = ["HttpClient", "FetchResult", "ErrorKind", "RequestConfig", "classify_exception"]
