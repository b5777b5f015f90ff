from __future__ import annotations

import http.client
import socket

import pytest
import requests
from urllib3.exceptions import MaxRetryError, NewConnectionError

from hubdrivers.providers.acuparse import AcuparseClient
from hubdrivers.providers.base import ErrorKind, HttpClient, RequestConfig, classify_exception

HEALTH_URL = "http://station.test:80/api/system/health"
DASHBOARD_URL = "http://station.test:80/api/v1/json/dashboard/?main"


def _wrapped_connection_error(cause: BaseException) -> requests.ConnectionError:
    new_conn = NewConnectionError(None, "Failed to establish a new connection")
    new_conn.__cause__ = cause
    return requests.ConnectionError(MaxRetryError(None, "http://host.test/", reason=new_conn))


@pytest.mark.parametrize(
    "exc, expected",
    [
        (requests.ConnectTimeout("connect timed out"), ErrorKind.TIMEOUT),
        (requests.ReadTimeout("read timed out"), ErrorKind.TIMEOUT),
        (_wrapped_connection_error(ConnectionRefusedError(111, "refused")), ErrorKind.CONNECTION_REFUSED),
        (_wrapped_connection_error(socket.gaierror(-2, "Name or service not known")), ErrorKind.DNS_FAILURE),
        (requests.ConnectionError(http.client.RemoteDisconnected("closed")), ErrorKind.PROTOCOL),
        (requests.ConnectionError("something odd"), ErrorKind.OTHER),
    ],
)
def test_classify_exception_switches_on_type(exc, expected) -> None:
    assert classify_exception(exc) is expected


def test_fetch_reports_transport_failure_without_raising(requests_mock) -> None:
    requests_mock.get("http://host.test/", exc=requests.ConnectionError(ConnectionRefusedError(111, "refused")))

    result = HttpClient().fetch("http://host.test/")

    assert not result.ok
    assert not result.responded
    assert result.error_kind is ErrorKind.CONNECTION_REFUSED


def test_fetch_reports_non_2xx_status(requests_mock) -> None:
    requests_mock.get("http://host.test/", status_code=503, text="busy")

    result = HttpClient().fetch("http://host.test/")

    assert not result.ok
    assert result.responded
    assert result.status_code == 503
    assert result.error_kind is ErrorKind.HTTP_STATUS


def test_fetch_flags_invalid_json(requests_mock) -> None:
    requests_mock.get("http://host.test/", text="<html>")

    result = HttpClient().fetch("http://host.test/")

    assert result.error_kind is ErrorKind.INVALID_BODY
    assert result.status_code == 200


def test_fetch_passes_timeout_and_ssl_settings(requests_mock) -> None:
    requests_mock.get("https://host.test/", text="ok")

    HttpClient(request_config=RequestConfig(timeout=2.5, verify_ssl=False)).fetch("https://host.test/", expect_json=False)

    assert requests_mock.last_request.timeout == 2.5
    assert requests_mock.last_request.verify is False


def test_acuparse_health_parses_payload(requests_mock) -> None:
    requests_mock.get(HEALTH_URL, json={"status": "Online", "realtime": "Online", "database": True})

    result, health = AcuparseClient("station.test").health()

    assert result.ok
    assert health is not None
    assert health.status == "Online"
    assert health.database == "true"


def test_acuparse_health_with_empty_body_is_a_failure(requests_mock) -> None:
    requests_mock.get(HEALTH_URL, json={})

    result, health = AcuparseClient("station.test").health()

    assert health is None
    assert result.error_kind is ErrorKind.INVALID_BODY


def test_acuparse_dashboard_builds_snapshot(requests_mock, dashboard_payload) -> None:
    requests_mock.get(DASHBOARD_URL, json=dashboard_payload)

    result, snapshot = AcuparseClient(" station.test ").dashboard()

    assert result.ok
    assert snapshot is not None
    assert snapshot.get("main", "tempF") == 72.5
    assert snapshot.section("lightning")["strikecount"] == 0


def test_acuparse_uses_configured_port(requests_mock) -> None:
    requests_mock.get("http://station.test:8080/api/v1/json/dashboard/?main", status_code=404)

    result, snapshot = AcuparseClient("station.test", port=8080).dashboard()

    assert snapshot is None
    assert result.status_code == 404
