"""Unit tests for the carrier API client.

The client never raises: transport errors, error statuses and bodies that
are not JSON all come back as ``ApiResult(success=False)``.
"""

from __future__ import annotations

import httpx
import pytest

from modules.shipping.client import RateClient

pytestmark = pytest.mark.unit


class TestRequest:
    def test_posts_json_with_access_key(self, carrier, carrier_client):
        carrier.queue(json_body={"Available": []})

        result = carrier_client.request("rates", {"packages": []})

        sent = carrier.requests[0]
        assert result.success is True
        assert result.data == {"Available": []}
        assert sent.method == "POST"
        assert str(sent.url) == "https://carrier.test/api/rates"
        assert sent.headers["access_key"] == "test-access-key"
        assert sent.headers["Content-Type"] == "application/json"
        assert carrier.payload() == {"packages": []}

    def test_base_url_trailing_slash_is_tolerated(self, carrier):
        carrier.queue(json_body={})
        client = RateClient(base_url="https://carrier.test/api/", transport=carrier.transport)

        client.request("/shipments", {})

        assert str(carrier.requests[0].url) == "https://carrier.test/api/shipments"

    def test_transport_error_is_a_failed_result(self, carrier, carrier_client):
        carrier.queue_error(httpx.ConnectError("connection refused"))

        result = carrier_client.request("rates", {})

        assert result.success is False
        assert "connection refused" in result.error
        assert result.status_code is None

    def test_timeout_is_a_failed_result(self, carrier, carrier_client):
        carrier.queue_error(httpx.ReadTimeout("timed out"))

        result = carrier_client.request("rates", {})

        assert result.success is False

    def test_error_status_is_a_failed_result(self, carrier, carrier_client):
        carrier.queue(status_code=401, json_body={"Message": "bad key"})

        result = carrier_client.request("rates", {})

        assert result.success is False
        assert result.error == "API Error: 401"
        assert result.status_code == 401

    def test_malformed_body_is_a_failed_result(self, carrier, carrier_client):
        carrier.queue(raw=b"<html>oops</html>")

        result = carrier_client.request("rates", {})

        assert result.success is False
        assert result.error == "Malformed response body"

    def test_empty_body_is_success_without_data(self, carrier, carrier_client):
        carrier.queue(raw=b"")

        result = carrier_client.request("rates", {})

        assert result.success is True
        assert result.data is None


class TestRetry:
    def _client(self, carrier, retries, delays):
        return RateClient(
            transport=carrier.transport,
            max_retries=retries,
            backoff=0.5,
            sleep=delays.append,
        )

    def test_no_retry_by_default(self, carrier, carrier_client):
        carrier.queue(status_code=503)

        result = carrier_client.request("rates", {})

        assert result.success is False
        assert len(carrier.requests) == 1

    def test_retries_server_errors_with_backoff(self, carrier):
        delays = []
        carrier.queue(status_code=502)
        carrier.queue_error(httpx.ConnectError("reset"))
        carrier.queue(json_body={"Available": []})

        result = self._client(carrier, 2, delays).request("rates", {})

        assert result.success is True
        assert len(carrier.requests) == 3
        assert delays == [0.5, 1.0]

    def test_gives_up_after_max_retries(self, carrier):
        delays = []
        carrier.queue(status_code=500)
        carrier.queue(status_code=500)

        result = self._client(carrier, 1, delays).request("rates", {})

        assert result.success is False
        assert result.status_code == 500
        assert len(carrier.requests) == 2

    def test_client_errors_are_not_retried(self, carrier):
        delays = []
        carrier.queue(status_code=400)

        result = self._client(carrier, 3, delays).request("rates", {})

        assert result.success is False
        assert len(carrier.requests) == 1
        assert delays == []
