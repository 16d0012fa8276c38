"""
Property-based tests for the VIES Client module.

The registry is stubbed with httpx.MockTransport; no test touches the network.
"""

import asyncio

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from vat_checker.config import VIESConfig
from vat_checker.enums import VerificationStatus, VIESErrorCode
from vat_checker.vies_client import VIESClient


def run_verify(handler, country_code: str = "DE", local_number: str = "123456789", config: VIESConfig = None):
    async def run():
        client = VIESClient(config=config, transport=httpx.MockTransport(handler))
        async with client:
            return await client.verify(country_code, local_number)

    return asyncio.run(run())


def json_reply(payload, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return handler


class TestRequestShape:
    """One GET to the per-country address with the identifying headers."""

    def test_url_and_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"valid": True})

        run_verify(handler)

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "GET"
        assert str(request.url) == "https://ec.europa.eu/taxation_customs/vies/rest-api/ms/DE/vat/123456789"
        assert request.headers["User-Agent"] == "USt-ID-Pruefer/1.0"
        assert request.headers["Accept"] == "application/json"

    def test_greek_iso_code_is_sent_as_registry_code(self) -> None:
        client = VIESClient()
        assert client.build_url("GR", "123456789").endswith("/ms/EL/vat/123456789")
        assert client.build_url("EL", "123456789").endswith("/ms/EL/vat/123456789")

    def test_trailing_slash_in_base_url(self) -> None:
        client = VIESClient(VIESConfig(base_url="https://registry.example/api/"))
        assert client.build_url("AT", "U12345678") == "https://registry.example/api/ms/AT/vat/U12345678"

    def test_no_retry_on_failure(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        run_verify(handler)
        assert len(calls) == 1


class TestConfirmedResults:
    """A boolean validity flag yields a confirmed result."""

    def test_valid_with_name_and_address(self) -> None:
        result = run_verify(json_reply({
            "valid": True,
            "name": "ACME GmbH",
            "address": "Musterstr. 1, Berlin",
            "requestDate": "2024-01-01",
        }))

        assert result.status is VerificationStatus.CONFIRMED_VALID
        assert result.valid is True
        assert result.name == "ACME GmbH"
        assert result.address == "Musterstr. 1, Berlin"
        assert result.request_date == "2024-01-01"
        assert result.error is None

    def test_invalid(self) -> None:
        result = run_verify(json_reply({"valid": False}))
        assert result.status is VerificationStatus.CONFIRMED_INVALID
        assert result.valid is False
        assert not result.indeterminate

    def test_is_valid_field_is_accepted(self) -> None:
        result = run_verify(json_reply({"isValid": True, "name": "ACME"}))
        assert result.valid is True
        assert result.name == "ACME"

    def test_missing_optional_fields_get_defaults(self) -> None:
        result = run_verify(json_reply({"valid": True, "name": None}))
        assert result.name == ""
        assert result.address == ""
        assert result.request_date.endswith("Z")

    @given(
        valid=st.booleans(),
        name=st.text(max_size=30),
        address=st.text(max_size=60),
    )
    @settings(max_examples=50)
    def test_fields_pass_through(self, valid: bool, name: str, address: str) -> None:
        result = run_verify(json_reply({"valid": valid, "name": name, "address": address}))
        assert result.valid is valid
        assert result.name == name
        assert result.address == address


class TestIndeterminateResults:
    """No registry failure escapes verify(); each one degrades to INDETERMINATE."""

    @given(status_code=st.integers(min_value=300, max_value=599))
    @settings(max_examples=30)
    def test_non_success_status(self, status_code: int) -> None:
        result = run_verify(json_reply({"valid": True}, status_code=status_code))
        assert result.indeterminate
        assert result.valid is None
        assert result.error.code == VIESErrorCode.HTTP_ERROR
        assert result.error.http_status_code == status_code

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = run_verify(handler)
        assert result.indeterminate
        assert result.error.code == VIESErrorCode.NETWORK_ERROR

    def test_transport_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        result = run_verify(handler)
        assert result.indeterminate
        assert result.error.code == VIESErrorCode.TIMEOUT

    def test_hard_timeout_bounds_a_slow_registry(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json={"valid": True})

        config = VIESConfig(timeout_seconds=0.05)
        result = run_verify(handler, config=config)

        assert result.indeterminate
        assert result.error.code == VIESErrorCode.TIMEOUT
        assert result.response_time_ms < 5000

    @pytest.mark.parametrize("content", [b"not json", b"", b"{\"valid\": tru"])
    def test_undecodable_body(self, content: bytes) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=content)

        result = run_verify(handler)
        assert result.indeterminate
        assert result.error.code == VIESErrorCode.PARSE_ERROR

    @pytest.mark.parametrize("payload", [
        [],
        "valid",
        {},
        {"name": "ACME"},
        {"valid": "true"},
        {"valid": 1},
        {"valid": None},
    ])
    def test_body_without_boolean_flag(self, payload) -> None:
        result = run_verify(json_reply(payload))
        assert result.indeterminate
        assert result.error.code == VIESErrorCode.PARSE_ERROR

    def test_unexpected_exception(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("boom")

        result = run_verify(handler)
        assert result.indeterminate
        assert result.error.code == VIESErrorCode.NETWORK_ERROR


class TestSimulationMode:
    """Simulation mode answers without any outbound request."""

    def test_no_request_is_made(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"valid": False})

        async def run():
            client = VIESClient(simulation_mode=True, transport=httpx.MockTransport(handler))
            async with client:
                return await client.verify("DE", "123456789")

        result = asyncio.run(run())
        assert calls == []
        assert result.status is VerificationStatus.CONFIRMED_VALID
        assert result.valid is True


class TestTimeoutConfiguration:
    """The outbound timeout never exceeds ten seconds."""

    @given(timeout=st.floats(min_value=-100.0, max_value=1000.0, allow_nan=False))
    @settings(max_examples=100)
    def test_timeout_is_clamped(self, timeout: float) -> None:
        config = VIESConfig(timeout_seconds=timeout)
        assert 0 < config.timeout_seconds <= 10.0

    def test_default_timeout(self) -> None:
        assert VIESConfig().timeout_seconds == 10.0

