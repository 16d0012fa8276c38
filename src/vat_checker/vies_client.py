"""
VIES Client for live VAT registration checks.

This module provides an async client for the EU VIES REST registry. A lookup
never raises: transport failures, non-success status codes and malformed
bodies all degrade to an indeterminate result.
"""

import asyncio
import time
from typing import Any, Optional

import httpx

from .config import VIESConfig
from .enums import VerificationStatus, VIESErrorCode
from .exceptions import NetworkError, ProtocolError
from .format_validator import registry_country_code
from .models import VerificationResult, VIESError, utc_timestamp


class VIESClient:
    """
    Async VIES client with a hard per-call timeout.

    One outbound GET per lookup, no retries.
    """

    # Registry field names; older deployments answer with 'isValid'
    VALIDITY_FIELDS = ("valid", "isValid")

    def __init__(
        self,
        config: Optional[VIESConfig] = None,
        simulation_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the VIES client.

        Args:
            config: Registry base URL, timeout and user agent
            simulation_mode: If True, no real network requests are made
            transport: Optional httpx transport (used to stub the registry)
        """
        self._config = config or VIESConfig()
        self._timeout = self._config.timeout_seconds
        self._simulation_mode = simulation_mode
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "VIESClient":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
                headers={
                    "User-Agent": self._config.user_agent,
                    "Accept": "application/json",
                },
            )
        return self._client

    def build_url(self, country_code: str, local_number: str) -> str:
        """Per-country lookup address for an identifier."""
        base = self._config.base_url.rstrip("/")
        return f"{base}/ms/{registry_country_code(country_code)}/vat/{local_number}"

    async def verify(self, country_code: str, local_number: str) -> VerificationResult:
        """
        Look up a VAT identifier in the registry.

        Args:
            country_code: Two-letter prefix of a format-valid identifier
            local_number: Remainder of the identifier

        Returns:
            VerificationResult; INDETERMINATE whenever the registry could not
            give a usable answer
        """
        start_time = time.perf_counter()

        if self._simulation_mode:
            return self._create_simulation_result(start_time)

        url = self.build_url(country_code, local_number)

        try:
            payload = await self._fetch(url)
            return self._parse_payload(payload, start_time)
        except (NetworkError, ProtocolError) as e:
            return self._indeterminate(
                VIESErrorCode(e.code), e.message, e.http_status_code, start_time
            )
        except Exception as e:
            return self._indeterminate(
                VIESErrorCode.NETWORK_ERROR, f"Unexpected error: {e}", None, start_time
            )

    async def _fetch(self, url: str) -> Any:
        """
        Issue the GET request and decode the JSON body.

        Raises:
            NetworkError: On timeout or transport failure
            ProtocolError: On a non-success status or an undecodable body
        """
        client = self._ensure_client()

        try:
            response = await asyncio.wait_for(client.get(url), timeout=self._timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise NetworkError(
                code=VIESErrorCode.TIMEOUT.value,
                message=f"VIES request timed out after {self._timeout}s",
                details={"url": url},
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                code=VIESErrorCode.NETWORK_ERROR.value,
                message=f"Connection error: {e}",
                details={"url": url},
            )

        if not response.is_success:
            raise ProtocolError(
                code=VIESErrorCode.HTTP_ERROR.value,
                message=f"VIES API returned {response.status_code}",
                details={"url": url, "http_status_code": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProtocolError(
                code=VIESErrorCode.PARSE_ERROR.value,
                message=f"Failed to parse VIES response: {e}",
                details={"url": url, "http_status_code": response.status_code},
            )

    def _parse_payload(self, payload: Any, start_time: float) -> VerificationResult:
        """
        Map a decoded registry answer onto a VerificationResult.

        Raises:
            ProtocolError: If the body is not an object or carries no boolean validity flag
        """
        if not isinstance(payload, dict):
            raise ProtocolError(
                code=VIESErrorCode.PARSE_ERROR.value,
                message="VIES response is not a JSON object",
            )

        valid = None
        for field_name in self.VALIDITY_FIELDS:
            if field_name in payload:
                valid = payload[field_name]
                break

        if not isinstance(valid, bool):
            raise ProtocolError(
                code=VIESErrorCode.PARSE_ERROR.value,
                message="VIES response has no boolean validity flag",
            )

        return VerificationResult(
            status=VerificationStatus.CONFIRMED_VALID if valid else VerificationStatus.CONFIRMED_INVALID,
            valid=valid,
            name=payload.get("name") or "",
            address=payload.get("address") or "",
            request_date=payload.get("requestDate") or utc_timestamp(),
            response_time_ms=self._elapsed_ms(start_time),
        )

    def _indeterminate(
        self,
        code: VIESErrorCode,
        message: str,
        http_status_code: Optional[int],
        start_time: float,
    ) -> VerificationResult:
        return VerificationResult(
            status=VerificationStatus.INDETERMINATE,
            valid=None,
            error=VIESError(code=code, message=message, http_status_code=http_status_code),
            response_time_ms=self._elapsed_ms(start_time),
        )

    def _elapsed_ms(self, start_time: float) -> float:
        """Calculate elapsed time in milliseconds."""
        return (time.perf_counter() - start_time) * 1000

    def _create_simulation_result(self, start_time: float) -> VerificationResult:
        """Create a confirmed-valid result for testing without network access."""
        return VerificationResult(
            status=VerificationStatus.CONFIRMED_VALID,
            valid=True,
            request_date=utc_timestamp(),
            response_time_ms=self._elapsed_ms(start_time),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
