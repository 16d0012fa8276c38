"""
Request handler for the VAT checker system.

This module coordinates the components for a single inbound request, in a
fixed order where every stage either answers the request or hands a value on:

1. CORS preflight (OPTIONS) is answered immediately
2. Only GET and POST continue
3. Per-client rate limiting
4. Extraction of ``vatId`` from the query string (GET) or body (POST)
5. Normalization (whitespace removed, uppercased)
6. Format validation against the country's pattern
7. Live lookup in the VIES registry

Every outcome is a well-formed JSON response; there is no 500 path.
"""

import json
import time
from typing import Any, Callable, Optional

from .audit_logger import AuditLogger
from .config import SystemConfig
from .enums import LogLevel
from .format_validator import normalize_vat_id, validate_format
from .i18n import get_message
from .models import HTTPResponse, IncomingRequest, VerificationResult, utc_timestamp
from .rate_limiter import RateLimitStatus, SlidingWindowRateLimiter
from .vies_client import VIESClient


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

UNKNOWN_CLIENT = "unknown"

SOURCE_NAME = "EU VIES"


def resolve_client_identity(request: IncomingRequest) -> str:
    """
    Derive the client identity from transport hints.

    Order: head of X-Forwarded-For, X-Real-IP, the connection address,
    then the 'unknown' sentinel.
    """
    forwarded = request.header("x-forwarded-for")
    if forwarded:
        head = forwarded.split(",")[0]
        if head:
            return head

    real_ip = request.header("x-real-ip")
    if real_ip:
        return real_ip

    if request.remote_addr:
        return request.remote_addr

    return UNKNOWN_CLIENT


def is_missing_vat_id(value: Any) -> bool:
    """None, empty string, False, zero and NaN all count as absent."""
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)):
        return value == 0 or value != value
    return False


def _utf8_encodable(value: Any) -> Any:
    # Lone surrogates from JSON escapes cannot be echoed back in a response
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            return None
    return value


def extract_vat_id(request: IncomingRequest) -> Any:
    """
    Raw ``vatId`` from the query string (GET) or the JSON body (POST).

    Returns None when the body is not a JSON object, is nested too deeply to
    decode, or carries a string that cannot be encoded as UTF-8.
    """
    if request.method.upper() == "GET":
        value = request.query.get("vatId")
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        return _utf8_encodable(value)

    body = request.body
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        if not body.strip():
            return None
        try:
            body = json.loads(body)
        except (ValueError, RecursionError):
            return None
    if isinstance(body, dict):
        return _utf8_encodable(body.get("vatId"))
    return None


class VatCheckHandler:
    """
    Handles VAT check requests end to end.

    The rate limiter is the only state shared between requests.
    """

    async def __aenter__(self) -> "VatCheckHandler":
        """Async context manager entry."""
        await self._vies_client.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        vies_client: Optional[VIESClient] = None,
        logger: Optional[AuditLogger] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the handler.

        Args:
            config: System configuration
            rate_limiter: Optional rate limiter (one is built from config otherwise)
            vies_client: Optional VIES client (one is built from config otherwise)
            logger: Optional audit logger
            clock: Source of the current time in seconds, passed to the rate limiter
        """
        self._config = config or SystemConfig()
        self._language = self._config.language
        self._rate_limiter = rate_limiter or SlidingWindowRateLimiter(self._config.rate_limit)
        self._vies_client = vies_client or VIESClient(
            config=self._config.vies,
            simulation_mode=self._config.simulation_mode,
        )
        self._logger = logger
        self._clock = clock

    async def handle(self, request: IncomingRequest) -> HTTPResponse:
        """
        Process one inbound request.

        Args:
            request: Framework-independent request

        Returns:
            HTTPResponse with status code, JSON body and CORS headers
        """
        method = request.method.upper()

        if method == "OPTIONS":
            return self._respond(200, None)

        if method not in ("GET", "POST"):
            return self._respond(405, {"error": self._message("request.method_not_allowed")})

        client = resolve_client_identity(request)
        status = await self._rate_limiter.admit(client, self._clock())
        if not status.allowed:
            return self._rate_limited(client, status)

        raw_vat_id = extract_vat_id(request)
        if is_missing_vat_id(raw_vat_id):
            self._log(LogLevel.WARN, "Missing VAT ID", {"client": client, "method": method})
            return self._respond(400, {
                "error": self._message("request.missing_vat_id"),
                "usage": self._message("request.usage"),
                "formatValid": False,
            })

        vat_id = normalize_vat_id(raw_vat_id)

        validation = validate_format(vat_id, self._language)
        if not validation.format_valid:
            self._log(
                LogLevel.WARN,
                "Format validation failed",
                {
                    "client": client,
                    "vat_id": vat_id,
                    "code": validation.error.code.value,
                    "reason": validation.reason,
                },
            )
            return self._respond(400, {
                "vatId": vat_id,
                "valid": False,
                "error": validation.reason,
                "formatValid": False,
            })

        self._log(LogLevel.INFO, f"Checking VAT ID: {vat_id}", {"client": client, "vat_id": vat_id})

        result = await self._vies_client.verify(validation.country_code, validation.local_number)

        if result.indeterminate:
            self._log(
                LogLevel.ERROR,
                "VIES lookup failed",
                {
                    "client": client,
                    "vat_id": vat_id,
                    "code": result.error.code.value,
                    "error": result.error.message,
                    "http_status_code": result.error.http_status_code,
                },
            )
            return self._respond(200, self._indeterminate_body(vat_id, validation.country_code))

        self._log(
            LogLevel.INFO,
            "VIES response",
            {"client": client, "vat_id": vat_id, "valid": result.valid, "has_name": bool(result.name)},
        )
        return self._respond(200, self._confirmed_body(vat_id, validation.country_code, result))

    def _rate_limited(self, client: str, status: RateLimitStatus) -> HTTPResponse:
        self._log(
            LogLevel.WARN,
            "Rate limit exceeded",
            {"client": client, "requests_in_window": status.request_count},
        )
        response = self._respond(429, {
            "error": self._message("request.rate_limited"),
            "formatValid": False,
            "retryAfter": status.retry_after_seconds,
        })
        response.headers["Retry-After"] = str(status.retry_after_seconds)
        return response

    def _confirmed_body(self, vat_id: str, country_code: str, result: VerificationResult) -> dict:
        return {
            "vatId": vat_id,
            "valid": result.valid,
            "name": result.name,
            "address": result.address,
            "countryCode": country_code,
            "requestDate": result.request_date,
            "formatValid": True,
            "source": SOURCE_NAME,
            "timestamp": utc_timestamp(),
        }

    def _indeterminate_body(self, vat_id: str, country_code: str) -> dict:
        return {
            "vatId": vat_id,
            "valid": None,
            "error": self._message("vies.unreachable"),
            "formatValid": True,
            "countryCode": country_code,
            "timestamp": utc_timestamp(),
            "message": self._message("vies.format_ok_check_failed"),
        }

    def _respond(self, status_code: int, body: Optional[dict]) -> HTTPResponse:
        headers = dict(CORS_HEADERS)
        headers["Content-Type"] = JSON_CONTENT_TYPE
        return HTTPResponse(status_code=status_code, body=body, headers=headers)

    def _message(self, key: str, **kwargs) -> str:
        return get_message(key, self._language, **kwargs)

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "VatCheckHandler", message, data)

    async def close(self) -> None:
        """Release the VIES client's connections."""
        await self._vies_client.close()

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        """Get the rate limiter instance."""
        return self._rate_limiter

    @property
    def config(self) -> SystemConfig:
        """Get the system configuration."""
        return self._config
