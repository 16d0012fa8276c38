"""
Data models for the VAT checker system.

This module defines the data structures passed between the pipeline stages:
the parsed VAT identifier, the generic inbound request and outbound response
exchanged with the host router, and the result of a registry lookup.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .enums import VerificationStatus, VIESErrorCode


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class VatIdentifier:
    """A normalized VAT identifier split into country prefix and local number."""

    normalized: str
    country_code: str  # First two characters
    local_number: str  # Remainder


@dataclass
class IncomingRequest:
    """Framework-independent view of an inbound HTTP request."""

    method: str
    query: dict[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    remote_addr: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass
class HTTPResponse:
    """Status code, JSON body and headers produced by the handler."""

    status_code: int
    body: Optional[dict] = None  # None means empty body
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class VIESError:
    """Error information from a failed registry lookup."""

    code: VIESErrorCode
    message: str
    http_status_code: Optional[int] = None


@dataclass
class VerificationResult:
    """Outcome of a remote VIES lookup. Never persisted."""

    status: VerificationStatus
    valid: Optional[bool]
    name: str = ""
    address: str = ""
    request_date: Optional[str] = None
    timestamp: str = field(default_factory=utc_timestamp)
    error: Optional[VIESError] = None
    response_time_ms: float = 0.0

    @property
    def indeterminate(self) -> bool:
        return self.status is VerificationStatus.INDETERMINATE
