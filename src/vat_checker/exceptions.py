"""
Exception classes for the VAT checker system.

Exceptions are raised only inside a component and at configuration time.
The VIES client turns its own NetworkError/ProtocolError into an
indeterminate result, so none of them reaches a caller of the handler.
"""

from typing import Optional


class VatCheckerError(Exception):
    """Base class carrying a machine-readable code and structured details."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"

    @property
    def http_status_code(self) -> Optional[int]:
        """Upstream HTTP status, when the failure came with one."""
        return self.details.get("http_status_code")

    def to_dict(self) -> dict:
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NetworkError(VatCheckerError):
    """The registry could not be reached in time (timeout, DNS, refused connection)."""


class ProtocolError(VatCheckerError):
    """The registry answered, but with a non-success status or an unusable body."""


class ConfigurationError(VatCheckerError):
    """A configuration value cannot be used, e.g. a non-HTTPS registry URL."""
