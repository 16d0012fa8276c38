"""
Enumeration types for the VAT checker system.

These enums provide type-safe constants for verification outcomes, error codes,
and logging options throughout the system.
"""

from enum import Enum


class VerificationStatus(Enum):
    """Outcome of a remote registry lookup."""

    CONFIRMED_VALID = "confirmed_valid"
    CONFIRMED_INVALID = "confirmed_invalid"
    INDETERMINATE = "indeterminate"


class FormatErrorCode(Enum):
    """Error codes for format validation failures."""

    UNKNOWN_COUNTRY = "unknown_country"
    PATTERN_MISMATCH = "pattern_mismatch"


class VIESErrorCode(Enum):
    """Error codes for VIES client operations."""

    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]


_LEVEL_RANKS = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}
