"""
VAT Checker - EU VAT identification number validation.

This package checks VAT identifiers against per-country format rules, confirms
registration through the EU VIES registry, and protects that registry from
abuse with per-client sliding-window rate limiting.
"""

__version__ = "0.1.0"

from vat_checker.exceptions import (
    VatCheckerError,
    NetworkError,
    ProtocolError,
    ConfigurationError,
)
from vat_checker.enums import (
    VerificationStatus,
    FormatErrorCode,
    VIESErrorCode,
    LogLevel,
)
from vat_checker.config import (
    RateLimitRule,
    VIESConfig,
    LoggingConfig,
    SystemConfig,
    create_default_config,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from vat_checker.models import (
    VatIdentifier,
    IncomingRequest,
    HTTPResponse,
    VIESError,
    VerificationResult,
)
from vat_checker.format_validator import (
    VAT_FORMATS,
    FormatValidationError,
    FormatValidationResult,
    normalize_vat_id,
    split_vat_id,
    validate_format,
)
from vat_checker.rate_limiter import (
    SlidingWindowRateLimiter,
    RateLimitStatus,
)
from vat_checker.vies_client import VIESClient
from vat_checker.audit_logger import (
    AuditLogger,
    LogEntry,
)
from vat_checker.i18n import get_message
from vat_checker.handler import (
    VatCheckHandler,
    resolve_client_identity,
)

__all__ = [
    # Exceptions
    "VatCheckerError",
    "NetworkError",
    "ProtocolError",
    "ConfigurationError",
    # Enums
    "VerificationStatus",
    "FormatErrorCode",
    "VIESErrorCode",
    "LogLevel",
    # Configuration
    "RateLimitRule",
    "VIESConfig",
    "LoggingConfig",
    "SystemConfig",
    "create_default_config",
    "load_config_from_env",
    "load_config_from_file",
    "save_config_to_file",
    # Models
    "VatIdentifier",
    "IncomingRequest",
    "HTTPResponse",
    "VIESError",
    "VerificationResult",
    # Format Validator
    "VAT_FORMATS",
    "FormatValidationError",
    "FormatValidationResult",
    "normalize_vat_id",
    "split_vat_id",
    "validate_format",
    # Rate Limiter
    "SlidingWindowRateLimiter",
    "RateLimitStatus",
    # VIES Client
    "VIESClient",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # I18n
    "get_message",
    # Handler
    "VatCheckHandler",
    "resolve_client_identity",
]
