"""
VAT identifier normalization and format validation.

Every supported jurisdiction has exactly one pattern, matched against the full
normalized identifier including its country prefix. The table covers the 27 EU
member states, Northern Ireland (XI) and the ISO code GR as a synonym for the
Greek registry prefix EL.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .enums import FormatErrorCode
from .i18n import get_message
from .models import VatIdentifier


WHITESPACE_PATTERN = re.compile(r"\s")


def _rule(pattern: str) -> re.Pattern:
    # ASCII: \d must not accept non-Latin digits
    return re.compile(pattern, re.ASCII)


_GREECE = _rule(r"^EL\d{9}$")

VAT_FORMATS: dict[str, re.Pattern] = {
    "AT": _rule(r"^ATU\d{8}$"),
    "BE": _rule(r"^BE(0\d{9}|\d{10})$"),
    "BG": _rule(r"^BG\d{9,10}$"),
    "CY": _rule(r"^CY\d{8}[A-Z]$"),
    "CZ": _rule(r"^CZ\d{8,10}$"),
    "DE": _rule(r"^DE\d{9}$"),
    "DK": _rule(r"^DK\d{8}$"),
    "EE": _rule(r"^EE\d{9}$"),
    "GR": _GREECE,
    "EL": _GREECE,
    "ES": _rule(r"^ES[A-Z0-9]\d{7}[A-Z0-9]$"),
    "FI": _rule(r"^FI\d{8}$"),
    "FR": _rule(r"^FR[A-HJ-NP-Z0-9]{2}\d{9}$"),
    "HR": _rule(r"^HR\d{11}$"),
    "HU": _rule(r"^HU\d{8}$"),
    "IE": _rule(r"^IE(\d{7}[A-W]|\d[A-Z*+]\d{5}[A-W])$"),
    "IT": _rule(r"^IT\d{11}$"),
    "LT": _rule(r"^LT(\d{9}|\d{12})$"),
    "LU": _rule(r"^LU\d{8}$"),
    "LV": _rule(r"^LV\d{11}$"),
    "MT": _rule(r"^MT\d{8}$"),
    "NL": _rule(r"^NL\d{9}B\d{2}$"),
    "PL": _rule(r"^PL\d{10}$"),
    "PT": _rule(r"^PT\d{9}$"),
    "RO": _rule(r"^RO\d{2,10}$"),
    "SE": _rule(r"^SE\d{12}$"),
    "SI": _rule(r"^SI\d{8}$"),
    "SK": _rule(r"^SK\d{10}$"),
    "XI": _rule(r"^XI\d{9}$"),
}

# Country codes the registry expects instead of the ISO code
REGISTRY_CODES = {"GR": "EL"}


@dataclass
class FormatValidationError:
    """Structured error information for format validation failures."""

    code: FormatErrorCode
    message: str
    details: dict = field(default_factory=dict)


@dataclass
class FormatValidationResult:
    """Result of validating a normalized VAT identifier."""

    country_code: str
    local_number: str
    format_valid: bool
    error: Optional[FormatValidationError] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.message if self.error else None


def normalize_vat_id(raw: Any) -> str:
    """Uppercase and strip all whitespace. Non-string input is stringified first."""
    return WHITESPACE_PATTERN.sub("", str(raw).upper())


def split_vat_id(normalized: str) -> VatIdentifier:
    """Split a normalized identifier into its 2-character prefix and the remainder."""
    return VatIdentifier(
        normalized=normalized,
        country_code=normalized[:2],
        local_number=normalized[2:],
    )


def registry_country_code(country_code: str) -> str:
    """Country code to use when querying the registry."""
    return REGISTRY_CODES.get(country_code, country_code)


def supported_country_codes() -> list[str]:
    return sorted(VAT_FORMATS)


def validate_format(identifier: str, language: Optional[str] = None) -> FormatValidationResult:
    """
    Validate a pre-normalized VAT identifier against its country's pattern.

    Args:
        identifier: Normalized identifier (uppercase, no whitespace)
        language: Language for the failure reason

    Returns:
        FormatValidationResult with the split identifier and validity
    """
    vat_id = split_vat_id(identifier)

    # An empty identifier has no prefix and lands here as well
    pattern = VAT_FORMATS.get(vat_id.country_code)
    if pattern is None:
        return FormatValidationResult(
            country_code=vat_id.country_code,
            local_number=vat_id.local_number,
            format_valid=False,
            error=FormatValidationError(
                code=FormatErrorCode.UNKNOWN_COUNTRY,
                message=get_message("format.unknown_country", language),
                details={"country_code": vat_id.country_code},
            ),
        )

    if not pattern.match(identifier):
        return FormatValidationResult(
            country_code=vat_id.country_code,
            local_number=vat_id.local_number,
            format_valid=False,
            error=FormatValidationError(
                code=FormatErrorCode.PATTERN_MISMATCH,
                message=get_message(
                    "format.pattern_mismatch", language, country_code=vat_id.country_code
                ),
                details={"country_code": vat_id.country_code, "pattern": pattern.pattern},
            ),
        )

    return FormatValidationResult(
        country_code=vat_id.country_code,
        local_number=vat_id.local_number,
        format_valid=True,
    )
