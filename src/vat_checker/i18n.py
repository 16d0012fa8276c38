"""
Internationalization (i18n) module for the VAT checker system.

User-facing texts of the VAT checker in German (de) and English (en).
German is the default, matching the wording clients of the public endpoint
already rely on.
"""

from typing import Optional

from .config import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES


# message key -> language code -> text
TRANSLATIONS: dict[str, dict[str, str]] = {
    # Request handling
    "request.method_not_allowed": {
        "de": "Method not allowed",
        "en": "Method not allowed",
    },
    "request.rate_limited": {
        "de": "Zu viele Anfragen. Bitte versuchen Sie es später erneut.",
        "en": "Too many requests. Please try again later.",
    },
    "request.missing_vat_id": {
        "de": "USt-ID ist erforderlich",
        "en": "VAT ID is required",
    },
    "request.usage": {
        "de": "GET /api/check-vat?vatId=DE123456789",
        "en": "GET /api/check-vat?vatId=DE123456789",
    },

    # Format validation
    "format.unknown_country": {
        "de": "Unbekanntes Land oder ungültiges Format",
        "en": "Unknown country or invalid format",
    },
    "format.pattern_mismatch": {
        "de": "Format entspricht nicht den Regeln für {country_code}",
        "en": "Format does not match the rules for {country_code}",
    },

    # Registry lookup
    "vies.unreachable": {
        "de": "VIES API nicht erreichbar",
        "en": "VIES API unreachable",
    },
    "vies.format_ok_check_failed": {
        "de": "Format ist gültig, aber Online-Prüfung fehlgeschlagen",
        "en": "Format is valid, but the online check failed",
    },

    # CLI output
    "cli.checking": {
        "de": "Prüfe USt-ID: {vat_id}",
        "en": "Checking VAT ID: {vat_id}",
    },
    "cli.result_valid": {
        "de": "Gültig",
        "en": "Valid",
    },
    "cli.result_invalid": {
        "de": "Ungültig",
        "en": "Invalid",
    },
    "cli.result_unknown": {
        "de": "Unbekannt (Format gültig, Registerabfrage fehlgeschlagen)",
        "en": "Unknown (format valid, registry lookup failed)",
    },
    "cli.simulation": {
        "de": "Simulationsmodus aktiv - es werden keine Netzwerkanfragen gestellt",
        "en": "Simulation mode enabled - no network requests are made",
    },
}


def resolve_language(language: Optional[str]) -> str:
    """The requested language if supported, else the default (German)."""
    return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def get_message(key: str, language: Optional[str] = None, **kwargs) -> str:
    """
    Text for ``key`` in ``language`` with ``{placeholders}`` filled from kwargs.

    Unknown keys are returned unchanged. A template whose placeholders are not
    all supplied is returned unformatted.

        >>> get_message('format.pattern_mismatch', 'en', country_code='DE')
        'Format does not match the rules for DE'
    """
    texts = TRANSLATIONS.get(key, {})
    template = texts.get(resolve_language(language)) or texts.get(DEFAULT_LANGUAGE)
    if template is None:
        return key
    if not kwargs:
        return template
    try:
        return template.format(**kwargs)
    except KeyError:
        return template


def get_missing_translations(language: str) -> set[str]:
    """Message keys without a text for ``language``."""
    return {key for key, texts in TRANSLATIONS.items() if language not in texts}
