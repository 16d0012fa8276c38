"""
Configuration dataclasses for the VAT checker system.

This module defines all configuration structures used throughout the system,
including rate limiting, the VIES registry connection, and logging, together
with loaders for environment variables (``.env`` aware) and JSON files.
"""

import json
import math
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from .exceptions import ConfigurationError


SUPPORTED_LANGUAGES = frozenset({"de", "en"})
DEFAULT_LANGUAGE = "de"

# Upper bound for the outbound registry call
MAX_VIES_TIMEOUT_SECONDS = 10.0

ENV_PREFIX = "VAT_CHECKER_"


@dataclass
class RateLimitRule:
    """Sliding-window admission rule applied per client identity."""

    max_requests: int = 150
    window_seconds: float = 3600.0
    sweep_probability: float = 0.02


@dataclass
class VIESConfig:
    """Connection settings for the VIES REST registry."""

    base_url: str = "https://ec.europa.eu/taxation_customs/vies/rest-api"
    timeout_seconds: float = MAX_VIES_TIMEOUT_SECONDS
    user_agent: str = "USt-ID-Pruefer/1.0"  # header values must be ASCII

    def __post_init__(self) -> None:
        parsed = urlparse(self.base_url)
        if parsed.scheme.lower() != "https":
            raise ConfigurationError(
                code="insecure_endpoint",
                message=f"VIES endpoint must use HTTPS: {self.base_url}",
                details={"base_url": self.base_url, "scheme": parsed.scheme},
            )
        if not (math.isfinite(self.timeout_seconds) and self.timeout_seconds > 0):
            self.timeout_seconds = MAX_VIES_TIMEOUT_SECONDS
        self.timeout_seconds = min(self.timeout_seconds, MAX_VIES_TIMEOUT_SECONDS)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    rate_limit: RateLimitRule = field(default_factory=RateLimitRule)
    vies: VIESConfig = field(default_factory=VIESConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    language: str = DEFAULT_LANGUAGE  # 'de' or 'en'
    simulation_mode: bool = False

    def __post_init__(self) -> None:
        if self.language not in SUPPORTED_LANGUAGES:
            self.language = DEFAULT_LANGUAGE

    def to_dict(self) -> dict:
        return asdict(self)


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def create_default_config(
    simulation_mode: bool = False,
    language: Optional[str] = None,
) -> SystemConfig:
    """Create a configuration with all defaults."""
    return SystemConfig(
        language=language or DEFAULT_LANGUAGE,
        simulation_mode=simulation_mode,
    )


def load_config_from_env(dotenv_path: Optional[Path] = None) -> SystemConfig:
    """
    Build the configuration from ``VAT_CHECKER_*`` environment variables.

    A ``.env`` file is loaded first (without overriding variables that are
    already set). Malformed numeric values fall back to their defaults.

    Raises:
        ConfigurationError: If the configured VIES endpoint is not HTTPS
    """
    load_dotenv(dotenv_path=dotenv_path)

    defaults = RateLimitRule()
    rate_limit = RateLimitRule(
        max_requests=_int_env(f"{ENV_PREFIX}RATE_LIMIT_MAX_REQUESTS", defaults.max_requests),
        window_seconds=_float_env(f"{ENV_PREFIX}RATE_LIMIT_WINDOW_SECONDS", defaults.window_seconds),
        sweep_probability=_float_env(
            f"{ENV_PREFIX}RATE_LIMIT_SWEEP_PROBABILITY", defaults.sweep_probability
        ),
    )

    vies_defaults = VIESConfig()
    vies = VIESConfig(
        base_url=os.getenv(f"{ENV_PREFIX}VIES_BASE_URL", vies_defaults.base_url).strip(),
        timeout_seconds=_float_env(f"{ENV_PREFIX}VIES_TIMEOUT", vies_defaults.timeout_seconds),
        user_agent=os.getenv(f"{ENV_PREFIX}USER_AGENT", vies_defaults.user_agent),
    )

    logging_config = LoggingConfig(
        level=(os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "info") or "info").lower(),
        output_format=(os.getenv(f"{ENV_PREFIX}LOG_FORMAT", "text") or "text").lower(),
    )

    return SystemConfig(
        rate_limit=rate_limit,
        vies=vies,
        logging=logging_config,
        language=(os.getenv(f"{ENV_PREFIX}LANG", DEFAULT_LANGUAGE) or DEFAULT_LANGUAGE).lower(),
        simulation_mode=_bool_env(f"{ENV_PREFIX}SIMULATION_MODE", False),
    )


def _section(data: dict, name: str) -> Optional[dict]:
    """A JSON config section; missing means empty, a non-object is unusable."""
    section = data.get(name, {})
    return section if isinstance(section, dict) else None


def load_config_from_file(config_path: Path) -> Optional[SystemConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        SystemConfig if successful, None otherwise

    Raises:
        ConfigurationError: If the configured VIES endpoint is not HTTPS
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return None

    if not isinstance(data, dict):
        return None

    rate_data = _section(data, "rate_limit")
    vies_data = _section(data, "vies")
    logging_data = _section(data, "logging")
    if rate_data is None or vies_data is None or logging_data is None:
        return None

    rate_limit = RateLimitRule(
        max_requests=rate_data.get("max_requests", 150),
        window_seconds=rate_data.get("window_seconds", 3600.0),
        sweep_probability=rate_data.get("sweep_probability", 0.02),
    )

    vies_defaults = VIESConfig()
    vies = VIESConfig(
        base_url=vies_data.get("base_url", vies_defaults.base_url),
        timeout_seconds=vies_data.get("timeout_seconds", vies_defaults.timeout_seconds),
        user_agent=vies_data.get("user_agent", vies_defaults.user_agent),
    )

    logging_config = LoggingConfig(
        level=logging_data.get("level", "info"),
        output_format=logging_data.get("output_format", "text"),
    )

    return SystemConfig(
        rate_limit=rate_limit,
        vies=vies,
        logging=logging_config,
        language=data.get("language", DEFAULT_LANGUAGE),
        simulation_mode=data.get("simulation_mode", False),
    )


def save_config_to_file(config: SystemConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)
        return True
    except OSError:
        return False
