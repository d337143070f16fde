"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./multiship.yaml (working directory)
3. ~/.multiship/config.yaml (user home)

Environment variables override YAML: MULTISHIP_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, field_validator

from multiship.services.address_validation import DEFAULT_REQUIRED_FIELDS
from multiship.services.item_config import FeatureFlags

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
        Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class StorefrontConfig(BaseModel):
    """Where the Storefront API lives and how to talk to it."""

    base_url: str = "http://localhost:3000"
    timeout: float = 30.0
    gift_message_url: str | None = None
    delivery_date_option_id: str | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class FeaturesConfig(BaseModel):
    """Optional wizard capabilities."""

    delivery_dates_enabled: bool = False
    gift_messages_enabled: bool = False
    auto_recommend_option: bool = False


class CacheConfig(BaseModel):
    """Consignment cache location.

    ``{checkout_id}`` in the path is replaced per checkout so each shopping
    session gets its own file.
    """

    enabled: bool = True
    path: str = "~/.multiship/sessions/{checkout_id}.json"

    def path_for(self, checkout_id: str) -> Path:
        return Path(self.path.format(checkout_id=checkout_id)).expanduser()

    @property
    def directory(self) -> Path:
        return Path(self.path.split("{checkout_id}")[0]).expanduser()


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = "info"
    format: Literal["text", "json"] = "text"


class AddressConfig(BaseModel):
    """Fields an address must carry before a consignment is created."""

    required_fields: list[str] = list(DEFAULT_REQUIRED_FIELDS)


class MultiShipConfig(BaseModel):
    """Top-level configuration for multiship."""

    storefront: StorefrontConfig = StorefrontConfig()
    features: FeaturesConfig = FeaturesConfig()
    cache: CacheConfig = CacheConfig()
    logging: LoggingConfig = LoggingConfig()
    address: AddressConfig = AddressConfig()

    def to_feature_flags(self) -> FeatureFlags:
        return FeatureFlags(
            delivery_dates_enabled=self.features.delivery_dates_enabled,
            gift_messages_enabled=self.features.gift_messages_enabled,
            auto_recommend_option=self.features.auto_recommend_option,
        )


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "multiship.yaml",
        Path.cwd() / "multiship.yml",
        Path.home() / ".multiship" / "config.yaml",
        Path.home() / ".multiship" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply MULTISHIP_<SECTION>_<KEY> env var overrides to config data.

    For example, ``MULTISHIP_FEATURES_GIFT_MESSAGES_ENABLED=true`` sets
    ``features.gift_messages_enabled``. Comma-separated values are split
    for list fields such as ``address.required_fields``.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    prefix = "MULTISHIP_"
    known_sections = sorted(
        MultiShipConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        suffix = key[len(prefix):].lower()
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        if matched_section not in data or data[matched_section] is None:
            data[matched_section] = {}
        if not isinstance(data[matched_section], dict):
            continue
        if matched_field == "required_fields":
            data[matched_section][matched_field] = [
                part.strip() for part in value.split(",") if part.strip()
            ]
            continue
        # Coerce to int, bool, or keep as string
        try:
            data[matched_section][matched_field] = int(value)
        except ValueError:
            if value.lower() in ("true", "false"):
                data[matched_section][matched_field] = value.lower() == "true"
            else:
                data[matched_section][matched_field] = value
    return data


def load_config(config_path: str | None = None) -> MultiShipConfig | None:
    """Load multiship configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.multiship/).

    Returns:
        Parsed and validated MultiShipConfig, or None if no config found.
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()
        if path is None:
            return None

    logger.info("Loading config from %s", path)

    with open(path) as f:
        raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return MultiShipConfig(**data)
