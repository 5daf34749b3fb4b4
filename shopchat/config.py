"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. explicit path (``--config`` CLI flag or SHOPCHAT_CONFIG_PATH)
2. ./shopchat.yaml (working directory)
3. ~/.shopchat/config.yaml (user home)

Environment variables override YAML: SHOPCHAT_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
When no config file exists, defaults plus env overrides are used.
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

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
    """Recursively resolve ${VAR} references in a nested data structure."""
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class AppConfig(BaseModel):
    """Process-level settings for the HTTP server."""

    environment: Literal["development", "production", "test"] = "development"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"
    allowed_origins: list[str] = []
    trust_proxy: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class DatabaseConfig(BaseModel):
    """Relational datastore settings."""

    url: str = "sqlite:///./shopchat.db"
    echo: bool = False


class LLMConfig(BaseModel):
    """Language-model provider settings."""

    model: str = "claude-haiku-4-5-20251001"
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_tokens: int = Field(default=300, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)
    api_key: str = ""


class CatalogConfig(BaseModel):
    """Commerce platform connector settings."""

    timeout_seconds: float = Field(default=15.0, gt=0)
    static_products_path: str = "data/products.json"
    default_platform: str = "woo"


class ChatConfig(BaseModel):
    """Conversation orchestration settings."""

    history_limit: int = Field(default=10, ge=0)
    serialize_sessions: bool = False
    max_message_length: int = Field(default=1000, ge=1)
    quota_window_days: int = Field(default=30, ge=1)


class RateLimitConfig(BaseModel):
    """Per-client chat request limits."""

    enabled: bool = True
    chat_max_requests: int = 20
    chat_window_seconds: int = 60


class ShopChatConfig(BaseModel):
    """Top-level configuration for the ShopChat backend."""

    app: AppConfig = AppConfig()
    database: DatabaseConfig = DatabaseConfig()
    llm: LLMConfig = LLMConfig()
    catalog: CatalogConfig = CatalogConfig()
    chat: ChatConfig = ChatConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations."""
    candidates = [
        Path.cwd() / "shopchat.yaml",
        Path.cwd() / "shopchat.yml",
        Path.home() / ".shopchat" / "config.yaml",
        Path.home() / ".shopchat" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce(value: str) -> Any:
    """Coerce an env var string to int, float, bool, list, or keep as string."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if "," in value:
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply SHOPCHAT_<SECTION>_<KEY> env var overrides to config data.

    Matches section names by longest prefix so multi-word section names
    like ``rate_limit`` are handled correctly. For example,
    ``SHOPCHAT_RATE_LIMIT_ENABLED`` maps to section ``rate_limit``,
    field ``enabled``.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    prefix = "SHOPCHAT_"
    known_sections = sorted(
        ShopChatConfig.model_fields.keys(), key=len, reverse=True
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
        section_model = ShopChatConfig.model_fields[matched_section].annotation
        if matched_field not in section_model.model_fields:
            continue
        if not isinstance(data.get(matched_section), dict):
            data[matched_section] = {}
        if matched_field == "allowed_origins":
            data[matched_section][matched_field] = [
                part.strip() for part in value.split(",") if part.strip()
            ]
        elif matched_field in ("url", "api_key", "model"):
            data[matched_section][matched_field] = value
        else:
            data[matched_section][matched_field] = _coerce(value)
    return data


def _apply_well_known_env(data: dict[str, Any]) -> dict[str, Any]:
    """Honor conventional env vars that predate the SHOPCHAT_ prefix."""
    database_url = os.environ.get("DATABASE_URL", "").strip()
    if database_url:
        data.setdefault("database", {})["url"] = database_url
    api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
    if api_key and not data.get("llm", {}).get("api_key"):
        data.setdefault("llm", {})["api_key"] = api_key
    model = os.environ.get("ANTHROPIC_MODEL", "").strip()
    if model:
        data.setdefault("llm", {})["model"] = model
    return data


def load_config(config_path: str | None = None) -> ShopChatConfig:
    """Load ShopChat configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, checks
            SHOPCHAT_CONFIG_PATH and then the standard locations.

    Returns:
        Parsed and validated ShopChatConfig. Defaults (plus environment
        overrides) when no config file is found.

    Raises:
        FileNotFoundError: If an explicit config path does not exist.
    """
    explicit = config_path or os.environ.get("SHOPCHAT_CONFIG_PATH")
    if explicit:
        path: Path | None = Path(explicit)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {explicit}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_well_known_env(data)
    data = _apply_env_overrides(data)

    return ShopChatConfig(**data)


@lru_cache(maxsize=1)
def get_config() -> ShopChatConfig:
    """Return the process-wide configuration, loading it on first use."""
    return load_config()
