"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml
(or the file named by EXAMDESK_CONFIG) with built-in defaults.

Usage:
    from examdesk.config.app_config import load_app_config, get_provider_config

    config = load_app_config()
    provider = get_provider_config("openai")
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file paths (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")
CONFIG_ENV_VAR = "EXAMDESK_CONFIG"
SECRET_ENV_VAR = "EXAMDESK_SECRET"


@dataclass
class ProviderConfig:
    """Configuration for a single LLM provider."""

    base_url: str | None
    default_model: str
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """Get API key from environment variable."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class StorageConfig:
    """Object storage settings."""

    bucket: str = "files"
    public_base_url: str = "http://localhost:8000/files"
    signed_url_ttl_s: int = 3600


@dataclass
class GenerationConfig:
    """Defaults for question generation and paper analysis."""

    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    question_count: int = 20
    max_content_chars: int = 8000


@dataclass
class EvaluationConfig:
    """Defaults for answer-sheet evaluation."""

    max_retries: int = 2
    base_retry_delay_s: float = 5.0
    evaluation_model: str = "gpt-4o"
    ocr_model: str = "gpt-4o"
    evaluation_temperature: float = 0.2
    ocr_temperature: float = 0.3


@dataclass
class AppConfig:
    """Application-wide configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    default_provider: str = "openai"
    storage: StorageConfig = field(default_factory=StorageConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        return Path(self.paths.get("db_path", "db/examdesk.db"))

    @property
    def storage_dir(self) -> Path:
        return Path(self.paths.get("storage_dir", "data/storage"))


# Module-level cache
_cached_config: AppConfig | None = None
_process_secret: str | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "providers": {
            "openai": {
                "base_url": None,
                "default_model": "gpt-4o-mini",
                "api_key_env": "OPENAI_API_KEY",
            },
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "api_key_env": None,
            },
        },
        "default_provider": "openai",
        "storage": {
            "bucket": "files",
            "public_base_url": "http://localhost:8000/files",
            "signed_url_ttl_s": 3600,
        },
        "generation": {},
        "evaluation": {},
        "paths": {
            "db_path": "db/examdesk.db",
            "storage_dir": "data/storage",
            "config_dir": "data/config",
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    providers = {}
    for name, pconfig in (data.get("providers") or defaults["providers"]).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            api_key_env=pconfig.get("api_key_env"),
        )

    storage_data = data.get("storage", {})
    storage = StorageConfig(
        bucket=storage_data.get("bucket", "files"),
        public_base_url=storage_data.get(
            "public_base_url", "http://localhost:8000/files"
        ).rstrip("/"),
        signed_url_ttl_s=int(storage_data.get("signed_url_ttl_s", 3600)),
    )

    gen_data = data.get("generation", {})
    generation = GenerationConfig(
        model=gen_data.get("model", "gpt-4o-mini"),
        temperature=float(gen_data.get("temperature", 0.7)),
        question_count=int(gen_data.get("question_count", 20)),
        max_content_chars=int(gen_data.get("max_content_chars", 8000)),
    )

    eval_data = data.get("evaluation", {})
    evaluation = EvaluationConfig(
        max_retries=int(eval_data.get("max_retries", 2)),
        base_retry_delay_s=float(eval_data.get("base_retry_delay_s", 5.0)),
        evaluation_model=eval_data.get("evaluation_model", "gpt-4o"),
        ocr_model=eval_data.get("ocr_model", "gpt-4o"),
        evaluation_temperature=float(eval_data.get("evaluation_temperature", 0.2)),
        ocr_temperature=float(eval_data.get("ocr_temperature", 0.3)),
    )

    paths = {**defaults["paths"], **data.get("paths", {})}

    return AppConfig(
        providers=providers,
        default_provider=data.get("default_provider", "openai"),
        storage=storage,
        generation=generation,
        evaluation=evaluation,
        paths=paths,
    )


def _config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else CONFIG_FILE


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    config_path = _config_path()
    if config_path.exists():
        logger.debug("loading_app_config", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Get configuration for a specific provider.

    Args:
        provider: Provider name (e.g., "openai", "lmstudio")

    Returns:
        ProviderConfig or None if provider not found.
    """
    config = load_app_config()
    return config.providers.get(provider)


def get_signing_secret() -> str:
    """Secret used to sign storage URLs.

    Falls back to a random per-process secret when EXAMDESK_SECRET is unset,
    so signed URLs do not survive a restart in that case.
    """
    global _process_secret

    secret = os.environ.get(SECRET_ENV_VAR)
    if secret:
        return secret
    if _process_secret is None:
        _process_secret = secrets.token_hex(32)
        logger.warning("signing_secret_generated", env_var=SECRET_ENV_VAR)
    return _process_secret


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
