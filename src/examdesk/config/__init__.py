"""Configuration package for examdesk."""

from examdesk.config.app_config import (
    AppConfig,
    EvaluationConfig,
    GenerationConfig,
    ProviderConfig,
    StorageConfig,
    clear_config_cache,
    get_provider_config,
    get_signing_secret,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "EvaluationConfig",
    "GenerationConfig",
    "ProviderConfig",
    "StorageConfig",
    "clear_config_cache",
    "get_provider_config",
    "get_signing_secret",
    "load_app_config",
]
