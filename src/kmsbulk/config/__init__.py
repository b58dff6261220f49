"""Configuration management for kmsbulk.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (KMSBULK_*)
3. Config file (~/.kmsbulk/config.toml)
4. Default values (lowest priority)
"""

from kmsbulk.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from kmsbulk.config.env import EnvReader
from kmsbulk.config.loader import (
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    load_config_file,
    require_valid_config,
    validate_config,
)
from kmsbulk.config.models import (
    AuthConfig,
    EncryptionConfig,
    HttpConfig,
    KeyConfig,
    KmsBulkConfig,
    LoggingConfig,
    ProcessingConfig,
    RetryConfig,
    StorageConfig,
)
from kmsbulk.config.templates import InitResult, render_config, run_init

__all__ = [
    # Models
    "AuthConfig",
    "EncryptionConfig",
    "HttpConfig",
    "KeyConfig",
    "KmsBulkConfig",
    "LoggingConfig",
    "ProcessingConfig",
    "RetryConfig",
    "StorageConfig",
    # Loader
    "clear_config_cache",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "load_config_file",
    "require_valid_config",
    "validate_config",
    # Layering
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "source_from_env",
    "source_from_file",
    # Init
    "InitResult",
    "render_config",
    "run_init",
]
