"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML
configuration file (~/.hustleai/config.yaml). `ClientSettings` gathers the
typed values the client and health monitor are built from.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".hustleai"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_STATE_DIR = DEFAULT_CONFIG_DIR / "state"
ENV_FILE_NAME = ".env"
DEFAULT_BASE_URL = "http://localhost:5000/api"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_runtime_config: Dict[str, Any] = {}  # set_config, e.g. from command-line flags
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML sections into dotted keys ('health.interval_s')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file (~/.hustleai/config.yaml if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}
    config_file = config_file or DEFAULT_CONFIG_FILE

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False keeps real environment variables on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded and runtime values so the next `load_configuration` reads again."""
    global _config, _loaded
    _config = {}
    _runtime_config.clear()
    _loaded = False


def _coerce(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Values set at runtime with set_config
    3. Environment variable ('health.interval_s' -> HEALTH_INTERVAL_S)
    4. YAML config
    5. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    if key in _runtime_config:
        return _runtime_config[key]

    env_key = key.upper().replace(".", "_")
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def set_config(key: str, value: Any) -> None:
    """Sets a configuration value for the rest of the process.

    Args:
        key: Configuration key (e.g., 'logging.level')
        value: Value to set
    """
    logger.debug(f"Setting config: {key} = {value}")
    _runtime_config[key] = value


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# --- Typed settings ---

@dataclass
class ClientSettings:
    """Everything needed to build a client and a health monitor."""
    base_url: str = DEFAULT_BASE_URL
    request_timeout_s: float = 8.0
    min_interval_s: float = 1.0
    cache_ttl_s: float = 30.0
    cache_max_items: int = 50
    debounce_s: float = 0.5
    max_retries: int = 3
    health_interval_s: float = 300.0
    check_timeout_s: float = 5.0
    degraded_threshold_ms: float = 3000.0
    state_dir: Path = field(default_factory=lambda: DEFAULT_STATE_DIR)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def load(cls) -> "ClientSettings":
        """Builds settings from the layered configuration, falling back to defaults."""
        load_configuration()
        defaults = cls()
        settings = cls(
            base_url=str(get_config("hustleai.base_url", defaults.base_url)),
            request_timeout_s=float(get_config("hustleai.request_timeout_s", defaults.request_timeout_s)),
            min_interval_s=float(get_config("hustleai.min_interval_s", defaults.min_interval_s)),
            cache_ttl_s=float(get_config("cache.ttl_s", defaults.cache_ttl_s)),
            cache_max_items=int(get_config("cache.max_items", defaults.cache_max_items)),
            debounce_s=float(get_config("translation.debounce_s", defaults.debounce_s)),
            max_retries=int(get_config("translation.max_retries", defaults.max_retries)),
            health_interval_s=float(get_config("health.interval_s", defaults.health_interval_s)),
            check_timeout_s=float(get_config("health.check_timeout_s", defaults.check_timeout_s)),
            degraded_threshold_ms=float(get_config("health.degraded_threshold_ms", defaults.degraded_threshold_ms)),
            state_dir=Path(str(get_config("hustleai.state_dir", defaults.state_dir))).expanduser(),
            log_level=str(get_config("logging.level", defaults.log_level)).upper(),
            log_file=get_config("logging.file", defaults.log_file),
        )
        if settings.min_interval_s < 0 or settings.request_timeout_s <= 0:
            raise ValueError("min_interval_s must be >= 0 and request_timeout_s > 0")
        return settings
