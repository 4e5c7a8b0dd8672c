"""Application configuration module for locsync."""
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from locsync.errors import ConfigError
from locsync.locale_catalog import DEFAULT_SUPPORTED_LOCALES
from locsync.logging_config import setup_logger

CONFIG_FILE_ENV_VAR = 'LOCSYNC_CONFIG_FILE'
DEFAULT_CONFIG_FILE = 'config.yaml'


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    config_dir: str
    resources_subdir: str
    override_config_path: str
    output_dir: str

    # Resource layout
    resource_extension: str
    supported_locales: List[str]

    # Processing settings
    dry_run: bool
    handoff_file_prefix: str

    # Translation service
    provider_settings: Dict[str, Any] = field(default_factory=dict)

    # Logging
    log_level: str = 'INFO'
    log_file_path: Optional[str] = None
    log_to_console: bool = True


def _resolve_config_path(config_path: Optional[str]) -> str:
    """Pick the config file: explicit argument, then LOCSYNC_CONFIG_FILE, then ./config.yaml."""
    config_file = config_path or os.environ.get(CONFIG_FILE_ENV_VAR, DEFAULT_CONFIG_FILE)
    # Ensure we have an absolute path for better error reporting
    return os.path.abspath(config_file)


def _load_dotenv_files(config_dir: str) -> Optional[str]:
    """Load a .env file from the working directory or the config directory; return the one loaded."""
    for candidate in (os.path.join(os.getcwd(), '.env'), os.path.join(config_dir, '.env')):
        if os.path.exists(candidate):
            load_dotenv(candidate)
            return candidate
    return None


def _load_yaml_config(config_file: str) -> Dict[str, Any]:
    """
    Load the YAML configuration file.

    A missing file yields an empty configuration (defaults apply). A file that
    cannot be read, is not valid YAML, or is not a mapping raises ConfigError.
    """
    if not os.path.exists(config_file):
        print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
              file=sys.stderr)
        print(f"Tip: Create a config.yaml file or set the {CONFIG_FILE_ENV_VAR} environment variable.",
              file=sys.stderr)
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file '{config_file}': {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read configuration file '{config_file}': {e}") from e

    if loaded_config is None:
        print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
              file=sys.stderr)
        return {}
    if not isinstance(loaded_config, dict):
        raise ConfigError(f"Configuration file '{config_file}' must contain a YAML dictionary.")
    return loaded_config


def _build_locale_list(locales_list: List[Any]) -> List[str]:
    """Accept either plain locale tags or ``{code: ..., name: ...}`` entries."""
    locales: List[str] = []
    for locale in locales_list:
        code = locale.get('code') if isinstance(locale, dict) else locale
        if not isinstance(code, str) or not code.strip():
            raise ConfigError(f"Invalid entry in supported_locales: {locale!r}")
        code = code.strip()
        if code not in locales:
            locales.append(code)
    if not locales:
        raise ConfigError("supported_locales must list at least the baseline locale.")
    return locales


def _setup_logger_from_config(app_config: AppConfig) -> logging.Logger:
    """Set up logger based on configuration."""
    return setup_logger(app_config.log_level, app_config.log_file_path, app_config.log_to_console)


def load_app_config(config_path: Optional[str] = None, verbose: bool = False) -> AppConfig:
    """
    Load application configuration from the YAML file and environment variables,
    and set up logging from it.

    Args:
        config_path: Explicit config file; defaults to LOCSYNC_CONFIG_FILE or ./config.yaml.
        verbose: Force DEBUG logging.

    Returns:
        AppConfig: The loaded application configuration.

    Raises:
        ConfigError: If the configuration is present but invalid.
    """
    config_file = _resolve_config_path(config_path)
    config_dir = os.path.dirname(config_file)

    dotenv_path = _load_dotenv_files(config_dir)
    config = _load_yaml_config(config_file)

    supported_locales = _build_locale_list(config.get('supported_locales') or DEFAULT_SUPPORTED_LOCALES)

    resource_extension = config.get('resource_extension', '.resx')
    if not resource_extension.startswith('.'):
        resource_extension = f".{resource_extension}"

    override_config_path = config.get('override_config_path', 'config.json')
    if not os.path.isabs(override_config_path):
        override_config_path = os.path.join(config_dir, override_config_path)

    provider_settings = config.get('provider') or {}
    if not isinstance(provider_settings, dict):
        raise ConfigError("The 'provider' section must be a mapping.")

    log_config = config.get('logging') or {}
    log_level = 'DEBUG' if verbose else str(log_config.get('log_level', 'INFO')).upper()

    app_config = AppConfig(
        config_dir=config_dir,
        resources_subdir=config.get('resources_subdir', '.'),
        override_config_path=override_config_path,
        output_dir=config.get('output_dir', '.'),
        resource_extension=resource_extension,
        supported_locales=supported_locales,
        dry_run=bool(config.get('dry_run', False)),
        handoff_file_prefix=config.get('handoff_file_prefix', 'StringResources'),
        provider_settings=provider_settings,
        log_level=log_level,
        log_file_path=log_config.get('log_file_path'),
        log_to_console=log_config.get('log_to_console', True)
    )

    logger = _setup_logger_from_config(app_config)
    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.debug("No .env file found. Relying on system environment variables if any.")

    return app_config
