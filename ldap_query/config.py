"""
Configuration loading for ldap_query.

Settings are read from a YAML file, the bind password and base DN may be
supplied through environment variables, and defaults are filled in once the
file has been validated.
"""

import os
import logging
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
ROTATIONS = ('daily', 'midnight', 'none')


class ConfigurationError(Exception):
    """Raised when the configuration file is missing, unreadable or invalid."""
    pass


class ConfigLoader:
    """Loads and validates the directory configuration."""

    # Environment variables that override file values, as (section, key)
    ENV_OVERRIDES = {
        'LDAP_BIND_PASSWORD': ('ldap', 'bind_password'),
        'LDAP_BASE_DN': ('ldap', 'base_dn'),
    }

    REQUIRED_LDAP_FIELDS = ['server_url', 'bind_dn', 'bind_password']

    DEFAULTS = {
        'ldap': {
            'base_dn': '',
            'verify_ssl': True,
            'start_tls': False,
            'connection_timeout': 10,
            'receive_timeout': 10,
            'page_size': 1000,
            'recursive_groups': True,
        },
        'logging': {
            'level': 'INFO',
            'log_dir': 'logs',
            'rotation': 'daily',
            'retention_days': 7,
            'console_output': True,
            'console_level': 'WARNING',
        },
        'error_handling': {
            'max_retries': 3,
            'retry_wait_seconds': 5,
        },
    }

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to the YAML file. Defaults to $CONFIG_PATH, then 'config.yaml'
        """
        self.config_path = config_path or os.getenv('CONFIG_PATH', 'config.yaml')
        self.config: Dict[str, Any] = {}

    def load(self) -> Dict[str, Any]:
        """
        Read, override, validate and complete the configuration.

        Returns:
            Configuration dictionary with every section present

        Raises:
            ConfigurationError: If the file is missing, is not a YAML mapping or fails validation
        """
        self.config = self._read_file()

        for env_var, (section, key) in self.ENV_OVERRIDES.items():
            env_value = os.getenv(env_var)
            if env_value:
                self.config.setdefault(section, {})[key] = env_value
                logger.debug(f"Using {env_var} for {section}.{key}")

        errors = self._validate()
        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            )

        for section, defaults in self.DEFAULTS.items():
            values = self.config.setdefault(section, {})
            for key, value in defaults.items():
                values.setdefault(key, value)

        logger.info(f"Configuration loaded from {self.config_path}")
        return self.config

    def _read_file(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")
        return data

    def _validate(self) -> List[str]:
        """Collect every problem so they can be reported together."""
        errors = []

        ldap_config = self.config.get('ldap')
        if not isinstance(ldap_config, dict):
            errors.append("Missing required section: ldap")
            ldap_config = {}

        for field in self.REQUIRED_LDAP_FIELDS:
            if not ldap_config.get(field):
                errors.append(f"Missing required LDAP field: {field}")

        server_url = str(ldap_config.get('server_url') or '')
        if server_url and not server_url.lower().startswith(('ldap://', 'ldaps://')):
            errors.append(f"LDAP server_url must start with ldap:// or ldaps://: {server_url}")

        for key in ('page_size', 'connection_timeout', 'receive_timeout'):
            value = ldap_config.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value <= 0):
                errors.append(f"LDAP {key} must be a positive integer: {value}")

        logging_config = self.config.get('logging') or {}
        for key in ('level', 'console_level'):
            level = logging_config.get(key)
            if level is not None and str(level).upper() not in LOG_LEVELS:
                errors.append(f"Logging {key} must be one of {', '.join(LOG_LEVELS)}: {level}")

        rotation = logging_config.get('rotation')
        if rotation is not None and str(rotation).lower() not in ROTATIONS:
            errors.append(f"Logging rotation must be one of {', '.join(ROTATIONS)}: {rotation}")

        return errors


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration with ConfigLoader.

    Args:
        config_path: Path to the YAML file

    Returns:
        Loaded configuration dictionary
    """
    return ConfigLoader(config_path).load()
