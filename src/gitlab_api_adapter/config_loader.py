"""
ConfigLoader module for loading and validating GitLab connection configuration
"""

import os
import tomllib
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from .exceptions import ConfigurationError, EnvironmentError


# Fallback connection key used when settings come from environment variables
ENVIRONMENT_CONNECTION_KEY = 'environment'

TRUTHY_VALUES = {'1', 'true', 'yes', 'on'}

REQUEST_DATA_METHODS = ('get', 'post', 'put', 'delete')


@dataclass
class ConnectionSettings:
    """Unvalidated settings for a single GitLab instance or access token"""
    key: str
    base_url: Optional[str]
    access_token: Optional[str]
    exceptions: bool = False
    api_version: int = 4


@dataclass
class AdapterConfig:
    """Configuration data class for the GitLab API adapter from TOML file"""
    default_connection: str
    connections: Dict[str, Dict[str, Any]]
    logging: Dict[str, Any] = field(default_factory=dict)
    rate_limits: Dict[str, Any] = field(default_factory=dict)
    pagination: Dict[str, Any] = field(default_factory=dict)


class ConfigLoader:
    """Loads and validates TOML configuration files"""

    # Required configuration sections and their mandatory keys
    REQUIRED_SECTIONS = {
        'auth': ['default_connection'],
        'connections': []
    }

    # Keys every entry under [connections.<key>] must define
    REQUIRED_CONNECTION_KEYS = ['base_url']

    @staticmethod
    def load_toml_config(config_path: Path) -> AdapterConfig:
        """
        Load adapter configuration from TOML file

        Args:
            config_path: Path to the TOML configuration file

        Returns:
            AdapterConfig object with all configuration data

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the file is not valid TOML or required configuration is missing
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'rb') as f:
                config_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML syntax in {config_path}: {e}") from e

        ConfigLoader._validate_required_sections(config_data)

        return AdapterConfig(
            default_connection=config_data['auth']['default_connection'],
            connections=config_data['connections'],
            logging=config_data.get('logging', {}),
            rate_limits=config_data.get('rate_limits', {}),
            pagination=config_data.get('pagination', {})
        )

    @staticmethod
    def _validate_required_sections(config_data: Dict[str, Any]) -> None:
        """
        Validate that all required configuration sections and keys are present

        Args:
            config_data: Parsed TOML configuration data

        Raises:
            ConfigurationError: If any required section or key is missing
        """
        missing_items: List[str] = []

        for section_name, required_keys in ConfigLoader.REQUIRED_SECTIONS.items():
            if section_name not in config_data:
                missing_items.append(f"Section [{section_name}]")
            else:
                section_data = config_data[section_name]
                for key in required_keys:
                    if key not in section_data:
                        missing_items.append(f"Key '{key}' in section [{section_name}]")

        for connection_key, connection_data in config_data.get('connections', {}).items():
            for key in ConfigLoader.REQUIRED_CONNECTION_KEYS:
                if key not in connection_data:
                    missing_items.append(f"Key '{key}' in section [connections.{connection_key}]")

        if missing_items:
            raise ConfigurationError(
                f"Missing required configuration items: {', '.join(missing_items)}"
            )

    @staticmethod
    def get_connection_settings(config: AdapterConfig,
                                connection_key: Optional[str] = None) -> ConnectionSettings:
        """
        Look up the settings for a named connection

        The access token is read from the environment variable named by
        `access_token_env`, or taken from `access_token` if set inline.

        Args:
            config: Loaded adapter configuration
            connection_key: Connection name, or None for the default connection

        Returns:
            ConnectionSettings for the requested connection

        Raises:
            ConfigurationError: If the connection key is not defined
            EnvironmentError: If `access_token_env` names an unset variable and no inline token exists
        """
        key = connection_key or config.default_connection

        if key not in config.connections:
            raise ConfigurationError(
                f"The GitLab connection key ({key}) is not defined in the configuration. "
                f"Without this configuration, there is no API base URL or API token to connect with."
            )

        connection_data = config.connections[key]

        access_token = connection_data.get('access_token')
        token_env = connection_data.get('access_token_env')
        if token_env and access_token is None:
            access_token = ConfigLoader.get_environment_value(token_env)
        elif token_env:
            access_token = os.getenv(token_env, access_token)

        return ConnectionSettings(
            key=key,
            base_url=connection_data.get('base_url'),
            access_token=access_token,
            exceptions=bool(connection_data.get('exceptions', False)),
            api_version=int(connection_data.get('api_version', 4))
        )

    @staticmethod
    def from_environment() -> ConnectionSettings:
        """
        Build connection settings from GITLAB_API_* environment variables

        Returns:
            ConnectionSettings; url and token may be None if unset
        """
        exceptions_value = os.getenv('GITLAB_API_EXCEPTIONS', 'false')

        try:
            api_version = int(os.getenv('GITLAB_API_VERSION', '4'))
        except ValueError as e:
            raise ConfigurationError(f"GITLAB_API_VERSION must be an integer: {e}") from e

        return ConnectionSettings(
            key=ENVIRONMENT_CONNECTION_KEY,
            base_url=os.getenv('GITLAB_API_URL'),
            access_token=os.getenv('GITLAB_API_TOKEN'),
            exceptions=exceptions_value.strip().lower() in TRUTHY_VALUES,
            api_version=api_version
        )

    @staticmethod
    def logging_from_environment() -> Dict[str, Any]:
        """
        Build a [logging] section from GITLAB_API_LOG_REQUEST_DATA_<METHOD>_ENABLED variables

        Returns:
            Logging configuration with a request_data entry for each variable that is set
        """
        request_data: Dict[str, Dict[str, Any]] = {}
        for method in REQUEST_DATA_METHODS:
            value = os.getenv(f"GITLAB_API_LOG_REQUEST_DATA_{method.upper()}_ENABLED")
            if value is not None:
                request_data[method] = {'enabled': value.strip().lower() in TRUTHY_VALUES}

        return {'request_data': request_data} if request_data else {}

    @staticmethod
    def get_environment_value(env_var_name: str) -> str:
        """
        Get environment variable value with proper error handling

        Args:
            env_var_name: Name of the environment variable

        Returns:
            Value of the environment variable

        Raises:
            EnvironmentError: If environment variable is not set
        """
        value = os.getenv(env_var_name)
        if value is None:
            raise EnvironmentError(f"Environment variable '{env_var_name}' is not set")
        return value
