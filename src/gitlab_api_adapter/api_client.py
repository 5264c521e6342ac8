"""
ApiClient module providing a connection-bound facade over RequestExecutor
"""

from pathlib import Path
from typing import Any, Dict, Optional

from .config_loader import ConfigLoader, AdapterConfig
from .connection_resolver import Connection, ConnectionResolver
from .exceptions import ConfigurationError
from .http_client import HTTPClient
from .pagination_strategy import PaginationEngine, PaginationFactory, DEFAULT_PER_PAGE
from .rate_limit_guard import RateLimitGuard, APPROACHING_THRESHOLD, EXHAUSTED_REMAINING, COOLDOWN_SECONDS
from .request_executor import RequestExecutor
from .response_log import ResponseLogger, RequestDataLogPolicy, setup_logging
from .response_normalizer import ResponseEnvelope


class ApiClient:
    """
    GitLab API client bound to a single connection

    The connection is resolved once when the client is created, so a
    misconfigured connection fails before any request is made.

    Example:
        with ApiClient(connection_key='saas', config_path=Path('gitlab.toml')) as gitlab:
            projects = gitlab.get('/groups/123/projects', {'archived': False})
            if projects.status.successful:
                ...
    """

    def __init__(self, connection_key: Optional[str] = None, config_path: Optional[Path] = None,
                 url: Optional[str] = None, token: Optional[str] = None,
                 exceptions_enabled: Optional[bool] = None,
                 executor: Optional[RequestExecutor] = None):
        """
        Args:
            connection_key: Connection name from the configuration file
            config_path: TOML configuration file; environment variables are used when omitted
            url: Explicit base URL, overrides the configuration
            token: Explicit access token, overrides the configuration
            exceptions_enabled: Override for the connection's exceptions setting
            executor: Pre-built executor, mainly for tests
        """
        self.config: Optional[AdapterConfig] = None
        if config_path is not None:
            self.config = ConfigLoader.load_toml_config(config_path)
            self._configure_logging(config_path)
        elif connection_key is not None:
            raise ConfigurationError(
                f"The GitLab connection key ({connection_key}) requires a configuration file"
            )

        resolver = ConnectionResolver(default_source=self._default_source(connection_key))
        self.executor = executor or self._build_executor(resolver)
        self.connection: Connection = resolver.resolve(
            url=url, token=token, exceptions_enabled=exceptions_enabled
        )

    def _configure_logging(self, config_path: Path) -> None:
        """Apply the [logging] level and log file, relative to the configuration file"""
        logging_config = self.config.logging
        if 'level' not in logging_config and 'log_file_name' not in logging_config:
            return

        log_file = None
        if logging_config.get('log_file_name'):
            log_file = config_path.parent / logging_config['log_file_name']

        setup_logging(logging_config.get('level', 'INFO'), log_file)

    def _default_source(self, connection_key: Optional[str]):
        if self.config is None:
            return ConfigLoader.from_environment
        config = self.config
        return lambda: ConfigLoader.get_connection_settings(config, connection_key)

    def _build_executor(self, resolver: ConnectionResolver) -> RequestExecutor:
        rate_limits: Dict[str, Any] = self.config.rate_limits if self.config else {}
        logging_config: Dict[str, Any] = (
            self.config.logging if self.config else ConfigLoader.logging_from_environment()
        )

        return RequestExecutor(
            http_client=HTTPClient(),
            connection_resolver=resolver,
            rate_limit_guard=RateLimitGuard(
                approaching_threshold=rate_limits.get('approaching_threshold', APPROACHING_THRESHOLD),
                exhausted_remaining=rate_limits.get('exhausted_remaining', EXHAUSTED_REMAINING),
                cooldown_seconds=rate_limits.get('cooldown_seconds', COOLDOWN_SECONDS)
            ),
            pagination_engine=PaginationEngine(
                PaginationFactory.create_strategy(self.config.pagination if self.config else None)
            ),
            response_logger=ResponseLogger(
                request_data_policy=RequestDataLogPolicy.from_config(logging_config)
            )
        )

    def get(self, uri: str, query: Optional[Dict[str, Any]] = None,
            per_page: int = DEFAULT_PER_PAGE) -> ResponseEnvelope:
        return self.executor.get(uri, query, self.connection, per_page)

    def post(self, uri: str, body: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        return self.executor.post(uri, body, self.connection)

    def put(self, uri: str, body: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        return self.executor.put(uri, body, self.connection)

    def delete(self, uri: str, body: Optional[Dict[str, Any]] = None) -> ResponseEnvelope:
        return self.executor.delete(uri, body, self.connection)

    def close(self) -> None:
        self.executor.close()

    def __enter__(self) -> 'ApiClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
