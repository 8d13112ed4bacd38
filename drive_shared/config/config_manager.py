"""
Configuration Manager for the Drive stream backend.

Loads environment files and process environment once at start-up and exposes an
immutable settings snapshot to the streaming proxy and the folder client.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


class ConfigManager:
    """
    Central configuration for the Drive stream backend.

    Provides:
    - Environment file loading with precedence
    - Typed, validated settings read once at construction
    - Upstream credential lookup
    """

    DEFAULT_DRIVE_API_BASE_URL = "https://www.googleapis.com/drive/v3/files"

    # setting name -> (env var, default)
    SETTINGS = {
        'api_key': ('GOOGLE_DRIVE_API_KEY', None),
        'drive_api_base_url': ('DRIVE_API_BASE_URL', DEFAULT_DRIVE_API_BASE_URL),
        'upstream_timeout': ('UPSTREAM_TIMEOUT', '20.0'),
        'upstream_connect_timeout': ('UPSTREAM_CONNECT_TIMEOUT', '10.0'),
        'stream_chunk_size': ('STREAM_CHUNK_SIZE', '65536'),
        'cache_max_age': ('CACHE_MAX_AGE', '3600'),
        'allowed_origin': ('ALLOWED_CORS', '*'),
        'upstream_referer': ('UPSTREAM_REFERER', None),
        'default_folder_id': ('GOOGLE_DRIVE_FOLDER_ID', None),
        'log_level': ('LOG_LEVEL', 'INFO'),
        'api_port': ('API_PORT', '8000'),
    }

    LOG_LEVELS = {'CRITICAL', 'ERROR', 'WARNING', 'INFO', 'DEBUG'}

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize ConfigManager.

        Args:
            config_dir: Directory containing environment files (defaults to cwd)
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()

        self._env_vars: Dict[str, str] = {}
        self._settings: Dict[str, Any] = {}

        self._load_env_files()
        self._load_settings()

    def _load_env_files(self):
        """Load environment files with precedence: .env.prod > .env.staging > .env.dev > .env"""
        env = os.getenv('ENV', 'dev')

        env_files = ['.env']
        if env in ['dev', 'staging', 'prod']:
            env_files.append('.env.dev')
        if env in ['staging', 'prod']:
            env_files.append('.env.staging')
        if env == 'prod':
            env_files.append('.env.prod')

        for env_file in env_files:
            env_path = self.config_dir / env_file
            if env_path.exists():
                self._load_env_file(env_path)

    def _load_env_file(self, env_path: Path):
        """Load a single environment file into our internal env_vars dict."""
        try:
            with open(env_path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        self._env_vars[key.strip()] = value.strip().strip('"').strip("'")
        except OSError as e:
            logging.getLogger(__name__).warning(f"Could not read env file {env_path}: {e}")

    def _lookup(self, env_var: str, default: Optional[str]) -> Optional[str]:
        # os.environ wins over file-loaded values
        value = os.getenv(env_var) or self._env_vars.get(env_var)
        return value if value else default

    def _load_settings(self):
        """Read every setting once and validate the typed ones."""
        raw = {
            name: self._lookup(env_var, default)
            for name, (env_var, default) in self.SETTINGS.items()
        }

        base_url = raw['drive_api_base_url'].rstrip('/')
        if not base_url.startswith(('http://', 'https://')):
            raise ConfigValidationError(
                f"Invalid DRIVE_API_BASE_URL: '{base_url}' - must be an http(s) URL"
            )

        log_level = raw['log_level'].upper()
        if log_level not in self.LOG_LEVELS:
            raise ConfigValidationError(
                f"Invalid LOG_LEVEL: '{raw['log_level']}' - must be one of {', '.join(sorted(self.LOG_LEVELS))}"
            )

        allowed_origin = raw['allowed_origin'].strip()
        if not allowed_origin:
            raise ConfigValidationError("ALLOWED_CORS must not be empty")

        api_port = self._parse_int(raw['api_port'], 'API_PORT', minimum=1)
        if api_port > 65535:
            raise ConfigValidationError(
                f"Invalid API_PORT: '{raw['api_port']}' - port must be between 1 and 65535"
            )

        self._settings = {
            'api_key': raw['api_key'],
            'drive_api_base_url': base_url,
            'upstream_timeout': self._parse_positive_float(raw['upstream_timeout'], 'UPSTREAM_TIMEOUT'),
            'upstream_connect_timeout': self._parse_positive_float(
                raw['upstream_connect_timeout'], 'UPSTREAM_CONNECT_TIMEOUT'
            ),
            'stream_chunk_size': self._parse_int(raw['stream_chunk_size'], 'STREAM_CHUNK_SIZE', minimum=1),
            'cache_max_age': self._parse_int(raw['cache_max_age'], 'CACHE_MAX_AGE', minimum=0),
            'allowed_origin': allowed_origin,
            'upstream_referer': raw['upstream_referer'],
            'default_folder_id': raw['default_folder_id'],
            'log_level': log_level,
            'api_port': api_port,
        }

    @staticmethod
    def _parse_positive_float(value: str, env_var: str) -> float:
        try:
            parsed = float(value)
        except ValueError:
            raise ConfigValidationError(f"Invalid {env_var}: '{value}' - must be a number of seconds")
        if parsed <= 0:
            raise ConfigValidationError(f"Invalid {env_var}: '{value}' - must be greater than zero")
        return parsed

    @staticmethod
    def _parse_int(value: str, env_var: str, minimum: int) -> int:
        try:
            parsed = int(value)
        except ValueError:
            raise ConfigValidationError(f"Invalid {env_var}: '{value}' - must be an integer")
        if parsed < minimum:
            raise ConfigValidationError(f"Invalid {env_var}: '{value}' - must be at least {minimum}")
        return parsed

    def get_setting(self, key: str):
        """Get setting value by key."""
        return self._settings.get(key)

    def get_api_key(self) -> str:
        """Get the configured Google Drive API key."""
        api_key = self._settings['api_key']
        if not api_key:
            raise ConfigValidationError("GOOGLE_DRIVE_API_KEY is required but not configured")
        return api_key

    def get_default_folder_id(self) -> str:
        """Get the Drive folder listed by GET /tracks."""
        folder_id = self._settings['default_folder_id']
        if not folder_id:
            raise ConfigValidationError("GOOGLE_DRIVE_FOLDER_ID is required but not configured")
        return folder_id

    @property
    def api_key_configured(self) -> bool:
        return bool(self._settings['api_key'])

    @property
    def drive_api_base_url(self) -> str:
        return self._settings['drive_api_base_url']

    @property
    def upstream_timeout(self) -> float:
        """Deadline for the upstream response headers, in seconds."""
        return self._settings['upstream_timeout']

    @property
    def upstream_connect_timeout(self) -> float:
        return self._settings['upstream_connect_timeout']

    @property
    def stream_chunk_size(self) -> int:
        return self._settings['stream_chunk_size']

    @property
    def cache_max_age(self) -> int:
        return self._settings['cache_max_age']

    @property
    def allowed_origin(self) -> str:
        return self._settings['allowed_origin']

    @property
    def upstream_referer(self) -> Optional[str]:
        return self._settings['upstream_referer']

    @property
    def log_level(self) -> str:
        return self._settings['log_level']

    @property
    def api_port(self) -> int:
        return self._settings['api_port']

    @property
    def version(self) -> str:
        return os.getenv('DRIVE_STREAM_VERSION', '1.0.0')
