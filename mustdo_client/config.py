"""Configuration management for the MustDo client."""

import os
import json
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_DIR = os.path.join(os.path.expanduser('~'), '.mustdo')
DEFAULTS: Dict[str, Any] = {
    'server_url': 'http://localhost:8000',
    'timeout': 10.0,
    'token_file': os.path.join(DEFAULT_DIR, 'session.json'),
}


class Config:
    """JSON-file backed settings: server URL, request timeout, token file."""

    def __init__(self, config_file: str = None):
        self.config_file = config_file or os.getenv('MUSTDO_CLIENT_CONFIG') or os.path.join(
            DEFAULT_DIR, 'config.json'
        )
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file; a missing or corrupt file means defaults."""
        self._config = {}
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    self._config = data
            except (OSError, ValueError):
                logger.warning('could not read client config %s; using defaults', self.config_file)

    def save(self) -> None:
        """Save configuration to file."""
        os.makedirs(os.path.dirname(os.path.abspath(self.config_file)), exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self._config, f, indent=2)

    def _get(self, key: str):
        return self._config.get(key, DEFAULTS[key])

    @property
    def server_url(self) -> str:
        return os.getenv('MUSTDO_SERVER_URL') or self._get('server_url')

    @server_url.setter
    def server_url(self, value: str):
        self._config['server_url'] = value.rstrip('/')
        self.save()

    @property
    def timeout(self) -> float:
        try:
            return float(self._get('timeout'))
        except (TypeError, ValueError):
            return DEFAULTS['timeout']

    @timeout.setter
    def timeout(self, value: float):
        self._config['timeout'] = float(value)
        self.save()

    @property
    def token_file(self) -> str:
        return self._get('token_file')

    @token_file.setter
    def token_file(self, value: str):
        self._config['token_file'] = value
        self.save()
