"""
Configuration management for influxline.
"""

import os
import yaml
import json
from typing import Optional, Dict, Any
import logging

# Initialize logger
LOG = logging.getLogger(__name__)

# Line protocol timestamps are always sent in nanoseconds
INFLUXDB_WRITE_PRECISION = "ns"

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def parse_bool(value: Any) -> bool:
    """Interpret config and environment values such as 'yes', '0' or True."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


class Settings:
    """
    Configuration settings for influxline writers.
    Supports loading from YAML or JSON files, then environment variables.
    """

    def __init__(self, config_file: Optional[str] = None, from_env: bool = True):
        """
        Initialize settings from a config file or environment variables.

        Args:
            config_file: Path to YAML or JSON configuration file
            from_env: Whether to load settings from environment variables
        """
        # Default values
        self.output_format: str = 'influxdb'
        self.write_mode: str = 'bulk'
        self.exclude_empty_fields: bool = False
        self.influxdb_url: Optional[str] = None
        self.influxdb_database: Optional[str] = None
        self.influxdb_retention_policy: Optional[str] = None
        self.influxdb_username: Optional[str] = None
        self.influxdb_password: Optional[str] = None
        self.tls_ca: Optional[str] = None
        self.verify_tls: bool = True
        self.timeout: float = 30.0
        self.gzip: bool = False
        self.output_file: Optional[str] = None

        # Load configuration in order of precedence
        if config_file:
            self._load_from_file(config_file)

        if from_env:
            self._load_from_env()

    def _apply(self, config: Dict[str, Any]) -> None:
        for key in ('output_format', 'write_mode', 'influxdb_url', 'influxdb_database',
                    'influxdb_retention_policy', 'influxdb_username', 'influxdb_password',
                    'tls_ca', 'output_file'):
            if config.get(key) is not None:
                setattr(self, key, config[key])

        for key in ('exclude_empty_fields', 'verify_tls', 'gzip'):
            if config.get(key) is not None:
                setattr(self, key, parse_bool(config[key]))

        if config.get('timeout') is not None:
            self.timeout = float(config['timeout'])

    def _load_from_file(self, config_file: str) -> None:
        """Load settings from a YAML or JSON file."""
        if not os.path.exists(config_file):
            LOG.warning(f"Config file not found: {config_file}")
            return

        with open(config_file, 'r', encoding='utf-8') as f:
            if config_file.lower().endswith('.yaml') or config_file.lower().endswith('.yml'):
                config = yaml.safe_load(f)
            elif config_file.lower().endswith('.json'):
                config = json.load(f)
            else:
                LOG.warning(f"Unsupported config file format: {config_file}")
                return

        if not isinstance(config, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping")

        # Settings may sit under an 'influxdb' section or at the top level
        section = config.get('influxdb')
        self._apply(section if isinstance(section, dict) else config)
        LOG.info(f"Loaded configuration from {config_file}")

    def _load_from_env(self) -> None:
        """Load settings from environment variables."""
        self.output_format = os.getenv('INFLUXLINE_OUTPUT', self.output_format)
        self.write_mode = os.getenv('INFLUXLINE_WRITE_MODE', self.write_mode)
        self.output_file = os.getenv('INFLUXLINE_OUTPUT_FILE', self.output_file)

        # InfluxDB Configuration
        self.influxdb_url = os.getenv('INFLUXDB_URL', self.influxdb_url)
        self.influxdb_database = os.getenv('INFLUXDB_DATABASE', self.influxdb_database)
        self.influxdb_retention_policy = os.getenv('INFLUXDB_RETENTION_POLICY', self.influxdb_retention_policy)
        self.influxdb_username = os.getenv('INFLUXDB_USERNAME', self.influxdb_username)
        self.influxdb_password = os.getenv('INFLUXDB_PASSWORD', self.influxdb_password)

        # TLS Configuration
        self.tls_ca = os.getenv('TLS_CA', self.tls_ca)

        if os.getenv('INFLUXLINE_EXCLUDE_EMPTY_FIELDS'):
            self.exclude_empty_fields = parse_bool(os.getenv('INFLUXLINE_EXCLUDE_EMPTY_FIELDS'))
        if os.getenv('INFLUXLINE_VERIFY_TLS'):
            self.verify_tls = parse_bool(os.getenv('INFLUXLINE_VERIFY_TLS'))
        if os.getenv('INFLUXLINE_GZIP'):
            self.gzip = parse_bool(os.getenv('INFLUXLINE_GZIP'))
        if os.getenv('INFLUXLINE_TIMEOUT'):
            self.timeout = float(os.getenv('INFLUXLINE_TIMEOUT'))

    def to_dict(self) -> Dict[str, Any]:
        """Settings as a dictionary with the password masked."""
        data = dict(vars(self))
        if data.get('influxdb_password'):
            data['influxdb_password'] = '***'
        return data
