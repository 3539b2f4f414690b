"""Writer configuration.

Holds everything needed to build the output writers: the InfluxDB endpoint,
credentials, TLS, delivery mode and empty field policy.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

OUTPUT_FORMATS = ['influxdb', 'text', 'both']
WRITE_MODES = ['bulk', 'per_point']


@dataclass
class WriterConfig:
    """Configuration specific to output writers."""

    # General output configuration
    output_format: str = 'influxdb'  # 'influxdb', 'text', 'both'
    write_mode: str = 'bulk'  # 'bulk' or 'per_point'
    exclude_empty_fields: bool = False

    # InfluxDB-specific configuration (only required if InfluxDB output is enabled)
    influxdb_url: Optional[str] = None
    influxdb_database: Optional[str] = None
    influxdb_retention_policy: Optional[str] = None
    influxdb_username: Optional[str] = None
    influxdb_password: Optional[str] = None

    # Transport
    tls_ca: Optional[str] = None
    verify_tls: bool = True
    timeout: float = 30.0
    gzip: bool = False

    # Text output (only used if text output is enabled)
    output_file: Optional[str] = None

    def __post_init__(self):
        """Validate writer configuration after initialization."""
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}")

        self.write_mode = str(self.write_mode).lower()
        if self.write_mode not in WRITE_MODES:
            raise ValueError(f"write_mode must be one of {WRITE_MODES}")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

        # InfluxDB validation - ensure required fields are present if InfluxDB output is enabled
        if self.output_format in ['influxdb', 'both']:
            for name in ['influxdb_url', 'influxdb_database']:
                if not getattr(self, name):
                    raise ValueError(f"{name} required for InfluxDB output (output_format={self.output_format})")

        if self.influxdb_password and not self.influxdb_username:
            raise ValueError("influxdb_password given without influxdb_username")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for writer initialization."""
        config: Dict[str, Any] = {
            'output_format': self.output_format,
            'write_mode': self.write_mode,
            'exclude_empty_fields': self.exclude_empty_fields,
        }

        # Only include InfluxDB config if InfluxDB output is enabled
        if self.output_format in ['influxdb', 'both']:
            config.update({
                'influxdb_url': self.influxdb_url,
                'influxdb_database': self.influxdb_database,
                'influxdb_retention_policy': self.influxdb_retention_policy,
                'influxdb_username': self.influxdb_username,
                'influxdb_password': self.influxdb_password,
                'tls_ca': self.tls_ca,
                'verify_tls': self.verify_tls,
                'timeout': self.timeout,
                'gzip': self.gzip,
            })

        # Only include text config if text output is enabled
        if self.output_format in ['text', 'both']:
            config['output_file'] = self.output_file

        return config

    @classmethod
    def from_settings(cls, settings, output_format: Optional[str] = None) -> 'WriterConfig':
        """Create WriterConfig from a loaded Settings instance.

        Args:
            settings: influxline.config.Settings instance
            output_format: Override the output format from settings

        Returns:
            WriterConfig with writer-relevant settings
        """
        return cls(
            output_format=output_format or settings.output_format,
            write_mode=settings.write_mode,
            exclude_empty_fields=settings.exclude_empty_fields,
            influxdb_url=settings.influxdb_url,
            influxdb_database=settings.influxdb_database,
            influxdb_retention_policy=settings.influxdb_retention_policy,
            influxdb_username=settings.influxdb_username,
            influxdb_password=settings.influxdb_password,
            tls_ca=settings.tls_ca,
            verify_tls=settings.verify_tls,
            timeout=settings.timeout,
            gzip=settings.gzip,
            output_file=settings.output_file,
        )

    @classmethod
    def from_env(cls) -> 'WriterConfig':
        """Create WriterConfig from environment variables only."""
        from ..config import Settings
        return cls.from_settings(Settings(from_env=True))
