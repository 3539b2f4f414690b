"""
Writer factory for influxline.
"""

import logging
from typing import Optional

from ..protocol.encoder import PointEncoder
from .base import Writer
from .influxdb_writer import InfluxDBWriter
from .multi_writer import MultiWriter
from .text_writer import TextWriter

# Initialize logger
LOG = logging.getLogger(__name__)


class WriterFactory:
    """
    Factory for creating writer instances based on configuration.
    """

    @staticmethod
    def create_writer_from_config(writer_config, encoder: Optional[PointEncoder] = None) -> Writer:
        """
        Create a writer based on WriterConfig object.

        Args:
            writer_config: WriterConfig instance with writer settings
            encoder: Optional shared encoder, e.g. one with an issue callback

        Returns:
            Appropriate Writer instance
        """
        output_choice = writer_config.output_format
        config = writer_config.to_dict()

        if output_choice == 'influxdb':
            LOG.info(f"Creating InfluxDB writer from WriterConfig with URL: {writer_config.influxdb_url}, "
                     f"database: {writer_config.influxdb_database}")
            return InfluxDBWriter(config, encoder=encoder)

        elif output_choice == 'text':
            LOG.info("Creating text writer from WriterConfig")
            return TextWriter(config, encoder=encoder)

        elif output_choice == 'both':
            LOG.info(f"Creating InfluxDB writer for MultiWriter with URL: {writer_config.influxdb_url}, "
                     f"database: {writer_config.influxdb_database}")
            writers = [InfluxDBWriter(config, encoder=encoder), TextWriter(config, encoder=encoder)]
            LOG.info("Added InfluxDB and text writers to MultiWriter")
            return MultiWriter(writers, encoder=encoder,
                               write_mode=writer_config.write_mode,
                               exclude_empty_fields=writer_config.exclude_empty_fields)

        else:
            LOG.error(f"Unknown output format: {output_choice}")
            raise ValueError(f"Unsupported output format: {output_choice}")
