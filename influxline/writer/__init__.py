"""Writer module for influxline.

Provides writer implementations for different destinations.
"""

from .base import RequestOutcome, StatusCategory, WriteMode, WriteResult, Writer
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter
from .metrics import WriteMetrics
from .multi_writer import MultiWriter
from .text_writer import TextWriter

__all__ = ['Writer', 'WriterFactory', 'InfluxDBWriter', 'TextWriter', 'MultiWriter',
           'WriteMode', 'WriteResult', 'RequestOutcome', 'StatusCategory', 'WriteMetrics']
