"""influxline: InfluxDB line protocol encoding and HTTP delivery.

Typical use::

    from influxline import InfluxDBWriter, Point, Value

    point = Point('WebServer', tags={'Server': 'Host01'},
                  fields={'CPU': Value.integer(100), 'Memory': Value.integer(50)})
    with InfluxDBWriter({'influxdb_url': 'http://influx:8086', 'influxdb_database': 'vmware'}) as writer:
        writer.write([point]).raise_for_errors()
"""

from .errors import FieldSkipped, InvalidPoint, LineProtocolError, TagRejected, TransportError
from .protocol import EncodingIssue, IssueKind, PointEncoder, encode_point, parse_line, to_line_protocol
from .schema import Point, Value, ValueKind
from .writer import (InfluxDBWriter, MultiWriter, TextWriter, WriteMode, WriteResult, Writer,
                     WriterFactory)

__version__ = '0.1.0'

__all__ = [
    'FieldSkipped', 'InvalidPoint', 'LineProtocolError', 'TagRejected', 'TransportError',
    'EncodingIssue', 'IssueKind', 'PointEncoder', 'encode_point', 'parse_line', 'to_line_protocol',
    'Point', 'Value', 'ValueKind',
    'InfluxDBWriter', 'MultiWriter', 'TextWriter', 'WriteMode', 'WriteResult', 'Writer', 'WriterFactory',
]
