"""Line protocol encoding, escaping and parsing.

Provides the encoder used by every writer plus a reference parser.
"""

from .encoder import EncodedLine, EncodingIssue, IssueKind, PointEncoder, encode_point, to_line_protocol
from .escaping import escape_key, escape_measurement, escape_string_field, escape_tag_value
from .parser import LineParseError, ParsedLine, parse_line, parse_lines
from .timestamps import to_nanos
from .values import SKIP, format_value

__all__ = [
    'EncodedLine', 'EncodingIssue', 'IssueKind', 'PointEncoder', 'encode_point', 'to_line_protocol',
    'escape_key', 'escape_measurement', 'escape_string_field', 'escape_tag_value',
    'LineParseError', 'ParsedLine', 'parse_line', 'parse_lines',
    'to_nanos', 'SKIP', 'format_value',
]
