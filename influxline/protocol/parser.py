"""
Reference line protocol parser.

Used to check encoder output and to inspect captured write bodies. Field
values come back as typed Value objects so comparisons are by type and value
rather than by text.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..schema.point import Value

LOG = logging.getLogger(__name__)

_BOOLEAN_LITERALS = {
    't': True, 'T': True, 'true': True, 'True': True, 'TRUE': True,
    'f': False, 'F': False, 'false': False, 'False': False, 'FALSE': False,
}


class LineParseError(ValueError):
    """Raised when a line is not valid line protocol."""


@dataclass
class ParsedLine:
    measurement: str
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, Value] = field(default_factory=dict)
    timestamp: Optional[int] = None


def _read_token(line: str, pos: int, stops: str, escapable: str) -> Tuple[str, int]:
    """Read up to the first unescaped stop character, unescaping as it goes."""
    out = []
    while pos < len(line):
        ch = line[pos]
        if ch == '\\' and pos + 1 < len(line) and line[pos + 1] in escapable:
            out.append(line[pos + 1])
            pos += 2
            continue
        if ch in stops:
            break
        out.append(ch)
        pos += 1
    return ''.join(out), pos


def _read_string_field(line: str, pos: int) -> Tuple[str, int]:
    # pos points at the opening quote
    out = []
    pos += 1
    while pos < len(line):
        ch = line[pos]
        if ch == '\\' and pos + 1 < len(line) and line[pos + 1] in '"\\':
            out.append(line[pos + 1])
            pos += 2
            continue
        if ch == '"':
            return ''.join(out), pos + 1
        out.append(ch)
        pos += 1
    raise LineParseError(f"Unterminated string field in: {line!r}")


def _parse_scalar(text: str, line: str) -> Value:
    if not text:
        raise LineParseError(f"Empty field value in: {line!r}")
    if text in _BOOLEAN_LITERALS:
        return Value.boolean(_BOOLEAN_LITERALS[text])
    if text[-1] in 'iu':
        try:
            return Value.integer(int(text[:-1]))
        except ValueError:
            raise LineParseError(f"Invalid integer field {text!r} in: {line!r}") from None
    try:
        return Value.floating(float(text))
    except ValueError:
        raise LineParseError(f"Invalid field value {text!r} in: {line!r}") from None


def parse_line(line: str) -> ParsedLine:
    """
    Parse one line protocol line.

    Raises:
        LineParseError: if the line is malformed
    """
    line = line.rstrip('\n')
    if not line:
        raise LineParseError("Empty line")

    measurement, pos = _read_token(line, 0, ', ', ', ')
    if not measurement:
        raise LineParseError(f"Missing measurement in: {line!r}")
    parsed = ParsedLine(measurement=measurement)

    while pos < len(line) and line[pos] == ',':
        key, pos = _read_token(line, pos + 1, '=, ', ',= ')
        if pos >= len(line) or line[pos] != '=':
            raise LineParseError(f"Tag '{key}' has no value in: {line!r}")
        value, pos = _read_token(line, pos + 1, ', ', ',= ')
        if not key or not value:
            raise LineParseError(f"Empty tag key or value in: {line!r}")
        parsed.tags[key] = value

    if pos >= len(line) or line[pos] != ' ':
        raise LineParseError(f"Missing field set in: {line!r}")
    pos += 1

    while True:
        key, pos = _read_token(line, pos, '=, ', ',= ')
        if not key or pos >= len(line) or line[pos] != '=':
            raise LineParseError(f"Malformed field in: {line!r}")
        pos += 1
        if pos < len(line) and line[pos] == '"':
            text, pos = _read_string_field(line, pos)
            parsed.fields[key] = Value.string(text)
        else:
            text, pos = _read_token(line, pos, ', ', '')
            parsed.fields[key] = _parse_scalar(text, line)

        if pos < len(line) and line[pos] == ',':
            pos += 1
            continue
        break

    if pos < len(line):
        if line[pos] != ' ':
            raise LineParseError(f"Unexpected character {line[pos]!r} in: {line!r}")
        stamp = line[pos + 1:]
        try:
            parsed.timestamp = int(stamp)
        except ValueError:
            raise LineParseError(f"Invalid timestamp {stamp!r} in: {line!r}") from None

    return parsed


def parse_lines(text: str) -> List[ParsedLine]:
    """Parse a newline separated write body, ignoring blank lines."""
    return [parse_line(line) for line in text.split('\n') if line.strip()]
