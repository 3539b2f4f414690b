"""
Point to line protocol encoder.

Format: measurement[,tag1=value1,tag2=value2] field1=value1[,field2=value2][ timestamp]

Tags are sorted so identical input always serializes to an identical line.
Fields keep their input order.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, NewType, Optional

from ..errors import FieldSkipped, InvalidPoint, LineProtocolError, TagRejected
from ..schema.point import Point
from .escaping import escape_key, escape_measurement, escape_tag_value, unescapable_reason
from .timestamps import to_nanos
from .values import SKIP, format_value

LOG = logging.getLogger(__name__)

EncodedLine = NewType('EncodedLine', str)


class IssueKind(Enum):
    """Problems found while encoding a point."""
    INVALID_POINT = "invalid_point"
    TAG_REJECTED = "tag_rejected"
    FIELD_SKIPPED = "field_skipped"


@dataclass(frozen=True)
class EncodingIssue:
    """A non-fatal signal raised while encoding a point."""
    kind: IssueKind
    measurement: str
    message: str
    key: Optional[str] = None

    def as_error(self) -> LineProtocolError:
        """
        The matching exception, for callers that want encoding to be strict.

        Raising it from an ``on_issue`` callback aborts the encode call.
        """
        if self.kind is IssueKind.TAG_REJECTED:
            return TagRejected(self.message, self.measurement, self.key)
        if self.kind is IssueKind.FIELD_SKIPPED:
            return FieldSkipped(self.message, self.measurement, self.key)
        return InvalidPoint(self.message, self.measurement)


IssueCallback = Callable[[EncodingIssue], None]


class PointEncoder:
    """
    Encodes points into line protocol lines.

    Encoding never raises for bad data. Instead the point yields no line, the
    problem is logged, and an EncodingIssue is passed to ``on_issue`` if one
    was given:

    - empty tag values: tag dropped, WARNING
    - empty field values: field dropped, DEBUG with exclude_empty_fields, INFO otherwise
    - empty measurement or no fields left: no line, WARNING

    Names and tag values containing a line break or tab, or ending with a
    backslash, cannot be escaped. Such tags are dropped, such fields are
    skipped and such a measurement yields no line, so an encoded line never
    spans more than one line.

    A callback that raises ``issue.as_error()`` turns these signals into
    TagRejected, FieldSkipped or InvalidPoint exceptions.
    """

    def __init__(self, on_issue: Optional[IssueCallback] = None):
        self.on_issue = on_issue

    def report(self, issue: EncodingIssue, level: int) -> None:
        LOG.log(level, issue.message)
        if self.on_issue is not None:
            self.on_issue(issue)

    def encode(self, point: Point, exclude_empty_fields: bool = False) -> Optional[EncodedLine]:
        """
        Encode a single point.

        Args:
            point: Point to encode
            exclude_empty_fields: Drop empty fields quietly (DEBUG) instead of
                surfacing them at INFO level

        Returns:
            The encoded line, or None if the point has nothing writable
        """
        try:
            return self._encode(point, exclude_empty_fields)
        except InvalidPoint as e:
            self.report(EncodingIssue(IssueKind.INVALID_POINT, point.measurement, str(e)), logging.WARNING)
            return None

    def encode_many(self, points: Iterable[Point], exclude_empty_fields: bool = False) -> List[EncodedLine]:
        """Encode points in order, leaving out the ones that produce no line."""
        lines = []
        for point in points:
            line = self.encode(point, exclude_empty_fields)
            if line is not None:
                lines.append(line)
        return lines

    def _encode(self, point: Point, exclude_empty_fields: bool) -> EncodedLine:
        measurement = escape_measurement(point.measurement)
        if not measurement:
            raise InvalidPoint("Point has an empty measurement name", point.measurement)
        reason = unescapable_reason(point.measurement)
        if reason:
            raise InvalidPoint(f"Measurement {point.measurement!r} {reason}", point.measurement)

        tag_parts = []
        for key, value in point.tags.items():
            if value is None or value == '':
                self.report(EncodingIssue(
                    IssueKind.TAG_REJECTED, point.measurement,
                    f"Tag '{key}' on measurement '{point.measurement}' has an empty value and was dropped",
                    key), logging.WARNING)
                continue
            escaped_key = escape_key(key)
            if not escaped_key:
                self.report(EncodingIssue(
                    IssueKind.TAG_REJECTED, point.measurement,
                    f"Tag with empty key on measurement '{point.measurement}' was dropped",
                    key), logging.WARNING)
                continue
            reason = unescapable_reason(key) or unescapable_reason(value)
            if reason:
                self.report(EncodingIssue(
                    IssueKind.TAG_REJECTED, point.measurement,
                    f"Tag {key!r}={value!r} on measurement {point.measurement!r} {reason} and was dropped",
                    key), logging.WARNING)
                continue
            tag_parts.append((escaped_key, escape_tag_value(value)))
        tag_parts.sort()

        field_parts = []
        for key, value in point.fields.items():
            literal = format_value(value)
            if literal is SKIP:
                level = logging.DEBUG if exclude_empty_fields else logging.INFO
                self.report(EncodingIssue(
                    IssueKind.FIELD_SKIPPED, point.measurement,
                    f"Field '{key}' on measurement '{point.measurement}' has no writable value and was skipped",
                    key), level)
                continue
            escaped_key = escape_key(key)
            if not escaped_key:
                self.report(EncodingIssue(
                    IssueKind.FIELD_SKIPPED, point.measurement,
                    f"Field with empty key on measurement '{point.measurement}' was skipped",
                    key), logging.INFO)
                continue
            reason = unescapable_reason(key)
            if reason:
                self.report(EncodingIssue(
                    IssueKind.FIELD_SKIPPED, point.measurement,
                    f"Field key {key!r} on measurement {point.measurement!r} {reason} and was skipped",
                    key), logging.WARNING)
                continue
            field_parts.append(f"{escaped_key}={literal}")

        if not field_parts:
            raise InvalidPoint(f"Point '{point.measurement}' has no writable fields", point.measurement)

        line = measurement
        if tag_parts:
            line += ',' + ','.join(f"{k}={v}" for k, v in tag_parts)
        line += ' ' + ','.join(field_parts)

        try:
            nanos = to_nanos(point.timestamp, point.precision)
        except (TypeError, ValueError) as e:
            raise InvalidPoint(f"Point '{point.measurement}' has an invalid timestamp: {e}", point.measurement) from e
        if nanos is not None:
            line += f" {nanos}"

        return EncodedLine(line)


_default_encoder = PointEncoder()


def encode_point(point: Point, exclude_empty_fields: bool = False) -> Optional[EncodedLine]:
    """Encode a point with a shared encoder that only logs issues."""
    return _default_encoder.encode(point, exclude_empty_fields)


def to_line_protocol(points: Iterable[Point], exclude_empty_fields: bool = False) -> str:
    """
    Encode points and return the newline separated write body.

    Points that produce no line contribute nothing, not even a blank line.
    """
    return '\n'.join(_default_encoder.encode_many(points, exclude_empty_fields))
