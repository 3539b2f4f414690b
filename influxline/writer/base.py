"""
Base writer interface and write result types.

Every writer shares one PointEncoder, so escaping and formatting live in one
place and the writers only differ in where the encoded lines go.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Union

from ..errors import TransportError
from ..protocol.encoder import EncodedLine, EncodingIssue, IssueKind, PointEncoder
from ..schema.point import Point

# Initialize logger
LOG = logging.getLogger(__name__)

PointLike = Union[Point, Mapping[str, Any]]


class WriteMode(Enum):
    """How encoded lines are grouped into requests."""
    PER_POINT = "per_point"
    BULK = "bulk"

    @classmethod
    def parse(cls, mode: Union['WriteMode', str]) -> 'WriteMode':
        if isinstance(mode, cls):
            return mode
        try:
            return cls(str(mode).lower())
        except ValueError:
            raise ValueError(f"Unsupported write mode: {mode} (expected 'per_point' or 'bulk')") from None


class StatusCategory(Enum):
    """Outcome class of a single write request."""
    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNEXPECTED = "unexpected"
    UNREACHABLE = "unreachable"

    @classmethod
    def from_status(cls, status_code: Optional[int]) -> 'StatusCategory':
        if status_code is None:
            return cls.UNREACHABLE
        if 200 <= status_code < 300:
            return cls.SUCCESS
        if 400 <= status_code < 500:
            return cls.CLIENT_ERROR
        if 500 <= status_code < 600:
            return cls.SERVER_ERROR
        return cls.UNEXPECTED


@dataclass
class RequestOutcome:
    """Result of one delivery attempt."""
    line_count: int
    category: StatusCategory
    status_code: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.category is StatusCategory.SUCCESS


@dataclass
class WriteResult:
    """
    Per-request outcomes of one write call.

    No retries are made at this layer; callers decide what to do with
    failed requests.
    """
    mode: WriteMode
    lines: List[EncodedLine] = field(default_factory=list)
    outcomes: List[RequestOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def lines_written(self) -> int:
        return sum(o.line_count for o in self.outcomes if o.ok)

    @property
    def failures(self) -> List[RequestOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def raise_for_errors(self) -> None:
        """
        Raise TransportError for the first failed request, if any.

        The endpoint's response body is passed through unmodified.
        """
        for outcome in self.outcomes:
            if outcome.ok:
                continue
            if outcome.status_code is None:
                message = f"Write endpoint unreachable: {outcome.error_message}"
            else:
                message = f"Write failed (HTTP {outcome.status_code}): {outcome.error_message}"
            raise TransportError(message, outcome.status_code, outcome.error_message)


class Writer(ABC):
    """
    Base class for all writers.

    Subclasses implement write_lines(); write() encodes points first.
    """

    def __init__(self, encoder: Optional[PointEncoder] = None,
                 write_mode: Union[WriteMode, str] = WriteMode.BULK,
                 exclude_empty_fields: bool = False):
        self.encoder = encoder or PointEncoder()
        self.write_mode = WriteMode.parse(write_mode)
        self.exclude_empty_fields = exclude_empty_fields

    def write(self, points: Iterable[PointLike], mode: Optional[Union[WriteMode, str]] = None,
              exclude_empty_fields: Optional[bool] = None) -> WriteResult:
        """
        Encode points and deliver the resulting lines.

        Args:
            points: Points, or collector records accepted by Point.from_dict
            mode: Override the writer's default write mode
            exclude_empty_fields: Override the writer's empty field policy

        Returns:
            WriteResult describing each request made
        """
        if exclude_empty_fields is None:
            exclude_empty_fields = self.exclude_empty_fields

        lines = self.encoder.encode_many(self._to_points(points), exclude_empty_fields)
        LOG.debug(f"Encoded {len(lines)} lines for {type(self).__name__}")
        return self.write_lines(lines, mode)

    def _to_points(self, points: Iterable[PointLike]) -> Iterator[Point]:
        """Convert records to points; a record that cannot be converted yields no point."""
        for p in points:
            if isinstance(p, Point):
                yield p
                continue

            measurement = p.get('measurement') if isinstance(p, Mapping) else None
            try:
                if not isinstance(p, Mapping):
                    raise TypeError(f"Expected a Point or a mapping, got {type(p).__name__}")
                point = Point.from_dict(p)
            except (TypeError, ValueError) as e:
                self.encoder.report(EncodingIssue(
                    IssueKind.INVALID_POINT, str(measurement or ''),
                    f"Record for measurement '{measurement}' could not be converted to a point: {e}"),
                    logging.WARNING)
                continue
            yield point

    @abstractmethod
    def write_lines(self, lines: Iterable[EncodedLine],
                    mode: Optional[Union[WriteMode, str]] = None) -> WriteResult:
        """
        Deliver already encoded lines.

        Args:
            lines: Encoded lines; empty entries are ignored
            mode: PER_POINT or BULK, defaults to the writer's mode

        Returns:
            WriteResult describing each request made
        """
        pass

    def close(self) -> None:
        """
        Optional method to close the writer and clean up resources.
        Default implementation does nothing - override in subclasses that need cleanup.
        """
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
