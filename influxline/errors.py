"""
Exception types for line protocol encoding and delivery.
"""

from typing import Optional


class LineProtocolError(Exception):
    """Base class for all influxline errors."""


class InvalidPoint(LineProtocolError):
    """A point cannot be encoded: empty measurement or no usable fields."""

    def __init__(self, message: str, measurement: Optional[str] = None):
        super().__init__(message)
        self.measurement = measurement


class TagRejected(LineProtocolError):
    """A tag had an empty value and was dropped from the point."""

    def __init__(self, message: str, measurement: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.measurement = measurement
        self.key = key


class FieldSkipped(LineProtocolError):
    """A field had an empty or unrepresentable value and was dropped."""

    def __init__(self, message: str, measurement: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.measurement = measurement
        self.key = key


class TransportError(LineProtocolError):
    """
    The write endpoint returned a non-2xx status or could not be reached.

    The endpoint's response body is kept verbatim in ``body`` so that
    server-side rejection reasons (field type conflicts etc.) reach the operator.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
