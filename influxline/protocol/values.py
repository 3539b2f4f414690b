"""
Rendering of typed field values as line protocol literals.
"""

import logging
from typing import Union

from ..schema.point import Value, ValueKind
from .escaping import escape_string_field

LOG = logging.getLogger(__name__)


class _Skip:
    """Marker returned when a value has no line protocol representation."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'SKIP'

    def __bool__(self) -> bool:
        return False


SKIP = _Skip()


def format_value(value: Value) -> Union[str, _Skip]:
    """
    Render a field value as its line protocol literal.

    Dispatch happens on the declared kind only: a STRING that reads "123"
    is still quoted.

    Args:
        value: Typed field value

    Returns:
        The literal, or SKIP for empty values and non-finite floats
    """
    if value.is_empty:
        return SKIP

    kind = value.kind

    if kind is ValueKind.INTEGER:
        return f"{value.raw}i"

    if kind is ValueKind.FLOAT:
        if not value.is_finite:
            LOG.debug(f"Float value {value.raw} cannot be written to InfluxDB")
            return SKIP
        return repr(value.raw)

    if kind is ValueKind.BOOLEAN:
        return 'true' if value.raw else 'false'

    if kind is ValueKind.STRING:
        return f'"{escape_string_field(value.raw)}"'

    raise ValueError(f"Unhandled value kind: {kind}")
