"""
Escaping rules for InfluxDB line protocol.

Escaping is not idempotent: feeding already escaped text back in escapes the
backslashes' neighbours again. Escape raw input exactly once.
"""

from typing import Optional

MEASUREMENT_ESCAPE = str.maketrans({
    ',': r'\,',
    ' ': r'\ ',
})

# Tag keys, tag values and field keys
KEY_ESCAPE = str.maketrans({
    ',': r'\,',
    ' ': r'\ ',
    '=': r'\=',
})

UNESCAPABLE_CHARACTERS = '\n\r\t'

STRING_FIELD_ESCAPE = str.maketrans({
    '"': r'\"',
    '\\': r'\\',
})


def _check(value: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected str, got {type(value).__name__}")
    return value


def escape_measurement(name: str) -> str:
    """Escape commas and spaces in a measurement name."""
    return _check(name).translate(MEASUREMENT_ESCAPE)


def escape_key(key: str) -> str:
    """Escape commas, spaces and equals signs in a tag key or field key."""
    return _check(key).translate(KEY_ESCAPE)


def escape_tag_value(value: str) -> str:
    """Escape commas, spaces and equals signs in a tag value."""
    return _check(value).translate(KEY_ESCAPE)


def unescapable_reason(text: str) -> Optional[str]:
    """
    Explain why text cannot be written as an unquoted name or tag value.

    Line breaks and tabs would split or distort the line, and a trailing
    backslash would escape the separator written after it. Neither can be
    escaped, so such names must be rejected rather than encoded.

    Returns:
        A short reason, or None if the text can be escaped safely
    """
    if any(ch in UNESCAPABLE_CHARACTERS for ch in _check(text)):
        return "contains a line break or tab"
    if text.endswith('\\'):
        return "ends with a backslash"
    return None


def escape_string_field(value: str) -> str:
    """
    Escape double quotes and backslashes in a string field value.

    The result is not quoted; the value formatter wraps it.
    """
    return _check(value).translate(STRING_FIELD_ESCAPE)
