"""
Data model for points handed to the line protocol encoder.

Values carry their declared kind so the encoder never has to guess whether
"123" is a number or a string.
"""

import math
import numbers
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

# InfluxDB stores integer fields as signed 64-bit
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

TimestampInput = Union[datetime, int, str]


class ValueKind(Enum):
    """Declared type of a field value."""
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    NULL = "null"


@dataclass(frozen=True)
class Value:
    """
    A field value tagged with its kind.

    NULL is a first-class kind because collectors routinely hand over metrics
    that have not been populated yet. An empty STRING is treated as empty too.
    """
    kind: ValueKind
    raw: Any = None

    def __post_init__(self):
        if not isinstance(self.kind, ValueKind):
            raise TypeError(f"kind must be a ValueKind, got {type(self.kind).__name__}")

        if self.kind is ValueKind.NULL:
            if self.raw is not None:
                raise ValueError("NULL value cannot carry a payload")

        elif self.kind is ValueKind.BOOLEAN:
            if not isinstance(self.raw, bool):
                raise TypeError(f"BOOLEAN value requires bool, got {type(self.raw).__name__}")

        elif self.kind is ValueKind.INTEGER:
            if isinstance(self.raw, bool) or not isinstance(self.raw, numbers.Integral):
                raise TypeError(f"INTEGER value requires int, got {type(self.raw).__name__}")
            raw = int(self.raw)
            if raw < INT64_MIN or raw > INT64_MAX:
                raise ValueError(f"Integer {raw} outside signed 64-bit range")
            object.__setattr__(self, 'raw', raw)

        elif self.kind is ValueKind.FLOAT:
            if isinstance(self.raw, bool) or not isinstance(self.raw, numbers.Real):
                raise TypeError(f"FLOAT value requires a real number, got {type(self.raw).__name__}")
            object.__setattr__(self, 'raw', float(self.raw))

        elif self.kind is ValueKind.STRING:
            if not isinstance(self.raw, str):
                raise TypeError(f"STRING value requires str, got {type(self.raw).__name__}")

    @classmethod
    def integer(cls, value: int) -> 'Value':
        return cls(ValueKind.INTEGER, value)

    @classmethod
    def floating(cls, value: float) -> 'Value':
        return cls(ValueKind.FLOAT, value)

    @classmethod
    def boolean(cls, value: bool) -> 'Value':
        return cls(ValueKind.BOOLEAN, value)

    @classmethod
    def string(cls, value: str) -> 'Value':
        return cls(ValueKind.STRING, value)

    @classmethod
    def null(cls) -> 'Value':
        return cls(ValueKind.NULL)

    @classmethod
    def of(cls, obj: Any) -> 'Value':
        """
        Build a Value from a native Python object using its Python type.

        bool is checked before int since bool is an int subclass. Strings are
        always STRING, whatever they look like.

        Raises:
            TypeError: for objects with no line protocol representation
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, numbers.Integral):
            return cls.integer(obj)
        if isinstance(obj, numbers.Real):
            return cls.floating(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        raise TypeError(f"Cannot use {type(obj).__name__} as a field value")

    @property
    def is_empty(self) -> bool:
        """True for NULL and for the empty string."""
        if self.kind is ValueKind.NULL:
            return True
        return self.kind is ValueKind.STRING and self.raw == ''

    @property
    def is_finite(self) -> bool:
        if self.kind is ValueKind.FLOAT:
            return math.isfinite(self.raw)
        return True


@dataclass
class Point:
    """
    One metric sample: measurement, tags, fields and an optional timestamp.

    Tag values may be None or empty; the encoder drops such tags with a
    warning. Field values are normalised to Value on construction.
    ``precision`` only applies when ``timestamp`` is an int.
    """
    measurement: str
    tags: Dict[str, Optional[str]] = field(default_factory=dict)
    fields: Dict[str, Value] = field(default_factory=dict)
    timestamp: Optional[TimestampInput] = None
    precision: str = 'ns'

    def __post_init__(self):
        from ..protocol.timestamps import PRECISION_MULTIPLIERS

        if not isinstance(self.measurement, str):
            raise TypeError(f"measurement must be str, got {type(self.measurement).__name__}")
        if self.precision not in PRECISION_MULTIPLIERS:
            raise ValueError(f"precision must be one of {sorted(PRECISION_MULTIPLIERS)}")

        self.tags = {str(k): (None if v is None else str(v)) for k, v in (self.tags or {}).items()}
        self.fields = {str(k): Value.of(v) for k, v in (self.fields or {}).items()}

    def tag(self, key: str, value: Optional[str]) -> 'Point':
        """Set a tag, replacing any previous value for the key."""
        self.tags[str(key)] = None if value is None else str(value)
        return self

    def field(self, key: str, value: Any) -> 'Point':
        """Set a field, replacing any previous value for the key."""
        self.fields[str(key)] = Value.of(value)
        return self

    def time(self, timestamp: Optional[TimestampInput], precision: str = 'ns') -> 'Point':
        from ..protocol.timestamps import PRECISION_MULTIPLIERS

        if precision not in PRECISION_MULTIPLIERS:
            raise ValueError(f"precision must be one of {sorted(PRECISION_MULTIPLIERS)}")
        self.timestamp = timestamp
        self.precision = precision
        return self

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> 'Point':
        """
        Create a point from a collector record.

        Args:
            record: Mapping with 'measurement', 'fields' and optionally
                'tags', 'time' and 'precision'

        Returns:
            Point instance
        """
        if 'measurement' not in record:
            raise ValueError("'measurement' missing from record")

        return cls(
            measurement=record['measurement'],
            tags=dict(record.get('tags') or {}),
            fields=dict(record.get('fields') or {}),
            timestamp=record.get('time'),
            precision=record.get('precision', 'ns'),
        )
