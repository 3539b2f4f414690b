"""Point and value types for the line protocol encoder."""

from .point import Point, Value, ValueKind

__all__ = ['Point', 'Value', 'ValueKind']
