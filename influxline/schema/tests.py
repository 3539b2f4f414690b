"""
Tests for the point and value model.
"""
import logging
import unittest
from datetime import datetime, timezone

from .point import INT64_MAX, Point, Value, ValueKind


class TestValue(unittest.TestCase):
    """Test cases for Value."""

    def test_of_uses_python_type(self):
        self.assertEqual(Value.of(5).kind, ValueKind.INTEGER)
        self.assertEqual(Value.of(5.0).kind, ValueKind.FLOAT)
        self.assertEqual(Value.of(True).kind, ValueKind.BOOLEAN)
        self.assertEqual(Value.of('5').kind, ValueKind.STRING)
        self.assertEqual(Value.of(None).kind, ValueKind.NULL)

    def test_bool_is_not_integer(self):
        self.assertEqual(Value.of(False), Value.boolean(False))
        with self.assertRaises(TypeError):
            Value.integer(True)

    def test_of_passes_values_through(self):
        value = Value.string('123')
        self.assertIs(Value.of(value), value)

    def test_empty_detection(self):
        self.assertTrue(Value.null().is_empty)
        self.assertTrue(Value.string('').is_empty)
        self.assertFalse(Value.string(' ').is_empty)
        self.assertFalse(Value.integer(0).is_empty)
        self.assertFalse(Value.boolean(False).is_empty)

    def test_integer_range(self):
        self.assertEqual(Value.integer(INT64_MAX).raw, INT64_MAX)
        with self.assertRaises(ValueError):
            Value.integer(INT64_MAX + 1)

    def test_float_coerced(self):
        value = Value.floating(3)
        self.assertIsInstance(value.raw, float)
        self.assertFalse(Value.floating(float('inf')).is_finite)

    def test_kind_payload_mismatch(self):
        with self.assertRaises(TypeError):
            Value(ValueKind.STRING, 5)
        with self.assertRaises(TypeError):
            Value(ValueKind.FLOAT, '1.5')
        with self.assertRaises(ValueError):
            Value(ValueKind.NULL, 'x')

    def test_unsupported_object(self):
        with self.assertRaises(TypeError):
            Value.of([1, 2])


class TestPoint(unittest.TestCase):
    """Test cases for Point."""

    def test_fields_and_tags_normalised(self):
        point = Point('vm', tags={'Cluster': 7, 'Host': None}, fields={'cpu': 10, 'name': 'web'})
        self.assertEqual(point.tags, {'Cluster': '7', 'Host': None})
        self.assertEqual(point.fields, {'cpu': Value.integer(10), 'name': Value.string('web')})

    def test_builder_last_write_wins(self):
        point = Point('vm').tag('Host', 'esx01').field('cpu', 1).field('cpu', 2.5)
        self.assertEqual(point.fields, {'cpu': Value.floating(2.5)})
        self.assertEqual(point.tags, {'Host': 'esx01'})

    def test_time_builder(self):
        stamp = datetime(2024, 1, 2, tzinfo=timezone.utc)
        point = Point('vm').time(stamp)
        self.assertEqual(point.timestamp, stamp)
        with self.assertRaises(ValueError):
            point.time(1, 'h')

    def test_invalid_precision(self):
        with self.assertRaises(ValueError):
            Point('vm', fields={'v': 1}, precision='minutes')

    def test_measurement_must_be_string(self):
        with self.assertRaises(TypeError):
            Point(None)

    def test_from_dict(self):
        record = {
            'measurement': 'datastore',
            'tags': {'Name': 'ds01'},
            'fields': {'FreeGB': 12.5, 'Accessible': True},
            'time': 1704164645,
            'precision': 's',
        }
        point = Point.from_dict(record)
        self.assertEqual(point.measurement, 'datastore')
        self.assertEqual(point.fields['Accessible'], Value.boolean(True))
        self.assertEqual(point.timestamp, 1704164645)
        self.assertEqual(point.precision, 's')

    def test_from_dict_requires_measurement(self):
        with self.assertRaises(ValueError):
            Point.from_dict({'fields': {'v': 1}})


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
