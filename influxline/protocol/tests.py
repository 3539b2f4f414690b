"""
Tests for line protocol escaping, value formatting, timestamps, encoding and parsing.
"""
import logging
import re
import unittest
from datetime import datetime, timedelta, timezone

from ..errors import FieldSkipped, InvalidPoint, TagRejected
from ..schema.point import INT64_MAX, INT64_MIN, Point, Value
from .encoder import EncodingIssue, IssueKind, PointEncoder, encode_point, to_line_protocol
from .escaping import (escape_key, escape_measurement, escape_string_field, escape_tag_value,
                       unescapable_reason)
from .parser import LineParseError, parse_line, parse_lines
from .timestamps import to_nanos
from .values import SKIP, format_value

# 2024-01-02T03:04:05Z
BASE_SECONDS = 1704164645


class TestEscaping(unittest.TestCase):
    """Test cases for the escaping rules."""

    def test_key_escapes_comma_space_equals(self):
        self.assertEqual(escape_key('a b,c=d'), r'a\ b\,c\=d')
        self.assertEqual(escape_tag_value('x=1, y'), r'x\=1\,\ y')

    def test_backslash_inserted_only_before_special_characters(self):
        samples = ['host name', 'a,b,c', 'k=v', ' ,= ', 'plain', 'tab\there', 'C:\\temp']
        for sample in samples:
            expected = ''.join('\\' + ch if ch in ', =' else ch for ch in sample)
            self.assertEqual(escape_key(sample), expected)
            self.assertEqual(escape_tag_value(sample), expected)

    def test_measurement_does_not_escape_equals(self):
        self.assertEqual(escape_measurement('cpu load,total=1'), r'cpu\ load\,total=1')

    def test_string_field_escapes_quotes_and_backslashes(self):
        self.assertEqual(escape_string_field('say "hi" C:\\temp'), r'say \"hi\" C:\\temp')
        # Commas, spaces and equals signs stay untouched inside string fields
        self.assertEqual(escape_string_field('a, b=c'), 'a, b=c')

    def test_empty_string(self):
        self.assertEqual(escape_key(''), '')
        self.assertEqual(escape_measurement(''), '')
        self.assertEqual(escape_string_field(''), '')

    def test_escaping_is_not_idempotent(self):
        """Escaping twice double-escapes; raw input must be escaped exactly once."""
        once = escape_key('a b')
        twice = escape_key(once)
        self.assertEqual(once, r'a\ b')
        self.assertEqual(twice, r'a\\ b')
        self.assertNotEqual(twice, once)

        once = escape_string_field('"')
        self.assertNotEqual(escape_string_field(once), once)

    def test_none_rejected(self):
        with self.assertRaises(TypeError):
            escape_key(None)

    def test_unescapable_text(self):
        for text in ['esx01\nevil', 'a\rb', 'a\tb', 'C:\\', 'x\\\\']:
            self.assertIsNotNone(unescapable_reason(text), msg=repr(text))
        for text in ['plain', 'a b,c=d', 'C:\\temp', '']:
            self.assertIsNone(unescapable_reason(text), msg=repr(text))


class TestFormatValue(unittest.TestCase):
    """Test cases for value literals."""

    def test_integer_literal(self):
        pattern = re.compile(r'-?[0-9]+i')
        for raw in [0, 1, -1, 100, 50, INT64_MAX, INT64_MIN]:
            literal = format_value(Value.integer(raw))
            self.assertRegex(literal, pattern)
            self.assertTrue(pattern.fullmatch(literal))
        self.assertEqual(format_value(Value.integer(100)), '100i')

    def test_float_literal(self):
        self.assertEqual(format_value(Value.floating(1.5)), '1.5')
        self.assertEqual(format_value(Value.floating(100)), '100.0')
        self.assertEqual(format_value(Value.floating(1e20)), '1e+20')
        self.assertEqual(format_value(Value.floating(-0.25)), '-0.25')

    def test_non_finite_float_skipped(self):
        self.assertIs(format_value(Value.floating(float('nan'))), SKIP)
        self.assertIs(format_value(Value.floating(float('inf'))), SKIP)

    def test_boolean_literal(self):
        self.assertEqual(format_value(Value.boolean(True)), 'true')
        self.assertEqual(format_value(Value.boolean(False)), 'false')

    def test_string_literal(self):
        self.assertEqual(format_value(Value.string('ok')), '"ok"')
        self.assertEqual(format_value(Value.string('say "hi"')), r'"say \"hi\""')

    def test_numeric_looking_string_stays_quoted(self):
        self.assertEqual(format_value(Value.string('123')), '"123"')
        self.assertEqual(format_value(Value.string('true')), '"true"')

    def test_empty_values_skipped(self):
        self.assertIs(format_value(Value.null()), SKIP)
        self.assertIs(format_value(Value.string('')), SKIP)
        self.assertFalse(SKIP)


class TestTimestamps(unittest.TestCase):
    """Test cases for nanosecond conversion."""

    def test_absent_timestamp(self):
        self.assertIsNone(to_nanos(None))

    def test_aware_datetime(self):
        dt = datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)
        self.assertEqual(to_nanos(dt), BASE_SECONDS * 10 ** 9 + 123456000)

    def test_naive_datetime_is_utc(self):
        self.assertEqual(to_nanos(datetime(2024, 1, 2, 3, 4, 5)), BASE_SECONDS * 10 ** 9)

    def test_offset_datetime(self):
        dt = datetime(2024, 1, 2, 4, 4, 5, tzinfo=timezone(timedelta(hours=1)))
        self.assertEqual(to_nanos(dt), BASE_SECONDS * 10 ** 9)

    def test_integer_precisions(self):
        self.assertEqual(to_nanos(BASE_SECONDS, 's'), BASE_SECONDS * 10 ** 9)
        self.assertEqual(to_nanos(BASE_SECONDS * 1000 + 123, 'ms'), BASE_SECONDS * 10 ** 9 + 123000000)
        self.assertEqual(to_nanos(5, 'us'), 5000)
        self.assertEqual(to_nanos(42), 42)

    def test_iso_string_keeps_nanoseconds(self):
        self.assertEqual(to_nanos('2024-01-02T03:04:05.123456789Z'), BASE_SECONDS * 10 ** 9 + 123456789)
        self.assertEqual(to_nanos('2024-01-02T03:04:05Z'), BASE_SECONDS * 10 ** 9)
        self.assertEqual(to_nanos('2024-01-02T04:04:05.5+01:00'), BASE_SECONDS * 10 ** 9 + 500000000)

    def test_iso_string_finer_than_nanoseconds_rejected(self):
        with self.assertRaises(ValueError):
            to_nanos('2024-01-02T03:04:05.1234567891Z')

    def test_invalid_inputs(self):
        with self.assertRaises(ValueError):
            to_nanos('yesterday')
        with self.assertRaises(ValueError):
            to_nanos(1, 'minutes')
        with self.assertRaises(TypeError):
            to_nanos(True)
        with self.assertRaises(TypeError):
            to_nanos(1.5)


def web_server(**overrides):
    """Point used by the WebServer scenarios."""
    values = {
        'measurement': 'WebServer',
        'tags': {'Server': 'Host01'},
        'fields': {'CPU': Value.integer(100), 'Memory': Value.integer(50)},
    }
    values.update(overrides)
    return Point(**values)


class TestPointEncoder(unittest.TestCase):
    """Test cases for PointEncoder."""

    def setUp(self):
        self.issues = []
        self.encoder = PointEncoder(on_issue=self.issues.append)

    def test_integer_fields_with_tag(self):
        self.assertEqual(self.encoder.encode(web_server()), 'WebServer,Server=Host01 CPU=100i,Memory=50i')
        self.assertEqual(self.issues, [])

    def test_empty_field_excluded(self):
        point = web_server(fields={'CPU': Value.integer(100), 'Memory': Value.string('')})
        with self.assertLogs('influxline.protocol.encoder', level='DEBUG') as logs:
            line = self.encoder.encode(point, exclude_empty_fields=True)
        self.assertEqual(line, 'WebServer,Server=Host01 CPU=100i')
        self.assertNotIn('Memory', line)
        self.assertEqual([r.levelno for r in logs.records], [logging.DEBUG])
        self.assertEqual([i.kind for i in self.issues], [IssueKind.FIELD_SKIPPED])
        self.assertEqual(self.issues[0].key, 'Memory')

    def test_empty_field_without_flag_dropped_at_info(self):
        point = web_server(fields={'CPU': Value.integer(100), 'Memory': Value.null()})
        with self.assertLogs('influxline.protocol.encoder', level='DEBUG') as logs:
            line = self.encoder.encode(point)
        self.assertEqual(line, 'WebServer,Server=Host01 CPU=100i')
        self.assertEqual([r.levelno for r in logs.records], [logging.INFO])

    def test_empty_tag_dropped_with_warning(self):
        point = web_server(tags={'Server': ''})
        with self.assertLogs('influxline.protocol.encoder', level='WARNING') as logs:
            line = self.encoder.encode(point)
        self.assertEqual(line, 'WebServer CPU=100i,Memory=50i')
        self.assertIn("Tag 'Server'", logs.output[0])
        self.assertEqual([i.kind for i in self.issues], [IssueKind.TAG_REJECTED])

    def test_none_tag_dropped(self):
        point = web_server(tags={'Server': None, 'Site': 'dc1'})
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            line = self.encoder.encode(point)
        self.assertEqual(line, 'WebServer,Site=dc1 CPU=100i,Memory=50i')

    def test_string_field_quoted(self):
        point = Point('service', fields={'status': 'ok'})
        line = self.encoder.encode(point)
        self.assertTrue(line.endswith('status="ok"'))
        self.assertEqual(line, 'service status="ok"')

    def test_tag_order_independent_of_input_order(self):
        forward = Point('m', tags={'a': '1', 'b': '2', 'c': '3'}, fields={'v': 1})
        backward = Point('m', tags={'c': '3', 'b': '2', 'a': '1'}, fields={'v': 1})
        self.assertEqual(self.encoder.encode(forward), self.encoder.encode(backward))
        self.assertEqual(self.encoder.encode(forward), 'm,a=1,b=2,c=3 v=1i')

    def test_tags_sorted_by_key(self):
        point = Point('m', tags={'a-x': '1', 'a': '2'}, fields={'v': 1})
        self.assertEqual(self.encoder.encode(point), 'm,a=2,a-x=1 v=1i')

    def test_fields_keep_input_order(self):
        point = Point('m', fields={'z': 1, 'a': 2, 'm': 3})
        self.assertEqual(self.encoder.encode(point), 'm z=1i,a=2i,m=3i')

    def test_no_fields_produces_no_line(self):
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            self.assertIsNone(self.encoder.encode(Point('m', tags={'a': '1'})))
        self.assertEqual(self.issues[-1].kind, IssueKind.INVALID_POINT)

    def test_all_fields_empty_produces_no_line(self):
        point = web_server(fields={'CPU': None, 'Memory': ''})
        with self.assertLogs('influxline.protocol.encoder', level='DEBUG'):
            self.assertIsNone(self.encoder.encode(point, exclude_empty_fields=True))
        self.assertEqual([i.kind for i in self.issues],
                         [IssueKind.FIELD_SKIPPED, IssueKind.FIELD_SKIPPED, IssueKind.INVALID_POINT])

    def test_empty_measurement_produces_no_line(self):
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            self.assertIsNone(self.encoder.encode(Point('', fields={'v': 1})))
        self.assertEqual(self.issues[0].kind, IssueKind.INVALID_POINT)

    def test_timestamp_appended(self):
        point = web_server(timestamp=BASE_SECONDS, precision='s')
        self.assertEqual(self.encoder.encode(point),
                         f'WebServer,Server=Host01 CPU=100i,Memory=50i {BASE_SECONDS * 10 ** 9}')

    def test_no_trailing_separator_without_timestamp_or_tags(self):
        line = self.encoder.encode(Point('m', fields={'v': 1.5}))
        self.assertEqual(line, 'm v=1.5')
        self.assertFalse(line.endswith(' '))

    def test_invalid_timestamp_produces_no_line(self):
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            self.assertIsNone(self.encoder.encode(web_server(timestamp='not a time')))

    def test_escaping_applied_everywhere(self):
        point = Point('cpu load', tags={'host name': 'a,b'}, fields={'val=x': Value.string('say "hi"')})
        self.assertEqual(self.encoder.encode(point), r'cpu\ load,host\ name=a\,b val\=x="say \"hi\""')

    def test_encode_many_skips_unwritable_points(self):
        points = [web_server(), Point('WebServer', tags={'Server': 'Host02'}), web_server(tags={'Server': 'Host03'})]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            lines = self.encoder.encode_many(points)
        self.assertEqual(lines, ['WebServer,Server=Host01 CPU=100i,Memory=50i',
                                 'WebServer,Server=Host03 CPU=100i,Memory=50i'])

    def test_to_line_protocol_has_no_blank_lines(self):
        points = [web_server(), Point('WebServer'), web_server(tags={'Server': 'Host03'})]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            body = to_line_protocol(points)
        self.assertNotIn('\n\n', body)
        self.assertEqual(len(body.split('\n')), 2)
        self.assertFalse(body.endswith('\n'))

    def test_line_breaks_never_reach_the_line(self):
        point = Point('vm', tags={'host': 'esx01\nevil', 'site': 'dc1', 'rack\r': '7'},
                      fields={'cpu': 1, 'bad\tkey': 2})
        with self.assertLogs('influxline.protocol.encoder', level='WARNING') as logs:
            line = self.encoder.encode(point)
        self.assertEqual(line, 'vm,site=dc1 cpu=1i')
        self.assertTrue(all('\n' not in message for message in logs.output))
        self.assertEqual([i.kind for i in self.issues],
                         [IssueKind.TAG_REJECTED, IssueKind.TAG_REJECTED, IssueKind.FIELD_SKIPPED])
        self.assertEqual([i.key for i in self.issues], ['host', 'rack\r', 'bad\tkey'])

    def test_line_break_in_measurement_produces_no_line(self):
        points = [Point('vm\nevil', fields={'cpu': 1}), Point('vm', tags={'host': 'ok'}, fields={'cpu': 2})]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            body = to_line_protocol(points)
        self.assertEqual(body.split('\n'), ['vm,host=ok cpu=2i'])

    def test_bulk_body_keeps_one_point_per_line(self):
        points = [Point('vm', tags={'host': 'esx01\nevil'}, fields={'cpu': 1}),
                  Point('vm', tags={'host': 'ok'}, fields={'cpu': 2})]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            body = to_line_protocol(points)
        self.assertEqual(body.split('\n'), ['vm cpu=1i', 'vm,host=ok cpu=2i'])
        self.assertEqual([p.measurement for p in parse_lines(body)], ['vm', 'vm'])

    def test_trailing_backslash_rejected(self):
        point = Point('vm', tags={'path': 'C:\\', 'z': 'x', 'dir\\': 'y'}, fields={'cpu': 1, 'f\\': 2})
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            line = self.encoder.encode(point)
        self.assertEqual(line, 'vm,z=x cpu=1i')
        self.assertEqual([i.kind for i in self.issues],
                         [IssueKind.TAG_REJECTED, IssueKind.TAG_REJECTED, IssueKind.FIELD_SKIPPED])

        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            self.assertIsNone(self.encoder.encode(Point('vm\\', fields={'cpu': 1})))

    def test_strict_callback_raises_typed_errors(self):
        def strict(issue):
            raise issue.as_error()

        encoder = PointEncoder(on_issue=strict)
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            with self.assertRaises(TagRejected) as ctx:
                encoder.encode(web_server(tags={'Server': ''}))
        self.assertEqual(ctx.exception.key, 'Server')
        self.assertEqual(ctx.exception.measurement, 'WebServer')

        with self.assertLogs('influxline.protocol.encoder', level='INFO'):
            with self.assertRaises(FieldSkipped) as ctx:
                encoder.encode(web_server(fields={'CPU': 1, 'Memory': None}))
        self.assertEqual(ctx.exception.key, 'Memory')

        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            with self.assertRaises(InvalidPoint):
                encoder.encode(Point('WebServer'))

    def test_issue_as_error(self):
        issue = EncodingIssue(IssueKind.FIELD_SKIPPED, 'vm', 'skipped', 'cpu')
        error = issue.as_error()
        self.assertIsInstance(error, FieldSkipped)
        self.assertEqual(str(error), 'skipped')
        self.assertIsInstance(EncodingIssue(IssueKind.INVALID_POINT, 'vm', 'bad').as_error(), InvalidPoint)

    def test_module_level_encode_point(self):
        self.assertEqual(encode_point(web_server()), 'WebServer,Server=Host01 CPU=100i,Memory=50i')


class TestParser(unittest.TestCase):
    """Test cases for the reference parser and encoder round trips."""

    def test_round_trip_all_types(self):
        point = Point(
            'cpu load,x',
            tags={'host name': 'esx01.lab', 'cluster': 'a=b c', 'path': 'a\\,b'},
            fields={
                'usage': Value.floating(0.1),
                'count': Value.integer(-42),
                'up': Value.boolean(True),
                'note': Value.string('C:\\vm "prod", size=1'),
                'f,1': Value.integer(7),
            },
            timestamp='2024-01-02T03:04:05.000000001Z',
        )
        parsed = parse_line(encode_point(point))

        self.assertEqual(parsed.measurement, point.measurement)
        self.assertEqual(parsed.tags, point.tags)
        self.assertEqual(parsed.fields, point.fields)
        self.assertEqual(parsed.timestamp, BASE_SECONDS * 10 ** 9 + 1)

    def test_round_trip_without_timestamp(self):
        point = web_server()
        parsed = parse_line(encode_point(point))
        self.assertIsNone(parsed.timestamp)
        self.assertEqual(parsed.fields, {'CPU': Value.integer(100), 'Memory': Value.integer(50)})

    def test_round_trip_keeps_tags_after_backslash_values(self):
        point = Point('vm', tags={'path': 'C:\\', 'share': 'C:\\data', 'z': 'x'}, fields={'cpu': 1})
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            parsed = parse_line(encode_point(point))
        self.assertEqual(parsed.tags, {'share': 'C:\\data', 'z': 'x'})
        self.assertEqual(parsed.fields, {'cpu': Value.integer(1)})

    def test_parse_boolean_spellings(self):
        parsed = parse_line('m a=t,b=FALSE,c=True')
        self.assertEqual(parsed.fields, {'a': Value.boolean(True), 'b': Value.boolean(False),
                                         'c': Value.boolean(True)})

    def test_parse_lines_ignores_blank_lines(self):
        parsed = parse_lines('m v=1i\n\nm v=2i\n')
        self.assertEqual([p.fields['v'].raw for p in parsed], [1, 2])

    def test_malformed_lines(self):
        for line in ['', 'm', 'm,tag v=1i', 'm v=', 'm v="open', 'm v=1i notatime', 'm,t= v=1i']:
            with self.assertRaises(LineParseError, msg=line):
                parse_line(line)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
