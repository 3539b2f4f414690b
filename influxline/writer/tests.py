"""
Tests for the writers: InfluxDB HTTP delivery, text capture, fan-out and factory.
"""
import gzip
import logging
import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

import requests
from requests.auth import HTTPBasicAuth

from ..core.writer_config import WriterConfig
from ..errors import TransportError
from ..protocol.encoder import IssueKind, PointEncoder
from ..schema.point import Point, Value
from .base import StatusCategory, WriteMode, WriteResult, Writer
from .factory import WriterFactory
from .influxdb_writer import InfluxDBWriter
from .multi_writer import MultiWriter
from .text_writer import TextWriter

CONFIG = {
    'influxdb_url': 'http://influx:8086/',
    'influxdb_database': 'vmware',
    'influxdb_username': 'admin',
    'influxdb_password': 'secret',
}


def server_point(server, cpu=None):
    fields = {} if cpu is None else {'CPU': Value.integer(cpu)}
    return Point('WebServer', tags={'Server': server}, fields=fields)


def response(status_code=204, text=''):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.text = text
    return resp


class InfluxDBWriterTestCase(unittest.TestCase):
    """Shared setup: clean environment and a mocked session.post."""

    config = CONFIG

    def setUp(self):
        env = mock.patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)

        self.writer = InfluxDBWriter(dict(self.config))
        self.addCleanup(self.writer.close)
        self.post = mock.patch.object(self.writer.session, 'post', return_value=response()).start()
        self.addCleanup(mock.patch.stopall)


class TestInfluxDBWriter(InfluxDBWriterTestCase):
    """Test cases for InfluxDBWriter."""

    def test_bulk_skips_points_without_fields(self):
        points = [server_point('Host01', 100), server_point('Host02'), server_point('Host03', 30)]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            result = self.writer.write(points, mode=WriteMode.BULK)

        self.post.assert_called_once()
        body = self.post.call_args.kwargs['data']
        self.assertEqual(body, b'WebServer,Server=Host01 CPU=100i\nWebServer,Server=Host03 CPU=30i')
        self.assertNotIn(b'\n\n', body)
        self.assertTrue(result.success)
        self.assertEqual(result.lines_written, 2)
        self.assertEqual(len(result.outcomes), 1)

    def test_request_target_and_headers(self):
        self.writer.write_lines(['m v=1i'])
        args, kwargs = self.post.call_args
        self.assertEqual(args[0], 'http://influx:8086/write')
        self.assertEqual(kwargs['params'], {'db': 'vmware', 'precision': 'ns'})
        self.assertEqual(kwargs['headers']['Content-Type'], 'text/plain; charset=utf-8')
        self.assertNotIn('Content-Encoding', kwargs['headers'])
        self.assertEqual(kwargs['timeout'], 30)

    def test_basic_auth_on_session(self):
        self.assertEqual(self.writer.session.auth, HTTPBasicAuth('admin', 'secret'))
        prepared = self.writer.session.prepare_request(
            requests.Request('POST', self.writer.write_url, data=b'm v=1i'))
        self.assertEqual(prepared.headers['Authorization'], 'Basic YWRtaW46c2VjcmV0')

    def test_per_point_continues_after_failure(self):
        self.post.side_effect = [
            response(204),
            response(400, '{"error":"field type conflict: input field \\"CPU\\" is type float"}'),
            response(204),
        ]
        lines = ['m,h=1 CPU=1i', 'm,h=2 CPU=2.5', 'm,h=3 CPU=3i']
        result = self.writer.write_lines(lines, mode='per_point')

        self.assertEqual(self.post.call_count, 3)
        sent = [c.kwargs['data'] for c in self.post.call_args_list]
        self.assertEqual(sent, [line.encode('utf-8') for line in lines])
        self.assertEqual([o.category for o in result.outcomes],
                         [StatusCategory.SUCCESS, StatusCategory.CLIENT_ERROR, StatusCategory.SUCCESS])
        self.assertFalse(result.success)
        self.assertEqual(result.lines_written, 2)
        self.assertEqual(result.failures[0].status_code, 400)
        self.assertEqual(result.failures[0].error_message,
                         '{"error":"field type conflict: input field \\"CPU\\" is type float"}')

    def test_bulk_failure_reports_whole_batch(self):
        self.post.return_value = response(500, 'engine: timeout')
        result = self.writer.write_lines(['m v=1i', 'm v=2i'])
        self.assertEqual(len(result.outcomes), 1)
        self.assertEqual(result.outcomes[0].category, StatusCategory.SERVER_ERROR)
        self.assertEqual(result.outcomes[0].line_count, 2)
        self.assertEqual(result.lines_written, 0)

        with self.assertRaises(TransportError) as ctx:
            result.raise_for_errors()
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.body, 'engine: timeout')

    def test_unreachable_endpoint(self):
        self.post.side_effect = requests.ConnectionError('connection refused')
        result = self.writer.write_lines(['m v=1i'])
        outcome = result.outcomes[0]
        self.assertEqual(outcome.category, StatusCategory.UNREACHABLE)
        self.assertIsNone(outcome.status_code)
        self.assertIn('connection refused', outcome.error_message)
        with self.assertRaises(TransportError):
            result.raise_for_errors()

    def test_nothing_to_send(self):
        result = self.writer.write_lines(['', ''])
        self.post.assert_not_called()
        self.assertTrue(result.success)
        self.assertEqual(result.outcomes, [])

    def test_writer_defaults_apply(self):
        self.writer.write_mode = WriteMode.PER_POINT
        self.writer.exclude_empty_fields = True
        point = Point('m', fields={'a': 1, 'b': ''})
        with self.assertLogs('influxline.protocol.encoder', level='DEBUG'):
            result = self.writer.write([point, {'measurement': 'm', 'fields': {'c': 2}}])
        self.assertEqual(result.mode, WriteMode.PER_POINT)
        self.assertEqual(self.post.call_count, 2)
        self.assertEqual(result.lines, ['m a=1i', 'm c=2i'])

    def test_unconvertible_records_do_not_block_the_batch(self):
        issues = []
        self.writer.encoder.on_issue = issues.append
        records = [
            {'measurement': 'm', 'fields': {'a': 1}},
            {'measurement': 'm', 'fields': {'a': [1, 2]}},
            {'fields': {'a': 2}},
            'm a=4i',
            {'measurement': 'm', 'fields': {'a': 3}},
        ]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            result = self.writer.write(records)

        self.post.assert_called_once()
        self.assertEqual(self.post.call_args.kwargs['data'], b'm a=1i\nm a=3i')
        self.assertTrue(result.success)
        self.assertEqual([i.kind for i in issues], [IssueKind.INVALID_POINT] * 3)
        self.assertEqual(issues[0].measurement, 'm')

    def test_stats(self):
        self.post.side_effect = [response(204), response(404, 'database not found: "vmware"')]
        self.writer.write_lines(['m v=1i', 'm v=2i'])
        self.writer.write_lines(['m v=3i'])

        stats = self.writer.get_batch_stats()
        self.assertEqual(stats['requests'], 2)
        self.assertEqual(stats['errors'], 1)
        self.assertEqual(stats['lines_written'], 2)
        self.assertEqual(stats['lines_failed'], 1)
        self.assertEqual(stats['last_error'], 'database not found: "vmware"')
        self.assertIn('influxline_lines_written_total', self.writer.metrics.exposition())

    def test_invalid_mode(self):
        with self.assertRaises(ValueError):
            self.writer.write_lines(['m v=1i'], mode='sometimes')

    def test_close(self):
        self.writer.close()
        self.assertIsNone(self.writer.session)
        self.writer.close()


class TestInfluxDBWriterOptions(InfluxDBWriterTestCase):
    """Test cases for optional request settings."""

    config = dict(CONFIG, influxdb_retention_policy='autogen', gzip=True, timeout=5)

    def test_gzip_and_retention_policy(self):
        self.writer.write_lines(['m v=1i', 'm v=2i'])
        kwargs = self.post.call_args.kwargs
        self.assertEqual(kwargs['headers']['Content-Encoding'], 'gzip')
        self.assertEqual(gzip.decompress(kwargs['data']), b'm v=1i\nm v=2i')
        self.assertEqual(kwargs['params']['rp'], 'autogen')
        self.assertEqual(kwargs['timeout'], 5)


class TestInfluxDBWriterConfig(unittest.TestCase):
    """Test cases for InfluxDBWriter construction."""

    def test_database_required(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                InfluxDBWriter({'influxdb_url': 'http://influx:8086'})

    def test_environment_fallback(self):
        env = {'INFLUXDB_URL': 'https://influx.example:8086', 'INFLUXDB_DATABASE': 'metrics'}
        with mock.patch.dict(os.environ, env, clear=True):
            writer = InfluxDBWriter({})
        self.addCleanup(writer.close)
        self.assertEqual(writer.write_url, 'https://influx.example:8086/write')
        self.assertEqual(writer.database, 'metrics')
        self.assertIsNone(writer.session.auth)

    def test_tls_verification_disabled(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertLogs('influxline.writer.influxdb_writer', level='WARNING'):
                writer = InfluxDBWriter(dict(CONFIG, verify_tls=False))
        self.addCleanup(writer.close)
        self.assertFalse(writer.session.verify)

    def test_custom_ca(self):
        with TemporaryDirectory() as tmp:
            ca = Path(tmp) / 'ca.pem'
            ca.write_text('dummy', encoding='utf-8')
            with mock.patch.dict(os.environ, {}, clear=True):
                writer = InfluxDBWriter(dict(CONFIG, tls_ca=str(ca)))
            self.addCleanup(writer.close)
            self.assertEqual(writer.session.verify, str(ca))


class TestTextWriter(unittest.TestCase):
    """Test cases for TextWriter."""

    def test_returns_text(self):
        writer = TextWriter()
        points = [server_point('Host01', 100), server_point('Host02'), server_point('Host03', 30)]
        with self.assertLogs('influxline.protocol.encoder', level='WARNING'):
            result = writer.write(points)
        self.assertTrue(result.success)
        self.assertEqual(writer.to_string(), 'WebServer,Server=Host01 CPU=100i\nWebServer,Server=Host03 CPU=30i')

        writer.clear()
        self.assertEqual(writer.to_string(), '')

    def test_per_point_outcomes_and_file_output(self):
        with TemporaryDirectory() as tmp:
            output = Path(tmp) / 'out' / 'lines.txt'
            writer = TextWriter({'output_file': str(output), 'write_mode': 'per_point'})
            result = writer.write_lines(['m v=1i', 'm v=2i'])
            writer.write_lines(['m v=3i'])

            self.assertEqual(len(result.outcomes), 2)
            self.assertEqual(output.read_text(encoding='utf-8'), 'm v=1i\nm v=2i\nm v=3i\n')
            self.assertEqual(writer.lines, ['m v=1i', 'm v=2i', 'm v=3i'])

    def test_file_error_reported(self):
        with TemporaryDirectory() as tmp:
            writer = TextWriter({'output_file': tmp})
            with self.assertLogs('influxline.writer.text_writer', level='ERROR'):
                result = writer.write_lines(['m v=1i'])
        self.assertFalse(result.success)
        self.assertEqual(writer.lines, [])


class BrokenWriter(Writer):

    def write_lines(self, lines, mode=None):
        raise RuntimeError('disk on fire')

    def close(self):
        raise RuntimeError('still on fire')


class TestMultiWriter(unittest.TestCase):
    """Test cases for MultiWriter."""

    def test_failure_in_one_writer_does_not_block_others(self):
        first, second = TextWriter(), TextWriter()
        multi = MultiWriter([first, BrokenWriter(), second])

        with self.assertLogs('influxline.writer.multi_writer', level='ERROR'):
            result = multi.write([server_point('Host01', 1)])

        self.assertFalse(result.success)
        self.assertEqual(len(result.outcomes), 3)
        self.assertEqual(first.lines, ['WebServer,Server=Host01 CPU=1i'])
        self.assertEqual(second.lines, ['WebServer,Server=Host01 CPU=1i'])
        self.assertEqual([r.success for r in multi.last_results], [True, False, True])
        self.assertIn('disk on fire', result.failures[0].error_message)

        with self.assertLogs('influxline.writer.multi_writer', level='ERROR'):
            multi.close()

    def test_combined_result_counts_each_destination(self):
        multi = MultiWriter([TextWriter(), TextWriter()])
        result = multi.write_lines(['m v=1i', 'm v=2i'])
        self.assertEqual(result.lines_written, 4)
        self.assertEqual([r.lines_written for r in multi.last_results], [2, 2])

    def test_str(self):
        self.assertEqual(str(MultiWriter([TextWriter()])), 'MultiWriter(TextWriter)')


class TestWriterFactory(unittest.TestCase):
    """Test cases for WriterFactory."""

    def setUp(self):
        env = mock.patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)

    def test_text_writer(self):
        writer = WriterFactory.create_writer_from_config(WriterConfig(output_format='text', write_mode='per_point'))
        self.assertIsInstance(writer, TextWriter)
        self.assertEqual(writer.write_mode, WriteMode.PER_POINT)

    def test_influxdb_writer(self):
        config = WriterConfig(influxdb_url='http://influx:8086', influxdb_database='vmware',
                              exclude_empty_fields=True)
        writer = WriterFactory.create_writer_from_config(config)
        self.addCleanup(writer.close)
        self.assertIsInstance(writer, InfluxDBWriter)
        self.assertTrue(writer.exclude_empty_fields)

    def test_both(self):
        config = WriterConfig(output_format='both', influxdb_url='http://influx:8086', influxdb_database='vmware')
        encoder = PointEncoder()
        writer = WriterFactory.create_writer_from_config(config, encoder=encoder)
        self.addCleanup(writer.close)
        self.assertIsInstance(writer, MultiWriter)
        self.assertEqual([type(w) for w in writer.writers], [InfluxDBWriter, TextWriter])
        self.assertIs(writer.encoder, encoder)

    def test_unknown_format(self):
        config = mock.Mock(output_format='carbon')
        with self.assertLogs('influxline.writer.factory', level='ERROR'):
            with self.assertRaises(ValueError):
                WriterFactory.create_writer_from_config(config)


class TestWriteResult(unittest.TestCase):

    def test_empty_result_is_success(self):
        result = WriteResult(mode=WriteMode.BULK)
        self.assertTrue(result.success)
        result.raise_for_errors()

    def test_status_categories(self):
        self.assertEqual(StatusCategory.from_status(204), StatusCategory.SUCCESS)
        self.assertEqual(StatusCategory.from_status(401), StatusCategory.CLIENT_ERROR)
        self.assertEqual(StatusCategory.from_status(503), StatusCategory.SERVER_ERROR)
        self.assertEqual(StatusCategory.from_status(302), StatusCategory.UNEXPECTED)
        self.assertEqual(StatusCategory.from_status(None), StatusCategory.UNREACHABLE)


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
