"""
Tests for writer configuration, settings loading and logging setup.
"""
import json
import logging
import os
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import mock

import yaml

from ..config import Settings, parse_bool
from .logging_config import LoggingConfigurator
from .writer_config import WriterConfig


class TestWriterConfig(unittest.TestCase):
    """Test cases for WriterConfig."""

    def test_defaults_need_influxdb_target(self):
        with self.assertRaises(ValueError):
            WriterConfig()

    def test_text_output_needs_no_target(self):
        config = WriterConfig(output_format='text', output_file='/tmp/lines.txt')
        self.assertEqual(config.to_dict(), {
            'output_format': 'text',
            'write_mode': 'bulk',
            'exclude_empty_fields': False,
            'output_file': '/tmp/lines.txt',
        })

    def test_write_mode_normalised(self):
        config = WriterConfig(output_format='text', write_mode='PER_POINT')
        self.assertEqual(config.write_mode, 'per_point')

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            WriterConfig(output_format='graphite')
        with self.assertRaises(ValueError):
            WriterConfig(output_format='text', write_mode='streaming')
        with self.assertRaises(ValueError):
            WriterConfig(output_format='text', timeout=0)

    def test_password_requires_username(self):
        with self.assertRaises(ValueError):
            WriterConfig(influxdb_url='http://influx:8086', influxdb_database='vmware',
                         influxdb_password='secret')

    def test_influxdb_dict(self):
        config = WriterConfig(influxdb_url='http://influx:8086', influxdb_database='vmware',
                              influxdb_username='admin', influxdb_password='secret', gzip=True)
        data = config.to_dict()
        self.assertEqual(data['influxdb_database'], 'vmware')
        self.assertEqual(data['influxdb_username'], 'admin')
        self.assertTrue(data['gzip'])
        self.assertNotIn('output_file', data)

    def test_from_env(self):
        env = {
            'INFLUXDB_URL': 'http://influx:8086',
            'INFLUXDB_DATABASE': 'vmware',
            'INFLUXLINE_WRITE_MODE': 'per_point',
            'INFLUXLINE_EXCLUDE_EMPTY_FIELDS': 'yes',
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = WriterConfig.from_env()
        self.assertEqual(config.influxdb_database, 'vmware')
        self.assertEqual(config.write_mode, 'per_point')
        self.assertTrue(config.exclude_empty_fields)


class TestSettings(unittest.TestCase):
    """Test cases for Settings file and environment loading."""

    def setUp(self):
        env = mock.patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)
        self.tmp = TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _write(self, name, text):
        path = Path(self.tmp.name) / name
        path.write_text(text, encoding='utf-8')
        return str(path)

    def test_yaml_section(self):
        path = self._write('config.yaml', yaml.safe_dump({'influxdb': {
            'influxdb_url': 'http://influx:8086',
            'influxdb_database': 'vmware',
            'write_mode': 'per_point',
            'gzip': 'yes',
            'timeout': 10,
        }}))
        settings = Settings(config_file=path, from_env=False)
        self.assertEqual(settings.influxdb_database, 'vmware')
        self.assertEqual(settings.write_mode, 'per_point')
        self.assertTrue(settings.gzip)
        self.assertEqual(settings.timeout, 10.0)

    def test_json_then_env_overrides(self):
        path = self._write('config.json', json.dumps({
            'influxdb_url': 'http://influx:8086',
            'influxdb_database': 'vmware',
            'influxdb_username': 'admin',
            'influxdb_password': 'secret',
        }))
        with mock.patch.dict(os.environ, {'INFLUXDB_DATABASE': 'metrics', 'INFLUXLINE_VERIFY_TLS': 'false'}):
            settings = Settings(config_file=path)
        self.assertEqual(settings.influxdb_database, 'metrics')
        self.assertFalse(settings.verify_tls)
        self.assertEqual(settings.to_dict()['influxdb_password'], '***')
        self.assertEqual(settings.influxdb_password, 'secret')

        config = WriterConfig.from_settings(settings, output_format='both')
        self.assertEqual(config.output_format, 'both')
        self.assertFalse(config.verify_tls)

    def test_missing_file_keeps_defaults(self):
        with self.assertLogs('influxline.config', level='WARNING'):
            settings = Settings(config_file=os.path.join(self.tmp.name, 'absent.yaml'))
        self.assertEqual(settings.output_format, 'influxdb')
        self.assertEqual(settings.write_mode, 'bulk')

    def test_non_mapping_rejected(self):
        path = self._write('config.yml', '- just\n- a list\n')
        with self.assertRaises(ValueError):
            Settings(config_file=path)

    def test_parse_bool(self):
        self.assertTrue(parse_bool('ON'))
        self.assertTrue(parse_bool(True))
        self.assertFalse(parse_bool('0'))
        self.assertFalse(parse_bool(''))


class TestLoggingConfigurator(unittest.TestCase):
    """Test cases for LoggingConfigurator."""

    def setUp(self):
        root = logging.getLogger()
        saved = (root.level, list(root.handlers))

        def restore():
            for handler in root.handlers:
                if handler not in saved[1]:
                    handler.close()
            root.handlers[:] = saved[1]
            root.setLevel(saved[0])

        self.addCleanup(restore)

    def test_log_file(self):
        with TemporaryDirectory() as tmp:
            log_file = os.path.join(tmp, 'logs', 'influxline.log')
            with mock.patch.dict(os.environ, {}, clear=True):
                LoggingConfigurator.setup_logging('debug', log_file)
            logging.getLogger('influxline.test').debug('captured')
            for handler in logging.getLogger().handlers:
                handler.flush()

            self.assertEqual(logging.getLogger().level, logging.DEBUG)
            with open(log_file, encoding='utf-8') as f:
                self.assertIn('influxline.test - DEBUG - captured', f.read())

            for handler in logging.getLogger().handlers:
                handler.close()

    def test_level_from_environment(self):
        with mock.patch.dict(os.environ, {'INFLUXLINE_LOG_LEVEL': 'WARNING'}, clear=True):
            LoggingConfigurator.setup_logging()
        self.assertEqual(logging.getLogger().level, logging.WARNING)

    def test_unknown_level(self):
        with self.assertRaises(ValueError):
            LoggingConfigurator.setup_logging('chatty')


if __name__ == '__main__':
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
