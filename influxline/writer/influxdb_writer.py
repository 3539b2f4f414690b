"""
InfluxDB writer: delivers line protocol to the HTTP /write endpoint.

Lines are sent either one request per point or all in one newline-joined
request body. Nothing is retried here; every request's outcome is reported
back in the WriteResult.
"""

import gzip
import logging
import os
from typing import Any, Dict, Iterable, Optional, Union

import requests
import urllib3
from requests.auth import HTTPBasicAuth

from ..config import INFLUXDB_WRITE_PRECISION
from ..protocol.encoder import EncodedLine, PointEncoder
from .base import RequestOutcome, StatusCategory, WriteMode, WriteResult, Writer
from .metrics import WriteMetrics

LOG = logging.getLogger(__name__)


class InfluxDBWriter(Writer):
    """
    Writer implementation for the InfluxDB line protocol HTTP endpoint.

    Handles:
    - PER_POINT delivery: one request per line, sequential, in input order;
      a failed request does not stop the following ones
    - BULK delivery: one request carrying every line
    - HTTP Basic authentication applied to every request
    - Optional gzip request bodies and retention policy selection
    """

    def __init__(self, config: Dict[str, Any], encoder: Optional[PointEncoder] = None):
        """Initialize InfluxDB writer with configuration."""
        super().__init__(
            encoder=encoder,
            write_mode=config.get('write_mode', WriteMode.BULK),
            exclude_empty_fields=bool(config.get('exclude_empty_fields', False)),
        )

        # Extract connection parameters from config or environment variables
        self.url = (config.get('influxdb_url') or os.getenv('INFLUXDB_URL', 'http://localhost:8086')).rstrip('/')
        self.database = config.get('influxdb_database') or os.getenv('INFLUXDB_DATABASE')
        self.retention_policy = config.get('influxdb_retention_policy') or os.getenv('INFLUXDB_RETENTION_POLICY')
        self.username = config.get('influxdb_username') or os.getenv('INFLUXDB_USERNAME')
        self.password = config.get('influxdb_password') or os.getenv('INFLUXDB_PASSWORD', '')
        self.tls_ca = config.get('tls_ca')
        self.verify_tls = config.get('verify_tls', True)
        self.timeout = config.get('timeout', 30)
        self.gzip = bool(config.get('gzip', False))

        if not self.database:
            raise ValueError("influxdb_database is required for the InfluxDB writer")

        self.metrics = WriteMetrics('influxdb')
        self.session = self._create_session()

        LOG.info(f"InfluxDBWriter initialized: {self.url} -> {self.database} (mode={self.write_mode.value})")

    def _create_session(self) -> requests.Session:
        """Create the HTTP session with authentication and TLS settings."""
        session = requests.Session()

        if self.username:
            session.auth = HTTPBasicAuth(self.username, self.password or '')
            LOG.debug(f"Using HTTP Basic authentication as {self.username}")

        if self.tls_ca and os.path.exists(self.tls_ca):
            LOG.info(f"Using custom CA certificate: {self.tls_ca}")
            session.verify = self.tls_ca
        elif self.tls_ca:
            LOG.warning(f"CA certificate path specified but file not found: {self.tls_ca}")
            session.verify = bool(self.verify_tls)
        else:
            session.verify = bool(self.verify_tls)

        if session.verify is False:
            LOG.warning("TLS certificate verification disabled for InfluxDB writes")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        return session

    @property
    def write_url(self) -> str:
        return f"{self.url}/write"

    def _params(self) -> Dict[str, str]:
        params = {'db': self.database, 'precision': INFLUXDB_WRITE_PRECISION}
        if self.retention_policy:
            params['rp'] = self.retention_policy
        return params

    def _post(self, body: str, line_count: int) -> RequestOutcome:
        """
        Issue one write request.

        Args:
            body: One or more newline separated lines
            line_count: Number of lines in the body

        Returns:
            RequestOutcome with the endpoint's error text verbatim on failure
        """
        data = body.encode('utf-8')
        headers = {'Content-Type': 'text/plain; charset=utf-8'}
        if self.gzip:
            data = gzip.compress(data)
            headers['Content-Encoding'] = 'gzip'

        try:
            response = self.session.post(
                self.write_url,
                params=self._params(),
                data=data,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            LOG.error(f"InfluxDB write to {self.write_url} failed: {e}")
            outcome = RequestOutcome(line_count=line_count, category=StatusCategory.UNREACHABLE,
                                     error_message=str(e))
            self.metrics.record(outcome)
            return outcome

        category = StatusCategory.from_status(response.status_code)
        if category is StatusCategory.SUCCESS:
            LOG.debug(f"InfluxDB write successful: {line_count} lines, {len(data)} bytes")
            outcome = RequestOutcome(line_count=line_count, category=category,
                                     status_code=response.status_code)
        else:
            LOG.error(f"InfluxDB write failed (HTTP {response.status_code}): {response.text}")
            outcome = RequestOutcome(line_count=line_count, category=category,
                                     status_code=response.status_code, error_message=response.text)

        self.metrics.record(outcome)
        return outcome

    def write_lines(self, lines: Iterable[EncodedLine],
                    mode: Optional[Union[WriteMode, str]] = None) -> WriteResult:
        """
        Deliver encoded lines to InfluxDB.

        Args:
            lines: Encoded lines; empty entries are ignored
            mode: PER_POINT or BULK, defaults to the writer's mode

        Returns:
            WriteResult with one outcome per request issued
        """
        mode = WriteMode.parse(mode) if mode is not None else self.write_mode
        batch = [line for line in lines if line]
        result = WriteResult(mode=mode, lines=batch)

        if not batch:
            LOG.debug("No lines to write to InfluxDB")
            return result

        if mode is WriteMode.PER_POINT:
            for line in batch:
                result.outcomes.append(self._post(line, 1))
        else:
            result.outcomes.append(self._post('\n'.join(batch), len(batch)))

        failed = len(result.failures)
        if failed:
            LOG.warning(f"InfluxDB write completed with {failed}/{len(result.outcomes)} failed requests "
                        f"({result.lines_written}/{len(batch)} lines written)")
        else:
            LOG.info(f"InfluxDB write submitted: {len(batch)} lines in {len(result.outcomes)} requests")

        return result

    def get_batch_stats(self) -> Dict[str, Any]:
        """Get write statistics for this writer."""
        return self.metrics.get_stats()

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session is None:
            return
        LOG.info("Closing InfluxDB writer session")
        self.session.close()
        self.session = None

    def __repr__(self) -> str:
        return f"InfluxDBWriter({self.url}, db={self.database})"
