"""
Multi-writer for influxline.
Sends the same encoded lines to several destinations (e.g., InfluxDB + a text capture file).
"""

import logging
from typing import Iterable, List, Optional, Union

from ..protocol.encoder import EncodedLine, PointEncoder
from .base import RequestOutcome, StatusCategory, WriteMode, WriteResult, Writer

# Initialize logger
LOG = logging.getLogger(__name__)


class MultiWriter(Writer):
    """
    Composite writer that delivers to multiple destinations.

    Points are encoded once by the multi-writer and the resulting lines are
    handed to each sub-writer, so every destination receives identical lines.
    """

    def __init__(self, writers: List[Writer], encoder: Optional[PointEncoder] = None,
                 write_mode: Union[WriteMode, str] = WriteMode.BULK,
                 exclude_empty_fields: bool = False):
        """
        Initialize the multi-writer with a list of writers.

        Args:
            writers: List of Writer instances to write to
            encoder: Encoder used for write(); defaults to a new PointEncoder
            write_mode: Default write mode passed on to sub-writers
            exclude_empty_fields: Default empty field policy
        """
        super().__init__(encoder=encoder, write_mode=write_mode, exclude_empty_fields=exclude_empty_fields)
        self.writers = writers
        self.last_results: List[WriteResult] = []
        LOG.info(f"MultiWriter initialized with {len(writers)} writers: {[type(w).__name__ for w in writers]}")

    def write_lines(self, lines: Iterable[EncodedLine],
                    mode: Optional[Union[WriteMode, str]] = None) -> WriteResult:
        """
        Write lines to all configured writers.

        Returns:
            A WriteResult holding the outcomes of every sub-writer in order.
            A sub-writer that raises is recorded as one failed outcome.
            Its lines_written counts each line once per sub-writer that
            accepted it; use last_results for per-destination counts.
        """
        mode = WriteMode.parse(mode) if mode is not None else self.write_mode
        batch = [line for line in lines if line]
        combined = WriteResult(mode=mode, lines=batch)
        self.last_results = []

        for i, writer in enumerate(self.writers):
            writer_name = type(writer).__name__
            LOG.debug(f"Writing to {writer_name} ({i+1}/{len(self.writers)})")
            try:
                result = writer.write_lines(batch, mode)
            except Exception as e:
                LOG.error(f"Exception in {writer_name}: {e}", exc_info=True)
                result = WriteResult(mode=mode, lines=batch, outcomes=[
                    RequestOutcome(line_count=len(batch), category=StatusCategory.UNREACHABLE,
                                   error_message=f"{writer_name}: {e}")
                ])

            if result.success:
                LOG.debug(f"{writer_name} write successful")
            else:
                LOG.error(f"{writer_name} write failed")

            self.last_results.append(result)
            combined.outcomes.extend(result.outcomes)

        # Log summary
        successful_writers = sum(1 for r in self.last_results if r.success)
        LOG.info(f"MultiWriter completed: {successful_writers}/{len(self.writers)} writers successful")

        return combined

    def close(self) -> None:
        """Close all sub-writers, continuing past failures."""
        LOG.info("Closing MultiWriter and all sub-writers...")

        for writer in self.writers:
            writer_name = type(writer).__name__
            try:
                writer.close()
                LOG.debug(f"{writer_name} closed successfully")
            except Exception as e:
                LOG.error(f"Error closing {writer_name}: {e}", exc_info=True)

        LOG.info("MultiWriter close operation completed")

    def __str__(self) -> str:
        """String representation of the multi-writer."""
        writer_names = [type(w).__name__ for w in self.writers]
        return f"MultiWriter({', '.join(writer_names)})"

    def __repr__(self) -> str:
        """Detailed representation of the multi-writer."""
        return self.__str__()
