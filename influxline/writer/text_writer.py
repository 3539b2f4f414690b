"""
Text writer: returns line protocol to the caller instead of sending it.

Optionally appends every delivered line to a file, which is handy for
capturing exactly what would have been posted to InfluxDB.
"""

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Union

from ..protocol.encoder import EncodedLine, PointEncoder
from .base import RequestOutcome, StatusCategory, WriteMode, WriteResult, Writer

LOG = logging.getLogger(__name__)


class TextWriter(Writer):
    """Collects encoded lines in memory and optionally in a file."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, encoder: Optional[PointEncoder] = None):
        config = config or {}
        super().__init__(
            encoder=encoder,
            write_mode=config.get('write_mode', WriteMode.BULK),
            exclude_empty_fields=bool(config.get('exclude_empty_fields', False)),
        )
        self.output_file = config.get('output_file')
        self._lines: List[EncodedLine] = []

        if self.output_file:
            LOG.info(f"Line protocol text output enabled -> {self.output_file}")

    def _append_to_file(self, lines: List[EncodedLine]) -> Optional[str]:
        try:
            out_dir = os.path.dirname(self.output_file)
            if out_dir:
                os.makedirs(out_dir, exist_ok=True)
            with open(self.output_file, 'a', encoding='utf-8') as f:
                for line in lines:
                    f.write(line + '\n')
        except OSError as e:
            LOG.error(f"Failed to write line protocol to {self.output_file}: {e}")
            return str(e)
        return None

    def write_lines(self, lines: Iterable[EncodedLine],
                    mode: Optional[Union[WriteMode, str]] = None) -> WriteResult:
        mode = WriteMode.parse(mode) if mode is not None else self.write_mode
        batch = [line for line in lines if line]
        result = WriteResult(mode=mode, lines=batch)
        if not batch:
            return result

        groups = [[line] for line in batch] if mode is WriteMode.PER_POINT else [batch]
        for group in groups:
            error = self._append_to_file(group) if self.output_file else None
            if error is None:
                self._lines.extend(group)
                result.outcomes.append(RequestOutcome(line_count=len(group), category=StatusCategory.SUCCESS))
            else:
                result.outcomes.append(RequestOutcome(line_count=len(group), category=StatusCategory.UNREACHABLE,
                                                      error_message=error))

        LOG.debug(f"TextWriter captured {result.lines_written} lines")
        return result

    @property
    def lines(self) -> List[EncodedLine]:
        return list(self._lines)

    def to_string(self) -> str:
        """All captured lines joined by newlines, without a trailing newline."""
        return '\n'.join(self._lines)

    def clear(self) -> None:
        self._lines.clear()
