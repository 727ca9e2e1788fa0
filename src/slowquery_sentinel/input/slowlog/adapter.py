from pathlib import Path
from typing import Iterator

from slowquery_sentinel.domain import SlowQueryRecord
from slowquery_sentinel.input.slowlog.parser import MySqlSlowLogParser


class SlowLogFileInput:
    """Input adapter that reads records from a MySQL slow-query log file."""

    def __init__(
        self,
        file_path: str | Path,
        parser: MySqlSlowLogParser | None = None,
    ) -> None:
        self._file_path = Path(file_path)
        self._parser = parser or MySqlSlowLogParser()
        self._lines: list[str] | None = None
        self._records: Iterator[SlowQueryRecord] | None = None

    @classmethod
    def from_lines(
        cls,
        lines: list[str],
        parser: MySqlSlowLogParser | None = None,
    ) -> "SlowLogFileInput":
        """Create adapter from pre-loaded lines (for testing)."""
        instance = cls("/dev/null", parser)
        instance._lines = lines
        return instance

    def __aiter__(self) -> "SlowLogFileInput":
        return self

    async def __anext__(self) -> SlowQueryRecord:
        if self._records is None:
            if self._lines is None:
                self._lines = self._read_lines()
            self._records = self._parser.parse(self._lines)

        record = next(self._records, None)
        if record is None:
            raise StopAsyncIteration
        return record

    def _read_lines(self) -> list[str]:
        if not self._file_path.exists():
            raise FileNotFoundError(f"Slow-query log not found: {self._file_path}")
        with open(self._file_path, encoding="utf-8", errors="replace") as f:
            return f.readlines()
