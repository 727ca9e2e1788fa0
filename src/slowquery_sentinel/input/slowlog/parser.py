import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator

from slowquery_sentinel.domain import SlowQueryRecord


@dataclass(slots=True)
class _Entry:
    start_time: datetime | None = None
    user_host: str | None = None
    query_time: float | None = None
    lock_time: float = 0.0
    rows_sent: int = 0
    rows_examined: int = 0
    statement: list[str] = field(default_factory=list)


class MySqlSlowLogParser:
    """Parser for the MySQL slow-query log text format.

    An entry is a run of ``#`` header lines followed by the statement::

        # Time: 2024-01-15T10:30:45.123456Z
        # User@Host: app[app] @ localhost [127.0.0.1]  Id:    42
        # Query_time: 3.500000  Lock_time: 0.000100 Rows_sent: 10  Rows_examined: 500000
        use shop;
        SET timestamp=1705314645;
        SELECT * FROM orders WHERE customer_id = 42;

    ``use`` lines are only written when the schema changes, so the current
    database is carried from one entry to the next.
    """

    TIME_PATTERN = re.compile(r"^#\s*Time:\s*(?P<ts>.+?)\s*$")
    USER_HOST_PATTERN = re.compile(r"^#\s*User@Host:\s*(?P<user_host>.+?)(?:\s+Id:\s*\d+)?\s*$")
    STATS_PATTERN = re.compile(
        r"^#\s*Query_time:\s*(?P<query_time>[\d.]+)"
        r"\s+Lock_time:\s*(?P<lock_time>[\d.]+)"
        r"\s+Rows_sent:\s*(?P<rows_sent>\d+)"
        r"\s+Rows_examined:\s*(?P<rows_examined>\d+)"
    )
    USE_PATTERN = re.compile(r"^use\s+`?(?P<db>[^`;\s]+)`?\s*;\s*$", re.IGNORECASE)
    SET_TIMESTAMP_PATTERN = re.compile(
        r"^SET\s+timestamp\s*=\s*(?P<epoch>\d+)\s*;\s*$", re.IGNORECASE
    )

    # Server banner lines written at startup and on log rotation.
    PREAMBLE_PATTERN = re.compile(r"^(?:\S+, Version: |Tcp port: |Time\s+Id\s+Command\s+Argument)")

    def __init__(self) -> None:
        self._db_name: str | None = None

    def parse(self, lines: Iterable[str]) -> Iterator[SlowQueryRecord]:
        entry: _Entry | None = None

        for raw in lines:
            line = raw.rstrip("\r\n")
            if not line.strip() or self.PREAMBLE_PATTERN.match(line):
                continue

            if line.startswith("#"):
                if entry is not None and entry.statement:
                    record = self._finish(entry)
                    if record is not None:
                        yield record
                    entry = None
                if entry is None:
                    entry = _Entry()
                self._parse_header(line, entry)
                continue

            if entry is None:
                continue

            use = self.USE_PATTERN.match(line)
            if use is not None and not entry.statement:
                self._db_name = use.group("db")
                continue

            set_ts = self.SET_TIMESTAMP_PATTERN.match(line)
            if set_ts is not None and not entry.statement:
                if entry.start_time is None:
                    epoch = int(set_ts.group("epoch"))
                    entry.start_time = datetime.fromtimestamp(epoch, tz=timezone.utc)
                continue

            entry.statement.append(line)

        if entry is not None and entry.statement:
            record = self._finish(entry)
            if record is not None:
                yield record

    def _parse_header(self, line: str, entry: _Entry) -> None:
        match = self.TIME_PATTERN.match(line)
        if match is not None:
            entry.start_time = self._parse_time(match.group("ts"))
            return

        match = self.USER_HOST_PATTERN.match(line)
        if match is not None:
            entry.user_host = match.group("user_host")
            return

        match = self.STATS_PATTERN.match(line)
        if match is not None:
            entry.query_time = float(match.group("query_time"))
            entry.lock_time = float(match.group("lock_time"))
            entry.rows_sent = int(match.group("rows_sent"))
            entry.rows_examined = int(match.group("rows_examined"))

    def _finish(self, entry: _Entry) -> SlowQueryRecord | None:
        sql = "\n".join(entry.statement).strip()
        if entry.query_time is None or not sql:
            return None
        return SlowQueryRecord(
            sql=sql,
            query_time=entry.query_time,
            lock_time=entry.lock_time,
            rows_sent=entry.rows_sent,
            rows_examined=entry.rows_examined,
            db_name=self._db_name,
            user_host=entry.user_host,
            start_time=entry.start_time,
        )

    def _parse_time(self, value: str) -> datetime | None:
        # MySQL 5.7+: 2024-01-15T10:30:45.123456Z; older: 240115 10:30:45
        try:
            return datetime.strptime(value, "%y%m%d %H:%M:%S")
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
