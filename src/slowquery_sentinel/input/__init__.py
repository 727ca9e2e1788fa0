from slowquery_sentinel.input.base import SlowQueryInput
from slowquery_sentinel.input.manual import ManualInput
from slowquery_sentinel.input.slowlog import MySqlSlowLogParser, SlowLogFileInput

__all__ = [
    "SlowQueryInput",
    "ManualInput",
    "MySqlSlowLogParser",
    "SlowLogFileInput",
]
