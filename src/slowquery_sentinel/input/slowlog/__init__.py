from slowquery_sentinel.input.slowlog.adapter import SlowLogFileInput
from slowquery_sentinel.input.slowlog.parser import MySqlSlowLogParser

__all__ = ["MySqlSlowLogParser", "SlowLogFileInput"]
