from typing import Sequence

from slowquery_sentinel.domain import SlowQueryRecord


class ManualInput:
    """Manual input source for programmatically feeding slow-query records."""

    def __init__(self, records: Sequence[SlowQueryRecord]) -> None:
        self._records: tuple[SlowQueryRecord, ...] = tuple(records)
        self._index: int = 0

    @classmethod
    def from_sql(cls, *statements: str, query_time: float = 1.0) -> "ManualInput":
        return cls([SlowQueryRecord(sql=sql, query_time=query_time) for sql in statements])

    def __aiter__(self) -> "ManualInput":
        return self

    async def __anext__(self) -> SlowQueryRecord:
        if self._index >= len(self._records):
            raise StopAsyncIteration
        record = self._records[self._index]
        self._index += 1
        return record
