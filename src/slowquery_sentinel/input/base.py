from typing import Protocol, Self, runtime_checkable

from slowquery_sentinel.domain import SlowQueryRecord


@runtime_checkable
class SlowQueryInput(Protocol):
    """Protocol for async slow-query record sources."""

    def __aiter__(self) -> Self:
        ...

    async def __anext__(self) -> SlowQueryRecord:
        ...
