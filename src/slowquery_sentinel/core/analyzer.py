from typing import Protocol, runtime_checkable

from slowquery_sentinel.domain import QueryTemplate


@runtime_checkable
class TemplateAnalyzer(Protocol):
    """Produces a human-readable diagnosis for a slow-query template.

    Implementations typically call out to a model or run EXPLAIN against the
    monitored database; failures are classified and retried by the caller.
    """

    async def analyze(self, template: QueryTemplate) -> str:
        ...
