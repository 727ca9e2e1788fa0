import asyncio
from typing import Iterable, Protocol, runtime_checkable

from slowquery_sentinel.domain.models import QueryTemplate, TemplateStatus


@runtime_checkable
class TemplateStore(Protocol):
    async def get(self, fingerprint: str) -> QueryTemplate | None: ...

    async def save(self, template: QueryTemplate) -> None: ...

    async def list_by_status(self, statuses: Iterable[TemplateStatus]) -> list[QueryTemplate]: ...


class InMemoryTemplateStore:
    """Dict-backed store; templates are never deleted."""

    def __init__(self, templates: Iterable[QueryTemplate] = ()) -> None:
        self._templates: dict[str, QueryTemplate] = {t.fingerprint: t for t in templates}
        self._lock = asyncio.Lock()

    async def get(self, fingerprint: str) -> QueryTemplate | None:
        return self._templates.get(fingerprint)

    async def save(self, template: QueryTemplate) -> None:
        async with self._lock:
            self._templates[template.fingerprint] = template

    async def list_by_status(self, statuses: Iterable[TemplateStatus]) -> list[QueryTemplate]:
        wanted = set(statuses)
        return [t for t in self._templates.values() if t.status in wanted]

    def __len__(self) -> int:
        return len(self._templates)
