import re
from datetime import datetime

import sqlparse
import structlog

from slowquery_sentinel.domain.models import QueryTemplate, SlowQueryRecord, TemplateStatus
from slowquery_sentinel.sql.fingerprint import Fingerprint
from slowquery_sentinel.templates.store import TemplateStore

logger = structlog.get_logger(__name__)

_TABLE_AFTER = re.compile(
    r"\b(?:FROM|UPDATE)\s+((?:`[^`]+`|[\w$]+)(?:\.(?:`[^`]+`|[\w$]+))?)", re.IGNORECASE
)


def extract_table_name(sql: str | None) -> str | None:
    """First table named after ``FROM`` or ``UPDATE``, without quoting or schema."""
    if not sql:
        return None
    match = _TABLE_AFTER.search(sqlparse.format(sql, strip_comments=True))
    if match is None:
        return None
    name = match.group(1).split(".")[-1].strip("`")
    return name or None


class TemplateRegistry:
    """Finds or creates templates and keeps their aggregates current."""

    def __init__(self, store: TemplateStore) -> None:
        self.store = store

    async def observe(
        self,
        fingerprint: Fingerprint,
        record: SlowQueryRecord,
        masked_sql: str,
        now: datetime | None = None,
    ) -> tuple[QueryTemplate, bool]:
        now = now or datetime.now()
        template = await self.store.get(fingerprint.hash)
        created = template is None
        if template is None:
            template = QueryTemplate(
                fingerprint=fingerprint.hash,
                template_text=fingerprint.template,
                first_seen_at=now,
                last_seen_at=now,
                db_name=record.db_name,
                table_name=extract_table_name(masked_sql)
                or extract_table_name(fingerprint.template),
            )
            logger.info(
                "template.created",
                fingerprint=fingerprint.hash,
                table=template.table_name,
                db=record.db_name,
            )

        template.record_sample(record, now)
        template.sample_sql = masked_sql
        if record.db_name:
            template.db_name = record.db_name
        await self.store.save(template)
        return template, created

    async def abandon_in_flight(self) -> int:
        """Startup housekeeping: templates left mid-flight by a previous run are abandoned."""
        in_flight = await self.store.list_by_status(
            (TemplateStatus.PENDING, TemplateStatus.ANALYZING, TemplateStatus.WAITING)
        )
        count = 0
        for template in in_flight:
            if template.abandon():
                await self.store.save(template)
                count += 1
        if count:
            logger.info("template.abandoned", count=count)
        return count

    @staticmethod
    def extract_table_name(sql: str | None) -> str | None:
        return extract_table_name(sql)
