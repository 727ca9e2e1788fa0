import asyncio
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Awaitable, Callable

import structlog

from slowquery_sentinel.config import NotificationSettings
from slowquery_sentinel.core.analyzer import TemplateAnalyzer
from slowquery_sentinel.core.delivery import fan_out
from slowquery_sentinel.domain import (
    QueryTemplate,
    SlowQueryRecord,
    TemplateNotification,
    TemplateStatus,
)
from slowquery_sentinel.errors.classifier import ErrorClassifier
from slowquery_sentinel.errors.exceptions import (
    BlockingError,
    PermanentError,
    RetriesExhaustedError,
)
from slowquery_sentinel.errors.retry import RetryPolicy, run_with_retry
from slowquery_sentinel.input import SlowQueryInput
from slowquery_sentinel.notify import KeyedLocks, SeverityPolicy, TemplateNotificationGate
from slowquery_sentinel.output import NotificationOutput
from slowquery_sentinel.sql import Fingerprinter, SqlMasker
from slowquery_sentinel.templates import TemplateRegistry

logger = structlog.get_logger(__name__)


class SlowQueryPipeline:
    """Turns a stream of slow-query records into gated template notifications.

    Masking and fingerprinting run independently on each raw statement. Work on
    one fingerprint (observe, analyze, decide, send, record) is serialized by a
    per-fingerprint lock; different fingerprints proceed concurrently when
    :meth:`process` is called from several tasks.
    """

    def __init__(
        self,
        input_source: SlowQueryInput,
        registry: TemplateRegistry,
        outputs: Sequence[NotificationOutput],
        settings: NotificationSettings | None = None,
        severity: SeverityPolicy | None = None,
        analyzer: TemplateAnalyzer | None = None,
        masker: SqlMasker | None = None,
        fingerprinter: Fingerprinter | None = None,
        retry_policy: RetryPolicy | None = None,
        classifier: ErrorClassifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._input = input_source
        self._registry = registry
        self._outputs = tuple(outputs)
        self._settings = settings or NotificationSettings()
        self._severity = severity or SeverityPolicy(
            notify_threshold=self._settings.severity_threshold
        )
        self._analyzer = analyzer
        self._masker = masker or SqlMasker()
        self._fingerprinter = fingerprinter or Fingerprinter()
        self._retry_policy = retry_policy or RetryPolicy()
        self._classifier = classifier or ErrorClassifier()
        self._clock = clock
        self._sleep = sleep
        self._gate = TemplateNotificationGate()
        self._locks = KeyedLocks()

    async def run(self, housekeeping: bool = True) -> int:
        """Consume the input until exhausted. Returns the number of notifications sent."""
        if housekeeping:
            await self._registry.abandon_in_flight()

        sent = 0
        async for record in self._input:
            try:
                notification = await self.process(record)
            except BlockingError:
                raise
            except Exception as exc:
                classification = self._classifier.classify_exception(exc)
                if classification.circuit_break:
                    raise BlockingError(classification) from exc
                logger.error(
                    "pipeline.record_failed",
                    kind=classification.kind.value,
                    error=str(exc),
                )
                continue
            if notification is not None:
                sent += 1
        return sent

    async def process(self, record: SlowQueryRecord) -> TemplateNotification | None:
        if not record.sql or record.sql.isspace():
            logger.debug("pipeline.blank_sql")
            return None

        masked_sql = self._masker.mask(record.sql)
        fingerprint = self._fingerprinter.fingerprint(record.sql)
        log = logger.bind(fingerprint=fingerprint.hash)

        async with self._locks.hold(fingerprint.hash):
            now = self._clock()
            template, created = await self._registry.observe(fingerprint, record, masked_sql, now)

            if template.status is TemplateStatus.ABANDONED:
                log.debug("pipeline.abandoned_template")
                return None

            template.advance(TemplateStatus.ANALYZING)
            if self._analyzer is not None and template.analysis_report is None:
                template.analysis_report = await self._analyze(self._analyzer, template, log)

            avg = template.avg_query_time
            if not self._severity.is_worth_notifying(avg):
                template.advance(TemplateStatus.SENT)
                await self._registry.store.save(template)
                log.debug("pipeline.below_threshold", avg_query_time=avg)
                return None

            decision = self._gate.decide(
                template,
                self._settings.cooldown_hours,
                self._settings.degradation_multiplier,
                avg,
                now,
            )
            if not decision.notify:
                await self._registry.store.save(template)
                log.debug("pipeline.suppressed", avg_query_time=avg)
                return None

            template.advance(TemplateStatus.WAITING)
            notification = TemplateNotification(
                fingerprint=template.fingerprint,
                template_text=template.template_text,
                severity=self._severity.bucket(avg),
                avg_query_time=avg,
                occurrence_count=template.occurrence_count,
                reason=decision,
                sample_sql=template.sample_sql,
                db_name=template.db_name,
                analysis_report=template.analysis_report,
                created_at=now,
            )

            delivered = await fan_out(self._outputs, notification, self._classifier, log)
            if delivered:
                self._gate.update_notification_info(template, avg, now)
                template.advance(TemplateStatus.SENT)
                log.info(
                    "pipeline.notified",
                    reason=decision.value,
                    severity=notification.severity.name,
                    outputs=delivered,
                    new_template=created,
                )
            else:
                log.warning("pipeline.undelivered", reason=decision.value)
            await self._registry.store.save(template)
            return notification if delivered else None

    async def _analyze(
        self, analyzer: TemplateAnalyzer, template: QueryTemplate, log: Any
    ) -> str | None:
        try:
            return await run_with_retry(
                lambda: analyzer.analyze(template),
                policy=self._retry_policy,
                classifier=self._classifier,
                sleep=self._sleep,
                log=log,
            )
        except (PermanentError, RetriesExhaustedError) as exc:
            log.warning(
                "pipeline.analysis_degraded",
                kind=exc.classification.kind.value,
                strategy=exc.classification.strategy.value,
            )
            return None
