from collections.abc import AsyncIterable, Sequence
from datetime import datetime
from typing import Callable

import structlog

from slowquery_sentinel.alerts import AlertRuleEngine
from slowquery_sentinel.core.delivery import fan_out
from slowquery_sentinel.domain import AlertRule, FiredAlert, MetricSnapshot
from slowquery_sentinel.errors.classifier import ErrorClassifier
from slowquery_sentinel.output import NotificationOutput

logger = structlog.get_logger(__name__)


class HealthMonitor:
    """Feeds metric snapshots to the rule engine and fans fired alerts out."""

    def __init__(
        self,
        engine: AlertRuleEngine,
        rules: Sequence[AlertRule],
        outputs: Sequence[NotificationOutput],
        classifier: ErrorClassifier | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._engine = engine
        self._rules = tuple(rules)
        self._outputs = tuple(outputs)
        self._classifier = classifier or ErrorClassifier()
        self._clock = clock

    @property
    def rules(self) -> tuple[AlertRule, ...]:
        return self._rules

    def set_rules(self, rules: Sequence[AlertRule]) -> None:
        self._rules = tuple(rules)

    async def check(
        self, snapshot: MetricSnapshot, now: datetime | None = None
    ) -> list[FiredAlert]:
        alerts = self._engine.evaluate(self._rules, snapshot, now or snapshot.captured_at)
        for alert in alerts:
            await fan_out(
                self._outputs,
                alert,
                self._classifier,
                logger.bind(rule=alert.rule_name),
            )
        return alerts

    async def run(self, snapshots: AsyncIterable[MetricSnapshot], cleanup_every: int = 60) -> int:
        """Check every snapshot; sweep the cooldown cache every ``cleanup_every`` passes."""
        fired = 0
        passes = 0
        async for snapshot in snapshots:
            fired += len(await self.check(snapshot))
            passes += 1
            if cleanup_every and passes % cleanup_every == 0:
                self._engine.cleanup(self._rules, self._clock())
        return fired
