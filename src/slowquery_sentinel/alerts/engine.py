from datetime import datetime, timedelta
from typing import Any, Iterable

import structlog

from slowquery_sentinel.alerts.state import RuleFireState
from slowquery_sentinel.domain.models import FiredAlert, MetricSnapshot, RuleType
from slowquery_sentinel.domain.rules import AlertRule
from slowquery_sentinel.errors.exceptions import RuleConfigurationError

logger = structlog.get_logger(__name__)


class AlertRuleEngine:
    """Evaluates alert rules against metric snapshots.

    A rule that fires is silenced for its ``cooldown_minutes``. A rule that
    fails on bad data is logged and skipped without affecting the rest of
    the pass; configuration errors propagate.
    """

    def __init__(self, state: RuleFireState | None = None) -> None:
        self.state = state if state is not None else RuleFireState()

    def evaluate(
        self,
        rules: Iterable[AlertRule],
        snapshot: MetricSnapshot,
        now: datetime | None = None,
    ) -> list[FiredAlert]:
        now = now or datetime.now()
        fired: list[FiredAlert] = []

        for rule in rules:
            log = logger.bind(rule=rule.name, metric=rule.metric_name)
            try:
                alert = self._evaluate_rule(rule, snapshot, now, log)
            except RuleConfigurationError:
                raise
            except Exception as exc:
                log.error("alert.rule_failed", error=repr(exc))
                continue
            if alert is not None:
                fired.append(alert)

        return fired

    def cleanup(self, rules: Iterable[AlertRule], now: datetime | None = None) -> int:
        removed = self.state.prune(
            ((rule.id, _cooldown(rule)) for rule in rules), now or datetime.now()
        )
        if removed:
            logger.debug("alert.cache_pruned", removed=removed)
        return removed

    def _evaluate_rule(
        self, rule: AlertRule, snapshot: MetricSnapshot, now: datetime, log: Any
    ) -> FiredAlert | None:
        if not rule.enabled:
            return None

        cooldown = _cooldown(rule)
        if self.state.in_cooldown(rule.id, cooldown, now):
            log.debug("alert.in_cooldown")
            return None

        value = snapshot.get(rule.metric_name)
        if value is None:
            log.debug("alert.metric_missing")
            return None

        if not self.is_triggered(rule, value):
            return None

        if not self.state.claim(rule.id, cooldown, now):
            log.debug("alert.claim_lost")
            return None

        alert = FiredAlert(
            rule_id=rule.id,
            rule_name=rule.label,
            severity=rule.severity,
            message=build_alert_message(rule, value),
            metric_name=rule.metric_name,
            metric_value=value,
            threshold_value=rule.threshold_value,
            details=dict(snapshot.values),
            fired_at=now,
        )
        log.warning(
            "alert.fired",
            severity=rule.severity.name,
            value=value,
            threshold=rule.threshold_value,
        )
        return alert

    @staticmethod
    def is_triggered(rule: AlertRule, value: float) -> bool:
        if rule.rule_type is RuleType.THRESHOLD:
            if rule.operator is None or rule.threshold_value is None:
                raise RuleConfigurationError("THRESHOLD rule without operator/threshold", rule.name)
            return rule.operator.compare(value, rule.threshold_value)
        if rule.rule_type is RuleType.ANOMALY:
            if rule.threshold_value is None:
                return value != 0
            return value == rule.threshold_value
        # TREND needs a time series, which a single snapshot cannot provide.
        return False


def build_alert_message(rule: AlertRule, value: float) -> str:
    message = f"Alert rule [{rule.label}] fired\nmetric: {rule.metric_name} = {value:.2f}"
    if rule.threshold_value is not None:
        operator = rule.operator.value if rule.operator is not None else "="
        message += f" (threshold: {rule.threshold_value} {operator})"
    if rule.description:
        message += f"\ndescription: {rule.description}"
    return message


def _cooldown(rule: AlertRule) -> timedelta:
    return timedelta(minutes=rule.cooldown_minutes)
