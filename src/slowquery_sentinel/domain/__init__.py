"""Domain models for slow-query tracking and alerting."""

from slowquery_sentinel.domain.models import (
    ComparisonOperator,
    FiredAlert,
    MetricSnapshot,
    NotifyDecision,
    QueryTemplate,
    RuleType,
    Severity,
    SlowQueryRecord,
    TemplateNotification,
    TemplateStatus,
)
from slowquery_sentinel.domain.rules import AlertRule

__all__ = [
    "AlertRule",
    "ComparisonOperator",
    "FiredAlert",
    "MetricSnapshot",
    "NotifyDecision",
    "QueryTemplate",
    "RuleType",
    "Severity",
    "SlowQueryRecord",
    "TemplateNotification",
    "TemplateStatus",
]
