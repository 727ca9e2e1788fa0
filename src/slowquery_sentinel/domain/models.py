"""Core domain models for slow-query tracking and alerting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Mapping


class Severity(IntEnum):
    """Severity levels, ordered for comparison (higher value = higher severity)."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @classmethod
    def parse(cls, value: "str | int | Severity") -> "Severity":
        if isinstance(value, Severity):
            return value
        if isinstance(value, int):
            return cls(value)
        name = value.strip().upper()
        return _SEVERITY_ALIASES.get(name) or cls[name]


_SEVERITY_ALIASES: dict[str, Severity] = {
    "INFO": Severity.LOW,
    "WARNING": Severity.MEDIUM,
}


class TemplateStatus(str, Enum):
    PENDING = "PENDING"
    ANALYZING = "ANALYZING"
    WAITING = "WAITING"
    SENT = "SENT"
    ABANDONED = "ABANDONED"

    @property
    def in_flight(self) -> bool:
        return self in _IN_FLIGHT


_IN_FLIGHT = frozenset({TemplateStatus.PENDING, TemplateStatus.ANALYZING, TemplateStatus.WAITING})

# Forward order of the lifecycle; ABANDONED sits outside it.
_STATUS_ORDER: dict[TemplateStatus, int] = {
    TemplateStatus.PENDING: 0,
    TemplateStatus.ANALYZING: 1,
    TemplateStatus.WAITING: 2,
    TemplateStatus.SENT: 3,
}


@dataclass(frozen=True, slots=True)
class SlowQueryRecord:
    """A single slow-query row as produced by the log reader."""

    sql: str
    query_time: float = 0.0
    lock_time: float = 0.0
    rows_sent: int = 0
    rows_examined: int = 0
    db_name: str | None = None
    user_host: str | None = None
    start_time: datetime | None = None

    def is_full_table_scan(self) -> bool:
        return self.rows_examined > self.rows_sent * 100 or self.rows_examined > 10_000

    def is_lock_heavy(self) -> bool:
        return self.lock_time > 1.0


@dataclass(slots=True)
class QueryTemplate:
    """One shape of SQL query seen repeatedly, with its running statistics.

    ``fingerprint`` is the identity key and is derived from ``template_text``.
    ``last_notified_at`` and ``last_notified_avg_time`` change only through
    :meth:`update_notification_info`.
    """

    fingerprint: str
    template_text: str
    first_seen_at: datetime
    last_seen_at: datetime
    status: TemplateStatus = TemplateStatus.PENDING
    last_notified_at: datetime | None = None
    last_notified_avg_time: float | None = None
    db_name: str | None = None
    table_name: str | None = None
    sample_sql: str | None = None
    analysis_report: str | None = None
    occurrence_count: int = 0
    avg_query_time: float = 0.0
    max_query_time: float = 0.0
    avg_lock_time: float = 0.0
    max_lock_time: float = 0.0
    avg_rows_sent: float = 0.0
    max_rows_sent: int = 0
    avg_rows_examined: float = 0.0
    max_rows_examined: int = 0

    def record_sample(self, record: SlowQueryRecord, seen_at: datetime) -> None:
        """Fold one more sighting into the running aggregates."""
        n = self.occurrence_count + 1
        self.avg_query_time += (record.query_time - self.avg_query_time) / n
        self.avg_lock_time += (record.lock_time - self.avg_lock_time) / n
        self.avg_rows_sent += (record.rows_sent - self.avg_rows_sent) / n
        self.avg_rows_examined += (record.rows_examined - self.avg_rows_examined) / n
        self.max_query_time = max(self.max_query_time, record.query_time)
        self.max_lock_time = max(self.max_lock_time, record.lock_time)
        self.max_rows_sent = max(self.max_rows_sent, record.rows_sent)
        self.max_rows_examined = max(self.max_rows_examined, record.rows_examined)
        self.occurrence_count = n
        if seen_at > self.last_seen_at:
            self.last_seen_at = seen_at

    def advance(self, status: TemplateStatus) -> bool:
        """Move forward in the lifecycle. Backward moves and moves out of ABANDONED are ignored."""
        if self.status is TemplateStatus.ABANDONED or status is TemplateStatus.ABANDONED:
            return False
        if _STATUS_ORDER[status] <= _STATUS_ORDER[self.status]:
            return False
        self.status = status
        return True

    def abandon(self) -> bool:
        if not self.status.in_flight:
            return False
        self.status = TemplateStatus.ABANDONED
        return True

    def update_notification_info(self, current_avg_time: float, notified_at: datetime) -> None:
        self.last_notified_at = notified_at
        self.last_notified_avg_time = current_avg_time


@dataclass(frozen=True, slots=True)
class MetricSnapshot:
    """Numeric measurements captured atomically at one instant."""

    values: Mapping[str, Any]
    captured_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def of(cls, captured_at: datetime | None = None, **values: Any) -> "MetricSnapshot":
        if captured_at is None:
            return cls(values=values)
        return cls(values=values, captured_at=captured_at)

    def get(self, name: str) -> float | None:
        value = self.values.get(name)
        if value is None:
            return None
        if isinstance(value, bool):
            return float(value)
        if isinstance(value, int | float):
            return float(value)
        return float(str(value))

    def has(self, name: str) -> bool:
        return self.values.get(name) is not None


class RuleType(str, Enum):
    THRESHOLD = "THRESHOLD"
    ANOMALY = "ANOMALY"
    TREND = "TREND"


class ComparisonOperator(str, Enum):
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    EQ = "="

    def compare(self, value: float, threshold: float) -> bool:
        if self is ComparisonOperator.GT:
            return value > threshold
        if self is ComparisonOperator.GE:
            return value >= threshold
        if self is ComparisonOperator.LT:
            return value < threshold
        if self is ComparisonOperator.LE:
            return value <= threshold
        return value == threshold


@dataclass(frozen=True, slots=True)
class FiredAlert:
    """A system-health alert produced by one rule on one snapshot."""

    rule_id: int | str
    rule_name: str
    severity: Severity
    message: str
    metric_name: str
    metric_value: float
    threshold_value: float | None = None
    details: dict[str, Any] | None = None
    fired_at: datetime = field(default_factory=datetime.now)

    @property
    def title(self) -> str:
        return f"{self.rule_name}: {self.metric_name}={self.metric_value:.2f}"


class NotifyDecision(str, Enum):
    FIRST_CONTACT = "FIRST_CONTACT"
    DEGRADED = "DEGRADED"
    COOLDOWN_ELAPSED = "COOLDOWN_ELAPSED"
    SUPPRESSED = "SUPPRESSED"

    @property
    def notify(self) -> bool:
        return self is not NotifyDecision.SUPPRESSED


@dataclass(frozen=True, slots=True)
class TemplateNotification:
    """A notification about one slow-query template."""

    fingerprint: str
    template_text: str
    severity: Severity
    avg_query_time: float
    occurrence_count: int
    reason: NotifyDecision
    sample_sql: str | None = None
    db_name: str | None = None
    analysis_report: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def title(self) -> str:
        return (
            f"slow query {self.fingerprint[:8]} "
            f"avg={self.avg_query_time:.2f}s x{self.occurrence_count}"
        )
