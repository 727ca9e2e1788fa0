import os
from dataclasses import dataclass, field

from slowquery_sentinel.domain.models import Severity
from slowquery_sentinel.errors.exceptions import ConfigurationError

# Averages at or above this are CRITICAL no matter how the thresholds are tuned.
CRITICAL_FLOOR_SECONDS = 10.0


@dataclass(frozen=True)
class SeverityPolicy:
    """Buckets a template's average duration (seconds) into a :class:`Severity`."""

    medium_seconds: float = field(
        default_factory=lambda: float(os.environ.get("SENTINEL_SEVERITY_MEDIUM", "3.0"))
    )
    high_seconds: float = field(
        default_factory=lambda: float(os.environ.get("SENTINEL_SEVERITY_HIGH", "5.0"))
    )
    critical_seconds: float = field(
        default_factory=lambda: float(os.environ.get("SENTINEL_SEVERITY_CRITICAL", "10.0"))
    )
    notify_threshold: float = 3.0

    def __post_init__(self) -> None:
        if not 0 < self.medium_seconds <= self.high_seconds <= self.critical_seconds:
            raise ConfigurationError(
                "severity thresholds must satisfy 0 < medium <= high <= critical, got "
                f"{self.medium_seconds}/{self.high_seconds}/{self.critical_seconds}"
            )

    def bucket(self, avg_query_time: float | None) -> Severity:
        if avg_query_time is None:
            return Severity.LOW
        if avg_query_time >= CRITICAL_FLOOR_SECONDS or avg_query_time >= self.critical_seconds:
            return Severity.CRITICAL
        if avg_query_time >= self.high_seconds:
            return Severity.HIGH
        if avg_query_time >= self.medium_seconds:
            return Severity.MEDIUM
        return Severity.LOW

    def is_worth_notifying(self, avg_query_time: float | None) -> bool:
        return avg_query_time is not None and avg_query_time >= self.notify_threshold
