"""Runtime configuration, env-var driven.

Every setting has a default, so ``SentinelConfig()`` works with an empty
environment. Out-of-range notification settings raise ``ConfigurationError``.

    SENTINEL_SEVERITY_THRESHOLD       seconds, 1.0-10.0 (default 3.0)
    SENTINEL_COOLDOWN_HOURS           hours, 1-168 (default 1)
    SENTINEL_DEGRADATION_MULTIPLIER   1.1-10.0 (default 1.5)
    SENTINEL_SEVERITY_MEDIUM/HIGH/CRITICAL   bucket edges in seconds (3/5/10)
    SENTINEL_MAX_RETRIES              transient retries (default 3)
    SENTINEL_RETRY_BASE_DELAY         seconds (default 1.0)
    SENTINEL_MASK_FAIL_OPEN           true | false (default true)
    SENTINEL_LOG_LEVEL                default INFO
    SENTINEL_LOG_FORMAT               json (default) | console
"""

import os
from dataclasses import dataclass, field

from slowquery_sentinel.errors.exceptions import ConfigurationError
from slowquery_sentinel.errors.retry import RetryPolicy
from slowquery_sentinel.notify.severity import SeverityPolicy
from slowquery_sentinel.sql.masking import SqlMasker


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "on", "yes")


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class NotificationSettings:
    severity_threshold: float = field(
        default_factory=lambda: float(os.environ.get("SENTINEL_SEVERITY_THRESHOLD", "3.0"))
    )
    cooldown_hours: int = field(
        default_factory=lambda: int(os.environ.get("SENTINEL_COOLDOWN_HOURS", "1"))
    )
    degradation_multiplier: float = field(
        default_factory=lambda: float(os.environ.get("SENTINEL_DEGRADATION_MULTIPLIER", "1.5"))
    )

    def __post_init__(self) -> None:
        _check_range("severity_threshold", self.severity_threshold, 1.0, 10.0)
        _check_range("cooldown_hours", self.cooldown_hours, 1, 168)
        _check_range("degradation_multiplier", self.degradation_multiplier, 1.1, 10.0)


@dataclass(frozen=True)
class SentinelConfig:
    notification: NotificationSettings = field(default_factory=NotificationSettings)

    max_retries: int = field(
        default_factory=lambda: int(os.environ.get("SENTINEL_MAX_RETRIES", "3"))
    )
    retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("SENTINEL_RETRY_BASE_DELAY", "1.0"))
    )

    mask_fail_open: bool = field(
        default_factory=lambda: _env_flag("SENTINEL_MASK_FAIL_OPEN", "true")
    )

    log_level: str = field(default_factory=lambda: os.environ.get("SENTINEL_LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.environ.get("SENTINEL_LOG_FORMAT", "json")
    )  # "json" | "console"

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_base_delay < 0:
            raise ConfigurationError(
                f"retry_base_delay must be >= 0, got {self.retry_base_delay}"
            )
        if self.log_format not in ("json", "console"):
            raise ConfigurationError(f"log_format must be json or console, got {self.log_format!r}")

    @classmethod
    def from_env(cls) -> "SentinelConfig":
        return cls()

    def severity_policy(self) -> SeverityPolicy:
        return SeverityPolicy(notify_threshold=self.notification.severity_threshold)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_retries=self.max_retries, base_delay=self.retry_base_delay)

    def masker(self) -> SqlMasker:
        return SqlMasker(fail_open=self.mask_fail_open)
