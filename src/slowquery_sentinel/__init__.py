__version__ = "0.1.0"

from slowquery_sentinel.alerts import AlertRuleEngine, RuleFireState
from slowquery_sentinel.config import NotificationSettings, SentinelConfig
from slowquery_sentinel.core import HealthMonitor, SlowQueryPipeline, TemplateAnalyzer
from slowquery_sentinel.domain import (
    AlertRule,
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
from slowquery_sentinel.errors import (
    ErrorCategory,
    ErrorClassification,
    ErrorClassifier,
    ErrorKind,
    RecoveryStrategy,
    classify,
)
from slowquery_sentinel.input import ManualInput, SlowLogFileInput, SlowQueryInput
from slowquery_sentinel.log import configure_logging
from slowquery_sentinel.notify import KeyedLocks, SeverityPolicy, TemplateNotificationGate
from slowquery_sentinel.output import ConsoleNotificationOutput, NotificationOutput
from slowquery_sentinel.sql import Fingerprinter, SqlMasker, fingerprint, mask
from slowquery_sentinel.templates import InMemoryTemplateStore, TemplateRegistry

__all__ = [
    "__version__",
    "SlowQueryPipeline",
    "HealthMonitor",
    "TemplateAnalyzer",
    "SlowQueryRecord",
    "QueryTemplate",
    "TemplateStatus",
    "Severity",
    "MetricSnapshot",
    "AlertRule",
    "RuleType",
    "ComparisonOperator",
    "FiredAlert",
    "NotifyDecision",
    "TemplateNotification",
    "Fingerprinter",
    "fingerprint",
    "SqlMasker",
    "mask",
    "ErrorClassifier",
    "ErrorClassification",
    "ErrorCategory",
    "ErrorKind",
    "RecoveryStrategy",
    "classify",
    "TemplateNotificationGate",
    "SeverityPolicy",
    "KeyedLocks",
    "AlertRuleEngine",
    "RuleFireState",
    "InMemoryTemplateStore",
    "TemplateRegistry",
    "SlowQueryInput",
    "ManualInput",
    "SlowLogFileInput",
    "NotificationOutput",
    "ConsoleNotificationOutput",
    "SentinelConfig",
    "NotificationSettings",
    "configure_logging",
]
