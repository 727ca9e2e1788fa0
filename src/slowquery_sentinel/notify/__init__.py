from slowquery_sentinel.domain.models import NotifyDecision
from slowquery_sentinel.notify.gate import TemplateNotificationGate
from slowquery_sentinel.notify.locks import KeyedLocks
from slowquery_sentinel.notify.severity import CRITICAL_FLOOR_SECONDS, SeverityPolicy

__all__ = [
    "TemplateNotificationGate",
    "NotifyDecision",
    "SeverityPolicy",
    "CRITICAL_FLOOR_SECONDS",
    "KeyedLocks",
]
