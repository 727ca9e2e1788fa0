import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Protocol, runtime_checkable

from slowquery_sentinel.domain import FiredAlert, TemplateNotification

Notification = TemplateNotification | FiredAlert


@runtime_checkable
class NotificationOutput(Protocol):
    """Protocol for notification destinations."""

    @property
    def name(self) -> str:
        ...

    async def send(self, notification: Notification) -> None:
        ...


def notification_kind(notification: Notification) -> str:
    return "alert" if isinstance(notification, FiredAlert) else "slow_query"


def serialize_notification(notification: Notification) -> str:
    payload = {"kind": notification_kind(notification), "title": notification.title}
    payload.update(asdict(notification))
    return json.dumps(payload, default=_json_default)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, IntEnum):
        return int(obj)
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
