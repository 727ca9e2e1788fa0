from slowquery_sentinel.output.base import Notification, NotificationOutput, serialize_notification
from slowquery_sentinel.output.console import ConsoleNotificationOutput
from slowquery_sentinel.output.sqs import SqsNotificationOutput
from slowquery_sentinel.output.webhook import WebhookNotificationOutput

__all__ = [
    "Notification",
    "NotificationOutput",
    "serialize_notification",
    "ConsoleNotificationOutput",
    "SqsNotificationOutput",
    "WebhookNotificationOutput",
]
