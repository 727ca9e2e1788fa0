from slowquery_sentinel.domain import FiredAlert
from slowquery_sentinel.output.base import Notification


class ConsoleNotificationOutput:
    """Console output adapter for notifications."""

    def __init__(self, prefix: str = "[SLOW QUERY]", alert_prefix: str = "[ALERT]") -> None:
        self._prefix = prefix
        self._alert_prefix = alert_prefix

    @property
    def name(self) -> str:
        return "console"

    async def send(self, notification: Notification) -> None:
        if isinstance(notification, FiredAlert):
            print(f"{self._alert_prefix} [{notification.severity.name}] {notification.title}")
            for line in notification.message.splitlines():
                print(f"  {line}")
            return

        template_preview = notification.template_text[:80]
        if len(notification.template_text) > 80:
            template_preview += "..."

        print(
            f"{self._prefix} [{notification.severity.name}] {template_preview} "
            f"- avg {notification.avg_query_time:.2f}s over {notification.occurrence_count} "
            f"run(s) ({notification.reason.value})"
        )
        if notification.sample_sql:
            print(f"  sample: {notification.sample_sql}")
        if notification.analysis_report:
            print(f"  analysis: {notification.analysis_report}")
