"""Per-template notification gating: first contact, escalation on degradation, cooldown."""

from datetime import datetime, timedelta

from slowquery_sentinel.domain.models import NotifyDecision, QueryTemplate


class TemplateNotificationGate:
    """Decides whether a template's current state warrants a notification.

    The gate holds no state of its own. Callers must serialize decide/send/update
    for one fingerprint (see :class:`~slowquery_sentinel.notify.locks.KeyedLocks`);
    otherwise two concurrent first contacts can both be let through.
    """

    def decide(
        self,
        template: QueryTemplate,
        cooldown_hours: float,
        degradation_multiplier: float,
        current_avg_time: float | None,
        now: datetime | None = None,
    ) -> NotifyDecision:
        if template.last_notified_at is None:
            return NotifyDecision.FIRST_CONTACT

        previous = template.last_notified_avg_time
        if current_avg_time is not None and previous is not None and previous > 0:
            if current_avg_time / previous >= degradation_multiplier:
                return NotifyDecision.DEGRADED

        now = now or datetime.now()
        if now - template.last_notified_at >= timedelta(hours=cooldown_hours):
            return NotifyDecision.COOLDOWN_ELAPSED

        return NotifyDecision.SUPPRESSED

    def should_notify(
        self,
        template: QueryTemplate,
        cooldown_hours: float,
        degradation_multiplier: float,
        current_avg_time: float | None,
        now: datetime | None = None,
    ) -> bool:
        return self.decide(
            template, cooldown_hours, degradation_multiplier, current_avg_time, now
        ).notify

    def update_notification_info(
        self,
        template: QueryTemplate,
        current_avg_time: float,
        now: datetime | None = None,
    ) -> None:
        template.update_notification_info(current_avg_time, now or datetime.now())
