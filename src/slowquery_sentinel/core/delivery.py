import asyncio
from typing import Any, Sequence

import structlog

from slowquery_sentinel.errors.classifier import ErrorClassifier
from slowquery_sentinel.output.base import Notification, NotificationOutput

logger = structlog.get_logger(__name__)


async def fan_out(
    outputs: Sequence[NotificationOutput],
    notification: Notification,
    classifier: ErrorClassifier,
    log: Any = None,
) -> int:
    """Send to every output; returns how many accepted the notification.

    A failing output never stops the others. Failures that need a human
    (BLOCKING) are logged at error level with their remediation.
    """
    log = log or logger
    delivered = 0
    for output in outputs:
        try:
            await output.send(notification)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            classification = classifier.classify_exception(exc)
            if classification.circuit_break:
                log.error(
                    "notify.output_blocked",
                    output=output.name,
                    kind=classification.kind.value,
                    remediation=classification.remediation,
                    error=str(exc),
                )
            else:
                log.warning(
                    "notify.output_failed",
                    output=output.name,
                    kind=classification.kind.value,
                    error=str(exc),
                )
            continue
        delivered += 1
    return delivered
