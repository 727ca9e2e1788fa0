import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from slowquery_sentinel.errors.classifier import ErrorClassifier
from slowquery_sentinel.errors.exceptions import (
    BlockingError,
    PermanentError,
    RetriesExhaustedError,
)
from slowquery_sentinel.errors.taxonomy import DEFAULT_MAX_RETRIES, ErrorCategory

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = 1.0
    max_jitter: float = 0.5

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2**attempt) + random.uniform(0, self.max_jitter)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    classifier: ErrorClassifier | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    log: Any = None,
) -> T | None:
    """Run ``operation`` and let the error taxonomy decide what a failure means.

    BLOCKING raises :class:`BlockingError`, PERMANENT raises
    :class:`PermanentError`, NONE gives up quietly and returns ``None``.
    TRANSIENT failures are retried with exponential backoff; once the
    retry budget is spent :class:`RetriesExhaustedError` is raised carrying
    the FALLBACK classification.
    """
    policy = policy or RetryPolicy()
    classifier = classifier or ErrorClassifier()
    log = log or logger

    retries = 0
    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            classification = classifier.classify_exception(exc)

            if classification.category is ErrorCategory.BLOCKING:
                log.error(
                    "retry.blocking",
                    kind=classification.kind.value,
                    remediation=classification.remediation,
                )
                raise BlockingError(classification) from exc

            if classification.category is ErrorCategory.PERMANENT:
                log.error("retry.permanent", kind=classification.kind.value, error=str(exc))
                raise PermanentError(classification) from exc

            if classification.category is ErrorCategory.NONE:
                log.info("retry.ignored", kind=classification.kind.value, error=str(exc))
                return None

            budget = min(policy.max_retries, classification.max_retries)
            if retries >= budget:
                log.warning(
                    "retry.exhausted",
                    kind=classification.kind.value,
                    attempts=retries + 1,
                )
                raise RetriesExhaustedError(classification.exhausted(), retries + 1) from exc

            delay = policy.delay(retries)
            log.warning(
                "retry.scheduled",
                kind=classification.kind.value,
                attempt=retries + 1,
                delay=round(delay, 3),
            )
            await sleep(delay)
            retries += 1
