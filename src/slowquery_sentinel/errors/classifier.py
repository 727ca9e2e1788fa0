import re
from dataclasses import dataclass, replace
from typing import ClassVar

import structlog

from slowquery_sentinel.errors.exceptions import ClassifiedError
from slowquery_sentinel.errors.taxonomy import (
    CODE_KINDS,
    ErrorCategory,
    ErrorKind,
    RecoveryStrategy,
    behavior_of,
    category_of,
    remediation_of,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ErrorClassification:
    kind: ErrorKind
    category: ErrorCategory
    strategy: RecoveryStrategy
    max_retries: int
    code: str | None = None
    message: str | None = None

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.TRANSIENT

    @property
    def circuit_break(self) -> bool:
        return self.category is ErrorCategory.BLOCKING

    @property
    def remediation(self) -> str:
        return remediation_of(self.kind)

    def exhausted(self) -> "ErrorClassification":
        """The same failure after its retry budget ran out: continue with a degraded result."""
        return replace(self, strategy=RecoveryStrategy.FALLBACK, max_retries=0)


class ErrorClassifier:
    """Maps a diagnostic code and/or message to an :class:`ErrorClassification`.

    Exact codes win. Without a known code the message is matched against the
    keyword groups in ``KEYWORD_GROUPS`` order and the first hit decides.
    """

    KEYWORD_GROUPS: ClassVar[list[tuple[ErrorKind, re.Pattern[str]]]] = [
        (ErrorKind.TIMEOUT, re.compile(r"timeout|timed out")),
        (ErrorKind.RATE_LIMITED, re.compile(r"rate limit|too many requests|\b429\b")),
        (
            ErrorKind.NETWORK_ERROR,
            re.compile(r"connection|network|no route to host|reset by peer|broken pipe"),
        ),
        (
            ErrorKind.AUTH_ERROR,
            re.compile(r"\b401\b|\b403\b|unauthorized|forbidden|invalid api key"),
        ),
        (ErrorKind.CONFIG_ERROR, re.compile(r"\b404\b|not found|invalid model")),
        (
            ErrorKind.TOKEN_LIMIT,
            re.compile(r"^(?=.*token)(?=.*(?:exceed|limit|too long))", re.DOTALL),
        ),
        (ErrorKind.CONTENT_FILTER, re.compile(r"content filter|safety|policy violation")),
        (
            ErrorKind.SERVER_ERROR,
            re.compile(r"\b500\b|\b502\b|\b503\b|\b504\b|internal server error|bad gateway"),
        ),
        (ErrorKind.DB_NOT_FOUND, re.compile(r"unknown database")),
        (ErrorKind.TABLE_NOT_FOUND, re.compile(r"unknown table|table .*doesn't exist")),
        (ErrorKind.COLUMN_NOT_FOUND, re.compile(r"unknown column")),
        (ErrorKind.ACCESS_DENIED, re.compile(r"access denied|permission denied")),
        (ErrorKind.SYNTAX_ERROR, re.compile(r"syntax error|you have an error in your sql syntax")),
        (ErrorKind.DUPLICATE_KEY, re.compile(r"duplicate entry|duplicate key")),
    ]

    def classify(self, code: str | int | None, message: str | None) -> ErrorClassification:
        normalized = _normalize_code(code)
        kind = CODE_KINDS.get(normalized) if normalized else None
        if kind is None:
            kind = self._match_message(message)
        return self._build(kind, normalized, message)

    def classify_exception(self, exc: BaseException) -> ErrorClassification:
        if isinstance(exc, ClassifiedError):
            return exc.classification
        message = f"{type(exc).__name__}: {exc}"
        return self.classify(_diagnostic_code(exc), message)

    def _match_message(self, message: str | None) -> ErrorKind:
        if not message:
            return ErrorKind.UNKNOWN
        text = message.lower()
        for kind, pattern in self.KEYWORD_GROUPS:
            if pattern.search(text):
                return kind
        logger.debug("errors.unclassified", message=message[:200])
        return ErrorKind.UNKNOWN

    @staticmethod
    def _build(kind: ErrorKind, code: str | None, message: str | None) -> ErrorClassification:
        category = category_of(kind)
        behavior = behavior_of(category)
        return ErrorClassification(
            kind=kind,
            category=category,
            strategy=behavior.strategy,
            max_retries=behavior.max_retries,
            code=code,
            message=message,
        )


def _normalize_code(code: str | int | None) -> str | None:
    if code is None:
        return None
    text = str(code).strip().upper()
    return text or None


def _diagnostic_code(exc: BaseException) -> str | None:
    """Most specific known code on ``exc``.

    Driver errno values come before SQLSTATE: MySQL reports several distinct
    errors (1049 unknown database, 1064 syntax error) under the class ``42000``.
    """
    candidates: list[str] = []
    errno = getattr(exc, "errno", None)
    if isinstance(errno, int) and not isinstance(errno, bool):
        candidates.append(str(errno))
    if exc.args and isinstance(exc.args[0], int) and not isinstance(exc.args[0], bool):
        candidates.append(str(exc.args[0]))
    for attr in ("sqlstate", "pgcode"):
        value = getattr(exc, attr, None)
        if value:
            candidates.append(str(value))
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        candidates.append(str(status))
    for code in candidates:
        if _normalize_code(code) in CODE_KINDS:
            return code
    return candidates[0] if candidates else None


_default_classifier = ErrorClassifier()


def classify(code: str | int | None, message: str | None) -> ErrorClassification:
    return _default_classifier.classify(code, message)


def classify_exception(exc: BaseException) -> ErrorClassification:
    return _default_classifier.classify_exception(exc)
