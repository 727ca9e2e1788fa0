"""Sensitive-data masking for SQL text.

Each rule keeps enough of the original to show what kind of value was there
(``138****5678``, ``u***@example.com``) and replaces the rest with a run of
``*``. Assignments keep their quoting so the masked SQL still has the same
clause structure as the input.
"""

import re
from dataclasses import dataclass
from typing import Callable, ClassVar, Sequence

import structlog

logger = structlog.get_logger(__name__)

REDACTED_PLACEHOLDER = "<redacted: masking failed>"

Replacement = str | Callable[[re.Match[str]], str]


@dataclass(frozen=True, slots=True)
class MaskingRule:
    name: str
    pattern: re.Pattern[str]
    replacement: Replacement

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


PHONE = MaskingRule(
    "phone",
    re.compile(r"\b(1[3-9]\d)\d{4}(\d{4})\b"),
    r"\1****\2",
)
NATIONAL_ID = MaskingRule(
    "national_id",
    re.compile(
        r"\b([1-9]\d{5})(?:19|20)\d{2}(?:0[1-9]|1[0-2])(?:0[1-9]|[12]\d|3[01])(\d{3}[0-9Xx])\b"
    ),
    r"\1********\2",
)
LANDLINE = MaskingRule(
    "landline",
    re.compile(r"\b(0\d{2,3}-?)\d{3,4}(\d{4})\b"),
    r"\1****\2",
)
IPV4 = MaskingRule(
    "ipv4",
    re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b"),
    r"\1***",
)
EMAIL = MaskingRule(
    "email",
    re.compile(r"\b([a-zA-Z0-9])[a-zA-Z0-9._%+-]*@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b"),
    r"\1***@\2",
)
BANK_CARD = MaskingRule(
    "bank_card",
    re.compile(r"\b(\d{4})\d{6,}(\d{4})\b"),
    r"\1*******\2",
)
PASSWORD = MaskingRule(
    "password",
    re.compile(
        r"\b(password|passwd|pwd|secret)(\s*[=:]\s*)(['\"])(?:(?!\3).)+\3",
        re.IGNORECASE,
    ),
    r"\1\2\3******\3",
)
TOKEN = MaskingRule(
    "token",
    re.compile(
        r"\b(access_token|api_key|apikey|secret_key|token)(\s*[=:]\s*)(['\"])(?:(?!\3).){8,}\3",
        re.IGNORECASE,
    ),
    r"\1\2\3******\3",
)
CONNECTION_HOST = MaskingRule(
    "connection_host",
    # Only quoted values and IPv4 addresses; a bare identifier after host= is a column.
    re.compile(
        r"\b(host|hostname|server)(\s*[=:]\s*)"
        r"(?:(['\"])[^'\"\n]+\3|(?:\d{1,3}\.){3}(?:\d{1,3}|\*{3})(?![\w.*])|\*{3}(?![\w*]))",
        re.IGNORECASE,
    ),
    r"\1\2\3***\3",
)


class SqlMasker:
    """Applies the masking rules in a fixed order.

    Masking is best effort. On an internal failure the masker logs
    ``masking.failed`` and either returns the input unchanged (``fail_open``,
    the default) or replaces the whole value with :data:`REDACTED_PLACEHOLDER`.
    """

    DEFAULT_RULES: ClassVar[tuple[MaskingRule, ...]] = (
        PHONE,
        NATIONAL_ID,
        LANDLINE,
        IPV4,
        EMAIL,
        BANK_CARD,
        PASSWORD,
        TOKEN,
        CONNECTION_HOST,
    )
    QUICK_RULES: ClassVar[tuple[MaskingRule, ...]] = (PHONE, IPV4, EMAIL)

    def __init__(self, rules: Sequence[MaskingRule] | None = None, fail_open: bool = True) -> None:
        self._rules = tuple(rules) if rules is not None else self.DEFAULT_RULES
        self._fail_open = fail_open

    @property
    def rules(self) -> tuple[MaskingRule, ...]:
        return self._rules

    @property
    def fail_open(self) -> bool:
        return self._fail_open

    def mask(self, sql: str) -> str:
        return self._apply(sql, self._rules)

    def quick_mask(self, sql: str) -> str:
        """Mask only phone numbers, IPv4 addresses and emails.

        Cheaper than :meth:`mask` for hot paths; it is not a complete redaction.
        """
        return self._apply(sql, self.QUICK_RULES)

    def contains_sensitive(self, sql: str) -> bool:
        if not sql or sql.isspace():
            return False
        try:
            return any(rule.matches(sql) for rule in self._rules)
        except Exception as exc:
            logger.warning("masking.detect_failed", error=repr(exc))
            return False

    def _apply(self, sql: str, rules: Sequence[MaskingRule]) -> str:
        if not sql or sql.isspace():
            return sql
        masked = sql
        try:
            for rule in rules:
                masked = rule.apply(masked)
        except Exception as exc:
            logger.error(
                "masking.failed",
                rule=rule.name,
                error=repr(exc),
                fail_open=self._fail_open,
            )
            return sql if self._fail_open else REDACTED_PLACEHOLDER
        return masked


_default_masker = SqlMasker()


def mask(sql: str) -> str:
    return _default_masker.mask(sql)


def quick_mask(sql: str) -> str:
    return _default_masker.quick_mask(sql)


def contains_sensitive(sql: str) -> bool:
    return _default_masker.contains_sensitive(sql)
