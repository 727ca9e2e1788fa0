"""SQL fingerprinting: parameterized template text plus a stable content hash.

Two statements that differ only in literal values or comments share a
template and therefore a hash. The template is built from the ``sqlparse``
token stream, so keywords, identifiers and clause order survive untouched.
"""

import hashlib
import re
from dataclasses import dataclass

import structlog
from sqlparse import lexer
from sqlparse import tokens as T

from slowquery_sentinel.sql.masking import SqlMasker

logger = structlog.get_logger(__name__)

PLACEHOLDER = "?"

# A run of mask characters left behind by the masker, with whatever partial
# value it kept (e.g. 138****5678). Treated as one literal.
_MASKED_VALUE = re.compile(r"[\w.@-]*\*{3,}[\w.@*-]*")
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE = re.compile(r"\s+([),.(])")
_SPACE_AFTER = re.compile(r"([(.])\s+")
_COMPARISON = re.compile(r"\s*(<=>|<=|>=|<>|!=|=|<|>)\s*")
_COMMA = re.compile(r",\s*")
_IN_LIST = re.compile(r"\bIN\(\?(?:, \?)*\)")

_BOOLEAN_LITERALS = frozenset({"TRUE", "FALSE"})


@dataclass(frozen=True, slots=True)
class Fingerprint:
    template: str
    hash: str

    def __bool__(self) -> bool:
        return bool(self.hash)


def content_hash(text: str) -> str:
    if not text:
        return ""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


class Fingerprinter:
    """Produces :class:`Fingerprint` values for raw SQL.

    The SQL is masked before parameterization so that a masked copy of a
    statement and the statement itself always share an identity.
    """

    def __init__(self, masker: SqlMasker | None = None) -> None:
        self._masker = masker or SqlMasker()

    def fingerprint(self, raw_sql: str | None) -> Fingerprint:
        if not raw_sql or raw_sql.isspace():
            return Fingerprint("", "")
        try:
            template = self.extract_template(raw_sql)
            if not template:
                raise ValueError("statement has no tokens after normalization")
        except Exception as exc:
            logger.warning("fingerprint.fallback", error=repr(exc), sql_length=len(raw_sql))
            return Fingerprint(raw_sql, content_hash(raw_sql))
        return Fingerprint(template, content_hash(template))

    def extract_template(self, raw_sql: str) -> str:
        text = _strip_comments(self._masker.mask(raw_sql))
        text = _MASKED_VALUE.sub("0", text)
        return _normalize_spacing(_parameterize(text))

    def is_similar(self, sql1: str, sql2: str) -> bool:
        first = self.fingerprint(sql1)
        return bool(first) and first.hash == self.fingerprint(sql2).hash


def _strip_comments(sql: str) -> str:
    parts: list[str] = []
    for ttype, value in lexer.tokenize(sql):
        parts.append(" " if ttype in T.Comment else value)
    return "".join(parts)


def _parameterize(sql: str) -> str:
    parts: list[str] = []
    for ttype, value in lexer.tokenize(sql):
        if ttype in T.Whitespace or ttype in T.Comment:
            parts.append(" ")
        elif ttype in T.Number or ttype in T.String.Single or ttype in T.String.Symbol:
            parts.append(PLACEHOLDER)
        elif value.upper() in _BOOLEAN_LITERALS:
            parts.append(PLACEHOLDER)
        elif ttype in T.Keyword or ttype in T.Name.Builtin:
            parts.append(value.upper())
        elif ttype in T.Name and value.startswith("`") and value.endswith("`"):
            parts.append(value[1:-1])
        else:
            parts.append(value)
    return "".join(parts)


def _normalize_spacing(text: str) -> str:
    text = _WHITESPACE.sub(" ", text).strip()
    text = _SPACE_BEFORE.sub(r"\1", text)
    text = _SPACE_AFTER.sub(r"\1", text)
    text = _COMPARISON.sub(r" \1 ", text)
    text = _COMMA.sub(", ", text)
    text = _IN_LIST.sub("IN(?+)", text)
    return text.rstrip("; ").strip()


_default_fingerprinter = Fingerprinter()


def fingerprint(raw_sql: str | None) -> Fingerprint:
    return _default_fingerprinter.fingerprint(raw_sql)


def is_similar(sql1: str, sql2: str) -> bool:
    return _default_fingerprinter.is_similar(sql1, sql2)
