"""Error taxonomy: kinds, categories, recovery strategies and the tables joining them.

Behavior lives in the lookup tables below rather than in methods on the
enums, so the whole mapping can be inspected (and tested) as data.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class ErrorCategory(str, Enum):
    BLOCKING = "BLOCKING"
    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    NONE = "NONE"


class RecoveryStrategy(str, Enum):
    CONTINUE = "CONTINUE"
    RETRY = "RETRY"
    FALLBACK = "FALLBACK"
    ABORT = "ABORT"


class ErrorKind(str, Enum):
    # environment
    DB_NOT_FOUND = "DB_NOT_FOUND"
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    COLUMN_NOT_FOUND = "COLUMN_NOT_FOUND"
    SLOW_QUERY_LOG_DISABLED = "SLOW_QUERY_LOG_DISABLED"
    # permissions
    ACCESS_DENIED = "ACCESS_DENIED"
    PRIVILEGE_NOT_ENOUGH = "PRIVILEGE_NOT_ENOUGH"
    # network
    CONNECTION_TIMEOUT = "CONNECTION_TIMEOUT"
    CONNECTION_LOST = "CONNECTION_LOST"
    QUERY_TIMEOUT = "QUERY_TIMEOUT"
    DEADLOCK = "DEADLOCK"
    # data
    EMPTY_RESULT = "EMPTY_RESULT"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    DATA_FORMAT_ERROR = "DATA_FORMAT_ERROR"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    # analysis service
    RATE_LIMITED = "RATE_LIMITED"
    MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    TOKEN_LIMIT = "TOKEN_LIMIT"
    CONTENT_FILTER = "CONTENT_FILTER"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class StrategyBehavior:
    strategy: RecoveryStrategy
    max_retries: int


DEFAULT_MAX_RETRIES = 3

CATEGORY_BEHAVIOR: Mapping[ErrorCategory, StrategyBehavior] = MappingProxyType(
    {
        ErrorCategory.BLOCKING: StrategyBehavior(RecoveryStrategy.ABORT, 0),
        ErrorCategory.TRANSIENT: StrategyBehavior(RecoveryStrategy.RETRY, DEFAULT_MAX_RETRIES),
        ErrorCategory.PERMANENT: StrategyBehavior(RecoveryStrategy.ABORT, 0),
        ErrorCategory.NONE: StrategyBehavior(RecoveryStrategy.CONTINUE, 0),
    }
)

KIND_CATEGORY: Mapping[ErrorKind, ErrorCategory] = MappingProxyType(
    {
        ErrorKind.DB_NOT_FOUND: ErrorCategory.BLOCKING,
        ErrorKind.TABLE_NOT_FOUND: ErrorCategory.BLOCKING,
        ErrorKind.COLUMN_NOT_FOUND: ErrorCategory.BLOCKING,
        ErrorKind.SLOW_QUERY_LOG_DISABLED: ErrorCategory.BLOCKING,
        ErrorKind.ACCESS_DENIED: ErrorCategory.BLOCKING,
        ErrorKind.PRIVILEGE_NOT_ENOUGH: ErrorCategory.BLOCKING,
        ErrorKind.CONNECTION_TIMEOUT: ErrorCategory.TRANSIENT,
        ErrorKind.CONNECTION_LOST: ErrorCategory.TRANSIENT,
        ErrorKind.QUERY_TIMEOUT: ErrorCategory.TRANSIENT,
        ErrorKind.DEADLOCK: ErrorCategory.TRANSIENT,
        ErrorKind.EMPTY_RESULT: ErrorCategory.NONE,
        ErrorKind.DUPLICATE_KEY: ErrorCategory.NONE,
        ErrorKind.DATA_FORMAT_ERROR: ErrorCategory.PERMANENT,
        ErrorKind.SYNTAX_ERROR: ErrorCategory.PERMANENT,
        ErrorKind.RATE_LIMITED: ErrorCategory.TRANSIENT,
        ErrorKind.MODEL_UNAVAILABLE: ErrorCategory.BLOCKING,
        ErrorKind.TIMEOUT: ErrorCategory.TRANSIENT,
        ErrorKind.NETWORK_ERROR: ErrorCategory.TRANSIENT,
        ErrorKind.AUTH_ERROR: ErrorCategory.BLOCKING,
        ErrorKind.CONFIG_ERROR: ErrorCategory.BLOCKING,
        ErrorKind.TOKEN_LIMIT: ErrorCategory.PERMANENT,
        ErrorKind.CONTENT_FILTER: ErrorCategory.PERMANENT,
        ErrorKind.SERVER_ERROR: ErrorCategory.TRANSIENT,
        ErrorKind.UNKNOWN: ErrorCategory.NONE,
    }
)

REMEDIATION: Mapping[ErrorKind, str] = MappingProxyType(
    {
        ErrorKind.DB_NOT_FOUND: "check that the target database exists and is reachable",
        ErrorKind.TABLE_NOT_FOUND: "check the table name or create the table",
        ErrorKind.COLUMN_NOT_FOUND: "check the column name against the current schema",
        ErrorKind.SLOW_QUERY_LOG_DISABLED: "enable slow_query_log on the monitored server",
        ErrorKind.ACCESS_DENIED: "check the monitoring user's credentials",
        ErrorKind.PRIVILEGE_NOT_ENOUGH: "grant the monitoring user the missing privileges",
        ErrorKind.MODEL_UNAVAILABLE: "check the analysis model name and its availability",
        ErrorKind.AUTH_ERROR: "check the API key or access token",
        ErrorKind.CONFIG_ERROR: "check the endpoint URL and model configuration",
        ErrorKind.SYNTAX_ERROR: "fix the SQL statement",
        ErrorKind.DATA_FORMAT_ERROR: "fix the malformed input",
        ErrorKind.TOKEN_LIMIT: "shorten the input sent to the analysis service",
        ErrorKind.CONTENT_FILTER: "review the input rejected by the analysis service",
    }
)

# Exact diagnostic codes: SQLSTATE, MySQL error numbers and internal codes.
CODE_KINDS: Mapping[str, ErrorKind] = MappingProxyType(
    {
        "ENV_001": ErrorKind.DB_NOT_FOUND,
        "ENV_002": ErrorKind.TABLE_NOT_FOUND,
        "ENV_003": ErrorKind.COLUMN_NOT_FOUND,
        "ENV_004": ErrorKind.SLOW_QUERY_LOG_DISABLED,
        "PERM_001": ErrorKind.ACCESS_DENIED,
        "PERM_002": ErrorKind.PRIVILEGE_NOT_ENOUGH,
        "NET_001": ErrorKind.CONNECTION_TIMEOUT,
        "NET_002": ErrorKind.CONNECTION_LOST,
        "NET_003": ErrorKind.QUERY_TIMEOUT,
        "DATA_001": ErrorKind.EMPTY_RESULT,
        "DATA_002": ErrorKind.DUPLICATE_KEY,
        "DATA_003": ErrorKind.DATA_FORMAT_ERROR,
        "SQL_001": ErrorKind.SYNTAX_ERROR,
        "AI_001": ErrorKind.RATE_LIMITED,
        "AI_002": ErrorKind.MODEL_UNAVAILABLE,
        "AI_003": ErrorKind.TIMEOUT,
        "42S02": ErrorKind.TABLE_NOT_FOUND,
        "42P01": ErrorKind.TABLE_NOT_FOUND,
        "1146": ErrorKind.TABLE_NOT_FOUND,
        "42S22": ErrorKind.COLUMN_NOT_FOUND,
        "42703": ErrorKind.COLUMN_NOT_FOUND,
        "1054": ErrorKind.COLUMN_NOT_FOUND,
        "42000": ErrorKind.DB_NOT_FOUND,
        "3D000": ErrorKind.DB_NOT_FOUND,
        "1049": ErrorKind.DB_NOT_FOUND,
        "28000": ErrorKind.ACCESS_DENIED,
        "28P01": ErrorKind.ACCESS_DENIED,
        "1045": ErrorKind.ACCESS_DENIED,
        "42501": ErrorKind.PRIVILEGE_NOT_ENOUGH,
        "1142": ErrorKind.PRIVILEGE_NOT_ENOUGH,
        "1227": ErrorKind.PRIVILEGE_NOT_ENOUGH,
        "42601": ErrorKind.SYNTAX_ERROR,
        "1064": ErrorKind.SYNTAX_ERROR,
        "08001": ErrorKind.CONNECTION_TIMEOUT,
        "2003": ErrorKind.CONNECTION_TIMEOUT,
        "08S01": ErrorKind.CONNECTION_LOST,
        "08006": ErrorKind.CONNECTION_LOST,
        "2006": ErrorKind.CONNECTION_LOST,
        "2013": ErrorKind.CONNECTION_LOST,
        "HYT00": ErrorKind.QUERY_TIMEOUT,
        "57014": ErrorKind.QUERY_TIMEOUT,
        "3024": ErrorKind.QUERY_TIMEOUT,
        "40001": ErrorKind.DEADLOCK,
        "40P01": ErrorKind.DEADLOCK,
        "1205": ErrorKind.DEADLOCK,
        "1213": ErrorKind.DEADLOCK,
        "23000": ErrorKind.DUPLICATE_KEY,
        "23505": ErrorKind.DUPLICATE_KEY,
        "1062": ErrorKind.DUPLICATE_KEY,
        "22P02": ErrorKind.DATA_FORMAT_ERROR,
        "22007": ErrorKind.DATA_FORMAT_ERROR,
    }
)


def category_of(kind: ErrorKind) -> ErrorCategory:
    return KIND_CATEGORY[kind]


def behavior_of(category: ErrorCategory) -> StrategyBehavior:
    return CATEGORY_BEHAVIOR[category]


def remediation_of(kind: ErrorKind) -> str:
    category = KIND_CATEGORY[kind]
    if kind in REMEDIATION:
        return REMEDIATION[kind]
    if category is ErrorCategory.TRANSIENT:
        return "retry later"
    return "no action needed"
