from slowquery_sentinel.errors.classifier import (
    ErrorClassification,
    ErrorClassifier,
    classify,
    classify_exception,
)
from slowquery_sentinel.errors.exceptions import (
    BlockingError,
    ClassifiedError,
    ConfigurationError,
    PermanentError,
    RetriesExhaustedError,
    RuleConfigurationError,
    SentinelError,
)
from slowquery_sentinel.errors.retry import RetryPolicy, run_with_retry
from slowquery_sentinel.errors.taxonomy import ErrorCategory, ErrorKind, RecoveryStrategy

__all__ = [
    "ErrorCategory",
    "RecoveryStrategy",
    "ErrorKind",
    "ErrorClassification",
    "ErrorClassifier",
    "classify",
    "classify_exception",
    "RetryPolicy",
    "run_with_retry",
    "SentinelError",
    "ConfigurationError",
    "RuleConfigurationError",
    "ClassifiedError",
    "BlockingError",
    "PermanentError",
    "RetriesExhaustedError",
]
