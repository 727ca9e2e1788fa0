from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from slowquery_sentinel.errors.classifier import ErrorClassification


class SentinelError(Exception):
    pass


class ConfigurationError(SentinelError):
    pass


class RuleConfigurationError(ConfigurationError):
    def __init__(self, message: str, rule_name: str | None = None) -> None:
        super().__init__(f"{rule_name}: {message}" if rule_name else message)
        self.rule_name = rule_name


class ClassifiedError(SentinelError):
    """A failure that has been passed through the error classifier."""

    def __init__(self, classification: "ErrorClassification", message: str | None = None) -> None:
        super().__init__(message or classification.message or classification.kind.value)
        self.classification = classification


class BlockingError(ClassifiedError):
    """Hard stop: the environment needs a human fix before processing can resume."""

    def __init__(self, classification: "ErrorClassification") -> None:
        super().__init__(
            classification,
            f"{classification.kind.value}: {classification.message} ({classification.remediation})",
        )


class PermanentError(ClassifiedError):
    pass


class RetriesExhaustedError(ClassifiedError):
    def __init__(self, classification: "ErrorClassification", attempts: int) -> None:
        super().__init__(
            classification,
            f"{classification.kind.value} persisted after {attempts} attempt(s): "
            f"{classification.message}",
        )
        self.attempts = attempts
