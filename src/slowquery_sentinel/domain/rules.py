from dataclasses import dataclass
from typing import Any, Mapping

from slowquery_sentinel.domain.models import ComparisonOperator, RuleType, Severity
from slowquery_sentinel.errors.exceptions import RuleConfigurationError

DEFAULT_COOLDOWN_MINUTES = 30


@dataclass(frozen=True, slots=True)
class AlertRule:
    """A configured condition over one metric of a snapshot.

    Rules are owned by configuration management; the engine only reads them.
    """

    id: int | str
    name: str
    metric_name: str
    rule_type: RuleType
    severity: Severity
    operator: ComparisonOperator | None = None
    threshold_value: float | None = None
    enabled: bool = True
    cooldown_minutes: int = DEFAULT_COOLDOWN_MINUTES
    display_name: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise RuleConfigurationError("rule name is required")
        if not self.metric_name:
            raise RuleConfigurationError("metric_name is required", self.name)
        if self.cooldown_minutes < 0:
            raise RuleConfigurationError(
                f"cooldown_minutes must be >= 0, got {self.cooldown_minutes}", self.name
            )
        if self.rule_type is RuleType.THRESHOLD:
            if self.operator is None:
                raise RuleConfigurationError("THRESHOLD rules need an operator", self.name)
            if self.threshold_value is None:
                raise RuleConfigurationError("THRESHOLD rules need a threshold_value", self.name)

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "AlertRule":
        """Build a rule from a configuration row (e.g. a database record or YAML entry)."""
        name = row.get("name")
        for key in ("id", "name", "metric_name", "type", "severity"):
            if row.get(key) in (None, ""):
                raise RuleConfigurationError(f"missing required field '{key}'", name)

        try:
            rule_type = RuleType(str(row["type"]).upper())
        except ValueError:
            raise RuleConfigurationError(f"unknown rule type '{row['type']}'", name) from None

        try:
            severity = Severity.parse(row["severity"])
        except (KeyError, ValueError):
            raise RuleConfigurationError(f"unknown severity '{row['severity']}'", name) from None

        raw_operator = row.get("operator", row.get("condition_operator"))
        operator: ComparisonOperator | None = None
        if raw_operator not in (None, ""):
            try:
                operator = ComparisonOperator(str(raw_operator).strip())
            except ValueError:
                raise RuleConfigurationError(f"unknown operator '{raw_operator}'", name) from None

        threshold = row.get("threshold_value")
        cooldown = row.get("cooldown_minutes")
        enabled = row.get("enabled")

        return cls(
            id=row["id"],
            name=str(name),
            metric_name=str(row["metric_name"]),
            rule_type=rule_type,
            severity=severity,
            operator=operator,
            threshold_value=float(threshold) if threshold is not None else None,
            enabled=True if enabled is None else bool(enabled),
            cooldown_minutes=DEFAULT_COOLDOWN_MINUTES if cooldown is None else int(cooldown),
            display_name=row.get("display_name"),
            description=row.get("description"),
        )
