from slowquery_sentinel.alerts.engine import AlertRuleEngine, build_alert_message
from slowquery_sentinel.alerts.state import RuleFireState

__all__ = ["AlertRuleEngine", "RuleFireState", "build_alert_message"]
