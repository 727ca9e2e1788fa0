from slowquery_sentinel.core.analyzer import TemplateAnalyzer
from slowquery_sentinel.core.monitor import HealthMonitor
from slowquery_sentinel.core.pipeline import SlowQueryPipeline

__all__ = ["SlowQueryPipeline", "HealthMonitor", "TemplateAnalyzer"]
