from slowquery_sentinel.templates.registry import TemplateRegistry, extract_table_name
from slowquery_sentinel.templates.store import InMemoryTemplateStore, TemplateStore

__all__ = ["TemplateStore", "InMemoryTemplateStore", "TemplateRegistry", "extract_table_name"]
