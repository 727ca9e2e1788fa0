from slowquery_sentinel.sql.fingerprint import Fingerprint, Fingerprinter, fingerprint, is_similar
from slowquery_sentinel.sql.masking import (
    REDACTED_PLACEHOLDER,
    MaskingRule,
    SqlMasker,
    contains_sensitive,
    mask,
    quick_mask,
)

__all__ = [
    "Fingerprint",
    "Fingerprinter",
    "fingerprint",
    "is_similar",
    "MaskingRule",
    "SqlMasker",
    "REDACTED_PLACEHOLDER",
    "mask",
    "quick_mask",
    "contains_sensitive",
]
