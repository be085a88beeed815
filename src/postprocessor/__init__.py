"""
Post-Processing Module.

Normalization of raw values captured by extraction patterns:
    - Date parsing
    - Amount/currency normalization
    - Invoice number cleanup

Author: ML Engineering Team
"""

from .normalizers import AmountNormalizer, DateNormalizer, normalize_invoice_number

__all__ = [
    'AmountNormalizer',
    'DateNormalizer',
    'normalize_invoice_number',
]
