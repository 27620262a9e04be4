"""Row loading and canonicalization."""

from .aliases import AliasTable, DEFAULT_ALIASES
from .canonicalizer import CanonicalBatch, Canonicalizer, parse_amount, parse_date
from .loader import load_rows

__all__ = [
    "AliasTable",
    "DEFAULT_ALIASES",
    "CanonicalBatch",
    "Canonicalizer",
    "parse_amount",
    "parse_date",
    "load_rows",
]
