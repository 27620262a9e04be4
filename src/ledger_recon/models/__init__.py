"""Data models for reconciliation."""

from .transaction import (
    Side,
    MatchType,
    MatchStatus,
    TransactionRecord,
    MatchCandidate,
    Discrepancy,
    MatchResult,
)
from .report import (
    InsightKind,
    HistoricalHint,
    HistoricalInsight,
    ReconciliationSummary,
    ReconciliationReport,
)

__all__ = [
    "Side",
    "MatchType",
    "MatchStatus",
    "TransactionRecord",
    "MatchCandidate",
    "Discrepancy",
    "MatchResult",
    "InsightKind",
    "HistoricalHint",
    "HistoricalInsight",
    "ReconciliationSummary",
    "ReconciliationReport",
]
