"""Report models: summary statistics, historical hints and the final report."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .transaction import MatchResult, MatchStatus, TransactionRecord


class InsightKind(Enum):
    """What a prior-period record says about an unmatched record."""

    ALREADY_PAID = "already_paid"
    PARTIALLY_PAID = "partially_paid"
    VOIDED = "voided"
    DRAFT = "draft"
    FOUND_IN_HISTORY = "found_in_history"


@dataclass(frozen=True)
class HistoricalHint:
    """A prior-period record, optionally carrying the counterpart it was matched to."""

    transaction_number: str
    counterparty_transaction_number: Optional[str] = None
    reference: Optional[str] = None
    status: Optional[str] = None
    is_paid: bool = False
    is_partially_paid: bool = False
    is_voided: bool = False
    issue_date: Optional[date] = None
    payment_date: Optional[date] = None


@dataclass(frozen=True)
class HistoricalInsight:
    """Annotation for an unmatched record found in prior-period data."""

    record: TransactionRecord
    hint: HistoricalHint
    kind: InsightKind
    severity: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record.id,
            "transaction_number": self.record.transaction_number,
            "kind": self.kind.value,
            "severity": self.severity,
            "message": self.message,
        }


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts and rates for one reconciliation run."""

    # Canonical record counts
    total_a: int
    total_b: int

    # Pair outcomes
    matched_count: int
    discrepancy_count: int

    # Leftovers
    unmatched_a_count: int
    unmatched_b_count: int

    # Pair origin breakdown
    exact_count: int = 0
    fuzzy_count: int = 0

    # Rows dropped during canonicalization
    rejected_a: int = 0
    rejected_b: int = 0

    # Amount totals
    total_amount_a: Decimal = Decimal("0")
    total_amount_b: Decimal = Decimal("0")

    # Gap between the totals under the sign convention; zero when they net out
    amount_variance: Decimal = Decimal("0")

    @property
    def match_rate(self) -> float:
        """Share of side-A records that matched cleanly."""
        if self.total_a == 0:
            return 0.0
        return self.matched_count / self.total_a

    @property
    def paired_count(self) -> int:
        return self.matched_count + self.discrepancy_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_a": self.total_a,
            "total_b": self.total_b,
            "matched_count": self.matched_count,
            "discrepancy_count": self.discrepancy_count,
            "unmatched_a_count": self.unmatched_a_count,
            "unmatched_b_count": self.unmatched_b_count,
            "exact_count": self.exact_count,
            "fuzzy_count": self.fuzzy_count,
            "rejected_a": self.rejected_a,
            "rejected_b": self.rejected_b,
            "match_rate": self.match_rate,
            "total_amount_a": str(self.total_amount_a),
            "total_amount_b": str(self.total_amount_b),
            "amount_variance": str(self.amount_variance),
        }


@dataclass(frozen=True)
class ReconciliationReport:
    """Complete, immutable output of one run."""

    matched: tuple[MatchResult, ...]
    unmatched_a: tuple[TransactionRecord, ...]
    unmatched_b: tuple[TransactionRecord, ...]
    summary: ReconciliationSummary
    insights: tuple[HistoricalInsight, ...] = ()

    @property
    def discrepancies(self) -> tuple[MatchResult, ...]:
        return tuple(r for r in self.matched if r.status is MatchStatus.DISCREPANCY)

    def to_dict(self) -> dict[str, Any]:
        """Flat structure for persistence, API serialization and export."""
        return {
            "matched": [r.to_dict() for r in self.matched],
            "unmatched_a": [t.to_dict() for t in self.unmatched_a],
            "unmatched_b": [t.to_dict() for t in self.unmatched_b],
            "summary": self.summary.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
        }
