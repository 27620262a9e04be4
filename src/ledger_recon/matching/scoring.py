"""
Similarity scoring for candidate pairs.

The score is a weighted sum of four independent signals, each in [0, 1]:

- identifier: normalized edit distance between transaction numbers (or
  references, whichever agrees better)
- amount: banded closeness of the amounts after applying the sign convention
- date: banded proximity of the issue dates
- vendor: normalized edit distance between counterparty names

Which signals count, and how much, is decided by the configured weights.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from rapidfuzz.distance import Levenshtein

from ..config import MatchingConfig, SignConvention
from ..models.transaction import TransactionRecord


def amount_gap(amount_a: Decimal, amount_b: Decimal, convention: SignConvention) -> Decimal:
    """
    Distance between two amounts under the sign convention.

    With the opposite-sign convention a receivable of 100 and a payable of
    -100 are a perfect match (gap 0).
    """
    if convention is SignConvention.OPPOSITE:
        return abs(amount_a - (-amount_b))
    return abs(abs(amount_a) - abs(amount_b))


def edit_similarity(first: Optional[str], second: Optional[str]) -> float:
    """(maxLen - editDistance) / maxLen, case-insensitive and trimmed; 0.0 if either is missing."""
    if not first or not second:
        return 0.0

    a = first.strip().lower()
    b = second.strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    max_len = max(len(a), len(b))
    return (max_len - Levenshtein.distance(a, b)) / max_len


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-signal sub-scores and the weighted total."""

    identifier: float
    amount: float
    date: float
    vendor: float
    total: float


class SimilarityScorer:
    """Pure scoring function for an arbitrary pair of records."""

    # (upper bound exclusive, score) after the epsilon band
    AMOUNT_BANDS: tuple[tuple[Decimal, float], ...] = (
        (Decimal("1"), 0.9),
        (Decimal("10"), 0.7),
    )
    AMOUNT_FLOOR = 0.3

    DATE_NEAR_MAX = 0.9
    DATE_NEAR_MIN = 0.5
    DATE_FAR_DAYS = 30
    DATE_FAR_SCORE = 0.2

    def __init__(self, matching: MatchingConfig):
        """
        Initialize with matching configuration.

        Args:
            matching: Matching settings (weights, epsilon, date tolerance)
        """
        self.weights = matching.effective_weights
        self.amount_epsilon = matching.amount_epsilon
        self.date_tolerance_days = matching.date_tolerance_days
        self.sign_convention = matching.sign_convention

    def score(self, record_a: TransactionRecord, record_b: TransactionRecord) -> float:
        """Confidence in [0, 1] that the two records are the same transaction."""
        return self.breakdown(record_a, record_b).total

    def breakdown(self, record_a: TransactionRecord, record_b: TransactionRecord) -> ScoreBreakdown:
        """Compute every active signal; signals with zero weight report 0.0."""
        w = self.weights

        identifier = self.identifier_similarity(record_a, record_b) if w.identifier else 0.0
        amount = self.amount_similarity(record_a, record_b) if w.amount else 0.0
        date_score = self.date_proximity(record_a, record_b) if w.date else 0.0
        vendor = self.vendor_similarity(record_a, record_b) if w.vendor else 0.0

        total = (
            identifier * w.identifier
            + amount * w.amount
            + date_score * w.date
            + vendor * w.vendor
        )
        total = min(1.0, max(0.0, total))

        return ScoreBreakdown(
            identifier=identifier,
            amount=amount,
            date=date_score,
            vendor=vendor,
            total=total,
        )

    def identifier_similarity(self, record_a: TransactionRecord, record_b: TransactionRecord) -> float:
        return max(
            edit_similarity(record_a.transaction_number, record_b.transaction_number),
            edit_similarity(record_a.reference, record_b.reference),
        )

    def amount_similarity(self, record_a: TransactionRecord, record_b: TransactionRecord) -> float:
        gap = amount_gap(record_a.amount, record_b.amount, self.sign_convention)
        if gap < self.amount_epsilon:
            return 1.0
        for bound, band_score in self.AMOUNT_BANDS:
            if gap < bound:
                return band_score
        return self.AMOUNT_FLOOR

    def date_proximity(self, record_a: TransactionRecord, record_b: TransactionRecord) -> float:
        if record_a.issue_date is None or record_b.issue_date is None:
            return 0.0

        days = abs((record_a.issue_date - record_b.issue_date).days)
        if days == 0:
            return 1.0

        tolerance = self.date_tolerance_days
        if days <= tolerance:
            if tolerance == 1:
                return self.DATE_NEAR_MAX
            # Linear from DATE_NEAR_MAX at one day to DATE_NEAR_MIN at the tolerance
            step = (self.DATE_NEAR_MAX - self.DATE_NEAR_MIN) / (tolerance - 1)
            return self.DATE_NEAR_MAX - step * (days - 1)

        if days <= self.DATE_FAR_DAYS:
            return self.DATE_FAR_SCORE
        return 0.0

    def vendor_similarity(self, record_a: TransactionRecord, record_b: TransactionRecord) -> float:
        return edit_similarity(record_a.counterparty_name, record_b.counterparty_name)
