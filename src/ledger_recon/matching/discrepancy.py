"""Field-level validation of matched pairs."""

from typing import Iterable
import logging

from ..config import MatchingConfig
from ..models.transaction import Discrepancy, MatchCandidate, MatchResult, MatchStatus
from .scoring import amount_gap

logger = logging.getLogger(__name__)


class DiscrepancyDetector:
    """
    Checks amount and dates on every matched pair.

    A pair that disagrees is demoted to DISCREPANCY but stays paired: the
    identifier evidence still says it is the same transaction, and the
    disagreement is what a reviewer needs to see.
    """

    def __init__(self, matching: MatchingConfig):
        self.amount_epsilon = matching.amount_epsilon
        self.sign_convention = matching.sign_convention

    def detect(self, pair: MatchCandidate) -> MatchResult:
        a, b = pair.record_a, pair.record_b
        discrepancies: list[Discrepancy] = []

        if amount_gap(a.amount, b.amount, self.sign_convention) > self.amount_epsilon:
            discrepancies.append(Discrepancy("amount", a.amount, b.amount))

        if a.issue_date is not None and b.issue_date is not None and a.issue_date != b.issue_date:
            discrepancies.append(Discrepancy("issueDate", a.issue_date, b.issue_date))

        if a.due_date is not None and b.due_date is not None and a.due_date != b.due_date:
            discrepancies.append(Discrepancy("dueDate", a.due_date, b.due_date))

        status = MatchStatus.DISCREPANCY if discrepancies else MatchStatus.MATCHED
        if discrepancies:
            fields = ", ".join(d.field for d in discrepancies)
            logger.debug(f"Discrepancy on {a.id} <-> {b.id}: {fields}")

        return MatchResult(pair=pair, discrepancies=tuple(discrepancies), status=status)

    def detect_all(self, pairs: Iterable[MatchCandidate]) -> list[MatchResult]:
        return [self.detect(pair) for pair in pairs]
