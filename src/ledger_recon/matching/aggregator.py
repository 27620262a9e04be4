"""Assembly of the final reconciliation report."""

from decimal import Decimal
from typing import Optional, Sequence
import logging

from ..config import SignConvention
from ..models.report import ReconciliationReport, ReconciliationSummary
from ..models.transaction import MatchResult, MatchStatus, MatchType
from ..utils.exceptions import ReconciliationError
from .history import HintIndex
from .scoring import amount_gap
from .strategies import CandidatePool

logger = logging.getLogger(__name__)


class ResultAggregator:
    """Partitions every canonical record into exactly one output bucket."""

    def __init__(
        self,
        hints: Optional[HintIndex] = None,
        sign_convention: SignConvention = SignConvention.OPPOSITE,
    ):
        """
        Args:
            hints: Optional historical hints used to annotate unmatched records
            sign_convention: How the side totals are netted for the variance
        """
        self.hints = hints
        self.sign_convention = sign_convention

    def aggregate(
        self,
        results: Sequence[MatchResult],
        pool: CandidatePool,
        rejected_a: int = 0,
        rejected_b: int = 0,
    ) -> ReconciliationReport:
        """
        Build the report for one run.

        Args:
            results: Match results in the order the pairs were claimed
            pool: Candidate pool after both matching passes
            rejected_a: Side-A rows dropped during canonicalization
            rejected_b: Side-B rows dropped during canonicalization

        Returns:
            Immutable reconciliation report
        """
        unmatched_a = tuple(pool.remaining_a())
        unmatched_b = tuple(pool.remaining_b())

        insights = tuple(self.hints.insights(unmatched_b)) if self.hints is not None else ()

        total_amount_a = sum((t.amount for t in pool.records_a), Decimal("0"))
        total_amount_b = sum((t.amount for t in pool.records_b), Decimal("0"))

        summary = ReconciliationSummary(
            total_a=len(pool.records_a),
            total_b=len(pool.records_b),
            matched_count=sum(1 for r in results if r.status is MatchStatus.MATCHED),
            discrepancy_count=sum(1 for r in results if r.status is MatchStatus.DISCREPANCY),
            unmatched_a_count=len(unmatched_a),
            unmatched_b_count=len(unmatched_b),
            exact_count=sum(1 for r in results if r.pair.match_type is MatchType.EXACT),
            fuzzy_count=sum(1 for r in results if r.pair.match_type is MatchType.FUZZY),
            rejected_a=rejected_a,
            rejected_b=rejected_b,
            total_amount_a=total_amount_a,
            total_amount_b=total_amount_b,
            amount_variance=amount_gap(total_amount_a, total_amount_b, self.sign_convention),
        )

        paired = 2 * summary.paired_count + len(unmatched_a) + len(unmatched_b)
        if paired != summary.total_a + summary.total_b:
            raise ReconciliationError(
                f"Record conservation violated: {paired} placed, "
                f"{summary.total_a + summary.total_b} canonical"
            )

        logger.debug(f"Summary: {summary.to_dict()}")

        return ReconciliationReport(
            matched=tuple(results),
            unmatched_a=unmatched_a,
            unmatched_b=unmatched_b,
            summary=summary,
            insights=insights,
        )
