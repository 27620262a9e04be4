"""
Reconciliation engine.
Runs canonicalization, the exact and fuzzy passes, discrepancy detection
and aggregation as one synchronous batch.
"""

from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
import logging

from ..config import ReconConfig
from ..models.report import HistoricalHint, ReconciliationReport
from ..models.transaction import MatchCandidate, Side, TransactionRecord
from ..parsers.canonicalizer import Canonicalizer
from ..utils.exceptions import InputTooLargeError, ReconciliationError
from .aggregator import ResultAggregator
from .discrepancy import DiscrepancyDetector
from .history import HintIndex
from .scoring import SimilarityScorer
from .strategies import (
    CandidatePool,
    ExactMatchStrategy,
    FuzzyMatchStrategy,
    MatchingStrategy,
)

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates the matching process.

    The engine keeps no per-run state: every call builds its own candidate
    pool, so one engine may serve independent runs concurrently.
    """

    def __init__(self, config: ReconConfig, today: Optional[date] = None):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            today: Run date for the lenient date profile (defaults to today)

        Raises:
            ConfigurationError: If the alias table is invalid
        """
        self.config = config
        self.canonicalizer = Canonicalizer(config, today=today)
        self.scorer = SimilarityScorer(config.matching)
        self.detector = DiscrepancyDetector(config.matching)

    def _build_strategies(
        self,
        hints: Optional[HintIndex],
        should_cancel: Optional[Callable[[], bool]],
    ) -> list[tuple[str, MatchingStrategy]]:
        """Exact pass first, so identical numbers never reach the fuzzy pass."""
        return [
            ("exact", ExactMatchStrategy()),
            (
                "fuzzy",
                FuzzyMatchStrategy(
                    scorer=self.scorer,
                    min_confidence=self.config.matching.min_confidence,
                    hints=hints,
                    should_cancel=should_cancel,
                ),
            ),
        ]

    def reconcile_rows(
        self,
        rows_a: Iterable[Mapping[str, Any]],
        rows_b: Iterable[Mapping[str, Any]],
        date_format_a: Optional[str] = None,
        date_format_b: Optional[str] = None,
        hint_rows: Optional[Iterable[Mapping[str, Any]]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> ReconciliationReport:
        """
        Canonicalize raw rows for both sides and reconcile them.

        Args:
            rows_a: Raw rows for side A, in input order
            rows_b: Raw rows for side B, in input order
            date_format_a: Date format hint for side A (config default if None)
            date_format_b: Date format hint for side B (config default if None)
            hint_rows: Optional prior-period rows used as historical hints
            should_cancel: Optional cooperative cancellation check

        Returns:
            Reconciliation report
        """
        input_config = self.config.input
        batch_a = self.canonicalizer.canonicalize_rows(
            rows_a, Side.A, date_format_a or input_config.date_format_a
        )
        batch_b = self.canonicalizer.canonicalize_rows(
            rows_b, Side.B, date_format_b or input_config.date_format_b
        )

        hints: list[HistoricalHint] = []
        for idx, row in enumerate(hint_rows or []):
            hint = self.canonicalizer.canonicalize_hint(row, idx, date_format_a or input_config.date_format_a)
            if hint is not None:
                hints.append(hint)

        return self.reconcile(
            batch_a.records,
            batch_b.records,
            hints=hints,
            should_cancel=should_cancel,
            rejected_a=len(batch_a.rejected),
            rejected_b=len(batch_b.rejected),
        )

    def reconcile(
        self,
        records_a: Sequence[TransactionRecord],
        records_b: Sequence[TransactionRecord],
        hints: Optional[Sequence[HistoricalHint]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
        rejected_a: int = 0,
        rejected_b: int = 0,
    ) -> ReconciliationReport:
        """
        Perform reconciliation between two sets of canonical records.

        Args:
            records_a: Canonical side-A records
            records_b: Canonical side-B records
            hints: Optional prior-period hints
            should_cancel: Optional cooperative cancellation check
            rejected_a: Side-A rows dropped earlier, reported in the summary
            rejected_b: Side-B rows dropped earlier, reported in the summary

        Returns:
            Reconciliation report

        Raises:
            InputTooLargeError: If a side exceeds ``max_records_per_side``
            ReconciliationCancelled: If ``should_cancel`` returned True
        """
        start_time = datetime.now()
        self._check_inputs(records_a, records_b)

        logger.info(
            f"Starting reconciliation: {len(records_a)} side-A records, "
            f"{len(records_b)} side-B records"
        )

        hint_index: Optional[HintIndex] = None
        if hints and self.config.hints.enabled:
            hint_index = HintIndex(hints, self.config.hints)

        pool = CandidatePool(records_a, records_b)
        candidates: list[MatchCandidate] = []

        for pass_name, strategy in self._build_strategies(hint_index, should_cancel):
            found = strategy.find_matches(pool)
            candidates.extend(found)
            logger.debug(
                f"Pass {pass_name}: {len(found)} matches, "
                f"{len(pool.remaining_a())} side-A and {len(pool.remaining_b())} side-B remaining"
            )

        results = self.detector.detect_all(candidates)
        aggregator = ResultAggregator(hint_index, self.config.matching.sign_convention)
        report = aggregator.aggregate(results, pool, rejected_a, rejected_b)

        elapsed = (datetime.now() - start_time).total_seconds()
        summary = report.summary
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {summary.matched_count} matched, "
            f"{summary.discrepancy_count} with discrepancies, "
            f"{summary.unmatched_a_count} side-A only, {summary.unmatched_b_count} side-B only"
        )

        return report

    def _check_inputs(
        self,
        records_a: Sequence[TransactionRecord],
        records_b: Sequence[TransactionRecord],
    ) -> None:
        for expected, records in ((Side.A, records_a), (Side.B, records_b)):
            wrong = [r.id for r in records if r.side is not expected]
            if wrong:
                raise ReconciliationError(
                    f"Records {wrong[:5]} are not side {expected.value}"
                )

        cap = self.config.matching.max_records_per_side
        if cap is not None and max(len(records_a), len(records_b)) > cap:
            raise InputTooLargeError(
                f"Input exceeds {cap} records per side "
                f"({len(records_a)} side-A, {len(records_b)} side-B)"
            )
