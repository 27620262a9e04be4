"""
Matching strategies for transaction reconciliation.
Each strategy claims pairs from a shared candidate pool.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Iterator, Optional, Sequence
import logging

from ..models.transaction import MatchCandidate, MatchType, TransactionRecord
from ..utils.exceptions import ReconciliationCancelled
from .history import HintIndex
from .scoring import SimilarityScorer

logger = logging.getLogger(__name__)


class CandidatePool:
    """
    Both sides' records plus claimed markers.

    Records are never removed; a claimed position is simply skipped by
    later scans, so iteration order always equals input order.
    """

    def __init__(
        self,
        records_a: Sequence[TransactionRecord],
        records_b: Sequence[TransactionRecord],
    ):
        self.records_a: tuple[TransactionRecord, ...] = tuple(records_a)
        self.records_b: tuple[TransactionRecord, ...] = tuple(records_b)
        self._claimed_a: set[int] = set()
        self._claimed_b: set[int] = set()

    def unclaimed_a(self) -> Iterator[tuple[int, TransactionRecord]]:
        for idx, record in enumerate(self.records_a):
            if idx not in self._claimed_a:
                yield idx, record

    def unclaimed_b(self) -> Iterator[tuple[int, TransactionRecord]]:
        for idx, record in enumerate(self.records_b):
            if idx not in self._claimed_b:
                yield idx, record

    def is_claimed_b(self, idx: int) -> bool:
        return idx in self._claimed_b

    def claim(self, idx_a: int, idx_b: int) -> None:
        """Mark one position on each side as matched."""
        if idx_a in self._claimed_a or idx_b in self._claimed_b:
            raise ValueError(f"Position already claimed: A[{idx_a}] / B[{idx_b}]")
        self._claimed_a.add(idx_a)
        self._claimed_b.add(idx_b)

    def remaining_a(self) -> list[TransactionRecord]:
        return [record for _, record in self.unclaimed_a()]

    def remaining_b(self) -> list[TransactionRecord]:
        return [record for _, record in self.unclaimed_b()]


class MatchingStrategy(ABC):
    """Abstract base class for matching strategies."""

    match_type: MatchType

    @abstractmethod
    def find_matches(self, pool: CandidatePool) -> list[MatchCandidate]:
        """
        Claim pairs from the pool.

        Args:
            pool: Shared pool; claimed positions are marked in place

        Returns:
            Candidates in the order they were claimed
        """
        pass


class ExactMatchStrategy(MatchingStrategy):
    """
    Exact match strategy - identical transaction numbers.

    Greedy first-fit: side-A records are processed in input order and each
    takes the earliest unclaimed side-B record with the same number.
    """

    match_type = MatchType.EXACT

    def find_matches(self, pool: CandidatePool) -> list[MatchCandidate]:
        # transaction_number -> side-B positions in input order
        index: dict[str, deque[int]] = {}
        for idx_b, record_b in pool.unclaimed_b():
            if record_b.transaction_number:
                index.setdefault(record_b.transaction_number, deque()).append(idx_b)

        matches: list[MatchCandidate] = []
        for idx_a, record_a in pool.unclaimed_a():
            if not record_a.transaction_number:
                continue

            queue = index.get(record_a.transaction_number)
            while queue and pool.is_claimed_b(queue[0]):
                queue.popleft()
            if not queue:
                continue

            idx_b = queue.popleft()
            pool.claim(idx_a, idx_b)
            record_b = pool.records_b[idx_b]
            matches.append(
                MatchCandidate(
                    record_a=record_a,
                    record_b=record_b,
                    confidence=1.0,
                    match_type=MatchType.EXACT,
                )
            )
            logger.debug(f"Exact match {record_a.id} <-> {record_b.id} on {record_a.transaction_number!r}")

        return matches


class FuzzyMatchStrategy(MatchingStrategy):
    """
    Fuzzy matching - best weighted similarity above a threshold.

    For each remaining side-A record every remaining side-B record is
    scored and the highest score wins. Ties go to the side-B record that
    comes first in input order. The winner is accepted only when its score
    is strictly above ``min_confidence``.
    """

    match_type = MatchType.FUZZY

    def __init__(
        self,
        scorer: SimilarityScorer,
        min_confidence: float = 0.7,
        hints: Optional[HintIndex] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the fuzzy strategy.

        Args:
            scorer: Pair scorer
            min_confidence: Scores must be strictly above this to match
            hints: Optional historical hints used to lift borderline scores
            should_cancel: Polled once per side-A record; True aborts the run
        """
        self.scorer = scorer
        self.min_confidence = min_confidence
        self.hints = hints
        self.should_cancel = should_cancel

    def find_matches(self, pool: CandidatePool) -> list[MatchCandidate]:
        matches: list[MatchCandidate] = []

        for idx_a, record_a in pool.unclaimed_a():
            if self.should_cancel is not None and self.should_cancel():
                raise ReconciliationCancelled(
                    f"Fuzzy pass cancelled after {len(matches)} matches"
                )

            best_idx: Optional[int] = None
            best_score = -1.0
            best_historical = False

            for idx_b, record_b in pool.unclaimed_b():
                score, historical = self._score_pair(record_a, record_b)
                # Strict comparison keeps the earliest candidate on ties
                if score > best_score:
                    best_idx, best_score, best_historical = idx_b, score, historical

            if best_idx is None or best_score <= self.min_confidence:
                logger.debug(
                    f"No fuzzy match for {record_a.id} (best {max(best_score, 0.0):.3f})"
                )
                continue

            pool.claim(idx_a, best_idx)
            record_b = pool.records_b[best_idx]
            matches.append(
                MatchCandidate(
                    record_a=record_a,
                    record_b=record_b,
                    confidence=best_score,
                    match_type=MatchType.FUZZY,
                    historical=best_historical,
                )
            )
            logger.debug(f"Fuzzy match {record_a.id} <-> {record_b.id} ({best_score:.3f})")

        return matches

    def _score_pair(
        self, record_a: TransactionRecord, record_b: TransactionRecord
    ) -> tuple[float, bool]:
        """Score one pair; a fault on the pair counts as no match."""
        try:
            score = self.scorer.score(record_a, record_b)
        except Exception as e:
            logger.warning(f"Scoring failed for {record_a.id} vs {record_b.id}: {e}")
            return 0.0, False

        if self.hints is not None:
            return self.hints.adjust(record_a, record_b, score, self.min_confidence)
        return score, False
