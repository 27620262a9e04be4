"""Matching engine and strategies."""

from .aggregator import ResultAggregator
from .discrepancy import DiscrepancyDetector
from .engine import ReconciliationEngine
from .history import HintIndex
from .scoring import ScoreBreakdown, SimilarityScorer, amount_gap, edit_similarity
from .strategies import (
    CandidatePool,
    MatchingStrategy,
    ExactMatchStrategy,
    FuzzyMatchStrategy,
)

__all__ = [
    "ReconciliationEngine",
    "ResultAggregator",
    "DiscrepancyDetector",
    "HintIndex",
    "ScoreBreakdown",
    "SimilarityScorer",
    "amount_gap",
    "edit_similarity",
    "CandidatePool",
    "MatchingStrategy",
    "ExactMatchStrategy",
    "FuzzyMatchStrategy",
]
