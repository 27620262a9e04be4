"""Historical match hints: prior-period outcomes consulted during a run."""

from typing import Iterable, Optional
import logging

from ..config import HintsConfig
from ..models.report import HistoricalHint, HistoricalInsight, InsightKind
from ..models.transaction import TransactionRecord

logger = logging.getLogger(__name__)


def _key(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


class HintIndex:
    """
    Lookup structure over prior-period hints.

    Serves two purposes: lifting borderline fuzzy scores for pairings that
    recur across periods, and explaining unmatched records that already
    appear in history (paid, voided, drafted).
    """

    def __init__(self, hints: Iterable[HistoricalHint], config: HintsConfig):
        self.config = config
        self._hints: list[HistoricalHint] = list(hints)
        self._pairs: set[tuple[str, str]] = set()
        self._by_number: dict[str, list[HistoricalHint]] = {}
        self._by_reference: dict[str, list[HistoricalHint]] = {}

        for hint in self._hints:
            number = _key(hint.transaction_number)
            if number:
                self._by_number.setdefault(number, []).append(hint)
                counterpart = _key(hint.counterparty_transaction_number)
                if counterpart:
                    self._pairs.add((number, counterpart))
            reference = _key(hint.reference)
            if reference:
                self._by_reference.setdefault(reference, []).append(hint)

        logger.debug(f"Hint index: {len(self._hints)} hints, {len(self._pairs)} known pairings")

    def __len__(self) -> int:
        return len(self._hints)

    def recurs(self, record_a: TransactionRecord, record_b: TransactionRecord) -> bool:
        """True when this exact pairing was matched in a prior period."""
        return (_key(record_a.transaction_number), _key(record_b.transaction_number)) in self._pairs

    def adjust(
        self,
        record_a: TransactionRecord,
        record_b: TransactionRecord,
        score: float,
        min_confidence: float,
    ) -> tuple[float, bool]:
        """
        Bias a borderline score upward for a recurring pairing.

        Returns:
            Tuple of (possibly boosted score, whether a boost was applied)
        """
        if abs(score - min_confidence) > self.config.borderline_band:
            return score, False
        if not self.recurs(record_a, record_b):
            return score, False

        boosted = min(1.0, score + self.config.boost)
        logger.debug(
            f"Historical boost {record_a.id} <-> {record_b.id}: {score:.3f} -> {boosted:.3f}"
        )
        return boosted, True

    def lookup(self, record: TransactionRecord) -> list[HistoricalHint]:
        """Hints sharing the record's transaction number or reference, best first."""
        found: list[HistoricalHint] = []
        for hint in self._by_number.get(_key(record.transaction_number), []):
            found.append(hint)
        for hint in self._by_reference.get(_key(record.reference), []):
            if hint not in found:
                found.append(hint)

        # Paid first, then most recent issue date; undated last
        found.sort(
            key=lambda h: (
                0 if h.is_paid else 1,
                0 if h.issue_date else 1,
                -h.issue_date.toordinal() if h.issue_date else 0,
            )
        )
        return found

    def insight_for(self, record: TransactionRecord) -> Optional[HistoricalInsight]:
        matches = self.lookup(record)
        if not matches:
            return None

        hint = matches[0]
        number = record.transaction_number or record.reference or record.id

        if hint.is_paid:
            paid_on = hint.payment_date.isoformat() if hint.payment_date else "an unknown date"
            kind, severity = InsightKind.ALREADY_PAID, "warning"
            message = f"Invoice {number} appears to have been paid on {paid_on}"
        elif hint.is_partially_paid:
            kind, severity = InsightKind.PARTIALLY_PAID, "warning"
            message = f"Invoice {number} is partially paid in prior-period records"
        elif hint.is_voided:
            kind, severity = InsightKind.VOIDED, "error"
            message = f"Invoice {number} was voided in prior-period records"
        elif (hint.status or "").upper() == "DRAFT":
            kind, severity = InsightKind.DRAFT, "info"
            message = f"Invoice {number} exists as a draft in prior-period records"
        else:
            kind, severity = InsightKind.FOUND_IN_HISTORY, "info"
            message = f"Invoice {number} found in prior-period records with status: {hint.status}"

        return HistoricalInsight(
            record=record,
            hint=hint,
            kind=kind,
            severity=severity,
            message=message,
        )

    def insights(self, records: Iterable[TransactionRecord]) -> list[HistoricalInsight]:
        results: list[HistoricalInsight] = []
        for record in records:
            insight = self.insight_for(record)
            if insight is not None:
                results.append(insight)
        return results
