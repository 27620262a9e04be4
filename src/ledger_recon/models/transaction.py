"""Data models for canonical transactions and match results."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class Side(Enum):
    """Which of the two input collections a record came from."""

    A = "A"
    B = "B"


class MatchType(Enum):
    """How a pair was found."""

    EXACT = "exact"
    FUZZY = "fuzzy"


class MatchStatus(Enum):
    """Outcome of field-level validation on a matched pair."""

    MATCHED = "matched"
    DISCREPANCY = "discrepancy"


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class TransactionRecord:
    """
    Canonical transaction representation used by every matching pass.

    Records are immutable once canonicalized, so the matchers can share
    them freely and re-runs over the same input produce the same report.
    """

    # Identifier, unique within its side
    id: str

    # Source collection
    side: Side

    # Signed amount; the two sides are expected to carry opposite signs
    amount: Decimal

    # Invoice / transaction number used for exact matching (may be empty)
    transaction_number: str = ""

    # Secondary identifier (payment reference, PO number)
    reference: Optional[str] = None

    issue_date: Optional[date] = None
    due_date: Optional[date] = None

    # Weak similarity signal only
    counterparty_name: Optional[str] = None

    # Source lifecycle label, passed through untouched
    status: Optional[str] = None

    # Position of the source row in its input collection
    row_index: int = 0

    # Original row for audit trail
    raw_data: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, hash=False, repr=False
    )

    def __post_init__(self) -> None:
        if not isinstance(self.raw_data, MappingProxyType):
            object.__setattr__(self, "raw_data", MappingProxyType(dict(self.raw_data)))

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-friendly representation."""
        return {
            "id": self.id,
            "side": self.side.value,
            "transaction_number": self.transaction_number,
            "reference": self.reference,
            "amount": str(self.amount),
            "issue_date": _iso(self.issue_date),
            "due_date": _iso(self.due_date),
            "counterparty_name": self.counterparty_name,
            "status": self.status,
            "row_index": self.row_index,
        }


@dataclass(frozen=True)
class MatchCandidate:
    """A proposed pairing of one side-A record with one side-B record."""

    record_a: TransactionRecord
    record_b: TransactionRecord
    confidence: float
    match_type: MatchType

    # True when a historical hint lifted the score
    historical: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.record_a.side is not Side.A or self.record_b.side is not Side.B:
            raise ValueError(
                f"pair must be (A, B), got ({self.record_a.side.value}, {self.record_b.side.value})"
            )


@dataclass(frozen=True)
class Discrepancy:
    """One disagreeing field on a matched pair, with both original values."""

    field: str
    value_a: Any
    value_b: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "value_a": _render(self.value_a),
            "value_b": _render(self.value_b),
        }


def _render(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class MatchResult:
    """A matched pair after discrepancy detection."""

    pair: MatchCandidate
    discrepancies: tuple[Discrepancy, ...] = ()
    status: MatchStatus = MatchStatus.MATCHED

    @property
    def record_a(self) -> TransactionRecord:
        return self.pair.record_a

    @property
    def record_b(self) -> TransactionRecord:
        return self.pair.record_b

    @property
    def is_exact_match(self) -> bool:
        """Exact identifier match with no field disagreement."""
        return self.pair.match_type is MatchType.EXACT and self.status is MatchStatus.MATCHED

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_a": self.pair.record_a.to_dict(),
            "record_b": self.pair.record_b.to_dict(),
            "confidence": self.pair.confidence,
            "match_type": self.pair.match_type.value,
            "status": self.status.value,
            "historical": self.pair.historical,
            "discrepancies": [d.to_dict() for d in self.discrepancies],
        }
