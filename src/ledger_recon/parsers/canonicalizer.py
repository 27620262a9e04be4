"""
Row canonicalizer.
Turns arbitrary key-named input rows into canonical transaction records.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional
import hashlib
import logging
import re

import pandas as pd

from ..config import DateProfile, ReconConfig
from ..models.report import HistoricalHint
from ..models.transaction import Side, TransactionRecord
from ..utils.exceptions import CanonicalizationError
from .aliases import AliasTable, normalize_row

logger = logging.getLogger(__name__)

RECORD_FIELDS = (
    "id",
    "transaction_number",
    "reference",
    "amount",
    "issue_date",
    "due_date",
    "counterparty_name",
    "status",
)

_XERO_DATE = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DATE_TOKENS = re.compile(r"YYYY|YY|MMMM|MMM|MM|M|DD|D")
_TOKEN_TO_STRFTIME = {
    "YYYY": "%Y",
    "YY": "%y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "M": "%m",
    "DD": "%d",
    "D": "%d",
}
_CURRENCY_SYMBOLS = re.compile(r"[$€£¥₹₩₽¢₺₪₫฿]")
# ISO 4217 code at either end, e.g. "USD 100" or "100EUR"
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}(?=[\s\d(])|(?<=[\s\d)])[A-Z]{3}$")
# Whitespace (incl. no-break spaces) and apostrophes used as thousands separators
_GROUPING = re.compile(r"[\s']")
_DECIMAL_COMMA = re.compile(r"^[-+]?\d+,\d{1,2}$")
_TRUTHY = {"true", "yes", "y", "1", "t"}


@dataclass
class CanonicalBatch:
    """Canonical records for one side plus the indexes of dropped rows."""

    side: Side
    records: list[TransactionRecord] = field(default_factory=list)
    rejected: list[int] = field(default_factory=list)


class Canonicalizer:
    """
    Converts raw rows into ``TransactionRecord`` objects.

    Canonicalization never depends on wall-clock time or randomness except
    through ``today``, which is fixed when the canonicalizer is built, so
    the same row always yields the same record within a run.
    """

    def __init__(self, config: ReconConfig, today: Optional[date] = None):
        """
        Initialize the canonicalizer with configuration.

        Args:
            config: Application configuration object
            today: Date used by the lenient profile for unparseable dates
        """
        self.config = config
        self.aliases = AliasTable(config.input.extra_aliases)
        self.date_profile = config.input.date_profile
        self.today = today or date.today()

    def canonicalize_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        side: Side,
        date_format: Optional[str] = None,
    ) -> CanonicalBatch:
        """
        Canonicalize every row of one side.

        Rows that cannot be canonicalized are logged and dropped; duplicate
        identifiers get a ``#n`` suffix so ids stay unique within the side.

        Args:
            rows: Raw rows in input order
            side: Which collection the rows belong to
            date_format: Date format hint for this side

        Returns:
            CanonicalBatch with records in input order
        """
        batch = CanonicalBatch(side=side)
        emitted: set[str] = set()
        next_suffix: dict[str, int] = {}

        for idx, row in enumerate(rows):
            record = self.canonicalize(row, side, idx, date_format)
            if record is None:
                batch.rejected.append(idx)
                continue

            if record.id in emitted:
                suffix = next_suffix.get(record.id, 2)
                while f"{record.id}#{suffix}" in emitted:
                    suffix += 1
                next_suffix[record.id] = suffix + 1
                new_id = f"{record.id}#{suffix}"
                logger.warning(
                    f"Side {side.value} row {idx}: duplicate id {record.id!r}, renamed to {new_id!r}"
                )
                record = replace(record, id=new_id)
            emitted.add(record.id)
            batch.records.append(record)

        logger.info(
            f"Side {side.value}: canonicalized {len(batch.records)} rows, "
            f"rejected {len(batch.rejected)}"
        )
        return batch

    def canonicalize(
        self,
        row: Mapping[str, Any],
        side: Side,
        row_index: int,
        date_format: Optional[str] = None,
    ) -> Optional[TransactionRecord]:
        """
        Convert one raw row into a canonical record.

        Args:
            row: Mapping of arbitrary keys to primitive values
            side: Which collection the row belongs to
            row_index: Position of the row in its collection
            date_format: Date format hint (strftime or DD/MM/YYYY style)

        Returns:
            The canonical record, or None if the row was rejected
        """
        try:
            return self._build_record(row, side, row_index, date_format)
        except CanonicalizationError as e:
            logger.warning(f"Side {side.value} row {row_index}: {e}, skipping")
            return None

    def canonicalize_hint(
        self,
        row: Mapping[str, Any],
        row_index: int = 0,
        date_format: Optional[str] = None,
    ) -> Optional[HistoricalHint]:
        """
        Convert a prior-period row into a historical hint.

        Args:
            row: Raw prior-period row
            row_index: Position of the row, for logging
            date_format: Date format hint

        Returns:
            HistoricalHint, or None when the row has no identifier
        """
        if not isinstance(row, Mapping):
            logger.warning(f"Hint row {row_index}: not a mapping, skipping")
            return None

        normalized = normalize_row(row)
        transaction_number = _text(self.aliases.resolve(normalized, "transaction_number"))
        reference = _text(self.aliases.resolve(normalized, "reference"))
        if not transaction_number and not reference:
            logger.warning(f"Hint row {row_index}: no transaction number or reference, skipping")
            return None

        status = _text(self.aliases.resolve(normalized, "status"))
        status_key = (status or "").upper()

        return HistoricalHint(
            transaction_number=transaction_number or "",
            counterparty_transaction_number=_text(
                self.aliases.resolve(normalized, "counterparty_transaction_number")
            ),
            reference=reference,
            status=status,
            is_paid=_flag(self.aliases.resolve(normalized, "is_paid")) or status_key == "PAID",
            is_partially_paid=_flag(self.aliases.resolve(normalized, "is_partially_paid"))
            or status_key in ("PARTIALLY_PAID", "PARTIAL"),
            is_voided=_flag(self.aliases.resolve(normalized, "is_voided"))
            or status_key in ("VOIDED", "VOID"),
            issue_date=parse_date(self.aliases.resolve(normalized, "issue_date"), date_format),
            payment_date=parse_date(self.aliases.resolve(normalized, "payment_date"), date_format),
        )

    def _build_record(
        self,
        row: Mapping[str, Any],
        side: Side,
        row_index: int,
        date_format: Optional[str],
    ) -> TransactionRecord:
        if not isinstance(row, Mapping):
            raise CanonicalizationError("row is not a mapping", row_index)

        normalized = normalize_row(row)
        values = {name: self.aliases.resolve(normalized, name) for name in RECORD_FIELDS}

        if all(v is None for v in values.values()):
            raise CanonicalizationError("no usable field", row_index)

        raw_amount = values["amount"]
        if raw_amount is None:
            raise CanonicalizationError("no amount", row_index)
        amount = parse_amount(raw_amount)
        if amount is None:
            raise CanonicalizationError(f"unparseable amount {raw_amount!r}", row_index)

        record_id = _text(values["id"]) or synthetic_id(side, row_index, row)

        return TransactionRecord(
            id=record_id,
            side=side,
            amount=amount,
            transaction_number=_text(values["transaction_number"]) or "",
            reference=_text(values["reference"]),
            issue_date=self._resolve_date(values["issue_date"], date_format, side, row_index),
            due_date=self._resolve_date(values["due_date"], date_format, side, row_index),
            counterparty_name=_text(values["counterparty_name"]),
            status=_text(values["status"]),
            row_index=row_index,
            raw_data=dict(row),
        )

    def _resolve_date(
        self,
        value: Any,
        date_format: Optional[str],
        side: Side,
        row_index: int,
    ) -> Optional[date]:
        if value is None:
            return None

        parsed = parse_date(value, date_format)
        if parsed is not None:
            return parsed

        if self.date_profile is DateProfile.LENIENT:
            logger.warning(
                f"Side {side.value} row {row_index}: unparseable date {value!r}, "
                f"using {self.today.isoformat()}"
            )
            return self.today

        logger.warning(f"Side {side.value} row {row_index}: unparseable date {value!r}, left unset")
        return None


def synthetic_id(side: Side, row_index: int, row: Mapping[str, Any]) -> str:
    """Deterministic identifier for rows that carry none."""
    content = repr(sorted((str(k), repr(v)) for k, v in row.items()))
    digest = hashlib.sha1(content.encode("utf-8")).hexdigest()[:8]
    return f"{side.value}-{row_index:05d}-{digest}"


def parse_amount(amount_value: Any) -> Optional[Decimal]:
    """
    Parse an amount value into a finite Decimal.

    Handles currency symbols and codes, thousands separators, decimal
    commas, the Unicode minus and accounting-style parentheses for
    negatives. Any other character makes the value unparseable.

    Args:
        amount_value: Amount value (string, number, or None)

    Returns:
        Decimal amount or None if the value is not a finite number
    """
    if amount_value is None or isinstance(amount_value, bool):
        return None

    if isinstance(amount_value, Decimal):
        return amount_value if amount_value.is_finite() else None

    if isinstance(amount_value, int):
        return Decimal(amount_value)

    if isinstance(amount_value, float):
        if amount_value != amount_value or amount_value in (float("inf"), float("-inf")):
            return None
        return Decimal(str(amount_value))

    text = _CURRENCY_SYMBOLS.sub("", str(amount_value).replace("\u2212", "-")).strip()
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1].strip()

    text = _CURRENCY_CODE.sub("", text)
    text = _GROUPING.sub("", text)

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif _DECIMAL_COMMA.match(text):
        text = text.replace(",", ".")
    else:
        text = text.replace(",", "")

    if not text or text in ("-", "+", "."):
        return None

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None

    if not amount.is_finite():
        return None
    return -amount if negative else amount


def to_strftime(date_format: str) -> str:
    """Translate a DD/MM/YYYY style hint into a strftime pattern."""
    if "%" in date_format:
        return date_format
    return _DATE_TOKENS.sub(lambda m: _TOKEN_TO_STRFTIME[m.group(0)], date_format)


def parse_date(date_value: Any, date_format: Optional[str] = None) -> Optional[date]:
    """
    Parse a date value; time of day is discarded.

    Tries, in order: native date objects, Xero ``/Date(ms)/`` timestamps,
    the supplied format, ISO ``YYYY-MM-DD``, then a permissive pandas parse.

    Args:
        date_value: Date value (string, date or datetime)
        date_format: Optional format hint

    Returns:
        Python date object or None
    """
    if date_value is None:
        return None

    if isinstance(date_value, datetime):
        return None if pd.isna(date_value) else date_value.date()
    if isinstance(date_value, date):
        return date_value

    text = str(date_value).strip()
    if not text:
        return None

    xero = _XERO_DATE.match(text)
    if xero:
        millis = int(xero.group(1))
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).date()

    if date_format:
        try:
            return datetime.strptime(text, to_strftime(date_format)).date()
        except ValueError:
            pass

    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass

    # Generic fallback, day-first when the hint says so
    dayfirst = bool(date_format) and to_strftime(date_format).lstrip().startswith("%d")
    try:
        parsed = pd.to_datetime(text, dayfirst=dayfirst)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def _flag(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY
