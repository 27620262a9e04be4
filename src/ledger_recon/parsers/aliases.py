"""
Declared column aliases for each logical transaction field.

Source systems name the same column in many ways ("Invoice Number",
"invoice_number", "invoiceNumber", "INV_NO"). The table below is the single
place those variations are listed; it is validated once when built.
"""

from typing import Any, Mapping, Optional
import re

from ..utils.exceptions import ConfigurationError

LOGICAL_FIELDS = (
    "id",
    "transaction_number",
    "reference",
    "amount",
    "issue_date",
    "due_date",
    "counterparty_name",
    "status",
    # Historical hint fields
    "counterparty_transaction_number",
    "payment_date",
    "is_paid",
    "is_partially_paid",
    "is_voided",
)

# Order matters: the first alias holding a non-empty value wins
DEFAULT_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "_id", "transaction_id", "record_id", "uuid", "line_id"),
    "transaction_number": (
        "transaction_number",
        "invoice_number",
        "invoice_no",
        "inv_no",
        "invoice",
        "invoice_id",
        "document_number",
        "doc_number",
        "number",
        "num",
        "reference",
    ),
    "reference": ("payment_reference", "ref", "reference_number", "po_number", "reference"),
    "amount": (
        "amount",
        "total",
        "total_amount",
        "invoice_amount",
        "amount_due",
        "outstanding",
        "balance",
    ),
    "issue_date": (
        "issue_date",
        "invoice_date",
        "transaction_date",
        "date",
        "created_date",
        "document_date",
    ),
    "due_date": ("due_date", "payment_due", "due", "payment_due_date"),
    "counterparty_name": (
        "counterparty_name",
        "counterparty",
        "vendor",
        "vendor_name",
        "supplier",
        "supplier_name",
        "customer",
        "customer_name",
        "contact",
        "contact_name",
    ),
    "status": ("status", "approval_status", "ar_status", "ap_status", "invoice_status"),
    "counterparty_transaction_number": (
        "counterparty_transaction_number",
        "matched_transaction_number",
        "matched_invoice_number",
        "counterpart_number",
    ),
    "payment_date": ("payment_date", "paid_date", "date_paid", "fully_paid_on_date"),
    "is_paid": ("is_paid", "paid"),
    "is_partially_paid": ("is_partially_paid", "partially_paid"),
    "is_voided": ("is_voided", "voided"),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_key(key: Any) -> str:
    """Lowercase and drop everything but letters and digits."""
    return _NON_ALNUM.sub("", str(key).lower())


class AliasTable:
    """Resolves logical fields from raw rows using a validated alias table."""

    def __init__(self, extra_aliases: Optional[Mapping[str, list[str]]] = None):
        """
        Build and validate the table.

        Args:
            extra_aliases: Additional aliases per logical field, tried after
                the built-in ones

        Raises:
            ConfigurationError: On unknown fields, empty aliases or an alias
                claimed by two fields
        """
        merged: dict[str, list[str]] = {k: list(v) for k, v in DEFAULT_ALIASES.items()}
        for logical, aliases in (extra_aliases or {}).items():
            if logical not in LOGICAL_FIELDS:
                raise ConfigurationError(f"Unknown logical field in aliases: {logical}")
            merged.setdefault(logical, []).extend(aliases)

        self._aliases: dict[str, tuple[str, ...]] = {}
        owner: dict[str, str] = {}
        for logical in LOGICAL_FIELDS:
            normalized: list[str] = []
            for alias in merged.get(logical, []):
                key = normalize_key(alias)
                if not key:
                    raise ConfigurationError(f"Empty alias for field {logical!r}")
                if key in normalized:
                    continue
                # "reference" doubles as a last-resort transaction number
                previous = owner.get(key)
                if previous is not None and {previous, logical} != {"transaction_number", "reference"}:
                    raise ConfigurationError(
                        f"Alias {alias!r} is claimed by both {previous!r} and {logical!r}"
                    )
                owner.setdefault(key, logical)
                normalized.append(key)
            if not normalized:
                raise ConfigurationError(f"No aliases declared for field {logical!r}")
            self._aliases[logical] = tuple(normalized)

    def aliases_for(self, logical: str) -> tuple[str, ...]:
        return self._aliases[logical]

    def resolve(self, normalized_row: Mapping[str, Any], logical: str) -> Any:
        """
        Return the first non-empty value for a logical field.

        Args:
            normalized_row: Row whose keys already went through normalize_key
            logical: Logical field name

        Returns:
            The raw value, or None when no alias holds a usable value
        """
        for key in self._aliases[logical]:
            value = normalized_row.get(key)
            if _is_empty(value):
                continue
            return value
        return None


def normalize_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Re-key a raw row; on key collisions the first non-empty value is kept."""
    normalized: dict[str, Any] = {}
    for key, value in row.items():
        nkey = normalize_key(key)
        if nkey in normalized and not _is_empty(normalized[nkey]):
            continue
        normalized[nkey] = value
    return normalized


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN from pandas
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False
