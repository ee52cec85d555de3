"""
Card Record — Typed, Read-Only Card Value

Pure-data module. No side effects, no I/O.

The record store hands the pipeline already-loaded card rows (dicts straight
from the database or from an HTTP payload). This module turns each row into a
frozen CardRecord with every field optional, and exposes a single named
accessor (``get``) that the executor uses for both stored and computed fields.

COMPUTED FIELDS
---------------
    utilization       current_balance / credit_limit * 100 (2 decimals)
    available_credit  max(credit_limit - current_balance, 0)

Neither is stored; both are derived on access and return None when the
inputs needed to compute them are missing.

INVARIANTS:
- Records are immutable for the duration of a query
- from_dict() never raises on row content (malformed numbers become None)
- Unknown keys are ignored, never an error
"""

import logging
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


NUMERIC_FIELDS = frozenset({
    "apr",
    "credit_limit",
    "current_balance",
    "amount_to_pay",
    "annual_fee",
    "payment_due_day",
    "statement_close_day",
    "grace_period_days",
})

COMPUTED_FIELDS = frozenset({"utilization", "available_credit"})

_EMPTY_REWARDS: Mapping[str, float] = MappingProxyType({})


# =============================================================================
# COERCION HELPERS
# =============================================================================

def to_number(value: Any) -> Optional[float]:
    """
    Coerce a stored value to a number.

    Accepts ints, floats and numeric strings ("5,000", "$1200", "24.99%").
    Booleans and anything unparseable become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace("$", "").rstrip("%")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return int(number) if number.is_integer() and "." not in cleaned else number
    return None


def _to_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "y", "t"):
            return True
        if lowered in ("false", "0", "no", "n", "f"):
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def _to_rewards(value: Any) -> Mapping[str, float]:
    """Normalise reward_structure into a read-only {category: multiplier} map."""
    if not isinstance(value, Mapping):
        return _EMPTY_REWARDS
    rewards = {}
    for category, multiplier in value.items():
        if category is None:
            continue
        number = to_number(multiplier)
        if number is not None:
            rewards[str(category).strip().lower()] = number
    return MappingProxyType(rewards)


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


# =============================================================================
# CARD RECORD
# =============================================================================

@dataclass(frozen=True)
class CardRecord:
    """
    One credit card as seen by the query pipeline.

    All fields are optional; the persistence layer owns the real schema and
    may omit any column. Dates are kept as ISO strings.
    """
    # Identity
    issuer: Optional[str] = None
    card_network: Optional[str] = None
    card_type: Optional[str] = None
    card_name: Optional[str] = None
    nickname: Optional[str] = None

    # Financial
    apr: Optional[float] = None
    credit_limit: Optional[float] = None
    current_balance: Optional[float] = None
    amount_to_pay: Optional[float] = None
    annual_fee: Optional[float] = None

    # Dates / statement cycle
    payment_due_date: Optional[str] = None
    payment_due_day: Optional[int] = None
    statement_close_day: Optional[int] = None
    statement_cycle_start: Optional[str] = None
    statement_cycle_end: Optional[str] = None
    grace_period_days: Optional[int] = None

    # Rewards: category -> multiplier
    reward_structure: Mapping[str, float] = field(default_factory=lambda: _EMPTY_REWARDS)

    # Metadata
    is_manual_entry: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "CardRecord":
        """
        Build a record from a store row, ignoring unknown keys.

        Raises TypeError only when ``row`` is not a mapping at all.
        """
        if isinstance(row, CardRecord):
            return row
        if not isinstance(row, Mapping):
            raise TypeError(f"CardRecord.from_dict expects a mapping, got {type(row).__name__}")

        values: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in row:
                continue
            raw = row[f.name]
            if f.name in NUMERIC_FIELDS:
                values[f.name] = to_number(raw)
            elif f.name == "reward_structure":
                values[f.name] = _to_rewards(raw)
            elif f.name == "is_manual_entry":
                values[f.name] = _to_bool(raw)
            else:
                values[f.name] = _to_text(raw)
        return cls(**values)

    # ------------------------------------------------------------------
    # Computed fields
    # ------------------------------------------------------------------

    @property
    def utilization(self) -> Optional[float]:
        if not self.credit_limit or self.current_balance is None:
            return None
        return round(self.current_balance / self.credit_limit * 100, 2)

    @property
    def available_credit(self) -> Optional[float]:
        if self.credit_limit is None:
            return None
        return max(self.credit_limit - (self.current_balance or 0), 0)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get(self, field_name: str) -> Any:
        """
        Named accessor used by the executor.

        Returns None for names that are neither stored nor computed.
        """
        if field_name in COMPUTED_FIELDS:
            return getattr(self, field_name)
        if field_name in _STORED_FIELD_NAMES:
            return getattr(self, field_name)
        return None

    def to_dict(self) -> Dict[str, Any]:
        data = {name: getattr(self, name) for name in _STORED_FIELD_NAMES}
        data["reward_structure"] = dict(self.reward_structure)
        return data


_STORED_FIELD_NAMES = tuple(f.name for f in fields(CardRecord))
STORED_FIELDS = frozenset(_STORED_FIELD_NAMES)
