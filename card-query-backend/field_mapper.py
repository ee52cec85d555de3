"""
Field Mapper — Natural-Language Alias → Canonical Card Field
============================================================

PURPOSE
-------
Every field name that reaches a StructuredQuery passes through here.  The
mapper is a finite, enumerable table; there is no fuzzy matching and no
embedding lookup.  An alias that is not in the table resolves to None and
the caller drops the clause that owned it.

NORMALISATION
-------------
Applied before lookup, so "Credit Limit", "credit-limit" and "credit_limit"
are the same key:

    1. lowercase + strip
    2. collapse runs of whitespace / hyphens to "_"
    3. exact lookup
    4. fallback: depluralised lookup ("annual_fees" → "annual_fee")

INVARIANTS
----------
- Every alias target is a canonical CardRecord field (stored or computed)
- Canonical names resolve to themselves
- resolve() never raises; non-string input → None
- The table is read-only after construction (MappingProxyType)

PIPELINE POSITION
-----------------
Used by QueryDecomposer for every clause it builds.  EntityExtractor emits
loose attribute tokens ("balance", "due_date"); this module owns the step
from token to schema name.
"""

import logging
import re
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional

from card_record import COMPUTED_FIELDS, STORED_FIELDS

logger = logging.getLogger(__name__)


CANONICAL_FIELDS: FrozenSet[str] = STORED_FIELDS | COMPUTED_FIELDS


# =============================================================================
# ALIAS TABLE
# =============================================================================
# Grouped by logical area.  Canonical names are added automatically by
# FieldMapper, so they only appear here when they are also a group anchor.
# =============================================================================

FIELD_ALIASES: Dict[str, str] = {
    # Identity
    'issuer': 'issuer',
    'issuers': 'issuer',
    'bank': 'issuer',
    'banks': 'issuer',
    'card_issuer': 'issuer',
    'network': 'card_network',
    'networks': 'card_network',
    'payment_network': 'card_network',
    'type': 'card_type',
    'types': 'card_type',
    'kind': 'card_type',
    'name': 'card_name',
    'title': 'card_name',
    'card_title': 'card_name',
    'nick': 'nickname',
    'alias': 'nickname',

    # Financial
    'balance': 'current_balance',
    'balances': 'current_balance',
    'debt': 'current_balance',
    'owed': 'current_balance',
    'outstanding': 'current_balance',
    'apr': 'apr',
    'interest_rate': 'apr',
    'interest': 'apr',
    'rate': 'apr',
    'annual_percentage_rate': 'apr',
    'limit': 'credit_limit',
    'max': 'credit_limit',
    'max_credit': 'credit_limit',
    'fee': 'annual_fee',
    'yearly_fee': 'annual_fee',
    'payment_amount': 'amount_to_pay',
    'minimum_payment': 'amount_to_pay',
    'payment': 'amount_to_pay',

    # Dates / statement cycle
    'due_date': 'payment_due_date',
    'payment_due': 'payment_due_date',
    'due': 'payment_due_date',
    'due_day': 'payment_due_day',
    'statement_close': 'statement_cycle_end',
    'statement_end': 'statement_cycle_end',
    'close_day': 'statement_close_day',
    'statement_start': 'statement_cycle_start',
    'grace_period': 'grace_period_days',
    'grace': 'grace_period_days',

    # Computed
    'usage': 'utilization',
    'available': 'available_credit',
    'remaining_credit': 'available_credit',

    # Rewards
    'rewards': 'reward_structure',
    'reward': 'reward_structure',
    'points': 'reward_structure',
    'cashback': 'reward_structure',
    'cash_back': 'reward_structure',
    'miles': 'reward_structure',
    'category': 'reward_structure',
    'categories': 'reward_structure',

    # Metadata
    'manual_entry': 'is_manual_entry',
    'manual': 'is_manual_entry',
    'created': 'created_at',
    'updated': 'updated_at',
}

_SEPARATOR_RE = re.compile(r'[\s\-]+')


# =============================================================================
# Internal helpers
# =============================================================================

def _normalize(alias: str) -> str:
    return _SEPARATOR_RE.sub('_', alias.strip().lower()).strip('_')


def _depluralize(word: str) -> str:
    """
    Strip a trailing plural from the last underscore-separated segment.

        "annual_fees"   → "annual_fee"
        "credit_limits" → "credit_limit"
        "categories"    → "category"
    """
    if word.endswith('ies') and len(word) > 4:
        return word[:-3] + 'y'
    if word.endswith('sses'):
        return word[:-2]
    if word.endswith('s') and not word.endswith('ss') and len(word) > 2:
        return word[:-1]
    return word


# =============================================================================
# FIELD MAPPER
# =============================================================================

class FieldMapper:
    """
    Read-only alias table with canonical-field verification.

    Construct once per process (``FIELD_MAPPER``) and share by reference.
    """

    def __init__(self, aliases: Mapping[str, str] = None):
        table: Dict[str, str] = {field: field for field in CANONICAL_FIELDS}
        for alias, target in (aliases if aliases is not None else FIELD_ALIASES).items():
            if target not in CANONICAL_FIELDS:
                raise ValueError(f"Alias '{alias}' targets unknown field '{target}'")
            table[_normalize(alias)] = target
        self._table: Mapping[str, str] = MappingProxyType(table)

    @property
    def table(self) -> Mapping[str, str]:
        return self._table

    @property
    def canonical_fields(self) -> FrozenSet[str]:
        return CANONICAL_FIELDS

    def resolve(self, alias) -> Optional[str]:
        """
        Map a natural-language alias to its canonical field.

        Returns None for unmapped aliases and for non-string input.
        """
        if not isinstance(alias, str) or not alias.strip():
            return None

        key = _normalize(alias)
        field = self._table.get(key)
        if field is None:
            field = self._table.get(_depluralize(key))

        if field is None:
            logger.debug(f"[FIELD-MAPPER] Unmapped alias: '{alias}'")
        return field

    def is_canonical(self, field: str) -> bool:
        return field in CANONICAL_FIELDS

    def is_computed(self, field: str) -> bool:
        return field in COMPUTED_FIELDS

    def aliases_for(self, field: str) -> List[str]:
        """All normalised aliases resolving to ``field`` (sorted)."""
        return sorted(alias for alias, target in self._table.items() if target == field)


FIELD_MAPPER = FieldMapper()


def resolve_field(alias) -> Optional[str]:
    """Module-level shortcut over the process-wide mapper."""
    return FIELD_MAPPER.resolve(alias)
