"""
Entity Extractor — Card Question → Entity Bag
=============================================

Pure pattern matcher.  Turns a free-text card question into a fixed-shape
EntityBag that QueryDecomposer consumes.  No LLM, no schema access.

PURPOSE
-------
    "visa cards with balance over 5000 and APR less than 25"
        attribute        = apr
        balance_filter   = with_balance
        network_value    = Visa
        conditions       = [network Visa, balance > 5000, apr < 25]
        logical ops      = [AND, AND]

Every recognisable phrase lives in query_vocabulary.QueryVocabulary; this
module only applies those tables in a fixed order.

EXTRACTION ORDER
----------------
    1. Numeric comparisons   (their spans are masked for steps 4-5, so
                              "at least 500" is not read as a superlative)
    2. Category, then merchant (a token claimed by the category is never
                              offered to merchant matching)
    3. Attribute             (ordered rule list, first match wins)
    4. Modifier
    5. Aggregation           (field from the phrase remainder)
    6. Amount, balance filter, network / issuer values
    7. Distinct, grouping
    8. Conditions + logical connectors between adjacent conditions

INVARIANTS
----------
- Total: None / empty / non-string input → EntityBag() with every default
- Case-insensitive, whitespace-trimmed
- len(compound_operators.logical_operators) == max(len(conditions) - 1, 0)
- Fresh EntityBag per call; nothing is cached between calls

PIPELINE POSITION
-----------------
First stage: text → EntityExtractor → QueryDecomposer → QueryExecutor.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from grouping_phrase_detector import extract_grouping_phrase
from query_vocabulary import ASCENDING_MODIFIERS, DEFAULT_VOCABULARY, QueryVocabulary
from text_extraction import extract_amount

logger = logging.getLogger(__name__)


_WHITESPACE_RE = re.compile(r'\s+')
_ZERO_LITERAL_RE = re.compile(r'^[-\s$]*0+(?:\.0+)?\s*%?$')

# A card has one issuer and one network, so two values of either field can
# only be alternatives: "chase and citi" reads as chase OR citi.
_SINGLE_VALUE_KINDS = frozenset({'network', 'issuer'})


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class DistinctQuery:
    is_distinct: bool = False
    field: Optional[str] = None
    include_details: bool = False


@dataclass
class CompoundOperators:
    logical_operators: List[str] = field(default_factory=list)


@dataclass
class Grouping:
    group_by: Optional[str] = None


@dataclass
class Aggregation:
    operation: str
    field: Optional[str] = None


@dataclass
class Condition:
    """
    One filterable clause found in the text.

    kind is one of: comparison, network, issuer, category, merchant.
    ``start``/``end`` index into the normalised (lowercased) text.
    """
    kind: str
    field_alias: str
    operator: str
    value: Any
    start: int
    end: int


@dataclass
class EntityBag:
    attribute: Optional[str] = None
    modifier: Optional[str] = None
    category: Optional[str] = None
    merchant: Optional[str] = None
    amount: Optional[float] = None
    balance_filter: Optional[str] = None
    distinct_query: Optional[DistinctQuery] = None
    compound_operators: CompoundOperators = field(default_factory=CompoundOperators)
    grouping: Optional[Grouping] = None
    aggregation: Optional[Aggregation] = None
    network_value: Optional[str] = None
    issuer_value: Optional[str] = None
    conditions: List[Condition] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# Internal helpers
# =============================================================================

def _normalize_text(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text.strip().lower())


def _overlaps(span: Tuple[int, int], taken: List[Tuple[int, int]]) -> bool:
    start, end = span
    return any(start < t_end and t_start < end for t_start, t_end in taken)


def _mask(text: str, spans: List[Tuple[int, int]]) -> str:
    """Blank out spans, keeping every other index stable."""
    chars = list(text)
    for start, end in spans:
        for i in range(start, end):
            chars[i] = ' '
    return ''.join(chars)


def _parse_comparison_value(raw: str) -> Optional[float]:
    """
    Parse the literal after a comparison operator.

    Sign is dropped ("-500" → 500).  Zero is a valid threshold here even
    though extract_amount() treats it as "no amount".
    """
    value = extract_amount(raw.replace('-', ' '), min_digits=1, allow_k=True)
    if value is None and _ZERO_LITERAL_RE.match(raw):
        return 0
    return value


# =============================================================================
# ENTITY EXTRACTOR
# =============================================================================

class EntityExtractor:
    """
    Deterministic text → EntityBag matcher over an immutable vocabulary.

    Safe to share across threads: holds only read-only configuration.
    """

    def __init__(
        self,
        vocabulary: QueryVocabulary = DEFAULT_VOCABULARY,
        amount_min_digits: int = 3,
        amount_allow_k: bool = True,
    ):
        self.vocabulary = vocabulary
        self.amount_min_digits = amount_min_digits
        self.amount_allow_k = amount_allow_k

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, text: Optional[str]) -> EntityBag:
        """Extract every entity from ``text``; never raises."""
        if not isinstance(text, str) or not text.strip():
            return EntityBag()

        lower = _normalize_text(text)
        bag = EntityBag()

        comparisons = self._extract_comparisons(lower)
        masked = _mask(lower, [(c.start, c.end) for c in comparisons])

        bag.category, category_span = self._extract_category(lower)
        bag.merchant, merchant_span = self._extract_merchant(lower, bag.category, category_span)

        bag.attribute = self.extract_attribute(lower)
        bag.modifier = self._extract_modifier(masked)
        bag.aggregation = self._extract_aggregation(lower, masked)

        bag.amount = extract_amount(
            lower, min_digits=self.amount_min_digits, allow_k=self.amount_allow_k
        )
        bag.balance_filter = self._extract_balance_filter(lower, bag.modifier, bag.attribute)
        bag.network_value = self._first_value(lower, self.vocabulary.network_patterns)
        bag.issuer_value = self._first_value(lower, self.vocabulary.issuer_patterns)

        bag.distinct_query = self._extract_distinct(lower)
        bag.grouping = self._extract_grouping(lower)

        bag.conditions = self._collect_conditions(
            lower, comparisons, bag.category, category_span, bag.merchant, merchant_span
        )
        bag.compound_operators = CompoundOperators(
            logical_operators=self._extract_logical_operators(lower, bag.conditions)
        )

        logger.info(
            f"[EXTRACT] attribute={bag.attribute} modifier={bag.modifier} "
            f"category={bag.category} merchant={bag.merchant} "
            f"balance_filter={bag.balance_filter} conditions={len(bag.conditions)} "
            f"aggregation={bag.aggregation} grouping={bag.grouping} distinct={bag.distinct_query}"
        )
        return bag

    def extract_attribute(self, text: Optional[str]) -> Optional[str]:
        """Attribute-only shortcut: first matching rule's attribute, or None."""
        if not isinstance(text, str) or not text.strip():
            return None
        lower = _normalize_text(text)
        for rule in self.vocabulary.attribute_rules:
            if rule.matches(lower):
                logger.debug(f"[EXTRACT] attribute rule '{rule.name}' → {rule.attribute}")
                return rule.attribute
        return None

    # ------------------------------------------------------------------
    # Category / merchant
    # ------------------------------------------------------------------

    def _extract_category(self, lower: str) -> Tuple[Optional[str], Optional[Tuple[int, int]]]:
        for keyword in self.vocabulary.category_keywords:
            m = keyword.pattern.search(lower)
            if m:
                logger.debug(f"[EXTRACT] category '{keyword.category}' from '{keyword.keyword}'")
                return keyword.category, m.span()
        return None, None

    def _extract_merchant(
        self,
        lower: str,
        category: Optional[str],
        category_span: Optional[Tuple[int, int]],
    ) -> Tuple[Optional[str], Optional[Tuple[int, int]]]:
        category_keywords = set(self.vocabulary.category_patterns.get(category, ())) if category else set()
        taken = [category_span] if category_span else []

        for merchant, patterns in self.vocabulary.merchant_patterns.items():
            for pattern in patterns:
                if pattern in category_keywords:
                    continue
                m = re.search(r'(?<![\w])' + re.escape(pattern) + r'(?![\w])', lower)
                if m and not _overlaps(m.span(), taken):
                    return merchant, m.span()
        return None, None

    # ------------------------------------------------------------------
    # Modifier / aggregation
    # ------------------------------------------------------------------

    def _extract_modifier(self, masked: str) -> Optional[str]:
        for pattern, modifier in self.vocabulary.modifier_rules:
            if pattern.search(masked):
                return modifier
        return None

    def _extract_aggregation(self, lower: str, masked: str) -> Optional[Aggregation]:
        vocab = self.vocabulary
        for operation, pattern in vocab.aggregation_patterns:
            m = pattern.search(masked)
            if not m:
                continue

            trigger = m.group(0)
            if trigger in vocab.superlative_words and vocab.card_request_pattern.search(lower):
                logger.debug(f"[EXTRACT] '{trigger}' ranks cards; no aggregation")
                return None

            if operation == 'count':
                return Aggregation(operation='count', field=None)

            remainder = lower[:m.start()] + ' ' + lower[m.end():]
            return Aggregation(operation=operation, field=self.extract_attribute(remainder))
        return None

    # ------------------------------------------------------------------
    # Balance filter / values
    # ------------------------------------------------------------------

    def _extract_balance_filter(
        self,
        lower: str,
        modifier: Optional[str] = None,
        attribute: Optional[str] = None,
    ) -> Optional[str]:
        vocab = self.vocabulary
        if any(p.search(lower) for p in vocab.zero_balance_patterns):
            return 'zero_balance'
        if any(p.search(lower) for p in vocab.with_balance_patterns):
            return 'with_balance'
        # ascending balance ranking keeps $0 cards
        if attribute == 'balance' and modifier in ASCENDING_MODIFIERS:
            return None
        if vocab.implicit_balance_pattern.search(lower) and vocab.implicit_balance_context.search(lower):
            return 'with_balance'
        return None

    @staticmethod
    def _first_value(lower: str, table) -> Optional[str]:
        for pattern, value in table:
            if pattern.search(lower):
                return value
        return None

    # ------------------------------------------------------------------
    # Distinct / grouping
    # ------------------------------------------------------------------

    def _extract_distinct(self, lower: str) -> Optional[DistinctQuery]:
        vocab = self.vocabulary
        triggered = (
            any(p.search(lower) for p in vocab.distinct_keywords)
            or any(p.search(lower) for p in vocab.distinct_phrases)
        )
        if not triggered:
            return None

        best_field, best_pos = 'issuer', None
        for field_name, pattern in vocab.distinct_field_patterns:
            m = pattern.search(lower)
            if m and (best_pos is None or m.start() < best_pos):
                best_field, best_pos = field_name, m.start()
        return DistinctQuery(
            is_distinct=True,
            field=best_field,
            include_details=bool(vocab.distinct_detail_pattern.search(lower)),
        )

    def _extract_grouping(self, lower: str) -> Optional[Grouping]:
        phrase = extract_grouping_phrase(lower)
        if not phrase:
            return None
        for field_name, pattern in self.vocabulary.group_field_patterns:
            if pattern.search(phrase):
                return Grouping(group_by=field_name)
        return Grouping(group_by=phrase)

    # ------------------------------------------------------------------
    # Conditions / connectors
    # ------------------------------------------------------------------

    def _extract_comparisons(self, lower: str) -> List[Condition]:
        vocab = self.vocabulary
        found = []
        for m in vocab.comparison_pattern.finditer(lower):
            value = _parse_comparison_value(m.group('value'))
            if value is None:
                continue
            op_phrase = ' '.join(m.group('op').split())
            found.append(Condition(
                kind='comparison',
                field_alias=' '.join(m.group('field').split()),
                operator=vocab.comparison_operators[op_phrase],
                value=value,
                start=m.start(),
                end=m.end(),
            ))
        return found

    def _collect_conditions(
        self,
        lower: str,
        comparisons: List[Condition],
        category: Optional[str],
        category_span: Optional[Tuple[int, int]],
        merchant: Optional[str],
        merchant_span: Optional[Tuple[int, int]],
    ) -> List[Condition]:
        # Registration order decides overlaps:
        # comparison > network > issuer > category > merchant
        conditions: List[Condition] = []
        taken: List[Tuple[int, int]] = []

        def register(condition: Condition) -> None:
            span = (condition.start, condition.end)
            if _overlaps(span, taken):
                return
            taken.append(span)
            conditions.append(condition)

        for condition in comparisons:
            register(condition)

        for kind, alias, operator, table in (
            ('network', 'card_network', '==', self.vocabulary.network_condition_patterns),
            ('issuer', 'issuer', '=', self.vocabulary.issuer_patterns),
        ):
            for pattern, value in table:
                for m in pattern.finditer(lower):
                    register(Condition(kind, alias, operator, value, m.start(), m.end()))

        if category and category_span:
            register(Condition('category', 'category', '=', category, *category_span))
        if merchant and merchant_span:
            register(Condition('merchant', 'merchant', '=', merchant, *merchant_span))

        conditions.sort(key=lambda c: c.start)

        unique: List[Condition] = []
        seen = set()
        for condition in conditions:
            key = (condition.kind, condition.field_alias, condition.operator, condition.value)
            if key in seen:
                continue
            seen.add(key)
            unique.append(condition)
        return unique

    def _extract_logical_operators(self, lower: str, conditions: List[Condition]) -> List[str]:
        operators = []
        for left, right in zip(conditions, conditions[1:]):
            gap = lower[left.end:right.start]
            operator = 'AND'
            for pattern, name in self.vocabulary.connector_patterns:
                if pattern.search(gap):
                    operator = name
                    break
            if (
                operator == 'AND'
                and left.kind in _SINGLE_VALUE_KINDS
                and left.kind == right.kind
            ):
                operator = 'OR'
            operators.append(operator)
        return operators


# =============================================================================
# Module-level API over the default, process-wide extractor
# =============================================================================

DEFAULT_EXTRACTOR = EntityExtractor()


def extract_entities(text: Optional[str]) -> EntityBag:
    return DEFAULT_EXTRACTOR.extract(text)


def extract_attribute(text: Optional[str]) -> Optional[str]:
    return DEFAULT_EXTRACTOR.extract_attribute(text)
