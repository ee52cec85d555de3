"""
Query Vocabulary — Immutable Keyword and Rule Tables
====================================================

Every phrase the card query pipeline recognises lives here, in one frozen
object built once at import time (``DEFAULT_VOCABULARY``) and passed by
reference into EntityExtractor.

PURPOSE
-------
The extractor is a closed-grammar pattern matcher.  Its behaviour is fully
determined by these tables, so they are kept as explicit, enumerable data:

    category_patterns     spend category  → keywords
    merchant_patterns     merchant        → keywords
    attribute_rules       ORDERED (name, patterns, attribute) rules
    modifier_rules        ORDERED (pattern, modifier) rules
    network / issuer      display value   → patterns
    distinct / grouping / aggregation / comparison trigger tables

RULE ORDER IS A CONTRACT
------------------------
``attribute_rules`` and ``modifier_rules`` are first-match-wins.  Multi-word
rules ("interest rate", "reward rate", "credit limit") sit before the
generic single-word rules ("rate", "limit") they would otherwise lose to.
test_query_vocabulary.py pins the relative order of those pairs.

TIE-BREAK CONVENTIONS
---------------------
- Costco is a warehouse keyword, never groceries.
- Category keywords are tried longest-first; equal-length keywords keep
  table order (travel before warehouse, so "travel at costco" → travel).
- "show"/"shows" are not entertainment keywords ("show me visa cards").

DESIGN INVARIANTS
-----------------
- Tables are tuples / MappingProxyType: no mutation after construction
- Patterns are precompiled, case-insensitive, word-bounded
- No I/O, no LLM, no embeddings
"""

import re
from dataclasses import dataclass
from re import Pattern
from types import MappingProxyType
from typing import Mapping, Tuple


def _phrase_re(phrase: str) -> Pattern:
    """Compile a keyword as a word-bounded, whitespace-tolerant regex."""
    escaped = r'\s+'.join(re.escape(part) for part in phrase.split())
    return re.compile(r'(?<![\w])' + escaped + r'(?![\w])', re.IGNORECASE)


def _rx(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


# =============================================================================
# RULE TYPES
# =============================================================================

@dataclass(frozen=True)
class AttributeRule:
    """One ordered attribute rule: any pattern matching → ``attribute``."""
    name: str
    attribute: str
    patterns: Tuple[Pattern, ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


@dataclass(frozen=True)
class CategoryKeyword:
    category: str
    keyword: str
    pattern: Pattern


@dataclass(frozen=True)
class QueryVocabulary:
    category_patterns: Mapping[str, Tuple[str, ...]]
    category_keywords: Tuple[CategoryKeyword, ...]
    merchant_patterns: Mapping[str, Tuple[str, ...]]
    attribute_rules: Tuple[AttributeRule, ...]
    modifier_rules: Tuple[Tuple[Pattern, str], ...]
    network_patterns: Tuple[Tuple[Pattern, str], ...]
    network_condition_patterns: Tuple[Tuple[Pattern, str], ...]
    issuer_patterns: Tuple[Tuple[Pattern, str], ...]
    issuer_networks: Mapping[str, str]
    with_balance_patterns: Tuple[Pattern, ...]
    zero_balance_patterns: Tuple[Pattern, ...]
    implicit_balance_pattern: Pattern
    implicit_balance_context: Pattern
    distinct_keywords: Tuple[Pattern, ...]
    distinct_phrases: Tuple[Pattern, ...]
    distinct_detail_pattern: Pattern
    distinct_field_patterns: Tuple[Tuple[str, Pattern], ...]
    group_field_patterns: Tuple[Tuple[str, Pattern], ...]
    aggregation_patterns: Tuple[Tuple[str, Pattern], ...]
    superlative_words: frozenset
    card_request_pattern: Pattern
    comparison_pattern: Pattern
    comparison_operators: Mapping[str, str]
    connector_patterns: Tuple[Tuple[Pattern, str], ...]

    def attribute_rule_index(self, name: str) -> int:
        """Position of a named rule; used to pin ordering in tests."""
        for index, rule in enumerate(self.attribute_rules):
            if rule.name == name:
                return index
        raise KeyError(name)


# =============================================================================
# CATEGORY / MERCHANT TABLES
# =============================================================================

CATEGORY_PATTERNS = {
    'dining': (
        'dining', 'dining out', 'restaurant', 'restaurants', 'restaurant dining',
        'eating out', 'eat out', 'food', 'food dining', 'dinner', 'lunch', 'breakfast',
        'takeout', 'take out', 'delivery', 'food delivery', 'fast food', 'fastfood',
    ),
    'groceries': (
        'grocery', 'groceries', 'grocery store', 'grocery stores',
        'supermarket', 'supermarkets', 'food shopping', 'food store', 'food stores',
        'grocery shopping', 'market', 'grocery market',
    ),
    'gas': (
        'gas', 'gas station', 'gas stations', 'fuel', 'fuel station', 'fuel stations',
        'gasoline', 'petrol', 'ev charging', 'electric vehicle charging',
        'charging station', 'charging stations', 'refueling',
    ),
    'travel': (
        'travel', 'traveling', 'travelling', 'trip', 'trips', 'vacation', 'vacations',
        'flight', 'flights', 'airline', 'airlines', 'airfare', 'airfare booking',
        'hotel', 'hotels', 'lodging', 'accommodation', 'accommodations',
        'airbnb', 'booking', 'expedia', 'priceline', 'travel booking',
        'cruise', 'cruises', 'resort', 'resorts',
    ),
    'entertainment': (
        'entertainment', 'movies', 'movie', 'movie theater', 'movie theatre',
        'theater', 'theatre', 'cinema', 'cinemas', 'concert', 'concerts',
        'events', 'live events', 'sports events', 'sporting events',
        'tickets', 'event tickets', 'musical', 'musicals',
    ),
    'streaming': (
        'streaming', 'streaming service', 'streaming services', 'streaming platform',
        'subscriptions', 'subscription', 'video streaming', 'music streaming',
        'netflix', 'spotify', 'hulu', 'prime video', 'disney plus',
        'apple tv', 'hbo max', 'paramount plus', 'peacock', 'youtube tv',
        'pandora', 'siriusxm', 'sirius xm',
    ),
    'drugstores': (
        'drugstore', 'drugstores', 'drug store', 'drug stores',
        'pharmacy', 'pharmacies', 'cvs', 'walgreens', 'rite aid',
        'pharmacy store', 'health pharmacy',
    ),
    'home_improvement': (
        'home improvement', 'home improvements', 'home improvement store',
        'hardware', 'hardware store', 'hardware stores', 'home depot',
        'lowes', 'menards', 'ace hardware', 'true value',
        'home renovation', 'home repair', 'home remodeling', 'diy', 'do it yourself',
    ),
    'department_stores': (
        'department store', 'department stores', 'shopping', 'retail store',
        'retail stores', 'mall', 'shopping mall', 'shopping center',
        'macy', 'macys', 'nordstrom', 'kohls', 'jcpenney', 'jc penney',
        'dillards', 'belk', 'sears',
    ),
    'transit': (
        'transit', 'public transit', 'public transportation', 'transportation',
        'taxi', 'taxis', 'cab', 'cabs', 'uber', 'lyft', 'rideshare', 'ride share',
        'ride sharing', 'ride-hailing', 'commute', 'commuting', 'metro', 'subway',
        'bus', 'bus fare', 'train', 'train fare', 'public transport',
    ),
    'utilities': (
        'utilities', 'utility', 'utility bill', 'utility bills', 'utility payment',
        'electricity', 'electric bill', 'electric bills', 'power bill',
        'water bill', 'water bills', 'sewer', 'sewer bill',
        'internet', 'internet bill', 'internet service', 'internet provider',
        'phone bill', 'phone bills', 'cell phone', 'cell phone bill',
        'cable', 'cable bill', 'cable tv', 'internet and cable',
    ),
    'warehouse': (
        'warehouse', 'warehouse store', 'warehouse stores', 'warehouse club',
        'warehouse clubs', 'costco', 'sams club', 'sams', "sam's club",
        'bjs', "bj's wholesale", 'wholesale club', 'wholesale clubs',
        'bulk store', 'bulk stores',
    ),
    'office_supplies': (
        'office supplies', 'office supply', 'office supply store',
        'office supply stores', 'office depot', 'staples', 'stationery',
        'stationary', 'office store', 'office stores', 'business supplies',
    ),
    'insurance': (
        'insurance', 'auto insurance', 'car insurance', 'vehicle insurance',
        'health insurance', 'medical insurance', 'home insurance', 'homeowners insurance',
        'renters insurance', 'rental insurance', 'life insurance',
        'insurance premium', 'insurance payment', 'insurance payments',
    ),
}

MERCHANT_PATTERNS = {
    'costco': ('costco', 'costco wholesale'),
    'walmart': ('walmart', 'wal-mart', 'wal mart'),
    'target': ('target store', 'target'),
    'whole foods': ('whole foods', 'wholefoods', 'whole food'),
    'trader joes': ('trader joes', 'trader joe', 'traders joes'),
    'safeway': ('safeway',),
    'kroger': ('kroger',),
    'gas': ('gas station', 'chevron', 'shell', 'exxon', 'bp'),
    'restaurant': ('restaurant', 'chipotle', 'mcdonalds', 'starbucks', 'cafe'),
    'grocery': ('supermarket', 'food shopping'),
    'travel': ('flight', 'hotel', 'airline', 'airbnb', 'booking', 'expedia'),
    'amazon': ('amazon', 'amazon.com'),
    'uber': ('uber', 'lyft', 'rideshare'),
    'online': ('online', 'internet', 'web shopping', 'e-commerce'),
}


def _build_category_keywords(table) -> Tuple[CategoryKeyword, ...]:
    keywords = [
        CategoryKeyword(category, keyword, _phrase_re(keyword))
        for category, patterns in table.items()
        for keyword in patterns
    ]
    # sorted() is stable: equal lengths keep table order
    keywords = sorted(keywords, key=lambda k: -len(k.keyword))
    return tuple(keywords)


# =============================================================================
# ATTRIBUTE RULES (ordered, first match wins)
# =============================================================================

def _rule(name: str, attribute: str, *patterns: str) -> AttributeRule:
    return AttributeRule(name, attribute, tuple(_rx(p) for p in patterns))


ATTRIBUTE_RULES: Tuple[AttributeRule, ...] = (
    _rule('grace_period', 'grace_period',
          r'\bgrace\s+periods?\b', r'\binterest[\s-]+free\s+days\b', r'\bdays\s+(?:of\s+)?grace\b'),
    _rule('statement_close', 'statement_close',
          r'\bstatement\s+(?:cycle\s+)?(?:close|closes|closing|end|ends)\b',
          r'\b(?:close|closing)\s+date\b',
          r'\bwhen\b.*\bstatement\b.*\bclose'),
    _rule('statement_start', 'statement_start',
          r'\bstatement\s+(?:cycle\s+)?(?:start|starts|begin|begins)\b',
          r'\bcycle\s+start\b'),
    _rule('due_date', 'due_date',
          r'\bpayment\s+due\b', r'\bdue\s+dates?\b', r'\bwhen\b.*\bdue\b'),
    _rule('payment_amount', 'payment_amount',
          r'\bpayment\s+amounts?\b', r'\bminimum\s+payments?\b', r'\bamount\s+to\s+pay\b',
          r'\bhow\s+much\b.*\bpay\b'),
    _rule('interest_rate', 'apr',
          r'\binterest\s+rates?\b', r'\bannual\s+percentage\s+rate\b'),
    _rule('reward_rate', 'rewards',
          r'\breward\s+rates?\b', r'\bearn(?:ing)?\s+rates?\b', r'\bcash\s*back\s+rates?\b'),
    _rule('credit_limit', 'credit_limit',
          r'\bcredit\s+limits?\b', r'\bmax(?:imum)?\s+credit\b', r'\bspending\s+limits?\b'),
    _rule('available_credit', 'available_credit',
          r'\bavailable\s+credit\b', r'\bremaining\s+credit\b', r'\bcredit\s+available\b',
          r'\bhow\s+much\b.*\bspend\b'),
    _rule('card_network', 'card_network',
          r'\bcard\s+networks?\b', r'\bpayment\s+networks?\b'),
    _rule('card_name', 'card_name',
          r'\bcard\s+names?\b', r'\bcard\s+titles?\b', r'\bname\s+of\s+(?:my|this|the)\s+cards?\b'),
    _rule('card_type', 'card_type',
          r'\bcard\s+types?\b', r'\bcard\s+kinds?\b',
          r'\btypes?\s+of\s+cards?\b', r'\bkinds?\s+of\s+cards?\b'),
    _rule('nickname', 'nickname',
          r'\bnick\s*names?\b', r'\bnick\b', r'\balias(?:es)?\b'),
    _rule('annual_fee', 'annual_fee',
          r'\bannual\s+fees?\b', r'\byearly\s+fees?\b'),
    _rule('apr', 'apr',
          r'\baprs?\b', r'\binterest\b'),
    _rule('utilization', 'utilization',
          r'\butili[sz]ation\b', r'\busage\b', r'\bpercent\s+used\b'),
    _rule('balance', 'balance',
          r'\bbalances?\b', r'\bdebts?\b', r'\bowe[sd]?\b', r'\bowing\b', r'\boutstanding\b'),
    _rule('rewards', 'rewards',
          r'\brewards?\b', r'\bpoints?\b', r'\bcash\s*back\b', r'\bmiles\b', r'\bmultipliers?\b'),
    _rule('rate', 'apr', r'\brates?\b'),
    _rule('limit', 'credit_limit', r'\blimits?\b'),
    _rule('fee', 'annual_fee', r'\bfees?\b'),
    _rule('issuer', 'issuer',
          r'\bissuers?\b', r'\bbanks?\b', r'\bfinancial\s+institutions?\b'),
    _rule('network', 'card_network', r'\bnetworks?\b'),
    _rule('type', 'card_type', r'\btypes?\b', r'\bkinds?\b'),
)


# =============================================================================
# MODIFIERS (ordered, first match wins)
# =============================================================================

MODIFIER_RULES: Tuple[Tuple[Pattern, str], ...] = (
    (_rx(r'\b(?:lowest|smallest|cheapest)\b'), 'lowest'),
    (_rx(r'\b(?:highest|largest|biggest)\b'), 'highest'),
    (_rx(r'\blongest\b'), 'highest'),
    (_rx(r'\bshortest\b'), 'lowest'),
    (_rx(r'\bmaximum\b'), 'maximum'),
    (_rx(r'\bminimum\b'), 'minimum'),
    (_rx(r'\bmost\b'), 'most'),
    (_rx(r'\bleast\b'), 'least'),
    (_rx(r'\b(?:average|avg|mean)\b'), 'average'),
)

DESCENDING_MODIFIERS = frozenset({'highest', 'maximum', 'most'})
ASCENDING_MODIFIERS = frozenset({'lowest', 'minimum', 'least'})


# =============================================================================
# NETWORK / ISSUER VALUES
# =============================================================================

NETWORK_PATTERNS: Tuple[Tuple[Pattern, str], ...] = (
    (_rx(r'\bvisa\b'), 'Visa'),
    (_rx(r'\bmaster\s*cards?\b'), 'Mastercard'),
    (_rx(r'\b(?:amex|american\s+express)\b'), 'Amex'),
    (_rx(r'\bdiscover\b'), 'Discover'),
)

# Amex and Discover are issuers too; as filter conditions they go through
# the issuer table, so only the pure networks appear here.
NETWORK_CONDITION_PATTERNS: Tuple[Tuple[Pattern, str], ...] = NETWORK_PATTERNS[:2]

ISSUER_PATTERNS: Tuple[Tuple[Pattern, str], ...] = (
    (_rx(r'\bchase\b'), 'Chase'),
    (_rx(r'\bciti(?:bank)?\b'), 'Citi'),
    (_rx(r'\b(?:american\s+express|amex)\b'), 'American Express'),
    (_rx(r'\bcapital\s+one\b'), 'Capital One'),
    (_rx(r'\bdiscover\b'), 'Discover'),
    (_rx(r'\b(?:bank\s+of\s+america|bofa)\b'), 'Bank of America'),
    (_rx(r'\bwells\s+fargo\b'), 'Wells Fargo'),
)

# Brands that are both issuer and network; records store either spelling.
ISSUER_NETWORKS = MappingProxyType({
    'American Express': 'Amex',
    'Discover': 'Discover',
})


# =============================================================================
# BALANCE FILTER
# =============================================================================

ZERO_BALANCE_PATTERNS: Tuple[Pattern, ...] = (
    _rx(r'\bzero\s+balances?\b'),
    _rx(r'\bno\s+balances?\b'),
    _rx(r'\bwithout\s+(?:a\s+)?balances?\b'),
    _rx(r'\bpaid\s+off\b'),
    _rx(r'\$?\b0\s+balances?\b'),
    _rx(r'\bbalances?\s+(?:of\s+|is\s+|=\s*)?\$?0(?![\d.,])'),
)

WITH_BALANCE_PATTERNS: Tuple[Pattern, ...] = (
    _rx(r'\b(?:with|having|that\s+have|that\s+has|carrying)\s+(?:a\s+)?balances?\b'),
)

IMPLICIT_BALANCE_PATTERN = _rx(r'\bbalances?\b')
IMPLICIT_BALANCE_CONTEXT = _rx(r'\b(?:list|show|cards?)\b')


# =============================================================================
# DISTINCT / GROUPING
# =============================================================================

DISTINCT_KEYWORDS: Tuple[Pattern, ...] = (
    _rx(r'\bdifferent\b'),
    _rx(r'\bvarious\b'),
    _rx(r'\bvaried\b'),
    _rx(r'\bdiverse\b'),
    _rx(r'\bdistinct\b'),
    _rx(r'\bunique\b'),
    _rx(r'\bcategori[sz]ation\b'),
)

DISTINCT_PHRASES: Tuple[Pattern, ...] = (
    _rx(r'\ball\s+(?:of\s+)?the\s+(?:issuers?|networks?|types?|kinds?|banks?)\b'),
    _rx(r'\bwhat\s+(?:issuers|networks|banks|types|kinds)\b'),
    _rx(r'\bwhich\s+(?:issuers|networks|banks)\b'),
    _rx(r'\bbreakdown\s+(?:by|of)\b'),
    _rx(r'\bdistribution\s+(?:by|of)\b'),
)

# Distinct queries that also list sample cards under each value.
DISTINCT_DETAIL_PATTERN = _rx(r'\bbreakdown\b|\bdistribution\b|\bwith\s+details?\b')

_ISSUER_WORDS = r'\b(?:issuers?|banks?|financial\s+institutions?)\b'
_NETWORK_WORDS = r'\b(?:networks?|payment\s+networks?)\b'
_TYPE_WORDS = r'\b(?:types?|kinds?)\b'

DISTINCT_FIELD_PATTERNS: Tuple[Tuple[str, Pattern], ...] = (
    ('issuer', _rx(_ISSUER_WORDS)),
    ('card_network', _rx(_NETWORK_WORDS)),
    ('card_type', _rx(_TYPE_WORDS)),
)

GROUP_FIELD_PATTERNS: Tuple[Tuple[str, Pattern], ...] = (
    ('issuer', _rx(r'^' + _ISSUER_WORDS)),
    ('card_network', _rx(r'^(?:card\s+)?' + _NETWORK_WORDS)),
    ('card_type', _rx(r'^(?:card\s+)?' + _TYPE_WORDS)),
)


# =============================================================================
# AGGREGATION
# =============================================================================

# Ordered: the first operation whose pattern matches wins.
AGGREGATION_PATTERNS: Tuple[Tuple[str, Pattern], ...] = (
    ('count', _rx(r'\bhow\s+many\b|\bnumber\s+of\b|\bcount\b')),
    ('sum', _rx(r'\btotal\b|\bsum(?:\s+of)?\b|\badd\s+up\b|\bcombined\b|\btogether\b')),
    ('avg', _rx(r'\baverage\b|\bavg\b|\bmean\b|\btypical\b')),
    ('min', _rx(r'\bminimum\b|\bmin\b|\blowest\b|\bsmallest\b|\bleast\b')),
    ('max', _rx(r'\bmaximum\b|\bmax\b|\bhighest\b|\blargest\b|\bmost\b')),
)

SUPERLATIVE_WORDS = frozenset({
    'highest', 'lowest', 'largest', 'smallest', 'most', 'least',
    'maximum', 'minimum', 'max', 'min',
})

# A question about the cards themselves asks for a ranking, not a number.
CARD_REQUEST_PATTERN = _rx(r'\b(?:cards?|which)\b')


# =============================================================================
# NUMERIC COMPARISONS
# =============================================================================

COMPARISON_FIELD_ALIASES: Tuple[str, ...] = (
    'current balance', 'balance', 'debt', 'owed',
    'interest rate', 'apr', 'rate',
    'credit limit', 'limit',
    'annual fee', 'fee',
    'available credit', 'utilization', 'grace period',
)

COMPARISON_OPERATORS = MappingProxyType({
    'greater than or equal to': '>=',
    'less than or equal to': '<=',
    'no more than': '<=',
    'no less than': '>=',
    'at least': '>=',
    'at most': '<=',
    'up to': '<=',
    'greater than': '>',
    'more than': '>',
    'higher than': '>',
    'exceeding': '>',
    'over': '>',
    'above': '>',
    'less than': '<',
    'lower than': '<',
    'under': '<',
    'below': '<',
    'equal to': '==',
    'exactly': '==',
    '>=': '>=',
    '<=': '<=',
    '>': '>',
    '<': '<',
    '=': '==',
})


def _alternation(phrases) -> str:
    ordered = sorted(phrases, key=lambda p: -len(p))
    return '|'.join(r'\s+'.join(re.escape(w) for w in p.split()) for p in ordered)


COMPARISON_PATTERN = re.compile(
    r'(?<!reward )(?<!earn )\b(?P<field>' + _alternation(COMPARISON_FIELD_ALIASES) + r')\b'
    r'(?:\s+(?!and\b|or\b)[a-z\']+){0,3}?\s*'
    r'(?P<op>' + _alternation(COMPARISON_OPERATORS.keys()) + r')'
    r'\s*(?P<value>-?\s*\$?\s*\d[\d,]*(?:\.\d+)?(?:\s*k\b)?(?:\s*%)?)',
    re.IGNORECASE,
)


# =============================================================================
# LOGICAL CONNECTORS
# =============================================================================

CONNECTOR_PATTERNS: Tuple[Tuple[Pattern, str], ...] = (
    (_rx(r'\bor\b|\|'), 'OR'),
    (_rx(r'\band\b|&|\+'), 'AND'),
)


# =============================================================================
# BUILDER
# =============================================================================

def build_vocabulary() -> QueryVocabulary:
    """Assemble the default, read-only vocabulary."""
    return QueryVocabulary(
        category_patterns=MappingProxyType(dict(CATEGORY_PATTERNS)),
        category_keywords=_build_category_keywords(CATEGORY_PATTERNS),
        merchant_patterns=MappingProxyType(dict(MERCHANT_PATTERNS)),
        attribute_rules=ATTRIBUTE_RULES,
        modifier_rules=MODIFIER_RULES,
        network_patterns=NETWORK_PATTERNS,
        network_condition_patterns=NETWORK_CONDITION_PATTERNS,
        issuer_patterns=ISSUER_PATTERNS,
        issuer_networks=ISSUER_NETWORKS,
        with_balance_patterns=WITH_BALANCE_PATTERNS,
        zero_balance_patterns=ZERO_BALANCE_PATTERNS,
        implicit_balance_pattern=IMPLICIT_BALANCE_PATTERN,
        implicit_balance_context=IMPLICIT_BALANCE_CONTEXT,
        distinct_keywords=DISTINCT_KEYWORDS,
        distinct_phrases=DISTINCT_PHRASES,
        distinct_detail_pattern=DISTINCT_DETAIL_PATTERN,
        distinct_field_patterns=DISTINCT_FIELD_PATTERNS,
        group_field_patterns=GROUP_FIELD_PATTERNS,
        aggregation_patterns=AGGREGATION_PATTERNS,
        superlative_words=SUPERLATIVE_WORDS,
        card_request_pattern=CARD_REQUEST_PATTERN,
        comparison_pattern=COMPARISON_PATTERN,
        comparison_operators=COMPARISON_OPERATORS,
        connector_patterns=CONNECTOR_PATTERNS,
    )


DEFAULT_VOCABULARY = build_vocabulary()
