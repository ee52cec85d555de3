"""
Grouping Phrase Detector
========================

Deterministic structural detection of NL grouping patterns.

PURPOSE
-------
Detect grouping expressions in card questions and return the raw phrase for
field resolution.  This module has no knowledge of the card schema; it only
applies syntactic parsing rules to the query string.

    total balance by issuer              → "issuer"
    average apr grouped by card network  → "card network"
    breakdown of my cards by type        → "type"

RECOGNIZED PATTERNS
-------------------
Tried in priority order (first match wins):

    grouped by <phrase>        most explicit two-word pattern
    group by <phrase>          SQL-style embedded in NL
    organized by <phrase>
    breakdown by <phrase>
    distribution by <phrase>
    per <phrase>               natural grouping marker
    by <phrase>                guarded: not after an ordering/filtering verb

The bare "by" guard rejects "sorted by apr", "sort my cards by apr",
"ranked by limit" and "filtered by issuer", which name a sort key or a
filter, not a partition.  It also rejects a listing of the cards
themselves ("show my cards by due date").

STOP WORDS
----------
The grouping phrase is trimmed at the first occurrence of a stop word:
    limit, order, ordered, sorted, having, with, where, and, or, showing,
    for, that, in

Example:
    "issuer with balance over 500"  →  "issuer"

PIPELINE POSITION
-----------------
Called by EntityExtractor while building the grouping entity.  The phrase
is mapped to issuer / card_network / card_type there, or handed to the
FieldMapper by QueryDecomposer.

DESIGN INVARIANTS
-----------------
- Pure function: no side effects, no state, no I/O
- Deterministic: same input always produces the same output
- Schema-agnostic: returns the phrase as a string
- Conservative: returns None when uncertain
"""

import re
from typing import Optional


# =============================================================================
# Stop-word trimmer
# =============================================================================
# Removes a stop word and everything after it from a phrase candidate.
# \s+ before the stop word prevents partial-word matches on phrases that
# happen to start with one (e.g., "ordinal").
# =============================================================================
_PHRASE_STOP_RE = re.compile(
    r'\s+(?:limit|order|ordered|sorted|having|with|where|and|or|showing|for|that|in)\b.*$',
    re.IGNORECASE,
)

_TRAILING_PUNCT_RE = re.compile(r'[\s?.!,;:]+$')


# =============================================================================
# Bare "by" guard
# =============================================================================
# An ordering verb up to three words before "by" names a sort key or a
# filter: "sorted by apr", "sort my cards by apr".
_ORDERING_BY_RE = re.compile(
    r'\b(?:sort|order|rank|filter|arrange)\w*(?:\s+\w+){0,3}?\s+by\b',
    re.IGNORECASE,
)

# "show my cards by due date" lists cards; it does not partition them.
_LISTING_BY_RE = re.compile(
    r'\b(?:show|list|display)\b(?:\s+\w+){0,3}?\s+cards?\s+by\b',
    re.IGNORECASE,
)


# =============================================================================
# Grouping patterns, most specific first
# =============================================================================
_GROUPED_BY_RE      = re.compile(r'\bgrouped\s+by\s+(.+)',      re.IGNORECASE)
_GROUP_BY_RE        = re.compile(r'\bgroup\s+by\s+(.+)',        re.IGNORECASE)
_ORGANIZED_BY_RE    = re.compile(r'\borgani[sz]ed\s+by\s+(.+)', re.IGNORECASE)
_BREAKDOWN_BY_RE    = re.compile(r'\bbreakdown\s+by\s+(.+)',    re.IGNORECASE)
_DISTRIBUTION_BY_RE = re.compile(r'\bdistribution\s+by\s+(.+)', re.IGNORECASE)
_PER_RE             = re.compile(r'\bper\s+(.+)',               re.IGNORECASE)
_BY_RE              = re.compile(r'\bby\s+',                  re.IGNORECASE)

_UNCONDITIONAL_PATTERNS = (
    _GROUPED_BY_RE,
    _GROUP_BY_RE,
    _ORGANIZED_BY_RE,
    _BREAKDOWN_BY_RE,
    _DISTRIBUTION_BY_RE,
    _PER_RE,
)

_LEADING_ARTICLE_RE = re.compile(r'^(?:the|my|their|each|every)\s+', re.IGNORECASE)


# =============================================================================
# Internal helpers
# =============================================================================

def _trim_phrase(phrase: str) -> str:
    """
    Remove trailing stop words and their arguments, plus trailing punctuation
    and a leading article.

    Examples:
        "issuer with balance over 500"  →  "issuer"
        "the card network?"             →  "card network"
        "type"                          →  "type"
    """
    phrase = _PHRASE_STOP_RE.sub('', phrase)
    phrase = _TRAILING_PUNCT_RE.sub('', phrase)
    phrase = _LEADING_ARTICLE_RE.sub('', phrase.strip())
    return phrase.strip()


# =============================================================================
# Public API
# =============================================================================

def extract_grouping_phrase(original_query: Optional[str]) -> Optional[str]:
    """
    Detect structural grouping patterns in a card question and return the phrase.

    Args:
        original_query: Raw NL query string.

    Returns:
        The extracted grouping phrase (whitespace-stripped), or None if no
        grouping pattern is detected.

    Examples::

        extract_grouping_phrase("total balance by issuer")
        → "issuer"

        extract_grouping_phrase("show cards grouped by network")
        → "network"

        extract_grouping_phrase("sum of limits per card type")
        → "card type"

        extract_grouping_phrase("show cards sorted by apr")
        → None
    """
    if not original_query or not isinstance(original_query, str) or not original_query.strip():
        return None

    q = original_query.strip()

    for pattern in _UNCONDITIONAL_PATTERNS:
        m = pattern.search(q)
        if m:
            phrase = _trim_phrase(m.group(1))
            if phrase:
                return phrase

    # Bare "by": every occurrence not introduced by an ordering/filtering verb
    ordering_spans = [
        m.span()
        for guard in (_ORDERING_BY_RE, _LISTING_BY_RE)
        for m in guard.finditer(q)
    ]
    for m in _BY_RE.finditer(q):
        by_start = m.start()
        if any(start <= by_start < end for start, end in ordering_spans):
            continue
        phrase = _trim_phrase(q[m.end():])
        if phrase:
            return phrase

    return None
