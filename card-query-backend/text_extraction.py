"""
Text Extraction — Currency-Aware Numeric Literal Scanner

Deterministic extraction of money amounts and percentages from free text.

RECOGNIZED AMOUNT FORMATS
-------------------------
Tried in priority order (first match wins):

    $5000, $5,000, $ 5,000.00      dollar sign
    5k, 2.5k                       thousand notation (toggle: allow_k)
    5000 dollars, 40 bucks, 90 usd currency word
    5000, 5,000                    bare number (minimum digits: min_digits)

A leading minus sign is not part of any pattern, so "-500" scans as 500.
Callers that care about sign must look at the raw text themselves.

DESIGN INVARIANTS
-----------------
- Pure functions: no side effects, no state, no I/O
- Total: every function returns None / [] on no match, never raises
- Zero and negative results are treated as "no amount"
"""

import re
from typing import List, Optional


_DOLLAR_RE = re.compile(r'\$\s*([\d,]+(?:\.\d{1,2})?)')
_K_RE = re.compile(r'(\d+(?:\.\d+)?)\s*k\b')
_CURRENCY_WORD_RE = re.compile(r'([\d,]+(?:\.\d{1,2})?)\s*(?:dollars?|usd|bucks?)\b')
_PLAIN_NUMBER_RE = re.compile(r'\b([\d,]+(?:\.\d{1,2})?)\b')

_PERCENT_SIGN_RE = re.compile(r'(\d+(?:\.\d+)?)\s*%')
_PERCENT_WORD_RE = re.compile(r'(\d+(?:\.\d+)?)\s*percent\b')
_DECIMAL_FRACTION_RE = re.compile(r'\b(0\.\d+)\b')


def _parse_number(raw: str) -> Optional[float]:
    """Parse "5,000.50" → 5000.5; None on anything unparseable or non-positive."""
    cleaned = raw.replace(",", "")
    if not cleaned or cleaned == ".":
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if value <= 0:
        return None
    return int(value) if value.is_integer() else value


def _digit_count(raw: str) -> int:
    return sum(1 for ch in raw if ch.isdigit())


def extract_amount(
    text: Optional[str],
    min_digits: int = 1,
    allow_k: bool = True,
) -> Optional[float]:
    """
    Extract the first money amount from text.

    Args:
        text:       Free text (any case).
        min_digits: Minimum digit count a BARE number needs to qualify.
                    Dollar-sign, k-notation and currency-word forms are
                    unaffected.
        allow_k:    Accept "5k" style thousand notation.

    Returns:
        The amount as int (whole) or float, or None when nothing qualifies.

    Examples::

        extract_amount("I have $5,000")          → 5000
        extract_amount("budget is 2.5k")         → 2500
        extract_amount("about 40 bucks")         → 40
        extract_amount("apr 25", min_digits=3)   → None
    """
    if not text or not isinstance(text, str):
        return None

    lower = text.lower()

    m = _DOLLAR_RE.search(lower)
    if m:
        amount = _parse_number(m.group(1))
        if amount is not None:
            return amount

    if allow_k:
        m = _K_RE.search(lower)
        if m:
            amount = _parse_number(m.group(1))
            if amount is not None:
                total = amount * 1000
                return int(total) if float(total).is_integer() else total

    m = _CURRENCY_WORD_RE.search(lower)
    if m:
        amount = _parse_number(m.group(1))
        if amount is not None:
            return amount

    for m in _PLAIN_NUMBER_RE.finditer(lower):
        raw = m.group(1)
        if _digit_count(raw.split(".")[0]) < max(min_digits, 1):
            continue
        amount = _parse_number(raw)
        if amount is not None:
            return amount

    return None


def extract_all_amounts(text: Optional[str], allow_k: bool = True) -> List[float]:
    """
    Extract every explicitly-marked money amount ($, k, currency word).

    Bare numbers are not included. Order follows first appearance in text;
    duplicates are dropped.
    """
    if not text or not isinstance(text, str):
        return []

    lower = text.lower()
    found = []

    patterns = [(_DOLLAR_RE, 1), (_CURRENCY_WORD_RE, 1)]
    if allow_k:
        patterns.append((_K_RE, 1000))

    for pattern, multiplier in patterns:
        for m in pattern.finditer(lower):
            amount = _parse_number(m.group(1))
            if amount is None:
                continue
            value = amount * multiplier
            if float(value).is_integer():
                value = int(value)
            found.append((m.start(), value))

    found.sort(key=lambda item: item[0])
    amounts: List[float] = []
    for _, value in found:
        if value not in amounts:
            amounts.append(value)
    return amounts


def extract_percentage(text: Optional[str]) -> Optional[float]:
    """
    Extract a percentage as a fraction.

    "APR is 25%" → 0.25, "25 percent" → 0.25, "0.25" → 0.25.
    Values above 100% are rejected.
    """
    if not text or not isinstance(text, str):
        return None

    lower = text.lower()

    for pattern in (_PERCENT_SIGN_RE, _PERCENT_WORD_RE):
        m = pattern.search(lower)
        if m:
            try:
                percent = float(m.group(1))
            except ValueError:
                continue
            if 0 <= percent <= 100:
                return percent / 100

    m = _DECIMAL_FRACTION_RE.search(lower)
    if m:
        decimal = float(m.group(1))
        if 0 <= decimal <= 1:
            return decimal

    return None
