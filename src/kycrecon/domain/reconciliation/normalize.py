"""Value normalization used before discrepancy comparison.

Normalized values are comparison keys only; they are never stored or shown.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from decimal import Decimal, InvalidOperation

from kycrecon.domain.model import Comparison

log = logging.getLogger(__name__)

_IDENTIFIER_NOISE = re.compile(r"[\s\-/.]+")
_CURRENCY = re.compile(
    r"[$€£¥₹]|\b(?:sgd|usd|eur|gbp|myr|idr|cny|rmb|inr|hkd|aud|rp|rm)\b",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"[-+]?\d[\d,.' ]*\d|[-+]?\d")


def normalize_text(value: str) -> str:
    """NFKC, casefold, collapse whitespace."""
    text = unicodedata.normalize("NFKC", value).casefold()
    return " ".join(text.split())


def normalize_identifier(value: str) -> str:
    """Like ``normalize_text`` but ignores separators: ``S1234567-A`` == ``s 1234567a``."""
    text = unicodedata.normalize("NFKC", value).casefold()
    return _IDENTIFIER_NOISE.sub("", text)


def _canonical_number(token: str) -> str | None:
    digits = token.replace(" ", "").replace("'", "")
    commas = digits.count(",")
    dots = digits.count(".")
    if commas and dots:
        # the separator that appears last is the decimal mark
        if digits.rfind(",") > digits.rfind("."):
            digits = digits.replace(".", "").replace(",", ".")
        else:
            digits = digits.replace(",", "")
    elif commas:
        head, _, tail = digits.rpartition(",")
        if commas == 1 and len(tail) != 3:
            digits = f"{head}.{tail}"
        else:
            digits = digits.replace(",", "")
    elif dots > 1:
        digits = digits.replace(".", "")
    try:
        number = Decimal(digits)
    except InvalidOperation:
        return None
    if number == number.to_integral_value():
        return str(number.quantize(Decimal(1)))
    return format(number.normalize(), "f")


def normalize_numeric(value: str) -> str:
    """Canonicalize the first number in ``value`` and keep any trailing text.

    ``"SGD 1,000.00"`` and ``"1000"`` compare equal, as do ``"1,000 shares"``
    and ``"1000 shares"``. Values without digits fall back to text comparison.
    """

    text = normalize_text(_CURRENCY.sub(" ", unicodedata.normalize("NFKC", value)))
    match = _NUMBER.search(text)
    if match is None:
        return text
    number = _canonical_number(match.group())
    if number is None:
        log.debug("Could not parse numeric token %r in %r", match.group(), value)
        return text
    remainder = text[match.end() :].strip()
    return f"{number} {remainder}" if remainder else number


def normalize_value(value: str, comparison: Comparison) -> str:
    match comparison:
        case Comparison.IDENTIFIER:
            return normalize_identifier(value)
        case Comparison.NUMERIC:
            return normalize_numeric(value)
        case Comparison.TEXT | Comparison.NONE:
            return normalize_text(value)
