"""Phone number utilities for turning scraped tenant phone fields into E.164.

Scraped phone fields are messy: a single value can hold zero, one or two
numbers, sometimes separated by "/" (or ";", ",", "|"), sometimes separated by
whitespace only, and sometimes glued together with no delimiter at all:

    "8567805758 / 6097744077"   -> ("+18567805758", "+16097744077")
    "18567805758 6097744077"    -> ("+18567805758", "+16097744077")
    "2036718335 6718335"        -> ("+12036718335", None)
    "(203) 671-8335"            -> ("+12036718335", None)
"""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Delimiters that always separate two numbers
_NUMBER_DELIMITERS = re.compile(r"[/;,|]+")
# Whitespace separates numbers too, but only once a part is too long to be one
_WHITESPACE = re.compile(r"\s+")
_NON_DIGITS = re.compile(r"\D")

MAX_E164_DIGITS = 15
# Longest digit run that can still be a single national number
MAX_NATIONAL_DIGITS = 11
# A digit run this long cannot be a single national number
CONCATENATED_MIN_DIGITS = 15


def to_e164(digits: str) -> str:
    """Format a digit-only string as E.164.

    Returns:
        "+1" + 10 digits, "+" + 11 digits starting with 1, "+" + any other
        10-15 digit run, or "" when the value cannot be a phone number.
    """
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if 10 <= len(digits) <= MAX_E164_DIGITS:
        return f"+{digits}"
    return ""


def _looks_national(digits: str) -> bool:
    return len(digits) == 10 or (len(digits) == 11 and digits.startswith("1"))


def split_concatenated(digits: str) -> tuple[str, str] | None:
    """Split a digit run holding two undelimited US numbers.

    Tries offsets 10 and 11 (a leading country code on the first half) and
    only accepts a split where both halves look like national numbers.
    """
    for offset in (10, 11):
        first, second = digits[:offset], digits[offset:]
        if _looks_national(first) and _looks_national(second):
            return first, second
    return None


def split_on_whitespace(part: str) -> tuple[str, str] | None:
    """Split a whitespace-separated part into a national number and the rest.

    The first number is the shortest run of leading whitespace pieces whose
    digits look national; everything after it is the second number. Parts
    where no prefix looks national (international numbers written in groups)
    are not split.
    """
    pieces = [_NON_DIGITS.sub("", p) for p in _WHITESPACE.split(part.strip())]
    pieces = [p for p in pieces if p]
    first = ""
    for index, piece in enumerate(pieces[:-1]):
        first += piece
        if len(first) > MAX_NATIONAL_DIGITS:
            return None
        if _looks_national(first):
            return first, "".join(pieces[index + 1:])
    return None


def _part_candidates(part: str) -> list[str]:
    digits = _NON_DIGITS.sub("", part)
    if not digits:
        return []
    if len(digits) <= MAX_NATIONAL_DIGITS or split_concatenated(digits):
        return [digits]
    pair = split_on_whitespace(part)
    if pair:
        return list(pair)
    return [digits]


def split_and_format_phones(raw: Any) -> tuple[str, str | None]:
    """Parse a raw phone field into a primary and optional secondary number.

    Never raises: anything unparseable yields an empty primary.

    Args:
        raw: Raw phone value as scraped

    Returns:
        Tuple of (primary E.164 or "", secondary E.164 or None)
    """
    if raw is None or raw == "":
        return "", None
    try:
        text = raw if isinstance(raw, str) else str(raw)
        candidates = [
            digits for part in _NUMBER_DELIMITERS.split(text) for digits in _part_candidates(part)
        ]
        if not candidates:
            return "", None

        if len(candidates) == 1:
            digits = candidates[0]
            if len(digits) >= CONCATENATED_MIN_DIGITS:
                pair = split_concatenated(digits)
                if pair:
                    return to_e164(pair[0]), to_e164(pair[1])
                logger.debug(f"No safe split for {len(digits)}-digit phone value, truncating")
            return to_e164(digits[:MAX_E164_DIGITS]), None

        primary = to_e164(candidates[0][:MAX_E164_DIGITS])
        secondary = to_e164(candidates[1][:MAX_E164_DIGITS])
        return primary, secondary or None
    except Exception as e:
        logger.warning(f"Could not parse phone value {raw!r}: {e}")
        return "", None


def normalize_tenant_phones(value: Any) -> tuple[str, str | None]:
    """Normalize the tenant_phone column, which is either a string or a list.

    For a list, the first entry supplies the primary (and possibly an
    extracted secondary); the second entry is only used as the secondary when
    the first entry did not already contain one.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            return "", None
        primary, secondary = split_and_format_phones(value[0])
        if secondary is None and len(value) > 1:
            secondary = split_and_format_phones(value[1])[0] or None
        return primary, secondary
    if isinstance(value, str):
        return split_and_format_phones(value)
    if value is not None:
        logger.info(f"Unsupported tenant_phone type: {type(value).__name__}")
    return "", None
