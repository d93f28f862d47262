"""
Validation Utility Functions

Helper functions shared by the type coercion dispatcher and the business rule
validators:

    Date/Time Processing:
        utc_now: Current UTC time at millisecond precision
        to_millisecond_precision: Normalize a datetime to UTC milliseconds
        from_epoch_milliseconds: Convert an integer epoch to a datetime
        parse_date: Parse a date string with python-dateutil

    Type Conversion:
        normalize_boolean: Lenient boolean interpretation

    Text Screening:
        find_disallowed_word: Case-insensitive substring screening
        longest_character_run: Longest run of one repeated character
        uppercase_ratio: Share of upper-case letters among ASCII letters
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Tuple

import structlog
from dateutil import parser as date_parser

logger = structlog.get_logger("business.utils")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

TRUE_TOKENS = frozenset({'1', 'true', 'on', 'yes'})
FALSE_TOKENS = frozenset({'0', 'false', 'off', 'no'})


# ============================================================================
# DATE/TIME PROCESSING
# ============================================================================

def to_millisecond_precision(value: datetime) -> datetime:
    """
    Normalize a datetime to a UTC-aware value truncated to milliseconds.

    Naive datetimes are taken to be UTC. Millisecond precision matches what
    BSON date fields can store, so a value survives a database round trip
    unchanged.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    """Current UTC time at millisecond precision; the default validation clock."""
    return to_millisecond_precision(datetime.now(timezone.utc))


def from_epoch_milliseconds(value: int) -> datetime:
    """
    Convert an integer number of milliseconds since the Unix epoch.

    Raises:
        OverflowError: If the value is outside the datetime range
    """
    return EPOCH + timedelta(milliseconds=value)


def parse_date(date_string: str) -> datetime:
    """
    Parse a date string into a UTC datetime at millisecond precision.

    Accepts ISO 8601 strings and the looser formats python-dateutil
    understands. Strings without an offset are taken to be UTC.

    Args:
        date_string: Date string to parse

    Returns:
        Parsed datetime in UTC

    Raises:
        ValueError: If the string cannot be parsed
        OverflowError: If the parsed value falls outside the datetime range
            once converted to UTC

    Example:
        parse_date("2026-03-01T18:30:00Z")
        parse_date("2026-03-01 18:30")
    """
    candidate = date_string.strip()
    if not candidate:
        raise ValueError("Date string must not be blank")

    try:
        parsed = date_parser.isoparse(candidate)
    except ValueError:
        try:
            parsed = date_parser.parse(candidate)
        except (ValueError, OverflowError) as parse_error:
            raise ValueError(f"Unable to parse date string: {date_string}") from parse_error

    return to_millisecond_precision(parsed)


# ============================================================================
# TYPE CONVERSION
# ============================================================================

def normalize_boolean(value: Any) -> bool:
    """
    Normalize a loosely-typed value to a boolean.

    Recognized string tokens are ``1 true on yes`` and ``0 false off no``
    (trimmed, case-insensitive). Anything else falls back to Python
    truthiness, so ambiguous input never raises.

    Example:
        normalize_boolean("Yes")    # True
        normalize_boolean("off")    # False
        normalize_boolean("maybe")  # True
        normalize_boolean(0)        # False
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, str):
        token = value.strip().lower()
        if token in TRUE_TOKENS:
            return True
        if token in FALSE_TOKENS:
            return False
        logger.debug("Ambiguous boolean token, falling back to truthiness",
                     token_length=len(token))

    return bool(value)


# ============================================================================
# TEXT SCREENING
# ============================================================================

def find_disallowed_word(text: str, words: Iterable[str]) -> Optional[str]:
    """Return the first word of ``words`` contained in ``text``, ignoring case."""
    lowered = text.lower()
    for word in words:
        if word and word.lower() in lowered:
            return word
    return None


def longest_character_run(text: str) -> Tuple[str, int]:
    """
    Return the character with the longest consecutive run and the run length.

    Example:
        longest_character_run("heyyyy!")  # ('y', 4)
    """
    best_char, best_length = '', 0
    for char, group in itertools.groupby(text):
        length = sum(1 for _ in group)
        if length > best_length:
            best_char, best_length = char, length
    return best_char, best_length


def count_ascii_letters(text: str) -> Tuple[int, int]:
    """Return ``(upper_case_letters, total_letters)`` over ASCII letters only."""
    upper = total = 0
    for char in text:
        if 'a' <= char <= 'z':
            total += 1
        elif 'A' <= char <= 'Z':
            total += 1
            upper += 1
    return upper, total


def uppercase_ratio(text: str) -> float:
    """Share of upper-case letters among the ASCII letters of ``text``."""
    upper, total = count_ascii_letters(text)
    return upper / total if total else 0.0
