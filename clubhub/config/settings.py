"""
Validation Settings

Environment-driven configuration for the schema validation engine. Values are
loaded from the process environment, with python-dotenv reading a local
``.env`` file first so development setups do not need exported variables.

Environment variables:
    OFFICIAL_EMAIL_DOMAIN: Domain user and club contact e-mails must use
    CLUB_DISALLOWED_WORDS: Comma separated substrings rejected in club names
        and descriptions
    CLUB_RESERVED_WORDS: Comma separated words club names must not contain
    COMMENT_DISALLOWED_WORDS: Comma separated substrings rejected in comments
    CLUB_DESCRIPTION_MAX_CHAR_RUN: Longest allowed run of one character
    CLUB_DESCRIPTION_MAX_CAPS_RATIO: Highest allowed upper-case letter ratio
    CLUB_DESCRIPTION_CAPS_MIN_LETTERS: Letter count above which the ratio applies
    COMMENT_MAX_CHAR_RUN / COMMENT_MAX_CAPS_RATIO / COMMENT_CAPS_MIN_LETTERS:
        Same screening thresholds for comment content
    VALIDATION_EMPTY_ITEM_POLICY: ``drop`` or ``reject``
    VALIDATION_UNKNOWN_FIELD_POLICY: ``ignore`` or ``reject``
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

import structlog
from dotenv import load_dotenv

from ..business.exceptions import BaseBusinessException, ErrorCategory, ErrorSeverity
from ..business.models import EmptyItemPolicy, UnknownFieldPolicy

# Load environment variables early
load_dotenv()

logger = structlog.get_logger("config.settings")

DEFAULT_CLUB_DISALLOWED_WORDS = ('hate', 'discrimination', 'illegal', 'scam', 'fake', 'fraud')
DEFAULT_CLUB_RESERVED_WORDS = ('admin', 'system', 'test', 'usiu', 'university')
DEFAULT_COMMENT_DISALLOWED_WORDS = ('spam', 'scam', 'fake', 'fraud', 'hack', 'illegal')


class ConfigurationError(BaseBusinessException):
    """Raised when an environment variable holds an unusable value."""

    def __init__(self, variable: str, value: str, expected: str) -> None:
        super().__init__(
            message=f"Invalid value for {variable}: expected {expected}",
            error_code="INVALID_CONFIGURATION",
            http_status_code=500,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            context={'variable': variable, 'value': value},
        )


def _word_list(variable: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(variable)
    if raw is None:
        return default
    return tuple(word.strip().lower() for word in raw.split(',') if word.strip())


def _number(variable: str, default: str, cast):
    raw = os.getenv(variable, default)
    try:
        return cast(raw)
    except ValueError as error:
        raise ConfigurationError(variable, raw, cast.__name__) from error


def _policy(variable: str, default: str, enum_class):
    raw = os.getenv(variable, default).strip().lower()
    try:
        return enum_class(raw)
    except ValueError as error:
        expected = ' or '.join(member.value for member in enum_class)
        raise ConfigurationError(variable, raw, expected) from error


@dataclass(frozen=True)
class ValidationSettings:
    """
    Immutable screening lists, thresholds and leniency policies.

    Instances are shared by every validation call; build a new one (for
    example with ``dataclasses.replace``) to validate under different settings.
    """

    official_email_domain: str = 'usiu.ac.ke'
    club_disallowed_words: Tuple[str, ...] = DEFAULT_CLUB_DISALLOWED_WORDS
    club_reserved_words: Tuple[str, ...] = DEFAULT_CLUB_RESERVED_WORDS
    comment_disallowed_words: Tuple[str, ...] = DEFAULT_COMMENT_DISALLOWED_WORDS
    club_description_max_char_run: int = 20
    club_description_max_caps_ratio: float = 0.5
    club_description_caps_min_letters: int = 50
    comment_max_char_run: int = 10
    comment_max_caps_ratio: float = 0.7
    comment_caps_min_letters: int = 20
    empty_item_policy: EmptyItemPolicy = EmptyItemPolicy.DROP
    unknown_field_policy: UnknownFieldPolicy = UnknownFieldPolicy.IGNORE

    @classmethod
    def from_env(cls) -> "ValidationSettings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: A numeric or policy variable cannot be parsed
        """
        settings = cls(
            official_email_domain=os.getenv('OFFICIAL_EMAIL_DOMAIN', 'usiu.ac.ke').strip().lstrip('@').lower(),
            club_disallowed_words=_word_list('CLUB_DISALLOWED_WORDS', DEFAULT_CLUB_DISALLOWED_WORDS),
            club_reserved_words=_word_list('CLUB_RESERVED_WORDS', DEFAULT_CLUB_RESERVED_WORDS),
            comment_disallowed_words=_word_list('COMMENT_DISALLOWED_WORDS', DEFAULT_COMMENT_DISALLOWED_WORDS),
            club_description_max_char_run=_number('CLUB_DESCRIPTION_MAX_CHAR_RUN', '20', int),
            club_description_max_caps_ratio=_number('CLUB_DESCRIPTION_MAX_CAPS_RATIO', '0.5', float),
            club_description_caps_min_letters=_number('CLUB_DESCRIPTION_CAPS_MIN_LETTERS', '50', int),
            comment_max_char_run=_number('COMMENT_MAX_CHAR_RUN', '10', int),
            comment_max_caps_ratio=_number('COMMENT_MAX_CAPS_RATIO', '0.7', float),
            comment_caps_min_letters=_number('COMMENT_CAPS_MIN_LETTERS', '20', int),
            empty_item_policy=_policy('VALIDATION_EMPTY_ITEM_POLICY', 'drop', EmptyItemPolicy),
            unknown_field_policy=_policy('VALIDATION_UNKNOWN_FIELD_POLICY', 'ignore', UnknownFieldPolicy),
        )

        logger.debug("Validation settings loaded",
                     official_email_domain=settings.official_email_domain,
                     empty_item_policy=settings.empty_item_policy.value,
                     unknown_field_policy=settings.unknown_field_policy.value)
        return settings


@lru_cache(maxsize=1)
def get_validation_settings() -> ValidationSettings:
    """Process-wide settings, read from the environment on first use."""
    return ValidationSettings.from_env()


def reload_validation_settings() -> ValidationSettings:
    """Drop the cached settings and read the environment again."""
    get_validation_settings.cache_clear()
    return get_validation_settings()


def resolve_settings(settings: Optional[ValidationSettings] = None) -> ValidationSettings:
    return settings if settings is not None else get_validation_settings()
