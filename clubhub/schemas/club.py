"""
Club Schema

Field table, content screening rules and helper functions for student clubs.

Business rules:
    club_name_content: name must not contain a disallowed word
    club_name_characters: name may only contain letters, digits, whitespace,
        ``&``, ``-`` and ``'``
    club_name_reserved: name must not contain a reserved word
    club_contact_email: contact e-mail must use the official domain
    club_description_repetition: no run of one character beyond the limit
    club_description_capitals: bounded upper-case ratio for long descriptions
    club_description_content: description must not contain a disallowed word

Screening lists and thresholds come from ValidationSettings. ``members_count``
is maintained by the membership workflow and ``leader_id`` only changes
through a leadership transfer, so both are skipped in update mode.
"""

import re
from typing import Any, Dict, Mapping

from ..business.exceptions import BusinessRuleError
from ..business.models import FieldKind, FieldSpec
from ..business.rules import BusinessRule, RuleContext
from ..business.utils import count_ascii_letters, find_disallowed_word, longest_character_run
from ..business.validators import build_validator

CLUB_CATEGORIES = (
    'Arts & Culture',
    'Academic',
    'Sports',
    'Technology',
    'Business',
    'Community Service',
    'Religious',
    'Professional',
    'Recreation',
    'Special Interest',
)

CLUB_STATUSES = ('active', 'inactive')

PUBLIC_FIELDS = ('_id', 'name', 'description', 'category', 'logo', 'members_count', 'status', 'created_at')

INVALID_NAME_CHARACTERS = re.compile(r"[^a-zA-Z0-9\s&\-']")

CLUB_FIELDS = (
    FieldSpec(name='name', kind=FieldKind.STRING, required=True, min_length=3, max_length=100),
    FieldSpec(name='description', kind=FieldKind.STRING, required=True, min_length=10, max_length=1000),
    FieldSpec(name='category', kind=FieldKind.STRING, required=True, allowed=CLUB_CATEGORIES),
    FieldSpec(name='logo', kind=FieldKind.STRING, default='', max_length=500),
    FieldSpec(name='contact_email', kind=FieldKind.EMAIL, required=True, max_length=100),
    FieldSpec(name='leader_id', kind=FieldKind.IDENTIFIER, required=True),
    FieldSpec(name='members_count', kind=FieldKind.INTEGER, default=0, minimum=0, maximum=10000),
    FieldSpec(name='status', kind=FieldKind.STRING, default='active', allowed=CLUB_STATUSES),
)

CLUB_IMMUTABLE_FIELDS = ('members_count', 'leader_id')


# ============================================================================
# BUSINESS RULES
# ============================================================================

def check_name_content(record: Mapping[str, Any], context: RuleContext) -> None:
    name = record.get('name')
    if name is not None and find_disallowed_word(name, context.settings.club_disallowed_words):
        raise BusinessRuleError('name', 'Club name contains inappropriate content')


def check_name_characters(record: Mapping[str, Any], context: RuleContext) -> None:
    name = record.get('name')
    if name is not None and INVALID_NAME_CHARACTERS.search(name):
        raise BusinessRuleError(
            'name',
            "Club name contains invalid characters. Only letters, numbers, spaces, &, -, and ' are allowed",
        )


def check_name_reserved(record: Mapping[str, Any], context: RuleContext) -> None:
    name = record.get('name')
    if name is not None and find_disallowed_word(name, context.settings.club_reserved_words):
        raise BusinessRuleError('name', 'Club name cannot contain reserved words')


def check_contact_email(record: Mapping[str, Any], context: RuleContext) -> None:
    email = record.get('contact_email')
    domain = context.settings.official_email_domain
    if email is not None and not email.lower().endswith('@' + domain):
        raise BusinessRuleError(
            'contact_email',
            f'Contact email must be a valid USIU email address ending with @{domain}',
        )


def check_description_repetition(record: Mapping[str, Any], context: RuleContext) -> None:
    description = record.get('description')
    if description is None:
        return
    _, run_length = longest_character_run(description)
    if run_length > context.settings.club_description_max_char_run:
        raise BusinessRuleError('description', 'Description contains excessive repetition')


def check_description_capitals(record: Mapping[str, Any], context: RuleContext) -> None:
    description = record.get('description')
    if description is None:
        return
    upper, total = count_ascii_letters(description)
    settings = context.settings
    if total > settings.club_description_caps_min_letters and upper / total > settings.club_description_max_caps_ratio:
        raise BusinessRuleError('description', 'Description contains excessive capital letters')


def check_description_content(record: Mapping[str, Any], context: RuleContext) -> None:
    description = record.get('description')
    if description is not None and find_disallowed_word(description, context.settings.club_disallowed_words):
        raise BusinessRuleError('description', 'Description contains inappropriate content')


CLUB_RULES = (
    BusinessRule('club_name_content', {'name'}, check_name_content),
    BusinessRule('club_name_characters', {'name'}, check_name_characters),
    BusinessRule('club_name_reserved', {'name'}, check_name_reserved),
    BusinessRule('club_contact_email', {'contact_email'}, check_contact_email),
    BusinessRule('club_description_repetition', {'description'}, check_description_repetition),
    BusinessRule('club_description_capitals', {'description'}, check_description_capitals),
    BusinessRule('club_description_content', {'description'}, check_description_content),
)

ClubSchema = build_validator(
    'club',
    CLUB_FIELDS,
    rules=CLUB_RULES,
    immutable_fields=CLUB_IMMUTABLE_FIELDS,
)


# ============================================================================
# HELPERS
# ============================================================================

def get_categories() -> list:
    """Club categories in display order."""
    return list(CLUB_CATEGORIES)


def validate_category(category: Any) -> Dict[str, str]:
    """Error mapping for a category filter value; empty when the category exists."""
    if category in CLUB_CATEGORIES:
        return {}
    return {'category': 'Invalid category. Allowed: ' + ', '.join(CLUB_CATEGORIES)}


def validate_leadership_transfer(data: Mapping[str, Any]) -> Dict[str, str]:
    """
    Check a leadership transfer request.

    Both leader identifiers must be present and they must differ.

    Returns:
        Error mapping, empty when the transfer request is well formed
    """
    errors: Dict[str, str] = {}
    new_leader_id = data.get('new_leader_id')
    current_leader_id = data.get('current_leader_id')

    if not new_leader_id:
        errors['new_leader_id'] = 'New leader ID is required'
    if not current_leader_id:
        errors['current_leader_id'] = 'Current leader ID is required'

    if new_leader_id and current_leader_id and str(new_leader_id) == str(current_leader_id):
        errors['new_leader_id'] = 'New leader cannot be the same as current leader'

    return errors


def sanitize_for_public(club: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only the fields safe for unauthenticated listings."""
    return {field: club[field] for field in PUBLIC_FIELDS if club.get(field) is not None}
