"""
Event Schema

Field table and business rules for club events.

Business rules:
    event_in_future: ``event_date`` must lie strictly after the clock reading
    end_after_start: ``end_date``, when set, must lie strictly after ``event_date``
    deadline_before_start: ``registration_deadline``, when set, must lie
        strictly before ``event_date``
    attendees_within_capacity: ``max_attendees`` must not exceed
        ``venue_capacity``; 0 on either side means "unspecified"

``club_id``, ``created_by``, ``current_registrations`` and
``registered_users`` are owned by other workflows (club ownership and the
registration flow) and are skipped in update mode.
"""

from typing import Any, Mapping

from ..business.exceptions import BusinessRuleError
from ..business.models import FieldKind, FieldSpec
from ..business.rules import BusinessRule, RuleContext
from ..business.validators import build_validator

EVENT_STATUSES = ('draft', 'published', 'cancelled', 'completed')

EVENT_FIELDS = (
    FieldSpec(name='title', kind=FieldKind.STRING, required=True, min_length=3, max_length=200),
    FieldSpec(name='description', kind=FieldKind.STRING, required=True, min_length=10, max_length=2000),
    FieldSpec(name='club_id', kind=FieldKind.IDENTIFIER, required=True),
    FieldSpec(name='created_by', kind=FieldKind.IDENTIFIER, required=True),
    FieldSpec(name='event_date', kind=FieldKind.TIMESTAMP, required=True),
    FieldSpec(name='end_date', kind=FieldKind.TIMESTAMP, nullable=True),
    FieldSpec(name='location', kind=FieldKind.STRING, required=True, min_length=2, max_length=200),
    FieldSpec(name='venue_capacity', kind=FieldKind.INTEGER, default=0, minimum=0, maximum=50000),
    FieldSpec(name='registration_required', kind=FieldKind.BOOLEAN, default=False),
    FieldSpec(name='registration_deadline', kind=FieldKind.TIMESTAMP, nullable=True),
    FieldSpec(name='registration_fee', kind=FieldKind.FLOAT, default=0.0, minimum=0, maximum=10000),
    FieldSpec(name='max_attendees', kind=FieldKind.INTEGER, default=0, minimum=0, maximum=50000),
    FieldSpec(name='current_registrations', kind=FieldKind.INTEGER, default=0, minimum=0),
    FieldSpec(name='banner_image', kind=FieldKind.STRING, default='', max_length=500),
    FieldSpec(name='gallery', kind=FieldKind.STRING_ARRAY, default=[], max_items=20),
    FieldSpec(name='category', kind=FieldKind.STRING, default='', max_length=100),
    FieldSpec(name='tags', kind=FieldKind.STRING_ARRAY, default=[], max_items=10),
    FieldSpec(name='status', kind=FieldKind.STRING, default='draft', allowed=EVENT_STATUSES),
    FieldSpec(name='featured', kind=FieldKind.BOOLEAN, default=False),
    FieldSpec(name='registered_users', kind=FieldKind.IDENTIFIER_ARRAY, default=[]),
    FieldSpec(name='social_media', kind=FieldKind.OBJECT, default={}),
)

EVENT_IMMUTABLE_FIELDS = ('club_id', 'created_by', 'current_registrations', 'registered_users')


# ============================================================================
# BUSINESS RULES
# ============================================================================

def check_event_in_future(record: Mapping[str, Any], context: RuleContext) -> None:
    event_date = record.get('event_date')
    if event_date is not None and event_date <= context.now:
        raise BusinessRuleError('event_date', 'Event date must be in the future')


def check_end_after_start(record: Mapping[str, Any], context: RuleContext) -> None:
    event_date, end_date = record.get('event_date'), record.get('end_date')
    if event_date is None or end_date is None:
        return
    if end_date <= event_date:
        raise BusinessRuleError('end_date', 'End date must be after the event start date')


def check_deadline_before_start(record: Mapping[str, Any], context: RuleContext) -> None:
    event_date, deadline = record.get('event_date'), record.get('registration_deadline')
    if event_date is None or deadline is None:
        return
    if deadline >= event_date:
        raise BusinessRuleError('registration_deadline', 'Registration deadline must be before the event date')


def check_attendees_within_capacity(record: Mapping[str, Any], context: RuleContext) -> None:
    max_attendees = record.get('max_attendees') or 0
    venue_capacity = record.get('venue_capacity') or 0
    if max_attendees > 0 and venue_capacity > 0 and max_attendees > venue_capacity:
        raise BusinessRuleError(
            'max_attendees',
            f'Maximum attendees ({max_attendees}) cannot exceed venue capacity ({venue_capacity})',
        )


EVENT_RULES = (
    BusinessRule('event_in_future', {'event_date'}, check_event_in_future),
    BusinessRule('end_after_start', {'event_date', 'end_date'}, check_end_after_start),
    BusinessRule('deadline_before_start', {'event_date', 'registration_deadline'}, check_deadline_before_start),
    BusinessRule('attendees_within_capacity', {'max_attendees', 'venue_capacity'}, check_attendees_within_capacity),
)

EventSchema = build_validator(
    'event',
    EVENT_FIELDS,
    rules=EVENT_RULES,
    immutable_fields=EVENT_IMMUTABLE_FIELDS,
)
