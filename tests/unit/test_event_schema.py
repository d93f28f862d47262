"""
Event schema tests: creation, partial updates and temporal/capacity rules.
"""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from clubhub.business.exceptions import BusinessRuleError, SchemaValidationError
from clubhub.business.validators import CREATED_AT, UPDATED_AT
from clubhub.schemas.event import EVENT_FIELDS


@pytest.fixture
def minimal_event(fixed_now):
    return {
        'title': 'Chess Open',
        'description': 'Open chess tournament for all levels.',
        'club_id': str(ObjectId()),
        'created_by': str(ObjectId()),
        'location': 'Library Hall',
        'event_date': (fixed_now + timedelta(hours=1)).isoformat(),
    }


@pytest.mark.unit
class TestEventCreation:

    def test_valid_payload_is_coerced(self, event_schema, event_payload, fixed_now):
        result = event_schema.validate_for_create(event_payload)

        assert result.is_valid, result.error_dict()
        record = result.record
        assert isinstance(record['club_id'], ObjectId)
        assert record['event_date'] == fixed_now + timedelta(days=7)
        assert record['venue_capacity'] == 300
        assert record['registration_required'] is True
        assert record['registration_fee'] == 150.5
        assert record['tags'] == ['tech', 'coding']
        assert record['status'] == 'draft'
        assert record['featured'] is False
        assert record['registered_users'] == []
        assert record['social_media'] == {}

    def test_timestamps_come_from_one_clock_reading(self, event_schema, event_payload, fixed_now):
        record = event_schema.map_and_validate(event_payload)
        assert record[CREATED_AT] == record[UPDATED_AT] == fixed_now

    def test_omitted_nullable_fields_are_absent(self, event_schema, minimal_event):
        record = event_schema.map_and_validate(minimal_event)
        assert 'end_date' not in record
        assert 'registration_deadline' not in record

    @pytest.mark.parametrize('field_name', ['title', 'description', 'club_id', 'created_by', 'event_date', 'location'])
    def test_each_required_field(self, event_schema, minimal_event, field_name):
        minimal_event[field_name] = ''
        errors = event_schema.is_valid(minimal_event)
        assert errors == {field_name: f"Field '{field_name}' is required"}

    def test_field_errors_skip_business_rules(self, event_schema, minimal_event, fixed_now):
        minimal_event['event_date'] = (fixed_now - timedelta(days=1)).isoformat()
        minimal_event['title'] = None
        errors = event_schema.is_valid(minimal_event)
        assert list(errors) == ['title']

    def test_epoch_milliseconds_are_accepted(self, event_schema, minimal_event, fixed_now):
        start = fixed_now + timedelta(days=2)
        minimal_event['event_date'] = int(start.timestamp() * 1000)
        record = event_schema.map_and_validate(minimal_event)
        assert record['event_date'] == start

    def test_collection_item_errors_use_indexed_paths(self, event_schema, minimal_event):
        minimal_event['registered_users'] = [str(ObjectId()), 'nope', 'nada']
        errors = event_schema.is_valid(minimal_event)
        assert set(errors) == {'registered_users.1', 'registered_users.2'}

    def test_out_of_range_date_is_field_error(self, event_schema, minimal_event):
        minimal_event['end_date'] = '0001-01-01T00:00:00+01:00'
        errors = event_schema.is_valid(minimal_event)
        assert errors == {
            'end_date': "Timestamp for field 'end_date' is out of range: 0001-01-01T00:00:00+01:00"
        }

    def test_huge_exponent_capacity_is_field_error(self, event_schema, minimal_event):
        minimal_event['venue_capacity'] = '1e1000000'
        errors = event_schema.is_valid(minimal_event)
        assert errors == {'venue_capacity': "Integer for field 'venue_capacity' is out of range"}

    def test_empty_tags_are_dropped_silently(self, event_schema, minimal_event):
        minimal_event['tags'] = ['a', '', 'b', ' ', 'c']
        record = event_schema.map_and_validate(minimal_event)
        assert record['tags'] == ['a', 'b', 'c']


@pytest.mark.unit
class TestEventBusinessRules:

    def test_end_before_start_is_single_end_date_error(self, event_schema, minimal_event, fixed_now):
        minimal_event['end_date'] = fixed_now.isoformat()
        result = event_schema.validate_for_create(minimal_event)

        assert not result.is_valid
        assert list(result.errors) == ['end_date']
        assert isinstance(result.errors.error_for('end_date'), BusinessRuleError)
        assert result.errors['end_date'] == 'End date must be after the event start date'

    def test_past_start_is_single_event_date_error(self, event_schema, minimal_event, fixed_now):
        minimal_event['event_date'] = (fixed_now - timedelta(hours=1)).isoformat()
        result = event_schema.validate_for_create(minimal_event)

        assert list(result.errors) == ['event_date']
        assert isinstance(result.errors.error_for('event_date'), BusinessRuleError)
        assert result.errors['event_date'] == 'Event date must be in the future'

    def test_start_equal_to_now_is_rejected(self, event_schema, minimal_event, fixed_now):
        minimal_event['event_date'] = fixed_now.isoformat()
        assert list(event_schema.is_valid(minimal_event)) == ['event_date']

    def test_end_equal_to_start_is_rejected(self, event_schema, minimal_event):
        minimal_event['end_date'] = minimal_event['event_date']
        assert list(event_schema.is_valid(minimal_event)) == ['end_date']

    def test_deadline_must_precede_start(self, event_schema, minimal_event, fixed_now):
        minimal_event['registration_deadline'] = (fixed_now + timedelta(hours=2)).isoformat()
        errors = event_schema.is_valid(minimal_event)
        assert errors == {'registration_deadline': 'Registration deadline must be before the event date'}

    def test_attendees_cannot_exceed_capacity(self, event_schema, minimal_event):
        minimal_event.update({'venue_capacity': 100, 'max_attendees': 101})
        errors = event_schema.is_valid(minimal_event)
        assert errors == {'max_attendees': 'Maximum attendees (101) cannot exceed venue capacity (100)'}

    @pytest.mark.parametrize('capacity, attendees', [(0, 500), (500, 0), (100, 100)])
    def test_capacity_rule_ignores_unspecified_values(self, event_schema, minimal_event, capacity, attendees):
        minimal_event.update({'venue_capacity': capacity, 'max_attendees': attendees})
        assert event_schema.is_valid(minimal_event) == {}

    def test_all_rule_failures_are_reported(self, event_schema, minimal_event, fixed_now):
        minimal_event.update({
            'event_date': (fixed_now - timedelta(days=1)).isoformat(),
            'end_date': (fixed_now - timedelta(days=2)).isoformat(),
            'venue_capacity': 10,
            'max_attendees': 20,
        })
        assert set(event_schema.is_valid(minimal_event)) == {'event_date', 'end_date', 'max_attendees'}


@pytest.mark.unit
class TestEventUpdate:

    def test_single_field_update(self, event_schema, fixed_now):
        record = event_schema.map_for_update({'description': 'A brand new description.'})
        assert record == {'description': 'A brand new description.', UPDATED_AT: fixed_now}

    def test_unknown_key_only_update_succeeds(self, event_schema, fixed_now):
        result = event_schema.validate_for_update({'bogus': 'x'})
        assert result.is_valid
        assert result.record == {UPDATED_AT: fixed_now}

    def test_explicit_null_clears_nullable_field(self, event_schema):
        record = event_schema.map_for_update({'end_date': None, 'registration_deadline': None})
        assert record['end_date'] is None
        assert record['registration_deadline'] is None

    def test_immutable_fields_never_appear(self, event_schema):
        record = event_schema.map_for_update({
            'club_id': str(ObjectId()),
            'created_by': str(ObjectId()),
            'current_registrations': 99,
            'registered_users': [str(ObjectId())],
            'featured': 'true',
        })
        assert set(record) == {'featured', UPDATED_AT}

    def test_unrelated_update_does_not_run_temporal_rules(self, event_schema, fixed_now):
        existing = {'event_date': fixed_now - timedelta(days=30)}
        record = event_schema.map_for_update({'title': 'Renamed event'}, existing=existing)
        assert record['title'] == 'Renamed event'

    def test_rules_see_changes_over_existing_record(self, event_schema, fixed_now):
        existing = {'event_date': fixed_now + timedelta(days=3)}
        errors = event_schema.is_valid_update(
            {'end_date': (fixed_now + timedelta(days=1)).isoformat()}, existing=existing
        )
        assert errors == {'end_date': 'End date must be after the event start date'}

    def test_naive_stored_datetimes_are_treated_as_utc(self, event_schema, fixed_now):
        naive_start = (fixed_now + timedelta(days=3)).replace(tzinfo=None)
        errors = event_schema.is_valid_update(
            {'end_date': (fixed_now + timedelta(days=4)).isoformat()},
            existing={'event_date': naive_start},
        )
        assert errors == {}

    def test_capacity_change_checks_stored_attendee_limit(self, event_schema):
        errors = event_schema.is_valid_update({'venue_capacity': 50}, existing={'max_attendees': 80})
        assert list(errors) == ['max_attendees']

    def test_update_moving_event_into_past_fails(self, event_schema, fixed_now):
        with pytest.raises(SchemaValidationError) as exc_info:
            event_schema.map_for_update({'event_date': (fixed_now - timedelta(minutes=1)).isoformat()})
        assert exc_info.value.mode == 'update'
        assert list(exc_info.value.get_errors()) == ['event_date']


@pytest.mark.unit
class TestEventFacade:

    def test_raising_and_plain_entry_points_agree(self, event_schema, minimal_event):
        minimal_event.update({'title': 'x', 'venue_capacity': 'many'})

        with pytest.raises(SchemaValidationError) as exc_info:
            event_schema.map_and_validate(minimal_event)

        assert exc_info.value.get_errors() == event_schema.is_valid(minimal_event)
        assert exc_info.value.get_errors() == event_schema.validate_for_create(minimal_event).error_dict()
        assert exc_info.value.http_status_code == 422
        assert exc_info.value.entity == 'event'

    def test_is_valid_returns_empty_mapping_for_valid_input(self, event_schema, event_payload):
        assert event_schema.is_valid(event_payload) == {}

    def test_field_definitions_follow_declaration_order(self, event_schema):
        definitions = event_schema.get_field_definitions()
        assert list(definitions) == [spec.name for spec in EVENT_FIELDS]
        assert definitions['status']['kind'] == 'string'
        assert definitions['status']['allowed'] == ['draft', 'published', 'cancelled', 'completed']
        assert definitions['club_id']['required'] is True

    def test_default_clock_is_wall_clock(self, minimal_event, settings):
        from clubhub.schemas import EventSchema

        before = datetime.now(timezone.utc) - timedelta(seconds=1)
        minimal_event['event_date'] = (before + timedelta(days=1)).isoformat()
        record = EventSchema.with_overrides(settings=settings).map_and_validate(minimal_event)
        assert record[CREATED_AT] >= before
