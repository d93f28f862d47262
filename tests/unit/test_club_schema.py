"""
Club schema tests: content screening rules and club helper functions.
"""

import dataclasses

import pytest
from bson import ObjectId

from clubhub.schemas.club import (
    CLUB_CATEGORIES,
    get_categories,
    sanitize_for_public,
    validate_category,
    validate_leadership_transfer,
)


@pytest.mark.unit
class TestClubCreation:

    def test_valid_club(self, club_schema, club_payload, fixed_now):
        record = club_schema.map_and_validate(club_payload)

        assert record['name'] == 'Robotics & AI Society'
        assert isinstance(record['leader_id'], ObjectId)
        assert record['members_count'] == 0
        assert record['status'] == 'active'
        assert record['logo'] == ''
        assert record['created_at'] == fixed_now

    def test_unknown_category(self, club_schema, club_payload):
        club_payload['category'] = 'Gaming'
        errors = club_schema.is_valid(club_payload)
        assert errors['category'].startswith("Invalid value for field 'category'. Allowed values: Arts & Culture")

    def test_members_count_is_bounded(self, club_schema, club_payload):
        club_payload['members_count'] = 10001
        assert club_schema.is_valid(club_payload) == {
            'members_count': "Value for field 'members_count' must be at most 10000"
        }


@pytest.mark.unit
class TestClubNameRules:

    def test_disallowed_word(self, club_schema, club_payload):
        club_payload['name'] = 'Anti Scam League'
        assert club_schema.is_valid(club_payload) == {'name': 'Club name contains inappropriate content'}

    def test_invalid_characters(self, club_schema, club_payload):
        club_payload['name'] = 'Chess Club!'
        assert club_schema.is_valid(club_payload) == {
            'name': "Club name contains invalid characters. Only letters, numbers, spaces, &, -, and ' are allowed"
        }

    @pytest.mark.parametrize('name', ["Women's Rugby", 'Arts & Crafts', 'Model-UN 2026'])
    def test_allowed_punctuation(self, club_schema, club_payload, name):
        club_payload['name'] = name
        assert club_schema.is_valid(club_payload) == {}

    def test_reserved_word_ignores_case(self, club_schema, club_payload):
        club_payload['name'] = 'USIU Drama Club'
        assert club_schema.is_valid(club_payload) == {'name': 'Club name cannot contain reserved words'}

    def test_first_name_failure_is_reported(self, club_schema, club_payload):
        club_payload['name'] = 'Fake Admin Club!'
        assert club_schema.is_valid(club_payload) == {'name': 'Club name contains inappropriate content'}

    def test_configured_word_lists_are_used(self, club_schema, club_payload, settings):
        relaxed = club_schema.with_overrides(
            settings=dataclasses.replace(settings, club_reserved_words=('robotics',))
        )
        club_payload['name'] = 'USIU Robotics'
        assert relaxed.is_valid(club_payload) == {'name': 'Club name cannot contain reserved words'}
        club_payload['name'] = 'USIU Drama'
        assert relaxed.is_valid(club_payload) == {}


@pytest.mark.unit
class TestClubDescriptionRules:

    def test_excessive_repetition(self, club_schema, club_payload):
        club_payload['description'] = 'We love music' + '!' * 21
        assert club_schema.is_valid(club_payload) == {'description': 'Description contains excessive repetition'}

    def test_run_at_limit_is_allowed(self, club_schema, club_payload):
        club_payload['description'] = 'We love music' + '!' * 20
        assert club_schema.is_valid(club_payload) == {}

    def test_excessive_capitals(self, club_schema, club_payload):
        club_payload['description'] = 'THE BEST CLUB ON CAMPUS FOR EVERYONE WHO LOVES TO READ AND WRITE BOOKS'
        assert club_schema.is_valid(club_payload) == {
            'description': 'Description contains excessive capital letters'
        }

    def test_short_shouting_is_tolerated(self, club_schema, club_payload):
        club_payload['description'] = 'WE READ BOOKS TOGETHER'
        assert club_schema.is_valid(club_payload) == {}

    def test_disallowed_word(self, club_schema, club_payload):
        club_payload['description'] = 'A club that exposes every fraud on campus.'
        assert club_schema.is_valid(club_payload) == {'description': 'Description contains inappropriate content'}


@pytest.mark.unit
class TestClubContactEmail:

    def test_foreign_domain(self, club_schema, club_payload):
        club_payload['contact_email'] = 'robotics@gmail.com'
        assert club_schema.is_valid(club_payload) == {
            'contact_email': 'Contact email must be a valid USIU email address ending with @usiu.ac.ke'
        }

    def test_configured_domain(self, club_schema, club_payload, settings):
        other = club_schema.with_overrides(
            settings=dataclasses.replace(settings, official_email_domain='students.strathmore.edu')
        )
        club_payload['contact_email'] = 'robotics@students.strathmore.edu'
        assert other.is_valid(club_payload) == {}


@pytest.mark.unit
class TestClubUpdate:

    def test_leader_and_member_count_are_immutable(self, club_schema, fixed_now):
        record = club_schema.map_for_update({
            'leader_id': str(ObjectId()),
            'members_count': 5,
            'status': 'inactive',
        })
        assert record == {'status': 'inactive', 'updated_at': fixed_now}

    def test_name_rules_run_only_when_name_changes(self, club_schema):
        assert club_schema.is_valid_update({'logo': 'logo.png'}, existing={'name': 'Admin Club'}) == {}
        assert club_schema.is_valid_update({'name': 'Admin Club'}) == {
            'name': 'Club name cannot contain reserved words'
        }


@pytest.mark.unit
class TestClubHelpers:

    def test_categories(self):
        categories = get_categories()
        assert categories == list(CLUB_CATEGORIES)
        assert len(categories) == 10
        categories.append('Other')
        assert 'Other' not in get_categories()

    def test_validate_category(self):
        assert validate_category('Sports') == {}
        errors = validate_category('sports')
        assert errors['category'].startswith('Invalid category. Allowed: Arts & Culture, Academic')

    def test_leadership_transfer_requires_both_ids(self):
        assert validate_leadership_transfer({}) == {
            'new_leader_id': 'New leader ID is required',
            'current_leader_id': 'Current leader ID is required',
        }

    def test_leadership_transfer_to_same_leader(self):
        leader = ObjectId()
        assert validate_leadership_transfer({'new_leader_id': leader, 'current_leader_id': str(leader)}) == {
            'new_leader_id': 'New leader cannot be the same as current leader'
        }

    def test_valid_leadership_transfer(self):
        assert validate_leadership_transfer({
            'new_leader_id': str(ObjectId()),
            'current_leader_id': str(ObjectId()),
        }) == {}

    def test_sanitize_for_public(self):
        club = {
            '_id': ObjectId(),
            'name': 'Chess Club',
            'contact_email': 'chess@usiu.ac.ke',
            'leader_id': ObjectId(),
            'members_count': 12,
            'logo': None,
        }
        public = sanitize_for_public(club)
        assert set(public) == {'_id', 'name', 'members_count'}
