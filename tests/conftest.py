"""
Global pytest Configuration and Fixtures

Shared fixtures for the validation engine test suite:

- A fixed clock so temporal business rules and timestamp stamping are
  deterministic
- Default ValidationSettings built in code, independent of the environment
- Schema validators bound to the fixed clock and default settings
- Well-formed payloads for every entity, which individual tests mutate
- A minimal Flask application with the business exception handlers registered
"""

from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from flask import Flask

from clubhub.business.exceptions import create_flask_error_handlers
from clubhub.config.settings import ValidationSettings
from clubhub.schemas import ClubSchema, CommentSchema, EventSchema, UserSchema

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Unit tests with isolated component testing"
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests exercising the Flask error handler integration"
    )


# =============================================================================
# CLOCK AND SETTINGS
# =============================================================================

@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def settings():
    """Default settings, never read from the environment."""
    return ValidationSettings()


# =============================================================================
# SCHEMA VALIDATORS
# =============================================================================

@pytest.fixture
def event_schema(settings, clock):
    return EventSchema.with_overrides(settings=settings, clock=clock)


@pytest.fixture
def club_schema(settings, clock):
    return ClubSchema.with_overrides(settings=settings, clock=clock)


@pytest.fixture
def comment_schema(settings, clock):
    return CommentSchema.with_overrides(settings=settings, clock=clock)


@pytest.fixture
def user_schema(settings, clock):
    return UserSchema.with_overrides(settings=settings, clock=clock)


# =============================================================================
# PAYLOADS
# =============================================================================

@pytest.fixture
def event_payload(fixed_now):
    """Valid event creation payload with loosely-typed values."""
    return {
        'title': 'Spring Hackathon',
        'description': 'Twenty-four hours of building things with friends.',
        'club_id': str(ObjectId()),
        'created_by': str(ObjectId()),
        'event_date': (fixed_now + timedelta(days=7)).isoformat(),
        'end_date': (fixed_now + timedelta(days=8)).isoformat(),
        'location': 'Auditorium',
        'venue_capacity': '300',
        'registration_required': 'yes',
        'registration_deadline': (fixed_now + timedelta(days=5)).isoformat(),
        'registration_fee': '150.50',
        'max_attendees': 250,
        'tags': ['tech', ' coding '],
    }


@pytest.fixture
def club_payload():
    return {
        'name': 'Robotics & AI Society',
        'description': 'We build robots and study machine learning together every week.',
        'category': 'Technology',
        'contact_email': 'robotics@usiu.ac.ke',
        'leader_id': str(ObjectId()),
    }


@pytest.fixture
def comment_payload():
    return {
        'event_id': str(ObjectId()),
        'user_id': str(ObjectId()),
        'content': 'Looking forward to this one!',
    }


@pytest.fixture
def user_payload():
    return {
        'student_id': 'USIU2023001',
        'first_name': 'Amina',
        'last_name': 'Otieno',
        'email': 'amina.otieno@usiu.ac.ke',
        'password': 'correct-horse-battery',
        'phone': '+254 712 345 678',
        'year_of_study': '2',
    }


# =============================================================================
# FLASK
# =============================================================================

@pytest.fixture
def app():
    """Minimal Flask application with business exception handlers."""
    flask_app = Flask(__name__)
    flask_app.config['TESTING'] = True
    create_flask_error_handlers(flask_app)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
