"""
Entity schemas for the clubhub backend.

Each module defines one entity's field table and business rules and exposes
a ready-to-use SchemaValidator:

    UserSchema, ClubSchema, EventSchema, CommentSchema

``get_schema_by_name`` looks a validator up by its entity name, which is how
generic request handlers pick the schema for a collection.
"""

from typing import Dict

from ..business.validators import SchemaValidator
from .club import ClubSchema
from .comment import CommentSchema
from .event import EventSchema
from .user import UserSchema

SCHEMA_REGISTRY: Dict[str, SchemaValidator] = {
    schema.name: schema
    for schema in (UserSchema, ClubSchema, EventSchema, CommentSchema)
}


def get_schema_by_name(name: str) -> SchemaValidator:
    """
    Return the validator registered for an entity name.

    Raises:
        KeyError: No entity is registered under ``name``
    """
    try:
        return SCHEMA_REGISTRY[name.lower()]
    except KeyError:
        raise KeyError(
            f"Unknown schema '{name}'. Available: {', '.join(sorted(SCHEMA_REGISTRY))}"
        ) from None


__all__ = [
    'ClubSchema',
    'CommentSchema',
    'EventSchema',
    'SCHEMA_REGISTRY',
    'UserSchema',
    'get_schema_by_name',
]
