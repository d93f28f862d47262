"""
clubhub - schema validation and type coercion for a student clubs and events backend.

Subpackages:
    business: Field specifications, coercion, record mapping, business rules,
        error taxonomy and the schema validation facade
    schemas: User, club, event and comment schemas
    config: Environment-driven validation settings
    monitoring: structlog configuration and Prometheus validation metrics

Usage:
    from clubhub.schemas import EventSchema

    event = EventSchema.map_and_validate(request.get_json())
"""

__version__ = "1.0.0"
