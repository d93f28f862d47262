"""
Business validation package.

Package Components:
    Validation Data Models (models.py):
        FieldKind, FieldSpec, ErrorMap, ValidationResult and the leniency policies

    Exception Taxonomy (exceptions.py):
        Field-scoped validation errors and the SchemaValidationError business
        exception with Flask error handler registration

    Type Coercion (coercion.py):
        One coercion routine per FieldKind behind a single dispatch table

    Record Mapping (mapper.py):
        Create-mode and update-mode walks over an entity's field table

    Business Rules (rules.py):
        Cross-field rules with declared field dependencies

    Schema Validation Facade (validators.py):
        EntitySchema and SchemaValidator; imported from the module directly
        because it depends on clubhub.config

Usage Examples:
    from clubhub.business import FieldKind, FieldSpec, coerce_value

    spec = FieldSpec(name='year_of_study', kind=FieldKind.INTEGER, minimum=1, maximum=6)
    coerce_value(" 3 ", spec)  # 3
"""

from .coercion import COERCERS, coerce_value
from .exceptions import (
    ArrayCoercionError,
    BaseBusinessException,
    BusinessRuleError,
    ErrorCategory,
    ErrorSeverity,
    FieldArrayItemError,
    FieldConstraintError,
    FieldRequiredError,
    FieldTypeError,
    FieldValidationError,
    SchemaValidationError,
    UnknownFieldError,
    create_flask_error_handlers,
)
from .mapper import RecordMapper, is_missing
from .models import (
    EmptyItemPolicy,
    ErrorMap,
    FieldKind,
    FieldSpec,
    MutationMode,
    UnknownFieldPolicy,
    ValidationResult,
)
from .rules import BusinessRule, BusinessRuleEngine, RuleContext

__all__ = [
    # Models
    'EmptyItemPolicy',
    'ErrorMap',
    'FieldKind',
    'FieldSpec',
    'MutationMode',
    'UnknownFieldPolicy',
    'ValidationResult',

    # Exceptions
    'ArrayCoercionError',
    'BaseBusinessException',
    'BusinessRuleError',
    'ErrorCategory',
    'ErrorSeverity',
    'FieldArrayItemError',
    'FieldConstraintError',
    'FieldRequiredError',
    'FieldTypeError',
    'FieldValidationError',
    'SchemaValidationError',
    'UnknownFieldError',
    'create_flask_error_handlers',

    # Engine
    'COERCERS',
    'BusinessRule',
    'BusinessRuleEngine',
    'RecordMapper',
    'RuleContext',
    'coerce_value',
    'is_missing',
]
