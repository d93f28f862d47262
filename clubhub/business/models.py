"""
Validation Data Models

Declarative building blocks shared by every entity schema:

- FieldKind: discriminator for the type coercion dispatcher
- FieldSpec: immutable pydantic description of one field's type and constraints
- EmptyItemPolicy / UnknownFieldPolicy: configurable leniency modes
- MutationMode: create or update
- ErrorMap: ordered, field-path keyed collection of validation messages
- ValidationResult: a typed record or an ErrorMap, never both

FieldSpecs are built once at import time by the modules under
``clubhub.schemas`` and are never mutated afterwards, so they can be read
from any number of threads without locking.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import FieldValidationError


class FieldKind(str, Enum):
    """Supported field kinds, one coercion routine per kind."""
    IDENTIFIER = "identifier"
    EMAIL = "email"
    TIMESTAMP = "timestamp"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    STRING_ARRAY = "string_array"
    IDENTIFIER_ARRAY = "identifier_array"
    OBJECT = "object"


class EmptyItemPolicy(str, Enum):
    """What to do with collection elements that are empty after trimming."""
    DROP = "drop"
    REJECT = "reject"


class UnknownFieldPolicy(str, Enum):
    """What to do with input keys the entity schema does not declare."""
    IGNORE = "ignore"
    REJECT = "reject"


class MutationMode(str, Enum):
    """Record mapper mode."""
    CREATE = "create"
    UPDATE = "update"


class FieldSpec(BaseModel):
    """
    Declarative description of one entity field.

    Attributes:
        name: Field name, also the ErrorMap key for field-level failures
        kind: Coercion routine selector
        required: Missing or empty input is an error in create mode
        nullable: Missing input is omitted in create mode; explicit None
            clears the field in update mode
        default: Value substituted in create mode when input is missing and
            the field is neither required nor nullable
        min_length / max_length: Character bounds for strings and emails
        minimum / maximum: Inclusive numeric bounds
        max_items: Maximum collection size, checked after empty items are dropped
        item_max_length: Character bound for each string collection element
        allowed: Enumeration of accepted string values
        domain_suffix: Required e-mail domain (without the ``@``)

    Example:
        FieldSpec(name='year_of_study', kind=FieldKind.INTEGER,
                  default=1, minimum=1, maximum=6)
    """

    model_config = ConfigDict(frozen=True, extra='forbid', use_enum_values=False)

    name: str = Field(..., min_length=1)
    kind: FieldKind
    required: bool = False
    nullable: bool = False
    default: Any = None

    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    max_items: Optional[int] = Field(default=None, ge=0)
    item_max_length: Optional[int] = Field(default=200, ge=1)
    allowed: Optional[Tuple[str, ...]] = None
    domain_suffix: Optional[str] = None

    @field_validator('domain_suffix')
    @classmethod
    def _strip_domain_marker(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip().lstrip('@').lower() or None


class ErrorMap(Mapping):
    """
    Ordered, field-path keyed collection of validation messages.

    The first error recorded for a path wins; later errors for the same path
    are kept in ``history`` but do not replace the reported message. An empty
    ErrorMap means "no failures"; the result objects expose ``None`` instead of
    an empty map on success.

    Example:
        errors = ErrorMap()
        errors.add(FieldRequiredError('title'))
        errors.to_dict()  # {'title': "Field 'title' is required"}
    """

    def __init__(self, errors: Optional[List[FieldValidationError]] = None) -> None:
        self._errors: Dict[str, FieldValidationError] = {}
        self.history: List[FieldValidationError] = []
        for error in errors or []:
            self.add(error)

    def add(self, error: FieldValidationError) -> None:
        """Record an error, expanding grouped collection failures."""
        for item in error.expand():
            self.history.append(item)
            self._errors.setdefault(item.path, item)

    def errors(self) -> List[FieldValidationError]:
        """Reported error objects in insertion order."""
        return list(self._errors.values())

    def error_for(self, path: str) -> Optional[FieldValidationError]:
        return self._errors.get(path)

    def to_dict(self) -> Dict[str, str]:
        return {path: error.message for path, error in self._errors.items()}

    def __getitem__(self, path: str) -> str:
        return self._errors[path].message

    def __iter__(self) -> Iterator[str]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __repr__(self) -> str:
        return f"ErrorMap({self.to_dict()!r})"


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of one validation call: a typed record xor an ErrorMap.

    Attributes:
        record: Typed record on success, otherwise None
        errors: Non-empty ErrorMap on failure, otherwise None
    """

    record: Optional[Dict[str, Any]] = None
    errors: Optional[ErrorMap] = None

    @classmethod
    def success(cls, record: Dict[str, Any]) -> "ValidationResult":
        return cls(record=record, errors=None)

    @classmethod
    def failure(cls, errors: ErrorMap) -> "ValidationResult":
        return cls(record=None, errors=errors)

    @property
    def is_valid(self) -> bool:
        return self.errors is None

    def error_dict(self) -> Dict[str, str]:
        """Field-path keyed messages; empty when the result is valid."""
        return self.errors.to_dict() if self.errors is not None else {}
