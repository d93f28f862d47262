"""
Type Coercion Dispatcher

Converts one raw, loosely-typed value against one FieldSpec into the typed
value the field demands, or raises a field-scoped error. A single dispatch
table keyed on FieldKind selects the routine; every routine either returns a
complete value or raises, never a best-effort partial value.

Typed forms produced per kind:

    identifier          bson.ObjectId
    email               normalized address string (email-validator)
    timestamp           UTC-aware datetime at millisecond precision
    integer / float     int / float within inclusive bounds
    boolean             bool (lenient, never raises)
    string              trimmed string within length and enumeration bounds
    string_array        list of trimmed, non-empty strings
    identifier_array    list of ObjectId
    object              plain dict

Bounds, length and enumeration checks reuse marshmallow's validators so the
same constraint vocabulary is shared with the rest of the validation layer.
"""

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, List

import structlog
from bson import ObjectId
from email_validator import EmailNotValidError, validate_email
from marshmallow import ValidationError as MarshmallowValidationError
from marshmallow import validate

from .exceptions import (
    ArrayCoercionError,
    FieldArrayItemError,
    FieldConstraintError,
    FieldTypeError,
)
from .models import EmptyItemPolicy, FieldKind, FieldSpec
from .utils import from_epoch_milliseconds, normalize_boolean, parse_date, to_millisecond_precision

logger = structlog.get_logger("business.coercion")

NUMERIC_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')

# Integers are stored as BSON int64
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1
MAX_INTEGER_DIGITS = 19

Coercer = Callable[[Any, FieldSpec, EmptyItemPolicy], Any]


# ============================================================================
# CONSTRAINT HELPERS
# ============================================================================

def _enforce(validator: validate.Validator, value: Any, spec: FieldSpec) -> None:
    """Run a marshmallow validator and re-raise its failure as a constraint error."""
    try:
        validator(value)
    except MarshmallowValidationError as error:
        messages = error.messages if isinstance(error.messages, list) else [str(error.messages)]
        raise FieldConstraintError(spec.name, str(messages[0])) from error


def _enforce_range(value: Any, spec: FieldSpec) -> None:
    if spec.minimum is not None:
        _enforce(validate.Range(
            min=spec.minimum,
            error=f"Value for field '{spec.name}' must be at least {{min}}",
        ), value, spec)
    if spec.maximum is not None:
        _enforce(validate.Range(
            max=spec.maximum,
            error=f"Value for field '{spec.name}' must be at most {{max}}",
        ), value, spec)


def _enforce_length(value: str, spec: FieldSpec, label: str = "Value") -> None:
    if spec.min_length is not None:
        _enforce(validate.Length(
            min=spec.min_length,
            error=f"{label} for field '{spec.name}' must be at least {{min}} characters",
        ), value, spec)
    if spec.max_length is not None:
        _enforce(validate.Length(
            max=spec.max_length,
            error=f"{label} for field '{spec.name}' must be at most {{max}} characters",
        ), value, spec)


def _is_numeric_text(value: str) -> bool:
    return bool(NUMERIC_PATTERN.match(value))


# ============================================================================
# SCALAR COERCERS
# ============================================================================

def coerce_identifier(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value.strip()):
        return ObjectId(value.strip())
    raise FieldTypeError(spec.name, f"Invalid ObjectId format for field '{spec.name}': {value}")


def coerce_email(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> str:
    if not isinstance(value, str):
        raise FieldTypeError(spec.name, f"Invalid email format for field '{spec.name}': {value}")

    candidate = value.strip()
    try:
        address = validate_email(candidate, check_deliverability=False).normalized
    except EmailNotValidError as error:
        raise FieldTypeError(
            spec.name, f"Invalid email format for field '{spec.name}': {candidate}"
        ) from error

    if spec.max_length is not None:
        _enforce(validate.Length(
            max=spec.max_length,
            error=f"Email for field '{spec.name}' must be at most {{max}} characters",
        ), address, spec)

    if spec.domain_suffix and not address.lower().endswith('@' + spec.domain_suffix):
        raise FieldConstraintError(
            spec.name,
            f"Email for field '{spec.name}' must be an address ending with @{spec.domain_suffix}",
        )

    return address


def coerce_timestamp(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> datetime:
    """
    Accepts a date string, an integer epoch in milliseconds, or a datetime.

    All three forms normalize to the same UTC millisecond representation, so
    ``"2026-01-01T00:00:00.250Z"`` and ``1767225600250`` coerce to equal values.
    """
    try:
        if isinstance(value, datetime):
            return to_millisecond_precision(value)

        if isinstance(value, date):
            return to_millisecond_precision(datetime.combine(value, time.min))

        if isinstance(value, int) and not isinstance(value, bool):
            return from_epoch_milliseconds(value)

        if isinstance(value, str):
            try:
                return parse_date(value)
            except ValueError as error:
                raise FieldTypeError(
                    spec.name, f"Invalid date format for field '{spec.name}': {value}"
                ) from error
    except OverflowError as error:
        raise FieldTypeError(
            spec.name, f"Timestamp for field '{spec.name}' is out of range: {value}"
        ) from error

    raise FieldTypeError(
        spec.name, f"Invalid date type for field '{spec.name}', expected string or timestamp"
    )


def _integer_out_of_range(spec: FieldSpec) -> FieldTypeError:
    return FieldTypeError(spec.name, f"Integer for field '{spec.name}' is out of range")


def _integral(number: Decimal, raw: Any, spec: FieldSpec) -> int:
    """Exact int for an integral Decimal, checked by exponent before it is expanded."""
    if not number.is_finite():
        raise FieldTypeError(spec.name, f"Invalid integer for field '{spec.name}': {raw}")
    if not number:
        return 0
    if number.adjusted() >= MAX_INTEGER_DIGITS:
        raise _integer_out_of_range(spec)
    if number != number.to_integral_value():
        raise FieldTypeError(spec.name, f"Invalid integer for field '{spec.name}': {raw}")
    return int(number)


def coerce_integer(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> int:
    if isinstance(value, bool):
        raise FieldTypeError(spec.name, f"Invalid integer for field '{spec.name}': {value}")

    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise FieldTypeError(spec.name, f"Invalid integer for field '{spec.name}': {value}")
        number = _integral(Decimal(value), value, spec)
    elif isinstance(value, Decimal):
        number = _integral(value, value, spec)
    elif isinstance(value, str) and _is_numeric_text(value.strip()):
        number = _integral(Decimal(value.strip()), value, spec)
    else:
        raise FieldTypeError(spec.name, f"Invalid integer for field '{spec.name}': {value}")

    if not INT64_MIN <= number <= INT64_MAX:
        raise _integer_out_of_range(spec)

    _enforce_range(number, spec)
    return number


def coerce_float(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> float:
    invalid = FieldTypeError(spec.name, f"Invalid float for field '{spec.name}': {value}")

    if isinstance(value, bool):
        raise invalid

    if isinstance(value, Decimal) and value.is_snan():
        raise invalid

    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except OverflowError as error:
            raise FieldTypeError(
                spec.name, f"Float for field '{spec.name}' is out of range"
            ) from error
    elif isinstance(value, str) and _is_numeric_text(value.strip()):
        number = float(value.strip())
    else:
        raise invalid

    if not math.isfinite(number):
        raise invalid

    _enforce_range(number, spec)
    return number


def coerce_boolean(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> bool:
    return normalize_boolean(value)


def coerce_string(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        raise FieldTypeError(spec.name, f"Invalid string for field '{spec.name}': expected text")

    if isinstance(value, float) and not math.isfinite(value):
        raise FieldTypeError(spec.name, f"Invalid string for field '{spec.name}': expected text")

    if isinstance(value, Decimal) and not value.is_finite():
        raise FieldTypeError(spec.name, f"Invalid string for field '{spec.name}': expected text")

    text = str(value).strip()

    if spec.allowed is not None:
        _enforce(validate.OneOf(
            spec.allowed,
            error=f"Invalid value for field '{spec.name}'. Allowed values: {{choices}}",
        ), text, spec)

    _enforce_length(text, spec)
    return text


def coerce_object(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise FieldTypeError(spec.name, f"Invalid object for field '{spec.name}': expected object")
    return dict(value)


# ============================================================================
# COLLECTION COERCERS
# ============================================================================

def _string_item(item: Any, spec: FieldSpec, index: int) -> str:
    if not isinstance(item, str):
        raise FieldArrayItemError(
            spec.name, index,
            f"All items in '{spec.name}' must be strings, found {type(item).__name__} at index {index}",
        )
    if spec.item_max_length is not None and len(item) > spec.item_max_length:
        raise FieldArrayItemError(
            spec.name, index,
            f"Items in '{spec.name}' must be {spec.item_max_length} characters or less",
        )
    return item


def _identifier_item(item: Any, spec: FieldSpec, index: int) -> ObjectId:
    if isinstance(item, ObjectId):
        return item
    if isinstance(item, str) and ObjectId.is_valid(item):
        return ObjectId(item)
    raise FieldArrayItemError(
        spec.name, index, f"Invalid ObjectId format in '{spec.name}' at index {index}"
    )


def _coerce_sequence(
    value: Any,
    spec: FieldSpec,
    policy: EmptyItemPolicy,
    coerce_item: Callable[[Any, FieldSpec, int], Any],
) -> List[Any]:
    """
    Coerce each element independently and collect every item failure.

    String elements are trimmed first; elements that end up empty are dropped
    or reported depending on the empty item policy. The item count limit is
    checked on what remains.
    """
    if not isinstance(value, (list, tuple)):
        raise FieldTypeError(spec.name, f"Invalid array for field '{spec.name}', expected array")

    items: List[Any] = []
    item_errors: List[FieldArrayItemError] = []
    dropped = 0

    for index, item in enumerate(value):
        if isinstance(item, str):
            item = item.strip()
            if not item:
                if policy == EmptyItemPolicy.REJECT:
                    item_errors.append(FieldArrayItemError(
                        spec.name, index, f"Empty item in '{spec.name}' at index {index}"
                    ))
                else:
                    dropped += 1
                continue
        try:
            items.append(coerce_item(item, spec, index))
        except FieldArrayItemError as error:
            item_errors.append(error)

    if dropped:
        logger.debug("Dropped empty collection items", field=spec.name, dropped=dropped)

    if item_errors:
        raise ArrayCoercionError(spec.name, item_errors)

    if spec.max_items is not None:
        _enforce(validate.Length(
            max=spec.max_items,
            error=f"'{spec.name}' can have at most {{max}} items",
        ), items, spec)

    return items


def coerce_string_array(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> List[str]:
    return _coerce_sequence(value, spec, policy, _string_item)


def coerce_identifier_array(value: Any, spec: FieldSpec, policy: EmptyItemPolicy) -> List[ObjectId]:
    return _coerce_sequence(value, spec, policy, _identifier_item)


# ============================================================================
# DISPATCH
# ============================================================================

COERCERS: Dict[FieldKind, Coercer] = {
    FieldKind.IDENTIFIER: coerce_identifier,
    FieldKind.EMAIL: coerce_email,
    FieldKind.TIMESTAMP: coerce_timestamp,
    FieldKind.INTEGER: coerce_integer,
    FieldKind.FLOAT: coerce_float,
    FieldKind.BOOLEAN: coerce_boolean,
    FieldKind.STRING: coerce_string,
    FieldKind.STRING_ARRAY: coerce_string_array,
    FieldKind.IDENTIFIER_ARRAY: coerce_identifier_array,
    FieldKind.OBJECT: coerce_object,
}


def coerce_value(value: Any, spec: FieldSpec, policy: EmptyItemPolicy = EmptyItemPolicy.DROP) -> Any:
    """
    Coerce one raw value against one field specification.

    Args:
        value: Raw input value, never None (the record mapper handles absence)
        spec: Field specification selecting the routine and its constraints
        policy: Treatment of empty collection elements

    Returns:
        The typed value

    Raises:
        FieldTypeError: The value cannot be converted to the field's kind
        FieldConstraintError: The converted value violates a bound
        ArrayCoercionError: One or more collection elements failed

    Example:
        spec = FieldSpec(name='tags', kind=FieldKind.STRING_ARRAY, max_items=10)
        coerce_value([' music ', '', 'jazz'], spec)  # ['music', 'jazz']
    """
    return COERCERS[spec.kind](value, spec, policy)
