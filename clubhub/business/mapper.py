"""
Record Mapper

Walks an entity's field table over one raw input map and runs the type
coercion dispatcher for every value that takes part in the mutation. Two
modes apply different required/default/nullable policies:

Create mode (``map_for_create``) visits every FieldSpec in declaration order:
    1. required and missing      -> FieldRequiredError, field skipped
    2. missing and nullable      -> field omitted
    3. missing otherwise         -> default substituted, then coerced
    4. present                   -> coerced

Update mode (``map_for_update``) visits only the keys present in the input:
    - unknown keys               -> ignored or rejected per policy
    - update-immutable fields    -> silently skipped
    - None on a nullable field   -> None (explicit clear)
    - None or "" otherwise       -> skipped, the stored value stays unchanged
    - present                    -> coerced, never defaulted

A value is "missing" when it is absent, None or the empty string. Each mode
returns the partially built record together with an ErrorMap; the caller
discards the record whenever the ErrorMap is non-empty.
"""

import copy
from collections.abc import Mapping
from typing import Any, Dict, FrozenSet, Iterable, Tuple

import structlog

from .coercion import coerce_value
from .exceptions import FieldRequiredError, FieldTypeError, FieldValidationError, UnknownFieldError
from .models import EmptyItemPolicy, ErrorMap, FieldSpec, UnknownFieldPolicy

logger = structlog.get_logger("business.mapper")

SCHEMA_ERROR_KEY = '_schema'


def is_missing(value: Any) -> bool:
    """Absent, None and the empty string all count as "not provided"."""
    return value is None or (isinstance(value, str) and value == '')


class RecordMapper:
    """
    Orchestrates the coercion dispatcher across a whole input record.

    Args:
        fields: Field specifications in declaration order
        immutable_fields: Fields silently skipped in update mode
        empty_item_policy: Treatment of empty collection elements
        unknown_field_policy: Treatment of input keys absent from the schema

    Example:
        mapper = RecordMapper(EVENT_FIELDS, immutable_fields={'club_id'})
        record, errors = mapper.map_for_create(payload)
        if errors:
            ...
    """

    def __init__(
        self,
        fields: Iterable[FieldSpec],
        immutable_fields: Iterable[str] = (),
        empty_item_policy: EmptyItemPolicy = EmptyItemPolicy.DROP,
        unknown_field_policy: UnknownFieldPolicy = UnknownFieldPolicy.IGNORE,
    ) -> None:
        self.fields: Tuple[FieldSpec, ...] = tuple(fields)
        self.definitions: Dict[str, FieldSpec] = {spec.name: spec for spec in self.fields}
        self.immutable_fields: FrozenSet[str] = frozenset(immutable_fields)
        self.empty_item_policy = empty_item_policy
        self.unknown_field_policy = unknown_field_policy

    def _coerce_into(self, record: Dict[str, Any], errors: ErrorMap, spec: FieldSpec, value: Any) -> None:
        try:
            record[spec.name] = coerce_value(value, spec, self.empty_item_policy)
        except FieldValidationError as error:
            errors.add(error)

    def _check_input(self, data: Any, errors: ErrorMap) -> bool:
        if isinstance(data, Mapping):
            return True
        errors.add(FieldTypeError(SCHEMA_ERROR_KEY, "Input must be an object"))
        return False

    def _reject_unknown(self, data: Mapping, errors: ErrorMap) -> None:
        if self.unknown_field_policy != UnknownFieldPolicy.REJECT:
            return
        for key in data:
            if key not in self.definitions:
                errors.add(UnknownFieldError(str(key)))

    def map_for_create(self, data: Any) -> Tuple[Dict[str, Any], ErrorMap]:
        """
        Build a complete record from raw input, applying defaults.

        Args:
            data: Raw input map

        Returns:
            Tuple of (typed record, ErrorMap); the record is only meaningful
            when the ErrorMap is empty
        """
        record: Dict[str, Any] = {}
        errors = ErrorMap()

        if not self._check_input(data, errors):
            return record, errors

        for spec in self.fields:
            value = data.get(spec.name)

            if is_missing(value):
                if spec.required:
                    errors.add(FieldRequiredError(spec.name))
                    continue
                if spec.nullable:
                    continue
                value = copy.deepcopy(spec.default)
                if value is None:
                    continue

            self._coerce_into(record, errors, spec, value)

        self._reject_unknown(data, errors)

        logger.debug("Create mapping finished",
                     field_count=len(record),
                     error_count=len(errors))
        return record, errors

    def map_for_update(self, data: Any) -> Tuple[Dict[str, Any], ErrorMap]:
        """
        Build a partial record holding only the fields the input changes.

        Args:
            data: Raw input map

        Returns:
            Tuple of (partial typed record, ErrorMap)
        """
        record: Dict[str, Any] = {}
        errors = ErrorMap()

        if not self._check_input(data, errors):
            return record, errors

        for field_name, value in data.items():
            spec = self.definitions.get(field_name)
            if spec is None:
                continue

            if field_name in self.immutable_fields:
                continue

            if value is None and spec.nullable:
                record[field_name] = None
                continue

            if is_missing(value):
                continue

            self._coerce_into(record, errors, spec, value)

        self._reject_unknown(data, errors)

        logger.debug("Update mapping finished",
                     field_count=len(record),
                     error_count=len(errors))
        return record, errors
