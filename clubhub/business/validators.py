"""
Entity Schema Validation Facade

Ties the record mapper, the business rule engine, entity finalizers and the
clock together into the public validation API of one entity type.

Classes:
    EntitySchema: Immutable description of one entity (fields, rules,
        update-immutable fields, finalizers)
    SchemaValidator: Validation entry points for one EntitySchema

Every entry point funnels into a single pipeline returning a
ValidationResult:

    raw input
      -> RecordMapper (create or update mode)      field errors abort here
      -> BusinessRuleEngine                        rule errors abort here
      -> finalizers (skipped by is_valid)
      -> created_at / updated_at stamping
      -> typed record

The raising entry points (``map_and_validate``, ``map_for_update``) wrap the
same result in SchemaValidationError, so the error mapping they carry is
identical to what the non-raising entry points return for the same input.

Example:
    from clubhub.schemas import EventSchema

    result = EventSchema.validate_for_create(payload)
    if not result.is_valid:
        return {'errors': result.error_dict()}, 422
    collection.insert_one(result.record)
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

import structlog

from ..config.settings import ValidationSettings, resolve_settings
from ..monitoring.metrics import validation_metrics
from .exceptions import SchemaValidationError
from .mapper import RecordMapper
from .models import FieldKind, FieldSpec, MutationMode, ValidationResult
from .rules import BusinessRule, BusinessRuleEngine, RuleContext
from .utils import to_millisecond_precision, utc_now

logger = structlog.get_logger("business.validators")

CREATED_AT = 'created_at'
UPDATED_AT = 'updated_at'

Finalizer = Callable[[Dict[str, Any]], None]
Clock = Callable[[], datetime]


@dataclass(frozen=True)
class EntitySchema:
    """
    Immutable description of one entity type.

    Attributes:
        name: Entity name used in logs, metrics and error context
        fields: FieldSpecs in declaration order
        rules: Cross-field business rules in evaluation order
        immutable_fields: Fields silently skipped in update mode
        official_domain_fields: E-mail fields bound to the configured
            official domain at validation time
        finalizers: Callables transforming a fully validated record in place
    """

    name: str
    fields: Tuple[FieldSpec, ...]
    rules: Tuple[BusinessRule, ...] = ()
    immutable_fields: FrozenSet[str] = frozenset()
    official_domain_fields: FrozenSet[str] = frozenset()
    finalizers: Tuple[Finalizer, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        names = [spec.name for spec in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field names in schema '{self.name}'")
        for name in self.official_domain_fields:
            if name not in names:
                raise ValueError(f"Unknown official domain field '{name}' in schema '{self.name}'")

    def fields_for(self, settings: ValidationSettings) -> Tuple[FieldSpec, ...]:
        """Field table with settings-dependent constraints filled in."""
        if not self.official_domain_fields:
            return self.fields
        return tuple(
            spec.model_copy(update={'domain_suffix': settings.official_email_domain})
            if spec.name in self.official_domain_fields and spec.kind == FieldKind.EMAIL
            else spec
            for spec in self.fields
        )


class SchemaValidator:
    """
    Validation entry points for one entity type.

    Args:
        schema: Entity description
        settings: Fixed settings; the process-wide settings are used when None
        clock: Callable returning the current UTC time; read once per call
    """

    def __init__(
        self,
        schema: EntitySchema,
        settings: Optional[ValidationSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self.schema = schema
        self._settings = settings
        self.clock = clock
        self.rule_engine = BusinessRuleEngine(schema.rules)
        self._mappers: Dict[ValidationSettings, RecordMapper] = {}

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def settings(self) -> ValidationSettings:
        return resolve_settings(self._settings)

    def with_overrides(
        self,
        settings: Optional[ValidationSettings] = None,
        clock: Optional[Clock] = None,
    ) -> "SchemaValidator":
        """Return a validator for the same schema with another settings object or clock."""
        return SchemaValidator(
            self.schema,
            settings=settings if settings is not None else self._settings,
            clock=clock if clock is not None else self.clock,
        )

    def _mapper(self, settings: ValidationSettings) -> RecordMapper:
        mapper = self._mappers.get(settings)
        if mapper is None:
            mapper = RecordMapper(
                self.schema.fields_for(settings),
                immutable_fields=self.schema.immutable_fields,
                empty_item_policy=settings.empty_item_policy,
                unknown_field_policy=settings.unknown_field_policy,
            )
            self._mappers[settings] = mapper
        return mapper

    # ========================================================================
    # PIPELINE
    # ========================================================================

    def _run(
        self,
        mode: MutationMode,
        data: Any,
        existing: Optional[Mapping[str, Any]] = None,
        finalize: bool = True,
    ) -> ValidationResult:
        started = time.perf_counter()
        settings = self.settings
        mapper = self._mapper(settings)
        now = to_millisecond_precision(self.clock())

        logger.debug("Validation started", entity=self.name, mode=mode.value)

        if mode == MutationMode.CREATE:
            record, errors = mapper.map_for_create(data)
        else:
            record, errors = mapper.map_for_update(data)

        if not errors:
            context = RuleContext(now=now, settings=settings)
            if mode == MutationMode.CREATE:
                errors = self.rule_engine.evaluate(record, context)
            else:
                errors = self.rule_engine.evaluate(
                    _overlay(existing, record), context, changed_fields=record.keys()
                )

        duration = time.perf_counter() - started

        if errors:
            validation_metrics.record_validation(self.name, mode.value, duration, errors.errors())
            logger.warning("Validation failed",
                           entity=self.name,
                           mode=mode.value,
                           fields=list(errors.keys()))
            return ValidationResult.failure(errors)

        if finalize:
            for finalizer in self.schema.finalizers:
                finalizer(record)

        if mode == MutationMode.CREATE:
            record[CREATED_AT] = now
        record[UPDATED_AT] = now

        validation_metrics.record_validation(self.name, mode.value, duration)
        logger.info("Validation succeeded",
                    entity=self.name,
                    mode=mode.value,
                    field_count=len(record))
        return ValidationResult.success(record)

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def validate_for_create(self, data: Any) -> ValidationResult:
        """Validate a full creation payload, applying defaults."""
        return self._run(MutationMode.CREATE, data)

    def validate_for_update(self, data: Any, existing: Optional[Mapping[str, Any]] = None) -> ValidationResult:
        """
        Validate a partial update payload.

        Args:
            data: Raw update payload
            existing: Stored record the changes apply to; business rules read
                the changes overlaid on it

        Returns:
            ValidationResult whose record holds only the changed fields plus
            ``updated_at``
        """
        return self._run(MutationMode.UPDATE, data, existing=existing)

    def map_and_validate(self, data: Any) -> Dict[str, Any]:
        """
        Validate a creation payload and return the typed record.

        Raises:
            SchemaValidationError: The payload failed validation
        """
        result = self.validate_for_create(data)
        if not result.is_valid:
            raise SchemaValidationError(result.errors, self.name, MutationMode.CREATE.value)
        return result.record

    def map_for_update(self, data: Any, existing: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Validate an update payload and return the partial typed record.

        Raises:
            SchemaValidationError: The payload failed validation
        """
        result = self.validate_for_update(data, existing=existing)
        if not result.is_valid:
            raise SchemaValidationError(result.errors, self.name, MutationMode.UPDATE.value)
        return result.record

    def is_valid(self, data: Any) -> Dict[str, str]:
        """Error mapping for a creation payload; empty when valid. Finalizers do not run."""
        return self._run(MutationMode.CREATE, data, finalize=False).error_dict()

    def is_valid_update(self, data: Any, existing: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
        """Error mapping for an update payload; empty when valid. Finalizers do not run."""
        return self._run(MutationMode.UPDATE, data, existing=existing, finalize=False).error_dict()

    def get_field_definitions(self) -> Dict[str, Dict[str, Any]]:
        """JSON-friendly field definitions keyed by field name, in declaration order."""
        return {
            spec.name: spec.model_dump(mode='json', exclude_none=True)
            for spec in self.schema.fields_for(self.settings)
        }

    def __repr__(self) -> str:
        return f"SchemaValidator({self.name!r})"


def _overlay(existing: Optional[Mapping[str, Any]], changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Changes laid over the stored record, with stored datetimes normalized to UTC."""
    merged: Dict[str, Any] = {}
    for key, value in (existing or {}).items():
        merged[key] = to_millisecond_precision(value) if isinstance(value, datetime) else value
    merged.update(changes)
    return merged


def build_validator(
    name: str,
    fields: Iterable[FieldSpec],
    rules: Iterable[BusinessRule] = (),
    immutable_fields: Iterable[str] = (),
    official_domain_fields: Iterable[str] = (),
    finalizers: Iterable[Finalizer] = (),
) -> SchemaValidator:
    """Build the EntitySchema and its SchemaValidator in one step."""
    return SchemaValidator(EntitySchema(
        name=name,
        fields=tuple(fields),
        rules=tuple(rules),
        immutable_fields=frozenset(immutable_fields),
        official_domain_fields=frozenset(official_domain_fields),
        finalizers=tuple(finalizers),
    ))
