"""
Business Validation Exception Classes

This module provides the exception hierarchy used by the schema validation and
type-coercion engine. Two families of exceptions live here:

- Field-scoped validation errors (FieldRequiredError, FieldTypeError,
  FieldConstraintError, FieldArrayItemError, UnknownFieldError and
  BusinessRuleError). These are lightweight: the dispatcher and the rule
  engine raise them for a single field path and the record mapper folds them
  into an ErrorMap. They never escape a validation call.
- Business exceptions (BaseBusinessException and SchemaValidationError). These
  carry an error code, an HTTP status code, a severity and a category, emit a
  structured log entry when created and can be rendered as a Flask JSON
  response by the handlers registered through create_flask_error_handlers.

Classes:
    ErrorSeverity: Severity classification for business exceptions
    ErrorCategory: Category classification for business exceptions
    FieldValidationError: Base class for field-scoped validation errors
    BaseBusinessException: Base class for business exceptions
    SchemaValidationError: Aggregated validation failure for one entity
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from flask import has_request_context, jsonify, request

if TYPE_CHECKING:
    from .models import ErrorMap

logger = structlog.get_logger("business.exceptions")


class ErrorSeverity(Enum):
    """
    Error severity classification for business exceptions.

    Drives the log level used when a business exception is created.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error category classification for business exception types."""
    BUSINESS_RULE = "business_rule"
    DATA_VALIDATION = "data_validation"
    CONFIGURATION = "configuration"


# ============================================================================
# FIELD-SCOPED VALIDATION ERRORS
# ============================================================================

class FieldValidationError(Exception):
    """
    Base class for a failure scoped to one field path.

    Attributes:
        path (str): Field path the failure belongs to. Collection items use a
            dotted index suffix such as ``tags.2``.
        message (str): Human-readable message.
        error_code (str): Stable code identifying the failure type.
    """

    error_code = "FIELD_INVALID"

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message

    def expand(self) -> List["FieldValidationError"]:
        """Return the individual errors this exception stands for."""
        return [self]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(path={self.path!r}, message={self.message!r})"


class FieldRequiredError(FieldValidationError):
    """Raised when a required field is missing or empty in create mode."""

    error_code = "FIELD_REQUIRED"

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        super().__init__(path, message or f"Field '{path}' is required")


class FieldTypeError(FieldValidationError):
    """Raised when a raw value cannot be coerced into the field's kind."""

    error_code = "FIELD_TYPE"


class FieldConstraintError(FieldValidationError):
    """Raised when a coerced value violates length, bounds or enumeration."""

    error_code = "FIELD_CONSTRAINT"


class FieldArrayItemError(FieldValidationError):
    """Raised for one element of a collection field; the path carries the index."""

    error_code = "FIELD_ARRAY_ITEM"

    def __init__(self, field_name: str, index: int, message: str) -> None:
        super().__init__(f"{field_name}.{index}", message)
        self.field_name = field_name
        self.index = index


class ArrayCoercionError(FieldValidationError):
    """
    Groups every item failure of one collection field.

    The record mapper expands it into the individual FieldArrayItemError
    entries so each failing index gets its own ErrorMap key.
    """

    error_code = "FIELD_ARRAY_ITEM"

    def __init__(self, field_name: str, item_errors: Iterable[FieldArrayItemError]) -> None:
        self.item_errors = list(item_errors)
        super().__init__(field_name, f"Invalid items in '{field_name}'")

    def expand(self) -> List[FieldValidationError]:
        return list(self.item_errors)


class UnknownFieldError(FieldValidationError):
    """Raised for input keys absent from the schema when unknown keys are rejected."""

    error_code = "FIELD_UNKNOWN"

    def __init__(self, path: str) -> None:
        super().__init__(path, f"Unknown field '{path}'")


class BusinessRuleError(FieldValidationError):
    """
    Raised by a business rule when a cross-field invariant does not hold.

    Example:
        if end <= start:
            raise BusinessRuleError('end_date', 'End date must be after the event start date')
    """

    error_code = "BUSINESS_RULE"

    def __init__(self, path: str, message: str, rule_name: Optional[str] = None) -> None:
        super().__init__(path, message)
        self.rule_name = rule_name


# ============================================================================
# BUSINESS EXCEPTIONS
# ============================================================================

class BaseBusinessException(Exception):
    """
    Base exception class for business logic failures.

    Provides structured logging on creation, a JSON-safe dictionary
    representation and Flask response rendering.

    Attributes:
        message (str): User-facing error message (sanitized)
        error_code (str): Unique error identifier for client handling
        http_status_code (int): HTTP status code for Flask response
        severity (ErrorSeverity): Error severity level for monitoring
        category (ErrorCategory): Error category for classification
        context (Dict[str, Any]): Additional error context
        timestamp (datetime): Error occurrence timestamp
        request_id (Optional[str]): Request identifier for correlation
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        http_status_code: int = 400,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.BUSINESS_RULE,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)

        self.message = self._sanitize_message(message)
        self.error_code = error_code
        self.http_status_code = http_status_code
        self.severity = severity
        self.category = category
        self.context = dict(context or {})
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        self.request_id = self._get_request_id()

        self._log_exception()

    @staticmethod
    def _sanitize_message(message: str) -> str:
        """Redact credential-looking fragments and bound the message length."""
        sensitive_patterns = [
            r"password\s*[:=]\s*['\"][^'\"]*['\"]",
            r"token\s*[:=]\s*['\"][^'\"]*['\"]",
            r"secret\s*[:=]\s*['\"][^'\"]*['\"]",
        ]

        sanitized = message
        for pattern in sensitive_patterns:
            sanitized = re.sub(pattern, "[REDACTED]", sanitized, flags=re.IGNORECASE)

        max_length = 500
        if len(sanitized) > max_length:
            sanitized = sanitized[:max_length] + "... [TRUNCATED]"

        return sanitized

    @staticmethod
    def _get_request_id() -> Optional[str]:
        """Extract the correlation id from the Flask request, when there is one."""
        if not has_request_context():
            return None
        return (request.headers.get('X-Request-ID') or
                request.headers.get('X-Correlation-ID'))

    def _log_exception(self) -> None:
        """Emit a structured log entry at a level matching the severity."""
        log_data = {
            'event_type': 'business_exception',
            'exception_class': self.__class__.__name__,
            'error_code': self.error_code,
            'severity': self.severity.value,
            'category': self.category.value,
            'http_status_code': self.http_status_code,
            'request_id': self.request_id,
            'context': self.context,
        }

        if self.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            logger.error("Business exception raised", **log_data)
        elif self.severity == ErrorSeverity.MEDIUM:
            logger.warning("Business exception raised", **log_data)
        else:
            logger.info("Business exception raised", **log_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary representation safe for client exposure
        """
        return {
            'error': {
                'message': self.message,
                'code': self.error_code,
                'severity': self.severity.value,
                'category': self.category.value,
                'timestamp': self.timestamp.isoformat(),
                'request_id': self.request_id,
                'context': self.context,
            }
        }

    def to_flask_response(self) -> tuple:
        """Return a ``(JSON response, status code)`` tuple for a Flask handler."""
        return jsonify(self.to_dict()), self.http_status_code


class SchemaValidationError(BaseBusinessException):
    """
    Aggregated validation failure for one entity payload.

    Carries the same ErrorMap that the non-raising entry points return, so
    ``error.errors.to_dict()`` is identical to what ``is_valid`` reports for
    the same input.

    Example:
        try:
            event = EventSchema.map_and_validate(payload)
        except SchemaValidationError as e:
            return {'errors': e.errors.to_dict()}, 422
    """

    def __init__(
        self,
        errors: "ErrorMap",
        entity: str,
        mode: str,
        message: str = "Validation failed",
        **kwargs
    ) -> None:
        kwargs.setdefault('http_status_code', 422)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        kwargs.setdefault('category', ErrorCategory.DATA_VALIDATION)

        context = kwargs.pop('context', {})
        context.update({
            'entity': entity,
            'mode': mode,
            'fields': list(errors.keys()),
        })

        self.errors = errors
        self.entity = entity
        self.mode = mode

        super().__init__(message, "VALIDATION_FAILED", context=context, **kwargs)

    def get_errors(self) -> Dict[str, str]:
        """Return the field-path keyed messages."""
        return self.errors.to_dict()

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload['errors'] = self.errors.to_dict()
        return payload


def create_flask_error_handlers(app) -> None:
    """
    Register Flask error handlers for business exceptions.

    Translates any BaseBusinessException raised inside a view, including
    SchemaValidationError, into its JSON body and HTTP status code. The
    validation engine itself never builds responses; this is the seam a Flask
    application plugs it in through.

    Args:
        app: Flask application instance for error handler registration

    Example:
        from flask import Flask
        from clubhub.business.exceptions import create_flask_error_handlers

        app = Flask(__name__)
        create_flask_error_handlers(app)
    """

    def handle_business_exception(error: BaseBusinessException):
        logger.info("Rendering business exception response",
                    error_code=error.error_code,
                    http_status_code=error.http_status_code)
        return error.to_flask_response()

    app.register_error_handler(BaseBusinessException, handle_business_exception)
