"""
Base exception classes and error handling utilities for the user request pipeline.

This module implements the exception hierarchy surfaced by request validation,
the structured error response formatting used by the API, and the Flask error
handler registration that turns those exceptions into JSON responses.

Key Features:
- Hierarchical exception classes for consistent error categorization
- Structured error response formatting for API consistency
- Flask error handler integration with @errorhandler decorators
- Structured logging integration with structlog
- Prometheus metrics integration for error tracking

Failure kinds:
- RequestValidationError: one or more fields violate their rules (422)
- AuthorizationError: the request's authorization predicate returned False (403)
- RuleConfigurationError: a rule set references something the engine cannot evaluate
- UnsupportedOperationError: an operation with no DTO counterpart reached the mapper
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

import structlog
from flask import Flask, current_app, has_app_context, has_request_context, jsonify, request
from prometheus_client import Counter
from werkzeug.exceptions import HTTPException


# Prometheus metrics for error tracking
error_counter = Counter(
    'user_requests_errors_total',
    'Total number of application errors by type',
    ['error_type', 'error_category', 'endpoint']
)

# Get structured logger
logger = structlog.get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for hierarchical classification."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels for monitoring and alerting."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class BaseApplicationError(Exception):
    """
    Base exception class for all application errors.

    Provides consistent error handling infrastructure with structured error reporting,
    logging integration, and metrics collection.

    Attributes:
        message: Human-readable error message
        code: Application-specific error code
        category: Error category for classification
        severity: Error severity level
        details: Additional error context
        correlation_id: Unique identifier for error tracking
        user_friendly: Whether the message is safe to display to users
        http_status: Status code used when the error is rendered as a response
    """

    def __init__(
        self,
        message: str,
        code: str = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        user_friendly: bool = True,
        http_status: int = 500
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.correlation_id = correlation_id or str(uuid4())
        self.user_friendly = user_friendly
        self.http_status = http_status
        self.timestamp = datetime.utcnow().isoformat()

        # Extract request context if available
        self.endpoint = request.endpoint if has_request_context() else None
        self.method = request.method if has_request_context() else None
        self.path = request.path if has_request_context() else None

        self._log_error()
        self._update_metrics()

    def _log_error(self) -> None:
        """Log error with structured logging."""
        log_data = {
            'error_code': self.code,
            'error_category': self.category.value,
            'error_severity': self.severity.value,
            'correlation_id': self.correlation_id,
            'http_status': self.http_status,
            'endpoint': self.endpoint,
            'method': self.method,
            'path': self.path,
            'timestamp': self.timestamp
        }

        if self.severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]:
            logger.error(self.message, **log_data)
        elif self.severity == ErrorSeverity.MEDIUM:
            logger.warning(self.message, **log_data)
        else:
            logger.info(self.message, **log_data)

    def _update_metrics(self) -> None:
        """Update Prometheus metrics for error tracking."""
        error_counter.labels(
            error_type=self.code,
            error_category=self.category.value,
            endpoint=self.endpoint or 'unknown'
        ).inc()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary format for JSON responses.

        Returns:
            Dictionary representation of the error
        """
        error_dict = {
            'error': True,
            'message': self.message if self.user_friendly else "An internal error occurred",
            'code': self.code,
            'category': self.category.value,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp
        }

        debug = has_app_context() and current_app.debug
        if self.user_friendly or debug:
            error_dict['details'] = self.details

        return error_dict


class ValidationError(BaseApplicationError):
    """
    Validation error for input validation failures.

    Carries the raw field-to-messages mapping produced by the rule engine.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs
    ):
        kwargs.setdefault('http_status', 400)
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            user_friendly=True,
            **kwargs
        )
        self.field_errors = field_errors or {}
        if self.field_errors:
            self.details['field_errors'] = list(self.field_errors)


class RequestValidationError(ValidationError):
    """
    Validation failure of an incoming request.

    Rendered with every failing field, each with its full message list and the
    first message for simple display.
    """

    def __init__(
        self,
        field_errors: Dict[str, List[str]],
        message: str = "The given data was invalid.",
        **kwargs
    ):
        kwargs.setdefault('http_status', 422)
        super().__init__(message=message, field_errors=field_errors, **kwargs)

    @property
    def errors(self) -> List[Dict[str, Any]]:
        # Deferred: the validation package imports this module.
        from user_requests.validation.messages import format_errors
        return format_errors(self.field_errors)

    def to_dict(self) -> Dict[str, Any]:
        error_dict = super().to_dict()
        error_dict['errors'] = self.errors
        return error_dict


class AuthorizationError(BaseApplicationError):
    """
    Authorization error raised when a request's authorization predicate fails.

    No normalization or validation runs once this has been raised.
    """

    def __init__(
        self,
        message: str = "Forbidden",
        **kwargs
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.MEDIUM,
            http_status=403,
            user_friendly=True,
            **kwargs
        )


class RuleConfigurationError(BaseApplicationError):
    """
    Raised when a rule set cannot be evaluated.

    Covers unknown rule names, malformed rule parameters and record rules
    (unique/exists) evaluated without a record lookup.
    """

    def __init__(
        self,
        message: str = "Invalid validation rule configuration",
        rule: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.HIGH,
            http_status=500,
            user_friendly=False,
            **kwargs
        )
        if rule:
            self.details['rule'] = rule


class UnsupportedOperationError(ValueError):
    """
    Raised when validated data is mapped for an operation with no DTO type.

    This is a programming contract violation, not a validation failure, and is
    never translated into a client error response.
    """


def format_error_response(
    error: Union[BaseApplicationError, Exception]
) -> Dict[str, Any]:
    """
    Format error response for consistent API error responses.

    Args:
        error: Exception to format

    Returns:
        Formatted error response dictionary
    """
    if isinstance(error, BaseApplicationError):
        return error.to_dict()

    correlation_id = str(uuid4())
    response = {
        'error': True,
        'message': "An unexpected error occurred",
        'code': error.__class__.__name__,
        'category': ErrorCategory.UNKNOWN.value,
        'correlation_id': correlation_id,
        'timestamp': datetime.utcnow().isoformat()
    }

    logger.error(
        str(error),
        error_code=error.__class__.__name__,
        error_category=ErrorCategory.UNKNOWN.value,
        correlation_id=correlation_id
    )

    error_counter.labels(
        error_type=error.__class__.__name__,
        error_category=ErrorCategory.UNKNOWN.value,
        endpoint=request.endpoint if has_request_context() else 'unknown'
    ).inc()

    return response


def register_error_handlers(app: Flask) -> None:
    """
    Register Flask error handlers translating application errors into responses.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(RequestValidationError)
    def handle_request_validation_error(error: RequestValidationError):
        """Render every failing field with its messages."""
        response = jsonify({
            'message': error.message,
            'errors': error.errors
        })
        response.status_code = error.http_status
        return response

    @app.errorhandler(AuthorizationError)
    def handle_authorization_error(error: AuthorizationError):
        """Render the forbidden signal."""
        response = jsonify({'message': error.message})
        response.status_code = error.http_status
        return response

    @app.errorhandler(BaseApplicationError)
    def handle_application_error(error: BaseApplicationError):
        """Handle remaining application errors with structured response."""
        response = jsonify(format_error_response(error))
        response.status_code = error.http_status
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        """Handle Werkzeug HTTP exceptions."""
        response = jsonify({
            'error': True,
            'message': error.description or error.name,
            'code': error.name
        })
        response.status_code = error.code or 500
        return response

    @app.errorhandler(Exception)
    def handle_generic_exception(error: Exception):
        """Handle all other unexpected exceptions."""
        logger.exception(
            "Unexpected exception occurred",
            exception_type=error.__class__.__name__
        )
        response = jsonify(format_error_response(error))
        response.status_code = 500
        return response


__all__ = [
    'BaseApplicationError',
    'ValidationError',
    'RequestValidationError',
    'AuthorizationError',
    'RuleConfigurationError',
    'UnsupportedOperationError',
    'ErrorCategory',
    'ErrorSeverity',
    'format_error_response',
    'register_error_handlers'
]
