"""
Shared utilities: the exception hierarchy with its Flask error handlers and
input sanitization helpers.
"""

from .exceptions import (
    AuthorizationError,
    BaseApplicationError,
    ErrorCategory,
    ErrorSeverity,
    RequestValidationError,
    RuleConfigurationError,
    UnsupportedOperationError,
    ValidationError,
    format_error_response,
    register_error_handlers,
)
from .sanitizers import strip_tags, to_int, trim_value

__all__ = [
    'AuthorizationError',
    'BaseApplicationError',
    'ErrorCategory',
    'ErrorSeverity',
    'RequestValidationError',
    'RuleConfigurationError',
    'UnsupportedOperationError',
    'ValidationError',
    'format_error_response',
    'register_error_handlers',
    'strip_tags',
    'to_int',
    'trim_value',
]
