"""
Structured logging setup.

Configures structlog on top of the standard library logging module with ISO
timestamps, request context enrichment and a JSON or console renderer
selected by the ``LOG_FORMAT`` setting.
"""

import logging
import logging.config
from typing import Any, Dict, Optional

import structlog
from flask import Flask, has_request_context, request


def add_request_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the matched endpoint and HTTP method when logging inside a request."""
    if has_request_context():
        event_dict.setdefault('endpoint', request.endpoint)
        event_dict.setdefault('http_method', request.method)
    return event_dict


def setup_structured_logging(app: Optional[Flask] = None) -> structlog.stdlib.BoundLogger:
    """
    Setup structured logging from the application configuration.

    Args:
        app: Optional Flask application supplying LOG_LEVEL and LOG_FORMAT

    Returns:
        Configured structured logger instance
    """
    config = app.config if app is not None else {}
    log_level = str(config.get('LOG_LEVEL', 'INFO')).upper()
    log_format = config.get('LOG_FORMAT', 'json')

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {
                'format': '%(message)s'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': log_level
            }
        }
    })

    logger = structlog.get_logger('user_requests')
    logger.debug("Structured logging configured", log_level=log_level, log_format=log_format)
    return logger


__all__ = ['add_request_context', 'setup_structured_logging']
