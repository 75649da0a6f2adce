"""
Flask application factory.

Loads the environment configuration, sets up structured logging, installs
the record lookup used by the ``unique`` and ``exists`` rules, and registers
error handlers and blueprints.

Usage:
    # Development server
    export FLASK_ENV=development
    python -m flask --app app:application run

    # Application factory usage
    from user_requests.app import create_app
    app = create_app('testing')
"""

from typing import Optional

import structlog
from flask import Flask

from user_requests.blueprints import register_blueprints
from user_requests.config import get_config
from user_requests.monitoring import setup_structured_logging
from user_requests.utils.exceptions import register_error_handlers
from user_requests.validation.lookup import InMemoryRecordLookup, RecordLookup

logger = structlog.get_logger(__name__)


def create_record_lookup(app: Flask) -> InMemoryRecordLookup:
    """Build the in-memory lookup seeded with the configured role ids."""
    lookup = InMemoryRecordLookup()
    for role_id in app.config.get('SEED_ROLE_IDS', []):
        lookup.add('roles', id=role_id)
    return lookup


def create_app(config_name: Optional[str] = None,
               record_lookup: Optional[RecordLookup] = None,
               **config_overrides) -> Flask:
    """
    Create the Flask application.

    Args:
        config_name: Environment configuration name (development, testing, production)
        record_lookup: Storage collaborator for record rules; an in-memory
            lookup seeded from ``SEED_ROLE_IDS`` is used when omitted
        **config_overrides: Additional configuration values

    Returns:
        Configured Flask application

    Raises:
        ValueError: If the configuration name is not supported
    """
    config_class = get_config(config_name)

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config.update(config_overrides)

    setup_structured_logging(app)
    config_class.init_app(app)

    app.extensions['record_lookup'] = (
        record_lookup if record_lookup is not None else create_record_lookup(app)
    )

    register_error_handlers(app)
    register_blueprints(app)

    logger.info(
        "Flask application created",
        app_name=app.config['APP_NAME'],
        environment=config_class.__name__,
        custom_lookup=record_lookup is not None
    )
    return app


__all__ = ['create_app', 'create_record_lookup']
