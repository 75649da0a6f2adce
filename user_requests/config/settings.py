"""
Flask configuration classes.

Environment-specific settings (Development, Testing, Production) for the
application factory, loaded from environment variables via python-dotenv.
``get_config`` selects a configuration class by name or ``FLASK_ENV``.
"""

import logging
import os
from typing import List, Optional, Type

from dotenv import load_dotenv
from flask import Flask

# Load environment variables early
load_dotenv()

logger = logging.getLogger(__name__)


def _int_list(raw: Optional[str]) -> List[int]:
    """Parse a comma-separated list of integer ids, skipping blanks."""
    if not raw:
        return []
    return [int(item) for item in raw.split(',') if item.strip()]


class BaseConfig:
    """
    Base configuration shared by all environments.
    """

    # Flask Core Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(32).hex())

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'User Request Validation')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')

    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = False
    TESTING = False

    # JSON Configuration
    JSON_SORT_KEYS = False

    # Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')

    # Role ids preloaded into the in-memory record lookup
    SEED_ROLE_IDS = _int_list(os.getenv('SEED_ROLE_IDS', ''))

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with base configuration.

        Args:
            app: Flask application instance
        """
        app.json.sort_keys = cls.JSON_SORT_KEYS

        app.logger.info(
            "Base configuration initialized",
            extra={
                'app_name': cls.APP_NAME,
                'app_version': cls.APP_VERSION,
                'environment': cls.FLASK_ENV,
                'log_format': cls.LOG_FORMAT
            }
        )


class DevelopmentConfig(BaseConfig):
    """Development configuration with debug output and console logs."""

    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')


class TestingConfig(BaseConfig):
    """
    Testing configuration for automated test runs.

    Uses a fixed secret and seeds a small set of role ids so user payloads
    can reference existing roles.
    """

    TESTING = True
    DEBUG = True
    SECRET_KEY = 'testing-secret-key-not-for-production-use'
    LOG_LEVEL = 'WARNING'
    LOG_FORMAT = 'console'
    SEED_ROLE_IDS = [1, 2, 3]


class ProductionConfig(BaseConfig):
    """Production configuration; the secret key must come from the environment."""

    DEBUG = False
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')


config_map = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ValueError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', 'development')

    environment = environment.lower()

    if environment not in config_map:
        raise ValueError(
            f"Unsupported environment '{environment}'. "
            f"Supported environments: {list(config_map.keys())}"
        )

    config_class = config_map[environment]

    logger.info(
        "Configuration class selected",
        extra={
            'environment': environment,
            'config_class': config_class.__name__
        }
    )

    return config_class


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'config_map',
    'get_config'
]
