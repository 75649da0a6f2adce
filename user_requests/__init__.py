"""
User request validation for Flask.

Declarative rule sets, input normalization, localized error messages and
typed DTOs for the user create/update/list endpoints.
"""

__version__ = "1.0.0"

from .app import create_app

__all__ = ['create_app', '__version__']
