"""Logging setup for the application."""

from .logging import add_request_context, setup_structured_logging

__all__ = ['add_request_context', 'setup_structured_logging']
