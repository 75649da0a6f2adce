"""Business-facing data types produced by request validation."""

from .models import BaseUserData, CreateUserData, UpdateUserData, UserStatus

__all__ = ['BaseUserData', 'CreateUserData', 'UpdateUserData', 'UserStatus']
