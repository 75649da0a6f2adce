"""
User data-transfer objects.

Pydantic models handed to downstream business logic once a user request has
passed validation. Construction (field copying and type coercion) is the
models' own contract; callers build them from validated data only.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = structlog.get_logger("business.models")


class UserStatus(str, Enum):
    """Account status values accepted by the user endpoints."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class BaseUserData(BaseModel):
    """
    Base class for user DTOs.

    Values are taken exactly as validated; trimming happens during request
    normalization. Extra keys are rejected so nothing outside the validated
    rule fields can reach business logic, and instances are immutable once
    built.
    """

    model_config = ConfigDict(
        extra='forbid',
        frozen=True,
        use_enum_values=True,
        hide_input_in_errors=True,
    )

    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=1, max_length=255)
    roles: List[int] = Field(..., min_length=1)

    @field_validator('roles')
    @classmethod
    def validate_role_ids(cls, value: List[int]) -> List[int]:
        if any(role < 1 for role in value):
            raise ValueError("role ids must be positive")
        return value

    @classmethod
    def from_validated(cls, data: Dict[str, Any]) -> 'BaseUserData':
        """Build the DTO from validated request data."""
        dto = cls.model_validate(data)
        logger.debug("User DTO created", dto_type=cls.__name__, fields=sorted(dto.model_fields_set))
        return dto

    def to_api_dict(self) -> Dict[str, Any]:
        """Serialize for API responses, never including the password."""
        return self.model_dump(exclude={'password'}, exclude_none=True, mode='json')


class CreateUserData(BaseUserData):
    """Data required to create a user."""

    password: str = Field(..., min_length=3)
    status: UserStatus = Field(default=UserStatus.ACTIVE, validate_default=True)


class UpdateUserData(BaseUserData):
    """Data for updating a user; the password only when it changes."""

    password: Optional[str] = Field(default=None, min_length=3)
    status: Optional[UserStatus] = None


__all__ = [
    'UserStatus',
    'BaseUserData',
    'CreateUserData',
    'UpdateUserData'
]
