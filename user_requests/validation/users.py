"""
Request rules for the user-management endpoints.

Route names select an ``OperationKind``; the kind selects the rule set, the
DTO type and the operation-specific preprocessing. Create and update share
one parameterized rule builder; the list rule set is independent.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

import structlog

from user_requests.business.models import CreateUserData, UpdateUserData, UserStatus
from user_requests.utils.exceptions import UnsupportedOperationError
from user_requests.utils.sanitizers import to_int
from user_requests.validation.form_request import RequestDefinition
from user_requests.validation.normalizers import BASE_NORMALIZERS
from user_requests.validation.rules import RuleSet, Unique

logger = structlog.get_logger(__name__)


class OperationKind(Enum):
    """Logical operations of the user endpoints."""
    CREATE = "create"
    UPDATE = "update"
    LIST = "list"


ROUTE_STORE = 'users.store'
ROUTE_UPDATE = 'users.update'
ROUTE_INDEX = 'users.index'

ROUTE_OPERATIONS = {
    ROUTE_STORE: OperationKind.CREATE,
    ROUTE_UPDATE: OperationKind.UPDATE,
    ROUTE_INDEX: OperationKind.LIST,
}

# Route parameter carrying the id of the user being updated
USER_ROUTE_PARAMETER = 'user'

VALID_STATUSES = tuple(status.value for status in UserStatus)
VALID_SORT_DIRECTIONS = ('asc', 'desc')
VALID_ORDER_FIELDS = ('id', 'name', 'username', 'created_at')

PER_PAGE_MIN = 1
PER_PAGE_MAX = 100

PASSWORD_REQUIRED = 'required'
PASSWORD_OPTIONAL = 'sometimes'

USER_ATTRIBUTES = {
    'name': 'Name',
    'username': 'Username',
    'password': 'Password',
    'roles': 'Roles',
    'roles.*': 'Role',
    'status': 'Status',
    'search': 'Search',
    'orderBy': 'Sort by',
    'sortedBy': 'Sort direction',
    'per_page': 'Records per page',
    'filter.name': 'Filter by name',
    'filter.username': 'Filter by username',
    'filter.role': 'Filter by role',
    'filter.status': 'Filter by status',
    'force': 'Force delete',
}

USER_MESSAGES = {
    'name.required': ':attribute is required.',
    'username.required': ':attribute is required.',
    'username.unique': ':attribute is already taken.',
    'password.required': ':attribute is required.',
    'password.min': ':attribute must be at least 3 characters long.',
    'roles.required': ':attribute are required.',
    'roles.min': 'At least one :attribute must be specified.',
    'roles.*.exists': 'The specified :attribute does not exist.',
}


def operation_for_route(route_name: Optional[str]) -> Optional[OperationKind]:
    """Return the operation for a route name, or ``None`` for other routes."""
    return ROUTE_OPERATIONS.get(route_name)


def _one_of(values) -> str:
    return 'in:' + ','.join(values)


def user_rules(password_requirement: str, user_id: Optional[int] = None) -> RuleSet:
    """
    Rules shared by user creation and update.

    Args:
        password_requirement: ``required`` on create, ``sometimes`` on update
        user_id: Primary key of the user being updated, excluded from the
            username uniqueness check
    """
    return {
        'name': ['required', 'string', 'max:255'],
        'username': [
            'required',
            'string',
            'max:255',
            Unique('users', ignore=user_id),
        ],
        'password': [password_requirement, 'string', 'min:3'],
        'roles': ['required', 'array', 'min:1'],
        'roles.*': ['required', 'integer', 'exists:roles,id'],
        'status': ['sometimes', 'string', _one_of(VALID_STATUSES)],
    }


def create_rules() -> RuleSet:
    return user_rules(PASSWORD_REQUIRED)


def update_rules(user_id: Optional[int] = None) -> RuleSet:
    return user_rules(PASSWORD_OPTIONAL, user_id=user_id)


def index_rules() -> RuleSet:
    return {
        'search': ['sometimes', 'nullable', 'string', 'max:255'],
        'orderBy': ['sometimes', 'string', _one_of(VALID_ORDER_FIELDS)],
        'sortedBy': ['sometimes', 'string', _one_of(VALID_SORT_DIRECTIONS)],
        'per_page': [
            'required',
            f'min:{PER_PAGE_MIN}',
            f'max:{PER_PAGE_MAX}',
        ],
        'filter': ['sometimes', 'array'],
        'filter.status': ['sometimes', 'string', _one_of(VALID_STATUSES)],
        'filter.name': ['sometimes', 'nullable', 'string', 'max:255'],
        'filter.username': ['sometimes', 'nullable', 'string', 'max:255'],
        'filter.role': ['sometimes', 'nullable', 'integer', 'min:1'],
    }


def resolve_rules(operation: Optional[OperationKind], user_id: Optional[int] = None) -> RuleSet:
    """
    Return the rule set for an operation.

    Unknown operations get an empty rule set, so any input passes.
    """
    if operation is OperationKind.CREATE:
        return create_rules()
    if operation is OperationKind.UPDATE:
        return update_rules(user_id)
    if operation is OperationKind.LIST:
        return index_rules()
    return {}


def _user_id(route_params: Mapping[str, Any]) -> Optional[int]:
    user_id = route_params.get(USER_ROUTE_PARAMETER)
    if user_id is None:
        return None
    user_id = to_int(user_id)
    return user_id if user_id > 0 else None


def rules_for_request(operation: Optional[OperationKind], route_params: Mapping[str, Any]) -> RuleSet:
    return resolve_rules(operation, _user_id(route_params))


def prepare_roles(data: Dict[str, Any], operation: Optional[OperationKind] = None) -> Dict[str, Any]:
    """
    Coerce role ids to integers and drop non-positive ones, keeping order.

    A mapping of roles contributes its values in insertion order.
    """
    roles = data.get('roles')
    if isinstance(roles, Mapping):
        roles = list(roles.values())
    elif not isinstance(roles, (list, tuple)):
        return data
    return {**data, 'roles': [role for role in map(to_int, roles) if role > 0]}


def _is_empty_password(value: Any) -> bool:
    # Blank or "0" counts as not supplied
    if isinstance(value, str):
        return value.strip() in ('', '0')
    return not value


def prepare_password(data: Dict[str, Any], operation: Optional[OperationKind] = None) -> Dict[str, Any]:
    """Drop an empty password on update so the optional rule does not apply."""
    if operation is not OperationKind.UPDATE or not _is_empty_password(data.get('password')):
        return data
    return {key: value for key, value in data.items() if key != 'password'}


USER_NORMALIZERS = BASE_NORMALIZERS + (prepare_roles, prepare_password)


def to_dto(validated: Dict[str, Any], operation: Optional[OperationKind]):
    """
    Map validated data to the operation's DTO.

    Raises:
        UnsupportedOperationError: For any operation other than create or update
    """
    if operation is OperationKind.CREATE:
        return CreateUserData.from_validated(validated)
    if operation is OperationKind.UPDATE:
        return UpdateUserData.from_validated(validated)

    name = operation.value if isinstance(operation, OperationKind) else operation
    raise UnsupportedOperationError(f"Invalid operation '{name}' for DTO conversion")


USER_REQUEST = RequestDefinition(
    name='users',
    rules=rules_for_request,
    custom_messages=USER_MESSAGES,
    attributes=USER_ATTRIBUTES,
    normalizers=USER_NORMALIZERS,
    operation_for_route=operation_for_route,
    dto_mapper=to_dto,
)


__all__ = [
    'OperationKind',
    'ROUTE_STORE',
    'ROUTE_UPDATE',
    'ROUTE_INDEX',
    'ROUTE_OPERATIONS',
    'USER_ROUTE_PARAMETER',
    'VALID_STATUSES',
    'VALID_SORT_DIRECTIONS',
    'VALID_ORDER_FIELDS',
    'PER_PAGE_MIN',
    'PER_PAGE_MAX',
    'USER_ATTRIBUTES',
    'USER_MESSAGES',
    'operation_for_route',
    'user_rules',
    'create_rules',
    'update_rules',
    'index_rules',
    'resolve_rules',
    'rules_for_request',
    'prepare_roles',
    'prepare_password',
    'USER_NORMALIZERS',
    'to_dto',
    'USER_REQUEST'
]
