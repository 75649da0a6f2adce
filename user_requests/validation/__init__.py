"""
Request validation package.

Rule specifiers, the rule engine, message resolution, input normalization
and request orchestration, plus the rule catalog of the user endpoints.
"""

from .engine import RuleEngine, ValidationOutcome, expand_attribute, get_value, validated_data
from .form_request import FormRequest, RequestDefinition
from .lookup import InMemoryRecordLookup, RecordLookup
from .messages import (
    DEFAULT_MESSAGES,
    GENERIC_MESSAGE,
    MessageResolver,
    format_errors,
    merge_messages,
)
from .normalizers import (
    BASE_NORMALIZERS,
    apply_normalizers,
    merge_order_by,
    merge_per_page,
    merge_search,
    sanitize_input,
)
from .rules import Exists, ParsedRule, Unique, parse_rule
from .users import (
    USER_REQUEST,
    OperationKind,
    operation_for_route,
    resolve_rules,
    to_dto,
)

__all__ = [
    'RuleEngine',
    'ValidationOutcome',
    'expand_attribute',
    'get_value',
    'validated_data',
    'FormRequest',
    'RequestDefinition',
    'InMemoryRecordLookup',
    'RecordLookup',
    'DEFAULT_MESSAGES',
    'GENERIC_MESSAGE',
    'MessageResolver',
    'format_errors',
    'merge_messages',
    'BASE_NORMALIZERS',
    'apply_normalizers',
    'merge_order_by',
    'merge_per_page',
    'merge_search',
    'sanitize_input',
    'Exists',
    'ParsedRule',
    'Unique',
    'parse_rule',
    'USER_REQUEST',
    'OperationKind',
    'operation_for_route',
    'resolve_rules',
    'to_dto',
]
