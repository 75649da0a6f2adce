"""
Pre-validation input normalization.

Each normalizer takes the current input mapping and returns a new mapping
with one field transformed. A normalizer whose field is absent returns the
input unchanged, and every normalizer leaves the other fields untouched,
except ``trim_strings`` which runs first over the whole input.

The list-request normalizers (search, per_page, orderBy) apply to every
request; the user normalizers (roles, password) are added by the user
request definition.
"""

from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import structlog

from user_requests.utils.sanitizers import strip_tags, to_int, trim_value
from user_requests.validation.rules import top_level_keys

logger = structlog.get_logger(__name__)

Normalizer = Callable[[Dict[str, Any], Optional[Any]], Dict[str, Any]]

DEFAULT_SORT_DIRECTION = 'asc'

FILTER_PARAMETERS = ('search', 'orderBy', 'sortedBy', 'per_page', 'filter')

# Secrets are compared as typed
TRIM_EXCEPT = ('password', 'password_confirmation')


def trim_strings(data: Dict[str, Any], operation: Optional[Any] = None) -> Dict[str, Any]:
    """Trim every string value and turn empty strings into ``None``."""
    return trim_value(data, TRIM_EXCEPT)


def merge_search(data: Dict[str, Any], operation: Optional[Any] = None) -> Dict[str, Any]:
    """Strip markup from the free-text ``search`` parameter."""
    if 'search' not in data:
        return data
    return {**data, 'search': trim_value(strip_tags(data['search']))}


def merge_per_page(data: Dict[str, Any], operation: Optional[Any] = None) -> Dict[str, Any]:
    """Coerce ``per_page`` to an integer."""
    if 'per_page' not in data:
        return data
    return {**data, 'per_page': to_int(data['per_page'])}


def merge_order_by(data: Dict[str, Any], operation: Optional[Any] = None) -> Dict[str, Any]:
    """Lower-case ``orderBy`` and ``sortedBy``, defaulting the direction to ascending."""
    if 'orderBy' not in data:
        return data
    return {
        **data,
        'orderBy': _lower(data['orderBy']),
        'sortedBy': _lower(data.get('sortedBy', DEFAULT_SORT_DIRECTION)),
    }


def _lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


BASE_NORMALIZERS = (trim_strings, merge_search, merge_per_page, merge_order_by)


def apply_normalizers(raw: Mapping[str, Any], normalizers: Iterable[Normalizer],
                      operation: Optional[Any] = None) -> Dict[str, Any]:
    """
    Run normalizers over a copy of ``raw`` in order.

    The raw mapping itself is never modified.
    """
    data = dict(raw)
    for normalizer in normalizers:
        data = normalizer(data, operation)

    logger.debug(
        "Input normalized",
        operation=getattr(operation, 'value', operation),
        fields=sorted(data)
    )
    return data


def filter_parameters(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the non-empty list parameters present in ``data``."""
    return {key: data[key] for key in FILTER_PARAMETERS if key in data and data[key]}


def sanitize_input(data: Mapping[str, Any], rules: Mapping[str, Any]) -> Dict[str, Any]:
    """Restrict ``data`` to the top-level keys of a rule set."""
    known = set(top_level_keys(rules))
    return {key: value for key, value in data.items() if key in known}


__all__ = [
    'Normalizer',
    'DEFAULT_SORT_DIRECTION',
    'FILTER_PARAMETERS',
    'TRIM_EXCEPT',
    'trim_strings',
    'merge_search',
    'merge_per_page',
    'merge_order_by',
    'BASE_NORMALIZERS',
    'apply_normalizers',
    'filter_parameters',
    'sanitize_input'
]
