"""
User endpoints blueprint.

Hosts the user request pipeline behind Flask routes. The matched endpoint
name (``users.index``, ``users.store``, ``users.update``) is the operation
identity handed to the request definition, and the ``user`` route parameter
scopes the username uniqueness check on update.

The views only shape responses: listing returns the validated query, and
store/update echo the DTO that downstream business logic would receive.
"""

import re
from functools import wraps
from typing import Any, Dict

import structlog
from flask import Blueprint, current_app, g, jsonify, request
from prometheus_client import Counter
from werkzeug.datastructures import MultiDict

from user_requests.utils.exceptions import RequestValidationError
from user_requests.validation.form_request import FormRequest, RequestDefinition
from user_requests.validation.users import USER_REQUEST

logger = structlog.get_logger(__name__)

users_bp = Blueprint('users', __name__, url_prefix='/users')

VALIDATION_FAILURES = Counter(
    'user_requests_validation_failures_total',
    'Requests rejected by validation',
    ['endpoint', 'field']
)

_BRACKETED_KEY = re.compile(r'^([^\[\]]+)((?:\[[^\[\]]*\])+)$')
_BRACKET_SEGMENT = re.compile(r'\[([^\[\]]*)\]')


def query_parameters(args: MultiDict) -> Dict[str, Any]:
    """
    Convert query or form parameters into a nested mapping.

    ``filter[status]=active`` becomes ``{"filter": {"status": "active"}}``,
    ``roles[]=1&roles[]=2`` becomes ``{"roles": ["1", "2"]}`` and a key
    repeated without brackets keeps all of its values as a list.
    """
    result: Dict[str, Any] = {}
    for key in args:
        values = args.getlist(key)
        match = _BRACKETED_KEY.match(key)
        if not match:
            result[key] = values if len(values) > 1 else values[0]
            continue

        segments = _BRACKET_SEGMENT.findall(match.group(2))
        node, name = result, match.group(1)
        for segment in segments:
            if segment == '':
                break
            child = node.get(name)
            if not isinstance(child, dict):
                child = {}
                node[name] = child
            node, name = child, segment

        if segments[-1] == '':
            node[name] = list(values)
        else:
            node[name] = values if len(values) > 1 else values[0]
    return result


def request_payload() -> Dict[str, Any]:
    """Raw parameters of the current request: query args, JSON body or form."""
    if request.method == 'GET':
        return query_parameters(request.args)
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    return query_parameters(request.form)


def validate_form_request(definition: RequestDefinition):
    """Decorator validating the current request against a request definition."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            form_request = FormRequest(
                definition,
                request_payload(),
                route_name=request.endpoint,
                route_params=request.view_args,
                lookup=current_app.extensions.get('record_lookup')
            )

            try:
                form_request.validate_resolved()
            except RequestValidationError as e:
                # Top-level field only; expanded attributes such as roles.7 are unbounded
                for field in dict.fromkeys(key.split('.', 1)[0] for key in e.field_errors):
                    VALIDATION_FAILURES.labels(
                        endpoint=request.endpoint or 'unknown',
                        field=field
                    ).inc()
                raise

            g.form_request = form_request
            return func(*args, **kwargs)

        return wrapper
    return decorator


@users_bp.route('', methods=['GET'])
@validate_form_request(USER_REQUEST)
def index():
    """List users: returns the validated listing query."""
    form_request = g.form_request
    return jsonify({
        'data': [],
        'query': form_request.validated()
    })


@users_bp.route('', methods=['POST'])
@validate_form_request(USER_REQUEST)
def store():
    """Create a user: returns the creation DTO."""
    dto = g.form_request.to_dto()
    logger.info("User creation accepted", username=dto.username, role_count=len(dto.roles))
    return jsonify({
        'data': dto.to_api_dict(),
        'message': 'User data accepted'
    }), 201


@users_bp.route('/<int:user>', methods=['PUT'])
@validate_form_request(USER_REQUEST)
def update(user: int):
    """Update a user: returns the update DTO."""
    dto = g.form_request.to_dto()
    logger.info("User update accepted", user_id=user, password_changed=dto.password is not None)
    return jsonify({
        'data': dto.to_api_dict(),
        'message': 'User data accepted'
    })


__all__ = [
    'users_bp',
    'query_parameters',
    'request_payload',
    'validate_form_request'
]
