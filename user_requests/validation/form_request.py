"""
Request orchestration: authorize, normalize, validate, map.

A ``RequestDefinition`` is plain data describing one family of endpoints:
how route names map to operations, which rule set each operation uses, the
custom messages and attribute labels, the normalizers and the DTO mapper.
``FormRequest`` runs one incoming request through that definition. Nothing
is shared between requests; every rule set, message table and normalized
input is built per request.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import structlog

from user_requests.utils.exceptions import (
    AuthorizationError,
    RequestValidationError,
    UnsupportedOperationError,
)
from user_requests.validation.engine import RuleEngine, ValidationOutcome
from user_requests.validation.lookup import RecordLookup
from user_requests.validation.messages import (
    DEFAULT_MESSAGES,
    MessageTable,
    merge_messages,
)
from user_requests.validation.normalizers import (
    BASE_NORMALIZERS,
    Normalizer,
    apply_normalizers,
    filter_parameters,
    sanitize_input,
)
from user_requests.validation.rules import RuleSet

logger = structlog.get_logger(__name__)


def _allow(request: 'FormRequest') -> bool:
    return True


def _route_as_operation(route_name: Optional[str]) -> Optional[str]:
    return route_name


@dataclass(frozen=True)
class RequestDefinition:
    """
    Declarative description of an endpoint family's request handling.

    Attributes:
        name: Identifier used in logs
        rules: Builds the rule set for an operation and the route parameters
        custom_messages: Templates layered over the default messages
        attributes: Attribute display labels
        normalizers: Pre-validation transforms, applied in order
        operation_for_route: Maps a route name to an operation identity
        dto_mapper: Maps validated data and the operation to a DTO
        authorize: Authorization predicate for a request
    """

    name: str
    rules: Callable[[Any, Mapping[str, Any]], RuleSet]
    custom_messages: Mapping[str, Any] = field(default_factory=dict)
    attributes: Mapping[str, str] = field(default_factory=dict)
    normalizers: Sequence[Normalizer] = BASE_NORMALIZERS
    operation_for_route: Callable[[Optional[str]], Any] = _route_as_operation
    dto_mapper: Optional[Callable[[Dict[str, Any], Any], Any]] = None
    authorize: Callable[['FormRequest'], bool] = _allow


class FormRequest:
    """
    One incoming request validated against a ``RequestDefinition``.

    Args:
        definition: Request definition for the endpoint family
        data: Raw request parameters
        route_name: Name of the matched route
        route_params: Parameters captured by the route, e.g. the record id
        lookup: Record lookup used by unique/exists rules
    """

    def __init__(self, definition: RequestDefinition,
                 data: Optional[Mapping[str, Any]] = None,
                 route_name: Optional[str] = None,
                 route_params: Optional[Mapping[str, Any]] = None,
                 lookup: Optional[RecordLookup] = None):
        self.definition = definition
        self.raw = dict(data or {})
        self.route_name = route_name
        self.route_params = dict(route_params or {})
        self.lookup = lookup
        self.data = dict(self.raw)
        self._validated: Optional[Dict[str, Any]] = None

    @property
    def operation(self) -> Any:
        """Operation identity derived from the route name."""
        return self.definition.operation_for_route(self.route_name)

    def authorize(self) -> bool:
        return bool(self.definition.authorize(self))

    def rules(self) -> RuleSet:
        return self.definition.rules(self.operation, self.route_params)

    def get_validation_rules(self) -> RuleSet:
        return self.rules()

    def messages(self) -> MessageTable:
        """Default messages with the definition's custom messages layered on top."""
        return merge_messages(DEFAULT_MESSAGES, self.definition.custom_messages)

    def attributes(self) -> Dict[str, str]:
        return dict(self.definition.attributes)

    def prepare_for_validation(self) -> Dict[str, Any]:
        """Normalize the raw input; the result is what gets validated."""
        self.data = apply_normalizers(self.raw, self.definition.normalizers, self.operation)
        return self.data

    def filter_parameters(self) -> Dict[str, Any]:
        return filter_parameters(self.data)

    def sanitize_input(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        return sanitize_input(data, self.rules())

    def make_validator(self) -> RuleEngine:
        return RuleEngine(self.messages(), self.attributes(), self.lookup)

    def validate_resolved(self) -> Dict[str, Any]:
        """
        Authorize, normalize and validate the request.

        Returns:
            Validated data

        Raises:
            AuthorizationError: If the authorization predicate fails; nothing
                else runs in that case
            RequestValidationError: If any field violates its rules
        """
        if not self.authorize():
            self.failed_authorization()

        self.prepare_for_validation()
        outcome = self.make_validator().validate(self.data, self.rules())
        if not outcome.passed:
            self.failed_validation(outcome)

        self._validated = outcome.data
        logger.debug(
            "Request validated",
            definition=self.definition.name,
            route=self.route_name,
            fields=sorted(outcome.data)
        )
        return dict(self._validated)

    def validated(self) -> Dict[str, Any]:
        """Validated data, validating the request first if needed."""
        if self._validated is None:
            return self.validate_resolved()
        return dict(self._validated)

    def validate_and_transform(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate an arbitrary mapping with this request's rules."""
        outcome = self.make_validator().validate(data, self.rules())
        if not outcome.passed:
            self.failed_validation(outcome)
        return outcome.data

    def failed_validation(self, outcome: ValidationOutcome) -> None:
        logger.warning(
            "Request validation failed",
            definition=self.definition.name,
            route=self.route_name,
            fields=list(outcome.errors)
        )
        raise RequestValidationError(outcome.errors)

    def failed_authorization(self) -> None:
        logger.warning(
            "Request authorization failed",
            definition=self.definition.name,
            route=self.route_name
        )
        raise AuthorizationError()

    def to_dto(self) -> Any:
        """
        Convert the validated data into the operation's DTO.

        Raises:
            UnsupportedOperationError: If the definition has no mapper or the
                operation has no DTO type
        """
        data = self.validated()
        if self.definition.dto_mapper is None:
            raise UnsupportedOperationError(
                f"Invalid route '{self.route_name}' for DTO conversion"
            )
        return self.definition.dto_mapper(data, self.operation)


__all__ = ['RequestDefinition', 'FormRequest']
