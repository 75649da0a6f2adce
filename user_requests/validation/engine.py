"""
Rule engine applying a rule set to normalized input.

The engine walks the rule set in declaration order, expands wildcard keys
over the input, evaluates each rule of each attribute and collects the
rendered messages of every failing rule. Primitive checks are delegated to
marshmallow validators, email-validator and python-dateutil; record rules
(unique, exists) are delegated to a ``RecordLookup``.

Evaluation follows these conventions:
- a missing attribute only runs implicit rules (``required``), and nothing
  at all when the field is marked ``sometimes``
- a blank string only runs implicit rules
- ``None`` skips non-implicit rules when the field is ``nullable``
- a failing implicit rule stops the attribute, ``bail`` stops on any failure
"""

import copy
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

import structlog
from dateutil import parser as dateutil_parser
from email_validator import EmailNotValidError
from email_validator import validate_email as email_validate
from marshmallow import ValidationError as MarshmallowValidationError
from marshmallow import validate
from werkzeug.datastructures import FileStorage

from user_requests.utils.exceptions import RuleConfigurationError
from user_requests.validation.lookup import RecordLookup
from user_requests.validation.messages import (
    DEFAULT_MESSAGES,
    MessageResolver,
    MessageTable,
    format_errors,
)
from user_requests.validation.rules import (
    MODIFIER_RULES,
    NUMERIC_RULES,
    ParsedRule,
    RuleSet,
    Unique,
    parse_rules,
)

logger = structlog.get_logger(__name__)

MISSING = object()

INTEGER_PATTERN = re.compile(r'^[+-]?\d+$')
NUMERIC_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')
ACCEPTED_BOOLEANS = (True, False, 0, 1, '0', '1')


@dataclass
class ValidationOutcome:
    """
    Result of applying a rule set.

    On success ``data`` holds the validated data restricted to the rule
    keys; on failure ``errors`` maps each failing attribute to its messages.
    """

    data: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not self.errors

    def formatted_errors(self) -> List[Dict[str, Any]]:
        return format_errors(self.errors)


def get_value(data: Mapping[str, Any], attribute: str) -> Any:
    """Return the value at a dotted path, or ``MISSING``."""
    current: Any = data
    for segment in attribute.split('.'):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return MISSING
    return current


def expand_attribute(pattern: str, data: Mapping[str, Any]) -> List[str]:
    """
    Expand a rule key into the concrete attributes present in the data.

    ``roles.*`` over ``{"roles": [2, 3]}`` yields ``["roles.0", "roles.1"]``;
    keys without wildcards are returned as they are.
    """
    if '*' not in pattern:
        return [pattern]

    paths: List[List[str]] = [[]]
    for segment in pattern.split('.'):
        expanded = []
        for path in paths:
            if segment != '*':
                expanded.append(path + [segment])
                continue
            value = get_value(data, '.'.join(path)) if path else data
            if isinstance(value, (list, tuple)):
                keys = [str(index) for index in range(len(value))]
            elif isinstance(value, Mapping):
                keys = [str(key) for key in value]
            else:
                keys = []
            expanded.extend(path + [key] for key in keys)
        paths = expanded
    return ['.'.join(path) for path in paths]


def validated_data(data: Mapping[str, Any], rules: RuleSet) -> Dict[str, Any]:
    """
    Restrict data to the fields named by a rule set.

    Nested mappings whose sub-keys are named by the rule set (``filter.status``)
    are restricted to those sub-keys as well.
    """
    sub_keys: Dict[str, Set[str]] = {}
    for key in rules:
        head, _, rest = key.partition('.')
        declared = sub_keys.setdefault(head, set())
        if rest and not rest.startswith('*'):
            declared.add(rest.split('.', 1)[0])

    result = {}
    for head, declared in sub_keys.items():
        if head not in data:
            continue
        value = copy.deepcopy(data[head])
        if declared and isinstance(value, Mapping):
            value = {key: item for key, item in value.items() if key in declared}
        result[head] = value
    return result


def _is_numeric_string(value: Any) -> bool:
    return isinstance(value, str) and bool(NUMERIC_PATTERN.match(value.strip()))


def _file_kilobytes(upload: FileStorage) -> float:
    stream = upload.stream
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size / 1024


def _passes(validator: Callable[[Any], Any], value: Any) -> bool:
    try:
        validator(value)
    except MarshmallowValidationError:
        return False
    return True


class RuleEngine:
    """
    Applies rule sets to input mappings.

    Args:
        messages: Merged message table used to render failures
        attributes: Attribute label table
        lookup: Record lookup for ``unique`` and ``exists`` rules
    """

    def __init__(self, messages: Optional[MessageTable] = None,
                 attributes: Optional[Mapping[str, str]] = None,
                 lookup: Optional[RecordLookup] = None):
        self.resolver = MessageResolver(
            messages if messages is not None else DEFAULT_MESSAGES,
            attributes
        )
        self.lookup = lookup
        self._handlers = {
            'required': self.validate_required,
            'string': self.validate_string,
            'integer': self.validate_integer,
            'numeric': self.validate_numeric,
            'array': self.validate_array,
            'boolean': self.validate_boolean,
            'date': self.validate_date,
            'date_format': self.validate_date_format,
            'email': self.validate_email,
            'min': self.validate_min,
            'max': self.validate_max,
            'size': self.validate_size,
            'in': self.validate_in,
            'confirmed': self.validate_confirmed,
            'unique': self.validate_unique,
            'exists': self.validate_exists,
        }

    def validate(self, data: Mapping[str, Any], rules: RuleSet) -> ValidationOutcome:
        """
        Apply ``rules`` to ``data``.

        Returns:
            ValidationOutcome with validated data or the failing attributes

        Raises:
            RuleConfigurationError: If the rule set names an unknown rule
        """
        parsed_rules = {pattern: parse_rules(field_rule) for pattern, field_rule in rules.items()}
        for pattern, parsed in parsed_rules.items():
            for rule in parsed:
                if rule.name not in self._handlers and rule.name not in MODIFIER_RULES:
                    raise RuleConfigurationError(
                        message=f"Unknown validation rule '{rule.name}' on '{pattern}'",
                        rule=rule.name
                    )

        errors: Dict[str, List[str]] = {}
        for pattern, parsed in parsed_rules.items():
            for attribute in expand_attribute(pattern, data):
                messages = self._validate_attribute(attribute, pattern, parsed, data)
                if messages:
                    errors.setdefault(attribute, []).extend(messages)

        if errors:
            logger.info("Input failed validation", fields=list(errors), rule_count=len(rules))
            return ValidationOutcome(errors=errors)

        return ValidationOutcome(data=validated_data(data, rules))

    def _validate_attribute(self, attribute: str, pattern: str,
                            parsed: List[ParsedRule], data: Mapping[str, Any]) -> List[str]:
        value = get_value(data, attribute)
        names = {rule.name for rule in parsed}

        if 'sometimes' in names and value is MISSING:
            return []

        messages = []
        for rule in parsed:
            if rule.is_modifier or not self._is_validatable(rule, value, names):
                continue
            if self._handlers[rule.name](attribute, value, rule, data, names):
                continue

            messages.append(self._message(attribute, pattern, rule, value, names))
            if rule.is_implicit or 'bail' in names:
                break
        return messages

    @staticmethod
    def _is_validatable(rule: ParsedRule, value: Any, names: Set[str]) -> bool:
        if rule.is_implicit:
            return True
        if value is MISSING:
            return False
        if isinstance(value, str) and not value.strip():
            return False
        if value is None and 'nullable' in names:
            return False
        return True

    def _message(self, attribute: str, pattern: str, rule: ParsedRule,
                 value: Any, names: Set[str]) -> str:
        replacements: Dict[str, Any] = {}
        if rule.name in ('min', 'max', 'size'):
            replacements[rule.name] = rule.parameters[0]
        elif rule.name == 'in':
            replacements['values'] = ', '.join(rule.parameters)
        elif rule.name == 'date_format':
            replacements['format'] = rule.parameters[0]
        elif rule.name == 'confirmed':
            replacements['other'] = f'{attribute}_confirmation'

        return self.resolver.message_for(
            attribute,
            rule.name,
            kind=self.value_kind(value, names),
            replacements=replacements,
            pattern=pattern
        )

    # ------------------------------------------------------------------
    # Value kinds and sizes
    # ------------------------------------------------------------------

    @staticmethod
    def value_kind(value: Any, names: Set[str]) -> str:
        """Classify a value as ``numeric``, ``array``, ``file`` or ``string``."""
        if isinstance(value, (int, float)):
            return 'numeric'
        if names & NUMERIC_RULES and _is_numeric_string(value):
            return 'numeric'
        if isinstance(value, (list, tuple, Mapping)):
            return 'array'
        if isinstance(value, FileStorage):
            return 'file'
        return 'string'

    def value_size(self, value: Any, names: Set[str]) -> Optional[float]:
        """Measure a value according to its kind."""
        kind = self.value_kind(value, names)
        if kind == 'numeric':
            return float(value)
        if kind == 'array':
            return len(value)
        if kind == 'file':
            return _file_kilobytes(value)
        if isinstance(value, str):
            return len(value)
        return None

    @staticmethod
    def _numeric_parameter(rule: ParsedRule) -> float:
        try:
            return float(rule.parameters[0])
        except (IndexError, ValueError):
            raise RuleConfigurationError(
                message=f"Rule '{rule.name}' requires a numeric parameter",
                rule=str(rule.source)
            )

    # ------------------------------------------------------------------
    # Rule handlers
    # ------------------------------------------------------------------

    def validate_required(self, attribute, value, rule, data, names) -> bool:
        if value is MISSING or value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, (list, tuple, Mapping)):
            return len(value) > 0
        if isinstance(value, FileStorage):
            return bool(value.filename)
        return True

    def validate_string(self, attribute, value, rule, data, names) -> bool:
        return isinstance(value, str)

    def validate_integer(self, attribute, value, rule, data, names) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, str) and bool(INTEGER_PATTERN.match(value.strip()))

    def validate_numeric(self, attribute, value, rule, data, names) -> bool:
        if isinstance(value, bool):
            return False
        return isinstance(value, (int, float)) or _is_numeric_string(value)

    def validate_array(self, attribute, value, rule, data, names) -> bool:
        return isinstance(value, (list, tuple, Mapping))

    def validate_boolean(self, attribute, value, rule, data, names) -> bool:
        return isinstance(value, (bool, int, str)) and value in ACCEPTED_BOOLEANS

    def validate_date(self, attribute, value, rule, data, names) -> bool:
        if isinstance(value, (date, datetime)):
            return True
        if not isinstance(value, str):
            return False
        try:
            dateutil_parser.parse(value)
        except (ValueError, OverflowError):
            return False
        return True

    def validate_date_format(self, attribute, value, rule, data, names) -> bool:
        if not rule.parameters:
            raise RuleConfigurationError(
                message="Rule 'date_format' requires a format parameter",
                rule='date_format'
            )
        if not isinstance(value, str):
            return False
        try:
            datetime.strptime(value, rule.parameters[0])
        except ValueError:
            return False
        return True

    def validate_email(self, attribute, value, rule, data, names) -> bool:
        if not isinstance(value, str):
            return False
        try:
            email_validate(value, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True

    def validate_min(self, attribute, value, rule, data, names) -> bool:
        size = self.value_size(value, names)
        return size is not None and _passes(validate.Range(min=self._numeric_parameter(rule)), size)

    def validate_max(self, attribute, value, rule, data, names) -> bool:
        size = self.value_size(value, names)
        return size is not None and _passes(validate.Range(max=self._numeric_parameter(rule)), size)

    def validate_size(self, attribute, value, rule, data, names) -> bool:
        size = self.value_size(value, names)
        return size is not None and _passes(validate.Equal(self._numeric_parameter(rule)), size)

    def validate_in(self, attribute, value, rule, data, names) -> bool:
        allowed = validate.OneOf(rule.parameters)
        if isinstance(value, (list, tuple)):
            return all(_passes(allowed, str(item)) for item in value)
        if isinstance(value, (Mapping, FileStorage)) or value is None:
            return False
        return _passes(allowed, str(value))

    def validate_confirmed(self, attribute, value, rule, data, names) -> bool:
        confirmation = get_value(data, f'{attribute}_confirmation')
        return confirmation is not MISSING and confirmation == value

    def validate_unique(self, attribute, value, rule, data, names) -> bool:
        lookup = self._require_lookup(rule)
        table, column = self._record_target(attribute, rule)

        if isinstance(rule.source, Unique):
            ignore, id_column = rule.source.ignore, rule.source.id_column
        else:
            ignore = self._ignore_parameter(rule)
            id_column = rule.parameters[3] if len(rule.parameters) > 3 else 'id'

        return not lookup.value_exists(table, column, value, ignore=ignore, id_column=id_column)

    def validate_exists(self, attribute, value, rule, data, names) -> bool:
        lookup = self._require_lookup(rule)
        table, column = self._record_target(attribute, rule)

        values = value if isinstance(value, (list, tuple)) else [value]
        return all(lookup.value_exists(table, column, item) for item in values)

    def _require_lookup(self, rule: ParsedRule) -> RecordLookup:
        if self.lookup is None:
            raise RuleConfigurationError(
                message=f"Rule '{rule.name}' requires a record lookup",
                rule=str(rule.source)
            )
        return self.lookup

    @staticmethod
    def _record_target(attribute: str, rule: ParsedRule):
        if not rule.parameters or not rule.parameters[0]:
            raise RuleConfigurationError(
                message=f"Rule '{rule.name}' requires a table parameter",
                rule=str(rule.source)
            )
        table = rule.parameters[0]
        column = rule.parameters[1] if len(rule.parameters) > 1 else 'NULL'
        if column in ('', 'NULL'):
            # Wildcard attributes such as roles.0 fall back to the field name
            segments = [segment for segment in attribute.split('.') if not segment.isdigit()]
            column = segments[-1]
        return table, column

    @staticmethod
    def _ignore_parameter(rule: ParsedRule) -> Optional[int]:
        if len(rule.parameters) < 3 or rule.parameters[2] in ('', 'NULL'):
            return None
        try:
            return Unique(rule.parameters[0], ignore=int(rule.parameters[2])).ignore
        except (TypeError, ValueError):
            raise RuleConfigurationError(
                message="Rule 'unique' ignore id must be a positive integer",
                rule=str(rule.source)
            )


__all__ = [
    'MISSING',
    'ValidationOutcome',
    'RuleEngine',
    'get_value',
    'expand_attribute',
    'validated_data'
]
