"""
Declarative rule specifiers.

A field rule is an ordered list of specifiers. A specifier is either a string
such as ``"required"``, ``"max:255"`` or ``"in:active,inactive"``, or one of
the record rule objects below. Specifiers are plain data; ``parse_rule`` turns
any of them into a ``ParsedRule`` the rule engine interprets.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from user_requests.utils.exceptions import RuleConfigurationError

# Rules evaluated even when the attribute is missing or blank
IMPLICIT_RULES = frozenset({'required'})

# Rules that change how the other rules of a field are applied
MODIFIER_RULES = frozenset({'sometimes', 'nullable', 'bail'})

# Rules whose message template is selected by the kind of the value
SIZE_RULES = frozenset({'min', 'max', 'size'})

NUMERIC_RULES = frozenset({'numeric', 'integer'})


@dataclass(frozen=True)
class Unique:
    """
    Cross-record uniqueness of the attribute value.

    ``ignore`` is the primary key of the record being updated; that record
    is excluded so it keeps its own value. It must be a positive integer or
    ``None``.
    """

    table: str
    column: Optional[str] = None
    ignore: Optional[int] = None
    id_column: str = 'id'

    def __post_init__(self):
        if self.ignore is None:
            return
        if isinstance(self.ignore, bool) or not isinstance(self.ignore, int):
            raise TypeError(
                f"Unique rule ignore id must be an int primary key, got {type(self.ignore).__name__}"
            )
        if self.ignore < 1:
            raise ValueError(f"Unique rule ignore id must be positive, got {self.ignore}")

    def __str__(self) -> str:
        parameters = [self.table, self.column or 'NULL']
        if self.ignore is not None:
            parameters.append(str(self.ignore))
        return 'unique:' + ','.join(parameters)


@dataclass(frozen=True)
class Exists:
    """Foreign existence of the attribute value in ``table.column``."""

    table: str
    column: Optional[str] = None

    def __str__(self) -> str:
        return f"exists:{self.table},{self.column or 'NULL'}"


RuleSpecifier = Union[str, Unique, Exists]
FieldRule = List[RuleSpecifier]
RuleSet = Dict[str, FieldRule]


@dataclass(frozen=True)
class ParsedRule:
    """A rule specifier split into its name and parameters."""

    name: str
    parameters: Tuple[str, ...] = ()
    source: Any = None

    @property
    def is_implicit(self) -> bool:
        return self.name in IMPLICIT_RULES

    @property
    def is_modifier(self) -> bool:
        return self.name in MODIFIER_RULES


def parse_rule(specifier: RuleSpecifier) -> ParsedRule:
    """
    Split a rule specifier into name and parameters.

    ``"max:255"`` becomes ``ParsedRule("max", ("255",))`` and
    ``"in:a,b"`` becomes ``ParsedRule("in", ("a", "b"))``. Rule objects keep
    a reference to themselves in ``source``.

    Raises:
        RuleConfigurationError: If the specifier is neither a string nor a
            known rule object, or has an empty name
    """
    if isinstance(specifier, Unique):
        return ParsedRule('unique', (specifier.table, specifier.column or 'NULL'), specifier)
    if isinstance(specifier, Exists):
        return ParsedRule('exists', (specifier.table, specifier.column or 'NULL'), specifier)
    if not isinstance(specifier, str):
        raise RuleConfigurationError(
            message=f"Unsupported rule specifier {specifier!r}",
            rule=repr(specifier)
        )

    name, _, raw_parameters = specifier.partition(':')
    name = name.strip().lower()
    if not name:
        raise RuleConfigurationError(message="Empty rule name", rule=specifier)

    # date_format takes a single format argument that may itself contain commas
    if name == 'date_format':
        parameters = (raw_parameters,) if raw_parameters else ()
    else:
        parameters = tuple(raw_parameters.split(',')) if raw_parameters else ()

    return ParsedRule(name, parameters, specifier)


def parse_rules(field_rule: FieldRule) -> List[ParsedRule]:
    """Parse every specifier of a field rule, preserving order."""
    return [parse_rule(specifier) for specifier in field_rule]


def top_level_keys(rules: RuleSet) -> List[str]:
    """
    Return the distinct first path segments of a rule set's keys.

    ``{"roles": ..., "roles.*": ..., "filter.status": ...}`` yields
    ``["roles", "filter"]``.
    """
    keys = []
    for key in rules:
        head = key.split('.', 1)[0]
        if head not in keys:
            keys.append(head)
    return keys


__all__ = [
    'IMPLICIT_RULES',
    'MODIFIER_RULES',
    'SIZE_RULES',
    'NUMERIC_RULES',
    'Unique',
    'Exists',
    'RuleSpecifier',
    'FieldRule',
    'RuleSet',
    'ParsedRule',
    'parse_rule',
    'parse_rules',
    'top_level_keys'
]
