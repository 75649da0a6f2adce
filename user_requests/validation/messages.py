"""
Validation message tables and message resolution.

Message tables map ``field.rule`` or plain ``rule`` keys to templates with
``:attribute``-style placeholders. Size rules (min, max, size) map to a
nested table keyed by the kind of the validated value: ``numeric``,
``string``, ``array`` or ``file``.

Default templates are layered first and per-request custom templates second;
the merge is a shallow override by exact key.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

MessageTemplate = Union[str, Dict[str, str]]
MessageTable = Dict[str, MessageTemplate]
AttributeLabelTable = Dict[str, str]

GENERIC_MESSAGE = 'The :attribute field is invalid.'

DEFAULT_MESSAGES: MessageTable = {
    'required': 'The :attribute field is required.',
    'string': 'The :attribute field must be a string.',
    'integer': 'The :attribute field must be an integer.',
    'numeric': 'The :attribute field must be a number.',
    'array': 'The :attribute field must be an array.',
    'email': 'The :attribute field must be a valid email address.',
    'unique': 'The :attribute field value already exists.',
    'exists': 'The selected :attribute value is invalid.',
    'max': {
        'numeric': 'The :attribute field may not be greater than :max.',
        'string': 'The :attribute field may not be greater than :max characters.',
        'array': 'The :attribute field may not contain more than :max items.',
        'file': 'The :attribute field may not be greater than :max kilobytes.',
    },
    'min': {
        'numeric': 'The :attribute field must be at least :min.',
        'string': 'The :attribute field must be at least :min characters.',
        'array': 'The :attribute field must contain at least :min items.',
        'file': 'The :attribute field must be at least :min kilobytes.',
    },
    'in': 'The selected :attribute value is invalid.',
    'date': 'The :attribute field is not a valid date.',
    'date_format': 'The :attribute field does not match the format :format.',
    'boolean': 'The :attribute field must be a boolean.',
    'confirmed': 'The :attribute field confirmation does not match.',
    'size': {
        'numeric': 'The :attribute field must be :size.',
        'file': 'The file size in the :attribute field must be :size KB.',
        'string': 'The :attribute field must be :size characters.',
        'array': 'The :attribute field must contain :size items.',
    },
}

_PLACEHOLDER = re.compile(r':([a-z_]+)')


def merge_messages(defaults: Mapping[str, MessageTemplate],
                   custom: Mapping[str, MessageTemplate]) -> MessageTable:
    """
    Layer custom templates over defaults.

    A custom key fully replaces the default for that exact key; keys the
    custom table does not name keep their defaults, including the nested
    per-kind tables of size rules.
    """
    return {**defaults, **custom}


def _wildcard_to_regex(pattern: str) -> re.Pattern:
    return re.compile('^' + re.escape(pattern).replace(r'\*', r'[^.]+') + '$')


class MessageResolver:
    """
    Resolves and renders the message for a failed rule.

    Args:
        messages: Merged message table
        attributes: Attribute label table; keys may use ``*`` wildcards
    """

    def __init__(self, messages: Mapping[str, MessageTemplate],
                 attributes: Optional[Mapping[str, str]] = None):
        self.messages = dict(messages)
        self.attributes = dict(attributes or {})

    def _lookup(self, keys: Iterable[str]) -> Optional[MessageTemplate]:
        for key in keys:
            if key in self.messages:
                return self.messages[key]
        # Wildcard keys in the table itself, e.g. "roles.*.exists"
        for key in keys:
            for source_key, template in self.messages.items():
                if '*' in source_key and _wildcard_to_regex(source_key).match(key):
                    return template
        return None

    def template_for(self, attribute: str, rule: str, kind: str = 'string',
                     pattern: Optional[str] = None) -> str:
        """
        Find the template for ``rule`` failing on ``attribute``.

        Looks up ``attribute.rule``, then ``pattern.rule`` for wildcard rule
        keys, then the bare ``rule``. Nested per-kind tables are indexed by
        ``kind``; anything unresolved falls back to the generic message.
        """
        keys = [f'{attribute}.{rule}']
        if pattern and pattern != attribute:
            keys.append(f'{pattern}.{rule}')

        template = self._lookup(keys)
        if template is None:
            template = self.messages.get(rule)

        if isinstance(template, dict):
            template = template.get(kind) or template.get('string')
        return template or GENERIC_MESSAGE

    def label_for(self, attribute: str, pattern: Optional[str] = None) -> str:
        """Return the display label substituted into ``:attribute``."""
        if attribute in self.attributes:
            return self.attributes[attribute]
        if pattern and pattern in self.attributes:
            return self.attributes[pattern]
        for key, label in self.attributes.items():
            if '*' in key and _wildcard_to_regex(key).match(attribute):
                return label
        return attribute.rsplit('.', 1)[-1].replace('_', ' ')

    def render(self, template: str, attribute: str,
               replacements: Optional[Mapping[str, Any]] = None,
               pattern: Optional[str] = None) -> str:
        """
        Substitute placeholders in a template.

        ``:attribute`` becomes the attribute label; any other ``:name`` is
        taken from ``replacements`` and left untouched when not supplied.
        """
        values = {'attribute': self.label_for(attribute, pattern)}
        values.update({key: str(value) for key, value in (replacements or {}).items()})
        return _PLACEHOLDER.sub(lambda match: values.get(match.group(1), match.group(0)), template)

    def message_for(self, attribute: str, rule: str, kind: str = 'string',
                    replacements: Optional[Mapping[str, Any]] = None,
                    pattern: Optional[str] = None) -> str:
        """Resolve and render the message for one failed rule."""
        template = self.template_for(attribute, rule, kind, pattern)
        return self.render(template, attribute, replacements, pattern)


def format_errors(field_errors: Mapping[str, List[str]]) -> List[Dict[str, Any]]:
    """
    Format a field-to-messages mapping for an error response.

    Fields keep the order of the mapping and messages keep the order the
    validator produced them.

    >>> format_errors({'username': ['already taken']})
    [{'field': 'username', 'messages': ['already taken'], 'first_message': 'already taken'}]
    """
    return [
        {
            'field': field,
            'messages': list(messages),
            'first_message': messages[0] if messages else None,
        }
        for field, messages in field_errors.items()
    ]


__all__ = [
    'MessageTemplate',
    'MessageTable',
    'AttributeLabelTable',
    'GENERIC_MESSAGE',
    'DEFAULT_MESSAGES',
    'merge_messages',
    'MessageResolver',
    'format_errors'
]
