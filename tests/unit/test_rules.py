"""
Rule specifier parsing tests.

Covers string specifiers, record rule objects, the primary-key contract of
the uniqueness exclusion and the rule-set helpers.
"""

import pytest

from user_requests.utils.exceptions import RuleConfigurationError
from user_requests.validation.rules import (
    Exists,
    ParsedRule,
    Unique,
    parse_rule,
    parse_rules,
    top_level_keys,
)


class TestParseRule:
    """Test splitting specifiers into names and parameters."""

    def test_plain_rule(self):
        assert parse_rule('required') == ParsedRule('required', (), 'required')

    def test_rule_with_parameter(self):
        parsed = parse_rule('max:255')
        assert parsed.name == 'max'
        assert parsed.parameters == ('255',)

    def test_membership_parameters_split_on_commas(self):
        parsed = parse_rule('in:active,inactive')
        assert parsed.parameters == ('active', 'inactive')

    def test_rule_name_is_case_insensitive(self):
        assert parse_rule('Required').name == 'required'

    def test_date_format_keeps_commas_in_format(self):
        parsed = parse_rule('date_format:%d, %b %Y')
        assert parsed.parameters == ('%d, %b %Y',)

    def test_unique_object(self):
        rule = Unique('users', 'username', ignore=4)
        parsed = parse_rule(rule)
        assert parsed.name == 'unique'
        assert parsed.parameters == ('users', 'username')
        assert parsed.source is rule

    def test_unique_without_column(self):
        assert parse_rule(Unique('users')).parameters == ('users', 'NULL')

    def test_exists_object(self):
        parsed = parse_rule(Exists('roles', 'id'))
        assert parsed.name == 'exists'
        assert parsed.parameters == ('roles', 'id')

    def test_implicit_and_modifier_flags(self):
        assert parse_rule('required').is_implicit
        assert parse_rule('sometimes').is_modifier
        assert parse_rule('nullable').is_modifier
        assert not parse_rule('string').is_implicit

    @pytest.mark.parametrize('specifier', [42, None, ['required'], ':255', ''])
    def test_invalid_specifiers_raise(self, specifier):
        with pytest.raises(RuleConfigurationError):
            parse_rule(specifier)


class TestUniqueExclusion:
    """Test the primary-key contract of the uniqueness exclusion."""

    def test_positive_integer_accepted(self):
        assert Unique('users', ignore=7).ignore == 7

    def test_none_means_no_exclusion(self):
        assert Unique('users').ignore is None

    @pytest.mark.parametrize('ignore', ['7', 7.0, True])
    def test_non_integer_rejected(self, ignore):
        with pytest.raises(TypeError):
            Unique('users', ignore=ignore)

    @pytest.mark.parametrize('ignore', [0, -3])
    def test_non_positive_rejected(self, ignore):
        with pytest.raises(ValueError):
            Unique('users', ignore=ignore)

    def test_string_form(self):
        assert str(Unique('users', ignore=3)) == 'unique:users,NULL,3'
        assert str(Exists('roles', 'id')) == 'exists:roles,id'


class TestRuleSetHelpers:
    """Test helpers over field rules and rule sets."""

    def test_parse_rules_preserves_order(self):
        names = [parsed.name for parsed in parse_rules(['required', 'string', 'max:10'])]
        assert names == ['required', 'string', 'max']

    def test_top_level_keys(self):
        rules = {'roles': [], 'roles.*': [], 'filter.status': [], 'name': []}
        assert top_level_keys(rules) == ['roles', 'filter', 'name']
