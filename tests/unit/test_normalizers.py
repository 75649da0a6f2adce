"""
Input normalization tests.

Covers the list-request normalizers, the user normalizers and the ordering,
idempotence and non-mutation guarantees of the normalization pipeline.
"""

import pytest

from user_requests.utils.sanitizers import strip_tags, to_int
from user_requests.validation.normalizers import (
    BASE_NORMALIZERS,
    apply_normalizers,
    filter_parameters,
    merge_order_by,
    merge_per_page,
    merge_search,
    sanitize_input,
    trim_strings,
)
from user_requests.validation.users import (
    USER_NORMALIZERS,
    OperationKind,
    index_rules,
    prepare_password,
    prepare_roles,
)


class TestLenientIntegers:
    """Test lenient integer coercion of request parameters."""

    @pytest.mark.parametrize('value,expected', [
        ('25', 25),
        (' 7 ', 7),
        ('12abc', 12),
        ('-1', -1),
        ('+3', 3),
        ('abc', 0),
        ('', 0),
        (None, 0),
        (True, 1),
        (4.9, 4),
        (float('nan'), 0),
        ([1], 0),
    ])
    def test_to_int(self, value, expected):
        assert to_int(value) == expected


class TestSearchNormalizer:
    """Test markup stripping of the search parameter."""

    def test_tags_are_stripped(self):
        result = merge_search({'search': '<b>alice</b><script>x</script>'})
        assert '<' not in result['search']
        assert 'alice' in result['search']

    def test_plain_text_unchanged(self):
        assert merge_search({'search': 'alice'}) == {'search': 'alice'}

    def test_non_string_passes_through(self):
        assert strip_tags(['a']) == ['a']

    def test_absent_search_is_noop(self):
        data = {'per_page': 5}
        assert merge_search(data) is data

    @pytest.mark.parametrize('text', ['Tom & Jerry', 'a < b', 'x > y', 'R&D "quotes"'])
    def test_plain_text_characters_not_escaped(self, text):
        assert merge_search({'search': text}) == {'search': text}

    def test_entity_encoded_tags_removed(self):
        result = strip_tags('&lt;script&gt;alert(1)&lt;/script&gt; ok')
        assert '<' not in result
        assert '&lt;' not in result
        assert 'script' not in result
        assert result.endswith('ok')

    def test_markup_only_search_becomes_empty(self):
        assert merge_search({'search': '<b></b>'}) == {'search': None}


class TestTrimStrings:
    """Test trimming and empty-string conversion ahead of validation."""

    def test_nested_values_trimmed(self):
        result = trim_strings({
            'name': '  Bob ',
            'status': '',
            'filter': {'name': '   ', 'status': ' active '},
            'roles': [' 1 ', 2],
        })
        assert result == {
            'name': 'Bob',
            'status': None,
            'filter': {'name': None, 'status': 'active'},
            'roles': ['1', 2],
        }

    def test_passwords_kept_as_typed(self):
        result = trim_strings({'password': ' ab ', 'password_confirmation': ' ab '})
        assert result == {'password': ' ab ', 'password_confirmation': ' ab '}


class TestPerPageNormalizer:
    """Test integer coercion of per_page."""

    def test_string_coerced(self):
        assert merge_per_page({'per_page': '15'}) == {'per_page': 15}

    def test_garbage_becomes_zero(self):
        assert merge_per_page({'per_page': 'many'}) == {'per_page': 0}

    def test_absent_is_noop(self):
        assert merge_per_page({}) == {}


class TestOrderByNormalizer:
    """Test sort field and direction normalization."""

    def test_lowercases_and_defaults_direction(self):
        assert merge_order_by({'orderBy': 'NAME'}) == {'orderBy': 'name', 'sortedBy': 'asc'}

    def test_existing_direction_lowercased(self):
        result = merge_order_by({'orderBy': 'id', 'sortedBy': 'DESC'})
        assert result['sortedBy'] == 'desc'

    def test_direction_untouched_without_order_field(self):
        assert merge_order_by({'sortedBy': 'DESC'}) == {'sortedBy': 'DESC'}


class TestUserNormalizers:
    """Test role coercion and empty-password removal."""

    def test_roles_coerced_and_filtered_in_order(self):
        result = prepare_roles({'roles': ['2', '-1', 'abc', '3']})
        assert result['roles'] == [2, 3]

    def test_role_mapping_values_used_in_order(self):
        result = prepare_roles({'roles': {'b': '3', 'a': '1', 'c': 'x'}})
        assert result['roles'] == [3, 1]

    def test_non_list_roles_untouched(self):
        assert prepare_roles({'roles': '2'}) == {'roles': '2'}

    def test_empty_password_dropped_on_update(self):
        result = prepare_password({'name': 'a', 'password': ''}, OperationKind.UPDATE)
        assert 'password' not in result
        assert result['name'] == 'a'

    def test_null_password_dropped_on_update(self):
        assert 'password' not in prepare_password({'password': None}, OperationKind.UPDATE)

    def test_empty_password_kept_on_create(self):
        result = prepare_password({'password': ''}, OperationKind.CREATE)
        assert result == {'password': ''}

    @pytest.mark.parametrize('password', ['   ', '0', ' 0 ', 0])
    def test_blank_or_zero_password_dropped_on_update(self, password):
        assert 'password' not in prepare_password({'password': password}, OperationKind.UPDATE)

    def test_zero_password_kept_on_create(self):
        assert prepare_password({'password': '0'}, OperationKind.CREATE) == {'password': '0'}

    def test_non_empty_password_kept_on_update(self):
        result = prepare_password({'password': 'new-secret'}, OperationKind.UPDATE)
        assert result['password'] == 'new-secret'


class TestNormalizationPipeline:
    """Test the ordered application of normalizers."""

    def test_raw_input_not_mutated(self):
        raw = {'roles': ['1', 'x'], 'per_page': '10', 'password': ''}
        snapshot = {'roles': ['1', 'x'], 'per_page': '10', 'password': ''}
        apply_normalizers(raw, USER_NORMALIZERS, OperationKind.UPDATE)
        assert raw == snapshot

    def test_idempotent(self):
        raw = {
            'search': '<i>bob</i>',
            'per_page': '30x',
            'orderBy': 'USERNAME',
            'roles': ['3', '0', '1'],
            'password': '',
        }
        once = apply_normalizers(raw, USER_NORMALIZERS, OperationKind.UPDATE)
        twice = apply_normalizers(once, USER_NORMALIZERS, OperationKind.UPDATE)
        assert once == twice

    def test_strings_trimmed_other_values_kept(self):
        raw = {'per_page': ' 10 ', 'name': '  Bob  ', 'extra': {'a': 1}}
        result = apply_normalizers(raw, BASE_NORMALIZERS)
        assert result['name'] == 'Bob'
        assert result['extra'] == {'a': 1}
        assert result['per_page'] == 10


class TestParameterFiltering:
    """Test list parameter extraction and rule-key sanitization."""

    def test_filter_parameters_skips_empty(self):
        data = {'search': '', 'per_page': 10, 'orderBy': 'id', 'name': 'x'}
        assert filter_parameters(data) == {'per_page': 10, 'orderBy': 'id'}

    def test_sanitize_input_keeps_rule_keys(self):
        data = {'search': 'a', 'filter': {'status': 'active'}, 'admin': True}
        result = sanitize_input(data, index_rules())
        assert set(result) == {'search', 'filter'}

    def test_sanitize_input_is_closed(self):
        data = {'search': 'a', 'unknown': 1}
        once = sanitize_input(data, index_rules())
        assert sanitize_input(once, index_rules()) == once
