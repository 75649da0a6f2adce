"""
Exception hierarchy and error response tests.
"""

import pytest

from user_requests.utils.exceptions import (
    AuthorizationError,
    BaseApplicationError,
    ErrorCategory,
    RequestValidationError,
    RuleConfigurationError,
    UnsupportedOperationError,
    ValidationError,
    format_error_response,
)


class TestRequestValidationError:
    """Test the request validation failure."""

    def test_status_and_message(self):
        error = RequestValidationError({'username': ['already taken']})
        assert error.http_status == 422
        assert error.message == 'The given data was invalid.'
        assert error.category is ErrorCategory.VALIDATION
        assert isinstance(error, ValidationError)

    def test_formatted_errors(self):
        error = RequestValidationError({'username': ['already taken']})
        assert error.errors == [
            {'field': 'username', 'messages': ['already taken'], 'first_message': 'already taken'}
        ]

    def test_to_dict(self):
        error = RequestValidationError({'name': ['a'], 'roles': ['b']})
        payload = error.to_dict()
        assert payload['details']['field_errors'] == ['name', 'roles']
        assert [entry['field'] for entry in payload['errors']] == ['name', 'roles']

    def test_plain_validation_error_is_bad_request(self):
        assert ValidationError().http_status == 400


class TestOtherErrors:
    """Test authorization, configuration and programming errors."""

    def test_authorization_error(self):
        error = AuthorizationError()
        assert error.http_status == 403
        assert error.message == 'Forbidden'
        assert error.category is ErrorCategory.AUTHORIZATION

    def test_rule_configuration_error_hides_details(self):
        error = RuleConfigurationError("Unknown validation rule 'x'", rule='x')
        payload = error.to_dict()
        assert error.http_status == 500
        assert payload['message'] == 'An internal error occurred'
        assert 'details' not in payload
        assert error.details == {'rule': 'x'}

    def test_unsupported_operation_is_value_error(self):
        error = UnsupportedOperationError("Invalid operation 'list' for DTO conversion")
        assert isinstance(error, ValueError)
        assert not isinstance(error, BaseApplicationError)

    def test_correlation_ids_unique(self):
        assert AuthorizationError().correlation_id != AuthorizationError().correlation_id


class TestFormatErrorResponse:
    """Test generic error response formatting."""

    def test_application_error(self):
        payload = format_error_response(AuthorizationError())
        assert payload['code'] == 'AuthorizationError'
        assert payload['message'] == 'Forbidden'

    def test_unexpected_error(self):
        payload = format_error_response(KeyError('secret'))
        assert payload['error'] is True
        assert payload['code'] == 'KeyError'
        assert payload['message'] == 'An unexpected error occurred'
        assert 'secret' not in payload['message']

    def test_debug_app_exposes_details(self, app):
        # the testing configuration runs with DEBUG enabled
        payload = RuleConfigurationError('bad rule', rule='x').to_dict()
        assert payload['details'] == {'rule': 'x'}

    @pytest.mark.parametrize('error_class', [AuthorizationError, RuleConfigurationError])
    def test_timestamps_present(self, error_class):
        assert error_class().timestamp
