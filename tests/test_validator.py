"""Tests for step value extraction and validation."""

import pytest
from formwizard.engine.errors import StepValidationError
from formwizard.engine.schema import FormField
from formwizard.engine.validator import (
    compose_date,
    compose_step_data,
    ensure_valid,
    extract_step_values,
    prefill_values,
    split_date,
    validate_step,
)


@pytest.fixture
def fields():
    return [
        FormField(name='full_name', question='Full name', type='text', required=True),
        FormField(name='dob', question='Date of birth', type='date', required=True),
        FormField(name='contact', question='Contact', type='checkboxes', required=True,
                  available_options=['email', 'phone']),
        FormField(name='notes', question='Notes', type='textarea'),
    ]


class TestExtractStepValues:

    def test_trims_and_drops_foreign_keys(self, fields):
        values = extract_step_values(fields, {
            'full_name': '  Ada  ',
            'dob-day': '5', 'dob-month': '3', 'dob-year': '1990',
            'contact': ['email', ' '],
            'action': 'next',
            'csrf': 'token',
        })

        assert values == {
            'full_name': 'Ada',
            'dob': {'day': '5', 'month': '3', 'year': '1990'},
            'contact': ['email'],
        }

    @pytest.mark.parametrize('raw', [
        {'dob-day': '5', 'dob-month': '3', 'dob-year': '1990'},
        {'dob[day]': '5', 'dob[month]': '3', 'dob[year]': '1990'},
        {'dob_day': '5', 'dob_month': '3', 'dob_year': '1990'},
        {'dob': {'day': '5', 'month': '3', 'year': '1990'}},
        {'dob': '1990-03-05'},
    ])
    def test_date_key_shapes(self, fields, raw):
        assert extract_step_values(fields, raw)['dob'] == {'day': '5', 'month': '3', 'year': '1990'}

    def test_missing_checkbox_group_is_empty_list(self, fields):
        assert extract_step_values(fields, {})['contact'] == []

    def test_single_checkbox_becomes_list(self, fields):
        assert extract_step_values(fields, {'contact': 'phone'})['contact'] == ['phone']


class TestValidateStep:

    def test_valid_step(self, fields):
        values = extract_step_values(fields, {
            'full_name': 'Ada', 'dob': '1990-03-05', 'contact': 'email',
        })
        result = validate_step(fields, values)

        assert result.is_valid
        assert result.as_context() is None

    def test_errors_in_declaration_order(self, fields):
        result = validate_step(fields, extract_step_values(fields, {'dob-day': '5'}))

        assert list(result.errors) == ['full_name', 'dob', 'contact']
        assert result.error_summary == [
            {'text': 'Full name is required', 'href': '#full_name'},
            {'text': 'Date of birth is required', 'href': '#dob-day'},
            {'text': 'Contact is required', 'href': '#contact'},
        ]
        assert result.as_context()['input_errors']['dob'] == 'Date of birth is required'

    def test_optional_fields_never_fail(self, fields):
        result = validate_step(fields[3:], {'notes': ''})

        assert result.is_valid

    def test_ensure_valid_raises(self, fields):
        with pytest.raises(StepValidationError, match='full_name'):
            ensure_valid(fields, {})


class TestComposition:

    def test_split_and_compose_date(self):
        assert split_date('1990-03-05') == {'day': '5', 'month': '3', 'year': '1990'}
        assert split_date('1990-03') is None
        assert compose_date({'day': '5', 'month': '3', 'year': '1990'}) == '1990-03-05'

    def test_compose_step_data_omits_blank_answers(self, fields):
        values = extract_step_values(fields, {
            'full_name': 'Ada', 'dob-day': '5', 'dob-month': '3', 'dob-year': '1990',
            'contact': ['email', 'phone'], 'notes': '  ',
        })

        assert compose_step_data(fields, values) == {
            'full_name': 'Ada',
            'dob': '1990-03-05',
            'contact': ['email', 'phone'],
        }

    def test_prefill_splits_stored_dates(self, fields):
        values = prefill_values(fields, {'full_name': 'Ada', 'dob': '1990-03-05', 'other': 'x'})

        assert values == {'full_name': 'Ada', 'dob': {'day': '5', 'month': '3', 'year': '1990'}}
