"""Shared fixtures for wizard engine tests."""

import json
import pytest
from formwizard.engine.controller import WizardController
from formwizard.engine.loader import FormLoader, FormRegistry
from formwizard.engine.rendering import MockRenderer
from formwizard.engine.schema import WizardForm
from formwizard.engine.settings import WizardSettings
from formwizard.engine.store import InMemorySessionStore


def sample_definition():
    """A six-step definition in the camelCase shape the form builder emits."""
    return {
        "title": "Sample application",
        "description": "A form used by the test suite",
        "steps": [
            {
                "id": "step1",
                "title": "About you",
                "fields": [
                    {"name": "full_name", "question": "Full name", "type": "text", "required": True},
                    {"name": "date_of_birth", "question": "Date of birth", "type": "date", "required": True},
                    {"name": "applying_for_other", "question": "Applying for someone else?",
                     "type": "radio", "required": True, "available_options": ["Yes", "No"]},
                ],
            },
            {
                "id": "step2",
                "title": "Your situation",
                "fields": [
                    {"name": "situation", "question": "Situation", "type": "select", "required": True,
                     "available_options": [{"value": "ok", "text": "Fine"},
                                           {"value": "urgent", "text": "Urgent"},
                                           {"value": "odd", "text": "Something else"}]},
                ],
                "conditionalNavigation": {"situation": {"odd": "not_covered", "default": "step3"}},
            },
            {
                "id": "representative_details",
                "title": "Representative",
                "fields": [
                    {"name": "rep_name", "question": "Their name", "type": "text", "required": True},
                ],
            },
            {
                "id": "step3",
                "title": "Contact",
                "fields": [
                    {"name": "contact", "question": "Contact methods", "type": "checkboxes",
                     "required": True, "available_options": ["email", "phone"]},
                    {"name": "notes", "question": "Notes", "type": "textarea"},
                ],
            },
            {
                "id": "urgent_help",
                "title": "Get help now",
                "isTerminationStep": True,
                "fields": [],
            },
            {
                "id": "not_covered",
                "title": "Not covered",
                "isTerminationStep": True,
                "fields": [],
            },
        ],
        "globalConditionalNavigation": [
            {
                "id": "rep",
                "conditions": [{"stepId": "step1", "fieldName": "applying_for_other", "value": "Yes"}],
                "targetStepId": "representative_details",
            },
            {
                "id": "urgent",
                "conditions": [{"stepId": "step2", "fieldName": "situation", "value": "urgent"}],
                "targetStepId": "urgent_help",
            },
        ],
    }


@pytest.fixture
def definition():
    return sample_definition()


@pytest.fixture
def form(definition):
    return WizardForm(**definition)


@pytest.fixture
def forms_dir(tmp_path, definition):
    """Temporary forms directory holding the sample definition as JSON."""
    path = tmp_path / "forms"
    path.mkdir()
    (path / "sample.json").write_text(json.dumps(definition))
    return path


@pytest.fixture
def sessions():
    return InMemorySessionStore()


@pytest.fixture
def renderer():
    return MockRenderer()


@pytest.fixture
def settings(forms_dir):
    return WizardSettings(forms_path=forms_dir, base_path="/dynamic-forms", exit_path="/dynamic-forms")


@pytest.fixture
def controller(forms_dir, sessions, renderer, settings):
    registry = FormRegistry.load(FormLoader(forms_dir))
    return WizardController(registry, sessions, renderer=renderer, settings=settings)


@pytest.fixture
def step1_answers():
    """Factory for a valid step 1 submission."""
    def build(**overrides):
        answers = {
            "full_name": "Ada Lovelace",
            "date_of_birth-day": "5",
            "date_of_birth-month": "3",
            "date_of_birth-year": "1990",
            "applying_for_other": "No",
            "action": "next",
        }
        answers.update(overrides)
        return answers
    return build
