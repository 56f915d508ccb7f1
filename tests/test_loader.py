"""Tests for FormLoader - JSON/YAML loading and validation."""

from pathlib import Path
import pytest
from formwizard.engine.errors import ConfigurationError, NavigationError
from formwizard.engine.loader import FormLoader, FormRegistry


FORMS_DIR = Path(__file__).parent.parent / "forms"


@pytest.fixture
def sample_yaml(tmp_path):
    """Create a small YAML definition."""
    spec_content = """
title: Feedback
steps:
  - id: rating
    fields:
      - question: How was it?
        type: radio
        required: true
        available_options: [Good, Bad]
    step_level_navigation:
      how_was_it:
        Bad: complaint
  - id: complaint
    fields:
      - name: details
        question: What went wrong?
        type: textarea
"""
    spec_file = tmp_path / "feedback.yaml"
    spec_file.write_text(spec_content)
    return spec_file


def test_load_yaml_definition(tmp_path, sample_yaml):
    """FormLoader reads YAML and derives missing field names."""
    form = FormLoader(tmp_path).load('feedback')

    assert form.title == 'Feedback'
    assert form.step_count == 2
    assert form.steps[0].fields[0].name == 'how_was_it'
    assert form.steps[0].step_level_navigation == {'how_was_it': {'Bad': 'complaint'}}


def test_load_json_definition(forms_dir):
    form = FormLoader(forms_dir).load('sample')

    assert form.title == 'Sample application'
    assert [rule.id for rule in form.global_navigation_rules] == ['rep', 'urgent']


def test_available_lists_definitions(forms_dir, sample_yaml):
    (forms_dir / "notes.txt").write_text("ignored")
    (forms_dir / "feedback.yml").write_text(sample_yaml.read_text())

    assert FormLoader(forms_dir).available() == ['feedback', 'sample']


def test_available_on_missing_directory(tmp_path):
    assert FormLoader(tmp_path / "nope").available() == []


def test_missing_definition(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        FormLoader(tmp_path).load('ghost')


def test_unparsable_yaml(tmp_path):
    (tmp_path / "broken.yaml").write_text("title: [unclosed\n")

    with pytest.raises(ConfigurationError, match="Cannot parse"):
        FormLoader(tmp_path).load('broken')


def test_top_level_must_be_mapping(tmp_path):
    (tmp_path / "list.yaml").write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError, match="top level must be a mapping"):
        FormLoader(tmp_path).load('list')


def test_every_problem_is_reported(definition):
    """A broken definition reports all dangling references at once."""
    definition['globalConditionalNavigation'][0]['targetStepId'] = 'ghost_target'
    definition['globalConditionalNavigation'][1]['conditions'][0]['stepId'] = 'ghost_step'

    with pytest.raises(ConfigurationError) as exc_info:
        FormLoader().parse(definition, source='sample.json')

    problems = exc_info.value.problems
    assert any("targets non-existent step 'ghost_target'" in p for p in problems)
    assert any("condition on non-existent step 'ghost_step'" in p for p in problems)
    assert 'sample.json' in str(exc_info.value)


def test_choice_field_without_options_is_configuration_error(definition):
    definition['steps'][1]['fields'][0].pop('available_options')

    with pytest.raises(ConfigurationError, match="has no options"):
        FormLoader().parse(definition)


def test_shipped_forms_are_valid():
    """Every definition in forms/ loads cleanly."""
    loader = FormLoader(FORMS_DIR)
    identifiers = loader.available()

    assert 'legal-aid-application' in identifiers
    for identifier in identifiers:
        loader.load(identifier)


class TestFormRegistry:

    def test_load_all(self, forms_dir):
        registry = FormRegistry.load(FormLoader(forms_dir))

        assert len(registry) == 1
        assert 'sample' in registry
        assert registry.ids() == ['sample']
        assert registry.get('sample').title == 'Sample application'

    def test_unknown_form_is_404(self, forms_dir):
        registry = FormRegistry.load(FormLoader(forms_dir))

        with pytest.raises(NavigationError) as exc_info:
            registry.get('ghost')
        assert exc_info.value.status == 404

    def test_broken_definition_fails_startup(self, forms_dir):
        (forms_dir / "broken.yaml").write_text("title: Broken\nsteps: []\n")

        with pytest.raises(ConfigurationError):
            FormRegistry.load(FormLoader(forms_dir))
