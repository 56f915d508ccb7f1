"""Pydantic models for form definitions.

Definitions are parsed once and never mutated afterwards, so every model is
frozen. Configuration files may use either snake_case or the camelCase keys
produced by the form builder.
"""

import re
from typing import Any, Dict, List, Literal, Optional, Tuple
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


FieldType = Literal['text', 'textarea', 'radio', 'checkboxes', 'select', 'date']

CHOICE_FIELD_TYPES = ('radio', 'checkboxes', 'select')

DEFAULT_TARGET_KEY = 'default'

FIELD_NAME_MAX_LENGTH = 50


def generate_field_name(question: str) -> str:
    """
    Derive a field name from its question text.

    Examples:
        >>> generate_field_name("What is your full name?")
        'what_is_your_full_name'
    """
    base = re.sub(r'[^a-z0-9\s]', '', question.lower())
    base = re.sub(r'\s+', '_', base.strip())[:FIELD_NAME_MAX_LENGTH]
    return base or 'field'


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class OptionItem(BaseModel):
    """A selectable (value, label) pair."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    value: str
    label: str = Field(..., validation_alias=_aliases('label', 'text'))

    @model_validator(mode='before')
    @classmethod
    def _from_plain_string(cls, data: Any) -> Any:
        # Plain strings in config use the same text for value and label
        if isinstance(data, str):
            return {'value': data, 'label': data}
        if isinstance(data, (list, tuple)) and len(data) == 2:
            return {'value': data[0], 'label': data[1]}
        if isinstance(data, dict) and 'label' not in data and 'text' not in data and 'value' in data:
            return {**data, 'label': data['value']}
        return data


class ApiOptionsConfig(BaseModel):
    """Where and how to fetch a field's options from a remote API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    endpoint: str = Field(..., description="API endpoint path (e.g., /all)")
    params: Optional[str] = Field(None, description="Query string (e.g., fields=name&status=active)")
    data_path: Optional[str] = Field(None, validation_alias=_aliases('data_path', 'dataPath'),
                                     description="Dot path to the array in the response")
    value_path: str = Field(..., validation_alias=_aliases('value_path', 'valuePath'),
                            description="Dot path to each option's value")
    label_path: str = Field(..., validation_alias=_aliases('label_path', 'labelPath'),
                            description="Dot path to each option's label")


class FormField(BaseModel):
    """A single question on a step."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str = Field(..., description="Unique field name within the step")
    question: str = Field(..., description="Question text shown to the user")
    type: FieldType = Field(..., description="Field type")
    required: bool = False
    available_options: Tuple[OptionItem, ...] = Field(
        (), validation_alias=_aliases('available_options', 'availableOptions', 'options'))
    hint: Optional[str] = None
    use_api_options: bool = Field(False, validation_alias=_aliases('use_api_options', 'useApiOptions'))
    api_config: Optional[ApiOptionsConfig] = Field(None, validation_alias=_aliases('api_config', 'apiConfig'))

    @model_validator(mode='before')
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get('name') and data.get('question'):
            return {**data, 'name': generate_field_name(data['question'])}
        return data

    @model_validator(mode='after')
    def _choice_fields_have_options(self) -> 'FormField':
        if self.type in CHOICE_FIELD_TYPES and not self.available_options and not self.uses_api_options:
            raise ValueError(f"{self.type} field '{self.name}' has no options and no API config")
        return self

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_FIELD_TYPES

    @property
    def uses_api_options(self) -> bool:
        return self.use_api_options and self.api_config is not None


class WizardStep(BaseModel):
    """
    One page of the wizard.

    `step_level_navigation` is the legacy per-step routing map:
    field name -> field value (or 'default') -> target step id.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str = Field(..., description="Unique step identifier")
    title: str = ""
    description: Optional[str] = None
    button_text: Optional[str] = Field(None, validation_alias=_aliases('button_text', 'buttonText'))
    fields: Tuple[FormField, ...] = ()
    is_termination_step: bool = Field(
        False, validation_alias=_aliases('is_termination_step', 'isTerminationStep', 'isTerminalStep'))
    step_level_navigation: Dict[str, Dict[str, str]] = Field(
        default_factory=dict,
        validation_alias=_aliases('step_level_navigation', 'stepLevelNavigation', 'conditionalNavigation'))

    def get_field(self, name: str) -> Optional[FormField]:
        for field in self.fields:
            if field.name == name:
                return field
        return None


class NavigationCondition(BaseModel):
    """`field_name` on step `step_id` must equal `value`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    step_id: str = Field(..., validation_alias=_aliases('step_id', 'stepId'))
    field_name: str = Field(..., validation_alias=_aliases('field_name', 'fieldName'))
    value: str


class NavigationRule(BaseModel):
    """Global rule: when every condition holds, go to `target_step_id`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    conditions: Tuple[NavigationCondition, ...] = Field(..., min_length=1)
    target_step_id: str = Field(..., validation_alias=_aliases('target_step_id', 'targetStepId'))


class WizardForm(BaseModel):
    """
    Complete wizard definition.

    Step order defines default sequential progression. Cross references
    between steps, fields and rules are checked here, so a form that
    constructs successfully can be routed without runtime lookups failing.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    title: str
    description: Optional[str] = None
    steps: Tuple[WizardStep, ...] = Field(..., min_length=1)
    global_navigation_rules: Tuple[NavigationRule, ...] = Field(
        (), validation_alias=_aliases('global_navigation_rules', 'globalNavigationRules',
                                      'globalConditionalNavigation'))

    @model_validator(mode='after')
    def _check_integrity(self) -> 'WizardForm':
        problems = self.integrity_problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def integrity_problems(self) -> List[str]:
        """Collect every dangling or duplicate reference in the definition."""
        problems = []
        step_ids = [step.id for step in self.steps]
        seen = set()
        for step_id in step_ids:
            if step_id in seen:
                problems.append(f"Duplicate step id '{step_id}'")
            seen.add(step_id)

        steps = {step.id: step for step in self.steps}

        for step in self.steps:
            names = [field.name for field in step.fields]
            duplicates = sorted({name for name in names if names.count(name) > 1})
            for name in duplicates:
                problems.append(f"Step '{step.id}' has duplicate field name '{name}'")

            for field_name, value_map in step.step_level_navigation.items():
                if step.get_field(field_name) is None:
                    problems.append(
                        f"Step '{step.id}' has navigation for non-existent field '{field_name}'")
                for value, target in value_map.items():
                    if target not in steps:
                        problems.append(
                            f"Step '{step.id}' references non-existent target step '{target}'")

        rule_ids = set()
        for rule in self.global_navigation_rules:
            if rule.id in rule_ids:
                problems.append(f"Duplicate navigation rule id '{rule.id}'")
            rule_ids.add(rule.id)
            if rule.target_step_id not in steps:
                problems.append(
                    f"Rule '{rule.id}' targets non-existent step '{rule.target_step_id}'")
            for condition in rule.conditions:
                condition_step = steps.get(condition.step_id)
                if condition_step is None:
                    problems.append(
                        f"Rule '{rule.id}' has condition on non-existent step '{condition.step_id}'")
                elif condition_step.get_field(condition.field_name) is None:
                    problems.append(
                        f"Rule '{rule.id}' has condition on non-existent field "
                        f"'{condition.step_id}.{condition.field_name}'")

        return problems

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def is_valid_step_number(self, step_number: int) -> bool:
        return 1 <= step_number <= len(self.steps)

    def get_step(self, step_number: int) -> Optional[WizardStep]:
        """Get a step by its 1-based number."""
        if not self.is_valid_step_number(step_number):
            return None
        return self.steps[step_number - 1]

    def get_step_by_id(self, step_id: str) -> Optional[WizardStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def step_number(self, step_id: str) -> Optional[int]:
        """Get the 1-based number of a step, or None if unknown."""
        for index, step in enumerate(self.steps, 1):
            if step.id == step_id:
                return index
        return None

    def all_fields(self) -> List[FormField]:
        return [field for step in self.steps for field in step.fields]

    def step_map(self) -> Dict[str, Dict[str, Any]]:
        """Summarise the step graph, keyed by step id."""
        step_map = {}
        for index, step in enumerate(self.steps, 1):
            targets = [
                target
                for value_map in step.step_level_navigation.values()
                for target in value_map.values()
            ]
            targets.extend(
                rule.target_step_id
                for rule in self.global_navigation_rules
                if any(condition.step_id == step.id for condition in rule.conditions)
            )
            step_map[step.id] = {
                'index': index,
                'title': step.title,
                'field_count': len(step.fields),
                'is_termination_step': step.is_termination_step,
                'targets': sorted(set(targets)),
            }
        return step_map
