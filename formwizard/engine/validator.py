"""Field validation for a single step submission.

Everything here is a pure function of its inputs. The controller calls
`extract_step_values` on the raw submission, `validate_step` on the result,
and only then `compose_step_data` to build what gets persisted.
"""

from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, Iterable, List, Mapping, Optional
from .errors import StepValidationError
from .schema import FormField


DATE_PARTS = ('day', 'month', 'year')

# Accepted raw key shapes for date components, e.g. dob-day, dob[day], dob_day
DATE_KEY_FORMATS = ('{name}-{part}', '{name}[{part}]', '{name}_{part}')


@dataclass
class ValidationResult:
    """Outcome of validating a step."""

    errors: Dict[str, str] = dataclass_field(default_factory=dict)
    error_summary: List[Dict[str, str]] = dataclass_field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def as_context(self) -> Optional[Dict[str, Any]]:
        """Render-ready error block, or None when valid."""
        if self.is_valid:
            return None
        return {'input_errors': dict(self.errors), 'error_summary': list(self.error_summary)}


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if value is None:
        return None
    return str(value).strip()


def _date_components(name: str, raw: Mapping[str, Any]) -> Optional[Dict[str, str]]:
    nested = raw.get(name)
    if isinstance(nested, Mapping):
        return {part: _clean(nested.get(part)) or '' for part in DATE_PARTS}

    for key_format in DATE_KEY_FORMATS:
        keys = {part: key_format.format(name=name, part=part) for part in DATE_PARTS}
        if any(key in raw for key in keys.values()):
            return {part: _clean(raw.get(key)) or '' for part, key in keys.items()}

    if isinstance(nested, str):
        # Already composed, e.g. when re-validating stored data
        return split_date(nested)
    return None


def split_date(value: str) -> Optional[Dict[str, str]]:
    """
    Split a composed YYYY-MM-DD value into components.

    Examples:
        >>> split_date('1990-03-05')
        {'day': '5', 'month': '3', 'year': '1990'}
    """
    parts = value.strip().split('-')
    if len(parts) != 3 or not all(parts):
        return None
    year, month, day = parts
    return {
        'day': str(int(day)) if day.isdigit() else day,
        'month': str(int(month)) if month.isdigit() else month,
        'year': year,
    }


def compose_date(components: Mapping[str, str]) -> str:
    """
    Join day, month and year into YYYY-MM-DD.

    Examples:
        >>> compose_date({'day': '5', 'month': '3', 'year': '1990'})
        '1990-03-05'
    """
    return f"{components['year']}-{components['month'].zfill(2)}-{components['day'].zfill(2)}"


def extract_step_values(fields: Iterable[FormField], raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Pick a step's values out of a raw submission.

    Strings are trimmed, checkbox answers are always lists and date fields
    become a {day, month, year} mapping. Keys that do not belong to the step
    (including the action) are dropped.

    Args:
        fields: The step's fields
        raw: Submitted form body

    Returns:
        Values keyed by field name; fields absent from the submission are omitted
    """
    values = {}
    for field in fields:
        if field.type == 'date':
            components = _date_components(field.name, raw)
            if components is not None:
                values[field.name] = components
            continue

        if field.name not in raw:
            if field.type == 'checkboxes':
                # Browsers omit unticked checkbox groups entirely
                values[field.name] = []
            continue

        value = _clean(raw[field.name])
        if field.type == 'checkboxes' and isinstance(value, str):
            value = [value] if value else []
        values[field.name] = value
    return values


def _is_blank(field: FormField, value: Any) -> bool:
    if value is None:
        return True
    if field.type == 'date':
        if isinstance(value, Mapping):
            return not all(str(value.get(part) or '').strip() for part in DATE_PARTS)
        return not str(value).strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return not str(value).strip()


def _error_href(field: FormField) -> str:
    if field.type == 'date':
        return f"#{field.name}-day"
    return f"#{field.name}"


def validate_step(fields: Iterable[FormField], values: Mapping[str, Any]) -> ValidationResult:
    """
    Check required fields are answered.

    Optional fields are never type-checked. Errors are listed in field
    declaration order so the summary reads top to bottom like the page.

    Args:
        fields: The step's fields, in declaration order
        values: Output of extract_step_values

    Returns:
        ValidationResult with per-field messages and the ordered summary
    """
    result = ValidationResult()
    for field in fields:
        if not field.required:
            continue
        if _is_blank(field, values.get(field.name)):
            message = f"{field.question} is required"
            result.errors[field.name] = message
            result.error_summary.append({'text': message, 'href': _error_href(field)})
    return result


def ensure_valid(fields: Iterable[FormField], values: Mapping[str, Any]) -> None:
    """
    Raises:
        StepValidationError: If any required field is blank
    """
    fields = list(fields)
    result = validate_step(fields, values)
    if not result.is_valid:
        raise StepValidationError(result)


def compose_step_data(fields: Iterable[FormField], values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build the mapping persisted for a valid step.

    Complete dates collapse to one YYYY-MM-DD value. Blank optional answers
    are omitted.
    """
    data = {}
    for field in fields:
        value = values.get(field.name)
        if _is_blank(field, value):
            continue
        if field.type == 'date' and isinstance(value, Mapping):
            data[field.name] = compose_date(value)
        elif isinstance(value, (list, tuple)):
            data[field.name] = list(value)
        else:
            data[field.name] = value
    return data


def prefill_values(fields: Iterable[FormField], data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Values to pre-populate a step's inputs with.

    Stored dates are split back into components for the three date inputs.
    """
    values = {}
    for field in fields:
        if field.name not in data:
            continue
        value = data[field.name]
        if field.type == 'date' and isinstance(value, str):
            value = split_date(value) or {part: '' for part in DATE_PARTS}
        values[field.name] = value
    return values
