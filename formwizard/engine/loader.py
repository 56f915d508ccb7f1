"""FormLoader - loads and validates form definitions from JSON or YAML."""

import logging
import yaml
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from pydantic import ValidationError
from .errors import ConfigurationError, NavigationError
from .schema import WizardForm


logger = logging.getLogger(__name__)

DEFINITION_SUFFIXES = ('.json', '.yaml', '.yml')


def _format_validation_error(error: ValidationError) -> List[str]:
    """Flatten pydantic errors into one readable line per problem."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get('loc', ()))
        message = item.get('msg', '')
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        for part in message.split('; '):
            problems.append(f"{location}: {part}" if location else part)
    return problems


class FormLoader:
    """
    Loads wizard form definitions from a directory.

    `<identifier>.json`, `<identifier>.yaml` and `<identifier>.yml` are
    tried in that order. JSON is parsed with the YAML loader, which accepts it
    as a subset.
    """

    def __init__(self, base_path: Optional[Path] = None):
        """
        Initialize loader.

        Args:
            base_path: Directory holding form definitions (default: ./forms)
        """
        if base_path is None:
            base_path = Path.cwd() / "forms"
        self.base_path = Path(base_path)

    def definition_path(self, identifier: str) -> Path:
        """
        Find the file holding a form definition.

        Raises:
            ConfigurationError: If no definition file exists
        """
        for suffix in DEFINITION_SUFFIXES:
            candidate = self.base_path / f"{identifier}{suffix}"
            if candidate.exists():
                return candidate
        raise ConfigurationError(f"Form definition not found: {self.base_path / identifier}")

    def available(self) -> List[str]:
        """List identifiers of all definitions under base_path."""
        if not self.base_path.is_dir():
            return []
        return sorted({
            path.stem for path in self.base_path.iterdir()
            if path.suffix in DEFINITION_SUFFIXES
        })

    def load(self, identifier: str) -> WizardForm:
        """
        Load a form definition.

        Args:
            identifier: Form id (file name without suffix)

        Returns:
            Validated, immutable WizardForm

        Raises:
            ConfigurationError: If the file is missing, unparsable, or the
                definition is structurally invalid or inconsistent
        """
        path = self.definition_path(identifier)

        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Cannot parse form definition {path}", [str(e)]) from e

        return self.parse(data, source=str(path))

    def parse(self, data, source: str = "<memory>") -> WizardForm:
        """Validate already-parsed definition data."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid form definition {source}", ["top level must be a mapping"])

        try:
            form = WizardForm(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid form definition {source}", _format_validation_error(e)) from e

        logger.debug(f"Loaded form '{form.title}' from {source} with {form.step_count} steps")
        return form


class FormRegistry:
    """
    Forms loaded once at startup and shared by every request.

    Loading everything up front makes a broken definition fail the process
    instead of a request.
    """

    def __init__(self, forms: Dict[str, WizardForm]):
        self._forms = dict(forms)

    @classmethod
    def load(cls, loader: FormLoader, identifiers: Optional[Iterable[str]] = None) -> 'FormRegistry':
        """
        Load the given forms, or every definition the loader can find.

        Raises:
            ConfigurationError: On the first invalid definition
        """
        if identifiers is None:
            identifiers = loader.available()
        forms = {identifier: loader.load(identifier) for identifier in identifiers}
        logger.info(f"Loaded {len(forms)} form definitions from {loader.base_path}")
        return cls(forms)

    def __contains__(self, form_id: str) -> bool:
        return form_id in self._forms

    def __len__(self) -> int:
        return len(self._forms)

    def ids(self) -> List[str]:
        return list(self._forms)

    def get(self, form_id: str) -> WizardForm:
        """
        Get a loaded form.

        Raises:
            NavigationError: If the form id is unknown (404)
        """
        try:
            return self._forms[form_id]
        except KeyError:
            raise NavigationError(f"Form not found: {form_id}", status=404) from None
