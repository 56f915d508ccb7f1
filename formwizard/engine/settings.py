"""Runtime settings read from the environment."""

import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from .errors import ConfigurationError


DEFAULT_BASE_PATH = '/dynamic-forms'
DEFAULT_OPTIONS_TIMEOUT = 5.0


class WizardSettings(BaseModel):
    """
    Settings shared by the loader, controller and option source.

    Explicit values always win; `from_env()` only fills in what was not given.
    """

    model_config = ConfigDict(frozen=True)

    forms_path: Path = Field(default_factory=lambda: Path.cwd() / "forms",
                             description="Directory holding form definitions")
    base_path: str = Field(DEFAULT_BASE_PATH, description="URL prefix used for redirects")
    exit_path: Optional[str] = Field(None, description="Redirect target when a termination step ends the wizard")
    api_options_base_url: Optional[str] = Field(None, description="Base URL for remote field options")
    api_options_timeout: float = Field(DEFAULT_OPTIONS_TIMEOUT, gt=0, description="Option fetch timeout in seconds")
    verbose: bool = Field(False, description="Enable debug logging in the CLI")

    @property
    def resolved_exit_path(self) -> str:
        return self.exit_path or self.base_path

    @classmethod
    def from_env(cls, **overrides) -> 'WizardSettings':
        """
        Build settings from FORMWIZARD_* and API_OPTIONS_* variables.

        Args:
            **overrides: Values that take precedence over the environment

        Returns:
            WizardSettings instance

        Raises:
            ConfigurationError: If a variable is malformed or out of range
        """
        values = {}

        forms_path = os.environ.get('FORMWIZARD_FORMS_PATH')
        if forms_path:
            values['forms_path'] = Path(forms_path)

        base_path = os.environ.get('FORMWIZARD_BASE_PATH')
        if base_path:
            values['base_path'] = base_path.rstrip('/') or '/'

        exit_path = os.environ.get('FORMWIZARD_EXIT_PATH')
        if exit_path:
            values['exit_path'] = exit_path

        base_url = os.environ.get('API_OPTIONS_BASE_URL')
        if base_url:
            values['api_options_base_url'] = base_url

        timeout = os.environ.get('API_OPTIONS_TIMEOUT')
        if timeout:
            try:
                values['api_options_timeout'] = float(timeout)
            except ValueError:
                raise ConfigurationError(f"API_OPTIONS_TIMEOUT must be a number of seconds, got {timeout!r}") from None

        if os.environ.get('FORMWIZARD_VERBOSE'):
            values['verbose'] = True

        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return cls(**values)
        except ValidationError as e:
            problems = [f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}" for item in e.errors()]
            raise ConfigurationError("Invalid settings", problems) from e
