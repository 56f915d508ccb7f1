"""Error taxonomy for the wizard engine."""

from typing import List, Optional


class WizardError(Exception):
    """Base class for all wizard engine errors."""


class ConfigurationError(WizardError):
    """
    Form definition or environment setting is malformed or inconsistent.

    Raised while loading settings or a form, never per request. Carries every problem
    found so a broken definition can be fixed in one pass.
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = list(problems or [])
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)


class StepValidationError(WizardError):
    """Submitted step data failed field validation."""

    def __init__(self, result):
        self.result = result
        fields = ", ".join(result.errors)
        super().__init__(f"Step validation failed for: {fields}")


class NavigationError(WizardError):
    """Requested form or step does not exist."""

    def __init__(self, message: str, status: int = 400):
        self.status = status
        super().__init__(message)


class UpstreamOptionsError(WizardError):
    """Remote option source could not supply options."""
