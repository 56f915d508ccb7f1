"""Wizard engine - config-driven multi-step forms with conditional routing."""

from .controller import WizardController, WizardResponse, parse_step_parameter
from .errors import (
    ConfigurationError,
    NavigationError,
    StepValidationError,
    UpstreamOptionsError,
    WizardError,
)
from .loader import FormLoader, FormRegistry
from .navigator import GlobalRule, NavigationOutcome, NavigationResolver, RoutingRule, StepFieldRule
from .options import HttpOptionSource, MockOptionSource, OptionSource
from .rendering import JsonRenderer, MockRenderer, Renderer
from .schema import FormField, NavigationCondition, NavigationRule, OptionItem, WizardForm, WizardStep
from .settings import WizardSettings
from .store import InMemorySessionStore, SessionStore, StepDataStore
from .validator import ValidationResult, validate_step

__all__ = [
    'WizardController',
    'WizardResponse',
    'parse_step_parameter',
    'WizardError',
    'ConfigurationError',
    'NavigationError',
    'StepValidationError',
    'UpstreamOptionsError',
    'FormLoader',
    'FormRegistry',
    'RoutingRule',
    'GlobalRule',
    'StepFieldRule',
    'NavigationOutcome',
    'NavigationResolver',
    'OptionSource',
    'HttpOptionSource',
    'MockOptionSource',
    'Renderer',
    'JsonRenderer',
    'MockRenderer',
    'FormField',
    'OptionItem',
    'NavigationCondition',
    'NavigationRule',
    'WizardForm',
    'WizardStep',
    'WizardSettings',
    'SessionStore',
    'InMemorySessionStore',
    'StepDataStore',
    'ValidationResult',
    'validate_step',
]
