"""Wizard controller - handles one request at a time.

State machine per (session, form):

    AwaitingStep(n) --GET--> render step n, prefilled from stored answers
    AwaitingStep(n) --POST--> validate
        invalid  -> re-render step n (400) with errors and the submitted values
        valid    -> persist step n -> route
                    -> AwaitingStep(m)  redirect to step m
                    -> Completed        final record written, redirect to success
                    -> Terminated       termination step submitted, redirect to exit

GET of step 1 starts over and clears prior state for the form. Nothing is
written to the session before validation passes.
"""

import logging
import re
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, List, Mapping, Optional
from .errors import NavigationError
from .loader import FormRegistry
from .navigator import (
    OUTCOME_EXIT,
    OUTCOME_SUCCESS,
    PREVIOUS_ACTION,
    NavigationOutcome,
    NavigationResolver,
    routing_view,
)
from .options import OptionSource, resolve_step_fields
from .rendering import ERROR_TEMPLATE, STEP_TEMPLATE, SUCCESS_TEMPLATE, Renderer
from .schema import FormField, WizardForm, WizardStep
from .settings import WizardSettings
from .store import SessionStore, StepDataStore
from .validator import compose_step_data, extract_step_values, prefill_values, validate_step


logger = logging.getLogger(__name__)

DEFAULT_STEP = 1
DEFAULT_ACTION = 'next'

STEP_NUMBER_PATTERN = re.compile(r'\s*([+-]?\d+)')

RESPONSE_RENDER = 'render'
RESPONSE_REDIRECT = 'redirect'
RESPONSE_ERROR = 'error'


def parse_step_parameter(value: Any) -> int:
    """
    Parse a step query parameter, defaulting to step 1.

    Leading digits are used and trailing text ignored, like parseInt.

    Examples:
        >>> parse_step_parameter('3')
        3
        >>> parse_step_parameter('2abc')
        2
        >>> parse_step_parameter('abc')
        1
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return DEFAULT_STEP
    match = STEP_NUMBER_PATTERN.match(value)
    if match is None:
        return DEFAULT_STEP
    return int(match.group(1), 10)


@dataclass
class WizardResponse:
    """What the transport layer should send back."""

    kind: str
    status: int = 200
    template: Optional[str] = None
    context: Dict[str, Any] = dataclass_field(default_factory=dict)
    location: Optional[str] = None
    body: Optional[str] = None
    outcome: Optional[NavigationOutcome] = None

    @property
    def is_redirect(self) -> bool:
        return self.kind == RESPONSE_REDIRECT


class WizardController:
    """
    Orchestrates GET step, POST step and the success page.

    Form definitions come from a registry loaded at startup and are never
    modified. All session state goes through StepDataStore.
    """

    def __init__(self, registry: FormRegistry, sessions: SessionStore,
                 renderer: Optional[Renderer] = None,
                 option_source: Optional[OptionSource] = None,
                 settings: Optional[WizardSettings] = None):
        """
        Args:
            registry: Forms loaded at startup
            sessions: Session backend
            renderer: Optional template renderer; when set, responses carry a body
            option_source: Optional source for API-backed field options
            settings: Paths used for redirects (default: from environment)
        """
        self.registry = registry
        self.sessions = sessions
        self.renderer = renderer
        self.option_source = option_source
        self.settings = settings or WizardSettings.from_env()
        self.resolvers = {form_id: NavigationResolver(registry.get(form_id)) for form_id in registry.ids()}

    # URLs

    def step_url(self, form_id: str, step_number: int, resume: bool = False) -> str:
        url = f"{self.settings.base_path}/{form_id}?step={step_number}"
        if resume and step_number == DEFAULT_STEP:
            url += "&resume=1"
        return url

    def success_url(self, form_id: str) -> str:
        return f"{self.settings.base_path}/{form_id}/success"

    def exit_url(self) -> str:
        return self.settings.resolved_exit_path

    # Helpers

    def _locate(self, form_id: str, step_number: int):
        form = self.registry.get(form_id)
        step = form.get_step(step_number)
        if step is None:
            raise NavigationError(f"Invalid step number: {step_number}")
        return form, step

    def _store(self, form: WizardForm) -> StepDataStore:
        return StepDataStore(self.sessions, form.step_count)

    def _respond(self, template: str, context: Dict[str, Any], status: int = 200) -> WizardResponse:
        body = self.renderer.render(template, context) if self.renderer else None
        return WizardResponse(kind=RESPONSE_RENDER, status=status, template=template,
                              context=context, body=body)

    def _error(self, error: NavigationError) -> WizardResponse:
        logger.info(f"Client error: {error}")
        context = {'message': str(error), 'status': error.status}
        body = self.renderer.render(ERROR_TEMPLATE, context) if self.renderer else None
        return WizardResponse(kind=RESPONSE_ERROR, status=error.status, template=ERROR_TEMPLATE,
                              context=context, body=body)

    def _redirect(self, location: str, outcome: Optional[NavigationOutcome] = None) -> WizardResponse:
        return WizardResponse(kind=RESPONSE_REDIRECT, status=302, location=location, outcome=outcome)

    def _step_context(self, form_id: str, form: WizardForm, step: WizardStep, step_number: int,
                      fields: List[FormField], form_data: Dict[str, Any],
                      errors: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        resolver = self.resolvers[form_id]
        terminal = step.is_termination_step
        is_last_regular = resolver.next_sequential(step_number) is None
        return {
            'form_id': form_id,
            'form_title': form.title,
            'form_description': form.description,
            'current_step': step_number,
            'total_steps': form.step_count,
            'step_id': step.id,
            'step_title': step.title,
            'step_description': step.description,
            'button_text': step.button_text,
            'fields': [f.model_dump(mode='json') for f in fields],
            'form_data': form_data,
            'errors': errors,
            'is_first_step': step_number == DEFAULT_STEP,
            'is_last_step': step_number == form.step_count,
            'is_termination_step': terminal,
            'navigation': {
                'allow_previous': step_number > DEFAULT_STEP and not terminal,
                'allow_next': not terminal and not is_last_regular,
                'allow_submit': not terminal and is_last_regular,
                'allow_exit': terminal,
            },
        }

    # Operations

    def list_forms(self) -> List[Dict[str, Any]]:
        """Summaries of every loaded form."""
        forms = []
        for form_id in self.registry.ids():
            form = self.registry.get(form_id)
            forms.append({'id': form_id, 'title': form.title, 'description': form.description})
        return forms

    def get_step(self, session_id: str, form_id: str, step_number: int,
                 resume: bool = False) -> WizardResponse:
        """
        Render a step, prefilled from answers stored so far.

        Requesting step 1 without `resume` starts the wizard over.
        """
        try:
            form, step = self._locate(form_id, step_number)
        except NavigationError as e:
            return self._error(e)

        store = self._store(form)
        if step_number == DEFAULT_STEP and not resume:
            store.reset(session_id, form_id)
        store.mark_visited(session_id, form_id, step_number)

        fields = resolve_step_fields(step.fields, self.option_source)
        stored = store.consolidated(session_id, form_id)
        context = self._step_context(form_id, form, step, step_number, fields,
                                     prefill_values(fields, stored), None)
        return self._respond(STEP_TEMPLATE, context)

    def post_step(self, session_id: str, form_id: str, step_number: int,
                  submission: Mapping[str, Any]) -> WizardResponse:
        """
        Validate, persist and route a step submission.

        Args:
            session_id: Session identifier
            form_id: Form identifier
            step_number: 1-based step being submitted
            submission: Raw form body, including the 'action' key

        Returns:
            A 400 render with errors, a redirect, or a client error response
        """
        try:
            form, step = self._locate(form_id, step_number)
        except NavigationError as e:
            return self._error(e)

        resolver = self.resolvers[form_id]
        store = self._store(form)
        action = str(submission.get('action') or DEFAULT_ACTION).strip().lower()

        if action == PREVIOUS_ACTION and not step.is_termination_step:
            outcome = resolver.destination({}, step_number, action, store.visited(session_id, form_id))
            return self._redirect(self.step_url(form_id, outcome.step_number, resume=True), outcome)

        fields = resolve_step_fields(step.fields, self.option_source)
        values = extract_step_values(fields, submission)
        result = validate_step(fields, values)

        if not result.is_valid:
            logger.info(f"Validation failed on step {step_number} of '{form_id}': {list(result.errors)}")
            context = self._step_context(form_id, form, step, step_number, fields, values,
                                         result.as_context())
            return self._respond(STEP_TEMPLATE, context, status=400)

        store.save_step(session_id, form_id, step_number, compose_step_data(fields, values))

        view = routing_view(form, store.step_slots(session_id, form_id, up_to=step_number))
        outcome = resolver.destination(view, step_number, action, store.visited(session_id, form_id))
        logger.debug(f"Step {step_number} of '{form_id}' ({action}) -> {outcome}")

        if outcome.kind == OUTCOME_SUCCESS:
            store.finalize(session_id, form_id)
            return self._redirect(self.success_url(form_id), outcome)
        if outcome.kind == OUTCOME_EXIT:
            return self._redirect(self.exit_url(), outcome)
        return self._redirect(self.step_url(form_id, outcome.step_number, resume=True), outcome)

    def get_success(self, session_id: str, form_id: str) -> WizardResponse:
        """Render the summary of a completed wizard."""
        try:
            form = self.registry.get(form_id)
        except NavigationError as e:
            return self._error(e)

        record = self._store(form).final_record(session_id, form_id)
        summary = [
            {'name': f.name, 'question': f.question, 'value': record[f.name]}
            for f in form.all_fields() if f.name in record
        ]
        context = {
            'form_id': form_id,
            'form_title': form.title,
            'submitted_data': record,
            'summary': summary,
            'fields': [f.model_dump(mode='json') for f in form.all_fields()],
        }
        return self._respond(SUCCESS_TEMPLATE, context)
