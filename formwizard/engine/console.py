"""Console driver - walks a wizard through the controller in a terminal.

Interactive mode prompts for every field via a PromptRunner. Headless mode
takes pre-provided answers keyed by step id and fails fast on validation
errors, which makes it useful for exercising a form definition in tests.
"""

import uuid
from typing import Any, Dict, List, Optional
from .controller import RESPONSE_ERROR, RESPONSE_REDIRECT, WizardController, WizardResponse
from .errors import StepValidationError, WizardError
from .navigator import OUTCOME_EXIT, OUTCOME_SUCCESS
from .runner import PromptRunner
from .validator import DATE_PARTS, ValidationResult


MAX_REQUESTS = 200


class ConsoleWizard:
    """Drives one wizard session from first step to success or exit."""

    def __init__(self, controller: WizardController, runner: PromptRunner):
        self.controller = controller
        self.runner = runner

    def run(self, form_id: str, answers: Optional[Dict[str, Dict[str, Any]]] = None,
            session_id: Optional[str] = None) -> WizardResponse:
        """
        Run the wizard to completion.

        Args:
            form_id: Form to run
            answers: {step_id: submission} for HEADLESS mode. If None: INTERACTIVE
            session_id: Session to use (default: a fresh one)

        Returns:
            The final response: success page, exit redirect, or client error

        Raises:
            StepValidationError: In headless mode, when a step's answers are invalid
        """
        headless = answers is not None
        answers = answers or {}
        session_id = session_id or uuid.uuid4().hex

        response = self.controller.get_step(session_id, form_id, 1)
        for _ in range(MAX_REQUESTS):
            if response.kind == RESPONSE_ERROR:
                self.runner.display(f"Error: {response.context.get('message')}")
                return response

            if response.kind == RESPONSE_REDIRECT:
                outcome = response.outcome
                if outcome.kind == OUTCOME_SUCCESS:
                    final = self.controller.get_success(session_id, form_id)
                    self._show_summary(final.context)
                    return final
                if outcome.kind == OUTCOME_EXIT:
                    self.runner.display("This form has ended.")
                    return response
                response = self.controller.get_step(session_id, form_id, outcome.step_number, resume=True)
                continue

            context = response.context
            self._show_step(context)
            if response.status == 400 and headless:
                errors = context['errors']
                raise StepValidationError(ValidationResult(errors=errors['input_errors'],
                                                           error_summary=errors['error_summary']))

            if headless:
                submission = dict(answers.get(context['step_id'], {}))
            else:
                submission = self._prompt_fields(context)
            submission.setdefault('action', 'next')
            response = self.controller.post_step(session_id, form_id, context['current_step'], submission)

        raise WizardError(f"Wizard '{form_id}' did not finish within {MAX_REQUESTS} requests")

    def _show_step(self, context: Dict[str, Any]) -> None:
        self.runner.display("")
        self.runner.display(
            f"Step {context['current_step']} of {context['total_steps']}: {context['step_title']}")
        if context.get('step_description'):
            self.runner.display(context['step_description'])
        errors = context.get('errors')
        if errors:
            self.runner.display("There is a problem:")
            for item in errors['error_summary']:
                self.runner.display(f"  - {item['text']}")

    def _show_options(self, options: List[Dict[str, str]]) -> None:
        self.runner.display("")
        for i, option in enumerate(options, 1):
            self.runner.display(f"  {i}. {option['label']}")
        self.runner.display("")

    @staticmethod
    def _pick(options: List[Dict[str, str]], answer: str) -> str:
        # Accept either the option number or the value itself
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]['value']
        return answer

    def _prompt_fields(self, context: Dict[str, Any]) -> Dict[str, Any]:
        submission = {}
        prefill = context.get('form_data') or {}
        for field in context['fields']:
            name = field['name']
            current = prefill.get(name)
            if field.get('hint'):
                self.runner.display(field['hint'])

            if field['type'] == 'date':
                current = current if isinstance(current, dict) else {}
                self.runner.display(field['question'])
                for part in DATE_PARTS:
                    submission[f"{name}-{part}"] = self.runner.get_input(
                        f"  {part.capitalize()}", current.get(part) or None)
                continue

            options = field.get('available_options') or []
            if options:
                self._show_options(options)

            if field['type'] == 'checkboxes':
                default = ", ".join(current) if isinstance(current, list) else None
                answer = self.runner.get_input(f"{field['question']} (comma separated)", default)
                submission[name] = [self._pick(options, part.strip())
                                    for part in answer.split(',') if part.strip()]
            else:
                answer = self.runner.get_input(field['question'], current or None)
                submission[name] = self._pick(options, answer) if options else answer
        return submission

    def _show_summary(self, context: Dict[str, Any]) -> None:
        self.runner.display("")
        self.runner.display(f"{context['form_title']} - submitted")
        for item in context['summary']:
            value = item['value']
            if isinstance(value, list):
                value = ", ".join(value)
            self.runner.display(f"  {item['question']}: {value}")
