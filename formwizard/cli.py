"""Command line entry point: validate, inspect and run form definitions."""

import argparse
import logging
import sys
from pathlib import Path
import yaml
from formwizard.engine.console import ConsoleWizard
from formwizard.engine.controller import WizardController
from formwizard.engine.errors import ConfigurationError, StepValidationError
from formwizard.engine.loader import FormLoader, FormRegistry
from formwizard.engine.options import HttpOptionSource
from formwizard.engine.rendering import JsonRenderer
from formwizard.engine.runner import PromptRunner, RealPromptRunner
from formwizard.engine.settings import WizardSettings
from formwizard.engine.store import InMemorySessionStore


logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_validate(args, settings: WizardSettings, runner: PromptRunner) -> int:
    loader = FormLoader(settings.forms_path)
    identifiers = args.forms or loader.available()
    if not identifiers:
        runner.display(f"No form definitions found in {loader.base_path}")
        return 1

    failed = 0
    for identifier in identifiers:
        try:
            form = loader.load(identifier)
        except ConfigurationError as e:
            failed += 1
            runner.display(f"FAIL {identifier}")
            for problem in e.problems or [str(e)]:
                runner.display(f"  - {problem}")
            continue
        runner.display(f"OK   {identifier}: {form.step_count} steps, "
                       f"{len(form.global_navigation_rules)} global rules")
    return 1 if failed else 0


def cmd_map(args, settings: WizardSettings, runner: PromptRunner) -> int:
    form = FormLoader(settings.forms_path).load(args.form)
    runner.display(yaml.safe_dump(form.step_map(), sort_keys=False).rstrip())
    return 0


def cmd_run(args, settings: WizardSettings, runner: PromptRunner) -> int:
    registry = FormRegistry.load(FormLoader(settings.forms_path), [args.form])
    option_source = None
    if settings.api_options_base_url:
        option_source = HttpOptionSource(settings.api_options_base_url, timeout=settings.api_options_timeout)

    controller = WizardController(registry, InMemorySessionStore(), renderer=JsonRenderer(),
                                  option_source=option_source, settings=settings)

    answers = None
    if args.answers:
        with open(args.answers, 'r') as f:
            # Answers are form input, so every scalar stays a string (no Yes/No booleans)
            answers = yaml.load(f, Loader=yaml.BaseLoader) or {}

    try:
        response = ConsoleWizard(controller, runner).run(args.form, answers=answers)
    except StepValidationError as e:
        for item in e.result.error_summary:
            runner.display(f"Error: {item['text']}")
        return 1
    return 0 if response.kind != 'error' else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="formwizard", description="Config-driven form wizard engine")
    parser.add_argument("--forms-path", type=Path, help="Directory of form definitions")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check form definitions")
    validate.add_argument("forms", nargs="*", help="Form ids (default: all)")
    validate.set_defaults(handler=cmd_validate)

    step_map = subparsers.add_parser("map", help="Print the step graph of a form")
    step_map.add_argument("form")
    step_map.set_defaults(handler=cmd_map)

    run = subparsers.add_parser("run", help="Fill in a form in the terminal")
    run.add_argument("form")
    run.add_argument("--answers", type=Path, help="YAML of {step_id: {field: value}} for headless runs")
    run.set_defaults(handler=cmd_run)

    return parser


def main(argv=None, runner: PromptRunner = None) -> int:
    args = build_parser().parse_args(argv)
    runner = runner or RealPromptRunner()

    try:
        settings = WizardSettings.from_env(forms_path=args.forms_path, verbose=args.verbose or None)
        _configure_logging(settings.verbose)
        return args.handler(args, settings, runner)
    except ConfigurationError as e:
        logger.debug("Configuration error", exc_info=True)
        runner.display(f"Configuration error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
