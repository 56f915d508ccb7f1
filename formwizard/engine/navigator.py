"""Navigation resolver - decides where a submitted step goes next.

Per-step (legacy) and global routing are both expressed as `RoutingRule`
subclasses and evaluated by one `NavigationResolver`:

1. Global rules, only for forward actions (next, continue, submit). Matching
   rules are ranked by the latest step their conditions reference, then by
   configuration order.
2. The current step's legacy field map.
3. Sequential advance to the next non-termination step, or completion.

Any candidate pointing at the current step, or backwards at a step that is
not a termination step, is discarded. That guarantees forward progress.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional
from .errors import NavigationError
from .schema import DEFAULT_TARGET_KEY, NavigationRule, WizardForm


logger = logging.getLogger(__name__)

FORWARD_ACTIONS = ('next', 'continue', 'submit')
PREVIOUS_ACTION = 'previous'

OUTCOME_STEP = 'step'
OUTCOME_SUCCESS = 'success'
OUTCOME_EXIT = 'exit'


def first_value(value: Any) -> Any:
    """Array answers are matched on their first element only."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def lookup_answer(data: Mapping[str, Any], step_id: str, field_name: str) -> Any:
    """Find an answer by `step.field`, falling back to the bare field name."""
    qualified = f"{step_id}.{field_name}"
    if qualified in data:
        return data[qualified]
    return data.get(field_name)


def routing_view(form: WizardForm, slots: Mapping[int, Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Build the data rules are evaluated against.

    Contains every answer under its bare name (consolidated view) and under
    `step_id.field_name` so conditions can tell same-named fields apart.

    Args:
        form: Form definition
        slots: {step_number: data} from the step store
    """
    view = {}
    for step_number in sorted(slots):
        view.update(slots[step_number])
    for step_number in sorted(slots):
        step = form.get_step(step_number)
        if step is None:
            continue
        for name, value in slots[step_number].items():
            view[f"{step.id}.{name}"] = value
    return view


class RoutingRule(ABC):
    """A rule that may name a target step for the given answers."""

    def __init__(self, rule_id: str, order: int):
        self.rule_id = rule_id
        self.order = order

    @abstractmethod
    def target(self, data: Mapping[str, Any]) -> Optional[str]:
        """Target step id if the rule fires, else None."""
        pass

    @abstractmethod
    def referenced_step_ids(self) -> List[str]:
        pass

    def evidence_index(self, form: WizardForm) -> int:
        """Number of the latest step this rule depends on."""
        numbers = [form.step_number(step_id) or 0 for step_id in self.referenced_step_ids()]
        return max(numbers, default=0)

    def __repr__(self):
        return f"{type(self).__name__}({self.rule_id!r})"


class GlobalRule(RoutingRule):
    """Multi-condition rule; every condition must hold."""

    def __init__(self, rule: NavigationRule, order: int):
        super().__init__(rule.id, order)
        self.rule = rule

    def matches(self, data: Mapping[str, Any]) -> bool:
        for condition in self.rule.conditions:
            answer = first_value(lookup_answer(data, condition.step_id, condition.field_name))
            if answer is None or str(answer) != condition.value:
                return False
        return True

    def target(self, data: Mapping[str, Any]) -> Optional[str]:
        return self.rule.target_step_id if self.matches(data) else None

    def referenced_step_ids(self) -> List[str]:
        return [condition.step_id for condition in self.rule.conditions]


class StepFieldRule(RoutingRule):
    """Legacy single-field map: an exact value match beats the 'default' entry."""

    def __init__(self, step_id: str, field_name: str, value_map: Mapping[str, str], order: int):
        super().__init__(f"{step_id}.{field_name}", order)
        self.step_id = step_id
        self.field_name = field_name
        self.value_map = dict(value_map)

    def target(self, data: Mapping[str, Any]) -> Optional[str]:
        answer = first_value(lookup_answer(data, self.step_id, self.field_name))
        if answer is None or answer == '':
            return None
        answer = str(answer)
        if answer in self.value_map:
            return self.value_map[answer] or None
        return self.value_map.get(DEFAULT_TARGET_KEY) or None

    def referenced_step_ids(self) -> List[str]:
        return [self.step_id]


@dataclass(frozen=True)
class NavigationOutcome:
    """Where the wizard goes after a step."""

    kind: str
    step_number: Optional[int] = None
    step_id: Optional[str] = None
    rule_id: Optional[str] = None
    terminal: bool = False


class NavigationResolver:
    """Evaluates routing rules for one immutable form definition."""

    def __init__(self, form: WizardForm):
        self.form = form
        self.global_rules: List[RoutingRule] = [
            GlobalRule(rule, order) for order, rule in enumerate(form.global_navigation_rules)
        ]
        self.step_rules: Dict[str, List[RoutingRule]] = {
            step.id: [
                StepFieldRule(step.id, field_name, value_map, order)
                for order, (field_name, value_map) in enumerate(step.step_level_navigation.items())
            ]
            for step in form.steps
        }

    def _current_number(self, step_id: str) -> int:
        number = self.form.step_number(step_id)
        if number is None:
            raise NavigationError(f"Unknown step: {step_id}")
        return number

    def is_admissible(self, target_step_id: str, current_number: int) -> bool:
        """Targets must move forward, except jumps back to termination steps."""
        target_number = self.form.step_number(target_step_id)
        if target_number is None:
            return False
        if target_number == current_number:
            logger.debug(f"Target {target_step_id} is the current step, skipping to avoid a loop")
            return False
        if target_number < current_number and not self.form.steps[target_number - 1].is_termination_step:
            logger.debug(
                f"Target {target_step_id} (step {target_number}) is before step {current_number} "
                f"and not a termination step, skipping backward navigation")
            return False
        return True

    def _winning_global_rule(self, data: Mapping[str, Any], current_number: int) -> Optional[RoutingRule]:
        candidates = []
        for rule in self.global_rules:
            target = rule.target(data)
            if target is not None and self.is_admissible(target, current_number):
                candidates.append(rule)
        if not candidates:
            return None
        return min(candidates, key=lambda rule: (-rule.evidence_index(self.form), rule.order))

    def _matching_rule(self, data: Mapping[str, Any], current_step_id: str,
                       action: str) -> Optional[RoutingRule]:
        current_number = self._current_number(current_step_id)

        if action in FORWARD_ACTIONS:
            rule = self._winning_global_rule(data, current_number)
            if rule is not None:
                return rule

        for rule in self.step_rules.get(current_step_id, []):
            target = rule.target(data)
            if target is not None and self.is_admissible(target, current_number):
                return rule
        return None

    def resolve_next(self, data: Mapping[str, Any], current_step_id: str, action: str) -> Optional[str]:
        """
        Pick a rule-driven target for the current step.

        Args:
            data: Routing view (see routing_view)
            current_step_id: Step just submitted
            action: Submitted action

        Returns:
            Target step id, or None to use sequential progression
        """
        rule = self._matching_rule(data, current_step_id, action)
        if rule is None:
            logger.debug(f"No routing rule matched for {current_step_id} (action: {action})")
            return None
        target = rule.target(data)
        logger.debug(f"Rule {rule.rule_id} routes {current_step_id} to {target}")
        return target

    def next_sequential(self, step_number: int) -> Optional[int]:
        """Next step in order, skipping termination steps."""
        for number in range(step_number + 1, self.form.step_count + 1):
            if not self.form.steps[number - 1].is_termination_step:
                return number
        return None

    def previous_step(self, step_number: int, visited: Iterable[int] = ()) -> int:
        """
        Step to show for the 'previous' action.

        Prefers the most recently visited earlier step, so going back retraces
        a branched path rather than the declared order.
        """
        def is_regular(number: int) -> bool:
            return not self.form.steps[number - 1].is_termination_step

        for number in reversed(list(visited)):
            if 1 <= number < step_number and is_regular(number):
                return number
        for number in range(step_number - 1, 0, -1):
            if is_regular(number):
                return number
        return 1

    def destination(self, data: Mapping[str, Any], step_number: int, action: str,
                    visited: Iterable[int] = ()) -> NavigationOutcome:
        """
        Decide the outcome of submitting a step.

        Raises:
            NavigationError: If step_number is out of range
        """
        step = self.form.get_step(step_number)
        if step is None:
            raise NavigationError(f"Invalid step number: {step_number}")

        if step.is_termination_step:
            return NavigationOutcome(kind=OUTCOME_EXIT, step_number=step_number, step_id=step.id)

        if action == PREVIOUS_ACTION:
            number = self.previous_step(step_number, visited)
            return NavigationOutcome(kind=OUTCOME_STEP, step_number=number,
                                     step_id=self.form.steps[number - 1].id)

        if action not in FORWARD_ACTIONS:
            return NavigationOutcome(kind=OUTCOME_STEP, step_number=step_number, step_id=step.id)

        rule = self._matching_rule(data, step.id, action)
        if rule is not None:
            target_id = rule.target(data)
            target_number = self.form.step_number(target_id)
            target_step = self.form.steps[target_number - 1]
            logger.debug(f"Redirecting to step {target_number} ({target_id}) via rule {rule.rule_id}")
            return NavigationOutcome(kind=OUTCOME_STEP, step_number=target_number, step_id=target_id,
                                     rule_id=rule.rule_id, terminal=target_step.is_termination_step)

        number = self.next_sequential(step_number)
        if number is None:
            return NavigationOutcome(kind=OUTCOME_SUCCESS)
        return NavigationOutcome(kind=OUTCOME_STEP, step_number=number, step_id=self.form.steps[number - 1].id)
