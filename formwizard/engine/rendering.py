"""Renderer interface - turns a template id and context into a response body."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


STEP_TEMPLATE = 'dynamic-forms/wizard-step'
SUCCESS_TEMPLATE = 'dynamic-forms/success'
ERROR_TEMPLATE = 'error'


class Renderer(ABC):
    """Interface for the template layer."""

    @abstractmethod
    def render(self, template_id: str, context: Dict[str, Any]) -> str:
        """Render a template with the given context."""
        pass


class JsonRenderer(Renderer):
    """Serialises the context as JSON, for API transports."""

    def __init__(self, indent: Optional[int] = None):
        self.indent = indent

    def render(self, template_id: str, context: Dict[str, Any]) -> str:
        return json.dumps({'template': template_id, 'context': context},
                          indent=self.indent, default=str)


class MockRenderer(Renderer):
    """Mock for testing - records calls."""

    def __init__(self):
        self.calls = []

    def render(self, template_id: str, context: Dict[str, Any]) -> str:
        self.calls.append(('render', template_id, context))
        return f"<{template_id}>"
