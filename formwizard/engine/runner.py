"""PromptRunner interface - all terminal I/O goes here."""

from abc import ABC, abstractmethod
from typing import Optional


class PromptRunner(ABC):
    """Interface for talking to the user of the console driver."""

    @abstractmethod
    def display(self, message: str) -> None:
        """Display a message to the user.

        Args:
            message: Text to display (may contain newlines)
        """
        pass

    @abstractmethod
    def get_input(self, prompt: str, default: Optional[str] = None) -> str:
        """Get input from user.

        Args:
            prompt: Question to ask user
            default: Default value if user presses Enter (shown in [brackets])

        Returns:
            User's input string (or default if empty)
        """
        pass


class RealPromptRunner(PromptRunner):
    """Real implementation - reads stdin and writes stdout."""

    def display(self, message: str) -> None:
        """Print message to stdout."""
        print(message)

    def get_input(self, prompt: str, default: Optional[str] = None) -> str:
        """Read from stdin with optional default."""
        if default:
            response = input(f"{prompt} [{default}]: ").strip()
            print()
            return response or default
        response = input(f"{prompt}: ").strip()
        print()
        return response


class MockPromptRunner(PromptRunner):
    """Mock for testing - records calls."""

    def __init__(self):
        self.calls = []
        self.input_queue = []  # Pre-scripted user inputs for testing

    def display(self, message: str) -> None:
        """Capture display call for test verification."""
        self.calls.append(('display', message))

    def get_input(self, prompt: str, default: Optional[str] = None) -> str:
        """Return next value from input_queue."""
        self.calls.append(('get_input', prompt, default))

        # Pop next scripted response
        if self.input_queue:
            response = self.input_queue.pop(0)
            # Match RealPromptRunner: apply default if response is empty
            return response if response else (default if default else '')

        # Fall back to default or empty string
        return default if default else ''

    def displayed(self) -> str:
        """Everything displayed so far, one message per line."""
        return "\n".join(call[1] for call in self.calls if call[0] == 'display')
