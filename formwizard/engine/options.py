"""Option sources for choice fields.

Options come either from the field's static configuration or from a remote
API. Remote failures never fail a request: they are logged and the field is
rendered with no options.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import requests
from .errors import UpstreamOptionsError
from .schema import FormField, OptionItem
from .settings import DEFAULT_OPTIONS_TIMEOUT


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathSpecs:
    """Dot paths locating options inside an API response."""

    value_path: str
    label_path: str
    data_path: Optional[str] = None


def extract_path(data: Any, path: Optional[str]) -> Any:
    """
    Follow a dot path through nested dicts and lists.

    Examples:
        >>> extract_path({'name': {'common': 'France'}}, 'name.common')
        'France'
        >>> extract_path({'items': [{'id': 1}]}, 'items.0.id')
        1
    """
    if not path:
        return data
    current = data
    for part in path.split('.'):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
        if current is None:
            return None
    return current


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (str, int, float)):
        return str(value)
    return ''


def parse_options(data: Any, specs: PathSpecs) -> List[OptionItem]:
    """
    Turn an API payload into options.

    Items missing either a value or a label are skipped.

    Raises:
        UpstreamOptionsError: If no array is found at data_path
    """
    items = extract_path(data, specs.data_path)
    if not isinstance(items, list):
        raise UpstreamOptionsError(f"No array found at path '{specs.data_path or ''}'")

    options = []
    for item in items:
        value = _as_text(extract_path(item, specs.value_path))
        label = _as_text(extract_path(item, specs.label_path))
        if value and label:
            options.append(OptionItem(value=value, label=label))
    return options


def build_url(endpoint: str, query: Optional[str] = None) -> str:
    """Append a query string to an endpoint."""
    if not query or not query.strip():
        return endpoint
    separator = '&' if '?' in endpoint else '?'
    return f"{endpoint}{separator}{query.strip()}"


class OptionSource(ABC):
    """Interface for remote option lookups."""

    @abstractmethod
    def fetch(self, endpoint: str, query: Optional[str], path_specs: PathSpecs) -> List[OptionItem]:
        """
        Fetch options for a field.

        Raises:
            UpstreamOptionsError: If the source is unavailable or returns nothing usable
        """
        pass


class HttpOptionSource(OptionSource):
    """Fetches options over HTTP with a bounded timeout."""

    def __init__(self, base_url: str, timeout: float = DEFAULT_OPTIONS_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Args:
            base_url: Base URL the field endpoints are relative to
            timeout: Seconds before a fetch is abandoned
            session: Optional requests session (for connection reuse or testing)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, endpoint: str, query: Optional[str], path_specs: PathSpecs) -> List[OptionItem]:
        url = f"{self.base_url}/{build_url(endpoint, query).lstrip('/')}"
        logger.debug(f"Fetching options from: {url}")

        try:
            response = self.session.get(url, timeout=self.timeout,
                                        headers={'Accept': 'application/json'})
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise UpstreamOptionsError(f"Option source unreachable: {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise UpstreamOptionsError(f"Option request failed: {url}: {e}") from e
        except ValueError as e:
            raise UpstreamOptionsError(f"Option response is not JSON: {url}") from e

        options = parse_options(data, path_specs)
        if not options:
            raise UpstreamOptionsError(f"No valid options found in response from {url}")

        logger.debug(f"Parsed {len(options)} options from {url}")
        return options


class MockOptionSource(OptionSource):
    """Mock for testing - records calls and returns canned options."""

    def __init__(self, responses: Optional[Dict[str, List[Tuple[str, str]]]] = None):
        self.calls = []
        self.responses = responses or {}

    def fetch(self, endpoint: str, query: Optional[str], path_specs: PathSpecs) -> List[OptionItem]:
        self.calls.append(('fetch', endpoint, query, path_specs))
        if endpoint not in self.responses:
            raise UpstreamOptionsError(f"No canned response for {endpoint}")
        return [OptionItem(value=value, label=label) for value, label in self.responses[endpoint]]


def resolve_field_options(field: FormField, source: Optional[OptionSource] = None) -> List[OptionItem]:
    """
    Get the options a choice field should offer.

    API-backed fields use the source and degrade to an empty list on any
    upstream failure; other fields use their static options.
    """
    if field.uses_api_options:
        if source is None:
            logger.warning(f"Field '{field.name}' wants API options but no option source is configured")
            return list(field.available_options)
        config = field.api_config
        specs = PathSpecs(value_path=config.value_path, label_path=config.label_path,
                          data_path=config.data_path)
        try:
            return source.fetch(config.endpoint, config.params, specs)
        except UpstreamOptionsError as e:
            logger.warning(f"Options unavailable for field '{field.name}': {e}")
            return list(field.available_options)

    return list(field.available_options)


def resolve_step_fields(fields, source: Optional[OptionSource] = None) -> List[FormField]:
    """Return the step's fields with API-backed options filled in."""
    resolved = []
    for field in fields:
        if field.uses_api_options:
            options = tuple(resolve_field_options(field, source))
            field = field.model_copy(update={'available_options': options})
        resolved.append(field)
    return resolved
