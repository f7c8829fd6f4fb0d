"""Output formatter registry.

WHY: The CLI needs a single lookup to find the right formatter by name.
Adding a format means creating the class, importing it here, and adding
one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["selection_json"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags)
- Values are BaseFormatter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from take_selector.formatters.plain_text import PlainTextFormatter
from take_selector.formatters.selection_json import SelectionJSONFormatter

if TYPE_CHECKING:
    from take_selector.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "selection_json": SelectionJSONFormatter,
    "plain_text": PlainTextFormatter,
}
