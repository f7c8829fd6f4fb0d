"""Abstract base formatter and output container.

WHY: A selection run is consumed by more than one downstream tool: the
video-cutting stage reads JSON, editors read a short report. Every
output format consumes the same SelectionResult, so one interface lets
the CLI write any of them generically.

HOW: BaseFormatter is an ABC with two requirements, a ``name`` property
and a ``format()`` method. FormatterOutput bundles a file suffix with
its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``suffix`` starts with a hyphen, e.g. ``"-selection.json"``
- The caller is responsible for prepending the source filename stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from take_selector.core.ir import SelectionResult


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-selection.json"`` → ``"interview-selection.json"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"application/json"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all selection output formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Selection JSON'."""

    @abstractmethod
    def format(self, result: SelectionResult) -> list[FormatterOutput]:
        """Render a selection result into one or more output files.

        Args:
            result: The outcome of one select_takes() run.

        Returns:
            List of FormatterOutput objects.
        """
