"""Expression engine type definitions."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Placeholder:
    """A balanced ``{{ ... }}`` span found in a template string.

    ``text`` is the exact span (used for verbatim preservation),
    ``body`` the trimmed inner expression.
    """

    start: int
    end: int  # Exclusive
    text: str
    body: str


@dataclass
class RenderResult:
    """Result of rendering a (possibly nested) parameter value."""

    value: Any  # Rendered value
    had_templates: bool  # Whether any placeholders were found
    templates_rendered: list[str] = field(default_factory=list)  # Bodies found
    unresolved: list[str] = field(default_factory=list)  # Bodies left verbatim
