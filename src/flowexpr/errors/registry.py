"""Error templates keyed by code."""

from typing import Any

from .errors import ErrorCategory, ErrorTemplate, ExpressionError

_BUILTIN_TEMPLATES = (
    # Expression errors
    ErrorTemplate(
        code="EXPRESSION_SYNTAX",
        category=ErrorCategory.SYNTAX,
        message_template="Syntax error in expression",
        detail_template="{detail}",
        suggestion_template="Check operators, brackets and string quotes in the expression",
    ),
    ErrorTemplate(
        code="EXPRESSION_RUNTIME",
        category=ErrorCategory.EVALUATION,
        message_template="Expression evaluation failed",
        detail_template="{error_type}: {detail}",
        suggestion_template="Check that referenced values have the expected types",
    ),
    ErrorTemplate(
        code="EXPRESSION_REFERENCE",
        category=ErrorCategory.REFERENCE,
        message_template="'{name}' is not defined",
        detail_template="Only context variables and whitelisted globals can be referenced",
        suggestion_template="Use $json, $node, $vars, $workflow, $execution or a helper such as Math",
    ),
    ErrorTemplate(
        code="EXPRESSION_LIMIT",
        category=ErrorCategory.LIMIT,
        message_template="Expression exceeded the {limit} limit",
        detail_template="{detail}",
        suggestion_template="Simplify the expression or raise the limit in the engine configuration",
    ),
    # Caller-supplied data
    ErrorTemplate(
        code="CONTEXT_INVALID",
        category=ErrorCategory.VALIDATION,
        message_template="Invalid expression context",
        detail_template="{detail}",
        suggestion_template="Check the context payload supplied by the runtime",
    ),
    ErrorTemplate(
        code="CONFIG_INVALID",
        category=ErrorCategory.VALIDATION,
        message_template="Invalid engine configuration",
        detail_template="{detail}",
        suggestion_template="Fix the reported keys in flowexpr.yaml or the environment",
    ),
    ErrorTemplate(
        code="INTERNAL_ERROR",
        category=ErrorCategory.SYSTEM,
        message_template="Internal flowexpr error",
        detail_template="{error_type}: {detail}",
        suggestion_template="This is a bug in flowexpr; include the expression when reporting it",
    ),
)


def _fill(text: str | None, context: dict[str, Any]) -> str | None:
    """Format ``text`` with ``context``; unknown fields leave it untouched."""
    if text is None:
        return None
    try:
        return text.format(**context)
    except (KeyError, IndexError):
        return text


class ErrorRegistry:
    """Maps error codes to templates and builds ExpressionErrors from them."""

    def __init__(self) -> None:
        self._templates = {template.code: template for template in _BUILTIN_TEMPLATES}

    def get_template(self, code: str) -> ErrorTemplate | None:
        return self._templates.get(code)

    def list_codes(self) -> list[str]:
        return list(self._templates)

    def register(self, template: ErrorTemplate) -> None:
        """Add a template, replacing any existing one with the same code."""
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        cause: ExpressionError | None = None,
    ) -> ExpressionError:
        """Build the error for ``code``, formatting its templates with ``context``.

        ``expression``, ``position`` and ``node_id`` in the context are
        copied onto the error as well.

        Raises:
            ValueError: ``code`` has no template
        """
        template = self._templates.get(code)
        if template is None:
            raise ValueError(f"Unknown error code: {code}")

        values = context or {}
        return ExpressionError(
            code=template.code,
            category=template.category,
            message=_fill(template.message_template, values) or f"Error {code}",
            detail=_fill(template.detail_template, values),
            suggestion=_fill(template.suggestion_template, values),
            expression=values.get("expression"),
            position=values.get("position"),
            node_id=values.get("node_id"),
            cause=cause,
        )
