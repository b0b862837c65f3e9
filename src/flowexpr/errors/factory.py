"""Turn codes and arbitrary exceptions into ExpressionErrors."""

from typing import Any

from .errors import ExpressionError
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry


class ErrorFactory:
    """Builds ExpressionErrors from error codes or caught exceptions."""

    def __init__(
        self,
        registry: ErrorRegistry | None = None,
        matcher_chain: ErrorMatcherChain | None = None,
    ):
        self.registry = registry or ErrorRegistry()
        self.matcher_chain = matcher_chain or ErrorMatcherChain()

    def from_exception(
        self,
        error: Exception,
        expression: str | None = None,
        node_id: str | None = None,
    ) -> ExpressionError:
        """Classify an exception raised while parsing or evaluating.

        ExpressionErrors pass through with the extra context attached;
        anything else goes through the matcher chain (recursion becomes
        EXPRESSION_LIMIT, built-in failures EXPRESSION_RUNTIME, the rest
        INTERNAL_ERROR).

        Args:
            error: The caught exception
            expression: Body being evaluated, if known
            node_id: Node being executed, if known
        """
        if isinstance(error, ExpressionError):
            return error.with_context(expression=expression, node_id=node_id)

        match_result = self.matcher_chain.match(error)
        context = dict(match_result.context)
        if expression:
            context["expression"] = expression
        if node_id:
            context["node_id"] = node_id
        return self.registry.create(code=match_result.code, context=context)

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> ExpressionError:
        """Build the error for ``code``; ``kwargs`` extend ``context``."""
        return self.registry.create(code=code, context={**(context or {}), **kwargs})


_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Process-wide ErrorFactory."""
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(code: str, **context: Any) -> ExpressionError:
    """Build an ExpressionError with the default factory.

    Example:
        >>> create_error("EXPRESSION_REFERENCE", name="foo").message
        "'foo' is not defined"
    """
    return get_error_factory().create(code, context)
