"""Expression engine: resolves ``{{ }}`` placeholders in node parameters."""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from flowexpr.config import EngineConfig, load_config
from flowexpr.errors import ExpressionError, create_error, get_error_factory
from flowexpr.logging import LogConfig, configure_logging
from flowexpr.types import DiagnosticKind, ExpressionKind

from .builtins import Builtins
from .classifier import classify, resolve_reference
from .context import ExpressionContext, build_scope
from .dates import Clock, utc_now
from .diagnostics import Diagnostic, DiagnosticSink, LoggingDiagnosticSink
from .evaluator import Evaluator
from .formatter import decode_template, format_value
from .scanner import extract_bodies, is_pure_placeholder, scan_placeholders
from .types import Placeholder, RenderResult
from .values import UNDEFINED, HostObject, is_nullish

ContextLike = ExpressionContext | Mapping[str, Any] | None

_EMPTY_CONTEXT = ExpressionContext()


def _looks_unresolved(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("{{") and value.endswith("}}")


def _export(value: Any, _ancestors: frozenset[int] = frozenset()) -> Any:
    """Convert evaluator values to plain Python data."""
    if value is UNDEFINED:
        return None
    if isinstance(value, HostObject):
        return _export(value.to_json(), _ancestors)
    if isinstance(value, (dict, list)):
        if id(value) in _ancestors:
            raise TypeError("Cannot export a value that contains itself")
        ancestors = _ancestors | {id(value)}
        if isinstance(value, dict):
            return {key: _export(item, ancestors) for key, item in value.items()}
        return [_export(item, ancestors) for item in value]
    return value


def _export_result(value: Any, body: str) -> Any:
    try:
        return _export(value)
    except TypeError as e:
        raise get_error_factory().from_exception(e, expression=body) from e


class ExpressionEngine:
    """Resolve placeholders in node parameter values.

    Supports:
    - Item paths: {{ $json.user.name }}, {{ json.items[0] }}, {{ $json[1].id }}
    - References: {{ $node["Fetch"].json.id }}, {{ $vars.key }},
      {{ $workflow.name }}, {{ $execution.id }}
    - Expressions: {{ $json.price * 2 }}, {{ Math.max(1, 5) }},
      {{ $json.tags.map(t => t.toUpperCase()).join(", ") }}

    Does NOT support:
    - Statements, assignment or loops
    - Access to anything outside the context and whitelisted globals

    Resolution never raises: placeholders that cannot be resolved are left
    in the output verbatim and reported to the diagnostics sink.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        diagnostics: DiagnosticSink | None = None,
        clock: Clock | None = None,
    ):
        """Initialize expression engine.

        Args:
            config: Engine configuration (limits, decoding)
            diagnostics: Sink for non-fatal problems (defaults to logging)
            clock: Source of the current instant for $now/$today
        """
        self.config = config or EngineConfig()
        self.diagnostics = diagnostics or LoggingDiagnosticSink()
        self.clock = clock or utc_now
        self._builtins = Builtins(self.config.limits, self.clock)
        self._evaluator = Evaluator(self._builtins, self.config.limits)

    @classmethod
    def from_config(
        cls,
        path: str | Path | None = None,
        diagnostics: DiagnosticSink | None = None,
    ) -> "ExpressionEngine":
        """Create an engine from a config file and apply its logging settings.

        Args:
            path: Config file path (None searches the default locations)
            diagnostics: Optional diagnostics sink

        Returns:
            Configured ExpressionEngine
        """
        config = load_config(path)
        configure_logging(
            LogConfig(
                level=config.logging.level,
                format=config.logging.format,
                truncate_at=config.logging.truncate_at,
            )
        )
        return cls(config=config, diagnostics=diagnostics)

    # ── public API ────────────────────────────────────────────────

    def resolve_value(
        self,
        value: Any,
        item: Any = None,
        context: ContextLike = None,
        node_id: str | None = None,
    ) -> Any:
        """Resolve all placeholders in a value.

        Non-string values are returned unchanged (the same object).

        Args:
            value: Parameter value, e.g. "Hello {{ $json.name }}"
            item: Current item; when None the context's $json is used
            context: ExpressionContext or its ``$``-keyed payload form
            node_id: Node being executed (for diagnostics)

        Returns:
            The substituted string, or ``value`` itself if not a string
        """
        if not isinstance(value, str):
            return value
        ctx = self._context(context, node_id)
        return self._resolve_string(value, item, ctx, node_id, [], [])

    def render(
        self,
        value: Any,
        item: Any = None,
        context: ContextLike = None,
        node_id: str | None = None,
    ) -> RenderResult:
        """Resolve placeholders recursively in strings, dicts and lists.

        Args:
            value: Value that may contain {{ }} expressions
            item: Current item
            context: Execution context
            node_id: Node being executed (for diagnostics)

        Returns:
            RenderResult with the rendered value and the bodies seen
        """
        ctx = self._context(context, node_id)
        found: list[str] = []
        unresolved: list[str] = []

        def render_value(current: Any) -> Any:
            if isinstance(current, str):
                return self._resolve_string(current, item, ctx, node_id, found, unresolved)
            if isinstance(current, dict):
                return {key: render_value(entry) for key, entry in current.items()}
            if isinstance(current, list):
                return [render_value(entry) for entry in current]
            return current

        rendered = render_value(value)
        return RenderResult(
            value=rendered,
            had_templates=len(found) > 0,
            templates_rendered=found,
            unresolved=unresolved,
        )

    def evaluate(
        self,
        expression: str,
        item: Any = None,
        context: ContextLike = None,
    ) -> Any:
        """Evaluate a single expression and return its value, type preserved.

        Accepts a bare body (``$json.count > 3``) or a pure template
        (``{{ $json.count > 3 }}``). Used where the raw value matters, such
        as condition parameters.

        Returns:
            Plain Python value (undefined becomes None, dates become ISO
            strings)

        Raises:
            ExpressionError: On syntax, reference, runtime or limit errors,
                or when a reference cannot be resolved
        """
        text = expression.strip()
        if is_pure_placeholder(text):
            body = scan_placeholders(text)[0].body
        else:
            body = text
        if not body:
            raise create_error("EXPRESSION_SYNTAX", detail="Empty expression", expression=expression)

        ctx = self._context(context, None)
        current = ctx.current_item if item is None else item

        if classify(body) == ExpressionKind.SIMPLE:
            value = resolve_reference(body, ctx, current)
            if value is UNDEFINED:
                raise create_error("EXPRESSION_REFERENCE", name=body, expression=body)
            return _export_result(value, body)

        result = self._evaluator.evaluate(body, build_scope(ctx, self._builtins, self.clock(), current))
        if is_nullish(result):
            fallback = resolve_reference(body, ctx, current)
            if fallback is not UNDEFINED:
                return _export_result(fallback, body)
        return _export_result(result, body)

    def validate(self, value: Any) -> list[str]:
        """Check placeholder syntax without evaluating.

        Returns list of errors (empty if valid). Does NOT check that
        references exist.

        Args:
            value: Value to validate (str, dict, list, or primitive)

        Returns:
            List of error messages
        """
        errors: list[str] = []

        def validate_value(current: Any) -> None:
            if isinstance(current, str):
                text = (decode_template(current) or current) if "%" in current else current
                for placeholder in scan_placeholders(text):
                    errors.extend(self._validate_placeholder(placeholder))
            elif isinstance(current, dict):
                for entry in current.values():
                    validate_value(entry)
            elif isinstance(current, list):
                for entry in current:
                    validate_value(entry)

        validate_value(value)
        return errors

    def extract_references(self, value: Any) -> list[str]:
        """Extract every placeholder body from a value.

        E.g., "{{ $json.url }}" → ["$json.url"]

        Useful for dependency analysis.
        """
        return extract_bodies(value)

    # ── internals ─────────────────────────────────────────────────

    def _emit(
        self,
        kind: DiagnosticKind,
        message: str,
        expression: str | None = None,
        error: ExpressionError | None = None,
        node_id: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.diagnostics.emit(
            Diagnostic(
                kind=kind,
                message=message,
                expression=expression,
                code=error.code if error else None,
                detail=(error.detail or error.message) if error else detail,
                node_id=node_id,
            )
        )

    def _context(self, context: ContextLike, node_id: str | None) -> ExpressionContext:
        if context is None:
            return _EMPTY_CONTEXT
        if isinstance(context, ExpressionContext):
            return context
        if isinstance(context, Mapping):
            try:
                return ExpressionContext.from_payload(context)
            except ExpressionError as e:
                self._emit(DiagnosticKind.CONTEXT_INVALID, e.message, error=e, node_id=node_id)
                return _EMPTY_CONTEXT
        self._emit(
            DiagnosticKind.CONTEXT_INVALID,
            "Invalid expression context",
            detail=f"Unsupported context type {type(context).__name__}",
            node_id=node_id,
        )
        return _EMPTY_CONTEXT

    def _decode(self, text: str, node_id: str | None) -> str:
        if not self.config.decode_percent_encoding:
            return text
        decoded = decode_template(text)
        if decoded is None:
            self._emit(
                DiagnosticKind.DECODE_FAILED,
                "Template is not valid percent-encoding, using it as-is",
                node_id=node_id,
                detail=text[:200],
            )
            return text
        return decoded

    def _resolve_string(
        self,
        text: str,
        item: Any,
        ctx: ExpressionContext,
        node_id: str | None,
        found: list[str],
        unresolved: list[str],
    ) -> str:
        if "%" in text:
            decoded = self._decode(text, node_id)
            # Decoding only applies to templates; plain text is returned as given
            if "{{" in decoded:
                text = decoded
        if "{{" not in text:
            return text
        placeholders = scan_placeholders(text)
        if not placeholders:
            return text

        current = ctx.current_item if item is None else item
        scope: dict[str, Any] = {}

        def get_scope() -> dict[str, Any]:
            # Built once per string so every placeholder sees the same $now
            if not scope:
                scope.update(build_scope(ctx, self._builtins, self.clock(), current))
            return scope

        parts: list[str] = []
        position = 0
        for placeholder in placeholders:
            found.append(placeholder.body)
            parts.append(text[position : placeholder.start])
            value = self._resolve_placeholder(placeholder, current, ctx, get_scope, node_id)
            formatted = None if value is UNDEFINED else self._format(value, placeholder.body, node_id)
            if formatted is None:
                unresolved.append(placeholder.body)
                parts.append(placeholder.text)
            else:
                parts.append(formatted)
            position = placeholder.end
        parts.append(text[position:])
        return "".join(parts)

    def _format(self, value: Any, body: str, node_id: str | None) -> str | None:
        """Substitution text for a resolved value, or None if it cannot be rendered."""
        try:
            return format_value(value)
        except Exception as e:
            # Circular data or pathological nesting
            error = get_error_factory().from_exception(e, expression=body, node_id=node_id)
            self._emit(
                DiagnosticKind.EVALUATION_FAILED,
                "Resolved value could not be formatted",
                expression=body,
                error=error,
                node_id=node_id,
            )
            return None

    def _resolve_placeholder(
        self,
        placeholder: Placeholder,
        current: Any,
        ctx: ExpressionContext,
        get_scope: Callable[[], dict[str, Any]],
        node_id: str | None,
    ) -> Any:
        body = placeholder.body
        if not body:
            return UNDEFINED

        failure: ExpressionError | None = None
        if classify(body) == ExpressionKind.COMPLEX:
            try:
                result = self._evaluator.evaluate(body, get_scope())
            except ExpressionError as e:
                failure = e
            else:
                if not is_nullish(result) and not _looks_unresolved(result):
                    return result

        value = resolve_reference(body, ctx, current)
        if value is not UNDEFINED:
            return value

        if failure is not None:
            self._emit(
                DiagnosticKind.EVALUATION_FAILED,
                "Expression evaluation failed",
                expression=body,
                error=failure,
                node_id=node_id,
            )
        else:
            self._emit(
                DiagnosticKind.UNRESOLVED,
                "Placeholder left unresolved",
                expression=body,
                node_id=node_id,
            )
        return UNDEFINED

    def _validate_placeholder(self, placeholder: Placeholder) -> list[str]:
        body = placeholder.body
        if not body:
            return [f"Empty placeholder '{placeholder.text}'"]
        if classify(body) == ExpressionKind.SIMPLE:
            return []
        try:
            self._evaluator.compile(body)
        except ExpressionError as e:
            return [f"{body}: {e}"]
        return []


# Convenience singleton
_default_engine: ExpressionEngine | None = None


def get_default_engine() -> ExpressionEngine:
    """Get default expression engine singleton.

    Returns:
        Default ExpressionEngine instance
    """
    global _default_engine  # noqa: PLW0603
    if _default_engine is None:
        _default_engine = ExpressionEngine()
    return _default_engine


def resolve_value(value: Any, item: Any = None, context: ContextLike = None) -> Any:
    """Resolve placeholders in ``value`` with the default engine.

    Example:
        >>> resolve_value("Hello {{ $json.name }}", {"name": "John"})
        'Hello John'
        >>> resolve_value("{{ $json[0].name }}", [{"name": "John"}])
        'John'
        >>> resolve_value(42)
        42
    """
    return get_default_engine().resolve_value(value, item, context)
