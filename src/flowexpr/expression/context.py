"""Expression context and evaluation scope."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from flowexpr.errors import create_error

from .builtins import Builtins
from .dates import iso_timestamp
from .values import UNDEFINED, HostObject


@dataclass(frozen=True)
class ExpressionContext:
    """Per-execution data visible to expressions.

    Built by the runtime for every node execution and never mutated by
    the engine.
    """

    current_item: Any = None  # $json
    node_outputs: Mapping[str, Any] = field(default_factory=dict)  # $node: id or name -> {"json": ...}
    variables: Mapping[str, Any] = field(default_factory=dict)  # $vars
    workflow: Mapping[str, Any] = field(default_factory=dict)  # $workflow: id, name, active
    execution: Mapping[str, Any] = field(default_factory=dict)  # $execution: id, mode
    input_items: list[Any] = field(default_factory=list)  # $input

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ExpressionContext":
        """Build a context from the runtime's ``$``-keyed wire form.

        Example payload:
            {"$json": {...}, "$node": {"Fetch": {"json": {...}}}, "$vars": {...}}

        Raises:
            ExpressionError: CONTEXT_INVALID if the payload does not validate
        """
        try:
            model = ContextPayload.model_validate(dict(payload))
        except ValidationError as e:
            raise create_error("CONTEXT_INVALID", detail=_summarize(e)) from e
        return model.to_context()

    def node_output(self, key: str) -> Any:
        """Return the ``json`` of a node's output, or UNDEFINED."""
        output = self.node_outputs.get(key)
        if isinstance(output, Mapping) and "json" in output:
            return output["json"]
        return UNDEFINED


def _summarize(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


# ── wire payload ──────────────────────────────────────────────────


class WorkflowInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    name: str | None = None
    active: bool | None = None


class ExecutionInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    mode: str | None = None


class NodeOutput(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    data: Any = Field(default=None, alias="json")


class ContextPayload(BaseModel):
    """Validated form of the context the runtime sends."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    current_item: Any = Field(default=None, alias="$json")
    node_outputs: dict[str, NodeOutput] = Field(default_factory=dict, alias="$node")
    variables: dict[str, Any] = Field(default_factory=dict, alias="$vars")
    workflow: WorkflowInfo = Field(default_factory=WorkflowInfo, alias="$workflow")
    execution: ExecutionInfo = Field(default_factory=ExecutionInfo, alias="$execution")
    input_items: list[Any] = Field(default_factory=list, alias="$input")

    def to_context(self) -> ExpressionContext:
        return ExpressionContext(
            current_item=self.current_item,
            node_outputs={key: {"json": output.data} for key, output in self.node_outputs.items()},
            variables=dict(self.variables),
            workflow=self.workflow.model_dump(exclude_none=True),
            execution=self.execution.model_dump(exclude_none=True),
            input_items=list(self.input_items),
        )


# ── scope ─────────────────────────────────────────────────────────


class NodeOutputProxy(HostObject):
    """``$node["X"]``: exposes ``.json`` and, as a shortcut, the json's fields."""

    def __init__(self, data: Any):
        self.data = data

    def js_get(self, key: str) -> Any:
        if key == "json":
            return self.data
        if isinstance(self.data, dict):
            return self.data.get(key, UNDEFINED)
        return UNDEFINED

    def to_json(self) -> Any:
        return {"json": self.data}


def build_node_accessor(context: ExpressionContext) -> dict[str, Any]:
    accessor: dict[str, Any] = {}
    for key, output in context.node_outputs.items():
        if isinstance(output, Mapping) and "json" in output:
            accessor[key] = NodeOutputProxy(output["json"])
        else:
            accessor[key] = output
    return accessor


def build_scope(
    context: ExpressionContext,
    builtins: Builtins,
    now: datetime,
    item: Any = None,
) -> dict[str, Any]:
    """Assemble the names visible to a complex expression.

    Args:
        context: Execution context
        builtins: Global namespaces for the engine's limits and clock
        now: Instant used for ``$now`` and ``$today``
        item: Current item; defaults to ``context.current_item``

    Returns:
        Flat scope mapping name -> value
    """
    now = now.astimezone(UTC)
    current = context.current_item if item is None else item

    scope = dict(builtins.globals)
    scope.update(
        {
            "$json": current,
            "$input": list(context.input_items),
            "$node": build_node_accessor(context),
            "$vars": dict(context.variables),
            "$workflow": dict(context.workflow),
            "$execution": dict(context.execution),
            "$now": iso_timestamp(now),
            "$today": now.date().isoformat(),
        }
    )
    return scope
