"""
Domain Layer - Flows

A Flow is a named, ordered list of steps. Each step pairs an action name
with a resolver: a function of the accumulated flow context and the
caller-supplied user context that produces an Action (optionally as a
coroutine).

A FlowSchema declares the graph of flows a conversation may jump between
with Trigger actions. Declarations can nest other FlowSchemas; they are
flattened once, when the controller is built, into a name -> Flow mapping.
"""

from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from .exceptions import FlowConfigurationError

Resolver = Callable[[Dict[str, Any], Any], Any]


class Flow:
    def __init__(self, name: str):
        if not isinstance(name, str) or not name:
            raise FlowConfigurationError("Flow name must be a non-empty string")
        self.name = name
        self._steps: List[Tuple[str, Resolver]] = []

    def append(self, name: str, resolver: Resolver) -> "Flow":
        """Registers the next step. Returns the flow so calls can be chained."""
        if not isinstance(name, str) or not name:
            raise FlowConfigurationError("Action name must be a non-empty string")
        if not callable(resolver):
            raise FlowConfigurationError(f"Resolver for action '{name}' must be callable")
        if name in self.action_names():
            raise ValueError(f"Flow '{self.name}' already has an action named '{name}'")
        self._steps.append((name, resolver))
        return self

    @property
    def length(self) -> int:
        return len(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def action_names(self) -> FrozenSet[str]:
        return frozenset(name for name, _ in self._steps)

    def action_name_at(self, position: int) -> Optional[str]:
        if 0 <= position < len(self._steps):
            return self._steps[position][0]
        return None

    def resolver_at(self, position: int) -> Optional[Resolver]:
        if 0 <= position < len(self._steps):
            return self._steps[position][1]
        return None

    def __repr__(self) -> str:
        return f"Flow(name={self.name!r}, actions={[name for name, _ in self._steps]!r})"


Declaration = Mapping[str, Union[Flow, "FlowSchema"]]


class FlowSchema:
    """
    Nested declaration of the flows reachable from a root flow.

    Keys only label the declaration; flows are addressed by Flow.name.
    The same Flow object may appear in several branches, but two distinct
    flows may not share a name.
    """

    def __init__(self, declaration: Declaration):
        if not isinstance(declaration, Mapping):
            raise FlowConfigurationError("FlowSchema expects a mapping of Flows and FlowSchemas")
        for key, value in declaration.items():
            if not isinstance(value, (Flow, FlowSchema)):
                raise FlowConfigurationError(
                    f"FlowSchema entry '{key}' must be a Flow or a FlowSchema"
                )
        self.declaration = dict(declaration)

    def build(self, root: Flow) -> Dict[str, Flow]:
        """
        Depth-first flattening of the declaration into name -> Flow.

        The result always contains the root.
        """
        flows: Dict[str, Flow] = {root.name: root}
        self._collect(flows)
        if len(flows) == 1:
            raise FlowConfigurationError(
                "If you provide a schema, it must include a flow distinct from the root Flow"
            )
        return flows

    def _collect(self, flows: Dict[str, Flow]):
        for value in self.declaration.values():
            if isinstance(value, FlowSchema):
                value._collect(flows)
                continue
            existing = flows.get(value.name)
            if existing is not None and existing is not value:
                raise FlowConfigurationError(f"Duplicate flow name in schema: '{value.name}'")
            flows[value.name] = value
