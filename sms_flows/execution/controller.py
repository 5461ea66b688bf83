"""
Controller - Flow Resolution and State Transitions

The FlowController is the deterministic state machine of a conversation.
It answers two questions for the delivery loop:

1. resolve_action: given the state and the inbound SMS, which action runs now?
2. next_state: given the action that was delivered, what is the new state?

next_state is pure: it never mutates the state it receives, so the caller
either commits the returned state or keeps the previous one.
"""

import copy
import inspect
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from ..domain.actions import Action, Exit, Message, Question, Reply, Trigger, is_action
from ..domain.exceptions import (
    FlowConfigurationError,
    InvalidFlowReference,
    MissingSchemaError,
    UndeclaredFlowError,
)
from ..domain.flows import Flow, FlowSchema
from ..state.models import ConversationState, InboundMessage
from ..state.transitions import (
    add_question_attempt,
    complete_interaction,
    handle_trigger,
    increment_position,
    pipe,
    record_context,
    start_question,
)

logger = logging.getLogger(__name__)

ExitKeywordTest = Callable[[str], Union[bool, Awaitable[bool]]]
OnInteractionEndHook = Callable[[list, Any], Any]

EXIT_REGEXP = re.compile(r"\bexit\b", re.IGNORECASE)


def default_test_for_exit(body: str) -> bool:
    return bool(EXIT_REGEXP.search(body or ""))


async def maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class FlowController:
    def __init__(
        self,
        root: Flow,
        schema: Optional[FlowSchema] = None,
        *,
        on_interaction_end: Optional[OnInteractionEndHook] = None,
        test_for_exit: ExitKeywordTest = default_test_for_exit,
    ):
        if not isinstance(root, Flow):
            raise FlowConfigurationError("root parameter must be an instance of Flow")
        if root.length == 0:
            raise FlowConfigurationError(
                "All Flows must perform at least one action. Check the root Flow"
            )
        if schema is not None and not isinstance(schema, FlowSchema):
            raise FlowConfigurationError("schema parameter must be an instance of FlowSchema")
        if not callable(test_for_exit):
            raise FlowConfigurationError("test_for_exit parameter must be a function")
        if on_interaction_end is not None and not callable(on_interaction_end):
            raise FlowConfigurationError("on_interaction_end parameter must be a function")

        self.root = root
        # Flattened once; read-only afterwards
        self.flows: Optional[Dict[str, Flow]] = schema.build(root) if schema is not None else None
        self.test_for_exit = test_for_exit
        self.on_interaction_end = on_interaction_end

    @property
    def has_schema(self) -> bool:
        return self.flows is not None

    # ==========================================================================
    # Resolution
    # ==========================================================================

    def current_flow(self, state: ConversationState) -> Flow:
        if not state.active_flow or state.active_flow == self.root.name:
            return self.root
        if not self.has_schema or state.active_flow not in self.flows:
            raise InvalidFlowReference(
                f"Received invalid flow name in conversation state: {state.active_flow}"
            )
        return self.flows[state.active_flow]

    async def resolve_action(
        self,
        inbound: InboundMessage,
        state: ConversationState,
        user_context: Any = None,
    ) -> Optional[Action]:
        if state.is_complete:
            return None
        if await maybe_await(self.test_for_exit(inbound.body)):
            logger.info(f"Exit keyword received from conversation {state.interaction_id}")
            flow = self.current_flow(state)
            exit_action = Exit(inbound.body)
            # Recorded against the step the sender left from
            exit_action.name = flow.action_name_at(min(state.position, flow.length - 1))
            return exit_action

        flow = self.current_flow(state)
        resolver = flow.resolver_at(state.position)
        if resolver is None:
            return None

        # Resolvers get their own copy; they must not see or touch the stored context
        action = await maybe_await(resolver(copy.deepcopy(state.flow_context), user_context))
        if not is_action(action):
            logger.debug(
                f"Resolver at {flow.name}[{state.position}] returned {type(action).__name__}, "
                "not an Action"
            )
            return None
        action = action.fresh()
        if isinstance(action, Question):
            await action.evaluate(inbound.body, state.question)

        action.name = flow.action_name_at(state.position)
        return action

    # ==========================================================================
    # State Transition (Pure)
    # ==========================================================================

    def next_state(
        self,
        inbound: InboundMessage,
        state: ConversationState,
        action: Optional[Action],
    ) -> ConversationState:
        flow = self.current_flow(state)

        match action:
            case Exit():
                return pipe(
                    lambda s: record_context(s, flow, action),
                    complete_interaction,
                )(state)
            case Question():
                return self._next_state_for_question(inbound, state, flow, action)
            case Trigger():
                self._validate_trigger(flow, action)
                return pipe(
                    lambda s: record_context(s, flow, action),
                    lambda s: handle_trigger(s, action),
                )(state)
            case Reply() | Message():
                return pipe(
                    lambda s: record_context(s, flow, action),
                    lambda s: increment_position(s, flow),
                )(state)
            case _:
                return complete_interaction(state)

    def _next_state_for_question(
        self,
        inbound: InboundMessage,
        state: ConversationState,
        flow: Flow,
        question: Question,
    ) -> ConversationState:
        if state.question.is_answering:
            state = add_question_attempt(state, inbound.body)

        record = lambda s: record_context(s, flow, question)  # noqa: E731
        advance = lambda s: increment_position(s, flow)  # noqa: E731

        if question.is_answered:
            return pipe(record, advance)(state)
        if question.is_failed:
            if question.should_continue_on_fail:
                return pipe(record, advance)(state)
            return pipe(record, complete_interaction)(state)
        if state.question.is_answering:
            # Still pending: keep waiting on the same question
            return record(state)
        return pipe(start_question, record)(state)

    def _validate_trigger(self, flow: Flow, trigger: Trigger):
        # Restarting the root is the only jump possible without a schema
        if trigger.flow_name == self.root.name:
            return
        if not self.has_schema:
            raise MissingSchemaError(
                f"Cannot trigger '{trigger.flow_name}' from '{flow.name}' "
                "without a defined Flow schema"
            )
        if trigger.flow_name not in self.flows:
            raise UndeclaredFlowError(
                f"Trigger expects the name of an existing Flow, got '{trigger.flow_name}'"
            )
