"""
State Transitions

The only functions allowed to change a ConversationState. Each one takes a
state and returns a new one; the input is never mutated, so a processing
pass that fails half way leaves the loaded state untouched.

Transitions are composed with `pipe`:

    pipe(
        lambda s: record_context(s, flow, action),
        lambda s: increment_position(s, flow),
    )(state)
"""

import copy
import logging
from functools import reduce
from typing import Callable

from ..domain.actions import Action, Question, Trigger
from ..domain.exceptions import ActionNameError
from ..domain.flows import Flow
from .models import ConversationState, HistoryEntry, QuestionState

logger = logging.getLogger(__name__)

StateUpdate = Callable[[ConversationState], ConversationState]


def pipe(*updates: StateUpdate) -> StateUpdate:
    """Left-to-right composition of state updates."""
    return lambda state: reduce(lambda acc, update: update(acc), updates, state)


def _evolve(state: ConversationState, **changes) -> ConversationState:
    return state.model_copy(update=copy.deepcopy(changes), deep=True)


def create_state(sender: str) -> ConversationState:
    return ConversationState(sender=sender)


def complete_interaction(state: ConversationState) -> ConversationState:
    return _evolve(state, is_complete=True)


def increment_position(state: ConversationState, flow: Flow) -> ConversationState:
    """
    Moves to the next step of the active flow.

    Stepping past the last action completes the interaction; flows do not
    loop or return to a parent.
    """
    position = state.position + 1
    question = QuestionState(attempts=list(state.question.attempts), is_answering=False)
    new_state = _evolve(state, position=position, question=question)
    if position >= flow.length:
        return complete_interaction(new_state)
    return new_state


def start_question(state: ConversationState) -> ConversationState:
    return _evolve(state, question=QuestionState(attempts=[], is_answering=True))


def add_question_attempt(state: ConversationState, body: str) -> ConversationState:
    question = QuestionState(
        attempts=[*state.question.attempts, body],
        is_answering=state.question.is_answering,
    )
    return _evolve(state, question=question)


def record_context(state: ConversationState, flow: Flow, action: Action) -> ConversationState:
    """
    Stores the action's context under its name and appends it to the history.

    Question receipts accumulate across repeated resolutions of the same
    question.
    """
    if action.name not in flow.action_names():
        raise ActionNameError(
            f"Action '{action.name}' is not declared on flow '{flow.name}'"
        )

    context = action.context()
    if isinstance(action, Question):
        previous = state.flow_context.get(action.name) or {}
        earlier_sids = [
            sid for sid in previous.get("message_sids", []) if sid not in context["message_sids"]
        ]
        context["message_sids"] = earlier_sids + context["message_sids"]

    flow_context = {**state.flow_context, action.name: context}
    entry = HistoryEntry(flow_name=flow.name, action_name=action.name, context=context)
    return _evolve(
        state,
        flow_context=flow_context,
        interaction_history=[*state.interaction_history, entry],
    )


def handle_trigger(state: ConversationState, trigger: Trigger) -> ConversationState:
    """Switches to the trigger's flow. Flow context does not carry across."""
    logger.info(
        f"Conversation {state.interaction_id} switching from "
        f"'{state.active_flow}' to '{trigger.flow_name}'"
    )
    return _evolve(
        state,
        active_flow=trigger.flow_name,
        position=0,
        flow_context={},
        question=QuestionState(),
    )
