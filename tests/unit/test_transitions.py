# tests/unit/test_transitions.py
import pytest

from sms_flows.domain import ActionNameError, Flow, Question, Reply, Trigger
from sms_flows.state.models import ConversationState
from sms_flows.state.transitions import (
    add_question_attempt,
    complete_interaction,
    handle_trigger,
    increment_position,
    pipe,
    record_context,
    start_question,
)


@pytest.fixture
def flow():
    return (
        Flow("main")
        .append("greet", lambda ctx, user: Reply("hi"))
        .append("ask", lambda ctx, user: Question("Name?"))
    )


def named(action, name):
    action.name = name
    return action


def test_transitions_do_not_mutate_their_input(state, flow):
    before = state.model_dump()

    pipe(
        lambda s: record_context(s, flow, named(Reply("hi"), "greet")),
        lambda s: increment_position(s, flow),
        start_question,
        lambda s: add_question_attempt(s, "Sam"),
        complete_interaction,
    )(state)

    assert state.model_dump() == before


def test_increment_position_moves_to_next_step(state, flow):
    new_state = increment_position(state, flow)

    assert new_state.position == 1
    assert not new_state.is_complete


def test_increment_past_last_step_completes(state, flow):
    new_state = increment_position(increment_position(state, flow), flow)

    assert new_state.position == 2
    assert new_state.is_complete


def test_increment_stops_answering_but_keeps_attempts(state, flow):
    answering = add_question_attempt(start_question(state), "Sam")

    new_state = increment_position(answering, flow)

    assert new_state.question.is_answering is False
    assert new_state.question.attempts == ["Sam"]


def test_start_question_resets_attempts(state):
    previous = add_question_attempt(start_question(state), "old")

    new_state = start_question(previous)

    assert new_state.question.is_answering
    assert new_state.question.attempts == []


def test_record_context_writes_flow_context_and_history(state, flow):
    new_state = record_context(state, flow, named(Reply("hi"), "greet"))

    assert new_state.flow_context == {"greet": {"body": "hi"}}
    assert len(new_state.interaction_history) == 1
    entry = new_state.interaction_history[0]
    assert (entry.flow_name, entry.action_name, entry.context) == ("main", "greet", {"body": "hi"})


def test_record_context_overwrites_the_snapshot_but_appends_history(state, flow):
    first = record_context(state, flow, named(Reply("one"), "greet"))
    second = record_context(first, flow, named(Reply("two"), "greet"))

    assert second.flow_context["greet"] == {"body": "two"}
    assert [e.context["body"] for e in second.interaction_history] == ["one", "two"]


def test_record_context_accumulates_question_receipts(state, flow):
    first_question = named(Question("Name?"), "ask")
    first_question.record_receipt("SM1")
    second_question = named(Question("Name?"), "ask")
    second_question.record_receipt("SM2")

    new_state = pipe(
        lambda s: record_context(s, flow, first_question),
        lambda s: record_context(s, flow, second_question),
    )(state)

    assert new_state.flow_context["ask"]["message_sids"] == ["SM1", "SM2"]


def test_record_context_rejects_names_from_another_flow(state, flow):
    with pytest.raises(ActionNameError):
        record_context(state, flow, named(Reply("hi"), "not_in_main"))


def test_handle_trigger_resets_flow_scope_but_keeps_history(state, flow):
    recorded = record_context(state, flow, named(Reply("hi"), "greet"))
    recorded = increment_position(recorded, flow)

    new_state = handle_trigger(recorded, Trigger("billing"))

    assert new_state.active_flow == "billing"
    assert new_state.position == 0
    assert new_state.flow_context == {}
    assert new_state.interaction_history == recorded.interaction_history


def test_complete_interaction(state):
    assert complete_interaction(state).is_complete
    assert not state.is_complete


def test_round_trip_keeps_every_field(flow):
    state = ConversationState(sender="+1555")
    state = record_context(state, flow, named(Reply("hi"), "greet"))
    state = start_question(increment_position(state, flow))

    restored = ConversationState.model_validate_json(state.model_dump_json())

    assert restored == state
