# tests/unit/test_engine.py
import pytest

from sms_flows.domain import (
    Flow,
    FlowSchema,
    Message,
    Question,
    QuestionKind,
    Reply,
    Trigger,
)
from sms_flows.execution.controller import FlowController
from sms_flows.state.models import ConversationState, InboundMessage

SENDER = "+15550001111"


def inbound(body):
    return InboundMessage(body=body, sender=SENDER)


@pytest.fixture
def survey_controller():
    root = (
        Flow("root")
        .append("hello", lambda c, u: Reply("Hello!"))
        .append("ask", lambda c, u: Question("Continue?", kind=QuestionKind.BOOL))
        .append("go", lambda c, u: Trigger("details" if c["ask"]["answer"] else "bye"))
    )
    details = (
        Flow("details")
        .append("info", lambda c, u: Reply("Here are the details."))
        .append("notify", lambda c, u: Message("Someone read the details", to="+1999"))
    )
    bye = Flow("bye").append("farewell", lambda c, u: Reply("Bye!"))
    return FlowController(root, FlowSchema({"details": details, "more": FlowSchema({"bye": bye})}))


@pytest.mark.asyncio
async def test_runs_until_a_question_waits(make_engine, sender, survey_controller):
    engine = make_engine(survey_controller)

    result = await engine.run(inbound("hi"), ConversationState(sender=SENDER))

    assert sender.sent == [(SENDER, "Hello!"), (SENDER, "Continue?")]
    assert [a.name for a in result.actions] == ["hello", "ask"]
    assert result.state.position == 1
    assert result.state.question.is_answering
    assert not result.state.is_complete


@pytest.mark.asyncio
async def test_answer_triggers_another_flow_and_completes(make_engine, sender, survey_controller):
    engine = make_engine(survey_controller)
    first = await engine.run(inbound("hi"), ConversationState(sender=SENDER))

    result = await engine.run(inbound("yes"), first.state)

    assert sender.sent[2:] == [
        (SENDER, "Here are the details."),
        ("+1999", "Someone read the details"),
    ]
    assert result.state.active_flow == "details"
    assert result.state.is_complete
    assert [e.flow_name for e in result.state.interaction_history] == [
        "root", "root", "root", "root", "details", "details",
    ]


@pytest.mark.asyncio
async def test_question_receipts_are_recorded(make_engine, survey_controller):
    engine = make_engine(survey_controller)

    result = await engine.run(inbound("hi"), ConversationState(sender=SENDER))

    assert result.state.flow_context["ask"]["message_sids"] == ["SM0002"]
    assert result.sent_sids == ["SM0001", "SM0002"]


@pytest.mark.asyncio
async def test_exit_sends_goodbye_and_completes(make_engine, sender, survey_controller):
    engine = make_engine(survey_controller, send_on_exit="See you.")
    first = await engine.run(inbound("hi"), ConversationState(sender=SENDER))

    result = await engine.run(inbound("Exit"), first.state)

    assert sender.bodies[-1] == "See you."
    assert result.state.is_complete
    assert result.state.interaction_history[-1].context == {"body": "Exit"}


@pytest.mark.asyncio
async def test_exit_without_text_sends_nothing(make_engine, sender, survey_controller):
    engine = make_engine(survey_controller, send_on_exit=None)

    result = await engine.run(inbound("exit"), ConversationState(sender=SENDER))

    assert sender.sent == []
    assert result.state.is_complete


@pytest.mark.asyncio
async def test_retry_prompt_then_failure(make_engine, sender):
    root = Flow("root").append(
        "ask",
        lambda c, u: Question(
            "Ok?",
            kind=QuestionKind.BOOL,
            max_attempts=2,
            failed_answer_reply="Yes or no please.",
            on_fail_reply="Never mind.",
        ),
    )
    engine = make_engine(FlowController(root))
    state = (await engine.run(inbound("hi"), ConversationState(sender=SENDER))).state

    state = (await engine.run(inbound("blue"), state)).state
    assert sender.bodies[-1] == "Yes or no please."
    assert not state.is_complete
    assert state.question.attempts == ["blue"]

    state = (await engine.run(inbound("green"), state)).state
    assert sender.bodies[-1] == "Never mind."
    assert state.is_complete
    assert state.question.attempts == ["blue", "green"]


@pytest.mark.asyncio
async def test_unrecognized_resolver_result_completes(make_engine, sender):
    root = Flow("root").append("broken", lambda c, u: None)
    engine = make_engine(FlowController(root))

    result = await engine.run(inbound("hi"), ConversationState(sender=SENDER))

    assert sender.sent == []
    assert result.actions == []
    assert result.state.is_complete


@pytest.mark.asyncio
async def test_complete_state_is_left_alone(make_engine, sender, survey_controller):
    engine = make_engine(survey_controller)
    state = ConversationState(sender=SENDER, is_complete=True)

    result = await engine.run(inbound("hi"), state)

    assert result.state is state
    assert sender.sent == []


@pytest.mark.asyncio
async def test_resolver_failure_leaves_the_state_untouched(make_engine):
    def explode(ctx, user):
        raise RuntimeError("lookup failed")

    root = Flow("root").append("hello", lambda c, u: Reply("hi")).append("boom", explode)
    engine = make_engine(FlowController(root))
    state = ConversationState(sender=SENDER)
    before = state.model_dump()

    with pytest.raises(RuntimeError):
        await engine.run(inbound("hi"), state)

    assert state.model_dump() == before


@pytest.mark.asyncio
async def test_sends_are_spaced(mocker, sender, survey_controller):
    from sms_flows.execution.engine import ConversationEngine

    sleep = mocker.patch("sms_flows.execution.engine.asyncio.sleep", new_callable=mocker.AsyncMock)
    engine = ConversationEngine(survey_controller, sender, send_delay=0.5)

    await engine.run(inbound("hi"), ConversationState(sender=SENDER))

    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.5)


@pytest.mark.asyncio
async def test_user_context_reaches_resolvers(make_engine, sender):
    root = Flow("root").append("greet", lambda c, user: Reply(f"Hi {user['name']}"))
    engine = make_engine(FlowController(root))

    await engine.run(inbound("hi"), ConversationState(sender=SENDER), {"name": "Ada"})

    assert sender.bodies == ["Hi Ada"]
