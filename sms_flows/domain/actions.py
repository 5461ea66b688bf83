"""
Domain Layer - Actions

An Action is the unit of work a flow step produces: something to deliver to
the user (Reply, Message, Question) or a change of course (Trigger, Exit).
The set of variants is closed; ActionKind enumerates them and the controller
matches on the concrete classes.

Every action carries a `name`. Resolvers never set it: the Flow that
produced the action assigns the name of the step it was resolved from.
"""

import copy
import inspect
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .question import (
    QuestionKind,
    QuestionPhase,
    attempt,
    begin,
    default_evaluator,
    format_choices,
    normalize_result,
)


class ActionKind(str, Enum):
    MESSAGE = "MESSAGE"
    REPLY = "REPLY"
    QUESTION = "QUESTION"
    TRIGGER = "TRIGGER"
    EXIT = "EXIT"


class Action:
    kind: ActionKind

    def __init__(self):
        self.name: Optional[str] = None

    def fresh(self) -> "Action":
        """A copy that a single resolution can name and update."""
        return copy.copy(self)

    def context(self) -> Dict[str, Any]:
        """JSON-compatible snapshot recorded in the conversation state."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, context={self.context()!r})"


def _require_body(body: Any, action: str) -> str:
    if not isinstance(body, str) or not body:
        raise TypeError(f"{action} expects a non-empty string body")
    return body


class Reply(Action):
    """Text sent back to the sender. The conversation moves on to the next step."""

    kind = ActionKind.REPLY

    def __init__(self, body: str):
        super().__init__()
        self.body = _require_body(body, "Reply")

    def context(self) -> Dict[str, Any]:
        return {"body": self.body}


class Message(Action):
    """
    Outbound notification.

    Unlike a Reply, a Message may be addressed to any number (`to`); when
    `to` is None it goes to the conversation's sender. Hooks return Messages
    to notify third parties, e.g. an operator when an interaction ends.
    """

    kind = ActionKind.MESSAGE

    def __init__(self, body: str, to: Optional[str] = None):
        super().__init__()
        self.body = _require_body(body, "Message")
        self.to = to

    def context(self) -> Dict[str, Any]:
        return {"body": self.body}


class Trigger(Action):
    """Switches the conversation to another flow, starting at its first step."""

    kind = ActionKind.TRIGGER

    def __init__(self, flow_name: str):
        super().__init__()
        if not isinstance(flow_name, str) or not flow_name:
            raise TypeError("Trigger expects a non-empty string as the target flow name")
        self.flow_name = flow_name

    def context(self) -> Dict[str, Any]:
        return {"flow_name": self.flow_name}


class Exit(Action):
    """Created by the controller when the sender asks to leave. Always terminal."""

    kind = ActionKind.EXIT

    def __init__(self, body: str):
        super().__init__()
        self.body = body

    def context(self) -> Dict[str, Any]:
        return {"body": self.body}


class Question(Action):
    """
    A prompt that waits for the sender's answer.

    Resolvers may return the same Question object on every call: the
    controller evaluates a fresh copy, so phase, attempts and receipts never
    leak between conversations.

    Args:
        body: The prompt text.
        evaluate: Callable (sync or async) that receives the inbound body and
            returns a bool or an (accepted, answer) pair. Defaults to the
            evaluator of `kind`.
        kind: Built-in answer format used when no evaluator is given.
        choices: Options for MULTIPLE_CHOICE questions; listed under the prompt.
        max_attempts: Number of answers accepted before the question fails.
        continue_on_fail: Move to the next step on failure instead of ending
            the interaction.
        failed_answer_reply: Sent after a rejected answer when attempts remain.
        on_fail_reply: Sent when the question fails.
    """

    kind = ActionKind.QUESTION

    def __init__(
        self,
        body: str,
        evaluate: Optional[Callable[[str], Any]] = None,
        *,
        kind: QuestionKind = QuestionKind.TEXT,
        choices: Sequence[str] = (),
        max_attempts: int = 1,
        continue_on_fail: bool = False,
        failed_answer_reply: Optional[str] = None,
        on_fail_reply: Optional[str] = None,
    ):
        super().__init__()
        self.body = _require_body(body, "Question")
        if evaluate is not None and not callable(evaluate):
            raise TypeError("Question evaluate must be callable")
        if not isinstance(max_attempts, int) or max_attempts < 1:
            raise ValueError("Question max_attempts must be a positive integer")
        self.question_kind = QuestionKind(kind)
        self.choices = list(choices)
        self._evaluate = evaluate or default_evaluator(self.question_kind, self.choices)
        self.max_attempts = max_attempts
        self.continue_on_fail = continue_on_fail
        self.failed_answer_reply = failed_answer_reply
        self.on_fail_reply = on_fail_reply

        self.phase = QuestionPhase.IDLE
        self.answer: Any = None
        self.attempts: List[str] = []
        self.message_sids: List[str] = []

    def fresh(self) -> "Question":
        question = copy.copy(self)
        question.name = None
        question.phase = QuestionPhase.IDLE
        question.answer = None
        question.attempts = []
        question.message_sids = []
        return question

    @property
    def is_answered(self) -> bool:
        return self.phase == QuestionPhase.ANSWERED

    @property
    def is_failed(self) -> bool:
        return self.phase == QuestionPhase.FAILED

    @property
    def is_complete(self) -> bool:
        return self.is_answered or self.is_failed

    @property
    def should_continue_on_fail(self) -> bool:
        return self.continue_on_fail

    @property
    def outbound_body(self) -> Optional[str]:
        """The text to deliver for the current phase, if any."""
        if self.phase == QuestionPhase.PROMPTING:
            return self.outbound_prompt()
        if self.phase == QuestionPhase.ANSWERING:
            return self.failed_answer_reply or self.outbound_prompt()
        if self.phase == QuestionPhase.FAILED:
            return self.on_fail_reply
        return None

    def outbound_prompt(self) -> str:
        if self.choices:
            return format_choices(self.body, self.choices)
        return self.body

    async def evaluate(self, body: str, question_state) -> QuestionPhase:
        """
        Classifies the inbound body against this question.

        `question_state` is the conversation's QuestionState. When the
        conversation is not answering yet, the question is only being asked;
        otherwise `body` is the next answer attempt.
        """
        previous = list(question_state.attempts) if question_state.is_answering else []
        self.attempts = previous

        if not question_state.is_answering:
            self.phase = begin(self.phase)
            return self.phase

        result = self._evaluate(body)
        if inspect.isawaitable(result):
            result = await result
        accepted, answer = normalize_result(result)

        self.attempts = previous + [body]
        if self.phase == QuestionPhase.IDLE:
            self.phase = QuestionPhase.ANSWERING
        self.phase = attempt(self.phase, accepted, len(self.attempts), self.max_attempts)
        if accepted:
            self.answer = body.strip() if answer is None else answer
        return self.phase

    def record_receipt(self, message_sid: Optional[str]):
        """Stores the delivery receipt of an outbound message for this question."""
        if message_sid:
            self.message_sids.append(message_sid)

    def context(self) -> Dict[str, Any]:
        return {
            "body": self.body,
            "answer": self.answer,
            "attempts": list(self.attempts),
            "phase": self.phase.value,
            "is_answered": self.is_answered,
            "is_failed": self.is_failed,
            "message_sids": list(self.message_sids),
        }


ACTION_TYPES = (Message, Reply, Question, Trigger, Exit)


def is_action(value: Any) -> bool:
    return isinstance(value, ACTION_TYPES)
