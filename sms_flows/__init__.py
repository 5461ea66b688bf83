"""
SMS Flows

Drives multi-turn SMS conversations: a graph of named flows, a persisted
per-conversation state record, and a controller that resolves the next
action from an inbound message and computes the state that follows it.
"""

from sms_flows.domain import (
    Action,
    Exit,
    Flow,
    FlowSchema,
    Message,
    Question,
    QuestionKind,
    Reply,
    Trigger,
)
from sms_flows.state import (
    ConversationState,
    InboundMessage,
)
from sms_flows.execution import ConversationEngine, FlowController

__all__ = [
    # Domain Layer
    "Action",
    "Exit",
    "Flow",
    "FlowSchema",
    "Message",
    "Question",
    "QuestionKind",
    "Reply",
    "Trigger",
    # State Layer
    "ConversationState",
    "InboundMessage",
    # Execution Layer
    "ConversationEngine",
    "FlowController",
]
