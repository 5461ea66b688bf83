"""
Domain Layer - Actions and Flows

Defines the static building blocks of a conversation: the Action variants a
step can produce, the Question sub-state machine, and the Flow / FlowSchema
graph the controller walks.
"""

from sms_flows.domain.actions import (
    Action,
    ActionKind,
    Exit,
    Message,
    Question,
    Reply,
    Trigger,
)
from sms_flows.domain.exceptions import (
    ActionNameError,
    FlowConfigurationError,
    FlowError,
    InvalidFlowReference,
    MissingSchemaError,
    UndeclaredFlowError,
)
from sms_flows.domain.flows import Flow, FlowSchema
from sms_flows.domain.question import QuestionKind, QuestionPhase

__all__ = [
    "Action",
    "ActionKind",
    "Exit",
    "Message",
    "Question",
    "Reply",
    "Trigger",
    "Flow",
    "FlowSchema",
    "QuestionKind",
    "QuestionPhase",
    "FlowError",
    "FlowConfigurationError",
    "InvalidFlowReference",
    "UndeclaredFlowError",
    "MissingSchemaError",
    "ActionNameError",
]
