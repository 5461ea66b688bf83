"""
State Layer - Runtime Data Models

Defines the persisted conversation record and the pure transition functions
that are the only way to change it.
"""

from sms_flows.state.models import (
    ConversationState,
    HistoryEntry,
    InboundMessage,
    QuestionState,
)

__all__ = [
    "ConversationState",
    "HistoryEntry",
    "InboundMessage",
    "QuestionState",
]
