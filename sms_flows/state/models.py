"""
State Layer - Runtime Data Models

This module defines the persisted record of a single SMS conversation (the
"cookie"): which flow is active, the position inside it, the context recorded
by each step, the append-only interaction history and the sub-state of the
question currently being asked.

Flows are referenced by name only, so the whole record serializes to plain
JSON independently of the Flow objects held by the controller.
"""

import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    """An SMS received from the transport."""
    body: str = ""
    sender: str


class QuestionState(BaseModel):
    attempts: List[str] = Field(default_factory=list)
    is_answering: bool = False


class HistoryEntry(BaseModel):
    """A context snapshot tagged with the flow it was recorded in."""
    flow_name: str
    action_name: str
    context: Dict[str, Any] = Field(default_factory=dict)


class ConversationState(BaseModel):
    """
    The state of one conversation with one sender.
    """
    sender: str
    interaction_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    # None means the root flow
    active_flow: Optional[str] = None
    position: int = 0

    # Keyed by action name; scoped to the active flow
    flow_context: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    interaction_history: List[HistoryEntry] = Field(default_factory=list)

    question: QuestionState = Field(default_factory=QuestionState)
    is_complete: bool = False

    @property
    def interaction_context(self) -> List[Dict[str, Any]]:
        """The history as plain dicts, as handed to the user-supplied hooks."""
        return [entry.model_dump(mode="json") for entry in self.interaction_history]
