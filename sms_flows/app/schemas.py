"""
API Layer - Request/Response Schemas

Pydantic models for the webhook payload and the conversation resources.
"""

from typing import Any, Optional

from pydantic import BaseModel


class TwilioInboundSms(BaseModel):
    """The fields of Twilio's SMS webhook form we rely on."""
    Body: str = ""
    From: str
    To: Optional[str] = None
    MessageSid: Optional[str] = None


class HistoryItem(BaseModel):
    flow_name: str
    action_name: str
    context: dict[str, Any]


class ConversationRead(BaseModel):
    sender: str
    interaction_id: str
    status: str
    active_flow: Optional[str] = None
    position: int
    history: list[HistoryItem]
    debug: Optional[dict[str, Any]] = None
