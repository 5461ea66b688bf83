import itertools
from typing import List, Optional, Tuple

import pytest

from sms_flows.delivery.interface import MessageSender
from sms_flows.domain import Flow, Reply
from sms_flows.execution.controller import FlowController
from sms_flows.execution.engine import ConversationEngine
from sms_flows.state.models import ConversationState, InboundMessage

SENDER = "+15551234567"

_counter = itertools.count()


def unique_string(prefix: str = "s") -> str:
    return f"{prefix}_{next(_counter)}"


def reply_flow(name: Optional[str] = None, steps: int = 1) -> Flow:
    flow = Flow(name or unique_string("flow"))
    for i in range(steps):
        body = f"{flow.name} reply {i}"
        flow.append(f"reply_{i}", lambda ctx, user, body=body: Reply(body))
    return flow


def inbound(body: str = "hello", sender: str = SENDER) -> InboundMessage:
    return InboundMessage(body=body, sender=sender)


class RecordingSender(MessageSender):
    """Test double that keeps every outbound SMS and hands out fake SIDs."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def send(self, to: str, body: str) -> Optional[str]:
        self.sent.append((to, body))
        return f"SM{len(self.sent):04d}"

    @property
    def bodies(self) -> List[str]:
        return [body for _, body in self.sent]


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def state():
    return ConversationState(sender=SENDER)


@pytest.fixture
def make_engine(sender):
    """Builds an engine around a controller with no delay between sends."""

    def _make(controller: FlowController, **kwargs) -> ConversationEngine:
        kwargs.setdefault("send_delay", 0)
        return ConversationEngine(controller=controller, sender=sender, **kwargs)

    return _make


@pytest.fixture
def unique():
    return unique_string


@pytest.fixture
def make_reply_flow():
    return reply_flow


@pytest.fixture
def make_inbound():
    return inbound
