"""
Engine - Delivery Loop

The ConversationEngine drives one processing pass for one inbound SMS.
-----------------------------------------------

A single inbound message can produce several outbound messages. The engine
runs a loop that keeps resolving and delivering actions until it hits a
blocking state:

1. Resolve the action at the current position (FlowController.resolve_action).
2. Deliver it through the MessageSender, in resolution order, spacing sends
   so transports that do not guarantee ordering keep it.
3. Compute the next state (FlowController.next_state).
4. If the interaction completed, or a Question is waiting for its answer,
   yield control back to the sender (User Turn). Otherwise continue
   immediately (System Turn).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, List, Optional

from ..delivery.interface import MessageSender
from ..domain.actions import Action, Exit, Message, Question, Reply, Trigger
from ..state.models import ConversationState, InboundMessage
from .controller import FlowController

logger = logging.getLogger(__name__)

DEFAULT_EXIT_TEXT = "Goodbye."


class DialogueControlAction(Enum):
    """Next dialogue management action"""

    WAIT_FOR_USER_INPUT = auto()  # Yield to user
    CONTINUE_IMMEDIATELY = auto()  # Loop internally


@dataclass
class TurnResult:
    state: ConversationState
    actions: List[Action] = field(default_factory=list)
    sent_sids: List[str] = field(default_factory=list)


class ConversationEngine:
    def __init__(
        self,
        controller: FlowController,
        sender: MessageSender,
        send_on_exit: Optional[str] = DEFAULT_EXIT_TEXT,
        send_delay: float = 1.0,
    ):
        self.controller = controller
        self.sender = sender
        self.send_on_exit = send_on_exit
        self.send_delay = send_delay

    async def run(
        self,
        inbound: InboundMessage,
        state: ConversationState,
        user_context: Any = None,
    ) -> TurnResult:
        """
        The Orchestrator. Returns the state to persist and the delivered actions.
        """
        result = TurnResult(state=state)

        action = await self.controller.resolve_action(inbound, state, user_context)
        while action is not None:
            sid = await self.deliver(inbound.sender, action)
            if sid:
                result.sent_sids.append(sid)
            result.actions.append(action)

            state = self.controller.next_state(inbound, state, action)
            result.state = state

            if self._derive_control_action(state, action) == DialogueControlAction.WAIT_FOR_USER_INPUT:
                break
            action = await self.controller.resolve_action(inbound, state, user_context)

        if action is None and not state.is_complete:
            # Nothing resolved at this position: the interaction is over
            result.state = self.controller.next_state(inbound, state, None)

        return result

    # ==========================================================================
    # Logic & Control
    # ==========================================================================

    def _derive_control_action(
        self, state: ConversationState, action: Action
    ) -> DialogueControlAction:
        if state.is_complete:
            return DialogueControlAction.WAIT_FOR_USER_INPUT
        if isinstance(action, Question) and not action.is_complete:
            return DialogueControlAction.WAIT_FOR_USER_INPUT
        return DialogueControlAction.CONTINUE_IMMEDIATELY

    # ==========================================================================
    # Delivery
    # ==========================================================================

    def outbound_for(self, sender: str, action: Action) -> Optional[tuple]:
        """The (to, body) pair an action delivers, or None if it sends nothing."""
        match action:
            case Reply():
                return sender, action.body
            case Message():
                return action.to or sender, action.body
            case Question():
                body = action.outbound_body
                return (sender, body) if body else None
            case Exit():
                return (sender, self.send_on_exit) if self.send_on_exit else None
            case Trigger():
                return None
        return None

    async def deliver(self, sender: str, action: Action) -> Optional[str]:
        outbound = self.outbound_for(sender, action)
        if outbound is None:
            return None

        to, body = outbound
        sid = await self.sender.send(to, body)
        if isinstance(action, Question):
            action.record_receipt(sid)

        # Preserve message order on transports that may reorder
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        return sid

    async def send_message(self, sender: str, message: Message) -> Optional[str]:
        """Delivers a Message returned by a hook, outside of any flow."""
        return await self.deliver(sender, message)
