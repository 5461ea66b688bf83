"""
Conversation Service - Application Orchestration Layer

This service is the entry point for every inbound SMS. It orchestrates the
interaction between the State Store, the Engine and the user-supplied hooks,
and makes sure a conversation's state is loaded, processed and persisted (or
discarded) exactly once per message.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..domain.actions import Message, Reply
from ..execution.controller import maybe_await
from ..execution.engine import ConversationEngine
from ..repositories.state import StateStore
from ..state.models import ConversationState, InboundMessage
from ..state.transitions import create_state

logger = logging.getLogger(__name__)

UserContextGetter = Callable[[str], Any]
OnMessageHook = Callable[[list, Any, str], Any]
OnCatchErrorHook = Callable[[list, Any, Exception], Any]


@dataclass
class InboundResult:
    state: ConversationState
    cookie: Optional[str] = None
    completed: bool = False


class ConversationLocks:
    """
    One asyncio.Lock per sender, so two messages of the same conversation are
    never processed against the same loaded state. A sender's lock is dropped
    once nobody holds or waits for it.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, sender: str):
        lock = self._locks.setdefault(sender, asyncio.Lock())
        self._holders[sender] = self._holders.get(sender, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[sender] -= 1
            if not self._holders[sender]:
                del self._holders[sender]
                del self._locks[sender]


class ConversationService:
    def __init__(
        self,
        engine: ConversationEngine,
        store: StateStore,
        *,
        get_user_context: Optional[UserContextGetter] = None,
        on_message: Optional[OnMessageHook] = None,
        on_catch_error: Optional[OnCatchErrorHook] = None,
    ):
        self.engine = engine
        self.store = store
        self.get_user_context = get_user_context
        self.on_message = on_message
        self.on_catch_error = on_catch_error
        self.locks = ConversationLocks()

    @property
    def on_interaction_end(self):
        return self.engine.controller.on_interaction_end

    def get_conversation(self, sender: str) -> Optional[ConversationState]:
        return self.store.get(sender)

    def reset_conversation(self, sender: str):
        self.store.discard(sender)

    async def handle_inbound(
        self, inbound: InboundMessage, cookie: Optional[str] = None
    ) -> InboundResult:
        """
        The Core Loop:
        1. Load State (or start a new conversation)
        2. Resolve User Context & run the on_message hook
        3. Run the Engine
        4. Persist, or end the interaction
        """
        async with self.locks.hold(inbound.sender):
            return await self._process(inbound, cookie)

    async def _process(self, inbound: InboundMessage, cookie: Optional[str]) -> InboundResult:
        state = create_state(inbound.sender)
        user_context = None
        ended = False

        try:
            state = self.store.load(inbound.sender, cookie) or state
            user_context = await self._get_user_context(inbound.sender)
            await self._run_on_message(state, user_context, inbound)

            turn = await self.engine.run(inbound, state, user_context)
            state = turn.state

            if state.is_complete:
                logger.info(f"Conversation {state.interaction_id} with {inbound.sender} completed")
                ended = True
                await self._run_on_interaction_end(state, user_context, inbound.sender)
                self.store.discard(inbound.sender)
                return InboundResult(state=state, completed=True)

            new_cookie = self.store.save(state)
            return InboundResult(state=state, cookie=new_cookie)

        except Exception as e:
            logger.exception(f"Processing failed for conversation {state.interaction_id}: {e}")
            await self._recover(state, user_context, inbound.sender, e, end_interaction=not ended)
            try:
                self.store.discard(inbound.sender)
            except Exception as discard_error:
                logger.error(f"Could not discard state of {inbound.sender}: {discard_error}")
            return InboundResult(state=state, completed=True)

    # ==========================================================================
    # Hooks
    # ==========================================================================

    async def _get_user_context(self, sender: str) -> Any:
        if self.get_user_context is None:
            return None
        return await maybe_await(self.get_user_context(sender))

    async def _run_on_message(
        self, state: ConversationState, user_context: Any, inbound: InboundMessage
    ):
        if self.on_message is None:
            return
        try:
            result = await maybe_await(
                self.on_message(state.interaction_context, user_context, inbound.body)
            )
            if isinstance(result, Message):
                await self.engine.send_message(inbound.sender, result)
        except Exception as e:
            logger.warning(f"on_message hook failed: {e}")
            await self._catch_error(state, user_context, e)

    async def _run_on_interaction_end(
        self, state: ConversationState, user_context: Any, sender: str
    ):
        if self.on_interaction_end is None:
            return
        try:
            result = await maybe_await(
                self.on_interaction_end(state.interaction_context, user_context)
            )
            if isinstance(result, Message):
                await self.engine.send_message(sender, result)
        except Exception as e:
            logger.warning(f"on_interaction_end hook failed: {e}")
            await self._catch_error(state, user_context, e)

    async def _catch_error(self, state: ConversationState, user_context: Any, error: Exception):
        if self.on_catch_error is None:
            return None
        try:
            return await maybe_await(
                self.on_catch_error(state.interaction_context, user_context, error)
            )
        except Exception as e:
            logger.error(f"on_catch_error hook failed: {e}")
            return None

    async def _recover(
        self,
        state: ConversationState,
        user_context: Any,
        sender: str,
        error: Exception,
        end_interaction: bool = True,
    ):
        """
        The pass failed: let the application apologize, then end the
        interaction. The loaded state is left as it was.
        """
        result = await self._catch_error(state, user_context, error)
        try:
            if isinstance(result, Reply):
                await self.engine.deliver(sender, result)
            if end_interaction and self.on_interaction_end is not None:
                await maybe_await(self.on_interaction_end(state.interaction_context, user_context))
        except Exception as e:
            logger.error(f"Recovery after failure failed: {e}")
            await self._catch_error(state, user_context, e)
