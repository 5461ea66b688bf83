"""
Dependency Injection Wiring (Composition Root).

This module acts as the central "container" for the application's services.
It is responsible for:
1. Instantiating the core Singleton services (State Store, Sender, Controller).
2. Wiring them together (e.g., injecting the Controller and Sender into the Engine).
3. Managing the lifecycle of these objects using @lru_cache to ensure
   they are created only once per application process.

Tests replace any of these through `app.dependency_overrides`.
"""

import logging
from functools import lru_cache

from fastapi import Depends

from ..config import settings
from ..delivery.interface import MessageSender
from ..delivery.adapters.twilio_adapter import TwilioMessageSender
from ..delivery.adapters.logging_adapter import LoggingMessageSender
from ..execution.controller import FlowController, default_test_for_exit
from ..execution.engine import ConversationEngine
from ..infrastructure.database.connection import get_engine
from ..repositories.state import (
    CookieStateCodec,
    CookieStateStore,
    InMemoryStateStore,
    SQLStateStore,
    StateStore,
    sha256_hex,
)
from ..services.conversation import ConversationService
from ..services.flows_loader import FlowsDefinition, load_flows

logger = logging.getLogger(__name__)


# Conversation definition (Singleton)
@lru_cache()
def get_flows_definition() -> FlowsDefinition:
    return load_flows(settings.FLOWS_MODULE)


# Outbound SMS gateway (Singleton)
@lru_cache()
def get_message_sender() -> MessageSender:
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
        return TwilioMessageSender(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            messaging_service_sid=settings.TWILIO_MESSAGING_SERVICE_SID,
        )
    logger.warning("Twilio credentials missing; outbound SMS will only be logged")
    return LoggingMessageSender()


def get_cookie_name() -> str:
    if settings.COOKIE_NAME:
        return settings.COOKIE_NAME
    return "sms_" + sha256_hex(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_ACCOUNT_SID)[:16]


# State Store (Singleton)
# Note: the in-memory store must be a singleton so data persists across requests!
@lru_cache()
def get_state_store() -> StateStore:
    if settings.STATE_BACKEND == "memory":
        return InMemoryStateStore()
    if settings.STATE_BACKEND == "database":
        return SQLStateStore(get_engine(settings.DATABASE_URL))

    if settings.COOKIE_SECRET:
        codec = CookieStateCodec(settings.COOKIE_SECRET)
    else:
        codec = CookieStateCodec.from_twilio_credentials(
            settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN
        )
    return CookieStateStore(codec)


# The Controller (Singleton)
@lru_cache()
def get_flow_controller(
    flows: FlowsDefinition = Depends(get_flows_definition),
) -> FlowController:
    return FlowController(
        flows.root,
        flows.schema,
        on_interaction_end=flows.on_interaction_end,
        test_for_exit=flows.test_for_exit or default_test_for_exit,
    )


# The Engine (Singleton)
@lru_cache()
def get_conversation_engine(
    controller: FlowController = Depends(get_flow_controller),
    sender: MessageSender = Depends(get_message_sender),
) -> ConversationEngine:
    return ConversationEngine(
        controller=controller,
        sender=sender,
        send_on_exit=settings.SEND_ON_EXIT,
        send_delay=settings.SEND_DELAY_SECONDS,
    )


# The Conversation Service (Singleton Service)
@lru_cache()
def get_conversation_service(
    engine: ConversationEngine = Depends(get_conversation_engine),
    store: StateStore = Depends(get_state_store),
    flows: FlowsDefinition = Depends(get_flows_definition),
) -> ConversationService:
    """
    Injects all necessary components into the ConversationService.
    """
    return ConversationService(
        engine=engine,
        store=store,
        get_user_context=flows.get_user_context,
        on_message=flows.on_message,
        on_catch_error=flows.on_catch_error,
    )
