"""
Execution Layer - Flow Resolution and Delivery

Defines the FlowController (deterministic state machine) and the
ConversationEngine (delivery loop) that together process an inbound SMS.
"""

from sms_flows.execution.controller import FlowController, default_test_for_exit
from sms_flows.execution.engine import ConversationEngine, TurnResult


__all__ = [
    "ConversationEngine",
    "FlowController",
    "TurnResult",
    "default_test_for_exit",
]
