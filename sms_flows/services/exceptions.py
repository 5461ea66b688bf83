"""
Service Layer Exceptions

Custom exceptions for the ConversationService and its wiring.
"""


class FlowsModuleError(Exception):
    """Raised when the configured flows module does not define a usable ROOT flow."""
    pass
