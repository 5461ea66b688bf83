"""
Domain Exceptions

Errors raised by flow construction and by the controller while processing
an inbound message. Construction-time errors subclass TypeError so callers
that only guard against bad arguments still catch them.
"""


class FlowError(Exception):
    """Base class for every error raised by the flow machinery."""
    pass


class FlowConfigurationError(FlowError, TypeError):
    """Raised when a Flow, FlowSchema or FlowController is built incorrectly."""
    pass


class InvalidFlowReference(FlowError):
    """Raised when persisted state names a flow the controller does not know."""
    pass


class UndeclaredFlowError(FlowError):
    """Raised when a Trigger targets a flow that is not declared in the schema."""
    pass


class MissingSchemaError(FlowError):
    """Raised when a Trigger is used without a FlowSchema."""
    pass


class ActionNameError(FlowError):
    """Raised when an action is recorded under a name its flow does not declare."""
    pass
