"""
Flows Loader.

Imports the application module that declares the conversation: its ROOT
flow and, optionally, a SCHEMA and the hook callables. Names the module does
not define fall back to None.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..domain.flows import Flow, FlowSchema
from .exceptions import FlowsModuleError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class FlowsDefinition:
    root: Flow
    schema: Optional[FlowSchema] = None
    get_user_context: Optional[Callable[..., Any]] = None
    on_message: Optional[Callable[..., Any]] = None
    on_interaction_end: Optional[Callable[..., Any]] = None
    on_catch_error: Optional[Callable[..., Any]] = None
    test_for_exit: Optional[Callable[..., Any]] = None


def load_flows(module_path: str) -> FlowsDefinition:
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise FlowsModuleError(f"Cannot import flows module '{module_path}': {e}") from e

    root = getattr(module, "ROOT", None)
    if not isinstance(root, Flow):
        raise FlowsModuleError(f"Module '{module_path}' must define ROOT as a Flow")

    logger.info(f"Loaded conversation flows from {module_path}")
    return FlowsDefinition(
        root=root,
        schema=getattr(module, "SCHEMA", None),
        get_user_context=getattr(module, "get_user_context", None),
        on_message=getattr(module, "on_message", None),
        on_interaction_end=getattr(module, "on_interaction_end", None),
        on_catch_error=getattr(module, "on_catch_error", None),
        test_for_exit=getattr(module, "test_for_exit", None),
    )
