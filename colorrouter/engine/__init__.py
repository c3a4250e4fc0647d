"""
ColorRouter Resolution Engine

Provides:
- ResolutionEngine: definition store, resolved cache, auto/batch modes
- FunctionRegistry: value modifiers and scope selectors
- SubscriptionRegistry: change, watch and batch notifications
"""

from .events import (
    EngineEventType,
    ChangeEvent,
    BatchReport,
    SubscriptionRegistry,
)
from .functions import (
    FunctionRegistry,
    RegisteredFunction,
    RESERVED_NAMES,
    SCOPE_VISUAL_PREFIX,
)
from .resolution import ResolutionEngine

__all__ = [
    # Events
    "EngineEventType",
    "ChangeEvent",
    "BatchReport",
    "SubscriptionRegistry",
    # Functions
    "FunctionRegistry",
    "RegisteredFunction",
    "RESERVED_NAMES",
    "SCOPE_VISUAL_PREFIX",
    # Engine
    "ResolutionEngine",
]
