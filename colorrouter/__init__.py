"""
ColorRouter

Reactive resolution engine for scoped design tokens: literal values,
references and computed functions, kept consistent through a dependency
graph with auto and batch update modes.
"""

from colorrouter.core import (
    UpdateMode,
    DefinitionKind,
    FunctionKind,
    EdgeType,
    Literal,
    Reference,
    FunctionCall,
    Definition,
)
from colorrouter.errors import (
    ErrorKind,
    ErrorCode,
    ColorRouterError,
    DefinitionError,
    CircularDependencyError,
    ResolutionError,
    KeyFailure,
)
from colorrouter.dependencies import DependencyGraph
from colorrouter.scopes import ScopeConfig, ScopeManager
from colorrouter.engine import (
    ResolutionEngine,
    FunctionRegistry,
    ChangeEvent,
    BatchReport,
    EngineEventType,
    RESERVED_NAMES,
)
from colorrouter.bootstrap import EngineConfig, configure_logging

__version__ = "1.0.0"

__all__ = [
    "UpdateMode",
    "DefinitionKind",
    "FunctionKind",
    "EdgeType",
    "Literal",
    "Reference",
    "FunctionCall",
    "Definition",
    "ErrorKind",
    "ErrorCode",
    "ColorRouterError",
    "DefinitionError",
    "CircularDependencyError",
    "ResolutionError",
    "KeyFailure",
    "DependencyGraph",
    "ScopeConfig",
    "ScopeManager",
    "ResolutionEngine",
    "FunctionRegistry",
    "ChangeEvent",
    "BatchReport",
    "EngineEventType",
    "RESERVED_NAMES",
    "EngineConfig",
    "configure_logging",
]
