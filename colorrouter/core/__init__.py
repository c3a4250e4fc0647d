"""
core/ - Token data model
"""

from .enums import (
    UpdateMode,
    DefinitionKind,
    FunctionKind,
    EdgeType,
)
from .definitions import (
    Literal,
    Reference,
    FunctionCall,
    Definition,
    as_definition,
    describe,
    edge_type_for,
)

__all__ = [
    "UpdateMode",
    "DefinitionKind",
    "FunctionKind",
    "EdgeType",
    "Literal",
    "Reference",
    "FunctionCall",
    "Definition",
    "as_definition",
    "describe",
    "edge_type_for",
]
