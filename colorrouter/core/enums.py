"""
core/enums.py - Enumerations shared across the engine
"""

from enum import Enum


class UpdateMode(str, Enum):
    """When definition changes are resolved."""
    AUTO = "auto"      # Resolve the affected closure on every define/set
    BATCH = "batch"    # Queue keys until flush()


class DefinitionKind(str, Enum):
    """Tag of the Definition variant."""
    LITERAL = "literal"
    REFERENCE = "reference"
    FUNCTION = "function"


class FunctionKind(str, Enum):
    """Call shape of a registered function."""
    VALUE_MODIFIER = "value_modifier"    # fn(*resolved_args)
    SCOPE_SELECTOR = "scope_selector"    # fn(engine, *resolved_args)


class EdgeType(str, Enum):
    """Why a dependent depends on a prerequisite."""
    REFERENCE = "reference"        # dependent aliases prerequisite
    FUNCTION = "function"          # prerequisite is a function input
    INHERITANCE = "inheritance"    # dependent inherits prerequisite's definition
