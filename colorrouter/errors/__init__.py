"""
errors/ - Error taxonomy and batch failure aggregation
"""

from .taxonomy import (
    ErrorKind,
    ErrorCode,
    ColorRouterError,
    DefinitionError,
    CircularDependencyError,
    ResolutionError,
)

from .aggregator import (
    KeyFailure,
    ErrorReport,
    ErrorAggregator,
)

__all__ = [
    # Taxonomy
    "ErrorKind",
    "ErrorCode",
    "ColorRouterError",
    "DefinitionError",
    "CircularDependencyError",
    "ResolutionError",
    # Aggregator
    "KeyFailure",
    "ErrorReport",
    "ErrorAggregator",
]
