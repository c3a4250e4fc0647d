"""
errors/taxonomy.py - Error classification for the resolution engine

Every error raised by the engine carries a stable kind and code so that
callers (renderers, UIs) can decide to substitute a fallback value without
parsing messages.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(Enum):
    """Stable error kinds exposed to library consumers."""
    DEFINITION = "definition"
    CIRCULAR_DEPENDENCY = "circular_dependency"
    RESOLUTION = "resolution"


class ErrorCode(Enum):
    """Specific error codes."""

    # Definition (1xxx)
    DEF_SCOPE_MISSING = 1001
    DEF_SCOPE_EXISTS = 1002
    DEF_KEY_UNDEFINED = 1003
    DEF_NOT_IN_HIERARCHY = 1004
    DEF_RESERVED_NAME = 1005
    DEF_UNKNOWN_FUNCTION = 1006
    DEF_INVALID_VALUE = 1007

    # Cycles (2xxx)
    CYC_DEFINITION_GRAPH = 2001
    CYC_INHERITANCE = 2002
    CYC_REFERENCE_CHAIN = 2003

    # Resolution (3xxx)
    RES_FUNCTION_FAILED = 3001


class ColorRouterError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind = ErrorKind.DEFINITION
    default_code: ErrorCode = ErrorCode.DEF_KEY_UNDEFINED

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code.value,
            "message": self.message,
        }


class DefinitionError(ColorRouterError):
    """
    Raised for invalid configuration: a missing scope, `set` on an
    undefined key, a reserved function name, or a key that no scope in
    the inheritance chain defines.
    """

    kind = ErrorKind.DEFINITION
    default_code = ErrorCode.DEF_KEY_UNDEFINED


class CircularDependencyError(ColorRouterError):
    """Raised when a dependency, inheritance, or reference cycle is detected."""

    kind = ErrorKind.CIRCULAR_DEPENDENCY
    default_code = ErrorCode.CYC_DEFINITION_GRAPH

    def __init__(self, path: List[str], code: Optional[ErrorCode] = None):
        self.path = list(path)
        super().__init__(
            f"Circular dependency detected: {' -> '.join(self.path)}",
            code=code,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["path"] = self.path
        return data


class ResolutionError(ColorRouterError):
    """Wraps an exception raised by an external function implementation."""

    kind = ErrorKind.RESOLUTION
    default_code = ErrorCode.RES_FUNCTION_FAILED

    def __init__(
        self,
        key: str,
        function_name: str,
        cause: BaseException,
    ):
        self.key = key
        self.function_name = function_name
        self.cause = cause
        super().__init__(
            f"Function '{function_name}' failed while resolving '{key}': {cause}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["key"] = self.key
        data["function_name"] = self.function_name
        data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return data
