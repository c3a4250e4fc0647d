"""
core/definitions.py - Token definition variants

A definition is exactly one of Literal, Reference or FunctionCall. The
variant is identified by its `kind` tag; resolution code dispatches on the
tag rather than on the Python class.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Tuple, Union

from .enums import DefinitionKind, EdgeType, FunctionKind


@dataclass(frozen=True)
class Literal:
    """An opaque value, cached as-is after normalization."""
    value: Any
    kind: DefinitionKind = field(default=DefinitionKind.LITERAL, init=False)

    @property
    def dependency_keys(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Reference:
    """Alias of another token's resolved value."""
    key: str
    kind: DefinitionKind = field(default=DefinitionKind.REFERENCE, init=False)

    @property
    def dependency_keys(self) -> Tuple[str, ...]:
        return (self.key,)


@dataclass(frozen=True)
class FunctionCall:
    """
    A value computed by an external callable.

    `dependency_keys` is authoritative for ordering. It can list keys that
    never appear in `args` (a scope selector expands a bare scope name into
    every member key of that scope).
    """
    name: str
    fn: Callable[..., Any] = field(compare=False)
    args: Tuple[Any, ...] = ()
    dependency_keys: Tuple[str, ...] = ()
    function_kind: FunctionKind = FunctionKind.VALUE_MODIFIER
    visual_dependencies: Tuple[str, ...] = ()
    kind: DefinitionKind = field(default=DefinitionKind.FUNCTION, init=False)


Definition = Union[Literal, Reference, FunctionCall]

_DEFINITION_TYPES = (Literal, Reference, FunctionCall)


def as_definition(value: Any) -> Definition:
    """Wrap a raw value as a Literal; definitions pass through unchanged."""
    if isinstance(value, _DEFINITION_TYPES):
        return value
    return Literal(value)


def edge_type_for(definition: Definition) -> EdgeType:
    """Edge type recorded for the prerequisites of a definition."""
    if definition.kind == DefinitionKind.FUNCTION:
        return EdgeType.FUNCTION
    return EdgeType.REFERENCE


def format_argument(arg: Any) -> str:
    if arg is None:
        return "None"
    if isinstance(arg, str):
        return f"'{arg}'"
    if isinstance(arg, (list, tuple)):
        return "[" + ", ".join(format_argument(a) for a in arg) + "]"
    return str(arg)


def describe(definition: Definition) -> str:
    """Human-readable form: `'#fff'`, `ref('base.a')`, `lighten('base.a', 0.1)`."""
    if definition.kind == DefinitionKind.REFERENCE:
        return f"ref('{definition.key}')"
    if definition.kind == DefinitionKind.FUNCTION:
        args = ", ".join(format_argument(a) for a in definition.args)
        return f"{definition.name}({args})"
    return format_argument(definition.value)
