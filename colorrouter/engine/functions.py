"""
ColorRouter Function Registry

Name -> callable map for function tokens. Two call shapes:

- value modifier:  fn(*resolved_args) -> value
- scope selector:  fn(engine, *resolved_args) -> value

A scope selector receives the engine so it can enumerate and resolve the
members of a scope ("best match in scope" style computations). When a bare
scope name is passed to a selector, every member key of that scope becomes a
prerequisite of the call.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Tuple
import logging

from colorrouter.core.definitions import FunctionCall
from colorrouter.core.enums import FunctionKind
from colorrouter.errors.taxonomy import DefinitionError, ErrorCode

if TYPE_CHECKING:
    from colorrouter.scopes.manager import ScopeManager

logger = logging.getLogger(__name__)


# Names that would shadow the engine's own API or the definition builders.
RESERVED_NAMES = frozenset({
    "ref",
    "call",
    "func",
    "define",
    "set",
    "resolve",
    "resolve_or_default",
    "resolve_scope",
    "has",
    "flush",
    "mode",
    "watch",
    "unwatch",
    "on_change",
    "off_change",
    "on_batch_complete",
    "on_batch_failed",
    "create_scope",
    "extend_scope",
    "copy_scope",
    "delete_scope",
    "has_scope",
    "get_scope",
    "get_all_scopes",
    "get_all_keys_for_scope",
    "get_scope_dependencies",
    "get_dependencies",
    "get_dependents",
    "get_connection_graph",
    "get_definition_for_key",
    "get_definition_type",
    "get_visual_dependencies",
    "get_custom_functions",
    "get_event_history",
    "describe",
    "register_function",
    "register_value_modifier",
    "register_scope_selector",
    "batch_queue_size",
    "graph",
    "scopes",
    "config",
})

SCOPE_VISUAL_PREFIX = "scope:"


@dataclass(frozen=True)
class RegisteredFunction:
    """A callable and its call shape."""
    name: str
    fn: Callable[..., Any]
    kind: FunctionKind = FunctionKind.VALUE_MODIFIER

    @property
    def is_scope_selector(self) -> bool:
        return self.kind == FunctionKind.SCOPE_SELECTOR


class FunctionRegistry:
    """
    Registered functions and the dependency-extraction contract.
    """

    def __init__(self, scopes: "ScopeManager"):
        self._scopes = scopes
        self._functions: Dict[str, RegisteredFunction] = {}

    def register(
        self,
        name: str,
        fn: Callable[..., Any],
        kind: FunctionKind = FunctionKind.VALUE_MODIFIER,
    ) -> RegisteredFunction:
        """
        Register `fn` under `name`.

        Re-registering an existing name replaces it.

        Raises:
            DefinitionError: `name` is not a string or is reserved, or `fn`
                is not callable
        """
        if not isinstance(name, str) or not name:
            raise DefinitionError(
                f"Function name must be a non-empty string, got {name!r}.",
                code=ErrorCode.DEF_INVALID_VALUE,
            )
        if name in RESERVED_NAMES or name.startswith("_"):
            raise DefinitionError(
                f'Function name "{name}" is reserved.', code=ErrorCode.DEF_RESERVED_NAME
            )
        if not callable(fn):
            raise DefinitionError(
                f'Function "{name}" is not callable.', code=ErrorCode.DEF_INVALID_VALUE
            )

        registered = RegisteredFunction(name=name, fn=fn, kind=FunctionKind(kind))
        self._functions[name] = registered
        logger.info(f"Registered function '{name}' ({registered.kind.value})")
        return registered

    def get(self, name: str) -> RegisteredFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise DefinitionError(
                f'Function "{name}" is not registered.',
                code=ErrorCode.DEF_UNKNOWN_FUNCTION,
            ) from None

    def as_mapping(self) -> Dict[str, Callable[..., Any]]:
        return {name: f.fn for name, f in self._functions.items()}

    def build_call(self, name: str, *args: Any) -> FunctionCall:
        """
        Build a FunctionCall with its dependency keys extracted from `args`.

        String arguments that look like qualified keys are prerequisites.
        For scope selectors, a bare argument naming an existing scope is
        expanded to all member keys of that scope.
        """
        registered = self.get(name)
        dependencies, visual = self.extract_dependencies(registered, args)
        return FunctionCall(
            name=name,
            fn=registered.fn,
            args=tuple(args),
            dependency_keys=dependencies,
            function_kind=registered.kind,
            visual_dependencies=visual,
        )

    def extract_dependencies(
        self,
        registered: RegisteredFunction,
        args: Tuple[Any, ...],
    ) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        dependencies: Dict[str, None] = {}
        visual: Dict[str, None] = {}

        for arg in args:
            if self._scopes.split_key(arg) is not None:
                dependencies[arg] = None
                visual[arg] = None
            elif (
                registered.is_scope_selector
                and isinstance(arg, str)
                and self._scopes.has_scope(arg)
            ):
                for member in self._scopes.get_all_keys_for_scope(arg):
                    dependencies[member] = None
                visual[f"{SCOPE_VISUAL_PREFIX}{arg}"] = None

        return tuple(dependencies), tuple(visual)
