"""
ColorRouter Resolution Engine

Owns the definition store and the resolved-value cache, and keeps them
consistent with the dependency graph:

- auto mode:  every define/set resolves its affected closure immediately,
              prerequisites first, and fires one change event
- batch mode: define/set only queue the key; flush() merges the queue into
              one topological pass and reports per-key failures instead of
              raising them

Usage:
    engine = ResolutionEngine()
    engine.create_scope("base")
    engine.define("base.bg", "#ffffff")
    engine.define("base.surface", engine.ref("base.bg"))
    engine.set("base.bg", "#000000")
    engine.resolve("base.surface")   # "#000000"
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, Set, Union
import logging

from colorrouter.bootstrap.config import EngineConfig
from colorrouter.core.definitions import (
    Definition,
    FunctionCall,
    Reference,
    as_definition,
    describe,
)
from colorrouter.core.enums import DefinitionKind, FunctionKind, UpdateMode
from colorrouter.dependencies.graph import DependencyGraph
from colorrouter.errors.aggregator import ErrorAggregator
from colorrouter.errors.taxonomy import (
    CircularDependencyError,
    ColorRouterError,
    DefinitionError,
    ErrorCode,
    ResolutionError,
)
from colorrouter.scopes.manager import ScopeConfig, ScopeManager

from .events import (
    BatchHandler,
    BatchReport,
    ChangeEvent,
    ChangeHandler,
    EngineEventType,
    SubscriptionRegistry,
    WatchHandler,
)
from .functions import FunctionRegistry, RegisteredFunction

logger = logging.getLogger(__name__)

_MISSING = object()


class ResolutionEngine:
    """
    Reactive store of scoped tokens.

    Args:
        mode: "auto" or "batch"; overrides `config.mode` when given
        config: EngineConfig (defaults when omitted)
        normalizer: optional callable applied to literal values. It is run
            at define time to validate (ValueError/TypeError become
            DefinitionError) and at resolution time to produce the cached
            value.
    """

    def __init__(
        self,
        mode: Optional[Union[UpdateMode, str]] = None,
        config: Optional[EngineConfig] = None,
        normalizer: Optional[Callable[[Any], Any]] = None,
    ):
        self._config = config or EngineConfig()
        self._mode = UpdateMode(mode) if mode is not None else UpdateMode(self._config.mode)
        self._normalizer = normalizer

        self._definitions: Dict[str, Definition] = {}
        self._resolved: Dict[str, Any] = {}
        self._batch_queue: Dict[str, None] = {}
        self._resolving: List[str] = []

        self._graph = DependencyGraph()
        self._scopes = ScopeManager(self._definitions, self, self._config.key_delimiter)
        self._functions = FunctionRegistry(self._scopes)
        self._events = SubscriptionRegistry(max_history=self._config.max_history)

        logger.debug(f"ResolutionEngine created (mode={self._mode.value})")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> UpdateMode:
        return self._mode

    @mode.setter
    def mode(self, value: Union[UpdateMode, str]) -> None:
        # Switching modes never flushes the existing queue.
        self._mode = UpdateMode(value)
        logger.debug(f"Mode set to {self._mode.value}")

    @property
    def batch_queue_size(self) -> int:
        return len(self._batch_queue)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def scopes(self) -> ScopeManager:
        return self._scopes

    # -------------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------------

    def create_scope(
        self,
        name: str,
        extends: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> ScopeConfig:
        return self._scopes.create_scope(
            name, extends=extends, overrides=overrides, description=description
        )

    def extend_scope(
        self,
        name: str,
        base: str,
        overrides: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> ScopeConfig:
        return self._scopes.extend_scope(name, base, overrides, description)

    def copy_scope(self, source: str, target: str) -> ScopeConfig:
        return self._scopes.copy_scope(source, target)

    def delete_scope(self, name: str) -> List[str]:
        """
        Delete a scope and every token under it.

        Cached values of tokens that depended on the removed keys are
        dropped so they are recomputed (or fail) on next resolve.
        """
        keys = self._scopes.delete_scope(name)

        downstream: Set[str] = set()
        for key in keys:
            downstream.update(self._graph.get_all_downstream(key))

        for key in keys:
            self._definitions.pop(key, None)
            self._resolved.pop(key, None)
            self._batch_queue.pop(key, None)
            self._graph.remove_node(key)

        for key in downstream.difference(keys):
            self._resolved.pop(key, None)

        return keys

    def has_scope(self, name: str) -> bool:
        return self._scopes.has_scope(name)

    def get_scope(self, name: str) -> Optional[ScopeConfig]:
        return self._scopes.get_scope(name)

    def get_all_scopes(self) -> List[ScopeConfig]:
        return self._scopes.get_all_scopes()

    def get_all_keys_for_scope(self, name: str) -> List[str]:
        return self._scopes.get_all_keys_for_scope(name)

    # -------------------------------------------------------------------------
    # Functions and definition builders
    # -------------------------------------------------------------------------

    def register_function(
        self,
        name: str,
        fn: Callable[..., Any],
        scope_selector: bool = False,
    ) -> RegisteredFunction:
        kind = FunctionKind.SCOPE_SELECTOR if scope_selector else FunctionKind.VALUE_MODIFIER
        return self._functions.register(name, fn, kind)

    def register_value_modifier(self, name: str, fn: Callable[..., Any]) -> RegisteredFunction:
        return self._functions.register(name, fn, FunctionKind.VALUE_MODIFIER)

    def register_scope_selector(self, name: str, fn: Callable[..., Any]) -> RegisteredFunction:
        return self._functions.register(name, fn, FunctionKind.SCOPE_SELECTOR)

    def get_custom_functions(self) -> Dict[str, Callable[..., Any]]:
        return self._functions.as_mapping()

    def ref(self, key: str) -> Reference:
        return Reference(key)

    def call(self, name: str, *args: Any) -> FunctionCall:
        return self._functions.build_call(name, *args)

    func = call

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def define(self, key: str, definition: Any) -> None:
        """
        Create or replace a token.

        Raises:
            DefinitionError: the owning scope does not exist
            CircularDependencyError: (auto mode) the definition closes a
                cycle; the previous definition is restored
        """
        parts = self._scopes.split_key(key)
        if parts is None:
            raise DefinitionError(
                f"Key '{key}' is not of the form scope{self._scopes.delimiter}name.",
                code=ErrorCode.DEF_INVALID_VALUE,
            )
        if not self._scopes.has_scope(parts[0]):
            raise DefinitionError(
                f'Scope "{parts[0]}" does not exist. Create it first.',
                code=ErrorCode.DEF_SCOPE_MISSING,
            )
        self._apply(key, definition)

    def set(self, key: str, definition: Any) -> None:
        """
        Replace the definition of a token defined directly in its scope.

        Raises:
            DefinitionError: `key` has no direct definition
        """
        if key not in self._definitions:
            raise DefinitionError(
                f"Token '{key}' is not defined. Use define() first.",
                code=ErrorCode.DEF_KEY_UNDEFINED,
            )
        self._apply(key, definition)

    def _apply(self, key: str, value: Any) -> None:
        definition = as_definition(value)
        if definition.kind == DefinitionKind.LITERAL:
            self._normalize(key, definition.value)

        previous = self._definitions.get(key, _MISSING)
        had_node = self._graph.has_node(key)
        previous_edges = self._graph.get_prerequisite_edges(key)

        self._definitions[key] = definition
        self._graph.update_edges(key, definition)
        logger.debug(f"Defined '{key}' = {describe(definition)}")

        if self._mode == UpdateMode.BATCH:
            self._batch_queue[key] = None
            return

        try:
            self._resolve_and_notify(key)
        except CircularDependencyError:
            self._rollback(key, previous, previous_edges, had_node)
            raise

    def _rollback(
        self,
        key: str,
        previous: Any,
        previous_edges: Dict[str, Any],
        had_node: bool,
    ) -> None:
        if previous is _MISSING:
            self._definitions.pop(key, None)
        else:
            self._definitions[key] = previous

        if had_node:
            self._graph.restore_edges(key, previous_edges)
        else:
            self._graph.remove_node(key)
        logger.debug(f"Rolled back definition of '{key}'")

    def _resolve_and_notify(self, start_key: str) -> None:
        try:
            order = self._graph.get_evaluation_order_for(start_key)
        except CircularDependencyError as e:
            logger.warning(f"Error getting update order for '{start_key}': {e}")
            raise

        snapshot = {k: self._resolved.get(k, _MISSING) for k in order}
        changes: List[ChangeEvent] = []
        first_error: Optional[ColorRouterError] = None
        blocked: Set[str] = set()

        for key in order:
            if key in blocked:
                self._resolved.pop(key, None)
                continue

            old = snapshot[key]
            try:
                new = self._resolve_key(key)
            except CircularDependencyError:
                self._restore_cache(snapshot)
                raise
            except ColorRouterError as e:
                logger.warning(f"Failed to resolve '{key}' after change to '{start_key}': {e}")
                self._resolved.pop(key, None)
                blocked.update(self._graph.get_all_downstream(key))
                if first_error is None:
                    first_error = e
                continue

            if old is _MISSING or old != new:
                changes.append(ChangeEvent(
                    key=key,
                    old_value=None if old is _MISSING else old,
                    new_value=new,
                ))

        self._publish(changes)
        if first_error is not None:
            raise first_error

    def _restore_cache(self, snapshot: Dict[str, Any]) -> None:
        for key, value in snapshot.items():
            if value is _MISSING:
                self._resolved.pop(key, None)
            else:
                self._resolved[key] = value

    def _publish(self, changes: List[ChangeEvent]) -> None:
        if not changes:
            return
        for change in changes:
            self._events.emit_key_change(change)
        self._events.emit(EngineEventType.CHANGE, list(changes))

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def flush(self) -> Optional[BatchReport]:
        """
        Resolve every queued key (and everything downstream of it) in one
        topological pass.

        Returns None outside batch mode. A batch that cannot be ordered is
        reported through `on_batch_failed` with nothing applied; otherwise
        per-key failures are collected in the report and the rest of the
        batch still resolves.
        """
        if self._mode != UpdateMode.BATCH:
            return None

        queued = list(self._batch_queue)
        self._batch_queue.clear()

        try:
            order = self._graph.get_evaluation_order_for_many(queued)
        except CircularDependencyError as e:
            summary = f"Batch processing failed during sorting for {len(queued)} keys."
            logger.warning(f"Error during topological sort in flush: {e}. {summary}")
            report = BatchReport(
                queued_keys=queued,
                summary=summary,
                stage="sorting",
                error=e,
            )
            self._events.emit(EngineEventType.BATCH_FAILED, report)
            return report

        aggregator = ErrorAggregator()
        changes: List[ChangeEvent] = []

        for key in order:
            old = self._resolved.get(key, _MISSING)
            try:
                new = self._resolve_key(key)
            except ColorRouterError as e:
                logger.warning(f"Error resolving key '{key}' during flush: {e}")
                self._resolved.pop(key, None)
                aggregator.add(key, e)
                continue

            if old is _MISSING or old != new:
                changes.append(ChangeEvent(
                    key=key,
                    old_value=None if old is _MISSING else old,
                    new_value=new,
                ))

        error_report = aggregator.generate_report()
        summary = (
            f"Flush processed {len(order)} keys. "
            f"{len(changes)} values updated, {error_report.total_errors} errors."
        )
        logger.info(summary)
        if aggregator.has_errors():
            logger.warning(f"Flush errors: {error_report.summary}")

        report = BatchReport(
            changes=changes,
            errors=aggregator.failures,
            processed_keys=order,
            queued_keys=queued,
            summary=summary,
            error_report=error_report,
        )
        self._publish(changes)
        self._events.emit(EngineEventType.BATCH_COMPLETE, report)
        return report

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def resolve(self, key: str) -> Any:
        """
        Resolved value of `key`, from cache when available.

        A scope selector may call this for other keys while it runs. Asking
        for a key that is still being computed raises CircularDependencyError.

        Raises:
            DefinitionError, CircularDependencyError, ResolutionError
        """
        try:
            return self._lookup(key)
        except ColorRouterError as e:
            logger.debug(f"Failed to resolve '{key}': {e}")
            raise

    def resolve_or_default(self, key: str, default: Any = None) -> Any:
        """Resolve `key`, returning `default` on any engine error."""
        try:
            return self.resolve(key)
        except ColorRouterError as e:
            logger.debug(f"Using default for '{key}' ({e.kind.value})")
            return default

    def resolve_scope(self, name: str) -> Dict[str, Any]:
        """Short name -> resolved value for every key visible in a scope."""
        result: Dict[str, Any] = {}
        for key in self._scopes.get_all_keys_for_scope(name):
            _, short = self._scopes.split_key(key)
            result[short] = self.resolve(key)
        return result

    def _lookup(self, key: str) -> Any:
        if key in self._resolved and key not in self._resolving:
            return self._resolved[key]
        return self._resolve_key(key)

    def _resolve_key(self, key: str) -> Any:
        """Recompute `key` from its definition and cache the result."""
        if key in self._resolving:
            raise CircularDependencyError(
                self._resolving + [key], code=ErrorCode.CYC_REFERENCE_CHAIN
            )

        self._resolving.append(key)
        try:
            owner, definition = self._scopes.find_definition(key)
            if owner != key:
                self._graph.link_inheritance(key, owner)

            kind = definition.kind
            if kind == DefinitionKind.LITERAL:
                value = self._normalize(key, definition.value)
            elif kind == DefinitionKind.REFERENCE:
                value = self._resolve_key(definition.key)
            elif kind == DefinitionKind.FUNCTION:
                value = self._execute(key, definition)
            else:
                raise DefinitionError(
                    f"Unknown definition kind for '{key}': {kind}",
                    code=ErrorCode.DEF_INVALID_VALUE,
                )
        finally:
            self._resolving.pop()

        self._resolved[key] = value
        return value

    def _execute(self, key: str, call: FunctionCall) -> Any:
        args = [self._resolve_argument(arg) for arg in call.args]
        try:
            if call.function_kind == FunctionKind.SCOPE_SELECTOR:
                return call.fn(self, *args)
            return call.fn(*args)
        except ColorRouterError:
            raise
        except Exception as e:
            raise ResolutionError(key, call.name, e) from e

    def _resolve_argument(self, arg: Any) -> Any:
        if not isinstance(arg, str) or not self.has(arg):
            return arg
        return self._lookup(arg)

    def _normalize(self, key: str, value: Any) -> Any:
        if self._normalizer is None:
            return value
        try:
            return self._normalizer(value)
        except (ValueError, TypeError) as e:
            raise DefinitionError(
                f"Invalid value for '{key}': {value!r} ({e})",
                code=ErrorCode.DEF_INVALID_VALUE,
            ) from e

    # -------------------------------------------------------------------------
    # Queries (never mutate)
    # -------------------------------------------------------------------------

    def has(self, key: str) -> bool:
        """True if `key` is defined directly or inherited from an ancestor scope."""
        return self._scopes.has_definition(key)

    def get_definition_for_key(self, key: str) -> Definition:
        _, definition = self._scopes.find_definition(key)
        return definition

    def get_definition_type(self, key: str) -> DefinitionKind:
        try:
            return self.get_definition_for_key(key).kind
        except ColorRouterError as e:
            logger.debug(f"Error getting definition type for '{key}': {e}")
            return DefinitionKind.LITERAL

    def get_visual_dependencies(self, key: str) -> Set[str]:
        """Dependencies as a diagram would draw them (`scope:<name>` for whole scopes)."""
        definition = self.get_definition_for_key(key)
        if definition.kind == DefinitionKind.FUNCTION:
            return set(definition.visual_dependencies)
        if definition.kind == DefinitionKind.REFERENCE:
            return {definition.key}
        return set()

    def get_dependencies(self, key: str) -> List[str]:
        return self._graph.get_prerequisites_for(key)

    def get_dependents(self, key: str) -> List[str]:
        return self._graph.get_dependents_of(key)

    def get_scope_dependencies(self, name: str) -> List[str]:
        """Keys outside `name` that tokens in `name` depend on."""
        prefix = f"{name}{self._scopes.delimiter}"
        external: Dict[str, None] = {}
        for key in self._scopes.get_all_keys_for_scope(name):
            for dep in self.get_dependencies(key):
                if not dep.startswith(prefix):
                    external[dep] = None
        return list(external)

    def get_connection_graph(self) -> Dict[str, List[str]]:
        """Node -> dependents adjacency list."""
        return self._graph.get_adjacency_list(show_prerequisites=False)

    def describe(self, definition: Any) -> str:
        return describe(as_definition(definition))

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def on_change(self, callback: ChangeHandler) -> Callable[[], bool]:
        """Call `callback(changes)` once per auto-mode mutation or flush."""
        return self._events.subscribe(EngineEventType.CHANGE, callback)

    def off_change(self, callback: ChangeHandler) -> bool:
        return self._events.unsubscribe(EngineEventType.CHANGE, callback)

    def on_batch_complete(self, callback: BatchHandler) -> Callable[[], bool]:
        return self._events.subscribe(EngineEventType.BATCH_COMPLETE, callback)

    def on_batch_failed(self, callback: BatchHandler) -> Callable[[], bool]:
        return self._events.subscribe(EngineEventType.BATCH_FAILED, callback)

    def watch(self, key: str, callback: WatchHandler) -> Callable[[], bool]:
        """Call `callback(new_value, old_value)` whenever `key` changes."""
        return self._events.watch(key, callback)

    def unwatch(self, key: str, callback: WatchHandler) -> bool:
        return self._events.unwatch(key, callback)

    def get_event_history(self, limit: int = 20):
        return self._events.get_history(limit=limit)
