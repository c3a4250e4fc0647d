"""
ColorRouter Scope Manager

Tracks named scopes (palettes). A scope may extend one parent scope; a
short name that a scope does not define itself is looked up along the
`extends` chain, nearest ancestor first.

The manager reads the engine's definition store but never writes to it
directly: overrides and copies go through `engine.define` so they join the
dependency graph like any other token.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple
import logging

from colorrouter.core.definitions import Definition
from colorrouter.errors.taxonomy import (
    CircularDependencyError,
    DefinitionError,
    ErrorCode,
)

if TYPE_CHECKING:
    from colorrouter.engine.resolution import ResolutionEngine

logger = logging.getLogger(__name__)


@dataclass
class ScopeConfig:
    """A named scope and its inheritance settings."""
    name: str
    extends: Optional[str] = None
    overrides: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "extends": self.extends,
            "overrides": sorted(self.overrides),
            "description": self.description,
        }


class ScopeManager:
    """
    Scope records plus inheritance-aware key lookup.
    """

    def __init__(
        self,
        definitions: Mapping[str, Definition],
        engine: "ResolutionEngine",
        delimiter: str = ".",
    ):
        self._scopes: Dict[str, ScopeConfig] = {}
        self._definitions = definitions
        self._engine = engine
        self._delimiter = delimiter

    @property
    def delimiter(self) -> str:
        return self._delimiter

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def split_key(self, key: str) -> Optional[Tuple[str, str]]:
        """Split `scope.short` into its parts; None if `key` is not qualified."""
        if not isinstance(key, str):
            return None
        scope, sep, short = key.partition(self._delimiter)
        if not sep or not scope or not short:
            return None
        return scope, short

    def make_key(self, scope: str, short: str) -> str:
        return f"{scope}{self._delimiter}{short}"

    # -------------------------------------------------------------------------
    # Scope lifecycle
    # -------------------------------------------------------------------------

    def create_scope(
        self,
        name: str,
        extends: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> ScopeConfig:
        """
        Register a new scope.

        Overrides are only applied when `extends` is set; each one is
        defined as `name.<short>` through the engine.

        Raises:
            DefinitionError: name taken, or `extends` names a missing scope
        """
        if not name or self._delimiter in name:
            raise DefinitionError(
                f'Invalid scope name "{name}".', code=ErrorCode.DEF_INVALID_VALUE
            )
        if name in self._scopes:
            raise DefinitionError(
                f'Scope "{name}" already exists.', code=ErrorCode.DEF_SCOPE_EXISTS
            )
        if extends and extends not in self._scopes:
            raise DefinitionError(
                f'Base scope "{extends}" does not exist.',
                code=ErrorCode.DEF_SCOPE_MISSING,
            )

        config = ScopeConfig(
            name=name,
            extends=extends,
            overrides=dict(overrides or {}),
            description=description,
        )
        self._scopes[name] = config
        logger.info(
            f"Scope '{name}' created" + (f" extending '{extends}'" if extends else "")
        )

        if extends and config.overrides:
            for short, value in config.overrides.items():
                self._engine.define(self.make_key(name, short), value)

        return config

    def extend_scope(
        self,
        name: str,
        base: str,
        overrides: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> ScopeConfig:
        """Shorthand for `create_scope(name, extends=base, ...)`."""
        return self.create_scope(
            name, extends=base, overrides=overrides, description=description
        )

    def copy_scope(self, source: str, target: str) -> ScopeConfig:
        """
        Create `target` holding a copy of every definition visible in `source`.

        Raises:
            DefinitionError: source missing or target exists
        """
        if source not in self._scopes:
            raise DefinitionError(
                f'Source scope "{source}" does not exist.',
                code=ErrorCode.DEF_SCOPE_MISSING,
            )
        if target in self._scopes:
            raise DefinitionError(
                f'Target scope "{target}" already exists.',
                code=ErrorCode.DEF_SCOPE_EXISTS,
            )

        source_keys = self.get_all_keys_for_scope(source)
        config = self.create_scope(target)

        for key in source_keys:
            _, short = self.split_key(key)
            definition = self._engine.get_definition_for_key(key)
            self._engine.define(self.make_key(target, short), definition)

        logger.info(f"Copied scope '{source}' to '{target}' ({len(source_keys)} keys)")
        return config

    def delete_scope(self, name: str) -> List[str]:
        """
        Remove a scope record.

        Returns:
            Keys that belonged to the scope, for the engine to purge

        Raises:
            DefinitionError: scope does not exist
        """
        if name not in self._scopes:
            raise DefinitionError(
                f'Scope "{name}" does not exist.', code=ErrorCode.DEF_SCOPE_MISSING
            )

        keys = self.get_all_keys_for_scope(name)
        del self._scopes[name]
        logger.info(f"Deleted scope '{name}'")
        return keys

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_scope(self, name: str) -> bool:
        return name in self._scopes

    def get_scope(self, name: str) -> Optional[ScopeConfig]:
        return self._scopes.get(name)

    def get_all_scopes(self) -> List[ScopeConfig]:
        return list(self._scopes.values())

    def get_inheritance_chain(self, name: str) -> List[str]:
        """
        `name` followed by its ancestors, nearest first.

        Raises:
            CircularDependencyError: the `extends` chain loops
        """
        chain: List[str] = []
        current: Optional[str] = name

        while current:
            if current in chain:
                raise CircularDependencyError(
                    chain + [current], code=ErrorCode.CYC_INHERITANCE
                )
            chain.append(current)
            config = self._scopes.get(current)
            current = config.extends if config else None

        return chain

    def get_all_keys_for_scope(self, name: str) -> List[str]:
        """
        Every key visible in `name`, qualified under `name`.

        Short names defined anywhere along the `extends` chain are included;
        root ancestors are scanned first.
        """
        keys: Dict[str, None] = {}

        for scope_name in reversed(self.get_inheritance_chain(name)):
            prefix = f"{scope_name}{self._delimiter}"
            for key in self._definitions:
                if key.startswith(prefix):
                    keys[self.make_key(name, key[len(prefix):])] = None

        return list(keys)

    def find_definition(self, key: str) -> Tuple[str, Definition]:
        """
        Locate the definition that governs `key`.

        Returns:
            (owner_key, definition) where owner_key is `key` itself or the
            same short name in the nearest ancestor scope that defines it

        Raises:
            DefinitionError: no scope in the chain defines the short name
            CircularDependencyError: the `extends` chain loops
        """
        parts = self.split_key(key)
        if parts is None:
            raise DefinitionError(
                f"Key '{key}' is not of the form scope{self._delimiter}name.",
                code=ErrorCode.DEF_NOT_IN_HIERARCHY,
            )
        scope, short = parts

        for scope_name in self.get_inheritance_chain(scope):
            candidate = self.make_key(scope_name, short)
            if candidate in self._definitions:
                return candidate, self._definitions[candidate]

        raise DefinitionError(
            f"Token '{key}' not found in scope hierarchy.",
            code=ErrorCode.DEF_NOT_IN_HIERARCHY,
        )

    def has_definition(self, key: str) -> bool:
        """True if `key` is defined directly or by an ancestor scope."""
        parts = self.split_key(key)
        if parts is None:
            return False
        scope, short = parts
        return any(
            self.make_key(scope_name, short) in self._definitions
            for scope_name in self.get_inheritance_chain(scope)
        )
