"""
scopes/ - Scope (palette) records and inheritance lookup
"""

from .manager import ScopeConfig, ScopeManager

__all__ = [
    "ScopeConfig",
    "ScopeManager",
]
