"""Chained symbol tables shared by the analyzer (names -> types) and the
evaluator (names -> runtime values).

A scope never overwrites a binding through define(); shadowing only
happens by nesting. A child holds a reference to its parent, so a scope
captured by a closure keeps its whole ancestor chain alive.
"""

from __future__ import annotations

from typing import Generic, Iterator, TypeVar

V = TypeVar("V")


class ScopeError(LookupError):
    """Misuse of a scope: redefinition, or set() of an unbound name."""


class Scope(Generic[V]):
    def __init__(self, parent: Scope[V] | None = None) -> None:
        self.parent = parent
        self._bindings: dict[str, V] = {}

    def define(self, name: str, value: V) -> None:
        if name in self._bindings:
            raise ScopeError("'" + name + "' is already defined in this scope")
        self._bindings[name] = value

    def lookup(self, name: str, current_only: bool = False) -> V | None:
        """Nearest binding of name, or None when it is not bound."""
        scope: Scope[V] | None = self
        while scope is not None:
            if name in scope._bindings:
                return scope._bindings[name]
            if current_only:
                return None
            scope = scope.parent
        return None

    def contains(self, name: str, current_only: bool = False) -> bool:
        scope: Scope[V] | None = self
        while scope is not None:
            if name in scope._bindings:
                return True
            if current_only:
                return False
            scope = scope.parent
        return False

    def set(self, name: str, value: V) -> None:
        """Rebind name in the nearest scope that defines it."""
        scope: Scope[V] | None = self
        while scope is not None:
            if name in scope._bindings:
                scope._bindings[name] = value
                return
            scope = scope.parent
        raise ScopeError("'" + name + "' is not defined")

    def collect(self, current_only: bool = False) -> dict[str, V]:
        """Visible bindings in insertion order; inner names hide outer ones."""
        if current_only or self.parent is None:
            return dict(self._bindings)
        merged = self.parent.collect()
        merged.update(self._bindings)
        return merged

    def names(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return "Scope(" + ", ".join(self._bindings) + ")"
