"""PLC type lattice — resolved types and the subtype relation.

              Any
            /     \\
      Equatable    Iterable
       /     \\
     Nil   Comparable
          /   |   |   \\
   Boolean Integer Decimal String

Function and Object types sit directly under Any.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import TypeMismatch
from .scope import Scope


# ============================================================
# TYPES
# ============================================================


class Type:
    """Base for all resolved types."""


@dataclass(frozen=True)
class Primitive(Type):
    name: str


@dataclass(frozen=True)
class FunctionType(Type):
    params: tuple[Type, ...]
    returns: Type


class ObjectType(Type):
    """Object type; its identity is the member name -> type mapping.

    The member scope may contain an entry whose type is this very object
    (the self-reference), so equality is decided coinductively.
    """

    def __init__(self, members: Scope[Type]) -> None:
        self.members = members

    def member(self, name: str) -> Type | None:
        return self.members.lookup(name, current_only=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectType):
            return NotImplemented
        return type_eq(self, other)

    def __hash__(self) -> int:
        # Members are still added after construction (methods, then the
        # self-reference), so the hash must not depend on them.
        return hash(ObjectType)

    def __repr__(self) -> str:
        return "ObjectType(" + ", ".join(self.members.names()) + ")"


NIL = Primitive("Nil")
BOOLEAN = Primitive("Boolean")
INTEGER = Primitive("Integer")
DECIMAL = Primitive("Decimal")
STRING = Primitive("String")

ANY = Primitive("Any")
EQUATABLE = Primitive("Equatable")
COMPARABLE = Primitive("Comparable")
ITERABLE = Primitive("Iterable")

TYPES: dict[str, Type] = {
    "Nil": NIL,
    "Boolean": BOOLEAN,
    "Integer": INTEGER,
    "Decimal": DECIMAL,
    "String": STRING,
    "Any": ANY,
    "Equatable": EQUATABLE,
    "Comparable": COMPARABLE,
    "Iterable": ITERABLE,
}


# ============================================================
# TYPE EQUALITY
# ============================================================


def type_eq(a: Type, b: Type) -> bool:
    return _type_eq(a, b, set())


def _type_eq(a: Type, b: Type, assumed: set[tuple[int, int]]) -> bool:
    if a is b:
        return True
    if isinstance(a, ObjectType) and isinstance(b, ObjectType):
        key = (id(a), id(b))
        if key in assumed:
            return True
        assumed.add(key)
        ma = a.members.collect(current_only=True)
        mb = b.members.collect(current_only=True)
        if ma.keys() != mb.keys():
            return False
        for name, t in ma.items():
            if not _type_eq(t, mb[name], assumed):
                return False
        return True
    if isinstance(a, FunctionType) and isinstance(b, FunctionType):
        if len(a.params) != len(b.params):
            return False
        i = 0
        while i < len(a.params):
            if not _type_eq(a.params[i], b.params[i], assumed):
                return False
            i += 1
        return _type_eq(a.returns, b.returns, assumed)
    if isinstance(a, Primitive) and isinstance(b, Primitive):
        return a.name == b.name
    return False


# ============================================================
# SUBTYPING
# ============================================================

# Strict supertypes of each primitive, below Any.
_SUPERTYPES: dict[str, frozenset[str]] = {
    "Nil": frozenset({"Equatable"}),
    "Boolean": frozenset({"Comparable", "Equatable"}),
    "Integer": frozenset({"Comparable", "Equatable"}),
    "Decimal": frozenset({"Comparable", "Equatable"}),
    "String": frozenset({"Comparable", "Equatable"}),
    "Comparable": frozenset({"Equatable"}),
    "Equatable": frozenset(),
    "Iterable": frozenset(),
    "Any": frozenset(),
}


def is_subtype(t: Type, expected: Type) -> bool:
    if type_eq(t, expected):
        return True
    if expected == ANY:
        return True
    if isinstance(t, Primitive) and isinstance(expected, Primitive):
        return expected.name in _SUPERTYPES.get(t.name, frozenset())
    return False


def require_subtype(t: Type, expected: Type) -> None:
    if not is_subtype(t, expected):
        raise TypeMismatch(
            "expected '" + type_name(t) + "' to be a subtype of '" + type_name(expected) + "'",
            actual=t,
            expected=expected,
        )


# ============================================================
# DISPLAY
# ============================================================


def type_name(t: Type) -> str:
    """Human-readable name for a type, for error messages."""
    if isinstance(t, Primitive):
        return t.name
    if isinstance(t, FunctionType):
        parts: list[str] = []
        for p in t.params:
            parts.append(type_name(p))
        return "(" + ", ".join(parts) + ") -> " + type_name(t.returns)
    if isinstance(t, ObjectType):
        return "Object{" + ", ".join(t.members.names()) + "}"
    return type(t).__name__
