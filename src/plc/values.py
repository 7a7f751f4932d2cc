"""Runtime values produced by the evaluator."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from .ast import Char
from .scope import Scope

PrimitiveValue = None | bool | int | Decimal | str | Char | list


class RuntimeValue:
    """A value produced by the evaluator."""

    def display(self) -> str:
        """Human-readable form used by print, log and string concatenation."""
        raise NotImplementedError


@dataclass(eq=False)
class Primitive(RuntimeValue):
    """A boxed host value: None, bool, int, Decimal, str, Char or a list of
    RuntimeValue."""

    value: PrimitiveValue

    def display(self) -> str:
        v = self.value
        if v is None:
            return "NIL"
        if isinstance(v, bool):
            return "TRUE" if v else "FALSE"
        if isinstance(v, list):
            return "[" + ", ".join(e.display() for e in v) + "]"
        return str(v)

    def __eq__(self, other: object) -> bool:
        # Kind-aware: TRUE != 1 and 1 != 1.0, unlike the host's ==.
        if not isinstance(other, Primitive) or type(self.value) is not type(other.value):
            return False
        if isinstance(self.value, Decimal):
            # Scale counts: 1.0 != 1.00.
            return (
                self.value == other.value
                and self.value.as_tuple().exponent == other.value.as_tuple().exponent
            )
        return self.value == other.value


@dataclass(eq=False)
class Function(RuntimeValue):
    """A callable value. Method invocations receive the receiver as the
    first argument."""

    name: str
    call: Callable[[list[RuntimeValue]], RuntimeValue] = field(repr=False)

    def display(self) -> str:
        return "DEF " + self.name + "(?) DO ? END"

    def __eq__(self, other: object) -> bool:
        # Definitions are opaque; functions are identified by name.
        return isinstance(other, Function) and self.name == other.name


@dataclass(eq=False)
class ObjectValue(RuntimeValue):
    """An object; members is parent-less and holds fields and methods."""

    name: str | None
    members: Scope[RuntimeValue]

    def display(self) -> str:
        head = "Object" if self.name is None else "Object(" + self.name + ")"
        parts: list[str] = []
        for k, v in self.members.collect(current_only=True).items():
            parts.append(k + " = `" + v.display() + "`")
        if not parts:
            return head + " { }"
        return head + " { " + ", ".join(parts) + " }"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ObjectValue)
            and self.name == other.name
            and self.members.collect(current_only=True) == other.members.collect(current_only=True)
        )


def nil() -> Primitive:
    return Primitive(None)


def kind_name(value: RuntimeValue) -> str:
    """Short description of a value's kind, for error messages."""
    if isinstance(value, Primitive):
        v = value.value
        if v is None:
            return "Nil"
        if isinstance(v, bool):
            return "Boolean"
        if isinstance(v, int):
            return "Integer"
        if isinstance(v, Decimal):
            return "Decimal"
        if isinstance(v, str):
            return "String"
        if isinstance(v, Char):
            return "Character"
        if isinstance(v, list):
            return "List"
        return type(v).__name__
    if isinstance(value, Function):
        return "Function"
    if isinstance(value, ObjectValue):
        return "Object"
    return type(value).__name__
