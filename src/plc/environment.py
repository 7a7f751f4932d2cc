"""PLC root environments — native functions and host fixtures.

Both passes start from a root scope built here. The analyzer scope binds
names to types and the evaluator scope binds the same names to values, so
every native has the same arity in both (log and list aside: list is
variadic and has no analyzer type).
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, TextIO

from .errors import RuntimeArityMismatch, RuntimeTypeError
from .scope import Scope
from .types import (
    ANY,
    COMPARABLE,
    EQUATABLE,
    INTEGER,
    ITERABLE,
    NIL,
    STRING,
    FunctionType,
    ObjectType,
    Type,
)
from .values import Function, ObjectValue, Primitive, RuntimeValue, kind_name, nil

logger = logging.getLogger(__name__)

# Self-reference bound inside object bodies.
SELF_NAME: str = "this"


# ============================================================
# Analyzer root
# ============================================================


def type_scope(*, fixtures: bool = True) -> Scope[Type]:
    scope: Scope[Type] = Scope()
    scope.define("debug", FunctionType((ANY,), NIL))
    scope.define("print", FunctionType((ANY,), NIL))
    scope.define("log", FunctionType((ANY,), ANY))
    scope.define("range", FunctionType((INTEGER, INTEGER), ITERABLE))
    if fixtures:
        scope.define("variable", STRING)
        scope.define("function", FunctionType((), NIL))
        scope.define("functionAny", FunctionType((ANY,), ANY))
        scope.define("functionString", FunctionType((STRING,), STRING))
        members: Scope[Type] = Scope()
        members.define("property", STRING)
        members.define("method", FunctionType((), NIL))
        members.define("methodAny", FunctionType((ANY,), ANY))
        members.define("methodString", FunctionType((STRING,), STRING))
        scope.define("object", ObjectType(members))
        scope.define("any", ANY)
        scope.define("equatable", EQUATABLE)
        scope.define("comparable", COMPARABLE)
        scope.define("iterable", ITERABLE)
    logger.debug("built type scope (fixtures=%s)", fixtures)
    return scope


# ============================================================
# Evaluator root
# ============================================================


def native(
    name: str, arity: int | None, impl: Callable[[list[RuntimeValue]], RuntimeValue]
) -> Function:
    """Wrap impl as a Function value; arity None accepts any count."""

    def call(args: list[RuntimeValue]) -> RuntimeValue:
        if arity is not None and len(args) != arity:
            raise RuntimeArityMismatch(
                "'" + name + "' expects " + str(arity) + " argument(s) but got " + str(len(args))
            )
        return impl(args)

    return Function(name, call)


def _range(args: list[RuntimeValue]) -> RuntimeValue:
    bounds: list[int] = []
    for a in args:
        v = a.value if isinstance(a, Primitive) else None
        if not isinstance(v, int) or isinstance(v, bool):
            raise RuntimeTypeError("'range' expects Integer arguments, got " + kind_name(a))
        bounds.append(v)
    return Primitive([Primitive(i) for i in range(bounds[0], bounds[1])])


def value_scope(*, out: TextIO | None = None, fixtures: bool = True) -> Scope[RuntimeValue]:
    """Root evaluator scope; native output goes to out (sys.stdout when None)."""

    def write(text: str) -> None:
        stream = out if out is not None else sys.stdout
        stream.write(text + "\n")

    def _debug(args: list[RuntimeValue]) -> RuntimeValue:
        write(repr(args[0]))
        return nil()

    def _print(args: list[RuntimeValue]) -> RuntimeValue:
        write(args[0].display())
        return nil()

    def _log(args: list[RuntimeValue]) -> RuntimeValue:
        write("log: " + args[0].display())
        return args[0]

    scope: Scope[RuntimeValue] = Scope()
    scope.define("debug", native("debug", 1, _debug))
    scope.define("print", native("print", 1, _print))
    scope.define("log", native("log", 1, _log))
    scope.define("list", native("list", None, lambda args: Primitive(list(args))))
    scope.define("range", native("range", 2, _range))
    if fixtures:
        scope.define("variable", Primitive("variable"))
        scope.define("function", native("function", None, lambda args: Primitive(list(args))))
        scope.define("functionAny", native("functionAny", 1, lambda args: args[0]))
        scope.define("functionString", native("functionString", 1, lambda args: args[0]))
        members: Scope[RuntimeValue] = Scope()
        members.define("property", Primitive("property"))
        # Methods receive the receiver first.
        members.define("method", native("method", None, lambda args: Primitive(args[1:])))
        members.define("methodAny", native("methodAny", 2, lambda args: args[1]))
        members.define("methodString", native("methodString", 2, lambda args: args[1]))
        scope.define("object", ObjectValue("Object", members))
        scope.define("any", nil())
        scope.define("equatable", Primitive(True))
        scope.define("comparable", Primitive(1))
        scope.define("iterable", Primitive([]))
    logger.debug("built value scope (fixtures=%s)", fixtures)
    return scope
