"""PLC runtime — tree-walking evaluator over the untyped syntax tree.

Statements complete either normally, with a value, or with an in-flight
RETURN. The latter is an ordinary value (_Returning) threaded back through
every block until the nearest function-call boundary unwraps it; RETURN
never travels as a Python exception, so it cannot be confused with an
EvaluateError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, Context, Decimal
from fractions import Fraction

from .ast import (
    Char,
    PAssignStmt,
    PBinary,
    PCall,
    PDefStmt,
    PExpr,
    PExprStmt,
    PForStmt,
    PGroup,
    PIfStmt,
    PLetStmt,
    PLiteral,
    PMethodCall,
    PNode,
    PObjectExpr,
    PProperty,
    PReturnStmt,
    PSource,
    PStmt,
    PVar,
)
from .environment import SELF_NAME, value_scope
from .errors import (
    DivideByZero,
    ImplementationDefect,
    RuntimeArityMismatch,
    RuntimeDuplicateName,
    RuntimeTypeError,
    RuntimeUndefinedMember,
    RuntimeUndefinedName,
    UnhandledReturn,
)
from .scope import Scope
from .values import Function, ObjectValue, Primitive, RuntimeValue, kind_name, nil

logger = logging.getLogger(__name__)

# Decimal +, - and * are exact; only division rounds.
_EXACT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)

_ORDERED_KINDS: tuple[type, ...] = (bool, int, Decimal, str, Char)


# ============================================================
# Control flow signal (internal)
# ============================================================


@dataclass
class _Returning:
    """A RETURN on its way to the nearest call boundary."""

    value: RuntimeValue


Completion = RuntimeValue | _Returning


# ============================================================
# Arithmetic helpers
# ============================================================


def _int_div_trunc(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        q = -q
    return q


def _decimal_div(a: Decimal, b: Decimal) -> Decimal:
    """a / b at the scale of a, rounding half to even."""
    exp = a.as_tuple().exponent
    assert isinstance(exp, int)
    scaled = Fraction(a) / Fraction(b) / (Fraction(10) ** exp)
    # round() on a Fraction rounds half to even.
    return Decimal(round(scaled)).scaleb(exp, _EXACT)


def _is_int(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


# ============================================================
# Evaluator
# ============================================================


class Evaluator:
    def __init__(self, scope: Scope[RuntimeValue]) -> None:
        self.scope = scope

    # ── Helpers ───────────────────────────────────────────────

    def require_fresh(self, name: str) -> None:
        if self.scope.contains(name, current_only=True):
            raise RuntimeDuplicateName("'" + name + "' is already defined in this scope")

    def _exec_block(self, stmts: list[PStmt], scope: Scope[RuntimeValue]) -> Completion:
        """Run stmts in scope; the value of the last statement, or the first
        RETURN signal raised."""
        saved = self.scope
        self.scope = scope
        try:
            result: Completion = nil()
            for st in stmts:
                result = self.exec_stmt(st)
                if isinstance(result, _Returning):
                    return result
            return result
        finally:
            self.scope = saved

    def _make_function(
        self, decl: PDefStmt, closure: Scope[RuntimeValue], *, method: bool
    ) -> Function:
        seen: set[str] = set()
        for p in decl.params:
            if p in seen:
                raise RuntimeDuplicateName("duplicate parameter '" + p + "' in '" + decl.name + "'")
            seen.add(p)
        expected = len(decl.params) + (1 if method else 0)

        def call(args: list[RuntimeValue]) -> RuntimeValue:
            if len(args) != expected:
                given = len(args) - 1 if method else len(args)
                raise RuntimeArityMismatch(
                    "'" + decl.name + "' expects " + str(len(decl.params))
                    + " argument(s) but got " + str(given)
                )
            parent = closure
            if method:
                parent = Scope(closure)
                parent.define(SELF_NAME, args[0])
                args = args[1:]
            call_scope: Scope[RuntimeValue] = Scope(parent)
            for name, value in zip(decl.params, args):
                call_scope.define(name, value)
            logger.debug("call %s/%d", decl.name, len(args))
            outcome = self._exec_block(decl.body, call_scope)
            if isinstance(outcome, _Returning):
                logger.debug("return from %s", decl.name)
                return outcome.value
            # Falling off the end yields NIL, whatever the last statement was.
            return nil()

        return Function(decl.name, call)

    # ── Source & statements ───────────────────────────────────

    def evaluate_source(self, source: PSource) -> RuntimeValue:
        result: RuntimeValue = nil()
        for st in source.stmts:
            outcome = self.exec_stmt(st)
            if isinstance(outcome, _Returning):
                raise UnhandledReturn("RETURN outside of a function")
            result = outcome
        return result

    def exec_stmt(self, st: PStmt) -> Completion:
        if isinstance(st, PLetStmt):
            self.require_fresh(st.name)
            value = self.eval_expr(st.value) if st.value is not None else nil()
            self.scope.define(st.name, value)
            return value

        if isinstance(st, PDefStmt):
            self.require_fresh(st.name)
            fn = self._make_function(st, self.scope, method=False)
            self.scope.define(st.name, fn)
            return fn

        if isinstance(st, PIfStmt):
            cond = self._require_bool(self.eval_expr(st.cond), "IF condition")
            body = st.then_body if cond else st.else_body
            return self._exec_block(body, Scope(self.scope))

        if isinstance(st, PForStmt):
            iterable = self.eval_expr(st.iterable)
            if not isinstance(iterable, Primitive) or not isinstance(iterable.value, list):
                raise RuntimeTypeError("FOR expects a list, got " + kind_name(iterable))
            for element in list(iterable.value):
                loop_scope: Scope[RuntimeValue] = Scope(self.scope)
                loop_scope.define(st.name, element)
                outcome = self._exec_block(st.body, loop_scope)
                if isinstance(outcome, _Returning):
                    return outcome
            return nil()

        if isinstance(st, PReturnStmt):
            value = self.eval_expr(st.value) if st.value is not None else nil()
            return _Returning(value)

        if isinstance(st, PExprStmt):
            return self.eval_expr(st.expr)

        if isinstance(st, PAssignStmt):
            return self._exec_assign(st)

        raise ImplementationDefect("unhandled statement node: " + type(st).__name__)

    def _exec_assign(self, st: PAssignStmt) -> RuntimeValue:
        target = st.target
        if isinstance(target, PVar):
            if not self.scope.contains(target.name):
                raise RuntimeUndefinedName("'" + target.name + "' is not defined")
            value = self.eval_expr(st.value)
            # Rebinds the nearest definition, never the outermost one.
            self.scope.set(target.name, value)
            return value
        if isinstance(target, PProperty):
            receiver = self._require_object(self.eval_expr(target.receiver))
            if not receiver.members.contains(target.name, current_only=True):
                raise RuntimeUndefinedMember("'" + target.name + "' is not a member of the object")
            value = self.eval_expr(st.value)
            receiver.members.set(target.name, value)
            return value
        raise RuntimeTypeError("cannot assign to " + type(target).__name__)

    # ── Expressions ───────────────────────────────────────────

    def eval_expr(self, e: PExpr) -> RuntimeValue:
        if isinstance(e, PLiteral):
            return Primitive(e.value)
        if isinstance(e, PGroup):
            return self.eval_expr(e.expr)
        if isinstance(e, PBinary):
            return self._eval_binary(e)
        if isinstance(e, PVar):
            value = self.scope.lookup(e.name)
            if value is None:
                raise RuntimeUndefinedName("'" + e.name + "' is not defined")
            return value
        if isinstance(e, PProperty):
            receiver = self._require_object(self.eval_expr(e.receiver))
            return self._member(receiver, e.name)
        if isinstance(e, PCall):
            callee = self.scope.lookup(e.name)
            if callee is None:
                raise RuntimeUndefinedName("function '" + e.name + "' is not defined")
            fn = self._require_function(callee, e.name)
            args = [self.eval_expr(a) for a in e.args]
            return fn.call(args)
        if isinstance(e, PMethodCall):
            receiver = self._require_object(self.eval_expr(e.receiver))
            method = self._require_function(self._member(receiver, e.name), e.name)
            args: list[RuntimeValue] = [receiver]
            for a in e.args:
                args.append(self.eval_expr(a))
            return method.call(args)
        if isinstance(e, PObjectExpr):
            return self._eval_object(e)
        raise ImplementationDefect("unhandled expression node: " + type(e).__name__)

    def _eval_object(self, e: PObjectExpr) -> ObjectValue:
        # Parent-less: fields and methods only see the object's own members.
        members: Scope[RuntimeValue] = Scope()
        saved = self.scope
        self.scope = members
        try:
            for f in e.fields:
                self.exec_stmt(f)
            for m in e.methods:
                self.require_fresh(m.name)
                members.define(m.name, self._make_function(m, members, method=True))
        finally:
            self.scope = saved
        return ObjectValue(e.name, members)

    def _eval_binary(self, e: PBinary) -> RuntimeValue:
        op = e.op
        if op == "AND" or op == "OR":
            left = self._require_bool(self.eval_expr(e.left), op)
            if op == "AND" and not left:
                return Primitive(False)
            if op == "OR" and left:
                return Primitive(True)
            return Primitive(self._require_bool(self.eval_expr(e.right), op))

        lhs = self.eval_expr(e.left)
        rhs = self.eval_expr(e.right)

        if op == "+":
            if isinstance(lhs, Primitive) and isinstance(lhs.value, str):
                return Primitive(lhs.value + rhs.display())
            if isinstance(rhs, Primitive) and isinstance(rhs.value, str):
                return Primitive(lhs.display() + rhs.value)
            a, b = self._numeric_pair(op, lhs, rhs)
            if isinstance(a, Decimal):
                return Primitive(_EXACT.add(a, b))
            return Primitive(a + b)
        if op == "-":
            a, b = self._numeric_pair(op, lhs, rhs)
            if isinstance(a, Decimal):
                return Primitive(_EXACT.subtract(a, b))
            return Primitive(a - b)
        if op == "*":
            a, b = self._numeric_pair(op, lhs, rhs)
            if isinstance(a, Decimal):
                return Primitive(_EXACT.multiply(a, b))
            return Primitive(a * b)
        if op == "/":
            a, b = self._numeric_pair(op, lhs, rhs)
            if b == 0:
                raise DivideByZero("division by zero")
            if isinstance(a, Decimal):
                return Primitive(_decimal_div(a, b))
            return Primitive(_int_div_trunc(a, b))
        if op == "==":
            return Primitive(lhs == rhs)
        if op == "!=":
            return Primitive(not (lhs == rhs))
        if op in ("<", "<=", ">", ">="):
            a, b = self._ordered_pair(op, lhs, rhs)
            if op == "<":
                return Primitive(a < b)
            if op == "<=":
                return Primitive(a <= b)
            if op == ">":
                return Primitive(a > b)
            return Primitive(a >= b)
        raise ImplementationDefect("unknown operator '" + op + "'")

    # ── Value checks ──────────────────────────────────────────

    def _require_bool(self, value: RuntimeValue, what: str) -> bool:
        if isinstance(value, Primitive) and isinstance(value.value, bool):
            return value.value
        raise RuntimeTypeError(what + " expects a Boolean, got " + kind_name(value))

    def _require_object(self, value: RuntimeValue) -> ObjectValue:
        if isinstance(value, ObjectValue):
            return value
        raise RuntimeTypeError("expected an object receiver, got " + kind_name(value))

    def _require_function(self, value: RuntimeValue, name: str) -> Function:
        if isinstance(value, Function):
            return value
        raise RuntimeTypeError("'" + name + "' is not a function, got " + kind_name(value))

    def _member(self, receiver: ObjectValue, name: str) -> RuntimeValue:
        value = receiver.members.lookup(name, current_only=True)
        if value is None:
            raise RuntimeUndefinedMember("'" + name + "' is not a member of the object")
        return value

    def _numeric_pair(self, op: str, lhs: RuntimeValue, rhs: RuntimeValue) -> tuple:
        if isinstance(lhs, Primitive) and isinstance(rhs, Primitive):
            a = lhs.value
            b = rhs.value
            if _is_int(a) and _is_int(b):
                return a, b
            if isinstance(a, Decimal) and isinstance(b, Decimal):
                return a, b
        raise RuntimeTypeError(
            "invalid operands " + kind_name(lhs) + " and " + kind_name(rhs) + " for '" + op + "'"
        )

    def _ordered_pair(self, op: str, lhs: RuntimeValue, rhs: RuntimeValue) -> tuple:
        if isinstance(lhs, Primitive) and isinstance(rhs, Primitive):
            a = lhs.value
            b = rhs.value
            if type(a) is type(b) and isinstance(a, _ORDERED_KINDS):
                return a, b
        raise RuntimeTypeError(
            "cannot compare " + kind_name(lhs) + " and " + kind_name(rhs) + " with '" + op + "'"
        )


def evaluate(node: PNode, scope: Scope[RuntimeValue] | None = None) -> RuntimeValue:
    """Evaluate a syntax node in scope (a fresh child of the root value
    scope when omitted)."""
    evaluator = Evaluator(scope if scope is not None else Scope(value_scope()))
    if isinstance(node, PSource):
        return evaluator.evaluate_source(node)
    if isinstance(node, PStmt):
        outcome = evaluator.exec_stmt(node)
        if isinstance(outcome, _Returning):
            raise UnhandledReturn("RETURN outside of a function")
        return outcome
    return evaluator.eval_expr(node)
