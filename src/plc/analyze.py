"""PLC analyzer — type-checks a syntax tree and lowers it to the typed IR.

The analyzer fails fast: the first violation raises an AnalyzeError and no
partial IR is returned.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from . import ir
from .ast import (
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
from .environment import SELF_NAME, type_scope
from .errors import (
    ArityMismatch,
    DuplicateName,
    IllegalReturn,
    ImplementationDefect,
    InvalidAssignmentTarget,
    TypeMismatch,
    UndefinedMember,
    UndefinedName,
    UnknownType,
)
from .scope import Scope
from .types import (
    ANY,
    BOOLEAN,
    COMPARABLE,
    DECIMAL,
    EQUATABLE,
    INTEGER,
    ITERABLE,
    NIL,
    STRING,
    TYPES,
    FunctionType,
    ObjectType,
    Type,
    require_subtype,
    type_eq,
    type_name,
)

logger = logging.getLogger(__name__)

_ARITHMETIC_OPS: frozenset[str] = frozenset({"-", "*", "/"})
_EQUALITY_OPS: frozenset[str] = frozenset({"==", "!="})
_ORDERING_OPS: frozenset[str] = frozenset({"<", "<=", ">", ">="})
_LOGICAL_OPS: frozenset[str] = frozenset({"AND", "OR"})


class Analyzer:
    def __init__(self, scope: Scope[Type]) -> None:
        self.scope = scope
        # Declared return type of the innermost function body, None at top level.
        self.current_fn_ret: Type | None = None

    # ── Helpers ───────────────────────────────────────────────

    def resolve_type(self, name: str) -> Type:
        t = TYPES.get(name)
        if t is None:
            raise UnknownType("unknown type '" + name + "'")
        return t

    def require_fresh(self, name: str) -> None:
        if self.scope.contains(name, current_only=True):
            raise DuplicateName("'" + name + "' is already defined in this scope")

    def _in_scope(self, scope: Scope[Type], stmts: list[PStmt]) -> list[ir.Stmt]:
        saved = self.scope
        self.scope = scope
        try:
            return [self.analyze_stmt(s) for s in stmts]
        finally:
            self.scope = saved

    # ── Source & statements ───────────────────────────────────

    def analyze_source(self, source: PSource) -> ir.Source:
        return ir.Source([self.analyze_stmt(s) for s in source.stmts])

    def analyze_stmt(self, st: PStmt) -> ir.Stmt:
        if isinstance(st, PLetStmt):
            return self._analyze_let(st)
        if isinstance(st, PDefStmt):
            return self._analyze_def(st)
        if isinstance(st, PIfStmt):
            cond = self.analyze_expr(st.cond)
            if not type_eq(cond.type, BOOLEAN):
                raise TypeMismatch(
                    "IF condition must be Boolean, got '" + type_name(cond.type) + "'",
                    actual=cond.type,
                    expected=BOOLEAN,
                )
            then_body = self._in_scope(Scope(self.scope), st.then_body)
            else_body = self._in_scope(Scope(self.scope), st.else_body)
            return ir.If(cond, then_body, else_body)
        if isinstance(st, PForStmt):
            iterable = self.analyze_expr(st.iterable)
            require_subtype(iterable.type, ITERABLE)
            # No element-type tracking: the loop variable is always Integer.
            body_scope: Scope[Type] = Scope(self.scope)
            body_scope.define(st.name, INTEGER)
            body = self._in_scope(body_scope, st.body)
            return ir.For(st.name, INTEGER, iterable, body)
        if isinstance(st, PReturnStmt):
            return self._analyze_return(st)
        if isinstance(st, PExprStmt):
            return ir.Expression(self.analyze_expr(st.expr))
        if isinstance(st, PAssignStmt):
            return self._analyze_assign(st)
        raise ImplementationDefect("unhandled statement node: " + type(st).__name__)

    def _analyze_let(self, st: PLetStmt) -> ir.Let:
        self.require_fresh(st.name)
        declared = self.resolve_type(st.type_name) if st.type_name is not None else None
        value = self.analyze_expr(st.value) if st.value is not None else None
        if declared is not None:
            typ = declared
        elif value is not None:
            typ = value.type
        else:
            typ = ANY
        if value is not None:
            require_subtype(value.type, typ)
        self.scope.define(st.name, typ)
        return ir.Let(st.name, typ, value)

    def _signature(self, st: PDefStmt) -> FunctionType:
        seen: set[str] = set()
        params: list[Type] = []
        for i, p in enumerate(st.params):
            if p in seen:
                raise DuplicateName("duplicate parameter '" + p + "' in '" + st.name + "'")
            seen.add(p)
            tname = st.param_type(i)
            params.append(self.resolve_type(tname) if tname is not None else ANY)
        ret = self.resolve_type(st.return_type) if st.return_type is not None else ANY
        return FunctionType(tuple(params), ret)

    def _analyze_body(self, st: PDefStmt, sig: FunctionType, parent: Scope[Type]) -> ir.Def:
        fn_scope: Scope[Type] = Scope(parent)
        params: list[ir.Param] = []
        for name, typ in zip(st.params, sig.params):
            fn_scope.define(name, typ)
            params.append(ir.Param(name, typ))
        saved_ret = self.current_fn_ret
        self.current_fn_ret = sig.returns
        try:
            body = self._in_scope(fn_scope, st.body)
        finally:
            self.current_fn_ret = saved_ret
        return ir.Def(st.name, params, sig.returns, body)

    def _analyze_def(self, st: PDefStmt) -> ir.Def:
        self.require_fresh(st.name)
        sig = self._signature(st)
        # Defined before the body so the function can call itself.
        self.scope.define(st.name, sig)
        logger.debug("analyzing function %s%s", st.name, type_name(sig))
        return self._analyze_body(st, sig, self.scope)

    def _analyze_return(self, st: PReturnStmt) -> ir.Return:
        if self.current_fn_ret is None:
            raise IllegalReturn("RETURN outside of a function body")
        if st.value is None:
            require_subtype(NIL, self.current_fn_ret)
            return ir.Return(None)
        value = self.analyze_expr(st.value)
        require_subtype(value.type, self.current_fn_ret)
        return ir.Return(value)

    def _analyze_assign(self, st: PAssignStmt) -> ir.Stmt:
        if isinstance(st.target, PVar):
            target = self._analyze_var(st.target)
            value = self.analyze_expr(st.value)
            require_subtype(value.type, target.type)
            return ir.AssignVariable(target, value)
        if isinstance(st.target, PProperty):
            prop = self._analyze_property(st.target)
            if isinstance(prop.type, FunctionType):
                raise InvalidAssignmentTarget("cannot assign to method '" + prop.name + "'")
            value = self.analyze_expr(st.value)
            require_subtype(value.type, prop.type)
            return ir.AssignProperty(prop, value)
        raise InvalidAssignmentTarget(
            "assignment target must be a variable or property, got " + type(st.target).__name__
        )

    # ── Expressions ───────────────────────────────────────────

    def analyze_expr(self, e: PExpr) -> ir.Expr:
        if isinstance(e, PLiteral):
            return ir.Literal(e.value, _literal_type(e.value))
        if isinstance(e, PGroup):
            return ir.Group(self.analyze_expr(e.expr))
        if isinstance(e, PBinary):
            return self._analyze_binary(e)
        if isinstance(e, PVar):
            return self._analyze_var(e)
        if isinstance(e, PProperty):
            return self._analyze_property(e)
        if isinstance(e, PCall):
            callee = self.scope.lookup(e.name)
            if callee is None:
                raise UndefinedName("function '" + e.name + "' is not defined")
            fn = _as_function(e.name, callee)
            return ir.Function(e.name, self._analyze_args(e.name, fn, e.args), fn.returns)
        if isinstance(e, PMethodCall):
            receiver = self.analyze_expr(e.receiver)
            method = _as_function(e.name, _member(receiver, e.name))
            args = self._analyze_args(e.name, method, e.args)
            return ir.Method(receiver, e.name, args, method.returns)
        if isinstance(e, PObjectExpr):
            return self._analyze_object(e)
        raise ImplementationDefect("unhandled expression node: " + type(e).__name__)

    def _analyze_var(self, e: PVar) -> ir.Variable:
        typ = self.scope.lookup(e.name)
        if typ is None:
            raise UndefinedName("'" + e.name + "' is not defined")
        return ir.Variable(e.name, typ)

    def _analyze_property(self, e: PProperty) -> ir.Property:
        receiver = self.analyze_expr(e.receiver)
        return ir.Property(receiver, e.name, _member(receiver, e.name))

    def _analyze_args(self, name: str, callee: FunctionType, args: list[PExpr]) -> list[ir.Expr]:
        if len(args) != len(callee.params):
            raise ArityMismatch(
                "'" + name + "' expects " + str(len(callee.params))
                + " argument(s) but got " + str(len(args))
            )
        out: list[ir.Expr] = []
        for arg, param in zip(args, callee.params):
            analyzed = self.analyze_expr(arg)
            require_subtype(analyzed.type, param)
            out.append(analyzed)
        return out

    def _analyze_binary(self, e: PBinary) -> ir.Binary:
        left = self.analyze_expr(e.left)
        right = self.analyze_expr(e.right)
        lt = left.type
        rt = right.type
        if e.op in _LOGICAL_OPS:
            require_subtype(lt, BOOLEAN)
            require_subtype(rt, BOOLEAN)
            return ir.Binary(e.op, left, right, BOOLEAN)
        if e.op == "+":
            if type_eq(lt, STRING) or type_eq(rt, STRING):
                return ir.Binary(e.op, left, right, STRING)
            if (type_eq(lt, INTEGER) or type_eq(lt, DECIMAL)) and type_eq(lt, rt):
                return ir.Binary(e.op, left, right, lt)
            raise _operand_mismatch(e.op, lt, rt)
        if e.op in _ARITHMETIC_OPS:
            if (type_eq(lt, INTEGER) or type_eq(lt, DECIMAL)) and type_eq(lt, rt):
                return ir.Binary(e.op, left, right, lt)
            raise _operand_mismatch(e.op, lt, rt)
        if e.op in _EQUALITY_OPS:
            require_subtype(lt, EQUATABLE)
            require_subtype(rt, EQUATABLE)
            return ir.Binary(e.op, left, right, BOOLEAN)
        if e.op in _ORDERING_OPS:
            require_subtype(lt, COMPARABLE)
            require_subtype(rt, COMPARABLE)
            if not type_eq(lt, rt):
                raise _operand_mismatch(e.op, lt, rt)
            return ir.Binary(e.op, left, right, BOOLEAN)
        raise ImplementationDefect("unknown operator '" + e.op + "'")

    def _analyze_object(self, e: PObjectExpr) -> ir.ObjectExpr:
        if e.name is not None and e.name in TYPES:
            raise DuplicateName("object name '" + e.name + "' is a reserved type name")
        # Parent-less: object bodies do not see the enclosing scope.
        members: Scope[Type] = Scope()
        obj_type = ObjectType(members)
        logger.debug("analyzing object %s", e.name or "<anonymous>")

        saved = self.scope
        self.scope = members
        try:
            fields = [self._analyze_let(f) for f in e.fields]
        finally:
            self.scope = saved

        # Every signature (and the self-reference) exists before any body
        # is analyzed, so methods may call siblings declared later.
        sigs: list[FunctionType] = []
        for m in e.methods:
            if members.contains(m.name, current_only=True):
                raise DuplicateName("'" + m.name + "' is already defined on the object")
            sig = self._signature(m)
            members.define(m.name, sig)
            sigs.append(sig)
        if members.contains(SELF_NAME, current_only=True):
            raise DuplicateName("'" + SELF_NAME + "' is reserved inside object bodies")
        members.define(SELF_NAME, obj_type)

        methods: list[ir.Def] = []
        for m, sig in zip(e.methods, sigs):
            methods.append(self._analyze_body(m, sig, members))
        return ir.ObjectExpr(e.name, fields, methods, obj_type)


# ============================================================
# MODULE HELPERS
# ============================================================


def _literal_type(value: object) -> Type:
    if value is None:
        return NIL
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, int):
        return INTEGER
    if isinstance(value, Decimal):
        return DECIMAL
    if isinstance(value, str):
        return STRING
    # Char and anything else: the parser produced a literal the type
    # system has no type for.
    raise ImplementationDefect("unexpected literal payload: " + type(value).__name__)


def _member(receiver: ir.Expr, name: str) -> Type:
    if not isinstance(receiver.type, ObjectType):
        raise TypeMismatch(
            "expected an Object receiver, got '" + type_name(receiver.type) + "'",
            actual=receiver.type,
        )
    typ = receiver.type.member(name)
    if typ is None:
        raise UndefinedMember("'" + name + "' is not a member of " + type_name(receiver.type))
    return typ


def _as_function(name: str, callee: Type) -> FunctionType:
    if not isinstance(callee, FunctionType):
        raise TypeMismatch(
            "'" + name + "' is not a function, it has type '" + type_name(callee) + "'",
            actual=callee,
        )
    return callee


def _operand_mismatch(op: str, left: Type, right: Type) -> TypeMismatch:
    return TypeMismatch(
        "invalid operand types '" + type_name(left) + "' and '" + type_name(right) + "' for '" + op + "'",
        actual=right,
        expected=left,
    )


def analyze(node: PNode, scope: Scope[Type] | None = None) -> ir.Source | ir.Stmt | ir.Expr:
    """Type-check a syntax node against scope (a fresh child of the root
    type scope when omitted) and return its typed IR."""
    analyzer = Analyzer(scope if scope is not None else Scope(type_scope()))
    if isinstance(node, PSource):
        return analyzer.analyze_source(node)
    if isinstance(node, PStmt):
        return analyzer.analyze_stmt(node)
    return analyzer.analyze_expr(node)
