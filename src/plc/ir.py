"""PLC typed IR — output of the analyzer, input of the code generator.

Mirrors the syntax tree, but every type annotation is resolved and every
expression carries the type the analyzer assigned to it.

Invariants:
- Every Expr.type is a member of the lattice in types.py.
- Assignments are split by target shape; no other target survives analysis.
- For.type is always INTEGER (no element-type tracking).
"""

from __future__ import annotations

from dataclasses import dataclass

from .ast import LiteralValue
from .types import Type


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all IR statements."""


@dataclass
class Let(Stmt):
    """Variable declaration with its resolved declared type."""

    name: str
    type: Type
    value: Expr | None


@dataclass
class Param:
    name: str
    type: Type


@dataclass
class Def(Stmt):
    """Function or method definition.

    returns is the declared return type, Any when omitted; it is never
    inferred from the body.
    """

    name: str
    params: list[Param]
    returns: Type
    body: list[Stmt]


@dataclass
class If(Stmt):
    cond: Expr
    then_body: list[Stmt]
    else_body: list[Stmt]


@dataclass
class For(Stmt):
    name: str
    type: Type
    iterable: Expr
    body: list[Stmt]


@dataclass
class Return(Stmt):
    value: Expr | None


@dataclass
class Expression(Stmt):
    expr: Expr


@dataclass
class AssignVariable(Stmt):
    target: Variable
    value: Expr


@dataclass
class AssignProperty(Stmt):
    target: Property
    value: Expr


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for all IR expressions; subclasses expose .type."""


@dataclass
class Literal(Expr):
    value: LiteralValue
    type: Type


@dataclass
class Group(Expr):
    expr: Expr

    @property
    def type(self) -> Type:
        return self.expr.type


@dataclass
class Binary(Expr):
    op: str
    left: Expr
    right: Expr
    type: Type


@dataclass
class Variable(Expr):
    name: str
    type: Type


@dataclass
class Property(Expr):
    receiver: Expr
    name: str
    type: Type


@dataclass
class Function(Expr):
    """Call of a function resolved by name in the current scope."""

    name: str
    args: list[Expr]
    type: Type


@dataclass
class Method(Expr):
    receiver: Expr
    name: str
    args: list[Expr]
    type: Type


@dataclass
class ObjectExpr(Expr):
    name: str | None
    fields: list[Let]
    methods: list[Def]
    type: Type


@dataclass
class Source:
    stmts: list[Stmt]
