"""PLC syntax tree — untyped nodes produced by the parser.

Both the analyzer and the evaluator walk these nodes directly. Type names
are kept as plain strings; they are resolved by the analyzer only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


# ============================================================
# LITERAL PAYLOADS
# ============================================================


@dataclass(frozen=True, order=True)
class Char:
    """A single character, distinct from a one-character string."""

    value: str

    def __str__(self) -> str:
        return self.value


LiteralValue = None | bool | int | Decimal | str | Char


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class PStmt:
    """Base for all statements."""


@dataclass
class PLetStmt(PStmt):
    """LET name (: Type)? (= value)?;"""

    name: str
    type_name: str | None = None
    value: PExpr | None = None


@dataclass
class PDefStmt(PStmt):
    """DEF name(params) (: Type)? DO body END.

    param_types is parallel to params; a missing or short list means the
    remaining parameters carry no annotation.
    """

    name: str
    params: list[str] = field(default_factory=list)
    param_types: list[str | None] = field(default_factory=list)
    return_type: str | None = None
    body: list[PStmt] = field(default_factory=list)

    def param_type(self, i: int) -> str | None:
        if i < len(self.param_types):
            return self.param_types[i]
        return None


@dataclass
class PIfStmt(PStmt):
    """IF cond DO then_body (ELSE else_body)? END."""

    cond: PExpr
    then_body: list[PStmt] = field(default_factory=list)
    else_body: list[PStmt] = field(default_factory=list)


@dataclass
class PForStmt(PStmt):
    """FOR name IN iterable DO body END."""

    name: str
    iterable: PExpr
    body: list[PStmt] = field(default_factory=list)


@dataclass
class PReturnStmt(PStmt):
    """RETURN value?;"""

    value: PExpr | None = None


@dataclass
class PExprStmt(PStmt):
    """Bare expression as statement."""

    expr: PExpr


@dataclass
class PAssignStmt(PStmt):
    """target = value; target is only valid as a PVar or PProperty."""

    target: PExpr
    value: PExpr


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class PExpr:
    """Base for all expressions."""


@dataclass
class PLiteral(PExpr):
    """NIL, TRUE/FALSE, integer, decimal, character or string."""

    value: LiteralValue


@dataclass
class PGroup(PExpr):
    """(expr)."""

    expr: PExpr


@dataclass
class PBinary(PExpr):
    """left op right; op is the operator symbol or AND/OR."""

    op: str
    left: PExpr
    right: PExpr


@dataclass
class PVar(PExpr):
    """Identifier reference."""

    name: str


@dataclass
class PProperty(PExpr):
    """receiver.name."""

    receiver: PExpr
    name: str


@dataclass
class PCall(PExpr):
    """name(args)."""

    name: str
    args: list[PExpr] = field(default_factory=list)


@dataclass
class PMethodCall(PExpr):
    """receiver.name(args)."""

    receiver: PExpr
    name: str
    args: list[PExpr] = field(default_factory=list)


@dataclass
class PObjectExpr(PExpr):
    """OBJECT name? DO fields methods END."""

    name: str | None = None
    fields: list[PLetStmt] = field(default_factory=list)
    methods: list[PDefStmt] = field(default_factory=list)


# ============================================================
# SOURCE
# ============================================================


@dataclass
class PSource:
    """Top-level program."""

    stmts: list[PStmt] = field(default_factory=list)


PNode = PSource | PStmt | PExpr
