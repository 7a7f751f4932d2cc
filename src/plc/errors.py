"""Analyzer and evaluator error kinds."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import Type


class PlcError(Exception):
    """Base error for analysis and evaluation."""

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class ImplementationDefect(Exception):
    """Malformed syntax tree; never a user-facing error."""


# ============================================================
# Analyzer
# ============================================================


class AnalyzeError(PlcError):
    """Static error found while building the typed IR."""


class UnknownType(AnalyzeError):
    pass


class TypeMismatch(AnalyzeError):
    def __init__(
        self, msg: str, actual: Type | None = None, expected: Type | None = None
    ):
        super().__init__(msg)
        self.actual = actual
        self.expected = expected


class DuplicateName(AnalyzeError):
    pass


class UndefinedName(AnalyzeError):
    pass


class UndefinedMember(AnalyzeError):
    pass


class ArityMismatch(AnalyzeError):
    pass


class InvalidAssignmentTarget(AnalyzeError):
    pass


class IllegalReturn(AnalyzeError):
    pass


# ============================================================
# Evaluator
# ============================================================


class EvaluateError(PlcError):
    """Runtime error raised while evaluating a program."""


class RuntimeUndefinedName(EvaluateError):
    pass


class RuntimeUndefinedMember(EvaluateError):
    pass


class RuntimeTypeError(EvaluateError):
    pass


class RuntimeArityMismatch(EvaluateError):
    pass


class RuntimeDuplicateName(EvaluateError):
    pass


class DivideByZero(EvaluateError):
    pass


class UnhandledReturn(EvaluateError):
    pass
