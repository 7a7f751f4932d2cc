"""PLC analyzer and evaluator — public API."""

from __future__ import annotations

import logging

from .analyze import Analyzer, analyze
from .environment import SELF_NAME, native, type_scope, value_scope
from .errors import (
    AnalyzeError as AnalyzeError,
    EvaluateError as EvaluateError,
    ImplementationDefect as ImplementationDefect,
    PlcError as PlcError,
)
from .runtime import Evaluator, evaluate
from .scope import Scope, ScopeError as ScopeError
from .values import Function, ObjectValue, Primitive, RuntimeValue, nil

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Analyzer",
    "Evaluator",
    "Function",
    "ObjectValue",
    "Primitive",
    "RuntimeValue",
    "SELF_NAME",
    "Scope",
    "analyze",
    "evaluate",
    "native",
    "nil",
    "type_scope",
    "value_scope",
]
