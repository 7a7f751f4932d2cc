"""Pytest configuration for the PLC test suite."""

import io
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

# Add src directory to path so the suite runs without installation
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from plc.environment import native, type_scope, value_scope
from plc.scope import Scope
from plc.values import RuntimeValue, nil


@dataclass
class LogScope:
    """Evaluator scope whose log native records its arguments in order."""

    scope: Scope[RuntimeValue]
    out: io.StringIO
    logged: list[RuntimeValue] = field(default_factory=list)


@pytest.fixture
def types() -> Scope:
    return Scope(type_scope())


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def values(out: io.StringIO) -> Scope:
    return Scope(value_scope(out=out))


@pytest.fixture
def log_scope(out: io.StringIO) -> LogScope:
    holder = LogScope(Scope(value_scope(out=out)), out)

    def _log(args: list[RuntimeValue]) -> RuntimeValue:
        holder.logged.append(args[0])
        return args[0]

    # Shadows the root log, which writes to out instead of recording.
    holder.scope.define("log", native("log", 1, _log))
    holder.scope.define("nil", native("nil", 0, lambda args: nil()))
    return holder
