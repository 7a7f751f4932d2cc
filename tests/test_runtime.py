"""Tests for the evaluator."""

from decimal import Decimal

import pytest

from plc.ast import (
    Char,
    PAssignStmt,
    PBinary,
    PCall,
    PDefStmt,
    PExprStmt,
    PForStmt,
    PGroup,
    PIfStmt,
    PLetStmt,
    PLiteral,
    PMethodCall,
    PObjectExpr,
    PProperty,
    PReturnStmt,
    PSource,
    PVar,
)
from plc.errors import (
    DivideByZero,
    ImplementationDefect,
    RuntimeArityMismatch,
    RuntimeDuplicateName,
    RuntimeTypeError,
    RuntimeUndefinedMember,
    RuntimeUndefinedName,
    UnhandledReturn,
)
from plc.runtime import evaluate
from plc.values import Function, ObjectValue, Primitive


def lit(value):
    return PLiteral(value)


def dec(text: str) -> PLiteral:
    return PLiteral(Decimal(text))


def _source(*stmts):
    return PSource(list(stmts))


def _value(node, scope):
    result = evaluate(node, scope)
    assert isinstance(result, Primitive)
    return result.value


# ---------------------------------------------------------------------------
# Source and statements
# ---------------------------------------------------------------------------


def test_empty_source_is_nil(values):
    assert _value(_source(), values) is None


def test_source_value_is_last_statement(values):
    src = _source(PLetStmt("x", None, lit(1)), PExprStmt(PBinary("+", PVar("x"), lit(1))))
    assert _value(src, values) == 2


def test_let_without_initializer(values):
    assert _value(_source(PLetStmt("x"), PExprStmt(PVar("x"))), values) is None


def test_let_duplicate(values):
    with pytest.raises(RuntimeDuplicateName):
        evaluate(_source(PLetStmt("x", None, lit(1)), PLetStmt("x", None, lit(2))), values)


def test_let_shadows_root(values):
    assert _value(_source(PLetStmt("print", None, lit(1)), PExprStmt(PVar("print"))), values) == 1


def test_return_at_top_level(values):
    with pytest.raises(UnhandledReturn):
        evaluate(_source(PReturnStmt(lit(1))), values)


def test_return_inside_if_at_top_level(values):
    with pytest.raises(UnhandledReturn):
        evaluate(PIfStmt(lit(True), [PReturnStmt()]), values)


def test_if_value_and_scope(values):
    src = _source(PIfStmt(lit(False), [PExprStmt(lit(1))], [PLetStmt("y", None, lit(2))]))
    assert _value(src, values) == 2
    assert values.lookup("y") is None


def test_if_empty_branch_is_nil(values):
    assert _value(PIfStmt(lit(True)), values) is None


def test_if_requires_boolean(values):
    with pytest.raises(RuntimeTypeError):
        evaluate(PIfStmt(lit(1)), values)


def test_for_over_range(values):
    src = _source(
        PLetStmt("total", None, lit(0)),
        PForStmt(
            "i",
            PCall("range", [lit(1), lit(5)]),
            [PAssignStmt(PVar("total"), PBinary("+", PVar("total"), PVar("i")))],
        ),
        PExprStmt(PVar("total")),
    )
    assert _value(src, values) == 10


def test_for_fresh_scope_per_iteration(values):
    loop = PForStmt("i", PCall("list", [lit(1), lit(2)]), [PLetStmt("seen", None, PVar("i"))])
    assert _value(loop, values) is None


def test_for_requires_list(values):
    with pytest.raises(RuntimeTypeError):
        evaluate(PForStmt("c", lit("abc")), values)


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


def test_def_returns_function(values):
    result = evaluate(PDefStmt("f"), values)
    assert isinstance(result, Function)
    assert result.name == "f"


def test_call_without_return_is_nil(values):
    src = _source(PDefStmt("f", body=[PExprStmt(lit(1))]), PExprStmt(PCall("f")))
    assert _value(src, values) is None


def test_return_stops_body(log_scope):
    body = [
        PReturnStmt(lit(1)),
        PExprStmt(PCall("log", [lit("unreachable")])),
    ]
    src = _source(PDefStmt("f", body=body), PExprStmt(PCall("f")))
    assert _value(src, log_scope.scope) == 1
    assert log_scope.logged == []


def test_return_crosses_loop_and_if(values):
    body = [
        PForStmt(
            "i",
            PCall("range", [lit(0), lit(10)]),
            [PIfStmt(PBinary("==", PVar("i"), lit(3)), [PReturnStmt(PVar("i"))])],
        ),
        PReturnStmt(lit(-1)),
    ]
    src = _source(PDefStmt("f", body=body), PExprStmt(PCall("f")))
    assert _value(src, values) == 3


def test_empty_return_is_nil(values):
    src = _source(PDefStmt("f", body=[PReturnStmt()]), PExprStmt(PCall("f")))
    assert _value(src, values) is None


def test_closure_captures_defining_scope(values):
    src = _source(
        PDefStmt(
            "counter",
            body=[
                PLetStmt("n", None, lit(0)),
                PDefStmt(
                    "next",
                    body=[
                        PAssignStmt(PVar("n"), PBinary("+", PVar("n"), lit(1))),
                        PReturnStmt(PVar("n")),
                    ],
                ),
                PReturnStmt(PVar("next")),
            ],
        ),
        PLetStmt("tick", None, PCall("counter")),
        PExprStmt(PCall("tick")),
        PExprStmt(PCall("tick")),
    )
    assert _value(src, values) == 2


def test_parameters_shadow_outer(values):
    src = _source(
        PLetStmt("x", None, lit(1)),
        PDefStmt("f", ["x"], body=[PReturnStmt(PVar("x"))]),
        PExprStmt(PCall("f", [lit(5)])),
    )
    assert _value(src, values) == 5


def test_user_function_arity(values):
    with pytest.raises(RuntimeArityMismatch):
        evaluate(_source(PDefStmt("f", ["a"]), PExprStmt(PCall("f"))), values)


def test_duplicate_parameter(values):
    with pytest.raises(RuntimeDuplicateName):
        evaluate(PDefStmt("f", ["a", "a"]), values)


def test_call_undefined(values):
    with pytest.raises(RuntimeUndefinedName):
        evaluate(PCall("missing"), values)


def test_call_non_function(values):
    with pytest.raises(RuntimeTypeError):
        evaluate(PCall("variable"), values)


def test_arguments_left_to_right(log_scope):
    evaluate(PCall("functionAny", [PCall("log", [lit(1)])]), log_scope.scope)
    call = PCall("list", [PCall("log", [lit(1)]), PCall("log", [lit(2)])])
    evaluate(call, log_scope.scope)
    assert [v.value for v in log_scope.logged] == [1, 1, 2]


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


def test_assign_mutates_nearest(values):
    src = _source(
        PLetStmt("x", None, lit(1)),
        PDefStmt(
            "f",
            body=[
                PLetStmt("x", None, lit(10)),
                PAssignStmt(PVar("x"), lit(20)),
                PReturnStmt(PVar("x")),
            ],
        ),
        PLetStmt("inner", None, PCall("f")),
        PExprStmt(PVar("x")),
    )
    assert _value(src, values) == 1
    assert values.lookup("inner") == Primitive(20)


def test_assign_outer_from_block(values):
    src = _source(
        PLetStmt("x", None, lit(1)),
        PIfStmt(lit(True), [PAssignStmt(PVar("x"), lit(2))]),
        PExprStmt(PVar("x")),
    )
    assert _value(src, values) == 2


def test_assign_returns_value(values):
    assert _value(PAssignStmt(PVar("variable"), lit("new")), values) == "new"


def test_assign_undefined(values):
    with pytest.raises(RuntimeUndefinedName):
        evaluate(PAssignStmt(PVar("missing"), lit(1)), values)


def test_assign_property(values):
    src = _source(
        PAssignStmt(PProperty(PVar("object"), "property"), lit("changed")),
        PExprStmt(PProperty(PVar("object"), "property")),
    )
    assert _value(src, values) == "changed"


def test_assign_undefined_property(values):
    with pytest.raises(RuntimeUndefinedMember):
        evaluate(PAssignStmt(PProperty(PVar("object"), "missing"), lit(1)), values)


def test_assign_property_on_non_object(values):
    with pytest.raises(RuntimeTypeError):
        evaluate(PAssignStmt(PProperty(PVar("variable"), "x"), lit(1)), values)


# ---------------------------------------------------------------------------
# Binary operators
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "op,left,right,expected",
    [
        pytest.param("+", lit(2), lit(3), 5, id="int-add"),
        pytest.param("-", lit(2), lit(3), -1, id="int-sub"),
        pytest.param("*", lit(-4), lit(3), -12, id="int-mul"),
        pytest.param("/", lit(5), lit(2), 2, id="int-div"),
        pytest.param("/", lit(-5), lit(2), -2, id="int-div-negative"),
        pytest.param("/", lit(5), lit(-2), -2, id="int-div-negative-divisor"),
        pytest.param("+", dec("0.1"), dec("0.2"), Decimal("0.3"), id="dec-add-exact"),
        pytest.param("*", dec("1.5"), dec("1.5"), Decimal("2.25"), id="dec-mul-exact"),
        pytest.param("-", dec("1.00"), dec("0.25"), Decimal("0.75"), id="dec-sub"),
        pytest.param("/", dec("5.0"), dec("2.0"), Decimal("2.5"), id="dec-div"),
        pytest.param("/", dec("1.0"), dec("3.0"), Decimal("0.3"), id="dec-div-inexact"),
        pytest.param("/", dec("0.5"), dec("2.0"), Decimal("0.2"), id="dec-div-half-even-down"),
        pytest.param("/", dec("1.5"), dec("2.0"), Decimal("0.8"), id="dec-div-half-even-up"),
        pytest.param("+", lit(1), lit("x"), "1x", id="int-plus-string"),
        pytest.param("+", lit("x"), lit(1), "x1", id="string-plus-int"),
        pytest.param("+", lit("v="), lit(None), "v=NIL", id="string-plus-nil"),
        pytest.param("+", lit(True), lit("!"), "TRUE!", id="bool-plus-string"),
        pytest.param("==", lit(1), lit(1), True, id="eq"),
        pytest.param("==", lit(1), lit("1"), False, id="eq-mixed-kinds"),
        pytest.param("!=", lit(True), lit(1), True, id="ne-bool-int"),
        pytest.param("==", dec("1.0"), dec("1.00"), False, id="eq-decimal-scale"),
        pytest.param("==", dec("1.50"), dec("1.50"), True, id="eq-decimal-same-scale"),
        pytest.param("!=", dec("2.0"), dec("2"), True, id="ne-decimal-scale"),
        pytest.param("<", lit(1), lit(2), True, id="lt"),
        pytest.param(">=", lit("b"), lit("a"), True, id="ge-string"),
        pytest.param("<=", dec("2.5"), dec("2.50"), True, id="le-decimal"),
        pytest.param(">", lit(Char("b")), lit(Char("a")), True, id="gt-char"),
        pytest.param("<", lit(False), lit(True), True, id="lt-boolean"),
    ],
)
def test_binary(values, op, left, right, expected):
    result = _value(PBinary(op, left, right), values)
    assert type(result) is type(expected)
    assert result == expected


@pytest.mark.parametrize(
    "op,left,right",
    [
        pytest.param("+", lit(1), dec("1.0"), id="add-mixed"),
        pytest.param("+", lit(True), lit(1), id="add-bool"),
        pytest.param("-", lit("a"), lit("b"), id="sub-strings"),
        pytest.param("*", lit(None), lit(1), id="mul-nil"),
        pytest.param("<", lit(1), dec("1.0"), id="lt-mixed"),
        pytest.param("<", lit(None), lit(None), id="lt-nil"),
        pytest.param("<", lit("a"), lit(Char("a")), id="lt-string-char"),
        pytest.param("AND", lit(1), lit(True), id="and-int"),
    ],
)
def test_binary_type_errors(values, op, left, right):
    with pytest.raises(RuntimeTypeError):
        evaluate(PBinary(op, left, right), values)


@pytest.mark.parametrize(
    "left,right",
    [
        pytest.param(lit(1), lit(0), id="integer"),
        pytest.param(dec("1.0"), dec("0.00"), id="decimal"),
    ],
)
def test_divide_by_zero(values, left, right):
    with pytest.raises(DivideByZero):
        evaluate(PBinary("/", left, right), values)


def test_or_short_circuits(log_scope):
    e = PBinary("OR", PCall("log", [lit(True)]), PCall("log", [lit(False)]))
    assert _value(e, log_scope.scope) is True
    assert [v.value for v in log_scope.logged] == [True]


def test_and_short_circuits(log_scope):
    e = PBinary("AND", lit(False), PCall("log", [lit(True)]))
    assert _value(e, log_scope.scope) is False
    assert log_scope.logged == []


def test_and_evaluates_right_when_needed(log_scope):
    e = PBinary("AND", PCall("log", [lit(True)]), PCall("log", [lit(False)]))
    assert _value(e, log_scope.scope) is False
    assert [v.value for v in log_scope.logged] == [True, False]


def test_short_circuit_checks_right_operand_kind(log_scope):
    e = PBinary("OR", lit(False), PCall("nil"))
    with pytest.raises(RuntimeTypeError):
        evaluate(e, log_scope.scope)


def test_short_circuit_skips_bad_right_operand(log_scope):
    e = PBinary("OR", lit(True), PCall("nil"))
    assert _value(e, log_scope.scope) is True


def test_binary_operands_left_to_right(log_scope):
    e = PBinary("+", PCall("log", [lit(1)]), PCall("log", [lit(2)]))
    assert _value(e, log_scope.scope) == 3
    assert [v.value for v in log_scope.logged] == [1, 2]


def test_equality_of_lists_and_objects(values):
    same = PBinary("==", PCall("list", [lit(1), lit("a")]), PCall("list", [lit(1), lit("a")]))
    assert _value(same, values) is True
    objs = PBinary(
        "==",
        PObjectExpr("P", [PLetStmt("x", None, lit(1))]),
        PObjectExpr("P", [PLetStmt("x", None, lit(1))]),
    )
    assert _value(objs, values) is True


def test_unknown_operator(values):
    with pytest.raises(ImplementationDefect):
        evaluate(PBinary("%", lit(1), lit(1)), values)


def test_group(values):
    assert _value(PGroup(PBinary("*", lit(2), lit(3))), values) == 6


# ---------------------------------------------------------------------------
# Objects
# ---------------------------------------------------------------------------


def _point():
    get_x = PDefStmt("getX", body=[PReturnStmt(PVar("x"))])
    move = PDefStmt(
        "move",
        ["dx"],
        body=[
            PAssignStmt(PProperty(PVar("this"), "x"), PBinary("+", PVar("x"), PVar("dx"))),
            PReturnStmt(PVar("this")),
        ],
    )
    return PObjectExpr(
        "Point",
        [PLetStmt("x", None, lit(1)), PLetStmt("y", None, PBinary("*", PVar("x"), lit(2)))],
        [get_x, move],
    )


def test_object_fields_see_earlier_fields(values):
    obj = evaluate(_point(), values)
    assert isinstance(obj, ObjectValue)
    assert obj.members.lookup("y") == Primitive(2)
    assert list(obj.members.names()) == ["x", "y", "getX", "move"]


def test_object_is_parentless(values):
    e = PObjectExpr(fields=[PLetStmt("v", None, PVar("variable"))])
    with pytest.raises(RuntimeUndefinedName):
        evaluate(e, values)


def test_object_methods(values):
    src = _source(
        PLetStmt("p", None, _point()),
        PExprStmt(PMethodCall(PVar("p"), "move", [lit(4)])),
        PExprStmt(PMethodCall(PVar("p"), "getX")),
    )
    assert _value(src, values) == 5


def test_object_display_skips_self(values):
    obj = evaluate(PObjectExpr("P", [PLetStmt("x", None, lit(1))]), values)
    assert obj.display() == "Object(P) { x = `1` }"


def test_object_duplicate_member(values):
    e = PObjectExpr(fields=[PLetStmt("m", None, lit(1))], methods=[PDefStmt("m")])
    with pytest.raises(RuntimeDuplicateName):
        evaluate(e, values)


def test_method_arity_excludes_receiver(values):
    e = PMethodCall(PObjectExpr(methods=[PDefStmt("m", ["a"])]), "m")
    with pytest.raises(RuntimeArityMismatch) as exc:
        evaluate(e, values)
    assert "expects 1 argument(s) but got 0" in exc.value.msg


def test_parameter_named_this_shadows_self(values):
    m = PDefStmt("m", ["this"], body=[PReturnStmt(PVar("this"))])
    e = PMethodCall(PObjectExpr(methods=[m]), "m", [lit(7)])
    assert _value(e, values) == 7


def test_native_method_receives_receiver(values):
    result = evaluate(PMethodCall(PVar("object"), "method", [lit(1), lit(2)]), values)
    assert result == Primitive([Primitive(1), Primitive(2)])
    assert _value(PMethodCall(PVar("object"), "methodAny", [lit("a")]), values) == "a"


def test_method_on_non_object(values):
    with pytest.raises(RuntimeTypeError):
        evaluate(PMethodCall(lit(1), "m"), values)


def test_missing_member(values):
    with pytest.raises(RuntimeUndefinedMember):
        evaluate(PProperty(PVar("object"), "missing"), values)


def test_calling_a_field(values):
    with pytest.raises(RuntimeTypeError):
        evaluate(PMethodCall(PVar("object"), "property"), values)


def test_undefined_variable(values):
    with pytest.raises(RuntimeUndefinedName):
        evaluate(PVar("missing"), values)
