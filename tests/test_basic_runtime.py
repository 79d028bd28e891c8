import pytest

from linebasic.basic_runtime import (
    BUILTINS, Command, CommandRegistry, ExecutionResult, InterpreterState, LineRunner,
    ListCommand, PrintCommand, parse_line,
)
from linebasic.basic_interpreter import Evaluator, VARIADIC
from linebasic.basic_datatypes import (
    Assign, BinaryOp, EvaluationError, Number, Operator, StoreLine, UndefinedVariable, Variable,
)


@pytest.fixture
def evaluator():
    return Evaluator()


@pytest.fixture
def runner():
    return LineRunner()


def stdout(evaluator):
    return [e['message'] for e in evaluator.side_effects if e['topics'] == ['stdout']]


# --- Command Registry ---

def test_register_and_lookup():
    registry = CommandRegistry()
    fn = lambda v, l, a: None
    registry.register("beep", fn, 0)
    entry = registry.get("beep")
    assert entry.command is fn
    assert entry.expected_args == 0
    assert "beep" in registry
    assert list(registry) == ["beep"]
    assert registry.get("boop") is None


def test_register_defaults_to_variadic():
    registry = CommandRegistry()
    registry.register("any", lambda v, l, a: None)
    assert registry.get("any").expected_args == VARIADIC


@pytest.mark.parametrize("name", ["Print", "do_it", "x1", ""])
def test_register_rejects_names_the_parser_cannot_produce(name):
    with pytest.raises(ValueError):
        CommandRegistry().register(name, lambda v, l, a: None)


def test_register_rejects_bad_policy_and_non_callables():
    registry = CommandRegistry()
    with pytest.raises(ValueError):
        registry.register("bad", lambda v, l, a: None, -2)
    with pytest.raises(TypeError):
        registry.register("bad", 42)


def test_command_base_class_is_abstract(evaluator):
    with pytest.raises(TypeError):
        Command(evaluator)


# --- Built-ins ---

def test_print_joins_values_with_spaces(evaluator):
    cmd = PrintCommand(evaluator)
    cmd({"a": 3}, {}, [Variable("a"), Number(-2), BinaryOp(Operator.LT, Number(1), Number(2))])
    assert stdout(evaluator) == ["3 -2 1"]


def test_print_without_arguments_emits_empty_line(evaluator):
    PrintCommand(evaluator)({}, {}, [])
    assert stdout(evaluator) == [""]


def test_print_is_all_or_nothing(evaluator):
    cmd = PrintCommand(evaluator)
    with pytest.raises(EvaluationError) as exc:
        cmd({"a": 1}, {}, [Variable("a"), Variable("b")])
    assert isinstance(exc.value.cause, UndefinedVariable)
    assert exc.value.report() == "EvaluationError: print: UndefinedVariable: b"
    assert evaluator.side_effects == []


def test_list_orders_by_descending_index(evaluator):
    lines = {3: "y=2", 5: "x=1", -1: " neg", 40: ""}
    ListCommand(evaluator)({}, lines, [])
    assert stdout(evaluator) == ["40", "5x=1", "3y=2", "-1 neg"]


def test_list_with_no_lines_prints_nothing(evaluator):
    ListCommand(evaluator)({}, {}, [])
    assert evaluator.side_effects == []


def test_builtin_policies():
    assert {cls.name: cls.expected_args for cls in BUILTINS} == {"print": VARIADIC, "list": 0}


# --- LineRunner ---

def test_runner_registers_builtins(runner):
    assert "print" in runner.state.commands
    assert "list" in runner.state.commands
    assert runner.state.commands.get("list").expected_args == 0


def test_runner_keeps_existing_registrations():
    state = InterpreterState()
    custom = lambda v, l, a: None
    state.commands.register("print", custom, 1)
    runner = LineRunner(state)
    assert runner.state is state
    assert state.commands.get("print").command is custom


def test_store_then_list_round_trip(runner):
    assert runner.handle_line("5x=1\n").status == "success"
    assert runner.handle_line("3y=2\n").status == "success"
    result = runner.handle_line("list\n")
    assert result.status == "success"
    assert result.stdout == ["5x=1", "3y=2"]


def test_list_rejects_arguments(runner):
    result = runner.handle_line("list 1\n")
    assert result.status == "error"
    assert result.stderr == ["ArgumentCountMismatch: list expects 0 argument(s), got 1"]
    assert result.stdout == []


def test_assign_and_print(runner):
    runner.handle_line("a=1<2+3\n")
    assert runner.state.variables["a"] == 4
    result = runner.handle_line("print a a*2 (a+1)/2\n")
    assert result.stdout == ["4 8 2"]


def test_print_with_no_arguments(runner):
    result = runner.handle_line("print\n")
    assert result.status == "success"
    assert result.stdout == [""]


def test_print_failure_is_reported(runner):
    result = runner.handle_line("print 1 zz\n")
    assert result.status == "error"
    assert result.stdout == []
    assert result.format_error() == "EvaluationError: print: UndefinedVariable: zz"


def test_conditional_line(runner):
    runner.handle_line("a=0\n")
    runner.handle_line("if a then b=9\n")
    assert "b" not in runner.state.variables
    runner.handle_line("a=5\n")
    runner.handle_line("if a then b=9\n")
    assert runner.state.variables["b"] == 9


def test_undefined_command_leaves_stores_unchanged(runner):
    runner.handle_line("a=1\n")
    runner.handle_line("10 print a\n")
    result = runner.handle_line("frobnicate a\n")
    assert result.status == "error"
    assert result.error_message == "UndefinedCommand: frobnicate"
    assert runner.state.variables == {"a": 1}
    assert runner.state.lines == {10: " print a"}
    assert set(runner.state.commands) == {"print", "list"}


def test_syntax_error_result(runner):
    runner.handle_line("a=1\n")
    result = runner.handle_line("a=(\n")
    assert result.status == "error"
    assert result.statement is None
    assert result.error_message.startswith("SyntaxError:")
    assert result.stderr == [result.error_message]
    assert runner.state.variables == {"a": 1}
    # The runner keeps accepting input.
    assert runner.handle_line("print a\n").stdout == ["1"]


def test_syntax_error_carries_position_token(runner):
    result = runner.handle_line("print 1\t2\n")
    assert result.status == "error"
    assert result.error_token == {'line': 1, 'col': 9}


def test_runtime_error_has_no_position_token(runner):
    result = runner.handle_line("print nope\n")
    assert result.status == "error"
    assert result.error_token is None


def test_side_effects_reset_per_line(runner):
    runner.handle_line("print 1\n")
    assert runner.handle_line("print 2\n").stdout == ["2"]


def test_division_by_zero_is_recoverable(runner):
    result = runner.handle_line("a=1/0\n")
    assert result.status == "error"
    assert result.error_message.startswith("DivisionByZero:")
    assert "a" not in runner.state.variables


def test_run_lines_appends_terminators(runner):
    results = runner.run_lines(["a=2", "b=a*a\n", "print b"])
    assert [r.status for r in results] == ["success"] * 3
    assert results[-1].stdout == ["4"]


def test_parse_line_helper():
    assert parse_line("x = 3\n") == Assign("x", Number(3))
    assert parse_line("12 hi\n") == StoreLine(12, " hi")


def test_execution_result_format_error_on_success():
    assert ExecutionResult(status="success").format_error() == ""
