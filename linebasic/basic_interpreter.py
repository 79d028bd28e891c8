"""
The core line interpreter: expression evaluation and statement execution.
"""
import os
import sys
from typing import Any, Dict, List, TYPE_CHECKING

from linebasic.basic_datatypes import (
    Assign, BasicError, BinaryOp, Conditional, DivisionByZero,
    Expression, IntegerOverflow, Invoke, Number, Operator, Statement, StoreLine,
    UndefinedCommand, UndefinedVariable, Variable, ArgumentCountMismatch, fits_int64,
)

if TYPE_CHECKING:
    from linebasic.basic_runtime import InterpreterState

VARIADIC = -1


def truncating_div(left: int, right: int) -> int:
    """Integer division rounding toward zero."""
    if right == 0:
        raise DivisionByZero(f"{left} / 0")
    quotient = abs(left) // abs(right)
    return -quotient if (left < 0) != (right < 0) else quotient


class Evaluator:
    """The execution engine.

    Holds no interpreter state of its own besides the side-effect queue;
    variables, stored lines and commands arrive through the state object on
    every call.
    """

    def __init__(self):
        self.side_effects: List[Dict[str, Any]] = []

    def _dbg(self, *parts):
        if os.environ.get("BASIC_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def emit(self, topic: str, message: str):
        """Queues an output event for the host to print."""
        self.side_effects.append({"topics": [topic], "message": message})

    def report(self, error: BasicError):
        self._dbg("report", type(error).__name__, repr(error))
        self.emit("stderr", error.report())

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def evaluate(self, expr: Expression, variables: Dict[str, int]) -> int:
        """Reduces an expression to an integer.

        Raises an EvaluationFailure subclass when a variable is unbound, a
        division has a zero divisor, or a result leaves the signed 64-bit
        range. The left operand is always evaluated first.
        """
        match expr:
            case Number(value=value):
                return value
            case Variable(name=name):
                if name not in variables:
                    raise UndefinedVariable(name)
                return variables[name]
            case BinaryOp(op=op, left=left, right=right):
                lhs = self.evaluate(left, variables)
                rhs = self.evaluate(right, variables)
                return self._apply(op, lhs, rhs)
        raise TypeError(f"not an expression: {expr!r}")

    def _apply(self, op: Operator, lhs: int, rhs: int) -> int:
        match op:
            case Operator.ADD:
                result = lhs + rhs
            case Operator.SUB:
                result = lhs - rhs
            case Operator.MUL:
                result = lhs * rhs
            case Operator.DIV:
                result = truncating_div(lhs, rhs)
            case Operator.LT:
                return 1 if lhs < rhs else 0
            case Operator.GT:
                return 1 if lhs > rhs else 0
        if not fits_int64(result):
            raise IntegerOverflow(f"{lhs} {op.value} {rhs}")
        return result

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def execute(self, stmt: Statement, state: 'InterpreterState') -> bool:
        """Performs one statement against the interpreter state.

        Failures never escape: they are reported on the stderr topic and the
        stores are left as they were. Returns False when something was
        reported.
        """
        try:
            self._execute(stmt, state)
        except BasicError as e:
            self.report(e)
            return False
        return True

    def _execute(self, stmt: Statement, state: 'InterpreterState'):
        match stmt:
            case StoreLine(index=index, text=text):
                state.lines[index] = text
            case Assign(name=name, expr=expr):
                state.variables[name] = self.evaluate(expr, state.variables)
            case Conditional(condition=condition, then=then):
                if self.evaluate(condition, state.variables) != 0:
                    self._execute(then, state)
            case Invoke(command=name, args=args):
                self._invoke(name, args, state)
            case _:
                raise TypeError(f"not a statement: {stmt!r}")

    def _invoke(self, name: str, args, state: 'InterpreterState'):
        entry = state.commands.get(name)
        if entry is None:
            raise UndefinedCommand(name)
        if entry.expected_args != VARIADIC and entry.expected_args != len(args):
            raise ArgumentCountMismatch(name, entry.expected_args, len(args))
        self._dbg("invoke", name, "argc", len(args))
        entry.command(state.variables, state.lines, list(args))
