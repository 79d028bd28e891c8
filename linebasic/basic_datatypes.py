"""
Defines the core data types for the line interpreter.

Expressions and statements are immutable trees produced by the transformer
and consumed by the evaluator. The error kinds raised along the way live here
as well so every layer can share them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


# =================================================================
# Errors
# =================================================================

class BasicError(Exception):
    """Base class for every failure the interpreter reports."""
    kind = "Error"

    def report(self) -> str:
        return f"{self.kind}: {self}"


class LineSyntaxError(BasicError):
    """The parser could not recognize the input line."""
    kind = "SyntaxError"

    def __init__(self, text: str, message: str, line: Optional[int] = None, col: Optional[int] = None):
        super().__init__(message)
        self.text = text
        self.message = message
        self.line = line
        self.col = col

    def report(self) -> str:
        if self.line is not None and self.col is not None:
            return f"{self.kind}: {self.message} (line {self.line}, col {self.col})"
        return f"{self.kind}: {self.message}"


class EvaluationFailure(BasicError):
    """An expression could not be reduced to an integer."""
    kind = "EvaluationFailure"


class UndefinedVariable(EvaluationFailure):
    kind = "UndefinedVariable"

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


class DivisionByZero(EvaluationFailure):
    kind = "DivisionByZero"


class IntegerOverflow(EvaluationFailure):
    kind = "IntegerOverflow"


class UndefinedCommand(BasicError):
    kind = "UndefinedCommand"

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name


class ArgumentCountMismatch(BasicError):
    kind = "ArgumentCountMismatch"

    def __init__(self, name: str, expected: int, got: int):
        super().__init__(f"{name} expects {expected} argument(s), got {got}")
        self.name = name
        self.expected = expected
        self.got = got


class EvaluationError(BasicError):
    """A command could not evaluate one or more of its own arguments."""
    kind = "EvaluationError"

    def __init__(self, command: str, cause: Optional[EvaluationFailure] = None):
        detail = f"{command}: {cause.report()}" if cause is not None else command
        super().__init__(detail)
        self.command = command
        self.cause = cause


# =================================================================
# Expressions
# =================================================================

class Operator(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    LT = "<"
    GT = ">"

    @classmethod
    def from_symbol(cls, symbol: str) -> "Operator":
        return cls(symbol)


@dataclass(frozen=True)
class Number:
    value: int


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class BinaryOp:
    op: Operator
    left: "Expression"
    right: "Expression"


Expression = Union[Number, Variable, BinaryOp]


# =================================================================
# Statements
# =================================================================

@dataclass(frozen=True)
class StoreLine:
    """Remembers raw program text under a line index."""
    index: int
    text: str


@dataclass(frozen=True)
class Assign:
    name: str
    expr: Expression


@dataclass(frozen=True)
class Conditional:
    """`if <condition> then <statement>`; there is no else branch."""
    condition: Expression
    then: "Statement"


@dataclass(frozen=True)
class Invoke:
    """A command call. Arguments stay unevaluated; the command decides."""
    command: str
    args: Tuple[Expression, ...] = ()


Statement = Union[StoreLine, Assign, Conditional, Invoke]


def fits_int64(value: int) -> bool:
    return INT_MIN <= value <= INT_MAX
