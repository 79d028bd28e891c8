# basic_runtime.py

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional, Sequence

import yaml
from koine import Parser

from linebasic.basic_datatypes import (
    EvaluationError, EvaluationFailure, Expression, LineSyntaxError, Statement,
)
from linebasic.basic_interpreter import Evaluator, VARIADIC
from linebasic.basic_printer import Printer
from linebasic.basic_transformer import BasicTransformer

GRAMMAR_PATH = Path(__file__).parent / "grammar" / "basic_line.yaml"

_COMMAND_NAME = re.compile(r"[a-z]+")

# ===================================================================
# 1. Interpreter State
# ===================================================================

CommandCallable = Callable[[Dict[str, int], Dict[int, str], List[Expression]], Any]


@dataclass(frozen=True)
class RegisteredCommand:
    command: CommandCallable
    expected_args: int


class CommandRegistry:
    """Maps command names to their callables and argument-count policy.

    Filled once before any input is processed; the evaluator only reads it.
    An expected count of VARIADIC (-1) accepts any number of arguments.
    """

    def __init__(self):
        self._commands: Dict[str, RegisteredCommand] = {}

    def register(self, name: str, command: CommandCallable, expected_args: int = VARIADIC):
        if not _COMMAND_NAME.fullmatch(name):
            raise ValueError(f"command names are lowercase letters only: {name!r}")
        if not callable(command):
            raise TypeError(f"command {name!r} is not callable")
        if expected_args < VARIADIC:
            raise ValueError(f"invalid expected argument count for {name!r}: {expected_args}")
        self._commands[name] = RegisteredCommand(command, expected_args)

    def get(self, name: str) -> Optional[RegisteredCommand]:
        return self._commands.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)


@dataclass
class InterpreterState:
    """Everything a run of the interpreter remembers between lines."""
    variables: Dict[str, int] = field(default_factory=dict)
    lines: Dict[int, str] = field(default_factory=dict)
    commands: CommandRegistry = field(default_factory=CommandRegistry)


# ===================================================================
# 2. Built-in Commands
# ===================================================================

class Command(ABC):
    """The required base class for built-in commands.

    A command receives the variable store, the line registry and its raw
    argument expressions; evaluating them is up to the command.
    """
    name: str = ""
    expected_args: int = VARIADIC

    def __init__(self, evaluator: Evaluator):
        self.evaluator = evaluator

    @abstractmethod
    def invoke(self, variables: Dict[str, int], lines: Dict[int, str], args: Sequence[Expression]):
        raise NotImplementedError

    def __call__(self, variables, lines, args):
        return self.invoke(variables, lines, args)


class PrintCommand(Command):
    """Prints its arguments space separated, or nothing at all if any fails."""
    name = "print"
    expected_args = VARIADIC

    def invoke(self, variables, lines, args):
        try:
            values = [self.evaluator.evaluate(arg, variables) for arg in args]
        except EvaluationFailure as e:
            raise EvaluationError(self.name, e) from e
        self.evaluator.emit("stdout", " ".join(str(v) for v in values))


class ListCommand(Command):
    """Prints every stored line, highest index first."""
    name = "list"
    expected_args = 0

    def invoke(self, variables, lines, args):
        for index in sorted(lines, reverse=True):
            self.evaluator.emit("stdout", f"{index}{lines[index]}")


BUILTINS = (PrintCommand, ListCommand)


# ===================================================================
# 3. Parsing
# ===================================================================

def load_grammar(path: Path = GRAMMAR_PATH) -> dict:
    with path.open(encoding="utf-8") as f:
        return yaml.safe_load(f)


class LineParser:
    """Parses one newline-terminated line into a Statement."""

    _grammar_parser: Optional[Parser] = None

    def __init__(self):
        if LineParser._grammar_parser is None:
            LineParser._grammar_parser = Parser(load_grammar())
        self.grammar_parser = LineParser._grammar_parser

    def parse(self, text: str) -> Statement:
        """Raises LineSyntaxError when the line is not a statement."""
        try:
            parse_out = self.grammar_parser.parse(text)
        except Exception as e:
            raise LineSyntaxError(text, f"parse failed: {e}") from e

        if isinstance(parse_out, dict) and 'status' in parse_out:
            if parse_out.get('status') != 'success':
                node = parse_out.get('error_node') or {}
                message = parse_out.get('error_message') or parse_out.get('message') or "parse failed"
                raise LineSyntaxError(text, message, node.get('line'), node.get('col'))
            ast_node = parse_out.get('ast')
            if ast_node is None:
                raise LineSyntaxError(text, "missing AST in parser result")
        else:
            ast_node = parse_out

        try:
            return BasicTransformer(text).transform(ast_node)
        except LineSyntaxError:
            raise
        except (ValueError, KeyError, IndexError) as e:
            raise LineSyntaxError(text, f"transform failed: {e}") from e


def parse_line(text: str) -> Statement:
    return LineParser().parse(text)


# ===================================================================
# 4. Line Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of running one line."""
    status: Literal['success', 'error']
    statement: Optional[Statement] = None
    error_message: Optional[str] = None
    error_token: Optional[Dict[str, Any]] = None
    side_effects: List[Dict] = field(default_factory=list)

    @property
    def stdout(self) -> List[str]:
        return [e['message'] for e in self.side_effects if e.get('topics') == ['stdout']]

    @property
    def stderr(self) -> List[str]:
        return [e['message'] for e in self.side_effects if e.get('topics') == ['stderr']]

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class LineRunner:
    """Parses and executes lines against one interpreter state."""

    def __init__(self, state: Optional[InterpreterState] = None, builtins=BUILTINS):
        self.parser = LineParser()
        self.evaluator = Evaluator()
        self.printer = Printer()
        self.state = state if state is not None else InterpreterState()
        for cls in builtins:
            if cls.name not in self.state.commands:
                self.state.commands.register(cls.name, cls(self.evaluator), cls.expected_args)

    def handle_line(self, text: str) -> ExecutionResult:
        """The main entry point to run one line of input."""
        self.evaluator.side_effects = []

        # 1. Parse
        try:
            stmt = self.parser.parse(text)
        except LineSyntaxError as e:
            self.evaluator._dbg("parse error", repr(e.text), e.message)
            self.evaluator.report(e)
            token = {'line': e.line, 'col': e.col} if e.line is not None else None
            return ExecutionResult(
                status='error',
                error_message=e.report(),
                error_token=token,
                side_effects=self.evaluator.side_effects,
            )
        self.evaluator._dbg("parsed", self.printer.pformat(stmt))

        # 2. Execute
        if self.evaluator.execute(stmt, self.state):
            return ExecutionResult(status='success', statement=stmt, side_effects=self.evaluator.side_effects)
        errors = [e['message'] for e in self.evaluator.side_effects if e.get('topics') == ['stderr']]
        return ExecutionResult(
            status='error',
            statement=stmt,
            error_message=errors[-1] if errors else None,
            side_effects=self.evaluator.side_effects,
        )

    def run_lines(self, lines) -> List[ExecutionResult]:
        return [self.handle_line(line if line.endswith("\n") else line + "\n") for line in lines]
