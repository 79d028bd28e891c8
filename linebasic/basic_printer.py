"""
A pretty-printer for statement and expression trees.
"""

from linebasic.basic_datatypes import (
    Assign, BinaryOp, Conditional, Invoke, Number, Operator, StoreLine, Variable,
)

# Higher binds tighter; mirrors the grammar's tier order.
BINDING = {
    Operator.ADD: 0, Operator.SUB: 0,
    Operator.MUL: 1, Operator.DIV: 1,
    Operator.LT: 2, Operator.GT: 2,
}


class Printer:
    """Formats AST nodes back into source text the parser accepts."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format a node."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj)

    def _create_handlers(self):
        return {
            int: str,
            Number: self._pformat_number,
            Variable: self._pformat_variable,
            BinaryOp: self._pformat_binary_op,
            StoreLine: self._pformat_store_line,
            Assign: self._pformat_assign,
            Conditional: self._pformat_conditional,
            Invoke: self._pformat_invoke,
        }

    def _pformat_number(self, obj):
        return str(obj.value)

    def _pformat_variable(self, obj):
        return obj.name

    def _pformat_binary_op(self, obj):
        rank = BINDING[obj.op]
        left = self._operand(obj.left, rank, is_right=False)
        right = self._operand(obj.right, rank, is_right=True)
        return f"{left} {obj.op.value} {right}"

    def _operand(self, node, parent_rank, is_right):
        text = self.pformat(node)
        if isinstance(node, BinaryOp):
            rank = BINDING[node.op]
            # Operators are left-associative, so an equal tier on the right needs parens.
            if rank < parent_rank or (is_right and rank == parent_rank):
                return f"({text})"
        return text

    def _pformat_store_line(self, obj):
        return f"{obj.index}{obj.text}"

    def _pformat_assign(self, obj):
        return f"{obj.name} = {self.pformat(obj.expr)}"

    def _pformat_conditional(self, obj):
        return f"if {self.pformat(obj.condition)} then {self.pformat(obj.then)}"

    def _pformat_invoke(self, obj):
        return " ".join([obj.command, *(self.pformat(a) for a in obj.args)])
