"""
Transforms the raw parser AST into the typed statement tree in basic_datatypes.
"""

from typing import Any, List

from linebasic.basic_datatypes import (
    Assign, BinaryOp, Conditional, Invoke, LineSyntaxError, Number, Operator,
    Statement, StoreLine, Variable, Expression, fits_int64,
)

# Tags the grammar emits on purpose. Anything else is a wrapper left behind by
# an anonymous sequence or an undiscarded literal and gets unwrapped or dropped.
KNOWN_TAGS = frozenset({
    'input', 'store_line', 'line_text', 'if_statement', 'assign', 'command',
    'expression', 'term', 'comparison', 'group', 'operator', 'number', 'name',
})

STATEMENT_TAGS = frozenset({'store_line', 'if_statement', 'assign', 'command'})
TIER_TAGS = frozenset({'expression', 'term', 'comparison'})


class BasicTransformer:
    def __init__(self, source: str = ""):
        # Source text is only used to annotate syntax errors.
        self.source = source

    def transform(self, node: Any) -> Statement:
        """Turns the parse tree of one line into a Statement."""
        if isinstance(node, dict) and 'ast' in node and 'tag' not in node:
            node = node['ast']

        items = self._flatten([node])
        if len(items) != 1:
            raise ValueError(f"expected one statement, got {len(items)} nodes")
        node = items[0]
        if node.get('tag') == 'input':
            return self.transform(node.get('children', []))
        return self._statement(node)

    # -----------------------------------------------------------------
    # Tree helpers
    # -----------------------------------------------------------------

    def _flatten(self, items: Any) -> List[dict]:
        if isinstance(items, dict):
            items = [items]
        out: List[dict] = []
        for item in items or []:
            if item is None:
                continue
            if isinstance(item, list):
                out.extend(self._flatten(item))
            elif isinstance(item, dict):
                if item.get('tag') in KNOWN_TAGS:
                    out.append(item)
                elif 'children' in item:
                    out.extend(self._flatten(item['children']))
            # Bare strings are undiscarded punctuation.
        return out

    def _children(self, node: dict) -> List[dict]:
        return self._flatten(node.get('children', []))

    def _syntax_error(self, message: str, node: dict) -> LineSyntaxError:
        return LineSyntaxError(self.source, message, node.get('line'), node.get('col'))

    # -----------------------------------------------------------------
    # Statements
    # -----------------------------------------------------------------

    def _statement(self, node: dict) -> Statement:
        children = self._children(node)
        match node.get('tag'):
            case 'store_line':
                index = self._number(children[0])
                text = children[1].get('text', '') if len(children) > 1 else ''
                return StoreLine(index, text)
            case 'if_statement':
                cond, then = children
                return Conditional(self._expression(cond), self._statement(then))
            case 'assign':
                name, expr = children
                return Assign(name['text'], self._expression(expr))
            case 'command':
                name, *args = children
                return Invoke(name['text'], tuple(self._expression(a) for a in args))
        raise ValueError(f"unexpected statement node: {node.get('tag')!r}")

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def _expression(self, node: dict) -> Expression:
        tag = node.get('tag')
        if tag in TIER_TAGS:
            return self._fold(self._children(node))
        match tag:
            case 'group':
                (inner,) = self._children(node)
                return self._expression(inner)
            case 'number':
                return Number(self._number(node))
            case 'name':
                return Variable(node['text'])
        raise ValueError(f"unexpected expression node: {tag!r}")

    def _fold(self, items: List[dict]) -> Expression:
        # operand (op operand)* folded to the left
        result = self._expression(items[0])
        for i in range(1, len(items) - 1, 2):
            op = Operator.from_symbol(items[i]['text'])
            result = BinaryOp(op, result, self._expression(items[i + 1]))
        return result

    def _number(self, node: dict) -> int:
        text = node.get('text', '')
        value = int(text)
        if not fits_int64(value):
            raise self._syntax_error(f"integer literal out of range: {text}", node)
        return value
