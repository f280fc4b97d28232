"""
PIO Assembly Expression Evaluator
=================================

This module folds the constant expressions that appear in PIO operands
and directive arguments into 32-bit signed integers.

Supported Operations
--------------------
- Addition (+), subtraction (-), multiplication (*): 32-bit wraparound
- Division (/): truncates toward zero; division by zero is an error
- Negation (unary -)
- Bit reversal (unary ::) over the full 32-bit width

Expression trees are built by the parser from source syntax and never
mutated. Evaluation is a pure function of the tree and a symbol resolver:

>>> from pio_sdk.assembler.expressions import ExprNode, evaluate
>>> tree = ExprNode.binary("+", ExprNode.symbol("base"), ExprNode.number(2))
>>> evaluate(tree, symbols)   # symbols resolves "base" -> 3
5

Symbol lookup is delegated to the resolver; an unknown name raises
UndefinedSymbolError carrying the name.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Protocol

from pio_sdk.errors import ExpressionError, SourceLocation

INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


# =============================================================================
# Expression AST Nodes
# =============================================================================

class ExprNodeType(Enum):
    """Types of expression AST nodes."""
    NUMBER = auto()      # Literal integer
    SYMBOL = auto()      # Label or define reference
    BINARY_OP = auto()   # a + b, a - b, a * b, a / b
    UNARY_OP = auto()    # -a, ::a


@dataclass(frozen=True)
class ExprNode:
    """
    Immutable node of an expression tree.

    Attributes:
        node_type: What kind of node this is
        value: Integer for NUMBER, name for SYMBOL
        operator: Operator for BINARY_OP / UNARY_OP
        left: Left operand (or the only operand of a unary node)
        right: Right operand of a binary node
        location: Where the node starts in the source
    """
    node_type: ExprNodeType
    value: int | str | None = None
    operator: str | None = None
    left: Optional["ExprNode"] = None
    right: Optional["ExprNode"] = None
    location: Optional[SourceLocation] = None

    @classmethod
    def number(cls, value: int, location: Optional[SourceLocation] = None) -> "ExprNode":
        return cls(ExprNodeType.NUMBER, value=value, location=location)

    @classmethod
    def symbol(cls, name: str, location: Optional[SourceLocation] = None) -> "ExprNode":
        return cls(ExprNodeType.SYMBOL, value=name, location=location)

    @classmethod
    def binary(
        cls,
        operator: str,
        left: "ExprNode",
        right: "ExprNode",
        location: Optional[SourceLocation] = None,
    ) -> "ExprNode":
        return cls(
            ExprNodeType.BINARY_OP,
            operator=operator,
            left=left,
            right=right,
            location=location or left.location,
        )

    @classmethod
    def unary(
        cls,
        operator: str,
        operand: "ExprNode",
        location: Optional[SourceLocation] = None,
    ) -> "ExprNode":
        return cls(
            ExprNodeType.UNARY_OP,
            operator=operator,
            left=operand,
            location=location or operand.location,
        )


# =============================================================================
# 32-bit Integer Helpers
# =============================================================================

def to_i32(value: int) -> int:
    """Wrap an arbitrary Python int to a signed 32-bit value."""
    return ((value - INT32_MIN) & 0xFFFFFFFF) + INT32_MIN


def reverse_bits(value: int) -> int:
    """Reverse the bit order of a 32-bit value, returning a signed result."""
    bits = format(value & 0xFFFFFFFF, "032b")
    return to_i32(int(bits[::-1], 2))


def divide_i32(dividend: int, divisor: int) -> int:
    """
    Divide two 32-bit values, truncating toward zero.

    Python's // floors, so the quotient is built from magnitudes. The one
    overflowing case (INT32_MIN / -1) wraps back to INT32_MIN.
    """
    quotient = abs(dividend) // abs(divisor)
    if (dividend < 0) != (divisor < 0):
        quotient = -quotient
    return to_i32(quotient)


# =============================================================================
# Expression Evaluator
# =============================================================================

class SymbolResolver(Protocol):
    """Anything that can map a symbol name to its 32-bit value."""

    def resolve(self, name: str, location: Optional[SourceLocation] = None) -> int:
        ...


class ExpressionEvaluator:
    """
    Evaluates expression trees against a symbol resolver.

    The evaluator holds no state besides the resolver, so the same tree
    evaluated twice against the same symbols always gives the same value.

    Attributes:
        symbols: The resolver used for SYMBOL nodes
    """

    def __init__(self, symbols: SymbolResolver):
        self.symbols = symbols

    def evaluate(self, node: ExprNode, location: Optional[SourceLocation] = None) -> int:
        """
        Fold an expression tree to a signed 32-bit integer.

        Args:
            node: Root of the expression tree
            location: Fallback location for errors when the node has none

        Returns:
            The value of the expression

        Raises:
            ExpressionError: On division by zero
            UndefinedSymbolError: If a referenced symbol is not defined
        """
        location = node.location or location

        if node.node_type == ExprNodeType.NUMBER:
            return to_i32(node.value)

        if node.node_type == ExprNodeType.SYMBOL:
            return self.symbols.resolve(node.value, location)

        if node.node_type == ExprNodeType.UNARY_OP:
            operand = self.evaluate(node.left, location)
            if node.operator == "-":
                return to_i32(-operand)
            if node.operator == "::":
                return reverse_bits(operand)
            raise ExpressionError(f"unknown unary operator '{node.operator}'", location)

        if node.node_type == ExprNodeType.BINARY_OP:
            left = self.evaluate(node.left, location)
            right = self.evaluate(node.right, location)
            if node.operator == "+":
                return to_i32(left + right)
            if node.operator == "-":
                return to_i32(left - right)
            if node.operator == "*":
                return to_i32(left * right)
            if node.operator == "/":
                if right == 0:
                    raise ExpressionError("division by zero", node.right.location or location)
                return divide_i32(left, right)
            raise ExpressionError(f"unknown operator '{node.operator}'", location)

        raise ExpressionError(f"cannot evaluate {node.node_type.name} node", location)


# =============================================================================
# Convenience Functions
# =============================================================================

def evaluate(
    node: ExprNode,
    symbols: SymbolResolver,
    location: Optional[SourceLocation] = None,
) -> int:
    """
    Convenience function to evaluate an expression tree.

    Args:
        node: Root of the expression tree
        symbols: Resolver for symbol references
        location: Fallback source location for errors

    Returns:
        Expression result as a signed 32-bit integer
    """
    return ExpressionEvaluator(symbols).evaluate(node, location)
