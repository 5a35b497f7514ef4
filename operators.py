"""
EXL Operator Library
Operator identifiers and their implementations

Operators are referenced from the AST by enum member. Each member resolves to
its implementation through a fixed dispatch table, so trees stay comparable
and serializable.
"""

from enum import Enum
from typing import Callable, Dict
import operator

from error_handling import TypeMismatch
from utilities import (
  binary_arithmetic_op,
  binary_comparison_op,
  binary_logic_op,
  checked_int,
  operand_tags,
  require_ints,
  truncating_div
)
from values import BoolValue, Value


# ============================================================================
# OPERATOR IDENTIFIERS
# ============================================================================

class OperatorFamily(str, Enum):
  """Operand/result signature shared by a group of operators"""
  ARITHMETIC = "arithmetic"   # Int, Int -> Int
  BITWISE = "bitwise"         # Int, Int -> Int
  COMPARISON = "comparison"   # Int, Int -> Bool
  LOGIC = "logic"             # Bool, Bool -> Bool


class BinaryOperator(Enum):
  """Binary operators, valued by their source symbol"""
  ADD = "+"
  SUB = "-"
  MUL = "*"
  DIV = "/"
  BIT_AND = "&"
  BIT_OR = "|"
  LT = "<"
  LE = "<="
  GT = ">"
  GE = ">="
  EQ = "=="
  AND = "&&"
  OR = "||"

  @property
  def symbol(self) -> str:
    return self.value

  @property
  def family(self) -> OperatorFamily:
    return _BINARY_FAMILIES[self]


class UnaryOperator(Enum):
  """Unary operators, valued by their source symbol"""
  NOT = "!"

  @property
  def symbol(self) -> str:
    return self.value


_BINARY_FAMILIES: Dict[BinaryOperator, OperatorFamily] = {
  BinaryOperator.ADD: OperatorFamily.ARITHMETIC,
  BinaryOperator.SUB: OperatorFamily.ARITHMETIC,
  BinaryOperator.MUL: OperatorFamily.ARITHMETIC,
  BinaryOperator.DIV: OperatorFamily.ARITHMETIC,
  BinaryOperator.BIT_AND: OperatorFamily.BITWISE,
  BinaryOperator.BIT_OR: OperatorFamily.BITWISE,
  BinaryOperator.LT: OperatorFamily.COMPARISON,
  BinaryOperator.LE: OperatorFamily.COMPARISON,
  BinaryOperator.GT: OperatorFamily.COMPARISON,
  BinaryOperator.GE: OperatorFamily.COMPARISON,
  BinaryOperator.EQ: OperatorFamily.COMPARISON,
  BinaryOperator.AND: OperatorFamily.LOGIC,
  BinaryOperator.OR: OperatorFamily.LOGIC,
}


# ============================================================================
# IMPLEMENTATIONS
# ============================================================================

def exl_div(left: Value, right: Value) -> Value:
  """Division, truncating toward zero; the zero check comes first"""
  x, y = require_ints("/", left, right)
  return checked_int("/", truncating_div("/", x, y), x, y)


def exl_not(operand: Value) -> Value:
  """Boolean negation"""
  if not isinstance(operand, BoolValue):
    raise TypeMismatch("!", operand_tags(operand))
  return BoolValue(not operand.value)


BINARY_OPERATORS: Dict[BinaryOperator, Callable[[Value, Value], Value]] = {
  BinaryOperator.ADD: binary_arithmetic_op(operator.add, "+"),
  BinaryOperator.SUB: binary_arithmetic_op(operator.sub, "-"),
  BinaryOperator.MUL: binary_arithmetic_op(operator.mul, "*"),
  BinaryOperator.DIV: exl_div,
  BinaryOperator.BIT_AND: binary_arithmetic_op(operator.and_, "&"),
  BinaryOperator.BIT_OR: binary_arithmetic_op(operator.or_, "|"),
  BinaryOperator.LT: binary_comparison_op(operator.lt, "<"),
  BinaryOperator.LE: binary_comparison_op(operator.le, "<="),
  BinaryOperator.GT: binary_comparison_op(operator.gt, ">"),
  BinaryOperator.GE: binary_comparison_op(operator.ge, ">="),
  BinaryOperator.EQ: binary_comparison_op(operator.eq, "=="),
  BinaryOperator.AND: binary_logic_op(lambda x, y: x and y, "&&"),
  BinaryOperator.OR: binary_logic_op(lambda x, y: x or y, "||"),
}

UNARY_OPERATORS: Dict[UnaryOperator, Callable[[Value], Value]] = {
  UnaryOperator.NOT: exl_not,
}

def check_table(table: Dict, members, label: str) -> None:
  """Every operator identifier must have exactly one entry in table"""
  missing = set(members) - set(table)
  if missing:
    names = ', '.join(sorted(member.name for member in missing))
    raise RuntimeError(f"{label} is incomplete: missing {names}")


check_table(BINARY_OPERATORS, BinaryOperator, "binary dispatch table")
check_table(UNARY_OPERATORS, UnaryOperator, "unary dispatch table")
check_table(_BINARY_FAMILIES, BinaryOperator, "operator family table")


# ============================================================================
# DISPATCH
# ============================================================================

def apply_binary(op: BinaryOperator, left: Value, right: Value) -> Value:
  """Apply a binary operator to two evaluated operands"""
  return BINARY_OPERATORS[op](left, right)


def apply_unary(op: UnaryOperator, operand: Value) -> Value:
  """Apply a unary operator to an evaluated operand"""
  return UNARY_OPERATORS[op](operand)


def lookup_binary(symbol: str) -> BinaryOperator:
  """Resolve a source symbol such as '<=' to its operator (KeyError if unknown)"""
  try:
    return BinaryOperator(symbol)
  except ValueError:
    raise KeyError(symbol) from None


def lookup_unary(symbol: str) -> UnaryOperator:
  """Resolve a source symbol such as '!' to its operator (KeyError if unknown)"""
  try:
    return UnaryOperator(symbol)
  except ValueError:
    raise KeyError(symbol) from None
