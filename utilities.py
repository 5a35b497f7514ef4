"""
Utilities module for the EXL interpreter
Operand checks and factories shared by the operator library
"""

from typing import Callable, Tuple

from error_handling import DivisionByZero, IntegerOverflow, TypeMismatch
from values import INT_MAX, INT_MIN, BoolValue, IntValue, Value


# ==================== OPERAND CHECKS ====================

def operand_tags(*operands: Value) -> Tuple[str, ...]:
  """Tags of the operands, in order, for diagnostics"""
  return tuple(getattr(operand, 'tag', type(operand).__name__) for operand in operands)


def require_ints(symbol: str, left: Value, right: Value) -> Tuple[int, int]:
  """
  Unwrap a pair of Int operands

  Raises:
    TypeMismatch if either operand is not an Int
  """
  if not (isinstance(left, IntValue) and isinstance(right, IntValue)):
    raise TypeMismatch(symbol, operand_tags(left, right))
  return left.value, right.value


def require_bools(symbol: str, left: Value, right: Value) -> Tuple[bool, bool]:
  """
  Unwrap a pair of Bool operands

  Raises:
    TypeMismatch if either operand is not a Bool
  """
  if not (isinstance(left, BoolValue) and isinstance(right, BoolValue)):
    raise TypeMismatch(symbol, operand_tags(left, right))
  return left.value, right.value


def checked_int(symbol: str, result: int, *operands: int) -> IntValue:
  """
  Wrap an arithmetic result, rejecting anything outside 64 bits

  Raises:
    IntegerOverflow if the result does not fit
  """
  if not INT_MIN <= result <= INT_MAX:
    raise IntegerOverflow(symbol, operands)
  return IntValue(result)


def truncating_div(symbol: str, left: int, right: int) -> int:
  """
  Integer division rounding toward zero

  Raises:
    DivisionByZero if right is 0
  """
  if right == 0:
    raise DivisionByZero(symbol)
  quotient = abs(left) // abs(right)
  return quotient if (left < 0) == (right < 0) else -quotient


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(
  op: Callable[[int, int], int],
  symbol: str
) -> Callable[[Value, Value], Value]:
  """
  Factory for Int x Int -> Int operations

  Examples:
    add = binary_arithmetic_op(operator.add, "+")
    add(IntValue(1), IntValue(2)) -> IntValue(3)
  """
  def arithmetic(left: Value, right: Value) -> Value:
    x, y = require_ints(symbol, left, right)
    return checked_int(symbol, op(x, y), x, y)

  return arithmetic


def binary_comparison_op(
  op: Callable[[int, int], bool],
  symbol: str
) -> Callable[[Value, Value], Value]:
  """
  Factory for Int x Int -> Bool operations

  Examples:
    lt = binary_comparison_op(operator.lt, "<")
    lt(IntValue(1), IntValue(2)) -> BoolValue(True)
  """
  def comparison(left: Value, right: Value) -> Value:
    x, y = require_ints(symbol, left, right)
    return BoolValue(bool(op(x, y)))

  return comparison


def binary_logic_op(
  op: Callable[[bool, bool], bool],
  symbol: str
) -> Callable[[Value, Value], Value]:
  """Factory for Bool x Bool -> Bool operations"""
  def logic(left: Value, right: Value) -> Value:
    x, y = require_bools(symbol, left, right)
    return BoolValue(bool(op(x, y)))

  return logic
