"""
EXL runtime values
Immutable value types produced and consumed by the interpreter
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
  from environment import Environment
  from expressions import Expr


INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


# ============================================================================
# VALUE TYPES
# ============================================================================

@dataclass(frozen=True)
class IntValue:
  """Signed 64-bit integer"""
  value: int

  def __post_init__(self):
    if isinstance(self.value, bool) or not isinstance(self.value, int):
      raise TypeError(f"IntValue requires an int, got {type(self.value).__name__}")
    if not INT_MIN <= self.value <= INT_MAX:
      raise ValueError(f"Integer {self.value} does not fit in 64 bits")

  @property
  def tag(self) -> str:
    return "Int"


@dataclass(frozen=True)
class BoolValue:
  """Boolean"""
  value: bool

  def __post_init__(self):
    if not isinstance(self.value, bool):
      raise TypeError(f"BoolValue requires a bool, got {type(self.value).__name__}")

  @property
  def tag(self) -> str:
    return "Bool"


@dataclass(frozen=True)
class VarRef:
  """Placeholder naming a variable, resolved against the environment"""
  name: str

  @property
  def tag(self) -> str:
    return "VarRef"


@dataclass(frozen=True)
class Closure:
  """Function value: parameter, unevaluated body and defining environment"""
  param: str
  body: 'Expr'
  env: 'Environment'

  @property
  def tag(self) -> str:
    return "Closure"

  def __repr__(self) -> str:
    return f"Closure(param={self.param!r}, body={self.body!r})"


Value = Union[IntValue, BoolValue, VarRef, Closure]

TRUE = BoolValue(True)
FALSE = BoolValue(False)


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def make_value(value: Any) -> Value:
  """Wrap a Python int or bool as a runtime value"""
  # bool first: bool is a subclass of int
  if isinstance(value, bool):
    return TRUE if value else FALSE
  if isinstance(value, int):
    return IntValue(value)
  raise TypeError(f"Cannot make an EXL value from {type(value).__name__}")




def format_value(value: Value) -> str:
  """Render a value the way EXL source writes it"""
  if isinstance(value, BoolValue):
    return "T" if value.value else "F"
  if isinstance(value, IntValue):
    return str(value.value)
  if isinstance(value, VarRef):
    return value.name
  if isinstance(value, Closure):
    return f"<closure {value.param}>"
  return f"<{type(value).__name__}>"
