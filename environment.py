"""
EXL Environment
Maps variable names to an optional bound expression

A name that is present with no expression is a declared but unbound slot,
which is reported differently from a name that is missing altogether.
"""

from typing import Dict, Iterator, Optional, Tuple

from error_handling import UnboundVariable, UndefinedVariable
from expressions import Expr, Leaf, check_expr
from values import Value


class Environment:
  """
  Variable bindings for one scope, with an optional parent scope.

  The top-level environment belongs to a Program and is changed only through
  bind/unbind/remove. Closure scopes are created with child() and never
  modified afterwards.
  """

  def __init__(self, bindings: Optional[Dict[str, Optional[Expr]]] = None,
               parent: Optional['Environment'] = None):
    self._bindings: Dict[str, Optional[Expr]] = {}
    self.parent = parent
    for name, expr in (bindings or {}).items():
      self.bind(name, expr)

  @property
  def bindings(self) -> Dict[str, Optional[Expr]]:
    """Copy of this scope's bindings"""
    return dict(self._bindings)

  def bind(self, name: str, expr: Optional[Expr]) -> None:
    """Bind name to an expression, or declare it unbound when expr is None"""
    if not name:
      raise ValueError("Variable name must not be empty")
    self._bindings[name] = None if expr is None else check_expr(expr)

  def unbind(self, name: str) -> None:
    """Keep name declared but drop its expression"""
    if name not in self._bindings:
      raise UndefinedVariable(name)
    self._bindings[name] = None

  def remove(self, name: str) -> None:
    """Forget name entirely"""
    if name not in self._bindings:
      raise UndefinedVariable(name)
    del self._bindings[name]

  def child(self, name: str, value: Value) -> 'Environment':
    """New scope on top of this one with name bound to an evaluated value"""
    return Environment({name: Leaf(value)}, parent=self)

  def find(self, name: str) -> Tuple['Environment', Optional[Expr]]:
    """
    Locate the innermost scope defining name.

    Returns:
      (scope, expression or None when unbound)

    Raises:
      UndefinedVariable if no scope defines name
    """
    scope: Optional[Environment] = self
    while scope is not None:
      if name in scope._bindings:
        return scope, scope._bindings[name]
      scope = scope.parent
    raise UndefinedVariable(name)

  def lookup(self, name: str) -> Expr:
    """
    Bound expression for name.

    Raises:
      UndefinedVariable if name is missing
      UnboundVariable if name is declared without an expression
    """
    _, expr = self.find(name)
    if expr is None:
      raise UnboundVariable(name)
    return expr

  def names(self) -> Iterator[str]:
    """Visible names, innermost scope first, without duplicates"""
    seen = set()
    scope: Optional[Environment] = self
    while scope is not None:
      for name in scope._bindings:
        if name not in seen:
          seen.add(name)
          yield name
      scope = scope.parent

  def __contains__(self, name: str) -> bool:
    try:
      self.find(name)
    except UndefinedVariable:
      return False
    return True

  def __len__(self) -> int:
    return len(self._bindings)

  def __repr__(self) -> str:
    return f"Environment({self._bindings!r}, parent={'yes' if self.parent is not None else 'no'})"


def empty_environment() -> Environment:
  return Environment()
