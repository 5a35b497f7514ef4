"""
EXL Interpreter
Recursive tree-walking evaluator and the Program that owns a tree and its variables

Evaluation is pure: the environment is read, never modified, and the same
(node, environment) pair always gives the same value or the same error.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from environment import Environment
from error_handling import (
  CyclicBinding,
  DepthExceeded,
  EXLError,
  NotCallable,
  TypeMismatch,
  UnboundVariable
)
from expressions import Apply, BinOp, Expr, Func, If, Leaf, UnaryOp
from operators import apply_binary, apply_unary
from parsing import parse
from utilities import operand_tags
from values import BoolValue, Closure, Value, VarRef, format_value


DEFAULT_MAX_DEPTH = 200

logger = logging.getLogger("EXLInterpreter")


# ============================================================================
# EXECUTION CONTEXT
# ============================================================================

def make_execution_context(max_depth: int = DEFAULT_MAX_DEPTH, debug: bool = False) -> Dict[str, Any]:
  """
  Create the bookkeeping for one evaluation run.

  depth is the current nesting of evaluate calls, resolving is the chain of
  (scope, name) variable lookups still in progress and steps counts evaluated
  nodes.
  """
  if max_depth < 1:
    raise ValueError(f"max_depth must be positive, got {max_depth}")
  return {
      'max_depth': max_depth,
      'depth': 0,
      'resolving': [],
      'steps': 0,
      'debug': debug
  }


# ============================================================================
# EVALUATOR
# ============================================================================

def evaluate(node: Expr, env: Environment, context: Optional[Dict[str, Any]] = None) -> Value:
  """
  Reduce an expression to a value.

  Raises:
    EvalError subclasses for type, arithmetic and variable failures
    DepthExceeded when nesting passes context['max_depth']
  """
  if context is None:
    context = make_execution_context()

  depth = context['depth'] + 1
  if depth > context['max_depth']:
    raise DepthExceeded(context['max_depth'], "evaluate")

  context['depth'] = depth
  context['steps'] += 1
  if context['debug']:
    logger.debug("Evaluating %s at depth %d", type(node).__name__, depth)

  try:
    if isinstance(node, Leaf):
      return eval_leaf(node, env, context)
    elif isinstance(node, UnaryOp):
      return eval_unary(node, env, context)
    elif isinstance(node, BinOp):
      return eval_binary(node, env, context)
    elif isinstance(node, If):
      return eval_if(node, env, context)
    elif isinstance(node, Func):
      return Closure(node.param, node.body, env)
    elif isinstance(node, Apply):
      return eval_apply(node, env, context)
    raise TypeError(f"Unknown expression node: {type(node).__name__}")
  finally:
    context['depth'] = depth - 1


def eval_leaf(node: Leaf, env: Environment, context: Dict[str, Any]) -> Value:
  """Constants evaluate to themselves; variables resolve through the environment"""
  value = node.value
  if not isinstance(value, VarRef):
    return value

  name = value.name
  scope, expr = env.find(name)
  if expr is None:
    raise UnboundVariable(name)

  resolving: List[Tuple[Environment, str]] = context['resolving']
  for pending_scope, pending_name in resolving:
    if pending_scope is scope and pending_name == name:
      raise CyclicBinding(name, [n for _, n in resolving])

  resolving.append((scope, name))
  try:
    # Bound expressions see the scope that defines them
    result = evaluate(expr, scope, context)
  finally:
    resolving.pop()

  if context['debug']:
    logger.debug("Resolved %s = %s", name, format_value(result))
  return result


def eval_unary(node: UnaryOp, env: Environment, context: Dict[str, Any]) -> Value:
  operand = evaluate(node.operand, env, context)
  return apply_unary(node.operator, operand)


def eval_binary(node: BinOp, env: Environment, context: Dict[str, Any]) -> Value:
  """Left operand first, then right, then the operator"""
  left = evaluate(node.left, env, context)
  right = evaluate(node.right, env, context)
  return apply_binary(node.operator, left, right)


def eval_if(node: If, env: Environment, context: Dict[str, Any]) -> Value:
  """Evaluate the condition and exactly one branch"""
  cond = evaluate(node.cond, env, context)
  if not isinstance(cond, BoolValue):
    raise TypeMismatch("if", operand_tags(cond))

  branch = node.then_branch if cond.value else node.else_branch
  return evaluate(branch, env, context)


def eval_apply(node: Apply, env: Environment, context: Dict[str, Any]) -> Value:
  """Call a closure with one evaluated argument"""
  function = evaluate(node.func, env, context)
  if not isinstance(function, Closure):
    raise NotCallable(function.tag)

  arg = evaluate(node.arg, env, context)
  call_env = function.env.child(function.param, arg)

  if context['debug']:
    logger.debug("Applying closure %s to %s", function.param, format_value(arg))
  return evaluate(function.body, call_env, context)


# ============================================================================
# PROGRAM
# ============================================================================

class Program:
  """
  One expression tree plus the variables it runs against.

  Bindings may change between runs; each run starts from a fresh execution
  context, so re-running with the same bindings gives the same result.
  """

  def __init__(self, root: Expr, environment: Optional[Environment] = None,
               max_depth: int = DEFAULT_MAX_DEPTH, debug: bool = False):
    self._root = root
    self._environment = environment if environment is not None else Environment()
    self.max_depth = max_depth
    self.debug = debug

  @classmethod
  def from_source(cls, source: str, **kwargs) -> 'Program':
    """Parse source text into a Program"""
    return cls(parse(source), **kwargs)

  @property
  def root(self) -> Expr:
    return self._root

  @property
  def environment(self) -> Environment:
    return self._environment

  def bind(self, name: str, expr: Optional[Expr]) -> None:
    """Bind a variable to an expression; None declares it without a value"""
    self._environment.bind(name, expr)

  def unbind(self, name: str) -> None:
    self._environment.unbind(name)

  def remove(self, name: str) -> None:
    self._environment.remove(name)

  def run(self) -> Value:
    """Evaluate the root expression to completion"""
    context = make_execution_context(self.max_depth, self.debug)
    try:
      result = evaluate(self._root, self._environment, context)
    except RecursionError:
      logger.debug("Interpreter stack exhausted after %d steps", context['steps'])
      raise DepthExceeded(self.max_depth, "evaluate") from None
    except EXLError as e:
      logger.debug("Run failed after %d steps: %s", context['steps'], e)
      raise

    logger.debug("Run finished in %d steps: %s", context['steps'], format_value(result))
    return result

  def __repr__(self) -> str:
    return f"Program(root={self._root!r}, environment={self._environment!r})"
