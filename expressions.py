"""
EXL expression tree
AST node types, builder functions and structural utilities
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Set, Union

from operators import BinaryOperator, UnaryOperator, lookup_binary, lookup_unary
from values import BoolValue, Closure, IntValue, Value, VarRef


# ============================================================================
# NODE TYPES
# ============================================================================

@dataclass(frozen=True)
class Leaf:
    """Terminal node: a constant or a variable reference"""
    value: Value


@dataclass(frozen=True)
class UnaryOp:
    operand: 'Expr'
    operator: UnaryOperator


@dataclass(frozen=True)
class BinOp:
    left: 'Expr'
    right: 'Expr'
    operator: BinaryOperator


@dataclass(frozen=True)
class If:
    cond: 'Expr'
    then_branch: 'Expr'
    else_branch: 'Expr'


@dataclass(frozen=True)
class Func:
    """One-parameter function definition"""
    param: str
    body: 'Expr'


@dataclass(frozen=True)
class Apply:
    func: 'Expr'
    arg: 'Expr'


Expr = Union[Leaf, UnaryOp, BinOp, If, Func, Apply]

EXPR_TYPES = (Leaf, UnaryOp, BinOp, If, Func, Apply)


# ============================================================================
# BUILDERS
# ============================================================================

def int_leaf(value: int) -> Leaf:
    return Leaf(IntValue(value))


def bool_leaf(value: bool) -> Leaf:
    return Leaf(BoolValue(value))


def var(name: str) -> Leaf:
    """Variable reference, resolved when the tree is evaluated"""
    if not name:
        raise ValueError("Variable name must not be empty")
    return Leaf(VarRef(name))


def unary_op(operand: Expr, op: Union[UnaryOperator, str]) -> UnaryOp:
    if isinstance(op, str):
        op = lookup_unary(op)
    return UnaryOp(check_expr(operand), op)


def bin_op(left: Expr, right: Expr, op: Union[BinaryOperator, str]) -> BinOp:
    if isinstance(op, str):
        op = lookup_binary(op)
    return BinOp(check_expr(left), check_expr(right), op)


def if_expr(cond: Expr, then_branch: Expr, else_branch: Expr) -> If:
    return If(check_expr(cond), check_expr(then_branch), check_expr(else_branch))


def func(param: str, body: Expr) -> Func:
    if not param:
        raise ValueError("Function parameter name must not be empty")
    return Func(param, check_expr(body))


def apply(function: Expr, arg: Expr) -> Apply:
    return Apply(check_expr(function), check_expr(arg))


def check_expr(node: Any) -> Expr:
    if not isinstance(node, EXPR_TYPES):
        raise TypeError(f"Expected an expression node, got {type(node).__name__}")
    return node


# ============================================================================
# TREE UTILITIES
# ============================================================================

def children(node: Expr) -> List[Expr]:
    """Direct children of a node, left to right"""
    if isinstance(node, Leaf):
        return []
    if isinstance(node, UnaryOp):
        return [node.operand]
    if isinstance(node, BinOp):
        return [node.left, node.right]
    if isinstance(node, If):
        return [node.cond, node.then_branch, node.else_branch]
    if isinstance(node, Func):
        return [node.body]
    if isinstance(node, Apply):
        return [node.func, node.arg]
    raise TypeError(f"Unknown expression node: {type(node).__name__}")


def find_nodes_by_type(node: Expr, node_type: type) -> List[Expr]:
    """Find all nodes of a specific type, in pre-order"""
    result = []

    def search(current: Expr):
        if isinstance(current, node_type):
            result.append(current)
        for child in children(current):
            search(child)

    search(node)
    return result


def free_variables(node: Expr) -> Set[str]:
    """Names referenced but not bound by an enclosing Func"""
    result: Set[str] = set()

    def collect(current: Expr, bound: frozenset):
        if isinstance(current, Leaf):
            if isinstance(current.value, VarRef) and current.value.name not in bound:
                result.add(current.value.name)
        elif isinstance(current, Func):
            collect(current.body, bound | {current.param})
        else:
            for child in children(current):
                collect(child, bound)

    collect(node, frozenset())
    return result


def describe_leaf(value: Value) -> str:
    if isinstance(value, IntValue):
        return f"Int({value.value})"
    if isinstance(value, BoolValue):
        return f"Bool({value.value})"
    if isinstance(value, VarRef):
        return f"VarRef({value.name!r})"
    if isinstance(value, Closure):
        return f"Closure({value.param!r})"
    return repr(value)


def pretty_print_ast(node: Expr, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    pad = "  " * indent
    if isinstance(node, Leaf):
        return f"{pad}Leaf {describe_leaf(node.value)}\n"

    if isinstance(node, UnaryOp):
        result = f"{pad}UnaryOp {node.operator.symbol}\n"
    elif isinstance(node, BinOp):
        result = f"{pad}BinOp {node.operator.symbol}\n"
    elif isinstance(node, Func):
        result = f"{pad}Func {node.param}\n"
    else:
        result = f"{pad}{type(node).__name__}\n"

    for child in children(node):
        result += pretty_print_ast(child, indent + 1)

    return result


# ============================================================================
# SERIALIZATION
# ============================================================================

def ast_to_dict(node: Expr) -> Dict[str, Any]:
    """Convert an AST to plain dictionaries (JSON compatible)"""
    if isinstance(node, Leaf):
        value = node.value
        if isinstance(value, IntValue):
            return {"type": "Leaf", "value": {"kind": "Int", "value": value.value}}
        if isinstance(value, BoolValue):
            return {"type": "Leaf", "value": {"kind": "Bool", "value": value.value}}
        if isinstance(value, VarRef):
            return {"type": "Leaf", "value": {"kind": "VarRef", "name": value.name}}
        raise TypeError(f"Cannot serialize leaf value {describe_leaf(value)}")
    if isinstance(node, UnaryOp):
        return {"type": "UnaryOp", "operator": node.operator.symbol,
                "operand": ast_to_dict(node.operand)}
    if isinstance(node, BinOp):
        return {"type": "BinOp", "operator": node.operator.symbol,
                "left": ast_to_dict(node.left), "right": ast_to_dict(node.right)}
    if isinstance(node, If):
        return {"type": "If", "cond": ast_to_dict(node.cond),
                "then": ast_to_dict(node.then_branch),
                "else": ast_to_dict(node.else_branch)}
    if isinstance(node, Func):
        return {"type": "Func", "param": node.param, "body": ast_to_dict(node.body)}
    if isinstance(node, Apply):
        return {"type": "Apply", "func": ast_to_dict(node.func), "arg": ast_to_dict(node.arg)}
    raise TypeError(f"Unknown expression node: {type(node).__name__}")


def ast_from_dict(data: Dict[str, Any]) -> Expr:
    """Rebuild an AST from the output of ast_to_dict"""
    node_type = data.get("type")

    if node_type == "Leaf":
        value = data["value"]
        kind = value.get("kind")
        if kind == "Int":
            return int_leaf(value["value"])
        if kind == "Bool":
            return bool_leaf(value["value"])
        if kind == "VarRef":
            return var(value["name"])
        raise ValueError(f"Unknown leaf kind: {kind!r}")
    if node_type == "UnaryOp":
        return unary_op(ast_from_dict(data["operand"]), data["operator"])
    if node_type == "BinOp":
        return bin_op(ast_from_dict(data["left"]), ast_from_dict(data["right"]), data["operator"])
    if node_type == "If":
        return if_expr(ast_from_dict(data["cond"]), ast_from_dict(data["then"]),
                       ast_from_dict(data["else"]))
    if node_type == "Func":
        return func(data["param"], ast_from_dict(data["body"]))
    if node_type == "Apply":
        return apply(ast_from_dict(data["func"]), ast_from_dict(data["arg"]))
    raise ValueError(f"Unknown node type: {node_type!r}")
