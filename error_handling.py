"""
Error handling for the EXL parser and interpreter
Exception hierarchy plus formatting helpers for diagnostics
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


# ============================================================================
# ERROR CODES
# ============================================================================

class ErrorCodes(str, Enum):
    """Stable error codes reported by every EXL error"""

    PARSE_ERROR = "ParseError"
    DEPTH_EXCEEDED = "DepthExceeded"

    TYPE_MISMATCH = "TypeMismatch"
    DIVISION_BY_ZERO = "DivisionByZero"
    INTEGER_OVERFLOW = "IntegerOverflow"

    UNDEFINED_VARIABLE = "UndefinedVariable"
    UNBOUND_VARIABLE = "UnboundVariable"
    CYCLIC_BINDING = "CyclicBinding"

    NOT_CALLABLE = "NotCallable"


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================

class EXLError(Exception):
    """Base class for all EXL errors"""

    code: ErrorCodes

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured form of the error, for drivers and tests"""
        result = {'code': self.code.value, 'message': self.message}
        result.update(self.details())
        return result


class ParseError(EXLError):
    """Malformed source text

    position is the index of the offending token in the token stream, or the
    number of tokens read so far when the tokenizer itself fails.
    """

    code = ErrorCodes.PARSE_ERROR

    def __init__(self, position: int, unexpected_token: str,
                 expected: Optional[Sequence[str]] = None,
                 offset: Optional[int] = None, message: Optional[str] = None):
        self.position = position
        self.unexpected_token = unexpected_token
        self.expected = list(expected or [])
        self.offset = offset
        if message is None:
            message = f"Unexpected {describe_token(unexpected_token)} at token {position}"
            if self.expected:
                message += f", expected {', '.join(self.expected)}"
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        return {
            'position': self.position,
            'unexpected_token': self.unexpected_token,
            'expected': list(self.expected),
            'offset': self.offset,
        }


class DepthExceeded(EXLError):
    """Recursion guard tripped while parsing or evaluating"""

    code = ErrorCodes.DEPTH_EXCEEDED

    def __init__(self, limit: int, stage: str = "evaluate"):
        self.limit = limit
        self.stage = stage
        super().__init__(f"Maximum {stage} depth of {limit} exceeded")

    def details(self) -> Dict[str, Any]:
        return {'limit': self.limit, 'stage': self.stage}


class EvalError(EXLError):
    """Base class for failures raised while evaluating an expression"""


class TypeMismatch(EvalError):
    """Operand types do not satisfy an operator's signature"""

    code = ErrorCodes.TYPE_MISMATCH

    def __init__(self, operator: str, operand_tags: Tuple[str, ...]):
        self.operator = operator
        self.operand_tags = tuple(operand_tags)
        super().__init__(
            f"Type mismatch: '{operator}' cannot be applied to {', '.join(self.operand_tags)}")

    def details(self) -> Dict[str, Any]:
        return {'operator': self.operator, 'operand_tags': list(self.operand_tags)}


class DivisionByZero(EvalError):
    """Integer division with a zero divisor"""

    code = ErrorCodes.DIVISION_BY_ZERO

    def __init__(self, operator: str = "/"):
        self.operator = operator
        super().__init__("Division by zero")

    def details(self) -> Dict[str, Any]:
        return {'operator': self.operator}


class IntegerOverflow(EvalError):
    """Integer result does not fit in a signed 64-bit value"""

    code = ErrorCodes.INTEGER_OVERFLOW

    def __init__(self, operator: str, operands: Tuple[int, ...]):
        self.operator = operator
        self.operands = tuple(operands)
        rendered = f" {operator} ".join(str(o) for o in self.operands)
        super().__init__(f"Integer overflow: {rendered}")

    def details(self) -> Dict[str, Any]:
        return {'operator': self.operator, 'operands': list(self.operands)}


class UndefinedVariable(EvalError):
    """Variable name is not present in the environment"""

    code = ErrorCodes.UNDEFINED_VARIABLE

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Undefined variable: {name}")

    def details(self) -> Dict[str, Any]:
        return {'name': self.name}


class UnboundVariable(EvalError):
    """Variable is declared but has no bound expression"""

    code = ErrorCodes.UNBOUND_VARIABLE

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unbound variable: {name}")

    def details(self) -> Dict[str, Any]:
        return {'name': self.name}


class CyclicBinding(EvalError):
    """Variable refers back to itself while its binding is being resolved"""

    code = ErrorCodes.CYCLIC_BINDING

    def __init__(self, name: str, chain: Optional[Sequence[str]] = None):
        self.name = name
        self.chain = list(chain or [name])
        super().__init__(f"Cyclic binding: {' -> '.join(self.chain + [name])}")

    def details(self) -> Dict[str, Any]:
        return {'name': self.name, 'chain': list(self.chain)}


class NotCallable(EvalError):
    """Apply target did not evaluate to a function"""

    code = ErrorCodes.NOT_CALLABLE

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Value of type {tag} is not callable")

    def details(self) -> Dict[str, Any]:
        return {'tag': self.tag}


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def describe_token(text: str) -> str:
    """Human readable name for a token in messages"""
    if text == "":
        return "end of input"
    return f"'{text}'"


def get_context_lines(source_text: str, offset: int, context_lines: int = 1) -> str:
    """Get the source lines around a character offset, with a caret marker"""
    lines = source_text.split('\n')
    offset = max(0, min(offset, len(source_text)))
    line_index = source_text.count('\n', 0, offset)
    column = offset - (source_text.rfind('\n', 0, offset) + 1)

    start_line = max(0, line_index - context_lines)
    end_line = min(len(lines), line_index + context_lines + 1)

    context_parts = []
    for i in range(start_line, end_line):
        context_parts.append(f"{i + 1:4d}: {lines[i]}")
        if i == line_index:
            context_parts.append(f"{'':6}{' ' * column}^ Error here")

    return '\n'.join(context_parts)


def generate_suggestions(error: ParseError) -> List[str]:
    """Suggestions for common mistakes"""
    suggestions = []
    got = error.unexpected_token

    if got == "=":
        suggestions.append("Equality is written '==' in EXL")

    if got in ("{", "}", "[", "]"):
        suggestions.append("Use parentheses () to group expressions")

    if "'then'" in error.expected or "'else'" in error.expected:
        suggestions.append("Conditionals need the form: if <cond> then <expr> else <expr>")

    if "'=>'" in error.expected:
        suggestions.append("Functions need the form: func <name> => <expr>")

    return suggestions


def format_parse_error(error: ParseError, source_text: Optional[str] = None) -> str:
    """Format a parse error with source context when available"""
    error_msg = f"Parse error at token {error.position}:\n"
    error_msg += f"  Got: {describe_token(error.unexpected_token)}\n"

    if error.expected:
        error_msg += f"  Expected: {', '.join(error.expected)}\n"

    if source_text is not None and error.offset is not None:
        error_msg += get_context_lines(source_text, error.offset) + "\n"

    suggestions = generate_suggestions(error)
    if suggestions:
        error_msg += "  Suggestions:\n"
        for suggestion in suggestions:
            error_msg += f"    - {suggestion}\n"

    return error_msg


def format_error(error: EXLError, source_text: Optional[str] = None) -> str:
    """Format any EXL error for display at the driver boundary"""
    if isinstance(error, ParseError):
        return format_parse_error(error, source_text)
    if isinstance(error, DepthExceeded):
        return f"Depth error: {error.message}\n"
    return f"Runtime error [{error.code.value}]: {error.message}\n"
