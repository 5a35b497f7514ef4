"""
EXL Programming Language Parser
Tokenizer built on pyparsing plus a recursive descent parser producing the AST

Grammar (lowest to highest precedence):

    expr       := ifExpr | funcExpr | orExpr
    ifExpr     := "if" expr "then" expr "else" expr
    funcExpr   := "func" IDENT "=>" expr
    orExpr     := andExpr ( "||" andExpr )*
    andExpr    := cmpExpr ( "&&" cmpExpr )*
    cmpExpr    := bitOrExpr ( ("<" | "<=" | ">" | ">=" | "==") bitOrExpr )?
    bitOrExpr  := bitAndExpr ( "|" bitAndExpr )*
    bitAndExpr := addExpr ( "&" addExpr )*
    addExpr    := mulExpr ( ("+" | "-") mulExpr )*
    mulExpr    := unary ( ("*" | "/") unary )*
    unary      := "!" unary | atom
    atom       := INT | "T" | "F" | IDENT | applyExpr | "(" expr ")"
    applyExpr  := "apply" "(" expr "," expr ")"

"&&" and "||" are boolean, "&" and "|" are bitwise. Equality is "==".
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional
import logging
import re

from pyparsing import ParserElement, Regex, one_of

from error_handling import DepthExceeded, ParseError
from expressions import (
    Apply, BinOp, Expr, Func, If, Leaf, UnaryOp,
    apply, bin_op, bool_leaf, func, if_expr, int_leaf, unary_op, var
)
from operators import BinaryOperator, UnaryOperator, lookup_binary
from values import INT_MAX, BoolValue, IntValue, VarRef


DEFAULT_PARSE_DEPTH = 100

KEYWORDS = frozenset({"func", "apply", "if", "then", "else"})
BOOLEAN_LITERALS = {"T": True, "F": False}

COMPARISON_SYMBOLS = ("<", "<=", ">", ">=", "==")

IDENTIFIER_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*"

logger = logging.getLogger("EXLParser")


@dataclass(frozen=True)
class Token:
    """EXL token with its place in the token stream and in the source"""
    kind: str
    text: str
    index: int
    offset: int

    def __str__(self) -> str:
        return f"{self.kind}({self.text})"


class EXLTokenizer:
    """EXL tokenizer: pyparsing patterns scanned over the source text"""

    def __init__(self):
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup all token patterns for EXL"""

        # Non-negative integers; negation is written as subtraction
        integer = Regex(r"\d+").set_parse_action(lambda t: ("INT", t[0]))

        # Identifiers, keywords and the boolean literals T and F
        identifier = Regex(IDENTIFIER_PATTERN).set_parse_action(self._classify_word)

        # one_of tries longer symbols first, so "<=" wins over "<" and "&&" over "&"
        self.operators = [op.symbol for op in BinaryOperator] + [op.symbol for op in UnaryOperator] + ["=>"]
        operator = one_of(self.operators).set_parse_action(lambda t: ("OPERATOR", t[0]))

        self.delimiters = ["(", ")", ","]
        delimiter = one_of(self.delimiters).set_parse_action(lambda t: ("DELIMITER", t[0]))

        self.token_pattern: ParserElement = integer | identifier | operator | delimiter
        # Offsets index the source as given, so tabs must not be expanded
        self.token_pattern.parse_with_tabs()

    @staticmethod
    def _classify_word(tokens):
        word = tokens[0]
        if word in BOOLEAN_LITERALS:
            return ("BOOL", word)
        if word in KEYWORDS:
            return ("KEYWORD", word)
        return ("IDENT", word)

    def tokenize(self, text: str) -> List[Token]:
        """
        Split source text into tokens, ending with an END token.

        Raises:
            ParseError on a character that starts no token
        """
        tokens: List[Token] = []
        prev_end = 0

        for matched, start, end in self.token_pattern.scan_string(text):
            self._check_gap(text, prev_end, start, len(tokens))
            kind, value = matched[0]
            tokens.append(Token(kind, value, len(tokens), start))
            prev_end = end

        self._check_gap(text, prev_end, len(text), len(tokens))
        tokens.append(Token("END", "", len(tokens), len(text)))
        return tokens

    @staticmethod
    def _check_gap(text: str, start: int, end: int, position: int) -> None:
        """Anything but whitespace between two matched tokens is an error"""
        for offset in range(start, end):
            if not text[offset].isspace():
                raise ParseError(position, text[offset], ["a token"], offset=offset,
                                 message=f"Unknown character '{text[offset]}' at offset {offset}")


class _ExpressionParser:
    """Recursive descent over one token list, one token of lookahead"""

    def __init__(self, tokens: List[Token], max_depth: int):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth

    # ---- token helpers ----

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != "END":
            self.pos += 1
        return token

    def check(self, *texts: str) -> bool:
        token = self.peek()
        return token.kind not in ("IDENT", "END") and token.text in texts

    def expect(self, text: str) -> Token:
        if not self.check(text):
            self.fail([f"'{text}'"])
        return self.advance()

    def fail(self, expected: List[str], message: Optional[str] = None):
        token = self.peek()
        raise ParseError(token.index, token.text, expected, offset=token.offset, message=message)

    @contextmanager
    def nested(self) -> Iterator[None]:
        self.depth += 1
        if self.depth > self.max_depth:
            raise DepthExceeded(self.max_depth, "parse")
        try:
            yield
        finally:
            self.depth -= 1

    # ---- grammar ----

    def parse_program(self) -> Expr:
        expr = self.parse_expression()
        if self.peek().kind != "END":
            self.fail(["end of input"])
        return expr

    def parse_expression(self) -> Expr:
        with self.nested():
            if self.check("if"):
                return self.parse_if()
            if self.check("func"):
                return self.parse_func()
            return self.parse_or()

    def parse_if(self) -> Expr:
        self.expect("if")
        cond = self.parse_expression()
        self.expect("then")
        then_branch = self.parse_expression()
        self.expect("else")
        else_branch = self.parse_expression()
        return if_expr(cond, then_branch, else_branch)

    def parse_func(self) -> Expr:
        self.expect("func")
        if self.peek().kind != "IDENT":
            self.fail(["parameter name"])
        param = self.advance().text
        self.expect("=>")
        body = self.parse_expression()
        return func(param, body)

    def parse_binary_level(self, operand, symbols) -> Expr:
        """Left-associative chain of one precedence level"""
        left = operand()
        while self.check(*symbols):
            op = lookup_binary(self.advance().text)
            right = operand()
            left = bin_op(left, right, op)
        return left

    def parse_or(self) -> Expr:
        return self.parse_binary_level(self.parse_and, ("||",))

    def parse_and(self) -> Expr:
        return self.parse_binary_level(self.parse_comparison, ("&&",))

    def parse_comparison(self) -> Expr:
        # Comparisons do not chain: "a < b < c" leaves the second "<" unconsumed
        left = self.parse_bit_or()
        if self.check(*COMPARISON_SYMBOLS):
            op = lookup_binary(self.advance().text)
            right = self.parse_bit_or()
            return bin_op(left, right, op)
        return left

    def parse_bit_or(self) -> Expr:
        return self.parse_binary_level(self.parse_bit_and, ("|",))

    def parse_bit_and(self) -> Expr:
        return self.parse_binary_level(self.parse_additive, ("&",))

    def parse_additive(self) -> Expr:
        return self.parse_binary_level(self.parse_multiplicative, ("+", "-"))

    def parse_multiplicative(self) -> Expr:
        return self.parse_binary_level(self.parse_unary, ("*", "/"))

    def parse_unary(self) -> Expr:
        with self.nested():
            if self.check("!"):
                self.advance()
                return unary_op(self.parse_unary(), UnaryOperator.NOT)
            return self.parse_atom()

    def parse_atom(self) -> Expr:
        token = self.peek()

        if token.kind == "INT":
            value = int(token.text)
            if value > INT_MAX:
                self.fail(["integer literal"],
                          message=f"Integer literal {token.text} does not fit in 64 bits")
            self.advance()
            return int_leaf(value)

        if token.kind == "BOOL":
            self.advance()
            return bool_leaf(BOOLEAN_LITERALS[token.text])

        if token.kind == "IDENT":
            self.advance()
            return var(token.text)

        if self.check("apply"):
            return self.parse_apply()

        if self.check("("):
            self.advance()
            expr = self.parse_expression()
            self.expect(")")
            return expr

        self.fail(["integer", "'T'", "'F'", "identifier", "'apply'", "'('", "'!'"])

    def parse_apply(self) -> Expr:
        self.expect("apply")
        self.expect("(")
        function = self.parse_expression()
        self.expect(",")
        arg = self.parse_expression()
        self.expect(")")
        return apply(function, arg)


class EXLParser:
    """Main EXL parser combining tokenizer and grammar"""

    def __init__(self, max_depth: int = DEFAULT_PARSE_DEPTH, debug: bool = False):
        self.max_depth = max_depth
        self.debug = debug
        self.tokenizer = EXLTokenizer()

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize EXL source code"""
        return self.tokenizer.tokenize(text)

    def parse_string(self, text: str) -> Expr:
        """Parse EXL source code from a string"""
        tokens = self.tokenize(text)
        if self.debug:
            logger.debug("Tokens: %s", " ".join(str(t) for t in tokens))
        try:
            expr = _ExpressionParser(tokens, self.max_depth).parse_program()
        except RecursionError:
            raise DepthExceeded(self.max_depth, "parse") from None
        if self.debug:
            logger.debug("Parsed %d tokens into %s", len(tokens) - 1, type(expr).__name__)
        return expr

    def parse_file(self, filepath: str) -> Expr:
        """Parse an EXL source file"""
        with open(filepath, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content)


# Factory functions for creating parsers
def create_parser(max_depth: int = DEFAULT_PARSE_DEPTH, debug: bool = False) -> EXLParser:
    """Create an EXL parser"""
    return EXLParser(max_depth=max_depth, debug=debug)


def tokenize(source: str) -> List[Token]:
    """Tokenize source text with a fresh tokenizer"""
    return EXLTokenizer().tokenize(source)


def parse(source: str) -> Expr:
    """
    Parse source text into an expression tree.

    Raises:
        ParseError for malformed source
        DepthExceeded for nesting deeper than DEFAULT_PARSE_DEPTH
    """
    return create_parser().parse_string(source)


# ============================================================================
# CANONICAL RENDERING
# ============================================================================

def render_name(name: str) -> str:
    """Variable or parameter name as source text; the tokenizer must read it back as IDENT"""
    if name in KEYWORDS or name in BOOLEAN_LITERALS:
        raise ValueError(f"Variable name {name!r} is reserved")
    if not re.fullmatch(IDENTIFIER_PATTERN, name):
        raise ValueError(f"Variable name {name!r} is not a valid identifier")
    return name


def render(node: Expr) -> str:
    """
    Print an expression as fully parenthesized, whitespace separated source.

    parse(render(e)) == e for trees built from non-negative integer literals,
    booleans and variables. A negative literal renders as (0 - n).
    """
    if isinstance(node, Leaf):
        value = node.value
        if isinstance(value, BoolValue):
            return "T" if value.value else "F"
        if isinstance(value, IntValue):
            if value.value < 0:
                return f"( 0 - {-value.value} )"
            return str(value.value)
        if isinstance(value, VarRef):
            return render_name(value.name)
        raise TypeError(f"Cannot render leaf value of type {value.tag}")
    if isinstance(node, UnaryOp):
        return f"( {node.operator.symbol} {render(node.operand)} )"
    if isinstance(node, BinOp):
        return f"( {render(node.left)} {node.operator.symbol} {render(node.right)} )"
    if isinstance(node, If):
        return (f"( if {render(node.cond)} then {render(node.then_branch)} "
                f"else {render(node.else_branch)} )")
    if isinstance(node, Func):
        return f"( func {render_name(node.param)} => {render(node.body)} )"
    if isinstance(node, Apply):
        return f"apply ( {render(node.func)} , {render(node.arg)} )"
    raise TypeError(f"Unknown expression node: {type(node).__name__}")
