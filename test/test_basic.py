"""
Basic parsing tests for EXL
Tokenizer, grammar, error reporting and canonical rendering
"""

import pytest

from error_handling import DepthExceeded, ParseError
from expressions import (
  Leaf, apply, bin_op, bool_leaf, func, if_expr, int_leaf, unary_op, var
)
from operators import BinaryOperator, UnaryOperator
from parsing import parse, render, tokenize
from values import BoolValue, IntValue


class TestTokenizer:
  """Test splitting source into tokens"""

  def test_whitespace_separated_tokens(self):
    tokens = tokenize("apply ( f , 42 )")
    assert [t.text for t in tokens] == ["apply", "(", "f", ",", "42", ")", ""]
    assert [t.kind for t in tokens] == [
        "KEYWORD", "DELIMITER", "IDENT", "DELIMITER", "INT", "DELIMITER", "END"]

  def test_adjacent_tokens_are_split(self):
    tokens = tokenize("(a<=b)")
    assert [t.text for t in tokens[:-1]] == ["(", "a", "<=", "b", ")"]

  def test_longest_operator_wins(self):
    tokens = tokenize("x && y & z || w | v")
    operators = [t.text for t in tokens if t.kind == "OPERATOR"]
    assert operators == ["&&", "&", "||", "|"]

  def test_boolean_literals_and_keywords(self):
    tokens = tokenize("if T then F else True")
    assert [t.kind for t in tokens[:-1]] == ["KEYWORD", "BOOL", "KEYWORD", "BOOL", "KEYWORD", "IDENT"]

  def test_token_index_and_offset(self):
    tokens = tokenize("1  +\n x")
    assert [t.index for t in tokens] == [0, 1, 2, 3]
    assert [t.offset for t in tokens] == [0, 3, 6, 7]

  def test_tabs_are_whitespace(self):
    tokens = tokenize("a\tb")
    assert [t.text for t in tokens] == ["a", "b", ""]
    assert [t.offset for t in tokens] == [0, 2, 3]

  def test_mixed_whitespace_offsets(self):
    tokens = tokenize("\t1 \t+\n\t\tx")
    assert [t.text for t in tokens[:-1]] == ["1", "+", "x"]
    assert [t.offset for t in tokens] == [1, 4, 8, 9]

  def test_tab_indented_source_parses(self):
    assert parse("\t42") == int_leaf(42)
    assert parse("1\t+ 2") == bin_op(int_leaf(1), int_leaf(2), "+")

  def test_error_offset_after_tab(self):
    with pytest.raises(ParseError) as exc_info:
      tokenize("\t1 $")
    assert exc_info.value.offset == 3

  def test_unknown_character(self):
    with pytest.raises(ParseError) as exc_info:
      tokenize("1 $ 2")
    assert exc_info.value.unexpected_token == "$"
    assert exc_info.value.position == 1
    assert exc_info.value.offset == 2

  def test_single_equals_is_not_a_token(self):
    with pytest.raises(ParseError) as exc_info:
      tokenize("1 = 2")
    assert exc_info.value.unexpected_token == "="


class TestLiterals:
  """Test parsing of literal grammar examples"""

  def test_true(self):
    assert parse("T") == Leaf(BoolValue(True))

  def test_false(self):
    assert parse("F") == Leaf(BoolValue(False))

  def test_integer(self):
    assert parse("42") == Leaf(IntValue(42))

  def test_identifier_is_variable_reference(self):
    assert parse("int_var") == var("int_var")

  def test_largest_integer(self):
    assert parse("9223372036854775807") == int_leaf(2 ** 63 - 1)

  def test_integer_out_of_range(self):
    with pytest.raises(ParseError) as exc_info:
      parse("9223372036854775808")
    assert "64 bits" in str(exc_info.value)


class TestPrecedence:
  """Test operator precedence and associativity"""

  def test_multiplication_binds_tighter(self):
    expected = bin_op(int_leaf(1), bin_op(int_leaf(2), int_leaf(3), BinaryOperator.MUL), BinaryOperator.ADD)
    assert parse("1 + 2 * 3") == expected

  def test_subtraction_is_left_associative(self):
    expected = bin_op(bin_op(int_leaf(1), int_leaf(2), "-"), int_leaf(3), "-")
    assert parse("1 - 2 - 3") == expected

  def test_parentheses_override_precedence(self):
    expected = bin_op(bin_op(int_leaf(1), int_leaf(2), "+"), int_leaf(3), "*")
    assert parse("(1 + 2) * 3") == expected

  def test_bitwise_binds_tighter_than_comparison(self):
    expected = bin_op(bin_op(var("x"), int_leaf(1), "&"), int_leaf(1), "==")
    assert parse("x & 1 == 1") == expected

  def test_bitwise_and_binds_tighter_than_or(self):
    expected = bin_op(var("a"), bin_op(var("b"), var("c"), "&"), "|")
    assert parse("a | b & c") == expected

  def test_boolean_and_binds_tighter_than_or(self):
    expected = bin_op(bin_op(bool_leaf(True), bool_leaf(False), "&&"), bool_leaf(True), "||")
    assert parse("T && F || T") == expected

  def test_not_applies_to_atom(self):
    expected = bin_op(unary_op(bool_leaf(True), UnaryOperator.NOT), bool_leaf(False), "&&")
    assert parse("! T && F") == expected

  def test_comparison_does_not_chain(self):
    with pytest.raises(ParseError) as exc_info:
      parse("1 < 2 < 3")
    assert exc_info.value.position == 3
    assert exc_info.value.expected == ["end of input"]


class TestCompoundExpressions:
  """Test conditionals, functions and application"""

  def test_if_expression(self):
    expected = if_expr(bin_op(var("x"), int_leaf(1), "<"), int_leaf(0), var("x"))
    assert parse("if x < 1 then 0 else x") == expected

  def test_func_expression(self):
    assert parse("func x => x + 1") == func("x", bin_op(var("x"), int_leaf(1), "+"))

  def test_curried_func(self):
    expected = func("x", func("y", bin_op(var("x"), var("y"), "-")))
    assert parse("func x => func y => x - y") == expected

  def test_apply_expression(self):
    expected = apply(func("x", bin_op(var("x"), int_leaf(2), "*")), int_leaf(21))
    assert parse("apply(func x => x * 2, 21)") == expected

  def test_apply_is_an_atom(self):
    expected = bin_op(apply(var("f"), int_leaf(1)), int_leaf(2), "+")
    assert parse("apply(f, 1) + 2") == expected

  def test_parse_file(self, parser, tmp_path):
    source = tmp_path / "double.exl"
    source.write_text("apply(\n  func n => n * 2,\n  21\n)\n")
    expected = apply(func("n", bin_op(var("n"), int_leaf(2), "*")), int_leaf(21))
    assert parser.parse_file(str(source)) == expected

  def test_if_inside_parentheses(self):
    expected = bin_op(int_leaf(1), if_expr(bool_leaf(True), int_leaf(2), int_leaf(3)), "+")
    assert parse("1 + (if T then 2 else 3)") == expected


class TestParseErrors:
  """Test structured parse failures"""

  def test_missing_operand(self):
    with pytest.raises(ParseError) as exc_info:
      parse("1 +")
    error = exc_info.value
    assert error.position == 2
    assert error.unexpected_token == ""
    assert "integer" in error.expected

  def test_unterminated_parenthesis(self):
    with pytest.raises(ParseError) as exc_info:
      parse("(1 + 2")
    assert exc_info.value.position == 4
    assert exc_info.value.expected == ["')'"]

  def test_trailing_tokens(self):
    with pytest.raises(ParseError) as exc_info:
      parse("1 2")
    assert exc_info.value.position == 1
    assert exc_info.value.unexpected_token == "2"

  def test_missing_else(self):
    with pytest.raises(ParseError) as exc_info:
      parse("if T then 1")
    assert exc_info.value.expected == ["'else'"]

  def test_func_requires_parameter_name(self):
    with pytest.raises(ParseError) as exc_info:
      parse("func 1 => 2")
    assert exc_info.value.expected == ["parameter name"]

  def test_unknown_leading_token(self):
    with pytest.raises(ParseError) as exc_info:
      parse(") 1")
    assert exc_info.value.position == 0
    assert exc_info.value.unexpected_token == ")"

  def test_empty_source(self):
    with pytest.raises(ParseError) as exc_info:
      parse("   ")
    assert exc_info.value.unexpected_token == ""

  def test_error_to_dict(self):
    with pytest.raises(ParseError) as exc_info:
      parse("apply(f 1)")
    data = exc_info.value.to_dict()
    assert data['code'] == "ParseError"
    assert data['position'] == 3
    assert data['expected'] == ["','"]

  def test_deep_nesting(self):
    source = "(" * 200 + "1" + ")" * 200
    with pytest.raises(DepthExceeded) as exc_info:
      parse(source)
    assert exc_info.value.stage == "parse"

  def test_moderate_nesting_parses(self):
    assert parse("(" * 20 + "1" + ")" * 20) == int_leaf(1)


class TestRender:
  """Test the canonical printer"""

  @pytest.mark.parametrize("tree", [
      bin_op(int_leaf(42), int_leaf(42), "+"),
      bin_op(bin_op(var("a"), var("b"), "<"), bool_leaf(False), "=="),
      unary_op(bin_op(bool_leaf(True), var("flag"), "||"), "!"),
      if_expr(var("c"), bin_op(int_leaf(1), int_leaf(0), "/"), int_leaf(7)),
      apply(func("n", bin_op(var("n"), int_leaf(3), "&")), int_leaf(12)),
  ])
  def test_round_trip(self, tree):
    assert parse(render(tree)) == tree

  def test_render_format(self):
    tree = if_expr(bool_leaf(True), int_leaf(1), unary_op(bool_leaf(False), "!"))
    assert render(tree) == "( if T then 1 else ( ! F ) )"

  def test_negative_literal(self):
    assert render(int_leaf(-5)) == "( 0 - 5 )"

  def test_reserved_variable_name(self):
    with pytest.raises(ValueError):
      render(var("then"))
    with pytest.raises(ValueError):
      render(func("T", int_leaf(1)))

  @pytest.mark.parametrize("name", ["a b", "1x", "x-y", "é"])
  def test_name_that_is_not_an_identifier(self, name):
    with pytest.raises(ValueError):
      render(var(name))
    with pytest.raises(ValueError):
      render(func(name, int_leaf(0)))
