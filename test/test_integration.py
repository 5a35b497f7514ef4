"""
Integration tests for the EXL command line driver
Runs main() end to end on expressions, script files and interactive input
"""

import pytest

from main import build_environment, main, split_definition
from error_handling import ParseError
from values import IntValue


def feed_input(monkeypatch, lines):
  """Replace input() with a fixed sequence of lines"""
  pending = iter(lines)

  def fake_input(prompt=""):
    try:
      return next(pending)
    except StopIteration:
      raise EOFError from None

  monkeypatch.setattr("builtins.input", fake_input)


class TestExpressionMode:
  """Test evaluating -e expressions"""

  def test_prints_result(self, capsys):
    assert main(["-e", "1 + 2 * 3"]) == 0
    assert capsys.readouterr().out == "7\n"

  def test_boolean_result(self, capsys):
    assert main(["-e", "3 < 4 && !F"]) == 0
    assert capsys.readouterr().out == "T\n"

  def test_closure_result(self, capsys):
    assert main(["-e", "func x => x"]) == 0
    assert capsys.readouterr().out == "<closure x>\n"

  def test_define(self, capsys):
    assert main(["-e", "x + y", "--define", "x=40", "--define", "y = 1 + 1"]) == 0
    assert capsys.readouterr().out == "42\n"

  def test_define_function(self, capsys):
    assert main(["-e", "apply(double, 21)", "--define", "double=func n => n * 2"]) == 0
    assert capsys.readouterr().out == "42\n"

  def test_declared_variable_is_unbound(self, capsys):
    assert main(["-e", "x", "--declare", "x"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Runtime error [UnboundVariable]" in captured.err

  def test_undefined_variable(self, capsys):
    assert main(["-e", "y"]) == 1
    assert "Undefined variable: y" in capsys.readouterr().err

  def test_parse_error_shows_context(self, capsys):
    assert main(["-e", "1 +"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("Parse error at token 2:")
    assert "^ Error here" in err

  def test_single_equals_suggestion(self, capsys):
    assert main(["-e", "1 = 1"]) == 1
    assert "'=='" in capsys.readouterr().err

  def test_depth_limit(self, capsys):
    assert main(["-e", "(1 + 2) + 3", "--max-depth", "2"]) == 1
    assert capsys.readouterr().err.startswith("Depth error:")

  def test_show_tree(self, capsys):
    assert main(["--parse", "-e", "1 + 2"]) == 0
    assert capsys.readouterr().out == "BinOp +\n  Leaf Int(1)\n  Leaf Int(2)\n"

  def test_show_tree_does_not_evaluate(self, capsys):
    assert main(["--parse", "-e", "1 / 0"]) == 0
    assert "BinOp /" in capsys.readouterr().out


class TestScriptMode:
  """Test running script files"""

  def test_runs_script(self, tmp_path, capsys):
    script = tmp_path / "fact.exl"
    script.write_text("if n == 0\nthen 1\nelse n * 10\n")
    assert main([str(script), "--define", "n=4"]) == 0
    assert capsys.readouterr().out == "40\n"

  def test_missing_script(self, tmp_path, capsys):
    assert main([str(tmp_path / "missing.exl")]) == 1
    assert "not found" in capsys.readouterr().err

  def test_script_error_points_at_line(self, tmp_path, capsys):
    script = tmp_path / "bad.exl"
    script.write_text("1 +\n(2 *)\n")
    assert main([str(script)]) == 1
    err = capsys.readouterr().err
    assert "   2: (2 *)" in err


class TestArguments:
  """Test argument validation"""

  def test_no_arguments_prints_help(self, capsys):
    assert main([]) == 2
    assert "usage:" in capsys.readouterr().out

  def test_bad_define(self):
    with pytest.raises(SystemExit) as exc_info:
      main(["-e", "1", "--define", "=1"])
    assert exc_info.value.code == 2

  def test_define_with_parse_error(self, capsys):
    assert main(["-e", "1", "--define", "x=1 +"]) == 1
    assert "Error in --define" in capsys.readouterr().err

  def test_invalid_max_depth(self):
    with pytest.raises(SystemExit) as exc_info:
      main(["-e", "1", "--max-depth", "0"])
    assert exc_info.value.code == 2

  def test_expression_and_script_are_exclusive(self, tmp_path):
    with pytest.raises(SystemExit):
      main([str(tmp_path / "a.exl"), "-e", "1"])

  def test_split_definition(self):
    assert split_definition("x = 1 + 1") == ("x", " 1 + 1")
    with pytest.raises(ValueError):
      split_definition("x")
    with pytest.raises(ValueError):
      split_definition("x=  ")

  def test_build_environment(self):
    env = build_environment(["a=1"], ["b"])
    assert env.lookup("a").value == IntValue(1)
    assert env.find("b")[1] is None
    with pytest.raises(ParseError):
      build_environment(["a=)"], [])


class TestInteractiveMode:
  """Test the read-evaluate-print loop"""

  def test_session(self, monkeypatch, capsys):
    feed_input(monkeypatch, [
        ":let x = 20",
        "x + 1",
        "",
        ":unbind x",
        "x",
        ":vars",
        ":bogus",
        ":quit",
    ])
    assert main(["-i"]) == 0
    out = capsys.readouterr().out
    assert "Bound: x" in out
    assert "=> 21" in out
    assert "Runtime error [UnboundVariable]" in out
    assert "  x = <unbound>" in out
    assert "Unknown command ':bogus'" in out
    assert out.rstrip().endswith("Goodbye!")

  def test_errors_do_not_end_session(self, monkeypatch, capsys):
    feed_input(monkeypatch, ["1 / 0", ":let = 3", "T || F"])
    assert main(["-i"]) == 0
    out = capsys.readouterr().out
    assert "Runtime error [DivisionByZero]" in out
    assert "Error: Expected NAME=EXPR" in out
    assert "=> T" in out

  def test_end_of_input_exits(self, monkeypatch, capsys):
    feed_input(monkeypatch, [])
    assert main(["-i", "--define", "z=1"]) == 0
    assert "Goodbye!" in capsys.readouterr().out
