"""
EXL Expression Language - Main Entry Point
Run expressions from files, the command line or an interactive session
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional, Tuple

# Readline support for history in interactive mode
try:
  import readline  # noqa: F401
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from environment import Environment
from error_handling import EXLError, format_error
from expressions import pretty_print_ast
from interpreter import DEFAULT_MAX_DEPTH, Program
from parsing import create_parser
from values import format_value


logger = logging.getLogger("EXLMain")


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='exl',
      description='EXL - a small typed expression language',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.exl                       # Run an EXL script
  %(prog)s -e "1 + 2 * 3"                   # Evaluate an expression
  %(prog)s -e "x + 1" --define x=41         # Bind a variable first
  %(prog)s --parse -e "if T then 1 else 2"  # Show the parsed tree
  %(prog)s -i                               # Interactive mode
        """
  )

  source = parser.add_mutually_exclusive_group()
  source.add_argument(
      'script',
      nargs='?',
      help='EXL script file to execute'
  )
  source.add_argument(
      '-e', '--expression',
      help='Evaluate an expression given on the command line'
  )
  source.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--define',
      action='append',
      default=[],
      metavar='NAME=EXPR',
      help='Bind a variable to an expression (repeatable)'
  )

  parser.add_argument(
      '--declare',
      action='append',
      default=[],
      metavar='NAME',
      help='Declare a variable without a value (repeatable)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse and show the expression tree instead of running it'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_DEPTH,
      help=f'Maximum evaluation depth (default {DEFAULT_MAX_DEPTH})'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug logging for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version='EXL v0.1.0'
  )

  return parser


def configure_logging(debug: bool) -> None:
  """Send log records to stderr; DEBUG level when --debug is given"""
  logging.basicConfig(
      level=logging.DEBUG if debug else logging.WARNING,
      format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
      stream=sys.stderr
  )


def split_definition(text: str) -> Tuple[str, str]:
  """Split NAME=EXPR, rejecting a missing name or expression"""
  name, sep, expr = text.partition('=')
  name = name.strip()
  if not sep or not name or not expr.strip():
    raise ValueError(f"Expected NAME=EXPR, got {text!r}")
  return name, expr


def build_environment(definitions: List[str], declarations: List[str], debug: bool = False) -> Environment:
  """Environment holding --define and --declare variables"""
  parser = create_parser(debug=debug)
  env = Environment()
  for name in declarations:
    env.bind(name, None)
  for definition in definitions:
    name, source = split_definition(definition)
    env.bind(name, parser.parse_string(source))
  return env


def run_source(source: str, env: Environment, max_depth: int = DEFAULT_MAX_DEPTH,
               show_tree: bool = False, debug: bool = False) -> int:
  """Parse and run one source text, printing the result; returns an exit status"""
  try:
    root = create_parser(debug=debug).parse_string(source)
    if show_tree:
      print(pretty_print_ast(root), end='')
      return 0
    result = Program(root, env, max_depth=max_depth, debug=debug).run()
  except EXLError as e:
    print(format_error(e, source), end='', file=sys.stderr)
    return 1

  print(format_value(result))
  return 0


def run_script_file(script_path: str, env: Environment, max_depth: int = DEFAULT_MAX_DEPTH,
                    show_tree: bool = False, debug: bool = False) -> int:
  """Run an EXL script file"""
  try:
    source = Path(script_path).read_text(encoding='utf-8')
  except FileNotFoundError:
    print(f"Error: Script file '{script_path}' not found", file=sys.stderr)
    return 1
  except PermissionError:
    print(f"Error: Permission denied reading '{script_path}'", file=sys.stderr)
    return 1
  except UnicodeDecodeError as e:
    print(f"Error: Cannot decode file '{script_path}': {e}", file=sys.stderr)
    return 1

  logger.debug("Running %s", script_path)
  return run_source(source, env, max_depth, show_tree, debug)


def handle_command(line: str, env: Environment, debug: bool = False) -> bool:
  """
  Run a ':' command in interactive mode.

  Returns:
    False when the session should end
  """
  command, _, rest = line[1:].partition(' ')
  rest = rest.strip()

  if command in ('quit', 'q'):
    return False

  if command == 'let':
    name, source = split_definition(rest)
    env.bind(name, create_parser(debug=debug).parse_string(source))
    print(f"Bound: {name}")
  elif command == 'unbind':
    env.unbind(rest)
    print(f"Unbound: {rest}")
  elif command == 'vars':
    for name, expr in sorted(env.bindings.items()):
      print(f"  {name} = {'<unbound>' if expr is None else 'bound'}")
  else:
    print(f"Unknown command ':{command}' (try :let, :unbind, :vars, :quit)")
  return True


def run_interactive_mode(env: Environment, max_depth: int = DEFAULT_MAX_DEPTH, debug: bool = False) -> int:
  """Read-evaluate-print loop sharing one environment across lines"""
  print("EXL interactive mode. Commands: :let NAME = EXPR, :unbind NAME, :vars, :quit")

  while True:
    try:
      line = input("exl> ").strip()
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      return 0

    if not line:
      continue

    if line.startswith(':'):
      try:
        if not handle_command(line, env, debug):
          print("Goodbye!")
          return 0
      except ValueError as e:
        print(f"Error: {e}")
      except EXLError as e:
        print(format_error(e, line.partition('=')[2]), end='')
      continue

    try:
      root = create_parser(debug=debug).parse_string(line)
      result = Program(root, env, max_depth=max_depth, debug=debug).run()
      print(f"=> {format_value(result)}")
    except EXLError as e:
      print(format_error(e, line), end='')


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for EXL"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  configure_logging(args.debug)

  if args.max_depth < 1:
    arg_parser.error("--max-depth must be positive")

  try:
    env = build_environment(args.define, args.declare, args.debug)
  except ValueError as e:
    arg_parser.error(str(e))
  except EXLError as e:
    print(f"Error in --define: {e}", file=sys.stderr)
    return 1

  if args.expression is not None:
    return run_source(args.expression, env, args.max_depth, args.parse, args.debug)

  if args.script:
    return run_script_file(args.script, env, args.max_depth, args.parse, args.debug)

  if args.interactive:
    return run_interactive_mode(env, args.max_depth, args.debug)

  arg_parser.print_help()
  return 2


if __name__ == "__main__":
  sys.exit(main())
