# main.py

"""
Overview of Implementation Approach
-----------------------------------
Command-line front end of the smart calculator. Each input line is classified by the
CommandDispatcher as a command (`/help`, `/vars`, `/exit`), an assignment (`a = 5`), a variable
query (`a`) or an expression (`a * (2 + 3)`) and handed to a calculator.Session, which owns the
variables for the lifetime of the REPL. Errors raised by the core are rendered as one-line messages
and never end the session.

The CLI reads lines with prompt_toolkit when attached to a terminal (history and line editing),
and with a prompt-less builtin input() otherwise, so the calculator can also be fed from a pipe.
Configuration comes from the environment (optionally a .env file) and command-line flags, and is
validated with pydantic.

Modules, Classes, and Functions Implemented
-------------------------------------------
- Configuration: CalculatorSettings, configure_logging
- HelpHandler: HelpHandler
- CommandDispatcher: CommandDispatcher
- CLIHandler: CLIHandler (main REPL loop)
- Main entry point: build_arg_parser, main()
"""

import argparse
import logging
import os
import sys
from typing import Callable, List, Optional

from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, InMemoryHistory
from pydantic import BaseModel, field_validator

from calculator import IDENTIFIER_RE, CalculatorError, Session

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ENV_PREFIX = "SMART_CALC_"


# ---------------------------
# Configuration
# ---------------------------

class CalculatorSettings(BaseModel):
    """Runtime settings for the calculator REPL."""
    prompt: str = "> "
    log_level: str = "WARNING"
    history_file: Optional[str] = None

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Unknown log level: {v}')
        return level

    @field_validator('history_file')
    @classmethod
    def history_file_expanded(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return os.path.expanduser(v.strip())

    @classmethod
    def from_env(cls, **overrides) -> "CalculatorSettings":
        """
        Builds settings from SMART_CALC_* environment variables, loading a .env file first.
        Keyword overrides whose value is None are ignored.
        """
        load_dotenv()
        values = {}
        for field in ('prompt', 'log_level', 'history_file'):
            env_value = os.getenv(ENV_PREFIX + field.upper())
            if env_value is not None:
                values[field] = env_value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def configure_logging(settings: CalculatorSettings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, stream=sys.stderr)


# ---------------------------
# Help Handler
# ---------------------------

class HelpHandler:
    """
    Usage instructions for the calculator.
    """
    HELP_TEXT = """
Smart Calculator Help
---------------------
Supported operations (integers of any size):
  - Addition:           1 + 2
  - Subtraction:        3 - 4
  - Multiplication:     5 * 6
  - Integer division:   7 / 2   (truncates toward zero)
  - Parentheses:        (1 + 2) * 3
  - Repeated signs:     5 --- 2 is 5 - 2, 5 -- 2 is 5 + 2

Variables (names are letters only, case-sensitive):
  - Assign:             a = 5, b = a
  - Query:              a
  - Use in expressions: a * (b + 1)

Commands:
  /help  : Show this help message
  /vars  : List assigned variables
  /exit  : Exit the calculator
"""

    @staticmethod
    def help_text() -> str:
        return HelpHandler.HELP_TEXT.strip()


# ---------------------------
# Command Dispatcher
# ---------------------------

class CommandDispatcher:
    """
    Routes a single input line to a command, an assignment, a variable query or an expression,
    and returns the text to print (or None when there is nothing to print).
    """
    COMMAND_PREFIX = '/'

    def __init__(self, session: Optional[Session] = None):
        self.session = session if session is not None else Session()
        self.finished = False

    def dispatch(self, line: str) -> Optional[str]:
        line = line.strip()
        if not line:
            return None
        if line.startswith(self.COMMAND_PREFIX):
            return self._run_command(line[len(self.COMMAND_PREFIX):])

        try:
            if '=' in line:
                self.session.execute_assignment(line)
                return None
            if IDENTIFIER_RE.fullmatch(line):
                return str(self.session.query(line))
            return str(self.session.evaluate(line))
        except CalculatorError as e:
            logger.info(f"Rejected {line!r}: {e.detail}")
            return e.label

    def _run_command(self, command: str) -> str:
        if command == 'exit':
            self.finished = True
            return "Bye!"
        if command == 'help':
            return HelpHandler.help_text()
        if command == 'vars':
            if not self.session.env:
                return "(no variables)"
            return "\n".join(f"{name} = {value}" for name, value in self.session.env.items())
        logger.info(f"Unknown command: /{command}")
        return "Unknown command"


# ---------------------------
# CLI Handler (REPL)
# ---------------------------

class CLIHandler:
    """
    Handles the REPL loop and user interaction.
    """

    def __init__(self, settings: Optional[CalculatorSettings] = None,
                 read_line: Optional[Callable[[str], str]] = None):
        self.settings = settings if settings is not None else CalculatorSettings()
        self.dispatcher = CommandDispatcher()
        self.read_line = read_line if read_line is not None else self._default_reader()

    def _default_reader(self) -> Callable[[str], str]:
        """
        Uses a prompt_toolkit session on a terminal and a prompt-less input() for piped input.
        """
        if not sys.stdin.isatty():
            # No prompt on piped input, only results reach stdout.
            return lambda _prompt: input()
        if self.settings.history_file:
            history = FileHistory(self.settings.history_file)
        else:
            history = InMemoryHistory()
        session = PromptSession(history=history)
        return session.prompt

    def run(self) -> None:
        """
        Main REPL loop. Stops on /exit, end of input or Ctrl-C.
        """
        while not self.dispatcher.finished:
            try:
                line = self.read_line(self.settings.prompt)
            except (EOFError, KeyboardInterrupt):
                print()  # Newline for clean exit
                break

            output = self.dispatcher.dispatch(line)
            if output is not None:
                print(output)


# ---------------------------
# Main Entry Point
# ---------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive integer calculator with variables.")
    parser.add_argument(
        "--prompt",
        type=str,
        help="Prompt shown before each input line (default: '> ').",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: WARNING).",
    )
    parser.add_argument(
        "--history-file",
        type=str,
        help="File used to keep input history between runs (default: in-memory only).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the calculator application.
    """
    args = build_arg_parser().parse_args(argv)
    try:
        settings = CalculatorSettings.from_env(
            prompt=args.prompt,
            log_level=args.log_level,
            history_file=args.history_file,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(settings)
    logger.debug(f"Starting calculator with {settings!r}")

    cli = CLIHandler(settings)
    cli.run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
