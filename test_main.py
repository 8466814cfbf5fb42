# test_main.py

import io
import logging

import pytest

import main
from calculator import Session
from main import (
    CalculatorSettings, CommandDispatcher, HelpHandler, CLIHandler, build_arg_parser,
)


def run_lines(lines, settings=None):
    """Runs the REPL over the given lines and returns the dispatcher used."""
    inputs = iter(lines)

    def read_line(_prompt):
        try:
            return next(inputs)
        except StopIteration:
            raise EOFError

    cli = CLIHandler(settings, read_line=read_line)
    cli.run()
    return cli.dispatcher


# ---------------------------
# Settings Tests
# ---------------------------

def test_settings_defaults():
    settings = CalculatorSettings()
    assert settings.prompt == "> "
    assert settings.log_level == "WARNING"
    assert settings.history_file is None


def test_settings_log_level_normalized():
    assert CalculatorSettings(log_level=" debug ").log_level == "DEBUG"


def test_settings_log_level_rejected():
    with pytest.raises(ValueError):
        CalculatorSettings(log_level="verbose")


def test_settings_history_file_expanded():
    settings = CalculatorSettings(history_file="~/.smart_calc_history")
    assert not settings.history_file.startswith("~")
    assert CalculatorSettings(history_file="  ").history_file is None


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SMART_CALC_PROMPT", "calc> ")
    monkeypatch.setenv("SMART_CALC_LOG_LEVEL", "info")
    settings = CalculatorSettings.from_env()
    assert settings.prompt == "calc> "
    assert settings.log_level == "INFO"


def test_settings_overrides_beat_env(monkeypatch):
    monkeypatch.setenv("SMART_CALC_LOG_LEVEL", "info")
    settings = CalculatorSettings.from_env(log_level="error", prompt=None)
    assert settings.log_level == "ERROR"
    assert settings.prompt == "> "


# ---------------------------
# HelpHandler Tests
# ---------------------------

def test_help_text_mentions_operators_and_commands():
    text = HelpHandler.help_text()
    assert "Smart Calculator Help" in text
    assert "Integer division" in text
    assert "/exit" in text


# ---------------------------
# CommandDispatcher Tests
# ---------------------------

@pytest.fixture
def dispatcher(session):
    return CommandDispatcher(session)


def test_dispatch_empty_line(dispatcher):
    assert dispatcher.dispatch("") is None
    assert dispatcher.dispatch("   ") is None


def test_dispatch_expression(dispatcher):
    assert dispatcher.dispatch("3 + 4 * 2") == "11"
    assert dispatcher.dispatch("4 - 4") == "0"


def test_dispatch_assignment_and_query(dispatcher):
    assert dispatcher.dispatch("a = 5") is None
    assert dispatcher.dispatch("b = a") is None
    assert dispatcher.dispatch("b") == "5"
    assert dispatcher.dispatch("a * b") == "25"


@pytest.mark.parametrize("line,message", [
    ("(1+2", "Invalid expression"),
    ("1+2)", "Invalid expression"),
    ("2 ^ 3", "Invalid expression"),
    ("5/0", "Division by zero"),
    ("a+1", "Unknown variable"),
    ("a", "Unknown variable"),
    ("a=b=c", "Invalid assignment"),
    ("a = b", "Invalid assignment"),
    ("a = 1a", "Invalid assignment"),
    ("1a=5", "Invalid identifier"),
    ("/go", "Unknown command"),
])
def test_dispatch_error_messages(dispatcher, line, message):
    assert dispatcher.dispatch(line) == message


def test_dispatch_error_keeps_variables(dispatcher):
    dispatcher.dispatch("x = 7")
    assert dispatcher.dispatch("x = y") == "Invalid assignment"
    assert dispatcher.dispatch("x / 0") == "Division by zero"
    assert dispatcher.dispatch("x") == "7"


def test_dispatch_big_integers(dispatcher):
    dispatcher.dispatch("big = 112234567890")
    assert dispatcher.dispatch("big * big") == str(112234567890 ** 2)


def test_dispatch_help(dispatcher):
    assert dispatcher.dispatch("/help") == HelpHandler.help_text()


def test_dispatch_vars(dispatcher):
    assert dispatcher.dispatch("/vars") == "(no variables)"
    dispatcher.dispatch("b = 2")
    dispatcher.dispatch("a = -1")
    assert dispatcher.dispatch("/vars") == "a = -1\nb = 2"


def test_dispatch_exit(dispatcher):
    assert not dispatcher.finished
    assert dispatcher.dispatch("/exit") == "Bye!"
    assert dispatcher.finished


LONG_DIGITS = 5000


def test_dispatch_long_literal(dispatcher):
    literal = "1" * LONG_DIGITS
    assert dispatcher.dispatch(literal + " + 1") == "1" * (LONG_DIGITS - 1) + "2"


def test_dispatch_long_assignment(dispatcher):
    literal = "7" * LONG_DIGITS
    assert dispatcher.dispatch("a = " + literal) is None
    assert dispatcher.dispatch("a") == literal


def test_dispatch_result_longer_than_default_digit_limit(dispatcher):
    dispatcher.dispatch("a = " + "9" * 1000)
    result = dispatcher.dispatch("a*a*a*a*a")
    assert result == str((10 ** 1000 - 1) ** 5)
    assert len(result) == LONG_DIGITS


def test_dispatch_logs_rejected_lines(dispatcher, caplog):
    with caplog.at_level(logging.INFO, logger="main"):
        dispatcher.dispatch("5/0")
    assert "Rejected" in caplog.text


def test_dispatcher_creates_own_session():
    dispatcher = CommandDispatcher()
    assert isinstance(dispatcher.session, Session)


# ---------------------------
# CLIHandler Tests
# ---------------------------

def test_cli_handler_exit(capsys):
    dispatcher = run_lines(["/exit", "1 + 1"])
    out = capsys.readouterr().out
    assert out == "Bye!\n"
    assert dispatcher.finished


def test_cli_handler_session(capsys):
    run_lines(["n = 3", "", "n * (n + 1)", "m", "/exit"])
    out = capsys.readouterr().out
    assert out.splitlines() == ["12", "Unknown variable", "Bye!"]


def test_cli_handler_uses_prompt():
    prompts = []
    inputs = iter(["/exit"])

    def read_line(prompt):
        prompts.append(prompt)
        return next(inputs)

    CLIHandler(CalculatorSettings(prompt="calc> "), read_line=read_line).run()
    assert prompts == ["calc> "]


def test_cli_handler_eof(capsys):
    run_lines([])
    assert capsys.readouterr().out == "\n"


def test_cli_handler_keyboard_interrupt(capsys):
    def raise_keyboard_interrupt(_):
        raise KeyboardInterrupt

    CLIHandler(read_line=raise_keyboard_interrupt).run()
    assert capsys.readouterr().out == "\n"


def test_cli_handler_reads_piped_input_without_prompt(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("3+4*2\na = 5\na\n/exit\n"))
    CLIHandler().run()
    out = capsys.readouterr().out
    assert out == "11\n5\nBye!\n"
    assert "> " not in out


def test_cli_handler_piped_eof(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("1 + 1\n"))
    CLIHandler().run()
    assert capsys.readouterr().out == "2\n\n"


# ---------------------------
# Main Entry Point Tests
# ---------------------------

def test_arg_parser_flags():
    args = build_arg_parser().parse_args(["--prompt", ">> ", "--log-level", "debug"])
    assert args.prompt == ">> "
    assert args.log_level == "debug"
    assert args.history_file is None


def test_main_entry_point(monkeypatch, capsys):
    inputs = iter(["a = 2", "a * 21", "/exit"])
    monkeypatch.setattr("builtins.input", lambda _: next(inputs))
    monkeypatch.setattr("main.CLIHandler._default_reader", lambda self: input)
    assert main.main([]) == 0
    out = capsys.readouterr().out
    assert out.splitlines() == ["42", "Bye!"]


def test_main_piped_session(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("a = 2\na * 21\n/exit\n"))
    assert main.main([]) == 0
    assert capsys.readouterr().out == "42\nBye!\n"


def test_main_invalid_configuration(capsys):
    assert main.main(["--log-level", "loud"]) == 2
    assert "Invalid configuration" in capsys.readouterr().err
