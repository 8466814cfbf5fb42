# calculator.py

"""
Overview of Implementation Approach
-----------------------------------
Expression core of the smart calculator. Input lines are evaluated over Python's arbitrary-precision
integers in three stages: the tokenizer turns a line into typed tokens, the shunting-yard converter
reorders them into postfix (Reverse Polish) order, and the postfix evaluator reduces them on a stack,
reading variables from a VariableEnvironment. Assignment statements (`name = value`) are parsed here
as well, so the REPL in main.py only has to route lines and render results.

Every failure is reported by raising a CalculatorError subclass; no stage returns a placeholder value.

Modules, Classes, and Functions Implemented
-------------------------------------------
- Error classes: CalculatorError, InvalidExpressionError, UnknownVariableError, DivisionByZeroError,
  InvalidAssignmentError, InvalidIdentifierError
- Tokenizer: TokenType, Token, fold_signs, tokenize
- Postfix Converter: precedence, to_postfix
- Postfix Evaluator: evaluate
- Variables: VariableEnvironment
- Assignment: validate_identifier, parse_assignment, resolve_value, execute_assignment
- Session: Session
"""

import logging
import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r'[a-zA-Z]+')
INTEGER_LITERAL_RE = re.compile(r'[+-]?[0-9]+')

OPERATORS = ('+', '-', '*', '/')

# Results and literals may run to any number of digits.
if hasattr(sys, "set_int_max_str_digits"):
    sys.set_int_max_str_digits(0)


# ---------------------------
# Error Classes
# ---------------------------

class CalculatorError(Exception):
    """Base class for calculator errors.

    `label` is the fixed message shown to the user; the exception text carries the detail.
    """
    label = "Error"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.label)
        self.detail = detail or self.label


class InvalidExpressionError(CalculatorError):
    """Raised for malformed tokens, unbalanced parentheses or wrong operand counts."""
    label = "Invalid expression"


class UnknownVariableError(CalculatorError):
    """Raised when an expression or query references an unassigned variable."""
    label = "Unknown variable"

    def __init__(self, name: str):
        super().__init__(f"Unknown variable '{name}'")
        self.name = name


class DivisionByZeroError(CalculatorError):
    label = "Division by zero"


class InvalidAssignmentError(CalculatorError):
    """Raised when an assignment statement is malformed or its value cannot be resolved."""
    label = "Invalid assignment"


class InvalidIdentifierError(CalculatorError):
    """Raised when the left-hand side of an assignment is not purely alphabetic."""
    label = "Invalid identifier"


# ---------------------------
# Tokenizer
# ---------------------------

class TokenType(Enum):
    NUMBER = "number"
    IDENTIFIER = "identifier"
    OPERATOR = "operator"
    LPAREN = "lparen"
    RPAREN = "rparen"


@dataclass(frozen=True)
class Token:
    """A lexical token. `value` is an int for numbers and the source text otherwise."""
    type: TokenType
    value: Union[int, str]
    pos: int = 0

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, pos={self.pos})"


def fold_signs(expression: str) -> str:
    """
    Collapses every run of consecutive '+'/'-' characters into a single sign.

    An odd number of minus signs reduces to '-', an even number (plus signs included) to '+'.
    '*' and '/' are left untouched.
    """
    folded: List[str] = []
    minus_count = 0
    in_run = False
    for ch in expression:
        if ch in '+-':
            in_run = True
            if ch == '-':
                minus_count += 1
            continue
        if in_run:
            folded.append('-' if minus_count % 2 else '+')
            in_run = False
            minus_count = 0
        folded.append(ch)
    if in_run:
        folded.append('-' if minus_count % 2 else '+')
    return ''.join(folded)


def _scan_run(text: str, start: int, predicate) -> int:
    end = start
    while end < len(text) and predicate(text[end]):
        end += 1
    return end


def _is_ascii_letter(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_ascii_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def tokenize(expression: str) -> List[Token]:
    """
    Converts an expression string into a list of tokens.

    Whitespace is removed and sign runs are folded first. A '-' in unary position (start of the
    expression, after '(' or after another operator) that directly precedes digits becomes part
    of a negative number literal.

    Raises:
        InvalidExpressionError: on an empty expression or any character that is not a letter,
            digit, operator or parenthesis.
    """
    text = fold_signs(''.join(expression.split()))
    if not text:
        raise InvalidExpressionError("Empty expression")

    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if _is_ascii_letter(ch):
            end = _scan_run(text, pos, _is_ascii_letter)
            tokens.append(Token(TokenType.IDENTIFIER, text[pos:end], pos))
        elif _is_ascii_digit(ch):
            end = _scan_run(text, pos, _is_ascii_digit)
            tokens.append(Token(TokenType.NUMBER, int(text[pos:end]), pos))
        elif ch == '-' and _in_unary_position(tokens) and pos + 1 < len(text) and _is_ascii_digit(text[pos + 1]):
            end = _scan_run(text, pos + 1, _is_ascii_digit)
            tokens.append(Token(TokenType.NUMBER, int(text[pos:end]), pos))
        elif ch in OPERATORS:
            end = pos + 1
            tokens.append(Token(TokenType.OPERATOR, ch, pos))
        elif ch == '(':
            end = pos + 1
            tokens.append(Token(TokenType.LPAREN, ch, pos))
        elif ch == ')':
            end = pos + 1
            tokens.append(Token(TokenType.RPAREN, ch, pos))
        else:
            raise InvalidExpressionError(f"Unexpected character '{ch}' at position {pos}")
        pos = end

    logger.debug(f"Tokenized {expression!r} into {tokens}")
    return tokens


def _in_unary_position(tokens: List[Token]) -> bool:
    if not tokens:
        return True
    return tokens[-1].type in (TokenType.OPERATOR, TokenType.LPAREN)


# ---------------------------
# Postfix Converter
# ---------------------------

_PRECEDENCE: Dict[str, int] = {
    '+': 1,
    '-': 1,
    '*': 2,
    '/': 2,
    '^': 3,  # ranked but never accepted by the tokenizer or evaluator
}


def precedence(operator: str) -> int:
    """Returns the binding strength of an operator symbol, 0 for unknown symbols."""
    return _PRECEDENCE.get(operator, 0)


def to_postfix(tokens: Sequence[Token]) -> List[Token]:
    """
    Reorders infix tokens into postfix order using the shunting-yard algorithm.

    All operators are left-associative: an incoming operator first pops every stacked operator of
    equal or higher precedence.

    Raises:
        InvalidExpressionError: on unbalanced parentheses or an unrecognized token.
    """
    output: List[Token] = []
    stack: List[Token] = []

    for token in tokens:
        if token.type in (TokenType.NUMBER, TokenType.IDENTIFIER):
            output.append(token)
        elif token.type == TokenType.LPAREN:
            stack.append(token)
        elif token.type == TokenType.RPAREN:
            while stack and stack[-1].type != TokenType.LPAREN:
                output.append(stack.pop())
            if not stack:
                raise InvalidExpressionError(f"Unmatched ')' at position {token.pos}")
            stack.pop()
        elif token.type == TokenType.OPERATOR:
            while (stack and stack[-1].type != TokenType.LPAREN
                   and precedence(token.value) <= precedence(stack[-1].value)):
                output.append(stack.pop())
            stack.append(token)
        else:
            raise InvalidExpressionError(f"Unexpected token {token!r}")

    while stack:
        top = stack.pop()
        if top.type == TokenType.LPAREN:
            raise InvalidExpressionError(f"Unmatched '(' at position {top.pos}")
        output.append(top)

    logger.debug(f"Postfix form: {output}")
    return output


# ---------------------------
# Postfix Evaluator
# ---------------------------

def _divide(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZeroError(f"Division of {a} by zero")
    # Python's // floors; the calculator truncates toward zero.
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _apply(operator: str, a: int, b: int) -> int:
    if operator == '+':
        return a + b
    if operator == '-':
        return a - b
    if operator == '*':
        return a * b
    if operator == '/':
        return _divide(a, b)
    raise InvalidExpressionError(f"Unsupported operator '{operator}'")


def evaluate(postfix: Sequence[Token], env: "VariableEnvironment") -> int:
    """
    Reduces a postfix token sequence to a single integer.

    Args:
        postfix: Tokens in Reverse Polish order, as produced by to_postfix.
        env: Variables visible to the expression. It is only read.

    Returns:
        The integer value of the expression.

    Raises:
        UnknownVariableError: if an identifier has no value in env.
        DivisionByZeroError: on division by zero.
        InvalidExpressionError: if an operator lacks operands, an operator is unsupported, or the
            sequence does not reduce to exactly one value.
    """
    stack: List[int] = []

    for token in postfix:
        if token.type == TokenType.NUMBER:
            stack.append(token.value)
        elif token.type == TokenType.IDENTIFIER:
            value = env.lookup(token.value)
            if value is None:
                raise UnknownVariableError(token.value)
            stack.append(value)
        elif token.type == TokenType.OPERATOR:
            if len(stack) < 2:
                raise InvalidExpressionError(f"Operator '{token.value}' is missing an operand")
            b = stack.pop()
            a = stack.pop()
            stack.append(_apply(token.value, a, b))
        else:
            raise InvalidExpressionError(f"Unexpected token {token!r} in postfix sequence")

    if len(stack) != 1:
        raise InvalidExpressionError(f"Expression left {len(stack)} values on the stack")
    return stack[0]


# ---------------------------
# Variables
# ---------------------------

class VariableEnvironment:
    """
    Case-sensitive mapping of variable names to integer values.

    Entries are created or overwritten by assignment and never removed.
    """

    def __init__(self):
        self._values: Dict[str, int] = {}

    def assign(self, name: str, value: int) -> None:
        self._values[name] = value

    def lookup(self, name: str) -> Optional[int]:
        return self._values.get(name)

    def items(self) -> List[Tuple[str, int]]:
        """Returns (name, value) pairs sorted by name."""
        return sorted(self._values.items())

    def __len__(self) -> int:
        return len(self._values)


# ---------------------------
# Assignment
# ---------------------------

def validate_identifier(name: str) -> str:
    if not IDENTIFIER_RE.fullmatch(name):
        raise InvalidIdentifierError(f"Invalid identifier {name!r}")
    return name


def parse_assignment(statement: str) -> Tuple[str, str]:
    """
    Splits `name = value` into its trimmed name and value text.

    Raises:
        InvalidAssignmentError: unless the statement has exactly two non-empty sides.
        InvalidIdentifierError: if the name is not made of letters only.
    """
    parts = [part.strip() for part in statement.split('=')]
    if len(parts) != 2 or not all(parts):
        raise InvalidAssignmentError(f"Malformed assignment {statement!r}")
    name, value_text = parts
    validate_identifier(name)
    return name, value_text


def resolve_value(value_text: str, env: VariableEnvironment) -> int:
    """Resolves the right-hand side of an assignment: an integer literal, else a known variable."""
    if INTEGER_LITERAL_RE.fullmatch(value_text):
        return int(value_text)
    value = env.lookup(value_text)
    if value is None:
        raise InvalidAssignmentError(f"Cannot assign {value_text!r}")
    return value


def execute_assignment(statement: str, env: VariableEnvironment) -> Tuple[str, int]:
    """Parses and applies an assignment statement. The environment is untouched on failure."""
    name, value_text = parse_assignment(statement)
    value = resolve_value(value_text, env)
    env.assign(name, value)
    logger.debug(f"Assigned {name} = {value}")
    return name, value


# ---------------------------
# Session
# ---------------------------

class Session:
    """
    State of one interactive session: the variable environment plus the entry points
    that read and mutate it.
    """

    def __init__(self, env: Optional[VariableEnvironment] = None):
        self.env = env if env is not None else VariableEnvironment()

    def evaluate(self, expression: str) -> int:
        """Tokenizes, converts and evaluates an infix expression."""
        return evaluate(to_postfix(tokenize(expression)), self.env)

    def assign(self, name: str, value_text: str) -> int:
        """Assigns an integer literal or the value of another variable to `name`."""
        validate_identifier(name)
        value = resolve_value(value_text.strip(), self.env)
        self.env.assign(name, value)
        return value

    def execute_assignment(self, statement: str) -> Tuple[str, int]:
        return execute_assignment(statement, self.env)

    def query(self, name: str) -> int:
        value = self.env.lookup(name)
        if value is None:
            raise UnknownVariableError(name)
        return value
