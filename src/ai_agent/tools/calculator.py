"""Arithmetic evaluator for the ``calculate`` tool.

Input is first reduced to the characters ``[0-9+\\-*/().%\\s]`` and then parsed
by a small recursive-descent parser::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/" | "%") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | "(" expr ")"

Nothing is ever handed to ``eval``.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal

INVALID_EXPRESSION = "Invalid expression"
EVALUATION_FAILED = "Could not evaluate expression"

_DISALLOWED = re.compile(r"[^0-9+\-*/().%\s]")
_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")
_TOKEN = re.compile(rf"\s*(?:({_NUMBER.pattern})|(.))")


class CalculationError(ValueError):
    """Raised for malformed expressions or undefined arithmetic."""


def sanitize(expression: str) -> str:
    return _DISALLOWED.sub("", expression)


def tokenize(expression: str) -> list[str]:
    tokens: list[str] = []
    for number, symbol in _TOKEN.findall(expression):
        if number:
            tokens.append(number)
        elif symbol and not symbol.isspace():
            tokens.append(symbol)
    return tokens


class _Parser:
    def __init__(self, tokens: list[str]) -> None:
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> float:
        value = self._expr()
        if self._pos != len(self._tokens):
            raise CalculationError(f"unexpected token {self._tokens[self._pos]!r}")
        return value

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise CalculationError("unexpected end of expression")
        self._pos += 1
        return token

    def _expr(self) -> float:
        value = self._term()
        while self._peek() in ("+", "-"):
            if self._take() == "+":
                value += self._term()
            else:
                value -= self._term()
        return value

    def _term(self) -> float:
        value = self._unary()
        while self._peek() in ("*", "/", "%"):
            op = self._take()
            rhs = self._unary()
            if op == "*":
                value *= rhs
            elif rhs == 0:
                raise CalculationError("division by zero")
            elif op == "/":
                value /= rhs
            else:
                # remainder takes the sign of the dividend
                value = math.fmod(value, rhs)
        return value

    def _unary(self) -> float:
        if self._peek() in ("+", "-"):
            sign = -1.0 if self._take() == "-" else 1.0
            return sign * self._unary()
        return self._primary()

    def _primary(self) -> float:
        token = self._take()
        if token == "(":
            value = self._expr()
            if self._take() != ")":
                raise CalculationError("missing closing parenthesis")
            return value
        if _NUMBER.fullmatch(token):
            return float(token)
        raise CalculationError(f"unexpected token {token!r}")


def evaluate(expression: str) -> float:
    """Evaluate an already sanitized arithmetic expression."""
    return _Parser(tokenize(expression)).parse()


def format_number(value: float) -> str:
    """Render a result the way JavaScript's ``String(number)`` does.

    Magnitudes from ``1e-6`` up to ``1e21`` use plain decimal notation;
    anything else is written in exponent form (``1e-7``, ``1.5e+21``).
    """
    if not math.isfinite(value):
        raise CalculationError("result is not a finite number")
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    all_digits = "".join(map(str, digit_tuple))
    # position of the decimal point relative to the first significant digit
    point = len(all_digits) + exponent
    digits = all_digits.rstrip("0")
    prefix = "-" if sign else ""
    if 0 < point <= 21:
        return f"{prefix}{digits[:point]}.{digits[point:]}"
    if -6 < point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    mantissa = digits[0] + (f".{digits[1:]}" if len(digits) > 1 else "")
    return f"{prefix}{mantissa}e{point - 1:+d}"


async def calculate(expression: str) -> str:
    sanitized = sanitize(expression)
    if not sanitized.strip():
        return INVALID_EXPRESSION
    try:
        return format_number(evaluate(sanitized))
    except (ValueError, RecursionError):
        return EVALUATION_FAILED
