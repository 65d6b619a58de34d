"""
Question generators for every quiz type.

Each public ``generate_*`` function returns a fresh, independently random
list of questions. Answers are always computed from the question payload
alone, with exact integer or ``Fraction`` arithmetic, so any question can be
re-checked later without extra state.
"""

from __future__ import annotations

import math
import random
import re
from fractions import Fraction

from mathquest.core.errors import InvalidArgument
from mathquest.core.models import FractionPair, Question, WordItem

# Display symbols for BODMAS expressions. "÷" is shown to children,
# "/" is accepted when evaluating.
_ADD, _SUB, _MUL, _DIV = "+", "-", "*", "÷"
_PRECEDENCE: dict[str, int] = {_ADD: 1, _SUB: 1, _MUL: 2, _DIV: 2, "/": 2}
_TOKEN_PATTERN = re.compile(r"\d+|[+\-*/÷]")

WORD_BANK: tuple[WordItem, ...] = (
    WordItem("cat", "A small pet that says meow"),
    WordItem("dog", "A loyal pet that says woof"),
    WordItem("sun", "Shines bright in the sky"),
    WordItem("hat", "Worn on your head"),
    WordItem("car", "Moves on roads"),
    WordItem("book", "Read for fun"),
    WordItem("fish", "Lives in water"),
    WordItem("bird", "Flies in the sky"),
    WordItem("ball", "Bounces when thrown"),
    WordItem("tree", "Grows tall with leaves"),
    WordItem("cake", "Sweet treat for birthdays"),
    WordItem("moon", "Nighttime light in the sky"),
    WordItem("star", "Twinkles in the night sky"),
    WordItem("bed", "Sleep on it at night"),
    WordItem("cup", "Drink from it"),
    WordItem("box", "Contains things inside"),
    WordItem("egg", "Laid by chickens"),
    WordItem("ice", "Cold frozen water"),
    WordItem("fire", "Hot and burns"),
    WordItem("wind", "Moves leaves around"),
)


def _check_count(count: int) -> None:
    if not isinstance(count, int) or isinstance(count, bool) or count <= 0:
        raise InvalidArgument(f"Question count must be a positive integer, got {count!r}")


def _rng_or_default(rng: random.Random | None) -> random.Random:
    return rng if rng is not None else random.Random()


# --- Arithmetic ---


def generate_multiplication_questions(count: int = 10, rng: random.Random | None = None) -> list[Question]:
    """Single-digit times tables, e.g. ``"7 * 8"``."""
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    for _ in range(count):
        a = rng.randint(1, 9)
        b = rng.randint(1, 9)
        questions.append(Question(question=f"{a} * {b}", answer=a * b))
    return questions


def generate_addition_questions(count: int = 10, rng: random.Random | None = None) -> list[Question]:
    """Single-digit sums, e.g. ``"3 + 4"``."""
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    for _ in range(count):
        a = rng.randint(1, 9)
        b = rng.randint(1, 9)
        questions.append(Question(question=f"{a} + {b}", answer=a + b))
    return questions


def generate_remainder_questions(count: int = 10, rng: random.Random | None = None) -> list[Question]:
    """
    Division questions whose answer is the remainder, not the quotient.

    The divisor is drawn from 2-12 and the dividend from 1-100, so the
    answer always satisfies ``0 <= answer < divisor``.
    """
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    for _ in range(count):
        divisor = rng.randint(2, 12)
        dividend = rng.randint(1, 100)
        questions.append(Question(question=f"{dividend} ÷ {divisor}", answer=dividend % divisor))
    return questions


# --- Fractions ---


def compare_fractions(first: FractionPair, second: FractionPair) -> str:
    """Return ``<``, ``>`` or ``=`` by cross-multiplication (denominators > 0)."""
    left = first.numerator * second.denominator
    right = second.numerator * first.denominator
    if left > right:
        return ">"
    if left < right:
        return "<"
    return "="


def _random_proper_fraction(rng: random.Random) -> FractionPair:
    denominator = rng.randint(2, 12)
    numerator = rng.randint(1, denominator - 1)
    return FractionPair(numerator=numerator, denominator=denominator)


def generate_fraction_comparison_questions(
    count: int = 10, rng: random.Random | None = None
) -> list[Question]:
    """Pairs of proper fractions to compare with ``<``, ``>`` or ``=``."""
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    for _ in range(count):
        first = _random_proper_fraction(rng)
        second = _random_proper_fraction(rng)
        questions.append(Question(question=(first, second), answer=compare_fractions(first, second)))
    return questions


def generate_lowest_common_denominator_questions(
    count: int = 5, rng: random.Random | None = None
) -> list[Question]:
    """Find the lowest common denominator of two fractions, e.g. ``"1/4 and 1/6"`` -> 12."""
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    for _ in range(count):
        first = _random_proper_fraction(rng)
        second = _random_proper_fraction(rng)
        text = f"{first.numerator}/{first.denominator} and {second.numerator}/{second.denominator}"
        answer = math.lcm(first.denominator, second.denominator)
        questions.append(Question(question=text, answer=answer))
    return questions


# --- Order of operations ---


def evaluate_expression(expression: str) -> Fraction:
    """
    Evaluate a flat ``+ - * ÷`` expression with standard precedence.

    Multiplication and division bind tighter than addition and subtraction;
    operators of equal precedence apply left to right. Arithmetic is exact.

    Raises:
        ValueError: If the expression is malformed or divides by zero.
    """
    tokens = _TOKEN_PATTERN.findall(expression)
    if not tokens or len(tokens) % 2 == 0:
        raise ValueError(f"Malformed expression: {expression!r}")

    values: list[Fraction] = []
    operators: list[str] = []

    def apply_top() -> None:
        operator = operators.pop()
        right = values.pop()
        left = values.pop()
        if operator == _ADD:
            values.append(left + right)
        elif operator == _SUB:
            values.append(left - right)
        elif operator == _MUL:
            values.append(left * right)
        else:
            if right == 0:
                raise ValueError("Division by zero")
            values.append(left / right)

    for index, token in enumerate(tokens):
        expects_number = index % 2 == 0
        if expects_number:
            if not token.isdigit():
                raise ValueError(f"Expected a number, got {token!r}")
            values.append(Fraction(int(token)))
            continue
        if token not in _PRECEDENCE:
            raise ValueError(f"Expected an operator, got {token!r}")
        while operators and _PRECEDENCE[operators[-1]] >= _PRECEDENCE[token]:
            apply_top()
        operators.append(token)

    while operators:
        apply_top()
    return values[0]


def _random_bodmas_expression(rng: random.Random) -> str:
    operator_count = rng.randint(3, 4)
    parts = [str(rng.randint(1, 10))]
    for _ in range(operator_count):
        parts.append(rng.choice((_ADD, _SUB, _MUL, _DIV)))
        parts.append(str(rng.randint(1, 10)))
    return " ".join(parts)


def generate_bodmas_questions(count: int = 10, rng: random.Random | None = None) -> list[Question]:
    """
    Short expressions that test order of operations.

    Expressions are redrawn until the exact result is a whole number, so the
    answer is always an integer (possibly negative).
    """
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    while len(questions) < count:
        expression = _random_bodmas_expression(rng)
        result = evaluate_expression(expression)
        if result.denominator != 1:
            continue
        questions.append(Question(question=expression, answer=int(result)))
    return questions


# --- Factors ---


def factors_of(number: int) -> list[int]:
    """All positive divisors of ``number`` in ascending order."""
    return [candidate for candidate in range(1, number + 1) if number % candidate == 0]


def format_factors(factors: list[int]) -> str:
    return ",".join(str(factor) for factor in factors)


def generate_factors_questions(count: int = 5, rng: random.Random | None = None) -> list[Question]:
    """List every factor of a number between 2 and 50; the answer is ``"1,2,3,6"``."""
    _check_count(count)
    rng = _rng_or_default(rng)
    questions = []
    for _ in range(count):
        number = rng.randint(2, 50)
        questions.append(Question(question=str(number), answer=format_factors(factors_of(number))))
    return questions


# --- Spelling ---


def generate_words(count: int = 10, rng: random.Random | None = None) -> list[WordItem]:
    """Distinct spelling words with hints, capped at the size of the word bank."""
    _check_count(count)
    rng = _rng_or_default(rng)
    return rng.sample(WORD_BANK, min(count, len(WORD_BANK)))
