"""
Quiz type registry.

Every quiz type is a ``QuizVariant``: a generator plus the equality rule used
to score one answer. The session store and scoring code dispatch through
``get_variant`` so adding a quiz type only means registering a new variant.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction

from mathquest.constants.quiz_constants import DEFAULT_QUESTION_COUNT, SHORT_QUESTION_COUNT
from mathquest.core import generators
from mathquest.core.errors import UnknownQuizType


class QuizType(str, Enum):
    """Quiz types addressable as ``/session/{quizType}``."""

    MULTIPLICATION = "simple-math"
    REMAINDER = "simple-math-2"
    FRACTION_COMPARISON = "simple-math-3"
    BODMAS = "simple-math-4"
    FACTORS = "simple-math-5"
    LOWEST_COMMON_DENOMINATOR = "simple-math-6"
    ADDITION = "addition-test"
    SPELLING = "simple-words"


class QuizKind(Enum):
    NUMERIC = "numeric"
    WORDS = "words"


_COMPARISON_SYMBOLS = frozenset({"<", ">", "="})


def _to_exact_number(value: object) -> Fraction | None:
    """Parse a submitted answer into an exact number, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return Fraction(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Fraction(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = Fraction(text)
        except (ValueError, ZeroDivisionError):
            return None
        return parsed
    return None


def score_numeric(expected: object, given: object) -> bool:
    """Exact numeric equality; NaN, None and non-numbers are simply wrong."""
    given_number = _to_exact_number(given)
    expected_number = _to_exact_number(expected)
    return given_number is not None and given_number == expected_number


def score_symbol(expected: object, given: object) -> bool:
    if not isinstance(given, str):
        return False
    symbol = given.strip()
    return symbol in _COMPARISON_SYMBOLS and symbol == expected


def score_factor_list(expected: object, given: object) -> bool:
    """Compare factor lists as sets of integers; order and spacing don't matter."""
    if isinstance(given, (list, tuple)):
        parts = [str(part) for part in given]
    elif isinstance(given, (str, int)) and not isinstance(given, bool):
        parts = str(given).split(",")
    else:
        return False

    given_factors = []
    for part in parts:
        if not part.strip():
            continue
        number = _to_exact_number(part)
        if number is None or number.denominator != 1:
            return False
        given_factors.append(int(number))

    expected_factors = [int(part) for part in str(expected).split(",")]
    return sorted(given_factors) == sorted(expected_factors)


def score_word(expected: object, given: object) -> bool:
    if not isinstance(given, str):
        return False
    return given.strip().casefold() == str(expected).strip().casefold()


@dataclass(frozen=True, slots=True)
class QuizVariant:
    """Capabilities one quiz type provides to the core."""

    quiz_type: QuizType
    kind: QuizKind
    default_count: int
    _generate: Callable[..., list]
    _score_one: Callable[[object, object], bool]

    def generate(self, count: int | None = None, rng: random.Random | None = None) -> list:
        return self._generate(self.default_count if count is None else count, rng)

    def answer_key(self, item: object) -> object:
        if self.kind is QuizKind.WORDS:
            return item.word
        return item.answer

    def score_one(self, item: object, given: object) -> bool:
        return self._score_one(self.answer_key(item), given)

    def count_correct(self, items: Sequence[object], answers: Sequence[object]) -> int:
        return sum(1 for item, given in zip(items, answers) if self.score_one(item, given))


_REGISTRY: dict[QuizType, QuizVariant] = {}

# Older URL names that resolve to a registered quiz type.
_ALIASES: dict[str, QuizType] = {"simple-remainder": QuizType.REMAINDER}


def register_variant(variant: QuizVariant) -> None:
    _REGISTRY[variant.quiz_type] = variant


for _variant in (
    QuizVariant(QuizType.MULTIPLICATION, QuizKind.NUMERIC, DEFAULT_QUESTION_COUNT,
                generators.generate_multiplication_questions, score_numeric),
    QuizVariant(QuizType.REMAINDER, QuizKind.NUMERIC, DEFAULT_QUESTION_COUNT,
                generators.generate_remainder_questions, score_numeric),
    QuizVariant(QuizType.FRACTION_COMPARISON, QuizKind.NUMERIC, DEFAULT_QUESTION_COUNT,
                generators.generate_fraction_comparison_questions, score_symbol),
    QuizVariant(QuizType.BODMAS, QuizKind.NUMERIC, DEFAULT_QUESTION_COUNT,
                generators.generate_bodmas_questions, score_numeric),
    QuizVariant(QuizType.FACTORS, QuizKind.NUMERIC, SHORT_QUESTION_COUNT,
                generators.generate_factors_questions, score_factor_list),
    QuizVariant(QuizType.LOWEST_COMMON_DENOMINATOR, QuizKind.NUMERIC, SHORT_QUESTION_COUNT,
                generators.generate_lowest_common_denominator_questions, score_numeric),
    QuizVariant(QuizType.ADDITION, QuizKind.NUMERIC, DEFAULT_QUESTION_COUNT,
                generators.generate_addition_questions, score_numeric),
    QuizVariant(QuizType.SPELLING, QuizKind.WORDS, DEFAULT_QUESTION_COUNT,
                generators.generate_words, score_word),
):
    register_variant(_variant)


def parse_quiz_type(value: str | QuizType) -> QuizType:
    """Resolve a quiz type string, raising ``UnknownQuizType`` if unsupported."""
    if isinstance(value, QuizType):
        return value
    if value in _ALIASES:
        return _ALIASES[value]
    try:
        return QuizType(value)
    except ValueError:
        valid = ", ".join([quiz_type.value for quiz_type in QuizType] + list(_ALIASES))
        raise UnknownQuizType(f"Invalid quiz type: {value}. Must be one of: {valid}") from None


def get_variant(quiz_type: str | QuizType) -> QuizVariant:
    return _REGISTRY[parse_quiz_type(quiz_type)]


def all_quiz_types() -> list[str]:
    return [quiz_type.value for quiz_type in QuizType]
