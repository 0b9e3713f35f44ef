"""
Random primitives that everything else in the fuzzer is built from.

All randomness comes from the operating system's CSPRNG (random.SystemRandom),
so that consecutive runs never repeat a sequence. Throughput is bounded by
network pacing anyway, not by how fast numbers are generated.
"""

from __future__ import annotations
import random
import string
from fractions import Fraction
from typing import List, Sequence, TypeVar, Union

T = TypeVar("T")

WILDCARD_CHARS = string.ascii_letters + string.digits + string.punctuation

_system_random = random.SystemRandom()


class PatternError(ValueError):
    """Raised when random_pattern() is given a pattern it can't parse."""


def uniform_int(bound: int) -> int:
    """
    Returns an integer in [0, bound).

    A bound of zero or less returns 0, so that e.g. a pacing multiplier of 0
    means "no delay" instead of an error.
    """
    bound = int(bound)
    if bound <= 0:
        return 0
    return _system_random.randrange(bound)


def chance(probability: Union[Fraction, float]) -> bool:
    """
    Returns True with the given probability.

    The probability is used exactly: chance(Fraction(1, 300)) is one draw from
    [0, 300) compared against 1. Floats are converted to their exact binary value.
    """
    probability = Fraction(probability)
    return uniform_int(probability.denominator) < probability.numerator


def rand_from(items: Sequence[T]) -> T:
    return items[uniform_int(len(items))]


def shuffle_string(text: str) -> str:
    """Returns the characters of text in a random order."""
    chars = list(text)
    _system_random.shuffle(chars)
    return "".join(chars)


def random_pattern(pattern: str) -> str:
    """
    Generates a string matching a small regex-like pattern.

    Supported syntax:
        .           any letter, digit or punctuation character
        \\d          a digit
        \\w          a letter, digit or underscore
        [a-zA-Z_]   a character class, ranges allowed
        {n}         repeats the previous item n times
        anything else is taken literally

    Ex. "[A-Z]{2}[a-z]{2}.[a-z]{2}\\d" could give "QWer%ty4"
    """
    result = []
    for choices, count in _parse_pattern(pattern):
        result.extend(rand_from(choices) for _ in range(count))
    return "".join(result)


def _parse_pattern(pattern: str) -> List[tuple[str, int]]:
    items: List[tuple[str, int]] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == ".":
            choices = WILDCARD_CHARS
            i += 1
        elif char == "\\":
            if i + 1 >= len(pattern):
                raise PatternError(f"trailing backslash in pattern {pattern!r}")
            choices = _escape_choices(pattern[i + 1])
            i += 2
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                raise PatternError(f"unterminated character class in pattern {pattern!r}")
            choices = _class_choices(pattern[i + 1 : end], pattern)
            i = end + 1
        elif char in "]{}":
            raise PatternError(f"unexpected {char!r} in pattern {pattern!r}")
        else:
            choices = char
            i += 1

        count = 1
        if i < len(pattern) and pattern[i] == "{":
            end = pattern.find("}", i + 1)
            if end == -1 or not pattern[i + 1 : end].isdigit():
                raise PatternError(f"bad repetition count in pattern {pattern!r}")
            count = int(pattern[i + 1 : end])
            i = end + 1

        items.append((choices, count))
    return items


def _escape_choices(char: str) -> str:
    if char == "d":
        return string.digits
    if char == "w":
        return string.ascii_letters + string.digits + "_"
    return char


def _class_choices(body: str, pattern: str) -> str:
    if not body:
        raise PatternError(f"empty character class in pattern {pattern!r}")

    choices = []
    i = 0
    while i < len(body):
        if i + 2 < len(body) and body[i + 1] == "-":
            start, end = ord(body[i]), ord(body[i + 2])
            if start > end:
                raise PatternError(f"bad range {body[i : i + 3]!r} in pattern {pattern!r}")
            choices.extend(chr(code) for code in range(start, end + 1))
            i += 3
        else:
            choices.append(body[i])
            i += 1
    return "".join(choices)
