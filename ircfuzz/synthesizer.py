"""
Builds the protocol lines that the fuzzer sends.

Each line looks roughly like an IRC message, e.g.

    PRIVMSG #foo,Bob,#bar :QWERTYUIasdfghjkl%qwer7\r\n
    :Ab!cd@efgh JOIN #foo\r\n

but nothing makes sure that the combination of command, targets and trailing
parameter is meaningful. A small fraction of lines have all their characters
shuffled, which turns them into noise.
"""

from __future__ import annotations
import string
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from . import randomness
from .corpus import Corpus

COMMANDS: Tuple[str, ...] = ("NICK", "USER", "JOIN", "PART", "PRIVMSG", "NOTICE")

MAX_TARGETS = 15
SINGLE_TARGET_BIAS = Fraction(1, 2)
TRAILING_PARAM_PROB = Fraction(3, 10)
PREFIX_PROB = Fraction(1, 20)
CORRUPTION_PROB = Fraction(3, 40)

TRAILING_PATTERN = r"[A-Z]{8}[a-z]{9}.[a-z]{4}\d"
REALNAME_PATTERN = r"[A-Z]{2}[a-z]{2}.[a-z]{2}\d"
LINE_TERMINATOR = "\r\n"

# Prefix parts get 0..MAX-1 letters
PREFIX_NICK_MAX = 8
PREFIX_USER_MAX = 8
PREFIX_HOST_MAX = 16


class Message:
    """
    One synthesized line, ready to be sent.

    "targets" holds the targets exactly as they were chosen, even if the line
    was corrupted afterwards.
    """

    def __init__(
        self,
        command: str,
        targets: Sequence[str],
        trailing: Optional[str] = None,
        prefix: Optional[str] = None,
        corrupted: bool = False,
    ) -> None:
        self.command = command
        self.targets: Tuple[str, ...] = tuple(targets)
        self.trailing = trailing
        self.prefix = prefix
        self.corrupted = corrupted

        line = f"{command} {','.join(self.targets)}"
        if trailing is not None:
            line += f" :{trailing}"
        if prefix is not None:
            line = f":{prefix} {line}"
        if corrupted:
            line = randomness.shuffle_string(line)
        self.line = line + LINE_TERMINATOR

    def __repr__(self) -> str:
        return f"Message({self.line!r})"

    def encode(self) -> bytes:
        return self.line.encode("utf-8")


class MessageSynthesizer:
    """Creates a new random Message on every call to build_message()."""

    def __init__(self, corpus: Corpus, commands: Sequence[str] = COMMANDS) -> None:
        self.corpus = corpus
        self.commands: Tuple[str, ...] = tuple(commands)

    def build_message(self) -> Message:
        command = randomness.rand_from(self.commands)

        n_targets = randomness.uniform_int(MAX_TARGETS) + 1
        if randomness.chance(SINGLE_TARGET_BIAS):
            n_targets = 1
        targets = self.get_targets(n_targets)

        trailing = None
        if randomness.chance(TRAILING_PARAM_PROB):
            trailing = randomness.random_pattern(TRAILING_PATTERN)

        prefix = None
        if randomness.chance(PREFIX_PROB):
            prefix = gen_prefix()

        corrupted = randomness.chance(CORRUPTION_PROB)
        return Message(command, targets, trailing, prefix, corrupted)

    def get_targets(self, count: int) -> List[str]:
        """Chooses count targets, possibly the same one several times."""
        return [self.corpus.random_target() for _ in range(count)]

    def gen_realname(self) -> str:
        return randomness.random_pattern(REALNAME_PATTERN)


def gen_prefix() -> str:
    """Returns a random "nick!user@host". Any of the three parts can be empty."""
    nick = _random_letters(randomness.uniform_int(PREFIX_NICK_MAX))
    user = _random_letters(randomness.uniform_int(PREFIX_USER_MAX))
    host = _random_letters(randomness.uniform_int(PREFIX_HOST_MAX))
    return f"{nick}!{user}@{host}"


def _random_letters(length: int) -> str:
    return "".join(randomness.rand_from(string.ascii_letters) for _ in range(length))
