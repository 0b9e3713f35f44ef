import re

import pytest

from ircfuzz import synthesizer
from ircfuzz.synthesizer import COMMANDS, Message, MessageSynthesizer, gen_prefix

PREFIX_REGEX = r"[A-Za-z]{0,7}![A-Za-z]{0,7}@[A-Za-z]{0,15}"


def split_line(line):
    """Returns (prefix, command, target field, trailing) of an uncorrupted line."""
    assert line.endswith("\r\n")
    line = line[:-2]

    prefix = None
    if line.startswith(":"):
        prefix, line = line[1:].split(" ", 1)

    trailing = None
    if " :" in line:
        line, trailing = line.split(" :", 1)

    command, target_field = line.split(" ")
    return prefix, command, target_field, trailing


@pytest.fixture
def synth(corpus):
    return MessageSynthesizer(corpus)


def test_target_count_is_between_1_and_15(synth, corpus):
    for _ in range(1000):
        message = synth.build_message()
        assert 1 <= len(message.targets) <= 15
        assert set(message.targets) <= set(corpus.targets)


def test_target_field_matches_chosen_targets(synth):
    checked = 0
    for _ in range(1000):
        message = synth.build_message()
        if message.corrupted:
            continue
        checked += 1

        prefix, command, target_field, trailing = split_line(message.line)
        assert command == message.command
        assert target_field.split(",") == list(message.targets)
        assert trailing == message.trailing
        assert prefix == message.prefix

    assert checked > 0


def test_all_target_counts_are_used(synth, never):
    counts = {len(synth.build_message().targets) for _ in range(2000)}
    assert counts == set(range(1, 16))


def test_single_target_bias(monkeypatch, synth):
    monkeypatch.setattr(synthesizer, "SINGLE_TARGET_BIAS", 1)
    for _ in range(500):
        assert len(synth.build_message().targets) == 1


def test_single_target_bias_is_about_half(synth):
    single = sum(len(synth.build_message().targets) == 1 for _ in range(4000))
    # 0.5 from the bias, plus 0.5 * 1/15 from the count itself
    assert 1900 < single < 2360


def test_plain_message(synth, never):
    for _ in range(200):
        message = synth.build_message()
        assert message.command in COMMANDS
        assert message.prefix is None
        assert message.trailing is None
        assert not message.corrupted
        assert message.line == f"{message.command} {','.join(message.targets)}\r\n"


def test_trailing_parameter(monkeypatch, synth):
    monkeypatch.setattr(synthesizer, "TRAILING_PARAM_PROB", 1)
    monkeypatch.setattr(synthesizer, "CORRUPTION_PROB", 0)
    for _ in range(200):
        message = synth.build_message()
        assert re.fullmatch(r"[A-Z]{8}[a-z]{9}[!-~][a-z]{4}\d", message.trailing)
        assert message.line.endswith(f" :{message.trailing}\r\n")


def test_prefix(monkeypatch, synth):
    monkeypatch.setattr(synthesizer, "PREFIX_PROB", 1)
    monkeypatch.setattr(synthesizer, "CORRUPTION_PROB", 0)
    for _ in range(200):
        message = synth.build_message()
        assert re.fullmatch(PREFIX_REGEX, message.prefix)
        assert message.line.startswith(f":{message.prefix} {message.command} ")


def test_gen_prefix_part_lengths():
    nick_lengths = set()
    host_lengths = set()
    for _ in range(3000):
        prefix = gen_prefix()
        assert re.fullmatch(PREFIX_REGEX, prefix)
        nick, rest = prefix.split("!")
        user, host = rest.split("@")
        nick_lengths.add(len(nick))
        host_lengths.add(len(host))

    assert nick_lengths == set(range(8))
    assert host_lengths == set(range(16))


def test_corruption_shuffles_the_line(monkeypatch, synth):
    monkeypatch.setattr(synthesizer, "CORRUPTION_PROB", 1)
    for _ in range(200):
        message = synth.build_message()
        assert message.corrupted
        assert message.line.endswith("\r\n")

        uncorrupted = Message(message.command, message.targets, message.trailing, message.prefix)
        assert sorted(message.line) == sorted(uncorrupted.line)


def test_message_line():
    message = Message("JOIN", ["#foo", "Bob"], trailing="hello there", prefix="a!b@c")
    assert message.line == ":a!b@c JOIN #foo,Bob :hello there\r\n"
    assert message.encode() == b":a!b@c JOIN #foo,Bob :hello there\r\n"

    assert Message("PART", ["#foo"]).line == "PART #foo\r\n"
    assert Message("NICK", ["#ö"]).encode() == "NICK #ö\r\n".encode("utf-8")


def test_custom_commands(corpus, never):
    synth = MessageSynthesizer(corpus, commands=["KICK"])
    assert {synth.build_message().command for _ in range(50)} == {"KICK"}


def test_realname(synth):
    for _ in range(100):
        assert re.fullmatch(r"[A-Z]{2}[a-z]{2}[!-~][a-z]{2}\d", synth.gen_realname())
