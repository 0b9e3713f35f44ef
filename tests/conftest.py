import socket
import threading

import pytest

from ircfuzz import randomness
from ircfuzz.config import FuzzerConfig
from ircfuzz.corpus import Corpus

# fmt: off
test_channels = ["#foo", "#bar", "#baz", "##linux"]
test_nicknames = ["Alice", "Bob", "Charlie"]
# fmt: on


@pytest.fixture
def corpus():
    return Corpus(test_nicknames, test_channels)


@pytest.fixture
def corpus_file(tmp_path):
    path = tmp_path / "channels.txt"
    path.write_text("\n".join(test_channels) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def config(tmp_path):
    return FuzzerConfig(port=6667, log_dir=tmp_path / "logs", pacing_seed=0)


@pytest.fixture
def never(monkeypatch):
    """Makes every randomness.chance() call return False, i.e. no prefix, no corruption, no exit..."""
    monkeypatch.setattr(randomness, "chance", lambda probability: probability >= 1)


@pytest.fixture
def socket_pair():
    """Returns (fuzzer_side, server_side). Both are closed after the test."""
    fuzzer_side, server_side = socket.socketpair()
    fuzzer_side.setblocking(False)
    server_side.settimeout(1)
    yield fuzzer_side, server_side
    fuzzer_side.close()
    server_side.close()


class PartialSendSocket:
    """
    Wraps a real socket, but send() accepts one byte less than it was given
    when "partial" is set.
    """

    def __init__(self, sock):
        self.sock = sock
        self.partial = False
        self.sent_calls = []

    def fileno(self):
        return self.sock.fileno()

    def recv(self, size):
        return self.sock.recv(size)

    def send(self, data):
        self.sent_calls.append(data)
        if self.partial:
            return self.sock.send(data[:-1])
        return self.sock.send(data)


@pytest.fixture
def partial_send_socket(socket_pair):
    return PartialSendSocket(socket_pair[0])


@pytest.fixture
def listener():
    """A server socket on localhost that accepts one connection in a thread."""
    listener_socket = socket.socket()
    listener_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener_socket.bind(("127.0.0.1", 0))
    listener_socket.listen(1)

    accepted = []

    def accept():
        try:
            (client_socket, _) = listener_socket.accept()
        except OSError:
            return
        client_socket.settimeout(1)
        accepted.append(client_socket)

    thread = threading.Thread(target=accept, daemon=True)
    thread.start()

    yield listener_socket, thread, accepted

    for sock in accepted:
        sock.close()
    listener_socket.close()


# Based on https://stackoverflow.com/a/42156088/15382873
class Helpers:
    def receive_line(sock, timeout=1):
        sock.settimeout(timeout)
        received = b""
        while not received.endswith(b"\r\n"):
            received += sock.recv(1)
        return received


@pytest.fixture
def helpers():
    return Helpers
