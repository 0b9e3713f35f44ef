"""
Fuzzer for IRC servers. See https://en.wikipedia.org/wiki/Fuzzing

Usage:
- Start the IRC server you want to test (by default, it should listen on 127.0.1.1:6667)
- Run the fuzzer in another terminal: python3 -m ircfuzz
- Go back to the server's terminal, and see if you get errors.
- If the server crashed or hung, the last lines of logs/<nick> show what the fuzzer sent.

The fuzzer uses one connection. It registers with NICK and USER, and then sends
random messages with random delays between them until it decides to stop, which
happens after 300 messages on average. Nothing is retried: if the server closes
the connection or sending fails, the fuzzer crashes, and that's fine.
"""

from __future__ import annotations
import argparse
import logging
import os
import re
import select
import socket
import sys
import time
from fractions import Fraction
from typing import List, Optional, Union

from . import config, randomness
from .config import PACING_SEED_BOUND, RANDOM_PACING_SEED, FuzzerConfig, get_config_from_json
from .corpus import Corpus, load_corpus, write_channel_sample
from .session_log import SessionLog
from .synthesizer import LINE_TERMINATOR, Message, MessageSynthesizer

log = logging.getLogger(__name__)

TERMINATION_PROB = Fraction(1, 300)
RECV_SIZE = 4096
MICROSECONDS_PER_PACING_STEP = 1_000_000


class ConnectionClosed(ConnectionError):
    """Raised when the server closes the connection."""


class Fuzzer:
    """
    Owns the connection to the server and sends it random messages.

    The loop has no threads and no event handling: each iteration sleeps, reads
    whatever the server has sent meanwhile (without waiting for more), and sends
    one message. Received data can sit in the socket buffer for as long as the
    sleep lasts.
    """

    def __init__(
        self,
        config: FuzzerConfig,
        corpus: Corpus,
        sock: Optional[socket.socket] = None,
        synthesizer: Optional[MessageSynthesizer] = None,
    ) -> None:
        """
        If sock is given, it is used as is and start() won't connect anywhere.

        The pacing seed is chosen here, once per run. The delay before each message
        is a random number of microseconds in [0, 1_000_000 * pacing_seed), so some
        runs flood the server and others are slow, but each run stays the same.
        """
        self.config = config
        self.corpus = corpus
        self.sock = sock
        self.synthesizer = synthesizer or MessageSynthesizer(corpus)
        self.session_log = SessionLog(None)
        self.nick: Optional[str] = None

        if config.pacing_seed is None:
            self.pacing_seed = randomness.uniform_int(PACING_SEED_BOUND)
        else:
            self.pacing_seed = config.pacing_seed
        log.info("Pacing seed is %d", self.pacing_seed)

        self.inbound_echo = _compile_echo_pattern(config.inbound_echo_pattern)
        self.outbound_echo = _compile_echo_pattern(config.outbound_echo_pattern)

    def start(self) -> None:
        """Connects (unless a socket was given), opens the session log and registers."""
        if self.sock is None:
            self.sock = open_connection(*self.config.address)

        self.nick = self.corpus.random_nick()
        user = self.corpus.random_nick()
        realname = self.synthesizer.gen_realname()

        self.session_log = SessionLog.open(self.config.log_dir, self.nick)

        # No waiting for the server, it gets registration and garbage as fast as the pacing allows
        self.send_line(f"NICK {self.nick}{LINE_TERMINATOR}")
        self.send_line(f"USER {user} . . :{realname}{LINE_TERMINATOR}")

    def run_forever(self) -> None:
        log.info("Fuzzing %s:%d as %s", self.config.host, self.config.port, self.nick)
        if self.session_log.degraded:
            log.warning("Traffic is not being recorded")
        try:
            while True:
                self.run_iteration()
        finally:
            self.session_log.close()

    def run_iteration(self) -> None:
        """
        Sleeps, reads what the server sent, and sends one message.

        May exit the whole process with status 0 instead of sending.
        """
        self.sleep_before_next_message()
        self.receive_pending()

        message = self.synthesizer.build_message()
        if randomness.chance(TERMINATION_PROB):
            log.info("Done fuzzing, exiting")
            sys.exit(0)

        self.send_message(message)

    def sleep_before_next_message(self) -> None:
        microseconds = randomness.uniform_int(MICROSECONDS_PER_PACING_STEP * self.pacing_seed)
        time.sleep(microseconds / 1_000_000)

    def receive_pending(self) -> bytes:
        """
        Receives up to RECV_SIZE bytes if the server has sent something. Never blocks.

        Returns what was received, or b"" if there was nothing to receive.
        """
        assert self.sock is not None
        readable, _, _ = select.select([self.sock], [], [], 0)
        if not readable:
            return b""

        received = self.sock.recv(RECV_SIZE)
        if not received:
            raise ConnectionClosed(f"{self.config.host}:{self.config.port} closed the connection")

        self.session_log.write(received)
        for line in received.decode("utf-8", errors="replace").splitlines():
            if self.inbound_echo is not None and self.inbound_echo.search(line):
                print(line)
        return received

    def send_message(self, message: Message) -> bool:
        return self._send(message.encode(), message.line)

    def send_line(self, line: str) -> bool:
        return self._send(line.encode("utf-8"), line)

    def _send(self, data: bytes, line: str) -> bool:
        """
        Sends data with one send() call. Returns True if all of it was sent.

        Only lines that were sent completely go to the session log.
        A partially sent line is not retried or logged, and the rest of it is lost.
        """
        assert self.sock is not None
        try:
            sent = self.sock.send(data)
        except BlockingIOError:
            sent = 0

        if sent != len(data):
            log.debug("Sent %d of %d bytes: %r", sent, len(data), line)
            return False

        self.session_log.write(data)
        if self.outbound_echo is not None and self.outbound_echo.search(line):
            print(line.rstrip("\r\n"))
        return True


def open_connection(host: str, port: int) -> socket.socket:
    """
    Starts connecting a non-blocking TCP socket to the server.

    Does not wait for the connection to be established. Errors from connecting
    show up when the socket is used.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setblocking(False)
    error = sock.connect_ex((host, port))
    if error == 0:
        log.info("Connection established")
        log.info("Receive buffer is %d bytes", sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF))
    else:
        log.info("Connection to %s:%d not established yet: %s", host, port, os.strerror(error))
    return sock


def _compile_echo_pattern(pattern: Optional[str]) -> Optional[re.Pattern[str]]:
    if not pattern:
        return None
    return re.compile(pattern)


def _pacing_seed_arg(value: str) -> Union[int, str]:
    if value == RANDOM_PACING_SEED:
        return value
    try:
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer or '{RANDOM_PACING_SEED}', not {value!r}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ircfuzz", description="Send random IRC messages to a server.")
    parser.add_argument(
        "--config", default=config.DEFAULT_CONFIG_PATH, help="JSON config file (default: %(default)s)"
    )
    parser.add_argument("--host", help="server address")
    parser.add_argument("--port", type=int, help="server port")
    parser.add_argument("--corpus", dest="corpus_path", help="file with channel names, one per line")
    parser.add_argument("--log-dir", help="directory for session logs")
    parser.add_argument(
        "--pacing-seed",
        type=_pacing_seed_arg,
        help=f"delay multiplier in [0, {PACING_SEED_BOUND}), or '{RANDOM_PACING_SEED}' (the default)",
    )
    parser.add_argument("--inbound-echo", dest="inbound_echo_pattern", help="print received lines matching this regex")
    parser.add_argument("--outbound-echo", dest="outbound_echo_pattern", help="print sent lines matching this regex")
    parser.add_argument(
        "--write-channel-sample",
        nargs=2,
        metavar=("COUNT", "PATH"),
        help="write COUNT random channels from the corpus to PATH and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="show debug messages")
    args = parser.parse_args(argv)

    if args.write_channel_sample:
        count, path = args.write_channel_sample
        if not count.isdigit():
            parser.error(f"--write-channel-sample: COUNT must be a non-negative integer, not {count!r}")
        args.write_channel_sample = (int(count), path)

    return args


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        run_config = get_config_from_json(args.config).updated(
            host=args.host,
            port=args.port,
            corpus_path=args.corpus_path,
            log_dir=args.log_dir,
            pacing_seed=args.pacing_seed,
            inbound_echo_pattern=args.inbound_echo_pattern,
            outbound_echo_pattern=args.outbound_echo_pattern,
        )
    except ValueError as e:
        log.error("Bad configuration: %s", e)
        sys.exit(2)

    try:
        corpus = load_corpus(run_config.corpus_path)
    except FileNotFoundError:
        log.error("Could not open corpus file '%s'", run_config.corpus_path)
        sys.exit(1)

    if args.write_channel_sample:
        count, path = args.write_channel_sample
        write_channel_sample(corpus, path, count)
        return

    fuzzer = Fuzzer(run_config, corpus)
    fuzzer.start()
    fuzzer.run_forever()


if __name__ == "__main__":
    main()
