"""
Settings for a fuzzing run.

Defaults live in module-level constants (so that tests can monkeypatch them).
They can be overridden by a JSON file, and the JSON file by command line arguments.

Example config file:

    {
        "host": "127.0.0.1",
        "port": 6697,
        "corpus_path": "fuzz/50-chans.txt",
        "pacing_seed": 3
    }
"""

from __future__ import annotations
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

log = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.1.1"
DEFAULT_PORT = 6667
DEFAULT_CORPUS_PATH = "resources/channels.txt"
DEFAULT_LOG_DIR = "logs"
DEFAULT_CONFIG_PATH = "resources/fuzzer.json"

# Lines that look like server-relayed channel traffic, e.g. ":Bob!b@host PRIVMSG #foo :hi"
DEFAULT_INBOUND_ECHO_PATTERN = r"^:.* (PRIVMSG|JOIN|PART)"
# Sent lines that carry a prefix
DEFAULT_OUTBOUND_ECHO_PATTERN = r"^:.* "

PACING_SEED_BOUND = 20
# Accepted wherever a pacing seed is, means "choose one when the run starts"
RANDOM_PACING_SEED = "random"


class FuzzerConfig:
    """
    Attributes:
        - host, port: Address of the server being fuzzed.
        - corpus_path: File with channel names, one per line.
        - log_dir: Directory of session logs. Each run writes a file named after its nick.
        - pacing_seed: Multiplier for the delay between messages, in [0, PACING_SEED_BOUND).
          None means that a random one is chosen when the run starts. Passing
          RANDOM_PACING_SEED ("random") is the same as passing None.
        - inbound_echo_pattern, outbound_echo_pattern: Regexes for received and sent lines
          that are printed to the console. None or "" disables printing.

    Values of the wrong type or out of range raise ValueError, with the name of the setting
    in the error message.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        corpus_path: Union[str, Path] = DEFAULT_CORPUS_PATH,
        log_dir: Union[str, Path] = DEFAULT_LOG_DIR,
        pacing_seed: Union[int, str, None] = None,
        inbound_echo_pattern: Optional[str] = DEFAULT_INBOUND_ECHO_PATTERN,
        outbound_echo_pattern: Optional[str] = DEFAULT_OUTBOUND_ECHO_PATTERN,
    ) -> None:
        _check_type("host", host, (str,))
        _check_type("port", port, (int,))
        if not 0 < port < 65536:
            raise ValueError(f"port must be in [1, 65535], not {port}")
        _check_type("corpus_path", corpus_path, (str, Path))
        _check_type("log_dir", log_dir, (str, Path))
        _check_type("inbound_echo_pattern", inbound_echo_pattern, (str, type(None)))
        _check_type("outbound_echo_pattern", outbound_echo_pattern, (str, type(None)))

        if pacing_seed == RANDOM_PACING_SEED:
            pacing_seed = None
        _check_type("pacing_seed", pacing_seed, (int, type(None)))
        if pacing_seed is not None and not 0 <= pacing_seed < PACING_SEED_BOUND:
            raise ValueError(f"pacing_seed must be in [0, {PACING_SEED_BOUND}), not {pacing_seed}")

        for name, pattern in [
            ("inbound_echo_pattern", inbound_echo_pattern),
            ("outbound_echo_pattern", outbound_echo_pattern),
        ]:
            if pattern:
                try:
                    re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"{name} is not a valid regex: {e}") from e

        self.host = host
        self.port = port
        self.corpus_path = Path(corpus_path)
        self.log_dir = Path(log_dir)
        self.pacing_seed: Optional[int] = pacing_seed
        self.inbound_echo_pattern = inbound_echo_pattern
        self.outbound_echo_pattern = outbound_echo_pattern

    @property
    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)

    def updated(self, **overrides: Any) -> FuzzerConfig:
        """
        Returns a copy with the given attributes changed.

        Overrides that are None are ignored, so that unset command line options keep
        the values from the config file. To go back to a random pacing seed, pass
        pacing_seed=RANDOM_PACING_SEED.
        """
        values = vars(self).copy()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return FuzzerConfig(**values)


def _check_type(name: str, value: Any, types: Tuple[type, ...]) -> None:
    # bool is a subclass of int, but "port": true is still a mistake
    if isinstance(value, bool) or not isinstance(value, types):
        expected = " or ".join("null" if t is type(None) else t.__name__ for t in types)
        raise ValueError(f"{name} should be {expected}, not {value!r}")


def get_config_from_json(path: Union[str, Path, None] = None) -> FuzzerConfig:
    """
    Loads settings from a JSON file, by default DEFAULT_CONFIG_PATH.

    Returns the defaults if the file is not found.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    try:
        with open(path, "r") as file:
            content: Dict[str, Any] = json.load(file)
    except FileNotFoundError:
        log.debug("No config file at %s, using defaults", path)
        return FuzzerConfig()

    if not isinstance(content, dict):
        raise ValueError(f"{path} should contain a JSON object")

    unknown_keys = set(content) - set(vars(FuzzerConfig()))
    if unknown_keys:
        raise ValueError(f"unknown keys in {path}: {', '.join(sorted(unknown_keys))}")

    return FuzzerConfig(**content)
