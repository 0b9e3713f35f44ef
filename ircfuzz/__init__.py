"""Black-box fuzzer for IRC servers."""

IRCFUZZ_VERSION = "0.0.1"
