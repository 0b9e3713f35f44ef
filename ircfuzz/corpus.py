"""
The identifier corpus: nicknames and channel names that messages are addressed to.

Nicknames are built in, channel names are read from a newline-delimited UTF-8 file
(one channel per line). Both are stored as tuples so that a corpus can be shared
freely without anyone modifying it.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable, Tuple, Union

from . import randomness

log = logging.getLogger(__name__)

# fmt: off
NICKNAMES: Tuple[str, ...] = (
    "AimHere", "albertito", "amateurhour", "Andrio", "Anerag", "Aniem", "Announcy", "aoei",
    "aosdict", "APic", "ArjanS", "arkoldthos", "askhl", "baloona", "beardy", "Belinnon", "bezaban",
    "bhaak", "bildramer", "Bleem", "bocaneri", "bouquet", "bowerman", "C5OK5Y", "CarlGel",
    "cfricke", "cheekio", "ChrisE", "Chromaryu", "ConductCat", "crumbking", "crummel", "cyphase",
    "Cypir", "ddevault", "deepy", "def_jam", "DiffieHellman", "dimestop", "Dirm", "dom96",
    "Dracunos", "dtype", "e2", "eb0t_", "eggandhull", "eki", "el", "eldritch", "elenmirie__",
    "empty_string", "enkrypt", "evh", "explodes", "f1reflyylmao", "f6k", "fadein", "farfar",
    "Fear__", "FIQ", "fizzie", "francisv`", "friki", "Frogging101", "fstd", "Gaelan",
    "galaxy_knuckles", "ghormoon", "glamas", "GoldenBear_", "greeter", "gregdek", "grumble",
    "Guest8377", "Gustavo6046", "GyroW", "Haitch", "Hansformer", "Heavylobster", "heinrich5991",
    "heredoc", "hierbat", "higuita", "hisacro", "HiSPeed", "Hydroxide", "iamruinous", "icfx",
    "igemnace", "illusion", "inire", "introsp3ctive", "irina|log", "itsblah", "j6p", "jilles",
    "Jira", "johnla", "johnsu01", "jonadab", "Joonaa", "jumpula", "k-man", "K2", "kawzeg", "khoR",
    "Krakhan", "Learath2", "lonjil", "lorimer", "madalu", "MaryHadalittle", "matthewbauer",
    "mauregato", "mekkis", "Menchers", "michagogo", "misha", "miton", "moon-child", "moony",
    "Moult", "mplsCorwin", "Muad", "mud", "mursu", "myfreeweb", "nabru", "namad7", "NAOrsa",
    "Neko-chan_", "nengel", "neunon", "NeuroWinter", "nicole", "Nidan", "NightMonkey", "nkuttler",
    "normen", "noxd", "Nyoxi", "oldlaptop", "panda_", "PavelB", "paxed", "pfn", "Phoul",
    "Pigeonburger", "Pio", "PMunch", "poollovernathan", "port443", "prg318", "programmerq",
    "PyroLagus", "raisse", "rast--", "RaTTuS|BIG", "rebatela", "Renter_", "rodgort", "Rodney",
    "rsarson", "runcible", "ruskie", "s_edrik", "Sabotender", "Schroeder", "Sec", "SegFault",
    "serhei", "sgun", "sigma_g", "skelly", "skyenet", "slondr", "Smiley", "solexx", "specing",
    "spiffytech", "spiffytech192", "starly", "stenno2", "svt", "Tanoc_", "TarrynPellimar",
    "tarzeau", "TAS_2012v", "theokperson", "theorbtwo", "thesquib", "Thisisbilly", "tijara",
    "towo_", "trn", "tungtn_", "tux3", "unsound", "uovobw", "VaderFLAG", "Vejeta", "vent", "winny",
    "Wooble", "Xlbrag", "yeled", "yidhra", "zoid", "zorkian", "zyith", "{Demo}2",)
# fmt: on


class Corpus:
    """Candidate nicknames and channel names. Targets are drawn from both."""

    def __init__(self, nicknames: Iterable[str], channels: Iterable[str]) -> None:
        self.nicknames: Tuple[str, ...] = tuple(nicknames)
        self.channels: Tuple[str, ...] = tuple(channels)
        self.targets: Tuple[str, ...] = self.channels + self.nicknames

        if not self.nicknames:
            raise ValueError("corpus needs at least one nickname")

    def random_nick(self) -> str:
        return randomness.rand_from(self.nicknames)

    def random_target(self) -> str:
        return randomness.rand_from(self.targets)


def read_channels(path: Union[str, Path]) -> Tuple[str, ...]:
    """
    Reads channel names from a file, one per line. Blank lines are skipped.

    Raises FileNotFoundError if the file doesn't exist. Nothing else in the fuzzer
    can do anything useful without a corpus, so this isn't caught anywhere.
    """
    with open(path, "r", encoding="utf-8") as file:
        channels = tuple(line.strip() for line in file if line.strip())
    log.debug("Read %d channels from %s", len(channels), path)
    return channels


def load_corpus(channels_path: Union[str, Path]) -> Corpus:
    return Corpus(NICKNAMES, read_channels(channels_path))


def write_channel_sample(corpus: Corpus, path: Union[str, Path], count: int) -> None:
    """
    Writes count randomly chosen channels (with replacement) to path, one per line.

    Useful for making a shorter channel list out of a huge one.
    """
    if not corpus.channels:
        raise ValueError("corpus has no channels to sample from")

    with open(path, "w", encoding="utf-8") as file:
        for _ in range(count):
            file.write(randomness.rand_from(corpus.channels) + "\n")
    log.info("Wrote %d channels to %s", count, path)
