import math
import random
from dataclasses import dataclass
from functools import lru_cache

from txvip.analytics.patterns import describe_runs
from txvip.core.types import Label, TAI, XIU

LIBRARY_SIZE = 200
LENGTHS = (6, 7, 8, 9, 10)
MOTIFS = (
    'T', 'X', 'TT', 'XX', 'TX', 'XT', 'TTX', 'XTT', 'TXX', 'XXT', 'TXT', 'XTX',
    'TTTX', 'XXXT', 'TXTT', 'XTXX', 'TXTX', 'XTXT', 'TTXX', 'XXTT',
)
MAX_FILLER_ATTEMPTS = 1000


@dataclass(frozen=True)
class SignatureEntry:
    pattern: str
    forecast: Label
    confidence: int
    rationale: str


def flip(s: str) -> str:
    return s.translate(str.maketrans('TX', 'XT'))


def majority(s: str) -> Label:
    return TAI if s.count(TAI) >= math.ceil(len(s) / 2) else XIU


class SignatureLibrary:
    """Fixed table of binary motifs matched against the whole history."""

    def __init__(self, entries: dict[str, SignatureEntry]):
        self._entries = dict(entries)

    def lookup(self, pattern: str) -> SignatureEntry | None:
        return self._entries.get(pattern)

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())


def build_signature_library(rng: random.Random | None = None) -> SignatureLibrary:
    rng = rng or random.Random()
    out: dict[str, SignatureEntry] = {}
    inserted = 0

    def put(key: str, conf: int, why: str):
        nonlocal inserted
        out[key] = SignatureEntry(key, majority(key), conf, why)
        inserted += 1

    for L in LENGTHS:
        for m in MOTIFS:
            if inserted >= LIBRARY_SIZE:
                break
            s = (m * math.ceil(L / len(m)))[:L]
            conf = min(98, 60 + math.floor(s.count(TAI) / L * 40) + (L - 6) * 2)
            put(s, conf, f'signature {s} -> {describe_runs(s)}')
            if inserted >= LIBRARY_SIZE:
                break
            put(flip(s), conf, f'signature flipped {flip(s)}')

    # random filler tail, registered in flip pairs
    i = 0
    while len(out) < LIBRARY_SIZE and i <= MAX_FILLER_ATTEMPTS:
        L = 7 + (i % 4)
        s = ''.join(rng.choice((TAI, XIU)) for _ in range(L))
        if s not in out and flip(s) not in out and len(out) + 2 <= LIBRARY_SIZE:
            conf = 65 + (s.count(TAI) % 10)
            put(s, conf, f'signature gen {s}')
            put(flip(s), conf, f'signature gen {flip(s)}')
        i += 1
    return SignatureLibrary(out)


@lru_cache(maxsize=1)
def default_library() -> SignatureLibrary:
    return build_signature_library()
