from dataclasses import dataclass, field
from typing import Iterable, Sequence

from txvip.analytics.stats import clamp
from txvip.core.types import Call, Label, TAI, XIU, current_streak, invert

NO_CLEAR_PATTERN = 'no clear pattern'

# named bridge shapes ("cầu"); names starting with "gãy" are break motifs
BRIDGE_MOTIFS: dict[str, tuple[str, ...]] = {
    '1-1': ('TXTX', 'XTXT', 'TXTXT', 'XTXTX', 'TXTXTX', 'XTXTXT'),
    '2-2': ('TTXXTT', 'XXTTXX', 'TTXXTTXX', 'XXTTXXTT'),
    '3-3': ('TTTXXX', 'XXXTTT', 'TTTXXXT', 'XXXTTTX'),
    '1-2-3': ('TXXTTT', 'XTTXXX', 'TXXTTTXX', 'XTTXXXT'),
    '3-2-1': ('TTTXXT', 'XXXTTX', 'TTTXXTT', 'XXXTTXX'),
    '1-2-1': ('TXXT', 'XTTX', 'TXXTT', 'XTTXX'),
    '2-1-1-2': ('TTXTXX', 'XXTXTT', 'TTXTXXTT', 'XXTXTTXX'),
    '1-2': ('TXX', 'XTT'),
    '2-1': ('TTX', 'XXT'),
    '3-1-2': ('TTTXTT', 'XXXTXX'),
    '4-1': ('TTTTX', 'XXXXT'),
    '1-3-2': ('TXXXTT', 'XTTTXX'),
    '2-3': ('TTXXX', 'XXTTT'),
    'gãy-4': ('TTTTX', 'XXXXT'),
    'gãy-5': ('TTTTTX', 'XXXXXT'),
    'gãy-6': ('TTTTTTX', 'XXXXXXT'),
}


def runs(labels: Iterable[str], k: int = 3):
    labels = list(labels)
    out = []
    if not labels:
        return out
    cur = labels[0]
    start = 0
    for i in range(1, len(labels)):
        if labels[i] == cur:
            continue
        # close segment
        seg_len = i - start
        if seg_len >= k:
            out.append((start, i-1, cur, seg_len))
        cur = labels[i]
        start = i
    # tail
    seg_len = len(labels) - start
    if seg_len >= k:
        out.append((start, len(labels)-1, cur, seg_len))
    return out


def describe_runs(pattern: str) -> str:
    """'TTXXXT' -> 'cầu 2 3 1'."""
    if not pattern:
        return ''
    return 'cầu ' + ' '.join(str(r[3]) for r in runs(pattern, k=1))


def is_break_motif(name: str) -> bool:
    return name.startswith('gãy')


@dataclass(frozen=True)
class BridgeHit:
    name: str
    motif: str

    @property
    def is_break(self) -> bool:
        return is_break_motif(self.name)


def match_bridges(pattern: str) -> list[BridgeHit]:
    return [BridgeHit(name, m)
            for name, motifs in BRIDGE_MOTIFS.items()
            for m in motifs if pattern.endswith(m)]


def sliding_window_votes(labels: Sequence[Label], max_window: int = 8) -> dict[str, int]:
    seq = ''.join(labels)
    n = len(seq)
    votes = {TAI: 0, XIU: 0}
    for w in range(2, max_window + 1):
        if n <= w:
            continue
        recent = seq[-w:]
        for i in range(n - w):
            if seq[i:i+w] == recent:
                votes[seq[i+w]] += 1
    return votes


@dataclass(frozen=True)
class NgramMatch:
    length: int
    pattern: str
    count_t: int
    count_x: int

    @property
    def total(self) -> int:
        return self.count_t + self.count_x

    @property
    def p_high(self) -> float:
        return self.count_t / self.total


@dataclass
class NgramForecast:
    call: Call
    matches: list[NgramMatch] = field(default_factory=list)


def ngram_match(labels: Sequence[Label], min_len: int = 3, max_len: int = 6) -> NgramForecast:
    if len(labels) < min_len:
        return NgramForecast(Call(TAI, 50, 'N-gram: insufficient data'))
    seq = ''.join(labels)
    matches = []
    vote = {TAI: 0.0, XIU: 0.0}
    for L in range(min_len, max_len + 1):
        if len(seq) < L:
            continue
        tail = seq[-L:]
        c_t = c_x = 0
        for i in range(len(seq) - L):
            if seq[i:i+L] == tail:
                if seq[i+L] == TAI:
                    c_t += 1
                else:
                    c_x += 1
        m = NgramMatch(L, tail, c_t, c_x)
        if m.total:
            conf = clamp(50 + m.total * 5, 50, 90)
            matches.append(m)
            vote[TAI if m.p_high >= 0.5 else XIU] += m.total * conf / 100
    side = TAI if vote[TAI] >= vote[XIU] else XIU
    spread = abs(vote[TAI] - vote[XIU]) / ((vote[TAI] + vote[XIU]) or 1)
    conf = clamp(50 + spread * 100, 50, 90)
    detail = ', '.join(f'{m.pattern}:{m.p_high:.2f}' for m in matches) or 'no match'
    return NgramForecast(Call(side, conf, f'N-gram {detail}'), matches)


@dataclass
class PatternVotes:
    labels: list[str]
    votes: dict[str, float]

    @property
    def clear_count(self) -> int:
        return sum(1 for x in self.labels if x != NO_CLEAR_PATTERN)


def pattern_votes(labels: Sequence[Label], library, rule_call: Call | None = None) -> PatternVotes:
    """Tally qualitative pattern evidence into a {T, X} vote.

    `rule_call` is the verdict of the rule engine for this same request; it is
    passed in rather than re-evaluated so the engine's side effects happen once.
    """
    notes: list[str] = []
    vote = {TAI: 0.0, XIU: 0.0}
    if not labels:
        return PatternVotes(['no data'], vote)
    pattern = ''.join(labels)

    sig = library.lookup(pattern)
    if sig:
        notes.append(sig.rationale)
        vote[sig.forecast] += sig.confidence * 0.6

    st = current_streak(labels)
    if st.length >= 3:
        notes.append(f'streak {st.side} ({st.length})')
        vote[st.side] += min(12.0 + (st.length - 3) * 2.5, 28.0)
        if st.length >= 4:
            notes.append(f'break after {st.length} {st.side}')
            vote[invert(st.side)] += 15.0 + (st.length - 4) * 5.0

    for hit in match_bridges(pattern):
        notes.append(f'cầu {hit.name}')
        vote[invert(labels[-1])] += 20.0 if hit.is_break else 18.0

    sw = sliding_window_votes(labels, 8)
    vote[TAI] += sw[TAI] * 2.0
    vote[XIU] += sw[XIU] * 2.0
    if sw[TAI] + sw[XIU] > 0:
        notes.append(f'sliding window {sw[TAI]}/{sw[XIU]}')

    if rule_call is not None:
        notes.append(rule_call.reason or 'self-learn')
        vote[rule_call.label] += rule_call.confidence * 0.35

    return PatternVotes(notes or [NO_CLEAR_PATTERN], vote)
