import random
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Sequence

from txvip.analytics.stats import clamp, entropy_binary, high_share
from txvip.core.types import Call, Label, TAI, XIU, current_streak, invert, label_of_total


@dataclass
class PanelInput:
    labels: Sequence[Label]
    dice: Sequence[Sequence[int]] = ()
    totals: Sequence[int] = ()
    round_id: int | None = None
    rng: random.Random = field(default_factory=random.Random)

    @property
    def last(self) -> Label:
        return self.labels[-1] if self.labels else TAI

    @property
    def code(self) -> str:
        return ''.join(self.labels)


@dataclass(frozen=True)
class ExpertVote:
    name: str
    call: Call


# ----- outcome-sequence experts -----

def cau_bet(p: PanelInput) -> Call:
    st = current_streak(p.labels)
    if st.length >= 4:
        return Call(invert(st.side), 78, f'bệt {st.side} {st.length}')
    return Call(p.last, 60, 'no strong bệt')


def _alternating(p: PanelInput, n: int, conf: float) -> Call:
    if len(p.labels) < n:
        return Call(p.last, 50, 'not enough')
    if re.fullmatch(r'(TX)+|(XT)+', p.code[-n:]):
        return Call(invert(p.last), conf, f'alternating x{n}')
    return Call(p.last, 48, 'none')


def cau_dao(p: PanelInput) -> Call:
    return _alternating(p, 6, 76)


def cau_dao_long(p: PanelInput) -> Call:
    return _alternating(p, 8, 78)


def cau_312(p: PanelInput) -> Call:
    if p.code.endswith('TTTX'):
        return Call(TAI, 72, 'TTTX')
    if p.code.endswith('XXXT'):
        return Call(XIU, 72, 'XXXT')
    return Call(p.last, 50, 'none')


def cau_321(p: PanelInput) -> Call:
    if p.code.endswith('TTTXX'):
        return Call(TAI, 75, 'TTTXX -> T')
    if p.code.endswith('XXXTT'):
        return Call(XIU, 75, 'XXXTT -> X')
    return Call(p.last, 50, 'none')


def cau_sonha(p: PanelInput) -> Call:
    if not p.labels:
        return Call(p.last, 50, 'not enough')
    c_t = sum(1 for y in p.labels[-10:] if y == TAI)
    if c_t >= 7:
        return Call(XIU, 68, 'too many T')
    if c_t <= 3:
        return Call(TAI, 68, 'too many X')
    return Call(p.last, 50, 'neutral')


def cau_bias_near(p: PanelInput) -> Call:
    if not p.labels:
        return Call(p.last, 50, 'not enough')
    c_t = sum(1 for y in p.labels[-10:] if y == TAI)
    side = TAI if c_t >= 6 else XIU if c_t <= 4 else p.last
    return Call(side, clamp(50 + abs(c_t - 5) * 5, 45, 90), f'last10_T={c_t}')


def cau_entropy(p: PanelInput) -> Call:
    if not p.labels:
        return Call(p.last, 50, 'no data')
    if entropy_binary(high_share(p.labels)) > 0.8:
        return Call(TAI, 55, 'high entropy, bias to T')
    return Call(XIU, 55, 'low entropy, bias to X')


def cau_streak_prob(p: PanelInput) -> Call:
    st = current_streak(p.labels)
    if st.side is None:
        return Call(p.last, 50, 'no data')
    if st.length >= 5:
        return Call(invert(st.side), 80, 'long streak, expect break')
    return Call(st.side, 70, 'continue streak')


def cau_opposite(p: PanelInput) -> Call:
    if not p.labels:
        return Call(p.last, 50, 'no data')
    return Call(invert(p.last), 55, 'opposite to last for diversity')


def cau_random(p: PanelInput) -> Call:
    # calibration control: carries no information on purpose
    return Call(p.rng.choice((TAI, XIU)), 50, 'random for ensemble diversity')


# ----- dice / totals experts -----

def cau_dice_repeat(p: PanelInput) -> Call:
    if len(p.dice) < 3:
        return Call(p.last, 50, 'not enough')
    top, n = Counter(tuple(d) for d in p.dice[-50:]).most_common(1)[0]
    combo = '-'.join(map(str, top))
    return Call(label_of_total(sum(top)), 65, f'common {combo} x{n}')


def cau_song(p: PanelInput) -> Call:
    if len(p.totals) < 6:
        return Call(p.last, 50, 'not enough')
    last5 = list(p.totals[-5:])
    up = sum(1 for a, b in zip(last5, last5[1:]) if b > a)
    down = sum(1 for a, b in zip(last5, last5[1:]) if b < a)
    if up >= 3:
        return Call(TAI, 66, 'trending up')
    if down >= 3:
        return Call(XIU, 66, 'trending down')
    return Call(p.last, 50, 'neutral')


def cau_mean_reversion(p: PanelInput) -> Call:
    if not p.totals:
        return Call(p.last, 50, 'no data')
    last = p.totals[-1]
    if last >= 14:
        return Call(XIU, 65, 'high total, expect reversion')
    if last <= 7:
        return Call(TAI, 65, 'low total, expect reversion')
    return Call(TAI, 50, 'normal total')


def cau_variance(p: PanelInput) -> Call:
    if len(p.totals) < 2:
        return Call(p.last, 50, 'no data')
    totals = p.totals[-10:]
    mean = sum(totals) / len(totals)
    var = sum((t - mean) ** 2 for t in totals) / len(totals)
    if var > 10:
        return Call(TAI, 60, 'high variance')
    if var < 5:
        return Call(XIU, 60, 'low variance')
    return Call(TAI, 50, 'normal variance')


def _die_bias(pos: int) -> Callable[[PanelInput], Call]:
    def expert(p: PanelInput) -> Call:
        if not p.dice:
            return Call(p.last, 50, 'no data')
        counts = Counter(d[pos] for d in p.dice if 1 <= d[pos] <= 6)
        if not counts:
            return Call(p.last, 50, 'no data')
        face, n = max(sorted(counts.items()), key=lambda kv: kv[1])
        if n / len(p.dice) > 0.25:
            return Call(TAI if face > 3 else XIU, 62, f'die{pos + 1} bias to {face}')
        return Call(TAI, 50, 'no bias')
    expert.__name__ = f'cau_dice{pos + 1}_bias'
    return expert


def cau_total_parity(p: PanelInput) -> Call:
    if not p.totals:
        return Call(p.last, 50, 'no data')
    even = p.totals[-1] % 2 == 0
    return Call(TAI if even else XIU, 55, 'even total' if even else 'odd total')


def cau_round_parity(p: PanelInput) -> Call:
    if p.round_id is None:
        return Call(p.last, 50, 'no round id')
    return Call(TAI if p.round_id % 2 == 0 else XIU, 52, 'round id parity')


EXPERTS: tuple[tuple[str, Callable[[PanelInput], Call]], ...] = (
    ('cau_bet', cau_bet),
    ('cau_dao', cau_dao),
    ('cau_312', cau_312),
    ('cau_sonha', cau_sonha),
    ('cau_dice_repeat', cau_dice_repeat),
    ('cau_song', cau_song),
    ('cau_bias_near', cau_bias_near),
    ('cau_mean_reversion', cau_mean_reversion),
    ('cau_variance', cau_variance),
    ('cau_entropy', cau_entropy),
    ('cau_streak_prob', cau_streak_prob),
    ('cau_dao_long', cau_dao_long),
    ('cau_321', cau_321),
    ('cau_dice1_bias', _die_bias(0)),
    ('cau_dice2_bias', _die_bias(1)),
    ('cau_dice3_bias', _die_bias(2)),
    ('cau_total_parity', cau_total_parity),
    ('cau_round_parity', cau_round_parity),
    ('cau_opposite', cau_opposite),
    ('cau_random', cau_random),
)


def run_panel(p: PanelInput) -> list[ExpertVote]:
    return [ExpertVote(name, fn(p)) for name, fn in EXPERTS]
