import math
from dataclasses import dataclass, field
from math import comb
from typing import Sequence

from txvip.core.types import Label, TAI


def binom_cdf(k: int, n: int, p: float) -> float:
    # inclusive CDF: P(X <= k)
    if n <= 0:
        return 1.0
    s = 0.0
    for i in range(0, k+1):
        s += comb(n, i) * (p**i) * ((1-p)**(n-i))
    return min(max(s, 0.0), 1.0)


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def entropy_binary(p: float) -> float:
    if p <= 0 or p >= 1:
        return 0.0
    return -(p * math.log2(p) + (1 - p) * math.log2(1 - p))


def softmax2(s_t: float, s_x: float, scale: float = 12.0) -> float:
    # shift by the max so large tallies do not overflow exp()
    m = max(s_t, s_x)
    e_t = math.exp((s_t - m) / scale)
    e_x = math.exp((s_x - m) / scale)
    return e_t / (e_t + e_x)


def high_share(labels: Sequence[Label]) -> float:
    if not labels:
        return 0.5
    return sum(1 for y in labels if y == TAI) / len(labels)


@dataclass(frozen=True)
class FrequencyEstimate:
    prob: float
    n: int
    notes: list[str] = field(default_factory=list)


def local_trend(labels: Sequence[Label], lookbacks=(10, 20, 50)) -> FrequencyEstimate:
    if not labels:
        return FrequencyEstimate(0.5, 0)
    agg_p = agg_w = 0.0
    notes = []
    for lb in lookbacks:
        m = min(lb, len(labels))
        p = high_share(labels[-m:])
        w = math.log2(1 + m)
        agg_p += p * w
        agg_w += w
        if p > 0.7:
            notes.append(f'last {lb}: Tài skewed ({p*100:.1f}%), Xỉu may follow')
        elif p < 0.3:
            notes.append(f'last {lb}: Xỉu skewed ({(1-p)*100:.1f}%), Tài may follow')
    return FrequencyEstimate(agg_p / agg_w if agg_w > 0 else 0.5, len(labels), notes)


def global_freq(labels: Sequence[Label]) -> FrequencyEstimate:
    if not labels:
        return FrequencyEstimate(0.5, 0)
    p = high_share(labels)
    note = 'Tài dominant' if p > 0.6 else 'Xỉu dominant' if p < 0.4 else 'balanced'
    return FrequencyEstimate(p, len(labels), [note])
