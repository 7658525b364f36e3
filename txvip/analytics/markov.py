import math
from dataclasses import dataclass, field
from typing import Sequence

from txvip.analytics.stats import binom_cdf, entropy_binary
from txvip.core.types import Label, TAI, XIU


@dataclass
class MarkovForecast:
    prob_high: float
    coverage: int
    trace: list[str] = field(default_factory=list)

    @property
    def info(self) -> str:
        if not self.trace:
            return 'Markov: no matching prefix'
        more = ',...' if len(self.trace) > 6 else ''
        return f"Markov[{','.join(self.trace[:6])}{more}]"


@dataclass
class MarkovStats:
    transition: list[list[float]]
    counts: list[list[int]]
    last_label: str | None
    p_value_row: dict[str, float]
    entropy: float


def _empty_counts() -> dict[str, int]:
    return {TAI: 0, XIU: 0}


class MarkovEngine:
    """Order-k prefix -> next-outcome counts for k = 1..max_order.

    rebuild(H) and update_incremental() replayed over H from empty yield the
    same tables. Incremental counts are never decremented, so rounds evicted
    from the retained window keep contributing until the next rebuild.
    """

    def __init__(self, max_order: int = 12, alpha: float = 1.0):
        self.K = max_order
        self.a = alpha
        self.tables: dict[int, dict[str, dict[str, int]]] = {}
        self.reset()

    def reset(self):
        self.tables = {k: {} for k in range(1, self.K + 1)}

    def _bump(self, k: int, prefix: str, nxt: Label):
        row = self.tables[k].setdefault(prefix, _empty_counts())
        row[nxt] += 1

    def rebuild(self, labels: Sequence[Label]):
        self.reset()
        seq = ''.join(labels)
        for k in range(1, self.K + 1):
            for i in range(len(seq) - k):
                self._bump(k, seq[i:i+k], seq[i+k])

    def update_incremental(self, labels: Sequence[Label]):
        """Count the transition into the last element of `labels`."""
        seq = ''.join(labels)
        n = len(seq)
        for k in range(1, self.K + 1):
            if n > k:
                self._bump(k, seq[-(k+1):-1], seq[-1])

    def predict(self, labels: Sequence[Label]) -> MarkovForecast:
        seq = ''.join(labels)
        if len(seq) < 2:
            return MarkovForecast(0.5, 0)
        agg_p = agg_w = 0.0
        cover = 0
        trace = []
        for k in range(1, self.K + 1):
            if len(seq) <= k:
                continue
            row = self.tables[k].get(seq[-k:])
            if not row:
                continue
            c_t, c_x = row[TAI], row[XIU]
            total = c_t + c_x
            if not total:
                continue
            w = k * math.log2(1 + total)
            agg_p += (c_t / total) * w
            agg_w += w
            cover += total
            trace.append(f'k={k}:{c_t}/{total}T')
        if agg_w == 0:
            return MarkovForecast(0.5, 0)
        return MarkovForecast(agg_p / agg_w, cover, trace)

    def stats(self, labels: Sequence[Label]) -> MarkovStats:
        """Order-1 transition summary over the retained window."""
        C = self.tables[1]
        row_t = C.get(TAI, _empty_counts())
        row_x = C.get(XIU, _empty_counts())
        pTT = (row_t[TAI] + self.a) / (row_t[TAI] + row_t[XIU] + 2*self.a)
        pXT = (row_x[TAI] + self.a) / (row_x[TAI] + row_x[XIU] + 2*self.a)
        nT = sum(1 for v in labels if v == TAI)
        H = entropy_binary(nT / len(labels)) if labels else 0.0
        # p-values per row vs 0.5
        pvals = {}
        for i, row in ((TAI, row_t), (XIU, row_x)):
            n = row[TAI] + row[XIU]
            k = max(row[TAI], row[XIU])
            if n == 0:
                pvals[i] = 1.0
            else:
                pv = 2 * min(binom_cdf(k, n, 0.5), 1 - binom_cdf(k-1, n, 0.5))
                pvals[i] = max(min(pv, 1.0), 0.0)
        return MarkovStats(
            transition=[[pTT, 1 - pTT], [pXT, 1 - pXT]],
            counts=[[row_t[TAI], row_t[XIU]], [row_x[TAI], row_x[XIU]]],
            last_label=labels[-1] if labels else None,
            p_value_row=pvals,
            entropy=H,
        )
