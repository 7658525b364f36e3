from dataclasses import dataclass
from typing import Sequence

import numpy as np

from txvip.analytics.stats import clamp
from txvip.core.types import HIGH_THRESHOLD
from txvip.core.validation import sanitize_die


@dataclass
class MonteCarloForecast:
    prob_high: float
    confidence: int
    sims: int

    @property
    def reason(self) -> str:
        return f'MonteCarlo {self.sims} sims, P(T)={self.prob_high*100:.1f}%'


def face_counts(dice_history: Sequence[Sequence[int]]) -> np.ndarray:
    """3x6 per-position face counts, Laplace-smoothed (every face starts at 1)."""
    counts = np.ones((3, 6), dtype=float)
    for d in dice_history:
        if d is None or len(d) < 3:
            continue
        for pos in range(3):
            counts[pos, sanitize_die(d[pos]) - 1] += 1
    return counts


def monte_carlo(dice_history: Sequence[Sequence[int]], sims: int = 5000,
                rng: np.random.Generator | None = None) -> MonteCarloForecast:
    rng = rng if rng is not None else np.random.default_rng()
    counts = face_counts(dice_history)
    cdfs = np.cumsum(counts / counts.sum(axis=1, keepdims=True), axis=1)
    faces = np.empty((3, sims), dtype=int)
    for pos in range(3):
        u = rng.random(sims)
        # inverse CDF; clip guards the last bucket against float round-off
        faces[pos] = np.minimum(np.searchsorted(cdfs[pos], u, side='left'), 5) + 1
    totals = faces.sum(axis=0)
    p = float(np.count_nonzero(totals >= HIGH_THRESHOLD)) / sims
    conf = round(clamp(abs(p - 0.5) * 2 * 100, 20, 98))
    return MonteCarloForecast(p, conf, sims)
