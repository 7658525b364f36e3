from dataclasses import dataclass
from typing import Sequence

from txvip.analytics.stats import clamp, high_share
from txvip.core.types import Call, Label, TAI, XIU


@dataclass
class BayesForecast:
    call: Call
    post_high: float
    post_low: float


def bayes_predict(labels: Sequence[Label], feature_lens=(4, 6, 8)) -> BayesForecast:
    """Average Laplace-smoothed posteriors over several trailing-feature lengths."""
    if len(labels) < 3:
        return BayesForecast(Call(TAI, 50, 'Bayes: insufficient data'), 0.5, 0.5)
    seq = ''.join(labels)
    prior_t = high_share(labels)
    prior_x = 1 - prior_t
    agg_t = agg_x = 0.0
    for flen in feature_lens:
        L = min(flen, len(seq) - 1)
        feature = seq[-L:]
        n_t = n_x = 0
        for i in range(len(seq) - L):
            if seq[i:i+L] == feature:
                if seq[i+L] == TAI:
                    n_t += 1
                else:
                    n_x += 1
        like_t = (n_t + 1) / (n_t + n_x + 2)
        like_x = (n_x + 1) / (n_t + n_x + 2)
        post_t = like_t * (prior_t or 0.5)
        post_x = like_x * (prior_x or 0.5)
        evidence = (post_t + post_x) or 1
        agg_t += post_t / evidence
        agg_x += post_x / evidence
    post_t = agg_t / len(feature_lens)
    post_x = agg_x / len(feature_lens)
    side = TAI if post_t >= post_x else XIU
    conf = clamp(round(max(0.5, abs(post_t - post_x)) * 100), 50, 99)
    why = f'Bayes multi-len: P(T|feat)={post_t*100:.1f}% P(X|feat)={post_x*100:.1f}%'
    return BayesForecast(Call(side, conf, why), post_t, post_x)
