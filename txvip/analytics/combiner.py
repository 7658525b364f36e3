import math
from dataclasses import dataclass
from typing import Sequence

from txvip.analytics.stats import clamp, entropy_binary, softmax2
from txvip.core.types import Call, TAI, XIU


@dataclass(frozen=True)
class Weights:
    markov: float = 0.20
    pattern: float = 0.20
    local_trend: float = 0.15
    global_freq: float = 0.10
    ai_self_learn: float = 0.10
    signature: float = 0.15
    bayes: float = 0.10
    montecarlo: float = 0.05
    ngram: float = 0.10
    # fixed multipliers
    ai_mult: float = 0.7
    signature_mult: float = 0.8
    ngram_mult: float = 0.6
    expert_nudge: float = 0.05

    @classmethod
    def from_settings(cls, s) -> 'Weights':
        return cls(
            markov=s.w_markov, pattern=s.w_pattern, local_trend=s.w_local_trend,
            global_freq=s.w_global_freq, ai_self_learn=s.w_ai_self_learn,
            signature=s.w_signature, bayes=s.w_bayes, montecarlo=s.w_montecarlo,
            ngram=s.w_ngram,
        )


@dataclass
class CombinerInput:
    prob_markov: float
    pattern_votes: dict[str, float]
    prob_local: float
    prob_global: float
    prob_ai: float
    prob_signature: float
    prob_bayes: float
    prob_montecarlo: float
    prob_ngram: float
    coverage_markov: int
    n_local: int
    n_global: int
    clear_labels: int
    experts: Sequence[Call] = ()


@dataclass(frozen=True)
class Combined:
    label: str
    confidence: float
    probability: float
    prob_pattern: float


def evidence_multiplier(n: int) -> float:
    """0.5 with no evidence, approaching (never exceeding) 1.0 as n grows."""
    return 0.5 + min(0.5, math.log2(1 + n) / 5.0)


def entropy_confidence(p: float) -> float:
    return (1.0 - entropy_binary(p)) * 100.0


def expert_adjustment(experts: Sequence[Call], scale: float = 0.05) -> float:
    # equal-weight sign vote; an expert's confidence only scales its own sign
    if not experts:
        return 0.0
    score = sum((1 if e.label == TAI else -1) * e.confidence / 100 for e in experts)
    return score / len(experts) * scale


def combine(inp: CombinerInput, w: Weights = Weights(),
            conf_min: float = 55.0, conf_max: float = 99.0) -> Combined:
    s_t = inp.pattern_votes.get(TAI, 0.0)
    s_x = inp.pattern_votes.get(XIU, 0.0)
    prob_pattern = 0.5 if s_t == 0 and s_x == 0 else softmax2(s_t, s_x, 12.0)

    sources = (
        (inp.prob_markov, w.markov * evidence_multiplier(inp.coverage_markov)),
        (prob_pattern, w.pattern),
        (inp.prob_local, w.local_trend * evidence_multiplier(inp.n_local)),
        (inp.prob_global, w.global_freq * evidence_multiplier(inp.n_global)),
        (inp.prob_ai, w.ai_self_learn * w.ai_mult),
        (inp.prob_signature, w.signature * w.signature_mult),
        (inp.prob_bayes, w.bayes),
        (inp.prob_montecarlo, w.montecarlo),
        (inp.prob_ngram, w.ngram * w.ngram_mult),
    )
    denom = sum(wt for _, wt in sources) or 1.0
    p = sum(prob * wt for prob, wt in sources) / denom

    if inp.experts:
        p = clamp(p + expert_adjustment(inp.experts, w.expert_nudge), 0.01, 0.99)

    conf = entropy_confidence(p)
    if inp.clear_labels:
        conf *= min(1.15, 1.03 + 0.03 * inp.clear_labels)
    else:
        conf *= 0.98
    conf = clamp(conf + 5.0, conf_min, conf_max)

    return Combined(TAI if p >= 0.5 else XIU, round(conf, 2), p, prob_pattern)
