"""Runs every estimator over one history snapshot and merges them."""
import logging
import random
from dataclasses import dataclass, field

import numpy as np

from txvip.analytics.bayes import bayes_predict
from txvip.analytics.combiner import CombinerInput, Weights, combine
from txvip.analytics.experts import PanelInput, run_panel
from txvip.analytics.markov import MarkovEngine
from txvip.analytics.montecarlo import monte_carlo
from txvip.analytics.patterns import ngram_match, pattern_votes
from txvip.analytics.rules import RuleContext, RuleEngine, RuleInput
from txvip.analytics.signatures import SignatureLibrary, default_library
from txvip.analytics.stats import global_freq, local_trend
from txvip.core.types import Call, EngineNotReady, Snapshot

log = logging.getLogger(__name__)


def kelly_fraction(p: float) -> float:
    return abs(p - 0.5) * 2


def capital_advice(p: float) -> str:
    return f'Kelly: stake {kelly_fraction(p) * 100:.1f}% of bankroll'


@dataclass
class Forecast:
    label: str
    confidence: float
    probability: float
    rationale: str
    diagnostics: dict = field(default_factory=dict)

    @property
    def confidence_text(self) -> str:
        return f'{self.confidence:.1f}%'


class ForecastEngine:
    def __init__(self, markov: MarkovEngine | None = None,
                 library: SignatureLibrary | None = None,
                 rules: RuleEngine | None = None,
                 weights: Weights = Weights(),
                 conf_min: float = 55.0, conf_max: float = 99.0,
                 mc_sims: int = 5000,
                 rng: random.Random | None = None,
                 np_rng: np.random.Generator | None = None):
        self.markov = markov or MarkovEngine()
        self.library = library or default_library()
        self.rules = rules or RuleEngine()
        self.weights = weights
        self.conf_min = conf_min
        self.conf_max = conf_max
        self.mc_sims = mc_sims
        self.rng = rng or random.Random()
        self.np_rng = np_rng if np_rng is not None else np.random.default_rng()

    def forecast(self, snap: Snapshot, ctx: RuleContext) -> Forecast:
        if not snap.labels:
            raise EngineNotReady('no rounds available yet')
        labels = snap.labels

        verdict = self.rules.evaluate(RuleInput(
            labels, snap.current_dice, snap.current_total, self.library, ctx))
        rule_call = verdict.call if verdict else None
        ai = rule_call or Call(labels[-1], 50, 'self-learn: no data')

        pv = pattern_votes(labels, self.library, rule_call)
        mk = self.markov.predict(labels)
        local = local_trend(labels)
        glob = global_freq(labels)
        sig = self.library.lookup(snap.pattern)
        sig_call = Call(sig.forecast, sig.confidence, sig.rationale) if sig else None
        bay = bayes_predict(labels)
        mc = monte_carlo(snap.dice, self.mc_sims, self.np_rng)
        ng = ngram_match(labels)
        experts = run_panel(PanelInput(labels, snap.dice, snap.totals,
                                       snap.current_round_id, self.rng))

        merged = combine(CombinerInput(
            prob_markov=mk.prob_high,
            pattern_votes=pv.votes,
            prob_local=local.prob,
            prob_global=glob.prob,
            prob_ai=ai.prob_high,
            prob_signature=sig_call.prob_high if sig_call else 0.5,
            prob_bayes=bay.post_high,
            prob_montecarlo=mc.prob_high,
            prob_ngram=ng.call.prob_high,
            coverage_markov=mk.coverage,
            n_local=local.n,
            n_global=glob.n,
            clear_labels=pv.clear_count,
            experts=[e.call for e in experts],
        ), self.weights, self.conf_min, self.conf_max)
        log.debug('forecast %s p=%.3f conf=%.2f rule=%s', merged.label,
                  merged.probability, merged.confidence, verdict.rule if verdict else None)

        advice = capital_advice(merged.probability)
        rationale = (
            f"Patterns: {'; '.join(pv.labels)}. "
            f'Markov:{mk.prob_high*100:.1f}% ({mk.info}). '
            f'Bayes:{bay.post_high*100:.1f}%. '
            f'MonteCarlo:{mc.prob_high*100:.1f}%. '
            f'Signature:{(sig_call.prob_high if sig_call else 0.5)*100:.1f}%. '
            f'AI-self:{ai.prob_high*100:.1f}%. '
            f'N-gram:{ng.call.confidence:.1f}% ({ng.call.reason}). '
            f"Experts (20): {', '.join(f'{e.call.label}({e.call.confidence:g})' for e in experts)}. "
            f'Final: {merged.label} {merged.confidence}%. {advice}'
        )
        diagnostics = {
            'markov': {'prob_high': mk.prob_high, 'coverage': mk.coverage, 'trace': mk.trace},
            'pattern': {'labels': pv.labels, 'votes': pv.votes, 'prob': merged.prob_pattern},
            'local_trend': {'prob': local.prob, 'n': local.n, 'notes': local.notes},
            'global_freq': {'prob': glob.prob, 'n': glob.n, 'notes': glob.notes},
            'self_learn': {'rule': verdict.rule if verdict else None, 'label': ai.label,
                           'confidence': ai.confidence, 'reason': ai.reason},
            'signature': ({'label': sig_call.label, 'confidence': sig_call.confidence,
                           'reason': sig_call.reason} if sig_call else None),
            'bayes': {'label': bay.call.label, 'confidence': bay.call.confidence,
                      'post_high': bay.post_high, 'post_low': bay.post_low},
            'montecarlo': {'prob_high': mc.prob_high, 'confidence': mc.confidence, 'sims': mc.sims},
            'ngram': {'label': ng.call.label, 'confidence': ng.call.confidence,
                      'matches': [{'pattern': m.pattern, 'total': m.total, 'p_high': m.p_high}
                                  for m in ng.matches]},
            'experts': [{'name': e.name, 'label': e.call.label, 'confidence': e.call.confidence,
                         'reason': e.call.reason} for e in experts],
            'capital_advice': advice,
            'kelly_fraction': kelly_fraction(merged.probability),
        }
        return Forecast(merged.label, merged.confidence, merged.probability, rationale, diagnostics)
