import random

import numpy as np
import pytest

from txvip.analytics.ensemble import ForecastEngine, kelly_fraction
from txvip.analytics.rules import RuleContext
from txvip.analytics.signatures import build_signature_library
from txvip.core.types import EngineNotReady, Snapshot


def make_engine(seed=0):
    return ForecastEngine(library=build_signature_library(random.Random(seed)),
                          rng=random.Random(seed), np_rng=np.random.default_rng(seed),
                          mc_sims=1000)


def make_snapshot(pattern, dice=None):
    snap = Snapshot()
    for i, y in enumerate(pattern):
        d = dice or ((6, 5, 4) if y == 'T' else (1, 2, 3))
        snap.labels.append(y)
        snap.dice.append(d)
        snap.totals.append(sum(d))
        snap.round_ids.append(1000 + i)
    return snap


def test_not_ready_without_history():
    with pytest.raises(EngineNotReady):
        make_engine().forecast(Snapshot(), RuleContext())


def test_forecast_shape():
    rng = random.Random(4)
    snap = make_snapshot(''.join(rng.choice('TX') for _ in range(80)))
    eng = make_engine()
    eng.markov.rebuild(snap.labels)
    fc = eng.forecast(snap, RuleContext())
    assert fc.label in ('T', 'X')
    assert 55 <= fc.confidence <= 99
    assert fc.confidence_text.endswith('%')
    assert 0.01 <= fc.probability <= 0.99
    assert len(fc.diagnostics['experts']) == 20
    assert 'Final:' in fc.rationale and 'Experts (20)' in fc.rationale
    assert fc.diagnostics['kelly_fraction'] == pytest.approx(kelly_fraction(fc.probability))


def test_rule_engine_runs_once_per_forecast():
    snap = make_snapshot('TTTTT', dice=(6, 6, 6))
    eng = make_engine()
    eng.markov.rebuild(snap.labels)
    ctx = RuleContext()
    fc = eng.forecast(snap, ctx)
    assert ctx.break_tried_high is True
    assert fc.diagnostics['self_learn']['confidence'] == 80
    assert fc.diagnostics['pattern']['labels'].count(fc.diagnostics['self_learn']['reason']) == 1
    fc = eng.forecast(snap, ctx)
    assert fc.diagnostics['self_learn']['confidence'] == 90


def test_single_round_history():
    snap = make_snapshot('X')
    fc = make_engine().forecast(snap, RuleContext())
    assert fc.diagnostics['markov']['coverage'] == 0
    assert fc.diagnostics['self_learn']['rule'] == 'fallback'
