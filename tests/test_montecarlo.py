import numpy as np

from txvip.analytics.montecarlo import face_counts, monte_carlo

def test_all_sixes():
    out = monte_carlo([(6, 6, 6)] * 1000, sims=2000, rng=np.random.default_rng(0))
    assert out.prob_high > 0.99
    assert out.confidence == 98

def test_uniform_prior_without_history():
    out = monte_carlo([], sims=5000, rng=np.random.default_rng(1))
    assert 0.45 < out.prob_high < 0.55
    assert 20 <= out.confidence <= 98

def test_malformed_faces_become_one():
    counts = face_counts([(0, 7, 'x'), None, (2,)])
    assert counts[:, 0].tolist() == [2.0, 2.0, 2.0]
    assert counts.sum() == 18 + 3

def test_reason_mentions_sims():
    out = monte_carlo([(1, 2, 3)], sims=100, rng=np.random.default_rng(2))
    assert '100 sims' in out.reason
