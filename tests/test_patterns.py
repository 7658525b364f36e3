from txvip.analytics.patterns import (NO_CLEAR_PATTERN, describe_runs, match_bridges,
                                      ngram_match, pattern_votes, runs, sliding_window_votes)
from txvip.analytics.signatures import build_signature_library
from txvip.core.types import Call
import random

def test_runs():
    assert runs("TTTXX", k=3) == [(0,2,'T',3)]
    assert runs("", k=1) == []

def test_describe_runs():
    assert describe_runs("TTXXXT") == "cầu 2 3 1"
    assert describe_runs("") == ""

def test_sliding_window_votes():
    assert sliding_window_votes(list("TXTXT")) == {'T': 0, 'X': 2}
    assert sliding_window_votes(list("T")) == {'T': 0, 'X': 0}

def test_ngram_alternation():
    out = ngram_match(list("TXTXTXTX"))
    assert out.call.label == 'T' and out.call.confidence == 90
    assert [m.length for m in out.matches] == [3, 4, 5, 6]

def test_ngram_short_history():
    out = ngram_match(list("TX"))
    assert out.call.confidence == 50 and out.matches == []
    assert out.call.prob_high == 0.5

def test_bridges():
    names = [h.name for h in match_bridges("XTTTTTX")]
    assert 'gãy-5' in names and '4-1' in names
    assert [h.is_break for h in match_bridges("XTTTTTX") if h.name == 'gãy-5'] == [True]
    assert match_bridges("TX") == []

def test_pattern_votes_no_clear_pattern():
    lib = build_signature_library(random.Random(0))
    pv = pattern_votes(list("TX"), lib)
    assert pv.labels == [NO_CLEAR_PATTERN] and pv.clear_count == 0
    assert pv.votes == {'T': 0.0, 'X': 0.0}

def test_pattern_votes_streak_and_rule():
    lib = build_signature_library(random.Random(0))
    pv = pattern_votes(list("XTTTT"), lib, Call('X', 80, 'try breaking'))
    assert 'streak T (4)' in pv.labels and 'break after 4 T' in pv.labels
    assert 'try breaking' in pv.labels
    # streak 14.5 to T; break 15 + rule 28 to X, plus bridge hits for X
    assert pv.votes['T'] >= 14.5 and pv.votes['X'] >= 43.0
