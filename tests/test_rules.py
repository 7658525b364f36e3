import random

import pytest

from txvip.analytics.rules import (BridgeRule, LearnedPattern, PatternStat, RuleContext,
                                   RuleEngine, RuleInput)
from txvip.analytics.signatures import build_signature_library


@pytest.fixture(scope="module")
def lib():
    return build_signature_library(random.Random(11))


def evaluate(labels, lib, ctx, dice=(6, 6, 6), total=None):
    total = sum(dice) if total is None else total
    return RuleEngine().evaluate(RuleInput(list(labels), dice, total, lib, ctx))


def test_empty_history_has_no_verdict(lib):
    assert evaluate("", lib, RuleContext()) is None

def test_long_high_streak_breaks_once_then_rides(lib):
    ctx = RuleContext()
    first = evaluate("TTTTT", lib, ctx)
    assert first.rule == 'streak'
    assert first.call.label == 'X' and first.call.confidence == 80
    assert ctx.break_tried_high is True
    second = evaluate("TTTTT", lib, ctx)
    assert second.call.label == 'T' and second.call.confidence == 90
    assert ctx.break_tried_high is True

def test_watched_face_forces_reversal(lib):
    ctx = RuleContext(break_tried_high=True)
    v = evaluate("TTTTT", lib, ctx, dice=(3, 5, 6))
    assert v.call.label == 'X' and v.call.confidence == 95
    assert ctx.break_tried_high is False

def test_low_streak_watches_five(lib):
    ctx = RuleContext()
    v = evaluate("XXXXX", lib, ctx, dice=(1, 2, 1))
    assert v.call.label == 'T' and v.call.confidence == 80 and ctx.break_tried_low
    v = evaluate("XXXXX", lib, ctx, dice=(5, 1, 1))
    assert v.call.label == 'T' and v.call.confidence == 95 and not ctx.break_tried_low

def test_short_streak_rides(lib):
    v = evaluate("XTTT", lib, RuleContext())
    assert v.rule == 'streak' and v.call.label == 'T' and v.call.confidence == 93

def test_rigged_feed_comes_first(lib):
    v = evaluate("T" * 60, lib, RuleContext(miss_streak=5))
    assert v.rule == 'rigged-feed' and v.call.label == 'X' and v.call.confidence == 85

def test_signature_hit(lib):
    v = evaluate("TXTXTX", lib, RuleContext())
    e = lib.lookup("TXTXTX")
    assert v.rule == 'signature' and v.call.label == e.forecast and v.call.confidence == e.confidence

def test_pattern_memory(lib):
    ctx = RuleContext(pattern_memory={'T': PatternStat(4, 3, 'X'), 'X': PatternStat(9, 9, 'T')})
    v = evaluate("XT", lib, ctx)
    assert v.rule == 'pattern-memory' and v.call.label == 'X' and v.call.confidence == 97

def test_pattern_memory_needs_three_occurrences(lib):
    ctx = RuleContext(pattern_memory={'T': PatternStat(2, 2, 'X')})
    assert evaluate("XT", lib, ctx).rule != 'pattern-memory'

def test_error_memory(lib):
    ctx = RuleContext(error_memory={'X,T,T': 2})
    v = evaluate("XTT", lib, ctx)
    assert v.rule == 'error-memory' and v.call.label == 'X' and v.call.confidence == 89

def test_miss_streak(lib):
    v = evaluate("XT", lib, RuleContext(miss_streak=3))
    assert v.rule == 'miss-streak' and v.call.label == 'X' and v.call.confidence == 88

def test_bridge(lib):
    v = evaluate("TXXT", lib, RuleContext())
    assert v.rule == 'bridge' and v.call.label == 'X' and v.call.confidence == 90

def test_bridge_break_class_confidence(lib):
    rule = BridgeRule()
    inp = RuleInput(list("TTTTTTX"), (1, 1, 1), 3, lib, RuleContext())
    # streak-class motifs are listed before the break motifs and win
    assert rule.apply(inp).confidence == 90

def test_learned_pattern(lib):
    ctx = RuleContext(learned={'TXXTX': LearnedPattern('T', 77, 'seen before')})
    v = evaluate("TXXTX", lib, ctx)
    assert v.rule == 'learned-pattern' and v.call.label == 'T' and v.call.confidence == 77

def test_fallback_memoizes(lib):
    ctx = RuleContext()
    v = evaluate("TXXTX", lib, ctx, dice=(6, 5, 1))
    assert v.rule == 'fallback' and v.call.label == 'T' and v.call.confidence == 72
    assert 'TXXTX' in ctx.learned
    again = evaluate("TXXTX", lib, ctx, dice=(1, 1, 1))
    assert again.rule == 'learned-pattern' and again.call.label == 'T'

def test_remember_transition():
    ctx = RuleContext()
    seq = "TXTX"
    for i in range(1, len(seq) + 1):
        ctx.remember_transition(list(seq[:i]))
    assert ctx.pattern_memory['T'].occurrences == 2
    assert ctx.pattern_memory['T'].accuracy == 1.0
    assert ctx.pattern_memory['X'].occurrences == 1
    ctx.remember_transition(list("TXTXX"))
    x = ctx.pattern_memory['X']
    assert x.occurrences == 2 and x.correct_occurrences == 2 and x.most_recent_next == 'X'

def test_replayed_history_answers_from_pattern_memory(lib):
    seq = "TTXTXXTTXTXTTXXT"
    ctx = RuleContext()
    for i in range(1, len(seq) + 1):
        ctx.remember_transition(list(seq[:i]))
    assert ctx.pattern_memory['T'].occurrences == 8
    assert ctx.pattern_memory['X'].occurrences == 7
    assert ctx.pattern_memory['T'].accuracy == 1.0
    v = evaluate(seq, lib, ctx, dice=(1, 2, 4))
    # the last 'T' was followed by 'X' (rounds 13 -> 14)
    assert v.rule == 'pattern-memory'
    assert v.call.label == 'X' and v.call.confidence == 100

def test_record_result():
    ctx = RuleContext()
    ctx.record_result(list("TTX"), 'T', 'X')
    ctx.record_result(list("TTX"), 'T', 'X')
    assert ctx.miss_streak == 2 and ctx.error_memory == {'T,T,X': 2}
    ctx.record_result(list("TTX"), 'X', 'X')
    assert ctx.miss_streak == 0

def test_learn_pattern_range():
    ctx = RuleContext()
    ctx.learn_pattern(list("TXT"), 12, random.Random(0))
    assert ctx.learned == {}
    ctx.learn_pattern(list("TXTT"), 9, random.Random(0))
    lp = ctx.learned['TXTT']
    assert lp.forecast == 'X' and 70 <= lp.confidence <= 94

def test_context_round_trip():
    ctx = RuleContext(break_tried_low=True, miss_streak=2, error_memory={'T,T,T': 1},
                      learned={'TXTX': LearnedPattern('X', 72, 'fallback')},
                      pattern_memory={'T': PatternStat(3, 2, 'X')})
    assert RuleContext.from_dict(ctx.to_dict()) == ctx
    assert RuleContext.from_dict(None) == RuleContext()
