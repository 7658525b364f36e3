import random

from txvip.analytics.experts import (EXPERTS, PanelInput, cau_bet, cau_dao, cau_dice_repeat,
                                     cau_mean_reversion, cau_random, cau_round_parity, cau_song,
                                     run_panel)

def test_panel_always_has_twenty():
    assert len(EXPERTS) == 20
    assert len({name for name, _ in EXPERTS}) == 20
    for n in (0, 1, 3, 9, 40):
        rng = random.Random(n)
        labels = [rng.choice('TX') for _ in range(n)]
        dice = [tuple(rng.randint(1, 6) for _ in range(3)) for _ in range(n)]
        votes = run_panel(PanelInput(labels, dice, [sum(d) for d in dice], n or None, rng))
        assert len(votes) == 20
        for v in votes:
            assert v.call.label in ('T', 'X') and 0 < v.call.confidence <= 100

def test_empty_history_defaults():
    votes = run_panel(PanelInput([]))
    by_name = {v.name: v.call for v in votes}
    assert by_name['cau_dao'].confidence == 50
    assert by_name['cau_dice_repeat'].confidence == 50
    assert by_name['cau_round_parity'].confidence == 50

def test_streak_and_alternation():
    assert cau_bet(PanelInput(list("XTTTT"))).label == 'X'
    assert cau_bet(PanelInput(list("XTT"))).confidence == 60
    alt = cau_dao(PanelInput(list("TXTXTX")))
    assert alt.label == 'T' and alt.confidence == 76
    assert cau_dao(PanelInput(list("TTXTXT"))).confidence == 48

def test_dice_and_totals():
    p = PanelInput(list("TTT"), dice=[(6, 6, 6), (6, 6, 6), (1, 1, 2)])
    assert cau_dice_repeat(p).label == 'T'
    up = PanelInput(list("XXXXXX"), totals=[3, 4, 5, 6, 7, 8])
    assert cau_song(up).label == 'T' and cau_song(up).confidence == 66
    assert cau_mean_reversion(PanelInput(list("T"), totals=[16])).label == 'X'
    assert cau_round_parity(PanelInput(list("X"), round_id=10)).label == 'T'

def test_random_expert_uses_injected_rng():
    a = [cau_random(PanelInput(list("T"), rng=random.Random(5))).label for _ in range(3)]
    b = [cau_random(PanelInput(list("T"), rng=random.Random(5))).label for _ in range(3)]
    assert a == b
    assert cau_random(PanelInput([])).confidence == 50
