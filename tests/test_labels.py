from txvip.core.types import Snapshot, label_of_total, to_code, to_name
from txvip.db.models import Round

def test_label_mapping():
    r = Round(round_id=1, d1=6, d2=4, d3=1)
    r.compute(); assert r.total == 11 and r.label == 'TAI'
    r.d1, r.d2, r.d3 = 1, 1, 1; r.compute(); assert r.total == 3 and r.label == 'XIU' and r.is_triple
    r.d1, r.d2, r.d3 = 6, 6, 6; r.compute(); assert r.total == 18 and r.label == 'TAI'
    r.d1, r.d2, r.d3 = 5, 4, 1; r.compute(); assert r.total == 10 and r.label == 'XIU'

def test_codes():
    assert label_of_total(11) == 'T' and label_of_total(10) == 'X'
    assert to_code('TAI') == 'T' and to_code('Tài') == 'T' and to_code('XIU') == 'X'
    assert to_name('T') == 'TAI' and to_name('X') == 'XIU'

def test_snapshot_from_rounds():
    rows = []
    for i, dice in enumerate([(6, 5, 4), (1, 2, 3)], start=7):
        r = Round(round_id=i, d1=dice[0], d2=dice[1], d3=dice[2]); r.compute(); rows.append(r)
    snap = Snapshot.from_rounds(rows)
    assert snap.pattern == 'TX'
    assert snap.current_dice == (1, 2, 3) and snap.current_total == 6 and snap.current_round_id == 8
