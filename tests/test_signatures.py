import random

from txvip.analytics.signatures import LIBRARY_SIZE, build_signature_library, flip

def test_exactly_200_unique_binary_keys():
    lib = build_signature_library(random.Random(3))
    keys = [e.pattern for e in lib]
    assert len(lib) == LIBRARY_SIZE == 200
    assert len(set(keys)) == 200
    assert all(6 <= len(k) <= 10 and set(k) <= {'T', 'X'} for k in keys)

def test_flip_pairs_share_confidence():
    lib = build_signature_library(random.Random(3))
    for e in lib:
        other = lib.lookup(flip(e.pattern))
        assert other is not None and other.confidence == e.confidence

def test_confidence_band_and_forecast():
    lib = build_signature_library(random.Random(3))
    for e in lib:
        assert 60 <= e.confidence <= 98
        high = e.pattern.count('T') * 2 >= len(e.pattern)
        assert e.forecast == ('T' if high else 'X')

def test_known_entry():
    e = build_signature_library(random.Random(3)).lookup('TXTXTX')
    assert e.forecast == 'T' and e.confidence == 80

def test_lookup_is_exact():
    lib = build_signature_library(random.Random(3))
    assert lib.lookup('TXTXT') is None
    assert 'TXTXTX' in lib and 'XTXTXTX' + 'TXTX' not in lib
