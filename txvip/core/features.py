from collections import Counter

from txvip.analytics.stats import entropy_binary
from txvip.core.validation import is_valid_md5

# Minimal, fast MD5 feature extractor (no crypto meaning; just structure)

def md5_features(md5_hash: str) -> dict:
    md5_hash = md5_hash.lower()
    counts = Counter(md5_hash)
    digits = sum(counts[c] for c in '0123456789')
    letters = 32 - digits
    even_hex = sum(counts[c] for c in '02468ace')
    odd_hex = 32 - even_hex
    ones = sum(bin(int(c, 16)).count('1') for c in md5_hash)
    return {
        'digits': digits,
        'letters': letters,
        'even_hex': even_hex,
        'odd_hex': odd_hex,
        'bit_ones': ones,
    }


def md5_randomness(md5_hash: str | None) -> dict:
    """Bit-balance entropy of a round hash; > 0.95 counts as random."""
    if not md5_hash:
        return {'is_random': True, 'note': 'no md5', 'entropy': None}
    if not is_valid_md5(md5_hash):
        return {'is_random': True, 'note': 'invalid md5', 'entropy': None}
    ones = md5_features(md5_hash)['bit_ones']
    h = entropy_binary(ones / 128)
    random_like = h > 0.95
    return {
        'is_random': random_like,
        'note': 'md5 looks random' if random_like else 'md5 shows non-random bit balance',
        'entropy': h,
    }
