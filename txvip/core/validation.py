import re

def is_valid_md5(s: str) -> bool:
    return bool(re.fullmatch(r"[0-9a-fA-F]{32}", s or ""))

def sanitize_die(d) -> int:
    """Malformed faces become 1 instead of rejecting the round."""
    try:
        v = int(d)
    except (TypeError, ValueError):
        return 1
    return v if 1 <= v <= 6 else 1
