"""Human-friendly payment confirmation codes.

Codes are 6 symbols from an alphabet without look-alike characters
(no 0/O, no 1/I): 3 symbols of the current timestamp plus 3 random ones.
Uniqueness against stored payments is checked separately by the payment
service.
"""

import random
import re
import time

SAFE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
FALLBACK_DIGITS = "23456789"
CODE_LENGTH = 6
MAX_GENERATION_ATTEMPTS = 8

FORBIDDEN_SUBSTRINGS = (
    "ASS", "FAG", "GAY", "FUX", "FUK", "FCK", "KKK", "CUM",
    "JEW", "SEX", "JAP", "WOP", "DIK", "DIE", "COK", "KOK",
    "TIT", "VAG", "PUS", "SHT", "DMN", "HEL", "NIG", "RAP",
    "FKN", "WTF", "OMG", "GOD",
)

_system_random = random.SystemRandom()
_non_alnum = re.compile(r"[^A-Za-z0-9]")


def _now_millis():
    return int(time.time() * 1000)


def encode_timestamp(millis: int) -> str:
    """Base-32 rendering of ``millis`` over SAFE_ALPHABET."""
    base = len(SAFE_ALPHABET)
    if millis <= 0:
        return SAFE_ALPHABET[0]
    digits = []
    while millis:
        millis, rem = divmod(millis, base)
        digits.append(SAFE_ALPHABET[rem])
    return "".join(reversed(digits))


def contains_forbidden_string(code: str, forbidden=FORBIDDEN_SUBSTRINGS) -> bool:
    upper = code.upper()
    return any(word in upper for word in forbidden)


def generate_short_code(rng=None, clock=None, forbidden=FORBIDDEN_SUBSTRINGS) -> str:
    """
    Generate one candidate code.

    When a candidate hits the deny-list the timestamp window slides one
    position to the left (wrapping back to the tail) and a new random part is
    drawn. After MAX_GENERATION_ATTEMPTS the code falls back to digits only.
    """
    rng = rng or _system_random
    clock = clock or _now_millis
    start = None

    for _ in range(MAX_GENERATION_ATTEMPTS):
        stamp = encode_timestamp(clock())
        if start is None or start > len(stamp) - 3:
            start = max(len(stamp) - 3, 0)
        stamp_part = stamp[start:start + 3]
        random_part = "".join(rng.choice(SAFE_ALPHABET) for _ in range(3))
        code = stamp_part + random_part

        if not contains_forbidden_string(code, forbidden):
            return code

        start = len(stamp) - 3 if start == 0 else start - 1

    return "".join(rng.choice(FALLBACK_DIGITS) for _ in range(CODE_LENGTH))


def format_short_code(code: str) -> str:
    """ABCDEF -> ABC-DEF; anything that is not 6 long is returned untouched."""
    if not code or len(code) != CODE_LENGTH:
        return code
    return f"{code[:3]}-{code[3:]}"


def clean_short_code(code: str) -> str:
    """Undo display formatting: 'abc-def' -> 'ABCDEF'."""
    return _non_alnum.sub("", code or "").upper()
