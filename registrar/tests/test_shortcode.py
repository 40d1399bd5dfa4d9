# registrar/tests/test_shortcode.py
from registrar.utils.shortcode import (
    FALLBACK_DIGITS, SAFE_ALPHABET, clean_short_code, contains_forbidden_string,
    encode_timestamp, format_short_code, generate_short_code
)


class FixedRng:
    """choice() always returns the same symbol."""

    def __init__(self, symbol):
        self.symbol = symbol

    def choice(self, seq):
        return self.symbol if self.symbol in seq else seq[0]


def _millis_for(stamp):
    value = 0
    for ch in stamp:
        value = value * len(SAFE_ALPHABET) + SAFE_ALPHABET.index(ch)
    return value


def test_encode_timestamp_uses_safe_alphabet():
    stamp = encode_timestamp(1_767_225_600_000)
    assert stamp
    assert all(ch in SAFE_ALPHABET for ch in stamp)
    assert encode_timestamp(_millis_for("HJKLMNP")) == "HJKLMNP"


def test_generated_code_is_six_safe_symbols():
    for _ in range(1000):
        code = generate_short_code()
        assert len(code) == 6
        assert all(ch in SAFE_ALPHABET for ch in code)
        assert not contains_forbidden_string(code)


def test_code_is_timestamp_tail_plus_random_part():
    millis = _millis_for("HJKLMNP")
    code = generate_short_code(rng=FixedRng("2"), clock=lambda: millis)
    assert code == "MNP222"


def test_deny_list_hit_slides_timestamp_window():
    millis = _millis_for("HJKLMNP")
    code = generate_short_code(rng=FixedRng("2"), clock=lambda: millis,
                               forbidden=("MNP",))
    assert code == "LMN222"


def test_falls_back_to_digits_when_every_candidate_is_forbidden():
    code = generate_short_code(forbidden=tuple(SAFE_ALPHABET))
    assert len(code) == 6
    assert all(ch in FALLBACK_DIGITS for ch in code)


def test_forbidden_check_is_case_insensitive():
    assert contains_forbidden_string("xassxx")
    assert contains_forbidden_string("ZZWTF2")
    assert not contains_forbidden_string("ABCDEF")


def test_format_and_clean_short_code():
    assert format_short_code("ABCDEF") == "ABC-DEF"
    assert format_short_code("ABC") == "ABC"
    assert clean_short_code(" abc-def ") == "ABCDEF"
