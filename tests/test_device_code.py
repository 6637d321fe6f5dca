"""Device code generator."""

from streamgate.utils.device_code import CODE_ALPHABET, make_device_code


def test_code_shape():
    for _ in range(200):
        code = make_device_code()
        assert len(code) == 6
        assert set(code) <= set(CODE_ALPHABET)


def test_no_lookalike_glyphs():
    for glyph in "01IO":
        assert glyph not in CODE_ALPHABET


def test_codes_vary():
    assert len({make_device_code() for _ in range(50)}) > 1
