import pytest

from aprsgate.passcode import aprs_is_passcode, aprs_is_passcode_matches


@pytest.mark.parametrize(
    "call, want",
    [
        ("N0CALL", 13023),
        ("n0call", 13023),
        ("N0CALL-10", 13023),
    ],
)
def test_aprs_is_passcode(call, want):
    assert aprs_is_passcode(call) == want


def test_empty_callsign_gives_zero():
    assert aprs_is_passcode("") == 0
    assert aprs_is_passcode("   ") == 0
    assert aprs_is_passcode("-5") == 0


def test_passcode_is_fifteen_bits():
    for call in ["A", "N0CALL", "ZZZZZZ", "W1AW", "KB9XYZ"]:
        assert 0 <= aprs_is_passcode(call) <= 0x7FFF


def test_matches_correct_passcode():
    assert aprs_is_passcode_matches("N0CALL", "13023")


def test_receive_only_sentinel_matches():
    assert aprs_is_passcode_matches("N0CALL-10", "-1")


def test_wrong_passcode_does_not_match():
    assert not aprs_is_passcode_matches("N0CALL", "99999")


def test_empty_passcode_does_not_match():
    assert not aprs_is_passcode_matches("N0CALL", "")
    assert not aprs_is_passcode_matches("N0CALL", "   ")


def test_matches_trims_whitespace():
    assert aprs_is_passcode_matches("N0CALL", " 13023 ")