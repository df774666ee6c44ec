"""Tests for HOTP generation and TOTP window verification."""

from __future__ import annotations

import pyotp
import pytest

from compass_mfa import base32
from compass_mfa.errors import InvalidCodeFormat
from compass_mfa.totp import (
    constant_time_equals,
    hmac_sha1,
    hotp,
    match_step,
    time_step,
    totp_now,
    validate_code_format,
    verify_totp,
)

RFC_SECRET = b"12345678901234567890"
RFC4226_CODES = [
    "755224", "287082", "359152", "969429", "338314",
    "254676", "287922", "162583", "399871", "520489",
]


@pytest.mark.parametrize("counter,expected", list(enumerate(RFC4226_CODES)))
def test_hotp_rfc4226_vectors(counter, expected):
    assert hotp(RFC_SECRET, counter) == expected


def test_hotp_agrees_with_pyotp():
    key = bytes(range(20))
    oracle = pyotp.HOTP(base32.encode(key))
    for counter in (0, 1, 59, 2**31, 2**40 + 7):
        assert hotp(key, counter) == oracle.at(counter)


def test_totp_agrees_with_pyotp():
    key = bytes(range(100, 120))
    oracle = pyotp.TOTP(base32.encode(key))
    for at in (59, 1111111109, 1234567890, 2000000000):
        assert totp_now(key, at=at) == oracle.at(at)


def test_rfc6238_sha1_vectors_truncated_to_six_digits():
    # RFC 6238 appendix B publishes 8-digit codes; the last six digits must agree.
    assert totp_now(RFC_SECRET, at=59) == "287082"
    assert totp_now(RFC_SECRET, at=1111111109) == "081804"
    assert totp_now(RFC_SECRET, at=1234567890) == "005924"


def test_hotp_rejects_out_of_range_counter():
    with pytest.raises(ValueError):
        hotp(RFC_SECRET, -1)
    with pytest.raises(ValueError):
        hotp(RFC_SECRET, 2**64)


def test_hotp_uses_the_supplied_hmac():
    calls = []

    def spy(key, msg):
        calls.append((key, msg))
        return hmac_sha1(key, msg)

    assert hotp(RFC_SECRET, 1, hmac_fn=spy) == "287082"
    assert calls == [(RFC_SECRET, b"\x00\x00\x00\x00\x00\x00\x00\x01")]


def test_time_step():
    assert time_step(0) == 0
    assert time_step(29.99) == 0
    assert time_step(30) == 1
    assert time_step(1111111109) == 37037036


def test_window_accepts_adjacent_steps_only():
    k = 50000000
    code = hotp(RFC_SECRET, k)
    for at in ((k - 1) * 30, (k - 1) * 30 + 29.5, k * 30, k * 30 + 15, (k + 1) * 30 + 29):
        assert verify_totp(RFC_SECRET, code, window=1, at=at)
    for at in ((k + 2) * 30, (k + 2) * 30 + 10, (k - 2) * 30, (k - 2) * 30 + 29):
        assert not verify_totp(RFC_SECRET, code, window=1, at=at)


def test_window_zero_is_exact_step():
    k = 50000000
    code = hotp(RFC_SECRET, k)
    assert verify_totp(RFC_SECRET, code, window=0, at=k * 30)
    assert not verify_totp(RFC_SECRET, code, window=0, at=(k + 1) * 30)


def test_match_step_returns_matched_step():
    k = 50000000
    assert match_step(RFC_SECRET, hotp(RFC_SECRET, k - 1), at=k * 30) == k - 1
    assert match_step(RFC_SECRET, hotp(RFC_SECRET, k + 1), at=k * 30) == k + 1


def test_match_step_skips_consumed_steps():
    k = 50000000
    code = hotp(RFC_SECRET, k)
    assert match_step(RFC_SECRET, code, at=k * 30, after_step=k) is None
    assert match_step(RFC_SECRET, code, at=k * 30, after_step=k - 1) == k


def test_match_step_evaluates_at_most_window_codes():
    calls = []

    def spy(key, msg):
        calls.append(msg)
        return hmac_sha1(key, msg)

    match_step(RFC_SECRET, "000000", window=2, at=50000000 * 30, hmac_fn=spy)
    assert len(calls) <= 5


def test_negative_window_rejected():
    with pytest.raises(ValueError):
        match_step(RFC_SECRET, "123456", window=-1)


@pytest.mark.parametrize("code", ["12345", "abcdef", "", "1234567", "12345 ", "12 456", "١٢٣٤٥٦", None, 123456])
def test_malformed_codes_rejected_before_any_hmac(code):
    calls = []

    def spy(key, msg):
        calls.append(msg)
        return hmac_sha1(key, msg)

    with pytest.raises(InvalidCodeFormat):
        match_step(RFC_SECRET, code, hmac_fn=spy)
    assert calls == []


def test_validate_code_format_accepts_leading_zeros():
    assert validate_code_format("000123") == "000123"


def test_constant_time_equals():
    assert constant_time_equals("123456", "123456")
    assert not constant_time_equals("123456", "123457")
    assert not constant_time_equals("123456", "023456")
    assert not constant_time_equals("123456", "12345")
    assert constant_time_equals("", "")
