# compass_mfa/totp.py
# HOTP (RFC 4226) and TOTP (RFC 6238) on raw key bytes; no 3rd-party deps required.

import hashlib
import hmac
import logging
import struct
import time
from typing import Callable, Optional

from .errors import InvalidCodeFormat

log = logging.getLogger(__name__)

PERIOD = 30
DIGITS = 6
ALGORITHM = "SHA1"  # widely supported by authenticator apps

HmacFn = Callable[[bytes, bytes], bytes]


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    return hmac.new(key, message, hashlib.sha1).digest()


def _int_to_bytes(counter: int) -> bytes:
    if counter < 0 or counter >= 1 << 64:
        raise ValueError("counter must fit in an unsigned 64-bit integer")
    return struct.pack(">Q", counter)


def _dynamic_truncate(digest: bytes) -> int:
    offset = digest[-1] & 0x0F
    return struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF


def hotp(secret: bytes, counter: int, digits: int = DIGITS,
         hmac_fn: HmacFn = hmac_sha1) -> str:
    digest = hmac_fn(secret, _int_to_bytes(counter))
    code = _dynamic_truncate(digest) % (10 ** digits)
    return str(code).zfill(digits)


def time_step(at: Optional[float] = None, period: int = PERIOD) -> int:
    if at is None:
        at = time.time()
    return int(at // period)


def totp_now(secret: bytes, at: Optional[float] = None,
             hmac_fn: HmacFn = hmac_sha1) -> str:
    return hotp(secret, time_step(at), hmac_fn=hmac_fn)


def validate_code_format(code) -> str:
    # Exactly six ASCII digits; str.isdigit() alone would accept other scripts.
    if not isinstance(code, str) or len(code) != DIGITS:
        raise InvalidCodeFormat("code must be exactly six digits")
    if not all("0" <= ch <= "9" for ch in code):
        raise InvalidCodeFormat("code must be exactly six digits")
    return code


def constant_time_equals(a: str, b: str) -> bool:
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= ord(x) ^ ord(y)
    return result == 0


def match_step(secret: bytes, code: str, window: int = 1,
               at: Optional[float] = None, after_step: Optional[int] = None,
               hmac_fn: HmacFn = hmac_sha1) -> Optional[int]:
    """Return the time step `code` was generated for, or None.

    Scans ``[step - window, step + window]`` around the reference time. Steps at
    or below ``after_step`` are treated as already consumed and never match.
    """
    if window < 0:
        raise ValueError("window must be non-negative")
    validate_code_format(code)
    current = time_step(at)
    for off in range(-window, window + 1):
        step = current + off
        if step < 0:
            continue
        if after_step is not None and step <= after_step:
            continue
        if constant_time_equals(hotp(secret, step, hmac_fn=hmac_fn), code):
            if off:
                log.debug("totp matched at drift offset %d", off)
            return step
    return None


def verify_totp(secret: bytes, code: str, window: int = 1,
                at: Optional[float] = None, hmac_fn: HmacFn = hmac_sha1) -> bool:
    return match_step(secret, code, window=window, at=at, hmac_fn=hmac_fn) is not None
