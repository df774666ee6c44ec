# compass_mfa/base32.py
# RFC 4648 base32 for TOTP secrets. Decoding is permissive by default: unknown
# characters are skipped, as authenticator apps and users paste all sorts of junk.

from .errors import InvalidSecretEncoding

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_LOOKUP = {c: i for i, c in enumerate(ALPHABET)}


def encode(data: bytes) -> str:
    out = []
    buf = 0
    bits = 0
    for byte in data:
        buf = (buf << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            out.append(ALPHABET[(buf >> bits) & 0x1F])
    if bits:
        # flush the tail, zero-filled on the right
        out.append(ALPHABET[(buf << (5 - bits)) & 0x1F])
    return "".join(out)


def decode(text: str, strict: bool = False) -> bytes:
    cleaned = "".join(text.split()).upper().rstrip("=")
    out = bytearray()
    buf = 0
    bits = 0
    for ch in cleaned:
        val = _LOOKUP.get(ch)
        if val is None:
            if strict:
                raise InvalidSecretEncoding(f"character {ch!r} is not base32")
            continue
        buf = ((buf << 5) | val) & 0xFFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buf >> bits) & 0xFF)
    return bytes(out)


def decode_secret(text: str, strict: bool = False, min_bytes: int = 1) -> bytes:
    """Decode a secret, refusing text that carries fewer than `min_bytes` key bytes."""
    if not isinstance(text, str):
        raise InvalidSecretEncoding("secret must be text")
    key = decode(text, strict=strict)
    if not key:
        raise InvalidSecretEncoding("secret decodes to zero bytes")
    if len(key) < min_bytes:
        raise InvalidSecretEncoding(f"secret is {len(key)} bytes, need at least {min_bytes}")
    return key
