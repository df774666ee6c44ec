# compass_mfa/provisioning.py
# Fresh secrets and the otpauth:// descriptor authenticator apps enroll from.

import secrets
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from . import base32
from .totp import ALGORITHM, DIGITS, PERIOD

MIN_SECRET_BYTES = 20  # 160 bits, RFC 4226 section 4


def generate_secret(length: int = MIN_SECRET_BYTES) -> bytes:
    if length < MIN_SECRET_BYTES:
        raise ValueError(f"secret must be at least {MIN_SECRET_BYTES} bytes")
    return secrets.token_bytes(length)


def build_otpauth_uri(secret_text: str, label: str, issuer: str) -> str:
    path = quote(f"{issuer}:{label}")
    params = (f"secret={secret_text}&issuer={quote(issuer)}"
              f"&algorithm={ALGORITHM}&digits={DIGITS}&period={PERIOD}")
    return f"otpauth://totp/{path}?{params}"


@dataclass(frozen=True)
class ProvisioningDescriptor:
    label: str
    issuer: str
    secret: str
    type: str = "totp"
    algorithm: str = ALGORITHM
    digits: int = DIGITS
    period: int = PERIOD

    @property
    def uri(self) -> str:
        return build_otpauth_uri(self.secret, self.label, self.issuer)

    def as_dict(self) -> dict:
        return {
            "type": self.type,
            "algorithm": self.algorithm,
            "digits": self.digits,
            "period": self.period,
            "label": self.label,
            "issuer": self.issuer,
            "secret": self.secret,
            "uri": self.uri,
        }


@dataclass(frozen=True)
class CandidateSecret:
    """A generated secret that has not been confirmed by a code yet."""

    secret_text: str
    descriptor: Optional[ProvisioningDescriptor] = None
    owner_id: Optional[str] = None


def provision(label: str, issuer: str, owner_id: Optional[str] = None,
              length: int = MIN_SECRET_BYTES) -> CandidateSecret:
    # Nothing is persisted here; the candidate lives with the caller until confirmed.
    secret_text = base32.encode(generate_secret(length))
    descriptor = ProvisioningDescriptor(label=label, issuer=issuer, secret=secret_text)
    return CandidateSecret(secret_text=secret_text, descriptor=descriptor, owner_id=owner_id)
