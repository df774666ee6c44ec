# compass_mfa/enrollment.py
# Lifecycle of a user's 2FA configuration: DISABLED -> PENDING -> ENABLED -> DISABLED.
# This is the only module that writes to the enrollment store.

import enum
import logging
import time
from typing import Callable, Optional

from . import base32
from .db import EnrollmentRecord, EnrollmentStore
from .errors import (
    EnrollmentConflict,
    NoActiveSecret,
    ReplayedCode,
    TooManyAttempts,
    TwoFactorError,
    Unauthorized,
    VerificationFailed,
)
from .provisioning import MIN_SECRET_BYTES, CandidateSecret, provision
from .totp import match_step, validate_code_format

log = logging.getLogger(__name__)

MAX_LOCK_SECONDS = 24 * 3600


class EnrollmentState(str, enum.Enum):
    DISABLED = "disabled"
    PENDING = "pending"
    ENABLED = "enabled"


def _authorize(claimed_user_id, caller_id, owner_id):
    # Identity checks come before any code work and never count as a failed code.
    if claimed_user_id is None or caller_id is None or owner_id is None:
        raise Unauthorized("missing identity")
    if not (str(claimed_user_id) == str(caller_id) == str(owner_id)):
        raise Unauthorized("claimed identity does not own this secret")


class TwoFactorEnrollment:
    def __init__(self, store: EnrollmentStore, issuer: str = "Order Flow Compass",
                 window: int = 1, max_attempts: int = 5, lock_seconds: int = 300,
                 strict_secrets: bool = False, clock: Callable[[], float] = time.time):
        self.store = store
        self.issuer = issuer
        self.window = window
        self.max_attempts = max_attempts
        self.lock_seconds = lock_seconds
        self.strict_secrets = strict_secrets
        self.clock = clock

    def state(self, user_id: str, candidate: Optional[CandidateSecret] = None) -> EnrollmentState:
        rec = self.store.get(str(user_id))
        if rec and rec.enabled and rec.secret:
            return EnrollmentState.ENABLED
        if candidate is not None and str(candidate.owner_id) == str(user_id):
            return EnrollmentState.PENDING
        return EnrollmentState.DISABLED

    def begin(self, user_id: str, label: str) -> CandidateSecret:
        user_id = str(user_id)
        rec = self.store.get(user_id)
        if rec and rec.enabled:
            raise EnrollmentConflict("2fa already enabled")
        candidate = provision(label, self.issuer, owner_id=user_id)
        log.info("2fa provisioning started for user %s", user_id)
        return candidate

    def confirm(self, candidate: CandidateSecret, code: str,
                claimed_user_id: str, caller_id: str) -> int:
        _authorize(claimed_user_id, caller_id, candidate.owner_id)
        user_id = str(claimed_user_id)
        rec = self.store.get(user_id)
        if rec and rec.enabled:
            raise EnrollmentConflict("2fa already enabled")
        self._check_lock(rec)

        now = self.clock()
        try:
            validate_code_format(code)
            key = base32.decode_secret(candidate.secret_text, strict=self.strict_secrets,
                                       min_bytes=MIN_SECRET_BYTES)
            step = match_step(key, code, window=self.window, at=now)
            if step is None:
                raise VerificationFailed("no step in window matched")
        except TwoFactorError as e:
            self._fail(user_id, e, now)
            raise

        if not self.store.activate(user_id, base32.encode(key), step):
            # a concurrent confirmation got there first
            raise EnrollmentConflict("2fa already enabled")
        log.info("2fa enabled for user %s", user_id)
        return step

    def verify(self, user_id: str, code: str, claimed_user_id: str, caller_id: str) -> int:
        _authorize(claimed_user_id, caller_id, user_id)
        user_id = str(user_id)
        rec = self.store.get(user_id)
        if not rec or not rec.enabled or not rec.secret:
            raise NoActiveSecret("no active secret")
        self._check_lock(rec)

        now = self.clock()
        try:
            validate_code_format(code)
            key = base32.decode_secret(rec.secret)
            step = match_step(key, code, window=self.window, at=now,
                              after_step=rec.last_used_step)
            if step is None:
                # only classification: a consumed step matching is a replay
                if (rec.last_used_step is not None
                        and match_step(key, code, window=self.window, at=now) is not None):
                    raise ReplayedCode("code already used")
                raise VerificationFailed("no step in window matched")
            if not self.store.mark_used(user_id, step):
                raise ReplayedCode("code for step %d consumed concurrently" % step)
        except TwoFactorError as e:
            self._fail(user_id, e, now)
            raise

        if rec.failed_attempts:
            self.store.reset_failures(user_id)
        return step

    def disable(self, user_id: str, claimed_user_id: str, caller_id: str) -> None:
        _authorize(claimed_user_id, caller_id, user_id)
        self.store.clear(str(user_id))
        log.info("2fa disabled for user %s", user_id)

    def _check_lock(self, rec: Optional[EnrollmentRecord]):
        if rec and rec.locked_until:
            remaining = rec.locked_until - self.clock()
            if remaining > 0:
                raise TooManyAttempts("locked out", retry_after=int(remaining) + 1)

    def _fail(self, user_id, err, now):
        log.warning("2fa %s for user %s", err.reason, user_id)
        count = self.store.record_failure(user_id)
        if count >= self.max_attempts:
            # doubles with every failure past the threshold
            delay = min(self.lock_seconds * 2 ** (count - self.max_attempts), MAX_LOCK_SECONDS)
            self.store.set_lock(user_id, now + delay)
            log.warning("2fa locked for user %s for %ds after %d failures", user_id, delay, count)
