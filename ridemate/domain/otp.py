"""Pickup verification codes bound to a booking."""

import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

OTP_MIN = 1000
OTP_MAX = 9999


@dataclass(frozen=True)
class OtpPolicy:
    """Expiry, attempt and resend limits for pickup codes."""

    max_attempts: int = 5
    resend_cooldown: timedelta = timedelta(seconds=60)
    valid_after_departure: timedelta = timedelta(hours=12)

    def expires_at(self, departs_at: datetime) -> datetime:
        return departs_at + self.valid_after_departure


def generate() -> str:
    """Uniform 4-digit code in [1000, 9999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def issue(booking, now: datetime) -> str:
    """Attach a fresh code to ``booking`` and return it."""
    code = generate()
    booking.otp_code = code
    booking.otp_generated_at = now
    booking.otp_verified = False
    booking.otp_verified_at = None
    booking.otp_attempts = 0
    return code


def can_resend(booking, now: datetime, policy: OtpPolicy) -> bool:
    if booking.otp_verified:
        return False
    if booking.otp_generated_at is None:
        return True
    return now - booking.otp_generated_at >= policy.resend_cooldown


def verify(
    booking,
    code: Optional[str],
    now: datetime,
    expires_at: datetime,
    policy: OtpPolicy,
) -> bool:
    """
    Check ``code`` against the booking's pickup code.

    Accepts only when the code matches, the booking is confirmed and the
    code is not yet verified, expired or locked by too many wrong attempts.
    A wrong code counts as an attempt; a correct one marks the code verified.
    """
    if not booking.is_confirmed or not booking.otp_code or booking.otp_verified:
        return False
    if now > expires_at or (booking.otp_attempts or 0) >= policy.max_attempts:
        return False

    if code is None or not hmac.compare_digest(str(code), booking.otp_code):
        booking.otp_attempts = (booking.otp_attempts or 0) + 1
        return False

    booking.otp_verified = True
    booking.otp_verified_at = now
    return True
