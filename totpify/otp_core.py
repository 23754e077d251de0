"""
otp_core.py: HOTP (RFC 4226) / TOTP (RFC 6238) engine.

Pure functions only: no argparse, no file or network I/O. The CLI lives in
otp_cli.py; otpauth URIs and QR codes live in provisioning.py.

Flow:
    generate_totp / verify_totp
        -> resolve_secret (Base32 text or raw bytes -> key bytes)
        -> time_counter (timestamp ms -> step index)
        -> hotp (HMAC + dynamic truncation)

Security notes:
- Secrets are never logged; DEBUG output only shows counters and lengths.
- Rate limiting and replay protection are the caller's job.
"""

import enum
import hashlib
import hmac
import logging
import os
import struct
import time
from dataclasses import dataclass, replace
from typing import Callable, NamedTuple, Optional, Union

from . import base32
from .errors import (
    Base32Error,
    ConfigurationError,
    InvalidLength,
    InvalidSecret,
    MissingSecret,
    UnsupportedAlgorithm,
)

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # authenticator apps show 6 digits by default
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
DEFAULT_WINDOW = 1          # +/- steps accepted by verify_totp
SECRET_BYTES = 20           # 160-bit secret (common practice)
SUPPORTED_DIGITS = (6, 8)   # what the CLI accepts
MAX_COUNTER = 2 ** 64 - 1

SecretInput = Union[str, bytes, bytearray]


class HashAlgorithm(enum.Enum):
    """HMAC hash functions allowed by RFC 6238."""

    SHA1 = "SHA-1"
    SHA256 = "SHA-256"
    SHA512 = "SHA-512"

    @property
    def hashlib_name(self) -> str:
        return self.name.lower()

    @property
    def uri_name(self) -> str:
        """Spelling used in otpauth:// URIs (SHA1, SHA256, SHA512)."""
        return self.name

    @classmethod
    def parse(cls, value) -> "HashAlgorithm":
        """
        Accept a member, its value ("SHA-256") or its compact name ("sha256").

        Raises:
            UnsupportedAlgorithm: anything else
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            compact = value.strip().upper().replace("-", "")
            for member in cls:
                if member.name == compact:
                    return member
        raise UnsupportedAlgorithm(value)


@dataclass(frozen=True)
class TOTPOptions:
    """
    Per-call TOTP configuration.

    Fields:
        algorithm: HMAC hash, default SHA-1 (what every authenticator app supports)
        digits: code length, default 6
        period: seconds per step, default 30
        timestamp: Unix time in MILLISECONDS; None means "now"
        window: steps accepted on each side of the current one when verifying
    """

    algorithm: HashAlgorithm = HashAlgorithm.SHA1
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_TIME_STEP
    timestamp: Optional[int] = None
    window: int = DEFAULT_WINDOW

    def __post_init__(self):
        object.__setattr__(self, "algorithm", HashAlgorithm.parse(self.algorithm))
        if self.digits < 1:
            raise ConfigurationError(f"Invalid digits: {self.digits}")
        if self.period <= 0:
            raise ConfigurationError("Invalid period: must be a positive number")
        if self.window < 0:
            raise ConfigurationError("Invalid window: must be a non-negative number")

    def replace(self, **changes) -> "TOTPOptions":
        return replace(self, **changes)

    def resolved_timestamp(self) -> int:
        return current_timestamp() if self.timestamp is None else self.timestamp


class VerifyResult(NamedTuple):
    """Outcome of verify_totp; delta is the matched step offset, None when invalid."""

    valid: bool
    delta: Optional[int] = None


INVALID = VerifyResult(False, None)


# --- Secret handling -------------------------------------------------------
def resolve_secret(secret: Optional[SecretInput]) -> bytes:
    """
    Turn a text (Base32) or raw secret into key bytes.

    Raises:
        MissingSecret: None / "" / b""
        InvalidSecret: Base32 decoding failed (the codec error is the __cause__)
        TypeError: neither text nor bytes
    """
    if not secret:
        raise MissingSecret()
    if isinstance(secret, str):
        try:
            return base32.decode(secret)
        except Base32Error as e:
            raise InvalidSecret(e) from e
    if isinstance(secret, (bytes, bytearray)):
        return bytes(secret)
    raise TypeError(f"Secret must be str or bytes, not {type(secret).__name__}")


def generate_secret(
    length: int = SECRET_BYTES,
    random_bytes: Callable[[int], bytes] = os.urandom,
) -> str:
    """
    Create a new random secret of `length` symbols over A-Z2-7.

    - `length` bytes come from random_bytes (os.urandom, a CSPRNG, by default).
    - Each byte becomes one symbol (base32.encode_random), so a 20-byte
      request yields a 20-character secret.

    Raises:
        InvalidLength: length is not a positive integer
    """
    if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
        raise InvalidLength(length)
    secret = base32.encode_random(random_bytes(length))
    logger.debug("Generated %d-symbol secret", len(secret))
    return secret


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(counter: int) -> bytes:
    """
    Pack the counter as 8 bytes big-endian, as RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    if not 0 <= counter <= MAX_COUNTER:
        raise ValueError(f"Counter out of range for 8-byte packing: {counter}")
    return struct.pack(">Q", counter)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    RFC 4226 section 5.3 dynamic truncation.

    - offset = last byte & 0x0F
    - take 4 bytes from offset, clear the top bit of the first one
    - return that 31-bit unsigned integer

    The largest offset is 15, so any digest of 19+ bytes is safe
    (SHA-1: 20, SHA-256: 32, SHA-512: 64).
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def hotp(
    key: bytes,
    counter: int,
    algorithm: HashAlgorithm = HashAlgorithm.SHA1,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """
    Compute an HOTP code from raw key bytes.

    Steps:
    1. message = 8-byte big-endian counter
    2. digest = HMAC-<algorithm>(key, message)
    3. dbc = dynamic_truncate(digest)
    4. code = dbc % 10^digits, zero-padded to `digits` characters

    Deterministic: same inputs, same code.
    """
    if digits < 1:
        raise ConfigurationError(f"Invalid digits: {digits}")
    msg = int_to_bytes(counter)
    digest = hmac.new(key, msg, algorithm.hashlib_name).digest()
    dbc = dynamic_truncate(digest)
    logger.debug("HOTP: HMAC-%s(msg=counter=%d) -> %d-byte digest", algorithm.name, counter, len(digest))
    return str(dbc % (10 ** digits)).zfill(digits)


def generate_hotp(
    secret: SecretInput,
    counter: int,
    algorithm: HashAlgorithm = HashAlgorithm.SHA1,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """hotp() for a Base32 text or raw secret."""
    return hotp(resolve_secret(secret), counter, HashAlgorithm.parse(algorithm), digits)


# --- TOTP ------------------------------------------------------------------
def current_timestamp() -> int:
    """Wall-clock Unix time in milliseconds."""
    return int(time.time() * 1000)


def time_counter(timestamp: int, period: int = DEFAULT_TIME_STEP) -> int:
    """floor(timestamp_ms / 1000 / period): the TOTP step index."""
    return int(timestamp // 1000 // period)


def time_remaining(period: int = DEFAULT_TIME_STEP, timestamp: Optional[int] = None) -> int:
    """Seconds until the current step ends (1..period)."""
    if timestamp is None:
        timestamp = current_timestamp()
    return int(period - (timestamp // 1000) % period)


def generate_totp(secret: SecretInput, options: Optional[TOTPOptions] = None) -> str:
    """
    Generate the TOTP code for `secret` at options.timestamp (default: now).

    Raises:
        MissingSecret, InvalidSecret: see resolve_secret
    """
    options = options or TOTPOptions()
    timestamp = options.resolved_timestamp()
    key = resolve_secret(secret)
    counter = time_counter(timestamp, options.period)
    logger.debug("TOTP: time=%sms, period=%ds, counter=%d", timestamp, options.period, counter)
    return hotp(key, counter, options.algorithm, options.digits)


def _well_formed(code, digits: int) -> bool:
    return (
        isinstance(code, str)
        and len(code) == digits
        and code.isascii()
        and code.isdigit()
    )


def verify_totp(code: str, secret: SecretInput, options: Optional[TOTPOptions] = None) -> VerifyResult:
    """
    Check `code` against every step in [-window, +window] around the timestamp.

    - Malformed codes (empty, wrong length, non-digits) are rejected before
      any HMAC is computed.
    - Offsets are tried from most negative to most positive and the FIRST
      match wins, so if two steps happen to share a code the more negative
      offset is reported.
    - Steps whose counter would be negative are skipped.

    Returns:
        VerifyResult(True, delta) on a match, VerifyResult(False, None) otherwise
    """
    options = options or TOTPOptions()
    if not _well_formed(code, options.digits):
        logger.debug("TOTP verify: rejected malformed code")
        return INVALID

    key = resolve_secret(secret)
    timestamp = options.resolved_timestamp()
    step_ms = options.period * 1000

    for offset in range(-options.window, options.window + 1):
        counter = time_counter(timestamp + offset * step_ms, options.period)
        if counter < 0:
            continue
        expected = hotp(key, counter, options.algorithm, options.digits)
        if hmac.compare_digest(expected, code):
            logger.debug("TOTP verify: matched at offset %d", offset)
            return VerifyResult(True, offset)

    logger.debug("TOTP verify: no match within window %d", options.window)
    return INVALID
