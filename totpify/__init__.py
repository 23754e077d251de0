"""
totpify
=======

HOTP (RFC 4226) and TOTP (RFC 6238) codes for two-factor authentication.

- HOTP: code = Truncate(HMAC(key, counter)) mod 10^digits
- TOTP: HOTP with counter = floor(unix_ms / 1000 / period)
- Dynamic truncation: 4 bytes from the digest at offset (last byte & 0x0F)

Quick start
-----------
>>> from totpify import TOTPOptions, generate_totp, verify_totp
>>> generate_totp("JBSWY3DPEHPK3PXP", TOTPOptions(timestamp=1635000000000))
'930202'
>>> verify_totp("930202", "JBSWY3DPEHPK3PXP", TOTPOptions(timestamp=1635000030000))
VerifyResult(valid=True, delta=-1)

Server side: store the secret from generate_secret(), show
generate_qr_code(secret, issuer, account) once, then call verify_totp() on
every login. Replay protection and rate limiting are up to the caller.
"""

from .base32 import decode as decode_base32
from .base32 import normalize as normalize_secret
from .errors import (
    Base32Error,
    ConfigurationError,
    EmptySecret,
    InvalidCharacter,
    InvalidLength,
    InvalidSecret,
    MissingSecret,
    OTPError,
    QRCodeError,
    UnsupportedAlgorithm,
)
from .otp_core import (
    HashAlgorithm,
    TOTPOptions,
    VerifyResult,
    generate_hotp,
    generate_secret,
    generate_totp,
    hotp,
    resolve_secret,
    time_remaining,
    verify_totp,
)
from .provisioning import build_otpauth_uri, generate_qr_code, render_qr_png

__version__ = "1.0.0"

__all__ = [
    "Base32Error",
    "ConfigurationError",
    "EmptySecret",
    "HashAlgorithm",
    "InvalidCharacter",
    "InvalidLength",
    "InvalidSecret",
    "MissingSecret",
    "OTPError",
    "QRCodeError",
    "TOTPOptions",
    "UnsupportedAlgorithm",
    "VerifyResult",
    "build_otpauth_uri",
    "decode_base32",
    "generate_hotp",
    "generate_qr_code",
    "generate_secret",
    "generate_totp",
    "hotp",
    "normalize_secret",
    "render_qr_png",
    "resolve_secret",
    "time_remaining",
    "verify_totp",
]
