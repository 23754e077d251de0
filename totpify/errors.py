"""
errors.py: Exception hierarchy for totpify.

Every error derives from OTPError, itself a ValueError, so callers that
already catch ValueError around OTP calls keep working.

Format problems with a code being verified are never errors: verify_totp
simply returns an invalid result.
"""


class OTPError(ValueError):
    """Base class for all totpify errors."""


class MissingSecret(OTPError):
    """No secret (None, empty string or empty bytes) was supplied."""

    def __init__(self, message: str = "Secret must be provided"):
        super().__init__(message)


# --- Base32 ---------------------------------------------------------------
class Base32Error(OTPError):
    """A Base32 text could not be decoded."""


class EmptySecret(Base32Error):
    def __init__(self, message: str = "Empty Base32 string"):
        super().__init__(message)


class InvalidCharacter(Base32Error):
    """A character outside A-Z2-7 was found after normalisation."""

    def __init__(self, char: str, position: int):
        self.char = char
        self.position = position
        super().__init__(
            f"Invalid base32 character in key: {char!r} at position {position}"
        )


class InvalidSecret(OTPError):
    """Wraps a Base32Error raised while resolving a text secret."""

    def __init__(self, cause: Base32Error):
        self.cause = cause
        super().__init__(f"Invalid secret: {cause}")


# --- Provisioning ---------------------------------------------------------
class InvalidLength(OTPError):
    def __init__(self, length):
        self.length = length
        super().__init__(f"Secret length must be a positive number of bytes, got {length!r}")


class QRCodeError(OTPError):
    """The QR library failed to render an otpauth URI."""


# --- Configuration --------------------------------------------------------
class ConfigurationError(OTPError):
    """Invalid algorithm / digits / period / window configuration."""


class UnsupportedAlgorithm(ConfigurationError):
    def __init__(self, name):
        self.name = name
        super().__init__(f"Invalid algorithm: {name}")
