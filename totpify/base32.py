"""
base32.py: Base32 (RFC 4648) codec for OTP secrets.

Two directions, on purpose not symmetric:

- decode(): standard Base32 bit-packing, 5 bits per symbol. Accepts the
  forms users actually paste from authenticator setup screens: lower case,
  spaces between groups, with or without '=' padding.
- encode_random(): maps ONE byte to ONE symbol (byte % 32). Used only to turn
  random bytes into a new secret; it is not Base32 bit-packing and the output
  has exactly as many symbols as there were bytes. Secrets created by earlier
  releases were produced this way, so it stays.
"""

import logging

from .errors import EmptySecret, InvalidCharacter

logger = logging.getLogger(__name__)

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_SYMBOL_VALUES = {char: value for value, char in enumerate(ALPHABET)}


def normalize(text: str) -> str:
    """
    Remove every whitespace character and upper-case the rest.

    Example: normalize("jbsw y3dp\\tehpk 3pxp") -> "JBSWY3DPEHPK3PXP"
    """
    return "".join(text.split()).upper()


def decode(text: str) -> bytes:
    """
    Decode a Base32 text secret into raw key bytes.

    Steps:
    1. normalize() then strip trailing '=' padding
    2. reject empty input (EmptySecret) and symbols outside A-Z2-7
       (InvalidCharacter)
    3. shift 5 bits per symbol into a bit buffer, emit a byte each time at
       least 8 bits are buffered
    4. leftover bits (< 8) are padding and are dropped

    The remainder length is not validated: 16 symbols give 10 bytes,
    13 symbols give 8 bytes, and so on.

    Raises:
        EmptySecret: nothing left after normalisation
        InvalidCharacter: a symbol outside the alphabet
    """
    normalized = normalize(text).rstrip("=")
    if not normalized:
        raise EmptySecret()

    for position, char in enumerate(normalized):
        if char not in _SYMBOL_VALUES:
            raise InvalidCharacter(char, position)

    buffer = 0
    bits = 0
    out = bytearray()
    for char in normalized:
        buffer = (buffer << 5) | _SYMBOL_VALUES[char]
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            # keep only the bits not yet emitted
            buffer &= (1 << bits) - 1

    logger.debug("Base32: decoded %d symbols into %d bytes", len(normalized), len(out))
    return bytes(out)


def encode_random(data: bytes) -> str:
    """Map each byte to ALPHABET[byte % 32]; len(result) == len(data)."""
    return "".join(ALPHABET[byte % len(ALPHABET)] for byte in data)
