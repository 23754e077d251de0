"""
provisioning.py: otpauth:// URIs and QR codes for authenticator apps.

Scan flow: build_otpauth_uri() -> render_qr_png() -> show the PNG (or the
data URL from generate_qr_code()) to the user, who scans it with Google
Authenticator / Authy / etc.
"""

import base64
import io
import logging
from urllib.parse import quote

import qrcode
from PIL import Image
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from . import base32
from .errors import ConfigurationError, MissingSecret, QRCodeError

logger = logging.getLogger(__name__)

DEFAULT_ISSUER = "Totpify"
DEFAULT_ACCOUNT = "user"
DEFAULT_QR_SIZE = 256       # pixels, square
QR_BORDER = 1               # quiet zone, in modules

# characters encodeURIComponent leaves alone, besides alphanumerics and "_.-~"
_URI_SAFE = "!*'()"


def _encode_component(value: str) -> str:
    return quote(value, safe=_URI_SAFE)


def build_otpauth_uri(secret: str, issuer: str = DEFAULT_ISSUER, account: str = DEFAULT_ACCOUNT) -> str:
    """
    otpauth://totp/<issuer>:<account>?secret=<SECRET>&issuer=<issuer>

    The secret is normalised (whitespace removed, upper case) but not
    otherwise validated; issuer and account are percent-encoded.
    """
    if not secret:
        raise MissingSecret()
    label_issuer = _encode_component(issuer)
    label_account = _encode_component(account)
    return (
        f"otpauth://totp/{label_issuer}:{label_account}"
        f"?secret={base32.normalize(secret)}&issuer={label_issuer}"
    )


def render_qr_png(uri: str, size: int = DEFAULT_QR_SIZE) -> bytes:
    """
    Render `uri` as a size x size PNG, error correction level H, 1-module border.

    Raises:
        ConfigurationError: size is not positive
        QRCodeError: the data does not fit in a QR code
    """
    if size <= 0:
        raise ConfigurationError(f"Invalid QR size: {size}")

    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        border=QR_BORDER,
        image_factory=PilImage,
    )
    qr.add_data(uri)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        # qrcode 8 reports oversized data as a plain ValueError
        raise QRCodeError(f"QR code generation failed: {e}") from e

    img = qr.make_image(fill_color="black", back_color="white").get_image()
    img = img.resize((size, size), Image.NEAREST)

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    logger.debug("QR: version %d, %dpx PNG of %d bytes", qr.version, size, buffer.tell())
    return buffer.getvalue()


def generate_qr_code(
    secret: str,
    issuer: str = DEFAULT_ISSUER,
    account: str = DEFAULT_ACCOUNT,
    size: int = DEFAULT_QR_SIZE,
) -> str:
    """QR code for the secret's otpauth URI, as a data:image/png;base64 URL."""
    uri = build_otpauth_uri(secret, issuer=issuer, account=account)
    png = render_qr_png(uri, size=size)
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
