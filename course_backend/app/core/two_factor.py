"""
Admin two-factor helpers: TOTP (RFC 6238) secrets and QR provisioning images.

TOTP parameters are the authenticator-app defaults: SHA-1, 30 second step,
6 digits. Verification accepts one step of clock drift either way.
"""
import io
import logging

import pyotp
import qrcode
from PIL import Image

from app.core.exceptions import ErrorCode, InternalError

logger = logging.getLogger(__name__)

TOTP_ISSUER = "Course"
QR_SIZE_PX = 256


def generate_totp_secret() -> str:
    try:
        return pyotp.random_base32()
    except Exception as e:
        raise InternalError("не удалось сгенерировать секрет", code=ErrorCode.TOTP_FAILED, cause=e) from e


def provisioning_uri(secret: str, login: str) -> str:
    return pyotp.totp.TOTP(secret).provisioning_uri(name=login, issuer_name=TOTP_ISSUER)


def verify_totp(secret: str, code) -> bool:
    """Check a 6-digit code against the admin's secret."""
    if code is None or code == "" or not secret:
        return False
    if isinstance(code, int):
        # JSON clients may send the code as a number and drop leading zeros
        code = f"{code:06d}"
    return pyotp.TOTP(secret).verify(str(code).strip(), valid_window=1)


def render_qr_png(data: str, size: int = QR_SIZE_PX) -> bytes:
    """Render data as a PNG QR code (medium error correction, size x size px)."""
    try:
        qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=4)
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white").get_image()
        img = img.convert("RGB").resize((size, size), Image.Resampling.NEAREST)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
    except Exception as e:
        logger.error(f"QR rendering failed: {type(e).__name__}")
        raise InternalError("не удалось сформировать QR-код", code=ErrorCode.QR_FAILED, cause=e) from e


def provisioning_qr(secret: str, login: str) -> bytes:
    return render_qr_png(provisioning_uri(secret, login))
