"""TOTP service — secrets, provisioning URIs, QR codes and code checks."""

import base64
import binascii
import io
from datetime import datetime
from typing import Optional

import pyotp
import qrcode

from portal.core.clock import Clock, as_utc, utc_now
from portal.core.config import settings

TOTP_INTERVAL = 30
TOTP_DIGITS = 6


class TotpService:
    """Thin wrapper over pyotp and qrcode with an injectable clock."""

    def __init__(
        self,
        clock: Clock = utc_now,
        issuer: Optional[str] = None,
        valid_window: Optional[int] = None,
    ):
        self.clock = clock
        self.issuer = issuer or settings.TOTP_ISSUER
        self.valid_window = settings.TOTP_VALID_WINDOW if valid_window is None else valid_window

    @staticmethod
    def generate_secret() -> str:
        """Random 160-bit secret, base32 encoded (32 characters)."""
        return pyotp.random_base32()

    def provisioning_uri(self, secret: str, email: str) -> str:
        return pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL).provisioning_uri(
            name=email, issuer_name=self.issuer
        )

    @staticmethod
    def qr_code_data_url(uri: str) -> str:
        """Render ``uri`` as a PNG and return it as a ``data:`` URL."""
        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=8,
            border=4,
        )
        qr.add_data(uri)
        qr.make(fit=True)
        image = qr.make_image()

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def verify(self, secret: str, code: str, for_time: Optional[datetime] = None) -> bool:
        """Check ``code`` against ``secret`` within +/- ``valid_window`` steps.

        Malformed secrets or codes verify as False.
        """
        if not code or len(code) != TOTP_DIGITS or not code.isdigit():
            return False
        moment = as_utc(for_time or self.clock())
        try:
            totp = pyotp.TOTP(secret, digits=TOTP_DIGITS, interval=TOTP_INTERVAL)
            return totp.verify(code, for_time=moment, valid_window=self.valid_window)
        except (binascii.Error, ValueError):
            return False
