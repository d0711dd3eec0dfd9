"""QR code token signing and verification service."""
import base64
import hashlib
import hmac
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Union

import qrcode

from attendance_engine.utils.helpers import isoformat_utc, to_utc_naive, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedToken:
    """Short-lived credential binding a class to a validity window."""
    class_id: str
    issued_at: datetime
    expires_at: datetime
    signature: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'class_id': self.class_id,
            'issued_at': isoformat_utc(self.issued_at),
            'expires_at': isoformat_utc(self.expires_at),
            'signature': self.signature
        }

    def to_payload(self) -> str:
        """Compact JSON string carried by the QR code."""
        return json.dumps(self.to_dict(), separators=(',', ':'))


def _parse_instant(value: str) -> datetime:
    text = value[:-1] + '+00:00' if value.endswith('Z') else value
    return to_utc_naive(datetime.fromisoformat(text))


class TokenService:
    """Service for QR token operations."""

    @staticmethod
    def sign(class_id: str, issued_at: str, secret: str) -> str:
        """HMAC-SHA256 over the class id and issue instant."""
        message = f"{class_id}-{issued_at}".encode()
        return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()

    @staticmethod
    def issue(
        class_id: str,
        validity_minutes: int,
        secret: str,
        now: datetime = None
    ) -> SignedToken:
        """Mint a token for ``class_id`` valid for ``validity_minutes``."""
        issued_at = (now or utcnow()).replace(microsecond=0)
        expires_at = issued_at + timedelta(minutes=validity_minutes)

        return SignedToken(
            class_id=class_id,
            issued_at=issued_at,
            expires_at=expires_at,
            signature=TokenService.sign(class_id, isoformat_utc(issued_at), secret)
        )

    @staticmethod
    def verify(
        token: Union[SignedToken, str, Dict],
        expected_class_id: str,
        secret: str,
        now: datetime = None,
        max_validity: Optional[timedelta] = None
    ) -> bool:
        """Return True only for an authentic, unexpired token for the class.

        Never raises: malformed payloads simply fail verification.
        """
        try:
            if isinstance(token, SignedToken):
                data = token.to_dict()
            elif isinstance(token, str):
                data = json.loads(token)
            else:
                data = dict(token)

            class_id = data['class_id']
            issued_at_text = data['issued_at']
            signature = data['signature']
            issued_at = _parse_instant(issued_at_text)
            expires_at = _parse_instant(data['expires_at'])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Rejected malformed QR token: %s", e)
            return False

        if class_id != expected_class_id:
            return False

        current = to_utc_naive(now) if now else utcnow()
        if current > expires_at:
            return False

        if max_validity is not None and expires_at - issued_at > max_validity:
            return False

        expected = TokenService.sign(class_id, issued_at_text, secret)
        return hmac.compare_digest(str(signature).encode(), expected.encode())

    @staticmethod
    def render_qr(token: SignedToken) -> str:
        """Render the token payload as a PNG data URL."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=1,
        )
        qr.add_data(token.to_payload())
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"
