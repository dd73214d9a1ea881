"""QR code payload building and image rendering service."""
import base64
import io
import json
from typing import Dict, Optional, Tuple

import qrcode
from flask import current_app

PAYLOAD_FIELDS = ('sessionId', 'expiryTime', 'signature')


class QRService:
    """Service for QR code operations."""

    @staticmethod
    def build_payload(session_id: str, expiry_time: str, signature: str) -> str:
        """Compact JSON embedded in the QR code. Holds no secret."""
        return json.dumps(
            {
                'sessionId': session_id,
                'expiryTime': expiry_time,
                'signature': signature
            },
            separators=(',', ':')
        )

    @staticmethod
    def parse_payload(qr_data_string: str) -> Tuple[Optional[Dict], Optional[str]]:
        """
        Parse scanned QR text back into its three fields.
        Returns: (payload, error_message)
        """
        try:
            qr_data = json.loads(qr_data_string)
        except (TypeError, ValueError):
            return None, "Invalid QR code format"

        if not isinstance(qr_data, dict):
            return None, "Invalid QR code format"

        for field in PAYLOAD_FIELDS:
            if not isinstance(qr_data.get(field), str) or not qr_data[field]:
                return None, f"Missing field: {field}"

        return {field: qr_data[field] for field in PAYLOAD_FIELDS}, None

    @staticmethod
    def render_image(qr_string: str) -> str:
        """Render the payload as a PNG data URL."""
        qr = qrcode.QRCode(
            version=None,  # Auto-determine size
            error_correction=qrcode.constants.ERROR_CORRECT_H,  # High error correction
            box_size=current_app.config.get('QR_IMAGE_BOX_SIZE', 10),
            border=current_app.config.get('QR_IMAGE_BORDER', 1),
        )
        qr.add_data(qr_string)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"

    @staticmethod
    def try_render_image(qr_string: str) -> Optional[str]:
        """Render, or log and return None. Callers must not fail on this."""
        try:
            return QRService.render_image(qr_string)
        except Exception:
            current_app.logger.exception('QR image rendering failed')
            return None
