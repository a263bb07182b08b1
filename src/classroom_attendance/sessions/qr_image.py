from __future__ import annotations

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_H


def render_png(data: str, *, box_size: int = 10, border: int = 2) -> io.BytesIO:
    """PNG bytes of a QR code for ``data``."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_H,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf
