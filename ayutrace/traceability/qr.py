"""
Product QR Codes

Renders the QR code printed on product packaging. Consumers scan it and
the code's text is looked up with TraceabilityService.trace_product().

Author: AyuTrace Project
"""

from io import StringIO
from typing import Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def build_qr(data: str) -> qrcode.QRCode:
    """Build a QR code sized to fit data."""
    if not data:
        raise ValueError("QR code data cannot be empty")
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)
    return qr


def render_qr(data: str, filename: Optional[str] = None) -> Optional[str]:
    """
    Render data as a QR code.

    Args:
        data: Text to encode (a product QR code)
        filename: Optional image path; requires Pillow

    Returns:
        ASCII QR code string if no filename, else None
    """
    qr = build_qr(data)
    if filename:
        img = qr.make_image(fill_color="black", back_color="white")
        img.save(filename)
        return None

    out = StringIO()
    qr.print_ascii(out=out)
    return out.getvalue()
