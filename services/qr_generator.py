import qrcode
from io import BytesIO

from config import QR_BORDER, QR_BOX_SIZE


def render_entry_qr(booking, box_size=QR_BOX_SIZE, border=QR_BORDER):
    """PNG of the booking's entry token, as scanned at the spot's gate."""
    qr = qrcode.QRCode(version=1, box_size=box_size, border=border)
    qr.add_data(booking.qr_code)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer
