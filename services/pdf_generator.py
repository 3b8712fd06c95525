from io import BytesIO

from django.utils import timezone
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from services.qr_generator import render_entry_qr


def generate_booking_pass_pdf(booking):
    qr_buffer = render_entry_qr(booking, box_size=15, border=6)

    pdf_buffer = BytesIO()
    p = canvas.Canvas(pdf_buffer, pagesize=A4)
    width, height = A4

    # Header
    p.setFont("Helvetica-Bold", 32)
    p.drawCentredString(width / 2, height - 80, "PARKING PASS")
    p.setFont("Helvetica", 18)
    p.drawCentredString(width / 2, height - 120, str(booking.spot))

    # QR Code
    p.setFont("Helvetica-Bold", 16)
    p.drawCentredString(width / 2, height - 180, "Scan at the entrance")
    p.drawImage(
        ImageReader(qr_buffer),
        width / 2 - 130,
        height - 460,
        width=260,
        height=260,
        preserveAspectRatio=True,
    )

    # PIN & Details
    p.setFont("Helvetica-Bold", 28)
    p.drawCentredString(width / 2, height - 500, f"PIN: {booking.pin}")

    start = timezone.localtime(booking.start_time)
    end = timezone.localtime(booking.end_time)
    y = height - 550
    p.setFont("Helvetica-Bold", 16)
    details = [
        ("Booking", f"#{booking.pk}"),
        ("Vehicle", str(booking.vehicle) if booking.vehicle else "N/A"),
        ("Address", booking.spot.address or "N/A"),
        ("From", start.strftime("%d %B %Y, %I:%M %p")),
        ("Until", end.strftime("%d %B %Y, %I:%M %p")),
        ("Total", f"{booking.total_cost}"),
        ("Status", booking.get_status_display()),
    ]
    for label, value in details:
        p.drawString(100, y, f"{label}:")
        p.setFont("Helvetica", 16)
        p.drawString(300, y, value)
        p.setFont("Helvetica-Bold", 16)
        y -= 36

    # Footer
    p.setFont("Helvetica-Oblique", 12)
    p.drawCentredString(width / 2, 40, "Valid only for the booked spot and time window")

    p.showPage()
    p.save()
    pdf_buffer.seek(0)
    return pdf_buffer
