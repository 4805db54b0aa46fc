# wims/utils/bill_pdf.py

from __future__ import annotations

import io
from datetime import date, datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from ..config.company import company_context
from ..pricing import format_inr


def _fmt_date(d):
    if not d:
        return "-"
    if isinstance(d, (datetime, date)):
        return d.strftime("%d-%m-%Y")
    return str(d)


def _money(v):
    # Base-14 fonts have no rupee glyph.
    if v is None:
        return "-"
    return format_inr(v).replace("₹", "Rs. ")


def _qty(v):
    v = float(v or 0)
    return f"{v:g}"


def render_bill_pdf(bill) -> bytes:
    """
    Render a Bill PDF (NO DB writes).
    Returns PDF bytes.
    """
    company = company_context()
    is_gst = bill.bill_type == "gst"

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    BRAND = colors.HexColor("#0f766e")
    GRAY = colors.HexColor("#6b7280")
    DARK = colors.HexColor("#111827")
    LINE = colors.HexColor("#e5e7eb")

    # --- Header bar ---
    c.setFillColor(BRAND)
    c.rect(0, height - 28 * mm, width, 28 * mm, stroke=0, fill=1)

    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 16)
    c.drawString(18 * mm, height - 14 * mm, company["COMPANY_NAME"])
    c.setFont("Helvetica", 8)
    c.drawString(18 * mm, height - 19 * mm, company["COMPANY_ADDRESS"])
    c.drawString(18 * mm, height - 23 * mm, f"GSTIN: {company['COMPANY_GSTIN']}  |  {company['COMPANY_PHONE']}")

    c.setFont("Helvetica-Bold", 12)
    title = "TAX INVOICE" if is_gst else "INVOICE"
    c.drawRightString(width - 18 * mm, height - 14 * mm, f"{title} {bill.bill_number}")
    c.setFont("Helvetica", 9)
    c.drawRightString(
        width - 18 * mm,
        height - 20 * mm,
        f"Order: {bill.order_number}  |  Date: {_fmt_date(bill.generated_at)}",
    )

    y = height - 38 * mm

    # --- Billed to ---
    order = getattr(bill, "order", None)
    client = getattr(order, "client", None) if order else None

    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(18 * mm, y, "Billed To")
    y -= 6 * mm

    c.setStrokeColor(LINE)
    c.setFillColor(colors.white)
    c.roundRect(18 * mm, y - 26 * mm, width - 36 * mm, 26 * mm, 6, stroke=1, fill=1)

    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(22 * mm, y - 8 * mm, bill.client_name)

    c.setFont("Helvetica", 9)
    line_y = y - 14 * mm
    for value in (
        getattr(client, "address", None),
        getattr(client, "phone", None),
        f"GSTIN: {bill.gst_number}" if bill.gst_number else None,
    ):
        if value:
            c.drawString(22 * mm, line_y, str(value)[:90])
            line_y -= 5 * mm

    y -= 34 * mm

    # --- Items table ---
    data = [["Item", "Qty", "Unit", "Rate", "Amount"]]
    for it in bill.items:
        data.append([it.name, _qty(it.quantity), it.unit or "", _money(it.unit_price), _money(it.line_total)])
    if len(data) == 1:
        data.append(["(No items)", "-", "-", "-", "-"])

    table = Table(data, colWidths=[74 * mm, 18 * mm, 20 * mm, 30 * mm, 32 * mm], hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
        ("TEXTCOLOR", (0, 0), (-1, 0), DARK),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.5, LINE),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 6),
    ]))

    _tw, th = table.wrapOn(c, width - 36 * mm, height)
    table.drawOn(c, 18 * mm, y - th)
    y = y - th - 10 * mm

    # --- Totals ---
    block_x = width - 18 * mm
    rate = (bill.tax / bill.subtotal * 100) if bill.subtotal else 0.0
    tax_label = f"{'GST' if is_gst else 'Tax'} ({rate:g}%)"

    c.setFont("Helvetica", 9)
    c.setFillColor(GRAY)
    c.drawRightString(block_x - 40 * mm, y, "Subtotal")
    c.drawRightString(block_x - 40 * mm, y - 6 * mm, tax_label)
    c.setFillColor(DARK)
    c.setFont("Helvetica-Bold", 10)
    c.drawRightString(block_x - 40 * mm, y - 14 * mm, "Total")

    c.setFont("Helvetica", 9)
    c.drawRightString(block_x, y, _money(bill.subtotal))
    c.drawRightString(block_x, y - 6 * mm, _money(bill.tax))
    c.setFont("Helvetica-Bold", 10)
    c.drawRightString(block_x, y - 14 * mm, _money(bill.total))

    # --- Footer ---
    c.setFillColor(LINE)
    c.rect(0, 0, width, 12 * mm, stroke=0, fill=1)
    c.setFillColor(colors.HexColor("#374151"))
    c.setFont("Helvetica", 8)
    c.drawString(18 * mm, 4 * mm, f"{company['COMPANY_NAME']} • {company['COMPANY_EMAIL']}")
    c.setFillColor(GRAY)
    c.drawRightString(width - 18 * mm, 4 * mm, f"Status: {bill.status.value}")

    c.showPage()
    c.save()

    pdf = buf.getvalue()
    buf.close()
    return pdf
