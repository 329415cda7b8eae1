"""
Order invoice PDF built with ReportLab.
"""

import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from . import promotions
from .domain import PAYMENT_METHOD_LABELS, PAYMENT_STATUS_LABELS, SHIPPING_STATUS_LABELS, OrderDetail
from .pricing import format_money

BRAND_COLOR = colors.HexColor("#0440a5")


def generate_order_pdf(detail: OrderDetail, company_name: str = "OrderDesk", currency: str = "COP") -> bytes:
    """
    Render an order as a one-page invoice.

    Returns PDF bytes for download.
    """
    order = detail.order
    customer = detail.customer

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=order.order_number,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "InvoiceTitle",
        parent=styles["Heading1"],
        fontSize=22,
        textColor=BRAND_COLOR,
        spaceAfter=12,
    )
    heading_style = ParagraphStyle(
        "InvoiceHeading",
        parent=styles["Heading2"],
        fontSize=13,
        spaceBefore=16,
        spaceAfter=8,
    )
    normal_style = styles["Normal"]

    elements = [Paragraph(company_name, title_style)]
    elements.append(Paragraph(f"Order {order.order_number}", styles["Heading2"]))
    is_promo = order.order_type == "promomix"
    if is_promo:
        elements.append(Paragraph(f"PROMOMIX {promotions.PROMOMIX_YEAR}", heading_style))
    elements.append(Spacer(1, 12))

    info_data = [
        ["Date:", order.order_date.strftime("%d/%m/%Y")],
        ["Customer:", customer.name],
        ["National ID:", customer.national_id],
        ["Phone:", customer.phone],
        ["Payment:", PAYMENT_METHOD_LABELS.get(order.payment_method, order.payment_method)],
        ["Payment status:", PAYMENT_STATUS_LABELS.get(order.payment_status, order.payment_status)],
        ["Shipping status:", SHIPPING_STATUS_LABELS.get(order.shipping_status, order.shipping_status)],
    ]
    if customer.address:
        info_data.append(["Address:", ", ".join(filter(None, [customer.address, customer.city]))])
    if order.invoice_number:
        info_data.append(["Invoice:", order.invoice_number])

    info_table = Table(info_data, colWidths=[1.5 * inch, 4.5 * inch])
    info_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("TEXTCOLOR", (0, 0), (0, -1), colors.HexColor("#64748b")),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    elements.append(info_table)

    elements.append(Paragraph("Products", heading_style))
    line_data = [["Product", "Qty", "Unit price", "Subtotal"]]
    for item in detail.items:
        line_data.append(
            [
                item.product_name or f"#{item.product_id}",
                str(item.quantity),
                format_money(item.unit_price, currency),
                format_money(item.subtotal, currency),
            ]
        )
    line_table = Table(line_data, colWidths=[3.2 * inch, 0.6 * inch, 1.2 * inch, 1.2 * inch])
    line_table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e5e7eb")),
                ("PADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    elements.append(line_table)
    elements.append(Spacer(1, 12))

    totals_data = [
        ["Subtotal:", format_money(order.subtotal, currency)],
        ["Tax (19%):", format_money(order.tax, currency)],
        ["Total:", format_money(order.total, currency)],
    ]
    if is_promo:
        savings = promotions.order_savings((i.product_name or "", i.quantity) for i in detail.items)
        if savings > 0:
            totals_data.append(["PromoMix savings:", format_money(savings, currency)])
    totals_table = Table(totals_data, colWidths=[4.8 * inch, 1.4 * inch])
    totals_table.setStyle(
        TableStyle(
            [
                ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
            ]
        )
    )
    elements.append(totals_table)

    if order.notes:
        elements.append(Paragraph("Notes", heading_style))
        elements.append(Paragraph(order.notes, normal_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()
