"""
Back Office — Invoice PDF rendering (reportlab)
"""
from decimal import Decimal
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from backoffice.core.config import Settings, get_settings
from backoffice.models.common import as_utc
from backoffice.models.order import Order

HEADER_BG = colors.HexColor("#2c3e50")
GRID = colors.HexColor("#bdc3c7")


def _money(value) -> str:
    return f"{Decimal(value):.2f} €"


def _address_lines(address: dict | None) -> str:
    if not address:
        return "-"
    parts = [
        address.get("full_name"),
        address.get("street"),
        f"{address.get('postal_code', '')} {address.get('city', '')}".strip(),
        address.get("country"),
    ]
    return "<br/>".join(p for p in parts if p)


class InvoiceRenderer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def render(self, order: Order) -> bytes:
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=A4,
            leftMargin=18 * mm, rightMargin=18 * mm, topMargin=18 * mm, bottomMargin=18 * mm,
            title=f"Facture {order.order_number}",
        )
        styles = getSampleStyleSheet()
        vat_label = f"{(self.settings.VAT_RATE * 100):.0f}%"
        story = [
            Paragraph("FACTURE", styles["Title"]),
            Paragraph(self.settings.STORE_NAME, styles["Heading2"]),
            Paragraph(f"{self.settings.STORE_ADDRESS}<br/>{self.settings.STORE_EMAIL}", styles["Normal"]),
            Spacer(1, 8 * mm),
        ]

        created = as_utc(order.created_at).strftime("%d/%m/%Y") if order.created_at else "-"
        info = Table(
            [
                ["N° commande", order.order_number],
                ["Date", created],
                ["Client", order.customer_username],
                ["Paiement", f"{order.payment_method.value} ({order.payment_status.value})"],
            ],
            colWidths=[40 * mm, 120 * mm],
        )
        info.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID),
        ]))
        story += [info, Spacer(1, 6 * mm)]

        addresses = Table(
            [
                [Paragraph("<b>Adresse de livraison</b>", styles["Normal"]),
                 Paragraph("<b>Adresse de facturation</b>", styles["Normal"])],
                [Paragraph(_address_lines(order.shipping_address), styles["Normal"]),
                 Paragraph(_address_lines(order.billing_address), styles["Normal"])],
            ],
            colWidths=[80 * mm, 80 * mm],
        )
        story += [addresses, Spacer(1, 6 * mm)]

        rows = [["Article", "Qté", "Prix HT", "TVA", "Total HT"]]
        for item in order.items:
            rows.append([
                Paragraph(item["product_name"], styles["Normal"]),
                str(item["quantity"]),
                _money(item["unit_price"]),
                vat_label,
                _money(item["line_total"]),
            ])
        items = Table(rows, colWidths=[70 * mm, 15 * mm, 28 * mm, 17 * mm, 30 * mm], repeatRows=1)
        items.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.5, GRID),
        ]))
        story += [items, Spacer(1, 6 * mm)]

        totals = Table(
            [
                ["Sous-total HT", _money(order.subtotal)],
                [f"TVA ({vat_label})", _money(order.tax)],
                ["Livraison", _money(order.shipping)],
                ["Total TTC", _money(order.total)],
            ],
            colWidths=[130 * mm, 30 * mm],
        )
        totals.setStyle(TableStyle([
            ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
        ]))
        story += [totals, Spacer(1, 12 * mm)]
        story.append(Paragraph(
            f"Merci pour votre confiance. {self.settings.STORE_NAME} - {self.settings.STORE_EMAIL}",
            styles["Italic"],
        ))

        doc.build(story)
        return buffer.getvalue()
