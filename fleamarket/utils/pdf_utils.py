"""
PDF Generation Utilities
Printable sales report
"""

from io import BytesIO
from datetime import datetime
from reportlab.lib.pagesizes import letter, landscape
from reportlab.pdfgen import canvas

from fleamarket.utils.formatting import format_currency

# (key, header, x offset) for the sales table
REPORT_COLUMNS = [
    ('sale_number', 'Folio', 40),
    ('date', 'Fecha', 150),
    ('store', 'Tienda', 250),
    ('seller', 'Vendedor', 360),
    ('payment_method', 'Pago', 470),
    ('status', 'Estado', 560),
    ('total', 'Total', 640),
]


def _draw_table_header(pdf, y):
    pdf.setFont("Helvetica-Bold", 9)
    for _, header, x in REPORT_COLUMNS:
        pdf.drawString(x, y, header)
    y -= 5
    pdf.line(40, y, 752, y)
    return y - 14


def generate_sales_report_pdf(rows, summary, title="Reporte de Ventas", subtitle="", business_name="Flea Market"):
    """
    Generate a sales report PDF

    Args:
        rows: Sale rows from ReportService.sales_rows
        summary: Totals from ReportService.summarize (admin variant)
        title: Report title
        subtitle: Period or store description
        business_name: Printed in the header

    Returns:
        BytesIO: PDF content
    """
    output = BytesIO()
    pdf = canvas.Canvas(output, pagesize=landscape(letter))
    width, height = landscape(letter)

    y = height - 40
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawCentredString(width / 2, y, business_name)

    y -= 22
    pdf.setFont("Helvetica-Bold", 13)
    pdf.drawCentredString(width / 2, y, title)

    if subtitle:
        y -= 16
        pdf.setFont("Helvetica", 10)
        pdf.drawCentredString(width / 2, y, subtitle)

    y -= 14
    pdf.setFont("Helvetica-Oblique", 8)
    pdf.drawCentredString(width / 2, y, f"Generado: {datetime.now().strftime('%d/%m/%Y %H:%M')}")

    # Summary block
    y -= 28
    pdf.setFont("Helvetica", 10)
    breakdown = summary.get('payment_breakdown', {})
    summary_lines = [
        f"Ventas: {summary.get('sales_count', 0)}    Devoluciones: {summary.get('returned_count', 0)}",
        f"Total: {format_currency(summary.get('total_sales', 0))}    "
        f"Ticket promedio: {format_currency(summary.get('average_ticket', 0))}",
        f"Efectivo: {format_currency(breakdown.get('cash', 0))}    "
        f"Tarjeta: {format_currency(breakdown.get('card', 0))}    "
        f"Transferencia: {format_currency(breakdown.get('transfer', 0))}",
    ]
    if 'card_commission' in summary:
        summary_lines.append(
            f"Comisión tarjeta: {format_currency(summary['card_commission'])}    "
            f"Venta neta: {format_currency(summary.get('net_sales', 0))}"
        )
    for line in summary_lines:
        pdf.drawString(40, y, line)
        y -= 15

    y -= 10
    y = _draw_table_header(pdf, y)

    pdf.setFont("Helvetica", 8)
    for row in rows:
        for key, _, x in REPORT_COLUMNS:
            value = row.get(key, '')
            if key == 'total':
                value = format_currency(value)
            pdf.drawString(x, y, str(value)[:20])
        y -= 13

        if y < 50:  # Start new page if needed
            pdf.showPage()
            y = _draw_table_header(pdf, height - 40)
            pdf.setFont("Helvetica", 8)

    if not rows:
        pdf.drawString(40, y, "Sin ventas en el periodo")

    pdf.save()
    output.seek(0)
    return output
