"""
Thermal Ticket Utilities
Plain-text sale receipt for 80mm printers (48 columns)
"""

from fleamarket.models import GUEST_CLIENT_NAME
from fleamarket.utils.formatting import to_decimal, format_datetime

TICKET_WIDTH = 48

PAYMENT_LABELS = {
    'cash': 'Efectivo',
    'card': 'Tarjeta',
    'transfer': 'Transferencia',
}

DEFAULT_FOOTER = 'Gracias por su compra'


def center_text(text, width=TICKET_WIDTH):
    text = text[:width]
    padding = (width - len(text)) // 2
    return ' ' * max(0, padding) + text


def separator(char='-', width=TICKET_WIDTH):
    return char * width


def format_line(left, right, width=TICKET_WIDTH):
    """Left and right aligned text on one line, at least one space apart"""
    spaces = width - len(left) - len(right)
    return left + ' ' * max(1, spaces) + right


def format_money(amount):
    return f"${to_decimal(amount):.2f}"


def generate_ticket(sale, store=None, width=TICKET_WIDTH):
    """
    Build the ticket text for a sale

    Args:
        sale: Sale record
        store: Store record for the header and footer
        width: Columns per line

    Returns:
        str: Ticket content, lines joined with newlines
    """
    lines = []

    # Header
    lines.append(separator('=', width))
    lines.append(center_text(store.name if store and store.name else 'TIENDA', width))
    if store and store.address:
        lines.append(center_text(store.address, width))
    if store and store.phone:
        lines.append(center_text(f"Tel: {store.phone}", width))
    lines.append(separator('=', width))

    # Sale info
    lines.append('')
    lines.append(format_line('Fecha:', format_datetime(sale.created_at), width))
    lines.append(format_line('Folio:', sale.sale_number or 'N/A', width))
    lines.append(format_line('Vendedor:', sale.user_name or 'N/A', width))
    if sale.customer_name and sale.customer_name != GUEST_CLIENT_NAME:
        lines.append(format_line('Cliente:', sale.customer_name, width))
    lines.append('')
    lines.append(separator('-', width))

    # Items
    lines.append('CANT  DESCRIPCION              IMPORTE')
    lines.append(separator('-', width))
    for item in sale.items:
        qty = str(item.quantity).ljust(5)
        name = (item.name or 'Producto')[:22].ljust(22)
        price = format_money(item.final_price).rjust(8)
        lines.append(f"{qty} {name} {price}")
        if to_decimal(item.promo_discount) > 0:
            lines.append(f"      Desc: -{format_money(item.promo_discount)}")
    lines.append(separator('-', width))

    # Totals
    lines.append('')
    lines.append(format_line('Subtotal:', format_money(sale.subtotal), width))
    if to_decimal(sale.promo_discount) > 0:
        lines.append(format_line('Promociones:', f"-{format_money(sale.promo_discount)}", width))
    if to_decimal(sale.vip_discount) > 0:
        lines.append(format_line('Desc. VIP:', f"-{format_money(sale.vip_discount)}", width))
    lines.append(separator('-', width))
    lines.append(format_line('TOTAL:', format_money(sale.total), width))
    lines.append(separator('-', width))

    # Payment
    lines.append('')
    lines.append(format_line('Pago:', PAYMENT_LABELS.get(sale.payment_method, sale.payment_method), width))
    if sale.payment_method == 'cash' and sale.cash_received:
        lines.append(format_line('Recibido:', format_money(sale.cash_received), width))
        change = to_decimal(sale.cash_received) - to_decimal(sale.total)
        lines.append(format_line('Cambio:', format_money(change), width))
    if sale.is_returned:
        lines.append(center_text('*** DEVUELTA ***', width))

    # Footer
    lines.append('')
    lines.append(separator('=', width))
    footer = store.ticket_footer if store and store.ticket_footer else DEFAULT_FOOTER
    lines.append(center_text(footer, width))
    lines.append(separator('=', width))
    lines.append('')

    return '\n'.join(lines)
