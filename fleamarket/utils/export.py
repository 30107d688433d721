"""
Export utilities for sales spreadsheets (Excel and CSV)
"""

import csv
import io
from io import BytesIO
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter

SALES_COLUMNS = {
    'sale_number': 'Folio',
    'date': 'Fecha',
    'store': 'Tienda',
    'seller': 'Vendedor',
    'customer': 'Cliente',
    'items': 'Artículos',
    'subtotal': 'Subtotal',
    'discount': 'Descuento',
    'total': 'Total',
    'payment_method': 'Pago',
    'status': 'Estado',
}

ADMIN_SALES_COLUMNS = dict(SALES_COLUMNS, card_commission='Comisión Tarjeta')


def _split_columns(columns):
    if isinstance(columns, dict):
        return list(columns.values()), list(columns.keys())
    return list(columns), list(columns)


def export_to_excel(data, columns, title="Reporte", sheet_name="Datos"):
    """
    Export rows to an Excel workbook

    Args:
        data: List of dicts
        columns: Dict mapping keys to header labels (or list of keys)
        title: Title written above the table
        sheet_name: Worksheet name

    Returns:
        BytesIO object containing the .xlsx file
    """
    headers, keys = _split_columns(columns)

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="7C3AED", end_color="7C3AED", fill_type="solid")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    # Title and generation date
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(headers))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14)
    title_cell.alignment = Alignment(horizontal='center')

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(headers))
    date_cell = ws.cell(row=2, column=1, value=f"Generado: {datetime.now().strftime('%d/%m/%Y %H:%M')}")
    date_cell.font = Font(italic=True, size=10, color="666666")
    date_cell.alignment = Alignment(horizontal='center')

    header_row = 4
    for col_idx, header in enumerate(headers, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center')
        cell.border = thin_border

    for row_idx, row_data in enumerate(data, header_row + 1):
        for col_idx, key in enumerate(keys, 1):
            value = row_data.get(key, '')
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            cell.border = thin_border
            if isinstance(value, float):
                cell.number_format = '"$"#,##0.00'
                cell.alignment = Alignment(horizontal='right')
            elif isinstance(value, int):
                cell.alignment = Alignment(horizontal='right')

    # Column widths from the longest value (merged title rows skipped)
    for col_idx, header in enumerate(headers, 1):
        max_length = len(str(header))
        for row_data in data:
            max_length = max(max_length, len(str(row_data.get(keys[col_idx - 1], ''))))
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 2, 50)

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output


def export_to_csv(data, columns, include_header=True):
    """
    Export rows to CSV

    Returns:
        BytesIO object with UTF-8 (BOM) content for Excel compatibility
    """
    headers, keys = _split_columns(columns)

    text_output = io.StringIO()
    writer = csv.writer(text_output)
    if include_header:
        writer.writerow(headers)
    for row_data in data:
        writer.writerow([row_data.get(key, '') for key in keys])

    output = BytesIO()
    output.write(text_output.getvalue().encode('utf-8-sig'))
    output.seek(0)
    return output


def export_sales_report(rows, format_type='excel', include_commission=False, title="Reporte de Ventas"):
    """
    Export sales rows built by ReportService.sales_rows

    Args:
        rows: List of sale dicts
        format_type: 'excel' or 'csv'
        include_commission: Add the card commission column (admin exports)

    Returns:
        BytesIO object with the file
    """
    columns = ADMIN_SALES_COLUMNS if include_commission else SALES_COLUMNS
    if format_type == 'excel':
        return export_to_excel(rows, columns, title=title, sheet_name="Ventas")
    return export_to_csv(rows, columns)
