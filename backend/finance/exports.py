"""
Export utilities for finance data.
Supports Excel (.xlsx) and CSV (.csv) formats.
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from finance.ledger import balance_delta


class ExportFormat:
    EXCEL = 'xlsx'
    CSV = 'csv'

    CHOICES = [EXCEL, CSV]
    CONTENT_TYPES = {
        EXCEL: 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        CSV: 'text/csv',
    }


def format_value(value: Any) -> str:
    """Format a value for a CSV cell."""
    if value is None:
        return ''
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, bool):
        return 'Sí' if value else 'No'
    return str(value)


def cell_value(value: Any, numeric: bool = False):
    """Value for a spreadsheet cell: numbers stay numbers so totals work in Excel."""
    if numeric and isinstance(value, (Decimal, int)):
        return float(value)
    return format_value(value)


def export_to_excel(
    data: list[dict],
    columns: list[dict],
    title: str = 'Exportación',
    sheet_name: str = 'Datos',
) -> bytes:
    """
    Build an .xlsx workbook.

    Args:
        data: List of dictionaries containing the data
        columns: List of column definitions with 'key', 'header', and optional 'width'/'numeric'
        title: Title shown above the header row
        sheet_name: Name of the worksheet

    Returns:
        Bytes of the Excel file
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color='FFFFFF')
    header_fill = PatternFill(start_color='1890FF', end_color='1890FF', fill_type='solid')
    header_alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(columns))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14)
    title_cell.alignment = Alignment(horizontal='center')

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(columns))
    generated = timezone.localtime().strftime('%Y-%m-%d %H:%M:%S')
    timestamp_cell = ws.cell(row=2, column=1, value=f"Generado: {generated}")
    timestamp_cell.alignment = Alignment(horizontal='center')
    timestamp_cell.font = Font(italic=True, size=10, color='666666')

    header_row = 4
    for col_idx, col in enumerate(columns, 1):
        cell = ws.cell(row=header_row, column=col_idx, value=col['header'])
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border
        ws.column_dimensions[get_column_letter(col_idx)].width = col.get('width', 15)

    for row_idx, row_data in enumerate(data, header_row + 1):
        for col_idx, col in enumerate(columns, 1):
            numeric = col.get('numeric', False)
            cell = ws.cell(row=row_idx, column=col_idx, value=cell_value(row_data.get(col['key']), numeric))
            cell.border = thin_border
            if numeric:
                cell.alignment = Alignment(horizontal='right')
                cell.number_format = '#,##0.00'

    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


def export_to_csv(
    data: list[dict],
    columns: list[dict],
    delimiter: str = ',',
) -> str:
    output = io.StringIO()
    writer = csv.writer(output, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL)
    writer.writerow([col['header'] for col in columns])
    for row_data in data:
        writer.writerow([format_value(row_data.get(col['key'])) for col in columns])
    return output.getvalue()


def create_export_response(
    data: list[dict],
    columns: list[dict],
    format: str,
    filename: str,
    title: str = 'Exportación',
) -> HttpResponse:
    """
    Create an HTTP response with the exported file as an attachment.

    Raises:
        ValueError: for a format outside ExportFormat.CHOICES
    """
    if format not in ExportFormat.CHOICES:
        raise ValueError(f"Invalid format: {format}. Must be one of {ExportFormat.CHOICES}")

    content_type = ExportFormat.CONTENT_TYPES[format]
    full_filename = f"{filename}.{format}"

    if format == ExportFormat.EXCEL:
        response = HttpResponse(export_to_excel(data, columns, title=title), content_type=content_type)
    else:
        # utf-8-sig writes a BOM so Excel detects the encoding
        response = HttpResponse(export_to_csv(data, columns), content_type=f"{content_type}; charset=utf-8-sig")

    response['Content-Disposition'] = f'attachment; filename="{full_filename}"'
    return response


# =============================================================================
# Transactions Export Configuration
# =============================================================================

TRANSACTION_EXPORT_COLUMNS = [
    {'key': 'date', 'header': 'Fecha', 'width': 12},
    {'key': 'kind', 'header': 'Tipo', 'width': 14},
    {'key': 'description', 'header': 'Descripción', 'width': 35},
    {'key': 'account', 'header': 'Cuenta', 'width': 20},
    {'key': 'currency', 'header': 'Moneda', 'width': 8},
    {'key': 'category', 'header': 'Categoría', 'width': 20},
    {'key': 'item', 'header': 'Artículo', 'width': 20},
    {'key': 'amount', 'header': 'Monto', 'width': 15, 'numeric': True},
    {'key': 'signed_amount', 'header': 'Efecto en saldo', 'width': 15, 'numeric': True},
    {'key': 'notes', 'header': 'Notas', 'width': 30},
]


def prepare_transaction_export_data(transactions) -> list[dict]:
    """Flatten transactions (with account/category/item loaded) into export rows."""
    data = []
    for txn in transactions:
        data.append({
            'date': txn.date,
            'kind': txn.get_kind_display(),
            'description': txn.description,
            'account': txn.account.name,
            'currency': txn.account.currency,
            'category': txn.category.name,
            'item': txn.item.name if txn.item_id else '',
            'amount': txn.amount,
            'signed_amount': balance_delta(txn.kind, txn.amount),
            'notes': txn.notes or '',
        })
    return data
