# exports.py
# Exportação tabular (CSV e Excel) de materiais, produtos e pedidos

import csv
import io
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from factoryflow.errors import ValidationError
from factoryflow.models import Material, Order, Product
from factoryflow.pricing import format_money, index_by_id, product_cost
from factoryflow.store import Backend

Table = Tuple[List[str], List[List[Any]]]

EXPORT_ENTITIES = ("materials", "products", "orders")
EXPORT_FORMATS = ("csv", "xlsx")

# Colunas monetárias: 2 casas no CSV, número formatado no Excel
MONEY_COLUMNS = ("Total Cost",)
MONEY_FORMAT = "0.00"


def _date_part(timestamp: str) -> str:
    """'2024-05-01T10:00:00.000Z' -> '2024-05-01'"""
    return timestamp.split("T")[0] if timestamp else ""


def materials_table(materials: Sequence[Material]) -> Table:
    headers = ["Name", "Cost", "Unit", "Stock", "Created Date"]
    rows = [[m.name, m.cost, m.unit, m.stock, _date_part(m.created_at)] for m in materials]
    return headers, rows


def products_table(products: Sequence[Product], materials: Sequence[Material]) -> Table:
    headers = ["Name", "Material Count", "Total Cost", "Created Date"]
    index = index_by_id(materials)
    rows = [
        [p.name, len(p.materials), product_cost(p, index), _date_part(p.created_at)]
        for p in products
    ]
    return headers, rows


def orders_table(orders: Sequence[Order]) -> Table:
    headers = ["Order Number", "Status", "Total Cost", "Product Count", "Created Date", "Completed Date"]
    rows = [
        [
            o.order_number,
            o.status.value,
            o.total_cost,
            len(o.products),
            _date_part(o.created_at),
            _date_part(o.completed_at) if o.completed_at else "N/A",
        ]
        for o in orders
    ]
    return headers, rows


def build_table(backend: Backend, entity: str) -> Table:
    if entity == "materials":
        return materials_table(backend.materials.list())
    if entity == "products":
        return products_table(backend.products.list(), backend.materials.list())
    if entity == "orders":
        return orders_table(backend.orders.list())
    raise ValidationError(f"Exportação não suportada: {entity}")


def _money_indexes(headers: Sequence[str]) -> List[int]:
    return [i for i, h in enumerate(headers) if h in MONEY_COLUMNS]


def to_csv(table: Table) -> str:
    headers, rows = table
    money = _money_indexes(headers)
    buffer = io.StringIO()
    w = csv.writer(buffer, delimiter=",", lineterminator="\n")
    w.writerow(headers)
    for row in rows:
        w.writerow([format_money(v) if i in money else v for i, v in enumerate(row)])
    return buffer.getvalue()


def to_xlsx(table: Table, title: str) -> bytes:
    headers, rows = table
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title[:31] if title else "Export"

    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)

    # Cabeçalho
    for c, h in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=c, value=h)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor="2563EB")
        cell.alignment = Alignment(horizontal="center")
        cell.border = border

    # Dados
    money = _money_indexes(headers)
    for r_idx, rowdata in enumerate(rows, start=2):
        for c, val in enumerate(rowdata, start=1):
            cell = ws.cell(row=r_idx, column=c, value=val)
            cell.border = border
            if c - 1 in money:
                cell.number_format = MONEY_FORMAT

    # Auto largura
    for i in range(1, len(headers) + 1):
        col_letter = get_column_letter(i)
        max_length = max(len("" if cell.value is None else str(cell.value)) for cell in ws[col_letter])
        ws.column_dimensions[col_letter].width = min(max_length + 2, 50)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_filename(entity: str, fmt: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{entity}_{today.isoformat()}.{fmt}"


def export(backend: Backend, entity: str, fmt: str) -> Dict[str, Any]:
    """Retorna nome do arquivo, mimetype e conteúdo para download"""
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Formato não suportado: {fmt}")
    table = build_table(backend, entity)
    if fmt == "csv":
        content: Any = to_csv(table).encode("utf-8")
        mimetype = "text/csv; charset=utf-8"
    else:
        content = to_xlsx(table, entity)
        mimetype = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    return {"filename": export_filename(entity, fmt), "mimetype": mimetype, "content": content}
