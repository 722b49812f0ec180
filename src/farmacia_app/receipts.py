from __future__ import annotations

import logging
from pathlib import Path
from datetime import datetime
from typing import Callable

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from .db import get_data_dir
from .repository import get_system_config
from .services.invoice import CompanyInfo, DEFAULT_COMPANY_NAME, InvoiceDocument
from .services.sale_totals import format_money

logger = logging.getLogger(__name__)

COMPANY_KEYS = {
    "name": "company_name",
    "address": "company_address",
    "phone": "company_phone",
}


def _data_dir() -> Path:
    d = get_data_dir() / "invoices"
    d.mkdir(parents=True, exist_ok=True)
    return d


def load_company_info(session: Session) -> CompanyInfo:
    """Datos del encabezado de la factura guardados en system_config."""
    return CompanyInfo(
        name=get_system_config(session, COMPANY_KEYS["name"], DEFAULT_COMPANY_NAME) or DEFAULT_COMPANY_NAME,
        address=get_system_config(session, COMPANY_KEYS["address"], "") or "",
        phone=get_system_config(session, COMPANY_KEYS["phone"], "") or "",
    )


def write_invoice_pdf(document: InvoiceDocument, out_path: Path | None = None) -> Path:
    """Dibuja la factura en una hoja A4 y devuelve la ruta del PDF."""
    out = Path(out_path) if out_path else (_data_dir() / f"{document.number}.pdf")
    width, height = A4
    c = canvas.Canvas(str(out), pagesize=A4)
    c.setTitle(f"Factura {document.number}")

    margin_x = 18 * mm
    line_h = 6 * mm
    y = height - 20 * mm

    def draw_centered(text: str, y_pos: float, size: int = 10, bold: bool = False) -> float:
        c.setFont('Helvetica-Bold' if bold else 'Helvetica', size)
        c.drawCentredString(width / 2, y_pos, text)
        return y_pos - line_h

    def draw_left(text: str, y_pos: float, x_pos: float | None = None, size: int = 9, bold: bool = False) -> float:
        c.setFont('Helvetica-Bold' if bold else 'Helvetica', size)
        c.drawString(x_pos if x_pos is not None else margin_x, y_pos, text)
        return y_pos - line_h

    def ensure_space(y_pos: float, needed: float = 0.0) -> float:
        if y_pos - needed < 40 * mm:
            c.showPage()
            return height - 20 * mm
        return y_pos

    def draw_line_separator(y_pos: float, weight: float = 0.5) -> float:
        c.setLineWidth(weight)
        c.line(margin_x, y_pos, width - margin_x, y_pos)
        return y_pos - line_h * 0.8

    # Encabezado
    y = draw_centered(document.company.name, y, size=16, bold=True)
    if document.company.address:
        y = draw_centered(document.company.address, y, size=9)
    if document.company.phone:
        y = draw_centered(f"Tel: {document.company.phone}", y, size=9)
    y = draw_centered(f"FACTURA DE VENTA  {document.number}", y - 2 * mm, size=12, bold=True)
    y = draw_line_separator(y + line_h * 0.4, 1.2)

    # Cliente y fecha
    y = draw_left(f"Cliente: {document.customer_name}", y, bold=True)
    y = draw_left(f"Dirección: {document.customer_address}", y)
    y = draw_left(f"Teléfono: {document.customer_phone}", y)
    c.setFont('Helvetica', 9)
    c.drawRightString(width - margin_x, y + line_h * 3, f"Fecha: {document.date.strftime('%d/%m/%Y')}")
    y = draw_line_separator(y + line_h * 0.4)

    # Tabla de items
    cols = [margin_x, margin_x + 10 * mm, margin_x + 80 * mm, margin_x + 105 * mm, margin_x + 135 * mm]
    headers = ["#", "Producto", "Unidad", "Precio", "Cantidad"]
    c.setFont('Helvetica-Bold', 9)
    for x, h in zip(cols, headers):
        c.drawString(x, y, h)
    c.drawRightString(width - margin_x, y, "Total")
    y = draw_line_separator(y - 2 * mm, 0.3)

    for line in document.lines:
        y = ensure_space(y)
        c.setFont('Helvetica', 9)
        c.drawString(cols[0], y, str(line.position))
        c.drawString(cols[1], y, line.product[:40])
        c.drawString(cols[2], y, line.unit[:14])
        c.drawString(cols[3], y, format_money(line.per_price))
        c.drawString(cols[4], y, f"{line.amount:g}")
        c.drawRightString(width - margin_x, y, format_money(line.total))
        y -= line_h

    y = draw_line_separator(y + 2 * mm)

    # Resumen: total, pagado, restante
    summary = [
        ("Total:", document.summary.total, False),
        ("Pagado:", document.summary.paid, False),
        ("Restante:", document.summary.remaining, True),
    ]
    for label, value, bold in summary:
        y = ensure_space(y)
        c.setFont('Helvetica-Bold' if bold else 'Helvetica', 11 if bold else 10)
        c.drawString(width - margin_x - 70 * mm, y, label)
        c.drawRightString(width - margin_x, y, format_money(value))
        y -= line_h

    if document.payments:
        y -= line_h * 0.5
        y = draw_left("Pagos registrados", ensure_space(y, line_h), bold=True)
        for p in document.payments:
            y = ensure_space(y)
            y = draw_left(f"{p.date.strftime('%d/%m/%Y')}    {format_money(p.amount)}", y, x_pos=margin_x + 4 * mm, size=8)

    if document.notes:
        y -= line_h * 0.5
        y = draw_left("Observaciones:", ensure_space(y, line_h), bold=True)
        y = draw_left(document.notes[:110], y, size=8)

    c.setFont('Helvetica', 7)
    c.drawCentredString(width / 2, 12 * mm, f"Emisión: {datetime.now().strftime('%d/%m/%Y %H:%M')}")
    c.save()
    logger.info("Factura %s generada en %s", document.number, out)
    return out


def _open_with_host(path: Path) -> bool:
    from PySide6.QtCore import QUrl
    from PySide6.QtGui import QDesktopServices

    return bool(QDesktopServices.openUrl(QUrl.fromLocalFile(str(path))))


def print_invoice(document: InvoiceDocument, *, out_path: Path | None = None,
                  opener: Callable[[Path], bool] | None = None) -> Path | None:
    """Genera el PDF y lo abre con el visor del sistema para imprimir.

    Si no se puede abrir el visor (bloqueado, sin aplicación asociada) la
    función simplemente retorna None sin avisar.
    """
    try:
        path = write_invoice_pdf(document, out_path)
        if not (opener or _open_with_host)(path):
            return None
    except OSError:
        logger.debug("No se pudo abrir la factura %s", document.number, exc_info=True)
        return None
    return path
