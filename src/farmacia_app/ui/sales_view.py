from __future__ import annotations

import logging
from typing import Callable

from PySide6.QtCore import Qt, QEvent
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..errors import GatewayError
from ..events import events
from ..gateway import SalesGateway
from ..notifications import Notifier
from ..schemas import SaleRecord
from ..services.invoice import InvoiceBundle
from ..services.reference_data import ReferenceData, load_reference_data
from ..services.sale_draft import SaleEditorController
from ..services.sale_payments import PaymentController
from ..services.sale_totals import balance, format_money
from .notifier import MessageBoxNotifier, ask_confirmation
from .sale_dialog import SaleDialog
from .sale_payments_dialog import SalePaymentsDialog

logger = logging.getLogger(__name__)

PER_PAGE = 10
COLUMNS = ["ID", "Fecha", "Cliente", "Total $", "Pagado $", "Restante $", "Notas"]


class SalesView(QWidget):
    """Listado paginado de ventas con acceso a edición, pagos y factura."""

    def __init__(
        self,
        gateway: SalesGateway,
        on_back: Callable[[], None] | None = None,
        on_open_invoice: Callable[[InvoiceBundle], None] | None = None,
        parent: QWidget | None = None,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        super().__init__(parent)
        self._gateway = gateway
        self._on_back = on_back
        self._on_open_invoice = on_open_invoice
        self._notifier = notifier or MessageBoxNotifier(self)
        self.reference = ReferenceData()
        self.page = 1
        self.total_pages = 1
        self._rows: list[SaleRecord] = []

        self._setup_ui()
        self.reload_reference()
        self.load_sales()

        events.sale_saved.connect(self._on_sale_event)
        events.sale_deleted.connect(self._on_sale_event)
        events.sales_changed.connect(self.load_sales)

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        title = QLabel("Gestión de Ventas")
        title_font = QFont()
        title_font.setPointSize(16)
        title_font.setBold(True)
        title.setFont(title_font)
        layout.addWidget(title)

        search_layout = QHBoxLayout()
        self.search_edit = QLineEdit()
        self.search_edit.setPlaceholderText("🔍 Buscar por cliente, notas o número de venta...")
        self.search_edit.setClearButtonEnabled(True)
        self.search_edit.returnPressed.connect(self._on_search)
        self.btn_search = QPushButton("Buscar")
        self.btn_search.clicked.connect(self._on_search)
        search_layout.addWidget(QLabel("Búsqueda:"))
        search_layout.addWidget(self.search_edit, 2)
        search_layout.addWidget(self.btn_search)
        search_layout.addStretch()
        layout.addLayout(search_layout)

        button_layout = QHBoxLayout()
        self.btn_back = QPushButton("⬅ Volver")
        self.btn_back.clicked.connect(self._on_back_clicked)
        self.btn_back.setVisible(self._on_back is not None)
        button_layout.addWidget(self.btn_back)

        self.btn_add = QPushButton("➕ Nueva Venta")
        self.btn_add.setStyleSheet("QPushButton { background-color: #4CAF50; color: white; font-weight: bold; padding: 8px 16px; }")
        self.btn_add.clicked.connect(self._on_add_sale)
        button_layout.addWidget(self.btn_add)

        self.btn_edit = QPushButton("✏️ Editar")
        self.btn_edit.clicked.connect(self._on_edit_sale)
        button_layout.addWidget(self.btn_edit)

        self.btn_payments = QPushButton("💵 Pagos")
        self.btn_payments.clicked.connect(self._on_payments)
        button_layout.addWidget(self.btn_payments)

        self.btn_invoice = QPushButton("🧾 Factura")
        self.btn_invoice.clicked.connect(self._on_invoice)
        button_layout.addWidget(self.btn_invoice)

        self.btn_delete = QPushButton("🗑️ Eliminar")
        self.btn_delete.setStyleSheet("QPushButton { background-color: #f44336; color: white; padding: 8px 16px; }")
        self.btn_delete.clicked.connect(self._on_delete_sale)
        button_layout.addWidget(self.btn_delete)

        self.btn_refresh = QPushButton("🔄 Actualizar")
        self.btn_refresh.clicked.connect(self._on_refresh)
        button_layout.addWidget(self.btn_refresh)

        button_layout.addStretch()
        self._status_label = QLabel("Listo", self)
        self._status_label.setStyleSheet("color: #666; font-style: italic; padding: 4px;")
        button_layout.addWidget(self._status_label)
        layout.addLayout(button_layout)

        self.table = QTableWidget(0, len(COLUMNS))
        self.table.setHorizontalHeaderLabels(COLUMNS)
        self.table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QTableWidget.SelectionMode.SingleSelection)
        self.table.setAlternatingRowColors(True)
        self.table.verticalHeader().setVisible(False)
        header = self.table.horizontalHeader()
        header.setSectionResizeMode(QHeaderView.ResizeMode.ResizeToContents)
        header.setStretchLastSection(True)
        self.table.itemSelectionChanged.connect(self._on_selection_changed)
        self.table.doubleClicked.connect(lambda _idx: self._on_edit_sale())
        self.table.viewport().installEventFilter(self)
        layout.addWidget(self.table)

        pager = QHBoxLayout()
        self.btn_prev = QPushButton("◀ Anterior")
        self.btn_prev.clicked.connect(self.prev_page)
        self.lbl_page = QLabel()
        self.btn_next = QPushButton("Siguiente ▶")
        self.btn_next.clicked.connect(self.next_page)
        pager.addStretch()
        pager.addWidget(self.btn_prev)
        pager.addWidget(self.lbl_page)
        pager.addWidget(self.btn_next)
        layout.addLayout(pager)

        self._on_selection_changed()

    def eventFilter(self, source, event):
        if source == self.table.viewport() and event.type() == QEvent.Type.MouseButtonPress:
            if not self.table.indexAt(event.pos()).isValid():
                self.table.clearSelection()
        return super().eventFilter(source, event)

    # --- Carga ---

    def reload_reference(self) -> bool:
        try:
            self.reference = load_reference_data(self._gateway)
        except GatewayError as exc:
            logger.exception("No se pudieron cargar clientes, productos y unidades")
            self._notifier.error(exc.user_message)
            return False
        return True

    def load_sales(self) -> None:
        self._status_label.setText("Cargando ventas...")
        try:
            result = self._gateway.list_sales(
                page=self.page, per_page=PER_PAGE, search=self.search_edit.text().strip()
            )
        except GatewayError as exc:
            logger.exception("Error cargando ventas")
            self._status_label.setText("Error")
            self._notifier.error(exc.user_message)
            return

        self.total_pages = result.total_pages
        if result.items == () and self.page > 1 and self.page > result.total_pages:
            self.page = result.total_pages
            self.load_sales()
            return

        self._rows = list(result.items)
        self.table.setRowCount(0)
        for sale in self._rows:
            r = self.table.rowCount()
            self.table.insertRow(r)
            name = sale.customer_name or self.reference.customer_name(sale.customer_id)
            values = [
                str(sale.id),
                sale.date.strftime('%d/%m/%Y'),
                name,
                format_money(sale.total_amount),
                format_money(sale.paid_amount),
                format_money(balance(sale.total_amount, sale.paid_amount)),
                sale.notes or "",
            ]
            for c, text in enumerate(values):
                item = QTableWidgetItem(text)
                if c == 0:
                    item.setData(Qt.ItemDataRole.UserRole, sale.id)
                if 3 <= c <= 5:
                    item.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
                self.table.setItem(r, c, item)

        self.lbl_page.setText(f"Página {self.page} de {self.total_pages}  ({result.total} ventas)")
        self.btn_prev.setEnabled(self.page > 1)
        self.btn_next.setEnabled(self.page < self.total_pages)
        self._status_label.setText("Listo")
        self._on_selection_changed()

    def next_page(self) -> None:
        if self.page < self.total_pages:
            self.page += 1
            self.load_sales()

    def prev_page(self) -> None:
        if self.page > 1:
            self.page -= 1
            self.load_sales()

    def selected_sale(self) -> SaleRecord | None:
        row = self.table.currentRow()
        if row < 0 or row >= len(self._rows) or not self.table.selectionModel().hasSelection():
            return None
        return self._rows[row]

    # --- Handlers ---

    def _on_sale_event(self, _sale_id: int) -> None:
        self.load_sales()

    def _on_selection_changed(self) -> None:
        has = self.selected_sale() is not None
        for btn in (self.btn_edit, self.btn_delete, self.btn_payments, self.btn_invoice):
            btn.setEnabled(has)

    def _on_search(self) -> None:
        self.page = 1
        self.load_sales()

    def _on_refresh(self) -> None:
        self.reload_reference()
        self.load_sales()

    def _on_back_clicked(self) -> None:
        if self._on_back is not None:
            self._on_back()

    def _editor(self) -> SaleEditorController:
        return SaleEditorController(
            self._gateway,
            self.reference,
            notifier=self._notifier,
            on_saved=lambda record: events.sale_saved.emit(record.id),
        )

    def _run_dialog(self, dialog) -> int:
        return dialog.exec()

    def _on_add_sale(self) -> None:
        controller = self._editor()
        controller.start_new()
        self._run_dialog(SaleDialog(controller, self))

    def _on_edit_sale(self) -> None:
        sale = self.selected_sale()
        if sale is None:
            return
        try:
            detail = self._gateway.get_sale(sale.id)
        except GatewayError as exc:
            logger.exception("No se pudo abrir la venta %s", sale.id)
            self._notifier.error(exc.user_message)
            return
        controller = self._editor()
        controller.start_edit(detail)
        self._run_dialog(SaleDialog(controller, self))

    def _on_delete_sale(self) -> None:
        sale = self.selected_sale()
        if sale is None:
            return
        if not ask_confirmation(self, "Eliminar venta", f"¿Desea eliminar la venta #{sale.id}?"):
            return
        try:
            self._gateway.delete_sale(sale.id)
        except GatewayError as exc:
            logger.exception("No se pudo eliminar la venta %s", sale.id)
            self._notifier.error(exc.user_message)
            return
        self._notifier.success("Venta eliminada.")
        events.sale_deleted.emit(sale.id)

    def _on_payments(self) -> None:
        sale = self.selected_sale()
        if sale is None:
            return
        controller = PaymentController(
            self._gateway,
            notifier=self._notifier,
            on_changed=lambda _s: events.sales_changed.emit(),
        )
        if not controller.open(sale.id):
            return
        name = sale.customer_name or self.reference.customer_name(sale.customer_id)
        self._run_dialog(SalePaymentsDialog(controller, name, self))

    def build_invoice_bundle(self, sale_id: int) -> InvoiceBundle | None:
        try:
            detail = self._gateway.get_sale(sale_id)
            payments = self._gateway.get_sale_payments(sale_id)
        except GatewayError as exc:
            logger.exception("No se pudo preparar la factura de la venta %s", sale_id)
            self._notifier.error(exc.user_message)
            return None
        return InvoiceBundle(
            sale_data=detail,
            customer=self.reference.customer(detail.sale.customer_id),
            products=self.reference.products,
            units=self.reference.units,
            payments=payments,
        )

    def _on_invoice(self) -> None:
        sale = self.selected_sale()
        if sale is None or self._on_open_invoice is None:
            return
        bundle = self.build_invoice_bundle(sale.id)
        if bundle is not None:
            self._on_open_invoice(bundle)
