from __future__ import annotations

from PySide6.QtCore import Qt, QDate
from PySide6.QtWidgets import (
    QAbstractItemView,
    QDateEdit,
    QDialog,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ..services.sale_payments import PaymentController
from ..services.sale_totals import format_money
from .notifier import ask_confirmation
from .sale_dialog import MoneySpinBox, _conf_money


class SalePaymentsDialog(QDialog):
    """Historial de pagos de una venta con alta y baja de pagos."""

    def __init__(self, controller: PaymentController, customer_name: str = "",
                 parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.controller = controller
        self._customer_name = customer_name
        self.setMinimumWidth(520)

        layout = QVBoxLayout(self)

        info = QGroupBox("Venta")
        grid = QGridLayout(info)
        self.lbl_sale = QLabel()
        self.lbl_total = QLabel()
        self.lbl_paid = QLabel()
        self.lbl_remaining = QLabel()
        self.lbl_remaining.setStyleSheet("font-weight: bold;")
        grid.addWidget(self.lbl_sale, 0, 0, 1, 3)
        grid.addWidget(self.lbl_total, 1, 0)
        grid.addWidget(self.lbl_paid, 1, 1)
        grid.addWidget(self.lbl_remaining, 1, 2)
        layout.addWidget(info)

        self.tbl = QTableWidget(0, 3)
        self.tbl.setHorizontalHeaderLabels(["ID", "Fecha", "Monto"])
        self.tbl.verticalHeader().setVisible(False)
        self.tbl.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.tbl.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.tbl.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.tbl.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        layout.addWidget(self.tbl, 1)

        add_box = QGroupBox("Nuevo pago")
        h = QHBoxLayout(add_box)
        self.sp_amount = MoneySpinBox()
        _conf_money(self.sp_amount, "$ ")
        self.date_edit = QDateEdit(QDate.currentDate())
        self.date_edit.setCalendarPopup(True)
        self.date_edit.setDisplayFormat("dd/MM/yyyy")
        self.btn_add = QPushButton("Agregar pago")
        self.btn_add.clicked.connect(self._on_add)
        h.addWidget(QLabel("Monto:"))
        h.addWidget(self.sp_amount)
        h.addWidget(QLabel("Fecha:"))
        h.addWidget(self.date_edit)
        h.addWidget(self.btn_add)
        layout.addWidget(add_box)

        btns = QHBoxLayout()
        self.btn_delete = QPushButton("Eliminar pago")
        self.btn_delete.clicked.connect(self._on_delete)
        self.btn_close = QPushButton("Cerrar")
        self.btn_close.clicked.connect(self.accept)
        btns.addWidget(self.btn_delete)
        btns.addStretch(1)
        btns.addWidget(self.btn_close)
        layout.addLayout(btns)

        self.finished.connect(lambda _r: self.controller.close())
        self.refresh()

    def refresh(self) -> None:
        state = self.controller.state
        sale = state.sale
        if sale is None:
            self.setWindowTitle("Pagos")
            return
        self.setWindowTitle(f"Pagos de la venta #{sale.id}")
        name = self._customer_name or sale.customer_name or ""
        self.lbl_sale.setText(f"Venta #{sale.id}  {sale.date.strftime('%d/%m/%Y')}  {name}".rstrip())
        self.lbl_total.setText(f"Total: $ {format_money(sale.total_amount)}")
        self.lbl_paid.setText(f"Pagado: $ {format_money(sale.paid_amount)}")
        self.lbl_remaining.setText(f"Restante: $ {format_money(state.remaining)}")

        self.tbl.setRowCount(0)
        for p in state.payments:
            r = self.tbl.rowCount()
            self.tbl.insertRow(r)
            id_item = QTableWidgetItem(str(p.id))
            id_item.setData(Qt.ItemDataRole.UserRole, p.id)
            self.tbl.setItem(r, 0, id_item)
            self.tbl.setItem(r, 1, QTableWidgetItem(p.date.strftime('%d/%m/%Y')))
            amount = QTableWidgetItem(format_money(p.amount))
            amount.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
            self.tbl.setItem(r, 2, amount)
        self.btn_delete.setEnabled(bool(state.payments))

    def _selected_payment_id(self) -> int | None:
        row = self.tbl.currentRow()
        if row < 0:
            return None
        item = self.tbl.item(row, 0)
        return item.data(Qt.ItemDataRole.UserRole) if item else None

    def _on_add(self) -> None:
        self.btn_add.setEnabled(False)
        try:
            ok = self.controller.add_payment(float(self.sp_amount.value()), self.date_edit.date().toPython())
        finally:
            self.btn_add.setEnabled(True)
        if ok:
            self.sp_amount.setValue(0.0)
            self.refresh()

    def _on_delete(self) -> None:
        payment_id = self._selected_payment_id()
        if payment_id is None:
            return
        confirm = lambda: ask_confirmation(self, "Eliminar pago", "¿Desea eliminar el pago seleccionado?")
        if self.controller.delete_payment(payment_id, confirm):
            self.refresh()
