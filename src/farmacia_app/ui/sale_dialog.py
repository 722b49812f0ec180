from __future__ import annotations

from PySide6.QtCore import Qt, QDate
from PySide6.QtGui import QValidator
from PySide6.QtWidgets import (
    QAbstractSpinBox,
    QComboBox,
    QDateEdit,
    QDialog,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
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

from ..services.sale_draft import DraftItem, SaleEditorController
from ..services.sale_totals import format_money

PLACEHOLDER = "----Seleccione----"

MSG_PAID_LOCKED = "La venta ya tiene pagos registrados. Use el botón \"💵 Pagos\" para modificarlos."

COL_PRODUCT, COL_UNIT, COL_PRICE, COL_AMOUNT, COL_TOTAL, COL_DELETE = range(6)


class MoneySpinBox(QDoubleSpinBox):
    """QDoubleSpinBox que acepta el campo vacío como 0.00."""

    def validate(self, text: str, pos: int):
        if text.strip() in ("", self.prefix().strip()):
            return (QValidator.State.Intermediate, text, pos)
        return super().validate(text, pos)

    def valueFromText(self, text: str) -> float:
        t = text.replace(self.prefix(), "").strip()
        if not t:
            return 0.0
        return super().valueFromText(text)

    def fixup(self, text: str) -> str:
        if text.replace(self.prefix(), "").strip() == "":
            return f"{self.prefix()}0.00"
        return super().fixup(text)


def _conf_money(sp: QDoubleSpinBox, prefix: str = "", maxv: float = 1e12) -> None:
    sp.setDecimals(2)
    sp.setRange(0.0, maxv)
    if prefix:
        sp.setPrefix(prefix)
    sp.setButtonSymbols(QAbstractSpinBox.ButtonSymbols.NoButtons)
    sp.setAlignment(Qt.AlignmentFlag.AlignRight)


def _select_data(combo: QComboBox, value) -> None:
    idx = combo.findData(value) if value is not None else 0
    combo.setCurrentIndex(idx if idx >= 0 else 0)


class SaleDialog(QDialog):
    """Formulario de alta / edición de una venta.

    Cada cambio en los widgets se traslada al borrador del controlador; la
    tabla y los totales se vuelven a dibujar desde el borrador.
    """

    def __init__(self, controller: SaleEditorController, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.controller = controller
        self._syncing = False
        self.setWindowTitle("Editar venta" if controller.draft.is_edit else "Nueva venta")
        self.setMinimumWidth(820)

        layout = QVBoxLayout(self)
        layout.addWidget(self._create_header_section())
        layout.addWidget(self._create_items_section(), 1)
        layout.addLayout(self._create_footer())

        self._populate_lookups()
        self.load_from_draft()

    # --- Construcción ---

    def _create_header_section(self) -> QGroupBox:
        box = QGroupBox("Datos de la venta")
        form = QFormLayout(box)

        self.cbo_customer = QComboBox()
        self.cbo_customer.currentIndexChanged.connect(self._on_customer_changed)
        form.addRow("Cliente:", self.cbo_customer)

        self.date_edit = QDateEdit()
        self.date_edit.setCalendarPopup(True)
        self.date_edit.setDisplayFormat("dd/MM/yyyy")
        self.date_edit.dateChanged.connect(self._on_date_changed)
        form.addRow("Fecha:", self.date_edit)

        self.txt_notes = QLineEdit()
        self.txt_notes.setPlaceholderText("Observaciones")
        self.txt_notes.textChanged.connect(self._on_notes_changed)
        form.addRow("Notas:", self.txt_notes)

        self.sp_paid = MoneySpinBox()
        _conf_money(self.sp_paid, "$ ")
        self.sp_paid.valueChanged.connect(self._on_paid_changed)
        form.addRow("Pagado:", self.sp_paid)
        return box

    def _create_items_section(self) -> QGroupBox:
        box = QGroupBox("Productos")
        v = QVBoxLayout(box)

        self.tbl_items = QTableWidget(0, 6)
        self.tbl_items.setHorizontalHeaderLabels(["Producto", "Unidad", "Precio", "Cantidad", "Total", ""])
        header = self.tbl_items.horizontalHeader()
        header.setSectionResizeMode(COL_PRODUCT, QHeaderView.ResizeMode.Stretch)
        header.setSectionResizeMode(COL_DELETE, QHeaderView.ResizeMode.ResizeToContents)
        self.tbl_items.verticalHeader().setVisible(False)
        v.addWidget(self.tbl_items)

        self.btn_add_item = QPushButton("+ Agregar Producto")
        self.btn_add_item.clicked.connect(self._on_add_item)
        row = QHBoxLayout()
        row.addWidget(self.btn_add_item)
        row.addStretch(1)
        v.addLayout(row)
        return box

    def _create_footer(self) -> QHBoxLayout:
        h = QHBoxLayout()
        self.lbl_total = QLabel()
        self.lbl_remaining = QLabel()
        self.lbl_total.setStyleSheet("font-weight: bold;")
        h.addWidget(self.lbl_total)
        h.addSpacing(18)
        h.addWidget(self.lbl_remaining)
        h.addStretch(1)

        self.btn_reset = QPushButton("Limpiar")
        self.btn_reset.clicked.connect(self._on_reset)
        self.btn_cancel = QPushButton("Cancelar")
        self.btn_cancel.clicked.connect(self.reject)
        self.btn_save = QPushButton()
        self.btn_save.setDefault(True)
        self.btn_save.clicked.connect(self._on_save)
        h.addWidget(self.btn_reset)
        h.addWidget(self.btn_cancel)
        h.addWidget(self.btn_save)
        return h

    def _populate_lookups(self) -> None:
        ref = self.controller.reference
        self.cbo_customer.blockSignals(True)
        self.cbo_customer.clear()
        self.cbo_customer.addItem(PLACEHOLDER, None)
        for c in ref.customers:
            self.cbo_customer.addItem(c.full_name, c.id)
        self.cbo_customer.blockSignals(False)

    def _product_combo(self, value: int | None) -> QComboBox:
        cb = QComboBox()
        cb.addItem(PLACEHOLDER, None)
        for p in self.controller.reference.products:
            cb.addItem(p.name, p.id)
        _select_data(cb, value)
        cb.currentIndexChanged.connect(lambda _i, w=cb: self._on_item_changed(w, "product_id", w.currentData()))
        return cb

    def _unit_combo(self, value: int | None) -> QComboBox:
        cb = QComboBox()
        cb.addItem(PLACEHOLDER, None)
        for u in self.controller.reference.units:
            cb.addItem(u.name, u.id)
        _select_data(cb, value)
        cb.currentIndexChanged.connect(lambda _i, w=cb: self._on_item_changed(w, "unit_id", w.currentData()))
        return cb

    def _money_cell(self, value: float, field: str, prefix: str = "") -> MoneySpinBox:
        sp = MoneySpinBox()
        _conf_money(sp, prefix)
        sp.setValue(value)
        sp.valueChanged.connect(lambda v, w=sp: self._on_item_changed(w, field, float(v)))
        return sp

    # --- Sincronización borrador -> widgets ---

    def load_from_draft(self) -> None:
        draft = self.controller.draft
        self._syncing = True
        try:
            _select_data(self.cbo_customer, draft.customer_id)
            d = draft.date
            self.date_edit.setDate(QDate(d.year, d.month, d.day) if d else QDate.currentDate())
            self.txt_notes.setText(draft.notes)
            self.sp_paid.setValue(draft.paid_amount)
            locked = draft.is_edit and draft.has_payments
            self.sp_paid.setEnabled(not locked)
            self.sp_paid.setToolTip(MSG_PAID_LOCKED if locked else "")
            self.tbl_items.setRowCount(0)
            for item in draft.items:
                self._append_row(item)
        finally:
            self._syncing = False
        self.btn_save.setText("Actualizar" if draft.is_edit else "Registrar")
        self._refresh_totals()

    def _append_row(self, item: DraftItem) -> None:
        row = self.tbl_items.rowCount()
        self.tbl_items.insertRow(row)
        self.tbl_items.setCellWidget(row, COL_PRODUCT, self._product_combo(item.product_id))
        self.tbl_items.setCellWidget(row, COL_UNIT, self._unit_combo(item.unit_id))
        self.tbl_items.setCellWidget(row, COL_PRICE, self._money_cell(item.per_price, "per_price", "$ "))
        self.tbl_items.setCellWidget(row, COL_AMOUNT, self._money_cell(item.amount, "amount"))
        total = QTableWidgetItem()
        total.setFlags(Qt.ItemFlag.ItemIsEnabled)
        total.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        self.tbl_items.setItem(row, COL_TOTAL, total)

        btn_del = QPushButton("❌")
        btn_del.setToolTip("Eliminar item")
        btn_del.clicked.connect(lambda _=False, b=btn_del: self._on_remove_item(b))
        self.tbl_items.setCellWidget(row, COL_DELETE, btn_del)

    def _sync_row(self, row: int) -> None:
        """Refleja en la fila los valores que el borrador completó solo."""
        item = self.controller.draft.items[row]
        self._syncing = True
        try:
            _select_data(self.tbl_items.cellWidget(row, COL_UNIT), item.unit_id)
            self.tbl_items.cellWidget(row, COL_PRICE).setValue(item.per_price)
        finally:
            self._syncing = False

    def _row_of(self, widget: QWidget, column: int) -> int:
        for r in range(self.tbl_items.rowCount()):
            if self.tbl_items.cellWidget(r, column) is widget:
                return r
        return -1

    def _refresh_totals(self) -> None:
        draft = self.controller.draft
        for row, item in enumerate(draft.items):
            cell = self.tbl_items.item(row, COL_TOTAL)
            if cell is not None:
                cell.setText(format_money(item.per_price * item.amount))
        self.lbl_total.setText(f"Total: $ {format_money(draft.total)}")
        rem = draft.remaining
        self.lbl_remaining.setText(f"Restante: $ {format_money(rem)}")
        self.lbl_remaining.setStyleSheet("color: #c62828;" if rem > 0 else "color: #2e7d32;")
        self.btn_save.setEnabled(not self.controller.busy)

    # --- Handlers ---

    def _on_customer_changed(self, _idx: int) -> None:
        if not self._syncing:
            self.controller.set_field("customer_id", self.cbo_customer.currentData())

    def _on_date_changed(self, qd: QDate) -> None:
        if not self._syncing:
            self.controller.set_field("date", qd.toPython())

    def _on_notes_changed(self, text: str) -> None:
        if not self._syncing:
            self.controller.set_field("notes", text)

    def _on_paid_changed(self, value: float) -> None:
        if self._syncing:
            return
        self.controller.set_field("paid_amount", float(value))
        self._refresh_totals()

    def _on_add_item(self) -> None:
        self.controller.add_item()
        self._syncing = True
        try:
            self._append_row(self.controller.draft.items[-1])
        finally:
            self._syncing = False
        self._refresh_totals()

    def _on_remove_item(self, button: QPushButton) -> None:
        row = self._row_of(button, COL_DELETE)
        if row < 0:
            return
        self.controller.remove_item(row)
        self.tbl_items.removeRow(row)
        self._refresh_totals()

    def _on_item_changed(self, widget: QWidget, field: str, value) -> None:
        if self._syncing:
            return
        column = {"product_id": COL_PRODUCT, "unit_id": COL_UNIT,
                  "per_price": COL_PRICE, "amount": COL_AMOUNT}[field]
        row = self._row_of(widget, column)
        if row < 0:
            return
        self.controller.update_item(row, field, value)
        if field == "product_id":
            self._sync_row(row)
        self._refresh_totals()

    def _on_reset(self) -> None:
        if self.controller.draft.is_edit:
            self.controller.start_new()
        else:
            self.controller.reset()
        self.setWindowTitle("Nueva venta")
        self.load_from_draft()

    def _on_save(self) -> None:
        self.btn_save.setEnabled(False)
        try:
            record = self.controller.submit()
        finally:
            self.btn_save.setEnabled(not self.controller.busy)
        if record is not None:
            self.accept()
