from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import QLabel, QPushButton, QVBoxLayout, QWidget


class HomeView(QWidget):
    def __init__(self, company_name: str, on_open_sales: Callable[[], None], parent=None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.addStretch(1)

        title = QLabel(company_name)
        font = QFont()
        font.setPointSize(20)
        font.setBold(True)
        title.setFont(font)
        title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(title)

        subtitle = QLabel("Administración de ventas, facturas y cobros")
        subtitle.setAlignment(Qt.AlignmentFlag.AlignCenter)
        subtitle.setStyleSheet("color: #666;")
        layout.addWidget(subtitle)

        self.btn_sales = QPushButton("🧾 Ventas")
        self.btn_sales.setMinimumHeight(44)
        self.btn_sales.clicked.connect(on_open_sales)
        layout.addWidget(self.btn_sales, 0, Qt.AlignmentFlag.AlignHCenter)
        layout.addStretch(2)
