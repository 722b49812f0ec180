from __future__ import annotations

from PySide6.QtWidgets import QMessageBox, QWidget


class MessageBoxNotifier:
    """Muestra los avisos del flujo de ventas con QMessageBox."""

    def __init__(self, parent: QWidget | None = None, title: str = "Ventas") -> None:
        self._parent = parent
        self._title = title

    def success(self, message: str) -> None:
        QMessageBox.information(self._parent, self._title, message)

    def warning(self, message: str) -> None:
        QMessageBox.warning(self._parent, self._title, message)

    def error(self, message: str) -> None:
        QMessageBox.critical(self._parent, self._title, message)


def ask_confirmation(parent: QWidget | None, title: str, text: str) -> bool:
    reply = QMessageBox.question(
        parent,
        title,
        text,
        QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        QMessageBox.StandardButton.No,
    )
    return reply == QMessageBox.StandardButton.Yes
