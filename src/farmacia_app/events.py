from PySide6.QtCore import QObject, Signal


class _AppEvents(QObject):
    sale_saved = Signal(int)      # sale_id
    sale_deleted = Signal(int)    # sale_id
    sales_changed = Signal()      # refrescar listas de ventas

events = _AppEvents()
