from __future__ import annotations

OPERATIONS = ("create", "update", "delete", "fetch")

# Mensajes genéricos por entidad y operación; el detalle técnico solo va al log.
GATEWAY_MESSAGES: dict[tuple[str, str], str] = {
    ("sale", "create"): "Error al registrar la venta.",
    ("sale", "update"): "Error al actualizar la venta.",
    ("sale", "delete"): "Error al eliminar la venta.",
    ("sale", "fetch"): "Error al obtener la lista de ventas.",
    ("payment", "create"): "Error al registrar el pago.",
    ("payment", "delete"): "Error al eliminar el pago.",
    ("payment", "fetch"): "Error al obtener los pagos de la venta.",
    ("reference", "fetch"): "Error al cargar clientes, productos y unidades.",
}
DEFAULT_MESSAGE = "Error en la base de datos."


class ValidationError(Exception):
    """Error de validación del formulario (nunca llega a la base de datos).

    ``field`` identifica el campo inválido y ``row`` la fila (base 1) del item
    cuando el error pertenece a una línea de la venta.
    """

    def __init__(self, message: str, *, field: str | None = None, row: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.row = row


class GatewayError(Exception):
    """Fallo de la capa de persistencia (tabla inexistente, restricción, E/S...)."""

    def __init__(self, operation: str, entity: str = "sale", detail: str | None = None) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"Operación desconocida: {operation}")
        self.operation = operation
        self.entity = entity
        self.detail = detail
        super().__init__(detail or self.user_message)

    @property
    def user_message(self) -> str:
        return GATEWAY_MESSAGES.get((self.entity, self.operation), DEFAULT_MESSAGE)


class ConfirmationAborted(Exception):
    """El usuario canceló una acción destructiva. No es un error real."""
