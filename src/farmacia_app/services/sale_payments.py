from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Protocol

from ..errors import ConfirmationAborted, GatewayError, ValidationError
from ..notifications import LogNotifier, Notifier
from ..schemas import CreatePaymentRequest, PaymentMutationResult, PaymentRecord, SaleDetail, SaleRecord
from .sale_totals import balance

logger = logging.getLogger(__name__)

MSG_AMOUNT_POSITIVE = "El monto del pago debe ser mayor a cero."
MSG_PAYMENT_ADDED = "Pago registrado correctamente."
MSG_PAYMENT_DELETED = "Pago eliminado."


def validate_payment_amount(amount: float | None) -> float:
    if amount is None or float(amount) <= 0:
        raise ValidationError(MSG_AMOUNT_POSITIVE, field="amount")
    return float(amount)


def require_confirmation(confirm: Callable[[], bool]) -> None:
    if not confirm():
        raise ConfirmationAborted()


class PaymentGateway(Protocol):
    def get_sale(self, sale_id: int) -> SaleDetail: ...
    def get_sale_payments(self, sale_id: int) -> tuple[PaymentRecord, ...]: ...
    def create_sale_payment(self, request: CreatePaymentRequest) -> PaymentMutationResult: ...
    def delete_sale_payment(self, payment_id: int) -> PaymentMutationResult: ...


@dataclass(frozen=True, slots=True)
class PaymentPanelState:
    """Venta que se está viendo y su historial de pagos."""
    detail: SaleDetail | None = None
    payments: tuple[PaymentRecord, ...] = ()

    @property
    def viewing(self) -> bool:
        return self.detail is not None

    @property
    def sale(self) -> SaleRecord | None:
        return self.detail.sale if self.detail else None

    @property
    def remaining(self) -> float:
        s = self.sale
        return balance(s.total_amount, s.paid_amount) if s else 0.0


class PaymentController:
    """Flujo de pagos de una venta: abrir, agregar, eliminar, cerrar.

    Agregar y eliminar reciben del gateway la venta y los pagos ya
    actualizados en una sola llamada; si algo falla el estado anterior se
    mantiene tal cual.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        *,
        notifier: Notifier | None = None,
        on_changed: Callable[[SaleRecord], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._notifier = notifier or LogNotifier()
        self._on_changed = on_changed
        self.state = PaymentPanelState()
        self.busy = False

    def open(self, sale_id: int) -> bool:
        try:
            detail = self._gateway.get_sale(sale_id)
            payments = self._gateway.get_sale_payments(sale_id)
        except GatewayError as exc:
            logger.exception("No se pudo cargar la venta %s", sale_id)
            self._notifier.error(exc.user_message)
            return False
        self.state = PaymentPanelState(detail=detail, payments=tuple(payments))
        return True

    def close(self) -> None:
        self.state = PaymentPanelState()

    def _apply(self, result: PaymentMutationResult) -> None:
        detail = self.state.detail
        items = detail.items if detail is not None else ()
        detail = SaleDetail(sale=result.sale, items=items, payment_count=len(result.payments))
        self.state = PaymentPanelState(detail=detail, payments=result.payments)
        if self._on_changed is not None:
            self._on_changed(result.sale)

    def add_payment(self, amount: float, when: date) -> bool:
        sale = self.state.sale
        if sale is None or self.busy:
            return False
        try:
            value = validate_payment_amount(amount)
        except ValidationError as exc:
            self._notifier.warning(exc.message)
            return False

        self.busy = True
        try:
            result = self._gateway.create_sale_payment(
                CreatePaymentRequest(sale_id=sale.id, amount=value, date=when)
            )
        except GatewayError as exc:
            logger.exception("No se pudo registrar el pago de la venta %s", sale.id)
            self._notifier.error(exc.user_message)
            return False
        finally:
            self.busy = False

        self._apply(result)
        self._notifier.success(MSG_PAYMENT_ADDED)
        return True

    def delete_payment(self, payment_id: int, confirm: Callable[[], bool]) -> bool:
        if self.state.sale is None or self.busy:
            return False
        try:
            require_confirmation(confirm)
        except ConfirmationAborted:
            return False

        self.busy = True
        try:
            result = self._gateway.delete_sale_payment(payment_id)
        except GatewayError as exc:
            logger.exception("No se pudo eliminar el pago %s", payment_id)
            self._notifier.error(exc.user_message)
            return False
        finally:
            self.busy = False

        self._apply(result)
        self._notifier.success(MSG_PAYMENT_DELETED)
        return True
