from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Callable, Protocol

from ..errors import GatewayError, ValidationError
from ..notifications import LogNotifier, Notifier
from ..schemas import CreateSaleRequest, SaleDetail, SaleItemInput, SaleRecord, UpdateSaleRequest
from .reference_data import ReferenceData
from .sale_totals import invoice_total, remaining

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("product_id", "unit_id", "per_price", "amount")

MSG_CUSTOMER_REQUIRED = "Debe seleccionar un cliente."
MSG_DATE_REQUIRED = "La fecha es requerida."
MSG_ITEMS_REQUIRED = "Debe agregar al menos un item."
MSG_CREATED = "Venta registrada correctamente."
MSG_UPDATED = "Venta actualizada correctamente."


@dataclass(frozen=True, slots=True)
class DraftItem:
    product_id: int | None = None
    unit_id: int | None = None
    per_price: float = 0.0
    amount: float = 0.0


@dataclass(frozen=True, slots=True)
class SaleDraft:
    """Venta en edición (nueva si ``sale_id`` es None)."""
    sale_id: int | None = None
    customer_id: int | None = None
    date: date | None = None
    notes: str = ""
    paid_amount: float = 0.0
    items: tuple[DraftItem, ...] = ()
    # Con pagos registrados el monto pagado solo cambia desde la pantalla de pagos
    has_payments: bool = False

    @property
    def is_edit(self) -> bool:
        return self.sale_id is not None

    @property
    def total(self) -> float:
        return invoice_total(self.items)

    @property
    def remaining(self) -> float:
        return remaining(self.items, self.paid_amount)


# --- Transiciones puras ---

def new_draft(today: date) -> SaleDraft:
    return SaleDraft(date=today)


def draft_from_sale(detail: SaleDetail) -> SaleDraft:
    sale = detail.sale
    return SaleDraft(
        sale_id=sale.id,
        customer_id=sale.customer_id,
        date=sale.date,
        notes=sale.notes or "",
        paid_amount=sale.paid_amount,
        has_payments=detail.payment_count > 0,
        items=tuple(
            DraftItem(product_id=it.product_id, unit_id=it.unit_id, per_price=it.per_price, amount=it.amount)
            for it in detail.items
        ),
    )


def reset(draft: SaleDraft, today: date) -> SaleDraft:
    return new_draft(today)


def set_field(draft: SaleDraft, field: str, value: Any) -> SaleDraft:
    if field not in ("customer_id", "date", "notes", "paid_amount"):
        raise KeyError(field)
    return replace(draft, **{field: value})


def add_item(draft: SaleDraft) -> SaleDraft:
    return replace(draft, items=draft.items + (DraftItem(),))


def remove_item(draft: SaleDraft, index: int) -> SaleDraft:
    if not 0 <= index < len(draft.items):
        raise IndexError(index)
    return replace(draft, items=draft.items[:index] + draft.items[index + 1:])


def update_item(draft: SaleDraft, index: int, field: str, value: Any,
                catalog: ReferenceData | None = None) -> SaleDraft:
    """Cambia un campo de la fila ``index``.

    Al elegir producto se copian su precio de catálogo y su unidad (buscada
    por nombre) si existen, reemplazando lo que el usuario haya escrito.
    """
    if field not in ITEM_FIELDS:
        raise KeyError(field)
    if not 0 <= index < len(draft.items):
        raise IndexError(index)
    item = replace(draft.items[index], **{field: value})

    if field == "product_id" and catalog is not None:
        product = catalog.product(value)
        if product is not None:
            if product.price:
                item = replace(item, per_price=float(product.price))
            unit = catalog.unit_by_name(product.unit)
            if unit is not None:
                item = replace(item, unit_id=unit.id)

    items = draft.items[:index] + (item,) + draft.items[index + 1:]
    return replace(draft, items=items)


def validate_draft(draft: SaleDraft) -> None:
    if not draft.customer_id:
        raise ValidationError(MSG_CUSTOMER_REQUIRED, field="customer_id")
    if not draft.date:
        raise ValidationError(MSG_DATE_REQUIRED, field="date")
    if not draft.items:
        raise ValidationError(MSG_ITEMS_REQUIRED, field="items")
    for pos, it in enumerate(draft.items, start=1):
        if not it.product_id or not it.unit_id or it.per_price <= 0 or it.amount <= 0:
            raise ValidationError(f"El item {pos} está incompleto.", field="items", row=pos)


def _item_inputs(draft: SaleDraft) -> tuple[SaleItemInput, ...]:
    return tuple(
        SaleItemInput(product_id=int(it.product_id), unit_id=int(it.unit_id),
                      per_price=float(it.per_price), amount=float(it.amount))
        for it in draft.items
    )


def to_request(draft: SaleDraft) -> CreateSaleRequest | UpdateSaleRequest:
    """Convierte un borrador ya validado en la petición al gateway."""
    common = dict(
        customer_id=int(draft.customer_id),
        date=draft.date,
        notes=draft.notes.strip() or None,
        paid_amount=float(draft.paid_amount or 0.0),
        items=_item_inputs(draft),
    )
    if draft.is_edit:
        return UpdateSaleRequest(id=int(draft.sale_id), **common)
    return CreateSaleRequest(**common)


# --- Controlador del editor ---

class SaleWriter(Protocol):
    def create_sale(self, request: CreateSaleRequest) -> SaleRecord: ...
    def update_sale(self, request: UpdateSaleRequest) -> SaleRecord: ...


class SaleEditorController:
    """Dueño del borrador de la pantalla de ventas.

    ``submit`` valida, envía la lista completa de items al gateway y, si todo
    sale bien, limpia el borrador y llama a ``on_saved``. Ante un error del
    gateway el borrador queda intacto para reintentar.
    """

    def __init__(
        self,
        gateway: SaleWriter,
        reference: ReferenceData | None = None,
        *,
        notifier: Notifier | None = None,
        on_saved: Callable[[SaleRecord], None] | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._gateway = gateway
        self.reference = reference or ReferenceData()
        self._notifier = notifier or LogNotifier()
        self._on_saved = on_saved
        self._today = today
        self.draft = new_draft(today())
        self.busy = False
        self.last_error: Exception | None = None

    def start_new(self) -> None:
        self.draft = new_draft(self._today())
        self.last_error = None

    def start_edit(self, detail: SaleDetail) -> None:
        self.draft = draft_from_sale(detail)
        self.last_error = None

    def set_field(self, field: str, value: Any) -> None:
        self.draft = set_field(self.draft, field, value)

    def add_item(self) -> None:
        self.draft = add_item(self.draft)

    def update_item(self, index: int, field: str, value: Any) -> None:
        self.draft = update_item(self.draft, index, field, value, self.reference)

    def remove_item(self, index: int) -> None:
        self.draft = remove_item(self.draft, index)

    def reset(self) -> None:
        self.draft = reset(self.draft, self._today())

    def submit(self) -> SaleRecord | None:
        if self.busy:
            return None
        self.last_error = None
        try:
            validate_draft(self.draft)
        except ValidationError as exc:
            self.last_error = exc
            self._notifier.warning(exc.message)
            return None

        request = to_request(self.draft)
        editing = isinstance(request, UpdateSaleRequest)
        self.busy = True
        try:
            if editing:
                record = self._gateway.update_sale(request)
            else:
                record = self._gateway.create_sale(request)
        except GatewayError as exc:
            logger.exception("No se pudo guardar la venta")
            self.last_error = exc
            self._notifier.error(exc.user_message)
            return None
        finally:
            self.busy = False

        self._notifier.success(MSG_UPDATED if editing else MSG_CREATED)
        self.reset()
        if self._on_saved is not None:
            self._on_saved(record)
        return record
