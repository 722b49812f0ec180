from dataclasses import replace
from datetime import date

import pytest

from src.farmacia_app.errors import GatewayError, ValidationError
from src.farmacia_app.schemas import (
    CreateSaleRequest,
    ProductRecord,
    SaleDetail,
    SaleItemRecord,
    SaleRecord,
    UnitRecord,
    UpdateSaleRequest,
)
from src.farmacia_app.services import sale_draft as sd
from src.farmacia_app.services.reference_data import ReferenceData

REF = ReferenceData(
    products=(
        ProductRecord(id=1, name="Paracetamol", price=100.0, unit="Caja"),
        ProductRecord(id=2, name="Alcohol", price=None, unit="Frasco"),
        ProductRecord(id=3, name="Gasas", price=12.5, unit="Inexistente"),
    ),
    units=(UnitRecord(id=10, name="Caja"), UnitRecord(id=11, name="Frasco")),
)


class FakeSaleGateway:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []
        self.updated = []

    def _record(self, req, sale_id):
        total = sum(i.per_price * i.amount for i in req.items)
        return SaleRecord(id=sale_id, customer_id=req.customer_id, date=req.date, notes=req.notes,
                          total_amount=total, paid_amount=req.paid_amount)

    def create_sale(self, request):
        if self.fail:
            raise GatewayError("create", detail="no such table: sales")
        self.created.append(request)
        return self._record(request, 1)

    def update_sale(self, request):
        if self.fail:
            raise GatewayError("update", detail="locked")
        self.updated.append(request)
        return self._record(request, request.id)


def _complete_draft():
    d = sd.new_draft(date(2024, 3, 15))
    d = sd.set_field(d, "customer_id", 5)
    d = sd.add_item(d)
    d = sd.update_item(d, 0, "product_id", 1, REF)
    d = sd.update_item(d, 0, "amount", 2.0)
    return d


def test_new_draft_is_empty():
    d = sd.new_draft(date(2024, 1, 1))
    assert d.sale_id is None and d.customer_id is None
    assert d.items == () and d.paid_amount == 0.0
    assert d.total == 0.0


def test_product_selection_copies_catalog_price_and_unit():
    d = sd.add_item(sd.new_draft(date(2024, 1, 1)))
    d = sd.update_item(d, 0, "per_price", 7.0)
    d = sd.update_item(d, 0, "product_id", 1, REF)
    assert d.items[0].per_price == 100.0
    assert d.items[0].unit_id == 10


def test_product_without_price_keeps_typed_price():
    d = sd.add_item(sd.new_draft(date(2024, 1, 1)))
    d = sd.update_item(d, 0, "per_price", 7.0)
    d = sd.update_item(d, 0, "product_id", 2, REF)
    assert d.items[0].per_price == 7.0
    assert d.items[0].unit_id == 11


def test_unknown_unit_name_leaves_unit_untouched():
    d = sd.add_item(sd.new_draft(date(2024, 1, 1)))
    d = sd.update_item(d, 0, "unit_id", 11)
    d = sd.update_item(d, 0, "product_id", 3, REF)
    assert d.items[0].unit_id == 11
    assert d.items[0].per_price == 12.5


def test_transitions_do_not_mutate_previous_draft():
    d0 = sd.new_draft(date(2024, 1, 1))
    d1 = sd.add_item(d0)
    assert d0.items == ()
    assert len(d1.items) == 1


def test_remove_item_and_bad_indexes():
    d = sd.add_item(sd.add_item(sd.new_draft(date(2024, 1, 1))))
    d = sd.update_item(d, 1, "amount", 3.0)
    d = sd.remove_item(d, 0)
    assert len(d.items) == 1 and d.items[0].amount == 3.0
    with pytest.raises(IndexError):
        sd.remove_item(d, 5)
    with pytest.raises(KeyError):
        sd.update_item(d, 0, "color", "red")
    with pytest.raises(KeyError):
        sd.set_field(d, "total_amount", 1.0)


def test_validate_reports_row_of_incomplete_item():
    d = _complete_draft()
    d = sd.add_item(d)
    d = sd.update_item(d, 1, "product_id", 1, REF)  # cantidad 0
    d = sd.add_item(d)
    d = sd.update_item(d, 2, "product_id", 1, REF)
    d = sd.update_item(d, 2, "amount", 1.0)
    with pytest.raises(ValidationError) as exc:
        sd.validate_draft(d)
    assert exc.value.row == 2
    assert "2" in exc.value.message


@pytest.mark.parametrize("field,value,message", [
    ("customer_id", None, sd.MSG_CUSTOMER_REQUIRED),
    ("date", None, sd.MSG_DATE_REQUIRED),
])
def test_validate_header_fields(field, value, message):
    d = sd.set_field(_complete_draft(), field, value)
    with pytest.raises(ValidationError) as exc:
        sd.validate_draft(d)
    assert exc.value.message == message


def test_to_request_create_and_update():
    d = sd.set_field(_complete_draft(), "notes", "  ")
    req = sd.to_request(d)
    assert isinstance(req, CreateSaleRequest)
    assert req.notes is None
    assert req.items[0].unit_id == 10

    detail = SaleDetail(
        sale=SaleRecord(id=9, customer_id=5, date=date(2024, 2, 1), notes="x", total_amount=200.0, paid_amount=50.0),
        items=(SaleItemRecord(id=1, sale_id=9, product_id=1, unit_id=10, per_price=100.0, amount=2.0, total=200.0),),
    )
    edit = sd.draft_from_sale(detail)
    assert edit.is_edit and edit.remaining == 150.0
    assert isinstance(sd.to_request(edit), UpdateSaleRequest)


def test_controller_without_items_never_calls_gateway(notifier, today):
    gw = FakeSaleGateway()
    ctl = sd.SaleEditorController(gw, REF, notifier=notifier, today=lambda: today)
    ctl.set_field("customer_id", 5)
    assert ctl.submit() is None
    assert gw.created == [] and gw.updated == []
    assert notifier.messages == [("warning", sd.MSG_ITEMS_REQUIRED)]


def test_controller_success_resets_and_calls_on_saved(notifier, today):
    gw = FakeSaleGateway()
    saved = []
    ctl = sd.SaleEditorController(gw, REF, notifier=notifier, on_saved=saved.append, today=lambda: today)
    ctl.set_field("customer_id", 5)
    ctl.add_item()
    ctl.update_item(0, "product_id", 1)
    ctl.update_item(0, "amount", 2.0)
    record = ctl.submit()
    assert record is not None and record.total_amount == 200.0
    assert saved == [record]
    assert ctl.draft == sd.new_draft(today)
    assert notifier.messages == [("success", sd.MSG_CREATED)]
    assert ctl.busy is False


def test_controller_gateway_failure_keeps_draft(notifier, today):
    gw = FakeSaleGateway(fail=True)
    ctl = sd.SaleEditorController(gw, REF, notifier=notifier, today=lambda: today)
    ctl.draft = _complete_draft()
    before = ctl.draft
    assert ctl.submit() is None
    assert ctl.draft == before
    assert notifier.messages == [("error", "Error al registrar la venta.")]
    assert isinstance(ctl.last_error, GatewayError)
    assert ctl.busy is False


def test_controller_ignores_submit_while_busy(notifier, today):
    gw = FakeSaleGateway()
    ctl = sd.SaleEditorController(gw, REF, notifier=notifier, today=lambda: today)
    ctl.draft = _complete_draft()
    ctl.busy = True
    assert ctl.submit() is None
    assert gw.created == []


def test_controller_edit_uses_update(notifier, today):
    gw = FakeSaleGateway()
    ctl = sd.SaleEditorController(gw, REF, notifier=notifier, today=lambda: today)
    ctl.draft = replace(_complete_draft(), sale_id=4)
    ctl.submit()
    assert [r.id for r in gw.updated] == [4]
    assert notifier.messages[-1] == ("success", sd.MSG_UPDATED)


def _three_items_with_bad_second(field, value):
    d = _complete_draft()
    for _ in range(2):
        d = sd.add_item(d)
        i = len(d.items) - 1
        d = sd.update_item(d, i, "product_id", 1, REF)
        d = sd.update_item(d, i, "amount", 1.0)
    return sd.update_item(d, 1, field, value)


@pytest.mark.parametrize("field,value", [
    ("unit_id", None),
    ("product_id", None),
    ("per_price", 0.0),
    ("per_price", -5.0),
    ("amount", 0.0),
    ("amount", -1.0),
])
def test_validate_flags_second_of_three_items(field, value):
    d = _three_items_with_bad_second(field, value)
    with pytest.raises(ValidationError) as exc:
        sd.validate_draft(d)
    assert exc.value.row == 2
    assert exc.value.field == "items"


@pytest.mark.parametrize("field,value", [("unit_id", None), ("per_price", 0.0), ("amount", 0.0)])
def test_controller_invalid_second_item_never_calls_gateway(field, value, notifier, today):
    gw = FakeSaleGateway()
    ctl = sd.SaleEditorController(gw, REF, notifier=notifier, today=lambda: today)
    ctl.draft = _three_items_with_bad_second(field, value)
    assert ctl.submit() is None
    assert gw.created == [] and gw.updated == []
    assert notifier.messages == [("warning", "El item 2 está incompleto.")]
    assert ctl.last_error.row == 2
    assert len(ctl.draft.items) == 3


def test_draft_from_sale_marks_existing_payments():
    sale = SaleRecord(id=3, customer_id=5, date=date(2024, 2, 1), notes=None, total_amount=10.0, paid_amount=10.0)
    assert sd.draft_from_sale(SaleDetail(sale=sale, payment_count=2)).has_payments
    assert not sd.draft_from_sale(SaleDetail(sale=sale)).has_payments
    assert not sd.new_draft(date(2024, 2, 1)).has_payments
