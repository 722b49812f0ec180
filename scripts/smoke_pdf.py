from pathlib import Path
from datetime import date
import sys

# Asegurar import de src.* cuando se ejecuta desde scripts/
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.farmacia_app.receipts import write_invoice_pdf
from src.farmacia_app.schemas import CustomerRecord, PaymentRecord, ProductRecord, SaleItemRecord, SaleRecord, UnitRecord
from src.farmacia_app.services.invoice import CompanyInfo, render_invoice
from src.farmacia_app.services.reference_data import ReferenceData

out = Path('data/invoices/__test_factura.pdf')
out.parent.mkdir(parents=True, exist_ok=True)

sale = SaleRecord(id=123, customer_id=1, date=date.today(), notes="Factura de prueba áéíóú",
                  total_amount=250.0, paid_amount=150.0)
items = [
    SaleItemRecord(id=1, sale_id=123, product_id=1, unit_id=1, per_price=100.0, amount=2, total=200.0),
    SaleItemRecord(id=2, sale_id=123, product_id=2, unit_id=2, per_price=50.0, amount=1, total=50.0),
]
catalog = ReferenceData(
    products=(ProductRecord(1, "Acetaminofén 500mg"), ProductRecord(2, "Jarabe para la tos")),
    units=(UnitRecord(1, "Caja"), UnitRecord(2, "Frasco")),
)
doc = render_invoice(
    sale, items, CustomerRecord(1, "Cliente Demo", "0414-0000000", "Calle 1"), catalog,
    payments=[PaymentRecord(1, 123, 150.0, date.today())],
    company=CompanyInfo(name="Farmacia Demo", address="Av. Principal", phone="0212-0000000"),
)

path = write_invoice_pdf(doc, out_path=out)
print('PDF generado en:', path)
print('Existe?', Path(path).exists())
