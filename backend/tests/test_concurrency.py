"""
Threaded sale tests against a file-backed SQLite database.

Each worker runs in its own app context and scoped session, so the sales
really contend for the database write lock.
"""
import os
import tempfile
import threading
import unittest
from decimal import Decimal

from retail_pos import create_app
from retail_pos.extensions import db
from retail_pos.models import Category, Product, ProductVariant, Sale, Supplier
from retail_pos.services import sales_service
from retail_pos.services.sales_service import InsufficientStockError


class ConcurrentSaleTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            category = Category(name="Saree", slug="saree")
            supplier = Supplier(name="Puneet Textiles", code="SUP-01")
            db.session.add_all([category, supplier])
            db.session.flush()

            variant = ProductVariant(
                category_id=category.id,
                attributes={"color": "Red"},
                mrp=Decimal("100"),
                default_selling_price=Decimal("90"),
                max_discount_percent=Decimal("10"),
            )
            db.session.add(variant)
            db.session.flush()

            product = Product(
                sku="saree-red-0001",
                product_variant_id=variant.id,
                supplier_id=supplier.id,
                quantity_in_stock=5,
            )
            db.session.add(product)
            db.session.commit()
            self.sku = product.sku

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _run_workers(self, count, quantity):
        created = []
        errors = []
        lock = threading.Lock()
        payload = {
            "items": [{"sku": self.sku, "quantity": quantity, "sellingPrice": 90}],
            "payments": [{"mode": "CASH", "amount": 90 * quantity}],
        }

        def worker():
            with self.app.app_context():
                try:
                    result = sales_service.create_sale(payload)
                    with lock:
                        created.append(result["billNumber"])
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return created, errors

    def test_concurrent_sales_never_oversell(self):
        created, errors = self._run_workers(count=10, quantity=1)

        self.assertEqual(len(created), 5)
        self.assertEqual(len(errors), 5)
        self.assertTrue(all(isinstance(e, InsufficientStockError) for e in errors), errors)

        with self.app.app_context():
            product = db.session.query(Product).filter_by(sku=self.sku).one()
            self.assertEqual(product.quantity_in_stock, 0)
            self.assertEqual(db.session.query(Sale).count(), 5)

    def test_concurrent_bill_numbers_are_unique(self):
        with self.app.app_context():
            db.session.query(Product).filter_by(sku=self.sku).update({"quantity_in_stock": 100})
            db.session.commit()

        created, errors = self._run_workers(count=8, quantity=1)

        self.assertFalse(errors)
        self.assertEqual(len(created), 8)
        self.assertEqual(len(created), len(set(created)))
        suffixes = sorted(int(bill.rsplit("-", 1)[1]) for bill in created)
        self.assertEqual(suffixes, list(range(1, 9)))


if __name__ == "__main__":
    unittest.main()
